"""Database-backed substring search over channel messages."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import and_, select
from sqlalchemy.orm import Session

from huddle.config import get_settings
from huddle.core.errors import InvalidInput
from huddle.core.pagination import Page, paginate
from huddle.models import ChannelMember, File, Message
from huddle.services.messages import MESSAGE_LOAD_OPTIONS, visible_messages

settings = get_settings()


@dataclass(frozen=True)
class MessageSearchFilters:
    """Optional filters that can be applied to message search queries."""

    channel_id: int | None = None
    author_id: int | None = None
    has_files: bool | None = None


class MessageSearchService:
    """Case-insensitive substring search limited to the caller's channels."""

    def __init__(self, session: Session):
        self._session = session

    def search(
        self,
        user_id: int,
        query: str,
        *,
        limit: int,
        cursor: int | None = None,
        filters: MessageSearchFilters | None = None,
    ) -> Page[Message]:
        """Search visible messages, newest first."""

        term = (query or "").strip()
        if len(term) < settings.search_min_query_length:
            raise InvalidInput(
                f"Search query must be at least {settings.search_min_query_length} characters"
            )
        if filters is None:
            filters = MessageSearchFilters()

        member_channels = select(ChannelMember.channel_id).where(ChannelMember.user_id == user_id)
        conditions: list = [
            Message.channel_id.in_(member_channels),
            self._build_matcher(term),
        ]
        if filters.channel_id is not None:
            conditions.append(Message.channel_id == filters.channel_id)
        if filters.author_id is not None:
            conditions.append(Message.author_id == filters.author_id)
        if filters.has_files is not None:
            has_files = Message.files.any(File.id.is_not(None))
            conditions.append(has_files if filters.has_files else ~has_files)
        if cursor is not None:
            conditions.append(Message.id < cursor)

        stmt = (
            visible_messages()
            .where(and_(*conditions))
            .options(*MESSAGE_LOAD_OPTIONS)
            .order_by(Message.id.desc())
            .limit(limit + 1)
        )
        rows = list(self._session.execute(stmt).scalars())
        return paginate(rows, limit, key=lambda message: message.id)

    # Internal helpers -----------------------------------------------------

    @staticmethod
    def _build_matcher(term: str):
        escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        return Message.content.ilike(f"%{escaped}%", escape="\\")
