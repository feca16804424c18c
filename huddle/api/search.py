"""Message search endpoint."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from huddle.api.deps import get_current_user
from huddle.api.serializers import serialize_messages
from huddle.config import get_settings
from huddle.core.ids import MAX_ENTITY_ID
from huddle.core.pagination import resolve_limit
from huddle.database import get_db
from huddle.models import User
from huddle.schemas import MessageHistoryPage
from huddle.search import MessageSearchFilters, MessageSearchService

router = APIRouter(prefix="/search", tags=["search"])

settings = get_settings()


@router.get("", response_model=MessageHistoryPage)
def search_messages(
    q: str = Query(default="", max_length=200),
    channel_id: int | None = Query(default=None, ge=1, le=MAX_ENTITY_ID),
    author_id: int | None = Query(default=None, ge=1, le=MAX_ENTITY_ID),
    has_files: bool | None = Query(default=None),
    limit: int | None = Query(default=None),
    cursor: int | None = Query(default=None, ge=1, le=MAX_ENTITY_ID),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> MessageHistoryPage:
    """Search messages in the caller's channels, newest first."""

    service = MessageSearchService(db)
    result = service.search(
        current_user.id,
        q,
        limit=resolve_limit(limit, maximum=settings.search_max_limit),
        cursor=cursor,
        filters=MessageSearchFilters(
            channel_id=channel_id,
            author_id=author_id,
            has_files=has_files,
        ),
    )
    return MessageHistoryPage(
        messages=serialize_messages(db, result.items, current_user.id),
        has_more=result.has_more,
        next_cursor=result.next_cursor,
    )
