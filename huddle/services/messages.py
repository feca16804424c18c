"""Message persistence and the tombstone-aware read accessor.

Soft-deleted rows stay in the ``messages`` table. Every read path goes through
:func:`visible_messages` or :func:`get_visible_message` so that a tombstone
never leaks into listings, threads, search or unread counts.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

from sqlalchemy import Select, select
from sqlalchemy.orm import Session, selectinload

from huddle.config import get_settings
from huddle.core.errors import InvalidInput, MessageNotFound, NotFound
from huddle.core.pagination import Page, paginate
from huddle.models import File, Message, Reaction
from huddle.services.membership import get_channel, require_channel_member

settings = get_settings()

logger = logging.getLogger(__name__)

MESSAGE_LOAD_OPTIONS = (
    selectinload(Message.author),
    selectinload(Message.pinned_by),
    selectinload(Message.files),
    selectinload(Message.reactions).selectinload(Reaction.user),
)


def visible():
    """Filter clause excluding soft-deleted messages."""

    return Message.deleted_at.is_(None)


def top_level():
    """Filter clause selecting messages that are not thread replies."""

    return Message.thread_id.is_(None)


def visible_messages(*entities: Any) -> Select:
    """``SELECT`` over non-deleted messages; defaults to the ``Message`` entity."""

    return select(*(entities or (Message,))).where(visible())


def get_visible_message(
    db: Session,
    message_id: int,
    *,
    channel_id: int | None = None,
    error: type[NotFound] = MessageNotFound,
) -> Message:
    """Load a non-deleted message or raise ``error``."""

    stmt = visible_messages().where(Message.id == message_id).options(*MESSAGE_LOAD_OPTIONS)
    if channel_id is not None:
        stmt = stmt.where(Message.channel_id == channel_id)
    message = db.execute(stmt).scalar_one_or_none()
    if message is None:
        raise error()
    return message


def normalize_content(content: Any) -> str:
    """Validate message text and strip trailing whitespace."""

    if not isinstance(content, str):
        raise InvalidInput("Message content must be a string")
    if "\x00" in content:
        raise InvalidInput("Message content contains invalid characters")
    normalized = content.rstrip()
    if not normalized.strip():
        raise InvalidInput("Message content cannot be empty")
    if len(normalized) > settings.message_max_length:
        raise InvalidInput(
            f"Message content exceeds {settings.message_max_length} characters"
        )
    return normalized


def attach_files(db: Session, message: Message, file_ids: Iterable[int], owner_id: int) -> list[File]:
    """Attach uploaded files to ``message``.

    A file can only be attached once and only by the user who uploaded it.
    """

    unique_ids = sorted({int(file_id) for file_id in file_ids})
    if not unique_ids:
        return []
    stmt = select(File).where(
        File.id.in_(unique_ids),
        File.uploader_id == owner_id,
        File.message_id.is_(None),
    )
    files = list(db.execute(stmt).scalars())
    if len(files) != len(unique_ids):
        raise InvalidInput("Invalid file IDs or files already attached")
    for file in files:
        file.message_id = message.id
    return files


def insert_message(
    db: Session,
    *,
    channel_id: int,
    author_id: int,
    content: str,
    thread_id: int | None = None,
    file_ids: Iterable[int] = (),
) -> Message:
    message = Message(
        channel_id=channel_id,
        author_id=author_id,
        thread_id=thread_id,
        content=content,
    )
    db.add(message)
    db.flush()
    attach_files(db, message, file_ids, author_id)
    db.commit()
    logger.debug(
        "User %s posted message %s in channel %s (thread %s)",
        author_id,
        message.id,
        channel_id,
        thread_id,
    )
    return get_visible_message(db, message.id)


def create_message(
    db: Session,
    channel_id: int,
    author_id: int,
    content: Any,
    file_ids: Iterable[int] = (),
) -> Message:
    """Post a top-level message to a channel the author belongs to."""

    get_channel(channel_id, db)
    require_channel_member(channel_id, author_id, db)
    text = normalize_content(content)
    try:
        return insert_message(
            db, channel_id=channel_id, author_id=author_id, content=text, file_ids=file_ids
        )
    except InvalidInput:
        db.rollback()
        raise


def channel_history(
    db: Session,
    channel_id: int,
    *,
    limit: int,
    cursor: int | None = None,
) -> Page[Message]:
    """Top-level visible messages of a channel, newest first."""

    stmt = (
        visible_messages()
        .where(Message.channel_id == channel_id, top_level())
        .options(*MESSAGE_LOAD_OPTIONS)
        .order_by(Message.id.desc())
        .limit(limit + 1)
    )
    if cursor is not None:
        stmt = stmt.where(Message.id < cursor)
    rows = list(db.execute(stmt).scalars())
    return paginate(rows, limit, key=lambda message: message.id)


def pinned_messages(db: Session, channel_id: int) -> list[Message]:
    stmt = (
        visible_messages()
        .where(Message.channel_id == channel_id, Message.pinned_at.is_not(None))
        .options(*MESSAGE_LOAD_OPTIONS)
        .order_by(Message.pinned_at.desc(), Message.id.desc())
    )
    return list(db.execute(stmt).scalars())
