"""Single-level threads, edits, soft deletes and pins."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Iterable

from sqlalchemy import func
from sqlalchemy.orm import Session

from huddle.core.errors import Forbidden, InvalidInput, NestedThread, ParentNotFound
from huddle.core.pagination import Page, paginate
from huddle.models import Message
from huddle.services.membership import require_channel_member
from huddle.services.messages import (
    MESSAGE_LOAD_OPTIONS,
    get_visible_message,
    insert_message,
    normalize_content,
    visible_messages,
)

logger = logging.getLogger(__name__)


def reply(
    db: Session,
    parent_id: int,
    author_id: int,
    content: Any,
    file_ids: Iterable[int] = (),
    *,
    channel_id: int | None = None,
) -> Message:
    """Create a reply in the thread of ``parent_id``.

    The parent must be a visible top-level message. Replying to a reply always
    fails with ``NestedThread`` before membership is considered. When
    ``channel_id`` is given the parent must live in that channel.
    """

    parent = get_visible_message(db, parent_id, channel_id=channel_id, error=ParentNotFound)
    if parent.thread_id is not None:
        raise NestedThread()
    require_channel_member(parent.channel_id, author_id, db)
    text = normalize_content(content)
    try:
        return insert_message(
            db,
            channel_id=parent.channel_id,
            author_id=author_id,
            content=text,
            thread_id=parent.id,
            file_ids=file_ids,
        )
    except InvalidInput:
        db.rollback()
        raise


def reply_statistics(
    db: Session, parent_ids: Iterable[int]
) -> dict[int, tuple[int, datetime | None]]:
    """Live reply count and last reply time for each parent id."""

    ids = list({parent_id for parent_id in parent_ids})
    if not ids:
        return {}
    stmt = (
        visible_messages(Message.thread_id, func.count(Message.id), func.max(Message.created_at))
        .where(Message.thread_id.in_(ids))
        .group_by(Message.thread_id)
    )
    return {
        parent_id: (int(count), last_reply_at)
        for parent_id, count, last_reply_at in db.execute(stmt)
    }


def reply_count(db: Session, parent_id: int) -> int:
    return reply_statistics(db, [parent_id]).get(parent_id, (0, None))[0]


def thread_replies(
    db: Session,
    parent_id: int,
    *,
    limit: int,
    cursor: int | None = None,
) -> Page[Message]:
    """Visible replies of a thread in chronological order."""

    stmt = (
        visible_messages()
        .where(Message.thread_id == parent_id)
        .options(*MESSAGE_LOAD_OPTIONS)
        .order_by(Message.id.asc())
        .limit(limit + 1)
    )
    if cursor is not None:
        stmt = stmt.where(Message.id > cursor)
    rows = list(db.execute(stmt).scalars())
    return paginate(rows, limit, key=lambda message: message.id)


def _owned_message(db: Session, message_id: int, requestor_id: int) -> Message:
    message = get_visible_message(db, message_id)
    if message.author_id != requestor_id:
        raise Forbidden("Only the author can modify this message")
    return message


def edit_message(db: Session, message_id: int, requestor_id: int, content: Any) -> Message:
    """Replace the content of a message owned by ``requestor_id``."""

    message = _owned_message(db, message_id, requestor_id)
    message.content = normalize_content(content)
    message.edited_at = datetime.now(timezone.utc)
    db.commit()
    return get_visible_message(db, message.id)


def soft_delete_message(db: Session, message_id: int, requestor_id: int) -> Message:
    """Tombstone a message; reactions and files stay in storage."""

    message = _owned_message(db, message_id, requestor_id)
    message.deleted_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(message)
    logger.info("User %s deleted message %s", requestor_id, message_id)
    return message


def set_pinned(db: Session, message_id: int, user_id: int, pinned: bool) -> Message:
    """Pin or unpin a message. Repeating the same request is a no-op."""

    message = get_visible_message(db, message_id)
    require_channel_member(message.channel_id, user_id, db)
    if pinned and message.pinned_at is None:
        message.pinned_at = datetime.now(timezone.utc)
        message.pinned_by_id = user_id
        db.commit()
    elif not pinned and message.pinned_at is not None:
        message.pinned_at = None
        message.pinned_by_id = None
        db.commit()
    return get_visible_message(db, message.id)
