"""Per-user read pointers and unread counts for channels.

A pointer holds the id of the last message a user acknowledged in a channel.
Unread messages are the visible top-level messages with a larger id; thread
replies never count. A user who never read a channel has every visible
top-level message unread.
"""

from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from huddle.models import ChannelRead, Message
from huddle.services.membership import require_channel_member
from huddle.services.messages import get_visible_message, top_level, visible_messages

logger = logging.getLogger(__name__)


def _pointer_row(db: Session, user_id: int, channel_id: int) -> ChannelRead | None:
    stmt = select(ChannelRead).where(
        ChannelRead.user_id == user_id,
        ChannelRead.channel_id == channel_id,
    )
    return db.execute(stmt).scalar_one_or_none()


def get_pointer(db: Session, user_id: int, channel_id: int) -> int | None:
    row = _pointer_row(db, user_id, channel_id)
    return row.last_read_message_id if row is not None else None


def _upsert_pointer(db: Session, user_id: int, channel_id: int, message_id: int) -> ChannelRead:
    row = _pointer_row(db, user_id, channel_id)
    if row is not None:
        row.last_read_message_id = message_id
        db.commit()
        return row

    row = ChannelRead(user_id=user_id, channel_id=channel_id, last_read_message_id=message_id)
    db.add(row)
    try:
        db.commit()
    except IntegrityError:
        # a concurrent request inserted the pointer first; last write wins
        db.rollback()
        row = _pointer_row(db, user_id, channel_id)
        if row is None:
            raise
        row.last_read_message_id = message_id
        db.commit()
    return row


def mark_read(db: Session, user_id: int, channel_id: int, message_id: int) -> ChannelRead:
    """Move the user's pointer for ``channel_id`` to ``message_id``.

    Backward moves are accepted.
    """

    require_channel_member(channel_id, user_id, db)
    get_visible_message(db, message_id, channel_id=channel_id)
    row = _upsert_pointer(db, user_id, channel_id, message_id)
    logger.debug("User %s read channel %s up to message %s", user_id, channel_id, message_id)
    return row


def advance_pointer(db: Session, user_id: int, channel_id: int, message_id: int) -> None:
    """Move the pointer forward only; used when a user views the latest page."""

    current = get_pointer(db, user_id, channel_id)
    if current is not None and current >= message_id:
        return
    _upsert_pointer(db, user_id, channel_id, message_id)


def unread_counts(db: Session, user_id: int, channel_ids: Iterable[int]) -> dict[int, int]:
    """Unread counts for several channels in one grouped query.

    Channels without unread messages map to ``0``.
    """

    ids = list({channel_id for channel_id in channel_ids})
    if not ids:
        return {}
    pointer = (
        select(ChannelRead.last_read_message_id)
        .where(
            ChannelRead.user_id == user_id,
            ChannelRead.channel_id == Message.channel_id,
        )
        .correlate(Message)
        .scalar_subquery()
    )
    stmt = (
        visible_messages(Message.channel_id, func.count(Message.id))
        .where(
            Message.channel_id.in_(ids),
            top_level(),
            Message.id > func.coalesce(pointer, 0),
        )
        .group_by(Message.channel_id)
    )
    counts = {channel_id: 0 for channel_id in ids}
    for channel_id, count in db.execute(stmt):
        counts[channel_id] = int(count)
    return counts


def unread_count(db: Session, user_id: int, channel_id: int) -> int:
    return unread_counts(db, user_id, [channel_id])[channel_id]
