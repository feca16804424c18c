"""Direct messages between two users, independent of channel membership."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import and_, case, func, or_, select, update
from sqlalchemy.orm import Session, selectinload

from huddle.core.errors import Forbidden, InvalidInput, NotFound, UserNotFound
from huddle.core.pagination import Page, paginate
from huddle.models import DirectMessage, User
from huddle.services.messages import normalize_content


@dataclass(slots=True)
class Conversation:
    partner: User
    last_message: DirectMessage
    unread_count: int


def _visible():
    return DirectMessage.deleted_at.is_(None)


def _between(user_id: int, partner_id: int):
    return or_(
        and_(DirectMessage.sender_id == user_id, DirectMessage.recipient_id == partner_id),
        and_(DirectMessage.sender_id == partner_id, DirectMessage.recipient_id == user_id),
    )


def _get_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise UserNotFound()
    return user


def send_direct_message(db: Session, sender_id: int, recipient_id: int, content: Any) -> DirectMessage:
    if sender_id == recipient_id:
        raise InvalidInput("Cannot send a direct message to yourself")
    _get_user(db, recipient_id)
    text = normalize_content(content)
    message = DirectMessage(sender_id=sender_id, recipient_id=recipient_id, content=text)
    db.add(message)
    db.commit()
    stmt = (
        select(DirectMessage)
        .where(DirectMessage.id == message.id)
        .options(selectinload(DirectMessage.sender), selectinload(DirectMessage.recipient))
    )
    return db.execute(stmt).scalar_one()


def list_conversations(db: Session, user_id: int) -> list[Conversation]:
    """One entry per partner, most recent conversation first."""

    partner_column = case(
        (DirectMessage.sender_id == user_id, DirectMessage.recipient_id),
        else_=DirectMessage.sender_id,
    ).label("partner_id")
    latest_stmt = (
        select(partner_column, func.max(DirectMessage.id))
        .where(
            or_(DirectMessage.sender_id == user_id, DirectMessage.recipient_id == user_id),
            _visible(),
        )
        .group_by(partner_column)
    )
    latest = {partner_id: message_id for partner_id, message_id in db.execute(latest_stmt)}
    if not latest:
        return []

    messages = {
        message.id: message
        for message in db.execute(
            select(DirectMessage).where(DirectMessage.id.in_(list(latest.values())))
        ).scalars()
    }
    partners = {
        user.id: user
        for user in db.execute(select(User).where(User.id.in_(list(latest.keys())))).scalars()
    }
    unread_stmt = (
        select(DirectMessage.sender_id, func.count(DirectMessage.id))
        .where(
            DirectMessage.recipient_id == user_id,
            DirectMessage.read_at.is_(None),
            _visible(),
        )
        .group_by(DirectMessage.sender_id)
    )
    unread = {sender_id: int(count) for sender_id, count in db.execute(unread_stmt)}

    conversations = [
        Conversation(
            partner=partners[partner_id],
            last_message=messages[message_id],
            unread_count=unread.get(partner_id, 0),
        )
        for partner_id, message_id in latest.items()
        if partner_id in partners
    ]
    conversations.sort(key=lambda item: item.last_message.id, reverse=True)
    return conversations


def mark_conversation_read(db: Session, user_id: int, partner_id: int) -> int:
    """Stamp every unread message from ``partner_id``; returns how many changed."""

    stmt = (
        update(DirectMessage)
        .where(
            DirectMessage.sender_id == partner_id,
            DirectMessage.recipient_id == user_id,
            DirectMessage.read_at.is_(None),
            _visible(),
        )
        .values(read_at=datetime.now(timezone.utc))
        .execution_options(synchronize_session=False)
    )
    result = db.execute(stmt)
    db.commit()
    return int(result.rowcount or 0)


def conversation_history(
    db: Session,
    user_id: int,
    partner_id: int,
    *,
    limit: int,
    cursor: int | None = None,
) -> Page[DirectMessage]:
    """Newest-first history with ``partner_id``; incoming messages become read."""

    _get_user(db, partner_id)
    stmt = (
        select(DirectMessage)
        .where(_between(user_id, partner_id), _visible())
        .options(selectinload(DirectMessage.sender), selectinload(DirectMessage.recipient))
        .order_by(DirectMessage.id.desc())
        .limit(limit + 1)
    )
    if cursor is not None:
        stmt = stmt.where(DirectMessage.id < cursor)
    page = paginate(list(db.execute(stmt).scalars()), limit, key=lambda message: message.id)
    if any(message.recipient_id == user_id and message.read_at is None for message in page.items):
        mark_conversation_read(db, user_id, partner_id)
        for message in page.items:
            db.refresh(message)
    return page


def delete_direct_message(db: Session, message_id: int, requestor_id: int) -> DirectMessage:
    message = db.get(DirectMessage, message_id)
    if message is None or message.deleted_at is not None:
        raise NotFound("Direct message not found")
    if message.sender_id != requestor_id:
        raise Forbidden("Only the sender can delete this message")
    message.deleted_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(message)
    return message
