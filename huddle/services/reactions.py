"""Emoji reactions on channel messages."""

from __future__ import annotations

from collections import OrderedDict
from typing import Any, Iterable

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from huddle.config import get_settings
from huddle.core.errors import AlreadyExists, InvalidInput, NotFound
from huddle.models import Reaction
from huddle.services.membership import require_channel_member
from huddle.services.messages import get_visible_message

settings = get_settings()


def normalize_emoji(emoji: Any) -> str:
    if not isinstance(emoji, str):
        raise InvalidInput("Emoji must be a string")
    value = emoji.strip()
    if not value or len(value) > settings.emoji_max_length:
        raise InvalidInput(f"Emoji must be 1-{settings.emoji_max_length} characters")
    return value


def add_reaction(db: Session, message_id: int, user_id: int, emoji: Any) -> Reaction:
    """Add a reaction; a repeated (message, user, emoji) triple is rejected."""

    value = normalize_emoji(emoji)
    message = get_visible_message(db, message_id)
    require_channel_member(message.channel_id, user_id, db)

    reaction = Reaction(message_id=message.id, user_id=user_id, emoji=value)
    db.add(reaction)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise AlreadyExists("Reaction already exists") from None
    db.refresh(reaction)
    return reaction


def remove_reaction(db: Session, message_id: int, user_id: int, emoji: Any) -> None:
    value = normalize_emoji(emoji)
    message = get_visible_message(db, message_id)
    require_channel_member(message.channel_id, user_id, db)

    stmt = select(Reaction).where(
        Reaction.message_id == message.id,
        Reaction.user_id == user_id,
        Reaction.emoji == value,
    )
    reaction = db.execute(stmt).scalar_one_or_none()
    if reaction is None:
        raise NotFound("Reaction not found")
    db.delete(reaction)
    db.commit()


def summarize(reactions: Iterable[Reaction], viewer_id: int | None = None) -> list[dict[str, Any]]:
    """Group reactions by emoji in first-reacted order."""

    grouped: "OrderedDict[str, list[int]]" = OrderedDict()
    for reaction in reactions:
        grouped.setdefault(reaction.emoji, []).append(reaction.user_id)
    return [
        {
            "emoji": emoji,
            "count": len(user_ids),
            "reacted": viewer_id in user_ids if viewer_id is not None else False,
            "user_ids": user_ids,
        }
        for emoji, user_ids in grouped.items()
    ]
