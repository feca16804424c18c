"""Conversion of ORM objects into API schemas."""

from __future__ import annotations

from typing import Sequence

from sqlalchemy.orm import Session

from huddle.core.storage import build_download_url
from huddle.models import DirectMessage, File, Message, User
from huddle.schemas import (
    DirectMessageRead,
    FileRead,
    MessageRead,
    MessageReactionSummary,
)
from huddle.schemas.messages import MessageAuthor
from huddle.services.reactions import summarize
from huddle.services.threads import reply_statistics


def serialize_author(user: User | None) -> MessageAuthor | None:
    if user is None:
        return None
    return MessageAuthor(id=user.id, name=user.name, avatar_url=user.avatar_url, status=user.status)


def serialize_file(record: File) -> FileRead:
    return FileRead(
        id=record.id,
        message_id=record.message_id,
        uploader_id=record.uploader_id,
        file_name=record.file_name,
        content_type=record.content_type,
        file_size=record.file_size,
        download_url=build_download_url(record.id),
        created_at=record.created_at,
    )


def serialize_messages(
    db: Session, messages: Sequence[Message], viewer_id: int | None = None
) -> list[MessageRead]:
    """Serialize messages with live reply statistics and grouped reactions."""

    stats = reply_statistics(db, [message.id for message in messages if message.thread_id is None])
    serialized: list[MessageRead] = []
    for message in messages:
        replies, last_reply_at = stats.get(message.id, (0, None))
        serialized.append(
            MessageRead(
                id=message.id,
                channel_id=message.channel_id,
                author_id=message.author_id,
                author=serialize_author(message.author),
                content=message.content,
                thread_id=message.thread_id,
                created_at=message.created_at,
                updated_at=message.updated_at,
                edited_at=message.edited_at,
                reply_count=replies,
                last_reply_at=last_reply_at,
                files=[serialize_file(record) for record in message.files],
                reactions=[
                    MessageReactionSummary(**entry)
                    for entry in summarize(message.reactions, viewer_id)
                ],
                pinned_at=message.pinned_at,
                pinned_by=serialize_author(message.pinned_by),
            )
        )
    return serialized


def serialize_message(db: Session, message: Message, viewer_id: int | None = None) -> MessageRead:
    return serialize_messages(db, [message], viewer_id)[0]


def serialize_direct_message(message: DirectMessage) -> DirectMessageRead:
    return DirectMessageRead.model_validate(message)
