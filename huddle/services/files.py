"""Uploaded file records and their one-shot association with messages."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from huddle.core.errors import FileNotFound, Forbidden
from huddle.core.pagination import Page, paginate
from huddle.core.storage import StoredFile, remove_stored
from huddle.models import File, Message
from huddle.services.membership import get_channel_member, require_channel_member
from huddle.services.messages import get_visible_message

logger = logging.getLogger(__name__)


def register_upload(
    db: Session, uploader_id: int, stored: StoredFile, message_id: int | None = None
) -> File:
    """Persist metadata for a stored upload, optionally attaching it to a message."""

    if message_id is not None:
        message = get_visible_message(db, message_id)
        require_channel_member(message.channel_id, uploader_id, db)
    record = File(
        uploader_id=uploader_id,
        message_id=message_id,
        file_name=stored.file_name,
        content_type=stored.content_type,
        file_size=stored.file_size,
        storage_path=stored.relative_path,
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    logger.info("User %s uploaded file %s (%s bytes)", uploader_id, record.id, record.file_size)
    return record


def get_file(db: Session, file_id: int, user_id: int) -> File:
    """Return a file the user may see.

    Uploaders always see their files. Anyone else must belong to the channel
    of the message the file is attached to, even when that message is deleted.
    """

    record = db.get(File, file_id)
    if record is None:
        raise FileNotFound()
    if record.uploader_id == user_id:
        return record
    if record.message_id is not None:
        channel_id = db.execute(
            select(Message.channel_id).where(Message.id == record.message_id)
        ).scalar_one_or_none()
        if channel_id is not None and get_channel_member(channel_id, user_id, db) is not None:
            return record
    raise Forbidden("You do not have access to this file")


def list_files(
    db: Session, user_id: int, *, limit: int, cursor: int | None = None
) -> Page[File]:
    stmt = (
        select(File)
        .where(File.uploader_id == user_id)
        .order_by(File.id.desc())
        .limit(limit + 1)
    )
    if cursor is not None:
        stmt = stmt.where(File.id < cursor)
    return paginate(list(db.execute(stmt).scalars()), limit, key=lambda record: record.id)


def delete_file(db: Session, file_id: int, user_id: int) -> None:
    """Hard delete a file row and its stored object. Owner only."""

    record = db.get(File, file_id)
    if record is None:
        raise FileNotFound()
    if record.uploader_id != user_id:
        raise Forbidden("Only the uploader can delete this file")
    storage_path = record.storage_path
    db.delete(record)
    db.commit()
    remove_stored(storage_path)
