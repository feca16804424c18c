"""Schemas related to chat messages."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from huddle.core.ids import EntityId
from huddle.models.enums import PresenceStatus


class MessageAuthor(BaseModel):
    """Lightweight author information for displaying messages."""

    id: int
    name: str
    avatar_url: str | None = None
    status: PresenceStatus = PresenceStatus.OFFLINE


class MessageReactionSummary(BaseModel):
    """Aggregated reaction information for a message."""

    emoji: str = Field(..., description="Emoji identifier, e.g. fire or :thumbsup:")
    count: int = Field(..., ge=0, description="Total reactions with the emoji")
    reacted: bool = Field(
        default=False,
        description="Indicates whether the current user added this reaction",
    )
    user_ids: list[int] = Field(
        default_factory=list,
        description="Identifiers of users who added this reaction",
    )


class FileRead(BaseModel):
    """Serialized representation of an uploaded file."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    message_id: int | None = None
    uploader_id: int
    file_name: str
    content_type: str
    file_size: int
    download_url: str
    created_at: datetime


class FilePage(BaseModel):
    files: list[FileRead]
    has_more: bool = False
    next_cursor: int | None = None


class MessageRead(BaseModel):
    """Serialized representation of a chat message."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    channel_id: int
    author_id: int | None
    author: MessageAuthor | None = None
    content: str
    thread_id: int | None = None
    created_at: datetime
    updated_at: datetime
    edited_at: datetime | None = None
    reply_count: int = 0
    last_reply_at: datetime | None = None
    files: list[FileRead] = []
    reactions: list[MessageReactionSummary] = []
    pinned_at: datetime | None = None
    pinned_by: MessageAuthor | None = None


class MessageCreate(BaseModel):
    """Payload for posting a message, optionally into a thread."""

    content: str
    thread_id: EntityId | None = None
    file_ids: list[EntityId] = Field(default_factory=list)


class ReplyCreate(BaseModel):
    content: str
    file_ids: list[EntityId] = Field(default_factory=list)


class MessageUpdate(BaseModel):
    content: str


class MessageHistoryPage(BaseModel):
    """Cursor-based page of messages."""

    messages: list[MessageRead]
    has_more: bool = False
    next_cursor: int | None = None


class ThreadRead(BaseModel):
    parent: MessageRead
    replies: list[MessageRead]
    has_more: bool = False
    next_cursor: int | None = None


class ReactionRequest(BaseModel):
    """Payload for adding a reaction."""

    emoji: str = Field(..., min_length=1, max_length=32)


class ReactionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    message_id: int
    user_id: int
    emoji: str
    created_at: datetime
