"""Schemas for direct messages."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from huddle.core.ids import EntityId
from huddle.schemas.users import PublicUser


class DirectMessageCreate(BaseModel):
    to_user_id: EntityId
    content: str


class DirectMessageRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    sender_id: int
    recipient_id: int
    content: str
    created_at: datetime
    read_at: datetime | None = None


class ConversationRead(BaseModel):
    user: PublicUser
    last_message: DirectMessageRead
    unread_count: int = 0


class DirectHistoryPage(BaseModel):
    messages: list[DirectMessageRead]
    has_more: bool = False
    next_cursor: int | None = None


class MarkedRead(BaseModel):
    marked_as_read: int
