"""Schemas for channels, membership and read state."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from huddle.config import get_settings
from huddle.core.ids import EntityId
from huddle.schemas.users import PublicUser

settings = get_settings()


class ChannelCreate(BaseModel):
    """Payload for creating a channel."""

    name: str = Field(..., description="Unique channel name")
    description: str | None = Field(default=None, max_length=255)
    is_private: bool = False

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        name = value.strip()
        if not name or len(name) > settings.channel_name_max_length:
            raise ValueError(
                f"Channel name must be 1-{settings.channel_name_max_length} characters"
            )
        if ".." in name or "/" in name or "\\" in name:
            raise ValueError("Channel name contains invalid characters")
        return name


class ChannelRead(BaseModel):
    """Serialized channel with per-caller counters."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str | None = None
    is_private: bool
    created_by_id: int | None = None
    created_at: datetime
    member_count: int = 0
    unread_count: int | None = None
    is_member: bool = False


class ChannelMemberRead(BaseModel):
    user: PublicUser
    joined_at: datetime


class MarkReadRequest(BaseModel):
    message_id: EntityId = Field(
        ..., description="Identifier of the last message the user has seen"
    )


class MarkReadResponse(BaseModel):
    success: bool = True
    channel_id: int
    last_read_message_id: int | None
    unread_count: int
