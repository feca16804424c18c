"""Schemas describing users, profiles and presence."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, constr

from huddle.models.enums import PresenceStatus


class PublicUser(BaseModel):
    """Profile fields visible to any authenticated user."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    avatar_url: str | None = None
    bio: str | None = None
    status: PresenceStatus = PresenceStatus.OFFLINE
    last_seen: datetime | None = None


class UserRead(PublicUser):
    """Representation of the authenticated user."""

    email: str
    created_at: datetime


class UserUpdate(BaseModel):
    """Partial profile update."""

    name: constr(strip_whitespace=True, min_length=1, max_length=128) | None = None
    avatar_url: constr(strip_whitespace=True, max_length=512) | None = None
    bio: constr(max_length=500) | None = None
    status: PresenceStatus | None = None


class StatusUpdate(BaseModel):
    status: PresenceStatus = Field(..., description="New presence status")


class PresenceRead(BaseModel):
    """Presence of a user as seen by the realtime layer."""

    user_id: int
    status: PresenceStatus
    online: bool
    connections: int = Field(0, ge=0)
    last_seen: datetime | None = None
