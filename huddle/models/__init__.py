"""Database models package."""

from .base import Base
from .chat import (
    Channel,
    ChannelMember,
    ChannelRead,
    DirectMessage,
    File,
    Message,
    Reaction,
    User,
)
from .enums import PresenceStatus

__all__ = [
    "Base",
    "User",
    "Channel",
    "ChannelMember",
    "ChannelRead",
    "Message",
    "Reaction",
    "File",
    "DirectMessage",
    "PresenceStatus",
]
