"""Pydantic schemas for API payloads."""

from .auth import LoginRequest, Token, UserCreate
from .channels import (
    ChannelCreate,
    ChannelMemberRead,
    ChannelRead,
    MarkReadRequest,
    MarkReadResponse,
)
from .direct import (
    ConversationRead,
    DirectHistoryPage,
    DirectMessageCreate,
    DirectMessageRead,
    MarkedRead,
)
from .messages import (
    FilePage,
    FileRead,
    MessageCreate,
    MessageHistoryPage,
    MessageRead,
    MessageReactionSummary,
    MessageUpdate,
    ReactionRead,
    ReactionRequest,
    ReplyCreate,
    ThreadRead,
)
from .users import PresenceRead, PublicUser, StatusUpdate, UserRead, UserUpdate

__all__ = [
    "LoginRequest",
    "Token",
    "UserCreate",
    "UserRead",
    "UserUpdate",
    "PublicUser",
    "PresenceRead",
    "StatusUpdate",
    "ChannelCreate",
    "ChannelRead",
    "ChannelMemberRead",
    "MarkReadRequest",
    "MarkReadResponse",
    "MessageRead",
    "MessageCreate",
    "MessageUpdate",
    "ReplyCreate",
    "MessageHistoryPage",
    "ThreadRead",
    "MessageReactionSummary",
    "ReactionRequest",
    "ReactionRead",
    "FileRead",
    "FilePage",
    "DirectMessageCreate",
    "DirectMessageRead",
    "ConversationRead",
    "DirectHistoryPage",
    "MarkedRead",
]
