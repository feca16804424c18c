"""Realtime primitives: channel rooms, typing indicators and event publishing."""

from .managers import (
    ChannelConnectionManager,
    TypingManager,
    TypingStatusStore,
    get_channel_manager,
    get_typing_manager,
    safe_send_json,
)

__all__ = [
    "ChannelConnectionManager",
    "TypingManager",
    "TypingStatusStore",
    "get_channel_manager",
    "get_typing_manager",
    "safe_send_json",
]
