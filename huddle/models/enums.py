from __future__ import annotations

from enum import Enum


class PresenceStatus(str, Enum):
    """Presence states a user can be displayed with."""

    ONLINE = "online"
    AWAY = "away"
    BUSY = "busy"
    OFFLINE = "offline"
