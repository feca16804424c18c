"""Application service helpers."""

from .presence import presence_tracker
from .user_events import user_event_hub

__all__ = [
    "presence_tracker",
    "user_event_hub",
]
