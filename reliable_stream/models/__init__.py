"""Data models shared across the reliability layer."""

from .events import ALLOWED_EVENT_KINDS, EventKind, StreamEvent

__all__ = [
    "ALLOWED_EVENT_KINDS",
    "EventKind",
    "StreamEvent",
]
