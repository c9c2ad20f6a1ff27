"""Broadcast bus for inter-thread signalling."""

from .bus import BroadcastBus, MessageHandler
from .message import (
    ANY_KEY,
    CLONE,
    DELETE_CLONE,
    GREEN_FLAG,
    STOP_ALL,
    BroadcastMessage,
    click_topic,
    is_reserved,
    key_topic,
    normalize_key,
    user_topic,
)

__all__ = [
    "BroadcastBus",
    "MessageHandler",
    "BroadcastMessage",
    "ANY_KEY",
    "CLONE",
    "DELETE_CLONE",
    "GREEN_FLAG",
    "STOP_ALL",
    "click_topic",
    "is_reserved",
    "key_topic",
    "normalize_key",
    "user_topic",
]
