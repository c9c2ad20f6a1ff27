"""Broadcast message model and reserved message names."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional


# Reserved VM-control names. User broadcasts may not start with this prefix.
RESERVED_PREFIX = "vm."

GREEN_FLAG = "vm.green_flag"
STOP_ALL = "vm.stop_all"
CLONE = "vm.clone"
DELETE_CLONE = "vm.delete_clone"
KEY_PREFIX = "vm.key."
CLICK_PREFIX = "vm.click."
ANY_KEY = "vm.key.*"


@dataclass(frozen=True)
class BroadcastMessage:
    """An immutable named signal, delivered once to current subscribers."""

    name: str
    payload: Optional[Any] = None
    timestamp: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc), compare=False
    )

    @property
    def is_reserved(self) -> bool:
        return is_reserved(self.name)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "payload": self.payload,
            "timestamp": self.timestamp.isoformat(),
        }


def is_reserved(name: str) -> bool:
    return name.startswith(RESERVED_PREFIX)


def user_topic(name: str) -> str:
    """Bus topic for a user broadcast; names match case-insensitively."""
    return name.strip().casefold()


def key_topic(key: str) -> str:
    return f"{KEY_PREFIX}{normalize_key(key)}"


def click_topic(instance_id: str) -> str:
    return f"{CLICK_PREFIX}{instance_id}"


def normalize_key(key: str) -> str:
    """Normalize a key name: single characters lower-case, names like 'left arrow' kept."""
    key = key.strip()
    if key in ("", " "):
        return "space"
    return key.lower()


__all__ = [
    "BroadcastMessage",
    "RESERVED_PREFIX",
    "GREEN_FLAG",
    "STOP_ALL",
    "CLONE",
    "DELETE_CLONE",
    "KEY_PREFIX",
    "CLICK_PREFIX",
    "ANY_KEY",
    "is_reserved",
    "user_topic",
    "key_topic",
    "click_topic",
    "normalize_key",
]
