"""Service layer shared by the VM: configuration and the broadcast bus."""

from .broadcast import BroadcastBus, BroadcastMessage
from .config import EngineConfig, get_config, reload_config

__all__ = [
    "BroadcastBus",
    "BroadcastMessage",
    "EngineConfig",
    "get_config",
    "reload_config",
]
