"""Engine configuration helpers."""

from __future__ import annotations

from functools import lru_cache
import logging
import os
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


logger = logging.getLogger(__name__)


class EngineConfig(BaseModel):
    """Runtime configuration loaded from environment variables."""

    model_config = ConfigDict(frozen=True)

    max_clones: int = Field(
        default=300,
        ge=0,
        description="Ceiling on live clones across the whole VM",
    )
    max_steps_per_quantum: int = Field(
        default=10000,
        ge=1,
        description="Blocks a thread may execute in one quantum before it is forced to yield",
    )
    tick_rate_hz: int = Field(
        default=30,
        ge=1,
        le=1000,
        description="Ticks per second when running in real time",
    )
    history_size: int = Field(
        default=64,
        ge=0,
        description="Executed-block entries each thread keeps for diagnostics",
    )
    restart_on_retrigger: bool = Field(
        default=False,
        description=(
            "Cancel a hat's running thread before spawning a new one when the same "
            "trigger fires again. False keeps independent concurrent threads"
        ),
    )
    random_seed: Optional[int] = Field(
        default=None,
        description="Seed for the VM random number generator (None for nondeterministic)",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level used by the command-line host",
    )

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        value = value.upper()
        if value not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {value}")
        return value

    @property
    def tick_interval(self) -> float:
        """Seconds between ticks in real-time mode."""
        return 1.0 / self.tick_rate_hz


def _read_env(key: str, default: Optional[str] = None) -> Optional[str]:
    return os.getenv(key, default)


def _read_int(key: str, default: int) -> int:
    raw = _read_env(key, str(default))
    try:
        return int(raw)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring malformed {key}={raw!r}, using {default}")
        return default


@lru_cache(maxsize=1)
def get_config() -> EngineConfig:
    """Load and cache engine configuration."""
    restart_on_retrigger = _read_env("BLOCKVM_RESTART_ON_RETRIGGER", "false").lower() in {
        "true",
        "1",
        "yes",
    }

    seed_str = _read_env("BLOCKVM_RANDOM_SEED")
    random_seed: Optional[int] = None
    if seed_str:
        try:
            random_seed = int(seed_str)
        except ValueError:
            logger.warning(f"Ignoring malformed BLOCKVM_RANDOM_SEED={seed_str!r}")

    values = {
        "max_clones": _read_int("BLOCKVM_MAX_CLONES", 300),
        "max_steps_per_quantum": _read_int("BLOCKVM_MAX_STEPS_PER_QUANTUM", 10000),
        "tick_rate_hz": _read_int("BLOCKVM_TICK_RATE_HZ", 30),
        "history_size": _read_int("BLOCKVM_HISTORY_SIZE", 64),
        "restart_on_retrigger": restart_on_retrigger,
        "random_seed": random_seed,
        "log_level": _read_env("BLOCKVM_LOG_LEVEL", "INFO"),
    }
    try:
        return EngineConfig(**values)
    except ValidationError as e:
        # Out-of-range values fall back to their defaults like malformed ones
        invalid = {error["loc"][0] for error in e.errors() if error["loc"]}
        for name in sorted(invalid):
            env_key = f"BLOCKVM_{name.upper()}"
            logger.warning(f"Ignoring invalid {env_key}={values.pop(name)!r}, using default")
        return EngineConfig(**values)


def reload_config() -> EngineConfig:
    """Clear cached config (useful for tests) and reload."""
    get_config.cache_clear()
    return get_config()


__all__ = ["EngineConfig", "get_config", "reload_config"]
