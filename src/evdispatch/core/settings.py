# src/evdispatch/core/settings.py
from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from evdispatch.core.errors import ConfigError

COALESCE = "coalesce"
QUEUE = "queue"
BACKGROUND_POLICIES = (COALESCE, QUEUE)

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass
class DispatcherConfig:
    name: str = "events"
    background_policy: str = COALESCE
    background_delay_ms: float = 0.0
    default_halt: bool = True

    def __post_init__(self):
        if self.background_policy not in BACKGROUND_POLICIES:
            raise ConfigError(
                f"background_policy must be one of {BACKGROUND_POLICIES}, got {self.background_policy!r}"
            )
        self.background_delay_ms = float(self.background_delay_ms)
        if self.background_delay_ms < 0:
            raise ConfigError("background_delay_ms must be >= 0")

    @classmethod
    def from_env(cls, prefix: str = "EVENTS_") -> "DispatcherConfig":
        """Build a config from environment variables (a .env file is loaded first)."""
        load_dotenv()

        def env(key: str, default: str) -> str:
            return os.getenv(prefix + key, default)

        delay = env("BACKGROUND_DELAY_MS", "0")
        try:
            delay_ms = float(delay)
        except ValueError as e:
            raise ConfigError(f"{prefix}BACKGROUND_DELAY_MS is not a number: {delay!r}") from e

        return cls(
            name=env("NAME", "events"),
            background_policy=env("BACKGROUND_POLICY", COALESCE).strip().lower(),
            background_delay_ms=delay_ms,
            default_halt=env("DEFAULT_HALT", "1").strip().lower() in _TRUTHY,
        )
