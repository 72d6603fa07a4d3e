# pingpong_core/config.py

from __future__ import annotations
from dataclasses import dataclass, replace
from typing import Optional
import os
from .constants import (
    DEFAULT_POLL_INTERVAL, DEFAULT_PONG_TIMEOUT, DEFAULT_SESSION_TTL,
    DEFAULT_REPLAY_WINDOW, DEFAULT_DB_PATH,
)
from .logger import resolve_level

_PROVIDERS = ("memory", "sqlite")


@dataclass(frozen=True)
class PingPongConfig:
    poll_interval: float = DEFAULT_POLL_INTERVAL
    pong_timeout: float = DEFAULT_PONG_TIMEOUT
    session_ttl: float = DEFAULT_SESSION_TTL      # 0 = sessions never expire
    replay_window: float = DEFAULT_REPLAY_WINDOW  # 0 = guard entries kept forever
    storage_provider: str = "memory"
    sqlite_path: str = DEFAULT_DB_PATH
    log_level: str = "INFO"

    def validate(self) -> "PingPongConfig":
        if self.poll_interval <= 0:
            raise ValueError(f"poll_interval must be positive (got {self.poll_interval})")
        if self.pong_timeout < 0:
            raise ValueError(f"pong_timeout must be >= 0 (got {self.pong_timeout})")
        if self.session_ttl < 0 or self.replay_window < 0:
            raise ValueError("session_ttl and replay_window must be >= 0")
        if self.storage_provider not in _PROVIDERS:
            raise ValueError(f"Unknown storage provider: {self.storage_provider}")
        resolve_level(self.log_level)
        return self


def _env_float(name: str, default: float, scale: float = 1.0) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw) * scale
    except ValueError:
        raise ValueError(f"{name} must be a number (got {raw!r})") from None


def load_config(overrides: Optional[dict] = None) -> PingPongConfig:
    """
    Build the runtime config from PINGPONG_* environment variables, then
    apply explicit overrides (same field names as PingPongConfig).

    PINGPONG_POLL_INTERVAL_MS is in milliseconds; every other duration is
    in seconds.
    """
    cfg = PingPongConfig(
        poll_interval=_env_float("PINGPONG_POLL_INTERVAL_MS", DEFAULT_POLL_INTERVAL, scale=0.001),
        pong_timeout=_env_float("PINGPONG_PONG_TIMEOUT", DEFAULT_PONG_TIMEOUT),
        session_ttl=_env_float("PINGPONG_SESSION_TTL", DEFAULT_SESSION_TTL),
        replay_window=_env_float("PINGPONG_REPLAY_WINDOW", DEFAULT_REPLAY_WINDOW),
        storage_provider=os.getenv("PINGPONG_STORAGE_PROVIDER", "memory").lower(),
        sqlite_path=os.getenv("PINGPONG_DB_PATH", DEFAULT_DB_PATH),
        log_level=os.getenv("PINGPONG_LOG_LEVEL", "INFO").upper(),
    )
    if overrides:
        cfg = replace(cfg, **overrides)
    return cfg.validate()
