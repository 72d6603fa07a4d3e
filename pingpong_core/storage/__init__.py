# pingpong_core/storage/__init__.py

from .models import PingSession, PongSession
from .provider import SessionStore
from .providers.memory_provider import InMemorySessionStore
from .providers.sqlite_provider import SQLiteSessionStore


def load_session_store(config=None) -> SessionStore:
    """
    Factory resolver for selecting the runtime session store.

    For now:
        - memory (default)
        - sqlite
    """
    from pingpong_core.config import PingPongConfig, load_config

    if config is None:
        config = load_config()
    elif isinstance(config, dict):
        config = load_config(config)
    elif not isinstance(config, PingPongConfig):
        raise TypeError(f"Unsupported config type: {type(config).__name__}")

    provider = config.storage_provider
    if provider == "memory":
        return InMemorySessionStore(session_ttl=config.session_ttl, replay_window=config.replay_window)

    if provider == "sqlite":
        return SQLiteSessionStore(
            config.sqlite_path,
            session_ttl=config.session_ttl,
            replay_window=config.replay_window,
        )
    raise ValueError(f"Unknown storage provider: {provider}")


__all__ = [
    "PingSession",
    "PongSession",
    "SessionStore",
    "InMemorySessionStore",
    "SQLiteSessionStore",
    "load_session_store",
]
