# pingpong_core/storage/provider.py
from __future__ import annotations
from typing import Any, Dict, Optional
import time
from pingpong_core.storage.models import PingSession, PongSession


class SessionStore:
    """
    Correlation table with two independent namespaces keyed by ping_id:
    pending pings (receiver side) and pending pongs (initiator side).

    Providers must be safe to call from an inbound-message thread and an
    application thread at the same time. take_ping / take_pong are the
    atomic find-and-consume operations; take_ping also records the id in
    the replay guard inside the same critical section.
    """

    def __init__(self, session_ttl: float = 0, replay_window: float = 0):
        self.session_ttl = session_ttl
        self.replay_window = replay_window

    # ping namespace
    def store_ping(self, session: PingSession) -> None: ...
    def get_ping(self, ping_id: str) -> Optional[PingSession]: ...
    def remove_ping(self, ping_id: str) -> bool: ...
    def take_ping(self, ping_id: str) -> Optional[PingSession]: ...

    # pong namespace
    def store_pong(self, session: PongSession) -> None: ...
    def get_pong(self, ping_id: str) -> Optional[PongSession]: ...
    def remove_pong(self, ping_id: str) -> bool: ...
    def take_pong(self, ping_id: str) -> Optional[PongSession]: ...
    def wait_for_pong_change(self, timeout: float) -> bool: ...

    # replay guard
    def seen_ping(self, ping_id: str) -> bool: ...

    # housekeeping / audit
    def sweep_expired(self) -> int: ...
    def log_event(self, event_type: str, payload: Dict[str, Any]) -> None: ...
    def close(self) -> None: ...

    # shared helpers
    def _session_expired(self, stored_at: float, now: Optional[float] = None) -> bool:
        if not self.session_ttl:
            return False
        return ((now or time.time()) - stored_at) >= self.session_ttl

    def _guard_expired(self, consumed_at: float, now: Optional[float] = None) -> bool:
        if not self.replay_window:
            return False
        return ((now or time.time()) - consumed_at) >= self.replay_window
