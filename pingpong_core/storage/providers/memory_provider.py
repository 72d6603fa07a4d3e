import threading
import time
from typing import Optional, Dict, Any
from pingpong_core.storage.models import PingSession, PongSession
from pingpong_core.storage.provider import SessionStore


class InMemorySessionStore(SessionStore):
    def __init__(self, session_ttl: float = 0, replay_window: float = 0):
        super().__init__(session_ttl=session_ttl, replay_window=replay_window)
        self.pings: Dict[str, PingSession] = {}
        self.pongs: Dict[str, PongSession] = {}
        self.replay: Dict[str, float] = {}  # ping_id -> consumed_at
        self.audit = []
        self._cond = threading.Condition()

    # ping namespace
    def store_ping(self, session: PingSession):
        with self._cond:
            self.pings[session.ping_id] = session

    def get_ping(self, ping_id: str) -> Optional[PingSession]:
        with self._cond:
            return self._live(self.pings, ping_id)

    def remove_ping(self, ping_id: str) -> bool:
        with self._cond:
            return self.pings.pop(ping_id, None) is not None

    def take_ping(self, ping_id: str) -> Optional[PingSession]:
        with self._cond:
            session = self._live(self.pings, ping_id)
            if session is None:
                return None
            del self.pings[ping_id]
            self.replay[ping_id] = time.time()
            return session

    # pong namespace
    def store_pong(self, session: PongSession):
        with self._cond:
            self.pongs[session.ping_id] = session
            self._cond.notify_all()

    def get_pong(self, ping_id: str) -> Optional[PongSession]:
        with self._cond:
            return self._live(self.pongs, ping_id)

    def remove_pong(self, ping_id: str) -> bool:
        with self._cond:
            return self.pongs.pop(ping_id, None) is not None

    def take_pong(self, ping_id: str) -> Optional[PongSession]:
        with self._cond:
            session = self._live(self.pongs, ping_id)
            if session is not None:
                del self.pongs[ping_id]
            return session

    def wait_for_pong_change(self, timeout: float) -> bool:
        with self._cond:
            return self._cond.wait(timeout)

    # replay guard
    def seen_ping(self, ping_id: str) -> bool:
        with self._cond:
            consumed_at = self.replay.get(ping_id)
            if consumed_at is None:
                return False
            if self._guard_expired(consumed_at):
                del self.replay[ping_id]
                return False
            return True

    # housekeeping
    def sweep_expired(self) -> int:
        now = time.time()
        removed = 0
        with self._cond:
            for table in (self.pings, self.pongs):
                for ping_id in [k for k, s in table.items() if self._session_expired(s.stored_at, now)]:
                    del table[ping_id]
                    removed += 1
            for ping_id in [k for k, ts in self.replay.items() if self._guard_expired(ts, now)]:
                del self.replay[ping_id]
                removed += 1
        return removed

    # audit
    def log_event(self, event_type: str, payload: Dict[str, Any]):
        with self._cond:
            self.audit.append((event_type, payload))

    def close(self):
        return

    def _live(self, table, ping_id):
        # Caller holds the lock. Expired entries are dropped on sight.
        session = table.get(ping_id)
        if session is not None and self._session_expired(session.stored_at):
            del table[ping_id]
            return None
        return session
