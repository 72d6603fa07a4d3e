from __future__ import annotations
from typing import Optional, Dict, Any
import sqlite3, os, threading, time
from pingpong_core.codec import encode_ping, decode_ping, encode_pong, decode_pong
from pingpong_core.storage.provider import SessionStore
from pingpong_core.storage.models import PingSession, PongSession


class SQLiteSessionStore(SessionStore):
    """
    Persistent session store. Tokens are kept in their codec encoding so a
    restart does not lose pending pings or uncollected pongs.

    One connection is shared across threads; every statement runs under
    self._cond, which also wakes wait_for_pong_change() callers in this
    process. Several handles may share one file: take_ping / take_pong settle
    races between them on the DELETE row count.
    """

    def __init__(self, path="db/pingpong_state.db", session_ttl: float = 0, replay_window: float = 0):
        super().__init__(session_ttl=session_ttl, replay_window=replay_window)
        # If no directory, default to current working directory
        dir_path = os.path.dirname(path) or "."
        os.makedirs(dir_path, exist_ok=True)
        self.db = sqlite3.connect(path, check_same_thread=False)
        self._cond = threading.Condition()

        self._init()

    def _init(self) -> None:
        c = self.db.cursor()

        c.execute("""CREATE TABLE IF NOT EXISTS ping_sessions(
            ping_id TEXT PRIMARY KEY,
            token BLOB NOT NULL,
            stored_at REAL NOT NULL
        )""")
        c.execute("""CREATE TABLE IF NOT EXISTS pong_sessions(
            ping_id TEXT PRIMARY KEY,
            token BLOB NOT NULL,
            stored_at REAL NOT NULL
        )""")
        c.execute("""CREATE TABLE IF NOT EXISTS replay_guard(
            ping_id TEXT PRIMARY KEY,
            consumed_at REAL NOT NULL
        )""")
        c.execute("""CREATE TABLE IF NOT EXISTS audit(
            ts TEXT,
            event_type TEXT,
            payload TEXT
        )""")

        self.db.commit()

    # --- ping namespace ---

    def store_ping(self, session: PingSession) -> None:
        with self._cond:
            self.db.execute(
                "INSERT INTO ping_sessions(ping_id,token,stored_at) VALUES(?,?,?) "
                "ON CONFLICT(ping_id) DO UPDATE SET token=excluded.token, stored_at=excluded.stored_at",
                (session.ping_id, encode_ping(session.ping_token), session.stored_at)
            )
            self.db.commit()

    def get_ping(self, ping_id: str) -> Optional[PingSession]:
        with self._cond:
            row = self._live_row("ping_sessions", ping_id)
            if not row: return None
            return PingSession(ping_id=ping_id, ping_token=decode_ping(row[0]), stored_at=row[1])

    def remove_ping(self, ping_id: str) -> bool:
        with self._cond:
            cur = self.db.execute("DELETE FROM ping_sessions WHERE ping_id=?", (ping_id,))
            self.db.commit()
            return cur.rowcount > 0

    def take_ping(self, ping_id: str) -> Optional[PingSession]:
        with self._cond:
            row = self._live_row("ping_sessions", ping_id)
            if not row:
                return None
            # Another handle on the same file may have read the row too; only
            # the connection whose DELETE hits it owns the session.
            cur = self.db.execute("DELETE FROM ping_sessions WHERE ping_id=?", (ping_id,))
            if cur.rowcount == 0:
                self.db.rollback()
                return None
            self.db.execute(
                "INSERT OR REPLACE INTO replay_guard(ping_id,consumed_at) VALUES(?,?)",
                (ping_id, time.time())
            )
            self.db.commit()
            return PingSession(ping_id=ping_id, ping_token=decode_ping(row[0]), stored_at=row[1])

    # --- pong namespace ---

    def store_pong(self, session: PongSession) -> None:
        with self._cond:
            self.db.execute(
                "INSERT INTO pong_sessions(ping_id,token,stored_at) VALUES(?,?,?) "
                "ON CONFLICT(ping_id) DO UPDATE SET token=excluded.token, stored_at=excluded.stored_at",
                (session.ping_id, encode_pong(session.pong_token), session.stored_at)
            )
            self.db.commit()
            self._cond.notify_all()

    def get_pong(self, ping_id: str) -> Optional[PongSession]:
        with self._cond:
            row = self._live_row("pong_sessions", ping_id)
            if not row: return None
            return PongSession(ping_id=ping_id, pong_token=decode_pong(row[0]), stored_at=row[1])

    def remove_pong(self, ping_id: str) -> bool:
        with self._cond:
            cur = self.db.execute("DELETE FROM pong_sessions WHERE ping_id=?", (ping_id,))
            self.db.commit()
            return cur.rowcount > 0

    def take_pong(self, ping_id: str) -> Optional[PongSession]:
        with self._cond:
            row = self._live_row("pong_sessions", ping_id)
            if not row:
                return None
            cur = self.db.execute("DELETE FROM pong_sessions WHERE ping_id=?", (ping_id,))
            self.db.commit()
            if cur.rowcount == 0:
                return None
            return PongSession(ping_id=ping_id, pong_token=decode_pong(row[0]), stored_at=row[1])

    def wait_for_pong_change(self, timeout: float) -> bool:
        with self._cond:
            return self._cond.wait(timeout)

    # --- replay guard ---

    def seen_ping(self, ping_id: str) -> bool:
        with self._cond:
            cur = self.db.execute("SELECT consumed_at FROM replay_guard WHERE ping_id=?", (ping_id,))
            row = cur.fetchone()
            if not row:
                return False
            if self._guard_expired(row[0]):
                self.db.execute("DELETE FROM replay_guard WHERE ping_id=?", (ping_id,))
                self.db.commit()
                return False
            return True

    # --- housekeeping / audit ---

    def sweep_expired(self) -> int:
        now = time.time()
        removed = 0
        with self._cond:
            if self.session_ttl:
                cutoff = now - self.session_ttl
                for table in ("ping_sessions", "pong_sessions"):
                    cur = self.db.execute(f"DELETE FROM {table} WHERE stored_at <= ?", (cutoff,))
                    removed += cur.rowcount
            if self.replay_window:
                cur = self.db.execute(
                    "DELETE FROM replay_guard WHERE consumed_at <= ?", (now - self.replay_window,)
                )
                removed += cur.rowcount
            self.db.commit()
        return removed

    def log_event(self, event_type: str, payload: Dict[str, Any]) -> None:
        from pingpong_core.utils import now_ts, canonical_json

        with self._cond:
            self.db.execute("INSERT INTO audit(ts,event_type,payload) VALUES(?,?,?)",
                            (now_ts(), event_type, canonical_json(payload)))
            self.db.commit()

    def close(self):
        with self._cond:
            self.db.close()

    def _live_row(self, table: str, ping_id: str):
        # Caller holds the lock.
        cur = self.db.execute(f"SELECT token, stored_at FROM {table} WHERE ping_id=?", (ping_id,))
        row = cur.fetchone()
        if row and self._session_expired(row[1]):
            self.db.execute(f"DELETE FROM {table} WHERE ping_id=?", (ping_id,))
            self.db.commit()
            return None
        return row
