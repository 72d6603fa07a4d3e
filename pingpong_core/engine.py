"""
pingpong_core.engine
--------------------
ProtocolEngine: the five ping/pong entry points.

Initiator (A)                               Responder (B)
  create_ping  ── ciphertext1 ──────────────▶ accept_ping
                                               (stores pending ping)
  accept_pong  ◀────────────── ciphertext2 ── create_pong
  (stores pending pong)                        (consumes pending ping)
  wait_for_pong
  (consumes pending pong)

Initiator-side exchange states:

    CREATED → SENT → AWAITING_PONG → {PONG_RECEIVED | EXPIRED} → VERIFIED | FAILED

Every envelope key is the raw X25519 secret between our exchange private
key and the peer's exchange public key (see crypto.py).
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, List, NamedTuple, Optional
import threading
import time
from . import crypto
from .config import PingPongConfig, load_config
from .constants import SIGNING_KEY_SIZE
from .errors import (
    DecryptionFailed, InvalidSignature, SessionNotFound, ReplayedToken,
)
from .keys import LocalKeys
from .logger import get_logger
from .storage import SessionStore, PingSession, PongSession, load_session_store
from .tokens import PingToken, PongToken
from .utils import now_unix

log = get_logger("PingPong.Engine")


class ExchangeState(str, Enum):
    CREATED = "created"
    SENT = "sent"
    AWAITING_PONG = "awaiting_pong"
    PONG_RECEIVED = "pong_received"
    EXPIRED = "expired"
    VERIFIED = "verified"
    FAILED = "failed"


TERMINAL_STATES = frozenset({ExchangeState.VERIFIED, ExchangeState.FAILED})
_OPEN_STATES = frozenset({ExchangeState.CREATED, ExchangeState.SENT, ExchangeState.AWAITING_PONG})


@dataclass
class Exchange:
    ping_id: str
    recipient_signing_pub: bytes
    state: ExchangeState = ExchangeState.CREATED
    created_at: float = field(default_factory=time.time)
    updated_at: float = field(default_factory=time.time)
    failure_reason: Optional[str] = None
    history: List[ExchangeState] = field(default_factory=lambda: [ExchangeState.CREATED])

    def move(self, state: ExchangeState, reason: Optional[str] = None) -> None:
        self.state = state
        self.updated_at = time.time()
        self.history.append(state)
        if reason:
            self.failure_reason = reason


class CreatedPing(NamedTuple):
    ciphertext: bytes
    ping_id: str


class AcceptedPing(NamedTuple):
    sender_pubkey: bytes
    ping_id: str
    timestamp: int


class AcceptedPong(NamedTuple):
    responder_pubkey: bytes
    ping_id: str
    timestamp: int
    authenticated: bool


class ProtocolEngine:
    """
    Orchestrates token creation, envelope encryption, verification and
    session bookkeeping for one local identity (or several; keys are passed
    per call).

    The four create/accept calls are synchronous and touch the store once
    each. wait_for_pong blocks the caller for at most `timeout`.
    """

    def __init__(self, store: Optional[SessionStore] = None, config=None):
        if config is None:
            config = load_config()
        elif isinstance(config, dict):
            config = load_config(config)
        self.config: PingPongConfig = config
        self.store = store if store is not None else load_session_store(self.config)
        get_logger("PingPong.Engine", level=self.config.log_level)
        self._exchanges: Dict[str, Exchange] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Initiator: ping out
    # ------------------------------------------------------------------
    def create_ping(
        self,
        local_keys: LocalKeys,
        recipient_signing_pub: bytes,
        recipient_exchange_pub: bytes,
    ) -> CreatedPing:
        crypto.require_len("recipient signing public key", recipient_signing_pub, SIGNING_KEY_SIZE)
        shared = crypto.derive_shared_secret(local_keys.exchange_private, recipient_exchange_pub)

        token = PingToken.new(local_keys.signing_private, recipient_signing_pub)
        ciphertext = crypto.encrypt(token.to_bytes(), shared)

        ping_id = token.ping_id
        with self._lock:
            self._prune_exchanges()
            self._exchanges[ping_id] = Exchange(ping_id=ping_id, recipient_signing_pub=bytes(recipient_signing_pub))

        log.info(f"[PING] created ping_id={ping_id} bytes={len(ciphertext)}")
        return CreatedPing(ciphertext, ping_id)

    def mark_sent(self, ping_id: str) -> None:
        """Record that the transport accepted the ping blob."""
        with self._lock:
            ex = self._exchanges.get(ping_id)
            if ex is None:
                raise SessionNotFound(ping_id)
            if ex.state == ExchangeState.CREATED:
                ex.move(ExchangeState.SENT)
        log.debug(f"[PING] sent ping_id={ping_id}")

    # ------------------------------------------------------------------
    # Responder: ping in, pong out
    # ------------------------------------------------------------------
    def accept_ping(self, ciphertext: bytes, sender_exchange_pub: bytes, local_keys: LocalKeys) -> AcceptedPing:
        shared = crypto.derive_shared_secret(local_keys.exchange_private, sender_exchange_pub)
        token = PingToken.from_bytes(self._open(ciphertext, shared, "PING"))

        if not token.verify():
            self._security_event("invalid_signature", token.ping_id, kind="ping")
            raise InvalidSignature(f"ping {token.ping_id} signature does not verify")

        ping_id = token.ping_id
        if self.store.seen_ping(ping_id):
            self._security_event("replayed_ping", ping_id, reason="already_consumed")
            raise ReplayedToken(f"ping {ping_id} was already answered")

        window = self.config.replay_window
        if window and token.timestamp < now_unix() - window:
            self._security_event("replayed_ping", ping_id, reason="outside_window")
            raise ReplayedToken(f"ping {ping_id} is older than the replay window")

        self.store.store_ping(PingSession(ping_id=ping_id, ping_token=token))
        log.info(f"[PING] accepted ping_id={ping_id} sender={token.sender_pubkey.hex()[:16]}")
        return AcceptedPing(token.sender_pubkey, ping_id, token.timestamp)

    def create_pong(
        self,
        ping_id: str,
        sender_exchange_pub: bytes,
        local_keys: LocalKeys,
        authenticated: bool = True,
    ) -> bytes:
        # Derive first: a bad peer key must not burn the pending ping.
        shared = crypto.derive_shared_secret(local_keys.exchange_private, sender_exchange_pub)

        session = self.store.take_ping(ping_id)
        if session is None:
            log.info(f"[PONG] no pending ping for ping_id={ping_id}")
            raise SessionNotFound(ping_id)

        pong = PongToken.new(session.ping_token, local_keys.signing_private, authenticated)
        ciphertext = crypto.encrypt(pong.to_bytes(), shared)
        log.info(f"[PONG] created ping_id={ping_id} authenticated={pong.authenticated}")
        return ciphertext

    # ------------------------------------------------------------------
    # Initiator: pong in
    # ------------------------------------------------------------------
    def accept_pong(
        self,
        ciphertext: bytes,
        peer_exchange_pub: bytes,
        expected_signer_pub: bytes,
        local_keys: LocalKeys,
    ) -> AcceptedPong:
        crypto.require_len("expected signer public key", expected_signer_pub, SIGNING_KEY_SIZE)
        shared = crypto.derive_shared_secret(local_keys.exchange_private, peer_exchange_pub)
        pong = PongToken.from_bytes(self._open(ciphertext, shared, "PONG"))

        if not pong.verify(expected_signer_pub):
            self._security_event("invalid_signature", pong.ping_id, kind="pong")
            raise InvalidSignature(f"pong for {pong.ping_id} signature does not verify")

        ping_id = pong.ping_id
        with self._lock:
            ex = self._exchanges.get(ping_id)
            correlated = (
                ex is not None
                and ex.state in _OPEN_STATES
                and ex.recipient_signing_pub == bytes(expected_signer_pub)
            )
            if correlated:
                ex.move(ExchangeState.PONG_RECEIVED)
            late = (
                ex is not None
                and ex.state in TERMINAL_STATES
                and ex.recipient_signing_pub == bytes(expected_signer_pub)
            )
        if late:
            # Our side already gave up (timeout) or collected a pong.
            log.info(f"[PONG] late pong ping_id={ping_id} state={ex.state.value}")
            self.store.log_event("late_pong", {"ping_id": ping_id, "state": ex.state.value})
            raise SessionNotFound(ping_id)
        if not correlated:
            self._security_event("uncorrelated_pong", ping_id)
            raise SessionNotFound(ping_id)

        self.store.store_pong(PongSession(ping_id=ping_id, pong_token=pong))
        log.info(f"[PONG] accepted ping_id={ping_id} authenticated={pong.authenticated}")
        return AcceptedPong(bytes(expected_signer_pub), ping_id, pong.timestamp, pong.authenticated)

    def wait_for_pong(self, ping_id: str, timeout: Optional[float] = None) -> Optional[PongSession]:
        """
        Block until a pong for ping_id is available, then consume it.

        Returns the PongSession, or None once `timeout` seconds pass without
        one. A timeout is an ordinary outcome, not an error. The store is
        re-checked at least every `poll_interval` and immediately whenever
        a pong is stored.
        """
        if timeout is None:
            timeout = self.config.pong_timeout
        interval = self.config.poll_interval

        with self._lock:
            ex = self._exchanges.get(ping_id)
            if ex is not None and ex.state in (ExchangeState.CREATED, ExchangeState.SENT):
                ex.move(ExchangeState.AWAITING_PONG)

        deadline = time.monotonic() + timeout
        while True:
            session = self.store.take_pong(ping_id)
            if session is not None:
                self._finish(ping_id, session.authenticated)
                return session
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                self._expire(ping_id)
                log.info(f"[PONG] timed out ping_id={ping_id} after {timeout}s")
                return None
            self.store.wait_for_pong_change(min(interval, remaining))

    # ------------------------------------------------------------------
    # Introspection / housekeeping
    # ------------------------------------------------------------------
    def exchange(self, ping_id: str) -> Optional[Exchange]:
        with self._lock:
            ex = self._exchanges.get(ping_id)
            return replace(ex, history=list(ex.history)) if ex else None

    def sweep(self) -> int:
        """
        Drop expired store entries and terminal exchanges idle longer than
        session_ttl. Open exchanges idle that long are failed as "expired"
        and dropped on a later pass. create_ping runs the exchange half of
        this on its own, so the table stays bounded without explicit sweeps.
        """
        removed = self.store.sweep_expired()
        with self._lock:
            removed += self._prune_exchanges()
        if removed:
            log.debug(f"[SWEEP] removed={removed}")
        return removed

    # ------------------------------------------------------------------
    # internals
    # ------------------------------------------------------------------
    def _open(self, ciphertext: bytes, shared: bytes, kind: str) -> bytes:
        try:
            return crypto.decrypt(ciphertext, shared)
        except DecryptionFailed:
            log.info(f"[{kind}] envelope rejected bytes={len(ciphertext)}")
            raise

    def _finish(self, ping_id: str, authenticated: bool) -> None:
        with self._lock:
            ex = self._exchanges.get(ping_id)
            if ex is not None and ex.state not in TERMINAL_STATES:
                if authenticated:
                    ex.move(ExchangeState.VERIFIED)
                else:
                    ex.move(ExchangeState.FAILED, reason="not_authenticated")
        log.info(f"[PONG] collected ping_id={ping_id} authenticated={authenticated}")

    def _expire(self, ping_id: str) -> None:
        with self._lock:
            ex = self._exchanges.get(ping_id)
            if ex is not None and ex.state not in TERMINAL_STATES:
                ex.move(ExchangeState.EXPIRED)
                ex.move(ExchangeState.FAILED, reason="expired")

    def _prune_exchanges(self) -> int:
        # Caller holds self._lock.
        ttl = self.config.session_ttl
        if not ttl:
            return 0
        cutoff = time.time() - ttl
        stale = []
        for pid, ex in self._exchanges.items():
            if ex.updated_at > cutoff:
                continue
            if ex.state in TERMINAL_STATES:
                stale.append(pid)
            else:
                ex.move(ExchangeState.EXPIRED)
                ex.move(ExchangeState.FAILED, reason="expired")
        for pid in stale:
            del self._exchanges[pid]
        return len(stale)

    def _security_event(self, event_type: str, ping_id: str, **details) -> None:
        payload = {"ping_id": ping_id, **details}
        log.warning(f"[SECURITY] {event_type} {payload}")
        self.store.log_event(event_type, payload)


__all__ = [
    "ProtocolEngine",
    "ExchangeState",
    "Exchange",
    "CreatedPing",
    "AcceptedPing",
    "AcceptedPong",
    "TERMINAL_STATES",
]
