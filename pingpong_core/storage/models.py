# pingpong_core/storage/models.py
from __future__ import annotations
from dataclasses import dataclass, field
import time
from pingpong_core.tokens import PingToken, PongToken


@dataclass
class PingSession:
    """
    Receiver-side entry: a verified ping waiting for the application to
    decide whether to answer it.
    """
    ping_id: str
    ping_token: PingToken
    stored_at: float = field(default_factory=time.time)


@dataclass
class PongSession:
    """Initiator-side entry: a verified pong waiting to be collected."""
    ping_id: str
    pong_token: PongToken
    stored_at: float = field(default_factory=time.time)

    @property
    def authenticated(self) -> bool:
        return self.pong_token.authenticated
