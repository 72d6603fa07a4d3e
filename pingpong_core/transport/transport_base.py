from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Callable, Optional
import time


class TransportError(Exception):
    pass


class TransportPermanentError(TransportError):
    pass


@dataclass
class TransportMessage:
    address: str          # destination peer address (onion host, socket addr, ...)
    payload: bytes        # opaque envelope bytes, delivered byte-exact
    sender: Optional[str] = None
    ts_ms: int = field(default_factory=lambda: int(time.time() * 1000))


Handler = Callable[[TransportMessage], Any]


class BaseTransport:
    """
    Delivery contract the ping/pong engine relies on.

    Payloads are opaque bytes. No retransmission, ordering or reliability is
    promised beyond delivering each blob intact or raising.
    """
    name: str = "base"

    def send(self, address: str, payload: bytes, sender: Optional[str] = None) -> None:
        raise NotImplementedError

    def subscribe(self, address: str, handler: Handler) -> None:
        raise NotImplementedError

    def healthz(self) -> dict:
        return {"status": "ok", "transport": self.name}

    def close(self) -> None:
        return

    @staticmethod
    def to_bytes(payload: Any) -> bytes:
        if isinstance(payload, (bytes, bytearray, memoryview)):
            return bytes(payload)
        raise TransportPermanentError(f"payload must be bytes, got {type(payload).__name__}")
