# pingpong_core/transport/transport_local.py
import threading
from typing import Dict, List, Optional
from pingpong_core.logger import get_logger
from pingpong_core.transport.transport_base import (
    BaseTransport, Handler, TransportMessage, TransportPermanentError,
)

log = get_logger("PingPong.Transport.Local")


class LocalAdapter(BaseTransport):
    """
    In-process loopback: send() hands the blob straight to every handler
    subscribed to the address, on the caller's thread.

    Used by tests and demos in place of a hidden-service circuit or socket.
    """
    name = "local"

    def __init__(self):
        self.handlers: Dict[str, List[Handler]] = {}
        self._lock = threading.Lock()

    def subscribe(self, address: str, handler: Handler) -> None:
        with self._lock:
            self.handlers.setdefault(address, []).append(handler)
        log.info(f"[LOCAL SUB] address={address}")

    def send(self, address: str, payload: bytes, sender: Optional[str] = None) -> None:
        data = self.to_bytes(payload)
        with self._lock:
            targets = list(self.handlers.get(address, []))
        if not targets:
            raise TransportPermanentError(f"no peer listening on {address}")

        log.info(f"[LOCAL PUB] address={address} bytes={len(data)}")
        msg = TransportMessage(address=address, payload=data, sender=sender)
        for handler in targets:
            handler(msg)

    def close(self) -> None:
        with self._lock:
            self.handlers.clear()
