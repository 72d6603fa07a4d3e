# pingpong_core/transport/__init__.py
import os
from pingpong_core.transport.transport_base import (
    BaseTransport, TransportMessage, TransportError,
    TransportPermanentError,
)
from pingpong_core.transport.transport_local import LocalAdapter


def transport_factory(mode: str = None) -> BaseTransport:
    """
    Resolve the blob transport. Only the in-process loopback ships with the
    core; real circuits are provided by the host application.
    """
    mode = (mode or os.getenv("PINGPONG_TRANSPORT", "local")).lower()

    if mode == "local":
        return LocalAdapter()

    raise ValueError(f"Unknown transport: {mode}")


__all__ = [
    "BaseTransport",
    "TransportMessage",
    "TransportError",
    "TransportPermanentError",
    "LocalAdapter",
    "transport_factory",
]
