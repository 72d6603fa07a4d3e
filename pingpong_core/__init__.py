"""
Ping/Pong Core Package
======================
Asynchronous liveness proof between two peers ("ping/pong"), shared by every
component that needs to know a contact is online before opening a session.

Provides:
- Ed25519 signing and X25519 key agreement utilities
- ChaCha20-Poly1305 envelope for opaque wire blobs
- Ping/Pong tokens with a fixed binary codec
- Session correlation store (memory or SQLite)
- ProtocolEngine tying the pieces together
"""

from .constants import VERSION
from .engine import ProtocolEngine, ExchangeState
from .keys import LocalKeys
from .storage import load_session_store

__version__ = VERSION

__all__ = [
    "ProtocolEngine",
    "ExchangeState",
    "LocalKeys",
    "load_session_store",
    "__version__",
]
