"""
pingpong_core.tokens
--------------------
Ping and Pong tokens: the signed, time-stamped liveness challenge and its
response.

Trust model (read before touching verify):

- PingToken.verify() checks the signature against the sender_pubkey that is
  *embedded in the token itself*. That only proves the token is internally
  consistent; anyone can mint a self-consistent ping. Sender authenticity
  comes from the envelope: only the holder of the matching X25519 private
  key could have produced a ciphertext we can open with our ECDH secret.
  Never treat PingToken.verify() alone as proof of who sent it.

- PongToken.verify(expected_signer) checks against a key the *caller*
  supplies, because the initiator already knows who should be answering.

The asymmetry is deliberate. Do not "fix" it by symmetry.
"""

from __future__ import annotations
from dataclasses import dataclass
import os
import struct
from . import crypto
from .constants import TOKEN_NONCE_SIZE
from .utils import now_unix, to_hex

_TS = struct.Struct(">Q")


def ping_signing_bytes(nonce: bytes, sender_pubkey: bytes, timestamp: int, recipient_pubkey: bytes) -> bytes:
    return bytes(nonce) + bytes(sender_pubkey) + _TS.pack(timestamp) + bytes(recipient_pubkey)


def pong_signing_bytes(ping_nonce: bytes, authenticated: bool, timestamp: int) -> bytes:
    return bytes(ping_nonce) + (b"\x01" if authenticated else b"\x00") + _TS.pack(timestamp)


@dataclass(frozen=True)
class PingToken:
    nonce: bytes
    sender_pubkey: bytes
    recipient_pubkey: bytes
    timestamp: int
    signature: bytes

    @classmethod
    def new(cls, sender_private_key: bytes, recipient_pubkey: bytes) -> "PingToken":
        """Mint a fresh ping addressed to recipient_pubkey (Ed25519)."""
        sender_pubkey = crypto.derive_signing_public_key(sender_private_key)
        nonce = os.urandom(TOKEN_NONCE_SIZE)
        ts = now_unix()
        sig = crypto.sign(ping_signing_bytes(nonce, sender_pubkey, ts, recipient_pubkey), sender_private_key)
        return cls(
            nonce=nonce,
            sender_pubkey=sender_pubkey,
            recipient_pubkey=bytes(recipient_pubkey),
            timestamp=ts,
            signature=sig,
        )

    @property
    def ping_id(self) -> str:
        return to_hex(self.nonce)

    def to_signing_bytes(self) -> bytes:
        return ping_signing_bytes(self.nonce, self.sender_pubkey, self.timestamp, self.recipient_pubkey)

    def verify(self) -> bool:
        # Self-consistency only, see module docstring.
        return crypto.verify(self.to_signing_bytes(), self.signature, self.sender_pubkey)

    def to_bytes(self) -> bytes:
        from .codec import encode_ping
        return encode_ping(self)

    @classmethod
    def from_bytes(cls, data: bytes) -> "PingToken":
        from .codec import decode_ping
        return decode_ping(data)


@dataclass(frozen=True)
class PongToken:
    ping_nonce: bytes
    authenticated: bool
    timestamp: int
    signature: bytes

    @classmethod
    def new(cls, ping: PingToken, responder_private_key: bytes, authenticated: bool = True) -> "PongToken":
        ts = now_unix()
        sig = crypto.sign(pong_signing_bytes(ping.nonce, authenticated, ts), responder_private_key)
        return cls(
            ping_nonce=bytes(ping.nonce),
            authenticated=bool(authenticated),
            timestamp=ts,
            signature=sig,
        )

    @property
    def ping_id(self) -> str:
        return to_hex(self.ping_nonce)

    def to_signing_bytes(self) -> bytes:
        return pong_signing_bytes(self.ping_nonce, self.authenticated, self.timestamp)

    def verify(self, expected_signer_pubkey: bytes) -> bool:
        return crypto.verify(self.to_signing_bytes(), self.signature, expected_signer_pubkey)

    def to_bytes(self) -> bytes:
        from .codec import encode_pong
        return encode_pong(self)

    @classmethod
    def from_bytes(cls, data: bytes) -> "PongToken":
        from .codec import decode_pong
        return decode_pong(data)
