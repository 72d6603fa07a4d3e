"""
pingpong_core.codec
-------------------
Fixed binary layout for Ping and Pong tokens. Integers are big-endian.

Ping (153 bytes):
    kind=0x01 (1) | nonce (16) | sender_pubkey (32) | recipient_pubkey (32)
    | timestamp u64 (8) | signature (64)

Pong (90 bytes):
    kind=0x02 (1) | ping_nonce (16) | authenticated u8 0/1 (1)
    | timestamp u64 (8) | signature (64)

The same field order (minus kind and signature) is what gets signed; see
tokens.ping_signing_bytes / tokens.pong_signing_bytes.
"""

from __future__ import annotations
import struct
from .constants import (
    PING_KIND, PONG_KIND, TOKEN_NONCE_SIZE, SIGNING_KEY_SIZE, SIGNATURE_SIZE,
)
from .errors import MalformedToken
from .tokens import PingToken, PongToken

PING_STRUCT = struct.Struct(f">B{TOKEN_NONCE_SIZE}s{SIGNING_KEY_SIZE}s{SIGNING_KEY_SIZE}sQ{SIGNATURE_SIZE}s")
PONG_STRUCT = struct.Struct(f">B{TOKEN_NONCE_SIZE}sBQ{SIGNATURE_SIZE}s")

PING_SIZE = PING_STRUCT.size
PONG_SIZE = PONG_STRUCT.size

_U64_MAX = 2 ** 64 - 1


def _check_field(name: str, value: bytes, size: int) -> None:
    if not isinstance(value, (bytes, bytearray)) or len(value) != size:
        raise MalformedToken(f"{name} must be {size} bytes")


def _check_timestamp(ts: int) -> None:
    if not isinstance(ts, int) or isinstance(ts, bool) or not 0 <= ts <= _U64_MAX:
        raise MalformedToken(f"timestamp out of range: {ts!r}")


def encode_ping(token: PingToken) -> bytes:
    _check_field("nonce", token.nonce, TOKEN_NONCE_SIZE)
    _check_field("sender_pubkey", token.sender_pubkey, SIGNING_KEY_SIZE)
    _check_field("recipient_pubkey", token.recipient_pubkey, SIGNING_KEY_SIZE)
    _check_field("signature", token.signature, SIGNATURE_SIZE)
    _check_timestamp(token.timestamp)
    return PING_STRUCT.pack(
        PING_KIND,
        bytes(token.nonce),
        bytes(token.sender_pubkey),
        bytes(token.recipient_pubkey),
        token.timestamp,
        bytes(token.signature),
    )


def decode_ping(data: bytes) -> PingToken:
    if len(data) != PING_SIZE:
        raise MalformedToken(f"ping token must be {PING_SIZE} bytes (got {len(data)})")
    kind, nonce, sender, recipient, ts, sig = PING_STRUCT.unpack(data)
    if kind != PING_KIND:
        raise MalformedToken(f"unexpected token kind 0x{kind:02x}")
    return PingToken(
        nonce=nonce,
        sender_pubkey=sender,
        recipient_pubkey=recipient,
        timestamp=ts,
        signature=sig,
    )


def encode_pong(token: PongToken) -> bytes:
    _check_field("ping_nonce", token.ping_nonce, TOKEN_NONCE_SIZE)
    _check_field("signature", token.signature, SIGNATURE_SIZE)
    _check_timestamp(token.timestamp)
    if not isinstance(token.authenticated, bool):
        raise MalformedToken("authenticated must be a bool")
    return PONG_STRUCT.pack(
        PONG_KIND,
        bytes(token.ping_nonce),
        1 if token.authenticated else 0,
        token.timestamp,
        bytes(token.signature),
    )


def decode_pong(data: bytes) -> PongToken:
    if len(data) != PONG_SIZE:
        raise MalformedToken(f"pong token must be {PONG_SIZE} bytes (got {len(data)})")
    kind, ping_nonce, auth, ts, sig = PONG_STRUCT.unpack(data)
    if kind != PONG_KIND:
        raise MalformedToken(f"unexpected token kind 0x{kind:02x}")
    if auth not in (0, 1):
        raise MalformedToken(f"authenticated flag out of range: {auth}")
    return PongToken(
        ping_nonce=ping_nonce,
        authenticated=bool(auth),
        timestamp=ts,
        signature=sig,
    )
