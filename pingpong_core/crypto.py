from __future__ import annotations
from typing import Tuple
from cryptography.exceptions import InvalidSignature as _CryptoInvalidSignature, InvalidTag
from cryptography.hazmat.primitives.asymmetric import ed25519, x25519
from cryptography.hazmat.primitives.ciphers.aead import ChaCha20Poly1305
import os
from .constants import (
    SIGNING_KEY_SIZE, SIGNATURE_SIZE, EXCHANGE_KEY_SIZE,
    AEAD_KEY_SIZE, AEAD_NONCE_SIZE, AEAD_TAG_SIZE,
)
from .errors import InvalidKeyLength, DecryptionFailed

"""
pingpong_core.crypto
--------------------
Cryptographic building blocks for the ping/pong protocol:

- Ed25519: token signatures (Identity)
- X25519: static key agreement (KeyExchange)
- ChaCha20-Poly1305: self-contained envelope, nonce ‖ ciphertext ‖ tag

Key pairs are returned as (public, private) raw 32-byte strings.

NOTE: the envelope key is the raw X25519 output with no KDF step. This
matches the deployed wire format; introducing HKDF is a breaking change
for peers and has to be negotiated, not slipped in here.
"""


def require_len(name: str, value: bytes, size: int) -> None:
    if not isinstance(value, (bytes, bytearray)) or len(value) != size:
        got = len(value) if isinstance(value, (bytes, bytearray)) else type(value).__name__
        raise InvalidKeyLength(f"{name} must be {size} bytes (got {got})")


# --------- Ed25519 (sign/verify) ----------
def generate_signing_keypair() -> Tuple[bytes, bytes]:
    sk = ed25519.Ed25519PrivateKey.generate()
    return sk.public_key().public_bytes_raw(), sk.private_bytes_raw()


def derive_signing_public_key(priv_raw: bytes) -> bytes:
    require_len("signing private key", priv_raw, SIGNING_KEY_SIZE)
    sk = ed25519.Ed25519PrivateKey.from_private_bytes(bytes(priv_raw))
    return sk.public_key().public_bytes_raw()


def sign(data: bytes, priv_raw: bytes) -> bytes:
    require_len("signing private key", priv_raw, SIGNING_KEY_SIZE)
    sk = ed25519.Ed25519PrivateKey.from_private_bytes(bytes(priv_raw))
    return sk.sign(data)


def verify(data: bytes, sig: bytes, pub_raw: bytes) -> bool:
    """
    Check an Ed25519 signature. A bad signature (or a 32-byte string that
    is not a curve point) is a normal False; only wrong sizes raise.
    """
    require_len("signing public key", pub_raw, SIGNING_KEY_SIZE)
    require_len("signature", sig, SIGNATURE_SIZE)
    try:
        pk = ed25519.Ed25519PublicKey.from_public_bytes(bytes(pub_raw))
        pk.verify(bytes(sig), data)
        return True
    except (_CryptoInvalidSignature, ValueError):
        return False


# --------- X25519 (key exchange) ----------
def generate_static_keypair() -> Tuple[bytes, bytes]:
    sk = x25519.X25519PrivateKey.generate()
    return sk.public_key().public_bytes_raw(), sk.private_bytes_raw()


def derive_public_key(priv_raw: bytes) -> bytes:
    require_len("exchange private key", priv_raw, EXCHANGE_KEY_SIZE)
    sk = x25519.X25519PrivateKey.from_private_bytes(bytes(priv_raw))
    return sk.public_key().public_bytes_raw()


def derive_shared_secret(our_priv: bytes, their_pub: bytes) -> bytes:
    require_len("exchange private key", our_priv, EXCHANGE_KEY_SIZE)
    require_len("exchange public key", their_pub, EXCHANGE_KEY_SIZE)
    sk = x25519.X25519PrivateKey.from_private_bytes(bytes(our_priv))
    try:
        return sk.exchange(x25519.X25519PublicKey.from_public_bytes(bytes(their_pub)))
    except ValueError as e:
        # low-order point, all-zero shared secret
        raise InvalidKeyLength(f"degenerate exchange public key: {e}") from e


# --------- ChaCha20-Poly1305 envelope ----------
def encrypt(plaintext: bytes, key: bytes) -> bytes:
    require_len("envelope key", key, AEAD_KEY_SIZE)
    nonce = os.urandom(AEAD_NONCE_SIZE)
    return nonce + ChaCha20Poly1305(bytes(key)).encrypt(nonce, plaintext, None)


def decrypt(ciphertext: bytes, key: bytes) -> bytes:
    require_len("envelope key", key, AEAD_KEY_SIZE)
    if len(ciphertext) < AEAD_NONCE_SIZE + AEAD_TAG_SIZE:
        raise DecryptionFailed("decryption failed")
    nonce, body = ciphertext[:AEAD_NONCE_SIZE], ciphertext[AEAD_NONCE_SIZE:]
    try:
        return ChaCha20Poly1305(bytes(key)).decrypt(bytes(nonce), bytes(body), None)
    except InvalidTag:
        raise DecryptionFailed("decryption failed") from None
