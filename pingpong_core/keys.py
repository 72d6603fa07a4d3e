"""
pingpong_core.keys
------------------
Local key material and the key-storage collaborator.

Platform key storage (Android KeyStore, HSM, a secrets manager, ...) lives
outside this package. All the engine needs from it is raw 32-byte private
keys on demand; KeyProvider is that seam. Public halves are derived here so
a provider never has to keep them in sync.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, Optional
import os
from . import crypto
from .constants import SIGNING_KEY_SIZE, EXCHANGE_KEY_SIZE
from .errors import InvalidKeyLength, KeyUnavailable
from .utils import from_hex


@dataclass(frozen=True)
class LocalKeys:
    signing_private: bytes = field(repr=False)
    signing_public: bytes
    exchange_private: bytes = field(repr=False)
    exchange_public: bytes

    def __post_init__(self):
        for name, size in (
            ("signing_private", SIGNING_KEY_SIZE),
            ("signing_public", SIGNING_KEY_SIZE),
            ("exchange_private", EXCHANGE_KEY_SIZE),
            ("exchange_public", EXCHANGE_KEY_SIZE),
        ):
            value = getattr(self, name)
            if not isinstance(value, (bytes, bytearray)) or len(value) != size:
                raise InvalidKeyLength(f"{name} must be {size} bytes")

    @classmethod
    def generate(cls) -> "LocalKeys":
        sig_pub, sig_priv = crypto.generate_signing_keypair()
        kx_pub, kx_priv = crypto.generate_static_keypair()
        return cls(
            signing_private=sig_priv,
            signing_public=sig_pub,
            exchange_private=kx_priv,
            exchange_public=kx_pub,
        )

    @classmethod
    def from_private_keys(cls, signing_private: bytes, exchange_private: bytes) -> "LocalKeys":
        return cls(
            signing_private=bytes(signing_private),
            signing_public=crypto.derive_signing_public_key(signing_private),
            exchange_private=bytes(exchange_private),
            exchange_public=crypto.derive_public_key(exchange_private),
        )


class KeyProvider:
    # Interface
    def get_signing_private_key(self) -> bytes: ...
    def get_exchange_private_key(self) -> bytes: ...


class InMemoryKeyProvider(KeyProvider):
    def __init__(self, signing_private: Optional[bytes] = None, exchange_private: Optional[bytes] = None):
        self.keys: Dict[str, Optional[bytes]] = {
            "signing": signing_private,
            "exchange": exchange_private,
        }

    def get_signing_private_key(self) -> bytes:
        return self._get("signing")

    def get_exchange_private_key(self) -> bytes:
        return self._get("exchange")

    def _get(self, slot: str) -> bytes:
        key = self.keys.get(slot)
        if key is None:
            raise KeyUnavailable(f"{slot} private key not provisioned")
        return key


class EnvKeyProvider(KeyProvider):
    """Hex-encoded private keys from PINGPONG_SIGNING_KEY / PINGPONG_EXCHANGE_KEY."""

    def __init__(self, signing_var: str = "PINGPONG_SIGNING_KEY", exchange_var: str = "PINGPONG_EXCHANGE_KEY"):
        self.signing_var = signing_var
        self.exchange_var = exchange_var

    def get_signing_private_key(self) -> bytes:
        return self._read(self.signing_var)

    def get_exchange_private_key(self) -> bytes:
        return self._read(self.exchange_var)

    @staticmethod
    def _read(var: str) -> bytes:
        raw = os.getenv(var)
        if not raw:
            raise KeyUnavailable(f"{var} is not set")
        try:
            return from_hex(raw)
        except ValueError:
            raise KeyUnavailable(f"{var} is not valid hex") from None


def load_local_keys(provider: KeyProvider) -> LocalKeys:
    """Pull private keys from the provider and derive their public halves."""
    return LocalKeys.from_private_keys(
        provider.get_signing_private_key(),
        provider.get_exchange_private_key(),
    )
