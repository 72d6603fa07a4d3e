from __future__ import annotations


class PingPongError(Exception):
    pass


class InvalidKeyLength(PingPongError, ValueError):
    """Key or signature material has the wrong size (or is otherwise unusable)."""


class MalformedToken(PingPongError):
    pass


class DecryptionFailed(PingPongError):
    """
    Envelope could not be opened.

    Tag mismatch and truncated input both land here on purpose; callers
    must not be able to tell them apart.
    """


class InvalidSignature(PingPongError):
    """Envelope decrypted fine but the token signature does not check out."""


class SessionNotFound(PingPongError):
    """No live session for this ping_id (never arrived, consumed, or expired)."""


class ReplayedToken(PingPongError):
    pass


class KeyUnavailable(PingPongError):
    pass
