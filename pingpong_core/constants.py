# pingpong_core/constants.py

VERSION = "0.3.0"

# Ed25519 / X25519
SIGNING_KEY_SIZE = 32
SIGNATURE_SIZE = 64
EXCHANGE_KEY_SIZE = 32

# Token nonce (correlation key, not the AEAD nonce)
TOKEN_NONCE_SIZE = 16

# ChaCha20-Poly1305 envelope
AEAD_KEY_SIZE = 32
AEAD_NONCE_SIZE = 12
AEAD_TAG_SIZE = 16

# Codec kind bytes
PING_KIND = 0x01
PONG_KIND = 0x02

# Protocol defaults
DEFAULT_POLL_INTERVAL = 0.1        # seconds
DEFAULT_PONG_TIMEOUT = 30.0        # seconds
DEFAULT_SESSION_TTL = 600.0        # seconds, 0 disables expiry
DEFAULT_REPLAY_WINDOW = 86400.0    # seconds, 0 keeps guard entries forever
DEFAULT_DB_PATH = "db/pingpong_state.db"
