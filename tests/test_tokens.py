from dataclasses import replace

import pytest
from pingpong_core.codec import encode_ping, decode_ping, encode_pong, decode_pong, PING_SIZE, PONG_SIZE
from pingpong_core.crypto import generate_signing_keypair
from pingpong_core.errors import MalformedToken
from pingpong_core.tokens import PingToken, PongToken


def _flip(b: bytes, i: int = 0) -> bytes:
    out = bytearray(b)
    out[i] ^= 0x01
    return bytes(out)


@pytest.fixture
def keys():
    sender_pub, sender_priv = generate_signing_keypair()
    recipient_pub, recipient_priv = generate_signing_keypair()
    return sender_pub, sender_priv, recipient_pub, recipient_priv


def test_ping_roundtrip(keys):
    sender_pub, sender_priv, recipient_pub, _ = keys
    ping = PingToken.new(sender_priv, recipient_pub)

    data = encode_ping(ping)
    assert len(data) == PING_SIZE == 153
    assert decode_ping(data) == ping
    assert PingToken.from_bytes(ping.to_bytes()) == ping

    assert ping.sender_pubkey == sender_pub
    assert ping.recipient_pubkey == recipient_pub
    assert ping.ping_id == ping.nonce.hex()
    assert len(ping.ping_id) == 32 and ping.ping_id == ping.ping_id.lower()


def test_ping_nonces_are_unique(keys):
    _, sender_priv, recipient_pub, _ = keys
    ids = {PingToken.new(sender_priv, recipient_pub).ping_id for _ in range(200)}
    assert len(ids) == 200


def test_ping_verify_detects_field_mutation(keys):
    _, sender_priv, recipient_pub, _ = keys
    ping = PingToken.new(sender_priv, recipient_pub)
    assert ping.verify()

    assert not replace(ping, nonce=_flip(ping.nonce)).verify()
    assert not replace(ping, sender_pubkey=_flip(ping.sender_pubkey)).verify()
    assert not replace(ping, recipient_pubkey=_flip(ping.recipient_pubkey)).verify()
    assert not replace(ping, timestamp=ping.timestamp + 1).verify()
    assert not replace(ping, signature=_flip(ping.signature)).verify()


def test_ping_verify_detects_any_encoded_byte_flip(keys):
    _, sender_priv, recipient_pub, _ = keys
    data = PingToken.new(sender_priv, recipient_pub).to_bytes()
    # byte 0 is the kind tag, covered by the decode tests
    for i in range(1, len(data)):
        assert not decode_ping(_flip(data, i)).verify(), f"byte {i}"


def test_ping_verify_is_self_consistency_only(keys):
    # A ping minted by anyone verifies against its own embedded key.
    _, _, recipient_pub, _ = keys
    _, stranger_priv = generate_signing_keypair()
    assert PingToken.new(stranger_priv, recipient_pub).verify()


def test_pong_roundtrip_and_verify(keys):
    _, sender_priv, recipient_pub, recipient_priv = keys
    ping = PingToken.new(sender_priv, recipient_pub)

    pong = PongToken.new(ping, recipient_priv, authenticated=True)
    data = encode_pong(pong)
    assert len(data) == PONG_SIZE == 90
    assert decode_pong(data) == pong
    assert pong.ping_nonce == ping.nonce
    assert pong.ping_id == ping.ping_id

    assert pong.verify(recipient_pub)
    other_pub, _ = generate_signing_keypair()
    assert not pong.verify(other_pub)
    assert not replace(pong, authenticated=False).verify(recipient_pub)
    assert not replace(pong, ping_nonce=_flip(pong.ping_nonce)).verify(recipient_pub)


def test_pong_not_authenticated_roundtrip(keys):
    _, sender_priv, recipient_pub, recipient_priv = keys
    pong = PongToken.new(PingToken.new(sender_priv, recipient_pub), recipient_priv, authenticated=False)
    decoded = PongToken.from_bytes(pong.to_bytes())
    assert decoded.authenticated is False
    assert decoded.verify(recipient_pub)


def test_decode_rejects_short_long_and_wrong_kind(keys):
    _, sender_priv, recipient_pub, recipient_priv = keys
    ping = PingToken.new(sender_priv, recipient_pub)
    pong = PongToken.new(ping, recipient_priv)
    ping_bytes, pong_bytes = ping.to_bytes(), pong.to_bytes()

    with pytest.raises(MalformedToken):
        decode_ping(ping_bytes[:-1])
    with pytest.raises(MalformedToken):
        decode_ping(ping_bytes + b"\x00")
    with pytest.raises(MalformedToken):
        decode_ping(b"")
    with pytest.raises(MalformedToken):
        decode_ping(b"\x02" + ping_bytes[1:])
    with pytest.raises(MalformedToken):
        decode_pong(pong_bytes[:10])
    with pytest.raises(MalformedToken):
        decode_pong(b"\x01" + pong_bytes[1:])


def test_decode_pong_rejects_out_of_range_flag(keys):
    _, sender_priv, recipient_pub, recipient_priv = keys
    data = bytearray(PongToken.new(PingToken.new(sender_priv, recipient_pub), recipient_priv).to_bytes())
    data[17] = 2  # kind(1) + ping_nonce(16)
    with pytest.raises(MalformedToken):
        decode_pong(bytes(data))


def test_encode_rejects_out_of_range_fields(keys):
    _, sender_priv, recipient_pub, recipient_priv = keys
    ping = PingToken.new(sender_priv, recipient_pub)
    with pytest.raises(MalformedToken):
        encode_ping(replace(ping, timestamp=-1))
    with pytest.raises(MalformedToken):
        encode_ping(replace(ping, timestamp=2 ** 64))
    with pytest.raises(MalformedToken):
        encode_ping(replace(ping, nonce=b"short"))
    pong = PongToken.new(ping, recipient_priv)
    with pytest.raises(MalformedToken):
        encode_pong(replace(pong, signature=b"\x00" * 10))
