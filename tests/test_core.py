import pytest
from pingpong_core.crypto import (
    generate_signing_keypair, derive_signing_public_key, sign, verify,
    generate_static_keypair, derive_public_key, derive_shared_secret,
    encrypt, decrypt,
)
from pingpong_core.errors import InvalidKeyLength, DecryptionFailed


def test_sign_verify():
    pub, priv = generate_signing_keypair()
    assert len(pub) == 32 and len(priv) == 32
    sig = sign(b"fused.track", priv)
    assert len(sig) == 64
    assert verify(b"fused.track", sig, pub)
    assert not verify(b"fused.trace", sig, pub)


def test_verify_with_other_key_is_false():
    _, priv = generate_signing_keypair()
    other_pub, _ = generate_signing_keypair()
    assert verify(b"data", sign(b"data", priv), other_pub) is False


def test_derive_signing_public_key():
    pub, priv = generate_signing_keypair()
    assert derive_signing_public_key(priv) == pub


def test_signing_rejects_bad_lengths():
    pub, priv = generate_signing_keypair()
    with pytest.raises(InvalidKeyLength):
        sign(b"x", priv[:31])
    with pytest.raises(InvalidKeyLength):
        verify(b"x", b"\x00" * 63, pub)
    with pytest.raises(InvalidKeyLength):
        verify(b"x", b"\x00" * 64, pub + b"\x00")


def test_shared_secret_agrees():
    a_pub, a_priv = generate_static_keypair()
    b_pub, b_priv = generate_static_keypair()
    assert derive_public_key(a_priv) == a_pub
    s1 = derive_shared_secret(a_priv, b_pub)
    s2 = derive_shared_secret(b_priv, a_pub)
    assert s1 == s2
    assert len(s1) == 32


def test_shared_secret_rejects_malformed_keys():
    a_pub, a_priv = generate_static_keypair()
    with pytest.raises(InvalidKeyLength):
        derive_shared_secret(a_priv, a_pub[:16])
    with pytest.raises(InvalidKeyLength):
        derive_shared_secret(b"\x01" * 33, a_pub)
    # all-zero point yields an all-zero secret
    with pytest.raises(InvalidKeyLength):
        derive_shared_secret(a_priv, b"\x00" * 32)


def test_encrypt_decrypt():
    a_pub, a_priv = generate_static_keypair()
    b_pub, b_priv = generate_static_keypair()
    key1 = derive_shared_secret(a_priv, b_pub)
    key2 = derive_shared_secret(b_priv, a_pub)

    ct = encrypt(b"are you there?", key1)
    assert decrypt(ct, key2) == b"are you there?"
    # nonce(12) + plaintext + tag(16)
    assert len(ct) == 12 + len(b"are you there?") + 16
    assert encrypt(b"are you there?", key1) != ct


def test_decrypt_failures_are_indistinguishable():
    _, a_priv = generate_static_keypair()
    b_pub, _ = generate_static_keypair()
    c_pub, _ = generate_static_keypair()
    key = derive_shared_secret(a_priv, b_pub)
    wrong = derive_shared_secret(a_priv, c_pub)
    ct = encrypt(b"payload", key)

    tampered = bytearray(ct)
    tampered[-1] ^= 0x01

    for bad_ct, k in ((ct, wrong), (bytes(tampered), key), (ct[:20], key), (b"", key)):
        with pytest.raises(DecryptionFailed) as exc:
            decrypt(bad_ct, k)
        assert str(exc.value) == "decryption failed"


def test_envelope_rejects_bad_key_length():
    with pytest.raises(InvalidKeyLength):
        encrypt(b"x", b"\x00" * 16)
