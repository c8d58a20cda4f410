import pytest

from sstkit.gcm import (
    KEY_SIZE,
    NONCE_SIZE,
    TAG_SIZE,
    GcmError,
    decrypt_gcm,
    encrypt_gcm,
)

KEY = bytes(range(16))
NONCE = bytes(range(100, 112))


def test_sizes():
    ciphertext, tag = encrypt_gcm(bytes(KEY_SIZE), bytes(NONCE_SIZE), b"abc")
    assert len(ciphertext) == 3
    assert len(tag) == TAG_SIZE == 16
    assert (KEY_SIZE, NONCE_SIZE) == (16, 12)


def test_known_vector_zero_block():
    ciphertext, tag = encrypt_gcm(bytes(16), bytes(12), bytes(16))
    assert ciphertext.hex() == "0388dace60b6a392f328c2b971b2fe78"
    assert tag.hex() == "ab6e47d42cec13bdf53a67b21257bddf"


def test_known_vector_empty():
    ciphertext, tag = encrypt_gcm(bytes(16), bytes(12), b"")
    assert ciphertext == b""
    assert tag.hex() == "58e2fccefa7e3061367f1d57a4e7455a"


@pytest.mark.parametrize("message", [b"", b"I have the key", b"x" * 256])
def test_round_trip(message):
    ciphertext, tag = encrypt_gcm(KEY, NONCE, message)
    assert len(ciphertext) == len(message)
    assert len(tag) == TAG_SIZE
    assert decrypt_gcm(KEY, NONCE, ciphertext, tag) == message


def test_tampered_ciphertext_rejected():
    ciphertext, tag = encrypt_gcm(KEY, NONCE, b"CMD: new key")
    tampered = bytes([ciphertext[0] ^ 1]) + ciphertext[1:]
    with pytest.raises(GcmError):
        decrypt_gcm(KEY, NONCE, tampered, tag)


def test_wrong_key_rejected():
    ciphertext, tag = encrypt_gcm(KEY, NONCE, b"ACK")
    with pytest.raises(GcmError):
        decrypt_gcm(bytes(16), NONCE, ciphertext, tag)


@pytest.mark.parametrize(
    "key, nonce", [(bytes(15), bytes(12)), (bytes(32), bytes(12)), (bytes(16), bytes(8))]
)
def test_bad_sizes(key, nonce):
    with pytest.raises(GcmError):
        encrypt_gcm(key, nonce, b"data")


def test_bad_tag_size():
    ciphertext, tag = encrypt_gcm(KEY, NONCE, b"data")
    with pytest.raises(GcmError):
        decrypt_gcm(KEY, NONCE, ciphertext, tag[:8])