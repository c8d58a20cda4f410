"""AES-128-GCM encryption with a 12-byte nonce and a 16-byte tag."""

from __future__ import annotations

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

KEY_SIZE = 16
NONCE_SIZE = 12
TAG_SIZE = 16


class GcmError(Exception):
    """Raised when GCM encryption or decryption fails."""


def _check(key: bytes, nonce: bytes) -> None:
    if len(key) != KEY_SIZE:
        raise GcmError(f"key must be {KEY_SIZE} bytes, got {len(key)}")
    if len(nonce) != NONCE_SIZE:
        raise GcmError(f"nonce must be {NONCE_SIZE} bytes, got {len(nonce)}")


def encrypt_gcm(key: bytes, nonce: bytes, plaintext: bytes) -> tuple[bytes, bytes]:
    """Encrypt ``plaintext``; return ``(ciphertext, tag)``."""
    _check(key, nonce)
    sealed = AESGCM(bytes(key)).encrypt(bytes(nonce), bytes(plaintext), None)
    return sealed[:-TAG_SIZE], sealed[-TAG_SIZE:]


def decrypt_gcm(key: bytes, nonce: bytes, ciphertext: bytes, tag: bytes) -> bytes:
    """Decrypt and authenticate ``ciphertext``; return the plaintext."""
    _check(key, nonce)
    if len(tag) != TAG_SIZE:
        raise GcmError(f"tag must be {TAG_SIZE} bytes, got {len(tag)}")
    try:
        return AESGCM(bytes(key)).decrypt(
            bytes(nonce), bytes(ciphertext) + bytes(tag), None
        )
    except InvalidTag as exc:
        raise GcmError("authentication failed") from exc