"""Framing of encrypted messages and session-key deliveries on a serial link.

An encrypted frame is laid out as::

    preamble (2) | 0x02 | nonce (12) | length (2, big-endian) | ciphertext | tag (16)

A key delivery is the two preamble bytes ``AB CD`` followed by the 16-byte key.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import BinaryIO, Iterator

from .gcm import KEY_SIZE, NONCE_SIZE, TAG_SIZE, decrypt_gcm, encrypt_gcm

DEFAULT_PREAMBLE = b"\xab\xcd"
LEGACY_PREAMBLE = b"\xaa\x55"
KEY_PREAMBLE = b"\xab\xcd"
MSG_TYPE_ENCRYPTED = 0x02
MAX_SEND_LENGTH = 256
MAX_RECEIVE_LENGTH = 1024

_LENGTH_SIZE = 2

log = logging.getLogger(__name__)


class FrameError(Exception):
    """Raised when a frame cannot be built or read."""


def _check_preamble(preamble: bytes) -> bytes:
    data = bytes(preamble)
    if len(data) != 2:
        raise FrameError(f"preamble must be 2 bytes, got {len(data)}")
    return data


def read_exact(stream: BinaryIO, length: int) -> bytes:
    """Read up to ``length`` bytes, stopping early only when the stream ends."""
    parts = []
    remaining = length
    while remaining > 0:
        chunk = stream.read(remaining)
        if not chunk:
            break
        parts.append(bytes(chunk))
        remaining -= len(chunk)
    return b"".join(parts)


@dataclass(frozen=True)
class Frame:
    """One encrypted message as carried on the link."""

    nonce: bytes
    ciphertext: bytes
    tag: bytes

    def decrypt(self, key: bytes) -> bytes:
        """Authenticate and decrypt the message with ``key``."""
        return decrypt_gcm(key, self.nonce, self.ciphertext, self.tag)

    def to_bytes(self, preamble: bytes = DEFAULT_PREAMBLE) -> bytes:
        """Return the frame as wire bytes."""
        header = _check_preamble(preamble) + bytes([MSG_TYPE_ENCRYPTED])
        length = len(self.ciphertext).to_bytes(_LENGTH_SIZE, "big")
        return header + bytes(self.nonce) + length + bytes(self.ciphertext) + bytes(self.tag)


def build_frame(
    key: bytes,
    message: bytes | str,
    nonce: bytes | None = None,
    preamble: bytes = DEFAULT_PREAMBLE,
) -> bytes:
    """Encrypt ``message`` and return it framed for sending.

    A random nonce is drawn when none is given.
    """
    plaintext = message.encode() if isinstance(message, str) else bytes(message)
    if len(plaintext) > MAX_SEND_LENGTH:
        raise FrameError(f"Message too long: {len(plaintext)} bytes")
    if nonce is None:
        nonce = os.urandom(NONCE_SIZE)
    ciphertext, tag = encrypt_gcm(key, nonce, plaintext)
    return Frame(bytes(nonce), ciphertext, tag).to_bytes(preamble)


def build_key_delivery(key: bytes) -> bytes:
    """Return the bytes that hand a session key to the sending device."""
    data = bytes(key)
    if len(data) != KEY_SIZE:
        raise FrameError(f"key must be {KEY_SIZE} bytes, got {len(data)}")
    return KEY_PREAMBLE + data


def receive_key(stream: BinaryIO) -> bytes | None:
    """Wait for a key preamble and return the key after it.

    Returns None when the stream ends before a whole key arrives.
    """
    while True:
        first = stream.read(1)
        if not first:
            return None
        if first[0] != KEY_PREAMBLE[0]:
            continue
        second = stream.read(1)
        if not second:
            return None
        if second[0] == KEY_PREAMBLE[1]:
            key = read_exact(stream, KEY_SIZE)
            return key if len(key) == KEY_SIZE else None


class FrameReader:
    """Reads encrypted frames from a byte stream, resynchronising on noise."""

    def __init__(self, stream: BinaryIO, preamble: bytes = DEFAULT_PREAMBLE) -> None:
        self._stream = stream
        self._preamble = _check_preamble(preamble)

    def _read_body(self) -> Frame:
        nonce = read_exact(self._stream, NONCE_SIZE)
        length_bytes = read_exact(self._stream, _LENGTH_SIZE)
        if len(nonce) != NONCE_SIZE or len(length_bytes) != _LENGTH_SIZE:
            raise FrameError("Failed to read nonce or length")
        length = int.from_bytes(length_bytes, "big")
        if length > MAX_RECEIVE_LENGTH:
            raise FrameError(f"Message too long: {length} bytes")
        ciphertext = read_exact(self._stream, length)
        tag = read_exact(self._stream, TAG_SIZE)
        if len(ciphertext) != length or len(tag) != TAG_SIZE:
            raise FrameError("Incomplete ciphertext or tag")
        return Frame(nonce, ciphertext, tag)

    def read_frame(self) -> Frame | None:
        """Return the next frame, or None when the stream ends first."""
        state = 0
        while True:
            chunk = self._stream.read(1)
            if not chunk:
                return None
            byte = chunk[0]
            if state == 0:
                state = 1 if byte == self._preamble[0] else 0
            elif state == 1:
                state = 2 if byte == self._preamble[1] else 0
            elif byte == MSG_TYPE_ENCRYPTED:
                return self._read_body()
            else:
                state = 0

    def __iter__(self) -> Iterator[Frame]:
        while True:
            try:
                frame = self.read_frame()
            except FrameError as exc:
                log.warning("%s", exc)
                continue
            if frame is None:
                return
            yield frame