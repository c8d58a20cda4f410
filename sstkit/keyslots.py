"""Two-slot session key storage laid out like a flash region."""

from __future__ import annotations

import hashlib
import os
import struct
from enum import IntEnum

from .gcm import KEY_SIZE

FLASH_SLOT_SIZE = 256
FLASH_SECTOR_SIZE = 4096
REGION_SIZE = 4096
SLOT_A_OFFSET = 0
SLOT_B_OFFSET = FLASH_SLOT_SIZE
SLOT_INDEX_OFFSET = 2 * FLASH_SLOT_SIZE
FLASH_KEY_MAGIC = 0x53455353  # 'SESS'
SLOT_INDEX_MAGIC = 0xA5

_ERASED = 0xFF
_HASH_SIZE = 32
# key, SHA-256 of the key, magic word (little-endian, as the device stores it)
_BLOCK = struct.Struct("<16s32sI")


class Slot(IntEnum):
    """A key slot."""

    A = 0
    B = 1

    @property
    def letter(self) -> str:
        return self.name

    @property
    def offset(self) -> int:
        return SLOT_A_OFFSET if self is Slot.A else SLOT_B_OFFSET


def _as_slot(slot: int) -> Slot:
    return Slot.A if int(slot) == 0 else Slot.B


def format_hex(label: str, data: bytes) -> str:
    """Return ``label`` followed by each byte as two upper-case hex digits and a space."""
    return label + "".join(f"{byte:02X} " for byte in bytes(data))


def is_key_zeroed(key: bytes) -> bool:
    """Return True when every byte of the key is zero."""
    return not any(bytes(key)[:KEY_SIZE])


def _check_key(key: bytes) -> bytes:
    data = bytes(key)
    if len(data) != KEY_SIZE:
        raise ValueError(f"key must be {KEY_SIZE} bytes, got {len(data)}")
    return data


class KeySlotStore:
    """Session keys kept in two hash-checked slots plus a last-used index.

    The store behaves like NOR flash: erasing sets bytes to 0xFF and
    programming can only clear bits. With a ``path`` the region is kept in
    that file and rewritten after every change.
    """

    def __init__(self, path: str | os.PathLike | None = None) -> None:
        self._path = path
        self._image = bytearray([_ERASED]) * REGION_SIZE
        if path is not None and os.path.exists(path):
            with open(path, "rb") as handle:
                data = handle.read()
            if len(data) != REGION_SIZE:
                raise ValueError(
                    f"key store image must be {REGION_SIZE} bytes, got {len(data)}"
                )
            self._image[:] = data

    @property
    def image(self) -> bytes:
        """The raw contents of the region."""
        return bytes(self._image)

    def _save(self) -> None:
        if self._path is not None:
            with open(self._path, "wb") as handle:
                handle.write(self._image)

    def _erase(self, offset: int, length: int) -> None:
        end = min(offset + length, REGION_SIZE)
        self._image[offset:end] = bytes([_ERASED]) * (end - offset)

    def _program(self, offset: int, data: bytes) -> None:
        for position, byte in enumerate(data, start=offset):
            self._image[position] &= byte

    def read_slot(self, slot: int) -> bytes | None:
        """Return the key in ``slot``, or None when the slot is not valid."""
        offset = _as_slot(slot).offset
        key, digest, magic = _BLOCK.unpack_from(self._image, offset)
        if magic != FLASH_KEY_MAGIC:
            return None
        if hashlib.sha256(key).digest() != digest:
            return None
        return key

    def write_slot(self, slot: int, key: bytes) -> None:
        """Erase ``slot`` and store ``key`` in it with its hash."""
        data = _check_key(key)
        offset = _as_slot(slot).offset
        block = _BLOCK.pack(data, hashlib.sha256(data).digest(), FLASH_KEY_MAGIC)
        self._erase(offset, FLASH_SLOT_SIZE)
        self._program(offset, block)
        self._save()

    def clear_slot(self, slot: int) -> None:
        """Erase ``slot``."""
        self._erase(_as_slot(slot).offset, FLASH_SLOT_SIZE)
        self._save()

    def erase_all(self) -> None:
        """Erase both key slots."""
        self._erase(SLOT_A_OFFSET, FLASH_SLOT_SIZE)
        self._erase(SLOT_B_OFFSET, FLASH_SLOT_SIZE)
        self._save()

    def load_session_key(self) -> bytes | None:
        """Return the key from slot B, else slot A, else None."""
        for slot in (Slot.B, Slot.A):
            key = self.read_slot(slot)
            if key is not None:
                return key
        return None

    def store_session_key(self, key: bytes) -> Slot:
        """Store ``key`` in slot B when slot A is valid, else in slot A."""
        target = Slot.B if self.read_slot(Slot.A) is not None else Slot.A
        self.write_slot(target, key)
        return target

    def load_last_used_slot(self) -> int | None:
        """Return the stored slot index, or None when none was stored."""
        if self._image[SLOT_INDEX_OFFSET + 1] == SLOT_INDEX_MAGIC:
            return self._image[SLOT_INDEX_OFFSET]
        return None

    def store_last_used_slot(self, slot: int) -> None:
        """Record ``slot`` as the last one used."""
        self._erase(SLOT_INDEX_OFFSET, FLASH_SECTOR_SIZE)
        self._program(SLOT_INDEX_OFFSET, bytes([int(slot) & 0xFF, SLOT_INDEX_MAGIC]))
        self._save()

    def slot_status(self, current_slot: int) -> str:
        """Describe the active slot and the validity of both slots."""
        lines = [
            "Slot Status:",
            f"  Current slot: {'A' if int(current_slot) == 0 else 'B'}",
        ]
        for slot in Slot:
            state = "Valid" if self.read_slot(slot) is not None else "Invalid"
            lines.append(f"  Slot {slot.letter}: {state}")
        return "\n".join(lines)

    def describe_slot_key(self, slot: int) -> str:
        """Show the key in ``slot`` in hex, or say that the slot is invalid."""
        which = _as_slot(slot)
        key = self.read_slot(which)
        if key is None:
            return f"Slot {which.letter} is invalid."
        return format_hex(f"Slot {which.letter} key: ", key)