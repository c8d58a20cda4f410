"""Handling of ``CMD:`` messages on the sending device."""

from __future__ import annotations

import os
import time
from typing import Callable, Optional

from .gcm import KEY_SIZE
from .keyslots import KeySlotStore, Slot, format_hex

KeyReceiver = Callable[[int], Optional[bytes]]

FORCED_KEY_TIMEOUT_MS = 3000
NEW_KEY_TIMEOUT_MS = 5000
ENTROPY_SAMPLE_SIZE = 16

HELP_LINES = (
    "Available Commands:",
    "  CMD: print key",
    "  CMD: print key sender",
    "  CMD: print key receiver",
    "  CMD: print key *",
    "  CMD: print slot key A",
    "  CMD: print slot key B",
    "  CMD: print slot key *",
    "  CMD: clear slot A",
    "  CMD: clear slot B",
    "  CMD: clear slot *",
    "  CMD: use slot A",
    "  CMD: use slot B",
    "  CMD: new key         (request new key only if current slot is empty)",
    "  CMD: new key -f      (force overwrite current slot)",
    "  CMD: slot status     (show slot validity and active slot)",
    "  CMD: entropy test    (view entropy sample)",
    "  CMD: reboot",
    "  CMD: help",
)


class CommandHandler:
    """Carries out the commands that follow ``CMD:`` in a sent message.

    ``receive_key(timeout_ms)`` returns a new key or None (with no receiver
    no key ever arrives); ``reboot`` is called for the reboot command;
    ``random_bytes(n)`` supplies entropy.
    """

    def __init__(
        self,
        store: KeySlotStore,
        session_key: bytes = bytes(KEY_SIZE),
        current_slot: int = Slot.A,
        receive_key: KeyReceiver | None = None,
        reboot: Callable[[], None] | None = None,
        random_bytes: Callable[[int], bytes] = os.urandom,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.store = store
        self.session_key = bytes(session_key)
        self.current_slot = Slot(int(current_slot))
        self._receive_key = receive_key
        self._reboot = reboot
        self._random_bytes = random_bytes
        self._sleep = sleep

    def _sender_key(self) -> str:
        return format_hex("Sender's session key: ", self.session_key)

    def _use_slot(self, slot: Slot) -> list[str]:
        self.current_slot = slot
        self.store.store_last_used_slot(slot)
        key = self.store.read_slot(slot)
        if key is not None:
            self.session_key = key
            return [format_hex(f"Using session key from Slot {slot.letter}: ", key)]
        self.session_key = bytes(KEY_SIZE)
        return [f"Slot {slot.letter} is empty or invalid. Ready to receive new key."]

    def _take_new_key(self, timeout_ms: int, stored_message: str) -> list[str]:
        key = self._receive_key(timeout_ms) if self._receive_key is not None else None
        if key is None or len(key) != KEY_SIZE:
            return ["No key received. Aborting."]
        key = bytes(key)
        self.store.write_slot(self.current_slot, key)
        self.session_key = key
        return [
            format_hex("Received new key: ", key),
            f"{stored_message} Slot {self.current_slot.letter}.",
        ]

    def handle(self, cmd: str) -> list[str]:
        """Run one command (the text after ``CMD:``); return the lines it prints."""
        if cmd in (" print key", " print key sender"):
            return [self._sender_key()]
        if cmd == " print key receiver":
            return ["Check receiver printed key."]
        if cmd == " print key *":
            return [self._sender_key(), "Check receiver printed key."]
        if cmd == " slot status":
            return self.store.slot_status(self.current_slot).splitlines()
        if cmd in (" clear slot A", " clear slot B"):
            slot = Slot.A if cmd.endswith("A") else Slot.B
            self.store.clear_slot(slot)
            return [f"Slot {slot.letter} cleared."]
        if cmd == " use slot A":
            return self._use_slot(Slot.A)
        if cmd == " use slot B":
            return self._use_slot(Slot.B)
        if cmd == " entropy test":
            sample = self._random_bytes(ENTROPY_SAMPLE_SIZE)
            return [format_hex("Entropy Sample: ", sample)]
        if cmd == " new key -f":
            lines = ["Waiting 3 seconds for new key (forced)..."]
            return lines + self._take_new_key(
                FORCED_KEY_TIMEOUT_MS, "New session key forcibly stored in"
            )
        if cmd == " new key":
            if self.store.read_slot(self.current_slot) is not None:
                return [
                    f"Slot {self.current_slot.letter} is already occupied. "
                    "Use 'new key -f' to overwrite."
                ]
            lines = ["Waiting 3 seconds for new key..."]
            return lines + self._take_new_key(
                NEW_KEY_TIMEOUT_MS, "New session key stored in"
            )
        if cmd == " print slot key A":
            return [self.store.describe_slot_key(Slot.A)]
        if cmd == " print slot key B":
            return [self.store.describe_slot_key(Slot.B)]
        if cmd == " print slot key *":
            return [
                self.store.describe_slot_key(Slot.A),
                self.store.describe_slot_key(Slot.B),
            ]
        if cmd == " reboot":
            self._sleep(0.5)
            if self._reboot is not None:
                self._reboot()
            return ["Rebooting..."]
        if cmd == " help":
            return list(HELP_LINES)
        return ["Unknown command. Type CMD: help"]