"""Receiving side of the encrypted serial link: replay checks and key rotation."""

from __future__ import annotations

from collections import deque
from enum import Enum
from typing import Callable, Optional

from .frames import Frame, build_key_delivery
from .gcm import KEY_SIZE, NONCE_SIZE, GcmError
from .keyslots import format_hex

NONCE_HISTORY_SIZE = 64
KEY_UPDATE_COOLDOWN_S = 15
STATE_TIMEOUT_S = 5

MSG_HAVE_KEY = "I have the key"
CMD_NEW_KEY_FORCED = "CMD: new key -f"
CMD_NEW_KEY = "CMD: new key"
CMD_ACK = "ACK"
CMD_CLEAR_KEY = "CMD: clear key"
CMD_PRINT_RECEIVER = "CMD: print key receiver"
CMD_PRINT_ALL = "CMD: print key *"


class ReceiverState(Enum):
    """Where the receiver is in a key update."""

    IDLE = "idle"
    WAITING_FOR_YES = "waiting_for_yes"
    WAITING_FOR_ACK = "waiting_for_ack"


class NonceHistory:
    """The most recent nonces, kept to reject replayed messages.

    The history starts filled with all-zero nonces, so an all-zero nonce
    is always treated as replayed until it has been pushed out.
    """

    def __init__(self, size: int = NONCE_HISTORY_SIZE) -> None:
        if size < 1:
            raise ValueError("history size must be at least 1")
        self._nonces: deque[bytes] = deque(
            [bytes(NONCE_SIZE)] * size, maxlen=size
        )

    def seen(self, nonce: bytes) -> bool:
        """Return True when ``nonce`` is in the history."""
        return bytes(nonce) in self._nonces

    def add(self, nonce: bytes) -> None:
        """Record ``nonce``, dropping the oldest entry."""
        self._nonces.append(bytes(nonce))


def _message_text(message: bytes) -> str:
    return bytes(message).split(b"\0", 1)[0].decode("utf-8", errors="replace")


class Receiver:
    """Decrypts incoming frames and carries out the key-update protocol.

    ``fetch_key()`` returns a fresh session key or None; ``send(data)``
    writes bytes back to the sending device. Either may be left out: with
    no ``fetch_key`` no new key is available, with no ``send`` nothing is
    written. Every method returns the lines it reports.
    """

    def __init__(
        self,
        session_key: bytes,
        fetch_key: Callable[[], Optional[bytes]] | None = None,
        send: Callable[[bytes], None] | None = None,
        history_size: int = NONCE_HISTORY_SIZE,
    ) -> None:
        key = bytes(session_key)
        if len(key) != KEY_SIZE:
            raise ValueError(f"key must be {KEY_SIZE} bytes, got {len(key)}")
        self.session_key = key
        self.key_valid = True
        self.pending_key: bytes | None = None
        self.state = ReceiverState.IDLE
        self.deadline = 0.0
        self.last_key_request: float | None = None
        self.stop_sending_key = False
        self.history = NonceHistory(history_size)
        self._fetch_key = fetch_key
        self._send = send

    def check_timeout(self, now: float) -> list[str]:
        """Return to idle when the current wait has passed its deadline."""
        if self.state is ReceiverState.IDLE or now < self.deadline:
            return []
        if self.state is ReceiverState.WAITING_FOR_YES:
            line = "Confirmation for 'new key' timed out. Returning to idle."
        else:
            line = "Timeout waiting for key update ACK. Discarding new key."
            self.pending_key = None
        self.state = ReceiverState.IDLE
        return [line]

    def _start_wait(self, state: ReceiverState, now: float) -> None:
        self.state = state
        self.deadline = now + STATE_TIMEOUT_S

    def _forced_new_key(self, now: float) -> list[str]:
        lines = ["Received 'new key -f' command. Requesting new key..."]
        key = self._fetch_key() if self._fetch_key is not None else None
        if key is None or len(key) != KEY_SIZE:
            lines.append("Failed to fetch new session key.")
            return lines
        self.pending_key = bytes(key)
        lines.append(format_hex("New Session Key (pending ACK): ", self.pending_key))
        self.key_valid = True
        if self._send is not None:
            self._send(build_key_delivery(self.pending_key))
        lines.append("Sent new session key to Pico. Waiting 5s for ACK...")
        self._start_wait(ReceiverState.WAITING_FOR_ACK, now)
        return lines

    def _new_key(self, now: float) -> list[str]:
        if (
            self.last_key_request is not None
            and now - self.last_key_request < KEY_UPDATE_COOLDOWN_S
        ):
            return ["Rate limit: another new key request too soon. Ignoring."]
        self.last_key_request = now
        self._start_wait(ReceiverState.WAITING_FOR_YES, now)
        return ["Received 'new key' command. Waiting 5s for 'yes' confirmation..."]

    def handle_message(self, message: bytes, now: float) -> list[str]:
        """Act on one decrypted message."""
        text = _message_text(message)
        lines = [f"Decrypted: {text}"]
        if text == MSG_HAVE_KEY:
            lines.append("Pico has confirmed receiving the key.")
            self.stop_sending_key = True
        elif text == CMD_NEW_KEY_FORCED:
            lines.extend(self._forced_new_key(now))
        elif text == CMD_NEW_KEY:
            lines.extend(self._new_key(now))
        elif self.state is ReceiverState.WAITING_FOR_ACK and text == CMD_ACK:
            lines.append("ACK received. Finalizing key update.")
            if self.pending_key is not None:
                self.session_key = self.pending_key
            self.pending_key = None
            lines.append(format_hex("New key is now active: ", self.session_key))
            self.state = ReceiverState.IDLE
        elif text == CMD_CLEAR_KEY:
            lines.append(
                "Received 'clear key' command. Zeroing session key (no new key sent)."
            )
            self.session_key = bytes(KEY_SIZE)
            self.key_valid = False
        elif text in (CMD_PRINT_RECEIVER, CMD_PRINT_ALL):
            lines.append(format_hex("Receiver's session key: ", self.session_key))
        return lines

    def process_frame(self, frame: Frame, now: float) -> list[str]:
        """Check, decrypt and act on one received frame."""
        if self.history.seen(frame.nonce):
            return ["Nonce replayed! Rejecting message."]
        self.history.add(frame.nonce)
        if not self.key_valid:
            return ["No valid session key. Rejecting encrypted message."]
        try:
            message = frame.decrypt(self.session_key)
        except GcmError as exc:
            return [f"AES-GCM decryption failed: {exc}"]
        return self.handle_message(message, now)