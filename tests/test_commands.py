from sstkit.commands import CommandHandler, FORCED_KEY_TIMEOUT_MS, NEW_KEY_TIMEOUT_MS
from sstkit.keyslots import KeySlotStore, Slot, format_hex

KEY_ONE = bytes(range(16))
KEY_TWO = bytes(range(50, 66))


def _handler(store=None, **kwargs):
    kwargs.setdefault("sleep", lambda seconds: None)
    return CommandHandler(store if store is not None else KeySlotStore(), **kwargs)


def test_print_key_variants():
    handler = _handler(session_key=KEY_ONE)
    expected = format_hex("Sender's session key: ", KEY_ONE)
    assert handler.handle(" print key") == [expected]
    assert handler.handle(" print key sender") == [expected]
    assert handler.handle(" print key receiver") == ["Check receiver printed key."]
    assert handler.handle(" print key *") == [expected, "Check receiver printed key."]


def test_unknown_command():
    assert _handler().handle(" dance") == ["Unknown command. Type CMD: help"]


def test_clear_slot_star_is_unknown():
    assert _handler().handle(" clear slot *") == ["Unknown command. Type CMD: help"]


def test_help_lists_commands():
    lines = _handler().handle(" help")
    assert lines[0] == "Available Commands:"
    assert lines[-1] == "  CMD: help"
    assert "  CMD: use slot B" in lines


def test_clear_slot():
    store = KeySlotStore()
    store.write_slot(Slot.B, KEY_ONE)
    handler = _handler(store)
    assert handler.handle(" clear slot B") == ["Slot B cleared."]
    assert store.read_slot(Slot.B) is None


def test_use_slot_with_key():
    store = KeySlotStore()
    store.write_slot(Slot.B, KEY_TWO)
    handler = _handler(store)
    lines = handler.handle(" use slot B")
    assert lines == [format_hex("Using session key from Slot B: ", KEY_TWO)]
    assert handler.session_key == KEY_TWO
    assert handler.current_slot is Slot.B
    assert store.load_last_used_slot() == 1


def test_use_empty_slot_zeroes_key():
    store = KeySlotStore()
    handler = _handler(store, session_key=KEY_ONE, current_slot=Slot.B)
    lines = handler.handle(" use slot A")
    assert lines == ["Slot A is empty or invalid. Ready to receive new key."]
    assert handler.session_key == bytes(16)
    assert handler.current_slot is Slot.A
    assert store.load_last_used_slot() == 0


def test_new_key_refused_when_slot_occupied():
    store = KeySlotStore()
    store.write_slot(Slot.A, KEY_ONE)
    calls = []
    handler = _handler(store, receive_key=lambda ms: calls.append(ms) or KEY_TWO)
    lines = handler.handle(" new key")
    assert lines == ["Slot A is already occupied. Use 'new key -f' to overwrite."]
    assert calls == []
    assert store.read_slot(Slot.A) == KEY_ONE


def test_new_key_into_empty_slot():
    store = KeySlotStore()
    calls = []
    handler = _handler(
        store, current_slot=Slot.B, receive_key=lambda ms: calls.append(ms) or KEY_TWO
    )
    lines = handler.handle(" new key")
    assert calls == [NEW_KEY_TIMEOUT_MS]
    assert lines[-1] == "New session key stored in Slot B."
    assert store.read_slot(Slot.B) == KEY_TWO
    assert handler.session_key == KEY_TWO


def test_forced_new_key_overwrites():
    store = KeySlotStore()
    store.write_slot(Slot.A, KEY_ONE)
    calls = []
    handler = _handler(store, receive_key=lambda ms: calls.append(ms) or KEY_TWO)
    lines = handler.handle(" new key -f")
    assert calls == [FORCED_KEY_TIMEOUT_MS]
    assert lines[0] == "Waiting 3 seconds for new key (forced)..."
    assert lines[-1] == "New session key forcibly stored in Slot A."
    assert store.read_slot(Slot.A) == KEY_TWO


def test_new_key_timeout_aborts():
    store = KeySlotStore()
    handler = _handler(store, session_key=KEY_ONE)
    lines = handler.handle(" new key -f")
    assert lines[-1] == "No key received. Aborting."
    assert handler.session_key == KEY_ONE
    assert store.read_slot(Slot.A) is None


def test_print_slot_keys():
    store = KeySlotStore()
    store.write_slot(Slot.A, KEY_ONE)
    handler = _handler(store)
    assert handler.handle(" print slot key *") == [
        store.describe_slot_key(Slot.A),
        "Slot B is invalid.",
    ]


def test_slot_status_command():
    store = KeySlotStore()
    handler = _handler(store, current_slot=Slot.A)
    assert handler.handle(" slot status") == store.slot_status(0).splitlines()


def test_entropy_test_uses_random_source():
    sample = bytes([0xAA] * 16)
    handler = _handler(random_bytes=lambda n: sample[:n])
    assert handler.handle(" entropy test") == [format_hex("Entropy Sample: ", sample)]


def test_reboot_calls_callback():
    events = []
    handler = _handler(reboot=lambda: events.append("reboot"))
    assert handler.handle(" reboot") == ["Rebooting..."]
    assert events == ["reboot"]