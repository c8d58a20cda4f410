import io

import pytest

from sstkit.frames import (
    DEFAULT_PREAMBLE,
    LEGACY_PREAMBLE,
    MSG_TYPE_ENCRYPTED,
    Frame,
    FrameError,
    FrameReader,
    build_frame,
    build_key_delivery,
    read_exact,
    receive_key,
)
from sstkit.gcm import GcmError

KEY = bytes(range(16))
OTHER_KEY = bytes(range(16, 32))
NONCE = bytes(range(100, 112))


def test_frame_header_layout():
    wire = build_frame(KEY, b"hello", nonce=NONCE)
    assert wire[:3] == b"\xab\xcd\x02"
    assert wire[3:15] == NONCE
    assert wire[15:17] == len(b"hello").to_bytes(2, "big")
    assert len(wire) == 17 + 5 + 16


def test_round_trip_through_reader():
    wire = build_frame(KEY, "I have the key", nonce=NONCE)
    frame = FrameReader(io.BytesIO(wire)).read_frame()
    assert frame.nonce == NONCE
    assert frame.decrypt(KEY) == b"I have the key"


def test_frame_to_bytes_matches_build():
    wire = build_frame(KEY, b"abc", nonce=NONCE)
    frame = FrameReader(io.BytesIO(wire)).read_frame()
    assert frame.to_bytes() == wire


def test_random_nonces_differ():
    first = build_frame(KEY, b"same")
    second = build_frame(KEY, b"same")
    assert first[3:15] != second[3:15]
    assert FrameReader(io.BytesIO(first)).read_frame().decrypt(KEY) == b"same"


def test_reader_skips_noise_before_frame():
    wire = b"\x00\x11\xab\x00" + build_frame(KEY, b"msg", nonce=NONCE)
    frame = FrameReader(io.BytesIO(wire)).read_frame()
    assert frame.decrypt(KEY) == b"msg"


def test_reader_wrong_type_byte_resets():
    bad = b"\xab\xcd\x05"
    wire = bad + build_frame(KEY, b"ok", nonce=NONCE)
    frames = list(FrameReader(io.BytesIO(wire)))
    assert [f.decrypt(KEY) for f in frames] == [b"ok"]


def test_reader_empty_stream_returns_none():
    assert FrameReader(io.BytesIO(b"")).read_frame() is None


def test_iteration_yields_all_frames():
    messages = [b"one", b"two", b"three"]
    wire = b"".join(build_frame(KEY, m) for m in messages)
    assert [f.decrypt(KEY) for f in FrameReader(io.BytesIO(wire))] == messages


def test_too_long_length_raises():
    wire = b"\xab\xcd\x02" + NONCE + (1025).to_bytes(2, "big")
    with pytest.raises(FrameError):
        FrameReader(io.BytesIO(wire)).read_frame()


def test_too_long_skipped_during_iteration():
    wire = (
        b"\xab\xcd\x02"
        + NONCE
        + (2000).to_bytes(2, "big")
        + build_frame(KEY, b"after", nonce=NONCE)
    )
    assert [f.decrypt(KEY) for f in FrameReader(io.BytesIO(wire))] == [b"after"]


def test_truncated_frame_raises():
    wire = build_frame(KEY, b"hello", nonce=NONCE)[:-4]
    with pytest.raises(FrameError):
        FrameReader(io.BytesIO(wire)).read_frame()


def test_truncated_header_raises():
    wire = b"\xab\xcd\x02" + NONCE[:5]
    with pytest.raises(FrameError):
        FrameReader(io.BytesIO(wire)).read_frame()


def test_legacy_preamble():
    wire = build_frame(KEY, b"legacy", nonce=NONCE, preamble=LEGACY_PREAMBLE)
    assert wire[:2] == b"\xaa\x55"
    assert FrameReader(io.BytesIO(wire)).read_frame() is None
    frame = FrameReader(io.BytesIO(wire), preamble=LEGACY_PREAMBLE).read_frame()
    assert frame.decrypt(KEY) == b"legacy"


def test_wrong_key_fails_authentication():
    frame = FrameReader(io.BytesIO(build_frame(KEY, b"x", nonce=NONCE))).read_frame()
    with pytest.raises(GcmError):
        frame.decrypt(OTHER_KEY)


def test_message_too_long_to_send():
    with pytest.raises(FrameError):
        build_frame(KEY, bytes(257))


def test_bad_preamble_length():
    with pytest.raises(FrameError):
        build_frame(KEY, b"x", preamble=b"\xab")


def test_frame_constants():
    wire = build_frame(KEY, b"x", nonce=NONCE)
    assert wire[:2] == DEFAULT_PREAMBLE == b"\xab\xcd"
    assert wire[2] == MSG_TYPE_ENCRYPTED == 0x02


def test_key_delivery_bytes():
    assert build_key_delivery(KEY) == b"\xab\xcd" + KEY


def test_key_delivery_rejects_bad_length():
    with pytest.raises(FrameError):
        build_key_delivery(b"short")


def test_receive_key_round_trip_with_noise():
    stream = io.BytesIO(b"\x01\x02" + build_key_delivery(OTHER_KEY))
    assert receive_key(stream) == OTHER_KEY


def test_receive_key_truncated_returns_none():
    stream = io.BytesIO(build_key_delivery(KEY)[:10])
    assert receive_key(stream) is None


def test_receive_key_consumes_byte_after_first_preamble_byte():
    stream = io.BytesIO(b"\xab\xab\xcd" + bytes(16))
    assert receive_key(stream) is None


def test_read_exact_short_stream():
    assert read_exact(io.BytesIO(b"abc"), 5) == b"abc"
    assert read_exact(io.BytesIO(b"abcdef"), 4) == b"abcd"


def test_frame_dataclass_to_bytes():
    frame = Frame(NONCE, b"\x01\x02", bytes(16))
    wire = frame.to_bytes()
    assert wire == b"\xab\xcd\x02" + NONCE + b"\x00\x02" + b"\x01\x02" + bytes(16)