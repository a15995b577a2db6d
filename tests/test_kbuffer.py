import struct
import sys

import pytest

from rasdecode.kbuffer import (
    COMMIT_MASK,
    MISSING_EVENTS,
    MISSING_STORED,
    TS_SHIFT,
    TYPE_PADDING,
    TYPE_TIME_EXTEND,
    Endian,
    KBuffer,
    LongSize,
    translate_data,
)


def _word(type_len, delta, big):
    if big:
        return (type_len << 27) | delta
    return (delta << 5) | type_len


def _record(type_len, delta, payload, big=False, extra=b""):
    prefix = ">" if big else "<"
    return struct.pack(prefix + "I", _word(type_len, delta, big)) + extra + payload


def _page(base, records, big=False, long_size=8, flags=0, trailer=b""):
    prefix = ">" if big else "<"
    data = b"".join(records)
    long_fmt = "Q" if long_size == 8 else "I"
    header = struct.pack(prefix + "Q", base) + struct.pack(
        prefix + long_fmt, len(data) | flags
    )
    return header + data + trailer


FIRST = b"ABCDEFGH"
SECOND = b"wxyz"


def _two_events(big=False, long_size=8, flags=0, trailer=b""):
    return _page(
        1000,
        [
            _record(len(FIRST) // 4, 10, FIRST, big),
            _record(len(SECOND) // 4, 5, SECOND, big),
        ],
        big=big,
        long_size=long_size,
        flags=flags,
        trailer=trailer,
    )


def test_reads_events_in_order():
    kbuf = KBuffer()
    kbuf.load_subbuffer(_two_events())
    assert kbuf.read_event() == (1010, FIRST)
    assert kbuf.next_event() == (1015, SECOND)
    assert kbuf.read_event() == (1015, SECOND)
    assert kbuf.next_event() is None
    assert kbuf.read_event() is None


def test_record_geometry():
    kbuf = KBuffer()
    kbuf.load_subbuffer(_two_events())
    assert kbuf.event_size() == len(FIRST)
    assert kbuf.curr_size() == len(FIRST) + 4
    assert kbuf.curr_index() == 0
    assert kbuf.curr_offset() == 16
    assert kbuf.subbuffer_size == len(FIRST) + len(SECOND) + 8
    kbuf.next_event()
    assert kbuf.curr_index() == len(FIRST) + 4
    assert kbuf.event_size() == len(SECOND)


def test_big_endian_matches_little_endian():
    little = KBuffer(LongSize.EIGHT, Endian.LITTLE)
    big = KBuffer(LongSize.EIGHT, Endian.BIG)
    little.load_subbuffer(_two_events())
    big.load_subbuffer(_two_events(big=True))
    assert big.read_event() == little.read_event()
    assert big.next_event() == little.next_event()
    assert big.next_event() is None


def test_four_byte_longs_use_twelve_byte_header():
    kbuf = KBuffer(LongSize.FOUR)
    kbuf.load_subbuffer(_two_events(long_size=4))
    assert kbuf.curr_offset() == 12
    assert kbuf.read_event() == (1010, FIRST)
    assert kbuf.next_event() == (1015, SECOND)


def test_time_extend_is_skipped_and_added():
    page = _page(
        0,
        [
            _record(TYPE_TIME_EXTEND, 0, b"", extra=struct.pack("<I", 1)),
            _record(1, 3, SECOND),
        ],
    )
    kbuf = KBuffer()
    kbuf.load_subbuffer(page)
    assert kbuf.read_event() == ((1 << TS_SHIFT) + 3, SECOND)


def test_type_zero_record_reads_explicit_length():
    payload = b"0123456789ab"
    page = _page(
        7,
        [_record(0, 1, payload, extra=struct.pack("<I", len(payload) + 4))],
    )
    kbuf = KBuffer()
    kbuf.load_subbuffer(page)
    assert kbuf.read_event() == (8, payload)
    assert kbuf.curr_size() == len(payload) + 8


def test_trailing_padding_ends_page():
    page = _page(
        0,
        [
            _record(1, 1, SECOND),
            _record(TYPE_PADDING, 0, b"", extra=struct.pack("<I", 8) + b"\0" * 8),
        ],
    )
    kbuf = KBuffer()
    kbuf.load_subbuffer(page)
    assert kbuf.read_event() == (1, SECOND)
    assert kbuf.next_event() is None


def test_missed_events_not_stored():
    kbuf = KBuffer()
    kbuf.load_subbuffer(_two_events(flags=MISSING_EVENTS))
    assert kbuf.missed_events() == -1
    kbuf.next_event()
    assert kbuf.missed_events() == 0


def test_missed_events_stored_after_data():
    trailer = struct.pack("<Q", 42)
    kbuf = KBuffer()
    kbuf.load_subbuffer(
        _two_events(flags=MISSING_EVENTS | MISSING_STORED, trailer=trailer)
    )
    assert kbuf.missed_events() == 42
    assert kbuf.subbuffer_size == len(FIRST) + len(SECOND) + 8


def test_commit_flags_are_masked_from_size():
    kbuf = KBuffer()
    kbuf.load_subbuffer(_two_events(flags=MISSING_EVENTS))
    assert kbuf.subbuffer_size == kbuf.subbuffer_size & COMMIT_MASK
    assert kbuf.subbuffer_size == len(FIRST) + len(SECOND) + 8


def test_read_at_offset_returns_record_and_repositions():
    kbuf = KBuffer()
    kbuf.load_subbuffer(_two_events())
    kbuf.next_event()
    kbuf.next_event()
    second_offset = 16 + len(FIRST) + 4
    assert kbuf.read_at_offset(second_offset) == (1015, SECOND)
    assert kbuf.read_event() == (1015, SECOND)
    assert kbuf.next_event() is None


def test_old_format_events():
    def old_record(rtype, rlen, delta, payload):
        return struct.pack("<I", (delta << 5) | (rlen << 2) | rtype) + payload

    page = _page(
        100,
        [old_record(3, 2, 4, FIRST), old_record(3, 1, 6, SECOND)],
    )
    kbuf = KBuffer()
    kbuf.set_old_format()
    kbuf.load_subbuffer(page)
    assert kbuf.read_event() == (104, FIRST)
    assert kbuf.next_event() == (110, SECOND)
    assert kbuf.next_event() is None


def test_old_format_padding_ends_page():
    page = _page(0, [struct.pack("<I", 0), struct.pack("<I", (1 << 2) | 3) + SECOND])
    kbuf = KBuffer()
    kbuf.set_old_format()
    kbuf.load_subbuffer(page)
    assert kbuf.read_event() is None


def test_nothing_loaded():
    kbuf = KBuffer()
    assert kbuf.next_event() is None
    assert kbuf.read_event() is None
    assert kbuf.read_at_offset(20) is None


def test_invalid_construction():
    with pytest.raises(ValueError):
        KBuffer(3)
    with pytest.raises(ValueError):
        KBuffer(LongSize.EIGHT, "middle")


def test_truncated_page_raises():
    kbuf = KBuffer()
    with pytest.raises(ValueError):
        kbuf.load_subbuffer(b"\0" * 4)
    with pytest.raises(ValueError):
        kbuf.load_subbuffer(None)


def _native_big():
    return sys.byteorder == "big"


def test_translate_data_native():
    big = _native_big()
    record = struct.pack("=I", _word(2, 9, big)) + FIRST
    assert translate_data(False, record) == (4, len(FIRST))


def test_translate_data_swapped():
    big = not _native_big()
    prefix = ">" if big else "<"
    record = struct.pack(prefix + "I", _word(1, 9, big)) + SECOND
    assert translate_data(True, record) == (4, len(SECOND))


def test_translate_data_skips_time_records():
    big = _native_big()
    record = struct.pack("=I", _word(TYPE_TIME_EXTEND, 0, big)) + struct.pack("=I", 1)
    assert translate_data(False, record) is None
    padding = struct.pack("=I", _word(TYPE_PADDING, 0, big)) + struct.pack("=I", 0)
    assert translate_data(False, padding) is None