"""Reader for ring-buffer sub-buffer pages as written by the kernel tracer."""

import struct
import sys
from enum import Enum, IntEnum

# Record types of the current ring-buffer format (type_len values).
TYPE_PADDING = 29
TYPE_TIME_EXTEND = 30
TYPE_TIME_STAMP = 31

TS_SHIFT = 27
_TS_MASK = (1 << TS_SHIFT) - 1

MISSING_EVENTS = 1 << 31
MISSING_STORED = 1 << 30
COMMIT_MASK = (1 << 27) - 1

# Record types of the ring-buffer format of 2.6.30 and earlier kernels.
OLD_TYPE_PADDING = 0
OLD_TYPE_TIME_EXTEND = 1
OLD_TYPE_TIME_STAMP = 2
OLD_TYPE_DATA = 3

_U32 = 0xFFFFFFFF
_U64 = 0xFFFFFFFFFFFFFFFF


class LongSize(IntEnum):
    """Size in bytes of a long word on the machine that wrote the buffer."""

    FOUR = 4
    EIGHT = 8


class Endian(Enum):
    """Byte order of the machine that wrote the buffer."""

    LITTLE = "little"
    BIG = "big"


def _read(buf, fmt, offset):
    try:
        return struct.unpack_from(fmt, buf, offset)[0]
    except struct.error as exc:
        raise ValueError(f"read at offset {offset} runs past the sub-buffer") from exc


def _translate_record(buf, pos, big):
    """Decode the record header at pos.

    Returns (type_len, payload position, time delta, payload length).
    """
    prefix = ">" if big else "<"
    word = _read(buf, prefix + "I", pos)
    pos += 4
    if big:
        type_len = word >> 27
        delta = word & _TS_MASK
    else:
        type_len = word & 0x1F
        delta = word >> 5

    if type_len == TYPE_PADDING:
        length = _read(buf, prefix + "I", pos)
        pos += length
    elif type_len == TYPE_TIME_EXTEND:
        extend = _read(buf, prefix + "I", pos)
        pos += 4
        delta = (extend << TS_SHIFT) + delta
        length = 0
    elif type_len == TYPE_TIME_STAMP:
        pos += 12
        length = 0
    elif type_len == 0:
        length = _read(buf, prefix + "I", pos) - 4
        length = (length + 3) & ~3
        pos += 4
    else:
        length = type_len * 4
    return type_len, pos, delta, length


def translate_data(swap, data):
    """Locate the payload of the raw record at the start of data.

    ``swap`` is true when the record's byte order differs from this host's.
    Returns (payload offset, payload length), or None for padding and time
    records. The whole record size is the offset plus the length.
    """
    host_big = sys.byteorder == "big"
    big = host_big != bool(swap)
    type_len, pos, _delta, length = _translate_record(data, 0, big)
    if type_len in (TYPE_PADDING, TYPE_TIME_EXTEND, TYPE_TIME_STAMP):
        return None
    return pos, length


class KBuffer:
    """Iterates over the events of one loaded sub-buffer page."""

    def __init__(self, long_size=LongSize.EIGHT, endian=Endian.LITTLE):
        self.long_size = LongSize(long_size)
        self.endian = Endian(endian)
        self._big = self.endian is Endian.BIG
        self._prefix = ">" if self._big else "<"
        self._old_format = False
        self._subbuffer = None
        self._timestamp = 0
        self._lost_events = 0
        self._index = 0
        self._curr = 0
        self._next = 0
        self._size = 0
        self._start = 0

    @property
    def timestamp(self):
        """Timestamp of the current event."""
        return self._timestamp

    @property
    def subbuffer_size(self):
        """Size of the committed data on the loaded sub-buffer."""
        return self._size

    def _read_4(self, offset):
        return _read(self._subbuffer, self._prefix + "I", offset)

    def _read_8(self, offset):
        return _read(self._subbuffer, self._prefix + "Q", offset)

    def _read_long(self, offset):
        if self.long_size is LongSize.EIGHT:
            return self._read_8(offset)
        return self._read_4(offset)

    def _payload(self):
        return bytes(self._subbuffer[self._start + self._index : self._start + self._next])

    def _update_pointers(self):
        type_len, pos, delta, length = _translate_record(
            self._subbuffer, self._start + self._curr, self._big
        )
        self._timestamp = (self._timestamp + delta) & _U64
        self._index = pos - self._start
        self._next = (self._index + length) & _U32
        return type_len

    def _old_update_pointers(self):
        pos = self._start + self._curr
        word = self._read_4(pos)
        pos += 4
        if self._big:
            rtype = (word >> 29) & 3
            rlen = (word >> 27) & 7
            delta = word & _TS_MASK
        else:
            rtype = word & 3
            rlen = (word >> 2) & 7
            delta = word >> 5

        length = 0
        if rtype == OLD_TYPE_PADDING:
            self._next = self._size
            return rtype
        if rtype == OLD_TYPE_TIME_EXTEND:
            extend = self._read_4(pos)
            delta = ((extend << TS_SHIFT) + delta) & _U32
            pos += 4
        elif rtype == OLD_TYPE_TIME_STAMP:
            # Should never happen: give up on the rest of the page.
            self._curr = self._next = self._index = self._size
            return None
        elif rlen:
            length = rlen * 4
        else:
            length = (self._read_4(pos) - 4) & _U32
            pos += 4

        self._timestamp = (self._timestamp + delta) & _U64
        self._index = pos - self._start
        self._next = (self._index + length) & _U32
        return rtype

    def _advance(self):
        if self._old_format:
            update, skip = self._old_update_pointers, (
                OLD_TYPE_TIME_EXTEND,
                OLD_TYPE_PADDING,
            )
        else:
            update, skip = self._update_pointers, (TYPE_TIME_EXTEND, TYPE_PADDING)
        while True:
            self._curr = self._next
            if self._next >= self._size:
                return False
            if update() not in skip:
                return True

    def load_subbuffer(self, subbuffer):
        """Load a sub-buffer page and position on its first event."""
        if subbuffer is None:
            raise ValueError("no sub-buffer given")
        self._subbuffer = bytes(subbuffer)
        self._timestamp = self._read_8(0)
        self._curr = 0
        self._start = 16 if self.long_size is LongSize.EIGHT else 12

        flags = self._read_long(8)
        self._size = flags & COMMIT_MASK

        if flags & MISSING_EVENTS:
            if flags & MISSING_STORED:
                self._lost_events = self._read_long(self._start + self._size)
            else:
                self._lost_events = -1
        else:
            self._lost_events = 0

        self._index = 0
        self._next = 0
        self._advance()

    def next_event(self):
        """Move to the next event; return (timestamp, payload) or None at the end."""
        if self._subbuffer is None:
            return None
        if not self._advance():
            return None
        return self._timestamp, self._payload()

    def read_event(self):
        """Return (timestamp, payload) of the current event, or None if none is left."""
        if self._subbuffer is None or self._curr >= self._size:
            return None
        return self._timestamp, self._payload()

    def read_at_offset(self, offset):
        """Reload the page and step to the record holding offset (from the page start).

        Returns (timestamp, payload) of that record, or None if no step was taken
        or the page ended first.
        """
        if self._subbuffer is None:
            return None
        offset = 0 if offset < self._start else offset - self._start
        self.load_subbuffer(self._subbuffer)
        data = None
        while self._curr < offset:
            data = self.next_event()
            if data is None:
                break
        return data

    def set_old_format(self):
        """Parse pages in the format of 2.6.30 and earlier kernels."""
        self._old_format = True

    def event_size(self):
        """Size of the current event's payload."""
        return self._next - self._index

    def curr_size(self):
        """Size of the current record, header and payload."""
        return self._next - self._curr

    def curr_index(self):
        """Offset of the current record from the start of the page's data."""
        return self._curr

    def curr_offset(self):
        """Offset of the current record from the start of the page."""
        return self._curr + self._start

    def missed_events(self):
        """Events lost before this page; only the first event reports them."""
        if self._curr:
            return 0
        return self._lost_events