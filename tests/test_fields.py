from rasdecode.event import MceEvent
from rasdecode.fields import (
    decode_bitfield,
    decode_numfield,
    null_field,
    numfield,
    sbitfield,
    table_field,
)


def test_sbitfield_reports_set_bit():
    event = MceEvent()
    decode_bitfield(event, 1 << 16, [sbitfield(16, "Memory read ECC error")])
    assert event.error_msg == "Memory read ECC error"


def test_sbitfield_silent_when_clear():
    event = MceEvent()
    decode_bitfield(event, 1 << 17, [sbitfield(16, "Memory read ECC error")])
    assert event.error_msg == ""


def test_several_bits_in_order():
    fields = [
        sbitfield(16, "QPI header had bad parity"),
        sbitfield(18, "Number of QPI retries exceeded"),
    ]
    event = MceEvent()
    decode_bitfield(event, (1 << 16) | (1 << 18), fields)
    assert event.error_msg.split(" Number")[0] == "QPI header had bad parity"
    assert event.error_msg.endswith("Number of QPI retries exceeded")


def test_table_field_from_mapping():
    names = {0x0: "No Error", 0x3: "Reset firmware did not complete"}
    event = MceEvent()
    decode_bitfield(event, 0x3 << 24, [table_field(24, names)])
    assert event.error_msg == "Reset firmware did not complete"


def test_table_field_from_sequence_round_trip():
    names = ["zero", "one", "two", "three"]
    field = table_field(8, names)
    for index, name in enumerate(names):
        event = MceEvent()
        decode_bitfield(event, index << 8, [field])
        assert event.error_msg == name


def test_table_field_unknown_value_is_shown_raw():
    event = MceEvent()
    decode_bitfield(event, 1 << 4, [table_field(4, {0: "zero", 3: "three"})])
    assert event.error_msg == "<4:1>"


def test_table_field_unknown_zero_is_silent():
    event = MceEvent()
    decode_bitfield(event, 0, [table_field(4, {3: "three"})])
    assert event.error_msg == ""


def test_null_field_never_reports():
    event = MceEvent()
    decode_bitfield(event, (1 << 17) | (1 << 23), [null_field(17), null_field(23)])
    assert event.error_msg == ""


def test_numfield_decimal_when_nonzero():
    event = MceEvent()
    decode_numfield(event, 200, [numfield(0, 7, "count")])
    assert event.error_msg == "count: 200"


def test_numfield_hexadecimal():
    event = MceEvent()
    decode_numfield(event, 0xFF << 8, [numfield(8, 15, "id", True)])
    assert event.error_msg == "id: ff"


def test_numfield_zero_skipped_unless_forced():
    event = MceEvent()
    decode_numfield(
        event,
        0,
        [numfield(0, 7, "skipped"), numfield(16, 17, "Memory DIMM ID of error", False, True)],
    )
    assert event.error_msg == "Memory DIMM ID of error: 0"