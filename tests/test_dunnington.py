import pytest

from rasdecode.dunnington import dunnington_decode_model
from rasdecode.event import MceEvent


def _decode(status):
    event = MceEvent(status=status)
    dunnington_decode_model(event)
    return event


def test_bus_parity_error():
    event = _decode(0xE0F | (1 << 16))
    assert "Parity error detected during FSB request phase" in event.error_msg


def test_bus_null_field_is_silent():
    assert _decode(0xE0F | (1 << 17)).error_msg == ""


def test_front_error():
    event = _decode(0x400 | (0x5 << 16))
    assert event.error_msg == "Inclusion error from FSB"


def test_internal_error_table():
    event = _decode(0x400 | (0x0400 << 16))
    assert event.error_msg == (
        "Intel Cache Safe Technology Queue full error\n"
        "or disabled ways in a set overflow"
    )


def test_internal_error_unknown_value():
    assert _decode(0x400 | (0x0A00 << 16)).error_msg == "<8:a>"


@pytest.mark.parametrize(
    "mca, text",
    [
        (0xC002, "Correctable ECC event on outgoing core 0 data"),
        (0xE008, "Uncorrectable ECC event on outgoing core 2 data"),
    ],
)
def test_ecc_events(mca, text):
    assert text in _decode(0x400 | (mca << 16)).error_msg


def test_other_codes_not_decoded():
    assert _decode(0x0123 | (1 << 16)).error_msg == ""