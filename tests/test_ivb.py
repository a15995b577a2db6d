import pytest

from rasdecode.event import MCI_STATUS_UC, MceEvent
from rasdecode.ivb import ivb_decode_model


def test_pcu_fields():
    event = MceEvent(bank=4, status=(3 << 16) | (0x44 << 24))
    ivb_decode_model(event, False)
    assert "Bad_OpCode" in event.error_msg
    assert "MC_CRITICAL_VR_FAILED" in event.error_msg
    assert event.mc_location == ""


@pytest.mark.parametrize("is_epex, expected", [(True, "QPI"), (False, "")])
def test_bank5_name_only_on_epex(is_epex, expected):
    event = MceEvent(bank=5)
    ivb_decode_model(event, is_epex)
    assert event.bank_name == expected


def test_memctrl_field():
    event = MceEvent(bank=9, status=0x008 << 16)
    ivb_decode_model(event, False)
    assert "Corrected patrol scrub error" in event.error_msg


def test_memory_location_with_ranks():
    misc = (1 << 62) | (1 << 63) | (5 << 46) | (7 << 51)
    event = MceEvent(bank=10, status=0x80 | 2, misc=misc)
    ivb_decode_model(event, False)
    assert event.mc_location == "memory_channel=2 ranks=5 and 7"


def test_memory_location_without_ranks_reports_unset():
    event = MceEvent(bank=16, status=0x80 | 1)
    ivb_decode_model(event, False)
    assert event.mc_location == "memory_channel=1 ranks=-1 and -1"


@pytest.mark.parametrize(
    "bank, status",
    [
        (9, 0x80 | 2 | MCI_STATUS_UC),
        (9, 0x80 | 0xF),
        (17, 0x80 | 2),
        (8, 0x80 | 2),
        (9, 0x0100 | 2),
    ],
)
def test_no_location(bank, status):
    event = MceEvent(bank=bank, status=status, misc=1 << 62)
    ivb_decode_model(event, True)
    assert event.mc_location == ""