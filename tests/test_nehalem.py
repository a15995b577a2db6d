from rasdecode.event import MCI_STATUS_MISCV, MceEvent
from rasdecode.nehalem import nehalem_decode_model, xeon75xx_decode_model


def test_qpi_status_bit():
    event = MceEvent(status=0x0800 | (1 << 16))
    nehalem_decode_model(event)
    assert "QPI header had bad parity" in event.error_msg
    assert event.mc_location == ""


def test_qpi_misc_decoded_only_when_valid():
    misc = 1 << 24
    valid = MceEvent(status=0x0800 | MCI_STATUS_MISCV, misc=misc)
    nehalem_decode_model(valid)
    assert "QPI Interleave/Head Indication Bit (IIB)" in valid.error_msg
    assert "QPI Requestor/Home Node ID (RHNID)" in valid.error_msg

    invalid = MceEvent(status=0x0800, misc=misc)
    nehalem_decode_model(invalid)
    assert "QPI Interleave/Head Indication Bit (IIB)" not in invalid.error_msg


def test_internal_error_code():
    event = MceEvent(status=0x0001 | (0x3 << 24))
    nehalem_decode_model(event)
    assert "Reset firmware did not complete" in event.error_msg


def test_internal_reserved_numbers():
    event = MceEvent(status=0x0001 | (0xFF << 16))
    nehalem_decode_model(event)
    assert "Internal machine check status reserved 16..23" in event.error_msg


def test_memory_status_and_location():
    misc = (1 << 16) | (2 << 18)
    event = MceEvent(status=0x0080 | (1 << 16) | MCI_STATUS_MISCV, misc=misc)
    nehalem_decode_model(event)
    assert "Memory read ECC error" in event.error_msg
    assert "Memory corrected error count (CORE_ERR_CNT)" in event.error_msg
    assert "Memory ECC syndrome" in event.error_msg
    assert event.mc_location == "channel=2, dimm=1"


def test_memory_without_misc_has_no_location():
    event = MceEvent(status=0x0080 | (1 << 17), misc=(3 << 16))
    nehalem_decode_model(event)
    assert "Memory ECC error occurred during scrub" in event.error_msg
    assert "Memory ECC syndrome" not in event.error_msg
    assert event.mc_location == ""


def test_xeon75xx_internal_only():
    internal = MceEvent(status=0x0001 | (0x8 << 24))
    xeon75xx_decode_model(internal)
    assert "Received an invalid CMPD" in internal.error_msg

    memory = MceEvent(status=0x0080 | (1 << 16) | MCI_STATUS_MISCV)
    xeon75xx_decode_model(memory)
    assert memory.error_msg == ""
    assert memory.mc_location == ""