from rasdecode.amd import decode_amd_errcode
from rasdecode.event import (
    MCG_STATUS_RIPV,
    MCI_STATUS_DEFERRED,
    MCI_STATUS_OVER,
    MCI_STATUS_PCC,
    MCI_STATUS_UC,
    MCI_STATUS_VAL,
    MceEvent,
)


def _decode(status, mcgstatus=0):
    event = MceEvent(status=status, mcgstatus=mcgstatus)
    decode_amd_errcode(event)
    return event


def test_corrected_error():
    event = _decode(MCI_STATUS_VAL)
    assert event.error_msg == "Corrected error, no action required."
    assert event.mcistatus_msg == ""


def test_invalid_status_flagged():
    event = _decode(0)
    assert event.mcistatus_msg == "MCE_INVALID"


def test_deferred_error():
    event = _decode(MCI_STATUS_VAL | MCI_STATUS_DEFERRED)
    assert event.error_msg == "Deferred error, no action required."


def test_uncorrected_is_always_containable():
    for extra, mcg in ((0, 0), (MCI_STATUS_PCC, 0), (0, MCG_STATUS_RIPV)):
        event = _decode(MCI_STATUS_VAL | MCI_STATUS_UC | extra, mcg)
        assert event.error_msg == "Uncorrected, software containable error."


def test_overflow_and_pcc_messages():
    event = _decode(MCI_STATUS_VAL | MCI_STATUS_OVER | MCI_STATUS_PCC)
    assert event.mcistatus_msg.split() == ["Error_overflow", "Processor_context_corrupt"]


def test_ecc_kinds():
    assert _decode(MCI_STATUS_VAL | (2 << 45)).mcistatus_msg == "CECC"
    assert _decode(MCI_STATUS_VAL | (1 << 45)).mcistatus_msg == "UECC"


def test_internal_error_stops_decoding():
    event = _decode(MCI_STATUS_VAL | 0x0600)
    assert event.mcastatus_msg == "Internal 'hardware assert'"


def test_tlb_error():
    event = _decode(MCI_STATUS_VAL | 0x0011)
    assert event.mcastatus_msg.startswith("TLB Error")
    assert "instruction" in event.mcastatus_msg
    assert "L1" in event.mcastatus_msg


def test_memory_error_with_bad_r4():
    event = _decode(MCI_STATUS_VAL | 0x0190)
    assert event.mcastatus_msg.startswith("Memory Error")
    assert "Wrong R4!" in event.mcastatus_msg


def test_bus_error():
    event = _decode(MCI_STATUS_VAL | 0x0800 | (1 << 8))
    assert event.mcastatus_msg.startswith("Bus Error")
    assert "local node origin" in event.mcastatus_msg
    assert "request timed out" in event.mcastatus_msg


def test_unclassified_code_leaves_mcastatus_empty():
    event = _decode(MCI_STATUS_VAL | 0x0001)
    assert event.mcastatus_msg == ""