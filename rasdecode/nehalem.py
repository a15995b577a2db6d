"""Decoder for Nehalem and Xeon 75xx machine check events."""

from rasdecode.event import MCI_STATUS_MISCV, extract
from rasdecode.fields import (
    decode_bitfield,
    decode_numfield,
    numfield,
    sbitfield,
    table_field,
)

_QPI_STATUS = (
    sbitfield(16, "QPI header had bad parity"),
    sbitfield(17, "QPI Data packet had bad parity"),
    sbitfield(18, "Number of QPI retries exceeded"),
    sbitfield(19, "Received QPI data packet that was poisoned by sender"),
    sbitfield(20, "QPI reserved 20"),
    sbitfield(21, "QPI reserved 21"),
    sbitfield(22, "QPI received unsupported message encoding"),
    sbitfield(23, "QPI credit type is not supported"),
    sbitfield(24, "Sender sent too many QPI flits to the receiver"),
    sbitfield(25, "QPI Sender sent a failed response to receiver"),
    sbitfield(26, "Clock jitter detected in internal QPI clocking"),
)

_QPI_MISC = (
    sbitfield(14, "QPI misc reserved 14"),
    sbitfield(15, "QPI misc reserved 15"),
    sbitfield(24, "QPI Interleave/Head Indication Bit (IIB)"),
)

_QPI_NUMBERS = (
    numfield(0, 7, "QPI class and opcode of packet with error", hexadecimal=True),
    numfield(8, 13, "QPI Request Transaction ID", hexadecimal=True),
    numfield(16, 18, "QPI Requestor/Home Node ID (RHNID)", force=True),
    numfield(19, 23, "QPI miscreserved 19-23", hexadecimal=True),
)

_MEMORY_STATUS = (
    sbitfield(16, "Memory read ECC error"),
    sbitfield(17, "Memory ECC error occurred during scrub"),
    sbitfield(18, "Memory write parity error"),
    sbitfield(19, "Memory error in half of redundant memory"),
    sbitfield(20, "Memory reserved 20"),
    sbitfield(21, "Memory access out of range"),
    sbitfield(22, "Memory internal RTID invalid"),
    sbitfield(23, "Memory address parity error"),
    sbitfield(24, "Memory byte enable parity error"),
)

_MEMORY_STATUS_NUMBERS = (
    numfield(25, 37, "Memory MISC reserved 25..37", hexadecimal=True),
    numfield(38, 52, "Memory corrected error count (CORE_ERR_CNT)", force=True),
    numfield(53, 56, "Memory MISC reserved 53..56", hexadecimal=True),
)

_MEMORY_MISC_NUMBERS = (
    numfield(0, 7, "Memory transaction Tracker ID (RTId)", hexadecimal=True, force=True),
    numfield(16, 17, "Memory DIMM ID of error", force=True),
    numfield(18, 19, "Memory channel ID of error", force=True),
    numfield(32, 63, "Memory ECC syndrome", hexadecimal=True, force=True),
)

_INTERNAL_ERRORS = {
    0x0: "No Error",
    0x3: "Reset firmware did not complete",
    0x8: "Received an invalid CMPD",
    0xA: "Invalid Power Management Request",
    0xD: "Invalid S-state transition",
    0x11: "VID controller does not match POC controller selected",
    0x1A: "MSID from POC does not match CPU MSID",
}

_INTERNAL_ERROR_STATUS = (table_field(24, _INTERNAL_ERRORS),)

_INTERNAL_ERROR_NUMBERS = (
    numfield(16, 23, "Internal machine check status reserved 16..23", hexadecimal=True),
    numfield(32, 56, "Internal machine check status reserved 32..56", hexadecimal=True),
)


def _decode_internal(event, status):
    decode_bitfield(event, status, _INTERNAL_ERROR_STATUS)
    decode_numfield(event, status, _INTERNAL_ERROR_NUMBERS)


def nehalem_decode_model(event):
    """Decode the model specific part of a Nehalem event in place."""
    status = event.status
    misc = event.misc
    mca = status & 0xFFFF
    misc_valid = bool(status & MCI_STATUS_MISCV)

    if (mca >> 11) == 1:
        decode_bitfield(event, status, _QPI_STATUS)
        if misc_valid:
            decode_numfield(event, misc, _QPI_NUMBERS)
            decode_bitfield(event, misc, _QPI_MISC)
    elif mca == 0x0001:
        _decode_internal(event, status)
    elif (mca >> 7) == 1:
        decode_bitfield(event, status, _MEMORY_STATUS)
        decode_numfield(event, status, _MEMORY_STATUS_NUMBERS)
        if misc_valid:
            decode_numfield(event, misc, _MEMORY_MISC_NUMBERS)

    if (mca >> 7) == 1 and misc_valid:
        channel = extract(misc, 18, 19)
        dimm = extract(misc, 16, 17)
        event.add_message("mc_location", f"channel={channel}, dimm={dimm}")


def xeon75xx_decode_model(event):
    """Decode a Xeon 75xx event; only internal core errors are supported."""
    status = event.status
    if (status & 0xFFFF) == 0x0001:
        _decode_internal(event, status)