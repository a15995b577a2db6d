"""Decoding of the architectural error code of AMD machine checks."""

from rasdecode.event import (
    MCI_STATUS_DEFERRED,
    MCI_STATUS_OVER,
    MCI_STATUS_PCC,
    MCI_STATUS_UC,
    MCI_STATUS_VAL,
)

_TRANSACTION = ("instruction", "data", "generic", "reserved")
_CACHE_LEVEL = ("reserved", "L1", "L2", "L3/generic")
_MEM_TRANSACTION = (
    "generic", "generic read", "generic write", "data read",
    "data write", "instruction fetch", "prefetch", "evict", "snoop",
)
_PARTICIPATION = (
    "local node origin", "local node response",
    "local node observed", "generic participation",
)
_TIMEOUT = ("request didn't time out", "request timed out")
_INTERNAL = ("reserved", "reserved", "hardware assert", "reserved")


def _tt(code):
    return _TRANSACTION[(code >> 2) & 0x3]


def _ll(code):
    return _CACHE_LEVEL[code & 0x3]


def _r4(code):
    r4 = (code >> 4) & 0xF
    return _MEM_TRANSACTION[r4] if r4 < len(_MEM_TRANSACTION) else "Wrong R4!"


def _to(code):
    return _TIMEOUT[(code >> 8) & 0x1]


def _pp(code):
    return _PARTICIPATION[(code >> 9) & 0x3]


def _uu(code):
    return _INTERNAL[(code >> 8) & 0x3]


def decode_amd_errcode(event):
    """Fill the severity and error code messages of an AMD event."""
    status = event.status
    code = status & 0xFFFF
    ecc = (status >> 45) & 0x3

    # An uncorrected error is always reported as containable.
    if status & MCI_STATUS_UC:
        event.error_msg = "Uncorrected, software containable error."
    elif status & MCI_STATUS_DEFERRED:
        event.error_msg = "Deferred error, no action required."
    else:
        event.error_msg = "Corrected error, no action required."

    if not status & MCI_STATUS_VAL:
        event.add_message("mcistatus_msg", "MCE_INVALID")
    if status & MCI_STATUS_OVER:
        event.add_message("mcistatus_msg", "Error_overflow")
    if status & MCI_STATUS_PCC:
        event.add_message("mcistatus_msg", "Processor_context_corrupt")
    if ecc:
        event.add_message("mcistatus_msg", f"{'C' if ecc == 2 else 'U'}ECC")

    if (code & 0xF4FF) == 0x0400:
        event.add_message("mcastatus_msg", f"Internal '{_uu(code)}'")
        return

    if (code & 0xFFF0) == 0x0010:
        event.add_message(
            "mcastatus_msg", f"TLB Error 'tx: {_tt(code)}, level: {_ll(code)}'"
        )
    elif (code & 0xFF00) == 0x0100:
        event.add_message(
            "mcastatus_msg",
            f"Memory Error 'mem-tx: {_r4(code)}, tx: {_tt(code)}, level: {_ll(code)}'",
        )
    elif (code & 0xF800) == 0x0800:
        event.add_message(
            "mcastatus_msg",
            f"Bus Error '{_pp(code)}, {_to(code)}, mem-tx: {_r4(code)}, level: {_ll(code)}'",
        )