"""Decoder for AMD K8 machine check events."""

from rasdecode.event import MCE_EXTENDED_BANK, MCI_THRESHOLD_OVER

K8_MCE_THRESHOLD_BASE = MCE_EXTENDED_BANK + 1
K8_MCE_THRESHOLD_TOP = K8_MCE_THRESHOLD_BASE + 6 * 9

_THRESHOLD_DRAM_ECC = 4 * 9 + 0
_THRESHOLD_FBDIMM = 4 * 9 + 3

_K8_BANK = (
    "data cache",
    "instruction cache",
    "bus unit",
    "load/store unit",
    "northbridge",
    "fixed-issue reoder",
)

_K8_THRESHOLD = (
    ("Unknow threshold counter",) * _THRESHOLD_DRAM_ECC
    + (
        "MC4_MISC0 DRAM threshold",
        "MC4_MISC1 Link threshold",
        "MC4_MISC2 L3 Cache threshold",
        "MC4_MISC3 FBDIMM threshold",
    )
    + ("Unknown threshold counter",)
    * (K8_MCE_THRESHOLD_TOP - K8_MCE_THRESHOLD_BASE - _THRESHOLD_FBDIMM - 1)
)

_TRANSACTION = ("instruction", "data", "generic", "reserved")
_CACHE_LEVEL = ("0", "1", "2", "generic")
_MEM_TRANSACTION = (
    "generic error", "generic read", "generic write", "data read",
    "data write", "instruction fetch", "prefetch", "evict", "snoop",
) + ("?",) * 7
_PARTICIPATION = (
    "local node origin", "local node response",
    "local node observed", "generic participation",
)
_TIMEOUT = ("request didn't time out", "request timed out")
_MEMORY_IO = ("memory", "res.", "i/o", "generic")
_NB_EXTENDED_ERROR = (
    "RAM ECC error",
    "CRC error",
    "Sync error",
    "Master abort",
    "Target abort",
    "GART error",
    "RMW error",
    "Watchdog error",
    "RAM Chipkill ECC error",
    "DEV Error",
    "Link Data Error",
    "Link Protocol Error",
    "NB Array Error",
    "DRAM Parity Error",
    "Link Retry",
    "Tablew Walk Data Error",
    "L3 Cache Data Error",
    "L3 Cache Tag Error",
    "L3 Cache LRU Error",
)

# Descriptions of bits 32..63 of the status register, indexed from bit 32.
_HIGH_BITS = {
    31: "valid",
    30: "error overflow (multiple errors)",
    29: "error uncorrected",
    28: "error enable",
    27: "misc error valid",
    26: "error address valid",
    25: "processor context corrupt",
    24: "res24",
    23: "res23",
    14: "corrected ecc error",
    13: "uncorrected ecc error",
    12: "res12",
    11: "L3 subcache in error bit 1",
    10: "L3 subcache in error bit 0",
    9: "sublink or DRAM channel",
    8: "error found by scrub",
    3: "err cpu3",
    2: "err cpu2",
    1: "err cpu1",
    0: "err cpu0",
}
_IGNORED_HIGH_BITS = frozenset({31, 28, 26})


def _high_bits_text(status):
    names = [
        _HIGH_BITS.get(bit, f"BIT{bit + 32}")
        for bit in range(32)
        if bit not in _IGNORED_HIGH_BITS and (status >> (bit + 32)) & 1
    ]
    return ", ".join(names)


def _exterrcode(status):
    return (status >> 16) & 0x0F


def _decode_generic_errcode(event):
    status = event.status
    code = status & 0xFFFF

    high = _high_bits_text(status)
    if high:
        event.add_message("error_msg", f"({high})")

    if (code & 0xFFF0) == 0x0010:
        event.add_message(
            "error_msg",
            f"LB error '{_TRANSACTION[(code >> 2) & 3]} transaction, "
            f"level {_CACHE_LEVEL[code & 3]}'",
        )
    elif (code & 0xFF00) == 0x0100:
        event.add_message(
            "error_msg",
            f"memory/cache error '{_MEM_TRANSACTION[(code >> 4) & 0xF]} mem transaction, "
            f"{_TRANSACTION[(code >> 2) & 3]} transaction, level {_CACHE_LEVEL[code & 3]}'",
        )
    elif (code & 0xF800) == 0x0800:
        event.add_message(
            "error_msg",
            f"bus error '{_PARTICIPATION[(code >> 9) & 3]}, {_TIMEOUT[(code >> 8) & 1]}: "
            f"{_MEM_TRANSACTION[(code >> 4) & 0xF]} mem transaction, "
            f"{_MEMORY_IO[(code >> 2) & 3]} access, level {_CACHE_LEVEL[code & 3]}'",
        )


def _tlb_parity(event):
    if (event.status & 0xFFF0) == 0x0010:
        kind = "physical" if _exterrcode(event.status) == 0 else "virtual"
        event.add_message("error_msg", f"TLB parity error in {kind} array")


def _decode_dc(event):
    status = event.status
    if status & (3 << 45):
        event.add_message(
            "error_msg", f"Data cache ECC error (syndrome {(status >> 47) & 0xFF:x})"
        )
        if status & (1 << 40):
            event.add_message("error_msg", "found by scrubber")
    _tlb_parity(event)


def _decode_ic(event):
    if event.status & (3 << 45):
        event.add_message("error_msg", "Instruction cache ECC error")
    _tlb_parity(event)


def _decode_bu(event):
    if event.status & (3 << 45):
        event.add_message("error_msg", "L2 cache ECC error")
    kind = "Bus or cache" if _exterrcode(event.status) == 0 else "Cache tag"
    event.add_message("error_msg", f"{kind} array error")


def _decode_nb(event):
    """Decode a northbridge error; return True for memory errors."""
    status = event.status
    exterr = _exterrcode(status)
    event.add_message("error_msg", f"Northbridge {_NB_EXTENDED_ERROR[exterr]}")

    if exterr == 0:
        event.add_message("error_msg", f"ECC syndrome = {(status >> 47) & 0xFF:x}")
        return True
    if exterr == 8:
        syndrome = (((status >> 24) & 0xFF) << 8) | ((status >> 47) & 0xFF)
        event.add_message("error_msg", f"Chipkill ECC syndrome = {syndrome:x}")
        return True
    if exterr in (1, 2, 3, 4, 6):
        event.add_message("error_msg", f"link number = {(status >> 36) & 0xF:x}")
    return False


def _decode_threshold(event):
    if event.misc & MCI_THRESHOLD_OVER:
        event.add_message("error_msg", "Threshold error count overflow")


def _set_bank_name(event):
    bank = event.bank
    if 0 <= bank < len(_K8_BANK):
        name = _K8_BANK[bank]
    elif K8_MCE_THRESHOLD_BASE <= bank < K8_MCE_THRESHOLD_TOP:
        name = _K8_THRESHOLD[bank - K8_MCE_THRESHOLD_BASE]
    else:
        return
    event.add_message("bank_name", f"{name} (bank={bank})")


def parse_amd_k8_event(event):
    """Decode a K8 event in place.

    Returns False for GART errors, which are not handled, True otherwise.
    """
    status = event.status
    if event.bank == 4 and _exterrcode(status) == 5 and status & (1 << 61):
        return False

    _set_bank_name(event)

    memory_error = False
    bank = event.bank
    if bank == 0:
        _decode_dc(event)
        _decode_generic_errcode(event)
    elif bank == 1:
        _decode_ic(event)
        _decode_generic_errcode(event)
    elif bank == 2:
        _decode_bu(event)
        _decode_generic_errcode(event)
    elif bank in (3, 5):
        _decode_generic_errcode(event)
    elif bank == 4:
        memory_error = _decode_nb(event)
        _decode_generic_errcode(event)
    elif K8_MCE_THRESHOLD_BASE <= bank <= K8_MCE_THRESHOLD_TOP:
        _decode_threshold(event)
    else:
        event.error_msg = "Don't know how to decode this bank"

    # The instruction pointer is meaningless for memory errors.
    if memory_error:
        event.ip = 0
    return True