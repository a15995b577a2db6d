"""Machine check event record and bit helpers shared by the decoders."""

from dataclasses import dataclass

MCI_STATUS_VAL = 1 << 63
MCI_STATUS_OVER = 1 << 62
MCI_STATUS_UC = 1 << 61
MCI_STATUS_EN = 1 << 60
MCI_STATUS_MISCV = 1 << 59
MCI_STATUS_ADDRV = 1 << 58
MCI_STATUS_PCC = 1 << 57
MCI_STATUS_TCC = 1 << 55
MCI_STATUS_DEFERRED = 1 << 44
MCI_STATUS_POISON = 1 << 43

MCG_STATUS_RIPV = 1 << 0
MCG_STATUS_EIPV = 1 << 1
MCG_STATUS_MCIP = 1 << 2

MCI_THRESHOLD_OVER = 1 << 48

MCE_EXTENDED_BANK = 128

MESSAGE_FIELDS = frozenset(
    {
        "bank_name",
        "error_msg",
        "mcgstatus_msg",
        "mcistatus_msg",
        "mcastatus_msg",
        "mc_location",
    }
)


@dataclass
class MceEvent:
    """One machine check record with the text produced while decoding it."""

    bank: int = 0
    status: int = 0
    misc: int = 0
    mcgstatus: int = 0
    ipid: int = 0
    synd: int = 0
    ip: int = 0
    bank_name: str = ""
    error_msg: str = ""
    mcgstatus_msg: str = ""
    mcistatus_msg: str = ""
    mcastatus_msg: str = ""
    mc_location: str = ""

    def add_message(self, target, text):
        """Append text to a message field, separated from earlier text by a space."""
        if target not in MESSAGE_FIELDS:
            raise ValueError(f"unknown message field: {target!r}")
        current = getattr(self, target)
        setattr(self, target, f"{current} {text}" if current else text)


def extract(value, start, end):
    """Return bits start..end (inclusive) of value."""
    if start < 0 or end < start:
        raise ValueError(f"invalid bit range {start}..{end}")
    return (value >> start) & ((1 << (end - start + 1)) - 1)


def test_prefix(nr, value):
    """True when the bits of value above bit nr are exactly 1."""
    return (value >> nr) == 1