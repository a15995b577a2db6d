"""Decoder for Dunnington machine check events."""

from rasdecode.fields import decode_bitfield, null_field, sbitfield, table_field

_BUS_STATUS = (
    sbitfield(16, "Parity error detected during FSB request phase"),
    null_field(17),
    sbitfield(20, "Hard Failure response received for a local transaction"),
    sbitfield(21, "Parity error on FSB response field detected"),
    sbitfield(22, "Parity data error on inbound data detected"),
    null_field(23),
    null_field(25),
    null_field(28),
    null_field(31),
)

_TABLE_SIZE = 0xF

_FRONT_ERRORS = {
    0x1: "Inclusion error from core 0",
    0x2: "Inclusion error from core 1",
    0x3: "Write Exclusive error from core 0",
    0x4: "Write Exclusive error from core 1",
    0x5: "Inclusion error from FSB",
    0x6: "SNP stall error from FSB",
    0x7: "Write stall error from FSB",
    0x8: "FSB Arbiter Timeout error",
    0xA: "Inclusion error from core 2",
    0xB: "Write exclusive error from core 2",
}

_INTERNAL_ERRORS = {
    0x2: "Internal timeout error",
    0x3: "Internal timeout error",
    0x4: "Intel Cache Safe Technology Queue full error\n"
    "or disabled ways in a set overflow",
    0x5: "Quiet cycle timeout error (correctable)",
}


def _sized(names):
    return tuple(names.get(index) for index in range(_TABLE_SIZE))


_INT_STATUS = (table_field(8, _sized(_INTERNAL_ERRORS)),)
_FRONT_STATUS = (table_field(0, _sized(_FRONT_ERRORS)),)

_CECC = (
    sbitfield(1, "Correctable ECC event on outgoing core 0 data"),
    sbitfield(2, "Correctable ECC event on outgoing core 1 data"),
    sbitfield(3, "Correctable ECC event on outgoing core 2 data"),
)

_UECC = (
    sbitfield(1, "Uncorrectable ECC event on outgoing core 0 data"),
    sbitfield(2, "Uncorrectable ECC event on outgoing core 1 data"),
    sbitfield(3, "Uncorrectable ECC event on outgoing core 2 data"),
)


def _decode_internal(event, status):
    mca = (status >> 16) & 0xFFFF
    if (mca & 0xFFF0) == 0:
        decode_bitfield(event, mca, _FRONT_STATUS)
    elif (mca & 0xF0FF) == 0:
        decode_bitfield(event, mca, _INT_STATUS)
    elif (mca & 0xFFF0) == 0xC000:
        decode_bitfield(event, mca, _CECC)
    elif (mca & 0xFFF0) == 0xE000:
        decode_bitfield(event, mca, _UECC)


def dunnington_decode_model(event):
    """Decode the model specific part of a Dunnington event in place."""
    status = event.status
    code = status & 0xFFFF
    if code == 0xE0F:
        decode_bitfield(event, status, _BUS_STATUS)
    elif code == 1 << 10:
        _decode_internal(event, status)