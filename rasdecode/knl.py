"""Decoder for Knights Landing machine check events."""

from rasdecode.event import MCI_STATUS_UC, extract, test_prefix
from rasdecode.fields import decode_bitfield, sbitfield

_MEMCTRL_MC7 = (
    sbitfield(16, "CA Parity error"),
    sbitfield(17, "Internal Parity error except WDB"),
    sbitfield(18, "Internal Parity error from WDB"),
    sbitfield(19, "Correctable Patrol Scrub"),
    sbitfield(20, "Uncorrectable Patrol Scrub"),
    sbitfield(21, "Spare Correctable Error"),
    sbitfield(22, "Spare UC Error"),
    sbitfield(23, "CORR Chip fail even MC only, 4 bit burst error EDC only"),
)

_UBOX_ERRORS = {
    0x402: "PCU Internal Errors",
    0x403: "VCU Internal Errors",
    0x407: "Other UBOX Internal Errors",
}

_REQUESTS = {
    0x0: "Undefined request on channel",
    0x1: "Read on channel",
    0x2: "Write on channel",
    0x3: "CA error on channel",
    0x4: "Scrub error on channel",
}

_MC_BANKS = range(7, 17)


def _channel(event, status):
    # Bank 15 covers the second set of three channels.
    return extract(status, 0, 3) + (3 if event.bank == 15 else 0)


def knl_decode_model(event):
    """Decode the model specific part of a Knights Landing event in place."""
    status = event.status
    mca = status & 0xFFFF

    if event.bank == 5:
        text = _UBOX_ERRORS.get(extract(status, 0, 15))
        if text:
            event.add_message("mcastatus_msg", text)
    elif event.bank in _MC_BANKS:
        if extract(status, 0, 15) == 0x5:
            event.add_message("mcastatus_msg", "Internal Parity error")
        else:
            request = _REQUESTS.get(extract(status, 4, 7))
            if request:
                event.add_message(
                    "mcastatus_msg", f"{request} {_channel(event, status)}"
                )
        decode_bitfield(event, status, _MEMCTRL_MC7)

    if (mca >> 7) != 1:
        return
    if (
        event.bank not in _MC_BANKS
        or status & MCI_STATUS_UC
        or not test_prefix(7, status & 0xEFFF)
    ):
        return

    if extract(status, 0, 3) == 0xF:
        event.add_message("mc_location", "memory_channel=unspecified")
        return

    event.add_message("mc_location", f"memory_channel={_channel(event, status)}")

    rank0 = extract(event.misc, 46, 50) if extract(event.misc, 62, 62) else None
    rank1 = extract(event.misc, 51, 55) if extract(event.misc, 63, 63) else None
    if rank0 is not None and rank1 is not None:
        event.add_message("mc_location", f"ranks={rank0} and {rank1}")
    elif rank0 is not None:
        event.add_message("mc_location", f"rank={rank0}")