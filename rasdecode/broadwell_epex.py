"""Decoder for Broadwell EP/EX machine check events."""

from rasdecode.event import MCI_STATUS_UC, extract, test_prefix
from rasdecode.fields import decode_bitfield, sbitfield, table_field

_PCU_1 = {
    0x00: "No Error",
    0x09: "MC_MESSAGE_CHANNEL_TIMEOUT",
    0x0D: "MC_IMC_FORCE_SR_S3_TIMEOUT",
    0x0E: "MC_CPD_UNCPD_SD_TIMEOUT",
    0x13: "MC_DMI_TRAINING_TIMEOUT",
    0x15: "MC_DMI_CPU_RESET_ACK_TIMEOUT",
    0x1E: "MC_VR_ICC_MAX_LT_FUSED_ICC_MAX",
    0x25: "MC_SVID_COMMAN_TIMEOUT",
    0x29: "MC_VR_VOUT_MAC_LT_FUSED_SVID",
    0x2B: "MC_PKGC_WATCHDOG_HANG_CBZ_DOWN",
    0x2C: "MC_PKGC_WATCHDOG_HANG_CBZ_UP",
    0x39: "MC_PKGC_WATCHDOG_HANG_C3_UP_SF",
    0x44: "MC_CRITICAL_VR_FAILED",
    0x45: "MC_ICC_MAX_NOTSUPPORTED",
    0x46: "MC_VID_RAMP_DOWN_FAILED",
    0x47: "MC_EXCL_MODE_NO_PMREQ_CMP",
    0x48: "MC_SVID_READ_REG_ICC_MAX_FAILED",
    0x49: "MC_SVID_WRITE_REG_VOUT_MAX_FAILED",
    0x4B: "MC_BOOT_VID_TIMEOUT_DRAM_0",
    0x4C: "MC_BOOT_VID_TIMEOUT_DRAM_1",
    0x4D: "MC_BOOT_VID_TIMEOUT_DRAM_2",
    0x4E: "MC_BOOT_VID_TIMEOUT_DRAM_3",
    0x4F: "MC_SVID_COMMAND_ERROR",
    0x52: "MC_FIVR_CATAS_OVERVOL_FAULT",
    0x53: "MC_FIVR_CATAS_OVERCUR_FAULT",
    0x57: "MC_SVID_PKGC_REQUEST_FAILED",
    0x58: "MC_SVID_IMON_REQUEST_FAILED",
    0x59: "MC_SVID_ALERT_REQUEST_FAILED",
    0x60: "MC_INVALID_PKGS_REQ_PCH",
    0x61: "MC_INVALID_PKGS_REQ_QPI",
    0x62: "MC_INVALID_PKGS_RSP_QPI",
    0x63: "MC_INVALID_PKGS_RSP_PCH",
    0x64: "MC_INVALID_PKG_STATE_CONFIG",
    0x67: "MC_HA_IMC_RW_BLOCK_ACK_TIMEOUT",
    0x68: "MC_IMC_RW_SMBUS_TIMEOUT",
    0x69: "MC_HA_FAILSTS_CHANGE_DETECTED",
    0x6A: "MC_MSGCH_PMREQ_CMP_TIMEOUT",
    0x70: "MC_WATCHDOG_TIMEOUT_PKGC_SLAVE",
    0x71: "MC_WATCHDOG_TIMEOUT_PKGC_MASTER",
    0x72: "MC_WATCHDOG_TIMEOUT_PKGS_MASTER",
    0x7C: "MC_BIOS_RST_CPL_INVALID_SEQ",
    0x7D: "MC_MORE_THAN_ONE_TXT_AGENT",
    0x81: "MC_RECOVERABLE_DIE_THERMAL_TOO_HOT",
}

_PCU_MC4 = (table_field(24, _PCU_1),)

_QPI = {
    0x02: "Intel QPI physical layer detected drift buffer alarm",
    0x03: "Intel QPI physical layer detected latency buffer rollover",
    0x10: "Intel QPI link layer detected control error from R3QPI",
    0x11: "Rx entered LLR abort state on CRC error",
    0x12: "Unsupported or undefined packet",
    0x13: "Intel QPI link layer control error",
    0x15: "RBT used un-initialized value",
    0x20: "Intel QPI physical layer detected a QPI in-band reset but aborted initialization",
    0x21: "Link failover data self healing",
    0x22: "Phy detected in-band reset (no width change)",
    0x23: "Link failover clock failover",
    0x30: "Rx detected CRC error - successful LLR after Phy re-init",
    0x31: "Rx detected CRC error - successful LLR wihout Phy re-init",
}

_QPI_MC = (table_field(16, _QPI),)

_MEMCTRL_MC9 = (
    sbitfield(16, "DDR3 address parity error"),
    sbitfield(17, "Uncorrected HA write data error"),
    sbitfield(18, "Uncorrected HA data byte enable error"),
    sbitfield(19, "Corrected patrol scrub error"),
    sbitfield(20, "Uncorrected patrol scrub error"),
    sbitfield(21, "Corrected spare error"),
    sbitfield(22, "Uncorrected spare error"),
    sbitfield(24, "iMC write data buffer parity error"),
    sbitfield(25, "DDR4 command address parity error"),
)

_UBOX_ERRORS = {
    0x402: "Internal errors ",
    0x403: "Internal errors ",
    0x406: "Intel TXT errors ",
    0x407: "Other UBOX Internal errors ",
}

_QPI_BANKS = frozenset({5, 20, 21})
_IMC_BANKS = range(9, 17)


def _memory_location(event):
    status = event.status
    if ((status & 0xFFFF) >> 7) != 1:
        return
    # Only corrected extended errors from an iMC bank carry a location.
    if (
        event.bank not in _IMC_BANKS
        or status & MCI_STATUS_UC
        or not test_prefix(7, status & 0xEFFF)
    ):
        return

    channel = extract(status, 0, 3)
    if channel == 0xF:
        return
    event.add_message("mc_location", f"memory_channel={channel}")

    misc = event.misc
    if not extract(misc, 62, 62):
        return
    rank0 = extract(misc, 46, 50)
    if extract(misc, 63, 63):
        event.add_message("mc_location", f"ranks={rank0} and {extract(misc, 51, 55)}")
    else:
        event.add_message("mc_location", f"rank={rank0}")


def broadwell_epex_decode_model(event):
    """Decode the model specific part of a Broadwell EP/EX event in place."""
    status = event.status

    if event.bank == 4:
        text = _UBOX_ERRORS.get(extract(status, 0, 15) & ~(1 << 12))
        if text:
            event.add_message("mcastatus_msg", text)
        if extract(status, 16, 19):
            event.add_message("mcastatus_msg", "PCU internal error ")
        decode_bitfield(event, status, _PCU_MC4)
    elif event.bank in _QPI_BANKS:
        event.add_message("mcastatus_msg", "QPI: ")
        decode_bitfield(event, status, _QPI_MC)
    elif event.bank in _IMC_BANKS:
        event.add_message("mcastatus_msg", "MemCtrl: ")
        decode_bitfield(event, status, _MEMCTRL_MC9)

    _memory_location(event)