"""
Helper functions shared by the adapter layers.

Address conversion, path construction, scan-mode translation and the small
lookup tables used to turn controller information into strings.
"""

from __future__ import annotations

import re
from typing import List, Optional

from hcibus.bt_ref.constants import (
    DEVICE_PATH,
    HCI_AUTH,
    HCI_DEVICE_TYPES,
    HCI_ENCRYPT,
    HCI_INIT,
    HCI_INQUIRY,
    HCI_ISCAN,
    HCI_PSCAN,
    HCI_RAW,
    HCI_RUNNING,
    HCI_SECMGR,
    MODE_CONNECTABLE,
    MODE_DISCOVERABLE,
    MODE_OFF,
    MODE_UNKNOWN,
    SCAN_DISABLED,
    SCAN_INQUIRY,
    SCAN_PAGE,
)

_BDADDR_RX = re.compile(r"^[0-9A-Fa-f]{2}(:[0-9A-Fa-f]{2}){5}$")


def is_valid_bdaddr(address: str) -> bool:
    """Return True for a colon separated six octet address string."""
    return bool(address) and bool(_BDADDR_RX.match(address))


def str2ba(address: str) -> bytes:
    """Convert ``"AA:BB:CC:DD:EE:FF"`` to the 6 little-endian bytes of a bdaddr_t."""
    if not is_valid_bdaddr(address):
        raise ValueError(f"invalid Bluetooth address: {address!r}")
    return bytes(int(octet, 16) for octet in reversed(address.split(":")))


def ba2str(bdaddr: bytes) -> str:
    """Convert the 6 little-endian bytes of a bdaddr_t to its string form."""
    if len(bdaddr) != 6:
        raise ValueError(f"bdaddr must be 6 bytes, got {len(bdaddr)}")
    return ":".join(f"{b:02X}" for b in reversed(bdaddr))


def device_path(dev_id: int) -> str:
    """Bus object path of HCI device *dev_id*."""
    return f"{DEVICE_PATH}/hci{dev_id}"


# ---------------------------------------------------------------------------
# Scan mode translation
# ---------------------------------------------------------------------------

_SCAN_TO_MODE = {
    SCAN_DISABLED: MODE_OFF,
    SCAN_PAGE: MODE_CONNECTABLE,
    SCAN_PAGE | SCAN_INQUIRY: MODE_DISCOVERABLE,
}

_MODE_TO_SCAN = {mode: scan for scan, mode in _SCAN_TO_MODE.items()}


def scan_enable_to_mode(scan_enable: int) -> int:
    """Translate the controller's scan-enable bitmask to a bus mode byte.

    Inquiry-only scanning has no bus representation and, like any other
    unrecognised combination, maps to ``MODE_UNKNOWN`` (0xFF).
    """
    return _SCAN_TO_MODE.get(scan_enable, MODE_UNKNOWN)


def mode_to_scan_enable(mode: int) -> Optional[int]:
    """Inverse of :func:`scan_enable_to_mode`; None for an invalid mode."""
    return _MODE_TO_SCAN.get(mode)


# ---------------------------------------------------------------------------
# Device information tables
# ---------------------------------------------------------------------------

DEV_FLAGS_MAP = (
    ("INIT", HCI_INIT),
    ("RUNNING", HCI_RUNNING),
    ("RAW", HCI_RAW),
    ("PSCAN", HCI_PSCAN),
    ("ISCAN", HCI_ISCAN),
    ("INQUIRY", HCI_INQUIRY),
    ("AUTH", HCI_AUTH),
    ("ENCRYPT", HCI_ENCRYPT),
    ("SECMGR", HCI_SECMGR),
)


def hci_test_bit(bit: int, flags: int) -> bool:
    return bool(flags & (1 << bit))


def dev_flags_to_list(flags: int) -> List[str]:
    """Names of the device flags set in *flags*, in table order."""
    return [name for name, bit in DEV_FLAGS_MAP if hci_test_bit(bit, flags)]


def dev_type_to_str(dev_type: int) -> str:
    # Only the low nibble carries the bus type
    return HCI_DEVICE_TYPES.get(dev_type & 0x0F, "UNKNOWN")


_HCI_VERSIONS = {
    0: "1.0b",
    1: "1.1",
    2: "1.2",
    3: "2.0",
    4: "2.1",
    5: "3.0",
    6: "4.0",
    7: "4.1",
    8: "4.2",
    9: "5.0",
    10: "5.1",
    11: "5.2",
    12: "5.3",
    13: "5.4",
}


def hci_version_to_str(version: int) -> str:
    return _HCI_VERSIONS.get(version, "Unknown")


# Bluetooth SIG company identifiers of the controller vendors seen in practice
_COMPANY_IDS = {
    0: "Ericsson Technology Licensing",
    1: "Nokia Mobile Phones",
    2: "Intel Corp.",
    3: "IBM Corp.",
    4: "Toshiba Corp.",
    5: "3Com",
    6: "Microsoft",
    7: "Lucent",
    8: "Motorola",
    9: "Infineon Technologies AG",
    10: "Cambridge Silicon Radio",
    11: "Silicon Wave",
    12: "Digianswer A/S",
    13: "Texas Instruments Inc.",
    14: "Parthus Technologies Inc.",
    15: "Broadcom Corporation",
    16: "Mitel Semiconductor",
    17: "Widcomm, Inc.",
    18: "Zeevo, Inc.",
    19: "Atmel Corporation",
    20: "Mitsubishi Electric Corporation",
    21: "RTX Telecom A/S",
    22: "KC Technology Inc.",
    23: "Newlogic",
    24: "Transilica, Inc.",
    25: "Rohde & Schwarz GmbH & Co. KG",
    26: "TTPCom Limited",
    27: "Signia Technologies, Inc.",
    28: "Conexant Systems Inc.",
    29: "Qualcomm",
    30: "Inventel",
    31: "AVM Berlin",
    32: "BandSpeed, Inc.",
    33: "Mansella Ltd",
    34: "NEC Corporation",
    35: "WavePlus Technology Co., Ltd.",
    36: "Alcatel",
    37: "Philips Semiconductors",
    38: "C Technologies",
    39: "Open Interface",
    40: "R F Micro Devices",
    41: "Hitachi Ltd",
    42: "Symbol Technologies, Inc.",
    43: "Tenovis",
    44: "Macronix International Co. Ltd.",
    45: "GCT Semiconductor",
    46: "Norwood Systems",
    47: "MewTel Technology Inc.",
    48: "ST Microelectronics",
    49: "Synopsys",
    50: "Red-M (Communications) Ltd",
    51: "Commil Ltd",
    52: "Computer Access Technology Corporation (CATC)",
    53: "Eclipse (HQ Espana) S.L.",
    54: "Renesas Technology Corp.",
    55: "Mobilian Corporation",
    56: "Terax",
    57: "Integrated System Solution Corp.",
    58: "Matsushita Electric Industrial Co., Ltd.",
    59: "Gennum Corporation",
    60: "Research In Motion",
    61: "IPextreme, Inc.",
    62: "Systems and Chips, Inc",
    63: "Bluetooth SIG, Inc",
    64: "Seiko Epson Corporation",
    65: "Integrated Silicon Solution Taiwan, Inc.",
    66: "CONWISE Technology Corporation Ltd",
    67: "PARROT SA",
    68: "Socket Communications",
    69: "Atheros Communications, Inc.",
    70: "MediaTek, Inc.",
    93: "Realtek Semiconductor Corporation",
    305: "Cypress Semiconductor",
    0xFFFF: "internal use",
}


def compid_to_str(compid: int) -> str:
    return _COMPANY_IDS.get(compid, "not assigned")
