"""
Error mapping for HCIBUS.

Maps the numeric status codes carried by failure replies to the human-readable
string sent alongside them.  Three disjoint ranges are distinguished by the
offset bits: system errors (errno, rendered by the platform), adapter protocol
errors and HCI controller status codes.
"""

import os
from typing import Dict, Optional

from hcibus.bt_ref.constants import (
    BLUEZ_EDBUS_CONN_NOT_FOUND,
    BLUEZ_EDBUS_NO_MEM,
    BLUEZ_EDBUS_NOT_IMPLEMENTED,
    BLUEZ_EDBUS_OFFSET,
    BLUEZ_EDBUS_RECORD_NOT_FOUND,
    BLUEZ_EDBUS_UNKNOWN_METHOD,
    BLUEZ_EDBUS_UNKNOWN_PATH,
    BLUEZ_EDBUS_WRONG_PARAM,
    BLUEZ_EDBUS_WRONG_SIGNATURE,
    BLUEZ_ESYSTEM_OFFSET,
)

# Error categories
ERR_CAT_SYSTEM = "system"
ERR_CAT_ADAPTER = "adapter"
ERR_CAT_HCI = "hci"

DBUS_ERROR_MAP: Dict[int, str] = {
    BLUEZ_EDBUS_UNKNOWN_METHOD: "Method not found",
    BLUEZ_EDBUS_WRONG_SIGNATURE: "Wrong method signature",
    BLUEZ_EDBUS_WRONG_PARAM: "Invalid parameters",
    BLUEZ_EDBUS_RECORD_NOT_FOUND: "No record found",
    BLUEZ_EDBUS_NO_MEM: "No memory",
    BLUEZ_EDBUS_CONN_NOT_FOUND: "Connection not found",
    BLUEZ_EDBUS_UNKNOWN_PATH: "Unknown D-BUS path",
    BLUEZ_EDBUS_NOT_IMPLEMENTED: "Method not implemented",
}

HCI_ERROR_MAP: Dict[int, str] = {
    0x01: "Unknown HCI Command",
    0x02: "Unknown Connection Identifier",
    0x03: "Hardware Failure",
    0x04: "Page Timeout",
    0x05: "Authentication Failure",
    0x06: "PIN Missing",
    0x07: "Memory Capacity Exceeded",
    0x08: "Connection Timeout",
    0x09: "Connection Limit Exceeded",
    0x0A: "Synchronous Connection Limit To A Device Exceeded",
    0x0B: "ACL Connection Already Exists",
    0x0C: "Command Disallowed",
    0x0D: "Connection Rejected due to Limited Resources",
    0x0E: "Connection Rejected Due To Security Reasons",
    0x0F: "Connection Rejected due to Unacceptable BD_ADDR",
    0x10: "Connection Accept Timeout Exceeded",
    0x11: "Unsupported Feature or Parameter Value",
    0x12: "Invalid HCI Command Parameters",
    0x13: "Remote User Terminated Connection",
    0x14: "Remote Device Terminated Connection due to Low Resources",
    0x15: "Remote Device Terminated Connection due to Power Off",
    0x16: "Connection Terminated By Local Host",
    0x17: "Repeated Attempts",
    0x18: "Pairing Not Allowed",
    0x19: "Unknown LMP PDU",
    0x1A: "Unsupported Remote Feature",
    0x1B: "SCO Offset Rejected",
    0x1C: "SCO Interval Rejected",
    0x1D: "SCO Air Mode Rejected",
    0x1E: "Invalid LMP Parameters",
    0x1F: "Unspecified Error",
    0x20: "Unsupported LMP Parameter Value",
    0x21: "Role Change Not Allowed",
    0x22: "LMP Response Timeout",
    0x23: "LMP Error Transaction Collision",
    0x24: "LMP PDU Not Allowed",
    0x25: "Encryption Mode Not Acceptable",
    0x26: "Link Key Can Not be Changed",
    0x27: "Requested QoS Not Supported",
    0x28: "Instant Passed",
    0x29: "Pairing With Unit Key Not Supported",
    0x2A: "Different Transaction Collision",
    0x2C: "QoS Unacceptable Parameter",
    0x2D: "QoS Rejected",
    0x2E: "Channel Classification Not Supported",
    0x2F: "Insufficient Security",
    0x30: "Parameter Out Of Mandatory Range",
    0x32: "Role Switch Pending",
    0x34: "Reserved Slot Violation",
    0x35: "Role Switch Failed",
}


def error_category(code: int) -> str:
    """Return the error domain a status code belongs to."""
    if code & BLUEZ_ESYSTEM_OFFSET:
        return ERR_CAT_SYSTEM
    if code & BLUEZ_EDBUS_OFFSET:
        return ERR_CAT_ADAPTER
    return ERR_CAT_HCI


def error_to_str(code: int) -> Optional[str]:
    """
    Map a status code to its description.

    Args:
        code: Wire status code

    Returns:
        The description, or None when the code is not in its range's table
    """
    category = error_category(code)
    if category == ERR_CAT_SYSTEM:
        return os.strerror(code & ~BLUEZ_ESYSTEM_OFFSET)
    if category == ERR_CAT_ADAPTER:
        return DBUS_ERROR_MAP.get(code)
    return HCI_ERROR_MAP.get(code)


def describe_error(code: int) -> str:
    """Like :func:`error_to_str` but never empty-handed."""
    return error_to_str(code) or f"Unknown error 0x{code:08x}"
