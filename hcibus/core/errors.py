#!/usr/bin/python3

"""Core error classes for HCIBUS.

Every error that can end up in a bus reply carries a numeric ``code`` drawn
from one of three disjoint ranges (hardware status, adapter protocol, system
errno); :mod:`hcibus.bt_ref.error_map` renders the code to its description.
"""

from __future__ import annotations

import errno as _errno
from typing import Optional

from hcibus.bt_ref.constants import (
    BLUEZ_EBT_OFFSET,
    BLUEZ_EDBUS_CONN_NOT_FOUND,
    BLUEZ_EDBUS_NOT_IMPLEMENTED,
    BLUEZ_EDBUS_RECORD_NOT_FOUND,
    BLUEZ_EDBUS_UNKNOWN_METHOD,
    BLUEZ_EDBUS_UNKNOWN_PATH,
    BLUEZ_EDBUS_WRONG_PARAM,
    BLUEZ_EDBUS_WRONG_SIGNATURE,
    BLUEZ_ESYSTEM_OFFSET,
)


class HcibusError(Exception):
    """Base exception for every error reported back to a bus caller.

    The `.code` attribute holds the wire status code so the router can render
    the failure reply without knowing which layer raised it.
    """

    def __init__(self, message: str, code: int):
        super().__init__(message)
        self.code = code


class UnknownMethodError(HcibusError):
    """Raised when no service table entry carries the requested member."""

    def __init__(self, member: str):
        super().__init__(f"Method not found: {member}", BLUEZ_EDBUS_UNKNOWN_METHOD)
        self.member = member


class WrongSignatureError(HcibusError):
    """Raised when a member exists but not with the requested signature."""

    def __init__(self, member: str, signature: str):
        super().__init__(
            f"Wrong method signature: {member}({signature})", BLUEZ_EDBUS_WRONG_SIGNATURE
        )
        self.member = member
        self.signature = signature


class WrongParameterError(HcibusError):
    """Raised when an argument value is out of range."""

    def __init__(self, argument: str, reason: Optional[str] = None):
        message = f"Invalid parameter: {argument}"
        if reason:
            message += f" ({reason})"
        super().__init__(message, BLUEZ_EDBUS_WRONG_PARAM)
        self.argument = argument
        self.reason = reason


class RecordNotFoundError(HcibusError):
    """Raised when a lookup in a persistent table finds nothing."""

    def __init__(self, what: str):
        super().__init__(f"No record found: {what}", BLUEZ_EDBUS_RECORD_NOT_FOUND)


class ConnectionNotFoundError(HcibusError):
    """Raised when no baseband link to the peer exists on this device."""

    def __init__(self, address: str):
        super().__init__(f"Connection not found: {address}", BLUEZ_EDBUS_CONN_NOT_FOUND)
        self.address = address


class UnknownPathError(HcibusError):
    """Raised when a request targets a path no device is bound to."""

    def __init__(self, path: str):
        super().__init__(f"Unknown path: {path}", BLUEZ_EDBUS_UNKNOWN_PATH)
        self.path = path


class NotImplementedMethodError(HcibusError):
    """Raised by members that are part of the contract but not supported yet."""

    def __init__(self, member: str):
        super().__init__(f"Method not implemented: {member}", BLUEZ_EDBUS_NOT_IMPLEMENTED)
        self.member = member


class BluezSystemError(HcibusError):
    """Raised when a platform call fails with an errno."""

    def __init__(self, err: int, operation: str = "system call"):
        super().__init__(f"{operation} failed: errno {err}", BLUEZ_ESYSTEM_OFFSET | err)
        self.errno = err
        self.operation = operation

    @classmethod
    def from_oserror(cls, exc: OSError, operation: str = "system call") -> "BluezSystemError":
        return cls(exc.errno or _errno.EIO, operation)


class HciStatusError(HcibusError):
    """Raised when the controller completes a command with a non-zero status."""

    def __init__(self, status: int, operation: str = "HCI command"):
        super().__init__(
            f"{operation} failed with status 0x{status:02x}", BLUEZ_EBT_OFFSET + status
        )
        self.status = status
        self.operation = operation


class NoDeviceError(BluezSystemError):
    """Raised when an HCI device cannot be opened (ENODEV)."""

    def __init__(self, dev_id: Optional[int] = None):
        target = f"hci{dev_id}" if dev_id is not None else "default device"
        super().__init__(_errno.ENODEV, f"open {target}")
        self.dev_id = dev_id


class ConfigError(Exception):
    """Raised when the daemon configuration is invalid."""


class SignalArgumentError(ValueError):
    """Raised when a signal is built with arguments not matching its signature."""


class BusUnavailableError(Exception):
    """Raised when the message bus connection cannot be used."""


class PathRegistrationError(BusUnavailableError):
    """Raised when the bus rejects an object path registration."""

    def __init__(self, path: str, reason: str = ""):
        message = f"Can't register object path {path}"
        if reason:
            message += f": {reason}"
        super().__init__(message)
        self.path = path


__all__ = [
    "HcibusError",
    "UnknownMethodError",
    "WrongSignatureError",
    "WrongParameterError",
    "RecordNotFoundError",
    "ConnectionNotFoundError",
    "UnknownPathError",
    "NotImplementedMethodError",
    "BluezSystemError",
    "HciStatusError",
    "NoDeviceError",
    "ConfigError",
    "SignalArgumentError",
    "BusUnavailableError",
    "PathRegistrationError",
]
