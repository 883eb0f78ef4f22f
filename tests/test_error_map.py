import errno
import os

from hcibus.bt_ref.constants import (
    BLUEZ_EDBUS_NOT_IMPLEMENTED,
    BLUEZ_EDBUS_OFFSET,
    BLUEZ_EDBUS_UNKNOWN_METHOD,
    BLUEZ_EDBUS_UNKNOWN_PATH,
    BLUEZ_EDBUS_WRONG_SIGNATURE,
    BLUEZ_ESYSTEM_OFFSET,
)
from hcibus.bt_ref.error_map import describe_error, error_category, error_to_str
import hcibus.core.errors as errors
from hcibus.core.errors import (
    BluezSystemError,
    HciStatusError,
    NoDeviceError,
    UnknownMethodError,
    UnknownPathError,
    WrongSignatureError,
)
from hcibus.dbuslayer.message import Failure


def test_adapter_codes():
    assert error_to_str(BLUEZ_EDBUS_UNKNOWN_METHOD) == "Method not found"
    assert error_to_str(BLUEZ_EDBUS_UNKNOWN_PATH) == "Unknown D-BUS path"
    assert error_to_str(BLUEZ_EDBUS_NOT_IMPLEMENTED) == "Method not implemented"


def test_hci_status_codes():
    assert error_to_str(0x04) == "Page Timeout"
    assert error_to_str(0x05) == "Authentication Failure"
    assert error_category(0x05) == "hci"


def test_system_codes_use_platform_text():
    code = BLUEZ_ESYSTEM_OFFSET | errno.ENODEV
    assert error_category(code) == "system"
    assert error_to_str(code) == os.strerror(errno.ENODEV)


def test_unmapped_codes_get_fallback_text():
    assert error_to_str(BLUEZ_EDBUS_OFFSET | 0x7F) is None
    assert error_to_str(0x99) is None
    assert describe_error(0x99) == "Unknown error 0x00000099"


def test_exception_codes_land_in_their_range():
    assert UnknownMethodError("Foo").code == BLUEZ_EDBUS_UNKNOWN_METHOD
    assert HciStatusError(0x05).code == 0x05
    assert NoDeviceError(3).code == BLUEZ_ESYSTEM_OFFSET | errno.ENODEV
    assert Failure.from_code(0x05) == Failure(0x05, "Authentication Failure")


def test_system_errors_keep_builtin_name_free():
    assert not hasattr(errors, "SystemError")
    error = BluezSystemError.from_oserror(OSError(errno.EBUSY, "busy"), "write scan enable")
    assert isinstance(error, BluezSystemError)
    assert error.code == BLUEZ_ESYSTEM_OFFSET | errno.EBUSY
    assert isinstance(NoDeviceError(0), BluezSystemError)


def test_failure_from_error_carries_its_code():
    assert Failure.from_error(WrongSignatureError("Twice", "i")).code == BLUEZ_EDBUS_WRONG_SIGNATURE
    failure = Failure.from_error(UnknownPathError("/org/bluez/Device"))
    assert failure == Failure(BLUEZ_EDBUS_UNKNOWN_PATH, "Unknown D-BUS path")
