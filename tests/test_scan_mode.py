import pytest

from hcibus.bt_ref.constants import (
    BLUEZ_EDBUS_WRONG_PARAM,
    MODE_CONNECTABLE,
    MODE_DISCOVERABLE,
    MODE_OFF,
    MODE_UNKNOWN,
    SCAN_DISABLED,
    SCAN_INQUIRY,
    SCAN_PAGE,
)
from hcibus.bt_ref.utils import device_path, mode_to_scan_enable, scan_enable_to_mode


@pytest.mark.parametrize("scan, mode", [
    (SCAN_DISABLED, MODE_OFF),
    (SCAN_PAGE, MODE_CONNECTABLE),
    (SCAN_PAGE | SCAN_INQUIRY, MODE_DISCOVERABLE),
    (SCAN_INQUIRY, MODE_UNKNOWN),
    (0x7F, MODE_UNKNOWN),
])
def test_scan_enable_to_mode(scan, mode):
    assert scan_enable_to_mode(scan) == mode


def test_invalid_mode_has_no_scan_value():
    assert mode_to_scan_enable(0x03) is None
    assert mode_to_scan_enable(MODE_UNKNOWN) is None


def test_get_mode_answers_from_cache(running, hci):
    conn = running.state.connection
    hci.commands.clear()
    conn.deliver(device_path(0), "GetMode")
    assert conn.replies[-1][1].args == (MODE_CONNECTABLE,)
    assert hci.commands == []


def test_set_mode_writes_only_on_change(running, hci):
    conn = running.state.connection
    hci.commands.clear()

    conn.deliver(device_path(0), "SetMode", "y", (MODE_CONNECTABLE,))
    assert hci.commands == []

    conn.deliver(device_path(0), "SetMode", "y", (MODE_DISCOVERABLE,))
    assert hci.commands == [("write_scan_enable", 0, SCAN_PAGE | SCAN_INQUIRY)]
    assert running.registry.lookup(device_path(0)).scan_enable == SCAN_PAGE | SCAN_INQUIRY

    conn.deliver(device_path(0), "IsDiscoverable")
    assert conn.replies[-1][1].args == (True,)


def test_set_mode_rejects_unknown_mode(running, hci):
    conn = running.state.connection
    conn.deliver(device_path(0), "SetMode", "y", (0x07,))
    assert conn.replies[-1][1].code == BLUEZ_EDBUS_WRONG_PARAM
    assert not any(c[0] == "write_scan_enable" for c in hci.commands)


def test_failed_write_keeps_cache(running, hci):
    conn = running.state.connection
    hci.fail["write_scan_enable"] = OSError(110, "Connection timed out")
    conn.deliver(device_path(0), "SetMode", "y", (MODE_OFF,))
    assert conn.replies[-1][1].code == 0x00020000 | 110
    assert running.registry.lookup(device_path(0)).scan_enable == SCAN_PAGE


def test_registration_falls_back_when_scan_enable_unreadable(adapter, hci):
    hci.fail["read_scan_enable"] = OSError(110, "Connection timed out")
    adapter.init()
    adapter.register_device(0)
    assert adapter.registry.lookup(device_path(0)).scan_enable == SCAN_PAGE | SCAN_INQUIRY
