import pytest

from hcibus.bt_ref.constants import DEVICE_INTERFACE, MODE_DISCOVERABLE, SCAN_INQUIRY, SCAN_PAGE
from hcibus.bt_ref.utils import device_path
from hcibus.core.errors import SignalArgumentError
from hcibus.dbuslayer.signals import (
    BONDING_CREATED,
    DISCOVER_RESULT,
    DISCOVER_START,
    MODE_CHANGED,
    REMOTE_NAME,
    build_signal_args,
)

LOCAL = "00:11:22:33:44:55"


def test_build_signal_args_accepts_matching_values():
    assert build_signal_args(DISCOVER_RESULT, "AA:BB:CC:DD:EE:FF", 0x5A020C, -60) == ("AA:BB:CC:DD:EE:FF", 0x5A020C, -60)
    assert build_signal_args(DISCOVER_START) == ()


@pytest.mark.parametrize("spec, args", [
    (REMOTE_NAME, ("AA:BB:CC:DD:EE:FF",)),
    (REMOTE_NAME, ("AA:BB:CC:DD:EE:FF", 7)),
    (BONDING_CREATED, ("AA:BB:CC:DD:EE:FF", 0x100)),
    (BONDING_CREATED, ("AA:BB:CC:DD:EE:FF", True)),
    (MODE_CHANGED, (-1,)),
])
def test_build_signal_args_rejects_mismatch(spec, args):
    with pytest.raises(SignalArgumentError):
        build_signal_args(spec, *args)


def test_emit_without_connection_is_dropped(adapter):
    assert adapter.emitter.emit(device_path(0), DISCOVER_START) is False


def test_events_land_on_owning_device_path(running):
    conn = running.state.connection
    assert running.inquiry_start(LOCAL)
    assert running.inquiry_result(LOCAL, "AA:BB:CC:DD:EE:FF", 0x5A020C, -42)
    assert running.remote_name_failed(LOCAL, "AA:BB:CC:DD:EE:FF", 0x04)
    assert running.bonding_created(LOCAL, "AA:BB:CC:DD:EE:FF", 0)
    assert running.inquiry_complete(LOCAL)
    emitted = [(s[0], s[1], s[2], s[4]) for s in conn.signals[-5:]]
    path = device_path(0)
    assert emitted == [
        (path, DEVICE_INTERFACE, "DiscoverStart", ()),
        (path, DEVICE_INTERFACE, "DiscoverResult", ("AA:BB:CC:DD:EE:FF", 0x5A020C, -42)),
        (path, DEVICE_INTERFACE, "RemoteNameFailed", ("AA:BB:CC:DD:EE:FF", 0x04)),
        (path, DEVICE_INTERFACE, "BondingCreated", ("AA:BB:CC:DD:EE:FF", 0)),
        (path, DEVICE_INTERFACE, "DiscoverComplete", ()),
    ]


def test_events_for_unknown_or_down_controller_are_dropped(running):
    before = len(running.state.connection.signals)
    assert not running.inquiry_start("00:00:00:00:00:09")
    # hci1 exists but is down
    assert not running.inquiry_start("00:AA:BB:CC:DD:EE")
    assert len(running.state.connection.signals) == before


def test_mode_changed_rereads_and_refreshes_cache(running, hci):
    hci.scan_enable[0] = SCAN_PAGE | SCAN_INQUIRY
    assert running.mode_changed(LOCAL)
    assert running.state.connection.signals[-1][2:] == ("ModeChanged", "y", (MODE_DISCOVERABLE,))
    assert running.registry.lookup(device_path(0)).scan_enable == SCAN_PAGE | SCAN_INQUIRY


def test_mode_changed_reports_unknown_for_inquiry_only(running, hci):
    hci.scan_enable[0] = SCAN_INQUIRY
    running.mode_changed(LOCAL)
    assert running.state.connection.signals[-1][4] == (0xFF,)


def test_name_changed_emits_empty_name_when_unreadable(running, hci):
    hci.fail["read_local_name"] = OSError(110, "Connection timed out")
    assert running.name_changed(LOCAL)
    assert running.state.connection.signals[-1][2:] == ("NameChanged", "s", ("",))
