import errno

from hcibus.bt_ref.constants import (
    BLUEZ_EDBUS_CONN_NOT_FOUND,
    BLUEZ_EDBUS_NOT_IMPLEMENTED,
    BLUEZ_EDBUS_RECORD_NOT_FOUND,
    BLUEZ_EDBUS_UNKNOWN_PATH,
    BLUEZ_EDBUS_WRONG_PARAM,
    BLUEZ_ESYSTEM_OFFSET,
    DEVICE_PATH,
    GIAC_LAP,
    INQUIRY_LENGTH,
    MANAGER_INTERFACE,
    MANAGER_PATH,
)
from hcibus.bt_ref.utils import device_path
from hcibus.dbuslayer.message import Failure, MethodReturn
from hcibus.hci.transport import HciConnection


def last_reply(adapter):
    return adapter.state.connection.replies[-1][1]


def manager_call(adapter, member):
    adapter.state.connection.deliver(MANAGER_PATH, member, interface=MANAGER_INTERFACE)
    return last_reply(adapter)


def test_default_device_follows_registration(running):
    assert manager_call(running, "DefaultDevice") == MethodReturn("s", (device_path(0),))

    running.unregister_device(0)
    assert manager_call(running, "DefaultDevice") == MethodReturn("s", (device_path(1),))

    running.unregister_device(1)
    failure = manager_call(running, "DefaultDevice")
    assert failure.code == BLUEZ_ESYSTEM_OFFSET | errno.ENODEV


def test_register_announces_device(adapter):
    adapter.init()
    assert adapter.register_device(0) is True
    path, interface, member, signature, args = adapter.state.connection.signals[-1]
    assert (path, interface, member, signature, args) == (MANAGER_PATH, MANAGER_INTERFACE, "DeviceAdded", "s", (device_path(0),))
    assert adapter.state.default_device == 0
    assert adapter.register_device(0) is False


def test_unregister_unknown_device_emits_nothing(running):
    before = list(running.state.connection.signals)
    assert running.unregister_device(9) is False
    assert running.state.connection.signals == before


def test_device_list_reports_every_controller(running):
    reply = manager_call(running, "DeviceList")
    assert reply.signature == "a(ssssas)"
    entries, = reply.args
    assert entries == [
        (DEVICE_PATH + "/hci0", "00:11:22:33:44:55", "USB", "UP", ["RUNNING"]),
        (DEVICE_PATH + "/hci1", "00:AA:BB:CC:DD:EE", "USB", "DOWN", []),
    ]


def test_requests_to_unbound_child_path(running):
    running.state.connection.deliver(DEVICE_PATH + "/hci7", "GetAddress")
    assert last_reply(running).code == BLUEZ_EDBUS_UNKNOWN_PATH


def test_device_queries(running, hci):
    conn = running.state.connection
    answers = {}
    for member in ("GetAddress", "GetName", "GetVersion", "GetRevision", "GetManufacturer", "IsConnectable"):
        conn.deliver(device_path(0), member)
        answers[member] = last_reply(running).args[0]
    assert answers == {
        "GetAddress": "00:11:22:33:44:55",
        "GetName": "box-0",
        "GetVersion": "Bluetooth 2.0",
        "GetRevision": "HCI 0x1A2B",
        "GetManufacturer": "Cambridge Silicon Radio",
        "IsConnectable": True,
    }


def test_get_company(running, config):
    conn = running.state.connection
    conn.deliver(device_path(0), "GetCompany")
    assert last_reply(running).code == BLUEZ_EDBUS_RECORD_NOT_FOUND

    with open(config.oui_file, "w") as fh:
        fh.write("00-11-22   (hex)\t\tCIMSYS Inc\n")
    conn.deliver(device_path(0), "GetCompany")
    assert last_reply(running) == MethodReturn("s", ("CIMSYS Inc",))


def test_set_name(running, hci):
    conn = running.state.connection
    conn.deliver(device_path(0), "SetName", "s", ("kitchen",))
    assert isinstance(last_reply(running), MethodReturn)
    assert hci.names[0] == "kitchen"

    conn.deliver(device_path(0), "SetName", "s", ("",))
    assert last_reply(running).code == BLUEZ_EDBUS_WRONG_PARAM


def test_discover_and_cancel(running, hci):
    conn = running.state.connection
    conn.deliver(device_path(1), "Discover")
    conn.deliver(device_path(1), "DiscoverCancel")
    assert ("start_inquiry", 1, GIAC_LAP, INQUIRY_LENGTH, 0) in hci.commands
    assert ("cancel_inquiry", 1) in hci.commands


def test_remote_name_from_cache(running, hci, config, tmp_path):
    names = tmp_path / "storage" / "00:11:22:33:44:55" / "names"
    names.parent.mkdir(parents=True)
    names.write_text("AA:BB:CC:DD:EE:FF phone\n")

    conn = running.state.connection
    conn.deliver(device_path(0), "RemoteName", "s", ("aa:bb:cc:dd:ee:ff",))
    assert isinstance(last_reply(running), MethodReturn)
    assert conn.signals[-1][1:] == ("org.bluez.Device", "RemoteName", "ss", ("AA:BB:CC:DD:EE:FF", "phone"))
    assert not any(c[0] == "request_remote_name" for c in hci.commands)


def test_remote_name_asks_controller_on_cache_miss(running, hci):
    running.state.connection.deliver(device_path(0), "RemoteName", "s", ("AA:BB:CC:DD:EE:FF",))
    assert ("request_remote_name", 0, "AA:BB:CC:DD:EE:FF") in hci.commands


def test_remote_name_validates_address(running):
    running.state.connection.deliver(device_path(0), "RemoteName", "s", ("not-an-address",))
    assert last_reply(running).code == BLUEZ_EDBUS_WRONG_PARAM


def test_create_bonding(running, hci):
    conn = running.state.connection
    conn.deliver(device_path(0), "CreateBonding", "s", ("AA:BB:CC:DD:EE:FF",))
    assert last_reply(running).code == BLUEZ_EDBUS_CONN_NOT_FOUND

    hci.links.append(HciConnection(0, 0x2A, "AA:BB:CC:DD:EE:FF", 1))
    conn.deliver(device_path(0), "CreateBonding", "s", ("AA:BB:CC:DD:EE:FF",))
    assert isinstance(last_reply(running), MethodReturn)
    assert ("request_authentication", 0, 0x2A) in hci.commands


def test_unsupported_members_say_so(running):
    running.state.connection.deliver(device_path(0), "ListBondings")
    reply = last_reply(running)
    assert isinstance(reply, Failure)
    assert reply.code == BLUEZ_EDBUS_NOT_IMPLEMENTED


def test_register_all_devices_without_device_list(adapter, hci):
    adapter.init()
    hci.fail["device_list"] = OSError(errno.EPERM, "Operation not permitted")
    assert adapter.register_all_devices() == 0
