"""Shared fakes: an in-memory bus connection, HCI transport and timer."""

from __future__ import annotations

from typing import Dict, List, Optional

import pytest

from hcibus.bt_ref.constants import HCI_RUNNING, HCI_UP, SCAN_PAGE
from hcibus.core.config import AdapterConfig
from hcibus.core.errors import BusUnavailableError, PathRegistrationError
from hcibus.dbuslayer.adapter import HcibusAdapter
from hcibus.dbuslayer.message import BusConnection, BusMessage, MessageKind, PendingCall
from hcibus.hci.transport import HciConnection, HciDeviceInfo, HciTransport, HciVersion


class FakePendingCall(PendingCall):
    def __init__(self, reply_handler):
        self.reply_handler = reply_handler
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeConnection(BusConnection):
    """Records everything the adapter does; ``fail`` names operations to refuse."""

    def __init__(self, fail=()):
        self.fail = set(fail)
        self.names: List[str] = []
        self.paths: Dict[str, object] = {}
        self.fallbacks: set = set()
        self.filters: List[object] = []
        self.replies: List[tuple] = []
        self.signals: List[tuple] = []
        self.calls: List[dict] = []
        self.flushed = False
        self.closed = False

    def _check(self, operation: str) -> None:
        if operation in self.fail:
            raise BusUnavailableError(f"{operation} refused")

    def request_name(self, name):
        self._check("request_name")
        self.names.append(name)

    def register_object_path(self, path, handler, fallback=False):
        if "register" in self.fail or path in self.fail:
            raise PathRegistrationError(path, "refused")
        self.paths[path] = handler
        if fallback:
            self.fallbacks.add(path)

    def unregister_object_path(self, path):
        self._check("unregister")
        self.paths.pop(path, None)
        self.fallbacks.discard(path)

    def add_filter(self, handler):
        self._check("add_filter")
        self.filters.append(handler)

    def send_reply(self, request, reply):
        self._check("send_reply")
        self.replies.append((request, reply))

    def emit_signal(self, path, interface, member, signature, args):
        self._check("emit_signal")
        self.signals.append((path, interface, member, signature, args))

    def call_async(self, destination, path, interface, member, signature, args, reply_handler, timeout):
        self._check("call_async")
        call = FakePendingCall(reply_handler)
        self.calls.append(dict(destination=destination, path=path, interface=interface, member=member,
                               signature=signature, args=args, timeout=timeout, pending=call))
        return call

    def flush(self):
        self.flushed = True

    def close(self):
        self.closed = True

    # -- test helpers ---------------------------------------------------
    def deliver(self, path, member, signature="", args=(), interface=None):
        """Feed a method call to the handler registered for *path* (or its fallback)."""
        handler = self.paths.get(path)
        if handler is None:
            for prefix in sorted(self.fallbacks, key=len, reverse=True):
                if path.startswith(prefix + "/"):
                    handler = self.paths[prefix]
                    break
        message = BusMessage(MessageKind.METHOD_CALL, path=path, interface=interface,
                             member=member, signature=signature, args=tuple(args), sender=":1.7")
        return handler(message)

    def signal_names(self):
        return [s[2] for s in self.signals]


class FakeTimer:
    def __init__(self, interval, callback):
        self.interval = interval
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True

    def fire(self) -> bool:
        return self.callback()


class FakeHci(HciTransport):
    """Two controllers by default; commands are recorded in ``commands``."""

    def __init__(self, devices=None):
        self.devices: Dict[int, HciDeviceInfo] = devices if devices is not None else {
            0: HciDeviceInfo(0, "hci0", "00:11:22:33:44:55", 1, (1 << HCI_UP) | (1 << HCI_RUNNING)),
            1: HciDeviceInfo(1, "hci1", "00:AA:BB:CC:DD:EE", 1, 0),
        }
        self.scan_enable: Dict[int, int] = {dev_id: SCAN_PAGE for dev_id in self.devices}
        self.names: Dict[int, str] = {dev_id: f"box-{dev_id}" for dev_id in self.devices}
        self.version = HciVersion(hci_ver=3, hci_rev=0x1a2b, lmp_ver=3, lmp_subver=0x0c5c, manufacturer=10)
        self.links: List[HciConnection] = []
        self.commands: List[tuple] = []
        self.fail: Dict[str, Exception] = {}

    def _cmd(self, name, *args):
        if name in self.fail:
            raise self.fail[name]
        self.commands.append((name,) + args)

    def device_list(self):
        if "device_list" in self.fail:
            raise self.fail["device_list"]
        return sorted(self.devices)

    def device_info(self, dev_id):
        if dev_id not in self.devices:
            raise OSError(19, "No such device")
        return self.devices[dev_id]

    def read_scan_enable(self, dev_id, timeout):
        self._cmd("read_scan_enable", dev_id, timeout)
        return self.scan_enable[dev_id]

    def write_scan_enable(self, dev_id, scan_enable, timeout):
        self._cmd("write_scan_enable", dev_id, scan_enable)
        self.scan_enable[dev_id] = scan_enable

    def read_local_name(self, dev_id, timeout):
        self._cmd("read_local_name", dev_id)
        return self.names[dev_id]

    def change_local_name(self, dev_id, name, timeout):
        self._cmd("change_local_name", dev_id, name)
        self.names[dev_id] = name

    def read_local_version(self, dev_id, timeout):
        self._cmd("read_local_version", dev_id)
        return self.version

    def start_inquiry(self, dev_id, lap, length, num_rsp, timeout):
        self._cmd("start_inquiry", dev_id, lap, length, num_rsp)

    def cancel_inquiry(self, dev_id, timeout):
        self._cmd("cancel_inquiry", dev_id)

    def request_remote_name(self, dev_id, address, timeout):
        self._cmd("request_remote_name", dev_id, address)

    def connections(self, dev_id):
        return [link for link in self.links if link.dev_id == dev_id]

    def request_authentication(self, dev_id, handle, timeout):
        self._cmd("request_authentication", dev_id, handle)

    def pin_code_reply(self, dev_id, address, pin):
        self._cmd("pin_code_reply", dev_id, address, pin)

    def pin_code_negative_reply(self, dev_id, address):
        self._cmd("pin_code_negative_reply", dev_id, address)


class BusFactory:
    """Hands out FakeConnections; ``available=False`` simulates a bus that is down."""

    def __init__(self):
        self.available = True
        self.fail = ()
        self.connections: List[FakeConnection] = []
        self.bus_types: List[str] = []

    def __call__(self, bus_type):
        self.bus_types.append(bus_type)
        if not self.available:
            raise BusUnavailableError("connection refused")
        conn = FakeConnection(self.fail)
        self.connections.append(conn)
        return conn

    @property
    def last(self) -> Optional[FakeConnection]:
        return self.connections[-1] if self.connections else None


class TimerFactory:
    def __init__(self):
        self.timers: List[FakeTimer] = []

    def __call__(self, interval, callback):
        timer = FakeTimer(interval, callback)
        self.timers.append(timer)
        return timer


@pytest.fixture
def hci():
    return FakeHci()


@pytest.fixture
def bus_factory():
    return BusFactory()


@pytest.fixture
def timer_factory():
    return TimerFactory()


@pytest.fixture
def config(tmp_path):
    return AdapterConfig(storage_dir=str(tmp_path / "storage"), oui_file=str(tmp_path / "oui.txt"))


@pytest.fixture
def adapter(hci, bus_factory, timer_factory, config):
    return HcibusAdapter(hci, bus_factory, timer_factory, config)


@pytest.fixture
def running(adapter):
    """Adapter connected to a fake bus with every device registered."""
    assert adapter.init()
    adapter.register_all_devices()
    return adapter
