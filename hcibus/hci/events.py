"""
HCI event monitor.

Listens on raw HCI sockets and feeds controller events into the adapter:
PIN code requests, inquiry start/result/complete, remote name completion,
authentication completion, scan-enable and local-name writes, and the
stack-internal device up/down notifications.

Packet parsing is kept in plain functions so it can be exercised without a
controller; the monitor only needs a ``watch(sock, callback)`` function from
the event loop.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from hcibus.bt_ref.constants import (
    EVT_AUTH_COMPLETE,
    EVT_CMD_COMPLETE,
    EVT_CMD_STATUS,
    EVT_INQUIRY_COMPLETE,
    EVT_INQUIRY_RESULT,
    EVT_INQUIRY_RESULT_WITH_RSSI,
    EVT_PIN_CODE_REQ,
    EVT_REMOTE_NAME_REQ_COMPLETE,
    EVT_SI_DEVICE,
    EVT_STACK_INTERNAL,
    HCI_DEV_DOWN,
    HCI_DEV_NONE,
    HCI_DEV_REG,
    HCI_DEV_UNREG,
    HCI_DEV_UP,
    HCI_EVENT_PKT,
    HCI_FILTER,
    HCI_MAX_NAME_LENGTH,
    OCF_CHANGE_LOCAL_NAME,
    OCF_INQUIRY,
    OCF_WRITE_SCAN_ENABLE,
    OGF_HOST_CTL,
    OGF_LINK_CTL,
    SOL_HCI,
)
from hcibus.bt_ref.utils import ba2str
from hcibus.core.log import print_and_log, LOG__DEBUG
from hcibus.hci.hci_socket import event_filter, hci_opcode, open_hci_socket

OPCODE_INQUIRY = hci_opcode(OGF_LINK_CTL, OCF_INQUIRY)
OPCODE_WRITE_SCAN_ENABLE = hci_opcode(OGF_HOST_CTL, OCF_WRITE_SCAN_ENABLE)
OPCODE_CHANGE_LOCAL_NAME = hci_opcode(OGF_HOST_CTL, OCF_CHANGE_LOCAL_NAME)

DEVICE_EVENTS = (
    EVT_PIN_CODE_REQ,
    EVT_CMD_STATUS,
    EVT_CMD_COMPLETE,
    EVT_INQUIRY_COMPLETE,
    EVT_INQUIRY_RESULT,
    EVT_INQUIRY_RESULT_WITH_RSSI,
    EVT_REMOTE_NAME_REQ_COMPLETE,
    EVT_AUTH_COMPLETE,
)

_INQUIRY_INFO = struct.Struct("<6sBBB3sH")
_INQUIRY_INFO_RSSI = struct.Struct("<6sBB3sHb")


@dataclass(frozen=True)
class PinCodeRequest:
    peer: str


@dataclass(frozen=True)
class CommandStatus:
    opcode: int
    status: int


@dataclass(frozen=True)
class CommandComplete:
    opcode: int
    status: int


@dataclass(frozen=True)
class InquiryComplete:
    status: int


@dataclass(frozen=True)
class InquiryResult:
    # (peer, class of device, rssi)
    responses: Tuple[Tuple[str, int, int], ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class RemoteNameComplete:
    status: int
    peer: str
    name: str


@dataclass(frozen=True)
class AuthComplete:
    status: int
    handle: int


@dataclass(frozen=True)
class DeviceEvent:
    event: int
    dev_id: int


HciEvent = Union[
    PinCodeRequest, CommandStatus, CommandComplete, InquiryComplete,
    InquiryResult, RemoteNameComplete, AuthComplete, DeviceEvent,
]


def _dev_class(raw: bytes) -> int:
    return int.from_bytes(raw, "little")


def parse_event(packet: bytes) -> Optional[HciEvent]:
    """Decode one HCI event packet (including the packet type byte).

    Returns None for packets that are truncated or of no interest.
    """
    if len(packet) < 3 or packet[0] != HCI_EVENT_PKT:
        return None
    evt, plen = packet[1], packet[2]
    data = bytes(packet[3:3 + plen])
    if len(data) < plen:
        return None

    try:
        if evt == EVT_PIN_CODE_REQ:
            return PinCodeRequest(ba2str(data[:6]))

        if evt == EVT_CMD_STATUS:
            status, _ncmd, opcode = struct.unpack_from("<BBH", data)
            return CommandStatus(opcode, status)

        if evt == EVT_CMD_COMPLETE:
            _ncmd, opcode = struct.unpack_from("<BH", data)
            status = data[3] if len(data) > 3 else 0
            return CommandComplete(opcode, status)

        if evt == EVT_INQUIRY_COMPLETE:
            return InquiryComplete(data[0])

        if evt in (EVT_INQUIRY_RESULT, EVT_INQUIRY_RESULT_WITH_RSSI):
            layout = _INQUIRY_INFO if evt == EVT_INQUIRY_RESULT else _INQUIRY_INFO_RSSI
            responses: List[Tuple[str, int, int]] = []
            for i in range(data[0]):
                fields = layout.unpack_from(data, 1 + i * layout.size)
                if evt == EVT_INQUIRY_RESULT:
                    bdaddr, _rep, _period, _mode, dev_class, _clock = fields
                    rssi = 0
                else:
                    bdaddr, _rep, _period, dev_class, _clock, rssi = fields
                responses.append((ba2str(bdaddr), _dev_class(dev_class), rssi))
            return InquiryResult(tuple(responses))

        if evt == EVT_REMOTE_NAME_REQ_COMPLETE:
            status = data[0]
            raw_name = data[7:7 + HCI_MAX_NAME_LENGTH].split(b"\0", 1)[0]
            return RemoteNameComplete(status, ba2str(data[1:7]), raw_name.decode("utf-8", "replace"))

        if evt == EVT_AUTH_COMPLETE:
            status, handle = struct.unpack_from("<BH", data)
            return AuthComplete(status, handle)

        if evt == EVT_STACK_INTERNAL:
            (si_type,) = struct.unpack_from("<H", data)
            if si_type == EVT_SI_DEVICE:
                event, dev_id = struct.unpack_from("<HH", data, 2)
                return DeviceEvent(event, dev_id)
            return None
    except (struct.error, IndexError, ValueError) as exc:
        print_and_log(f"[-] Malformed HCI event 0x{evt:02x}: {exc}", LOG__DEBUG)
        return None
    return None


# (socket, callback(sock, hangup) -> keep watching) -> watch id
WatchFunc = Callable[[object, Callable[..., bool]], Any]
# (watch id) -> None
UnwatchFunc = Callable[[Any], None]


class HciEventMonitor:
    """Routes controller events of every up device to the adapter."""

    def __init__(self, adapter, hci, watch: Optional[WatchFunc] = None,
                 unwatch: Optional[UnwatchFunc] = None,
                 socket_factory: Callable = open_hci_socket):
        self._adapter = adapter
        self._hci = hci
        self._watch = watch
        self._unwatch = unwatch
        self._socket_factory = socket_factory
        self._sockets: Dict[int, object] = {}
        self._watches: Dict[int, Any] = {}
        self._addresses: Dict[int, str] = {}

    # ------------------------------------------------------------------
    # Sockets
    # ------------------------------------------------------------------
    def start(self) -> None:
        """Watch the stack-internal channel and every device already present."""
        self._open(HCI_DEV_NONE, (EVT_STACK_INTERNAL,))
        try:
            dev_ids = self._hci.device_list()
        except OSError as exc:
            print_and_log(f"[-] Can't get device list: {exc}", LOG__DEBUG)
            return
        for dev_id in dev_ids:
            self.attach(dev_id)

    def attach(self, dev_id: int) -> bool:
        return self._open(dev_id, DEVICE_EVENTS)

    def _open(self, dev_id: int, events) -> bool:
        if dev_id in self._sockets:
            return True
        try:
            sock = self._socket_factory(dev_id)
        except OSError as exc:
            print_and_log(f"[-] Can't open HCI socket for hci{dev_id}: {exc}", LOG__DEBUG)
            return False
        try:
            sock.setsockopt(SOL_HCI, HCI_FILTER, event_filter(*events))
        except OSError as exc:
            print_and_log(f"[-] Can't set filter on hci{dev_id}: {exc}", LOG__DEBUG)
            sock.close()
            return False

        self._sockets[dev_id] = sock
        if self._watch is not None:
            self._watches[dev_id] = self._watch(
                sock, lambda s, hangup=False, dev_id=dev_id: self._readable(dev_id, s, hangup)
            )
        return True

    def detach(self, dev_id: int) -> None:
        """Stop watching *dev_id* and close its socket."""
        watch_id = self._watches.pop(dev_id, None)
        if watch_id is not None and self._unwatch is not None:
            self._unwatch(watch_id)
        self._drop(dev_id)

    def _drop(self, dev_id: int) -> None:
        self._watches.pop(dev_id, None)
        self._addresses.pop(dev_id, None)
        sock = self._sockets.pop(dev_id, None)
        if sock is not None:
            sock.close()

    def stop(self) -> None:
        for dev_id in list(self._sockets):
            self.detach(dev_id)

    def _readable(self, dev_id: int, sock, hangup: bool = False) -> bool:
        # returning False removes the watch on the event loop side
        if self._sockets.get(dev_id) is not sock:
            return False
        if hangup:
            print_and_log(f"[-] HCI socket of hci{dev_id} hung up", LOG__DEBUG)
            self._drop(dev_id)
            return False
        try:
            packet = sock.recv(260)
        except OSError as exc:
            print_and_log(f"[-] Read from hci{dev_id} failed: {exc}", LOG__DEBUG)
            self._drop(dev_id)
            return False
        self.handle_packet(dev_id, packet)
        return dev_id in self._sockets

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------
    def _local(self, dev_id: int) -> Optional[str]:
        if dev_id not in self._addresses:
            try:
                self._addresses[dev_id] = self._hci.device_info(dev_id).address
            except OSError as exc:
                print_and_log(f"[-] Can't get address of hci{dev_id}: {exc}", LOG__DEBUG)
                return None
        return self._addresses[dev_id]

    def handle_packet(self, dev_id: int, packet: bytes) -> None:
        event = parse_event(packet)
        if event is None:
            return
        if isinstance(event, DeviceEvent):
            self._device_event(event)
            return

        if isinstance(event, PinCodeRequest):
            link = None
            try:
                link = self._hci.find_connection(event.peer)
            except OSError as exc:
                print_and_log(f"[-] Connection lookup for {event.peer} failed: {exc}", LOG__DEBUG)
            self._adapter.request_pin(dev_id, event.peer, bool(link and link.outgoing))
            return

        local = self._local(dev_id)
        if local is None:
            return

        if isinstance(event, CommandStatus):
            if event.opcode == OPCODE_INQUIRY and event.status == 0:
                self._adapter.inquiry_start(local)
        elif isinstance(event, CommandComplete):
            if event.status:
                return
            if event.opcode == OPCODE_WRITE_SCAN_ENABLE:
                self._adapter.mode_changed(local)
            elif event.opcode == OPCODE_CHANGE_LOCAL_NAME:
                self._adapter.name_changed(local)
        elif isinstance(event, InquiryComplete):
            self._adapter.inquiry_complete(local)
        elif isinstance(event, InquiryResult):
            for peer, dev_class, rssi in event.responses:
                self._adapter.inquiry_result(local, peer, dev_class, rssi)
        elif isinstance(event, RemoteNameComplete):
            if event.status:
                self._adapter.remote_name_failed(local, event.peer, event.status)
            else:
                self._adapter.remote_name(local, event.peer, event.name)
        elif isinstance(event, AuthComplete):
            peer = self._peer_for_handle(dev_id, event.handle)
            if peer is None:
                print_and_log(f"[-] No link with handle {event.handle} on hci{dev_id}", LOG__DEBUG)
                return
            self._adapter.bonding_created(local, peer, event.status)

    def _peer_for_handle(self, dev_id: int, handle: int) -> Optional[str]:
        try:
            links = self._hci.connections(dev_id)
        except OSError:
            return None
        for link in links:
            if link.handle == handle:
                return link.address
        return None

    def _device_event(self, event: DeviceEvent) -> None:
        if event.event == HCI_DEV_UP:
            print_and_log(f"[*] hci{event.dev_id} up", LOG__DEBUG)
            self.attach(event.dev_id)
            self._adapter.register_device(event.dev_id)
        elif event.event in (HCI_DEV_DOWN, HCI_DEV_UNREG):
            print_and_log(f"[*] hci{event.dev_id} down", LOG__DEBUG)
            self._adapter.unregister_device(event.dev_id)
            self.detach(event.dev_id)
        elif event.event == HCI_DEV_REG:
            print_and_log(f"[*] hci{event.dev_id} registered", LOG__DEBUG)
