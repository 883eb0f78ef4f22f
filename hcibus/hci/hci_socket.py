"""
Linux raw HCI socket implementation of :class:`HciTransport`.

Commands are written to a per-call ``AF_BLUETOOTH``/``BTPROTO_HCI`` socket
bound to the device and the reply is read back under an event filter, the
same exchange BlueZ's ``hci_send_req`` performs.
"""

from __future__ import annotations

import errno
import fcntl
import select
import socket
import struct
import time
from typing import List, Optional

from hcibus.bt_ref.constants import (
    EVT_CMD_COMPLETE,
    EVT_CMD_STATUS,
    HCI_COMMAND_PKT,
    HCI_EVENT_PKT,
    HCI_FILTER,
    HCI_MAX_DEV,
    HCI_MAX_NAME_LENGTH,
    HCI_PIN_CODE_MAX,
    OCF_AUTH_REQUESTED,
    OCF_CHANGE_LOCAL_NAME,
    OCF_INQUIRY,
    OCF_INQUIRY_CANCEL,
    OCF_PIN_CODE_NEG_REPLY,
    OCF_PIN_CODE_REPLY,
    OCF_READ_LOCAL_NAME,
    OCF_READ_LOCAL_VERSION,
    OCF_READ_SCAN_ENABLE,
    OCF_REMOTE_NAME_REQ,
    OCF_WRITE_SCAN_ENABLE,
    OGF_HOST_CTL,
    OGF_INFO_PARAM,
    OGF_LINK_CTL,
    SOL_HCI,
)
from hcibus.bt_ref.utils import ba2str, str2ba
from hcibus.core.errors import HciStatusError
from hcibus.core.log import print_and_log, LOG__DEBUG
from hcibus.hci.transport import HciConnection, HciDeviceInfo, HciTransport, HciVersion

# _IOR('H', nr, int)
HCIGETDEVLIST = 0x800448D2
HCIGETDEVINFO = 0x800448D3
HCIGETCONNLIST = 0x800448D4

# struct hci_dev_info
_DEV_INFO = struct.Struct("<H8s6sIB8s3xIIIHHHH10I")
# struct hci_conn_info
_CONN_INFO = struct.Struct("<H6sBBHI")
# struct hci_filter
_FILTER = struct.Struct("<IIIH2x")

_MAX_CONN = 10
_PSCAN_REP_MODE_R2 = 0x02

# the kernel filter holds a 64 bit event mask
HCI_FLT_EVENT_BITS = 63

_READ_LOCAL_VERSION_RP = struct.Struct("<BBHBHH")


def hci_opcode(ogf: int, ocf: int) -> int:
    return (ocf & 0x03FF) | (ogf << 10)


def event_filter(*events: int) -> bytes:
    """Socket filter passing event packets of the listed types only."""
    mask = [0, 0]
    for evt in events:
        evt &= HCI_FLT_EVENT_BITS
        mask[evt >> 5] |= 1 << (evt & 31)
    return _FILTER.pack(1 << HCI_EVENT_PKT, mask[0], mask[1], 0)


def open_hci_socket(dev_id: Optional[int] = None) -> socket.socket:
    """Raw HCI socket, bound to *dev_id* when given."""
    sock = socket.socket(socket.AF_BLUETOOTH, socket.SOCK_RAW, socket.BTPROTO_HCI)
    if dev_id is not None:
        try:
            sock.bind((dev_id,))
        except OSError:
            sock.close()
            raise
    return sock


class LinuxHciTransport(HciTransport):
    """Talks to the kernel Bluetooth stack through raw HCI sockets."""

    # ------------------------------------------------------------------
    # ioctl helpers
    # ------------------------------------------------------------------
    def device_list(self) -> List[int]:
        buf = bytearray(struct.pack("<H2x", HCI_MAX_DEV) + bytes(HCI_MAX_DEV * 8))
        with open_hci_socket() as sock:
            fcntl.ioctl(sock.fileno(), HCIGETDEVLIST, buf, True)
        (count,) = struct.unpack_from("<H", buf, 0)
        return [struct.unpack_from("<H2xI", buf, 4 + 8 * i)[0] for i in range(count)]

    def device_info(self, dev_id: int) -> HciDeviceInfo:
        buf = bytearray(_DEV_INFO.size)
        struct.pack_into("<H", buf, 0, dev_id)
        with open_hci_socket() as sock:
            fcntl.ioctl(sock.fileno(), HCIGETDEVINFO, buf, True)
        fields = _DEV_INFO.unpack(bytes(buf))
        name = fields[1].split(b"\0", 1)[0].decode("ascii", "replace")
        return HciDeviceInfo(
            dev_id=fields[0],
            name=name,
            address=ba2str(fields[2]),
            type=fields[4],
            flags=fields[3],
        )

    def connections(self, dev_id: int) -> List[HciConnection]:
        buf = bytearray(struct.pack("<HH", dev_id, _MAX_CONN) + bytes(_MAX_CONN * _CONN_INFO.size))
        with open_hci_socket() as sock:
            fcntl.ioctl(sock.fileno(), HCIGETCONNLIST, buf, True)
        (_, count) = struct.unpack_from("<HH", buf, 0)
        links = []
        for i in range(count):
            handle, bdaddr, link_type, out, _state, _mode = _CONN_INFO.unpack_from(buf, 4 + i * _CONN_INFO.size)
            links.append(HciConnection(dev_id, handle, ba2str(bdaddr), link_type, bool(out)))
        return links

    # ------------------------------------------------------------------
    # Command exchange
    # ------------------------------------------------------------------
    def _send_command(self, sock: socket.socket, ogf: int, ocf: int, params: bytes = b"") -> None:
        header = struct.pack("<BHB", HCI_COMMAND_PKT, hci_opcode(ogf, ocf), len(params))
        sock.send(header + params)

    def _request(self, dev_id: int, ogf: int, ocf: int, params: bytes, timeout: int,
                 event: int = EVT_CMD_COMPLETE) -> bytes:
        """Send one command and wait for its completion.

        Returns the return parameters of Command Complete, or the status byte
        of Command Status when *event* is ``EVT_CMD_STATUS``.
        """
        opcode = hci_opcode(ogf, ocf)
        with open_hci_socket(dev_id) as sock:
            sock.setsockopt(SOL_HCI, HCI_FILTER, event_filter(EVT_CMD_STATUS, EVT_CMD_COMPLETE))
            self._send_command(sock, ogf, ocf, params)

            deadline = time.monotonic() + timeout / 1000.0
            while True:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                readable, _, _ = select.select([sock], [], [], remaining)
                if not readable:
                    break
                packet = sock.recv(260)
                if len(packet) < 3 or packet[0] != HCI_EVENT_PKT:
                    continue
                evt, plen = packet[1], packet[2]
                data = packet[3:3 + plen]
                if evt == EVT_CMD_STATUS and len(data) >= 4:
                    status, _ncmd, got = struct.unpack_from("<BBH", data)
                    if got != opcode:
                        continue
                    if event == EVT_CMD_STATUS:
                        return bytes([status])
                    if status:
                        raise HciStatusError(status, f"opcode 0x{opcode:04x}")
                elif evt == EVT_CMD_COMPLETE and len(data) >= 3:
                    _ncmd, got = struct.unpack_from("<BH", data)
                    if got == opcode:
                        return bytes(data[3:])
        raise OSError(errno.ETIMEDOUT, f"HCI command 0x{opcode:04x} timed out")

    def _checked(self, dev_id: int, ogf: int, ocf: int, params: bytes, timeout: int,
                 event: int = EVT_CMD_COMPLETE) -> bytes:
        reply = self._request(dev_id, ogf, ocf, params, timeout, event)
        if not reply:
            raise OSError(errno.EIO, "empty HCI reply")
        if reply[0]:
            raise HciStatusError(reply[0], f"ogf 0x{ogf:02x} ocf 0x{ocf:04x}")
        return reply

    def read_scan_enable(self, dev_id: int, timeout: int) -> int:
        reply = self._checked(dev_id, OGF_HOST_CTL, OCF_READ_SCAN_ENABLE, b"", timeout)
        if len(reply) < 2:
            raise OSError(errno.EIO, f"short Read Scan Enable reply ({len(reply)} bytes)")
        return reply[1]

    def write_scan_enable(self, dev_id: int, scan_enable: int, timeout: int) -> None:
        self._checked(dev_id, OGF_HOST_CTL, OCF_WRITE_SCAN_ENABLE, bytes([scan_enable]), timeout)

    def read_local_name(self, dev_id: int, timeout: int) -> str:
        reply = self._checked(dev_id, OGF_HOST_CTL, OCF_READ_LOCAL_NAME, b"", timeout)
        return reply[1:1 + HCI_MAX_NAME_LENGTH].split(b"\0", 1)[0].decode("utf-8", "replace")

    def change_local_name(self, dev_id: int, name: str, timeout: int) -> None:
        raw = name.encode("utf-8")[:HCI_MAX_NAME_LENGTH - 1]
        self._checked(dev_id, OGF_HOST_CTL, OCF_CHANGE_LOCAL_NAME, raw.ljust(HCI_MAX_NAME_LENGTH, b"\0"), timeout)

    def read_local_version(self, dev_id: int, timeout: int) -> HciVersion:
        reply = self._checked(dev_id, OGF_INFO_PARAM, OCF_READ_LOCAL_VERSION, b"", timeout)
        if len(reply) < _READ_LOCAL_VERSION_RP.size:
            raise OSError(errno.EIO, f"short Read Local Version reply ({len(reply)} bytes)")
        _status, hci_ver, hci_rev, lmp_ver, manufacturer, lmp_subver = _READ_LOCAL_VERSION_RP.unpack_from(reply)
        return HciVersion(hci_ver, hci_rev, lmp_ver, lmp_subver, manufacturer)

    def start_inquiry(self, dev_id: int, lap: int, length: int, num_rsp: int, timeout: int) -> None:
        params = struct.pack("<I", lap)[:3] + bytes([length, num_rsp])
        self._checked(dev_id, OGF_LINK_CTL, OCF_INQUIRY, params, timeout, EVT_CMD_STATUS)

    def cancel_inquiry(self, dev_id: int, timeout: int) -> None:
        self._checked(dev_id, OGF_LINK_CTL, OCF_INQUIRY_CANCEL, b"", timeout)

    def request_remote_name(self, dev_id: int, address: str, timeout: int) -> None:
        params = str2ba(address) + struct.pack("<BBH", _PSCAN_REP_MODE_R2, 0, 0)
        self._checked(dev_id, OGF_LINK_CTL, OCF_REMOTE_NAME_REQ, params, timeout, EVT_CMD_STATUS)

    def request_authentication(self, dev_id: int, handle: int, timeout: int) -> None:
        self._checked(dev_id, OGF_LINK_CTL, OCF_AUTH_REQUESTED, struct.pack("<H", handle), timeout,
                      EVT_CMD_STATUS)

    # ------------------------------------------------------------------
    # Pairing replies (fire and forget)
    # ------------------------------------------------------------------
    def pin_code_reply(self, dev_id: int, address: str, pin: bytes) -> None:
        pin = pin[:HCI_PIN_CODE_MAX]
        params = str2ba(address) + bytes([len(pin)]) + pin.ljust(HCI_PIN_CODE_MAX, b"\0")
        with open_hci_socket(dev_id) as sock:
            self._send_command(sock, OGF_LINK_CTL, OCF_PIN_CODE_REPLY, params)
        print_and_log(f"[*] PIN code reply sent to {address} on hci{dev_id}", LOG__DEBUG)

    def pin_code_negative_reply(self, dev_id: int, address: str) -> None:
        with open_hci_socket(dev_id) as sock:
            self._send_command(sock, OGF_LINK_CTL, OCF_PIN_CODE_NEG_REPLY, str2ba(address))
        print_and_log(f"[*] PIN code negative reply sent to {address} on hci{dev_id}", LOG__DEBUG)
