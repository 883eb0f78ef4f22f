"""
HCI transport contract.

The adapter never talks to a Bluetooth controller directly; every hardware
query goes through an :class:`HciTransport`.  Implementations raise
:class:`OSError` when the device handle cannot be used and
:class:`hcibus.core.errors.HciStatusError` when the controller completes a
command with a non-zero status.  Timeouts are in milliseconds.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

from hcibus.bt_ref.constants import HCI_UP
from hcibus.bt_ref.utils import hci_test_bit


@dataclass(frozen=True)
class HciDeviceInfo:
    dev_id: int
    name: str
    address: str
    type: int
    flags: int

    @property
    def is_up(self) -> bool:
        return hci_test_bit(HCI_UP, self.flags)


@dataclass(frozen=True)
class HciVersion:
    hci_ver: int
    hci_rev: int
    lmp_ver: int
    lmp_subver: int
    manufacturer: int


@dataclass(frozen=True)
class HciConnection:
    """One baseband link as reported by the kernel connection list."""

    dev_id: int
    handle: int
    address: str
    link_type: int
    outgoing: bool = False


class HciTransport(ABC):
    """Synchronous command/reply access to the local HCI devices."""

    # -- device enumeration ----------------------------------------------
    @abstractmethod
    def device_list(self) -> List[int]:
        """Ids of every HCI device currently known to the kernel."""

    @abstractmethod
    def device_info(self, dev_id: int) -> HciDeviceInfo:
        """Name, address, type and flags of *dev_id*."""

    def devid_for_address(self, address: str) -> Optional[int]:
        """Id of the up device whose local address is *address*, or None."""
        wanted = address.upper()
        for dev_id in self.device_list():
            try:
                info = self.device_info(dev_id)
            except OSError:
                continue
            if info.is_up and info.address.upper() == wanted:
                return dev_id
        return None

    # -- host controller ---------------------------------------------------
    @abstractmethod
    def read_scan_enable(self, dev_id: int, timeout: int) -> int:
        """Current page/inquiry scan bitmask."""

    @abstractmethod
    def write_scan_enable(self, dev_id: int, scan_enable: int, timeout: int) -> None:
        ...

    @abstractmethod
    def read_local_name(self, dev_id: int, timeout: int) -> str:
        ...

    @abstractmethod
    def change_local_name(self, dev_id: int, name: str, timeout: int) -> None:
        ...

    @abstractmethod
    def read_local_version(self, dev_id: int, timeout: int) -> HciVersion:
        ...

    # -- link control --------------------------------------------------------
    @abstractmethod
    def start_inquiry(self, dev_id: int, lap: int, length: int, num_rsp: int, timeout: int) -> None:
        """Start an asynchronous inquiry; results arrive as events."""

    @abstractmethod
    def cancel_inquiry(self, dev_id: int, timeout: int) -> None:
        ...

    @abstractmethod
    def request_remote_name(self, dev_id: int, address: str, timeout: int) -> None:
        """Start an asynchronous remote name request."""

    @abstractmethod
    def connections(self, dev_id: int) -> List[HciConnection]:
        """Baseband links currently open on *dev_id*."""

    def find_connection(self, address: str) -> Optional[HciConnection]:
        """Link to *address* on whichever up device holds it."""
        wanted = address.upper()
        for dev_id in self.device_list():
            try:
                if not self.device_info(dev_id).is_up:
                    continue
                links = self.connections(dev_id)
            except OSError:
                continue
            for link in links:
                if link.address.upper() == wanted:
                    return link
        return None

    @abstractmethod
    def request_authentication(self, dev_id: int, handle: int, timeout: int) -> None:
        ...

    # -- pairing -------------------------------------------------------------
    @abstractmethod
    def pin_code_reply(self, dev_id: int, address: str, pin: bytes) -> None:
        """Accept a PIN request with *pin* (at most 16 bytes)."""

    @abstractmethod
    def pin_code_negative_reply(self, dev_id: int, address: str) -> None:
        """Reject a PIN request."""
