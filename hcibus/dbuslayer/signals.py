"""
Outbound signals.

Each signal the adapter emits is described by a :class:`SignalSpec` holding
its member name, interface and fixed argument signature.  Arguments are
checked against the signature before anything is put on the bus, and the
:class:`EventTranslator` turns controller events into those signals on the
owning device's path.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Tuple

from hcibus.bt_ref.constants import (
    BLUEZ_MGR_DEV_ADDED,
    BLUEZ_MGR_DEV_REMOVED,
    DEV_SIG_BONDING_CREATED,
    DEV_SIG_DISCOVER_COMPLETE,
    DEV_SIG_DISCOVER_RESULT,
    DEV_SIG_DISCOVER_START,
    DEV_SIG_MODE_CHANGED,
    DEV_SIG_NAME_CHANGED,
    DEV_SIG_REMOTE_NAME,
    DEV_SIG_REMOTE_NAME_FAILED,
    DEVICE_INTERFACE,
    MANAGER_INTERFACE,
)
from hcibus.bt_ref.utils import device_path, scan_enable_to_mode
from hcibus.core.errors import BusUnavailableError, HciStatusError, SignalArgumentError
from hcibus.core.log import print_and_log, LOG__DEBUG, LOG__EVENT
from hcibus.core.state import AdapterState


@dataclass(frozen=True)
class SignalSpec:
    name: str
    signature: str
    interface: str = DEVICE_INTERFACE


DEVICE_ADDED = SignalSpec(BLUEZ_MGR_DEV_ADDED, "s", MANAGER_INTERFACE)
DEVICE_REMOVED = SignalSpec(BLUEZ_MGR_DEV_REMOVED, "s", MANAGER_INTERFACE)

MODE_CHANGED = SignalSpec(DEV_SIG_MODE_CHANGED, "y")
NAME_CHANGED = SignalSpec(DEV_SIG_NAME_CHANGED, "s")
BONDING_CREATED = SignalSpec(DEV_SIG_BONDING_CREATED, "sy")
DISCOVER_START = SignalSpec(DEV_SIG_DISCOVER_START, "")
DISCOVER_COMPLETE = SignalSpec(DEV_SIG_DISCOVER_COMPLETE, "")
DISCOVER_RESULT = SignalSpec(DEV_SIG_DISCOVER_RESULT, "sui")
REMOTE_NAME = SignalSpec(DEV_SIG_REMOTE_NAME, "ss")
REMOTE_NAME_FAILED = SignalSpec(DEV_SIG_REMOTE_NAME_FAILED, "sy")

# signature code -> (python type, min, max)
_INT_RANGES = {
    "y": (0, 0xFF),
    "u": (0, 0xFFFFFFFF),
    "i": (-(1 << 31), (1 << 31) - 1),
}


def build_signal_args(spec: SignalSpec, *args: Any) -> Tuple[Any, ...]:
    """Check *args* against the fixed signature of *spec*.

    Only the single-character codes used by the adapter's signals are
    accepted (``s``, ``y``, ``u``, ``i``, ``b``).
    """
    if len(args) != len(spec.signature):
        raise SignalArgumentError(
            f"{spec.name} takes {len(spec.signature)} argument(s), got {len(args)}"
        )
    for position, (code, value) in enumerate(zip(spec.signature, args)):
        if code == "s":
            if not isinstance(value, str):
                raise SignalArgumentError(f"{spec.name} arg {position}: expected str, got {type(value).__name__}")
        elif code == "b":
            if not isinstance(value, bool):
                raise SignalArgumentError(f"{spec.name} arg {position}: expected bool, got {type(value).__name__}")
        elif code in _INT_RANGES:
            low, high = _INT_RANGES[code]
            if isinstance(value, bool) or not isinstance(value, int):
                raise SignalArgumentError(f"{spec.name} arg {position}: expected int, got {type(value).__name__}")
            if not low <= value <= high:
                raise SignalArgumentError(f"{spec.name} arg {position}: {value} out of range for '{code}'")
        else:
            raise SignalArgumentError(f"{spec.name}: unsupported signature code '{code}'")
    return tuple(args)


class SignalEmitter:
    """Puts validated signals on the current connection; best effort."""

    def __init__(self, state: AdapterState):
        self._state = state

    def emit(self, path: str, spec: SignalSpec, *args: Any) -> bool:
        values = build_signal_args(spec, *args)
        conn = self._state.connection
        if conn is None:
            print_and_log(f"[-] No bus connection, dropping {spec.name} on {path}", LOG__DEBUG)
            return False
        try:
            conn.emit_signal(path, spec.interface, spec.name, spec.signature, values)
        except BusUnavailableError as exc:
            print_and_log(f"[-] Can't send {spec.name} signal on {path}: {exc}", LOG__DEBUG)
            return False
        print_and_log(f"[+] {path} {spec.name}{values}", LOG__EVENT)
        return True


class EventTranslator:
    """Controller event -> device-path signal.

    Events name the local controller by address; the owning device id is
    looked up among the enumerated devices and events of unknown devices are
    dropped.
    """

    def __init__(self, state: AdapterState, hci, registry, emitter: SignalEmitter):
        self._state = state
        self._hci = hci
        self._registry = registry
        self._emitter = emitter

    def _device_for(self, local: str, event: str) -> Optional[int]:
        try:
            dev_id = self._hci.devid_for_address(local)
        except OSError as exc:
            print_and_log(f"[-] {event}: device lookup for {local} failed: {exc}", LOG__DEBUG)
            return None
        if dev_id is None:
            print_and_log(f"[-] {event}: unable to get device id for address {local}", LOG__DEBUG)
        return dev_id

    def _emit(self, local: str, spec: SignalSpec, *args: Any) -> bool:
        dev_id = self._device_for(local, spec.name)
        if dev_id is None:
            return False
        return self._emitter.emit(device_path(dev_id), spec, *args)

    def inquiry_start(self, local: str) -> bool:
        return self._emit(local, DISCOVER_START)

    def inquiry_complete(self, local: str) -> bool:
        return self._emit(local, DISCOVER_COMPLETE)

    def inquiry_result(self, local: str, peer: str, dev_class: int, rssi: int) -> bool:
        return self._emit(local, DISCOVER_RESULT, peer, dev_class, rssi)

    def remote_name(self, local: str, peer: str, name: str) -> bool:
        return self._emit(local, REMOTE_NAME, peer, name)

    def remote_name_failed(self, local: str, peer: str, status: int) -> bool:
        return self._emit(local, REMOTE_NAME_FAILED, peer, status)

    def bonding_created(self, local: str, peer: str, status: int) -> bool:
        return self._emit(local, BONDING_CREATED, peer, status)

    def mode_changed(self, local: str) -> bool:
        """Scan enable was written: re-read it, refresh the cache, emit the mode."""
        dev_id = self._device_for(local, MODE_CHANGED.name)
        if dev_id is None:
            return False
        try:
            scan_enable = self._hci.read_scan_enable(dev_id, self._state.config.hci_timeout_ms)
        except (OSError, HciStatusError) as exc:
            print_and_log(f"[-] Can't read scan enable of hci{dev_id}: {exc}", LOG__DEBUG)
            return False

        path = device_path(dev_id)
        context = self._registry.lookup(path)
        if context is not None:
            context.scan_enable = scan_enable
        return self._emitter.emit(path, MODE_CHANGED, scan_enable_to_mode(scan_enable))

    def name_changed(self, local: str) -> bool:
        """Local name was written: re-read it and emit (empty when unreadable)."""
        dev_id = self._device_for(local, NAME_CHANGED.name)
        if dev_id is None:
            return False
        try:
            name = self._hci.read_local_name(dev_id, self._state.config.hci_timeout_ms)
        except (OSError, HciStatusError) as exc:
            print_and_log(f"[-] Can't read local name of hci{dev_id}: {exc}", LOG__DEBUG)
            name = ""
        return self._emitter.emit(device_path(dev_id), NAME_CHANGED, name)
