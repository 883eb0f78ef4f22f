"""
Device and manager service tables.

Handlers take ``(services, context, request)`` and either return a
:class:`~hcibus.dbuslayer.message.MethodReturn` or raise a
:class:`~hcibus.core.errors.HcibusError` (``OSError`` from the HCI transport
is mapped to the system error range by the router).
"""

from __future__ import annotations

from typing import List

from hcibus.bt_ref import constants as C
from hcibus.bt_ref.utils import (
    dev_flags_to_list,
    dev_type_to_str,
    device_path,
    hci_version_to_str,
    compid_to_str,
    is_valid_bdaddr,
    mode_to_scan_enable,
    scan_enable_to_mode,
)
from hcibus.core.errors import (
    ConnectionNotFoundError,
    NotImplementedMethodError,
    RecordNotFoundError,
    NoDeviceError,
    WrongParameterError,
)
from hcibus.core.log import print_and_log, LOG__DEBUG
from hcibus.core.state import AdapterState, DeviceContext
from hcibus.core.textfile import get_cached_name, oui_to_company
from hcibus.dbuslayer.message import BusMessage, MethodReturn
from hcibus.dbuslayer.router import ServiceEntry
from hcibus.dbuslayer.signals import REMOTE_NAME, SignalEmitter
from hcibus.hci.transport import HciTransport


class AdapterServices:
    """What the handlers need: state, hardware and the signal emitter."""

    def __init__(self, state: AdapterState, hci: HciTransport, emitter: SignalEmitter):
        self.state = state
        self.hci = hci
        self.emitter = emitter

    @property
    def timeout(self) -> int:
        return self.state.config.hci_timeout_ms


def _address_arg(request: BusMessage) -> str:
    address = str(request.args[0]) if request.args else ""
    if not is_valid_bdaddr(address):
        raise WrongParameterError("address", f"invalid Bluetooth address {address!r}")
    return address.upper()


def not_implemented(services, context: DeviceContext, request: BusMessage) -> MethodReturn:
    raise NotImplementedMethodError(request.member or "")


# ---------------------------------------------------------------------------
# Device queries
# ---------------------------------------------------------------------------

def dev_get_address(services: AdapterServices, context: DeviceContext, request: BusMessage) -> MethodReturn:
    info = services.hci.device_info(context.dev_id)
    return MethodReturn("s", (info.address,))


def dev_get_version(services: AdapterServices, context: DeviceContext, request: BusMessage) -> MethodReturn:
    version = services.hci.read_local_version(context.dev_id, services.timeout)
    return MethodReturn("s", (f"Bluetooth {hci_version_to_str(version.lmp_ver)}",))


def dev_get_revision(services: AdapterServices, context: DeviceContext, request: BusMessage) -> MethodReturn:
    version = services.hci.read_local_version(context.dev_id, services.timeout)
    return MethodReturn("s", (f"HCI 0x{version.hci_rev:X}",))


def dev_get_manufacturer(services: AdapterServices, context: DeviceContext, request: BusMessage) -> MethodReturn:
    version = services.hci.read_local_version(context.dev_id, services.timeout)
    return MethodReturn("s", (compid_to_str(version.manufacturer),))


def dev_get_company(services: AdapterServices, context: DeviceContext, request: BusMessage) -> MethodReturn:
    info = services.hci.device_info(context.dev_id)
    company = oui_to_company(services.state.config.oui_file, info.address)
    if company is None:
        raise RecordNotFoundError(f"company for {info.address[:8]}")
    return MethodReturn("s", (company,))


def dev_get_mode(services: AdapterServices, context: DeviceContext, request: BusMessage) -> MethodReturn:
    # answered from the cache, no hardware round trip
    return MethodReturn("y", (scan_enable_to_mode(context.scan_enable),))


def dev_get_name(services: AdapterServices, context: DeviceContext, request: BusMessage) -> MethodReturn:
    name = services.hci.read_local_name(context.dev_id, services.timeout)
    return MethodReturn("s", (name,))


def dev_is_connectable(services: AdapterServices, context: DeviceContext, request: BusMessage) -> MethodReturn:
    return MethodReturn("b", (bool(context.scan_enable & C.SCAN_PAGE),))


def dev_is_discoverable(services: AdapterServices, context: DeviceContext, request: BusMessage) -> MethodReturn:
    return MethodReturn("b", (bool(context.scan_enable & C.SCAN_INQUIRY),))


# ---------------------------------------------------------------------------
# Device settings
# ---------------------------------------------------------------------------

def dev_set_mode(services: AdapterServices, context: DeviceContext, request: BusMessage) -> MethodReturn:
    """Translate the bus mode to a scan-enable value and write it if it changed."""
    mode = int(request.args[0])
    scan_enable = mode_to_scan_enable(mode)
    if scan_enable is None:
        raise WrongParameterError("mode", f"unknown mode 0x{mode:02x}")

    if scan_enable != context.scan_enable:
        services.hci.write_scan_enable(context.dev_id, scan_enable, services.timeout)
        context.scan_enable = scan_enable
    return MethodReturn()


def dev_set_name(services: AdapterServices, context: DeviceContext, request: BusMessage) -> MethodReturn:
    name = str(request.args[0])
    if not name:
        print_and_log("[-] HCI change name failed - Invalid Name!", LOG__DEBUG)
        raise WrongParameterError("name", "empty name")
    services.hci.change_local_name(context.dev_id, name, services.timeout)
    return MethodReturn()


# ---------------------------------------------------------------------------
# Discovery and remote devices
# ---------------------------------------------------------------------------

def dev_discover(services: AdapterServices, context: DeviceContext, request: BusMessage) -> MethodReturn:
    services.hci.start_inquiry(context.dev_id, C.GIAC_LAP, C.INQUIRY_LENGTH, 0, services.timeout)
    return MethodReturn()


def dev_discover_cancel(services: AdapterServices, context: DeviceContext, request: BusMessage) -> MethodReturn:
    services.hci.cancel_inquiry(context.dev_id, services.timeout)
    return MethodReturn()


def dev_remote_name(services: AdapterServices, context: DeviceContext, request: BusMessage) -> MethodReturn:
    """Answer from the name cache (via signal) or ask the remote device."""
    peer = _address_arg(request)
    try:
        info = services.hci.device_info(context.dev_id)
    except OSError as exc:
        print_and_log(f"[-] Can't get device info: {exc}", LOG__DEBUG)
        raise NoDeviceError(context.dev_id) from exc

    name = get_cached_name(services.state.config.storage_dir, info.address, peer)
    if name is not None:
        services.emitter.emit(device_path(context.dev_id), REMOTE_NAME, peer, name)
    else:
        services.hci.request_remote_name(context.dev_id, peer, services.timeout)
    return MethodReturn()


def dev_create_bonding(services: AdapterServices, context: DeviceContext, request: BusMessage) -> MethodReturn:
    peer = _address_arg(request)
    link = services.hci.find_connection(peer)
    if link is None or link.dev_id != context.dev_id:
        raise ConnectionNotFoundError(peer)
    services.hci.request_authentication(context.dev_id, link.handle, services.timeout)
    return MethodReturn()


# ---------------------------------------------------------------------------
# Manager
# ---------------------------------------------------------------------------

def mgr_device_list(services: AdapterServices, context: DeviceContext, request: BusMessage) -> MethodReturn:
    entries: List[tuple] = []
    for dev_id in services.hci.device_list():
        try:
            info = services.hci.device_info(dev_id)
        except OSError:
            continue
        entries.append((
            f"{C.DEVICE_PATH}/{info.name}",
            info.address,
            dev_type_to_str(info.type),
            "UP" if info.is_up else "DOWN",
            dev_flags_to_list(info.flags),
        ))
    return MethodReturn(C.MGR_REPLY_DEVICE_LIST_SIGNATURE, (entries,))


def mgr_default_device(services: AdapterServices, context: DeviceContext, request: BusMessage) -> MethodReturn:
    if services.state.default_device is None:
        raise NoDeviceError()
    return MethodReturn("s", (device_path(services.state.default_device),))


DEVICE_SERVICES = (
    ServiceEntry(C.DEV_GET_ADDRESS, dev_get_address, C.DEV_GET_ADDRESS_SIGNATURE),
    ServiceEntry(C.DEV_GET_ALIAS, not_implemented, C.DEV_GET_ALIAS_SIGNATURE),
    ServiceEntry(C.DEV_GET_COMPANY, dev_get_company, C.DEV_GET_COMPANY_SIGNATURE),
    ServiceEntry(C.DEV_GET_DISCOVERABLE_TO, not_implemented, C.DEV_GET_DISCOVERABLE_TO_SIGNATURE),
    ServiceEntry(C.DEV_GET_FEATURES, not_implemented, C.DEV_GET_FEATURES_SIGNATURE),
    ServiceEntry(C.DEV_GET_MANUFACTURER, dev_get_manufacturer, C.DEV_GET_MANUFACTURER_SIGNATURE),
    ServiceEntry(C.DEV_GET_MODE, dev_get_mode, C.DEV_GET_MODE_SIGNATURE),
    ServiceEntry(C.DEV_GET_NAME, dev_get_name, C.DEV_GET_NAME_SIGNATURE),
    ServiceEntry(C.DEV_GET_REVISION, dev_get_revision, C.DEV_GET_REVISION_SIGNATURE),
    ServiceEntry(C.DEV_GET_VERSION, dev_get_version, C.DEV_GET_VERSION_SIGNATURE),
    ServiceEntry(C.DEV_IS_CONNECTABLE, dev_is_connectable, C.DEV_IS_CONNECTABLE_SIGNATURE),
    ServiceEntry(C.DEV_IS_DISCOVERABLE, dev_is_discoverable, C.DEV_IS_DISCOVERABLE_SIGNATURE),
    ServiceEntry(C.DEV_SET_ALIAS, not_implemented, C.DEV_SET_ALIAS_SIGNATURE),
    ServiceEntry(C.DEV_SET_CLASS, not_implemented, C.DEV_SET_CLASS_SIGNATURE),
    ServiceEntry(C.DEV_SET_DISCOVERABLE_TO, not_implemented, C.DEV_SET_DISCOVERABLE_TO_SIGNATURE),
    ServiceEntry(C.DEV_SET_MODE, dev_set_mode, C.DEV_SET_MODE_SIGNATURE),
    ServiceEntry(C.DEV_SET_NAME, dev_set_name, C.DEV_SET_NAME_SIGNATURE),
    ServiceEntry(C.DEV_DISCOVER, dev_discover, C.DEV_DISCOVER_SIGNATURE),
    ServiceEntry(C.DEV_DISCOVER_CACHE, not_implemented, C.DEV_DISCOVER_CACHE_SIGNATURE),
    ServiceEntry(C.DEV_DISCOVER_CANCEL, dev_discover_cancel, C.DEV_DISCOVER_CANCEL_SIGNATURE),
    ServiceEntry(C.DEV_DISCOVER_SERVICE, not_implemented, C.DEV_DISCOVER_SERVICE_SIGNATURE),
    ServiceEntry(C.DEV_LAST_SEEN, not_implemented, C.DEV_LAST_SEEN_SIGNATURE),
    ServiceEntry(C.DEV_LAST_USED, not_implemented, C.DEV_LAST_USED_SIGNATURE),
    ServiceEntry(C.DEV_REMOTE_ALIAS, not_implemented, C.DEV_REMOTE_ALIAS_SIGNATURE),
    ServiceEntry(C.DEV_REMOTE_NAME, dev_remote_name, C.DEV_REMOTE_NAME_SIGNATURE),
    ServiceEntry(C.DEV_REMOTE_VERSION, not_implemented, C.DEV_REMOTE_VERSION_SIGNATURE),
    ServiceEntry(C.DEV_CREATE_BONDING, dev_create_bonding, C.DEV_CREATE_BONDING_SIGNATURE),
    ServiceEntry(C.DEV_LIST_BONDINGS, not_implemented, C.DEV_LIST_BONDINGS_SIGNATURE),
    ServiceEntry(C.DEV_HAS_BONDING_NAME, not_implemented, C.DEV_HAS_BONDING_SIGNATURE),
    ServiceEntry(C.DEV_REMOVE_BONDING, not_implemented, C.DEV_REMOVE_BONDING_SIGNATURE),
    ServiceEntry(C.DEV_PIN_CODE_LENGTH, not_implemented, C.DEV_PIN_CODE_LENGTH_SIGNATURE),
    ServiceEntry(C.DEV_ENCRYPTION_KEY_SIZE, not_implemented, C.DEV_ENCRYPTION_KEY_SIZE_SIGNATURE),
)

MANAGER_SERVICES = (
    ServiceEntry(C.MGR_DEVICE_LIST, mgr_device_list, C.MGR_DEVICE_LIST_SIGNATURE),
    ServiceEntry(C.MGR_DEFAULT_DEVICE, mgr_default_device, C.MGR_DEFAULT_DEVICE_SIGNATURE),
)
