"""
Adapter facade.

Wires the registry, router, PIN negotiation, event translator and connection
lifecycle around one :class:`AdapterState` and exposes the entry points used
by the daemon and the HCI event monitor.
"""

from __future__ import annotations

from typing import Optional

from hcibus.bt_ref.constants import DEVICE_PATH, MANAGER_PATH
from hcibus.bt_ref.utils import device_path
from hcibus.core.config import AdapterConfig
from hcibus.core.errors import HciStatusError
from hcibus.core.log import print_and_log, LOG__DEBUG, LOG__GENERAL
from hcibus.core.state import AdapterState, DEFAULT_SCAN_ENABLE, PathRole
from hcibus.dbuslayer.lifecycle import BusFactory, ConnectionLifecycleManager, TimerFactory
from hcibus.dbuslayer.pin import PinNegotiator
from hcibus.dbuslayer.registry import ObjectPathRegistry
from hcibus.dbuslayer.router import DispatchRouter
from hcibus.dbuslayer.services import DEVICE_SERVICES, MANAGER_SERVICES, AdapterServices
from hcibus.dbuslayer.signals import DEVICE_ADDED, DEVICE_REMOVED, EventTranslator, SignalEmitter
from hcibus.hci.transport import HciTransport


class HcibusAdapter:
    """Exposes the local HCI devices on the message bus."""

    def __init__(self, hci: HciTransport, bus_factory: BusFactory, timer_factory: TimerFactory,
                 config: Optional[AdapterConfig] = None):
        self.state = AdapterState(config or AdapterConfig())
        self.hci = hci
        self.registry = ObjectPathRegistry(self.state)
        self.emitter = SignalEmitter(self.state)
        self.services = AdapterServices(self.state, hci, self.emitter)
        self.router = DispatchRouter(self.state, self.services, DEVICE_SERVICES, MANAGER_SERVICES)
        self.lifecycle = ConnectionLifecycleManager(
            self.state,
            self.registry,
            self.router,
            bus_factory,
            timer_factory,
            on_disconnect=self._on_disconnect,
            on_reconnect=self.register_all_devices,
        )
        self.pin = PinNegotiator(self.state, hci, self.lifecycle.connect)
        self.events = EventTranslator(self.state, hci, self.registry, self.emitter)

    # ------------------------------------------------------------------
    # Startup / shutdown
    # ------------------------------------------------------------------
    def init(self) -> bool:
        return self.lifecycle.connect()

    def exit(self) -> None:
        """Unregister every device path, both roots, then close the bus."""
        if self.state.connection is None:
            self.lifecycle.close()
            return
        for path in self.registry.children(DEVICE_PATH):
            context = self.registry.lookup(path)
            if context is not None and context.is_device:
                self.unregister_device(context.dev_id)
            else:
                self.registry.unregister(path)
        self.pin.cancel_all()
        self.lifecycle.close()
        print_and_log("[*] Bus adapter stopped", LOG__GENERAL)

    def _on_disconnect(self) -> None:
        cancelled = self.pin.cancel_all()
        if cancelled:
            print_and_log(f"[-] {cancelled} PIN request(s) dropped with the connection", LOG__DEBUG)

    # ------------------------------------------------------------------
    # Devices
    # ------------------------------------------------------------------
    def register_device(self, dev_id: int) -> bool:
        """Export ``/org/bluez/Device/hci<dev_id>`` and announce it."""
        path = device_path(dev_id)
        if not self.registry.register(path, PathRole.DEVICE, dev_id, handler=self.router.dispatch):
            return False

        context = self.registry.lookup(path)
        try:
            context.scan_enable = self.hci.read_scan_enable(dev_id, self.state.config.scan_enable_timeout_ms)
        except (OSError, HciStatusError) as exc:
            print_and_log(f"[-] Read scan enable of hci{dev_id} failed: {exc}", LOG__DEBUG)
            context.scan_enable = DEFAULT_SCAN_ENABLE

        self.emitter.emit(MANAGER_PATH, DEVICE_ADDED, path)
        if self.state.default_device is None:
            self.state.default_device = dev_id
        print_and_log(f"[+] Registered {path}", LOG__GENERAL)
        return True

    def unregister_device(self, dev_id: int) -> bool:
        path = device_path(dev_id)
        if path not in self.registry:
            print_and_log(f"[-] {path} is not registered", LOG__DEBUG)
            return False

        self.emitter.emit(MANAGER_PATH, DEVICE_REMOVED, path)
        removed = self.registry.unregister(path)
        if self.state.default_device == dev_id:
            remaining = self.registry.device_ids()
            self.state.default_device = remaining[0] if remaining else None
        print_and_log(f"[+] Unregistered {path}", LOG__GENERAL)
        return removed

    def register_all_devices(self) -> int:
        """Register every device the controller list reports; resets the default."""
        try:
            dev_ids = self.hci.device_list()
        except OSError as exc:
            print_and_log(f"[-] Can't get device list: {exc}", LOG__DEBUG)
            return 0

        self.state.default_device = None
        return sum(1 for dev_id in dev_ids if self.register_device(dev_id))

    # ------------------------------------------------------------------
    # Hardware events
    # ------------------------------------------------------------------
    def request_pin(self, dev_id: int, peer: str, outgoing: bool = False) -> Optional[int]:
        return self.pin.request_pin(dev_id, peer, outgoing)

    def inquiry_start(self, local: str) -> bool:
        return self.events.inquiry_start(local)

    def inquiry_complete(self, local: str) -> bool:
        return self.events.inquiry_complete(local)

    def inquiry_result(self, local: str, peer: str, dev_class: int, rssi: int) -> bool:
        return self.events.inquiry_result(local, peer, dev_class, rssi)

    def remote_name(self, local: str, peer: str, name: str) -> bool:
        return self.events.remote_name(local, peer, name)

    def remote_name_failed(self, local: str, peer: str, status: int) -> bool:
        return self.events.remote_name_failed(local, peer, status)

    def bonding_created(self, local: str, peer: str, status: int) -> bool:
        return self.events.bonding_created(local, peer, status)

    def mode_changed(self, local: str) -> bool:
        return self.events.mode_changed(local)

    def name_changed(self, local: str) -> bool:
        return self.events.name_changed(local)
