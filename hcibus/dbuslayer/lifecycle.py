"""
Bus connection lifecycle.

``connect`` walks DISCONNECTED -> CONNECTED: open the bus, claim the service
name, export the device root (as fallback) and manager root, install the
filter.  The filter watches for the bus' own ``Disconnected`` signal; on it the
connection is torn down and a periodic reconnection timer is armed that keeps
retrying until the bus is back.

The timer runs on the event loop (see :class:`hcibus.dbuslayer.bus.GLibTimer`),
so registry work never happens from a signal handler.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, Optional

from hcibus.bt_ref.constants import (
    BASE_INTERFACE,
    DBUS_INTERFACE_DBUS,
    DBUS_INTERFACE_LOCAL,
    DBUS_SIGNAL_DISCONNECTED,
    DBUS_SIGNAL_NAME_ACQUIRED,
    DBUS_SIGNAL_NAME_OWNER_CHANGED,
    DEVICE_PATH,
    MANAGER_PATH,
)
from hcibus.core.errors import BusUnavailableError
from hcibus.core.log import print_and_log, LOG__DEBUG, LOG__GENERAL
from hcibus.core.state import AdapterState, PathRole
from hcibus.dbuslayer.message import BusConnection, BusMessage, MessageKind


class Timer(ABC):
    @abstractmethod
    def cancel(self) -> None:
        ...


# (bus type) -> connection
BusFactory = Callable[[str], BusConnection]
# (interval seconds, callback returning True to stay armed) -> timer
TimerFactory = Callable[[int, Callable[[], bool]], Timer]


class ConnectionLifecycleManager:
    def __init__(
        self,
        state: AdapterState,
        registry,
        router,
        bus_factory: BusFactory,
        timer_factory: TimerFactory,
        on_disconnect: Optional[Callable[[], None]] = None,
        on_reconnect: Optional[Callable[[], None]] = None,
    ):
        self._state = state
        self._registry = registry
        self._router = router
        self._bus_factory = bus_factory
        self._timer_factory = timer_factory
        self._on_disconnect = on_disconnect
        self._on_reconnect = on_reconnect
        self._timer: Optional[Timer] = None

    @property
    def connected(self) -> bool:
        return self._state.connection is not None

    @property
    def reconnecting(self) -> bool:
        return self._timer is not None

    # ------------------------------------------------------------------
    # DISCONNECTED -> CONNECTED
    # ------------------------------------------------------------------
    def connect(self) -> bool:
        """Run the full connection sequence; any failing step aborts it."""
        if self._state.connection is not None:
            return True
        try:
            conn = self._bus_factory(self._state.config.bus)
        except BusUnavailableError as exc:
            print_and_log(f"[-] Unable to get on {self._state.config.bus} bus: {exc}", LOG__DEBUG)
            return False

        self._state.connection = conn
        try:
            conn.request_name(BASE_INTERFACE)
        except BusUnavailableError as exc:
            print_and_log(f"[-] Can't claim {BASE_INTERFACE}: {exc}", LOG__DEBUG)
            return self._abort(conn)

        if not self._registry.register(DEVICE_PATH, PathRole.DEVICE_ROOT,
                                       handler=self._router.dispatch, fallback=True):
            return self._abort(conn)
        if not self._registry.register(MANAGER_PATH, PathRole.MANAGER_ROOT, handler=self._router.dispatch):
            return self._abort(conn)

        try:
            conn.add_filter(self._filter)
        except BusUnavailableError as exc:
            print_and_log(f"[-] Can't add new HCI filter: {exc}", LOG__DEBUG)
            return self._abort(conn)

        print_and_log(f"[+] Connected to the {self._state.config.bus} bus as {BASE_INTERFACE}", LOG__GENERAL)
        return True

    def _abort(self, conn: BusConnection) -> bool:
        self._registry.clear()
        self._state.connection = None
        self._close(conn)
        return False

    @staticmethod
    def _close(conn: BusConnection) -> None:
        try:
            conn.close()
        except BusUnavailableError as exc:
            print_and_log(f"[-] Error closing bus connection: {exc}", LOG__DEBUG)

    # ------------------------------------------------------------------
    # CONNECTED -> DISCONNECTED
    # ------------------------------------------------------------------
    def _filter(self, message: BusMessage) -> bool:
        if message.kind is not MessageKind.SIGNAL:
            return False

        if message.interface == DBUS_INTERFACE_LOCAL and message.member == DBUS_SIGNAL_DISCONNECTED:
            self.handle_disconnect()
            return True
        if message.interface == DBUS_INTERFACE_DBUS and message.member in (
            DBUS_SIGNAL_NAME_OWNER_CHANGED,
            DBUS_SIGNAL_NAME_ACQUIRED,
        ):
            return True
        return False

    def handle_disconnect(self) -> None:
        """Tear the dead connection down and start reconnecting."""
        print_and_log("[-] Got disconnected from the message bus", LOG__GENERAL)
        if self._on_disconnect is not None:
            self._on_disconnect()

        self._registry.clear()
        conn = self._state.connection
        self._state.connection = None
        if conn is not None:
            self._close(conn)
        self.arm_reconnect()

    def arm_reconnect(self) -> None:
        if self._timer is None:
            self._timer = self._timer_factory(self._state.config.reconnect_interval, self._on_timer)

    def _on_timer(self) -> bool:
        if not self.connect():
            print_and_log("[*] Bus still unavailable, retrying", LOG__DEBUG)
            return True

        self._timer = None
        if self._on_reconnect is not None:
            self._on_reconnect()
        return False

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------
    def close(self) -> None:
        """Release both root paths and drop the connection."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

        conn = self._state.connection
        if conn is None:
            return
        for path in (DEVICE_PATH, MANAGER_PATH):
            if path in self._registry:
                self._registry.unregister(path)
        self._registry.clear()
        self._state.connection = None
        try:
            conn.flush()
        except BusUnavailableError as exc:
            print_and_log(f"[-] Error flushing bus connection: {exc}", LOG__DEBUG)
        self._close(conn)
