"""
dbus-python binding of :class:`~hcibus.dbuslayer.message.BusConnection`.

Uses the low-level API (``dbus.lowlevel`` messages, object-path handlers and
message filters) because the adapter routes raw method calls itself instead
of exporting ``dbus.service.Object`` instances.  The connection is attached to
the GLib main loop.
"""

from __future__ import annotations

from typing import Any, Callable, Optional, Tuple

import dbus
import dbus.bus
import dbus.exceptions
import dbus.lowlevel
import dbus.mainloop.glib
from gi.repository import GLib

from hcibus.bt_ref.constants import ERROR_INTERFACE
from hcibus.core.errors import BusUnavailableError, PathRegistrationError
from hcibus.core.log import print_and_log, LOG__DEBUG
from hcibus.dbuslayer.lifecycle import Timer
from hcibus.dbuslayer.message import (
    BusConnection,
    BusMessage,
    Failure,
    MessageHandler,
    MessageKind,
    PendingCall,
    Reply,
    ReplyHandler,
)

_KINDS = {
    dbus.lowlevel.MESSAGE_TYPE_METHOD_CALL: MessageKind.METHOD_CALL,
    dbus.lowlevel.MESSAGE_TYPE_METHOD_RETURN: MessageKind.METHOD_RETURN,
    dbus.lowlevel.MESSAGE_TYPE_ERROR: MessageKind.ERROR,
    dbus.lowlevel.MESSAGE_TYPE_SIGNAL: MessageKind.SIGNAL,
}

_BUS_TYPES = {
    "system": dbus.bus.BUS_SYSTEM,
    "session": dbus.bus.BUS_SESSION,
}

_mainloop = None


def _glib_mainloop():
    global _mainloop
    if _mainloop is None:
        _mainloop = dbus.mainloop.glib.DBusGMainLoop(set_as_default=True)
    return _mainloop


def decode_message(message: Any) -> BusMessage:
    """Decoded view of a ``dbus.lowlevel.Message``."""
    kind = _KINDS.get(message.get_type(), MessageKind.SIGNAL)
    return BusMessage(
        kind=kind,
        path=message.get_path(),
        interface=message.get_interface(),
        member=message.get_member(),
        signature=message.get_signature() or "",
        args=tuple(message.get_args_list()),
        sender=message.get_sender(),
        error_name=message.get_error_name() if kind is MessageKind.ERROR else None,
        raw=message,
    )


def _handler_result(handled: bool) -> int:
    if handled:
        return dbus.lowlevel.HANDLER_RESULT_HANDLED
    return dbus.lowlevel.HANDLER_RESULT_NOT_YET_HANDLED


class DBusPendingCall(PendingCall):
    def __init__(self, pending):
        self._pending = pending

    def cancel(self) -> None:
        self._pending.cancel()


class DBusBusConnection(BusConnection):
    """A private (non-shared) connection to the system or session bus."""

    def __init__(self, bus_type: str = "system"):
        if bus_type not in _BUS_TYPES:
            raise BusUnavailableError(f"unknown bus type {bus_type!r}")
        try:
            self._conn = dbus.bus.BusConnection(_BUS_TYPES[bus_type], mainloop=_glib_mainloop())
        except dbus.exceptions.DBusException as exc:
            raise BusUnavailableError(str(exc)) from exc
        # reconnection is ours to handle
        self._conn.set_exit_on_disconnect(False)

    def request_name(self, name: str) -> None:
        try:
            result = self._conn.request_name(name, 0)
        except dbus.exceptions.DBusException as exc:
            raise BusUnavailableError(f"Can't get on the bus as {name}: {exc}") from exc
        if result not in (dbus.bus.REQUEST_NAME_REPLY_PRIMARY_OWNER, dbus.bus.REQUEST_NAME_REPLY_ALREADY_OWNER):
            raise BusUnavailableError(f"Can't get on the bus as {name}: not primary owner ({result})")

    def register_object_path(self, path: str, handler: MessageHandler, fallback: bool = False) -> None:
        def on_message(conn, message):
            return _handler_result(handler(decode_message(message)))

        try:
            self._conn._register_object_path(path, on_message, None, fallback=fallback)
        except (KeyError, RuntimeError, dbus.exceptions.DBusException) as exc:
            raise PathRegistrationError(path, str(exc)) from exc

    def unregister_object_path(self, path: str) -> None:
        try:
            self._conn._unregister_object_path(path)
        except (KeyError, RuntimeError, dbus.exceptions.DBusException) as exc:
            raise BusUnavailableError(f"Can't unregister {path}: {exc}") from exc

    def add_filter(self, handler: MessageHandler) -> None:
        def on_message(conn, message):
            return _handler_result(handler(decode_message(message)))

        try:
            self._conn.add_message_filter(on_message)
        except (RuntimeError, dbus.exceptions.DBusException) as exc:
            raise BusUnavailableError(str(exc)) from exc

    def send_reply(self, request: BusMessage, reply: Reply) -> None:
        if isinstance(reply, Failure):
            message = dbus.lowlevel.ErrorMessage(request.raw, ERROR_INTERFACE, reply.description)
            message.append(dbus.UInt32(reply.code), signature="u")
        else:
            message = dbus.lowlevel.MethodReturnMessage(request.raw)
            if reply.signature:
                message.append(*reply.args, signature=reply.signature)
        self._send(message)

    def emit_signal(self, path: str, interface: str, member: str, signature: str, args: Tuple[Any, ...]) -> None:
        message = dbus.lowlevel.SignalMessage(path, interface, member)
        if signature:
            message.append(*args, signature=signature)
        self._send(message)

    def _send(self, message) -> None:
        try:
            self._conn.send_message(message)
        except dbus.exceptions.DBusException as exc:
            raise BusUnavailableError(str(exc)) from exc

    def call_async(self, destination: str, path: str, interface: str, member: str, signature: str,
                   args: Tuple[Any, ...], reply_handler: ReplyHandler, timeout: float) -> PendingCall:
        message = dbus.lowlevel.MethodCallMessage(destination, path, interface, member)
        if signature:
            message.append(*args, signature=signature)

        def on_reply(reply):
            reply_handler(decode_message(reply))

        try:
            pending = self._conn.send_message_with_reply(message, on_reply, timeout, require_main_loop=True)
        except (RuntimeError, dbus.exceptions.DBusException) as exc:
            raise BusUnavailableError(f"{member} call failed: {exc}") from exc
        return DBusPendingCall(pending)

    def flush(self) -> None:
        self._conn.flush()

    def close(self) -> None:
        self._conn.close()


def open_bus(bus_type: str = "system") -> DBusBusConnection:
    print_and_log(f"[*] Opening {bus_type} bus connection", LOG__DEBUG)
    return DBusBusConnection(bus_type)


class GLibTimer(Timer):
    """Periodic ``GLib.timeout_add_seconds`` source; the callback keeps it armed by returning True."""

    def __init__(self, interval: int, callback: Callable[[], bool]):
        self._callback = callback
        self._source: Optional[int] = GLib.timeout_add_seconds(interval, self._fire)

    def _fire(self) -> bool:
        keep = bool(self._callback())
        if not keep:
            self._source = None
        return keep

    def cancel(self) -> None:
        if self._source is not None:
            GLib.source_remove(self._source)
            self._source = None


_IO_GONE = GLib.IO_HUP | GLib.IO_ERR | GLib.IO_NVAL


def glib_io_watch(sock, callback: Callable[[Any, bool], bool]) -> int:
    """Call ``callback(sock, hangup)`` whenever *sock* is readable or goes away.

    The watch is dropped when the callback returns False and always after a
    hang-up, error or invalid descriptor.
    """

    def on_io(fd, condition):
        hangup = bool(condition & _IO_GONE)
        keep = bool(callback(sock, hangup))
        return keep and not hangup

    return GLib.io_add_watch(sock.fileno(), GLib.PRIORITY_DEFAULT, GLib.IO_IN | _IO_GONE, on_io)


def glib_unwatch(source_id: int) -> None:
    GLib.source_remove(source_id)
