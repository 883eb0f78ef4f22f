"""
Dispatch router.

Incoming method calls are matched against one of two static service tables.
The device and manager tables use different matching rules, so
each is wrapped in its own routing strategy:

* :class:`DeviceRoutingStrategy` ignores the interface, keeps scanning past a
  name match with the wrong signature and answers ``UnknownPath`` for the
  root placeholder path.
* :class:`ManagerRoutingStrategy` only answers the manager interface and lets
  the first name match decide the outcome.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence

from hcibus.bt_ref.constants import MANAGER_INTERFACE
from hcibus.core.errors import (
    BluezSystemError,
    BusUnavailableError,
    HcibusError,
    UnknownMethodError,
    UnknownPathError,
    WrongSignatureError,
)
from hcibus.core.log import print_and_log, LOG__DEBUG
from hcibus.core.state import AdapterState, DeviceContext, PathRole
from hcibus.dbuslayer.message import BusConnection, BusMessage, Failure, MessageKind, Reply

# handler(services, context, request) -> reply; raises HcibusError on failure
Handler = Callable[[Any, DeviceContext, BusMessage], Reply]


@dataclass(frozen=True)
class ServiceEntry:
    """One row of a service table."""

    name: str
    handler: Handler
    signature: str


@dataclass(frozen=True)
class RouteResult:
    """Outcome of routing one request.

    ``handled`` reflects whether a table entry claimed the request; ``reply``
    is what goes back to the caller (None means no reply is sent).
    """

    handled: bool
    reply: Optional[Reply] = None


Invoker = Callable[[ServiceEntry, DeviceContext, BusMessage], Reply]


class RoutingStrategy(ABC):
    def __init__(self, table: Sequence[ServiceEntry]):
        self.table = tuple(table)

    @abstractmethod
    def route(self, context: DeviceContext, request: BusMessage, invoke: Invoker) -> RouteResult:
        ...


class DeviceRoutingStrategy(RoutingStrategy):
    """Matching rules of the per-device service table."""

    def route(self, context: DeviceContext, request: BusMessage, invoke: Invoker) -> RouteResult:
        if context.role is not PathRole.DEVICE:
            return RouteResult(True, Failure.from_error(UnknownPathError(request.path or context.path)))

        handled = False
        error: HcibusError = UnknownMethodError(request.member or "")
        for entry in self.table:
            if entry.name != request.member:
                continue
            handled = True
            if entry.signature == request.signature:
                return RouteResult(True, invoke(entry, context, request))
            # same name, other signature: keep looking for an exact match
            error = WrongSignatureError(entry.name, request.signature)
        return RouteResult(handled, Failure.from_error(error))


class ManagerRoutingStrategy(RoutingStrategy):
    """Matching rules of the manager service table."""

    def route(self, context: DeviceContext, request: BusMessage, invoke: Invoker) -> RouteResult:
        if request.interface != MANAGER_INTERFACE:
            return RouteResult(False)

        for entry in self.table:
            if entry.name != request.member:
                continue
            # first name match decides, signature mismatch included
            if entry.signature == request.signature:
                return RouteResult(True, invoke(entry, context, request))
            return RouteResult(True, Failure.from_error(WrongSignatureError(entry.name, request.signature)))
        return RouteResult(False, Failure.from_error(UnknownMethodError(request.member or "")))


class DispatchRouter:
    """Routes method calls to handlers and sends the replies."""

    def __init__(self, state: AdapterState, services,
                 device_table: Sequence[ServiceEntry], manager_table: Sequence[ServiceEntry]):
        self._state = state
        self._services = services
        self.device_strategy = DeviceRoutingStrategy(device_table)
        self.manager_strategy = ManagerRoutingStrategy(manager_table)

    def _invoke(self, entry: ServiceEntry, context: DeviceContext, request: BusMessage) -> Reply:
        try:
            return entry.handler(self._services, context, request)
        except HcibusError as exc:
            print_and_log(f"[-] {request.member} failed: {exc}", LOG__DEBUG)
            return Failure.from_error(exc)
        except OSError as exc:
            print_and_log(f"[-] {request.member} failed: {exc}", LOG__DEBUG)
            return Failure.from_error(BluezSystemError.from_oserror(exc, request.member or "request"))

    def strategy_for(self, context: DeviceContext) -> RoutingStrategy:
        if context.role is PathRole.MANAGER_ROOT:
            return self.manager_strategy
        return self.device_strategy

    def route_context(self, context: DeviceContext, request: BusMessage) -> RouteResult:
        return self.strategy_for(context).route(context, request, self._invoke)

    def dispatch(self, context: DeviceContext, request: BusMessage, connection: BusConnection) -> bool:
        """Per-path message handler installed through the registry.

        The reply, if any, goes back over *connection*; the return value tells
        the transport whether the message was consumed.
        """
        if request.kind is not MessageKind.METHOD_CALL:
            return False

        print_and_log(
            f"[*] {request.path}: {request.interface}.{request.member}({request.signature})", LOG__DEBUG
        )
        result = self.route_context(context, request)
        if result.reply is not None:
            self.send_reply(connection, request, result.reply)
            return True
        return result.handled

    @staticmethod
    def send_reply(connection: BusConnection, request: BusMessage, reply: Reply) -> None:
        try:
            connection.send_reply(request, reply)
        except BusUnavailableError as exc:
            print_and_log(f"[-] Can't send reply message: {exc}", LOG__DEBUG)
