"""Bus-library independent message and connection types.

The adapter engine only ever sees :class:`BusMessage` values and talks to a
:class:`BusConnection`; :mod:`hcibus.dbuslayer.bus` binds both to dbus-python.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional, Tuple, Union

from hcibus.bt_ref.error_map import describe_error
from hcibus.core.errors import HcibusError


class MessageKind(Enum):
    METHOD_CALL = "method_call"
    METHOD_RETURN = "method_return"
    ERROR = "error"
    SIGNAL = "signal"


@dataclass(frozen=True)
class BusMessage:
    """Decoded view of one bus message."""

    kind: MessageKind
    path: Optional[str] = None
    interface: Optional[str] = None
    member: Optional[str] = None
    signature: str = ""
    args: Tuple[Any, ...] = ()
    sender: Optional[str] = None
    error_name: Optional[str] = None
    # Library message object the view was decoded from (needed to reply)
    raw: Any = field(default=None, compare=False, repr=False)

    @property
    def is_error(self) -> bool:
        return self.kind is MessageKind.ERROR


@dataclass(frozen=True)
class MethodReturn:
    """Successful reply payload."""

    signature: str = ""
    args: Tuple[Any, ...] = ()


@dataclass(frozen=True)
class Failure:
    """Failure reply payload: numeric status plus its description."""

    code: int
    description: str

    @classmethod
    def from_code(cls, code: int) -> "Failure":
        return cls(code, describe_error(code))

    @classmethod
    def from_error(cls, error: HcibusError) -> "Failure":
        return cls.from_code(error.code)


Reply = Union[MethodReturn, Failure]

MessageHandler = Callable[[BusMessage], bool]
ReplyHandler = Callable[[BusMessage], None]


class PendingCall(ABC):
    """Handle on an outstanding method call."""

    @abstractmethod
    def cancel(self) -> None:
        """Stop waiting for the reply; the reply handler will not run."""


class BusConnection(ABC):
    """One live connection to the message bus.

    Every method raises :class:`hcibus.core.errors.BusUnavailableError` (or a
    subclass) when the underlying transport refuses the operation.
    """

    @abstractmethod
    def request_name(self, name: str) -> None:
        """Claim a well-known service name."""

    @abstractmethod
    def register_object_path(self, path: str, handler: MessageHandler, fallback: bool = False) -> None:
        """Route messages for *path* (and its children when *fallback*) to *handler*.

        The handler returns True when it consumed the message.
        """

    @abstractmethod
    def unregister_object_path(self, path: str) -> None:
        """Stop routing messages for *path*."""

    @abstractmethod
    def add_filter(self, handler: MessageHandler) -> None:
        """Install a connection-wide filter that sees every incoming message."""

    @abstractmethod
    def send_reply(self, request: BusMessage, reply: Reply) -> None:
        """Answer *request* with a method return or failure."""

    @abstractmethod
    def emit_signal(self, path: str, interface: str, member: str, signature: str, args: Tuple[Any, ...]) -> None:
        """Broadcast a signal."""

    @abstractmethod
    def call_async(
        self,
        destination: str,
        path: str,
        interface: str,
        member: str,
        signature: str,
        args: Tuple[Any, ...],
        reply_handler: ReplyHandler,
        timeout: float,
    ) -> PendingCall:
        """Send a method call; *reply_handler* receives the reply or error later."""

    @abstractmethod
    def flush(self) -> None:
        """Block until the outgoing queue is written."""

    @abstractmethod
    def close(self) -> None:
        """Drop the connection."""
