"""
PIN negotiation.

When a link needs a PIN the adapter asks the external PIN agent with one
asynchronous ``PinRequest`` call and answers the controller once the reply
(or its failure) comes back.  Every path ends in exactly one PIN reply or
negative reply command.

Outstanding calls are tracked by a generated request id so a disconnect can
cancel all of them and reject their links instead of leaving them dangling.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from hcibus.bt_ref.constants import (
    HCI_PIN_CODE_MAX,
    PIN_REQUEST,
    PIN_REQUEST_SIGNATURE,
    PINAGENT_INTERFACE,
    PINAGENT_PATH,
    PINAGENT_SERVICE_NAME,
)
from hcibus.bt_ref.utils import str2ba
from hcibus.core.errors import BusUnavailableError, HciStatusError
from hcibus.core.log import print_and_log, LOG__AGENT
from hcibus.core.state import AdapterState
from hcibus.dbuslayer.message import BusMessage, PendingCall
from hcibus.hci.transport import HciTransport


@dataclass
class PendingPinRequest:
    request_id: int
    dev_id: int
    peer: str
    call: Optional[PendingCall] = None


class PendingCallTracker:
    """Outstanding PIN requests keyed by request id."""

    def __init__(self):
        self._ids = itertools.count(1)
        self._pending: Dict[int, PendingPinRequest] = {}

    def add(self, dev_id: int, peer: str) -> PendingPinRequest:
        request = PendingPinRequest(next(self._ids), dev_id, peer)
        self._pending[request.request_id] = request
        return request

    def pop(self, request_id: int) -> Optional[PendingPinRequest]:
        return self._pending.pop(request_id, None)

    def drain(self) -> List[PendingPinRequest]:
        """Remove and return every outstanding request."""
        requests = list(self._pending.values())
        self._pending.clear()
        return requests

    def __contains__(self, request_id: int) -> bool:
        return request_id in self._pending

    def __len__(self) -> int:
        return len(self._pending)


class PinNegotiator:
    def __init__(self, state: AdapterState, hci: HciTransport, connect: Callable[[], bool]):
        self._state = state
        self._hci = hci
        self._connect = connect
        self.pending = PendingCallTracker()

    def request_pin(self, dev_id: int, peer: str, outgoing: bool) -> Optional[int]:
        """Ask the PIN agent for the PIN of the link to *peer*.

        Returns the request id, or None when the link was rejected at once.
        """
        if self._state.connection is None and not self._connect():
            print_and_log(f"[-] No bus connection, rejecting PIN request from {peer}", LOG__AGENT)
            self._reject(dev_id, peer)
            return None

        try:
            bdaddr = str2ba(peer)
        except ValueError as exc:
            print_and_log(f"[-] Can't request PIN for {peer!r}: {exc}", LOG__AGENT)
            self._reject(dev_id, peer)
            return None

        conn = self._state.connection
        request = self.pending.add(dev_id, peer)
        try:
            request.call = conn.call_async(
                PINAGENT_SERVICE_NAME,
                PINAGENT_PATH,
                PINAGENT_INTERFACE,
                PIN_REQUEST,
                PIN_REQUEST_SIGNATURE,
                (bool(outgoing), bdaddr),
                lambda reply, request_id=request.request_id: self._on_reply(request_id, reply),
                self._state.config.pin_timeout,
            )
        except BusUnavailableError as exc:
            print_and_log(f"[-] Can't send PIN request for {peer}: {exc}", LOG__AGENT)
            self.pending.pop(request.request_id)
            self._reject(dev_id, peer)
            return None

        print_and_log(f"[*] PIN request #{request.request_id} sent for {peer} on hci{dev_id}", LOG__AGENT)
        return request.request_id

    def _on_reply(self, request_id: int, reply: BusMessage) -> None:
        request = self.pending.pop(request_id)
        if request is None:
            print_and_log(f"[-] Reply for unknown PIN request #{request_id}", LOG__AGENT)
            return

        if reply.is_error:
            print_and_log(f"[-] PIN agent replied with error {reply.error_name}: {reply.args}", LOG__AGENT)
            self._reject(request.dev_id, request.peer)
            return
        if not reply.signature.startswith("s") or not reply.args or not isinstance(reply.args[0], str):
            print_and_log(f"[-] Wrong reply signature from PIN agent: '{reply.signature}'", LOG__AGENT)
            self._reject(request.dev_id, request.peer)
            return

        # length-counted copy, bounded by the controller's PIN field
        pin = reply.args[0].encode("utf-8")[:HCI_PIN_CODE_MAX]
        try:
            self._hci.pin_code_reply(request.dev_id, request.peer, pin)
        except (OSError, HciStatusError) as exc:
            print_and_log(f"[-] PIN code reply to {request.peer} failed: {exc}", LOG__AGENT)

    def cancel_all(self) -> int:
        """Cancel every outstanding call and reject its link."""
        requests = self.pending.drain()
        for request in requests:
            if request.call is not None:
                request.call.cancel()
            print_and_log(f"[-] PIN request #{request.request_id} for {request.peer} cancelled", LOG__AGENT)
            self._reject(request.dev_id, request.peer)
        return len(requests)

    def _reject(self, dev_id: int, peer: str) -> None:
        try:
            self._hci.pin_code_negative_reply(dev_id, peer)
        except (OSError, HciStatusError, ValueError) as exc:
            print_and_log(f"[-] PIN negative reply to {peer} failed: {exc}", LOG__AGENT)
