"""
Sample PIN agent.

Answers the adapter's ``org.bluez.PinAgent.PinRequest`` calls with a fixed
PIN.  Useful for bench testing pairing without a user interface.
"""

from __future__ import annotations

from typing import Callable, Optional

import dbus
import dbus.exceptions
import dbus.service

from hcibus.bt_ref.constants import (
    HCI_PIN_CODE_MAX,
    PIN_REQUEST_SIGNATURE,
    PINAGENT_INTERFACE,
    PINAGENT_PATH,
    PINAGENT_SERVICE_NAME,
)
from hcibus.bt_ref.utils import ba2str
from hcibus.core.log import print_and_log, LOG__AGENT, LOG__GENERAL


class PinRejectedException(dbus.exceptions.DBusException):
    _dbus_error_name = PINAGENT_INTERFACE + ".Error.Rejected"


class FixedPinAgent(dbus.service.Object):
    """PIN agent that hands out one configured PIN (or a callback's answer)."""

    def __init__(self, bus, pin: str = "0000", path: str = PINAGENT_PATH,
                 pin_provider: Optional[Callable[[bool, str], Optional[str]]] = None):
        if not pin or len(pin.encode("utf-8")) > HCI_PIN_CODE_MAX:
            raise ValueError(f"PIN must be 1-{HCI_PIN_CODE_MAX} bytes")
        self.pin = pin
        self._pin_provider = pin_provider
        self._bus_name = dbus.service.BusName(PINAGENT_SERVICE_NAME, bus)
        super().__init__(bus, path)
        print_and_log(f"[+] PIN agent listening on {PINAGENT_SERVICE_NAME} {path}", LOG__GENERAL)

    @dbus.service.method(PINAGENT_INTERFACE, in_signature=PIN_REQUEST_SIGNATURE, out_signature="s")
    def PinRequest(self, outgoing, bdaddr):
        peer = ba2str(bytes(bdaddr))
        direction = "outgoing" if outgoing else "incoming"
        pin = self.pin
        if self._pin_provider is not None:
            pin = self._pin_provider(bool(outgoing), peer)
            if pin is None:
                print_and_log(f"[-] PIN request from {peer} ({direction}) rejected", LOG__AGENT)
                raise PinRejectedException("PIN request rejected")
        print_and_log(f"[+] PIN request from {peer} ({direction}) answered", LOG__AGENT)
        return pin
