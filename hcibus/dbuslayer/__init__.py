"""
Bus layer for HCIBUS.

Exposes the adapter engine (registry, router, PIN negotiation, signals,
connection lifecycle).  The dbus-python binding and the sample PIN agent are
loaded lazily so the engine can be imported without dbus-python installed.
"""

from .adapter import HcibusAdapter
from .lifecycle import ConnectionLifecycleManager
from .message import BusConnection, BusMessage, Failure, MessageKind, MethodReturn
from .pin import PinNegotiator
from .registry import ObjectPathRegistry
from .router import DispatchRouter, RouteResult, ServiceEntry
from .signals import EventTranslator, SignalEmitter, SignalSpec

__all__ = [
    "HcibusAdapter",
    "ConnectionLifecycleManager",
    "BusConnection",
    "BusMessage",
    "Failure",
    "MessageKind",
    "MethodReturn",
    "PinNegotiator",
    "ObjectPathRegistry",
    "DispatchRouter",
    "RouteResult",
    "ServiceEntry",
    "EventTranslator",
    "SignalEmitter",
    "SignalSpec",
    "DBusBusConnection",
    "GLibTimer",
    "open_bus",
    "FixedPinAgent",
]


# dbus-python / PyGObject backed names are imported on first use
def __getattr__(name):
    if name in ("DBusBusConnection", "GLibTimer", "open_bus"):
        from . import bus
        return getattr(bus, name)
    if name == "FixedPinAgent":
        from .pin_agent_service import FixedPinAgent
        return FixedPinAgent
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
