"""
HCI layer for HCIBUS: the transport contract, its Linux raw-socket
implementation and the controller event monitor.
"""

from .transport import HciConnection, HciDeviceInfo, HciTransport, HciVersion

__all__ = [
    "HciConnection",
    "HciDeviceInfo",
    "HciTransport",
    "HciVersion",
]
