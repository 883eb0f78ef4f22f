"""
Core package initialisation for HCIBUS.

Nothing here imports dbus or gi; the adapter engine runs without a message bus.
"""

from hcibus.core.errors import (
    HcibusError,
    ConfigError,
    BluezSystemError,
    HciStatusError,
)

__all__ = [
    "HcibusError",
    "ConfigError",
    "BluezSystemError",
    "HciStatusError",
]
