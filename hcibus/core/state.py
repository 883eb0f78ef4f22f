"""
Process-wide adapter state.

All fields are owned by the event-loop thread; components receive the
:class:`AdapterState` instance explicitly instead of touching module globals.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Optional

from hcibus.bt_ref.constants import (
    DEVICE_PATH_ID,
    DEVICE_ROOT_ID,
    INVALID_DEV_ID,
    MANAGER_ROOT_ID,
    SCAN_INQUIRY,
    SCAN_PAGE,
)
from hcibus.core.config import AdapterConfig

if TYPE_CHECKING:  # pragma: no cover
    from hcibus.dbuslayer.message import BusConnection


class PathRole(Enum):
    """Closed set of roles a registered object path can play."""

    DEVICE_ROOT = DEVICE_ROOT_ID  # fallback placeholder, no device bound
    DEVICE = DEVICE_PATH_ID
    MANAGER_ROOT = MANAGER_ROOT_ID


# Scan mode assumed when the controller cannot be queried
DEFAULT_SCAN_ENABLE = SCAN_PAGE | SCAN_INQUIRY


@dataclass
class DeviceContext:
    """Per-path record attached to a registered object path."""

    path: str
    role: PathRole
    dev_id: int = INVALID_DEV_ID
    scan_enable: int = DEFAULT_SCAN_ENABLE

    @property
    def is_device(self) -> bool:
        return self.role is PathRole.DEVICE


@dataclass
class AdapterState:
    """Connection handle and default device shared by every component."""

    config: AdapterConfig = field(default_factory=AdapterConfig)
    connection: Optional["BusConnection"] = None
    default_device: Optional[int] = None

    @property
    def connected(self) -> bool:
        return self.connection is not None
