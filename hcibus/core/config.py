"""
Core configuration settings for HCIBUS.

Module-level constants cover paths and log types; runtime knobs of the daemon
live in :class:`AdapterConfig`, which may be loaded from a YAML file and
overridden through ``HCIBUS_*`` environment variables.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from hcibus.bt_ref.constants import DBUS_RECONNECT_INTERVAL, PIN_REQUEST_TIMEOUT
from hcibus.core.errors import ConfigError

# Base paths
DATA_DIR = Path(os.getenv("XDG_DATA_HOME", Path.home() / ".local/share")) / "hcibus"
CONFIG_DIR = Path(os.getenv("XDG_CONFIG_HOME", Path.home() / ".config")) / "hcibus"

# Logging configuration
LOG_DIR = DATA_DIR / "logs"

# Log types
LOG__GENERAL = "GENERAL"
LOG__DEBUG = "DEBUG"
LOG__AGENT = "AGENT"
LOG__EVENT = "EVENT"

# Configuration file search order (first existing wins)
SYSTEM_CONFIG_FILE = Path("/etc/hcibus/hcibus.yaml")
USER_CONFIG_FILE = CONFIG_DIR / "hcibus.yaml"

# Default location of the per-adapter persistent state (names cache etc.)
STORAGEDIR = "/var/lib/bluetooth"

# IEEE OUI registry used to resolve the company behind an address prefix
OUI_FILE = "/usr/share/misc/oui.txt"

_BUS_TYPES = ("system", "session")


@dataclass(frozen=True)
class AdapterConfig:
    """Runtime settings of the adapter daemon."""

    bus: str = "system"
    reconnect_interval: int = DBUS_RECONNECT_INTERVAL  # seconds
    pin_timeout: int = PIN_REQUEST_TIMEOUT  # seconds
    hci_timeout_ms: int = 100
    scan_enable_timeout_ms: int = 500
    storage_dir: str = STORAGEDIR
    oui_file: str = OUI_FILE
    syslog: bool = False

    def __post_init__(self):
        if self.bus not in _BUS_TYPES:
            raise ConfigError(f"bus must be one of {_BUS_TYPES}, got {self.bus!r}")
        for name in ("reconnect_interval", "pin_timeout", "hci_timeout_ms", "scan_enable_timeout_ms"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
                raise ConfigError(f"{name} must be a positive integer, got {value!r}")
        if not isinstance(self.syslog, bool):
            raise ConfigError(f"syslog must be a boolean, got {self.syslog!r}")


_FIELD_TYPES: Dict[str, type] = {
    "bus": str,
    "reconnect_interval": int,
    "pin_timeout": int,
    "hci_timeout_ms": int,
    "scan_enable_timeout_ms": int,
    "storage_dir": str,
    "oui_file": str,
    "syslog": bool,
}


def _coerce_env(name: str, raw: str) -> Any:
    """Convert an environment string to the type of field *name*."""
    kind = _FIELD_TYPES[name]
    if kind is bool:
        return raw.strip().lower() in {"1", "true", "yes", "on"}
    if kind is int:
        try:
            return int(raw, 0)
        except ValueError as exc:
            raise ConfigError(f"HCIBUS_{name.upper()}: not an integer: {raw!r}") from exc
    return raw


def config_from_mapping(data: Optional[Mapping[str, Any]], base: Optional[AdapterConfig] = None) -> AdapterConfig:
    """Apply *data* (as parsed from YAML) on top of *base*."""
    base = base or AdapterConfig()
    if not data:
        return base
    if not isinstance(data, Mapping):
        raise ConfigError("configuration root must be a mapping")

    known = {f.name for f in fields(AdapterConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"unknown configuration keys: {', '.join(unknown)}")
    return replace(base, **dict(data))


def config_from_env(base: AdapterConfig, environ: Optional[Mapping[str, str]] = None) -> AdapterConfig:
    """Apply ``HCIBUS_<FIELD>`` environment overrides on top of *base*."""
    environ = os.environ if environ is None else environ
    overrides = {}
    for name in _FIELD_TYPES:
        raw = environ.get(f"HCIBUS_{name.upper()}")
        if raw is not None:
            overrides[name] = _coerce_env(name, raw)
    return replace(base, **overrides) if overrides else base


def load_config(path: Optional[os.PathLike] = None, environ: Optional[Mapping[str, str]] = None) -> AdapterConfig:
    """Load the daemon configuration.

    Parameters
    ----------
    path : path-like, optional
        Explicit YAML file.  When omitted the system file and then the user
        file are tried; a missing file simply yields the defaults.
    environ : mapping, optional
        Environment used for ``HCIBUS_*`` overrides (defaults to os.environ)

    Returns
    -------
    AdapterConfig
        The merged configuration
    """
    candidates = [Path(path)] if path else [SYSTEM_CONFIG_FILE, USER_CONFIG_FILE]
    config = AdapterConfig()
    for candidate in candidates:
        if not candidate.exists():
            if path:
                raise ConfigError(f"configuration file not found: {candidate}")
            continue
        try:
            with open(candidate, "r", encoding="utf-8") as fh:
                data = yaml.safe_load(fh)
        except yaml.YAMLError as exc:
            raise ConfigError(f"invalid YAML in {candidate}: {exc}") from exc
        config = config_from_mapping(data, config)
        break
    return config_from_env(config, environ)
