"""
HCIBUS - HCI to D-Bus adapter daemon
"""

__version__ = "0.4.0"

# ---------------------------------------------------------------------------
# Initialise logging on *package import* so every code path (daemon, agent,
# tests) writes to the same per-type log files.
# ---------------------------------------------------------------------------
import importlib as _importlib

_importlib.import_module("hcibus.core.log")  # noqa: F401 – side-effect import
