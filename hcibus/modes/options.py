"""Command-line options of the run-modes.

Kept apart from the mode modules so the top-level CLI can build its help
without importing dbus or gi.
"""
from __future__ import annotations

import argparse

_BUS_CHOICES = ["system", "session"]


def add_daemon_arguments(p: argparse.ArgumentParser) -> argparse.ArgumentParser:
    p.add_argument("--config", metavar="FILE", help="YAML configuration file")
    p.add_argument("--bus", choices=_BUS_CHOICES, help="Message bus to export on (overrides config)")
    p.add_argument("--syslog", action="store_true", help="Mirror log records to syslog")
    p.add_argument("--no-monitor", action="store_true", help="Do not listen for HCI events")
    return p


def add_agent_arguments(p: argparse.ArgumentParser) -> argparse.ArgumentParser:
    p.add_argument("--pin", default="0000", help="PIN handed to every request (default: 0000)")
    p.add_argument("--bus", choices=_BUS_CHOICES, default="system", help="Message bus to listen on")
    return p


def add_devices_arguments(p: argparse.ArgumentParser) -> argparse.ArgumentParser:
    return p
