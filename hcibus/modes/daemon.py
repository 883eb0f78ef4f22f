"""HCIBUS daemon mode – exports the local HCI devices on the message bus.

Startup order: load configuration, connect to the bus (or arm the
reconnection timer when the bus is not up yet), register every present HCI
device, start the HCI event monitor, then run the GLib main loop until SIGINT
or SIGTERM.
"""
from __future__ import annotations

import argparse
import signal
import sys
from dataclasses import replace
from typing import Optional

from gi.repository import GLib

from hcibus.core.config import load_config
from hcibus.core.errors import ConfigError
from hcibus.core.log import enable_syslog, print_and_log, LOG__GENERAL, LOG__DEBUG
from hcibus.dbuslayer.adapter import HcibusAdapter
from hcibus.dbuslayer.bus import GLibTimer, glib_io_watch, glib_unwatch, open_bus
from hcibus.hci.events import HciEventMonitor
from hcibus.hci.hci_socket import LinuxHciTransport
from hcibus.modes.options import add_daemon_arguments


def _build_arg_parser() -> argparse.ArgumentParser:
    return add_daemon_arguments(argparse.ArgumentParser(prog="hcibus-daemon"))


def run(args: argparse.Namespace) -> int:
    try:
        config = load_config(args.config)
        if args.bus:
            config = replace(config, bus=args.bus)
        if args.syslog:
            config = replace(config, syslog=True)
    except ConfigError as exc:
        print_and_log(f"[-] Configuration error: {exc}", LOG__GENERAL)
        return 2

    if config.syslog:
        enable_syslog()

    hci = LinuxHciTransport()
    adapter = HcibusAdapter(hci, open_bus, GLibTimer, config)
    loop = GLib.MainLoop()

    if adapter.init():
        count = adapter.register_all_devices()
        print_and_log(f"[+] {count} HCI device(s) exported", LOG__GENERAL)
    else:
        print_and_log("[-] Message bus unavailable, will keep retrying", LOG__GENERAL)
        adapter.lifecycle.arm_reconnect()

    monitor: Optional[HciEventMonitor] = None
    if not args.no_monitor:
        monitor = HciEventMonitor(adapter, hci, watch=glib_io_watch, unwatch=glib_unwatch)
        monitor.start()

    def _quit():
        print_and_log("[*] Terminating", LOG__DEBUG)
        loop.quit()
        return GLib.SOURCE_REMOVE

    GLib.unix_signal_add(GLib.PRIORITY_DEFAULT, signal.SIGINT, _quit)
    GLib.unix_signal_add(GLib.PRIORITY_DEFAULT, signal.SIGTERM, _quit)

    try:
        loop.run()
    finally:
        if monitor is not None:
            monitor.stop()
        adapter.exit()
    return 0


def main(argv: list[str] | None = None) -> int:
    """Run the daemon CLI."""
    argv = argv if argv is not None else sys.argv[1:]
    return run(_build_arg_parser().parse_args(argv))
