"""HCIBUS agent mode – runs the sample PIN agent answering ``PinRequest``."""
from __future__ import annotations

import argparse
import signal
import sys

import dbus
import dbus.mainloop.glib
from gi.repository import GLib

from hcibus.core.log import print_and_log, LOG__GENERAL
from hcibus.dbuslayer.pin_agent_service import FixedPinAgent
from hcibus.modes.options import add_agent_arguments


def run(args: argparse.Namespace) -> int:
    dbus.mainloop.glib.DBusGMainLoop(set_as_default=True)
    bus = dbus.SessionBus() if args.bus == "session" else dbus.SystemBus()

    try:
        FixedPinAgent(bus, args.pin)
    except ValueError as exc:
        print_and_log(f"[-] {exc}", LOG__GENERAL)
        return 2
    except dbus.exceptions.DBusException as exc:
        print_and_log(f"[-] Can't register PIN agent: {exc}", LOG__GENERAL)
        return 1

    loop = GLib.MainLoop()

    def _quit():
        loop.quit()
        return GLib.SOURCE_REMOVE

    GLib.unix_signal_add(GLib.PRIORITY_DEFAULT, signal.SIGINT, _quit)
    GLib.unix_signal_add(GLib.PRIORITY_DEFAULT, signal.SIGTERM, _quit)
    loop.run()
    print_and_log("[*] PIN agent stopped", LOG__GENERAL)
    return 0


def main(argv: list[str] | None = None) -> int:
    argv = argv if argv is not None else sys.argv[1:]
    return run(add_agent_arguments(argparse.ArgumentParser(prog="hcibus-agent")).parse_args(argv))
