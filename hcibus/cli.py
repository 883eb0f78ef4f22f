"""
Command-line interface for HCIBUS.
"""

import argparse
import sys

# Ensure logging subsystem is initialised immediately
import hcibus.core.log  # noqa: F401

from . import __version__
from .modes.options import add_agent_arguments, add_daemon_arguments, add_devices_arguments


def parse_args(args=None):
    parser = argparse.ArgumentParser(description="HCIBUS - HCI to D-Bus adapter daemon")
    parser.add_argument("--version", action="version", version=f"HCIBUS {__version__}")

    subparsers = parser.add_subparsers(dest="mode", help="Operation mode")

    # Daemon mode
    add_daemon_arguments(subparsers.add_parser("daemon", help="Export HCI devices on the message bus"))

    # Agent mode
    add_agent_arguments(subparsers.add_parser("agent", help="Run the sample PIN agent"))

    # Devices mode
    add_devices_arguments(subparsers.add_parser("devices", help="List local HCI devices"))

    parsed = parser.parse_args(args)
    if parsed.mode is None:
        parser.print_help()
    return parsed


def _mode_argv(argv, mode):
    """Arguments following the mode name, handed to the mode's own parser."""
    return argv[argv.index(mode) + 1:]


def main(args=None):
    """Main entry point for HCIBUS."""
    argv = list(sys.argv[1:] if args is None else args)
    parsed = parse_args(argv)

    try:
        if parsed.mode == "daemon":
            from hcibus.modes.daemon import main as _daemon_main
            return _daemon_main(_mode_argv(argv, "daemon")) or 0
        elif parsed.mode == "agent":
            from hcibus.modes.agent import main as _agent_main
            return _agent_main(_mode_argv(argv, "agent")) or 0
        elif parsed.mode == "devices":
            from hcibus.modes.devices import main as _devices_main
            return _devices_main(_mode_argv(argv, "devices")) or 0
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
