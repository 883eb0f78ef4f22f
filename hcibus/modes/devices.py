"""HCIBUS devices mode – lists local HCI devices without touching the bus."""
from __future__ import annotations

import argparse
import sys
from typing import List

from hcibus.bt_ref.utils import dev_flags_to_list, dev_type_to_str
from hcibus.core.log import print_and_log, LOG__GENERAL
from hcibus.hci.transport import HciTransport
from hcibus.modes.options import add_devices_arguments


def describe_devices(hci: HciTransport) -> List[str]:
    lines = []
    for dev_id in hci.device_list():
        try:
            info = hci.device_info(dev_id)
        except OSError as exc:
            lines.append(f"hci{dev_id}\t<unavailable: {exc}>")
            continue
        state = "UP" if info.is_up else "DOWN"
        flags = " ".join(dev_flags_to_list(info.flags))
        lines.append(f"{info.name}\t{info.address}\t{dev_type_to_str(info.type)}\t{state}\t{flags}".rstrip())
    return lines


def run(args: argparse.Namespace, hci: HciTransport | None = None) -> int:
    if hci is None:
        from hcibus.hci.hci_socket import LinuxHciTransport
        hci = LinuxHciTransport()
    try:
        lines = describe_devices(hci)
    except OSError as exc:
        print_and_log(f"[-] Can't get device list: {exc}", LOG__GENERAL)
        return 1
    if not lines:
        print_and_log("[*] No HCI devices found", LOG__GENERAL)
    for line in lines:
        print_and_log(line, LOG__GENERAL)
    return 0


def main(argv: list[str] | None = None) -> int:
    argv = argv if argv is not None else sys.argv[1:]
    return run(add_devices_arguments(argparse.ArgumentParser(prog="hcibus-devices")).parse_args(argv))
