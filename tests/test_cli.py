import argparse

import pytest

import hcibus.hci.hci_socket
import hcibus.modes.devices

from hcibus.cli import main, parse_args
from hcibus.modes.devices import describe_devices, run
from hcibus.modes.options import add_daemon_arguments

from conftest import FakeHci


def test_parse_daemon_options():
    args = parse_args(["daemon", "--bus", "session", "--no-monitor"])
    assert args.mode == "daemon"
    assert args.bus == "session"
    assert args.no_monitor and not args.syslog
    assert args.config is None


def test_parse_agent_defaults():
    args = parse_args(["agent"])
    assert args.pin == "0000" and args.bus == "system"


def test_unknown_bus_is_refused():
    with pytest.raises(SystemExit):
        parse_args(["daemon", "--bus", "starbus"])


def test_no_mode_prints_help(capsys):
    assert main([]) == 1
    assert "usage" in capsys.readouterr().out


def test_describe_devices():
    lines = describe_devices(FakeHci())
    assert lines == [
        "hci0\t00:11:22:33:44:55\tUSB\tUP\tRUNNING",
        "hci1\t00:AA:BB:CC:DD:EE\tUSB\tDOWN",
    ]


def test_devices_mode_reports_listing_failure():
    hci = FakeHci()
    hci.fail["device_list"] = PermissionError(1, "Operation not permitted")
    assert run(None, hci) == 1


def test_devices_mode_dispatches_to_its_main(monkeypatch):
    monkeypatch.setattr(hcibus.hci.hci_socket, "LinuxHciTransport", FakeHci)
    assert main(["devices"]) == 0


def test_mode_options_are_shared_with_mode_parser():
    own = add_daemon_arguments(argparse.ArgumentParser()).parse_args(["--bus", "session", "--syslog"])
    top = parse_args(["daemon", "--bus", "session", "--syslog"])
    assert vars(own) == {k: v for k, v in vars(top).items() if k != "mode"}


def test_mode_receives_arguments_after_its_name(monkeypatch):
    seen = []
    monkeypatch.setattr(hcibus.modes.devices, "main", lambda argv: seen.append(argv) or 0)
    assert main(["devices"]) == 0
    assert seen == [[]]
