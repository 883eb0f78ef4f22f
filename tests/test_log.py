import logging

from hcibus.core import log


def test_general_records_are_echoed(capsys):
    log.print_and_log("[+] hello", log.LOG__GENERAL)
    assert capsys.readouterr().out == "[+] hello\n"


def test_other_types_stay_off_stdout(capsys):
    log.print_and_log("[*] quiet", log.LOG__DEBUG)
    log.print_and_log("[*] quiet", "NO_SUCH_TYPE")
    assert capsys.readouterr().out == ""


def test_get_logger_children():
    child = log.get_logger("daemon")
    assert child.name == "hcibus.daemon"
    assert isinstance(log.get_logger(), logging.Logger)
    assert log.get_logger().handlers
