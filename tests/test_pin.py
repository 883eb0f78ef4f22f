from hcibus.bt_ref.constants import PINAGENT_PATH, PINAGENT_SERVICE_NAME
from hcibus.dbuslayer.message import BusMessage, MessageKind

PEER = "00:11:22:AA:BB:CC"


def reply(signature, *args):
    return BusMessage(MessageKind.METHOD_RETURN, signature=signature, args=args)


def error_reply():
    return BusMessage(MessageKind.ERROR, error_name="org.bluez.Error.Rejected", args=("no",))


def test_request_goes_to_pin_agent(running):
    conn = running.state.connection
    request_id = running.request_pin(0, PEER, outgoing=True)
    assert request_id is not None
    call, = conn.calls
    assert call["destination"] == PINAGENT_SERVICE_NAME
    assert call["path"] == PINAGENT_PATH
    assert call["member"] == "PinRequest"
    assert call["signature"] == "bay"
    assert call["args"] == (True, bytes([0xCC, 0xBB, 0xAA, 0x22, 0x11, 0x00]))
    assert request_id in running.pin.pending


def test_valid_reply_sends_pin(running, hci):
    running.request_pin(0, PEER)
    running.state.connection.calls[0]["pending"].reply_handler(reply("s", "1234"))
    assert ("pin_code_reply", 0, PEER, b"1234") in hci.commands
    assert len(running.pin.pending) == 0


def test_long_pin_is_truncated(running, hci):
    running.request_pin(0, PEER)
    running.state.connection.calls[0]["pending"].reply_handler(reply("s", "9" * 20))
    assert ("pin_code_reply", 0, PEER, b"9" * 16) in hci.commands


def test_error_or_wrong_signature_rejects(running, hci):
    running.request_pin(0, PEER)
    running.request_pin(0, PEER)
    first, second = running.state.connection.calls
    first["pending"].reply_handler(error_reply())
    second["pending"].reply_handler(reply("u", 1234))
    assert hci.commands.count(("pin_code_negative_reply", 0, PEER)) == 2
    assert not any(c[0] == "pin_code_reply" for c in hci.commands)


def test_send_failure_rejects_at_once(running, hci):
    running.state.connection.fail.add("call_async")
    assert running.request_pin(0, PEER) is None
    assert ("pin_code_negative_reply", 0, PEER) in hci.commands
    assert len(running.pin.pending) == 0


def test_malformed_peer_is_rejected_without_pending_request(running, hci):
    assert running.request_pin(0, "not-an-address", outgoing=False) is None
    assert running.state.connection.calls == []
    assert len(running.pin.pending) == 0
    rejects = [c for c in hci.commands if c[0] == "pin_code_negative_reply"]
    assert rejects == [("pin_code_negative_reply", 0, "not-an-address")]


def test_failed_negative_reply_does_not_escape(running, hci):
    hci.fail["pin_code_negative_reply"] = ValueError("bad address")
    assert running.request_pin(0, "zz:zz") is None
    assert len(running.pin.pending) == 0


def test_no_bus_rejects(adapter, hci, bus_factory):
    bus_factory.available = False
    assert adapter.request_pin(0, PEER) is None
    assert hci.commands == [("pin_code_negative_reply", 0, PEER)]


def test_request_reconnects_lazily(adapter, hci, bus_factory):
    assert adapter.state.connection is None
    assert adapter.request_pin(0, PEER) is not None
    assert adapter.state.connection is bus_factory.last


def test_disconnect_cancels_outstanding_requests(running, hci):
    running.request_pin(0, PEER)
    running.request_pin(1, "00:00:00:00:00:01")
    calls = list(running.state.connection.calls)
    running.lifecycle.handle_disconnect()
    assert all(c["pending"].cancelled for c in calls)
    assert ("pin_code_negative_reply", 0, PEER) in hci.commands
    assert ("pin_code_negative_reply", 1, "00:00:00:00:00:01") in hci.commands
    assert len(running.pin.pending) == 0


def test_late_reply_after_cancel_is_ignored(running, hci):
    running.request_pin(0, PEER)
    handler = running.state.connection.calls[0]["pending"].reply_handler
    running.pin.cancel_all()
    hci.commands.clear()
    handler(reply("s", "0000"))
    assert hci.commands == []
