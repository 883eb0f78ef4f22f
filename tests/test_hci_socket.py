import errno

import pytest

from hcibus.bt_ref.constants import EVT_CMD_COMPLETE, EVT_CMD_STATUS, EVT_STACK_INTERNAL, HCI_EVENT_PKT
from hcibus.hci.hci_socket import _FILTER, LinuxHciTransport, event_filter, hci_opcode


def test_opcode_packs_group_and_command():
    assert hci_opcode(0x03, 0x0019) == 0x0C19
    assert hci_opcode(0x01, 0x0401) == 0x0401


def test_event_filter_sets_low_mask_bits():
    type_mask, mask0, mask1, opcode = _FILTER.unpack(event_filter(EVT_CMD_COMPLETE, EVT_CMD_STATUS))
    assert type_mask == 1 << HCI_EVENT_PKT
    assert mask0 == (1 << 0x0E) | (1 << 0x0F)
    assert mask1 == 0 and opcode == 0


def test_event_filter_folds_stack_internal_into_64_bits():
    _, mask0, mask1, _ = _FILTER.unpack(event_filter(EVT_STACK_INTERNAL))
    assert mask0 == 0
    assert mask1 == 1 << 29


@pytest.mark.parametrize("method", ["read_scan_enable", "read_local_version"])
def test_short_successful_reply_is_an_io_error(monkeypatch, method):
    monkeypatch.setattr(LinuxHciTransport, "_request", lambda self, *args: b"\x00")
    with pytest.raises(OSError) as info:
        getattr(LinuxHciTransport(), method)(0, 1000)
    assert info.value.errno == errno.EIO
