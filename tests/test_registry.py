from hcibus.bt_ref.constants import DEVICE_PATH, INVALID_DEV_ID
from hcibus.core.state import AdapterState, PathRole
from hcibus.dbuslayer.registry import ObjectPathRegistry

from conftest import FakeConnection


def make_registry(conn=None):
    state = AdapterState(connection=conn)
    return state, ObjectPathRegistry(state)


def test_register_requires_connection():
    _, registry = make_registry()
    assert not registry.register(DEVICE_PATH + "/hci0", PathRole.DEVICE, 0)
    assert len(registry) == 0


def test_register_and_lookup():
    conn = FakeConnection()
    _, registry = make_registry(conn)
    assert registry.register(DEVICE_PATH + "/hci0", PathRole.DEVICE, 0)
    context = registry.lookup(DEVICE_PATH + "/hci0")
    assert context.dev_id == 0 and context.is_device
    assert DEVICE_PATH + "/hci0" in conn.paths


def test_duplicate_path_is_refused():
    _, registry = make_registry(FakeConnection())
    assert registry.register("/a", PathRole.DEVICE, 1)
    assert not registry.register("/a", PathRole.DEVICE, 2)
    assert registry.lookup("/a").dev_id == 1


def test_failed_registration_discards_context():
    conn = FakeConnection(fail={"/a"})
    _, registry = make_registry(conn)
    assert not registry.register("/a", PathRole.DEVICE, 1)
    assert "/a" not in registry


def test_root_roles_carry_no_device():
    _, registry = make_registry(FakeConnection())
    registry.register(DEVICE_PATH, PathRole.DEVICE_ROOT, 5, fallback=True)
    assert registry.lookup(DEVICE_PATH).dev_id == INVALID_DEV_ID
    assert registry.device_ids() == []


def test_only_device_root_is_exported_as_fallback():
    conn = FakeConnection()
    _, registry = make_registry(conn)
    registry.register(DEVICE_PATH, PathRole.DEVICE_ROOT, fallback=True)
    registry.register(DEVICE_PATH + "/hci0", PathRole.DEVICE, 0)
    assert conn.fallbacks == {DEVICE_PATH}
    registry.unregister(DEVICE_PATH)
    assert conn.fallbacks == set()


def test_unregister_drops_context_even_when_transport_fails():
    conn = FakeConnection()
    _, registry = make_registry(conn)
    registry.register("/a", PathRole.DEVICE, 1)
    conn.fail.add("unregister")
    assert not registry.unregister("/a")
    assert "/a" not in registry
    assert not registry.unregister("/a")


def test_children_and_device_ids_sorted():
    _, registry = make_registry(FakeConnection())
    for dev_id in (2, 0, 1):
        registry.register(f"{DEVICE_PATH}/hci{dev_id}", PathRole.DEVICE, dev_id)
    assert registry.device_ids() == [0, 1, 2]
    assert registry.children(DEVICE_PATH) == [f"{DEVICE_PATH}/hci{i}" for i in (0, 1, 2)]
    registry.clear()
    assert len(registry) == 0
