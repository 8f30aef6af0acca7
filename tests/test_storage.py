# tests/test_storage.py
import pytest

from app.services import InMemoryKeyValueStore, SqlKeyValueStore
from app.services.storage import lock_key, recovery_key, session_key


@pytest.fixture(params=["memory", "sql"])
def kv(request, session_factory):
    if request.param == "memory":
        return InMemoryKeyValueStore()
    return SqlKeyValueStore(session_factory)


def test_set_get_remove(kv):
    assert kv.get("k") is None
    kv.set("k", {"a": 1, "b": [1, 2]})
    assert kv.get("k") == {"a": 1, "b": [1, 2]}
    kv.remove("k")
    assert kv.get("k") is None
    kv.remove("k")


def test_cas_insert_only_when_absent(kv):
    assert kv.compare_and_swap("k", None, {"tabId": "a"}) is True
    assert kv.compare_and_swap("k", None, {"tabId": "b"}) is False
    assert kv.get("k") == {"tabId": "a"}


def test_cas_replaces_only_expected_value(kv):
    kv.set("k", {"tabId": "a", "n": 1})

    assert kv.compare_and_swap("k", {"tabId": "b", "n": 1}, {"tabId": "c"}) is False
    assert kv.compare_and_swap("k", {"n": 1, "tabId": "a"}, {"tabId": "c"}) is True
    assert kv.get("k") == {"tabId": "c"}


def test_cas_delete(kv):
    kv.set("k", {"tabId": "a"})
    assert kv.compare_and_swap("k", {"tabId": "other"}, None) is False
    assert kv.compare_and_swap("k", {"tabId": "a"}, None) is True
    assert kv.get("k") is None


def test_cas_absent_to_absent(kv):
    assert kv.compare_and_swap("missing", None, None) is True
    kv.set("present", {"x": 1})
    assert kv.compare_and_swap("present", None, None) is False


def test_subscribers_see_changes_until_unsubscribed(kv):
    events = []
    unsubscribe = kv.subscribe(events.append)

    kv.set("k", {"v": 1})
    kv.compare_and_swap("k", {"v": 1}, {"v": 2})
    kv.remove("k")
    unsubscribe()
    kv.set("k", {"v": 3})

    assert [(e.old_value, e.new_value) for e in events] == [
        (None, {"v": 1}),
        ({"v": 1}, {"v": 2}),
        ({"v": 2}, None),
    ]


def test_failed_cas_is_silent(kv):
    events = []
    kv.subscribe(events.append)
    kv.set("k", {"v": 1})
    kv.compare_and_swap("k", {"v": 9}, {"v": 2})
    assert len(events) == 1


def test_broken_listener_does_not_block_others(kv):
    seen = []

    def broken(event):
        raise RuntimeError("listener bug")

    kv.subscribe(broken)
    kv.subscribe(seen.append)
    kv.set("k", {"v": 1})
    assert len(seen) == 1


def test_key_helpers_are_namespaced():
    assert session_key("p1") == "intake_session:p1"
    assert lock_key("p1") == "intake_lock:p1"
    assert recovery_key("p1") == "intake_error_recovery:p1"
