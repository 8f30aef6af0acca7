# tests/test_lock.py
import re

import pytest

from app.services import IntakeLockService, TabLock, generate_tab_id


def test_tab_id_format(clock):
    tab_id = generate_tab_id(clock)
    millis = int(clock().timestamp() * 1000)
    assert re.fullmatch(rf"tab-{millis}-[a-z0-9]{{9}}", tab_id)
    assert generate_tab_id(clock) != tab_id


def test_second_tab_is_refused(locks):
    first = locks.acquire("p1", "tab-a")
    second = locks.acquire("p1", "tab-b")

    assert first.acquired is True
    assert second.acquired is False
    assert second.is_locked is True
    assert second.lock_holder == "tab-a"
    assert "another tab" in second.message.en


def test_reacquire_by_holder_refreshes(locks, clock):
    locks.acquire("p1", "tab-a")
    clock.advance(minutes=2)
    assert locks.acquire("p1", "tab-a").acquired is True
    assert locks.read("p1").timestamp == clock()


def test_locks_are_per_patient(locks):
    assert locks.acquire("p1", "tab-a").acquired
    assert locks.acquire("p2", "tab-b").acquired


def test_lock_is_stale_at_exactly_five_minutes(locks, clock):
    locks.acquire("p1", "tab-a")

    clock.advance(seconds=299)
    assert locks.acquire("p1", "tab-b").acquired is False

    clock.advance(seconds=1)
    status = locks.acquire("p1", "tab-b")
    assert status.acquired is True
    assert locks.read("p1").tab_id == "tab-b"


def test_heartbeat_keeps_lock_alive(locks, clock):
    locks.acquire("p1", "tab-a")
    for _ in range(4):
        clock.advance(minutes=2)
        assert locks.heartbeat("p1", "tab-a") is True

    assert locks.acquire("p1", "tab-b").acquired is False


def test_heartbeat_and_release_need_ownership(locks):
    locks.acquire("p1", "tab-a")
    assert locks.heartbeat("p1", "tab-b") is False
    assert locks.release("p1", "tab-b") is False
    assert locks.release("p1", "tab-a") is True
    assert locks.read("p1") is None
    assert locks.heartbeat("p1", "tab-a") is False


def test_status_views(locks, clock):
    assert locks.status("p1").is_locked is False
    locks.acquire("p1", "tab-a")
    assert locks.status("p1", "tab-a").acquired is True
    assert locks.status("p1", "tab-b").is_locked is True
    assert locks.holds("p1", "tab-a")

    clock.advance(minutes=5)
    assert locks.status("p1", "tab-b").is_locked is False
    assert not locks.holds("p1", "tab-a")


def test_racing_writer_loses_compare_and_swap(store, settings, clock):
    locks = IntakeLockService(store, settings, clock=clock)
    original = store.compare_and_swap
    raced = []

    def racing_cas(key, expected, new):
        if not raced:
            raced.append(True)
            store.set(key, {"tabId": "tab-sneaky", "patientId": "p1", "timestamp": clock().isoformat()})
            return original(key, expected, new)
        return original(key, expected, new)

    store.compare_and_swap = racing_cas
    status = locks.acquire("p1", "tab-a")

    assert status.acquired is False
    assert status.lock_holder == "tab-sneaky"


def test_tab_lock_revoked_when_another_tab_takes_over(locks, clock):
    tab_a = TabLock(locks, "p1", "tab-a", clock=clock)
    tab_b = TabLock(locks, "p1", "tab-b", clock=clock)

    assert tab_a.acquire() is True
    assert tab_b.acquire() is False
    assert tab_b.lock_holder == "tab-a"

    clock.advance(minutes=6)
    assert tab_b.acquire() is True

    assert tab_a.has_lock is False
    assert tab_a.is_locked is True
    assert tab_a.lock_holder == "tab-b"
    assert tab_a.warnings[-1].en.startswith("Intake was started in another tab")


def test_tab_lock_sees_release(locks, clock):
    tab_a = TabLock(locks, "p1", "tab-a", clock=clock)
    tab_b = TabLock(locks, "p1", "tab-b", clock=clock)
    tab_a.acquire()
    tab_b.acquire()

    tab_a.close()

    assert tab_b.is_locked is False
    assert tab_b.lock_holder is None
    assert tab_b.acquire() is True


def test_tick_heartbeats_on_interval(locks, clock):
    with TabLock(locks, "p1", "tab-a", clock=clock) as tab:
        tab.acquire()
        started = locks.read("p1").timestamp

        clock.advance(seconds=10)
        tab.tick()
        assert locks.read("p1").timestamp == started

        clock.advance(seconds=25)
        tab.tick()
        assert locks.read("p1").timestamp == clock()

    assert locks.read("p1") is None


def test_tick_revokes_after_lease_lost(locks, clock, store):
    tab = TabLock(locks, "p1", "tab-a", clock=clock)
    tab.acquire()
    tab._unsubscribe()
    store.set("intake_lock:p1", {"tabId": "tab-b", "patientId": "p1", "timestamp": clock().isoformat()})

    clock.advance(minutes=1)
    tab.tick()

    assert tab.has_lock is False
    assert tab.lock_holder == "tab-b"
    assert len(tab.warnings) == 1


@pytest.mark.parametrize("seconds", [0, 30, 299])
def test_is_stale_boundary(locks, clock, seconds):
    locks.acquire("p1", "tab-a")
    record = locks.read("p1")
    clock.advance(seconds=seconds)
    assert locks.is_stale(record) is False
