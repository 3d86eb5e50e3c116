import threading
from typing import List

import pytest

from ranchtrade.core.cooldowns import CooldownGuard, Reservation, SlotReservations
from ranchtrade.core.errors import SlotConflict


def test_add_and_delete_are_idempotent(clock):
    guard = CooldownGuard("sending", clock)
    guard.add("p1", "r1")
    guard.add("p1", "r1")
    assert not guard.is_valid("p1")
    assert len(guard) == 1
    guard.delete("p1")
    guard.delete("p1")
    assert guard.is_valid("p1")
    assert "p1" not in guard


def test_delete_by_another_owner_keeps_entry(clock):
    guard = CooldownGuard("sending", clock)
    assert guard.try_add("p1", "r1")
    assert not guard.delete("p1", "r2")
    assert "p1" in guard
    assert guard.owner_of("p1") == "r1"
    assert guard.delete("p1", "r1")
    assert guard.is_valid("p1")


def test_try_add_admits_exactly_one_thread(clock):
    guard = CooldownGuard("sending", clock)
    barrier = threading.Barrier(32)
    results: List[bool] = []
    results_lock = threading.Lock()

    def worker() -> None:
        barrier.wait()
        ok = guard.try_add("p1", f"r{threading.get_ident()}")
        with results_lock:
            results.append(ok)

    threads = [threading.Thread(target=worker) for _ in range(32)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results.count(True) == 1
    assert results.count(False) == 31


def test_expired_entry_counts_as_free(clock):
    guard = CooldownGuard("receiving", clock)
    guard.add("p1", "r1", until=clock.now + 1000)
    assert "p1" in guard
    clock.advance(999)
    assert not guard.is_valid("p1")
    clock.advance(1)
    assert guard.is_valid("p1")
    # purged on access
    assert len(guard) == 0


def test_sweep_removes_only_expired_entries(clock):
    guard = CooldownGuard("sending", clock)
    guard.add("stale", "r1", until=clock.now + 10)
    guard.add("fresh", "r2", until=clock.now + 10_000)
    guard.add("pinned", "r3")
    clock.advance(100)
    assert guard.sweep() == 1
    assert len(guard) == 2
    assert "pinned" in guard and "fresh" in guard


def test_reserve_marks_both_roles(clock):
    slots = SlotReservations(clock=clock)
    slots.reserve("a", "b")
    assert "a" in slots.sending
    assert "b" in slots.receiving
    assert "a" not in slots.receiving
    assert not slots.is_free("a") and not slots.is_free("b")


def test_reserve_conflict_leaves_state_unchanged(clock):
    slots = SlotReservations(clock=clock)
    slots.reserve("a", "b")

    with pytest.raises(SlotConflict) as exc:
        slots.reserve("c", "b")
    assert exc.value.role == "target"
    assert exc.value.detail == "b player is already trading"
    assert "c" not in slots.sending

    with pytest.raises(SlotConflict) as exc:
        slots.reserve("a", "d")
    assert exc.value.role == "source"
    assert exc.value.detail == "Players can only trade 1 player at a time"
    assert "d" not in slots.receiving
    assert len(slots.sending) == 1 and len(slots.receiving) == 1


def test_key_cannot_send_and_receive_at_once(clock):
    slots = SlotReservations(clock=clock)
    slots.reserve("a", "b")
    # b is receiving, so it cannot start sending
    with pytest.raises(SlotConflict) as exc:
        slots.reserve("b", "c")
    assert exc.value.role == "source"
    # a is sending, so it cannot be a target
    with pytest.raises(SlotConflict) as exc:
        slots.reserve("c", "a")
    assert exc.value.role == "target"


def test_self_trade_is_a_target_conflict(clock):
    slots = SlotReservations(clock=clock)
    with pytest.raises(SlotConflict) as exc:
        slots.reserve("a", "a")
    assert exc.value.role == "target"
    assert slots.is_free("a")


def test_release_frees_both_participants(clock):
    slots = SlotReservations(clock=clock)
    reservation = slots.reserve("a", "b")
    slots.release(reservation)
    assert slots.is_free("a") and slots.is_free("b")
    slots.reserve("b", "a")


def test_marks_lapse_after_ttl(clock):
    slots = SlotReservations(clock=clock, ttl_millis=30_000)
    slots.reserve("a", "b")
    clock.advance(29_999)
    assert not slots.is_free("a")
    clock.advance(1)
    assert slots.is_free("a") and slots.is_free("b")
    assert slots.sweep() == 2


def test_concurrent_reservations_never_double_book(clock):
    slots = SlotReservations(clock=clock)
    barrier = threading.Barrier(20)
    admitted: List[str] = []
    lock = threading.Lock()

    def worker(i: int) -> None:
        barrier.wait()
        try:
            slots.reserve(f"src-{i}", "popular")
        except SlotConflict:
            return
        with lock:
            admitted.append(f"src-{i}")

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(20)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(admitted) == 1
    assert len(slots.sending) == 1


def test_each_reservation_gets_its_own_owner(clock):
    slots = SlotReservations(clock=clock, ttl_millis=30_000)
    first = slots.reserve("a", "b")
    slots.release(first)
    second = slots.reserve("a", "b")
    assert isinstance(second, Reservation)
    assert first.owner != second.owner
    assert second.until == clock.now + 30_000


def test_late_release_does_not_free_a_newer_reservation(clock):
    slots = SlotReservations(clock=clock, ttl_millis=30_000)
    stale = slots.reserve("a", "b")
    # the first request outlives its marks
    clock.advance(31_000)
    fresh = slots.reserve("a", "c")

    slots.release(stale)

    assert not slots.is_free("a")
    assert not slots.is_free("c")
    with pytest.raises(SlotConflict) as exc:
        slots.reserve("a", "d")
    assert exc.value.role == "source"

    slots.release(fresh)
    assert slots.is_free("a") and slots.is_free("c")


def test_occupancy_counts_live_marks(clock):
    slots = SlotReservations(clock=clock, ttl_millis=1_000)
    slots.reserve("a", "b")
    slots.reserve("c", "d")
    assert slots.occupancy() == {"sending": 2, "receiving": 2}
    clock.advance(1_000)
    assert slots.occupancy() == {"sending": 0, "receiving": 0}


class DictRegistry:
    """Minimal KeyRegistry without expiry, as an external store would provide."""

    def __init__(self) -> None:
        self.entries = {}

    def is_valid(self, key):
        return key not in self.entries

    def try_add(self, key, owner, until=None):
        if key in self.entries:
            return False
        self.entries[key] = owner
        return True

    def add(self, key, owner, until=None):
        self.entries[key] = owner

    def delete(self, key, owner=None):
        if key not in self.entries or (owner is not None and self.entries[key] != owner):
            return False
        del self.entries[key]
        return True

    def sweep(self, now=None):
        return 0

    def clear(self):
        self.entries.clear()

    def __len__(self):
        return len(self.entries)


def test_reservations_accept_any_key_registry(clock):
    sending, receiving = DictRegistry(), DictRegistry()
    slots = SlotReservations(sending=sending, receiving=receiving, clock=clock)
    reservation = slots.reserve("a", "b")
    assert sending.entries == {"a": reservation.owner}
    assert receiving.entries == {"b": reservation.owner}
    with pytest.raises(SlotConflict):
        slots.reserve("b", "c")
    assert sending.entries == {"a": reservation.owner}
    slots.release(reservation)
    assert len(sending) == 0 and len(receiving) == 0
