from __future__ import annotations

"""Busy-mark registries that keep a player in at most one in-flight trade.

State is process-lifetime only: a restart starts with empty registries, which
is safe because a trade is only ever persisted as its final step. Every mark
carries the owner token of the reservation that wrote it, and only that owner
can delete it. Any `KeyRegistry` implementation (a shared cache, for one) can
back `SlotReservations` when running more than one server instance.
"""

import logging
import threading
import uuid
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Protocol, Tuple

from ranchtrade.core.errors import SlotConflict
from ranchtrade.core.time_utils import now_millis

logger = logging.getLogger(__name__)


class KeyRegistry(Protocol):
    def is_valid(self, key: str) -> bool: ...

    def try_add(self, key: str, owner: str, until: Optional[int] = None) -> bool: ...

    def add(self, key: str, owner: str, until: Optional[int] = None) -> None: ...

    def delete(self, key: str, owner: Optional[str] = None) -> bool: ...

    def sweep(self, now: Optional[int] = None) -> int: ...

    def clear(self) -> None: ...

    def __len__(self) -> int: ...


class CooldownGuard:
    """Thread-safe set of busy keys, each tagged with an owner and optional expiry.

    An entry without expiry stays until deleted. An entry whose expiry (epoch
    millis) has passed counts as absent and is purged on the next access.
    """

    def __init__(self, name: str = "guard", clock: Callable[[], int] = now_millis) -> None:
        self.name = name
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: Dict[str, Tuple[str, Optional[int]]] = {}

    def _live_locked(self, key: str, now: int) -> Optional[Tuple[str, Optional[int]]]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry[1] is not None and entry[1] <= now:
            del self._entries[key]
            return None
        return entry

    def is_valid(self, key: str) -> bool:
        """True iff `key` is not currently marked busy."""
        with self._lock:
            return self._live_locked(key, self._clock()) is None

    def owner_of(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self._live_locked(key, self._clock())
        return entry[0] if entry is not None else None

    def try_add(self, key: str, owner: str, until: Optional[int] = None) -> bool:
        """Atomically mark `key` busy for `owner`; False if it already was."""
        with self._lock:
            if self._live_locked(key, self._clock()) is not None:
                return False
            self._entries[key] = (owner, until)
            return True

    def add(self, key: str, owner: str, until: Optional[int] = None) -> None:
        with self._lock:
            self._entries[key] = (owner, until)

    def delete(self, key: str, owner: Optional[str] = None) -> bool:
        """Remove `key` if held by `owner` (any holder when None)."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or (owner is not None and entry[0] != owner):
                return False
            del self._entries[key]
            return True

    def sweep(self, now: Optional[int] = None) -> int:
        """Purge expired entries and return how many were removed."""
        current = self._clock() if now is None else now
        with self._lock:
            expired = [k for k, (_, until) in self._entries.items() if until is not None and until <= current]
            for k in expired:
                del self._entries[k]
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        now = self._clock()
        with self._lock:
            return sum(1 for _, until in self._entries.values() if until is None or until > now)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and not self.is_valid(key)


@dataclass(frozen=True)
class Reservation:
    from_key: str
    to_key: str
    owner: str
    until: Optional[int] = None


class SlotReservations:
    """Pairs the sender and receiver registries.

    A key is admitted to a trade only when it is free in both registries, so
    it is never sending and receiving at the same time. Each mark is claimed
    with `try_add` and then checked against the other role; a clash rolls the
    claim back. Two racing reservations may both fail, never both succeed.
    With `ttl_millis` set, marks lapse on their own after that long.
    """

    def __init__(self, sending: Optional[KeyRegistry] = None, receiving: Optional[KeyRegistry] = None,
                 clock: Callable[[], int] = now_millis, ttl_millis: Optional[int] = None) -> None:
        self.sending: KeyRegistry = sending if sending is not None else CooldownGuard("sending", clock)
        self.receiving: KeyRegistry = receiving if receiving is not None else CooldownGuard("receiving", clock)
        self.ttl_millis = ttl_millis
        self._clock = clock

    def is_free(self, key: str) -> bool:
        return self.sending.is_valid(key) and self.receiving.is_valid(key)

    def reserve(self, from_key: str, to_key: str) -> Reservation:
        """Mark source as sending and target as receiving, or raise SlotConflict.

        On conflict every mark written by this call is removed again.
        """
        owner = uuid.uuid4().hex
        until = self._clock() + self.ttl_millis if self.ttl_millis else None

        if not self.sending.try_add(from_key, owner, until):
            raise SlotConflict("source", from_key)
        if not self.receiving.is_valid(from_key):
            self.sending.delete(from_key, owner)
            raise SlotConflict("source", from_key)

        if from_key == to_key or not self.receiving.try_add(to_key, owner, until):
            self.sending.delete(from_key, owner)
            raise SlotConflict("target", to_key)
        if not self.sending.is_valid(to_key):
            self.receiving.delete(to_key, owner)
            self.sending.delete(from_key, owner)
            raise SlotConflict("target", to_key)

        return Reservation(from_key=from_key, to_key=to_key, owner=owner, until=until)

    def release(self, reservation: Reservation) -> None:
        """Drop the marks written by `reservation`; marks since re-taken by others stay."""
        freed_from = self.sending.delete(reservation.from_key, reservation.owner)
        freed_to = self.receiving.delete(reservation.to_key, reservation.owner)
        logger.debug(
            "guard_released",
            extra={
                "from_key": reservation.from_key,
                "to_key": reservation.to_key,
                "lapsed": not (freed_from and freed_to),
            },
        )

    def occupancy(self) -> Dict[str, int]:
        return {"sending": len(self.sending), "receiving": len(self.receiving)}

    def sweep(self, now: Optional[int] = None) -> int:
        return self.sending.sweep(now) + self.receiving.sweep(now)

    def clear(self) -> None:
        self.sending.clear()
        self.receiving.clear()


__all__ = ["KeyRegistry", "CooldownGuard", "Reservation", "SlotReservations"]
