from __future__ import annotations

"""In-memory repositories used when the database layer is disabled.

A single MemoryStore holds every collection behind one re-entrant lock, so
each repository call is atomic with respect to concurrent requests. Objects
are copied on the way in and out; callers never share mutable state with the
store.
"""

import copy
import logging
import threading
from typing import Dict, List, Optional

from ranchtrade.core.repositories import Repositories
from ranchtrade.models.components import Bufficorn, Player, Ranch, Resource, Trade

logger = logging.getLogger(__name__)


class MemoryStore:
    def __init__(self) -> None:
        self.lock = threading.RLock()
        self.players: Dict[str, Player] = {}
        self.ranches: Dict[str, Ranch] = {}
        self.bufficorns: Dict[tuple[str, int], Bufficorn] = {}
        self.trades: List[Trade] = []

    def reset(self) -> None:
        """Drop all state (tests and dev restarts)."""
        with self.lock:
            self.players.clear()
            self.ranches.clear()
            self.bufficorns.clear()
            self.trades.clear()

    def is_empty(self) -> bool:
        with self.lock:
            return not self.players and not self.ranches

    def load(self, ranches: List[Ranch], bufficorns: List[Bufficorn], players: List[Player]) -> None:
        with self.lock:
            for r in ranches:
                self.ranches[r.name] = copy.deepcopy(r)
            for b in bufficorns:
                self.bufficorns[(b.ranch, b.creation_index)] = copy.deepcopy(b)
            for p in players:
                self.players[p.key] = copy.deepcopy(p)

    def repositories(self) -> Repositories:
        return Repositories(
            players=MemoryPlayerRepository(self),
            ranches=MemoryRanchRepository(self),
            bufficorns=MemoryBufficornRepository(self),
            trades=MemoryTradeRepository(self),
        )


class MemoryPlayerRepository:
    def __init__(self, store: MemoryStore) -> None:
        self._store = store

    async def get(self, key: str) -> Optional[Player]:
        with self._store.lock:
            p = self._store.players.get(key)
            return copy.deepcopy(p) if p is not None else None

    async def get_by_username(self, username: str) -> Optional[Player]:
        with self._store.lock:
            for p in self._store.players.values():
                if p.username == username:
                    return copy.deepcopy(p)
        return None

    async def get_all(self) -> List[Player]:
        with self._store.lock:
            return [copy.deepcopy(p) for p in self._store.players.values()]

    async def claim(self, key: str, token: str) -> Optional[Player]:
        with self._store.lock:
            p = self._store.players.get(key)
            if p is None:
                return None
            if not p.token:
                p.token = token
            return copy.deepcopy(p)

    async def add_points(self, key: str, amount: int) -> Optional[Player]:
        with self._store.lock:
            p = self._store.players.get(key)
            if p is None:
                return None
            p.points += int(amount)
            return copy.deepcopy(p)

    async def select_bufficorn(self, key: str, index: int) -> Optional[Player]:
        with self._store.lock:
            p = self._store.players.get(key)
            if p is None:
                return None
            p.selected_bufficorn = int(index)
            return copy.deepcopy(p)


class MemoryRanchRepository:
    def __init__(self, store: MemoryStore) -> None:
        self._store = store

    async def get(self, name: str) -> Optional[Ranch]:
        with self._store.lock:
            r = self._store.ranches.get(name)
            return copy.deepcopy(r) if r is not None else None

    async def get_all(self) -> List[Ranch]:
        with self._store.lock:
            return sorted((copy.deepcopy(r) for r in self._store.ranches.values()), key=lambda r: r.creation_index)


class MemoryBufficornRepository:
    def __init__(self, store: MemoryStore) -> None:
        self._store = store

    async def get_all(self) -> List[Bufficorn]:
        with self._store.lock:
            return [copy.deepcopy(b) for b in self._store.bufficorns.values()]

    async def get_by_ranch(self, ranch: str) -> List[Bufficorn]:
        with self._store.lock:
            found = [copy.deepcopy(b) for (r, _), b in self._store.bufficorns.items() if r == ranch]
        return sorted(found, key=lambda b: b.creation_index)

    async def feed(self, ranch: str, creation_index: int, resource: Resource) -> Optional[Bufficorn]:
        with self._store.lock:
            b = self._store.bufficorns.get((ranch, int(creation_index)))
            if b is None:
                return None
            field_name = resource.trait.value
            setattr(b, field_name, getattr(b, field_name) + int(resource.amount))
            return copy.deepcopy(b)


class MemoryTradeRepository:
    def __init__(self, store: MemoryStore) -> None:
        self._store = store

    async def create(self, trade: Trade) -> Trade:
        with self._store.lock:
            self._store.trades.append(trade)
        return trade

    async def get_last(self, from_: Optional[str] = None, to: Optional[str] = None) -> Optional[Trade]:
        with self._store.lock:
            matching = [
                t for t in self._store.trades
                if (from_ is None or t.from_ == from_) and (to is None or t.to == to)
            ]
        if not matching:
            return None
        return max(matching, key=lambda t: (t.timestamp, t.ends))

    def _by_username(self, username: str) -> List[Trade]:
        with self._store.lock:
            return [t for t in self._store.trades if t.from_ == username or t.to == username]

    async def get_many_by_username(self, username: str, limit: int = 10, offset: int = 0) -> List[Trade]:
        ordered = sorted(self._by_username(username), key=lambda t: (t.timestamp, t.ends), reverse=True)
        start = max(0, int(offset))
        end = max(start, start + int(limit))
        return ordered[start:end]

    async def count(self, username: str) -> int:
        return len(self._by_username(username))


__all__ = [
    "MemoryStore",
    "MemoryPlayerRepository",
    "MemoryRanchRepository",
    "MemoryBufficornRepository",
    "MemoryTradeRepository",
]
