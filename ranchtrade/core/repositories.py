from __future__ import annotations

"""Persistence interfaces consumed by the trade engine.

Implementations guarantee atomic single-document operations only; there are
no cross-document transactions. Two implementations exist:
- ranchtrade.core.memory_store (process-lifetime, default)
- ranchtrade.core.sql_store (async SQLAlchemy, when ENABLE_DB=true)
"""

from dataclasses import dataclass
from typing import List, Optional, Protocol

from ranchtrade.models.components import Bufficorn, Player, Ranch, Resource, Trade


class PlayerRepository(Protocol):
    async def get(self, key: str) -> Optional[Player]: ...

    async def get_by_username(self, username: str) -> Optional[Player]: ...

    async def get_all(self) -> List[Player]: ...

    async def claim(self, key: str, token: str) -> Optional[Player]:
        """Store `token` unless the player already has one; return the stored player."""
        ...

    async def add_points(self, key: str, amount: int) -> Optional[Player]:
        """Atomically increment points; None if the player does not exist."""
        ...

    async def select_bufficorn(self, key: str, index: int) -> Optional[Player]:
        """Write only the selected bufficorn; other columns are left untouched."""
        ...


class RanchRepository(Protocol):
    async def get(self, name: str) -> Optional[Ranch]: ...

    async def get_all(self) -> List[Ranch]: ...


class BufficornRepository(Protocol):
    async def get_all(self) -> List[Bufficorn]: ...

    async def get_by_ranch(self, ranch: str) -> List[Bufficorn]: ...

    async def feed(self, ranch: str, creation_index: int, resource: Resource) -> Optional[Bufficorn]:
        """Add `resource.amount` to the matching stat; None if no such bufficorn."""
        ...


class TradeRepository(Protocol):
    async def create(self, trade: Trade) -> Trade: ...

    async def get_last(self, from_: Optional[str] = None, to: Optional[str] = None) -> Optional[Trade]:
        """Most recent trade matching the given usernames (timestamp desc, then ends desc)."""
        ...

    async def get_many_by_username(self, username: str, limit: int = 10, offset: int = 0) -> List[Trade]:
        """Trades sent or received by `username`, newest first."""
        ...

    async def count(self, username: str) -> int: ...


@dataclass
class Repositories:
    players: PlayerRepository
    ranches: RanchRepository
    bufficorns: BufficornRepository
    trades: TradeRepository


__all__ = [
    "PlayerRepository",
    "RanchRepository",
    "BufficornRepository",
    "TradeRepository",
    "Repositories",
]
