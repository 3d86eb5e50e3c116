"""Async SQLAlchemy repositories.

Each method runs in the caller's AsyncSession and commits its own single-row
change. There are no multi-row transactions; the trade engine compensates on
failure instead.
"""
from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ranchtrade.core.repositories import Repositories
from ranchtrade.models.components import Bufficorn, Player, Ranch, Resource, Trade, Trait
from ranchtrade.models.database import (
    Bufficorn as ORMBufficorn,
    Player as ORMPlayer,
    Ranch as ORMRanch,
    Trade as ORMTrade,
)

logger = logging.getLogger(__name__)


def player_from_row(row: ORMPlayer) -> Player:
    return Player(
        key=row.key,
        username=row.username,
        ranch=row.ranch,
        selected_bufficorn=int(row.selected_bufficorn),
        points=int(row.points),
        token=row.token,
        creation_index=int(row.creation_index),
        created_at=int(row.created_at),
        medals=list(row.medals or []),
    )


def bufficorn_from_row(row: ORMBufficorn) -> Bufficorn:
    return Bufficorn(
        name=row.name,
        ranch=row.ranch,
        creation_index=int(row.creation_index),
        vigor=int(row.vigor),
        speed=int(row.speed),
        coolness=int(row.coolness),
        coat=int(row.coat),
        intelligence=int(row.intelligence),
        medals=list(row.medals or []),
    )


def trade_from_row(row: ORMTrade) -> Trade:
    return Trade(
        from_=row.from_username,
        to=row.to_username,
        resource=Resource(trait=Trait(row.trait), amount=int(row.amount)),
        timestamp=int(row.timestamp),
        ends=int(row.ends),
        bufficorn=row.bufficorn,
    )


class SqlPlayerRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, key: str) -> Optional[Player]:
        row = await self._session.get(ORMPlayer, key)
        return player_from_row(row) if row is not None else None

    async def get_by_username(self, username: str) -> Optional[Player]:
        result = await self._session.execute(select(ORMPlayer).where(ORMPlayer.username == username))
        row = result.scalar_one_or_none()
        return player_from_row(row) if row is not None else None

    async def get_all(self) -> List[Player]:
        result = await self._session.execute(select(ORMPlayer).order_by(ORMPlayer.creation_index))
        return [player_from_row(r) for r in result.scalars().all()]

    async def _write(self, key: str, stmt) -> Optional[Player]:
        await self._session.execute(stmt.execution_options(synchronize_session=False))
        await self._session.commit()
        row = (await self._session.execute(
            select(ORMPlayer).where(ORMPlayer.key == key).execution_options(populate_existing=True)
        )).scalar_one_or_none()
        return player_from_row(row) if row is not None else None

    async def claim(self, key: str, token: str) -> Optional[Player]:
        # Only the first claim wins; later ones read back the stored token
        return await self._write(
            key,
            update(ORMPlayer).where(ORMPlayer.key == key, ORMPlayer.token.is_(None)).values(token=token),
        )

    async def add_points(self, key: str, amount: int) -> Optional[Player]:
        return await self._write(
            key,
            update(ORMPlayer).where(ORMPlayer.key == key).values(points=ORMPlayer.points + int(amount)),
        )

    async def select_bufficorn(self, key: str, index: int) -> Optional[Player]:
        return await self._write(
            key,
            update(ORMPlayer).where(ORMPlayer.key == key).values(selected_bufficorn=int(index)),
        )


class SqlRanchRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def _members(self, name: str) -> List[str]:
        result = await self._session.execute(
            select(ORMBufficorn.name).where(ORMBufficorn.ranch == name).order_by(ORMBufficorn.creation_index)
        )
        return list(result.scalars().all())

    async def get(self, name: str) -> Optional[Ranch]:
        result = await self._session.execute(select(ORMRanch).where(ORMRanch.name == name))
        row = result.scalar_one_or_none()
        if row is None:
            return None
        return Ranch(
            name=row.name,
            creation_index=int(row.creation_index),
            trait=Trait(row.trait),
            bufficorns=await self._members(row.name),
            medals=list(row.medals or []),
        )

    async def get_all(self) -> List[Ranch]:
        result = await self._session.execute(select(ORMRanch).order_by(ORMRanch.creation_index))
        ranches = []
        for row in result.scalars().all():
            ranches.append(Ranch(
                name=row.name,
                creation_index=int(row.creation_index),
                trait=Trait(row.trait),
                bufficorns=await self._members(row.name),
                medals=list(row.medals or []),
            ))
        return ranches


class SqlBufficornRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_all(self) -> List[Bufficorn]:
        result = await self._session.execute(select(ORMBufficorn))
        return [bufficorn_from_row(r) for r in result.scalars().all()]

    async def get_by_ranch(self, ranch: str) -> List[Bufficorn]:
        result = await self._session.execute(
            select(ORMBufficorn).where(ORMBufficorn.ranch == ranch).order_by(ORMBufficorn.creation_index)
        )
        return [bufficorn_from_row(r) for r in result.scalars().all()]

    async def feed(self, ranch: str, creation_index: int, resource: Resource) -> Optional[Bufficorn]:
        column = getattr(ORMBufficorn, resource.trait.value)
        # Single-statement increment keeps concurrent feeds from losing updates
        result = await self._session.execute(
            update(ORMBufficorn)
            .where(ORMBufficorn.ranch == ranch, ORMBufficorn.creation_index == int(creation_index))
            .values({column: column + int(resource.amount)})
            .execution_options(synchronize_session=False)
        )
        await self._session.commit()
        if not result.rowcount:
            return None
        row = (await self._session.execute(
            select(ORMBufficorn)
            .where(ORMBufficorn.ranch == ranch, ORMBufficorn.creation_index == int(creation_index))
            .execution_options(populate_existing=True)
        )).scalar_one()
        return bufficorn_from_row(row)


class SqlTradeRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, trade: Trade) -> Trade:
        row = ORMTrade(
            from_username=trade.from_,
            to_username=trade.to,
            trait=trade.resource.trait.value,
            amount=int(trade.resource.amount),
            timestamp=int(trade.timestamp),
            ends=int(trade.ends),
            bufficorn=trade.bufficorn,
        )
        self._session.add(row)
        await self._session.commit()
        return trade

    async def get_last(self, from_: Optional[str] = None, to: Optional[str] = None) -> Optional[Trade]:
        stmt = select(ORMTrade)
        if from_ is not None:
            stmt = stmt.where(ORMTrade.from_username == from_)
        if to is not None:
            stmt = stmt.where(ORMTrade.to_username == to)
        stmt = stmt.order_by(ORMTrade.timestamp.desc(), ORMTrade.ends.desc()).limit(1)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return trade_from_row(row) if row is not None else None

    async def get_many_by_username(self, username: str, limit: int = 10, offset: int = 0) -> List[Trade]:
        stmt = (
            select(ORMTrade)
            .where(or_(ORMTrade.from_username == username, ORMTrade.to_username == username))
            .order_by(ORMTrade.timestamp.desc(), ORMTrade.ends.desc())
            .offset(int(offset))
            .limit(int(limit))
        )
        result = await self._session.execute(stmt)
        return [trade_from_row(r) for r in result.scalars().all()]

    async def count(self, username: str) -> int:
        stmt = select(func.count(ORMTrade.id)).where(
            or_(ORMTrade.from_username == username, ORMTrade.to_username == username)
        )
        return int((await self._session.execute(stmt)).scalar_one())


def sql_repositories(session: AsyncSession) -> Repositories:
    return Repositories(
        players=SqlPlayerRepository(session),
        ranches=SqlRanchRepository(session),
        bufficorns=SqlBufficornRepository(session),
        trades=SqlTradeRepository(session),
    )


__all__ = [
    "SqlPlayerRepository",
    "SqlRanchRepository",
    "SqlBufficornRepository",
    "SqlTradeRepository",
    "sql_repositories",
]
