"""FastAPI dependencies wiring repositories and the trade engine."""
from __future__ import annotations

from typing import Optional

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ranchtrade.auth.security import verify_token
from ranchtrade.core import config
from ranchtrade.core.database import get_optional_async_session, get_optional_readonly_async_session
from ranchtrade.core.repositories import Repositories
from ranchtrade.core.resources import generator_from_config
from ranchtrade.core.sql_store import sql_repositories
from ranchtrade.core.state import memory_store, slot_reservations
from ranchtrade.core.trades import TradeOrchestrator


async def get_repositories(session: Optional[AsyncSession] = Depends(get_optional_async_session)) -> Repositories:
    if session is not None:
        return sql_repositories(session)
    return memory_store.repositories()


async def get_readonly_repositories(
    session: Optional[AsyncSession] = Depends(get_optional_readonly_async_session),
) -> Repositories:
    if session is not None:
        return sql_repositories(session)
    return memory_store.repositories()


async def get_orchestrator(repos: Repositories = Depends(get_repositories)) -> TradeOrchestrator:
    ranches = None
    if config.TRAIT_POLICY == "ranch":
        ranches = {r.name: r for r in await repos.ranches.get_all()}
    return TradeOrchestrator(
        repos=repos,
        slots=slot_reservations,
        generator=generator_from_config(ranches),
        verify_token=verify_token,
        trade_duration_millis=config.get_trade_duration_millis(),
        period_ends_at=config.get_trade_period_ends_at(),
        allow_cooldown_override=config.is_test_env(),
    )
