"""Async database engine and session management.

Engines are created inside the running event loop by start_db() (called from
the app lifespan) and disposed by shutdown_db(). While the layer is disabled,
the session dependencies yield None and callers use the in-memory store.
"""
from __future__ import annotations

import logging
from typing import AsyncGenerator, List, Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from ranchtrade.core.config import DATABASE_URL, READ_REPLICA_URLS, get_enable_db
from ranchtrade.models.database import Base

logger = logging.getLogger(__name__)

engine: Optional[AsyncEngine] = None
SessionLocal: Optional[async_sessionmaker] = None
_replica_engines: List[AsyncEngine] = []
_replica_sessionmakers: List[async_sessionmaker] = []
_replica_rr_index = 0


def is_db_enabled() -> bool:
    """Return True if the async DB is usable in this process."""
    return engine is not None and SessionLocal is not None


def _engine_kwargs_for(url: str) -> dict:
    from ranchtrade.core.config import (
        DB_ECHO,
        DB_MAX_OVERFLOW,
        DB_POOL_PRE_PING,
        DB_POOL_RECYCLE,
        DB_POOL_SIZE,
        DB_POOL_TIMEOUT,
    )
    kwargs: dict = {"echo": DB_ECHO, "pool_pre_ping": DB_POOL_PRE_PING}
    if str(url).startswith("sqlite+"):
        from sqlalchemy.pool import NullPool
        kwargs["poolclass"] = NullPool
    else:
        kwargs.update({
            "pool_size": DB_POOL_SIZE,
            "max_overflow": DB_MAX_OVERFLOW,
            "pool_timeout": DB_POOL_TIMEOUT,
            "pool_recycle": DB_POOL_RECYCLE,
        })
    return kwargs


def _choose_read_sessionmaker() -> Optional[async_sessionmaker]:
    global _replica_rr_index
    if _replica_sessionmakers:
        sm = _replica_sessionmakers[_replica_rr_index % len(_replica_sessionmakers)]
        _replica_rr_index = (_replica_rr_index + 1) % len(_replica_sessionmakers)
        return sm
    return SessionLocal


async def get_optional_async_session() -> AsyncGenerator[Optional[AsyncSession], None]:
    """Yield an AsyncSession on the primary when the DB is enabled, otherwise None."""
    if not is_db_enabled():
        yield None
        return
    async with SessionLocal() as session:  # type: ignore[misc]
        yield session


async def get_optional_readonly_async_session() -> AsyncGenerator[Optional[AsyncSession], None]:
    """Like get_optional_async_session, but round-robins over read replicas when configured."""
    if not is_db_enabled():
        yield None
        return
    sessionmaker = _choose_read_sessionmaker()
    async with sessionmaker() as session:  # type: ignore[misc]
        yield session


async def init_db() -> None:
    """Create tables with metadata.create_all (dev only; production uses Alembic)."""
    if not is_db_enabled():
        logger.warning("init_db called but database is disabled")
        return
    async with engine.begin() as conn:  # type: ignore[union-attr]
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema ensured via metadata.create_all")


async def check_database() -> bool:
    if not is_db_enabled():
        return False
    try:
        async with engine.connect() as conn:  # type: ignore[union-attr]
            await conn.execute(text("SELECT 1"))
        return True
    except Exception as exc:
        logger.warning("DB health check failed: %s", exc)
        return False


async def start_db(url: Optional[str] = None, force: bool = False) -> None:
    """Create engines/sessionmakers in the current event loop.

    A no-op unless ENABLE_DB is set (or `force` is passed), and when already started.
    """
    global engine, SessionLocal, _replica_engines, _replica_sessionmakers
    if not (force or get_enable_db()):
        return
    if is_db_enabled():
        return
    db_url = url or DATABASE_URL
    engine = create_async_engine(db_url, **_engine_kwargs_for(db_url))
    SessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    _replica_engines = []
    _replica_sessionmakers = []
    for replica_url in READ_REPLICA_URLS:
        try:
            eng = create_async_engine(replica_url, **_engine_kwargs_for(replica_url))
        except Exception as rex:
            logger.warning("Failed to init read-replica engine for %s: %s", replica_url, rex)
            continue
        _replica_engines.append(eng)
        _replica_sessionmakers.append(async_sessionmaker(eng, class_=AsyncSession, expire_on_commit=False))
    logger.info("database_started", extra={"replicas": len(_replica_engines)})


async def shutdown_db() -> None:
    """Dispose every engine inside the running loop, then mark the layer disabled."""
    global engine, SessionLocal, _replica_engines, _replica_sessionmakers
    try:
        for eng in [engine, *_replica_engines]:
            if eng is None:
                continue
            try:
                await eng.dispose()
            except Exception as exc:
                logger.warning("Error disposing DB engine: %s", exc)
    finally:
        engine = None
        SessionLocal = None
        _replica_engines = []
        _replica_sessionmakers = []
