from __future__ import annotations

import asyncio
import logging
import time
import tracemalloc
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from ranchtrade.api.auth import router as auth_router
from ranchtrade.api.leaderboard import router as leaderboard_router
from ranchtrade.api.players import router as players_router
from ranchtrade.api.trades import router as trades_router
from ranchtrade.core import config, database
from ranchtrade.core.config import (
    CORS_ALLOW_CREDENTIALS,
    CORS_ALLOW_HEADERS,
    CORS_ALLOW_METHODS,
    CORS_ALLOW_ORIGINS,
)
from ranchtrade.core.database import (
    check_database,
    init_db,
    is_db_enabled,
    shutdown_db,
    start_db,
)
from ranchtrade.core.metrics import metrics
from ranchtrade.core.seeding import seed_database, seed_memory_store
from ranchtrade.core.state import memory_store, reset_state, slot_reservations

logger = logging.getLogger(__name__)

try:
    tracemalloc.start()
except Exception:
    pass


async def _sweep_busy_marks(interval_s: float) -> None:
    """Periodically drop lapsed sender/receiver marks."""
    while True:
        await asyncio.sleep(interval_s)
        removed = slot_reservations.sweep()
        if removed:
            metrics.increment_event("guard.swept", removed)
            logger.debug("busy_marks_swept", extra={"removed": removed})


async def _seed_world() -> None:
    if is_db_enabled():
        async with database.SessionLocal() as session:  # type: ignore[misc]
            await seed_database(session)
    else:
        reset_state()
        seed_memory_store(memory_store)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the DB layer, seed the world and run the busy-mark sweeper."""
    await start_db()
    if is_db_enabled() and config.get_dev_create_all():
        await init_db()
    if config.SEED_ON_STARTUP:
        await _seed_world()
    else:
        reset_state()

    logger.info(
        "startup_config",
        extra={
            "APP_ENV": config.APP_ENV,
            "ENABLE_DB": bool(config.get_enable_db()),
            "DEV_CREATE_ALL": bool(config.get_dev_create_all()),
            "trade_duration_ms": config.get_trade_duration_millis(),
            "trade_period_ends_at": config.get_trade_period_ends_at(),
            "trait_policy": config.TRAIT_POLICY,
            "guard_mark_ttl_ms": config.GUARD_MARK_TTL_MILLIS,
        },
    )

    sweeper = asyncio.create_task(_sweep_busy_marks(config.GUARD_SWEEP_INTERVAL_SECONDS))
    try:
        yield
    finally:
        sweeper.cancel()
        try:
            await sweeper
        except asyncio.CancelledError:
            pass
        await shutdown_db()


app = FastAPI(title="Bufficorn Ranch Trade Server", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOW_ORIGINS,
    allow_credentials=CORS_ALLOW_CREDENTIALS,
    allow_methods=CORS_ALLOW_METHODS,
    allow_headers=CORS_ALLOW_HEADERS,
)

# Routers
app.include_router(auth_router)
app.include_router(players_router)
app.include_router(trades_router)
app.include_router(leaderboard_router)


@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
    start = time.perf_counter()
    response = None
    try:
        response = await call_next(request)
        return response
    finally:
        try:
            duration = time.perf_counter() - start
            route_obj = request.scope.get("route")
            route_path = getattr(route_obj, "path", request.url.path)
            status = getattr(response, "status_code", 500)
            metrics.record_http(request.method, route_path, status, duration)
        except Exception:
            # Never break requests due to metrics errors
            pass


@app.get("/")
async def root():
    """Simple health banner indicating server readiness."""
    return {"message": "Bufficorn Ranch Trade Server", "status": "running"}


@app.get("/metrics")
async def get_metrics():
    return metrics.snapshot()


@app.get("/healthz")
async def healthz():
    """Process health: memory, busy marks and database reachability."""
    try:
        current, peak = tracemalloc.get_traced_memory()
    except Exception:
        current, peak = 0, 0
    db_ok = await check_database()
    return {
        "status": "ok",
        "guards": slot_reservations.occupancy(),
        "memory": {"current_bytes": current, "peak_bytes": peak},
        "database": {"enabled": is_db_enabled(), "status": "ok" if db_ok else "fail"},
        "server_time": datetime.now().isoformat(),
    }


@app.get("/healthz/db")
async def healthz_db():
    if not is_db_enabled():
        return {"status": "disabled"}
    ok = await check_database()
    return {"status": "ok" if ok else "fail"}
