from __future__ import annotations

"""World seeding: ranches, their bufficorns and the pre-generated players.

Ranch membership is fixed here and never changes afterwards. Generation is
deterministic for a given WORLD_SEED so every server instance, and every test
run, sees the same keys and names.
"""

import hashlib
import logging
import random
import threading
import time
from dataclasses import dataclass
from typing import List, Optional

from ranchtrade.core.metrics import metrics
from ranchtrade.core.time_utils import now_millis
from ranchtrade.models.components import TRAITS, Bufficorn, Player, Ranch

logger = logging.getLogger(__name__)

_seed_lock = threading.Lock()

RANCH_NAMES = [
    "Mile High Ranch",
    "Red Rocks Ranch",
    "Gold Rush Ranch",
    "Aspen Grove Ranch",
    "Powder Peak Ranch",
    "Rocky Ridge Ranch",
]

BUFFICORN_NAMES = [
    "Nugget", "Blizzard", "Juniper", "Boulder", "Sundance", "Maverick",
    "Comet", "Thistle", "Pinecone", "Marmot", "Dusty", "Sage",
    "Canyon", "Flurry", "Ember", "Willow", "Granite", "Mesa",
    "Tumbleweed", "Cobalt", "Aurora", "Biscuit", "Clover", "Summit",
]

ADJECTIVES = ["brave", "witty", "sunny", "quick", "mellow", "fuzzy", "lucky", "bold", "calm", "zesty"]
NOUNS = ["miner", "hiker", "skier", "rancher", "trader", "climber", "rider", "builder", "scout", "forager"]


@dataclass
class World:
    ranches: List[Ranch]
    bufficorns: List[Bufficorn]
    players: List[Player]


def player_key(seed: str, index: int) -> str:
    return hashlib.sha256(f"{seed}:player:{index}".encode("utf-8")).hexdigest()[:16]


def build_world(seed: str = "ethdenver", ranch_count: int = 6, bufficorns_per_ranch: int = 4,
                players_count: int = 24, now: Optional[int] = None) -> World:
    """Generate a world. Players are spread round-robin across ranches."""
    if ranch_count <= 0 or bufficorns_per_ranch <= 0:
        raise ValueError("a world needs at least one ranch with one bufficorn")
    created_at = now_millis() if now is None else int(now)
    rnd = random.Random(seed)

    ranches: List[Ranch] = []
    bufficorns: List[Bufficorn] = []
    names = list(BUFFICORN_NAMES)
    rnd.shuffle(names)
    for r in range(ranch_count):
        ranch_name = RANCH_NAMES[r] if r < len(RANCH_NAMES) else f"Ranch {r + 1}"
        members: List[str] = []
        for i in range(bufficorns_per_ranch):
            n = r * bufficorns_per_ranch + i
            base = names[n % len(names)]
            name = base if n < len(names) else f"{base} {n // len(names) + 1}"
            bufficorns.append(Bufficorn(name=name, ranch=ranch_name, creation_index=i))
            members.append(name)
        ranches.append(Ranch(name=ranch_name, creation_index=r, trait=TRAITS[r % len(TRAITS)], bufficorns=members))

    players: List[Player] = []
    for i in range(players_count):
        ranch = ranches[i % ranch_count]
        username = f"{rnd.choice(ADJECTIVES)}-{rnd.choice(NOUNS)}-{i}"
        players.append(Player(
            key=player_key(seed, i),
            username=username,
            ranch=ranch.name,
            selected_bufficorn=(i // ranch_count) % bufficorns_per_ranch,
            creation_index=i,
            created_at=created_at,
        ))
    return World(ranches=ranches, bufficorns=bufficorns, players=players)


def world_from_config(now: Optional[int] = None) -> World:
    from ranchtrade.core.config import BUFFICORNS_PER_RANCH, PLAYERS_COUNT, RANCH_COUNT, WORLD_SEED
    return build_world(WORLD_SEED, RANCH_COUNT, BUFFICORNS_PER_RANCH, PLAYERS_COUNT, now=now)


def _log_seeded(world: World, target: str, started: float) -> None:
    duration = time.perf_counter() - started
    metrics.increment_event(f"seed.{target}")
    metrics.record_timer("seed.duration_s", duration)
    logger.info(
        "world_seeded",
        extra={
            "target": target,
            "ranches": len(world.ranches),
            "bufficorns": len(world.bufficorns),
            "players": len(world.players),
            "duration_ms": duration * 1000.0,
        },
    )


def seed_memory_store(store, world: Optional[World] = None) -> bool:
    """Load a world into an empty MemoryStore. Returns False if it already had data."""
    with _seed_lock:
        if not store.is_empty():
            return False
        started = time.perf_counter()
        world = world if world is not None else world_from_config()
        store.load(world.ranches, world.bufficorns, world.players)
        _log_seeded(world, "memory", started)
        return True


async def seed_database(session, world: Optional[World] = None) -> bool:
    """Insert a world when the ranches table is empty. Returns True if rows were written."""
    from sqlalchemy import func, select
    from ranchtrade.models.database import (
        Bufficorn as ORMBufficorn,
        Player as ORMPlayer,
        Ranch as ORMRanch,
    )

    existing = (await session.execute(select(func.count(ORMRanch.id)))).scalar_one()
    if existing:
        return False
    started = time.perf_counter()
    world = world if world is not None else world_from_config()
    for r in world.ranches:
        session.add(ORMRanch(name=r.name, creation_index=r.creation_index, trait=r.trait.value, medals=[]))
    await session.flush()
    for b in world.bufficorns:
        session.add(ORMBufficorn(name=b.name, ranch=b.ranch, creation_index=b.creation_index, medals=[]))
    for p in world.players:
        session.add(ORMPlayer(
            key=p.key,
            username=p.username,
            ranch=p.ranch,
            selected_bufficorn=p.selected_bufficorn,
            points=0,
            token=None,
            creation_index=p.creation_index,
            created_at=p.created_at,
            medals=[],
        ))
    await session.commit()
    _log_seeded(world, "database", started)
    return True


__all__ = [
    "World",
    "RANCH_NAMES",
    "player_key",
    "build_world",
    "world_from_config",
    "seed_memory_store",
    "seed_database",
]
