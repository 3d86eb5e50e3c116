import asyncio

import pytest

from ranchtrade.core.memory_store import MemoryStore
from ranchtrade.core.seeding import build_world, player_key, seed_memory_store


def test_world_is_deterministic_for_a_seed():
    a = build_world("seed-a", now=1)
    b = build_world("seed-a", now=1)
    assert [p.username for p in a.players] == [p.username for p in b.players]
    assert [bf.name for bf in a.bufficorns] == [bf.name for bf in b.bufficorns]
    assert [p.key for p in a.players] == [player_key("seed-a", i) for i in range(24)]
    other = build_world("seed-b", now=1)
    assert [p.key for p in a.players] != [p.key for p in other.players]


def test_world_shape():
    world = build_world("shape", ranch_count=3, bufficorns_per_ranch=2, players_count=7, now=5)
    assert len(world.ranches) == 3
    assert len(world.bufficorns) == 6
    assert len({b.name for b in world.bufficorns}) == 6
    for ranch in world.ranches:
        members = [b for b in world.bufficorns if b.ranch == ranch.name]
        assert [b.creation_index for b in members] == [0, 1]
        assert ranch.bufficorns == [b.name for b in members]
    # round-robin membership
    assert [p.ranch for p in world.players[:4]] == [
        world.ranches[0].name, world.ranches[1].name, world.ranches[2].name, world.ranches[0].name,
    ]
    assert all(0 <= p.selected_bufficorn < 2 for p in world.players)
    assert all(p.token is None and p.points == 0 and p.created_at == 5 for p in world.players)


def test_more_bufficorns_than_names_stay_unique():
    world = build_world("big", ranch_count=10, bufficorns_per_ranch=5, players_count=0)
    assert len({b.name for b in world.bufficorns}) == 50


def test_empty_world_is_rejected():
    with pytest.raises(ValueError):
        build_world("none", ranch_count=0)


def test_seed_memory_store_only_once():
    store = MemoryStore()
    world = build_world("once", ranch_count=2, bufficorns_per_ranch=2, players_count=4)
    assert seed_memory_store(store, world) is True
    assert seed_memory_store(store, world) is False
    players = asyncio.run(store.repositories().players.get_all())
    assert len(players) == 4
