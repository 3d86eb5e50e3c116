import asyncio

import pytest

from ranchtrade.core.errors import GrowthRejected
from ranchtrade.core.growth import GrowthModel
from ranchtrade.core.memory_store import MemoryStore
from ranchtrade.models.components import Bufficorn, Ranch, Resource, Trait


def _store() -> MemoryStore:
    store = MemoryStore()
    store.load(
        ranches=[Ranch(name="Red Rocks Ranch", trait=Trait.SPEED, bufficorns=["Nugget", "Comet"])],
        bufficorns=[
            Bufficorn(name="Nugget", ranch="Red Rocks Ranch", creation_index=0),
            Bufficorn(name="Comet", ranch="Red Rocks Ranch", creation_index=1, speed=5),
        ],
        players=[],
    )
    return store


def test_apply_increments_only_the_matching_stat():
    store = _store()
    growth = GrowthModel(store.repositories().bufficorns)

    fed = asyncio.run(growth.apply(1, Resource(Trait.SPEED, 7), "Red Rocks Ranch"))

    assert fed.name == "Comet"
    assert fed.speed == 12
    assert (fed.vigor, fed.coolness, fed.coat, fed.intelligence) == (0, 0, 0, 0)
    stored = store.bufficorns[("Red Rocks Ranch", 1)]
    assert stored.speed == 12
    assert store.bufficorns[("Red Rocks Ranch", 0)].score() == 0


def test_repeated_feeding_accumulates():
    store = _store()
    growth = GrowthModel(store.repositories().bufficorns)

    async def feed_many() -> None:
        for _ in range(3):
            await growth.apply(0, Resource(Trait.INTELLIGENCE, 4), "Red Rocks Ranch")

    asyncio.run(feed_many())
    assert store.bufficorns[("Red Rocks Ranch", 0)].intelligence == 12


def test_unknown_bufficorn_is_rejected():
    store = _store()
    growth = GrowthModel(store.repositories().bufficorns)
    with pytest.raises(GrowthRejected):
        asyncio.run(growth.apply(9, Resource(Trait.VIGOR, 1), "Red Rocks Ranch"))
    with pytest.raises(GrowthRejected):
        asyncio.run(growth.apply(0, Resource(Trait.VIGOR, 1), "Gold Rush Ranch"))
    assert all(b.score() in (0, 5) for b in store.bufficorns.values())


def test_negative_resources_cannot_exist():
    with pytest.raises(ValueError):
        Resource(Trait.VIGOR, -1)
