import pytest

from ranchtrade.core.resources import (
    HashTraitPolicy,
    RanchTraitPolicy,
    ResourceGenerator,
    RotatingTraitPolicy,
    trait_policy_from_name,
)
from ranchtrade.models.components import TRAITS, Player, Ranch, Resource, Trade, Trait


def _player(key: str = "k1", created_at: int = 0, ranch: str = "Mile High Ranch") -> Player:
    return Player(key=key, username=f"user-{key}", ranch=ranch, created_at=created_at)


def _trade(trait: Trait, ends: int) -> Trade:
    return Trade(from_="a", to="b", resource=Resource(trait, 10), timestamp=ends - 300_000, ends=ends, bufficorn="Nugget")


def test_amount_bounds():
    gen = ResourceGenerator(min_yield=10, max_yield=100, full_yield_millis=3_600_000)
    assert gen.amount_for(0) == 10
    assert gen.amount_for(-5_000) == 10
    assert gen.amount_for(1_800_000) == 55
    assert gen.amount_for(3_600_000) == 100
    assert gen.amount_for(10 * 3_600_000) == 100


def test_amount_is_monotonic_in_elapsed_time():
    gen = ResourceGenerator(min_yield=3, max_yield=97, full_yield_millis=1_000)
    amounts = [gen.amount_for(ms) for ms in range(0, 1_200, 7)]
    assert amounts == sorted(amounts)
    assert all(3 <= a <= 97 for a in amounts)


def test_generate_measures_rest_from_last_trade_end():
    gen = ResourceGenerator(min_yield=0, max_yield=100, full_yield_millis=1_000)
    player = _player(created_at=0)
    last = _trade(Trait.SPEED, ends=10_000)
    assert gen.generate(player, last, now=10_500).amount == 50
    # without history the player's creation time is the reference
    assert gen.generate(player, None, now=10_500).amount == 100


def test_invalid_yields_are_rejected():
    with pytest.raises(ValueError):
        ResourceGenerator(min_yield=50, max_yield=10)
    with pytest.raises(ValueError):
        ResourceGenerator(full_yield_millis=0)


def test_hash_policy_is_stable_per_key():
    policy = HashTraitPolicy()
    traits = {policy.select(_player("same-key"), None) for _ in range(5)}
    assert len(traits) == 1
    seen = {policy.select(_player(f"key-{i}"), None) for i in range(50)}
    assert len(seen) > 1


def test_rotating_policy_moves_to_next_trait():
    policy = RotatingTraitPolicy()
    player = _player()
    assert policy.select(player, _trade(Trait.VIGOR, 1_000)) is Trait.SPEED
    assert policy.select(player, _trade(TRAITS[-1], 1_000)) is TRAITS[0]
    assert policy.select(player, None) is HashTraitPolicy().select(player, None)


def test_ranch_policy_uses_signature_trait():
    ranches = {"Mile High Ranch": Ranch(name="Mile High Ranch", trait=Trait.COOLNESS)}
    policy = RanchTraitPolicy(ranches)
    assert policy.select(_player(), None) is Trait.COOLNESS
    stray = _player(ranch="Nowhere")
    assert policy.select(stray, None) is HashTraitPolicy().select(stray, None)


def test_policy_lookup_by_name():
    assert isinstance(trait_policy_from_name("rotate"), RotatingTraitPolicy)
    assert isinstance(trait_policy_from_name("ranch", {}), RanchTraitPolicy)
    assert isinstance(trait_policy_from_name("HASH"), HashTraitPolicy)
    assert isinstance(trait_policy_from_name("bogus"), HashTraitPolicy)
