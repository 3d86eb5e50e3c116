from __future__ import annotations

import hashlib
import logging
from typing import Dict, Optional, Protocol

from ranchtrade.models.components import TRAITS, Player, Ranch, Resource, Trade, Trait

logger = logging.getLogger(__name__)


class TraitPolicy(Protocol):
    def select(self, player: Player, last_trade: Optional[Trade]) -> Trait: ...


def _hashed_trait(key: str) -> Trait:
    digest = hashlib.sha256(key.encode("utf-8")).digest()
    return TRAITS[int.from_bytes(digest[:4], "big") % len(TRAITS)]


class HashTraitPolicy:
    """Each player always offers the same trait, derived from their key."""

    def select(self, player: Player, last_trade: Optional[Trade]) -> Trait:
        return _hashed_trait(player.key)


class RotatingTraitPolicy:
    """Offer the trait after the one traded last; the first trade uses the hashed trait."""

    def select(self, player: Player, last_trade: Optional[Trade]) -> Trait:
        if last_trade is None:
            return _hashed_trait(player.key)
        idx = TRAITS.index(last_trade.resource.trait)
        return TRAITS[(idx + 1) % len(TRAITS)]


class RanchTraitPolicy:
    """Offer the signature trait of the player's ranch.

    Unknown ranches fall back to the hashed trait.
    """

    def __init__(self, ranches: Dict[str, Ranch]) -> None:
        self._traits = {name: r.trait for name, r in ranches.items()}

    def select(self, player: Player, last_trade: Optional[Trade]) -> Trait:
        trait = self._traits.get(player.ranch)
        return trait if trait is not None else _hashed_trait(player.key)


def trait_policy_from_name(name: str, ranches: Optional[Dict[str, Ranch]] = None) -> TraitPolicy:
    name = (name or "hash").lower()
    if name == "rotate":
        return RotatingTraitPolicy()
    if name == "ranch":
        return RanchTraitPolicy(ranches or {})
    if name != "hash":
        logger.warning("unknown_trait_policy", extra={"trait_policy": name})
    return HashTraitPolicy()


class ResourceGenerator:
    """Derives the resource a player can offer right now.

    The amount grows linearly with the rest time since the player's last trade
    with the same counterpart ended (or since the player was created), from
    `min_yield` at zero rest up to `max_yield` after `full_yield_millis`.
    """

    def __init__(self, policy: Optional[TraitPolicy] = None, min_yield: int = 10, max_yield: int = 100,
                 full_yield_millis: int = 3_600_000) -> None:
        if min_yield < 0 or max_yield < min_yield:
            raise ValueError("yields must satisfy 0 <= min_yield <= max_yield")
        if full_yield_millis <= 0:
            raise ValueError("full_yield_millis must be positive")
        self.policy: TraitPolicy = policy if policy is not None else HashTraitPolicy()
        self.min_yield = int(min_yield)
        self.max_yield = int(max_yield)
        self.full_yield_millis = int(full_yield_millis)

    def amount_for(self, elapsed_ms: int) -> int:
        elapsed = min(max(0, int(elapsed_ms)), self.full_yield_millis)
        span = self.max_yield - self.min_yield
        return self.min_yield + (span * elapsed) // self.full_yield_millis

    def generate(self, player: Player, last_trade: Optional[Trade], now: int) -> Resource:
        since = last_trade.ends if last_trade is not None else player.created_at
        return Resource(
            trait=self.policy.select(player, last_trade),
            amount=self.amount_for(now - since),
        )


def generator_from_config(ranches: Optional[Dict[str, Ranch]] = None) -> ResourceGenerator:
    from ranchtrade.core.config import (
        RESOURCE_FULL_YIELD_MILLIS,
        RESOURCE_MAX_YIELD,
        RESOURCE_MIN_YIELD,
        TRAIT_POLICY,
    )
    return ResourceGenerator(
        policy=trait_policy_from_name(TRAIT_POLICY, ranches),
        min_yield=RESOURCE_MIN_YIELD,
        max_yield=RESOURCE_MAX_YIELD,
        full_yield_millis=RESOURCE_FULL_YIELD_MILLIS,
    )


__all__ = [
    "TraitPolicy",
    "HashTraitPolicy",
    "RotatingTraitPolicy",
    "RanchTraitPolicy",
    "trait_policy_from_name",
    "ResourceGenerator",
    "generator_from_config",
]
