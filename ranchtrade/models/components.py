from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class Trait(str, Enum):
    """Growth dimensions of a bufficorn; every resource feeds exactly one."""
    VIGOR = "vigor"
    SPEED = "speed"
    COOLNESS = "coolness"
    COAT = "coat"
    INTELLIGENCE = "intelligence"


TRAITS: List[Trait] = list(Trait)


@dataclass(frozen=True)
class Resource:
    """A (trait, amount) unit transferred by a trade."""
    trait: Trait
    amount: int

    def __post_init__(self) -> None:
        if self.amount < 0:
            raise ValueError("resource amount must be non-negative")

    def to_dict(self) -> Dict[str, Any]:
        return {"trait": self.trait.value, "amount": int(self.amount)}


@dataclass
class Player:
    """A ranch member that trades resources with other players.

    Attributes:
        key: Immutable identity key handed out with the player's badge.
        username: Public name, also used to index trades.
        ranch: Name of the ranch the player belongs to.
        selected_bufficorn: Creation index of the bufficorn (inside `ranch`)
            that receives the resources traded to this player.
        points: Accumulated score from received trades.
        token: Issued claim token. None means the player is not claimed yet.
        creation_index: Stable ordinal used to break leaderboard ties.
        created_at: Creation time in epoch millis.
    """
    key: str
    username: str
    ranch: str
    selected_bufficorn: int = 0
    points: int = 0
    token: Optional[str] = None
    creation_index: int = 0
    created_at: int = 0
    medals: List[str] = field(default_factory=list)

    def is_claimed(self) -> bool:
        return bool(self.token)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "username": self.username,
            "ranch": self.ranch,
            "selected_bufficorn": self.selected_bufficorn,
            "points": self.points,
            "creation_index": self.creation_index,
            "medals": list(self.medals),
        }


@dataclass
class Bufficorn:
    """A creature owned by a ranch. Stats only ever grow."""
    name: str
    ranch: str
    creation_index: int = 0
    vigor: int = 0
    speed: int = 0
    coolness: int = 0
    coat: int = 0
    intelligence: int = 0
    medals: List[str] = field(default_factory=list)

    def stat(self, trait: Trait) -> int:
        return int(getattr(self, Trait(trait).value))

    def score(self) -> int:
        return sum(self.stat(t) for t in TRAITS)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "name": self.name,
            "ranch": self.ranch,
            "creation_index": self.creation_index,
            "medals": list(self.medals),
        }
        data.update({t.value: self.stat(t) for t in TRAITS})
        return data


@dataclass
class Ranch:
    """A fixed group of bufficorns, scored by the sum of its members."""
    name: str
    creation_index: int = 0
    trait: Trait = Trait.VIGOR
    bufficorns: List[str] = field(default_factory=list)
    medals: List[str] = field(default_factory=list)

    def score(self, bufficorns: List[Bufficorn]) -> int:
        return sum(b.score() for b in bufficorns if b.ranch == self.name)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "creation_index": self.creation_index,
            "trait": self.trait.value,
            "bufficorns": list(self.bufficorns),
            "medals": list(self.medals),
        }


@dataclass(frozen=True)
class Trade:
    """Immutable record of one resource transfer, valid during [timestamp, ends)."""
    from_: str
    to: str
    resource: Resource
    timestamp: int
    ends: int
    bufficorn: str

    def __post_init__(self) -> None:
        if self.ends < self.timestamp:
            raise ValueError("trade cannot end before it starts")

    def is_active(self, now: int) -> bool:
        return self.ends > now

    def to_dict(self) -> Dict[str, Any]:
        return {
            "from": self.from_,
            "to": self.to,
            "resource": self.resource.to_dict(),
            "timestamp": int(self.timestamp),
            "ends": int(self.ends),
            "bufficorn": self.bufficorn,
        }
