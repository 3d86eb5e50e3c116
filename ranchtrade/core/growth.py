from __future__ import annotations

import logging

from ranchtrade.core.errors import GrowthRejected
from ranchtrade.core.repositories import BufficornRepository
from ranchtrade.models.components import Bufficorn, Resource

logger = logging.getLogger(__name__)


class GrowthModel:
    """Feeds traded resources to bufficorns.

    Growth is a pure increment of the single stat matching the resource
    trait: no caps and no derived recalculation.
    """

    def __init__(self, bufficorns: BufficornRepository) -> None:
        self._bufficorns = bufficorns

    async def apply(self, creature_index: int, resource: Resource, ranch: str) -> Bufficorn:
        if resource.amount < 0:
            raise GrowthRejected("Resource amount cannot be negative")
        fed = await self._bufficorns.feed(ranch, int(creature_index), resource)
        if fed is None:
            raise GrowthRejected(f"Bufficorn #{creature_index} does not belong to ranch {ranch}")
        logger.info(
            "bufficorn_fed",
            extra={
                "bufficorn": fed.name,
                "ranch": ranch,
                "trait": resource.trait.value,
                "amount": resource.amount,
                "new_value": fed.stat(resource.trait),
            },
        )
        return fed


__all__ = ["GrowthModel"]
