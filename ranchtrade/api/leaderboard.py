from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ranchtrade.api.deps import get_readonly_repositories
from ranchtrade.core.config import LEADERBOARD_DEFAULT_LIMIT
from ranchtrade.core.leaderboard import build_leaderboard
from ranchtrade.core.repositories import Repositories
from ranchtrade.models.components import Trait

router = APIRouter(prefix="/leaderboard", tags=["leaderboard"])


@router.get("")
async def get_leaderboard(
    resource: Optional[Trait] = Query(default=None),
    limit: int = Query(default=LEADERBOARD_DEFAULT_LIMIT, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    repos: Repositories = Depends(get_readonly_repositories),
):
    """Players by points, bufficorns by total stats and ranches by member totals.

    Each list is paginated independently with the same limit/offset.
    """
    players = await repos.players.get_all()
    ranches = await repos.ranches.get_all()
    bufficorns = await repos.bufficorns.get_all()
    return build_leaderboard(players, ranches, bufficorns, limit=limit, offset=offset, resource=resource)
