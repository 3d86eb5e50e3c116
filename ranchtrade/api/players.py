from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from ranchtrade.api.deps import get_repositories
from ranchtrade.auth.security import get_bearer_token, verify_token
from ranchtrade.core.errors import TradeError
from ranchtrade.core.repositories import Repositories
from ranchtrade.core.state import slot_reservations
from ranchtrade.core.trades import describe_player, load_claimed_player

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/players", tags=["players"])


@router.get("/{key}")
async def get_player(
    key: str,
    token: Optional[str] = Depends(get_bearer_token),
    repos: Repositories = Depends(get_repositories),
):
    """Own player profile with the last incoming/outgoing trades.

    A token issued for a different player is rejected with 403.
    """
    try:
        player = await load_claimed_player(repos, verify_token, token)
    except TradeError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.detail)
    if player.key != key:
        raise HTTPException(status_code=403, detail="Forbidden: token does not belong to this player")
    return await describe_player(repos, player)


@router.post("/selected-bufficorn/{index}")
async def select_bufficorn(
    index: int,
    token: Optional[str] = Depends(get_bearer_token),
    repos: Repositories = Depends(get_repositories),
):
    """Choose which bufficorn of the player's ranch receives incoming resources."""
    try:
        player = await load_claimed_player(repos, verify_token, token)
    except TradeError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.detail)

    # The selected bufficorn is read mid-trade; do not switch it under one
    if not slot_reservations.is_free(player.key):
        raise HTTPException(status_code=409, detail="Player is trading, try again shortly")

    members = await repos.bufficorns.get_by_ranch(player.ranch)
    if not any(b.creation_index == index for b in members):
        raise HTTPException(status_code=404, detail=f"Bufficorn #{index} does not exist in ranch {player.ranch}")

    player = await repos.players.select_bufficorn(player.key, index)
    if player is None:
        raise HTTPException(status_code=404, detail="Player does not exist")
    logger.info("bufficorn_selected", extra={"player_key": player.key, "selected_bufficorn": index})
    return {"player": player.to_dict()}
