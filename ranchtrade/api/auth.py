from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from ranchtrade.api.deps import get_repositories
from ranchtrade.auth.security import create_access_token
from ranchtrade.core.metrics import metrics
from ranchtrade.core.repositories import Repositories

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


class ClaimRequest(BaseModel):
    key: str


class ClaimResponse(BaseModel):
    key: str
    username: str
    token: str


@router.post("", response_model=ClaimResponse)
async def claim_player(payload: ClaimRequest, repos: Repositories = Depends(get_repositories)):
    """Claim a pre-generated player by key and return its access token.

    Claiming twice returns the token issued the first time.
    """
    player = await repos.players.get(payload.key)
    if player is None:
        raise HTTPException(status_code=404, detail=f"Player does not exist (key: {payload.key})")

    if not player.is_claimed():
        issued = create_access_token(subject=player.key)
        player = await repos.players.claim(player.key, issued)
        if player is None:
            raise HTTPException(status_code=404, detail=f"Player does not exist (key: {payload.key})")
        if player.token == issued:
            metrics.increment_event("player.claimed")
            logger.info("player_claimed", extra={"player_key": player.key, "username": player.username})

    return ClaimResponse(key=player.key, username=player.username, token=player.token)
