from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field

from ranchtrade.api.deps import get_orchestrator, get_repositories
from ranchtrade.auth.security import get_bearer_token, verify_token
from ranchtrade.core.config import TRADE_HISTORY_DEFAULT_LIMIT
from ranchtrade.core.errors import CooldownActive, TradeError
from ranchtrade.core.repositories import Repositories
from ranchtrade.core.trades import TradeOrchestrator, TradeRequest, list_trades
from ranchtrade.models.components import Trade, Trait

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/trades", tags=["trades"])


class TradeParams(BaseModel):
    to: str
    # Only honoured when APP_ENV=test
    cooldown: Optional[int] = None


class ResourceModel(BaseModel):
    trait: Trait
    amount: int


class TradeResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_: str = Field(alias="from")
    to: str
    resource: ResourceModel
    timestamp: int
    ends: int
    bufficorn: str

    @classmethod
    def from_trade(cls, trade: Trade) -> "TradeResult":
        return cls.model_validate(trade.to_dict())


class TradeHistoryPage(BaseModel):
    trades: List[TradeResult]
    total: int


class TradeHistoryResponse(BaseModel):
    trades: TradeHistoryPage


def _http_error(exc: TradeError) -> HTTPException:
    headers = None
    if isinstance(exc, CooldownActive):
        headers = {"Retry-After": str((exc.remaining_ms + 999) // 1000)}
    return HTTPException(status_code=exc.status_code, detail=exc.detail, headers=headers)


@router.post("", response_model=TradeResult)
async def create_trade(
    payload: TradeParams,
    token: Optional[str] = Depends(get_bearer_token),
    orchestrator: TradeOrchestrator = Depends(get_orchestrator),
):
    """Trade the caller's current resource to the player with key `to`."""
    try:
        trade = await orchestrator.execute(TradeRequest(token=token, to=payload.to, cooldown=payload.cooldown))
    except TradeError as exc:
        raise _http_error(exc)
    return TradeResult.from_trade(trade)


@router.get("", response_model=TradeHistoryResponse)
async def trade_history(
    limit: int = Query(default=TRADE_HISTORY_DEFAULT_LIMIT, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    token: Optional[str] = Depends(get_bearer_token),
    repos: Repositories = Depends(get_repositories),
):
    """Trades sent or received by the caller, newest first."""
    try:
        trades, total = await list_trades(repos, verify_token, token, limit=limit, offset=offset)
    except TradeError as exc:
        raise _http_error(exc)
    return TradeHistoryResponse(
        trades=TradeHistoryPage(trades=[TradeResult.from_trade(t) for t in trades], total=total),
    )
