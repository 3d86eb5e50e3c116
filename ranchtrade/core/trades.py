from __future__ import annotations

"""Trade transaction engine.

Turns a bearer token, a target player key and an optional test-only cooldown
override into a persisted, time-bounded Trade. The pipeline runs

    RECEIVED -> TOKEN_VERIFIED -> SLOT_RESERVED -> VALIDATED
             -> RESOURCE_COMPUTED -> APPLIED -> PERSISTED

and any step may end in REJECTED. Once slots are reserved, every exit
releases both busy marks, PERSISTED included: the marks only cover the
request in flight, while the pair cooldown (step 6) blocks re-trades until
the previous trade ends. Growth is applied before the trade row is written;
a crash between the two leaves a fed bufficorn without a trade record, which
is the accepted recovery boundary.
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from ranchtrade.core.cooldowns import SlotReservations
from ranchtrade.core.errors import (
    CooldownActive,
    GrowthRejected,
    NotFound,
    PeriodClosed,
    TradeError,
    Unclaimed,
)
from ranchtrade.core.growth import GrowthModel
from ranchtrade.core.metrics import metrics
from ranchtrade.core.repositories import Repositories
from ranchtrade.core.resources import ResourceGenerator
from ranchtrade.core.time_utils import calculate_remaining_cooldown, is_period_over, now_millis
from ranchtrade.models.components import Bufficorn, Player, Trade

logger = logging.getLogger(__name__)

TokenVerifier = Callable[[Optional[str]], str]


class TradeState(str, Enum):
    RECEIVED = "received"
    TOKEN_VERIFIED = "token_verified"
    SLOT_RESERVED = "slot_reserved"
    VALIDATED = "validated"
    RESOURCE_COMPUTED = "resource_computed"
    APPLIED = "applied"
    PERSISTED = "persisted"
    REJECTED = "rejected"


@dataclass
class TradeRequest:
    token: Optional[str]
    to: str
    # Test-only: 0 skips the pair cooldown and creates a zero-length trade
    cooldown: Optional[int] = None


@dataclass
class TradeAttempt:
    """Progress of one request through the pipeline (for logs and tests)."""
    request: TradeRequest
    state: TradeState = TradeState.RECEIVED
    from_key: Optional[str] = None
    history: List[TradeState] = field(default_factory=lambda: [TradeState.RECEIVED])

    def advance(self, state: TradeState) -> None:
        self.state = state
        self.history.append(state)
        logger.debug("trade_state", extra={"state": state.value, "from_key": self.from_key, "to_key": self.request.to})


class TradeOrchestrator:
    def __init__(
        self,
        repos: Repositories,
        slots: SlotReservations,
        generator: ResourceGenerator,
        verify_token: TokenVerifier,
        growth: Optional[GrowthModel] = None,
        clock: Callable[[], int] = now_millis,
        trade_duration_millis: int = 300_000,
        period_ends_at: Optional[int] = None,
        allow_cooldown_override: bool = False,
    ) -> None:
        self.repos = repos
        self.slots = slots
        self.generator = generator
        self.growth = growth if growth is not None else GrowthModel(repos.bufficorns)
        self._verify_token = verify_token
        self._clock = clock
        self.trade_duration_millis = int(trade_duration_millis)
        self.period_ends_at = period_ends_at
        self.allow_cooldown_override = allow_cooldown_override
        self.last_attempt: Optional[TradeAttempt] = None

    async def execute(self, request: TradeRequest) -> Trade:
        attempt = TradeAttempt(request=request)
        self.last_attempt = attempt
        started = time.perf_counter()
        try:
            trade = await self._run(attempt)
        except TradeError as exc:
            attempt.advance(TradeState.REJECTED)
            metrics.record_trade(rejected_reason=exc.reason, duration_s=time.perf_counter() - started)
            logger.info(
                "trade_rejected",
                extra={
                    "reason": exc.reason,
                    "status_code": exc.status_code,
                    "from_key": attempt.from_key,
                    "to_key": request.to,
                    "detail": exc.detail,
                },
            )
            raise
        metrics.record_trade(duration_s=time.perf_counter() - started)
        return trade

    async def _run(self, attempt: TradeAttempt) -> Trade:
        request = attempt.request
        cooldown = request.cooldown if self.allow_cooldown_override else None

        # 1. trading period
        if is_period_over(self.period_ends_at, self._clock()):
            raise PeriodClosed()

        # 2. token -> source key; nothing reserved yet
        from_key = self._verify_token(request.token)
        attempt.from_key = from_key
        attempt.advance(TradeState.TOKEN_VERIFIED)

        # 3. reserve both slots atomically
        to_key = request.to
        reservation = self.slots.reserve(from_key, to_key)
        attempt.advance(TradeState.SLOT_RESERVED)

        try:
            return await self._reserved(attempt, from_key, to_key, cooldown)
        finally:
            self.slots.release(reservation)

    async def _reserved(self, attempt: TradeAttempt, from_key: str, to_key: str, cooldown: Optional[int]) -> Trade:
        players = self.repos.players

        # 4. source player
        from_player = await players.get(from_key)
        if from_player is None:
            raise NotFound("source", f"Player does not exist (key: {from_key})")
        if not from_player.is_claimed():
            raise Unclaimed("source", "Player should be claimed before trade with others")

        # 5. target player
        to_player = await players.get(to_key)
        if to_player is None:
            raise NotFound("target", f"Wrong target player with key {to_key}")
        if not to_player.is_claimed():
            raise Unclaimed("target", "Target player has not been claimed yet")

        # 6. pair cooldown
        now = self._clock()
        last_trade = await self.repos.trades.get_last(from_=from_player.username, to=to_player.username)
        remaining = calculate_remaining_cooldown(last_trade.ends, now) if last_trade is not None else 0
        if remaining and cooldown != 0:
            raise CooldownActive(to_player.username, remaining)
        attempt.advance(TradeState.VALIDATED)

        # 7. resource offered by the source
        resource = self.generator.generate(from_player, last_trade, now)
        attempt.advance(TradeState.RESOURCE_COMPUTED)

        # 8. feed the target's selected bufficorn
        try:
            bufficorn: Bufficorn = await self.growth.apply(to_player.selected_bufficorn, resource, to_player.ranch)
        except GrowthRejected:
            raise
        except Exception as exc:
            logger.warning("growth_failed", extra={"to_key": to_key}, exc_info=True)
            raise GrowthRejected(str(exc) or "Bufficorn could not be fed") from exc

        # 9. score the target; an increment, so concurrent profile writes cannot drop it
        if await players.add_points(to_player.key, resource.amount) is None:
            raise NotFound("target", f"Wrong target player with key {to_key}")
        attempt.advance(TradeState.APPLIED)

        # 10. persist the trade
        duration = 0 if cooldown == 0 else self.trade_duration_millis
        trade = await self.repos.trades.create(Trade(
            from_=from_player.username,
            to=to_player.username,
            resource=resource,
            timestamp=now,
            ends=now + duration,
            bufficorn=bufficorn.name,
        ))
        attempt.advance(TradeState.PERSISTED)
        logger.info(
            "trade_created",
            extra={
                "from": trade.from_,
                "to": trade.to,
                "trait": trade.resource.trait.value,
                "amount": trade.resource.amount,
                "bufficorn": trade.bufficorn,
                "ends": trade.ends,
            },
        )
        return trade


async def load_claimed_player(repos: Repositories, verify_token: TokenVerifier, token: Optional[str]) -> Player:
    """Resolve a bearer token to a claimed player or raise."""
    key = verify_token(token)
    player = await repos.players.get(key)
    if player is None:
        raise NotFound("source", f"Player does not exist (key: {key})")
    if not player.is_claimed():
        raise Unclaimed("source", "Player should be claimed before trade with others")
    return player


async def list_trades(repos: Repositories, verify_token: TokenVerifier, token: Optional[str],
                      limit: int = 10, offset: int = 0) -> Tuple[List[Trade], int]:
    """Paginated trade history of the token holder, newest first, plus the total count."""
    player = await load_claimed_player(repos, verify_token, token)
    trades = await repos.trades.get_many_by_username(player.username, limit=limit, offset=offset)
    total = await repos.trades.count(player.username)
    return trades, total


async def describe_player(repos: Repositories, player: Player, now: Optional[int] = None) -> Dict[str, Any]:
    """Player view with the player's ranch, its bufficorns and the last incoming/outgoing trades."""
    current = now_millis() if now is None else now
    ranch = await repos.ranches.get(player.ranch)
    members = await repos.bufficorns.get_by_ranch(player.ranch)
    ranch_view: Dict[str, Any] = ranch.to_dict() if ranch is not None else {"name": player.ranch}
    ranch_view["bufficorns"] = [b.to_dict() for b in members]
    trade_in = await repos.trades.get_last(to=player.username)
    trade_out = await repos.trades.get_last(from_=player.username)
    return {
        "player": {
            **player.to_dict(),
            "ranch": ranch_view,
            "last_trade_in": trade_in.timestamp if trade_in is not None else None,
            "last_trade_out": trade_out.timestamp if trade_out is not None else None,
        },
        "trade_in": trade_in.to_dict() if trade_in is not None and trade_in.is_active(current) else None,
        "trade_out": trade_out.to_dict() if trade_out is not None and trade_out.is_active(current) else None,
    }


__all__ = [
    "TradeState",
    "TradeRequest",
    "TradeAttempt",
    "TradeOrchestrator",
    "load_claimed_player",
    "list_trades",
    "describe_player",
]
