"""Rejection taxonomy for the trade engine.

Every rejection is terminal for the request that raised it; retrying is the
caller's decision. Routes map `status_code`/`detail` onto HTTPException.
"""
from __future__ import annotations

from typing import Optional

from ranchtrade.core.time_utils import print_remaining_millis


class TradeError(Exception):
    status_code: int = 400
    reason: str = "trade_error"

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class PeriodClosed(TradeError):
    status_code = 403
    reason = "period_closed"

    def __init__(self) -> None:
        super().__init__("Trade period is over.")


class AuthInvalid(TradeError):
    status_code = 403
    reason = "invalid_token"

    def __init__(self) -> None:
        super().__init__("Forbidden: invalid token")


class SlotConflict(TradeError):
    """Source or target already holds a busy mark."""
    status_code = 409
    reason = "slot_conflict"

    def __init__(self, role: str, key: Optional[str] = None) -> None:
        self.role = role
        if role == "source":
            detail = "Players can only trade 1 player at a time"
        else:
            detail = f"{key} player is already trading"
        super().__init__(detail)


class NotFound(TradeError):
    status_code = 404
    reason = "not_found"

    def __init__(self, entity: str, detail: str) -> None:
        self.entity = entity
        super().__init__(detail)


class Unclaimed(TradeError):
    status_code = 409
    reason = "unclaimed"

    def __init__(self, entity: str, detail: str) -> None:
        self.entity = entity
        super().__init__(detail)


class CooldownActive(TradeError):
    status_code = 409
    reason = "cooldown_active"

    def __init__(self, username: str, remaining_ms: int) -> None:
        self.remaining_ms = int(remaining_ms)
        super().__init__(
            f"{username} player needs {print_remaining_millis(remaining_ms)} "
            f"to cooldown before trading with you again"
        )


class GrowthRejected(TradeError):
    status_code = 403
    reason = "growth_rejected"


__all__ = [
    "TradeError",
    "PeriodClosed",
    "AuthInvalid",
    "SlotConflict",
    "NotFound",
    "Unclaimed",
    "CooldownActive",
    "GrowthRejected",
]
