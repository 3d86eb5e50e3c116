from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Optional, Union


def now_millis() -> int:
    """Return the current time as integer epoch milliseconds."""
    return int(time.time() * 1000)


def isoformat_millis(ms: Optional[int]) -> Optional[str]:
    """Serialize epoch millis to an ISO8601 string with 'Z' suffix.

    Returns None if ms is None.
    """
    if ms is None:
        return None
    s = datetime.fromtimestamp(ms / 1000.0, tz=timezone.utc).isoformat()
    if s.endswith("+00:00"):
        s = s[:-6] + "Z"
    return s


def parse_millis(value: Optional[Union[str, int, datetime]]) -> Optional[int]:
    """Parse epoch millis, an ISO8601 string (supporting trailing 'Z') or a datetime.

    Naive datetimes are interpreted as UTC. Returns None for None/empty input
    and raises ValueError for anything unparseable.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        dt = value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)
        return int(dt.timestamp() * 1000)
    if isinstance(value, int):
        return value
    s = str(value).strip()
    if not s:
        return None
    if s.isdigit():
        return int(s)
    # Normalize trailing 'Z' to +00:00 for fromisoformat
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    return parse_millis(datetime.fromisoformat(s))


def calculate_remaining_cooldown(ends: int, now: Optional[int] = None) -> int:
    """Milliseconds left until `ends`, never negative."""
    current = now_millis() if now is None else now
    return max(0, int(ends) - int(current))


def print_remaining_millis(ms: int) -> str:
    """Render a duration for humans, e.g. '4 minutes and 5 seconds'."""
    # Round up so a pending cooldown never prints as "0 seconds"
    total_seconds = (max(0, int(ms)) + 999) // 1000
    minutes, seconds = divmod(total_seconds, 60)
    parts = []
    if minutes:
        parts.append(f"{minutes} minute{'s' if minutes != 1 else ''}")
    if seconds or not minutes:
        parts.append(f"{seconds} second{'s' if seconds != 1 else ''}")
    return " and ".join(parts)


def is_period_over(ends_at: Optional[int], now: Optional[int] = None) -> bool:
    if ends_at is None:
        return False
    current = now_millis() if now is None else now
    return current >= ends_at


__all__ = [
    "now_millis",
    "isoformat_millis",
    "parse_millis",
    "calculate_remaining_cooldown",
    "print_remaining_millis",
    "is_period_over",
]
