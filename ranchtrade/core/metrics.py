from __future__ import annotations

"""In-process metrics for the trade server.

The collector keeps, behind one lock:
- per-route HTTP latency and status counts
- trade outcomes: created, and rejected by reason code, with pipeline latency
- plain counters for side events (claims, seeding, swept busy marks)
- gauges read on demand, such as the busy-mark occupancy

`metrics` is the process-wide instance; snapshot() is what /metrics serves.
"""

import threading
import time
from collections import Counter, deque
from typing import Any, Callable, Deque, Dict, Optional, Tuple


class LatencyWindow:
    """Count, total and extremes over all samples; percentiles over the latest `window`."""

    def __init__(self, window: int = 256) -> None:
        self.count = 0
        self.total_s = 0.0
        self.min_s: Optional[float] = None
        self.max_s = 0.0
        self.recent: Deque[float] = deque(maxlen=window)

    def observe(self, seconds: float) -> None:
        self.count += 1
        self.total_s += seconds
        self.min_s = seconds if self.min_s is None else min(self.min_s, seconds)
        self.max_s = max(self.max_s, seconds)
        self.recent.append(seconds)

    def percentile_ms(self, p: float) -> float:
        if not self.recent:
            return 0.0
        ordered = sorted(self.recent)
        idx = int(round(p / 100.0 * (len(ordered) - 1)))
        return ordered[idx] * 1000.0

    def summary(self) -> Dict[str, Any]:
        return {
            "count": self.count,
            "avg_ms": self.total_s / self.count * 1000.0 if self.count else 0.0,
            "min_ms": (self.min_s or 0.0) * 1000.0,
            "max_ms": self.max_s * 1000.0,
            "p50_ms": self.percentile_ms(50.0),
            "p95_ms": self.percentile_ms(95.0),
            "p99_ms": self.percentile_ms(99.0),
        }


class MetricsCollector:
    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._started_at = time.time()
        self._started_mono = time.monotonic()
        self._routes: Dict[Tuple[str, str], LatencyWindow] = {}
        self._route_statuses: Dict[Tuple[str, str], Counter] = {}
        self._trades_created = 0
        self._trade_rejections: Counter = Counter()
        self._trade_latency = LatencyWindow()
        self._events: Counter = Counter()
        self._timers: Dict[str, LatencyWindow] = {}
        self._gauges: Dict[str, Callable[[], Any]] = {}

    def record_http(self, method: str, route: str, status_code: int, duration_s: float) -> None:
        key = (method.upper(), route)
        with self._lock:
            self._routes.setdefault(key, LatencyWindow()).observe(duration_s)
            self._route_statuses.setdefault(key, Counter())[str(status_code)] += 1

    def record_trade(self, rejected_reason: Optional[str] = None, duration_s: Optional[float] = None) -> None:
        """Count one finished trade request: created when `rejected_reason` is None."""
        with self._lock:
            if rejected_reason is None:
                self._trades_created += 1
            else:
                self._trade_rejections[rejected_reason] += 1
            if duration_s is not None:
                self._trade_latency.observe(float(duration_s))

    def increment_event(self, key: str, count: int = 1) -> None:
        if not key:
            return
        with self._lock:
            self._events[key] += int(count)

    def record_timer(self, name: str, duration_s: float) -> None:
        with self._lock:
            self._timers.setdefault(name, LatencyWindow()).observe(float(duration_s))

    def register_gauge(self, name: str, read: Callable[[], Any]) -> None:
        """Expose `read()` under `gauges.<name>` in every snapshot."""
        with self._lock:
            self._gauges[name] = read

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            by_route = {
                f"{method}:{route}": {**window.summary(), "status_counts": dict(self._route_statuses[(method, route)])}
                for (method, route), window in self._routes.items()
            }
            rejected = dict(self._trade_rejections)
            return {
                "process": {
                    "started_at": self._started_at,
                    "uptime_s": max(0.0, time.monotonic() - self._started_mono),
                },
                "http": {
                    "total_count": sum(w.count for w in self._routes.values()),
                    "by_route": by_route,
                },
                "trades": {
                    "created": self._trades_created,
                    "rejected": rejected,
                    "rejected_total": sum(rejected.values()),
                    "latency": self._trade_latency.summary(),
                },
                "events": dict(self._events),
                "timers": {name: window.summary() for name, window in self._timers.items()},
                "gauges": {name: read() for name, read in self._gauges.items()},
            }


metrics = MetricsCollector()

__all__ = ["metrics", "MetricsCollector", "LatencyWindow"]
