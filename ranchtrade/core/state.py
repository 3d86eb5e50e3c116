from __future__ import annotations

"""Shared application state.

Exports the process-wide in-memory store and the slot reservations used by
every trade request. Routers import from here to share the same objects.
"""

from ranchtrade.core.config import GUARD_MARK_TTL_MILLIS
from ranchtrade.core.cooldowns import SlotReservations
from ranchtrade.core.memory_store import MemoryStore
from ranchtrade.core.metrics import metrics

# In-memory repositories (used while the database layer is disabled)
memory_store = MemoryStore()

# Sender/receiver busy marks shared by all concurrent trade requests
slot_reservations = SlotReservations(ttl_millis=GUARD_MARK_TTL_MILLIS)
metrics.register_gauge("busy_marks", slot_reservations.occupancy)


def reset_state() -> None:
    """Forget all in-memory data and busy marks (startup and tests)."""
    memory_store.reset()
    slot_reservations.clear()


__all__ = ["memory_store", "slot_reservations", "reset_state"]
