from __future__ import annotations

"""Leaderboard ranking for players, bufficorns and ranches.

Pure functions over read-only snapshots. Every sort has a stable secondary
key, so the same snapshot always ranks the same way.
"""

from typing import Any, Dict, List, Optional

from ranchtrade.models.components import Bufficorn, Player, Ranch, Trait


def _with_positions(items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    for position, item in enumerate(items, start=1):
        item["position"] = position
    return items


def rank_players(players: List[Player]) -> List[Dict[str, Any]]:
    ordered = sorted(players, key=lambda p: (-int(p.points), int(p.creation_index)))
    return _with_positions([
        {
            "username": p.username,
            "ranch": p.ranch,
            "points": int(p.points),
            "creation_index": int(p.creation_index),
        }
        for p in ordered
    ])


def rank_bufficorns(bufficorns: List[Bufficorn], ranches: Optional[List[Ranch]] = None) -> List[Dict[str, Any]]:
    ranch_order = {r.name: r.creation_index for r in (ranches or [])}
    ordered = sorted(
        bufficorns,
        key=lambda b: (-b.score(), ranch_order.get(b.ranch, 0), b.ranch, int(b.creation_index)),
    )
    return _with_positions([{**b.to_dict(), "score": b.score()} for b in ordered])


def rank_ranches(ranches: List[Ranch], bufficorns: List[Bufficorn]) -> List[Dict[str, Any]]:
    scores = {r.name: r.score(bufficorns) for r in ranches}
    ordered = sorted(ranches, key=lambda r: (-scores[r.name], int(r.creation_index), r.name))
    return _with_positions([{**r.to_dict(), "score": scores[r.name]} for r in ordered])


def _page(items: List[Dict[str, Any]], limit: int, offset: int) -> Dict[str, Any]:
    start = max(0, int(offset))
    end = max(start, start + int(limit))
    return {"entries": items[start:end], "total": len(items)}


def build_leaderboard(
    players: List[Player],
    ranches: List[Ranch],
    bufficorns: List[Bufficorn],
    limit: int = 100,
    offset: int = 0,
    resource: Optional[Trait] = None,
) -> Dict[str, Any]:
    """Rank all three collections and paginate each one independently.

    `resource` is echoed back for clients that filter by trait; it does not
    change the ranking.
    """
    return {
        "resource": resource.value if resource is not None else None,
        "players": _page(rank_players(players), limit, offset),
        "bufficorns": _page(rank_bufficorns(bufficorns, ranches), limit, offset),
        "ranches": _page(rank_ranches(ranches, bufficorns), limit, offset),
    }


__all__ = ["rank_players", "rank_bufficorns", "rank_ranches", "build_leaderboard"]
