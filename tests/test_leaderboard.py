import random

from ranchtrade.core.leaderboard import build_leaderboard, rank_bufficorns, rank_players, rank_ranches
from ranchtrade.models.components import Bufficorn, Player, Ranch, Trait


def _players():
    return [
        Player(key="k0", username="alpha", ranch="A", points=50, creation_index=0),
        Player(key="k1", username="bravo", ranch="B", points=80, creation_index=1),
        Player(key="k2", username="charlie", ranch="A", points=50, creation_index=2),
        Player(key="k3", username="delta", ranch="B", points=0, creation_index=3),
    ]


def _ranches():
    return [
        Ranch(name="A", creation_index=0, trait=Trait.VIGOR, bufficorns=["a0", "a1"]),
        Ranch(name="B", creation_index=1, trait=Trait.SPEED, bufficorns=["b0", "b1"]),
    ]


def _bufficorns():
    return [
        Bufficorn(name="a0", ranch="A", creation_index=0, vigor=10),
        Bufficorn(name="a1", ranch="A", creation_index=1, speed=3, intelligence=2),
        Bufficorn(name="b0", ranch="B", creation_index=0, coolness=5),
        Bufficorn(name="b1", ranch="B", creation_index=1, coat=9),
    ]


def test_players_ranked_by_points_then_creation_order():
    ranked = rank_players(_players())
    assert [p["username"] for p in ranked] == ["bravo", "alpha", "charlie", "delta"]
    assert [p["position"] for p in ranked] == [1, 2, 3, 4]


def test_bufficorn_ties_break_by_ranch_then_index():
    ranked = rank_bufficorns(_bufficorns(), _ranches())
    # a1 and b0 both score 5; ranch A was created first
    assert [b["name"] for b in ranked] == ["a0", "b1", "a1", "b0"]
    assert ranked[0]["score"] == 10


def test_ranches_ranked_by_member_totals():
    ranked = rank_ranches(_ranches(), _bufficorns())
    assert [(r["name"], r["score"]) for r in ranked] == [("A", 15), ("B", 14)]


def test_ranking_is_independent_of_input_order():
    expected = build_leaderboard(_players(), _ranches(), _bufficorns())
    rnd = random.Random(7)
    for _ in range(5):
        players, ranches, bufficorns = _players(), _ranches(), _bufficorns()
        rnd.shuffle(players)
        rnd.shuffle(ranches)
        rnd.shuffle(bufficorns)
        assert build_leaderboard(players, ranches, bufficorns) == expected


def test_pagination_keeps_totals_and_positions():
    board = build_leaderboard(_players(), _ranches(), _bufficorns(), limit=2, offset=1, resource=Trait.SPEED)
    assert board["resource"] == "speed"
    assert board["players"]["total"] == 4
    assert [p["position"] for p in board["players"]["entries"]] == [2, 3]
    assert board["bufficorns"]["total"] == 4
    assert len(board["bufficorns"]["entries"]) == 2
    assert board["ranches"]["total"] == 2
    assert [r["name"] for r in board["ranches"]["entries"]] == ["B"]


def test_empty_world():
    board = build_leaderboard([], [], [])
    assert board["players"] == {"entries": [], "total": 0}
    assert board["resource"] is None
