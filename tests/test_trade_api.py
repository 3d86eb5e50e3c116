import threading
from typing import List, Tuple

from fastapi.testclient import TestClient

from ranchtrade.core.config import TRADE_DURATION_MILLIS, WORLD_SEED
from ranchtrade.core.seeding import player_key
from ranchtrade.core.state import memory_store, slot_reservations
from ranchtrade.main import app


def _claim(client: TestClient, index: int) -> Tuple[str, str, str]:
    key = player_key(WORLD_SEED, index)
    r = client.post("/auth", json={"key": key})
    assert r.status_code == 200, r.text
    body = r.json()
    return key, body["token"], body["username"]


def _auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def test_create_trade_returns_wire_form():
    with TestClient(app) as client:
        _, token0, user0 = _claim(client, 0)
        key1, _, user1 = _claim(client, 1)

        r = client.post("/trades", json={"to": key1}, headers=_auth(token0))
        assert r.status_code == 200, r.text
        trade = r.json()
        assert trade["from"] == user0
        assert trade["to"] == user1
        assert trade["ends"] - trade["timestamp"] == TRADE_DURATION_MILLIS
        assert trade["resource"]["amount"] >= 10
        assert trade["resource"]["trait"] in {"vigor", "speed", "coolness", "coat", "intelligence"}
        assert trade["bufficorn"]
        assert slot_reservations.is_free(key1)


def test_repeat_trade_hits_cooldown_with_retry_after():
    with TestClient(app) as client:
        _, token0, _ = _claim(client, 0)
        key1, _, user1 = _claim(client, 1)

        assert client.post("/trades", json={"to": key1}, headers=_auth(token0)).status_code == 200
        r = client.post("/trades", json={"to": key1}, headers=_auth(token0))
        assert r.status_code == 409
        assert r.json()["detail"].startswith(f"{user1} player needs ")
        assert "to cooldown before trading with you again" in r.json()["detail"]
        assert 0 < int(r.headers["Retry-After"]) <= TRADE_DURATION_MILLIS // 1000


def test_zero_cooldown_override_in_test_env():
    with TestClient(app) as client:
        _, token0, _ = _claim(client, 0)
        key1, _, _ = _claim(client, 1)

        for _ in range(3):
            r = client.post("/trades", json={"to": key1, "cooldown": 0}, headers=_auth(token0))
            assert r.status_code == 200, r.text
            assert r.json()["ends"] == r.json()["timestamp"]


def test_raw_token_without_scheme_is_accepted():
    with TestClient(app) as client:
        _, token0, _ = _claim(client, 0)
        key1, _, _ = _claim(client, 1)
        r = client.post("/trades", json={"to": key1}, headers={"Authorization": token0})
        assert r.status_code == 200, r.text


def test_trade_rejections():
    with TestClient(app) as client:
        _, token0, _ = _claim(client, 0)
        unclaimed = player_key(WORLD_SEED, 5)

        r = client.post("/trades", json={"to": unclaimed})
        assert r.status_code == 403
        assert r.json()["detail"] == "Forbidden: invalid token"

        r = client.post("/trades", json={"to": unclaimed}, headers=_auth("not-a-jwt"))
        assert r.status_code == 403

        r = client.post("/trades", json={"to": "P9"}, headers=_auth(token0))
        assert r.status_code == 404
        assert r.json()["detail"] == "Wrong target player with key P9"

        r = client.post("/trades", json={"to": unclaimed}, headers=_auth(token0))
        assert r.status_code == 409

        # nothing stays marked after rejections
        assert len(slot_reservations.sending) == 0
        assert len(slot_reservations.receiving) == 0


def test_trade_history_is_paginated_newest_first():
    with TestClient(app) as client:
        _, token0, user0 = _claim(client, 0)
        key1, _, _ = _claim(client, 1)
        key2, token2, _ = _claim(client, 2)

        client.post("/trades", json={"to": key1, "cooldown": 0}, headers=_auth(token0))
        client.post("/trades", json={"to": key2, "cooldown": 0}, headers=_auth(token0))
        client.post("/trades", json={"to": player_key(WORLD_SEED, 0), "cooldown": 0}, headers=_auth(token2))

        r = client.get("/trades", headers=_auth(token0))
        assert r.status_code == 200, r.text
        page = r.json()["trades"]
        assert page["total"] == 3
        assert len(page["trades"]) == 3
        stamps = [t["timestamp"] for t in page["trades"]]
        assert stamps == sorted(stamps, reverse=True)
        assert all(user0 in (t["from"], t["to"]) for t in page["trades"])

        r = client.get("/trades?limit=1&offset=1", headers=_auth(token0))
        assert r.json()["trades"]["total"] == 3
        assert len(r.json()["trades"]["trades"]) == 1

        assert client.get("/trades").status_code == 403
        assert client.get("/trades?limit=0", headers=_auth(token0)).status_code == 422


def test_concurrent_trades_to_one_target():
    with TestClient(app) as client:
        target, _, _ = _claim(client, 0)
        tokens = [_claim(client, i)[1] for i in range(1, 9)]
        results: List[int] = []
        lock = threading.Lock()

        def _post(token: str) -> None:
            r = client.post("/trades", json={"to": target, "cooldown": 0}, headers=_auth(token))
            with lock:
                results.append(r.status_code)

        threads = [threading.Thread(target=_post, args=(t,)) for t in tokens]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(results) == 8
        assert all(code in (200, 409) for code in results)
        assert results.count(200) >= 1
        assert len(memory_store.trades) == results.count(200)
        assert slot_reservations.is_free(target)
