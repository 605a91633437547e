"""HTTP layer over an in-memory manager."""

import asyncio

import pytest
from fastapi.testclient import TestClient

from outcomeguard.api.main import _run_scheduler, create_app

BASE = "/periods/wingo/30/default/20250101000000001"
BASE_5D = "/periods/5d/60/default/20250101000000001"


@pytest.fixture
def client(make_manager):
    mgr = make_manager(protected_share_pct=100)
    with TestClient(create_app(mgr)) as c:
        yield c


def _bet(client, base=BASE, **overrides):
    body = {"user_id": "u1", "bet_type": "COLOR", "bet_value": "red", "stake": 100, "payout_multiplier": 1.96}
    body.update(overrides)
    return client.post(base + "/bets", json=body)


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"
    assert set(r.json()["games"]) == {"wingo", "k3", "5d"}


def test_full_period_over_http(client):
    assert client.post(BASE + "/open").json()["state"] == "open"
    r = _bet(client)
    assert r.status_code == 200
    assert r.json()["liability"] == 196
    assert r.json()["predicate"] == "COLOR:red"

    exposure = client.get(BASE + "/exposure").json()
    assert exposure["entries"] == {"COLOR:red": 196}
    assert exposure["total_liability"] == 196

    status = client.get(BASE + "/status").json()
    assert status["state"] == "open"
    assert status["unique_users"] == 1
    assert status["protection_active"] is True

    assert client.get(BASE + "/result").status_code == 404
    assert client.post(BASE + "/freeze").json()["state"] == "frozen"

    late = _bet(client, user_id="u2")
    assert late.status_code == 409
    assert late.json()["code"] == "period_state"

    settled = client.post(BASE + "/settle")
    assert settled.status_code == 200
    assert settled.json()["outcome_key"] in {"1", "3", "5", "7", "9"}
    assert settled.json()["liability"] == 0

    result = client.get(BASE + "/result").json()
    assert result == settled.json()
    again = client.post(BASE + "/settle")
    assert again.status_code == 409


def test_invalid_bet_is_422(client):
    client.post(BASE + "/open")
    r = _bet(client, bet_type="COLOR", bet_value="blue")
    assert r.status_code == 422
    assert r.json()["code"] == "invalid_bet"
    r = _bet(client, payout_multiplier="0.9")
    assert r.status_code == 422
    r = client.post("/periods/wingo/45/default/1/bets", json={
        "user_id": "u1", "bet_type": "COLOR", "bet_value": "red", "stake": 1, "payout_multiplier": 2,
    })
    assert r.status_code == 422


def test_candidates_endpoint(client):
    client.post(BASE_5D + "/open")
    r = _bet(client, base=BASE_5D, bet_type="POSITION", bet_value="A_5", payout_multiplier="9.8")
    assert r.json()["candidates_removed"] == 10_000
    stats = client.get(BASE_5D + "/candidates").json()
    assert stats == {"universe_size": 100_000, "remaining": 90_000, "excluded": 10_000}
    assert client.get(BASE + "/candidates").status_code == 422


class _FlakyManager:
    """tick() raises a non-domain error once, then asks the scheduler to stop."""

    def __init__(self, stop):
        self.stop = stop
        self.calls = 0

    def tick(self, now, schedule):
        self.calls += 1
        if self.calls == 1:
            raise RuntimeError("store driver bug")
        self.stop.set()
        return []


def test_scheduler_survives_unexpected_tick_error():
    async def run():
        stop = asyncio.Event()
        mgr = _FlakyManager(stop)
        await asyncio.wait_for(_run_scheduler(mgr, [], 0.01, stop), timeout=10)
        return mgr.calls

    assert asyncio.run(run()) == 2
