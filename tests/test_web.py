from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from swap_ledger.config.app_config import default_ledger_settings, load_app_config
from swap_ledger.storage.repository import InMemoryTradeRepository
from swap_ledger.web.app import app, get_config, get_now, get_repository

from swap_builders import ACCOUNT, at, buy, sell

NOW = datetime(2024, 6, 30, 18, 0, tzinfo=timezone.utc)


@pytest.fixture
def client():
    repository = InMemoryTradeRepository(
        [
            buy(100, 1, at(0)),
            buy(100, 3, at(1)),
            sell(150, 6, at(2)),
            buy(5, 1, datetime(2024, 7, 2, tzinfo=timezone.utc)),
        ]
    )
    app.dependency_overrides[get_repository] = lambda: repository
    app.dependency_overrides[get_now] = lambda: NOW
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def test_pnl_report(client):
    response = client.get("/api/trading/pnl", params={"account": ACCOUNT, "period": "all"})
    assert response.status_code == 200
    payload = response.json()
    assert payload["period"] == "all"
    assert payload["summary"]["totalRealizedPnl"] == pytest.approx(3)
    assert payload["summary"]["totalTrades"] == 3
    # The buy settled after "now" still shows in the portfolio.
    assert payload["activePositions"][0]["currentBalance"] == pytest.approx(55)
    assert payload["activePositions"][0]["avgBuyPrice"] == pytest.approx(5 / 205)
    assert "calendarData" not in payload


def test_calendar_month_keeps_later_positions(client):
    payload = client.get(
        "/api/trading/pnl",
        params={"account": ACCOUNT, "period": "calendar", "year": 2024, "month": 5},
    ).json()
    assert payload["summary"]["totalTrades"] == 0
    assert payload["positions"][0]["trades"] == 4
    assert payload["activePositions"][0]["currentBalance"] == pytest.approx(55)


def test_inventory_shortfall_is_unprocessable(client):
    repository = InMemoryTradeRepository([sell(10, 1, at(0))])
    app.dependency_overrides[get_repository] = lambda: repository
    app.dependency_overrides[get_config] = lambda: replace(
        load_app_config(env={}), ledger=replace(default_ledger_settings(), strict_inventory=True)
    )
    response = client.get("/api/trading/pnl", params={"account": ACCOUNT, "period": "7d"})
    assert response.status_code == 422
    assert "exceeds tracked balance" in response.json()["detail"]


def test_calendar_period(client):
    response = client.get(
        "/api/trading/pnl",
        params={"account": ACCOUNT, "period": "calendar", "year": 2024, "month": 6},
    )
    payload = response.json()
    assert len(payload["calendarData"]) == 30
    assert payload["calendarData"]["2024-06-03"]["pnl"] == pytest.approx(3)


def test_pnl_rejects_bad_parameters(client):
    assert client.get("/api/trading/pnl").status_code == 400
    assert client.get("/api/trading/pnl", params={"account": ACCOUNT, "period": "2y"}).status_code == 400
    assert (
        client.get("/api/trading/pnl", params={"account": ACCOUNT, "period": "calendar", "month": 13}).status_code
        == 400
    )
    assert client.get("/api/trading/pnl", params={"account": ACCOUNT, "year": "abc"}).status_code == 400


def test_unknown_account_gets_empty_report(client):
    payload = client.get("/api/trading/pnl", params={"account": "nobody"}).json()
    assert payload["positions"] == []
    assert payload["summary"]["totalTrades"] == 0


def test_history_pages_newest_first(client):
    response = client.get("/api/trading/history", params={"account": ACCOUNT, "limit": 2})
    payload = response.json()
    assert payload["total"] == 4
    assert payload["limit"] == 2
    assert payload["hasMore"] is True
    assert payload["trades"][0]["settledAt"].startswith("2024-07-02")


def test_history_limit_is_capped(client):
    payload = client.get("/api/trading/history", params={"account": ACCOUNT, "limit": 500}).json()
    assert payload["limit"] == 100
    assert payload["hasMore"] is False


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}
