from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone

from swap_ledger.models import Amount
from swap_ledger.storage import sqlite_reader
from swap_ledger.storage.repository import InMemoryTradeRepository
from swap_ledger.storage.sqlite_reader import SqliteTradeRepository
from swap_ledger.storage.sqlite_store import connect, init_db, upsert_trades

from swap_builders import ACCOUNT, at, buy, sell


def _seed_db(tmp_path):
    db_path = tmp_path / "ledger.sqlite"
    conn = connect(db_path)
    init_db(conn)
    trades = [
        buy(100, 1, at(0), trade_id="a"),
        sell(50, 2, at(1), trade_id="b"),
        buy(10, 1, at(2), trade_id="c"),
    ]
    upsert_trades(conn, trades)
    conn.close()
    return db_path, trades


def test_round_trip_preserves_trades(tmp_path):
    db_path, trades = _seed_db(tmp_path)
    loaded = SqliteTradeRepository(db_path).load_settled_trades(ACCOUNT)
    assert loaded == trades


def test_large_raw_amounts_survive(tmp_path):
    db_path = tmp_path / "ledger.sqlite"
    conn = connect(db_path)
    init_db(conn)
    big = buy(1, 1, at(0), trade_id="big")
    big = replace(big, amount_out=Amount(raw=2**70, decimals=9))
    upsert_trades(conn, [big])
    conn.close()
    loaded = SqliteTradeRepository(db_path).load_settled_trades(ACCOUNT)
    assert loaded[0].amount_out.raw == 2**70


def test_time_range_and_scope(tmp_path):
    db_path, _ = _seed_db(tmp_path)
    repository = SqliteTradeRepository(db_path)
    assert [trade.trade_id for trade in repository.load_settled_trades(ACCOUNT, at(1), at(2))] == ["b", "c"]
    assert [trade.trade_id for trade in repository.load_settled_trades(ACCOUNT, None, at(0))] == ["a"]
    assert repository.load_settled_trades("someone-else") == []
    assert SqliteTradeRepository(db_path, statuses=("FAILED",)).load_settled_trades(ACCOUNT) == []


def test_upsert_is_idempotent_and_pages_newest_first(tmp_path):
    db_path, trades = _seed_db(tmp_path)
    conn = connect(db_path)
    upsert_trades(conn, trades)
    conn.close()

    reader = sqlite_reader.connect(db_path)
    page, total = sqlite_reader.load_trade_page(reader, ACCOUNT, limit=2, offset=0)
    reader.close()
    assert total == 3
    assert [trade.trade_id for trade in page] == ["c", "b"]


def test_missing_database_yields_nothing(tmp_path):
    repository = SqliteTradeRepository(tmp_path / "missing.sqlite")
    assert repository.load_settled_trades(ACCOUNT) == []
    assert repository.load_trade_page(ACCOUNT, limit=10) == ([], 0)


def test_in_memory_repository_filters():
    repository = InMemoryTradeRepository([sell(1, 1, at(2)), buy(1, 1, at(0))])
    loaded = repository.load_settled_trades(ACCOUNT, end=datetime(2024, 6, 2, tzinfo=timezone.utc))
    assert [trade.timestamp for trade in loaded] == [at(0)]
    page, total = repository.load_trade_page(ACCOUNT, limit=1)
    assert total == 2
    assert page[0].timestamp == at(2)
