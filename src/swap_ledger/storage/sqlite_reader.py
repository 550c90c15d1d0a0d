from __future__ import annotations

import json
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable

from swap_ledger.models import Amount, TradeRecord
from swap_ledger.storage.sqlite_store import format_timestamp


def connect(db_path: Path) -> sqlite3.Connection:
    conn = sqlite3.connect(str(db_path))
    conn.row_factory = sqlite3.Row
    return conn


def load_settled_trades(
    conn: sqlite3.Connection,
    account_id: str | None,
    *,
    start: datetime | None = None,
    end: datetime | None = None,
    statuses: Iterable[str] = ("CONFIRMED",),
) -> list[TradeRecord]:
    clauses, params = _scope(account_id, statuses)
    if start is not None:
        clauses.append("timestamp >= ?")
        params.append(format_timestamp(start))
    if end is not None:
        clauses.append("timestamp <= ?")
        params.append(format_timestamp(end))
    query = f"SELECT * FROM trades WHERE {' AND '.join(clauses)} ORDER BY timestamp, trade_id"
    return [_row_to_trade(row) for row in conn.execute(query, params).fetchall()]


def load_trade_page(
    conn: sqlite3.Connection,
    account_id: str | None,
    *,
    limit: int,
    offset: int = 0,
    statuses: Iterable[str] = ("CONFIRMED",),
) -> tuple[list[TradeRecord], int]:
    clauses, params = _scope(account_id, statuses)
    where = " AND ".join(clauses)
    total = conn.execute(f"SELECT COUNT(*) FROM trades WHERE {where}", params).fetchone()[0]
    rows = conn.execute(
        f"SELECT * FROM trades WHERE {where} ORDER BY timestamp DESC, trade_id DESC LIMIT ? OFFSET ?",
        [*params, limit, offset],
    ).fetchall()
    return [_row_to_trade(row) for row in rows], int(total)


class SqliteTradeRepository:
    def __init__(self, db_path: Path, statuses: Iterable[str] = ("CONFIRMED",)) -> None:
        self.db_path = db_path
        self.statuses = tuple(statuses)

    def load_settled_trades(
        self,
        account_id: str | None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[TradeRecord]:
        if not self.db_path.exists():
            return []
        conn = connect(self.db_path)
        try:
            return load_settled_trades(conn, account_id, start=start, end=end, statuses=self.statuses)
        finally:
            conn.close()

    def load_trade_page(
        self, account_id: str | None, *, limit: int, offset: int = 0
    ) -> tuple[list[TradeRecord], int]:
        if not self.db_path.exists():
            return [], 0
        conn = connect(self.db_path)
        try:
            return load_trade_page(conn, account_id, limit=limit, offset=offset, statuses=self.statuses)
        finally:
            conn.close()


def _scope(account_id: str | None, statuses: Iterable[str]) -> tuple[list[str], list[Any]]:
    status_list = [str(status).upper() for status in statuses]
    placeholders = ", ".join("?" for _ in status_list) or "NULL"
    clauses = [f"status IN ({placeholders})"]
    params: list[Any] = list(status_list)
    if account_id is None:
        clauses.append("account_id IS NULL")
    else:
        clauses.append("account_id = ?")
        params.append(account_id)
    return clauses, params


def _row_to_trade(row: sqlite3.Row) -> TradeRecord:
    return TradeRecord(
        trade_id=row["trade_id"],
        timestamp=_parse_iso(row["timestamp"]),
        input_mint=row["input_mint"],
        output_mint=row["output_mint"],
        amount_in=Amount(raw=int(row["amount_in"]), decimals=row["input_decimals"]),
        amount_out=Amount(raw=int(row["amount_out"]), decimals=row["output_decimals"]),
        input_symbol=row["input_symbol"],
        output_symbol=row["output_symbol"],
        status=row["status"],
        account_id=row["account_id"],
        raw=_maybe_json(row["raw_json"]),
    )


def _maybe_json(value: Any) -> Any:
    if value is None:
        return {}
    if not isinstance(value, str):
        return value
    text = value.strip()
    if not text:
        return {}
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return value


def _parse_iso(value: str | None) -> datetime:
    if value is None:
        raise ValueError("Missing timestamp")
    return datetime.fromisoformat(value)
