from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

from swap_ledger.models import TradeRecord


def connect(db_path: Path) -> sqlite3.Connection:
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path))
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def init_db(conn: sqlite3.Connection) -> None:
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS trades (
            trade_id TEXT PRIMARY KEY,
            account_id TEXT,
            status TEXT NOT NULL,
            input_mint TEXT NOT NULL,
            input_symbol TEXT,
            output_mint TEXT NOT NULL,
            output_symbol TEXT,
            amount_in TEXT NOT NULL,
            input_decimals INTEGER NOT NULL,
            amount_out TEXT NOT NULL,
            output_decimals INTEGER NOT NULL,
            timestamp TEXT NOT NULL,
            raw_json TEXT NOT NULL
        )
        """
    )
    conn.execute(
        "CREATE INDEX IF NOT EXISTS idx_trades_account_time ON trades (account_id, status, timestamp)"
    )
    conn.commit()


def upsert_trades(conn: sqlite3.Connection, trades: Iterable[TradeRecord]) -> int:
    rows = []
    for trade in trades:
        rows.append(
            {
                "trade_id": trade.trade_id,
                "account_id": trade.account_id,
                "status": trade.status,
                "input_mint": trade.input_mint,
                "input_symbol": trade.input_symbol,
                "output_mint": trade.output_mint,
                "output_symbol": trade.output_symbol,
                # Raw token units can overflow SQLite's 64-bit integers.
                "amount_in": str(trade.amount_in.raw),
                "input_decimals": trade.amount_in.decimals,
                "amount_out": str(trade.amount_out.raw),
                "output_decimals": trade.amount_out.decimals,
                "timestamp": format_timestamp(trade.timestamp),
                "raw_json": _json_dump(trade.raw),
            }
        )
    conn.executemany(
        """
        INSERT INTO trades (
            trade_id, account_id, status, input_mint, input_symbol, output_mint, output_symbol,
            amount_in, input_decimals, amount_out, output_decimals, timestamp, raw_json
        )
        VALUES (
            :trade_id, :account_id, :status, :input_mint, :input_symbol, :output_mint, :output_symbol,
            :amount_in, :input_decimals, :amount_out, :output_decimals, :timestamp, :raw_json
        )
        ON CONFLICT(trade_id) DO UPDATE SET
            account_id=excluded.account_id,
            status=excluded.status,
            input_mint=excluded.input_mint,
            input_symbol=excluded.input_symbol,
            output_mint=excluded.output_mint,
            output_symbol=excluded.output_symbol,
            amount_in=excluded.amount_in,
            input_decimals=excluded.input_decimals,
            amount_out=excluded.amount_out,
            output_decimals=excluded.output_decimals,
            timestamp=excluded.timestamp,
            raw_json=excluded.raw_json
        """,
        rows,
    )
    conn.commit()
    return len(rows)


def format_timestamp(value: datetime) -> str:
    # Fixed-width UTC text so lexical order matches time order.
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f+00:00")


def _json_dump(value: object) -> str:
    return json.dumps(value, sort_keys=True, default=str)
