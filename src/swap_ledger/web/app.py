from __future__ import annotations

import logging
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Request

from swap_ledger.config.app_config import AppConfig, load_app_config
from swap_ledger.errors import LedgerError
from swap_ledger.models import TradeRecord
from swap_ledger.periods import DEFAULT_PERIOD, PERIODS, ReportQuery, resolve_window
from swap_ledger.report import build_report, report_payload
from swap_ledger.storage.repository import TradeRepository
from swap_ledger.storage.sqlite_reader import SqliteTradeRepository

logger = logging.getLogger(__name__)

_HISTORY_DEFAULT_LIMIT = 50
_HISTORY_MAX_LIMIT = 100
_EXPLORER_TX_URL = "https://solscan.io/tx/{}"

app = FastAPI(title="Swap Ledger")


@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    return load_app_config()


def get_repository(config: AppConfig = Depends(get_config)) -> TradeRepository:
    return SqliteTradeRepository(config.app.db_path, statuses=config.ledger.settled_statuses)


def get_now() -> datetime:
    return datetime.now(timezone.utc)


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/api/trading/pnl")
def pnl_api(
    request: Request,
    config: AppConfig = Depends(get_config),
    repository: TradeRepository = Depends(get_repository),
    now: datetime = Depends(get_now),
) -> dict[str, Any]:
    account_id = _require_account(request)
    period = (request.query_params.get("period") or DEFAULT_PERIOD).strip().lower()
    if period not in PERIODS:
        raise HTTPException(status_code=400, detail=f"Unsupported period: {period}")
    query = ReportQuery(
        account_id=account_id,
        period=period,
        year=_int_param(request, "year"),
        month=_int_param(request, "month"),
    )
    try:
        window = resolve_window(query, now)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    # Baseline and portfolio both need the full history, not just the window.
    trades = repository.load_settled_trades(account_id)
    try:
        report = build_report(trades, query, now=now, settings=config.ledger)
    except LedgerError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    logger.debug(
        "pnl report account=%s period=%s trades=%d positions=%d",
        account_id,
        period,
        len(trades),
        len(report.positions),
    )
    return report_payload(report)


@app.get("/api/trading/history")
def history_api(
    request: Request,
    repository: TradeRepository = Depends(get_repository),
) -> dict[str, Any]:
    account_id = _require_account(request)
    limit = _int_param(request, "limit") or _HISTORY_DEFAULT_LIMIT
    limit = max(1, min(limit, _HISTORY_MAX_LIMIT))
    offset = max(0, _int_param(request, "offset") or 0)
    trades, total = repository.load_trade_page(account_id, limit=limit, offset=offset)
    return {
        "trades": [_trade_payload(trade) for trade in trades],
        "total": total,
        "limit": limit,
        "offset": offset,
        "hasMore": offset + len(trades) < total,
    }


def _require_account(request: Request) -> str:
    account_id = (request.query_params.get("account") or "").strip()
    if not account_id:
        raise HTTPException(status_code=400, detail="account is required")
    return account_id


def _int_param(request: Request, name: str) -> int | None:
    raw = request.query_params.get(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        return int(raw)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=f"Invalid {name}: {raw}") from exc


def _trade_payload(trade: TradeRecord) -> dict[str, Any]:
    signature = trade.raw.get("txSignature") if isinstance(trade.raw, dict) else None
    return {
        "id": trade.trade_id,
        "inputMint": trade.input_mint,
        "inputSymbol": trade.input_symbol,
        "outputMint": trade.output_mint,
        "outputSymbol": trade.output_symbol,
        "amountIn": str(trade.amount_in.raw),
        "amountOut": str(trade.amount_out.raw),
        "status": trade.status,
        "settledAt": trade.timestamp.isoformat(),
        "txSignature": signature,
        "explorerUrl": _EXPLORER_TX_URL.format(signature) if signature else None,
    }
