from __future__ import annotations

import csv
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Mapping

from swap_ledger.config.app_config import LedgerSettings, default_ledger_settings
from swap_ledger.models import Amount, TradeRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IngestResult:
    trades: list[TradeRecord]
    skipped: int = 0
    unsettled: int = 0


def load_swaps(
    path: str | Path,
    *,
    account_id: str | None = None,
    settings: LedgerSettings | None = None,
) -> IngestResult:
    source_path = Path(path)
    suffix = source_path.suffix.lower()
    if suffix == ".json":
        with source_path.open("r", encoding="utf-8") as handle:
            payload = json.load(handle)
        return load_swaps_payload(payload, account_id=account_id, settings=settings)
    if suffix in {".csv", ".tsv"}:
        with source_path.open("r", encoding="utf-8", newline="") as handle:
            reader = csv.DictReader(handle, delimiter="\t" if suffix == ".tsv" else ",")
            return _normalize_records(reader, account_id=account_id, settings=settings)
    raise ValueError(f"Unsupported file type: {source_path.suffix}")


def load_swaps_payload(
    payload: Any,
    *,
    account_id: str | None = None,
    settings: LedgerSettings | None = None,
) -> IngestResult:
    return _normalize_records(_extract_records(payload), account_id=account_id, settings=settings)


def _extract_records(payload: Any) -> Iterable[Mapping[str, Any]]:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for key in ("trades", "data", "result", "swaps"):
            if key in payload and isinstance(payload[key], list):
                return payload[key]
        data = payload.get("data")
        if isinstance(data, dict):
            for key in ("trades", "list", "swaps"):
                if key in data and isinstance(data[key], list):
                    return data[key]
    raise ValueError("Unsupported JSON format for swaps payload")


def _normalize_records(
    records: Iterable[Mapping[str, Any]],
    *,
    account_id: str | None,
    settings: LedgerSettings | None,
) -> IngestResult:
    ledger = settings or default_ledger_settings()
    trades: list[TradeRecord] = []
    skipped = 0
    unsettled = 0
    for index, raw in enumerate(records):
        status = str(_pick(raw, "status", "tradeStatus") or "CONFIRMED").strip().upper()
        if status not in ledger.settled_statuses:
            unsettled += 1
            continue
        try:
            trades.append(_normalize_trade(raw, status=status, account_id=account_id, settings=ledger))
        except ValueError as exc:
            logger.warning("Skipping swap row %d: %s", index, exc)
            skipped += 1
    trades.sort(key=lambda trade: (trade.timestamp, trade.trade_id))
    return IngestResult(trades=trades, skipped=skipped, unsettled=unsettled)


def _normalize_trade(
    raw: Mapping[str, Any],
    *,
    status: str,
    account_id: str | None,
    settings: LedgerSettings,
) -> TradeRecord:
    trade_id = _pick(raw, "id", "trade_id", "tradeId", "txSignature", "signature")
    input_mint = _pick(raw, "inputMint", "input_mint")
    output_mint = _pick(raw, "outputMint", "output_mint")
    if trade_id is None or not input_mint or not output_mint:
        raise ValueError("Missing required swap fields")

    input_mint = str(input_mint)
    output_mint = str(output_mint)
    amount_in = Amount(
        raw=_to_int(_pick(raw, "amountIn", "amount_in")),
        decimals=_decimals(raw, input_mint, settings, "inputDecimals", "input_decimals"),
    )
    amount_out = Amount(
        raw=_to_int(_pick(raw, "amountOut", "amount_out")),
        decimals=_decimals(raw, output_mint, settings, "outputDecimals", "output_decimals"),
    )

    # Settlement time wins over submission time.
    timestamp = _parse_timestamp(
        _pick(raw, "confirmedAt", "confirmed_at") or _pick(raw, "createdAt", "created_at", "timestamp")
    )
    resolved_account = account_id or _pick(raw, "userId", "user_id", "accountId", "account_id")

    return TradeRecord(
        trade_id=str(trade_id),
        timestamp=timestamp,
        input_mint=input_mint,
        output_mint=output_mint,
        amount_in=amount_in,
        amount_out=amount_out,
        input_symbol=_optional_str(_pick(raw, "inputSymbol", "input_symbol")),
        output_symbol=_optional_str(_pick(raw, "outputSymbol", "output_symbol")),
        status=status,
        account_id=str(resolved_account) if resolved_account is not None else None,
        raw=dict(raw),
    )


def _decimals(
    raw: Mapping[str, Any], mint: str, settings: LedgerSettings, *keys: str
) -> int:
    value = _pick(raw, *keys)
    if value is not None:
        return _to_int(value)
    if mint == settings.base_mint:
        return settings.base_decimals
    return settings.default_token_decimals


def _pick(raw: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in raw and raw[key] not in (None, ""):
            return raw[key]
    return None


def _optional_str(value: Any) -> str | None:
    return str(value) if value is not None else None


def _to_int(value: Any) -> int:
    if value is None:
        raise ValueError("Missing numeric field")
    if isinstance(value, bool):
        raise ValueError("Invalid numeric field")
    if isinstance(value, int):
        return value
    text = str(value).strip()
    try:
        return int(text)
    except ValueError:
        pass
    try:
        numeric = float(text)
    except ValueError as exc:
        raise ValueError(f"Invalid numeric field: {value}") from exc
    if not numeric.is_integer():
        raise ValueError(f"Raw amount must be an integer: {value}")
    return int(numeric)


def _parse_timestamp(value: Any) -> datetime:
    if value is None:
        raise ValueError("Missing timestamp")

    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)

    if isinstance(value, (int, float)):
        return _timestamp_from_number(float(value))

    text = str(value).strip()
    try:
        return _timestamp_from_number(float(text))
    except ValueError:
        pass

    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as exc:
        raise ValueError("Unsupported timestamp format") from exc

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _timestamp_from_number(value: float) -> datetime:
    seconds = value / 1000.0 if value > 1e12 else value
    return datetime.fromtimestamp(seconds, tz=timezone.utc)
