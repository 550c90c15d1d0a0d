from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, Mapping

from swap_ledger.models import DailyLedgerEntry, PositionSeed, TradeRecord
from swap_ledger.reconstruct.positions import PositionAccountant


def date_key(timestamp: datetime) -> str:
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    return timestamp.astimezone(timezone.utc).date().isoformat()


def aggregate_daily(
    accountant: PositionAccountant,
    trades: Iterable[TradeRecord],
    seed: Mapping[str, PositionSeed] | None = None,
) -> dict[str, DailyLedgerEntry]:
    buckets: dict[str, DailyLedgerEntry] = {}
    for event in accountant.iter_events(trades, seed):
        key = date_key(event.leg.timestamp)
        entry = buckets.get(key)
        if entry is None:
            entry = DailyLedgerEntry(date=key)
            buckets[key] = entry
        entry.trades += 1
        entry.volume += event.leg.base_amount
        if not event.leg.is_buy:
            entry.pnl += event.trade_pnl
    return buckets


def sorted_entries(buckets: Mapping[str, DailyLedgerEntry]) -> list[DailyLedgerEntry]:
    return [buckets[key] for key in sorted(buckets)]
