from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable

from swap_ledger.models import PositionSeed, TradeRecord
from swap_ledger.reconstruct.positions import PositionAccountant


@dataclass(frozen=True)
class Baseline:
    baseline_pnl: float = 0.0
    seed: dict[str, PositionSeed] = field(default_factory=dict)


def split_window(
    trades: Iterable[TradeRecord],
    window_start: datetime | None,
    window_end: datetime | None = None,
) -> tuple[list[TradeRecord], list[TradeRecord]]:
    """Partition into (before, within); trades after window_end are dropped."""
    before: list[TradeRecord] = []
    within: list[TradeRecord] = []
    for trade in trades:
        if window_start is not None and trade.timestamp < window_start:
            before.append(trade)
        elif window_end is None or trade.timestamp <= window_end:
            within.append(trade)
    return before, within


def compute_baseline(
    accountant: PositionAccountant,
    trades: Iterable[TradeRecord],
    window_start: datetime | None,
) -> Baseline:
    if window_start is None:
        return Baseline()
    before, _ = split_window(trades, window_start)
    if not before:
        return Baseline()
    positions = accountant.replay(before)
    baseline_pnl = sum(position.realized_pnl for position in positions.values())
    seed = {mint: PositionSeed.from_position(position) for mint, position in positions.items()}
    return Baseline(baseline_pnl=baseline_pnl, seed=seed)
