from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from swap_ledger.models import DailyLedgerEntry


@dataclass(frozen=True)
class StreakStats:
    current_streak: int
    best_streak: int
    win_rate: float


def analyze_streaks(entries: Iterable[DailyLedgerEntry]) -> StreakStats:
    ordered = sorted(entries, key=lambda entry: entry.date)

    best = 0
    run = 0
    for entry in ordered:
        if entry.pnl > 0:
            run += 1
            best = max(best, run)
        else:
            run = 0

    current = 0
    for entry in reversed(ordered):
        if entry.pnl <= 0:
            break
        current += 1

    winning_days = sum(1 for entry in ordered if entry.pnl > 0)
    win_rate = winning_days / max(1, len(ordered))
    return StreakStats(current_streak=current, best_streak=best, win_rate=win_rate)
