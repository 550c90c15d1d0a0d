from __future__ import annotations

import pytest

from swap_ledger.metrics.streaks import analyze_streaks
from swap_ledger.models import DailyLedgerEntry


def _series(*pnls: float) -> list[DailyLedgerEntry]:
    return [
        DailyLedgerEntry(date=f"2024-03-{day:02d}", pnl=pnl, trades=1)
        for day, pnl in enumerate(pnls, start=1)
    ]


def test_best_and_current_streak():
    stats = analyze_streaks(_series(1, 2, -1, 3, 4, 5))
    assert stats.best_streak == 3
    assert stats.current_streak == 3
    assert stats.win_rate == pytest.approx(5 / 6)


def test_zero_pnl_day_breaks_streaks():
    stats = analyze_streaks(_series(1, 1, 0, 1, 0))
    assert stats.best_streak == 2
    assert stats.current_streak == 0
    assert stats.win_rate == pytest.approx(3 / 5)


def test_empty_series():
    stats = analyze_streaks([])
    assert (stats.current_streak, stats.best_streak, stats.win_rate) == (0, 0, 0.0)


def test_input_is_ordered_by_date():
    stats = analyze_streaks(list(reversed(_series(-1, 2, 3))))
    assert stats.current_streak == 2
    assert stats.best_streak == 2
