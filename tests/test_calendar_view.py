from __future__ import annotations

import pytest

from swap_ledger.metrics.calendar_view import fill_month
from swap_ledger.models import DailyLedgerEntry


def test_fills_every_day_of_month():
    entries = {
        "2024-06-03": DailyLedgerEntry(date="2024-06-03", pnl=1.5, trades=2, volume=4),
        "2024-06-20": DailyLedgerEntry(date="2024-06-20", pnl=-0.5, trades=1, volume=1),
    }
    filled = fill_month(entries, 2024, 6)

    assert len(filled) == 30
    assert list(filled)[0] == "2024-06-01"
    assert list(filled)[-1] == "2024-06-30"
    zeroed = [entry for entry in filled.values() if entry.trades == 0]
    assert len(zeroed) == 28
    assert all(entry.pnl == 0 and entry.volume == 0 for entry in zeroed)
    assert filled["2024-06-03"].pnl == 1.5


def test_ignores_entries_outside_month():
    entries = {"2024-07-01": DailyLedgerEntry(date="2024-07-01", pnl=9, trades=1)}
    filled = fill_month(entries, 2024, 6)
    assert "2024-07-01" not in filled
    assert sum(entry.pnl for entry in filled.values()) == 0


@pytest.mark.parametrize(("year", "expected"), [(2024, 29), (2023, 28), (1900, 28), (2000, 29)])
def test_february_length(year, expected):
    assert len(fill_month({}, year, 2)) == expected


def test_rejects_invalid_month():
    with pytest.raises(ValueError):
        fill_month({}, 2024, 13)
