from __future__ import annotations

import calendar
from datetime import date
from typing import Mapping

from swap_ledger.models import DailyLedgerEntry


def fill_month(
    entries: Mapping[str, DailyLedgerEntry], year: int, month: int
) -> dict[str, DailyLedgerEntry]:
    if month < 1 or month > 12:
        raise ValueError(f"Invalid month: {month}")
    days_in_month = calendar.monthrange(year, month)[1]
    filled: dict[str, DailyLedgerEntry] = {}
    for day in range(1, days_in_month + 1):
        key = date(year, month, day).isoformat()
        filled[key] = entries.get(key) or DailyLedgerEntry(date=key)
    return filled
