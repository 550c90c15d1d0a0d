from __future__ import annotations

from datetime import datetime
from typing import Iterable, Protocol

from swap_ledger.models import TradeRecord
from swap_ledger.reconstruct.positions import sort_key


class TradeRepository(Protocol):
    def load_settled_trades(
        self,
        account_id: str | None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[TradeRecord]:
        ...

    def load_trade_page(
        self, account_id: str | None, *, limit: int, offset: int = 0
    ) -> tuple[list[TradeRecord], int]:
        ...


class InMemoryTradeRepository:
    """Holds already-settled trades, e.g. from an export file."""

    def __init__(self, trades: Iterable[TradeRecord] = ()) -> None:
        self._trades = sorted(trades, key=sort_key)

    def load_settled_trades(
        self,
        account_id: str | None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[TradeRecord]:
        return [
            trade
            for trade in self._trades
            if trade.account_id == account_id
            and (start is None or trade.timestamp >= start)
            and (end is None or trade.timestamp <= end)
        ]

    def load_trade_page(
        self, account_id: str | None, *, limit: int, offset: int = 0
    ) -> tuple[list[TradeRecord], int]:
        scoped = list(reversed(self.load_settled_trades(account_id)))
        return scoped[offset : offset + limit], len(scoped)
