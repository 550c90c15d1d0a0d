from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping

BUY = "BUY"
SELL = "SELL"


@dataclass(frozen=True)
class Amount:
    raw: int
    decimals: int

    def to_ui_amount(self) -> float:
        if self.decimals <= 0:
            return float(self.raw)
        return self.raw / 10**self.decimals


@dataclass(frozen=True)
class TradeRecord:
    trade_id: str
    timestamp: datetime
    input_mint: str
    output_mint: str
    amount_in: Amount
    amount_out: Amount
    input_symbol: str | None = None
    output_symbol: str | None = None
    status: str = "CONFIRMED"
    account_id: str | None = None
    raw: Mapping[str, Any] = field(default_factory=dict, compare=False, repr=False)

    def __post_init__(self) -> None:
        # Naive timestamps are UTC so they order against tz-aware window bounds.
        if self.timestamp.tzinfo is None:
            object.__setattr__(self, "timestamp", self.timestamp.replace(tzinfo=timezone.utc))
        else:
            object.__setattr__(self, "timestamp", self.timestamp.astimezone(timezone.utc))


@dataclass(frozen=True)
class SwapLeg:
    """A TradeRecord resolved against the base asset."""

    trade: TradeRecord
    side: str
    mint: str
    symbol: str
    base_amount: float
    counter_amount: float

    @property
    def timestamp(self) -> datetime:
        return self.trade.timestamp

    @property
    def is_buy(self) -> bool:
        return self.side == BUY


@dataclass
class Position:
    mint: str
    symbol: str
    total_bought: float = 0.0
    total_sold: float = 0.0
    avg_buy_price: float = 0.0
    avg_sell_price: float = 0.0
    total_buy_cost: float = 0.0
    total_sell_revenue: float = 0.0
    current_balance: float = 0.0
    realized_pnl: float = 0.0
    unrealized_pnl: float = 0.0
    trades: int = 0
    last_trade_at: datetime | None = None
    pool_quantity: float = 0.0
    pool_cost: float = 0.0


@dataclass(frozen=True)
class PositionSeed:
    avg_buy_price: float
    total_bought: float
    total_buy_cost: float
    pool_quantity: float
    pool_cost: float
    current_balance: float = 0.0
    symbol: str | None = None

    @classmethod
    def from_position(cls, position: Position) -> PositionSeed:
        return cls(
            avg_buy_price=position.avg_buy_price,
            total_bought=position.total_bought,
            total_buy_cost=position.total_buy_cost,
            pool_quantity=position.pool_quantity,
            pool_cost=position.pool_cost,
            current_balance=position.current_balance,
            symbol=position.symbol,
        )

    def to_position(self, mint: str, symbol: str) -> Position:
        return Position(
            mint=mint,
            symbol=self.symbol or symbol,
            total_bought=self.total_bought,
            avg_buy_price=self.avg_buy_price,
            total_buy_cost=self.total_buy_cost,
            current_balance=self.current_balance,
            pool_quantity=self.pool_quantity,
            pool_cost=self.pool_cost,
        )


@dataclass
class DailyLedgerEntry:
    date: str
    pnl: float = 0.0
    trades: int = 0
    volume: float = 0.0
