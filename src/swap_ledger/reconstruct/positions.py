from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Iterator, Mapping

from swap_ledger.errors import InsufficientInventory
from swap_ledger.models import BUY, SELL, Position, PositionSeed, SwapLeg, TradeRecord
from swap_ledger.reconstruct.costing import CostingStrategy, resolve_strategy

logger = logging.getLogger(__name__)

DUST_THRESHOLD = 1e-6
SOL_MINT = "So11111111111111111111111111111111111111112"


@dataclass(frozen=True)
class ReplayEvent:
    leg: SwapLeg
    position: Position
    trade_pnl: float


def sort_key(trade: TradeRecord) -> tuple:
    # Equal timestamps keep a deterministic order; avg_buy_price depends on it.
    return (trade.timestamp, trade.trade_id)


def resolve_leg(trade: TradeRecord, base_mint: str) -> SwapLeg | None:
    base_in = trade.input_mint == base_mint
    base_out = trade.output_mint == base_mint
    if base_in == base_out:
        logger.warning(
            "Skipping trade %s: expected exactly one %s leg (input=%s output=%s)",
            trade.trade_id,
            base_mint,
            trade.input_mint,
            trade.output_mint,
        )
        return None

    if base_in:
        side = BUY
        mint = trade.output_mint
        symbol = trade.output_symbol or mint
        base_amount = trade.amount_in.to_ui_amount()
        counter_amount = trade.amount_out.to_ui_amount()
    else:
        side = SELL
        mint = trade.input_mint
        symbol = trade.input_symbol or mint
        base_amount = trade.amount_out.to_ui_amount()
        counter_amount = trade.amount_in.to_ui_amount()

    if base_amount < 0 or counter_amount <= 0:
        logger.warning(
            "Skipping trade %s: non-positive amounts (base=%s counter=%s)",
            trade.trade_id,
            base_amount,
            counter_amount,
        )
        return None

    return SwapLeg(
        trade=trade,
        side=side,
        mint=mint,
        symbol=symbol,
        base_amount=base_amount,
        counter_amount=counter_amount,
    )


class PositionAccountant:
    """Replays swaps into per-token cost-basis positions."""

    def __init__(
        self,
        base_mint: str = SOL_MINT,
        *,
        costing: str | CostingStrategy | None = None,
        strict_inventory: bool = False,
        dust_threshold: float = DUST_THRESHOLD,
    ) -> None:
        self.base_mint = base_mint
        self.strategy = resolve_strategy(costing)
        self.strict_inventory = strict_inventory
        self.dust_threshold = dust_threshold

    def replay(
        self,
        trades: Iterable[TradeRecord],
        seed: Mapping[str, PositionSeed] | None = None,
    ) -> dict[str, Position]:
        positions: dict[str, Position] = {}
        for _ in self.iter_events(trades, seed, positions=positions):
            pass
        return positions

    def iter_events(
        self,
        trades: Iterable[TradeRecord],
        seed: Mapping[str, PositionSeed] | None = None,
        *,
        positions: dict[str, Position] | None = None,
    ) -> Iterator[ReplayEvent]:
        state = positions if positions is not None else {}
        seeds = seed or {}
        for trade in sorted(trades, key=sort_key):
            leg = resolve_leg(trade, self.base_mint)
            if leg is None:
                continue
            position = state.get(leg.mint)
            if position is None:
                position = _new_position(leg, seeds.get(leg.mint))
                state[leg.mint] = position
            trade_pnl = self._apply(position, leg)
            yield ReplayEvent(leg=leg, position=position, trade_pnl=trade_pnl)

    def _apply(self, position: Position, leg: SwapLeg) -> float:
        trade_pnl = 0.0
        if leg.is_buy:
            position.total_bought += leg.counter_amount
            position.total_buy_cost += leg.base_amount
            position.current_balance += leg.counter_amount
            self.strategy.on_buy(position, leg.counter_amount, leg.base_amount)
        else:
            if self.strict_inventory:
                shortfall = leg.counter_amount - position.current_balance
                if shortfall > self.dust_threshold:
                    raise InsufficientInventory(
                        position.mint,
                        position.current_balance,
                        leg.counter_amount,
                        leg.trade.trade_id,
                    )
            cost_basis = position.avg_buy_price * leg.counter_amount
            trade_pnl = leg.base_amount - cost_basis
            position.realized_pnl += trade_pnl
            position.total_sold += leg.counter_amount
            position.total_sell_revenue += leg.base_amount
            position.current_balance -= leg.counter_amount
            if position.total_sold > 0:
                position.avg_sell_price = position.total_sell_revenue / position.total_sold
            self.strategy.on_sell(position, leg.counter_amount)

        position.trades += 1
        position.last_trade_at = leg.timestamp
        logger.debug(
            "%s %s %.9g for %.9g base, pnl=%.9g avg_buy=%.9g",
            leg.side,
            leg.mint,
            leg.counter_amount,
            leg.base_amount,
            trade_pnl,
            position.avg_buy_price,
        )
        return trade_pnl


def is_open(position: Position, dust_threshold: float = DUST_THRESHOLD) -> bool:
    return position.current_balance > dust_threshold


def _new_position(leg: SwapLeg, seed: PositionSeed | None) -> Position:
    if seed is not None:
        return seed.to_position(leg.mint, leg.symbol)
    return Position(mint=leg.mint, symbol=leg.symbol)
