from __future__ import annotations

import pytest

from swap_ledger.reconstruct.costing import (
    LifetimeAverage,
    RemainingInventoryAverage,
    resolve_strategy,
)
from swap_ledger.reconstruct.positions import PositionAccountant

from swap_builders import TOKEN_MINT, at, buy, sell


def _sellout_and_rebuy():
    return [
        buy(100, 1, at(0)),
        sell(100, 2, at(1)),
        buy(100, 3, at(2)),
        sell(100, 4, at(3)),
    ]


def test_lifetime_average_keeps_history_after_sellout():
    position = PositionAccountant(costing="lifetime").replay(_sellout_and_rebuy())[TOKEN_MINT]
    assert position.avg_buy_price == pytest.approx(0.02)
    assert position.realized_pnl == pytest.approx(1 + 2)
    assert position.pool_quantity == pytest.approx(200)


def test_remaining_inventory_average_resets_after_sellout():
    accountant = PositionAccountant(costing=RemainingInventoryAverage())
    position = accountant.replay(_sellout_and_rebuy()[:3])[TOKEN_MINT]
    assert position.avg_buy_price == pytest.approx(0.03)

    position = accountant.replay(_sellout_and_rebuy())[TOKEN_MINT]
    assert position.realized_pnl == pytest.approx(1 + 1)
    assert position.pool_quantity == 0
    assert position.avg_buy_price == 0


def test_strategies_agree_before_any_sellout():
    trades = [buy(100, 1, at(0)), buy(100, 3, at(1)), sell(150, 6, at(2))]
    lifetime = PositionAccountant(costing="lifetime").replay(trades)[TOKEN_MINT]
    remaining = PositionAccountant(costing="remaining").replay(trades)[TOKEN_MINT]
    assert lifetime.realized_pnl == pytest.approx(remaining.realized_pnl)
    assert remaining.pool_quantity == pytest.approx(50)
    assert remaining.pool_cost == pytest.approx(1)


def test_partial_sell_then_buy_differs_between_strategies():
    trades = [buy(100, 1, at(0)), sell(50, 1, at(1)), buy(50, 2, at(2)), sell(100, 4, at(3))]
    lifetime = PositionAccountant(costing="lifetime").replay(trades)[TOKEN_MINT]
    remaining = PositionAccountant(costing="remaining").replay(trades)[TOKEN_MINT]
    # lifetime avg 3/150; remaining pool is 50 @ 0.01 + 50 @ 0.04.
    assert lifetime.realized_pnl == pytest.approx(0.5 + (4 - 2))
    assert remaining.realized_pnl == pytest.approx(0.5 + (4 - 2.5))


def test_resolve_strategy_names_and_aliases():
    assert isinstance(resolve_strategy(None), LifetimeAverage)
    assert isinstance(resolve_strategy("Lifetime-Average"), LifetimeAverage)
    assert isinstance(resolve_strategy("remaining_inventory_average"), RemainingInventoryAverage)
    strategy = RemainingInventoryAverage()
    assert resolve_strategy(strategy) is strategy
    with pytest.raises(ValueError):
        resolve_strategy("fifo")
