from __future__ import annotations

from swap_ledger.models import Position

EPSILON = 1e-12

LIFETIME_AVERAGE = "lifetime"
REMAINING_INVENTORY_AVERAGE = "remaining"


class CostingStrategy:
    """Maintains the cost pool that avg_buy_price is derived from."""

    name = ""

    def on_buy(self, position: Position, quantity: float, cost: float) -> None:
        raise NotImplementedError

    def on_sell(self, position: Position, quantity: float) -> None:
        raise NotImplementedError


class LifetimeAverage(CostingStrategy):
    """Average over every buy ever seen; sells never shrink the pool.

    Once an asset is sold out and bought again the old purchases keep
    weighing on the cost basis.
    """

    name = LIFETIME_AVERAGE

    def on_buy(self, position: Position, quantity: float, cost: float) -> None:
        position.pool_quantity = position.total_bought
        position.pool_cost = position.total_buy_cost
        position.avg_buy_price = _safe_div(position.pool_cost, position.pool_quantity)

    def on_sell(self, position: Position, quantity: float) -> None:
        return None


class RemainingInventoryAverage(CostingStrategy):
    """Weighted average cost of the units still held.

    A sell removes its share of cost from the pool at the current average,
    so the average itself is unchanged until the pool empties.
    """

    name = REMAINING_INVENTORY_AVERAGE

    def on_buy(self, position: Position, quantity: float, cost: float) -> None:
        position.pool_quantity += quantity
        position.pool_cost += cost
        position.avg_buy_price = _safe_div(position.pool_cost, position.pool_quantity)

    def on_sell(self, position: Position, quantity: float) -> None:
        removed = min(quantity, max(position.pool_quantity, 0.0))
        position.pool_cost -= position.avg_buy_price * removed
        position.pool_quantity -= removed
        if position.pool_quantity <= EPSILON:
            # Oversold or flat: nothing left to carry a basis for.
            position.pool_quantity = 0.0
            position.pool_cost = 0.0
            position.avg_buy_price = 0.0


_STRATEGIES: dict[str, type[CostingStrategy]] = {
    LIFETIME_AVERAGE: LifetimeAverage,
    REMAINING_INVENTORY_AVERAGE: RemainingInventoryAverage,
}


def resolve_strategy(value: str | CostingStrategy | None) -> CostingStrategy:
    if isinstance(value, CostingStrategy):
        return value
    if value is None:
        return LifetimeAverage()
    key = str(value).strip().lower().replace("-", "_")
    aliases = {
        "lifetime_average": LIFETIME_AVERAGE,
        "remaining_inventory": REMAINING_INVENTORY_AVERAGE,
        "remaining_inventory_average": REMAINING_INVENTORY_AVERAGE,
        "average_cost": REMAINING_INVENTORY_AVERAGE,
    }
    key = aliases.get(key, key)
    strategy_cls = _STRATEGIES.get(key)
    if strategy_cls is None:
        raise ValueError(f"Unknown costing strategy: {value}")
    return strategy_cls()


def _safe_div(numerator: float, denominator: float) -> float:
    if denominator == 0:
        return 0.0
    return numerator / denominator
