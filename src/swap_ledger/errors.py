from __future__ import annotations


class LedgerError(Exception):
    pass


class InsufficientInventory(LedgerError):
    def __init__(self, mint: str, balance: float, quantity: float, trade_id: str) -> None:
        super().__init__(
            f"Sell of {quantity:.9g} {mint} in trade {trade_id} exceeds tracked balance {balance:.9g}"
        )
        self.mint = mint
        self.balance = balance
        self.quantity = quantity
        self.trade_id = trade_id
