from collections import OrderedDict
from decimal import Decimal
from typing import NamedTuple

# Report column labels, in the order external reporters expect them.
STATUS_LABELS = OrderedDict(
    [
        ("price", "Price"),
        ("lending_total_value", "Lending Total Locked"),
        ("lending_collateral", "Lending Collateral Value"),
        ("lending_debt", "Lending Borrowed Amount"),
        ("lending_debt_value", "Lending Debt Value"),
        ("lending_utilization", "Lending Utilization"),
        ("amm_value", "AMM Locked Value"),
        ("amm_reserve_x", "AMM Reserve X"),
        ("amm_reserve_y", "AMM Reserve Y"),
        ("total_strategy_value", "Total Strategy Value"),
        ("unused_ton", "Unused TON"),
        ("unused_usdt", "Unused USDT"),
        ("ideal_lending_collateral", "Ideal Lending Collateral Value"),
        ("ideal_borrow_amount", "Ideal Borrowed Amount"),
        ("ideal_amm_reserve_y", "Ideal AMM Reserve Y"),
        ("deviation_amm_reserve_y", "Deviation AMM Reserve Y"),
        ("deviation_lending_collateral", "Deviation Lending Collateral"),
        ("deviation_borrow_amount", "Deviation Borrowed Amount"),
        ("last_rebalance_price", "Last rebalance price"),
        ("total_rebalances", "Total rebalances"),
    ]
)


class StatusSnapshot(NamedTuple):
    """Point-in-time view of a strategy, consumed by reporters."""

    price: Decimal
    lending_total_value: Decimal
    lending_collateral: Decimal
    lending_debt: Decimal
    lending_debt_value: Decimal
    lending_utilization: Decimal
    amm_value: Decimal
    amm_reserve_x: Decimal
    amm_reserve_y: Decimal
    total_strategy_value: Decimal
    unused_ton: Decimal
    unused_usdt: Decimal
    ideal_lending_collateral: Decimal
    ideal_borrow_amount: Decimal
    ideal_amm_reserve_y: Decimal
    deviation_amm_reserve_y: Decimal
    deviation_lending_collateral: Decimal
    deviation_borrow_amount: Decimal
    last_rebalance_price: Decimal
    total_rebalances: int

    def as_dict(self) -> "OrderedDict[str, object]":
        """Return the snapshot keyed by report column label."""
        return OrderedDict(
            (label, getattr(self, name)) for name, label in STATUS_LABELS.items()
        )
