from dataclasses import dataclass, replace
from decimal import Decimal
from typing import NamedTuple

from farm_abm.positions.amm import AMMPosition
from farm_abm.positions.lending import LendingPosition
from farm_abm.utils.math_helpers import ZERO, with_decimal_context


class IdealSetup(NamedTuple):
    """Target allocation for the current price and total strategy value."""

    amm_reserve_y: Decimal
    lending_collateral: Decimal
    borrow_amount: Decimal


class Deviations(NamedTuple):
    """Signed difference (current minus ideal) for each target quantity."""

    amm_reserve_y: Decimal
    lending_collateral: Decimal
    borrow_amount: Decimal


@dataclass(frozen=True)
class StrategyState:
    """
    Everything a rebalance step reads or writes.

    Attributes:
        price (Decimal): Oracle price the state is valued at.
        amm (AMMPosition): Liquidity position.
        lending (LendingPosition): Collateralized borrow.
        unused_ton (Decimal): Volatile-asset balance held outside both positions.
        unused_usdt (Decimal): Stable-unit balance held outside both positions.
    """

    price: Decimal
    amm: AMMPosition
    lending: LendingPosition
    unused_ton: Decimal = ZERO
    unused_usdt: Decimal = ZERO

    def evolve(self, **changes) -> "StrategyState":
        return replace(self, **changes)

    def amm_reserves(self):
        return self.amm.reserves_at(self.price)

    @with_decimal_context
    def unused_funds_value(self) -> Decimal:
        return self.unused_ton * self.price + self.unused_usdt

    @with_decimal_context
    def total_value(self) -> Decimal:
        """Lending net value + AMM value + unused balances, in the stable unit."""
        return (
            self.lending.position_value(self.price)
            + self.amm.estimate_value_in_quote(self.price)
            + self.unused_funds_value()
        )


@with_decimal_context
def compute_ideal_setup(state: StrategyState, ideal_ratio: Decimal) -> IdealSetup:
    total_value = state.total_value()
    ideal_amm_reserve_y = total_value * ideal_ratio
    return IdealSetup(
        amm_reserve_y=ideal_amm_reserve_y,
        lending_collateral=total_value - ideal_amm_reserve_y,
        borrow_amount=ideal_amm_reserve_y / state.price,
    )


@with_decimal_context
def compute_deviations(state: StrategyState, ideal_ratio: Decimal) -> Deviations:
    ideal = compute_ideal_setup(state, ideal_ratio)
    _, reserve_y = state.amm_reserves()
    return Deviations(
        amm_reserve_y=reserve_y - ideal.amm_reserve_y,
        lending_collateral=state.lending.collateral - ideal.lending_collateral,
        borrow_amount=state.lending.debt - ideal.borrow_amount,
    )


@with_decimal_context
def amm_deviation_ratio(state: StrategyState, ideal_ratio: Decimal) -> Decimal:
    """
    Signed AMM reserve deviation relative to the current AMM reserve.

    An empty pool with a non-zero target gives an infinite ratio, which
    always trips the rebalance threshold.
    """
    deviation = compute_deviations(state, ideal_ratio).amm_reserve_y
    _, reserve_y = state.amm_reserves()
    if reserve_y == ZERO:
        if deviation == ZERO:
            return ZERO
        return Decimal("Infinity") if deviation > ZERO else Decimal("-Infinity")
    return deviation / reserve_y
