from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Tuple

from farm_abm.utils.math_helpers import (
    MINUTES_PER_YEAR,
    Number,
    to_decimal,
    with_decimal_context,
)


@dataclass(frozen=True)
class AMMPosition:
    """
    Liquidity position in a constant-product (x * y = k) pool.

    Only the anchor reserves are stored. Reserves for any other price are
    derived from ``k``, so the position follows the market without swaps.

    Attributes:
        reserve_x_base (Decimal): Volatile-asset reserve when the anchor was last set.
        reserve_y_base (Decimal): Stable-unit reserve when the anchor was last set.
        supply_interest_rate (Decimal): Annualized yield paid on the position value.
    """

    reserve_x_base: Decimal
    reserve_y_base: Decimal
    supply_interest_rate: Decimal

    @classmethod
    def create(cls, reserve_x: Number, reserve_y: Number, supply_interest_rate: Number = 0):
        """Build a position from plain numbers."""
        return cls(to_decimal(reserve_x), to_decimal(reserve_y), to_decimal(supply_interest_rate))

    @property
    @with_decimal_context
    def k(self) -> Decimal:
        """Return the invariant constant-product (k = x * y)."""
        return self.reserve_x_base * self.reserve_y_base

    @with_decimal_context
    def reserves_at(self, price: Decimal) -> Tuple[Decimal, Decimal]:
        """
        Derive the reserves the pool holds at ``price``.

        Args:
            price (Decimal): Price of X in units of Y.

        Returns:
            Tuple[Decimal, Decimal]: Reserve of X and reserve of Y.
        """
        reserve_x = (self.k / price).sqrt()
        return reserve_x, price * reserve_x

    @with_decimal_context
    def estimate_value_in_quote(self, price: Decimal) -> Decimal:
        """Mark-to-market value of the position in the stable unit."""
        reserve_x, reserve_y = self.reserves_at(price)
        return reserve_x * price + reserve_y

    @with_decimal_context
    def generate_yield(self, price: Decimal, period_minutes: Decimal) -> Decimal:
        """
        Simple (non-compounding) yield earned over ``period_minutes``.

        The position itself is not changed; the caller decides where the
        yield is credited.
        """
        return (
            self.estimate_value_in_quote(price)
            * self.supply_interest_rate
            * period_minutes
            / MINUTES_PER_YEAR
        )

    def with_reserves(self, reserve_x: Decimal, reserve_y: Decimal) -> "AMMPosition":
        """Return a position re-anchored at the given reserves, which redefines ``k``."""
        return replace(self, reserve_x_base=reserve_x, reserve_y_base=reserve_y)
