from dataclasses import dataclass, replace
from decimal import Decimal
import logging

from farm_abm.errors import InsolvencyError
from farm_abm.utils.math_helpers import (
    ASSET_SCALE,
    ONE,
    VALUE_SCALE,
    ZERO,
    Number,
    floor_to,
    period_fraction,
    to_decimal,
    with_decimal_context,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LendingPosition:
    """
    Collateralized borrow: stable-unit collateral backing a volatile-asset debt.

    Attributes:
        collateral (Decimal): Collateral supplied, in the stable unit (USDT).
        debt (Decimal): Amount borrowed, in the volatile asset (TON).
        liquidation_threshold (Decimal): Required collateral-to-debt-value ratio (> 1).
        borrow_interest_rate (Decimal): Annualized rate charged on the debt.
        supply_interest_rate (Decimal): Annualized rate earned on the collateral.
    """

    collateral: Decimal
    debt: Decimal
    liquidation_threshold: Decimal
    borrow_interest_rate: Decimal
    supply_interest_rate: Decimal

    @classmethod
    def create(
        cls,
        collateral: Number,
        debt: Number,
        liquidation_threshold: Number,
        borrow_interest_rate: Number = 0,
        supply_interest_rate: Number = 0,
    ):
        """Build a position from plain numbers."""
        return cls(
            to_decimal(collateral),
            to_decimal(debt),
            to_decimal(liquidation_threshold),
            to_decimal(borrow_interest_rate),
            to_decimal(supply_interest_rate),
        )

    @with_decimal_context
    def debt_value(self, price: Decimal) -> Decimal:
        """Debt marked to market in the stable unit."""
        return self.debt * price

    @with_decimal_context
    def position_value(self, price: Decimal) -> Decimal:
        """Net value of the position: collateral minus debt value."""
        return self.collateral - self.debt_value(price)

    @with_decimal_context
    def liquidation_boundary(self) -> Decimal:
        """Largest debt value the collateral can back before liquidation."""
        return self.collateral / self.liquidation_threshold

    def is_liquidatable(self, price: Decimal) -> bool:
        return self.debt_value(price) > self.liquidation_boundary()

    @with_decimal_context
    def utilization(self, price: Decimal) -> Decimal:
        """Returns debt usage of the borrowing capacity; 1 means at the liquidation boundary."""
        if self.collateral == ZERO:
            return ZERO if self.debt == ZERO else Decimal("Infinity")
        return self.debt_value(price) * self.liquidation_threshold / self.collateral

    @with_decimal_context
    def accrue_interest(self, price: Decimal, period_minutes: Decimal) -> "LendingPosition":
        """
        Grow debt and collateral by one period of interest.

        Debt is floored to 9 decimal places and collateral to 6, so rounding
        never adds value to either side.

        Args:
            price (Decimal): Current oracle price, used for the solvency check.
            period_minutes (Decimal): Length of the accrual period.

        Returns:
            LendingPosition: The accrued position.

        Raises:
            InsolvencyError: If the accrued position is liquidatable.
        """
        debt = floor_to(
            self.debt * (ONE + period_fraction(self.borrow_interest_rate, period_minutes)),
            ASSET_SCALE,
        )
        collateral = floor_to(
            self.collateral * (ONE + period_fraction(self.supply_interest_rate, period_minutes)),
            VALUE_SCALE,
        )
        accrued = replace(self, debt=debt, collateral=collateral)

        if accrued.is_liquidatable(price):
            debt_value = accrued.debt_value(price)
            boundary = accrued.liquidation_boundary()
            logger.error(
                "Lending position liquidatable at price %s: debt value %s > boundary %s",
                price,
                debt_value,
                boundary,
            )
            raise InsolvencyError(debt_value, boundary)
        return accrued

    def with_collateral(self, collateral: Decimal) -> "LendingPosition":
        return replace(self, collateral=collateral)

    def with_debt(self, debt: Decimal) -> "LendingPosition":
        return replace(self, debt=debt)
