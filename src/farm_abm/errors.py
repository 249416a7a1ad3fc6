from decimal import Decimal


class StrategyError(Exception):
    """Base class for errors that terminate a strategy simulation run."""


class InsolvencyError(StrategyError):
    """
    Raised when the lending position becomes liquidatable after interest accrual.

    Attributes:
        debt_value (Decimal): Debt marked to market in the stable unit.
        liquidation_boundary (Decimal): Collateral divided by the liquidation threshold.
    """

    def __init__(self, debt_value: Decimal, liquidation_boundary: Decimal):
        self.debt_value = debt_value
        self.liquidation_boundary = liquidation_boundary
        super().__init__(
            f"Lending position is liquidatable: debt value {debt_value} "
            f"> liquidation boundary {liquidation_boundary}"
        )


class InternalInconsistencyError(StrategyError):
    """Raised when a rebalance creates value or an AMM deposit disagrees with the oracle."""


class InvalidPriceError(StrategyError, ValueError):
    """Raised when a non-positive or non-finite price is supplied."""
