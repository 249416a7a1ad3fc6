from decimal import Decimal

from farm_abm.errors import InvalidPriceError
from farm_abm.utils.math_helpers import Number, to_decimal


def validate_price(price: Number) -> Decimal:
    """
    Convert ``price`` to ``Decimal`` and check that it is a usable market price.

    Raises:
        InvalidPriceError: If the price is not finite or not strictly positive.
    """
    value = to_decimal(price)
    if not value.is_finite() or value <= 0:
        raise InvalidPriceError(f"Price must be a positive finite number, got {price!r}")
    return value


class PriceOracle:
    """
    Holds the single current market price of the volatile asset in the stable unit.

    Positions never keep a reference to the oracle; the strategy reads
    ``current_price`` and passes it into every position query.
    """

    def __init__(self, price: Number):
        self.current_price = validate_price(price)

    def set_price(self, price: Number) -> None:
        """Replace the current price. Rejected prices leave the oracle untouched."""
        self.current_price = validate_price(price)

    def __repr__(self):
        return f"PriceOracle({self.current_price})"
