from dataclasses import dataclass, fields
from decimal import Decimal

from farm_abm.utils.math_helpers import to_decimal

DEFAULT_INTEREST_PERIOD_MINUTES = 5


@dataclass(frozen=True)
class StrategyConfig:
    """
    Validated construction parameters of a :class:`~farm_abm.strategy.engine.Strategy`.

    Rates are annualized fractions (``0.02`` means 2% per year).

    Attributes:
        initial_capital (Decimal): Stable-unit amount invested at start.
        ideal_ratio (Decimal): Share of total value targeted for the AMM side, in (0, 1).
        amm_supply_interest_rate (Decimal): Yield earned by the AMM position.
        borrow_interest_rate (Decimal): Rate charged on the lending debt.
        lending_supply_interest_rate (Decimal): Rate earned on the lending collateral.
        liquidation_threshold (Decimal): Collateral-to-debt-value boundary, > 1.
        initial_price (Decimal): Oracle price at construction.
        swap_fee (Decimal): Fee fraction on conversions between unused balances, in [0, 1).
        interest_period_minutes (Decimal): Accrual period applied on every tick.
    """

    initial_capital: Decimal
    initial_price: Decimal
    ideal_ratio: Decimal = Decimal("0.33")
    amm_supply_interest_rate: Decimal = Decimal("0.2")
    borrow_interest_rate: Decimal = Decimal("0.02")
    lending_supply_interest_rate: Decimal = Decimal("0.08")
    liquidation_threshold: Decimal = Decimal("1.25")
    swap_fee: Decimal = Decimal("0.01")
    interest_period_minutes: Decimal = Decimal(DEFAULT_INTEREST_PERIOD_MINUTES)

    def __post_init__(self):
        for field in fields(self):
            object.__setattr__(self, field.name, to_decimal(getattr(self, field.name)))
        self.validate()

    def validate(self):
        """Raise ValueError if any option is outside its allowed range."""
        if self.initial_capital <= 0:
            raise ValueError(f"initial_capital must be positive, got {self.initial_capital}")
        if not 0 < self.ideal_ratio < 1:
            raise ValueError(f"ideal_ratio must be in (0, 1), got {self.ideal_ratio}")
        for name in ("amm_supply_interest_rate", "borrow_interest_rate", "lending_supply_interest_rate"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative, got {getattr(self, name)}")
        if self.liquidation_threshold <= 1:
            raise ValueError(
                f"liquidation_threshold must be greater than 1, got {self.liquidation_threshold}"
            )
        if not self.initial_price.is_finite() or self.initial_price <= 0:
            raise ValueError(f"initial_price must be positive, got {self.initial_price}")
        if not 0 <= self.swap_fee < 1:
            raise ValueError(f"swap_fee must be in [0, 1), got {self.swap_fee}")
        if self.interest_period_minutes <= 0:
            raise ValueError(
                f"interest_period_minutes must be positive, got {self.interest_period_minutes}"
            )

    @classmethod
    def from_dict(
        cls,
        strategy_cfg: dict,
        initial_price=None,
        interest_period_minutes=None,
    ) -> "StrategyConfig":
        """
        Build a config from the ``strategy`` section of a config document.

        Args:
            strategy_cfg (dict): Mapping of option names to values.
            initial_price: Fallback when the section has no ``initial_price``
                (usually the first oracle price).
            interest_period_minutes: Fallback accrual period, usually taken
                from the ``simulation`` section.

        Returns:
            StrategyConfig: The validated configuration.
        """
        known = {field.name for field in fields(cls)}
        unknown = set(strategy_cfg) - known
        if unknown:
            raise ValueError(f"Unknown strategy options: {', '.join(sorted(unknown))}")

        kwargs = dict(strategy_cfg)
        if "initial_capital" not in kwargs:
            raise ValueError("strategy.initial_capital is required")
        if kwargs.get("initial_price") is None:
            if initial_price is None:
                raise ValueError("strategy.initial_price is required when the oracle has no prices")
            kwargs["initial_price"] = initial_price
        if interest_period_minutes is not None:
            kwargs.setdefault("interest_period_minutes", interest_period_minutes)
        return cls(**kwargs)
