from decimal import Decimal
import logging

from farm_abm.config import StrategyConfig
from farm_abm.errors import InternalInconsistencyError
from farm_abm.positions.amm import AMMPosition
from farm_abm.positions.lending import LendingPosition
from farm_abm.positions.oracle import PriceOracle, validate_price
from farm_abm.strategy.rebalance import run_rebalance
from farm_abm.strategy.state import (
    Deviations,
    IdealSetup,
    StrategyState,
    amm_deviation_ratio,
    compute_deviations,
    compute_ideal_setup,
)
from farm_abm.strategy.status import StatusSnapshot
from farm_abm.utils.math_helpers import Number, with_decimal_context

logger = logging.getLogger(__name__)

REBALANCE_THRESHOLD = Decimal("0.1")
VALUE_EPSILON = Decimal("0.00001")


class Strategy:
    """
    Leveraged yield-farming strategy split between an AMM and a lending position.

    Capital is divided by ``ideal_ratio``: that share seeds the stable side of
    the AMM, the rest becomes lending collateral, and the volatile side of the
    AMM is borrowed against it. Each tick accrues interest and yield, then
    rebalances when the AMM drifts more than 10% away from its target.

    Attributes:
        config (StrategyConfig): Construction parameters.
        oracle (PriceOracle): Single source of the current price.
        state (StrategyState): Positions and unused balances.
        ideal_ratio (Decimal): Target AMM share of total value.
        swap_fee (Decimal): Fee fraction on conversions between unused balances.
        interest_period_minutes (Decimal): Accrual period per tick.
        total_rebalances (int): Number of completed rebalances.
        last_rebalance_price (Decimal): Price at the last rebalance (initial price before any).
    """

    @with_decimal_context
    def __init__(self, config: StrategyConfig):
        self.config = config
        self.ideal_ratio = config.ideal_ratio
        self.swap_fee = config.swap_fee
        self.interest_period_minutes = config.interest_period_minutes
        self.oracle = PriceOracle(config.initial_price)
        self.last_rebalance_price = config.initial_price
        self.total_rebalances = 0

        amm_reserve_y = config.initial_capital * config.ideal_ratio
        lending_collateral = config.initial_capital - amm_reserve_y
        amount_to_borrow = amm_reserve_y / config.initial_price

        self.state = StrategyState(
            price=config.initial_price,
            amm=AMMPosition(amount_to_borrow, amm_reserve_y, config.amm_supply_interest_rate),
            lending=LendingPosition(
                collateral=lending_collateral,
                debt=amount_to_borrow,
                liquidation_threshold=config.liquidation_threshold,
                borrow_interest_rate=config.borrow_interest_rate,
                supply_interest_rate=config.lending_supply_interest_rate,
            ),
        )
        logger.info(
            "Strategy seeded: %s USDT collateral, %s TON borrowed, AMM %s TON / %s USDT",
            lending_collateral,
            amount_to_borrow,
            amount_to_borrow,
            amm_reserve_y,
        )

    @classmethod
    def from_dict(cls, strategy_cfg: dict, **defaults) -> "Strategy":
        """Construct from the ``strategy`` section of a config document."""
        return cls(StrategyConfig.from_dict(strategy_cfg, **defaults))

    @property
    def price(self) -> Decimal:
        return self.oracle.current_price

    @property
    def amm_position(self) -> AMMPosition:
        return self.state.amm

    @property
    def lending_position(self) -> LendingPosition:
        return self.state.lending

    @property
    def unused_ton(self) -> Decimal:
        return self.state.unused_ton

    @property
    def unused_usdt(self) -> Decimal:
        return self.state.unused_usdt

    def estimate_unused_funds_value(self) -> Decimal:
        return self.state.unused_funds_value()

    def estimate_total_value(self) -> Decimal:
        return self.state.total_value()

    def compute_ideal_setup(self) -> IdealSetup:
        return compute_ideal_setup(self.state, self.ideal_ratio)

    def compute_deviations(self) -> Deviations:
        return compute_deviations(self.state, self.ideal_ratio)

    def needs_rebalance(self) -> bool:
        """Return True when the AMM reserve is more than 10% off its ideal."""
        return abs(amm_deviation_ratio(self.state, self.ideal_ratio)) > REBALANCE_THRESHOLD

    @with_decimal_context
    def next_price(self, price: Number) -> bool:
        """
        Advance the strategy by one price tick.

        Args:
            price: New oracle price; must be positive.

        Returns:
            bool: True if the tick triggered a rebalance.

        Raises:
            InvalidPriceError: If ``price`` is not positive. No state is changed.
            InsolvencyError: If interest accrual leaves the lending position liquidatable.
            InternalInconsistencyError: If the rebalance breaks a value invariant.
        """
        price = validate_price(price)
        lending = self.state.lending.accrue_interest(price, self.interest_period_minutes)

        self.oracle.set_price(price)
        state = self.state.evolve(price=price, lending=lending)

        # AMM yield is paid out in USDT and kept outside the pool.
        yield_generated = state.amm.generate_yield(price, self.interest_period_minutes)
        self.state = state.evolve(unused_usdt=state.unused_usdt + yield_generated)

        return self.rebalance()

    @with_decimal_context
    def rebalance(self, force: bool = False) -> bool:
        """
        Restore the ideal allocation through the ordered rebalance pipeline.

        Does nothing unless the AMM deviation exceeds the threshold or
        ``force`` is set.

        Returns:
            bool: True if a rebalance ran.

        Raises:
            InternalInconsistencyError: If total value increased by more than
                the tolerated epsilon.
        """
        if not force and not self.needs_rebalance():
            return False

        value_before = self.state.total_value()
        rebalanced = run_rebalance(self.state, self.ideal_ratio, self.swap_fee)
        value_after = rebalanced.total_value()

        if value_after > value_before + VALUE_EPSILON:
            logger.error("Rebalance created value: %s -> %s", value_before, value_after)
            raise InternalInconsistencyError(
                f"Rebalance increased total value: {value_before} -> {value_after}"
            )

        self.state = rebalanced
        self.total_rebalances += 1
        self.last_rebalance_price = self.price
        logger.info(
            "Rebalance #%d at price %s, value %s -> %s",
            self.total_rebalances,
            self.price,
            value_before,
            value_after,
        )
        return True

    @with_decimal_context
    def status(self) -> StatusSnapshot:
        """Return a snapshot of positions, ideal targets and deviations."""
        price = self.price
        amm = self.state.amm
        lending = self.state.lending
        reserve_x, reserve_y = amm.reserves_at(price)
        ideal = self.compute_ideal_setup()
        deviations = self.compute_deviations()

        return StatusSnapshot(
            price=price,
            lending_total_value=lending.position_value(price),
            lending_collateral=lending.collateral,
            lending_debt=lending.debt,
            lending_debt_value=lending.debt_value(price),
            lending_utilization=lending.utilization(price),
            amm_value=amm.estimate_value_in_quote(price),
            amm_reserve_x=reserve_x,
            amm_reserve_y=reserve_y,
            total_strategy_value=self.estimate_total_value(),
            unused_ton=self.state.unused_ton,
            unused_usdt=self.state.unused_usdt,
            ideal_lending_collateral=ideal.lending_collateral,
            ideal_borrow_amount=ideal.borrow_amount,
            ideal_amm_reserve_y=ideal.amm_reserve_y,
            deviation_amm_reserve_y=deviations.amm_reserve_y,
            deviation_lending_collateral=deviations.lending_collateral,
            deviation_borrow_amount=deviations.borrow_amount,
            last_rebalance_price=self.last_rebalance_price,
            total_rebalances=self.total_rebalances,
        )
