from mesa import Agent
import pandas as pd
import numpy as np
from decimal import Decimal
from typing import Optional, Callable, Union, List, Tuple
from enum import Enum

from farm_abm.positions.oracle import validate_price
from farm_abm.utils.math_helpers import to_decimal


class OracleMode(str, Enum):
    """
    Enum for specifying oracle operation modes.
    - CSV: Replay a recorded price series (pandas Series indexed by timestamp).
    - GBM: Generate synthetic prices using Geometric Brownian Motion.
    - STATIC: Use a fixed constant price.
    """
    CSV = "csv"
    GBM = "gbm"
    STATIC = "static"


class OracleAgent(Agent):
    """
    Oracle agent feeding ``(timestamp, price)`` ticks into the farming model.

    Attributes:
        mode (OracleMode): Mode of operation.
        price_series (pd.Series): Recorded prices (only for CSV mode).
        mu (float): Drift rate for GBM mode.
        sigma (float): Volatility for GBM mode.
        dt (float): Time step for GBM mode, in years.
        tick_minutes (int): Spacing of generated timestamps in GBM and STATIC modes.
        current_price (Decimal): Latest published price.
        current_timestamp (pd.Timestamp): Timestamp of the latest published price.
        price_history (List[Tuple[pd.Timestamp, Decimal]]): Published ticks.
        exhausted (bool): True once a CSV series has no more ticks.
        on_price_update (Callable): Callback on each price update.
        _rng (np.random.Generator): Random number generator for GBM.
    """

    def __init__(
        self,
        model,
        price_series: Optional[pd.Series] = None,
        mode: Union[str, OracleMode] = OracleMode.CSV,
        gbm_params: Optional[dict] = None,
        static_price: Union[float, str, Decimal] = 1.0,
        start: Optional[str] = None,
        tick_minutes: int = 5,
        on_price_update: Optional[Callable] = None,
        seed: Optional[int] = None,
    ):
        super().__init__(model)

        self.mode = OracleMode(mode)
        self.on_price_update = on_price_update
        self.price_history: List[Tuple[pd.Timestamp, Decimal]] = []
        self.tick_minutes = int(tick_minutes)
        self.exhausted = False

        if self.mode == OracleMode.CSV:
            if price_series is None or price_series.empty:
                raise ValueError("CSV mode requires a non-empty price_series.")
            self.price_series = price_series
            self.current_price = validate_price(price_series.iloc[0])
            self.current_timestamp = pd.Timestamp(price_series.index[0])
        else:
            self.price_series = None
            self.current_price = validate_price(static_price)
            self.current_timestamp = pd.Timestamp(start or "1970-01-01")

        if self.mode == OracleMode.GBM:
            params = gbm_params or {}
            self.mu = float(params.get("mu", 0.0))
            self.sigma = float(params.get("sigma", 0.5))
            self.dt = float(params.get("dt", self.tick_minutes / (365 * 24 * 60)))
        else:
            self.mu = self.sigma = self.dt = None

        self._step_counter = 0
        self._rng = np.random.default_rng(seed if seed is not None else getattr(self.model, "seed", None))

    def _gbm_next(self) -> Decimal:
        """Generate next price using GBM formula, rounded to 9 decimals."""
        drift = (self.mu - 0.5 * self.sigma ** 2) * self.dt
        diffusion = self.sigma * np.sqrt(self.dt) * self._rng.normal()
        next_price = float(self.current_price) * np.exp(drift + diffusion)
        return to_decimal(round(float(next_price), 9))

    def _csv_step(self) -> Tuple[pd.Timestamp, Decimal]:
        """Return the tick at the current position of the series."""
        timestamp = pd.Timestamp(self.price_series.index[self._step_counter])
        return timestamp, validate_price(self.price_series.iloc[self._step_counter])

    def _gbm_step(self) -> Tuple[pd.Timestamp, Decimal]:
        """Advance GBM model and return the next tick."""
        price = self.current_price if self._step_counter == 0 else self._gbm_next()
        return self._next_timestamp(), price

    def _static_step(self) -> Tuple[pd.Timestamp, Decimal]:
        """Return the constant price for STATIC mode."""
        return self._next_timestamp(), self.current_price

    def _next_timestamp(self) -> pd.Timestamp:
        if self._step_counter == 0:
            return self.current_timestamp
        return self.current_timestamp + pd.Timedelta(minutes=self.tick_minutes)

    def has_next(self) -> bool:
        """Return False once a CSV series has been fully replayed."""
        if self.mode != OracleMode.CSV:
            return True
        return self._step_counter < len(self.price_series)

    def step(self):
        """
        Publish the next tick.

        Updates ``model.current_price`` and ``model.current_timestamp`` and
        triggers the callback if defined. When a CSV series runs out the
        agent sets ``exhausted`` and leaves the model price unchanged.

        Raises:
            ValueError: If timestamps stop strictly increasing.
            InvalidPriceError: If the series contains a non-positive price.
        """
        if not self.has_next():
            self.exhausted = True
            return

        dispatch = {
            OracleMode.CSV: self._csv_step,
            OracleMode.GBM: self._gbm_step,
            OracleMode.STATIC: self._static_step,
        }
        timestamp, price = dispatch[self.mode]()

        if self.price_history and timestamp <= self.price_history[-1][0]:
            raise ValueError(
                f"Timestamps must be strictly increasing: {timestamp} after {self.price_history[-1][0]}"
            )

        self.current_timestamp = timestamp
        self.current_price = price
        self.model.current_price = price
        self.model.current_timestamp = timestamp
        self.price_history.append((timestamp, price))

        if self.on_price_update:
            self.on_price_update(self, price, timestamp)
        self._step_counter += 1
