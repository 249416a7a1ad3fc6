import logging
from typing import Optional

import pandas as pd
from mesa import Model
from mesa.datacollection import DataCollector

from farm_abm.agents.oracle import OracleAgent, OracleMode
from farm_abm.agents.strategy_agent import StrategyAgent
from farm_abm.config import DEFAULT_INTEREST_PERIOD_MINUTES, StrategyConfig
from farm_abm.strategy.engine import Strategy
from farm_abm.strategy.status import STATUS_LABELS
from farm_abm.utils.price_series import read_binance_prices, read_csv_prices
from farm_abm.utils.report import snapshots_to_frame

logger = logging.getLogger(__name__)


def _status_reporter(field_name: str):
    return lambda m: getattr(m.strategy_agent.last_status, field_name)


class FarmModel(Model):
    """
    Mesa model replaying a price series through one leveraged farming strategy.

    - The oracle always steps before the strategy; activation is never shuffled.
    - One DataCollector row is recorded per tick, one column per status field.
    - ``running`` turns False when a recorded price series is exhausted.
    """

    def __init__(self, config: dict):
        sim_cfg = config.get("simulation", {})
        seed = sim_cfg.get("seed", None)
        super().__init__(seed=seed)

        self.num_steps = sim_cfg.get("steps", None)
        self.interest_period_minutes = sim_cfg.get(
            "interest_period_minutes", DEFAULT_INTEREST_PERIOD_MINUTES
        )

        # --- Oracle ---
        oracle_cfg = config.get("oracle", {})
        self.oracle = self._init_oracle(oracle_cfg, seed)
        self.current_price = self.oracle.current_price
        self.current_timestamp = self.oracle.current_timestamp

        # --- Strategy ---
        strategy_cfg = StrategyConfig.from_dict(
            config.get("strategy", {}),
            initial_price=self.current_price,
            interest_period_minutes=self.interest_period_minutes,
        )
        self.strategy_agent = StrategyAgent(self, Strategy(strategy_cfg))

        # Status row for the starting allocation, before any tick.
        self.initial_row = (self.current_timestamp, self.strategy_agent.last_status)

        reporters = {"Date": lambda m: m.current_timestamp}
        reporters.update(
            {label: _status_reporter(name) for name, label in STATUS_LABELS.items()}
        )
        self.datacollector = DataCollector(model_reporters=reporters)

    def _init_oracle(self, oracle_cfg: dict, seed: Optional[int]) -> OracleAgent:
        """
        Instantiate the OracleAgent (it auto-registers in self.agents).

        ``mode: csv`` reads ``price_csv``; ``mode: binance`` reads a kline JSON
        dump from ``price_json`` and replays it like a CSV series.
        """
        mode = oracle_cfg.get("mode", "csv")
        date_filter = oracle_cfg.get("date_filter")
        price_series = None

        if mode == "binance":
            price_series = read_binance_prices(oracle_cfg["price_json"], date_filter=date_filter)
            mode = OracleMode.CSV
        elif mode == OracleMode.CSV.value:
            if "price_csv" not in oracle_cfg:
                raise ValueError("Oracle csv mode requires 'price_csv'.")
            price_series = read_csv_prices(oracle_cfg["price_csv"], date_filter=date_filter)

        return OracleAgent(
            self,
            price_series=price_series,
            mode=mode,
            gbm_params=oracle_cfg.get("gbm"),
            static_price=oracle_cfg.get("static_price", 1.0),
            start=oracle_cfg.get("start"),
            tick_minutes=oracle_cfg.get("tick_minutes", self.interest_period_minutes),
            seed=seed,
        )

    @property
    def strategy(self) -> Strategy:
        return self.strategy_agent.strategy

    def step(self):
        """
        Advance the model one tick:
          1. The oracle publishes the next price (or flags exhaustion).
          2. The strategy accrues, checks deviation and maybe rebalances.
          3. The status snapshot is collected.
        """
        self.oracle.step()
        if self.oracle.exhausted:
            self.running = False
            return

        self.strategy_agent.step()
        self.datacollector.collect(self)

    def run(self, steps: Optional[int] = None) -> int:
        """
        Step until ``steps`` ticks ran, the configured step count is reached,
        or the price series is exhausted.

        Returns:
            int: Number of ticks processed.
        """
        limit = steps if steps is not None else self.num_steps
        if limit is None and self.oracle.mode != OracleMode.CSV:
            raise ValueError("simulation.steps is required for generated price series.")
        ticks = 0
        while self.running and (limit is None or ticks < limit):
            self.step()
            if not self.running:
                break
            ticks += 1
        logger.info(
            "Simulation finished after %d ticks, total value %s",
            ticks,
            self.strategy.estimate_total_value(),
        )
        return ticks

    def get_report(self) -> pd.DataFrame:
        """Return collected rows as a DataFrame, starting with the initial status row."""
        head = snapshots_to_frame([self.initial_row])
        ticks = self.datacollector.get_model_vars_dataframe()
        if ticks.empty:
            return head
        return pd.concat([head, ticks[head.columns]], ignore_index=True)
