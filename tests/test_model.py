import sys
import copy
import json
from pathlib import Path
from decimal import Decimal
import pandas as pd
import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from farm_abm.agents.oracle import OracleAgent
from farm_abm.agents.strategy_agent import StrategyAgent
from farm_abm.errors import InsolvencyError
from farm_abm.models.farm_model import FarmModel
from farm_abm.utils.report import REPORT_COLUMNS


def make_temp_price_csv(tmp_path, prices):
    dates = pd.date_range("2024-01-01", periods=len(prices), freq="5min")
    df = pd.DataFrame({"date": dates.strftime("%Y-%m-%dT%H:%M:%S"), "price": prices})
    csv_path = tmp_path / "price.csv"
    df.to_csv(csv_path, index=False)
    return str(csv_path)


@pytest.fixture
def simple_config(tmp_path):
    price_csv_path = make_temp_price_csv(tmp_path, ["2", "2", "2.5", "2.5", "2.45"])
    config = {
        "simulation": {"seed": 123, "interest_period_minutes": 5},
        "oracle": {"mode": "csv", "price_csv": price_csv_path},
        "strategy": {
            "initial_capital": 1_000_000,
            "ideal_ratio": 0.33,
            "amm_supply_interest_rate": 0.2,
            "borrow_interest_rate": 0.02,
            "lending_supply_interest_rate": 0.08,
            "liquidation_threshold": 1.25,
            "swap_fee": 0.01,
        },
    }
    return config


def test_model_initialization_creates_expected_agents(simple_config):
    model = FarmModel(simple_config)
    names = {a.__class__.__name__ for a in model.agents}
    assert names == {"OracleAgent", "StrategyAgent"}
    assert isinstance(model.oracle, OracleAgent)
    assert isinstance(model.strategy_agent, StrategyAgent)
    # Initial price defaults to the first price of the series.
    assert model.strategy.price == Decimal(2)


def test_model_runs_until_series_is_exhausted(simple_config):
    model = FarmModel(simple_config)
    ticks = model.run()

    assert ticks == 5
    assert model.running is False

    report = model.get_report()
    assert list(report.columns) == REPORT_COLUMNS
    assert len(report) == 6
    assert report["Total rebalances"].tolist() == [0, 0, 0, 1, 1, 1]
    assert report["Price"].iloc[3] == Decimal("2.5")
    assert report["Last rebalance price"].iloc[-1] == Decimal("2.5")
    assert report["Date"].iloc[0] == pd.Timestamp("2024-01-01")


def test_model_step_limit(simple_config):
    model = FarmModel(simple_config)
    assert model.run(steps=2) == 2
    assert model.running is True
    assert model.current_price == Decimal(2)
    assert len(model.datacollector.get_model_vars_dataframe()) == 2


def test_model_insolvency_propagates(tmp_path, simple_config):
    cfg = copy.deepcopy(simple_config)
    cfg["oracle"]["price_csv"] = make_temp_price_csv(tmp_path, ["2", "3.5"])
    model = FarmModel(cfg)
    model.step()
    with pytest.raises(InsolvencyError):
        model.step()


def test_model_static_oracle_never_rebalances(simple_config):
    cfg = copy.deepcopy(simple_config)
    cfg["oracle"] = {"mode": "static", "static_price": 2, "start": "2024-06-01"}
    cfg["simulation"]["steps"] = 12
    model = FarmModel(cfg)

    assert model.run() == 12
    assert model.strategy.total_rebalances == 0
    collateral = model.get_report()["Lending Collateral Value"].tolist()
    assert all(later > earlier for earlier, later in zip(collateral[1:], collateral[2:]))


def test_model_generated_prices_require_steps(simple_config):
    cfg = copy.deepcopy(simple_config)
    cfg["oracle"] = {"mode": "gbm", "static_price": 2}
    model = FarmModel(cfg)
    with pytest.raises(ValueError):
        model.run()


def test_model_gbm_runs_are_deterministic(simple_config):
    cfg = copy.deepcopy(simple_config)
    cfg["oracle"] = {"mode": "gbm", "static_price": 2, "gbm": {"sigma": 1.5}}
    cfg["simulation"]["steps"] = 200

    first, second = FarmModel(cfg), FarmModel(cfg)
    first.run()
    second.run()
    assert first.get_report().equals(second.get_report())


def test_model_reads_binance_candles(tmp_path, simple_config):
    candles = [
        {"openTime": 1704067200000 + i * 300000, "close": price, "closeTime": 1704067499999 + i * 300000}
        for i, price in enumerate(["2.0", "2.01", "2.02"])
    ]
    path = tmp_path / "candles.json"
    path.write_text(json.dumps(candles))

    cfg = copy.deepcopy(simple_config)
    cfg["oracle"] = {"mode": "binance", "price_json": str(path)}
    model = FarmModel(cfg)

    assert model.run() == 3
    assert model.current_price == Decimal("2.02")
