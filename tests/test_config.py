import sys
import json
from pathlib import Path
from decimal import Decimal
import numpy as np
import pytest
import yaml

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from farm_abm.config import StrategyConfig
from farm_abm.utils.config_parser import load_config


def valid_params(**overrides):
    params = dict(initial_capital=1_000_000, initial_price=2)
    params.update(overrides)
    return params


def test_defaults_and_decimal_conversion():
    config = StrategyConfig(**valid_params(ideal_ratio=0.33, swap_fee=0.01))
    assert config.ideal_ratio == Decimal("0.33")
    assert config.swap_fee == Decimal("0.01")
    assert config.liquidation_threshold == Decimal("1.25")
    assert config.interest_period_minutes == Decimal(5)
    assert isinstance(config.initial_capital, Decimal)


def test_numpy_scalars_are_converted():
    config = StrategyConfig(
        **valid_params(
            initial_capital=np.int64(1_000_000),
            initial_price=np.float64(2.5),
            ideal_ratio=np.float64(0.33),
        )
    )
    assert config.initial_capital == Decimal(1_000_000)
    assert config.initial_price == Decimal("2.5")
    assert config.ideal_ratio == Decimal("0.33")


@pytest.mark.parametrize(
    "overrides",
    [
        {"initial_capital": 0},
        {"ideal_ratio": 0},
        {"ideal_ratio": 1},
        {"borrow_interest_rate": -0.01},
        {"amm_supply_interest_rate": -1},
        {"lending_supply_interest_rate": -0.5},
        {"liquidation_threshold": 1},
        {"initial_price": 0},
        {"swap_fee": 1},
        {"swap_fee": -0.1},
        {"interest_period_minutes": 0},
    ],
)
def test_invalid_options_are_rejected(overrides):
    with pytest.raises(ValueError):
        StrategyConfig(**valid_params(**overrides))


def test_from_dict_fallbacks():
    config = StrategyConfig.from_dict(
        {"initial_capital": 500}, initial_price="1.5", interest_period_minutes=15
    )
    assert config.initial_price == Decimal("1.5")
    assert config.interest_period_minutes == Decimal(15)


def test_from_dict_prefers_explicit_values():
    config = StrategyConfig.from_dict(
        {"initial_capital": 500, "initial_price": 3, "interest_period_minutes": 1},
        initial_price="1.5",
        interest_period_minutes=15,
    )
    assert config.initial_price == Decimal(3)
    assert config.interest_period_minutes == Decimal(1)


def test_from_dict_rejects_unknown_and_missing_options():
    with pytest.raises(ValueError):
        StrategyConfig.from_dict({"initial_capital": 1, "initial_price": 1, "leverage": 3})
    with pytest.raises(ValueError):
        StrategyConfig.from_dict({"initial_price": 1})
    with pytest.raises(ValueError):
        StrategyConfig.from_dict({"initial_capital": 1})


def test_load_yaml_config_resolves_price_paths(tmp_path):
    document = {
        "simulation": {"steps": 10},
        "oracle": {"mode": "csv", "price_csv": "prices/ton.csv"},
        "strategy": {"initial_capital": 1000},
    }
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(document))

    config = load_config(str(path))
    assert config["simulation"]["steps"] == 10
    assert config["oracle"]["price_csv"] == str(tmp_path / "prices" / "ton.csv")


def test_load_json_config_keeps_absolute_paths(tmp_path):
    document = {"oracle": {"mode": "binance", "price_json": "/data/candles.json"}}
    path = tmp_path / "config.json"
    path.write_text(json.dumps(document))

    assert load_config(str(path))["oracle"]["price_json"] == "/data/candles.json"


def test_load_config_errors(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(str(tmp_path / "missing.yaml"))

    bad_ext = tmp_path / "config.toml"
    bad_ext.write_text("x = 1")
    with pytest.raises(ValueError):
        load_config(str(bad_ext))

    not_a_mapping = tmp_path / "list.yaml"
    not_a_mapping.write_text("- 1\n- 2\n")
    with pytest.raises(ValueError):
        load_config(str(not_a_mapping))
