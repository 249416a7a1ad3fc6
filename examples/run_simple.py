# examples/run_simple.py

import logging
import os

import matplotlib.pyplot as plt

from farm_abm.models.farm_model import FarmModel
from farm_abm.utils.config_parser import load_config
from farm_abm.utils.report import write_report


def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")

    # 1. Locate and load the YAML configuration
    script_dir = os.path.dirname(os.path.abspath(__file__))
    config = load_config(os.path.join(script_dir, "config_showcase.yaml"))

    # 2. Instantiate the FarmModel and run every tick
    model = FarmModel(config)
    model.run()

    # 3. Write the per-tick report next to this script
    report = model.get_report()
    write_report(report, os.path.join(script_dir, "simulation.csv"))

    print("\n=== Final strategy status ===")
    for label, value in model.strategy.status().as_dict().items():
        print(f"{label:32s} {value}")

    # 4. Plot total value against price
    fig, ax1 = plt.subplots(figsize=(8, 4))
    ax1.plot(report["Date"], report["Total Strategy Value"].astype(float), label="Total value", color="tab:blue")
    ax1.set_xlabel("Date")
    ax1.set_ylabel("Total value (USDT)", color="tab:blue")
    ax1.tick_params(axis="y", labelcolor="tab:blue")

    ax2 = ax1.twinx()
    ax2.plot(report["Date"], report["Price"].astype(float), label="Price", color="tab:orange", linestyle="--")
    ax2.set_ylabel("Price", color="tab:orange")
    ax2.tick_params(axis="y", labelcolor="tab:orange")

    fig.suptitle(f"Strategy value and price ({model.strategy.total_rebalances} rebalances)")
    fig.tight_layout()
    fig.legend(loc="upper left")
    plt.show()


if __name__ == "__main__":
    main()
