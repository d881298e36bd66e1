"""
Visualization simulation for the DSC Protocol Model.

This script opens positions with different risk profiles, runs a month of
random price movements with a liquidation keeper, and plots the results.
"""

import sys
import os

import numpy as np

# Add the core directory to the path
sys.path.append(os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "core"))
from logging_setup import configure_logging
from stablecoin_model import StablecoinProtocolModel


def run_visualization_simulation(seed=7):
    # Initialize the protocol
    model = StablecoinProtocolModel({"weth": 2000.0, "wbtc": 1000.0})
    rng = np.random.default_rng(seed)

    print("Creating initial positions...")
    # Target collateralization ratios from 210% to 400%
    for i in range(10):
        asset = "weth" if i % 2 == 0 else "wbtc"
        price = model.price_feeds[asset].fetch_price()
        collateral = rng.uniform(2.0, 10.0)
        target_cr = 2.1 + (i * 1.9 / 10)
        debt = collateral * price / target_cr
        model.open_position(f"user{i}", asset, collateral, debt)
        print(f"  user{i}: {collateral:.2f} {asset}, {debt:.2f} DSC, CR: {target_cr * 100:.0f}%")

    # Keeper with a deep, safe position to fund liquidations
    model.open_position("keeper", "wbtc", 500, 50000)

    print("\nRunning simulation with visualizations...")
    results = model.simulate_market_scenario(30, price_volatility=0.05, seed=seed, plot_results=True)

    print("\nSimulation Results:")
    for key, value in results.items():
        print(f"  {key}: {value}")


if __name__ == "__main__":
    configure_logging("WARNING")
    run_visualization_simulation()
