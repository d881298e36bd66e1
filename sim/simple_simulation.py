"""
Simple simulation for the DSC Protocol Model.

This script walks through one position's lifecycle: deposit and mint, a price
crash that breaks the health factor, and a liquidation that restores it.
"""

import sys
import os

# Add the core directory to the path
sys.path.append(os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "core"))
from dsc_engine import PRECISION
from dsc_errors import DSCEngineError
from logging_setup import configure_logging
from stablecoin_model import StablecoinProtocolModel


def fmt(amount):
    return f"{amount / PRECISION:,.2f}"


def run_basic_simulation():
    # Initialize the protocol
    model = StablecoinProtocolModel({"weth": 2000.0, "wbtc": 1000.0})
    engine = model.engine

    print("Opening positions...")
    # 10 wETH at $2000 backs up to $10,000 of DSC
    model.open_position("alice", "weth", 10, 8000)
    # The keeper keeps a very safe position so it holds DSC for liquidations
    model.open_position("keeper", "wbtc", 100, 20000)

    for user in ("alice", "keeper"):
        debt, collateral_usd = engine.get_account_information(user)
        print(f"  {user}: collateral ${fmt(collateral_usd)}, debt {fmt(debt)} DSC, "
              f"health factor {engine.health_factor(user) / PRECISION:.3f}")

    print("\nTrying to mint past the limit...")
    try:
        engine.mint_dsc("alice", 2001 * PRECISION)
    except DSCEngineError as e:
        print(f"  Rejected: {e}")

    new_price = 1500.0
    print(f"\nSimulating wETH price drop to ${new_price:.2f}")
    unsafe = model.update_price("weth", new_price)
    print(f"  Liquidatable accounts: {unsafe}")
    print(f"  alice health factor: {engine.health_factor('alice') / PRECISION:.3f}")

    print("\nKeeper liquidates...")
    for user, asset, covered in model.run_keeper("keeper"):
        print(f"  Covered {fmt(covered)} DSC of {user}'s debt against {asset}")

    debt, collateral_usd = engine.get_account_information("alice")
    print(f"  alice now: collateral ${fmt(collateral_usd)}, debt {fmt(debt)} DSC, "
          f"health factor {engine.health_factor('alice') / PRECISION:.3f}")
    print(f"  keeper received {fmt(model.tokens['weth'].balance_of('keeper'))} wETH")

    print("\nFinal protocol state:")
    for key, value in model.get_system_state().items():
        print(f"  {key}: {value}")


if __name__ == "__main__":
    configure_logging("INFO")
    run_basic_simulation()
