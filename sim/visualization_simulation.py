"""
Visualization simulation for the vault protocol model.

This script runs a month of random price moves with a liquidating keeper and
plots the results.
"""

import logging
import numpy as np
import sys
import os

# Add the core directory to the path
sys.path.append(os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "core"))
from engine_config import PRECISION
from market_simulation import fund_keeper, populate_vaults, simulate_market_scenario
from price_feed import ManualClock
from vault_protocol import VaultProtocol


def run_visualization_simulation(seed=7):
    clock = ManualClock(start=1_700_000_000)
    protocol = VaultProtocol(2000 * PRECISION, clock=clock)
    rng = np.random.default_rng(seed)

    print("Opening vaults...")
    accounts = populate_vaults(protocol, 25, rng, min_ratio=1.55, max_ratio=2.5)
    for account in accounts[:5]:
        info = protocol.queries.vault_info(account)
        print(f"  {account}: {info.collateral_amount / PRECISION:.2f} collateral, "
              f"{info.debt_amount / PRECISION:.2f} debt, ratio {info.collateral_ratio}%")

    print("\nFunding keeper...")
    fund_keeper(protocol, "keeper", 200 * PRECISION, 100_000 * PRECISION)

    print("\nRunning simulation with visualizations...")
    results = simulate_market_scenario(protocol, 30, price_volatility=0.01,
                                       plot_results=True, seed=seed)

    print("\nSimulation Results:")
    for key in ('final_price', 'final_system_debt', 'final_collateral', 'active_vaults',
                'liquidations'):
        print(f"  {key}: {results[key]}")

    violations = protocol.check_invariants()
    print(f"\nInvariant violations: {violations or 'none'}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.WARNING)
    run_visualization_simulation()
