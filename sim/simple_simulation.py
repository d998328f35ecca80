"""
Simple simulation for the vault protocol model.

This script walks through the basic lifecycle: opening vaults, a price drop,
a liquidation with its owner refund, and the final system status.
"""

import logging
import sys
import os

# Add the core directory to the path
sys.path.append(os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "core"))
from engine_config import PRECISION
from price_feed import ManualClock
from vault_protocol import VaultProtocol


def print_status(protocol):
    status = protocol.queries.system_status()
    print(f"  Total collateral: {status.total_collateral / PRECISION:.4f}")
    print(f"  Total debt: {status.total_debt / PRECISION:.2f}")
    print(f"  Price: {status.price / PRECISION:.2f}")
    print(f"  System ratio: {status.system_ratio}%")
    print(f"  Vaults: {status.vault_count}, liquidations: {status.total_liquidations}")


def run_basic_simulation():
    clock = ManualClock(start=1_700_000_000)
    protocol = VaultProtocol(2000 * PRECISION, clock=clock)

    print("Opening vaults...")
    for name, collateral, debt in (("alice", 1, 1000), ("bob", 2, 2000), ("carol", 5, 3000)):
        protocol.fund(name, collateral * PRECISION)
        protocol.collateral_engine.open_or_increase(name, collateral * PRECISION, debt * PRECISION)
        print(f"  {name}: {collateral} collateral, {debt} debt, "
              f"ratio {protocol.queries.collateral_ratio(name)}%")

    print("\nInitial state:")
    print_status(protocol)

    new_price = 1200 * PRECISION
    print(f"\nPrice drops to {new_price / PRECISION:.2f}")
    clock.advance(600)
    protocol.set_price(new_price)

    eligible = protocol.queries.liquidatable_vaults(10)
    print(f"Liquidatable vaults: {eligible}")

    if eligible:
        target = eligible[0]
        debt = protocol.store.get(target).debt_amount
        profit = protocol.liquidation_engine.calculate_liquidation_profit(target, debt)
        print(f"Projected profit for covering {target}: {profit / PRECISION:.2f}")

        # carol's debt tokens fund the liquidation
        protocol.debt_token.transfer("carol", "keeper", debt)
        protocol.approve_engine("keeper", debt)
        result = protocol.liquidation_engine.liquidate("keeper", target, debt)
        print(f"Liquidated {target}: seized {result.collateral_seized / PRECISION:.4f}, "
              f"refunded {result.collateral_refunded / PRECISION:.4f}")

    print("\nFinal state:")
    print_status(protocol)

    violations = protocol.check_invariants()
    print(f"\nInvariant violations: {violations or 'none'}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    run_basic_simulation()
