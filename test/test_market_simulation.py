"""
Scenario tests: random operation sequences and the market simulation.
"""

import unittest
import sys
import os
import numpy as np

# Add the core directory to the path
sys.path.append(os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "core"))
from engine_config import PRECISION
from engine_errors import VaultEngineError
from market_simulation import fund_keeper, populate_vaults, run_keeper, simulate_market_scenario
from price_feed import ManualClock
from vault_protocol import VaultProtocol

P = PRECISION


class TestRandomOperations(unittest.TestCase):
    def setUp(self):
        self.clock = ManualClock(start=0)
        self.protocol = VaultProtocol(2000 * P, clock=self.clock)
        self.accounts = [f"user{i}" for i in range(6)]
        for account in self.accounts:
            self.protocol.fund(account, 50 * P)
            self.protocol.approve_engine(account, 10**30)
        fund_keeper(self.protocol, "keeper", 500 * P, 200_000 * P)

    def random_step(self, rng):
        account = self.accounts[rng.integers(len(self.accounts))]
        amount = int(rng.uniform(0, 3000)) * P
        collateral = int(rng.uniform(0, 3) * P)
        choice = rng.integers(6)
        engine = self.protocol.collateral_engine

        if choice == 0:
            engine.open_or_increase(account, collateral, amount)
        elif choice == 1:
            engine.mint_more(account, amount)
        elif choice == 2:
            engine.repay_and_withdraw(account, min(amount, self.protocol.store.get(account).debt_amount))
        elif choice == 3:
            engine.remove_collateral(account, collateral)
        elif choice == 4:
            price = int(rng.uniform(800, 2600)) * P
            self.clock.advance(60)
            self.protocol.set_price(price)
        else:
            debt = self.protocol.store.get(account).debt_amount
            self.protocol.liquidation_engine.liquidate("keeper", account, debt)

    def test_invariants_hold_after_every_operation(self):
        """Totals match the vaults after successes and rolled-back failures alike"""
        rng = np.random.default_rng(42)

        for _ in range(400):
            try:
                self.random_step(rng)
            except VaultEngineError:
                pass
            self.assertEqual(self.protocol.check_invariants(), [])

        supply = self.protocol.debt_token.total_supply
        self.assertEqual(supply, sum(self.protocol.debt_token.balances.values()))
        self.assertEqual(self.protocol.debt_token.balance_of(self.protocol.engine_account), 0)


class TestMarketSimulation(unittest.TestCase):
    def setUp(self):
        self.clock = ManualClock(start=1_700_000_000)
        self.protocol = VaultProtocol(2000 * P, clock=self.clock)
        rng = np.random.default_rng(3)
        self.accounts = populate_vaults(self.protocol, 10, rng, min_ratio=1.55, max_ratio=2.0)
        fund_keeper(self.protocol, "keeper", 500 * P, 200_000 * P)

    def test_populated_vaults_are_healthy(self):
        self.assertEqual(len(self.accounts), 10)
        for account in self.accounts:
            self.assertGreaterEqual(self.protocol.queries.collateral_ratio(account), 150)

    def test_keeper_clears_liquidatable_vaults(self):
        self.protocol.set_price(1000 * P)
        eligible = [a for a in self.protocol.queries.liquidatable_vaults(50) if a != "keeper"]

        liquidated = run_keeper(self.protocol, "keeper")

        self.assertEqual(liquidated, len(eligible))
        self.assertEqual(self.protocol.store.totals().total_liquidations, liquidated)
        self.assertEqual(self.protocol.check_invariants(), [])

    def test_simulation_runs(self):
        results = simulate_market_scenario(self.protocol, 5, price_volatility=0.01,
                                           plot_results=False, seed=11)

        for key in ('final_price', 'final_system_debt', 'final_collateral', 'active_vaults',
                    'liquidations', 'ratios', 'history'):
            self.assertIn(key, results)

        self.assertEqual(len(results['history']['price']), 5 * 24)
        self.assertEqual(results['liquidations'], self.protocol.store.totals().total_liquidations)
        self.assertEqual(results['final_price'], self.protocol.price_feed.latest_price())
        self.assertEqual(self.clock.now(), 1_700_000_000 + 5 * 24 * 3600)
        self.assertEqual(self.protocol.check_invariants(), [])

    def test_simulation_is_reproducible(self):
        first = simulate_market_scenario(self.protocol, 2, plot_results=False, seed=5)

        clock = ManualClock(start=1_700_000_000)
        protocol = VaultProtocol(2000 * P, clock=clock)
        populate_vaults(protocol, 10, np.random.default_rng(3), min_ratio=1.55, max_ratio=2.0)
        fund_keeper(protocol, "keeper", 500 * P, 200_000 * P)
        second = simulate_market_scenario(protocol, 2, plot_results=False, seed=5)

        self.assertEqual(first['final_price'], second['final_price'])
        self.assertEqual(first['liquidations'], second['liquidations'])


if __name__ == '__main__':
    unittest.main()
