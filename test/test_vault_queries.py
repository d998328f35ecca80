"""
Unit tests for the read-only query layer.
"""

import unittest
import sys
import os

# Add the core directory to the path
sys.path.append(os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "core"))
from engine_config import PRECISION
from price_feed import ManualClock
from vault_protocol import VaultProtocol

P = PRECISION


class TestVaultQueries(unittest.TestCase):
    def setUp(self):
        """Five vaults at 2000; user2 is the only one that survives a drop to 1200"""
        self.clock = ManualClock(start=10_000)
        self.protocol = VaultProtocol(2000 * P, clock=self.clock)
        self.queries = self.protocol.queries

        for i in range(5):
            account = f"user{i}"
            debt = 500 * P if i == 2 else 1000 * P
            self.protocol.fund(account, P)
            self.protocol.collateral_engine.open_or_increase(account, P, debt)

    def test_vault_info(self):
        info = self.queries.vault_info("user0")

        self.assertEqual(info.account, "user0")
        self.assertEqual(info.collateral_amount, P)
        self.assertEqual(info.debt_amount, 1000 * P)
        self.assertEqual(info.collateral_value, 2000 * P)
        self.assertEqual(info.collateral_ratio, 200)
        self.assertFalse(info.liquidatable)

        self.protocol.set_price(1200 * P)
        self.assertTrue(self.queries.vault_info("user0").liquidatable)

    def test_vault_info_of_unknown_account(self):
        info = self.queries.vault_info("stranger")

        self.assertEqual(info.debt_amount, 0)
        self.assertEqual(info.collateral_ratio, float('inf'))
        self.assertFalse(info.liquidatable)

    def test_system_status(self):
        status = self.queries.system_status()

        self.assertEqual(status.total_collateral, 5 * P)
        self.assertEqual(status.total_debt, 4500 * P)
        self.assertEqual(status.total_collateral_value, 10_000 * P)
        self.assertEqual(status.system_ratio, 222)
        self.assertEqual(status.total_liquidations, 0)
        self.assertEqual(status.vault_count, 5)
        self.assertEqual(status.price, 2000 * P)
        self.assertTrue(status.price_fresh)

        self.clock.advance(3601)
        self.assertFalse(self.queries.system_status().price_fresh)

    def test_system_status_without_debt(self):
        protocol = VaultProtocol(2000 * P, clock=self.clock)

        self.assertEqual(protocol.queries.system_status().system_ratio, float('inf'))

    def test_vault_owners_pagination(self):
        self.assertEqual(self.queries.owner_count(), 5)
        self.assertEqual(self.queries.vault_owners(0, 2), ["user0", "user1"])
        self.assertEqual(self.queries.vault_owners(2, 2), ["user2", "user3"])
        self.assertEqual(self.queries.vault_owners(4, 2), ["user4"])
        self.assertEqual(self.queries.vault_owners(10, 2), [])

        with self.assertRaises(ValueError):
            self.queries.vault_owners(-1, 2)

    def test_collateral_ratios(self):
        ratios = self.queries.collateral_ratios(["user2", "user0", "stranger"])

        self.assertEqual(ratios, [400, 200, float('inf')])

    def test_liquidatable_vaults_respects_cap(self):
        """Scenario E: the scan stops at the cap and never returns a healthy vault"""
        self.protocol.set_price(1200 * P)

        self.assertEqual(self.queries.liquidatable_vaults(2), ["user0", "user1"])
        self.assertEqual(self.queries.liquidatable_vaults(3), ["user0", "user1", "user3"])
        self.assertEqual(self.queries.liquidatable_vaults(10), ["user0", "user1", "user3", "user4"])
        self.assertEqual(self.queries.liquidatable_vaults(0), [])

    def test_no_liquidatable_vaults_when_healthy(self):
        self.assertEqual(self.queries.liquidatable_vaults(10), [])

    def test_max_mintable(self):
        self.assertEqual(self.queries.max_mintable("user0"), 2000 * P * 100 // 150 - 1000 * P)
        self.assertEqual(self.queries.max_mintable("stranger"), 0)

    def test_ratio_summary(self):
        summary = self.queries.ratio_summary()

        self.assertEqual(summary["user2"], 400)
        self.assertEqual(len(summary), 5)


if __name__ == '__main__':
    unittest.main()
