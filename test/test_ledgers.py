"""
Unit tests for the external collaborators: debt token, collateral asset and price feed.
"""

import unittest
import sys
import os

# Add the core directory to the path
sys.path.append(os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "core"))
from collateral_asset import CollateralAsset
from debt_token import DebtToken
from price_feed import ManualClock, MockPriceFeed


class TestDebtToken(unittest.TestCase):
    def setUp(self):
        self.token = DebtToken()
        self.token.set_owner("engine")
        self.token.add_minter("engine")

    def test_mint_requires_minter(self):
        with self.assertRaises(ValueError) as context:
            self.token.mint("mallory", "mallory", 100)

        self.assertIn("not an allowed minter", str(context.exception))
        self.assertEqual(self.token.total_supply, 0)

    def test_add_minter_requires_owner(self):
        token = DebtToken()

        with self.assertRaises(ValueError):
            token.add_minter("engine")

    def test_mint_and_burn(self):
        self.token.mint("engine", "alice", 100)
        self.token.burn("alice", 40)

        self.assertEqual(self.token.balance_of("alice"), 60)
        self.assertEqual(self.token.total_supply, 60)

    def test_burn_more_than_balance(self):
        self.token.mint("engine", "alice", 10)

        with self.assertRaises(ValueError) as context:
            self.token.burn("alice", 11)

        self.assertIn("insufficient balance", str(context.exception).lower())

    def test_transfer_rejects_zero(self):
        with self.assertRaises(ValueError):
            self.token.transfer("alice", "bob", 0)

    def test_transfer_from_consumes_allowance(self):
        self.token.mint("engine", "alice", 100)
        self.assertTrue(self.token.approve("alice", "engine", 70))

        self.assertTrue(self.token.transfer_from("engine", "alice", "engine", 50))

        self.assertEqual(self.token.balance_of("alice"), 50)
        self.assertEqual(self.token.balance_of("engine"), 50)
        self.assertEqual(self.token.allowance("alice", "engine"), 20)

    def test_transfer_from_without_allowance(self):
        self.token.mint("engine", "alice", 100)

        with self.assertRaises(ValueError) as context:
            self.token.transfer_from("engine", "alice", "engine", 1)

        self.assertIn("insufficient allowance", str(context.exception).lower())
        self.assertEqual(self.token.balance_of("alice"), 100)

    def test_burn_from(self):
        self.token.mint("engine", "alice", 100)
        self.token.approve("alice", "engine", 30)

        self.token.burn_from("engine", "alice", 30)

        self.assertEqual(self.token.balance_of("alice"), 70)
        self.assertEqual(self.token.total_supply, 70)
        self.assertEqual(self.token.allowance("alice", "engine"), 0)


class TestCollateralAsset(unittest.TestCase):
    def setUp(self):
        self.asset = CollateralAsset()
        self.asset.credit("alice", 100)

    def test_transfer(self):
        self.assertTrue(self.asset.transfer("alice", "bob", 40))

        self.assertEqual(self.asset.balance_of("alice"), 60)
        self.assertEqual(self.asset.balance_of("bob"), 40)
        self.assertEqual(self.asset.total_held(), 100)

    def test_insufficient_balance_raises(self):
        with self.assertRaises(ValueError):
            self.asset.transfer("alice", "bob", 101)

    def test_rejecting_recipient_reverts_move(self):
        self.asset.reject_incoming("bob")

        self.assertFalse(self.asset.transfer("alice", "bob", 40))

        self.assertEqual(self.asset.balance_of("alice"), 100)
        self.assertEqual(self.asset.balance_of("bob"), 0)

    def test_receive_hook_sees_updated_balance(self):
        seen = []
        self.asset.set_receiver("bob", lambda sender, amount: seen.append(self.asset.balance_of("bob")))

        self.assertTrue(self.asset.transfer("alice", "bob", 25))
        self.assertEqual(seen, [25])

        self.asset.clear_receiver("bob")
        self.asset.transfer("alice", "bob", 5)
        self.assertEqual(seen, [25])

    def test_raising_hook_reverts_move(self):
        def on_receive(sender, amount):
            raise RuntimeError("hook failed")

        self.asset.set_receiver("bob", on_receive)

        with self.assertRaises(RuntimeError):
            self.asset.transfer("alice", "bob", 40)

        self.assertEqual(self.asset.balance_of("alice"), 100)
        self.assertEqual(self.asset.balance_of("bob"), 0)

    def test_reverse_skips_hooks(self):
        self.asset.transfer("alice", "bob", 40)
        self.asset.reject_incoming("alice")

        self.asset.reverse("alice", "bob", 40)

        self.assertEqual(self.asset.balance_of("alice"), 100)
        self.assertEqual(self.asset.balance_of("bob"), 0)


class TestMockPriceFeed(unittest.TestCase):
    def setUp(self):
        self.clock = ManualClock(start=1000)
        self.feed = MockPriceFeed(2000, self.clock)

    def test_latest_price(self):
        self.assertEqual(self.feed.latest_price(), 2000)
        self.assertEqual(self.feed.last_updated, 1000)

    def test_freshness_boundary(self):
        self.clock.advance(3600)
        self.assertTrue(self.feed.is_fresh(3600))

        self.clock.advance(1)
        self.assertFalse(self.feed.is_fresh(3600))
        self.assertEqual(self.feed.age(), 3601)

    def test_update_refreshes_timestamp(self):
        self.clock.advance(5000)
        self.feed.update_price(1200)

        self.assertEqual(self.feed.latest_price(), 1200)
        self.assertTrue(self.feed.is_fresh(0))

    def test_set_last_updated_ages_feed(self):
        self.feed.set_last_updated(0)

        self.assertFalse(self.feed.is_fresh(999))

    def test_rejects_non_positive_price(self):
        with self.assertRaises(ValueError):
            self.feed.update_price(0)
        with self.assertRaises(ValueError):
            MockPriceFeed(-1, self.clock)

    def test_clock_cannot_go_backwards(self):
        with self.assertRaises(ValueError):
            self.clock.advance(-1)


if __name__ == '__main__':
    unittest.main()
