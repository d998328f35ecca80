"""
Vault Protocol Model.

This main module combines the individual components into a complete model
of the collateralized-debt system: price feed, debt token, collateral asset,
vault store, surplus pool, event log, both engines and the query layer. It
can be used to run scenarios and to check the accounting invariants.
"""

import logging

from collateral_asset import CollateralAsset
from collateral_engine import CollateralEngine
from debt_token import DebtToken
from engine_config import DEFAULT_CONFIG
from liquidation_engine import LiquidationEngine
from price_feed import MockPriceFeed
from surplus_pool import SurplusPool
from vault_events import EventLog
from vault_queries import VaultQueries
from vault_store import VaultStore

logger = logging.getLogger(__name__)


class VaultProtocol:
    """
    Complete model of the vault engine with its collaborators.
    """

    def __init__(self, initial_price, config=None, clock=None):
        self.config = config or DEFAULT_CONFIG

        # External collaborators
        self.price_feed = MockPriceFeed(initial_price, clock)
        self.debt_token = DebtToken()
        self.collateral_asset = CollateralAsset()

        # Engine state
        self.store = VaultStore()
        self.surplus_pool = SurplusPool()
        self.events = EventLog()

        components = (self.store, self.price_feed, self.debt_token, self.collateral_asset,
                      self.events, self.surplus_pool, self.config)
        self.collateral_engine = CollateralEngine(*components)
        self.liquidation_engine = LiquidationEngine(*components)
        self.queries = VaultQueries(self.store, self.price_feed, self.surplus_pool, self.config)

        # The engine is the only account allowed to mint
        self.debt_token.set_owner(self.config.engine_account)
        self.debt_token.add_minter(self.config.engine_account)

    @property
    def engine_account(self):
        return self.config.engine_account

    # --- Scenario helpers ---

    def fund(self, account, amount):
        """Gives an account collateral to deposit."""
        self.collateral_asset.credit(account, amount)

    def approve_engine(self, account, amount):
        """Lets the engine pull ``amount`` debt tokens from ``account``."""
        return self.debt_token.approve(account, self.engine_account, amount)

    def set_price(self, new_price):
        self.price_feed.update_price(new_price)

    # --- Invariants ---

    def check_invariants(self):
        """
        Recomputes the aggregates from the vaults and checks the dust rule.

        Returns:
            List of violation messages; empty when the state is consistent
        """
        violations = []
        totals = self.store.totals()
        vaults = [(account, self.store.get(account)) for account in self.store.owners()]

        collateral_sum = sum(vault.collateral_amount for _, vault in vaults)
        debt_sum = sum(vault.debt_amount for _, vault in vaults)

        if collateral_sum != totals.total_collateral:
            violations.append(
                f"total_collateral {totals.total_collateral} != sum of vaults {collateral_sum}"
            )
        if debt_sum != totals.total_debt:
            violations.append(f"total_debt {totals.total_debt} != sum of vaults {debt_sum}")

        for account, vault in vaults:
            if vault.collateral_amount < 0 or vault.debt_amount < 0:
                violations.append(f"{account} has a negative balance")
            # An emptied vault may keep residual bad debt after a clamped liquidation
            if 0 < vault.debt_amount < self.config.min_debt and vault.collateral_amount > 0:
                violations.append(f"{account} carries dust debt {vault.debt_amount}")

        custody = self.collateral_asset.balance_of(self.engine_account)
        expected_custody = totals.total_collateral + self.surplus_pool.get_coll_balance()
        if custody != expected_custody:
            violations.append(f"engine custody {custody} != vault and parked collateral {expected_custody}")

        if violations:
            logger.warning("Invariant violations found", extra={"event": "invariants.violated"})
        return violations
