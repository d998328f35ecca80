"""
Read-only projections over the vault store and the price feed.

Nothing in this module mutates state. Enumeration is a linear scan over the
registry in registration order, which is fine at simulation scale; an index
ordered by collateral ratio would make the liquidatable-vault search
sublinear.
"""

from dataclasses import dataclass
from typing import Dict, List

import vault_math


@dataclass
class VaultInfo:
    """
    Snapshot of one vault at the current price.
    """
    account: str
    collateral_amount: int
    debt_amount: int
    collateral_value: int
    collateral_ratio: float  # Integer percent, or inf without debt
    liquidatable: bool


@dataclass
class SystemStatus:
    """
    Aggregate health of the system at the current price.
    """
    total_collateral: int
    total_debt: int
    total_collateral_value: int
    system_ratio: float  # Integer percent, or inf without debt
    total_liquidations: int
    vault_count: int
    price: int
    price_fresh: bool


class VaultQueries:
    """
    Query layer used by observers, keepers and tests.
    """

    def __init__(self, store, price_feed, surplus_pool, config):
        self.store = store
        self.price_feed = price_feed
        self.surplus_pool = surplus_pool
        self.config = config

    def _ratio(self, vault, price):
        return vault_math.collateral_ratio(vault.collateral_amount, vault.debt_amount, price,
                                           self.config.precision)

    def _liquidatable(self, vault, price):
        return vault_math.is_below_threshold(vault.collateral_amount, vault.debt_amount, price,
                                             self.config.liquidation_threshold,
                                             self.config.precision)

    def collateral_ratio(self, account):
        """Collateralization ratio of the account's vault in integer percent."""
        return self._ratio(self.store.get(account), self.price_feed.latest_price())

    def vault_info(self, account) -> VaultInfo:
        price = self.price_feed.latest_price()
        vault = self.store.get(account)
        return VaultInfo(
            account=account,
            collateral_amount=vault.collateral_amount,
            debt_amount=vault.debt_amount,
            collateral_value=vault_math.collateral_value(vault.collateral_amount, price,
                                                         self.config.precision),
            collateral_ratio=self._ratio(vault, price),
            liquidatable=self._liquidatable(vault, price),
        )

    def system_status(self) -> SystemStatus:
        """Aggregate ratio and counters across all vaults."""
        price = self.price_feed.latest_price()
        totals = self.store.totals()
        return SystemStatus(
            total_collateral=totals.total_collateral,
            total_debt=totals.total_debt,
            total_collateral_value=vault_math.collateral_value(totals.total_collateral, price,
                                                               self.config.precision),
            system_ratio=vault_math.collateral_ratio(totals.total_collateral, totals.total_debt,
                                                     price, self.config.precision),
            total_liquidations=totals.total_liquidations,
            vault_count=self.store.owner_count(),
            price=price,
            price_fresh=self.price_feed.is_fresh(self.config.price_max_age),
        )

    def owner_count(self):
        return self.store.owner_count()

    def vault_owners(self, offset=0, limit=50) -> List[str]:
        """
        One page of registered owners in registration order.

        An offset past the end returns an empty page.
        """
        if offset < 0 or limit < 0:
            raise ValueError("Offset and limit cannot be negative")
        return self.store.owners()[offset:offset + limit]

    def collateral_ratios(self, accounts) -> List[float]:
        """Ratios for several accounts, in the order given."""
        price = self.price_feed.latest_price()
        return [self._ratio(self.store.get(account), price) for account in accounts]

    def liquidatable_vaults(self, max_results) -> List[str]:
        """
        Scans registered owners for liquidatable vaults.

        Stops as soon as ``max_results`` vaults are found, so the result holds
        the earliest-registered eligible owners.
        """
        if max_results <= 0:
            return []

        price = self.price_feed.latest_price()
        found = []
        for account in self.store.owners():
            if self._liquidatable(self.store.get(account), price):
                found.append(account)
                if len(found) >= max_results:
                    break
        return found

    def max_mintable(self, account):
        """Additional debt the vault could mint at the current price."""
        vault = self.store.get(account)
        if vault.collateral_amount == 0:
            return 0
        return vault_math.max_mintable(vault.collateral_amount, vault.debt_amount,
                                       self.price_feed.latest_price(),
                                       self.config.collateral_ratio, self.config.precision)

    def claimable_collateral(self, account):
        """Collateral parked for the account after a failed liquidation refund."""
        return self.surplus_pool.get_collateral(account)

    def ratio_summary(self) -> Dict[str, float]:
        """Ratio of every registered owner, keyed by account."""
        price = self.price_feed.latest_price()
        return {account: self._ratio(self.store.get(account), price)
                for account in self.store.owners()}
