"""
Vault Store for the vault engine.

This module holds every vault record, the system-wide aggregates and the
registry of accounts that ever opened a vault. It is a plain keyed store:
the engines validate, and they keep the aggregates in step with the vaults
at each mutation site.
"""

import threading
from dataclasses import dataclass, field, replace
from typing import Dict, List, Tuple


@dataclass
class Vault:
    """
    Represents an account's vault.

    A vault records the collateral an account has posted and the debt it has
    minted against it. A vault with neither collateral nor debt is
    economically inert; its record may stay in the store.
    """
    collateral_amount: int = 0  # Collateral asset, base units
    debt_amount: int = 0        # Debt token, base units

    def is_empty(self) -> bool:
        return self.collateral_amount == 0 and self.debt_amount == 0


@dataclass
class SystemTotals:
    """
    Aggregate state across all vaults.

    ``total_collateral`` and ``total_debt`` always equal the sums over all
    vaults. ``total_liquidations`` counts completed liquidation calls.
    """
    total_collateral: int = 0
    total_debt: int = 0
    total_liquidations: int = 0


@dataclass
class Savepoint:
    """State captured before an operation so it can be restored on failure."""
    vaults: Dict[str, Tuple[bool, Vault]] = field(default_factory=dict)
    totals: SystemTotals = field(default_factory=SystemTotals)
    registry_length: int = 0


class VaultStore:
    """
    Keyed store of vaults plus aggregate counters.

    ``lock`` is held by every state-changing engine operation and
    ``in_operation`` marks one as in flight. The lock is re-entrant so a
    collaborator hook on the same thread can still read the store; the
    engines refuse to start a second operation while the flag is set.
    """

    def __init__(self):
        self._vaults: Dict[str, Vault] = {}
        self._totals = SystemTotals()

        # Registry of accounts that ever opened a vault, in order
        self._owners: List[str] = []
        self._owner_set = set()

        self.lock = threading.RLock()
        self.in_operation = False

    def get(self, account: str) -> Vault:
        """Returns a copy of the account's vault, zero-valued if absent."""
        vault = self._vaults.get(account)
        if vault is None:
            return Vault()
        return replace(vault)

    def upsert(self, account: str, vault: Vault) -> None:
        """Stores the vault for the account, replacing any previous record."""
        self._vaults[account] = replace(vault)

    def totals(self) -> SystemTotals:
        """Returns the live aggregate counters."""
        return self._totals

    def register_if_new(self, account: str) -> bool:
        """
        Adds the account to the registry exactly once.

        Returns:
            True if the account was newly registered
        """
        if account in self._owner_set:
            return False
        self._owner_set.add(account)
        self._owners.append(account)
        return True

    def is_registered(self, account: str) -> bool:
        return account in self._owner_set

    def owners(self) -> List[str]:
        """Returns the registered accounts in registration order."""
        return list(self._owners)

    def owner_count(self) -> int:
        return len(self._owners)

    def owner_at(self, index: int) -> str:
        if index < 0 or index >= len(self._owners):
            raise IndexError("Index out of range")
        return self._owners[index]

    # --- Rollback support ---

    def savepoint(self, *accounts: str) -> Savepoint:
        """Captures the named vaults, the totals and the registry length."""
        captured = {}
        for account in accounts:
            existing = self._vaults.get(account)
            captured[account] = (existing is not None, replace(existing) if existing else Vault())
        return Savepoint(
            vaults=captured,
            totals=replace(self._totals),
            registry_length=len(self._owners),
        )

    def rollback(self, savepoint: Savepoint) -> None:
        """Restores the state captured by ``savepoint``."""
        for account, (existed, vault) in savepoint.vaults.items():
            if existed:
                self._vaults[account] = vault
            else:
                self._vaults.pop(account, None)

        self._totals.total_collateral = savepoint.totals.total_collateral
        self._totals.total_debt = savepoint.totals.total_debt
        self._totals.total_liquidations = savepoint.totals.total_liquidations

        for account in self._owners[savepoint.registry_length:]:
            self._owner_set.discard(account)
        del self._owners[savepoint.registry_length:]
