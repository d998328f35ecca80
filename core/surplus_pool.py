"""
Surplus Pool Model for the vault engine.

This module records collateral that a liquidation could not refund to the
vault owner because the refund transfer failed. The collateral itself stays
in engine custody; the pool only tracks who may claim it.
"""

from engine_errors import NothingToClaim


class SurplusPool:
    """
    Tracks parked collateral per account.
    """

    def __init__(self):
        # Total collateral parked in this pool
        self.coll_balance = 0

        # Mapping of account to claimable collateral
        self.balances = {}

    def get_coll_balance(self):
        """Returns the total collateral parked in the pool."""
        return self.coll_balance

    def get_collateral(self, account):
        """Returns the claimable collateral balance for an account."""
        return self.balances.get(account, 0)

    def account_surplus(self, account, amount):
        """
        Records parked collateral for an account.
        Called by the liquidation engine when an owner refund fails.
        """
        if amount <= 0:
            raise ValueError(f"Invalid collateral amount: {amount}")

        self.balances[account] = self.balances.get(account, 0) + amount
        self.coll_balance += amount

        return True

    def restore(self, account, amount):
        """Puts back a claimed amount after a failed payout."""
        self.account_surplus(account, amount)

    def claim_coll(self, account):
        """
        Clears an account's parked collateral and returns the amount.
        The caller is responsible for paying it out.
        """
        claimable_coll = self.balances.get(account, 0)

        if claimable_coll <= 0:
            raise NothingToClaim(f"No parked collateral for {account}")

        del self.balances[account]
        self.coll_balance -= claimable_coll

        return claimable_coll
