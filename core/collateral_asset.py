"""
Collateral Asset Model for the vault engine.

This module simulates the native volatile asset posted as collateral. Unlike
the debt token, a transfer can hand control to the recipient: accounts may
register a receive hook that runs after the balance moves. A hook can call
back into the engine, or refuse the payment by returning False, in which case
the move is reverted and ``transfer`` reports failure. A hook that raises is
reverted the same way before the exception propagates.
"""


def _reject(sender, amount):
    return False


class CollateralAsset:
    """
    Simulates balances of the collateral asset, including the engine's custody.
    """

    def __init__(self):
        # Mapping of accounts to asset balances
        self.balances = {}

        # Mapping of accounts to receive hooks: hook(sender, amount) -> bool
        self.receivers = {}

    def credit(self, account, amount):
        """
        Creates asset out of thin air for an account.
        Used by scenarios to fund users.
        """
        if amount <= 0:
            raise ValueError("Amount must be greater than zero")

        self.balances[account] = self.balances.get(account, 0) + amount

    def balance_of(self, account):
        """Returns the asset balance of the given account."""
        return self.balances.get(account, 0)

    def total_held(self):
        """Returns the sum of all balances."""
        return sum(self.balances.values())

    def set_receiver(self, account, hook):
        """Registers a hook called whenever ``account`` receives the asset."""
        self.receivers[account] = hook

    def clear_receiver(self, account):
        """Removes any receive hook registered for ``account``."""
        self.receivers.pop(account, None)

    def reject_incoming(self, account):
        """Makes every incoming transfer to ``account`` fail."""
        self.set_receiver(account, _reject)

    def transfer(self, sender, recipient, amount):
        """
        Moves the asset from sender to recipient.

        Args:
            sender: Account sending the asset
            recipient: Account receiving the asset
            amount: Amount to move

        Returns:
            True if the recipient accepted the transfer, False otherwise
        """
        if amount <= 0:
            raise ValueError("Amount must be greater than zero")

        self._move(sender, recipient, amount)

        hook = self.receivers.get(recipient)
        if hook is None:
            return True

        try:
            accepted = hook(sender, amount)
        except Exception:
            self._move(recipient, sender, amount)
            raise

        if accepted is False:
            # Recipient refused the payment
            self._move(recipient, sender, amount)
            return False

        return True

    def reverse(self, sender, recipient, amount):
        """
        Undoes a completed transfer from ``sender`` to ``recipient``.
        No receive hook runs.
        """
        if amount <= 0:
            raise ValueError("Amount must be greater than zero")

        self._move(recipient, sender, amount)

    def _move(self, sender, recipient, amount):
        sender_balance = self.balances.get(sender, 0)

        if sender_balance < amount:
            raise ValueError("Insufficient balance")

        self.balances[sender] = sender_balance - amount
        self.balances[recipient] = self.balances.get(recipient, 0) + amount
