"""
Debt Token Model for the vault engine.

This module simulates the fungible debt token minted against vault collateral.
It handles minting, burning, transfers and allowances. The engine is the only
registered minter; repayments and liquidations pull tokens with an allowance
and then burn them.
"""


class DebtToken:
    """
    Simulates the debt token ledger consumed by the vault engine.
    """

    def __init__(self, initial_supply=0):
        # Total token supply
        self.total_supply = initial_supply

        # Mapping of accounts to token balances
        self.balances = {}

        # Mapping of (owner, spender) to remaining allowance
        self.allowances = {}

        # Accounts that are allowed to mint tokens
        self.minters = set()

        # Owner of the token
        self.owner = None

    def set_owner(self, owner):
        """Sets the owner of the token."""
        self.owner = owner

    def add_minter(self, minter):
        """
        Adds an account to the set of allowed minters.
        Only callable once an owner is set.
        """
        if not self.owner:
            raise ValueError("Owner not set")

        self.minters.add(minter)

    def remove_minter(self, minter):
        """Removes an account from the set of allowed minters."""
        if not self.owner:
            raise ValueError("Owner not set")

        self.minters.discard(minter)

    def balance_of(self, account):
        """Returns the token balance of the given account."""
        return self.balances.get(account, 0)

    def allowance(self, owner, spender):
        """Returns how much ``spender`` may still pull from ``owner``."""
        return self.allowances.get((owner, spender), 0)

    def approve(self, owner, spender, amount):
        """
        Sets the allowance of ``spender`` over ``owner``'s tokens.

        The new amount replaces any previous allowance.

        Returns:
            True if successful
        """
        if amount < 0:
            raise ValueError("Allowance cannot be negative")

        self.allowances[(owner, spender)] = amount
        return True

    def transfer(self, sender, recipient, amount):
        """
        Transfers tokens from sender to recipient.

        Args:
            sender: Account sending the tokens
            recipient: Account receiving the tokens
            amount: Amount of tokens to transfer

        Returns:
            True if successful
        """
        if amount <= 0:
            raise ValueError("Amount must be greater than zero")

        sender_balance = self.balances.get(sender, 0)

        if sender_balance < amount:
            raise ValueError("Insufficient balance")

        self.balances[sender] = sender_balance - amount
        self.balances[recipient] = self.balances.get(recipient, 0) + amount

        return True

    def transfer_from(self, spender, owner, recipient, amount):
        """
        Moves tokens from ``owner`` to ``recipient`` using ``spender``'s allowance.

        Args:
            spender: Account spending the allowance
            owner: Account whose tokens move
            recipient: Account receiving the tokens
            amount: Amount of tokens to move

        Returns:
            True if successful
        """
        current_allowance = self.allowance(owner, spender)

        if current_allowance < amount:
            raise ValueError("Insufficient allowance")

        self.transfer(owner, recipient, amount)
        self.allowances[(owner, spender)] = current_allowance - amount

        return True

    def mint(self, minter, recipient, amount):
        """
        Mints new tokens to the recipient account.
        Only callable by registered minters.

        Args:
            minter: Account requesting the mint
            recipient: Account receiving the minted tokens
            amount: Amount of tokens to mint

        Returns:
            True if successful
        """
        if minter not in self.minters:
            raise ValueError(f"{minter} is not an allowed minter")

        if amount <= 0:
            raise ValueError("Amount must be greater than zero")

        self.balances[recipient] = self.balances.get(recipient, 0) + amount
        self.total_supply += amount

        return True

    def burn(self, from_account, amount):
        """
        Burns tokens from the account's own balance.

        Returns:
            True if successful
        """
        if amount <= 0:
            raise ValueError("Amount must be greater than zero")

        from_balance = self.balances.get(from_account, 0)

        if from_balance < amount:
            raise ValueError("Insufficient balance")

        self.balances[from_account] = from_balance - amount
        self.total_supply -= amount

        return True

    def burn_from(self, spender, from_account, amount):
        """
        Burns tokens from another account using ``spender``'s allowance.

        Returns:
            True if successful
        """
        current_allowance = self.allowance(from_account, spender)

        if current_allowance < amount:
            raise ValueError("Insufficient allowance")

        self.burn(from_account, amount)
        self.allowances[(from_account, spender)] = current_allowance - amount

        return True
