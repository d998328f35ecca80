"""
Collateral Engine for the vault engine model.

This module handles the lifecycle of a vault from its owner's side: opening
or topping up a vault, minting more debt, repaying with a collateral release,
withdrawing collateral and claiming collateral parked by a liquidation.

Every operation enforces the same rules:
1. A vault carrying debt must be collateralized at COLLATERAL_RATIO (150%)
   after an owner-initiated change
2. Debt is either zero or at least MIN_DEBT
3. The system totals move by exactly the amounts the vault moves
4. Outbound collateral transfers happen last, after all bookkeeping; a failed
   transfer undoes the whole operation
"""

import logging

from engine_base import EngineBase
from engine_errors import AmountTooLarge, AmountTooSmall, InsufficientCollateral
from vault_events import VaultEvent
import vault_math

logger = logging.getLogger(__name__)


class CollateralEngine(EngineBase):
    """
    Owner-side vault operations.
    """

    def open_or_increase(self, account, collateral_delta, mint_amount=0):
        """
        Deposits collateral and optionally mints debt against it.

        A vault without debt is opened fresh and must mint at least MIN_DEBT.
        An existing vault may be topped up without minting.

        Args:
            account: Vault owner
            collateral_delta: Collateral to deposit, must be positive
            mint_amount: Debt tokens to mint to the owner

        Raises:
            AmountTooSmall: Zero deposit, negative mint, or resulting debt below MIN_DEBT
            PriceStale: The price is older than the allowed age
            InsufficientCollateral: The resulting vault is under COLLATERAL_RATIO
            TransferFailed: The collateral could not be received
        """
        if collateral_delta <= 0:
            raise AmountTooSmall("Collateral deposit must be greater than zero")
        if mint_amount < 0:
            raise AmountTooSmall("Mint amount cannot be negative")

        cfg = self.config
        with self._operation(account) as op:
            vault = self.store.get(account)
            is_opening = vault.debt_amount == 0

            if is_opening and mint_amount < cfg.min_debt:
                raise AmountTooSmall(
                    f"Opening a vault requires minting at least {cfg.min_debt}, got {mint_amount}"
                )

            price = self._require_fresh_price()

            new_collateral = vault.collateral_amount + collateral_delta
            new_debt = vault.debt_amount + mint_amount
            if 0 < new_debt < cfg.min_debt:
                raise AmountTooSmall(f"Debt must be at least {cfg.min_debt}, would be {new_debt}")

            if not vault_math.meets_ratio(new_collateral, new_debt, price,
                                          cfg.collateral_ratio, cfg.precision):
                ratio = vault_math.collateral_ratio(new_collateral, new_debt, price, cfg.precision)
                raise InsufficientCollateral(
                    f"Insufficient collateral ratio {ratio}%, must be at least {cfg.collateral_ratio}%"
                )

            self._pull_collateral(op, account, collateral_delta)

            self.store.register_if_new(account)
            vault.collateral_amount = new_collateral
            vault.debt_amount = new_debt
            self.store.upsert(account, vault)

            totals = self.store.totals()
            totals.total_collateral += collateral_delta
            totals.total_debt += mint_amount

            self._mint_debt(account, mint_amount)

            if is_opening:
                op.events.add(VaultEvent.VAULT_OPENED, account, mint_amount)
            op.events.add(VaultEvent.COLLATERAL_ADDED, account, collateral_delta)
            if mint_amount > 0:
                op.events.add(VaultEvent.DEBT_INCREASED, account, mint_amount)

    def mint_more(self, account, amount):
        """
        Mints additional debt against the vault's existing collateral.

        Raises:
            AmountTooSmall: Zero amount, or a first mint below MIN_DEBT
            InsufficientCollateral: No collateral, or the ratio would drop under COLLATERAL_RATIO
            PriceStale: The price is older than the allowed age
        """
        if amount <= 0:
            raise AmountTooSmall("Mint amount must be greater than zero")

        cfg = self.config
        with self._operation(account) as op:
            vault = self.store.get(account)
            if vault.collateral_amount == 0:
                raise InsufficientCollateral(f"{account} has no collateral to mint against")

            new_debt = vault.debt_amount + amount
            if new_debt < cfg.min_debt:
                raise AmountTooSmall(f"Debt must be at least {cfg.min_debt}, would be {new_debt}")

            price = self._require_fresh_price()

            if not vault_math.meets_ratio(vault.collateral_amount, new_debt, price,
                                          cfg.collateral_ratio, cfg.precision):
                ratio = vault_math.collateral_ratio(vault.collateral_amount, new_debt, price,
                                                    cfg.precision)
                raise InsufficientCollateral(
                    f"Insufficient collateral ratio {ratio}%, must be at least {cfg.collateral_ratio}%"
                )

            vault.debt_amount = new_debt
            self.store.upsert(account, vault)
            self.store.totals().total_debt += amount

            self._mint_debt(account, amount)
            op.events.add(VaultEvent.DEBT_INCREASED, account, amount)

    def repay_and_withdraw(self, account, repay_amount):
        """
        Repays debt and releases collateral.

        Repaying the whole debt closes the vault and returns all collateral
        without consulting the price. A partial repayment releases
        WITHDRAWAL_RELEASE_PERCENT of the collateral in excess of what the
        remaining debt requires at COLLATERAL_RATIO; it needs a fresh price.

        The engine pulls the repayment with the owner's allowance and burns it
        once the collateral payout succeeds.

        Returns:
            Collateral released to the owner

        Raises:
            AmountTooSmall: Zero repayment, or remaining debt would be dust
            AmountTooLarge: Repayment exceeds the vault's debt
            PriceStale: Partial repayment on a stale price
            TransferFailed: Pulling the repayment or paying out collateral failed
        """
        if repay_amount <= 0:
            raise AmountTooSmall("Repay amount must be greater than zero")

        cfg = self.config
        with self._operation(account) as op:
            vault = self.store.get(account)
            if repay_amount > vault.debt_amount:
                raise AmountTooLarge(
                    f"Repay amount {repay_amount} exceeds debt {vault.debt_amount}"
                )

            remaining_debt = vault.debt_amount - repay_amount
            full_close = remaining_debt == 0

            if full_close:
                released = vault.collateral_amount
            else:
                if remaining_debt < cfg.min_debt:
                    raise AmountTooSmall(
                        f"Remaining debt {remaining_debt} is below minimum {cfg.min_debt}"
                    )
                price = self._require_fresh_price()
                released = vault_math.releasable_collateral(
                    vault.collateral_amount, remaining_debt, price,
                    cfg.collateral_ratio, cfg.withdrawal_release_percent, cfg.precision
                )

            self._pull_debt(op, account, repay_amount)

            vault.debt_amount = remaining_debt
            vault.collateral_amount -= released
            self.store.upsert(account, vault)

            totals = self.store.totals()
            totals.total_debt -= repay_amount
            totals.total_collateral -= released

            op.events.add(VaultEvent.DEBT_DECREASED, account, repay_amount)
            if released > 0:
                op.events.add(VaultEvent.COLLATERAL_REMOVED, account, released)
            if full_close:
                op.events.add(VaultEvent.VAULT_CLOSED, account)

            if released > 0:
                self._send_collateral_or_fail(account, released)

        return released

    def remove_collateral(self, account, amount):
        """
        Withdraws collateral from the vault.

        If the vault carries debt the remaining collateral must still meet
        COLLATERAL_RATIO. The price is not checked for freshness here unless
        the config asks for it.

        Raises:
            AmountTooSmall: Zero amount
            AmountTooLarge: More than the vault holds
            InsufficientCollateral: The remaining collateral would break the ratio
            PriceStale: Only when ``check_price_on_withdrawal`` is set
            TransferFailed: The collateral payout failed
        """
        if amount <= 0:
            raise AmountTooSmall("Withdrawal amount must be greater than zero")

        cfg = self.config
        with self._operation(account) as op:
            vault = self.store.get(account)
            if amount > vault.collateral_amount:
                raise AmountTooLarge(
                    f"Cannot withdraw {amount}, vault holds {vault.collateral_amount}"
                )

            new_collateral = vault.collateral_amount - amount
            if vault.debt_amount > 0:
                if cfg.check_price_on_withdrawal:
                    price = self._require_fresh_price()
                else:
                    price = self.price_feed.latest_price()
                if not vault_math.meets_ratio(new_collateral, vault.debt_amount, price,
                                              cfg.collateral_ratio, cfg.precision):
                    ratio = vault_math.collateral_ratio(new_collateral, vault.debt_amount, price,
                                                        cfg.precision)
                    raise InsufficientCollateral(
                        f"Withdrawal would leave ratio {ratio}%, must be at least {cfg.collateral_ratio}%"
                    )

            vault.collateral_amount = new_collateral
            self.store.upsert(account, vault)
            self.store.totals().total_collateral -= amount

            op.events.add(VaultEvent.COLLATERAL_REMOVED, account, amount)
            if vault.is_empty():
                op.events.add(VaultEvent.VAULT_CLOSED, account)

            self._send_collateral_or_fail(account, amount)

    def claim_parked_collateral(self, account):
        """
        Pays out collateral parked after a failed liquidation refund.

        Returns:
            Collateral paid out

        Raises:
            NothingToClaim: Nothing is parked for the account
            TransferFailed: The payout failed; the collateral stays parked
        """
        with self._operation() as op:
            amount = self.surplus_pool.claim_coll(account)
            try:
                op.events.add(VaultEvent.SURPLUS_CLAIMED, account, amount)
                self._send_collateral_or_fail(account, amount)
            except Exception:
                self.surplus_pool.restore(account, amount)
                raise
        return amount
