"""
Liquidation Engine for the vault engine model.

Liquidation keeps the system solvent: once a vault's collateralization ratio
falls below LIQUIDATION_THRESHOLD (130%), anyone holding debt tokens can
repay part or all of its debt and receive the vault's collateral at a
LIQUIDATION_BONUS (5%) discount.

The liquidation process follows these steps:
1. Check the vault is eligible (it carries debt and its ratio is under the threshold)
2. Clamp the requested cover to the vault's debt, then price the seizure;
   if the seizure would exceed the collateral, seize all of it and reduce
   the cover to what that collateral buys
3. Pull the covered debt tokens from the liquidator
4. Debit the vault and the system totals, count the liquidation
5. Pay the seized collateral to the liquidator (must succeed)
6. If the vault's debt is gone, refund its leftover collateral to the owner;
   a failed refund parks the collateral in the surplus pool instead
"""

import logging
from dataclasses import dataclass

from engine_base import EngineBase
from engine_errors import AmountTooSmall, VaultNotLiquidatable
from vault_events import VaultEvent
import vault_math

logger = logging.getLogger(__name__)


@dataclass
class LiquidationResult:
    """
    Outcome of a completed liquidation.
    """
    account: str                  # Liquidated vault owner
    liquidator: str               # Account that repaid the debt
    debt_covered: int = 0         # Debt tokens repaid and burned
    collateral_seized: int = 0    # Collateral paid to the liquidator
    collateral_refunded: int = 0  # Leftover collateral paid to the owner
    collateral_parked: int = 0    # Leftover collateral parked after a failed refund
    vault_closed: bool = False    # The vault's debt reached zero


class LiquidationEngine(EngineBase):
    """
    Detects and settles undercollateralized vaults.
    """

    def is_liquidatable(self, account):
        """
        True if the vault carries debt and its ratio is below LIQUIDATION_THRESHOLD.

        A vault without debt has an unbounded ratio and is never liquidatable.
        """
        vault = self.store.get(account)
        return vault_math.is_below_threshold(
            vault.collateral_amount, vault.debt_amount, self.price_feed.latest_price(),
            self.config.liquidation_threshold, self.config.precision
        )

    def _settlement_terms(self, account, vault, debt_to_cover, price):
        """
        Prices a liquidation and applies the acceptance rules shared by
        ``liquidate`` and the profit projection.

        Raises:
            AmountTooSmall: The cover buys nothing, or an unclamped partial
                            cover would leave dust debt
        """
        cfg = self.config
        terms = vault_math.liquidation_terms(
            vault.collateral_amount, vault.debt_amount, debt_to_cover, price,
            cfg.liquidation_bonus, cfg.precision
        )
        if terms.debt_covered == 0:
            raise AmountTooSmall(f"Vault {account} has no collateral left to buy")
        if terms.collateral_seized == 0:
            raise AmountTooSmall(f"Cover of {terms.debt_covered} buys no collateral")

        remaining_debt = vault.debt_amount - terms.debt_covered
        if not terms.collateral_clamped and 0 < remaining_debt < cfg.min_debt:
            raise AmountTooSmall(
                f"Liquidation would leave {remaining_debt} debt, below minimum {cfg.min_debt}"
            )
        return terms

    def liquidate(self, liquidator, account, debt_to_cover):
        """
        Liquidates ``debt_to_cover`` of an undercollateralized vault.

        The liquidator must have approved the engine for the debt tokens. It
        is charged exactly the covered amount, which may be less than
        requested when the vault's debt or collateral runs out.

        Args:
            liquidator: Account repaying the debt
            account: Owner of the vault being liquidated
            debt_to_cover: Debt tokens the liquidator offers to repay

        Returns:
            LiquidationResult describing the settlement

        Raises:
            AmountTooSmall: Non-positive cover, a cover that buys nothing, or
                            a partial cover that would leave dust debt
            VaultNotLiquidatable: The vault is at or above the threshold
            PriceStale: Only when ``check_price_on_liquidation`` is set
            TransferFailed: Pulling the debt tokens or paying the liquidator failed
        """
        if debt_to_cover <= 0:
            raise AmountTooSmall("Debt to cover must be greater than zero")

        cfg = self.config
        with self._operation(account) as op:
            if cfg.check_price_on_liquidation:
                price = self._require_fresh_price()
            else:
                price = self.price_feed.latest_price()

            vault = self.store.get(account)
            if not vault_math.is_below_threshold(vault.collateral_amount, vault.debt_amount, price,
                                                 cfg.liquidation_threshold, cfg.precision):
                ratio = vault_math.collateral_ratio(vault.collateral_amount, vault.debt_amount,
                                                    price, cfg.precision)
                logger.warning(
                    "Rejected liquidation of healthy vault",
                    extra={"event": "liquidation.rejected", "account": account, "ratio": ratio}
                )
                raise VaultNotLiquidatable(
                    f"Vault {account} is not eligible for liquidation, ratio {ratio}% "
                    f">= {cfg.liquidation_threshold}%"
                )

            terms = self._settlement_terms(account, vault, debt_to_cover, price)
            remaining_debt = vault.debt_amount - terms.debt_covered

            self._pull_debt(op, liquidator, terms.debt_covered)

            vault.debt_amount = remaining_debt
            vault.collateral_amount -= terms.collateral_seized

            totals = self.store.totals()
            totals.total_debt -= terms.debt_covered
            totals.total_collateral -= terms.collateral_seized
            totals.total_liquidations += 1

            result = LiquidationResult(
                account=account,
                liquidator=liquidator,
                debt_covered=terms.debt_covered,
                collateral_seized=terms.collateral_seized,
                vault_closed=remaining_debt == 0,
            )

            leftover = 0
            if result.vault_closed and vault.collateral_amount > 0:
                leftover = vault.collateral_amount
                vault.collateral_amount = 0
                totals.total_collateral -= leftover

            self.store.upsert(account, vault)

            op.events.add(VaultEvent.VAULT_LIQUIDATED, account, terms.debt_covered,
                          liquidator=liquidator, collateral_amount=terms.collateral_seized)
            if result.vault_closed:
                op.events.add(VaultEvent.VAULT_CLOSED, account)

            self._send_collateral_or_fail(liquidator, terms.collateral_seized)

            if leftover > 0:
                self._refund_owner(op, account, leftover, result)

        logger.info(
            "Vault liquidated",
            extra={
                "event": "liquidation.settled",
                "account": account,
                "liquidator": liquidator,
                "debt_covered": result.debt_covered,
                "collateral_seized": result.collateral_seized,
            }
        )
        return result

    def _refund_owner(self, op, account, amount, result):
        """Best-effort refund of leftover collateral to the vault owner."""
        if self._send_collateral(account, amount):
            result.collateral_refunded = amount
            op.events.add(VaultEvent.COLLATERAL_REMOVED, account, amount)
            return

        logger.warning(
            "Owner refund failed, collateral parked",
            extra={"event": "surplus.parked", "account": account, "amount": amount}
        )
        self.surplus_pool.account_surplus(account, amount)
        result.collateral_parked = amount
        op.events.add(VaultEvent.SURPLUS_PARKED, account, amount)

    def calculate_liquidation_profit(self, account, debt_to_cover):
        """
        Projects the liquidator's profit without changing any state.

        Mirrors the pricing, clamping and acceptance rules of ``liquidate``
        and returns the value of the seized collateral minus the debt
        covered, floored at zero. Returns 0 for a call ``liquidate`` would
        refuse.
        """
        if debt_to_cover <= 0 or not self.is_liquidatable(account):
            return 0

        price = self.price_feed.latest_price()
        vault = self.store.get(account)
        try:
            terms = self._settlement_terms(account, vault, debt_to_cover, price)
        except AmountTooSmall:
            return 0

        value_received = vault_math.collateral_value(terms.collateral_seized, price,
                                                     self.config.precision)
        return max(0, value_received - terms.debt_covered)
