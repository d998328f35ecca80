"""
Shared plumbing for the collateral and liquidation engines.

Both engines act as one custodian: they hold collateral and pulled debt
tokens under the same engine account, share the vault store and publish to
the same event log. This module wires those collaborators together and runs
each state-changing operation as a unit: effects are applied under the store
lock, outbound transfers come last, and any failure restores the store
savepoint and hands pulled debt tokens and collateral back to their payer.
Operations never nest; a hook that tries to start one while another is in
flight gets ReentrantCall.
"""

import logging
from contextlib import contextmanager

from engine_config import DEFAULT_CONFIG
from engine_errors import PriceStale, ReentrantCall, TransferFailed
from vault_events import PendingEvents

logger = logging.getLogger(__name__)


class Operation:
    """Bookkeeping for one in-flight engine operation."""

    def __init__(self, savepoint, events):
        self.savepoint = savepoint
        self.events = events
        self.pulled_debt = []  # (payer, amount) held in engine custody
        self.pulled_collateral = []  # (payer, amount) received this operation


class EngineBase:
    """
    Holds the collaborators every engine needs.
    """

    def __init__(self, store, price_feed, debt_token, collateral_asset, event_log,
                 surplus_pool, config=None):
        self.store = store
        self.price_feed = price_feed
        self.debt_token = debt_token
        self.collateral_asset = collateral_asset
        self.events = event_log
        self.surplus_pool = surplus_pool
        self.config = config or DEFAULT_CONFIG

    @property
    def account(self):
        """Custody account of the engine."""
        return self.config.engine_account

    # --- Price ---

    def _require_fresh_price(self):
        """Returns the latest price, refusing one older than the allowed age."""
        if not self.price_feed.is_fresh(self.config.price_max_age):
            logger.debug(
                "Rejected stale price",
                extra={"event": "price.stale", "age": self.price_feed.age()}
            )
            raise PriceStale(
                f"Price is {self.price_feed.age()}s old, "
                f"maximum age is {self.config.price_max_age}s"
            )
        return self.price_feed.latest_price()

    # --- Operation framing ---

    @contextmanager
    def _operation(self, *accounts):
        """
        Runs an operation with exclusive access to the store.

        On any exception the touched vaults, the totals and the registry are
        restored, pulled debt tokens and collateral are returned and staged
        events dropped. On success pulled debt tokens are burned and events
        published once the operation is no longer in flight.

        Raises:
            ReentrantCall: Another operation is in flight on this store
        """
        with self.store.lock:
            if self.store.in_operation:
                logger.warning(
                    "Rejected nested operation",
                    extra={"event": "operation.reentrant", "accounts": accounts}
                )
                raise ReentrantCall("Cannot start an operation while another is in flight")

            self.store.in_operation = True
            try:
                op = Operation(self.store.savepoint(*accounts), PendingEvents(self.events))
                try:
                    yield op
                except Exception:
                    self.store.rollback(op.savepoint)
                    self._return_pulled_debt(op)
                    self._return_pulled_collateral(op)
                    op.events.discard()
                    raise

                self._burn_pulled_debt(op)
            finally:
                self.store.in_operation = False

            op.events.publish()

    # --- Debt token movements ---

    def _pull_debt(self, op, payer, amount):
        """
        Moves ``amount`` debt tokens from ``payer`` into engine custody.

        The tokens are burned when the operation commits.
        """
        try:
            moved = self.debt_token.transfer_from(self.account, payer, self.account, amount)
        except ValueError as exc:
            raise TransferFailed(f"Could not pull {amount} debt tokens from {payer}: {exc}") from exc
        if not moved:
            raise TransferFailed(f"Could not pull {amount} debt tokens from {payer}")
        op.pulled_debt.append((payer, amount))

    def _burn_pulled_debt(self, op):
        total = sum(amount for _, amount in op.pulled_debt)
        if total > 0:
            self.debt_token.burn(self.account, total)
        op.pulled_debt = []

    def _return_pulled_debt(self, op):
        """Hands pulled tokens back and reinstates the allowance they used."""
        for payer, amount in op.pulled_debt:
            self.debt_token.transfer(self.account, payer, amount)
            restored = self.debt_token.allowance(payer, self.account) + amount
            self.debt_token.approve(payer, self.account, restored)
        op.pulled_debt = []

    def _mint_debt(self, recipient, amount):
        if amount > 0:
            self.debt_token.mint(self.account, recipient, amount)

    # --- Collateral movements ---

    def _pull_collateral(self, op, payer, amount):
        """Moves collateral from ``payer`` into engine custody."""
        try:
            accepted = self.collateral_asset.transfer(payer, self.account, amount)
        except ValueError as exc:
            raise TransferFailed(f"Could not receive {amount} collateral from {payer}: {exc}") from exc
        if not accepted:
            raise TransferFailed(f"Engine refused {amount} collateral from {payer}")
        op.pulled_collateral.append((payer, amount))

    def _return_pulled_collateral(self, op):
        for payer, amount in op.pulled_collateral:
            self.collateral_asset.reverse(payer, self.account, amount)
        op.pulled_collateral = []

    def _send_collateral(self, recipient, amount):
        """
        Best-effort payout out of custody.

        A hook that raises counts as a refusal; the ledger has already put
        the collateral back in custody when the exception reaches us.

        Returns:
            True if the recipient accepted it, False otherwise
        """
        try:
            return self.collateral_asset.transfer(self.account, recipient, amount)
        except Exception:
            logger.exception("Collateral payout of %s to %s raised", amount, recipient)
            return False

    def _send_collateral_or_fail(self, recipient, amount):
        """Payout that must succeed; any refusal aborts the operation."""
        try:
            accepted = self.collateral_asset.transfer(self.account, recipient, amount)
        except Exception as exc:
            raise TransferFailed(
                f"Transfer of {amount} collateral to {recipient} raised: {exc}"
            ) from exc

        if not accepted:
            logger.warning(
                "Collateral transfer failed",
                extra={"event": "transfer.failed", "account": recipient, "amount": amount}
            )
            raise TransferFailed(f"Transfer of {amount} collateral to {recipient} failed")
