"""
Notifications emitted by the vault engine.

Engines stage events while an operation runs and publish them only once the
operation commits, so every successful mutation is announced exactly once
and a failed operation announces nothing.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


class VaultEvent(Enum):
    """
    State changes observers can subscribe to.
    """
    VAULT_OPENED = "vault.opened"
    VAULT_CLOSED = "vault.closed"
    COLLATERAL_ADDED = "vault.collateral_added"
    COLLATERAL_REMOVED = "vault.collateral_removed"
    DEBT_INCREASED = "vault.debt_increased"
    DEBT_DECREASED = "vault.debt_decreased"
    VAULT_LIQUIDATED = "vault.liquidated"
    SURPLUS_PARKED = "surplus.parked"
    SURPLUS_CLAIMED = "surplus.claimed"


@dataclass
class EventRecord:
    sequence: int
    event: VaultEvent
    account: str
    amount: int = 0
    liquidator: Optional[str] = None
    collateral_amount: int = 0  # Only set for liquidations


class EventLog:
    """
    Append-only log of published events with fire-and-forget subscribers.
    """

    def __init__(self):
        self.records: List[EventRecord] = []
        self._subscribers: List[Callable[[EventRecord], None]] = []

    def subscribe(self, callback):
        """Registers ``callback(record)`` for every published event."""
        self._subscribers.append(callback)

    def emit(self, event, account, amount=0, liquidator=None, collateral_amount=0):
        record = EventRecord(
            sequence=len(self.records),
            event=event,
            account=account,
            amount=amount,
            liquidator=liquidator,
            collateral_amount=collateral_amount,
        )
        self.records.append(record)

        logger.info(
            "Vault event published",
            extra={
                "event": event.value,
                "account": account,
                "amount": amount,
                "liquidator": liquidator,
            }
        )

        for callback in list(self._subscribers):
            try:
                callback(record)
            except Exception:
                # Observers have no delivery guarantee and cannot fail an operation
                logger.exception("Event subscriber failed for %s", event.value)

        return record

    def filter(self, event=None, account=None):
        """Returns published records matching the given event and/or account."""
        return [
            record for record in self.records
            if (event is None or record.event == event)
            and (account is None or record.account == account)
        ]


class PendingEvents:
    """Events staged by one operation, published on commit."""

    def __init__(self, log):
        self.log = log
        self._staged = []

    def add(self, event, account, amount=0, liquidator=None, collateral_amount=0):
        self._staged.append((event, account, amount, liquidator, collateral_amount))

    def publish(self):
        staged, self._staged = self._staged, []
        for event, account, amount, liquidator, collateral_amount in staged:
            self.log.emit(event, account, amount, liquidator, collateral_amount)

    def discard(self):
        self._staged = []
