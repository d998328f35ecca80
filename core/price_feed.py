"""
Price Feed Model for the vault engine.

This module provides a mock price source with its own "last update" timestamp
and a manual clock for driving simulated time.
"""

import time


class ManualClock:
    """Simulation clock advanced explicitly by scenarios."""

    def __init__(self, start=0):
        self.current_time = start

    def now(self):
        return self.current_time

    def advance(self, seconds):
        """Moves the clock forward by the specified number of seconds."""
        if seconds < 0:
            raise ValueError("Cannot move the clock backwards")
        self.current_time += seconds

    def set(self, timestamp):
        self.current_time = timestamp


class MockPriceFeed:
    """
    Simple price feed for simulations.

    Prices are fixed-point integers scaled by PRECISION. Every update stamps
    ``last_updated`` with the clock's current time; freshness is judged
    against that stamp.
    """

    def __init__(self, initial_price, clock=None):
        if initial_price <= 0:
            raise ValueError("Price must be greater than zero")

        self.clock = clock
        self.price = initial_price
        self.last_updated = self._now()

    def _now(self):
        if self.clock is None:
            return int(time.time())
        return self.clock.now()

    def latest_price(self):
        """Returns the current price."""
        return self.price

    def update_price(self, new_price):
        """Sets a new price and refreshes the update timestamp."""
        if new_price <= 0:
            raise ValueError("Price must be greater than zero")

        self.price = new_price
        self.last_updated = self._now()

    def set_last_updated(self, timestamp):
        """Overrides the update timestamp, e.g. to age the feed."""
        self.last_updated = timestamp

    def age(self):
        """Seconds since the last price update."""
        return self._now() - self.last_updated

    def is_fresh(self, max_age):
        """True if the price was updated at most ``max_age`` seconds ago."""
        return self.age() <= max_age
