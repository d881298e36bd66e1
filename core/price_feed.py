"""
Price Feed Model for the DSC Protocol.

This module simulates an aggregator-style USD price feed for one collateral
asset. Prices are integers with `decimals` decimals (8 by default, so 2000 USD
is reported as 2000e8).

The engine consumes only `latest_round_data()` and `decimals`; staleness is
reported through the `valid` flag and judged by whoever operates the feed.
"""

from typing import NamedTuple

FEED_DECIMALS = 8


class PriceQuote(NamedTuple):
    """Latest answer of a feed and whether its operator considers it fresh."""
    price: int
    valid: bool


class PriceFeed:
    """Simple price feed implementation for simulations and tests."""

    def __init__(self, initial_price, decimals=FEED_DECIMALS):
        self.decimals = decimals
        self.price = int(initial_price)
        self.round_id = 1
        self.stale = False

    @classmethod
    def from_usd(cls, usd_price, decimals=FEED_DECIMALS):
        """Creates a feed from a plain USD price, e.g. from_usd(2000)."""
        return cls(round(usd_price * 10 ** decimals), decimals)

    def latest_round_data(self):
        """Returns the current quote."""
        return PriceQuote(self.price, not self.stale and self.price > 0)

    def fetch_price(self):
        """Returns the current price as a plain USD float."""
        return self.price / 10 ** self.decimals

    def set_price(self, new_price):
        """Sets a new raw answer and starts a new round."""
        self.price = int(new_price)
        self.round_id += 1
        self.stale = False

    def set_usd_price(self, usd_price):
        self.set_price(round(usd_price * 10 ** self.decimals))

    def mark_stale(self):
        """Flags the current answer as stale until the next update."""
        self.stale = True
