"""
Collateral Ledger for the DSC Protocol.

This module holds the per-user, per-asset collateral balances deposited with the
DSCEngine. It owns the invariant that a balance can never go negative: every
decrease is checked exactly against the current balance before anything is
written.

Records are created implicitly on the first deposit and stay at zero once
drained; there is no explicit deletion.
"""

import logging

from dsc_errors import InvalidAmount, InsufficientCollateral

logger = logging.getLogger(__name__)


class CollateralLedger:
    """
    Tracks collateral deposited on behalf of each user.
    """

    def __init__(self):
        # Mapping of user -> {asset -> amount}
        self.deposits = {}

    def balance_of(self, user, asset):
        """Returns the amount of the asset deposited by the user."""
        return self.deposits.get(user, {}).get(asset, 0)

    def increase_deposit(self, user, asset, amount):
        """
        Records additional collateral for a user.

        Args:
            user: Account the collateral belongs to
            asset: Collateral asset identifier
            amount: Quantity deposited, strictly positive

        Raises:
            InvalidAmount: If amount is zero or negative
        """
        if amount <= 0:
            raise InvalidAmount(amount)

        user_deposits = self.deposits.setdefault(user, {})
        user_deposits[asset] = user_deposits.get(asset, 0) + amount
        logger.debug("collateral +%s %s for %s", amount, asset, user)

    def decrease_deposit(self, user, asset, amount):
        """
        Removes collateral from a user's deposit.

        Raises:
            InvalidAmount: If amount is zero or negative
            InsufficientCollateral: If amount exceeds the current balance
        """
        if amount <= 0:
            raise InvalidAmount(amount)

        balance = self.balance_of(user, asset)
        if amount > balance:
            raise InsufficientCollateral(user, asset, amount, balance)

        self.deposits[user][asset] = balance - amount
        logger.debug("collateral -%s %s for %s", amount, asset, user)

    def total_value_usd(self, user, assets, usd_value):
        """
        Sums the USD value of a user's deposits across the given assets.

        Args:
            user: Account to value
            assets: Registered collateral assets, in registry order
            usd_value: Callable (asset, amount) -> USD value in 1e18 scale

        Returns:
            Total collateral value in USD (1e18 scale)
        """
        total = 0
        for asset in assets:
            amount = self.balance_of(user, asset)
            if amount > 0:
                total += usd_value(asset, amount)
        return total

    def total_deposited(self, asset):
        """Returns the total amount of an asset deposited across all users."""
        return sum(user_deposits.get(asset, 0) for user_deposits in self.deposits.values())

    def accounts(self):
        """Returns every user that has ever deposited collateral."""
        return list(self.deposits)
