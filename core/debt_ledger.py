"""
Debt Ledger for the DSC Protocol.

Tracks how much DSC each user has minted and not yet burned.
"""

import logging

from dsc_errors import InvalidAmount, InternalAccountingError

logger = logging.getLogger(__name__)


class DebtLedger:
    """
    Per-user minted DSC balances.
    """

    def __init__(self):
        # Mapping of user -> DSC minted
        self.dsc_minted = {}

    def debt_of(self, user):
        """Returns the DSC debt recorded for the user."""
        return self.dsc_minted.get(user, 0)

    def increase_debt(self, user, amount):
        if amount <= 0:
            raise InvalidAmount(amount)

        self.dsc_minted[user] = self.debt_of(user) + amount
        logger.debug("debt +%s for %s", amount, user)

    def decrease_debt(self, user, amount):
        """
        Reduces the user's recorded debt.

        Callers check the amount against the debt before reaching this point,
        so an underflow here means the accounting itself is wrong.

        Raises:
            InvalidAmount: If amount is zero or negative
            InternalAccountingError: If amount exceeds the recorded debt
        """
        if amount <= 0:
            raise InvalidAmount(amount)

        debt = self.debt_of(user)
        if amount > debt:
            raise InternalAccountingError(
                f"Debt underflow for {user}: decreasing {amount} from {debt}"
            )

        self.dsc_minted[user] = debt - amount
        logger.debug("debt -%s for %s", amount, user)

    def total_debt(self):
        """Returns the total DSC debt across all users."""
        return sum(self.dsc_minted.values())

    def debtors(self):
        """Returns the users with non-zero debt."""
        return [user for user, debt in self.dsc_minted.items() if debt > 0]
