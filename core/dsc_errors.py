"""
Error kinds raised by the DSC engine.

Every rejected transition raises one of these. They all derive from ValueError,
so callers that only care about "the operation was refused" can keep catching
ValueError the way the rest of the model does.
"""


class DSCEngineError(ValueError):
    """Base class for every failure of a DSC engine transition."""


class InvalidAmount(DSCEngineError):
    """Amount must be strictly positive."""

    def __init__(self, amount):
        super().__init__(f"Amount must be more than zero, got {amount}")
        self.amount = amount


class DebtToCoverTooSmall(InvalidAmount):
    """Repayment converts to zero units of the seized collateral."""

    def __init__(self, debt_to_cover, asset):
        DSCEngineError.__init__(
            self, f"Repaying {debt_to_cover} DSC is too small to seize any {asset}"
        )
        self.amount = debt_to_cover
        self.asset = asset


class UnsupportedAsset(DSCEngineError):
    """Asset is not in the collateral registry."""

    def __init__(self, asset):
        super().__init__(f"Collateral asset not allowed: {asset}")
        self.asset = asset


class InsufficientCollateral(DSCEngineError):
    """Redeem or liquidation would drive a deposit below zero."""

    def __init__(self, user, asset, requested, available):
        super().__init__(
            f"Insufficient collateral for {user}: requested {requested} {asset}, "
            f"deposited {available}"
        )
        self.user = user
        self.asset = asset
        self.requested = requested
        self.available = available


class TransferFailed(DSCEngineError):
    """A token transfer collaborator reported failure."""


class MintFailed(DSCEngineError):
    """The stable unit refused to mint."""


class HealthFactorBroken(DSCEngineError):
    """
    Post-condition solvency violation.

    Carries the offending health factor in the 1e18 fixed-point scale.
    """

    def __init__(self, health_factor):
        super().__init__(f"Health factor broken: {health_factor}")
        self.health_factor = health_factor


class HealthFactorOk(DSCEngineError):
    """A healthy account cannot be liquidated."""

    def __init__(self, user, health_factor):
        super().__init__(f"Health factor of {user} is ok ({health_factor}), not eligible for liquidation")
        self.user = user
        self.health_factor = health_factor


class HealthFactorNotImproved(DSCEngineError):
    def __init__(self, starting, ending):
        super().__init__(f"Health factor not improved: {starting} -> {ending}")
        self.starting = starting
        self.ending = ending


class InternalAccountingError(DSCEngineError):
    """A ledger underflow that correct callers can never reach."""


class InvalidPrice(DSCEngineError):
    def __init__(self, asset, price):
        super().__init__(f"Invalid price for {asset}: {price}")
        self.asset = asset
        self.price = price


class ReentrantCall(DSCEngineError):
    """A mutating call was made while another one is still in progress."""


class ConfigurationError(DSCEngineError):
    """The engine was constructed with an unusable configuration."""


class ConfigurationLengthMismatch(ConfigurationError):
    def __init__(self, asset_count, feed_count):
        super().__init__(
            f"Token addresses and price feed addresses must be same length "
            f"({asset_count} != {feed_count})"
        )
        self.asset_count = asset_count
        self.feed_count = feed_count


class BurnAmountExceedsDebt(DSCEngineError):
    """Burn or liquidation repays more DSC than the account owes."""

    def __init__(self, user, amount, debt):
        super().__init__(f"Cannot burn {amount} DSC for {user}, debt is {debt}")
        self.user = user
        self.amount = amount
        self.debt = debt
