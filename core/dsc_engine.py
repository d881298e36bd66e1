"""
DSC Engine Model for the DSC Protocol.

This module simulates the DSCEngine contract, the accounting and solvency core
of an over-collateralized stablecoin. Users lock exogenous collateral (wETH,
wBTC, ...) and mint DSC, a USD-pegged stable unit, against it.

The DSCEngine is responsible for:
1. Tracking collateral deposits and minted DSC per user
2. Valuing collateral through per-asset USD price feeds
3. Computing each account's health factor and refusing any operation that
   would leave the acting account below the minimum
4. Letting third parties liquidate undercollateralized accounts in exchange
   for a bonus on the collateral they seize

Only 50% of an account's collateral value counts towards its solvency, so
every account must stay at least 200% overcollateralized.

All amounts are integers in an 18-decimal fixed-point scale and every USD
conversion truncates toward zero.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from functools import partial
from typing import Optional

from collateral_ledger import CollateralLedger
from debt_ledger import DebtLedger
from dsc_errors import (
    BurnAmountExceedsDebt,
    ConfigurationError,
    ConfigurationLengthMismatch,
    DSCEngineError,
    DebtToCoverTooSmall,
    HealthFactorBroken,
    HealthFactorNotImproved,
    HealthFactorOk,
    InternalAccountingError,
    InvalidAmount,
    InvalidPrice,
    MintFailed,
    ReentrantCall,
    TransferFailed,
    UnsupportedAsset,
)
from transition import Journal, Stage, TransitionGuard

logger = logging.getLogger(__name__)

# Fixed-point constants
PRECISION = 10 ** 18
ADDITIONAL_FEED_PRECISION = 10 ** 10  # Lifts 8-decimal feed answers to 18 decimals

# Solvency parameters
LIQUIDATION_THRESHOLD = 50  # 50% of collateral value counts, i.e. 200% overcollateralized
LIQUIDATION_PRECISION = 100
LIQUIDATION_BONUS = 10  # 10% extra collateral for liquidators
MIN_HEALTH_FACTOR = PRECISION  # 1.0
MAX_HEALTH_FACTOR = 2 ** 256 - 1  # Health factor of an account without debt

# Rollbacks caused by collaborators or broken accounting, as opposed to a
# request the engine refused
COLLABORATOR_FAILURES = (TransferFailed, MintFailed, ReentrantCall, InternalAccountingError)


class Operation(Enum):
    """
    Committed state changes recorded in the engine's event log.
    """
    COLLATERAL_DEPOSITED = 0
    COLLATERAL_REDEEMED = 1
    DSC_MINTED = 2
    DSC_BURNED = 3
    LIQUIDATION = 4


@dataclass(frozen=True)
class EngineEvent:
    operation: Operation
    user: str
    amount: int
    asset: Optional[str] = None
    counterparty: Optional[str] = None  # Redeem recipient, burn payer or liquidator


class DSCEngine:
    """
    Simulates the DSCEngine contract.

    Collaborators are injected at construction:
    - one price feed per collateral asset (`latest_round_data()`)
    - the DSC token, owned by the engine (`mint`, `burn`, `transfer_from`, `transfer`)
    - a transfer gateway for collateral (`transfer_in`, `transfer_out`)

    Every mutating method takes the acting user as its first argument and runs
    as one atomic transition: either all ledger changes and token movements
    happen, or none do.
    """

    def __init__(self, token_addresses, price_feed_addresses, dsc, transfer_gateway,
                 address="dsc_engine"):
        token_addresses = tuple(token_addresses)
        price_feed_addresses = tuple(price_feed_addresses)

        if len(token_addresses) != len(price_feed_addresses):
            raise ConfigurationLengthMismatch(len(token_addresses), len(price_feed_addresses))

        if len(set(token_addresses)) != len(token_addresses):
            raise ConfigurationError(f"Duplicate collateral asset in {token_addresses}")

        # Supported asset registry, immutable after construction
        self._collateral_tokens = token_addresses
        self._price_feeds = dict(zip(token_addresses, price_feed_addresses))

        # Connected contracts
        self._dsc = dsc
        self._transfers = transfer_gateway
        self.address = address

        # State
        self.collateral = CollateralLedger()
        self.debt = DebtLedger()
        self.events = []

        self._guard = TransitionGuard()
        self._journal = None

    # --- Position operations ---

    def deposit_collateral_and_mint_dsc(self, user, token_collateral_address,
                                        amount_collateral, amount_dsc_to_mint):
        """
        Deposits collateral and mints DSC in one transition.

        Raises:
            HealthFactorBroken: If the mint leaves the account unsafe; the
                deposit is rolled back too
        """
        with self._transition("deposit_collateral_and_mint_dsc"):
            self._deposit_collateral(user, token_collateral_address, amount_collateral)
            self._mint_dsc(user, amount_dsc_to_mint)

    def deposit_collateral(self, user, token_collateral_address, amount_collateral):
        """
        Locks collateral with the engine.

        Depositing can only raise the health factor, so no solvency check runs.

        Args:
            user: Account depositing (and paying) the collateral
            token_collateral_address: Registered collateral asset
            amount_collateral: Quantity to deposit

        Raises:
            InvalidAmount, UnsupportedAsset, TransferFailed
        """
        with self._transition("deposit_collateral"):
            self._deposit_collateral(user, token_collateral_address, amount_collateral)

    def redeem_collateral_for_dsc(self, user, token_collateral_address,
                                  amount_collateral, amount_dsc_to_burn):
        """
        Burns DSC and withdraws collateral in one transition.
        """
        with self._transition("redeem_collateral_for_dsc"):
            self._burn_dsc(amount_dsc_to_burn, user, user)
            self._redeem_collateral(token_collateral_address, amount_collateral, user, user)
            self.assert_solvent(user)

    def redeem_collateral(self, user, token_collateral_address, amount_collateral):
        """
        Withdraws collateral back to the user.

        The deposit is decreased first and the solvency gate runs on the
        decreased balance; the collateral only leaves custody once the gate
        has passed.

        Raises:
            InsufficientCollateral: If the user has less deposited
            HealthFactorBroken: If the withdrawal would leave the account unsafe
        """
        with self._transition("redeem_collateral"):
            self._redeem_collateral(token_collateral_address, amount_collateral, user, user)
            self.assert_solvent(user)

    def mint_dsc(self, user, amount_dsc_to_mint):
        """
        Mints DSC against the user's deposited collateral.

        Raises:
            HealthFactorBroken: If the new debt breaks the health factor
            MintFailed: If the DSC token refuses to mint
        """
        with self._transition("mint_dsc"):
            self._mint_dsc(user, amount_dsc_to_mint)

    def burn_dsc(self, user, amount):
        """Repays debt by burning the user's DSC."""
        with self._transition("burn_dsc"):
            self._burn_dsc(amount, user, user)
            # Only fires when the account was already unsafe and is still unsafe after the burn
            self.assert_solvent(user)

    # --- Liquidation ---

    def liquidate(self, liquidator, collateral, user, debt_to_cover):
        """
        Repays part of an unsafe account's debt in exchange for its collateral.

        The liquidator supplies `debt_to_cover` DSC, which is burned, and
        receives the equivalent amount of `collateral` plus a 10% bonus taken
        from the target's deposit.

        The bonus is not capped: once an account is at or below 100% backing
        it no longer holds enough collateral to pay debt plus bonus, and the
        seizure fails with InsufficientCollateral.

        Args:
            liquidator: Account supplying the DSC and receiving the collateral
            collateral: Registered collateral asset to seize
            user: Account being liquidated
            debt_to_cover: DSC to repay on the user's behalf

        Returns:
            Amount of collateral seized, bonus included

        Raises:
            HealthFactorOk: If the user is not below the minimum health factor
            DebtToCoverTooSmall: If debt_to_cover is worth less than one unit of collateral
            InsufficientCollateral: If the user cannot cover debt plus bonus
            HealthFactorNotImproved: If the user's health factor did not rise
            HealthFactorBroken: If the liquidator ends up unsafe
        """
        with self._transition("liquidate"):
            self._require_more_than_zero(debt_to_cover)
            self._require_allowed_token(collateral)

            starting_user_health_factor = self.health_factor(user)
            if starting_user_health_factor >= MIN_HEALTH_FACTOR:
                raise HealthFactorOk(user, starting_user_health_factor)

            token_amount_from_debt_covered = self.get_token_amount_from_usd(collateral, debt_to_cover)
            bonus_collateral = (
                token_amount_from_debt_covered * LIQUIDATION_BONUS // LIQUIDATION_PRECISION
            )
            total_collateral_to_redeem = token_amount_from_debt_covered + bonus_collateral
            if total_collateral_to_redeem == 0:
                raise DebtToCoverTooSmall(debt_to_cover, collateral)

            self._redeem_collateral(collateral, total_collateral_to_redeem, user, liquidator)
            self._burn_dsc(debt_to_cover, user, liquidator)

            ending_user_health_factor = self.health_factor(user)
            if ending_user_health_factor <= starting_user_health_factor:
                raise HealthFactorNotImproved(starting_user_health_factor, ending_user_health_factor)

            self.assert_solvent(liquidator)
            self._journal.emit(EngineEvent(Operation.LIQUIDATION, user, debt_to_cover,
                                           collateral, liquidator))

        return total_collateral_to_redeem

    # --- Solvency ---

    def health_factor(self, user):
        """
        Returns how close the user is to liquidation, in 1e18 scale.

        Below MIN_HEALTH_FACTOR (1e18) the account can be liquidated.
        """
        total_dsc_minted, collateral_value_in_usd = self.get_account_information(user)
        return self.calculate_health_factor(total_dsc_minted, collateral_value_in_usd)

    @staticmethod
    def calculate_health_factor(total_dsc_minted, collateral_value_in_usd):
        """
        Threshold-adjusted collateral value divided by debt.

        An account without debt can never be in violation, so it gets
        MAX_HEALTH_FACTOR instead of a division by zero.
        """
        if total_dsc_minted == 0:
            return MAX_HEALTH_FACTOR
        collateral_adjusted_for_threshold = (
            collateral_value_in_usd * LIQUIDATION_THRESHOLD // LIQUIDATION_PRECISION
        )
        return collateral_adjusted_for_threshold * PRECISION // total_dsc_minted

    def assert_solvent(self, user):
        """
        Raises:
            HealthFactorBroken: If the user's health factor is below the minimum
        """
        user_health_factor = self.health_factor(user)
        if user_health_factor < MIN_HEALTH_FACTOR:
            raise HealthFactorBroken(user_health_factor)

    # --- Valuation ---

    def get_usd_value(self, token, amount):
        """Returns the USD value (1e18 scale) of `amount` of `token`."""
        price = self._get_price(token)
        return price * ADDITIONAL_FEED_PRECISION * amount // PRECISION

    def get_token_amount_from_usd(self, token, usd_amount_in_wei):
        """Returns how much of `token` is worth `usd_amount_in_wei` USD."""
        price = self._get_price(token)
        return usd_amount_in_wei * PRECISION // (price * ADDITIONAL_FEED_PRECISION)

    def get_account_collateral_value_usd(self, user):
        return self.collateral.total_value_usd(user, self._collateral_tokens, self.get_usd_value)

    def get_account_information(self, user):
        """Returns (total DSC minted, collateral value in USD) for the user."""
        total_dsc_minted = self.debt.debt_of(user)
        collateral_value_in_usd = self.get_account_collateral_value_usd(user)
        return total_dsc_minted, collateral_value_in_usd

    def _get_price(self, token):
        self._require_allowed_token(token)
        quote = self._price_feeds[token].latest_round_data()
        if not quote.valid:
            logger.warning("Price feed for %s reports an invalid quote (%s)", token, quote.price)
        if quote.price <= 0:
            raise InvalidPrice(token, quote.price)
        return quote.price

    # --- Getters ---

    def get_collateral_balance_of_user(self, user, token):
        return self.collateral.balance_of(user, token)

    def get_collateral_tokens(self):
        return list(self._collateral_tokens)

    def get_collateral_token_price_feed(self, token):
        self._require_allowed_token(token)
        return self._price_feeds[token]

    def get_dsc(self):
        return self._dsc

    def get_precision(self):
        return PRECISION

    def get_additional_feed_precision(self):
        return ADDITIONAL_FEED_PRECISION

    def get_liquidation_threshold(self):
        return LIQUIDATION_THRESHOLD

    def get_liquidation_bonus(self):
        return LIQUIDATION_BONUS

    def get_liquidation_precision(self):
        return LIQUIDATION_PRECISION

    def get_min_health_factor(self):
        return MIN_HEALTH_FACTOR

    # --- Internal steps ---

    def _deposit_collateral(self, user, token, amount):
        self._require_more_than_zero(amount)
        self._require_allowed_token(token)

        self.collateral.increase_deposit(user, token, amount)
        self._journal.record(self.collateral.decrease_deposit, user, token, amount)
        self._journal.emit(EngineEvent(Operation.COLLATERAL_DEPOSITED, user, amount, token))
        self._journal.defer(
            Stage.PULL, f"pull {amount} {token} from {user}",
            partial(self._pull_collateral, token, user, amount),
            partial(self._push_collateral, token, user, amount),
        )

    def _redeem_collateral(self, token, amount, from_user, to_user):
        self._require_more_than_zero(amount)
        self._require_allowed_token(token)

        self.collateral.decrease_deposit(from_user, token, amount)
        self._journal.record(self.collateral.increase_deposit, from_user, token, amount)
        self._journal.emit(EngineEvent(Operation.COLLATERAL_REDEEMED, from_user, amount, token, to_user))
        self._journal.defer(
            Stage.PUSH, f"pay {amount} {token} to {to_user}",
            partial(self._push_collateral, token, to_user, amount),
        )

    def _mint_dsc(self, user, amount):
        self._require_more_than_zero(amount)

        self.debt.increase_debt(user, amount)
        self._journal.record(self.debt.decrease_debt, user, amount)
        self.assert_solvent(user)

        self._journal.emit(EngineEvent(Operation.DSC_MINTED, user, amount))
        self._journal.defer(Stage.MINT, f"mint {amount} DSC to {user}",
                            partial(self._issue_dsc, user, amount))

    def _burn_dsc(self, amount, on_behalf_of, dsc_from):
        self._require_more_than_zero(amount)

        debt = self.debt.debt_of(on_behalf_of)
        if amount > debt:
            raise BurnAmountExceedsDebt(on_behalf_of, amount, debt)

        self.debt.decrease_debt(on_behalf_of, amount)
        self._journal.record(self.debt.increase_debt, on_behalf_of, amount)
        self._journal.emit(EngineEvent(Operation.DSC_BURNED, on_behalf_of, amount, None, dsc_from))
        self._journal.defer(
            Stage.PULL, f"pull {amount} DSC from {dsc_from}",
            partial(self._pull_dsc, dsc_from, amount),
            partial(self._return_dsc, dsc_from, amount),
        )
        self._journal.defer(
            Stage.BURN, f"burn {amount} DSC",
            partial(self._destroy_dsc, amount),
            partial(self._reissue_dsc, amount),
        )

    # --- Collaborator calls, executed at commit ---

    def _pull_collateral(self, token, user, amount):
        if not self._transfers.transfer_in(token, user, self.address, amount):
            raise TransferFailed(f"Transfer of {amount} {token} from {user} failed")

    def _push_collateral(self, token, user, amount):
        if not self._transfers.transfer_out(token, user, amount):
            raise TransferFailed(f"Transfer of {amount} {token} to {user} failed")

    def _issue_dsc(self, user, amount):
        if not self._dsc.mint(user, amount, minter=self.address):
            raise MintFailed(f"Minting {amount} DSC to {user} failed")

    def _pull_dsc(self, user, amount):
        if not self._dsc.transfer_from(user, self.address, amount):
            raise TransferFailed(f"Transfer of {amount} DSC from {user} failed")

    def _return_dsc(self, user, amount):
        if not self._dsc.transfer(self.address, user, amount):
            raise TransferFailed(f"Returning {amount} DSC to {user} failed")

    def _destroy_dsc(self, amount):
        if not self._dsc.burn(amount):
            raise TransferFailed(f"Burning {amount} DSC failed")

    def _reissue_dsc(self, amount):
        if not self._dsc.mint(self.address, amount, minter=self.address):
            raise MintFailed(f"Re-minting {amount} burned DSC failed")

    # --- Guards ---

    def _require_more_than_zero(self, amount):
        if amount <= 0:
            raise InvalidAmount(amount)

    def _require_allowed_token(self, token):
        if token not in self._price_feeds:
            raise UnsupportedAsset(token)

    @contextmanager
    def _transition(self, name):
        """
        Runs one transition under the guard.

        Commits the journal if the body succeeds, otherwise undoes every
        ledger mutation. Events are published only on commit.
        """
        with self._guard.enter(name):
            journal = Journal()
            self._journal = journal
            try:
                yield journal
                journal.commit()
            except Exception as error:
                journal.rollback()
                if isinstance(error, DSCEngineError) and not isinstance(error, COLLABORATOR_FAILURES):
                    logger.info("%s rejected: %s", name, error)
                else:
                    logger.warning("%s rolled back: %s", name, error)
                raise
            finally:
                self._journal = None

            self.events.extend(journal.events)
            for event in journal.events:
                logger.info("%s user=%s amount=%s asset=%s counterparty=%s", event.operation.name,
                            event.user, event.amount, event.asset, event.counterparty)
