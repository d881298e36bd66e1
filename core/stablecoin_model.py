"""
Economic Model for the DSC Protocol.

This module wires the individual components (price feeds, collateral tokens,
the DSC token and the DSCEngine) into a complete protocol model. It can be used
to open positions, move prices, run a liquidation keeper and simulate market
scenarios to observe how the protocol behaves.
"""

import logging

import numpy as np
import matplotlib.pyplot as plt

from collateral_token import CollateralToken, TokenTransferGateway
from dsc_engine import (
    DSCEngine,
    LIQUIDATION_BONUS,
    LIQUIDATION_PRECISION,
    LIQUIDATION_THRESHOLD,
    MIN_HEALTH_FACTOR,
    PRECISION,
)
from dsc_errors import DSCEngineError
from dsc_token import DecentralizedStableCoin
from price_feed import PriceFeed

logger = logging.getLogger(__name__)

DEFAULT_PRICES = {"weth": 2000.0, "wbtc": 1000.0}


class StablecoinProtocolModel:
    """
    Complete model of the DSC protocol.
    Combines all components and provides simulation capabilities.
    """

    def __init__(self, initial_prices=None, engine_address="dsc_engine"):
        initial_prices = dict(initial_prices or DEFAULT_PRICES)

        # Set up price feeds and collateral tokens, one per asset
        self.price_feeds = {asset: PriceFeed.from_usd(price) for asset, price in initial_prices.items()}
        self.tokens = {asset: CollateralToken(asset) for asset in initial_prices}

        # Create the stable coin, owned by the engine
        self.dsc = DecentralizedStableCoin(owner=engine_address)
        self.gateway = TokenTransferGateway(engine_address, self.tokens)

        self.engine = DSCEngine(
            list(self.price_feeds),
            list(self.price_feeds.values()),
            self.dsc,
            self.gateway,
            address=engine_address,
        )

        # Current time for simulation, in seconds
        self.current_time = 0

        # Keeper statistics
        self.liquidations = 0
        self.failed_liquidations = 0

        # History tracking for simulations
        self.price_history = {asset: [] for asset in initial_prices}
        self.total_collateral_history = []
        self.total_debt_history = []
        self.collateral_ratio_history = []
        self.unsafe_accounts_history = []
        self._update_history()

    def fund(self, user, asset, amount):
        """Gives a user collateral tokens from the faucet."""
        self.tokens[asset].mint(user, amount)

    def open_position(self, user, asset, collateral, debt):
        """
        Funds a user with collateral, deposits it and mints DSC.

        Args:
            user: Position owner
            asset: Collateral asset
            collateral: Collateral amount in token units (e.g. 10 for 10 wETH)
            debt: DSC to mint in USD units

        Raises:
            DSCEngineError: If the position would be unsafe
        """
        collateral_amount = int(collateral * PRECISION)
        debt_amount = int(debt * PRECISION)

        self.fund(user, asset, collateral_amount)
        self.engine.deposit_collateral_and_mint_dsc(user, asset, collateral_amount, debt_amount)
        self._update_history()

    def update_price(self, asset, new_price):
        """
        Updates an asset's USD price.

        Returns:
            List of accounts that are liquidatable at the new price
        """
        self.price_feeds[asset].set_usd_price(new_price)
        self._update_history()
        return self.liquidatable_accounts()

    def update_time(self, seconds):
        self.current_time += seconds

    def liquidatable_accounts(self):
        """Returns every account whose health factor is below the minimum."""
        return [
            user for user in self.engine.debt.debtors()
            if self.engine.health_factor(user) < MIN_HEALTH_FACTOR
        ]

    def max_debt_to_cover(self, user, asset):
        """
        Largest debt a liquidator can repay against the user's holding of one asset.

        The seized amount includes the liquidation bonus, so only
        100 / (100 + bonus) of the holding's USD value can be covered.
        """
        balance = self.engine.get_collateral_balance_of_user(user, asset)
        if balance == 0:
            return 0
        collateral_usd = self.engine.get_usd_value(asset, balance)
        cover = collateral_usd * LIQUIDATION_PRECISION // (LIQUIDATION_PRECISION + LIQUIDATION_BONUS)
        return min(cover, self.engine.debt.debt_of(user))

    def run_keeper(self, keeper):
        """
        Liquidates every unsafe account the keeper can afford to.

        For each unsafe account the keeper picks the asset that covers the most
        debt and repays as much as its DSC balance and the target's collateral
        allow. Liquidations the engine rejects are counted and skipped.

        Returns:
            List of (user, asset, debt covered) for each successful liquidation
        """
        executed = []
        for user in self.liquidatable_accounts():
            if user == keeper:
                continue

            asset = max(self.engine.get_collateral_tokens(), key=lambda a: self.max_debt_to_cover(user, a))
            debt_to_cover = min(self.max_debt_to_cover(user, asset), self.dsc.balance_of(keeper))
            if debt_to_cover <= 0:
                self.failed_liquidations += 1
                continue

            try:
                self.engine.liquidate(keeper, asset, user, debt_to_cover)
            except DSCEngineError as e:
                logger.info("Keeper could not liquidate %s: %s", user, e)
                self.failed_liquidations += 1
                continue

            self.liquidations += 1
            executed.append((user, asset, debt_to_cover))

        return executed

    def get_system_state(self):
        """
        Returns the current state of the system.

        Returns:
            Dictionary with system state, amounts in USD
        """
        accounts = set(self.engine.collateral.accounts()) | set(self.engine.debt.debtors())
        total_collateral = sum(self.engine.get_account_collateral_value_usd(user) for user in accounts)
        total_debt = self.engine.debt.total_debt()

        # Calculate the system-wide collateralization ratio
        ratio = total_collateral / total_debt if total_debt > 0 else float('inf')

        return {
            'prices': {asset: feed.fetch_price() for asset, feed in self.price_feeds.items()},
            'total_collateral': total_collateral / PRECISION,
            'total_debt': total_debt / PRECISION,
            'dsc_supply': self.dsc.total_supply / PRECISION,
            'collateral_ratio': ratio,
            'unsafe_accounts': len(self.liquidatable_accounts()),
            'accounts': len(accounts),
        }

    def _update_history(self):
        """Updates history tracking for simulations."""
        state = self.get_system_state()

        for asset, price in state['prices'].items():
            self.price_history[asset].append(price)
        self.total_collateral_history.append(state['total_collateral'])
        self.total_debt_history.append(state['total_debt'])
        self.collateral_ratio_history.append(state['collateral_ratio'])
        self.unsafe_accounts_history.append(state['unsafe_accounts'])

    def simulate_market_scenario(self, days, price_volatility=0.02, seed=None,
                                 keeper="keeper", plot_results=True):
        """
        Runs a simulation with random price movements over the specified period.

        Every hour each collateral price takes a log-normal step, then the
        keeper liquidates whatever became unsafe.

        Args:
            days: Number of days to simulate
            price_volatility: Daily price volatility (standard deviation of log returns)
            seed: Seed for the random price path
            keeper: Account running liquidations, needs a DSC balance
            plot_results: Whether to plot the results

        Returns:
            Dictionary with simulation results
        """
        steps = days * 24  # hourly steps
        step_size = 60 * 60

        rng = np.random.default_rng(seed)
        hourly_volatility = price_volatility / np.sqrt(24)  # Scale to hourly
        log_returns = {
            asset: rng.normal(0, hourly_volatility, steps) for asset in self.price_feeds
        }

        start = len(self.total_debt_history)
        time_points = np.zeros(steps)

        for i in range(steps):
            for asset, feed in self.price_feeds.items():
                feed.set_usd_price(feed.fetch_price() * np.exp(log_returns[asset][i]))

            self.run_keeper(keeper)
            self.update_time(step_size)
            self._update_history()

            # Record time in days
            time_points[i] = self.current_time / (24 * 60 * 60)

        if plot_results:
            self.plot_history(time_points, start)

        final_state = self.get_system_state()
        return {
            'final_prices': final_state['prices'],
            'final_system_debt': final_state['total_debt'],
            'final_collateral': final_state['total_collateral'],
            'final_collateral_ratio': final_state['collateral_ratio'],
            'unsafe_accounts': final_state['unsafe_accounts'],
            'liquidations': self.liquidations,
            'failed_liquidations': self.failed_liquidations,
        }

    def plot_history(self, time_points, start=0):
        """Plots the history recorded since index `start`, one sample per time point."""
        end = start + len(time_points)
        fig, axs = plt.subplots(4, 1, figsize=(12, 16), sharex=True)

        # Plot collateral prices
        for asset, prices in self.price_history.items():
            axs[0].plot(time_points, prices[start:end], label=asset)
        axs[0].set_title('Collateral Prices')
        axs[0].set_ylabel('USD')
        axs[0].legend()

        # Plot total debt against collateral value
        axs[1].plot(time_points, self.total_debt_history[start:end], label='DSC debt')
        axs[1].plot(time_points, self.total_collateral_history[start:end], label='Collateral value')
        axs[1].set_title('System Debt and Collateral')
        axs[1].set_ylabel('USD')
        axs[1].legend()

        # Plot collateralization ratio
        axs[2].plot(time_points, self.collateral_ratio_history[start:end])
        axs[2].axhline(LIQUIDATION_PRECISION / LIQUIDATION_THRESHOLD, color='red', linestyle='--')
        axs[2].set_title('System Collateralization Ratio')
        axs[2].set_ylabel('Ratio')

        # Plot unsafe accounts
        axs[3].plot(time_points, self.unsafe_accounts_history[start:end])
        axs[3].set_title('Unsafe Accounts')
        axs[3].set_ylabel('Count')
        axs[3].set_xlabel('Days')

        plt.tight_layout()
        plt.show()
        return fig
