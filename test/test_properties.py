"""
Property-based tests for the DSCEngine.

Random operation sequences are replayed against a fresh engine. Every
operation either commits completely or leaves every ledger and token balance
exactly as it was.
"""

import unittest
import sys
import os

from hypothesis import given, settings
from hypothesis import strategies as st

# Add the core directory to the path
sys.path.append(os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "core"))
from engine_fixtures import LIQUIDATOR, USER, WETH, EngineFixture
from dsc_engine import DSCEngine, MAX_HEALTH_FACTOR, MIN_HEALTH_FACTOR, PRECISION
from dsc_errors import DSCEngineError, HealthFactorOk

USERS = ["alice", "bob"]
STARTING_BALANCE = 100 * PRECISION

operations = st.lists(
    st.tuples(
        st.sampled_from(["deposit", "mint", "redeem", "burn"]),
        st.sampled_from(USERS),
        st.integers(min_value=1, max_value=30000 * PRECISION),
    ),
    max_size=25,
)


def apply_operation(engine, name, user, amount):
    if name == "deposit":
        engine.deposit_collateral(user, WETH, amount)
    elif name == "mint":
        engine.mint_dsc(user, amount)
    elif name == "redeem":
        engine.redeem_collateral(user, WETH, amount)
    elif name == "burn":
        engine.burn_dsc(user, amount)


class TestOperationSequences(unittest.TestCase):
    @given(operations)
    @settings(max_examples=75, deadline=None)
    def test_operations_are_all_or_nothing(self, sequence):
        fixture = EngineFixture()
        for user in USERS:
            fixture.fund(user, STARTING_BALANCE)

        for name, user, amount in sequence:
            before = fixture.snapshot()
            try:
                apply_operation(fixture.engine, name, user, amount)
            except DSCEngineError:
                self.assertEqual(fixture.snapshot(), before)
                continue

            # With a constant price every committed state is solvent
            self.assertGreaterEqual(fixture.engine.health_factor(user), MIN_HEALTH_FACTOR)

    @given(operations)
    @settings(max_examples=75, deadline=None)
    def test_ledgers_match_token_balances(self, sequence):
        fixture = EngineFixture()
        for user in USERS:
            fixture.fund(user, STARTING_BALANCE)

        for name, user, amount in sequence:
            try:
                apply_operation(fixture.engine, name, user, amount)
            except DSCEngineError:
                pass

            engine = fixture.engine
            self.assertEqual(fixture.gateway.custody_balance(WETH), engine.collateral.total_deposited(WETH))
            self.assertEqual(fixture.dsc.total_supply, engine.debt.total_debt())
            for account in USERS:
                self.assertGreaterEqual(engine.get_collateral_balance_of_user(account, WETH), 0)
                self.assertGreaterEqual(engine.debt.debt_of(account), 0)
                self.assertEqual(
                    fixture.weth.balance_of(account) + engine.get_collateral_balance_of_user(account, WETH),
                    STARTING_BALANCE,
                )


class TestLiquidationProperties(unittest.TestCase):
    @given(
        st.integers(min_value=500, max_value=2500),
        st.integers(min_value=1, max_value=100 * PRECISION),
    )
    @settings(max_examples=100, deadline=None)
    def test_liquidation_improves_or_rolls_back(self, usd_price, debt_to_cover):
        fixture = EngineFixture()
        fixture.deposit_and_mint(USER, PRECISION // 10, 100 * PRECISION)
        fixture.deposit_and_mint(LIQUIDATOR, 20 * PRECISION, 100 * PRECISION)
        fixture.eth_usd.set_usd_price(usd_price)

        engine = fixture.engine
        starting_health_factor = engine.health_factor(USER)
        before = fixture.snapshot()

        try:
            seized = engine.liquidate(LIQUIDATOR, WETH, USER, debt_to_cover)
        except DSCEngineError as error:
            self.assertEqual(fixture.snapshot(), before)
            if starting_health_factor >= MIN_HEALTH_FACTOR:
                self.assertIsInstance(error, HealthFactorOk)
            return

        self.assertLess(starting_health_factor, MIN_HEALTH_FACTOR)
        self.assertGreater(engine.health_factor(USER), starting_health_factor)
        self.assertGreaterEqual(engine.health_factor(LIQUIDATOR), MIN_HEALTH_FACTOR)
        self.assertEqual(fixture.weth.balance_of(LIQUIDATOR), seized)
        self.assertEqual(engine.debt.debt_of(USER), 100 * PRECISION - debt_to_cover)


class TestArithmeticProperties(unittest.TestCase):
    @given(
        st.integers(min_value=1, max_value=10 ** 14),
        st.integers(min_value=0, max_value=10 ** 30),
    )
    @settings(max_examples=200)
    def test_usd_round_trip_never_gains(self, feed_price, amount):
        fixture = EngineFixture()
        fixture.eth_usd.set_price(feed_price)
        engine = fixture.engine

        back = engine.get_token_amount_from_usd(WETH, engine.get_usd_value(WETH, amount))

        scaled_price = feed_price * engine.get_additional_feed_precision()
        self.assertLessEqual(back, amount)
        self.assertLessEqual(amount - back, PRECISION // scaled_price + 1)

    @given(
        st.integers(min_value=0, max_value=10 ** 40),
        st.integers(min_value=0, max_value=10 ** 40),
    )
    def test_health_factor_matches_threshold(self, debt, collateral_value):
        health_factor = DSCEngine.calculate_health_factor(debt, collateral_value)

        if debt == 0:
            self.assertEqual(health_factor, MAX_HEALTH_FACTOR)
        else:
            self.assertEqual(health_factor >= MIN_HEALTH_FACTOR, collateral_value * 50 // 100 >= debt)


if __name__ == "__main__":
    unittest.main()
