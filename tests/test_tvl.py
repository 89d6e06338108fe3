"""
TVL Calculator Tests
USD valuation of vault balances (priced token X + $1 stable token Y)

Run: python -m pytest tests/test_tvl.py -v
"""

import pytest

from arca_metrics.models import BALANCES_UNAVAILABLE, PRICE_UNAVAILABLE, BalancePair, PricePoint
from arca_metrics.services.tvl_calculator import TvlCalculator

ONE_S = 10 ** 18
ONE_USDC = 10 ** 6


@pytest.fixture
def calculator():
    return TvlCalculator()


class TestTvlCalculation:

    def test_one_unit_each(self, calculator):
        balances = BalancePair(amount_x=ONE_S, amount_y=ONE_USDC)
        price = PricePoint(value_usd=2.0, fetched_at=1.0)

        assert calculator.calculate(balances, 18, 6, price) == 3.00

    def test_plain_number_price(self, calculator):
        balances = BalancePair(amount_x=5 * ONE_S, amount_y=250 * ONE_USDC)
        assert calculator.calculate(balances, 18, 6, 0.5) == 252.50

    def test_zero_price_means_unavailable(self, calculator):
        balances = BalancePair(amount_x=ONE_S, amount_y=1_000 * ONE_USDC)
        assert calculator.calculate(balances, 18, 6, 0) == 0
        assert calculator.calculate(balances, 18, 6, PricePoint(0.0, 1.0)) == 0

    def test_missing_inputs(self, calculator):
        balances = BalancePair(amount_x=ONE_S, amount_y=ONE_USDC)
        assert calculator.calculate(balances, 18, 6, None) == 0
        assert calculator.calculate(balances, 18, 6, PRICE_UNAVAILABLE) == 0
        assert calculator.calculate(None, 18, 6, 2.0) == 0
        assert calculator.calculate(BALANCES_UNAVAILABLE, 18, 6, 2.0) == 0

    def test_rounds_half_up_to_cents(self, calculator):
        # 0.005 USDC worth of stable token rounds up
        balances = BalancePair(amount_x=0, amount_y=5_000)
        assert calculator.calculate(balances, 18, 6, 1.0) == 0.01

    def test_large_balances_keep_precision(self, calculator):
        balances = BalancePair(amount_x=123_456_789 * ONE_S + 1, amount_y=0)
        assert calculator.calculate(balances, 18, 6, 0.1) == 12_345_678.90


class TestDepositedValue:

    def test_share_of_tvl(self):
        assert TvlCalculator.deposited_value_usd(1_000.0, 25, 100) == 250.0
        assert TvlCalculator.share_percentage(25, 100) == 25.0

    def test_no_shares_or_supply(self):
        assert TvlCalculator.deposited_value_usd(1_000.0, 0, 100) == 0.0
        assert TvlCalculator.deposited_value_usd(1_000.0, 10, 0) == 0.0
        assert TvlCalculator.deposited_value_usd(1_000.0, None, None) == 0.0
        assert TvlCalculator.share_percentage(None, 100) == 0.0
