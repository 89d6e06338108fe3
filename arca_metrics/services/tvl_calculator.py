"""
TVL Calculator
USD value of a vault's token balances.

Token X is priced from the live feed; token Y is pinned at $1.00. That holds
for the stable-pair vaults currently listed and is not a general oracle.
"""
import logging
from decimal import Decimal
from typing import Optional, Union

from ..models import BalancePair, PricePoint
from ..normalization import from_raw_units, round_usd, to_int

logger = logging.getLogger("TvlCalculator")

STABLE_USD_PRICE = Decimal("1.00")


class TvlCalculator:
    def __init__(self, stable_price: Decimal = STABLE_USD_PRICE):
        self.stable_price = Decimal(stable_price)

    def calculate(
        self,
        balances: Optional[BalancePair],
        decimals_x: int,
        decimals_y: int,
        price: Optional[Union[PricePoint, float]],
    ) -> float:
        """
        TVL in USD rounded to cents. Returns 0 when balances or price are
        unavailable, including a price of exactly 0.
        """
        if balances is None or not balances.available:
            return 0.0

        if isinstance(price, PricePoint):
            if not price.available:
                return 0.0
            price_usd = price.value_usd
        else:
            price_usd = price

        if not price_usd:
            logger.debug("TVL skipped: price missing")
            return 0.0

        priced_amount = from_raw_units(balances.amount_x, decimals_x)
        stable_amount = from_raw_units(balances.amount_y, decimals_y)

        tvl = priced_amount * Decimal(str(price_usd)) + stable_amount * self.stable_price
        return round_usd(tvl)

    @staticmethod
    def deposited_value_usd(tvl: float, user_shares, total_supply) -> float:
        """User's slice of the vault TVL by share of total supply"""
        if not user_shares or not total_supply:
            return 0.0
        shares, supply = to_int(user_shares), to_int(total_supply)
        if supply <= 0:
            return 0.0
        return float(tvl) * (shares / supply)

    @staticmethod
    def share_percentage(user_shares, total_supply) -> float:
        if not user_shares or not total_supply:
            return 0.0
        supply = to_int(total_supply)
        if supply <= 0:
            return 0.0
        return to_int(user_shares) / supply * 100
