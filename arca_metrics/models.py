"""
Core data models shared by the price feed, readers, adapters and calculators.

Unavailability is expressed with sentinel instances rather than exceptions,
so callers can always render a "loading / unavailable" state.
"""

from dataclasses import dataclass, replace
from typing import Optional

from .normalization import to_optional_int


@dataclass(frozen=True)
class PricePoint:
    """A USD price and the wall-clock time (seconds) its fetch completed."""
    value_usd: float
    fetched_at: float
    available: bool = True

    def __post_init__(self):
        if self.value_usd < 0:
            raise ValueError(f"Price must be >= 0, got {self.value_usd}")

    def age(self, now: float) -> float:
        return now - self.fetched_at

    def is_fresh(self, now: float, window: float) -> bool:
        return self.available and self.age(now) < window


PRICE_UNAVAILABLE = PricePoint(value_usd=0.0, fetched_at=0.0, available=False)


@dataclass(frozen=True)
class BalancePair:
    """Raw token balances held by a vault strategy, never mutated locally."""
    amount_x: int
    amount_y: int
    available: bool = True


BALANCES_UNAVAILABLE = BalancePair(amount_x=0, amount_y=0, available=False)


@dataclass(frozen=True)
class RangeState:
    """
    Normalized (active, lower, upper) triple for a concentrated-liquidity position.
    None means "not loaded yet", which is different from zero.
    """
    active_position: Optional[int] = None
    lower_bound: Optional[int] = None
    upper_bound: Optional[int] = None

    def with_active(self, active) -> "RangeState":
        return replace(self, active_position=to_optional_int(active))

    def with_bounds(self, lower, upper) -> "RangeState":
        return replace(self, lower_bound=to_optional_int(lower), upper_bound=to_optional_int(upper))

    @property
    def is_loaded(self) -> bool:
        return None not in (self.active_position, self.lower_bound, self.upper_bound)


EMPTY_RANGE = RangeState()
