"""
Shared normalization helpers

Contract reads come back with different numeric widths depending on the
protocol family (uint24 bin ids, int24 ticks, uint256 balances). Everything
is coerced to plain Python ints before comparison, and raw token amounts are
scaled with Decimal so 18-decimal balances do not lose precision.
"""

import time
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Optional


def to_int(value: Any) -> int:
    """Coerce an on-chain numeric value to int."""
    if isinstance(value, bool):
        raise TypeError(f"Refusing to treat bool {value!r} as an integer")
    if isinstance(value, int):
        return int(value)
    if isinstance(value, Decimal):
        if value != value.to_integral_value():
            raise ValueError(f"Non-integral value {value}")
        return int(value)
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"Non-integral value {value}")
        return int(value)
    if isinstance(value, str):
        return int(value, 0)
    raise TypeError(f"Cannot coerce {type(value).__name__} to int")


def to_optional_int(value: Any) -> Optional[int]:
    return None if value is None else to_int(value)


def from_raw_units(amount: Any, decimals: int) -> Decimal:
    """Scale a raw integer token amount by its decimal count (formatUnits)."""
    return Decimal(to_int(amount)).scaleb(-int(decimals))


def round_usd(value) -> float:
    """Round a USD amount to cents."""
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def normalize_address(address: Optional[str]) -> str:
    return (address or "").strip().lower()


def now_ms() -> int:
    """Wall clock in integer milliseconds."""
    return int(time.time() * 1000)
