"""
Range Evaluator
Is the vault's position currently bounding the active bin / tick?
"""
from typing import Optional

from ..models import RangeState
from ..normalization import to_int


def evaluate(state: RangeState) -> Optional[bool]:
    """
    True if lower <= active <= upper (inclusive), None while any input is
    still loading. Bin ids (uint24) and ticks (int24) are compared as ints.
    """
    if state is None or not state.is_loaded:
        return None

    active = to_int(state.active_position)
    lower = to_int(state.lower_bound)
    upper = to_int(state.upper_bound)

    return lower <= active <= upper
