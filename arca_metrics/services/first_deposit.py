"""
First Deposit Clock
"Time since first deposit" display, recomputed once a minute.
"""
import logging
from typing import Callable, Optional

from ..infrastructure.config import get_config
from ..normalization import now_ms
from .cache_manager import CacheManager
from .poller import PollingTask

logger = logging.getLogger("FirstDeposit")

# Largest unit first; months and years are 30 / 365 day approximations
ELAPSED_UNITS = (
    ("year", 365 * 24 * 60),
    ("month", 30 * 24 * 60),
    ("week", 7 * 24 * 60),
    ("day", 24 * 60),
    ("hour", 60),
    ("minute", 1),
)


def format_time_since(first_ms: Optional[int], current_ms: Optional[int] = None) -> str:
    """Bucket elapsed time into the largest whole unit, e.g. '3 weeks'"""
    if not first_ms:
        return ""

    current_ms = now_ms() if current_ms is None else current_ms
    minutes = max(0, current_ms - first_ms) // 1000 // 60

    for unit, unit_minutes in ELAPSED_UNITS:
        count = minutes // unit_minutes
        if count > 0:
            return f"{count} {unit}{'s' if count > 1 else ''}"
    return "just now"


class FirstDepositClock:
    """Tracks one user's first deposit and keeps the display string current"""

    def __init__(
        self,
        cache_manager: CacheManager,
        user_address: Optional[str],
        tick_seconds: Optional[float] = None,
        clock: Callable[[], int] = now_ms,
    ):
        self.cache_manager = cache_manager
        self.user_address = user_address
        self._clock = clock
        self.first_deposit_ms: Optional[int] = None
        self.time_since: str = ""
        self._poller = PollingTask(
            "FirstDepositClock",
            tick_seconds or get_config().polling.elapsed_tick_seconds,
            self._tick,
        )

    def update(self, has_deposits: bool) -> Optional[int]:
        """Load (or initialise) the stored timestamp and re-render"""
        if not self.user_address:
            self.first_deposit_ms = None
        else:
            self.first_deposit_ms = self.cache_manager.get_or_init_first_deposit_timestamp(
                self.user_address, has_deposits, now=self._clock()
            )
        self.render()
        return self.first_deposit_ms

    def render(self) -> str:
        self.time_since = format_time_since(self.first_deposit_ms, self._clock())
        return self.time_since

    async def _tick(self):
        self.render()

    def start(self):
        self._poller.start()

    async def stop(self):
        await self._poller.stop()
