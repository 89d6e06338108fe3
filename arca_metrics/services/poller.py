"""
Polling Task
Fixed-cadence background loop shared by the price feed, balance poller,
range refresh and the first-deposit clock.

A tick is skipped while the previous one is still outstanding, so one
resource never has two fetches in flight. stop() cancels the timer.
"""
import asyncio
import contextlib
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class PollingTask:
    def __init__(
        self,
        name: str,
        interval: float,
        tick: Callable[[], Awaitable[None]],
        run_immediately: bool = True,
    ):
        self.name = name
        self.interval = interval
        self._tick = tick
        self._run_immediately = run_immediately
        self._task: Optional[asyncio.Task] = None
        self._ticking = False
        self.ticks = 0
        self.skipped = 0

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> bool:
        """Run one tick now. Returns False if a tick was already in progress."""
        if self._ticking:
            self.skipped += 1
            logger.debug(f"[{self.name}] Previous tick still running, skipping")
            return False

        self._ticking = True
        try:
            await self._tick()
            self.ticks += 1
        except Exception as e:
            logger.error(f"[{self.name}] Tick error: {e}")
        finally:
            self._ticking = False
        return True

    async def _loop(self):
        if not self._run_immediately:
            await asyncio.sleep(self.interval)
        while True:
            await self.run_once()
            await asyncio.sleep(self.interval)

    def start(self):
        """Schedule the loop on the running event loop"""
        if self.is_running:
            return
        self._task = asyncio.create_task(self._loop())
        logger.info(f"[{self.name}] Polling started (interval: {self.interval}s)")

    async def stop(self):
        """Cancel the loop and wait for it to unwind"""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        logger.info(f"[{self.name}] Polling stopped")
