"""
Request Coalescer - Deduplicate concurrent identical reads

A price fetch or a contract read for the same resource must never be in
flight twice. The first caller starts the fetch; everyone who arrives while
it is outstanding awaits the same future.

DESIGN:
- Track "in-flight" requests by key (asset id, vault address)
- If a request is in flight, return the same Future
- When the fetch completes, all waiters get the result (or the exception)
"""

import asyncio
import logging
from typing import Any, Dict, Callable, Awaitable, Set
from dataclasses import dataclass
import time

logger = logging.getLogger(__name__)


@dataclass
class InFlightRequest:
    """A request that is currently being processed."""
    future: asyncio.Future
    started_at: float
    waiter_count: int = 1


class RequestCoalescer:
    """
    Coalesces concurrent identical requests into one.

    HOW IT WORKS:
    1. Request comes in, check if the same key is in flight
    2. If yes: await the existing Future
    3. If no: create a Future, start the fetch as a task, track it
    4. When the fetch completes: resolve the Future for all waiters
    """

    def __init__(self, timeout: float = 30.0):
        self._in_flight: Dict[str, InFlightRequest] = {}
        self._timeout = timeout
        self._tasks: Set[asyncio.Task] = set()

        self._stats = {
            "coalesced": 0,      # Requests that piggybacked on existing
            "initiated": 0,      # Requests that started a new fetch
        }

    def is_in_flight(self, key: str) -> bool:
        return key in self._in_flight

    async def execute(
        self,
        key: str,
        fetcher: Callable[[], Awaitable[Any]]
    ) -> Any:
        """
        Execute request with coalescing.

        Args:
            key: Unique identifier for the resource being read
            fetcher: Async function that performs the read

        Returns:
            Result from the fetch (shared if coalesced)
        """
        # No await between lookup and registration, so this is atomic on the loop
        in_flight = self._in_flight.get(key)
        if in_flight is not None:
            in_flight.waiter_count += 1
            self._stats["coalesced"] += 1
            logger.debug(f"Coalescing request {key[:16]}... ({in_flight.waiter_count} waiters)")
            future = in_flight.future
        else:
            future = asyncio.get_running_loop().create_future()
            self._in_flight[key] = InFlightRequest(future=future, started_at=time.time())
            self._stats["initiated"] += 1
            logger.debug(f"Initiating new request {key[:16]}...")
            task = asyncio.create_task(self._do_fetch(key, fetcher, future))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

        try:
            return await asyncio.wait_for(asyncio.shield(future), timeout=self._timeout)
        except asyncio.TimeoutError:
            logger.error(f"Request timeout: {key[:16]}")
            raise

    async def _do_fetch(
        self,
        key: str,
        fetcher: Callable[[], Awaitable[Any]],
        future: asyncio.Future
    ):
        """Perform the actual fetch and resolve the future."""
        try:
            result = await fetcher()
            if not future.done():
                future.set_result(result)
        except Exception as e:
            if not future.done():
                future.set_exception(e)
        finally:
            request = self._in_flight.pop(key, None)
            if request and request.waiter_count > 1:
                logger.info(f"Coalesced {request.waiter_count} requests for {key[:16]}")
            # Nobody may be awaiting anymore (all waiters timed out)
            if future.done() and not future.cancelled():
                future.exception()

    def get_stats(self) -> Dict:
        """Get coalescing statistics."""
        total = self._stats["initiated"] + self._stats["coalesced"]
        savings_rate = self._stats["coalesced"] / max(1, total)

        return {
            **self._stats,
            "in_flight": len(self._in_flight),
            "savings_rate": f"{savings_rate:.1%}",
        }
