"""
Price Feed
Cached USD price series with a freshness window and fail-soft reads.

- A point is fresh for 15 s; a stale point is returned immediately and a
  background refresh is kicked off (stale-while-revalidate).
- Active refresh every 30 s while started, plus on focus regain.
- Concurrent refreshes for one asset share a single request.
- Points are ordered by fetch completion time; an older completion never
  replaces a newer stored point.
- get_price() never raises: on failure it returns the last point, or
  PRICE_UNAVAILABLE when there is none.
"""
import asyncio
import logging
import time
from typing import Callable, Dict, List, Optional, Set

from ..data_sources.coingecko import CoinGeckoClient
from ..infrastructure.config import get_config
from ..infrastructure.errors import error_tracker
from ..infrastructure.request_coalescer import RequestCoalescer
from ..models import PricePoint, PRICE_UNAVAILABLE
from .poller import PollingTask

logger = logging.getLogger("PriceFeed")


class PriceFeed:
    def __init__(
        self,
        client: Optional[CoinGeckoClient] = None,
        default_asset: Optional[str] = None,
        fresh_seconds: Optional[float] = None,
        refresh_interval: Optional[float] = None,
        clock: Callable[[], float] = time.time,
    ):
        settings = get_config().price_feed
        self.client = client or CoinGeckoClient()
        self.default_asset = default_asset or settings.asset_id
        self.fresh_seconds = settings.fresh_seconds if fresh_seconds is None else fresh_seconds
        self.refresh_interval = settings.refresh_interval_seconds if refresh_interval is None else refresh_interval
        self._clock = clock

        self._points: Dict[str, PricePoint] = {}
        self._assets: Set[str] = {self.default_asset}
        self._coalescer = RequestCoalescer(timeout=settings.request_timeout * 2)
        self._background: Set[asyncio.Task] = set()
        self._poller = PollingTask("PriceFeed", self.refresh_interval, self._refresh_all)

    # ==========================================
    # READS
    # ==========================================

    def latest(self, asset: Optional[str] = None) -> PricePoint:
        """Last stored point without touching the network"""
        return self._points.get(asset or self.default_asset, PRICE_UNAVAILABLE)

    async def get_price(self, asset: Optional[str] = None) -> PricePoint:
        asset = asset or self.default_asset
        self._assets.add(asset)
        point = self._points.get(asset)

        if point is not None and point.is_fresh(self._clock(), self.fresh_seconds):
            logger.debug(f"Price HIT (fresh): {asset}")
            return point

        if point is not None:
            logger.debug(f"Price HIT (stale, refreshing): {asset}")
            self._schedule_refresh(asset)
            return point

        return await self.refresh(asset)

    async def refresh(self, asset: Optional[str] = None) -> PricePoint:
        """Fetch now (joining any in-flight fetch) and return the stored point"""
        asset = asset or self.default_asset
        try:
            await self._coalescer.execute(asset, lambda: self._fetch(asset))
        except Exception as e:
            error_tracker.track(e, f"price:{asset}")
            cached = self._points.get(asset)
            if cached is not None:
                logger.warning(f"Price fetch failed for {asset}, serving cached ${cached.value_usd}: {e}")
            else:
                logger.warning(f"Price fetch failed for {asset}, no cached value: {e}")
        return self._points.get(asset, PRICE_UNAVAILABLE)

    async def _fetch(self, asset: str) -> PricePoint:
        value = await self.client.fetch_usd_price(asset)
        point = PricePoint(value_usd=value, fetched_at=self._clock())
        self._store(asset, point)
        return point

    def _store(self, asset: str, point: PricePoint) -> bool:
        current = self._points.get(asset)
        if current is not None and point.fetched_at < current.fetched_at:
            logger.debug(f"Discarding out-of-order price for {asset}")
            return False
        self._points[asset] = point
        logger.info(f"💰 {asset} price updated: ${point.value_usd}")
        return True

    def _schedule_refresh(self, asset: str):
        if self._coalescer.is_in_flight(asset):
            return
        task = asyncio.create_task(self.refresh(asset))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    # ==========================================
    # REFRESH POLICY
    # ==========================================

    async def _refresh_all(self):
        await asyncio.gather(*(self.refresh(asset) for asset in sorted(self._assets)))

    def track(self, assets: List[str]):
        """Include extra assets in the periodic refresh"""
        self._assets.update(assets)

    def on_focus(self):
        """Focus regained: refresh every tracked asset in the background"""
        for asset in sorted(self._assets):
            self._schedule_refresh(asset)

    def start(self):
        self._poller.start()

    async def stop(self):
        await self._poller.stop()
        for task in list(self._background):
            task.cancel()
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)
        self._background.clear()

    def get_stats(self) -> Dict:
        return {
            "assets": sorted(self._assets),
            "cached": {a: p.value_usd for a, p in self._points.items()},
            "coalescer": self._coalescer.get_stats(),
        }
