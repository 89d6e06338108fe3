"""
DeFi Llama Yields Client
Pool APY data for Shadow vaults, cached in local storage under
`defi_llama_apy_cache` for two minutes.
"""
import json
import logging
from typing import Dict, Iterable, Optional

import httpx

from ..infrastructure.config import get_config
from ..infrastructure.errors import ExternalAPIError, StorageError, error_tracker
from ..infrastructure.local_storage import LocalStorage
from ..normalization import now_ms

logger = logging.getLogger("DefiLlama")

CACHE_KEY = "defi_llama_apy_cache"

POOL_FIELDS = ("chain", "project", "symbol", "tvlUsd", "apyBase", "apyReward", "apy", "apyMean30d", "pool")

# Only Shadow CLMM pools on Sonic are cached; lookups by pool id happen on read
POOL_CHAIN = "Sonic"
POOL_PROJECT = "shadow-exchange-clmm"


class DefiLlamaClient:
    """Client for yields.llama.fi with a persisted two-minute cache"""

    def __init__(self, storage: LocalStorage, url: Optional[str] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        settings = get_config().yields
        self.storage = storage
        self.url = url or settings.defillama_url
        self.timeout = settings.request_timeout
        self.cache_ms = int(settings.cache_seconds * 1000)
        self._transport = transport

    def _load_cache(self) -> Optional[Dict]:
        try:
            raw = self.storage.get_item(CACHE_KEY)
        except StorageError as e:
            logger.warning(f"Failed to read APY cache: {e}")
            return None
        if not raw:
            return None
        try:
            cached = json.loads(raw)
            return {"data": dict(cached["data"]), "lastFetch": int(cached["lastFetch"])}
        except (ValueError, KeyError, TypeError):
            logger.debug("Ignoring unreadable APY cache entry")
            return None

    def _save_cache(self, data: Dict[str, Dict]):
        try:
            self.storage.set_item(CACHE_KEY, json.dumps({"data": data, "lastFetch": now_ms()}))
        except StorageError as e:
            logger.warning(f"Failed to persist APY cache: {e}")

    async def _fetch_pools(self) -> Dict[str, Dict]:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(self.url)
        except httpx.HTTPError as e:
            raise ExternalAPIError("defillama", message=f"DeFi Llama request failed: {e}") from e

        if not response.is_success:
            raise ExternalAPIError("defillama", response.status_code)

        try:
            pools = response.json()["data"]
            if not isinstance(pools, list):
                raise TypeError("data is not a list")
        except (ValueError, KeyError, TypeError) as e:
            raise ExternalAPIError("defillama", response.status_code, "Invalid response format from DeFi Llama") from e

        return {
            pool["pool"]: {k: pool.get(k) for k in POOL_FIELDS}
            for pool in pools
            if isinstance(pool, dict) and pool.get("chain") == POOL_CHAIN and pool.get("project") == POOL_PROJECT
        }

    async def get_pool_apys(self, pool_ids: Iterable[str]) -> Dict[str, Dict]:
        """
        Return {pool_id: pool_data} for the requested DeFi Llama pool ids.
        Falls back to the stale cached copy (or {}) when the API fails.
        """
        wanted = {p for p in pool_ids if p}
        cached = self._load_cache()

        if cached and now_ms() - cached["lastFetch"] < self.cache_ms:
            logger.debug("APY cache HIT")
            return {k: v for k, v in cached["data"].items() if k in wanted}

        try:
            fresh = await self._fetch_pools()
        except ExternalAPIError as e:
            error_tracker.track(e, "defillama")
            logger.warning(f"APY fetch failed, serving cached data: {e}")
            stale = cached["data"] if cached else {}
            return {k: v for k, v in stale.items() if k in wanted}

        self._save_cache(fresh)
        logger.info(f"Fetched APY data for {len(fresh)} pools")
        return {k: v for k, v in fresh.items() if k in wanted}
