"""
CoinGecko API Client
Fetches USD spot prices from the public /simple/price endpoint
"""
import httpx
from typing import Optional
import logging

from ..infrastructure.config import get_config
from ..infrastructure.errors import ExternalAPIError

logger = logging.getLogger("CoinGecko")


class CoinGeckoClient:
    """Client for the CoinGecko simple price API (free, no API key needed)"""

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        settings = get_config().price_feed
        self.base_url = (base_url or settings.coingecko_url).rstrip("/")
        self.timeout = timeout or settings.request_timeout
        self._transport = transport

    async def fetch_usd_price(self, asset_id: str) -> float:
        """
        Fetch the USD price of one asset.

        Response shape: { "<asset-id>": { "usd": float } }

        Raises:
            ExternalAPIError on transport failure, non-2xx status,
            a missing asset key, or a negative price.
        """
        url = f"{self.base_url}/simple/price"
        params = {"ids": asset_id, "vs_currencies": "usd"}

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(url, params=params, headers={"Accept": "application/json"})
        except httpx.HTTPError as e:
            raise ExternalAPIError("coingecko", message=f"CoinGecko request failed: {e}") from e

        if not response.is_success:
            raise ExternalAPIError("coingecko", response.status_code)

        try:
            usd = response.json()[asset_id]["usd"]
            price = float(usd)
        except (ValueError, KeyError, TypeError) as e:
            raise ExternalAPIError("coingecko", response.status_code, f"Invalid price payload for {asset_id}") from e

        if price < 0:
            raise ExternalAPIError("coingecko", response.status_code, f"Negative price for {asset_id}: {price}")

        logger.debug(f"{asset_id}/USD: ${price}")
        return price
