"""
Jupiter Price API client

Spot USD prices for Solana mints, used for token pricing and for converting
USD market caps into SOL.
"""

import asyncio
from datetime import datetime, timedelta
from typing import Dict, Optional, Tuple

import httpx
from loguru import logger

from models.token_models import SOL_MINT


class JupiterClient:
    """
    Jupiter price v2 client

    GET https://api.jup.ag/price/v2?ids=<mint>&showExtraInfo=true
    -> {"data": {"<mint>": {"id": ..., "price": "0.0012", ...}}}
    """

    BASE_URL = "https://api.jup.ag/price/v2"

    def __init__(self, cache_ttl_seconds: int = 30, timeout: float = 10.0):
        """
        Args:
            cache_ttl_seconds: Price cache TTL (avoid rate limits)
            timeout: HTTP timeout in seconds
        """
        self.cache_ttl = timedelta(seconds=cache_ttl_seconds)
        self.price_cache: Dict[str, Tuple[float, datetime]] = {}
        self.timeout = timeout
        self.rate_limit_delay = 0.2
        self.last_request_time = 0.0

    async def get_price(self, mint: str) -> Optional[float]:
        """
        Current USD price of a mint

        Returns:
            Price as float, or None when Jupiter has no usable price
        """
        cached = self.price_cache.get(mint)
        if cached and datetime.now() - cached[1] < self.cache_ttl:
            return cached[0]

        try:
            await self._apply_rate_limit()

            params = {"ids": mint, "showExtraInfo": "true"}
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(self.BASE_URL, params=params)

            if response.status_code in (401, 429):
                logger.debug(f"[JUPITER] API returned {response.status_code} for {mint}")
                return None

            response.raise_for_status()
            data = response.json()

            price_info = (data.get("data") or {}).get(mint)
            if not price_info or price_info.get("price") is None:
                logger.debug(f"[JUPITER] No price for {mint}")
                return None

            price = float(price_info["price"])
            self.price_cache[mint] = (price, datetime.now())
            return price

        except httpx.HTTPStatusError as e:
            logger.warning(f"[JUPITER] Price fetch failed for {mint}: {e.response.status_code}")
            return None
        except (httpx.HTTPError, ValueError, TypeError) as e:
            logger.debug(f"[JUPITER] Price fetch failed for {mint}: {e}")
            return None

    async def get_sol_price(self) -> Optional[float]:
        """SOL/USD price"""
        return await self.get_price(SOL_MINT)

    async def _apply_rate_limit(self):
        loop = asyncio.get_event_loop()
        elapsed = loop.time() - self.last_request_time
        if elapsed < self.rate_limit_delay:
            await asyncio.sleep(self.rate_limit_delay - elapsed)
        self.last_request_time = loop.time()

    def clear_cache(self):
        self.price_cache.clear()


_jupiter_client: Optional[JupiterClient] = None


def get_jupiter_client() -> JupiterClient:
    """Shared client instance"""
    global _jupiter_client
    if _jupiter_client is None:
        _jupiter_client = JupiterClient()
    return _jupiter_client
