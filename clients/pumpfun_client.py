"""
Pump.fun frontend API client

pump.fun is the primary metadata source for freshly launched tokens:
creator wallet, creation time, Raydium pool and USD market cap.
"""

import time
from typing import Dict, Optional, Tuple

import httpx
from loguru import logger

# Every pump.fun token is minted with a fixed supply of one billion
PUMPFUN_TOTAL_SUPPLY = 1_000_000_000


class PumpfunClient:
    """Read-only access to pump.fun coin data"""

    PUMPFUN_API = "https://frontend-api.pump.fun"
    PUMPFUN_SITE = "https://pump.fun"

    def __init__(self, cache_ttl_seconds: int = 60, timeout: float = 15.0):
        self.timeout = timeout
        self.cache_ttl = cache_ttl_seconds
        self.coin_cache: Dict[str, Tuple[dict, float]] = {}

    async def get_coin(self, mint: str, force_refresh: bool = False) -> Optional[dict]:
        """
        Coin record from ``/coins/{mint}``

        Returns:
            The JSON dict (creator, created_timestamp in ms, raydium_pool,
            usd_market_cap, name, symbol, ...) or None when unknown
        """
        if not force_refresh and mint in self.coin_cache:
            data, cached_at = self.coin_cache[mint]
            if time.time() - cached_at < self.cache_ttl:
                return data

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(f"{self.PUMPFUN_API}/coins/{mint}")

            if response.status_code != 200:
                logger.debug(f"pump.fun returned {response.status_code} for {mint}")
                return None

            data = response.json()
            if not isinstance(data, dict) or not data:
                return None

            self.coin_cache[mint] = (data, time.time())
            return data

        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Error fetching pump.fun data for {mint}: {e}")
            return None

    @staticmethod
    def price_from_coin(coin: Optional[dict]) -> Optional[float]:
        """USD price derived from the USD market cap over the fixed supply"""
        if not coin:
            return None
        market_cap = coin.get("usd_market_cap")
        if not market_cap:
            return None
        return float(market_cap) / PUMPFUN_TOTAL_SUPPLY

    async def get_token_price(self, mint: str) -> Optional[float]:
        return self.price_from_coin(await self.get_coin(mint))

    async def is_pump_token(self, address: str) -> bool:
        """True when pump.fun serves a coin page for the address"""
        try:
            async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
                response = await client.get(f"{self.PUMPFUN_SITE}/coin/{address}")
            return response.status_code == 200
        except httpx.HTTPError as e:
            logger.debug(f"pump.fun coin page check failed for {address}: {e}")
            return False
