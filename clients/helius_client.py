"""
Helius API client

Two Helius surfaces are used:
1. Enhanced Transactions API (parsed history of an address, filterable by
   type/source): creator launch history and wallet age
2. DAS ``getTokenAccounts``: counting every holder of a mint
"""

import asyncio
from typing import Dict, List, Optional

import httpx
from loguru import logger

from utils.errors import ConfigurationError, ExternalServiceError, RateLimitError


class HeliusClient:
    """Async Helius client (enhanced transactions + DAS)"""

    API_BASE = "https://api.helius.xyz/v0"
    RPC_BASE = "https://mainnet.helius-rpc.com/"

    def __init__(
        self,
        api_key: Optional[str],
        timeout: float = 30.0,
        page_delay: float = 0.5,
        das_page_delay: float = 0.3,
        max_pages: int = 200,
    ):
        """
        Args:
            api_key: Helius API key (required)
            timeout: HTTP timeout in seconds
            page_delay: Pause between transaction history pages
            das_page_delay: Pause between DAS token-account pages
            max_pages: Hard stop for history pagination
        """
        if not api_key:
            raise ConfigurationError("HELIUS_API_KEY is required", missing=["HELIUS_API_KEY"])
        self.api_key = api_key
        self.timeout = timeout
        self.page_delay = page_delay
        self.das_page_delay = das_page_delay
        self.max_pages = max_pages

    @property
    def rpc_url(self) -> str:
        return f"{self.RPC_BASE}?api-key={self.api_key}"

    async def get_transactions(
        self,
        address: str,
        tx_type: Optional[str] = None,
        source: Optional[str] = None,
        before: Optional[str] = None,
    ) -> List[Dict]:
        """
        One page of parsed transactions for an address (newest first)

        Raises:
            RateLimitError: Helius answered 429
            ExternalServiceError: any other non-200 response
        """
        params = {"api-key": self.api_key}
        if tx_type:
            params["type"] = tx_type
        if source:
            params["source"] = source
        if before:
            params["before"] = before

        url = f"{self.API_BASE}/addresses/{address}/transactions"
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(url, params=params)
        except httpx.HTTPError as e:
            raise ExternalServiceError("helius", str(e)) from e

        if response.status_code == 429:
            raise RateLimitError("helius")
        if response.status_code != 200:
            raise ExternalServiceError("helius", f"HTTP {response.status_code}", response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            raise ExternalServiceError("helius", f"invalid JSON response: {e}") from e
        return data if isinstance(data, list) else []

    async def get_all_transactions(
        self,
        address: str,
        tx_type: Optional[str] = None,
        source: Optional[str] = None,
    ) -> List[Dict]:
        """Walk the history backwards with ``before=<last signature>`` until an empty page"""
        transactions: List[Dict] = []
        before = None

        for page in range(self.max_pages):
            batch = await self.get_transactions(address, tx_type=tx_type, source=source, before=before)
            if not batch:
                break
            transactions.extend(batch)
            before = batch[-1].get("signature")
            if not before:
                break
            await asyncio.sleep(self.page_delay)
        else:
            logger.warning(f"Stopped paginating {address} after {self.max_pages} pages")

        return transactions

    async def count_token_holders(self, mint: str) -> int:
        """Total token accounts of a mint via DAS ``getTokenAccounts`` (cursor pagination)"""
        total = 0
        cursor = None

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                while True:
                    params = {"mint": mint, "limit": 1000}
                    if cursor:
                        params["cursor"] = cursor
                    response = await client.post(self.rpc_url, json={
                        "jsonrpc": "2.0",
                        "id": "token-holders",
                        "method": "getTokenAccounts",
                        "params": params,
                    })
                    await asyncio.sleep(self.das_page_delay)

                    result = (response.json() or {}).get("result") or {}
                    accounts = result.get("token_accounts") or []
                    if not accounts:
                        break

                    total += len(accounts)
                    cursor = result.get("cursor")
                    if not cursor:
                        break
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Failed to count holders for {mint}: {e}")
            return 0

        return total
