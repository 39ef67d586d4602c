"""
Solana RPC Load Balancer

Spreads JSON-RPC traffic across every configured Solana endpoint so a single
rate-limited provider does not stall the analyzers.

Endpoints are read from the environment in this order:
- SOLANA_RPC_URL / HELIUS_RPC_URL: primary endpoints
- SOLANA_RPC_URLS: comma-separated list
- SOLANA_RPC_URL_2 .. SOLANA_RPC_URL_10: numbered extras
"""

import os
import random
from typing import List, Optional, Dict
from loguru import logger
from dotenv import load_dotenv

load_dotenv()

PUBLIC_MAINNET_RPC = "https://api.mainnet-beta.solana.com"
MAX_NUMBERED_ENDPOINTS = 10


class SolanaRPCLoadBalancer:
    """Round-robin / random selection over healthy Solana RPC endpoints"""

    def __init__(self, rpc_urls: Optional[List[str]] = None, max_failures: int = 3):
        """
        Args:
            rpc_urls: Explicit endpoint list. Read from env vars when None.
            max_failures: Consecutive failures before an endpoint is skipped
        """
        self.rpc_urls: List[str] = []
        self.current_index = 0
        self.failed_endpoints: Dict[str, int] = {}
        self.max_failures = max_failures

        if rpc_urls:
            for url in rpc_urls:
                self._add(url)
        else:
            self._load_rpc_urls_from_env()

        if not self.rpc_urls:
            self.rpc_urls = [PUBLIC_MAINNET_RPC]
            logger.warning("⚠️ No Solana RPC configured, falling back to the public mainnet endpoint")

        logger.info(f"🔀 RPC load balancer ready with {len(self.rpc_urls)} endpoint(s)")
        for i, url in enumerate(self.rpc_urls, 1):
            logger.debug(f"  {i}. {_mask(url)}")

    def _add(self, url: Optional[str]):
        url = (url or "").strip()
        if url and url not in self.rpc_urls:
            self.rpc_urls.append(url)

    def _load_rpc_urls_from_env(self):
        """Collect endpoints from the supported environment variables"""
        self._add(os.getenv("SOLANA_RPC_URL"))
        self._add(os.getenv("HELIUS_RPC_URL"))

        urls_str = os.getenv("SOLANA_RPC_URLS")
        if urls_str:
            for url in urls_str.split(","):
                self._add(url)

        for i in range(2, MAX_NUMBERED_ENDPOINTS + 1):
            endpoint = os.getenv(f"SOLANA_RPC_URL_{i}")
            if not endpoint:
                break
            self._add(endpoint)

    def healthy_urls(self) -> List[str]:
        return [
            url for url in self.rpc_urls
            if self.failed_endpoints.get(url, 0) < self.max_failures
        ]

    def get_next_rpc_url(self, strategy: str = "round_robin") -> str:
        """
        Pick the next endpoint.

        Args:
            strategy: "round_robin" or "random"

        Returns:
            RPC URL string
        """
        available = self.healthy_urls()

        if not available:
            logger.warning("All RPC endpoints marked failed, resetting failure counts")
            self.failed_endpoints.clear()
            available = self.rpc_urls

        if strategy == "random":
            return random.choice(available)

        url = available[self.current_index % len(available)]
        self.current_index += 1
        return url

    def mark_failure(self, rpc_url: str):
        """Record a failure for an endpoint"""
        self.failed_endpoints[rpc_url] = self.failed_endpoints.get(rpc_url, 0) + 1
        logger.warning(f"RPC endpoint failed: {_mask(rpc_url)} (failures: {self.failed_endpoints[rpc_url]})")

    def mark_success(self, rpc_url: str):
        """Reset the failure count of an endpoint that answered"""
        if self.failed_endpoints.pop(rpc_url, None) is not None:
            logger.debug(f"RPC endpoint recovered: {_mask(rpc_url)}")

    def get_primary_rpc_url(self) -> str:
        return self.rpc_urls[0]

    def get_all_rpc_urls(self) -> List[str]:
        return self.rpc_urls.copy()


def _mask(url: str) -> str:
    """Hide api-key query values before an URL hits the logs"""
    if "api-key=" in url:
        return url.split("api-key=")[0] + "api-key=***"
    return url[:60]


_global_load_balancer: Optional[SolanaRPCLoadBalancer] = None


def get_rpc_load_balancer() -> SolanaRPCLoadBalancer:
    """Get or create the process-wide load balancer"""
    global _global_load_balancer
    if _global_load_balancer is None:
        _global_load_balancer = SolanaRPCLoadBalancer()
    return _global_load_balancer
