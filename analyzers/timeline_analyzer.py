"""
Timeline Analyzer

Collects the launch timeline of a freshly detected token: who created it and
when, how old the creator wallet is, and which other tokens the same wallet
launched on pump.fun (with their current price and market cap).
"""

import asyncio
import time
from typing import Awaitable, Callable, Dict, List, Optional, TypeVar

from loguru import logger

from clients.helius_client import HeliusClient
from clients.jupiter_client import JupiterClient
from clients.pumpfun_client import PumpfunClient
from clients.solana_rpc_client import SolanaRPCClient
from models.token_models import CreatorToken, TimelineTokenInfo, WalletAge
from utils.errors import ExternalServiceError, TokenSentinelError
from utils.retry import retry_async

T = TypeVar("T")

NEW_WALLET_HOURS = 24
SUCCESSFUL_MARKET_CAP_USD = 100_000


class TimelineAnalyzer:
    """Creator history and wallet age for a token launch"""

    def __init__(
        self,
        rpc: SolanaRPCClient,
        helius: HeliusClient,
        pumpfun: Optional[PumpfunClient] = None,
        jupiter: Optional[JupiterClient] = None,
        token_delay: float = 0.4,
        refetch_delay: float = 3.0,
        retry_base_delay: float = 1.0,
    ):
        """
        Args:
            rpc: Solana RPC client (mint info and metadata)
            helius: Helius client (creator and wallet history)
            token_delay: Pause between creator tokens while enriching them
            refetch_delay: Pause between the two creator history fetches
            retry_base_delay: First backoff of the retry helper
        """
        self.rpc = rpc
        self.helius = helius
        self.pumpfun = pumpfun or PumpfunClient()
        self.jupiter = jupiter or JupiterClient()
        self.token_delay = token_delay
        self.refetch_delay = refetch_delay
        self.retry_base_delay = retry_base_delay

    async def retry(
        self,
        operation: Callable[[], Awaitable[T]],
        max_retries: int = 3,
        label: Optional[str] = None,
    ) -> T:
        return await retry_async(operation, max_retries, self.retry_base_delay, label=label)

    # ========================================================================
    # PRICE
    # ========================================================================

    async def get_token_price(self, mint: str) -> Optional[float]:
        """pump.fun market cap / 1e9, then Jupiter; None when neither knows the token"""
        price = await self.pumpfun.get_token_price(mint)
        if price:
            logger.debug(f"Price of {mint[:8]}... from pump.fun: ${price:.10f}")
            return price

        price = await self.jupiter.get_price(mint)
        if price:
            logger.debug(f"Price of {mint[:8]}... from Jupiter: ${price:.10f}")
            return price

        logger.debug(f"No price data for {mint}")
        return None

    # ========================================================================
    # WALLET AGE
    # ========================================================================

    async def get_wallet_age(self, address: str) -> WalletAge:
        """
        Age of a wallet from its oldest System Program transaction

        Returns:
            WalletAge; ``WalletAge(0, True, 0)`` when no history exists or the
            lookup fails
        """
        try:
            transactions = await self.retry(
                lambda: self.helius.get_all_transactions(address, source="SYSTEM_PROGRAM"),
                label="wallet age",
            )
        except TokenSentinelError as e:
            logger.error(f"Failed to get wallet age of {address}: {e}")
            return WalletAge()

        timestamps = [tx["timestamp"] for tx in transactions if tx.get("timestamp")]
        if not timestamps:
            logger.debug(f"No wallet history for {address[:8]}...")
            return WalletAge()

        created_at = min(timestamps) * 1000
        age_in_hours = (time.time() * 1000 - created_at) / 3_600_000
        age = WalletAge(
            created_at=created_at,
            is_new_wallet=age_in_hours < NEW_WALLET_HOURS,
            age_in_hours=age_in_hours,
        )
        logger.info(f"🕐 Wallet {address[:8]}... age {age_in_hours:.1f}h (new: {age.is_new_wallet})")
        return age

    # ========================================================================
    # CREATOR TOKENS
    # ========================================================================

    async def fetch_creation_history(self, creator: str) -> List[Dict]:
        """
        pump.fun CREATE transactions of a wallet

        The Helius index lags for fresh launches, so the history is fetched
        twice a few seconds apart and the longer answer wins.
        """
        first = await self.helius.get_transactions(creator, tx_type="CREATE", source="PUMP_FUN")
        await asyncio.sleep(self.refetch_delay)
        second = await self.helius.get_transactions(creator, tx_type="CREATE", source="PUMP_FUN")

        history = first if len(first) >= len(second) else second
        logger.debug(f"Creation history of {creator[:8]}...: {len(first)} / {len(second)} records, using {len(history)}")
        return history

    async def describe_token(self, mint: str, timestamp: Optional[float]) -> CreatorToken:
        """Name, price and market cap of one creator token"""
        mint_info = await self.retry(lambda: self.rpc.get_mint_info(mint), label=f"mint info {mint[:8]}")
        metadata = await self.retry(lambda: self.rpc.get_token_metadata(mint), label=f"metadata {mint[:8]}")

        price = await self.get_token_price(mint)
        coin = await self.pumpfun.get_coin(mint)
        market_cap = coin.get("usd_market_cap") if coin else None
        if not market_cap and price:
            market_cap = price * mint_info["ui_supply"]

        return CreatorToken(
            address=mint,
            name=(metadata or {}).get("name") or "Unknown",
            price=price,
            market_cap=float(market_cap) if market_cap else None,
            timestamp=timestamp,
        )

    async def get_creator_tokens(self, creator: str) -> List[CreatorToken]:
        """
        Every token the wallet launched on pump.fun, newest first

        Returns:
            List of CreatorToken (deduplicated by mint); empty on failure
        """
        try:
            history = await self.retry(lambda: self.fetch_creation_history(creator), label="creator history")
        except TokenSentinelError as e:
            logger.error(f"❌ Failed to get creator tokens of {creator}: {e}")
            return []

        tokens: Dict[str, CreatorToken] = {}
        for tx in history:
            transfers = tx.get("tokenTransfers") or []
            mint = transfers[0].get("mint") if transfers else None
            if not mint or mint in tokens:
                continue

            try:
                tokens[mint] = await self.describe_token(mint, tx.get("timestamp"))
                logger.debug(f"Creator token {mint[:8]}... {tokens[mint].name}")
            except (TokenSentinelError, KeyError) as e:
                logger.warning(f"Skipping creator token {mint}: {e}")

            await asyncio.sleep(self.token_delay)

        result = sorted(tokens.values(), key=lambda t: t.timestamp or 0, reverse=True)
        logger.info(f"✅ Found {len(result)} tokens launched by {creator[:8]}...")
        return result

    # ========================================================================
    # COLLECT
    # ========================================================================

    async def collect_data(self, token_address: str, launch_timestamp: Optional[float] = None) -> TimelineTokenInfo:
        """
        Full launch timeline of a token

        Raises:
            ExternalServiceError: pump.fun does not know the token
        """
        coin = await self.pumpfun.get_coin(token_address, force_refresh=True)
        if not coin or not coin.get("creator"):
            raise ExternalServiceError("pump.fun", f"no coin data for {token_address}")

        creator = coin["creator"]
        try:
            metadata = await self.retry(lambda: self.rpc.get_token_metadata(token_address), label="token metadata")
        except TokenSentinelError as e:
            logger.warning(f"Metadata lookup failed for {token_address}: {e}")
            metadata = None
        token_name = (metadata or {}).get("name") or coin.get("name") or "Unknown"

        creator_tokens = await self.get_creator_tokens(creator)
        wallet_age = await self.get_wallet_age(creator)
        successful = sum(1 for t in creator_tokens if (t.market_cap or 0) > SUCCESSFUL_MARKET_CAP_USD)

        info = TimelineTokenInfo(
            token_name=token_name,
            token_address=token_address,
            created_at=float(coin.get("created_timestamp") or time.time() * 1000),
            creator=creator,
            launched_at=launch_timestamp,
            creator_wallet_age=wallet_age,
            creator_tokens=creator_tokens,
            successful_tokens=successful,
            price=self.pumpfun.price_from_coin(coin),
        )
        logger.info(
            f"📅 {token_name} ({token_address[:8]}...): creator {creator[:8]}..., "
            f"{len(creator_tokens)} previous tokens, {successful} successful"
        )
        return info
