"""
Price & Liquidity Service

Prices a token and maps its largest token accounts to owner wallets to
measure holder concentration.

Owner wallets (not token accounts) are what matter: a DEX pool or a CEX hot
wallet holding a large share is expected, a regular wallet holding a large
share is a dump risk. Known exchange addresses are flagged ``is_dex`` and left
out of the non-DEX concentration figures.
"""

from typing import List, Optional

from loguru import logger

from clients.helius_client import HeliusClient
from clients.jupiter_client import JupiterClient
from clients.solana_rpc_client import SolanaRPCClient
from models.token_models import PriceInfo, TokenHolding, TokenHoldingInfo, is_dex_address
from utils.errors import ConfigurationError, TokenSentinelError


class PriceLiquidityService:
    """Holder distribution and spot pricing for a mint"""

    def __init__(
        self,
        rpc: SolanaRPCClient,
        helius_api_key: Optional[str] = None,
        jupiter: Optional[JupiterClient] = None,
        helius: Optional[HeliusClient] = None,
    ):
        """
        Raises:
            ConfigurationError: no Helius API key and no Helius client supplied
        """
        if helius is None:
            if not helius_api_key:
                raise ConfigurationError("HELIUS_API_KEY is required in environment variables", missing=["HELIUS_API_KEY"])
            helius = HeliusClient(helius_api_key)
        self.rpc = rpc
        self.helius = helius
        self.jupiter = jupiter or JupiterClient()

    async def get_token_holders_count(self, mint: str) -> int:
        return await self.helius.count_token_holders(mint)

    async def get_token_price(self, mint: str) -> Optional[float]:
        price = await self.jupiter.get_price(mint)
        if price is None:
            logger.debug(f"No price data available for {mint}")
        return price

    async def get_holding_info(self, mint: str) -> TokenHoldingInfo:
        """
        Largest holders of a mint, resolved to owner wallets

        Returns:
            TokenHoldingInfo sorted by percentage (descending); empty on failure
        """
        try:
            supply = await self.rpc.get_token_supply(mint)
            total_supply = supply.get("uiAmount")
            if not total_supply:
                logger.warning(f"Could not determine total supply of {mint}")
                return TokenHoldingInfo()

            largest = await self.rpc.get_token_largest_accounts(mint)
            if not largest:
                logger.warning(f"No token accounts found for {mint}")
                return TokenHoldingInfo()

            total_holders = await self.get_token_holders_count(mint)
            logger.debug(f"Supply {total_supply:,.0f}, {total_holders} holders, {len(largest)} largest accounts")

            owner_accounts = await self.rpc.get_multiple_accounts([acc["address"] for acc in largest])

            holdings: List[TokenHolding] = []
            for account, owner_account in zip(largest, owner_accounts):
                owner = _owner_of(owner_account)
                amount = account.get("uiAmount")
                if not owner or amount is None:
                    logger.debug(f"Skipping token account {account.get('address')} (no owner/amount)")
                    continue
                holdings.append(TokenHolding(
                    address=owner,
                    amount=float(amount),
                    percentage=float(amount) / total_supply * 100,
                    is_dex=is_dex_address(owner),
                    total_holders=total_holders,
                ))

            holdings.sort(key=lambda h: h.percentage, reverse=True)
            top5 = top_non_dex_percentage(holdings, 5)
            self._log_summary(holdings, top5)

            return TokenHoldingInfo(holdings=holdings, top5_non_dex_percentage=top5)

        except (TokenSentinelError, KeyError, TypeError, ZeroDivisionError) as e:
            logger.error(f"Error getting holding info for {mint}: {e}")
            return TokenHoldingInfo()

    def _log_summary(self, holdings: List[TokenHolding], top5: float):
        dex = [h for h in holdings if h.is_dex]
        logger.info(
            f"📊 Holdings: {len(dex)} DEX/CEX accounts "
            f"({sum(h.percentage for h in dex):.2f}%), "
            f"{len(holdings) - len(dex)} regular, top-5 non-DEX {top5:.2f}%"
        )

    async def get_detailed_price_info(self, mint: str) -> Optional[PriceInfo]:
        """
        Price and market cap (supply x price)

        Returns:
            PriceInfo, with ``market_cap`` None when supply is unknown; None without a price
        """
        price = await self.get_token_price(mint)
        if not price:
            return None

        try:
            supply = (await self.rpc.get_token_supply(mint)).get("uiAmount")
        except TokenSentinelError as e:
            logger.warning(f"Supply lookup failed for {mint}: {e}")
            supply = None

        if supply:
            market_cap = float(supply) * price
            logger.info(f"💰 {mint[:8]}... price ${price:.8f}, market cap ${market_cap:,.0f}")
            return PriceInfo(price=price, market_cap=market_cap, supply=float(supply))
        return PriceInfo(price=price, market_cap=None, supply=None)


def _owner_of(account: Optional[dict]) -> Optional[str]:
    """Owner wallet of a jsonParsed SPL token account"""
    if not account:
        return None
    data = account.get("data")
    if not isinstance(data, dict):
        return None
    return data.get("parsed", {}).get("info", {}).get("owner")


def top_non_dex_percentage(holdings: List[TokenHolding], count: int) -> float:
    """Combined share of the ``count`` largest non-exchange holders"""
    non_dex = [h for h in holdings if not h.is_dex]
    return sum(h.percentage for h in non_dex[:count])
