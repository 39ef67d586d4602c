"""
Creator holding analyzer

Looks up how many tokens a wallet (usually the token creator) still holds of a
freshly launched mint, and prices tokens for the monitor's queue filter.
"""

import asyncio
import time
from typing import Dict, List, Optional, Tuple

from loguru import logger

from clients.jupiter_client import JupiterClient
from clients.pumpfun_client import PumpfunClient
from clients.solana_rpc_client import SolanaRPCClient, derive_associated_token_address
from models.token_models import CreatorHolding
from utils.errors import TokenSentinelError


class TokenAnalyzer:
    """Wallet holdings of a mint, with a short-lived cache"""

    CACHE_TTL = 30  # seconds

    def __init__(
        self,
        rpc: SolanaRPCClient,
        pumpfun: Optional[PumpfunClient] = None,
        jupiter: Optional[JupiterClient] = None,
    ):
        self.rpc = rpc
        self.pumpfun = pumpfun or PumpfunClient()
        self.jupiter = jupiter or JupiterClient()
        self.cache: Dict[str, Tuple[CreatorHolding, float]] = {}

    async def get_token_holding(self, wallet: str, mint: str) -> CreatorHolding:
        """
        Balance of ``wallet`` in ``mint`` (UI units)

        The associated token account is checked first; any other token account
        of the wallet for that mint is used as a fallback. Errors yield a zero
        balance.
        """
        cache_key = f"{wallet}:{mint}"
        cached = self.cache.get(cache_key)
        if cached and time.time() - cached[1] < self.CACHE_TTL:
            return cached[0]

        try:
            mint_info = await self.rpc.get_mint_info(mint)
            decimals = mint_info["decimals"]

            balance = await self._ata_balance(wallet, mint, decimals)
            if balance is None:
                logger.debug(f"No ATA for {wallet[:8]}..., checking other token accounts")
                balance = await self._owner_accounts_balance(wallet, mint, decimals)

            holding = CreatorHolding(balance=balance or 0.0)
            self.cache[cache_key] = (holding, time.time())
            return holding

        except (TokenSentinelError, ValueError, KeyError) as e:
            logger.warning(f"Failed to get holding of {wallet[:8]}... in {mint[:8]}...: {e}")
            return CreatorHolding(balance=0.0)

    async def _ata_balance(self, wallet: str, mint: str, decimals: int) -> Optional[float]:
        ata = derive_associated_token_address(wallet, mint)
        if not await self.rpc.get_account_info(ata):
            return None
        value = await self.rpc.get_token_account_balance(ata)
        return int(value.get("amount", 0)) / (10 ** decimals)

    async def _owner_accounts_balance(self, wallet: str, mint: str, decimals: int) -> float:
        accounts = await self.rpc.get_token_accounts_by_owner(wallet, mint)
        if not accounts:
            logger.debug(f"No token accounts found for {wallet[:8]}...")
            return 0.0
        value = await self.rpc.get_token_account_balance(accounts[0]["pubkey"])
        return int(value.get("amount", 0)) / (10 ** decimals)

    async def get_batch_token_holdings(self, wallets: List[str], mint: str) -> Dict[str, CreatorHolding]:
        holdings = await asyncio.gather(*(self.get_token_holding(w, mint) for w in wallets))
        return dict(zip(wallets, holdings))

    async def get_token_price(self, mint: str) -> Optional[float]:
        """pump.fun derived price, falling back to Jupiter"""
        price = await self.pumpfun.get_token_price(mint)
        if price:
            return price
        return await self.jupiter.get_price(mint)

    async def get_creator_holding(self, creator: str, mint: str) -> CreatorHolding:
        """Creator balance, with its USD value when a price is available"""
        holding = await self.get_token_holding(creator, mint)
        price = await self.get_token_price(mint)
        if price is not None:
            return CreatorHolding(balance=holding.balance, balance_usd=holding.balance * price)
        return holding

    def clear_cache(self):
        self.cache.clear()

    async def analyze_token(self, token_address: str, creator: str) -> Dict[str, CreatorHolding]:
        holding = await self.get_token_holding(creator, token_address)
        logger.info(f"👛 Creator holding: {holding.balance:,.2f} of {token_address[:8]}...")
        return {"creator_holding": holding}
