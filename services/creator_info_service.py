"""
Creator Info Service

Resolves the wallet that created a token and the other tokens it launched.

pump.fun knows the creator of every token launched there. For anything else
the creator is recovered on-chain: the fee payer (first account key) of the
earliest transaction that touched the mint.
"""

import asyncio
from typing import Dict, List, Optional

from loguru import logger

from analyzers.price_liquidity import PriceLiquidityService
from clients.helius_client import HeliusClient
from clients.pumpfun_client import PumpfunClient
from clients.solana_rpc_client import TOKEN_PROGRAM_ID, SolanaRPCClient
from models.token_models import CreatorToken, CurrentToken, TokenCreator
from utils.errors import TokenSentinelError
from utils.retry import retry_async

SYSTEM_PROGRAM_ID = "11111111111111111111111111111111"
CREATION_LOG_MARKERS = ("Instruction: InitializeMint", "Instruction: Create", "Instruction: Mint")
SIGNATURE_PAGE_SIZE = 1000


def _looks_like_creation(transaction: Optional[Dict]) -> bool:
    logs = ((transaction or {}).get("meta") or {}).get("logMessages") or []
    return any(marker in line for line in logs for marker in CREATION_LOG_MARKERS)


class CreatorInfoService:
    """Token creator lookup (pump.fun first, chain history as fallback)"""

    def __init__(
        self,
        rpc: SolanaRPCClient,
        price_liquidity: PriceLiquidityService,
        helius: Optional[HeliusClient] = None,
        pumpfun: Optional[PumpfunClient] = None,
        token_delay: float = 0.4,
        refetch_delay: float = 3.0,
        page_delay: float = 0.5,
        signature_retry_delay: float = 2.0,
    ):
        self.rpc = rpc
        self.price_liquidity = price_liquidity
        self.helius = helius or price_liquidity.helius
        self.pumpfun = pumpfun or PumpfunClient()
        self.token_delay = token_delay
        self.refetch_delay = refetch_delay
        self.page_delay = page_delay
        self.signature_retry_delay = signature_retry_delay

    async def is_contract(self, address: str) -> bool:
        """True for executable accounts and accounts not owned by the System Program"""
        try:
            info = await self.rpc.get_account_info(address)
        except TokenSentinelError as e:
            logger.warning(f"Contract check failed for {address}: {e}")
            return False

        if not info:
            return False
        if info.get("executable"):
            return True
        owner = info.get("owner")
        if owner == TOKEN_PROGRAM_ID:
            return True
        return owner != SYSTEM_PROGRAM_ID

    async def get_creator_info(self, mint: str) -> TokenCreator:
        """
        Creator wallet, its other launches and the current token's timing

        Returns:
            TokenCreator; ``address`` is empty when the creator cannot be found
        """
        logger.info(f"👤 Looking up creator of {mint}")
        try:
            coin = await self.pumpfun.get_coin(mint)
            if coin and coin.get("creator"):
                creator = coin["creator"]
                logger.info(f"✅ Creator from pump.fun: {creator}")
                return TokenCreator(
                    address=creator,
                    other_tokens=await self.get_creator_other_tokens(creator, exclude=mint),
                    creation_time=(coin.get("created_timestamp") or 0) // 1000,
                    current_token=CurrentToken(
                        creation_time=(coin.get("created_timestamp") or 0) // 1000,
                        raydium_pool=coin.get("raydium_pool"),
                    ),
                )

            logger.debug("pump.fun has no creator, falling back to chain history")
            if not await self.is_contract(mint):
                logger.warning(f"❌ {mint} is not a program-owned account")
                return TokenCreator(address="")

            return await self._creator_from_chain(mint)

        except TokenSentinelError as e:
            logger.error(f"❌ Failed to get creator info for {mint}: {e}")
            return TokenCreator(address="")

    async def _creator_from_chain(self, mint: str) -> TokenCreator:
        signatures = await self.get_all_signatures(mint)
        if not signatures:
            logger.warning(f"No transactions found for {mint}")
            return TokenCreator(address="")

        signatures.sort(key=lambda s: s.get("slot") or 0)
        await self._order_same_slot_pair(signatures)

        earliest = signatures[0]
        tx = await self.rpc.get_transaction(earliest["signature"])
        account_keys = (((tx or {}).get("transaction") or {}).get("message") or {}).get("accountKeys") or []
        if not account_keys:
            logger.warning(f"Creation transaction {earliest['signature']} has no account keys")
            return TokenCreator(address="")

        first_key = account_keys[0]
        creator = first_key.get("pubkey") if isinstance(first_key, dict) else first_key
        block_time = earliest.get("blockTime") or 0
        logger.info(f"✅ Creator from chain: {creator} (slot {earliest.get('slot')})")

        return TokenCreator(
            address=creator,
            other_tokens=await self.get_creator_other_tokens(creator, exclude=mint),
            creation_time=block_time,
            current_token=CurrentToken(creation_time=block_time, raydium_pool=None),
        )

    async def _order_same_slot_pair(self, signatures: List[Dict]):
        """Put the mint/create transaction first when the two earliest share a slot and block time"""
        if len(signatures) < 2 or signatures[0].get("slot") != signatures[1].get("slot"):
            return

        first, second = await asyncio.gather(
            self.rpc.get_transaction(signatures[0]["signature"]),
            self.rpc.get_transaction(signatures[1]["signature"]),
        )
        if (first or {}).get("blockTime") != (second or {}).get("blockTime"):
            return

        if not _looks_like_creation(first) and _looks_like_creation(second):
            signatures[0], signatures[1] = signatures[1], signatures[0]

    async def get_all_signatures(self, mint: str) -> List[Dict]:
        """Full signature history of an address, newest first, until an empty page"""
        signatures: List[Dict] = []
        before = None

        while True:
            try:
                page = await retry_async(
                    lambda: self.rpc.get_signatures_for_address(mint, before=before, limit=SIGNATURE_PAGE_SIZE),
                    max_retries=5,
                    base_delay=self.signature_retry_delay,
                    label="getSignaturesForAddress",
                )
            except TokenSentinelError as e:
                logger.error(f"Stopped reading signatures of {mint}: {e}")
                break

            if not page:
                break
            signatures.extend(page)
            before = page[-1]["signature"]
            logger.debug(f"Fetched {len(page)} signatures ({len(signatures)} total)")
            await asyncio.sleep(self.page_delay)

        return signatures

    async def get_creator_other_tokens(self, creator: str, exclude: Optional[str] = None) -> List[CreatorToken]:
        """pump.fun launches of ``creator``, priced via Jupiter (market cap = price x supply)"""
        try:
            first = await self.helius.get_transactions(creator, tx_type="CREATE", source="PUMP_FUN")
            await asyncio.sleep(self.refetch_delay)
            second = await self.helius.get_transactions(creator, tx_type="CREATE", source="PUMP_FUN")
        except TokenSentinelError as e:
            logger.error(f"❌ Failed to list tokens of creator {creator}: {e}")
            return []

        history = first if len(first) >= len(second) else second
        tokens: Dict[str, CreatorToken] = {}

        for tx in history:
            transfers = tx.get("tokenTransfers") or []
            mint = transfers[0].get("mint") if transfers else None
            if not mint or mint == exclude or mint in tokens:
                continue

            try:
                mint_info = await self.rpc.get_mint_info(mint)
                metadata = await self.rpc.get_token_metadata(mint)
                price = await self.price_liquidity.get_token_price(mint)
                tokens[mint] = CreatorToken(
                    address=mint,
                    name=(metadata or {}).get("name") or "Unknown",
                    price=price,
                    market_cap=price * mint_info["ui_supply"] if price else None,
                    timestamp=tx.get("timestamp"),
                )
                await asyncio.sleep(self.token_delay)
            except TokenSentinelError as e:
                logger.warning(f"Skipping creator token {mint}: {e}")

        logger.info(f"✅ Creator {creator[:8]}... launched {len(tokens)} other tokens")
        return list(tokens.values())
