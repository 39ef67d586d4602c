"""Token identity and mint authorities"""

from loguru import logger

from clients.solana_rpc_client import SolanaRPCClient
from models.token_models import TokenContract, TokenInfo


class TokenInfoService:
    """Name, symbol and contract settings of a mint"""

    def __init__(self, rpc: SolanaRPCClient):
        self.rpc = rpc

    async def get_token_info(self, mint: str) -> TokenInfo:
        """
        Raises:
            RPCError: the mint account is missing or not a token mint
        """
        mint_info = await self.rpc.get_mint_info(mint)
        metadata = await self.rpc.get_token_metadata(mint)

        contract = TokenContract(
            has_metadata=metadata is not None,
            mint_authority=mint_info.get("mint_authority"),
            freeze_authority=mint_info.get("freeze_authority"),
            supply=float(mint_info["supply"]),
            decimals=mint_info["decimals"],
        )

        name = (metadata or {}).get("name") or "Unknown"
        symbol = (metadata or {}).get("symbol") or "UNKNOWN"
        logger.info(
            f"🪙 {name} ({symbol}): mint authority {'set' if contract.mint_authority else 'revoked'}, "
            f"freeze authority {'set' if contract.freeze_authority else 'revoked'}"
        )
        return TokenInfo(address=mint, name=name, symbol=symbol, contract=contract)
