"""
Solana JSON-RPC client

Thin async wrapper over the Solana JSON-RPC API used by every analyzer:
- token supply / largest accounts / balances
- parsed mint and token accounts
- transactions and signature history
- Metaplex metadata (name, symbol, uri) decoded from the metadata account

Requests retry with exponential backoff on HTTP 429 and on rate-limit RPC
errors. When no explicit URL is given the client rotates through the shared
RPC load balancer.
"""

import asyncio
import base64
import struct
from typing import Any, Dict, List, Optional

import httpx
from loguru import logger
from solders.pubkey import Pubkey

from utils.errors import RPCError, RateLimitError
from utils.solana_rpc_load_balancer import get_rpc_load_balancer

TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
ASSOCIATED_TOKEN_PROGRAM_ID = "ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL"
METADATA_PROGRAM_ID = "metaqbxxUerdq28cj1RbAWkYQm3ybzjb6a8bt518x1s"

# getMultipleAccounts accepts at most 100 keys per call
MULTIPLE_ACCOUNTS_BATCH = 100


def derive_associated_token_address(owner: str, mint: str) -> str:
    """Associated token account of ``owner`` for ``mint`` (SPL Token program)"""
    address, _ = Pubkey.find_program_address(
        [
            bytes(Pubkey.from_string(owner)),
            bytes(Pubkey.from_string(TOKEN_PROGRAM_ID)),
            bytes(Pubkey.from_string(mint)),
        ],
        Pubkey.from_string(ASSOCIATED_TOKEN_PROGRAM_ID),
    )
    return str(address)


def derive_metadata_address(mint: str) -> str:
    """Metaplex metadata PDA: seeds = ["metadata", program_id, mint]"""
    program = Pubkey.from_string(METADATA_PROGRAM_ID)
    address, _ = Pubkey.find_program_address(
        [b"metadata", bytes(program), bytes(Pubkey.from_string(mint))],
        program,
    )
    return str(address)


def _read_borsh_string(raw: bytes, offset: int) -> tuple:
    """Decode a borsh string (u32 LE length + utf-8 bytes); returns (value, next_offset)"""
    (length,) = struct.unpack_from("<I", raw, offset)
    offset += 4
    value = raw[offset:offset + length].decode("utf-8", errors="ignore")
    return value.rstrip("\x00").strip(), offset + length


def parse_metadata_account(raw: bytes) -> Dict[str, Any]:
    """
    Decode the leading fields of a Metaplex metadata account

    Layout: key (u8) | update_authority (32) | mint (32) | name | symbol | uri
    """
    if len(raw) < 69:
        raise ValueError("metadata account too short")
    update_authority = str(Pubkey(raw[1:33]))
    mint = str(Pubkey(raw[33:65]))
    name, offset = _read_borsh_string(raw, 65)
    symbol, offset = _read_borsh_string(raw, offset)
    uri, _ = _read_borsh_string(raw, offset)
    return {
        "update_authority": update_authority,
        "mint": mint,
        "name": name,
        "symbol": symbol,
        "uri": uri,
    }


class SolanaRPCClient:
    """Async Solana JSON-RPC client with rate limiting and retries"""

    def __init__(
        self,
        rpc_url: Optional[str] = None,
        rate_limit_delay: float = 0.2,
        max_retries: int = 3,
        timeout: float = 30.0,
    ):
        """
        Args:
            rpc_url: Fixed endpoint. The shared load balancer is used when None.
            rate_limit_delay: Minimum seconds between two requests
            max_retries: Attempts per request
            timeout: HTTP timeout in seconds
        """
        if rpc_url:
            self.rpc_url = rpc_url
            self.load_balancer = None
        else:
            self.load_balancer = get_rpc_load_balancer()
            self.rpc_url = self.load_balancer.get_next_rpc_url()

        self.rate_limit_delay = rate_limit_delay
        self.max_retries = max_retries
        self.timeout = timeout
        self.last_request_time = 0.0
        self._request_id = 0

    async def _rate_limit(self):
        """Enforce the minimum delay between requests"""
        loop = asyncio.get_event_loop()
        elapsed = loop.time() - self.last_request_time
        if elapsed < self.rate_limit_delay:
            await asyncio.sleep(self.rate_limit_delay - elapsed)
        self.last_request_time = loop.time()

    def _rotate_endpoint(self):
        if self.load_balancer is None:
            return
        self.load_balancer.mark_failure(self.rpc_url)
        self.rpc_url = self.load_balancer.get_next_rpc_url()
        logger.debug(f"Switching RPC endpoint to {self.rpc_url[:50]}...")

    async def request(self, method: str, params: Optional[List[Any]] = None) -> Any:
        """
        Call a JSON-RPC method and return its ``result``

        Raises:
            RateLimitError: still rate limited after every retry
            RPCError: the node returned an error object or the request kept failing
        """
        self._request_id += 1
        payload = {
            "jsonrpc": "2.0",
            "id": self._request_id,
            "method": method,
            "params": params or [],
        }
        last_error: Optional[Exception] = None

        for attempt in range(self.max_retries):
            await self._rate_limit()
            try:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(self.rpc_url, json=payload)

                if response.status_code == 429:
                    last_error = RateLimitError("solana-rpc")
                    wait_time = (2 ** attempt) * 2
                    logger.debug(f"Rate limited (429) on {method}, waiting {wait_time}s before retry {attempt + 1}/{self.max_retries}")
                    self._rotate_endpoint()
                    await asyncio.sleep(wait_time)
                    continue

                response.raise_for_status()
                data = response.json()

                if "error" in data:
                    error = data["error"] or {}
                    message = error.get("message", str(error))
                    if "429" in message or "rate limit" in message.lower():
                        last_error = RateLimitError("solana-rpc", message)
                        await asyncio.sleep((2 ** attempt) * 2)
                        continue
                    raise RPCError(message, code=error.get("code"), method=method)

                if self.load_balancer is not None:
                    self.load_balancer.mark_success(self.rpc_url)
                return data.get("result")

            except RPCError:
                raise
            except (httpx.HTTPError, ValueError) as e:
                last_error = e
                if attempt < self.max_retries - 1:
                    wait_time = 2 ** attempt
                    logger.debug(f"RPC {method} failed ({e}), retrying in {wait_time}s")
                    self._rotate_endpoint()
                    await asyncio.sleep(wait_time)

        if isinstance(last_error, RateLimitError):
            logger.warning(f"Solana RPC still rate limited after {self.max_retries} attempts ({method})")
            raise last_error
        logger.error(f"RPC {method} failed after {self.max_retries} attempts: {last_error}")
        raise RPCError(str(last_error), method=method)

    # ========================================================================
    # ACCOUNTS
    # ========================================================================

    async def get_account_info(self, address: str, encoding: str = "jsonParsed") -> Optional[Dict]:
        result = await self.request("getAccountInfo", [address, {"encoding": encoding}])
        return (result or {}).get("value")

    async def get_multiple_accounts(self, addresses: List[str], encoding: str = "jsonParsed") -> List[Optional[Dict]]:
        """Fetch accounts in batches of 100, preserving input order"""
        accounts: List[Optional[Dict]] = []
        for i in range(0, len(addresses), MULTIPLE_ACCOUNTS_BATCH):
            chunk = addresses[i:i + MULTIPLE_ACCOUNTS_BATCH]
            result = await self.request("getMultipleAccounts", [chunk, {"encoding": encoding}])
            accounts.extend((result or {}).get("value") or [None] * len(chunk))
        return accounts

    async def is_executable(self, address: str) -> bool:
        info = await self.get_account_info(address)
        return bool(info and info.get("executable"))

    # ========================================================================
    # TOKENS
    # ========================================================================

    async def get_token_supply(self, mint: str) -> Dict:
        """Returns the ``value`` object: amount, decimals, uiAmount"""
        result = await self.request("getTokenSupply", [mint])
        return (result or {}).get("value") or {}

    async def get_token_largest_accounts(self, mint: str) -> List[Dict]:
        result = await self.request("getTokenLargestAccounts", [mint])
        return (result or {}).get("value") or []

    async def get_token_account_balance(self, token_account: str) -> Dict:
        result = await self.request("getTokenAccountBalance", [token_account])
        return (result or {}).get("value") or {}

    async def get_token_accounts_by_owner(self, owner: str, mint: str) -> List[Dict]:
        result = await self.request(
            "getTokenAccountsByOwner",
            [owner, {"mint": mint}, {"encoding": "jsonParsed"}],
        )
        return (result or {}).get("value") or []

    async def get_mint_info(self, mint: str) -> Dict[str, Any]:
        """
        Parsed SPL mint account

        Returns:
            {'decimals', 'supply' (raw int), 'ui_supply', 'mint_authority', 'freeze_authority'}

        Raises:
            RPCError: the account does not exist or is not a mint
        """
        account = await self.get_account_info(mint)
        parsed = ((account or {}).get("data") or {})
        info = parsed.get("parsed", {}).get("info") if isinstance(parsed, dict) else None
        if not info or "decimals" not in info:
            raise RPCError(f"Mint account not found or not parsable: {mint}", method="getAccountInfo")

        decimals = int(info["decimals"])
        supply = int(info.get("supply", 0))
        return {
            "decimals": decimals,
            "supply": supply,
            "ui_supply": supply / (10 ** decimals) if decimals else float(supply),
            "mint_authority": info.get("mintAuthority"),
            "freeze_authority": info.get("freezeAuthority"),
        }

    async def get_token_metadata(self, mint: str) -> Optional[Dict[str, Any]]:
        """Metaplex name / symbol / uri, or None when the mint has no metadata account"""
        account = await self.get_account_info(derive_metadata_address(mint), encoding="base64")
        if not account:
            return None
        data = account.get("data")
        encoded = data[0] if isinstance(data, list) else data
        if not encoded:
            return None
        return parse_metadata_account(base64.b64decode(encoded))

    # ========================================================================
    # TRANSACTIONS
    # ========================================================================

    async def get_transaction(self, signature: str) -> Optional[Dict]:
        return await self.request(
            "getTransaction",
            [signature, {"encoding": "json", "maxSupportedTransactionVersion": 0, "commitment": "confirmed"}],
        )

    async def get_signatures_for_address(
        self,
        address: str,
        before: Optional[str] = None,
        limit: int = 1000,
    ) -> List[Dict]:
        options: Dict[str, Any] = {"limit": limit}
        if before:
            options["before"] = before
        return await self.request("getSignaturesForAddress", [address, options]) or []

    async def get_latest_blockhash(self) -> Dict:
        result = await self.request("getLatestBlockhash", [{"commitment": "confirmed"}])
        return (result or {}).get("value") or {}
