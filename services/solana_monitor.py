"""
Solana Launch Monitor

Subscribes to program logs over the Solana websocket API (``logsSubscribe``)
and detects Raydium pool initializations (``initialize2:
InitializeInstruction2``). For every new pool the launching transaction is
fetched and the token mint (account key 18 of the pool-initialization
transaction) is emitted as a NewTokenEvent.

Connection lifecycle:
- reconnects with exponential backoff (5s, 10s, 20s, ...) up to 5 attempts
- HTTP 429 on the handshake waits an extra 2x delay first, 503 an extra 1x
- a successful subscription resets the attempt counter
"""

import asyncio
import json
from collections import deque
from datetime import datetime
from typing import Any, Awaitable, Callable, Deque, Dict, List, Optional, Set

import websockets
from loguru import logger

from clients.solana_rpc_client import SolanaRPCClient
from models.config import DEFAULT_TARGET_ADDRESS
from models.token_models import NewTokenEvent
from utils.errors import ExternalServiceError, TokenSentinelError
from utils.retry import retry_async

POOL_INIT_LOG = "initialize2: InitializeInstruction2"
TOKEN_ACCOUNT_INDEX = 18
PROCESSED_SIGNATURE_CAPACITY = 10_000

NewTokenCallback = Callable[[NewTokenEvent], Awaitable[Any]]


def _status_code(error: BaseException) -> Optional[int]:
    """HTTP status of a failed websocket handshake, if any"""
    status = getattr(error, "status_code", None)
    if status is None:
        status = getattr(getattr(error, "response", None), "status_code", None)
    return status


def is_pool_initialization(logs: List[str]) -> bool:
    return any(POOL_INIT_LOG in line for line in logs or [])


def extract_account_keys(transaction: Dict) -> List[str]:
    """Static account keys followed by address-lookup-table keys (writable, then readonly)"""
    message = (transaction.get("transaction") or {}).get("message") or {}
    keys = [k.get("pubkey") if isinstance(k, dict) else k for k in message.get("accountKeys") or []]
    loaded = (transaction.get("meta") or {}).get("loadedAddresses") or {}
    keys.extend(loaded.get("writable") or [])
    keys.extend(loaded.get("readonly") or [])
    return keys


class SolanaMonitor:
    """Websocket log subscription emitting new token launches"""

    def __init__(
        self,
        ws_url: str,
        rpc: SolanaRPCClient,
        target_address: str = DEFAULT_TARGET_ADDRESS,
        max_reconnects: int = 5,
        reconnect_delay: float = 5.0,
        tx_retry_delay: float = 1.0,
    ):
        """
        Args:
            ws_url: Solana websocket endpoint (wss://...)
            rpc: RPC client used to fetch detected transactions
            target_address: Program address whose logs are subscribed
            max_reconnects: Reconnect attempts before giving up
            reconnect_delay: Base reconnect backoff in seconds
            tx_retry_delay: Base backoff for transaction lookups
        """
        self.ws_url = ws_url
        self.rpc = rpc
        self.target_address = target_address
        self.max_reconnects = max_reconnects
        self.reconnect_delay = reconnect_delay
        self.tx_retry_delay = tx_retry_delay

        self.retry_count = 0
        self.subscription_id: Optional[int] = None
        self.is_running = False
        self.is_connected = False
        self._ws = None

        self._callbacks: List[NewTokenCallback] = []
        self._processed: Set[str] = set()
        self._processed_order: Deque[str] = deque()
        self._tasks: Set[asyncio.Task] = set()

        self.start_time: Optional[datetime] = None
        self.messages_received = 0
        self.pools_detected = 0
        self.tokens_emitted = 0

    # ========================================================================
    # PUBLIC API
    # ========================================================================

    def on_new_token(self, callback: NewTokenCallback):
        self._callbacks.append(callback)

    def off_new_token(self, callback: NewTokenCallback):
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    async def start(self):
        """
        Listen until stop() is called

        Raises:
            ExternalServiceError: the connection could not be re-established
                after ``max_reconnects`` attempts
        """
        logger.info(f"🔌 Starting Solana monitor for {self.target_address}")
        self.is_running = True
        self.start_time = datetime.now()

        while self.is_running:
            try:
                await self._listen()
                error: BaseException = ConnectionError("websocket closed by server")
            except (websockets.exceptions.WebSocketException, OSError, asyncio.TimeoutError) as e:
                error = e

            self.is_connected = False
            if not self.is_running:
                break
            logger.warning(f"Solana websocket error: {error}")
            await self._handle_connection_error(error)

    async def stop(self):
        """Unsubscribe and close the websocket"""
        self.is_running = False
        ws, self._ws = self._ws, None

        if ws is not None:
            try:
                if self.subscription_id is not None:
                    await ws.send(json.dumps({
                        "jsonrpc": "2.0",
                        "id": 2,
                        "method": "logsUnsubscribe",
                        "params": [self.subscription_id],
                    }))
                await ws.close()
            except (websockets.exceptions.WebSocketException, OSError) as e:
                logger.debug(f"Error while closing websocket: {e}")

        self.subscription_id = None
        self.is_connected = False
        logger.info("🛑 Solana monitor stopped")

    async def destroy(self):
        await self.stop()
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()
        self._callbacks.clear()

    def get_stats(self) -> Dict:
        return {
            "is_running": self.is_running,
            "is_connected": self.is_connected,
            "subscription_id": self.subscription_id,
            "retry_count": self.retry_count,
            "uptime_minutes": (datetime.now() - self.start_time).total_seconds() / 60 if self.start_time else 0,
            "messages_received": self.messages_received,
            "pools_detected": self.pools_detected,
            "tokens_emitted": self.tokens_emitted,
            "pending_tasks": len(self._tasks),
        }

    # ========================================================================
    # CONNECTION
    # ========================================================================

    async def _listen(self):
        async with websockets.connect(
            self.ws_url,
            ping_interval=20,
            ping_timeout=10,
            close_timeout=5,
        ) as ws:
            self._ws = ws
            self.is_connected = True

            await ws.send(json.dumps({
                "jsonrpc": "2.0",
                "id": 1,
                "method": "logsSubscribe",
                "params": [
                    {"mentions": [self.target_address]},
                    {"commitment": "confirmed"},
                ],
            }))
            logger.info("📡 Subscribed to pool initialization logs")

            async for message in ws:
                try:
                    await self.handle_message(json.loads(message))
                except json.JSONDecodeError:
                    logger.warning(f"Invalid JSON from websocket: {str(message)[:100]}")

    async def _handle_connection_error(self, error: BaseException):
        status = _status_code(error)
        if status == 429:
            logger.warning("Rate limit exceeded, waiting longer before retry...")
            await asyncio.sleep(self.reconnect_delay * 2)
        elif status == 503:
            logger.warning("Service unavailable, waiting before retry...")
            await asyncio.sleep(self.reconnect_delay)

        if self.retry_count >= self.max_reconnects:
            self.is_running = False
            logger.error("❌ Max reconnect attempts reached, check API limits and connectivity")
            raise ExternalServiceError(
                "solana-ws", "Failed to establish connection after multiple attempts", status
            ) from error

        self.retry_count += 1
        delay = self.reconnect_delay * (2 ** (self.retry_count - 1))
        logger.info(f"Reconnecting in {delay:.0f}s... (attempt {self.retry_count}/{self.max_reconnects})")
        await asyncio.sleep(delay)

    # ========================================================================
    # MESSAGES
    # ========================================================================

    async def handle_message(self, data: Dict):
        """Route one decoded websocket message"""
        if "result" in data and "id" in data:
            self.subscription_id = data["result"]
            self.retry_count = 0
            logger.info(f"✅ Subscription confirmed, id {self.subscription_id}")
            return

        if data.get("method") != "logsNotification":
            return

        self.messages_received += 1
        value = ((data.get("params") or {}).get("result") or {}).get("value") or {}
        signature = value.get("signature")
        if not signature or not is_pool_initialization(value.get("logs")):
            return

        if signature in self._processed:
            logger.debug(f"Already processed {signature[:16]}...")
            return
        self._remember(signature)
        self.pools_detected += 1

        task = asyncio.create_task(self.process_transaction(signature))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _remember(self, signature: str):
        self._processed.add(signature)
        self._processed_order.append(signature)
        if len(self._processed_order) > PROCESSED_SIGNATURE_CAPACITY:
            self._processed.discard(self._processed_order.popleft())

    async def parse_transaction(self, signature: str) -> Optional[str]:
        """
        Token mint of a pool-initialization transaction

        Raises:
            TokenSentinelError: the transaction lookup failed three times
        """
        tx = await retry_async(
            lambda: self.rpc.get_transaction(signature),
            max_retries=3,
            base_delay=self.tx_retry_delay,
            retry_on=(TokenSentinelError,),
            label="getTransaction",
        )
        if not tx:
            logger.debug(f"Transaction {signature[:16]}... not found")
            return None

        keys = extract_account_keys(tx)
        if len(keys) <= TOKEN_ACCOUNT_INDEX:
            logger.warning(f"Transaction {signature[:16]}... has only {len(keys)} account keys")
            return None
        return keys[TOKEN_ACCOUNT_INDEX]

    async def process_transaction(self, signature: str):
        try:
            token_address = await self.parse_transaction(signature)
        except TokenSentinelError as e:
            logger.error(f"Error processing transaction {signature[:16]}...: {e}")
            return

        if not token_address:
            logger.warning(f"Could not find token address in {signature[:16]}...")
            return

        logger.info(f"🆕 New token {token_address} (tx {signature[:16]}...)")
        await self.emit(NewTokenEvent(token_address=token_address, signature=signature))

    async def emit(self, event: NewTokenEvent):
        self.tokens_emitted += 1
        for callback in list(self._callbacks):
            try:
                await callback(event)
            except Exception as e:
                logger.error(f"New token callback failed for {event.token_address}: {e}")
