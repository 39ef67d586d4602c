"""
Monitor Service

Glues the launch pipeline together:

    SolanaMonitor -> TimelineAnalyzer -> TokenAnalyzer -> LLMService
                  -> tweet formatting -> TwitterClient

The first token after start-up is processed immediately; later tokens go
through an in-memory queue drained by a single worker that enforces the
hourly token / tweet budget and skips tokens priced below the minimum.
"""

import asyncio
import inspect
import time
from collections import deque
from typing import Any, Callable, Deque, Dict, List, Optional

from loguru import logger

from analyzers.timeline_analyzer import TimelineAnalyzer
from analyzers.token_analyzer import TokenAnalyzer
from clients.helius_client import HeliusClient
from clients.solana_rpc_client import SolanaRPCClient
from clients.twitter_client import TwitterClient
from models.config import MonitorConfig
from models.token_models import NewTokenEvent, TokenLaunchEvent
from services.llm_service import LLMService
from services.solana_monitor import SolanaMonitor
from services.tweet_formatter import split_tweet_content
from utils.errors import ConfigurationError, ExternalServiceError, TokenSentinelError

HOUR_SECONDS = 3600
TOKEN_LAUNCHED = "token_launched"


class MonitorService:
    """Launch monitor orchestration with hourly rate limiting"""

    def __init__(self, config: MonitorConfig, twitter_client: Optional[TwitterClient] = None):
        self.config = config
        self.twitter_client = twitter_client

        self.rpc: Optional[SolanaRPCClient] = None
        self.monitor: Optional[SolanaMonitor] = None
        self.timeline_analyzer: Optional[TimelineAnalyzer] = None
        self.token_analyzer: Optional[TokenAnalyzer] = None
        self.llm_service: Optional[LLMService] = None

        self.is_initialized = False
        self.retry_count = 0

        self.token_queue: Deque[NewTokenEvent] = deque()
        self.is_processing = False
        self.is_first_run = True
        self.tokens_this_hour = 0
        self.tweets_this_hour = 0
        self.last_reset_time = time.time()

        self._listeners: Dict[str, List[Callable]] = {}
        self._monitor_task: Optional[asyncio.Task] = None
        self._queue_task: Optional[asyncio.Task] = None

    # ========================================================================
    # LIFECYCLE
    # ========================================================================

    def _validate_config(self):
        missing = [
            name for name, value in (
                ("HELIUS_RPC_URL", self.config.helius_rpc_url),
                ("HELIUS_WS_URL", self.config.helius_ws_url),
                ("DEEPSEEK_API_KEY", self.config.deepseek_api_key),
            ) if not value
        ]
        if missing:
            raise ConfigurationError(f"Missing monitor configuration: {', '.join(missing)}", missing=missing)

    async def _connect(self):
        """Open the RPC client and check it answers within the connection timeout"""
        rpc = SolanaRPCClient(self.config.helius_rpc_url)
        try:
            await asyncio.wait_for(rpc.get_latest_blockhash(), timeout=self.config.connection_timeout)
        except asyncio.TimeoutError as e:
            raise ExternalServiceError("solana-rpc", "connection timed out") from e
        self.rpc = rpc

    def _build_components(self):
        helius = HeliusClient(self.config.helius_api_key)
        self.monitor = SolanaMonitor(self.config.helius_ws_url, self.rpc, self.config.target_address)
        self.timeline_analyzer = TimelineAnalyzer(self.rpc, helius)
        self.token_analyzer = TokenAnalyzer(self.rpc)
        self.llm_service = LLMService(self.config.deepseek_api_key)

        if self.twitter_client is None and self.config.twitter.is_complete:
            self.twitter_client = TwitterClient(self.config.twitter)
        if self.twitter_client is None:
            logger.warning("Twitter credentials not configured, analyses will not be tweeted")

    async def initialize(self):
        """
        Connect, build the pipeline and start listening

        Raises:
            ConfigurationError: required settings are missing
            ExternalServiceError: the RPC endpoint stayed unreachable after retries
        """
        if self.is_initialized:
            logger.debug("Monitor service already initialized")
            return

        self._validate_config()

        while True:
            try:
                logger.info("🔌 Connecting to Solana RPC...")
                await self._connect()
                break
            except ExternalServiceError as e:
                logger.error(f"Solana connection failed: {e}")
                if self.retry_count >= self.config.max_retries:
                    logger.error("Max connection retries reached, giving up")
                    await self.destroy()
                    raise
                self.retry_count += 1
                delay = self.config.retry_delay * (2 ** (self.retry_count - 1))
                logger.info(f"Retrying connection in {delay:.0f}s ({self.retry_count}/{self.config.max_retries})")
                await asyncio.sleep(delay)

        self._build_components()
        self.monitor.on_new_token(self.handle_new_token)
        self._monitor_task = asyncio.create_task(self.monitor.start())

        self.is_initialized = True
        self.retry_count = 0
        logger.info("✅ Monitor service initialized")

    async def run_forever(self):
        """Block until the websocket monitor stops"""
        if self._monitor_task is not None:
            await self._monitor_task

    async def destroy(self):
        self._listeners.clear()

        if self.monitor is not None:
            await self.monitor.destroy()
        for task in (self._monitor_task, self._queue_task):
            if task is not None and not task.done():
                task.cancel()

        self.monitor = None
        self.timeline_analyzer = None
        self.token_analyzer = None
        self.llm_service = None
        self.rpc = None
        self._monitor_task = None
        self._queue_task = None
        self.is_initialized = False
        self.retry_count = 0
        logger.info("Monitor service cleaned up")

    # ========================================================================
    # EVENTS
    # ========================================================================

    def on(self, event: str, listener: Callable):
        self._listeners.setdefault(event, []).append(listener)

    def off(self, event: str, listener: Callable):
        listeners = self._listeners.get(event, [])
        if listener in listeners:
            listeners.remove(listener)

    async def _emit(self, event: str, payload: Any):
        for listener in list(self._listeners.get(event, [])):
            try:
                result = listener(payload)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Listener for {event} failed: {e}")

    def get_status(self) -> Dict[str, Any]:
        return {
            "is_initialized": self.is_initialized,
            "retry_count": self.retry_count,
            "has_connection": self.rpc is not None,
            "has_monitor": self.monitor is not None,
            "queue_size": len(self.token_queue),
            "tokens_this_hour": self.tokens_this_hour,
            "tweets_this_hour": self.tweets_this_hour,
        }

    # ========================================================================
    # QUEUE
    # ========================================================================

    async def handle_new_token(self, event: NewTokenEvent):
        logger.info(f"🆕 New token detected: {event.token_address} (tx {event.signature[:16]}...)")

        if self.is_first_run:
            self.is_first_run = False
            try:
                await self.process_token(event)
                self._count_token()
            except TokenSentinelError as e:
                logger.error(f"Failed to process first token {event.token_address}: {e}")
                await self._emit(TOKEN_LAUNCHED, TokenLaunchEvent(
                    token_address=event.token_address,
                    token_name="",
                    creator="",
                    launch_timestamp=event.timestamp,
                    created_at=0,
                    transaction=event.signature,
                    analysis="",
                ))
            return

        if any(queued.token_address == event.token_address for queued in self.token_queue):
            logger.debug(f"{event.token_address} already queued")
            return

        self.token_queue.append(event)
        if not self.is_processing:
            self._queue_task = asyncio.create_task(self.process_queue())

    def _count_token(self):
        self.tokens_this_hour += 1
        self.tweets_this_hour += self.config.tweets_per_token

    def _reset_window_if_elapsed(self):
        now = time.time()
        if now - self.last_reset_time >= HOUR_SECONDS:
            self.tokens_this_hour = 0
            self.tweets_this_hour = 0
            self.last_reset_time = now
            logger.info("Hourly counters reset")

    def _limit_reached(self) -> bool:
        return (
            self.tokens_this_hour >= self.config.hourly_token_limit
            or self.tweets_this_hour >= self.config.hourly_tweet_limit
        )

    async def _wait_for_next_window(self):
        wait_time = max(0.0, self.last_reset_time + HOUR_SECONDS - time.time())
        logger.info(f"⏳ Hourly limit reached, waiting {wait_time / 60:.0f} minutes")
        await asyncio.sleep(wait_time)
        self.tokens_this_hour = 0
        self.tweets_this_hour = 0
        self.last_reset_time = time.time()

    async def process_queue(self):
        """Drain the queue; only one drainer runs at a time"""
        if self.is_processing:
            return
        self.is_processing = True

        try:
            while True:
                self._reset_window_if_elapsed()
                if self._limit_reached():
                    await self._wait_for_next_window()
                    continue

                if not self.token_queue:
                    logger.debug("Queue empty, waiting for new tokens")
                    break
                event = self.token_queue.popleft()

                price = await self.token_analyzer.get_token_price(event.token_address)
                if not price or price < self.config.min_token_price:
                    logger.info(
                        f"Skipping {event.token_address}: price {price} below "
                        f"minimum {self.config.min_token_price}"
                    )
                    continue

                try:
                    await self.process_token(event)
                except TokenSentinelError as e:
                    logger.error(f"Failed to process {event.token_address}: {e}")
                    continue
                except Exception:
                    logger.exception(f"Unexpected error processing {event.token_address}")
                    continue

                self._count_token()
                logger.info(
                    f"Processed {self.tokens_this_hour}/{self.config.hourly_token_limit} tokens this hour"
                )
        finally:
            self.is_processing = False

    # ========================================================================
    # PIPELINE
    # ========================================================================

    def build_tweets(self, analysis: str) -> List[str]:
        """Split the thread on blank lines and fit every part into a tweet"""
        tweets: List[str] = []
        for part in analysis.split("\n\n"):
            tweets.extend(split_tweet_content(part, self.config.max_tweet_length))
        return tweets

    async def process_token(self, event: NewTokenEvent) -> TokenLaunchEvent:
        logger.info(f"=== Processing token {event.token_address} ===")

        timeline = await self.timeline_analyzer.collect_data(event.token_address, event.timestamp)
        holding = await self.token_analyzer.analyze_token(event.token_address, timeline.creator)
        timeline.creator_holding = holding["creator_holding"]

        analysis = await self.llm_service.analyze_token_risk(timeline)
        tweets = self.build_tweets(analysis)

        if analysis.startswith("Analysis failed"):
            logger.warning(f"Not tweeting failed analysis of {event.token_address}")
        elif self.twitter_client is not None:
            posted = await self.twitter_client.send_thread(tweets)
            logger.info(f"🐦 Posted {len(posted)}/{len(tweets)} tweets for {timeline.token_name}")

        launch = TokenLaunchEvent(
            token_address=event.token_address,
            token_name=timeline.token_name,
            creator=timeline.creator,
            launch_timestamp=event.timestamp,
            created_at=timeline.created_at,
            transaction=event.signature,
            analysis=analysis,
            tweets=tweets,
        )
        await self._emit(TOKEN_LAUNCHED, launch)
        logger.info(f"=== Finished {event.token_address} ===")
        return launch
