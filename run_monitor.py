"""
Background Launch Monitor - Runs continuously

Watches Raydium pool initializations on Solana, analyzes every new token
(creator history, wallet age, creator holding) with Deepseek and posts the
result as a Twitter thread, within the hourly token / tweet limits.

Required environment (.env): HELIUS_RPC_URL, HELIUS_WS_URL, DEEPSEEK_API_KEY
Optional: HELIUS_API_KEY, TARGET_ADDRESS, TWITTER_API_KEY, TWITTER_API_SECRET,
TWITTER_ACCESS_TOKEN, TWITTER_ACCESS_TOKEN_SECRET

Usage: python run_monitor.py
"""

import asyncio
import sys

from loguru import logger

from models.token_models import TokenLaunchEvent
from plugins.monitor_plugin import create_monitor_plugin
from services.monitor_service import TOKEN_LAUNCHED, MonitorService
from utils.errors import TokenSentinelError
from utils.logging_config import setup_logging


def log_launch(event: TokenLaunchEvent):
    logger.info(
        f"🚀 {event.token_name or event.token_address} analyzed, "
        f"{len(event.tweets)} tweets (tx {event.transaction[:16]}...)"
    )


async def monitor_loop():
    """Main monitoring loop"""
    logger.info("=" * 70)
    logger.info("🚀 TOKEN LAUNCH MONITOR STARTED")
    logger.info("=" * 70)

    plugin = create_monitor_plugin()
    service: MonitorService = plugin.services[0]
    service.on(TOKEN_LAUNCHED, log_launch)

    try:
        await service.initialize()
        logger.info(f"📊 Status: {service.get_status()}")
        await service.run_forever()
    finally:
        logger.info(f"📊 Final status: {service.get_status()}")
        await service.destroy()


if __name__ == "__main__":
    setup_logging(log_file="logs/launch_monitor.log", level="INFO")
    logger.info("Starting Token Launch Monitor...")
    logger.info("Press Ctrl+C to stop")

    try:
        asyncio.run(monitor_loop())
    except KeyboardInterrupt:
        logger.info("Monitor stopped by user")
    except TokenSentinelError as e:
        logger.error(f"Fatal error: {e}")
        sys.exit(1)
