"""Launch monitor plugin: watches Raydium pool creation and tweets a risk thread per new token."""

from typing import Optional

from loguru import logger

from models.config import MonitorConfig
from plugins.base import Plugin
from services.monitor_service import MonitorService


def create_monitor_plugin(config: Optional[MonitorConfig] = None) -> Plugin:
    """
    Raises:
        ConfigurationError: ``config`` is None and the environment lacks
            HELIUS_RPC_URL, HELIUS_WS_URL or DEEPSEEK_API_KEY
    """
    config = config or MonitorConfig.from_env()
    logger.debug(f"Creating monitor plugin for program {config.target_address}")
    return Plugin(
        name="monitor",
        description="Monitors new Solana token launches and posts AI risk analyses to Twitter",
        services=[MonitorService(config)],
    )
