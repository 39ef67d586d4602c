"""Services: launch monitoring, creator lookup, LLM analysis and tweet formatting."""

from .solana_monitor import SolanaMonitor
from .monitor_service import MonitorService
from .creator_info_service import CreatorInfoService
from .token_info_service import TokenInfoService
from .llm_service import LLMService
from .llm_analysis_service import LLMAnalysisService
from .tweet_formatter import split_tweet_content, format_security_thread

__all__ = [
    'SolanaMonitor',
    'MonitorService',
    'CreatorInfoService',
    'TokenInfoService',
    'LLMService',
    'LLMAnalysisService',
    'split_tweet_content',
    'format_security_thread',
]
