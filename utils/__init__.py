"""Utility helpers: logging, configuration, errors, retries and RPC endpoint selection."""

from .logging_config import setup_logging
from .config_loader import get_api_key, require_env
from .retry import retry_async
from .errors import (
    TokenSentinelError,
    ConfigurationError,
    ExternalServiceError,
    RateLimitError,
    RPCError,
    LLMResponseError,
    PriceUnavailableError,
)

__all__ = [
    'setup_logging',
    'get_api_key',
    'require_env',
    'retry_async',
    'TokenSentinelError',
    'ConfigurationError',
    'ExternalServiceError',
    'RateLimitError',
    'RPCError',
    'LLMResponseError',
    'PriceUnavailableError',
]
