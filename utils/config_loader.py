"""
Environment helpers

API keys and endpoints come from the process environment, populated from a
local .env file by python-dotenv.
"""

import os
from typing import Dict, Optional
from loguru import logger
from dotenv import load_dotenv

from utils.errors import ConfigurationError

load_dotenv()


def get_api_key(key_name: str, default: Optional[str] = None) -> Optional[str]:
    """
    Read an API key or endpoint from the environment

    Blank values are treated as missing.

    Args:
        key_name: Environment variable name (e.g., 'DEEPSEEK_API_KEY')
        default: Returned when the variable is unset or blank

    Returns:
        The stripped value or ``default``
    """
    value = os.getenv(key_name)
    if value is not None and value.strip():
        return value.strip()
    return default


def require_env(*names: str) -> Dict[str, str]:
    """
    Fetch several required variables at once

    Raises:
        ConfigurationError: listing every variable that is missing
    """
    values = {name: get_api_key(name) for name in names}
    missing = [name for name, value in values.items() if not value]
    if missing:
        logger.error(f"❌ Missing required environment variables: {', '.join(missing)}")
        raise ConfigurationError(
            f"Missing required environment variables: {', '.join(missing)}",
            missing=missing
        )
    return values


def has_env(*names: str) -> bool:
    """True when every named variable is set to a non-blank value"""
    return all(get_api_key(name) for name in names)
