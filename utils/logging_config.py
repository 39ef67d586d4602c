"""Loguru setup shared by the monitor runner, the CLI and the plugins."""

import sys
import logging
from pathlib import Path
from loguru import logger

# Prevents duplicate sinks when setup_logging is called by several entry points
_logging_configured = False

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)

FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | "
    "{level: <8} | "
    "{name}:{function}:{line} - "
    "{message}"
)

# stdlib loggers of the HTTP / websocket / twitter stacks are far too chatty at DEBUG
NOISY_LOGGERS = {
    'urllib3': 'INFO',
    'requests': 'INFO',
    'httpcore': 'WARNING',
    'httpx': 'WARNING',
    'websockets': 'WARNING',
    'websockets.client': 'WARNING',
    'tweepy': 'INFO',
    'oauthlib': 'WARNING',
    'requests_oauthlib': 'WARNING',
    'asyncio': 'WARNING',
}


def setup_logging(
    log_file: str = "logs/token_sentinel.log",
    level: str = "DEBUG",
    rotation: str = "100 MB",
    retention: str = "7 days",
    format_string: str = None,
    force: bool = False,
    console_output: bool = True
):
    """
    Configure Loguru logging for the whole application.

    Args:
        log_file: Path to log file (None disables the file sink)
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        rotation: Log rotation size (e.g., "100 MB", "1 day")
        retention: Log retention period (e.g., "7 days")
        format_string: Custom format string used for every sink
        force: Re-configure even if logging was already set up
        console_output: Enable the colorized stdout sink
    """
    global _logging_configured

    if _logging_configured and not force:
        return

    logger.remove()

    console_format = format_string or CONSOLE_FORMAT
    file_format = format_string or FILE_FORMAT

    if console_output and sys.stdout is not None:
        logger.add(
            sys.stdout,
            level=level,
            format=console_format,
            colorize=True,
            backtrace=True,
            diagnose=False
        )

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        # enqueue=True keeps the sink safe for the worker threads used by LLM calls
        logger.add(
            log_file,
            level=level,
            format=file_format,
            rotation=rotation,
            retention=retention,
            encoding="utf-8",
            backtrace=True,
            diagnose=False,
            enqueue=True
        )

    _suppress_third_party_logs()

    _logging_configured = True
    logger.debug(f"Logging configured (level={level}, file={log_file})")


def _suppress_third_party_logs():
    """Raise the level of verbose third-party stdlib loggers."""
    for logger_name, level in NOISY_LOGGERS.items():
        logging.getLogger(logger_name).setLevel(getattr(logging, level))


def reset_logging():
    """Forget the configured state (used by tests and long-running reloads)."""
    global _logging_configured
    _logging_configured = False
