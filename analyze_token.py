"""
One-shot token security analysis

Usage:
    python analyze_token.py <token address> [--user NAME] [--credibility] [--skip-pump-check]
"""

import argparse
import asyncio
import sys

from loguru import logger

from models.config import SecurityConfig
from plugins.security_plugin import security_plugin
from utils.logging_config import setup_logging


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Analyze the security of a pump.fun token")
    parser.add_argument("token_address", help="Token mint address")
    parser.add_argument("--user", help="Handle credited in the report", default=None)
    parser.add_argument(
        "--credibility",
        action="store_true",
        help="Run the quick pump.fun credibility score instead of the full report",
    )
    parser.add_argument("--skip-pump-check", action="store_true", help="Do not require a pump.fun token")
    parser.add_argument("--log-level", default="INFO")
    return parser.parse_args(argv)


async def run(args: argparse.Namespace) -> int:
    config = SecurityConfig.from_env()
    action_name = "ANALYZE_PUMPFUN_TOKEN" if args.credibility else "ANALYZE_TOKEN_SECURITY"
    action = security_plugin.get_action(action_name)

    message = {"text": args.token_address, "token_address": args.token_address, "user": args.user}

    if not args.skip_pump_check:
        valid = await (action.validate(message) if args.credibility else action.validate(message, config))
        if not valid:
            logger.error(f"{args.token_address} cannot be analyzed (not a pump.fun token or missing configuration)")
            return 1

    result = await action.handler(message, config)
    if result.tweets:
        for index, tweet in enumerate(result.tweets, 1):
            print(f"--- {index}/{len(result.tweets)} ---")
            print(tweet)
    else:
        print(result.text)
    return 0 if result.success else 1


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging(log_file=None, level=args.log_level)
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
