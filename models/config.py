"""Runtime configuration for the launch monitor and the security action."""

from dataclasses import dataclass
from typing import Optional
from urllib.parse import parse_qs, urlparse

from utils.config_loader import get_api_key, require_env
from utils.errors import ConfigurationError

DEFAULT_TARGET_ADDRESS = "39azUYFWPz3VHgKCf3VChUwbpURdCHRxjWVowf5jUJjg"


def api_key_from_url(url: Optional[str]) -> Optional[str]:
    """`api-key` query parameter of a Helius endpoint URL"""
    if not url:
        return None
    values = parse_qs(urlparse(url).query).get("api-key")
    return values[0] if values else None


@dataclass
class TwitterCredentials:
    """OAuth 1.0a user-context credentials used to post tweets"""
    api_key: Optional[str] = None
    api_secret: Optional[str] = None
    access_token: Optional[str] = None
    access_token_secret: Optional[str] = None
    bearer_token: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return all([self.api_key, self.api_secret, self.access_token, self.access_token_secret])

    @classmethod
    def from_env(cls) -> "TwitterCredentials":
        return cls(
            api_key=get_api_key("TWITTER_API_KEY"),
            api_secret=get_api_key("TWITTER_API_SECRET"),
            access_token=get_api_key("TWITTER_ACCESS_TOKEN"),
            access_token_secret=get_api_key("TWITTER_ACCESS_TOKEN_SECRET"),
            bearer_token=get_api_key("TWITTER_BEARER_TOKEN"),
        )


@dataclass
class MonitorConfig:
    """Configuration for the launch monitor and its tweet pipeline"""
    helius_rpc_url: str
    helius_ws_url: str
    deepseek_api_key: str
    helius_api_key: Optional[str] = None
    target_address: str = DEFAULT_TARGET_ADDRESS
    twitter: Optional[TwitterCredentials] = None
    max_tweet_length: int = 280
    hourly_token_limit: int = 20
    tweets_per_token: int = 4
    hourly_tweet_limit: Optional[int] = None
    min_token_price: float = 0.0001
    max_retries: int = 3
    retry_delay: float = 5.0
    connection_timeout: float = 5.0

    def __post_init__(self):
        if self.hourly_tweet_limit is None:
            self.hourly_tweet_limit = self.hourly_token_limit * self.tweets_per_token
        if self.twitter is None:
            self.twitter = TwitterCredentials()
        if not self.helius_api_key:
            self.helius_api_key = api_key_from_url(self.helius_rpc_url)
        if self.max_tweet_length <= 0:
            raise ConfigurationError("max_tweet_length must be positive")
        if self.hourly_token_limit <= 0 or self.tweets_per_token <= 0:
            raise ConfigurationError("hourly limits must be positive")

    @classmethod
    def from_env(cls) -> "MonitorConfig":
        """
        Build the config from environment variables

        Raises:
            ConfigurationError: HELIUS_RPC_URL, HELIUS_WS_URL or DEEPSEEK_API_KEY missing
        """
        env = require_env("HELIUS_RPC_URL", "HELIUS_WS_URL", "DEEPSEEK_API_KEY")
        return cls(
            helius_rpc_url=env["HELIUS_RPC_URL"],
            helius_ws_url=env["HELIUS_WS_URL"],
            deepseek_api_key=env["DEEPSEEK_API_KEY"],
            helius_api_key=get_api_key("HELIUS_API_KEY"),
            target_address=get_api_key("TARGET_ADDRESS", DEFAULT_TARGET_ADDRESS),
            twitter=TwitterCredentials.from_env(),
        )


@dataclass
class SecurityConfig:
    """Configuration for the on-demand token security analysis"""
    solana_rpc_url: Optional[str] = None
    deepseek_api_key: Optional[str] = None
    helius_api_key: Optional[str] = None
    min_transactions: int = 50

    @classmethod
    def from_env(cls) -> "SecurityConfig":
        return cls(
            solana_rpc_url=get_api_key("SOLANA_RPC_URL"),
            deepseek_api_key=get_api_key("DEEPSEEK_API_KEY"),
            helius_api_key=get_api_key("HELIUS_API_KEY"),
        )

    @property
    def is_valid(self) -> bool:
        return bool(self.solana_rpc_url and self.deepseek_api_key)

    def validate(self):
        """Raise ConfigurationError unless the RPC url and Deepseek key are set"""
        missing = []
        if not self.solana_rpc_url:
            missing.append("SOLANA_RPC_URL")
        if not self.deepseek_api_key:
            missing.append("DEEPSEEK_API_KEY")
        if missing:
            raise ConfigurationError(
                f"Missing required environment variables: {', '.join(missing)}",
                missing=missing
            )
