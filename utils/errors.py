"""Exception types raised by clients, analyzers and services."""

from typing import Optional


class TokenSentinelError(Exception):
    """Base class for every error raised by this project"""


class ConfigurationError(TokenSentinelError):
    """Required configuration (usually an environment variable) is missing or invalid"""

    def __init__(self, message: str, missing: Optional[list] = None):
        super().__init__(message)
        self.missing = missing or []


class ExternalServiceError(TokenSentinelError):
    """An HTTP API answered with an unusable response"""

    def __init__(self, service: str, message: str, status_code: Optional[int] = None):
        super().__init__(f"{service}: {message}")
        self.service = service
        self.status_code = status_code


class RateLimitError(ExternalServiceError):
    """The remote service answered 429 / reported a rate limit"""

    def __init__(self, service: str, message: str = "rate limited"):
        super().__init__(service, message, status_code=429)


class RPCError(ExternalServiceError):
    """Solana JSON-RPC returned an error object"""

    def __init__(self, message: str, code: Optional[int] = None, method: Optional[str] = None):
        super().__init__("solana-rpc", message)
        self.code = code
        self.method = method


class LLMResponseError(TokenSentinelError):
    """The chat-completion response could not be turned into the expected structure"""


class PriceUnavailableError(TokenSentinelError):
    """No usable price could be obtained for a mint"""

    def __init__(self, mint: str, message: str = "price unavailable"):
        super().__init__(f"{message}: {mint}")
        self.mint = mint
