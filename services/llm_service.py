"""
LLM Service for the launch monitor

Asks Deepseek (persona "Nyx") for a four-tweet risk thread about a freshly
launched pump.fun token and post-processes the answer into tweet-ready text.
"""

import re
from datetime import datetime
from typing import List, Optional

from loguru import logger

from clients.deepseek_client import DeepseekClient
from models.llm_models import ChatCompletionConfig
from models.token_models import TimelineTokenInfo
from utils.errors import ExternalServiceError, LLMResponseError
from utils.retry import retry_async

DEEPSEEK_CHAT_ENDPOINT = "https://api.deepseek.com/chat/completions"
THREAD_LENGTH = 4
SUCCESSFUL_MARKET_CAP_USD = 100_000

SYSTEM_PROMPT = (
    "You are Nyx, a professional Solana ecosystem analyst, focusing on token risk analysis on the "
    "PumpFun platform. Your analysis style: 1) Direct and clear 2) Data-driven 3) Emphasis on key "
    "points 4) Professional and objective. Remember: Fast creation is normal, new wallets need "
    "caution but are not always risky, low holdings are positive as they prevent dumping, focus on "
    "historical success cases. Each response must be complete with no unfinished sentences."
)

# Applied in order; each keyword gets its emoji appended
KEYWORD_EMOJIS = {
    "risk": "⚠️",
    "new wallet": "👤",
    "mature wallet": "👨‍💼",
    "holdings": "💰",
    "time": "⏰",
    "success": "✅",
    "failure": "❌",
    "warning": "🚨",
    "analysis": "🔍",
    "market": "📊",
    "recommendation": "💡",
    "bullish": "📈",
    "bearish": "📉",
    "attention": "⚡",
    "history": "📜",
    "creator": "👨‍💻",
    "liquidity": "💧",
    "trading": "💱",
    "monitor": "🎯",
    "alert": "🔔",
    "rating": "📊",
    "high risk": "🔴",
    "medium risk": "🟡",
    "low risk": "🟢",
    "investment": "💵",
    "price": "💲",
    "supply": "📦",
    "opportunity": "🎯",
}

_TWEET_SPLIT_RE = re.compile(r"\n(?=🚨|👨‍💻|📜|💡)")
_TWEET_NUMBER_RE = re.compile(r"\((\d+)/(\d+)\)")


def _format_ms(timestamp_ms: Optional[float]) -> str:
    if not timestamp_ms:
        return "Unknown"
    return datetime.fromtimestamp(timestamp_ms / 1000).strftime("%Y-%m-%d %H:%M:%S")


def _format_seconds(timestamp: Optional[float]) -> str:
    return _format_ms(timestamp * 1000) if timestamp else "Unknown"


def default_chat_config() -> ChatCompletionConfig:
    return ChatCompletionConfig(
        endpoint=DEEPSEEK_CHAT_ENDPOINT,
        model="deepseek-chat",
        temperature=0.7,
        max_tokens=2000,
        frequency_penalty=0.5,
        timeout=30.0,
    )


class LLMService:
    """Four-tweet launch analysis from Deepseek"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        client: Optional[DeepseekClient] = None,
        max_retries: int = 3,
        retry_delay: float = 1.0,
    ):
        """
        Raises:
            ConfigurationError: neither an API key nor a client was supplied
        """
        self.client = client or DeepseekClient(api_key, default_chat_config())
        self.max_retries = max_retries
        self.retry_delay = retry_delay

    # ========================================================================
    # PROMPT
    # ========================================================================

    def generate_analysis_prompt(self, token_info: TimelineTokenInfo) -> str:
        launched_at = token_info.launched_at or datetime.now().timestamp() * 1000
        time_diff_hours = (launched_at - token_info.created_at) / 3_600_000

        wallet = token_info.creator_wallet_age
        if wallet is None or wallet.is_new_wallet:
            wallet_status = "New Wallet (<24h)"
        else:
            wallet_status = f"Mature Wallet ({wallet.age_in_hours:.1f} hours)"

        holding = token_info.creator_holding
        balance = holding.balance if holding else 0
        balance_usd = f"≈ ${holding.balance_usd}" if holding and holding.balance_usd else ""

        prompt = f"""Analyze the risk of tokens on the PumpFun platform and generate a detailed analysis suitable for Twitter threads:

Please generate a 4-tweet thread in the following format:

🚨 Token Monitor Alert (1/4)
Token Name: ${token_info.token_name}
Contract Address:

 {token_info.token_address}

Creation Time: {_format_ms(token_info.created_at)}
Raydium Launch: {_format_ms(launched_at)}
Time Difference: {time_diff_hours:.2f} hours

👨‍💻 Creator Information (2/4)
Address: {token_info.creator}
Wallet Status: {wallet_status}
Current Holdings: {balance} tokens
{balance_usd}

📜 Creator History Record (3/4)"""

        tokens = token_info.creator_tokens
        if tokens:
            successful = sum(1 for t in tokens if (t.market_cap or 0) > SUCCESSFUL_MARKET_CAP_USD)
            prompt += f"\nHistorical Tokens: {len(tokens)}\n"
            prompt += f"Success Cases: {successful} (Market Cap >$100k)\n\nHistorical Token List:"

            for index, token in enumerate(sorted(tokens, key=lambda t: t.timestamp or 0, reverse=True), 1):
                market_cap = f"${token.market_cap:,.0f}" if token.market_cap else "Unknown"
                price = f"${token.price}" if token.price else "Unknown"
                prompt += (
                    f"\n{index}. {token.name or 'Unknown'}"
                    f"\n   Address: {token.address}"
                    f"\n   Created: {_format_seconds(token.timestamp)}"
                    f"\n   Market Cap: {market_cap}"
                    f"\n   Price: {price}"
                )
        else:
            prompt += "\nNo historical token records"

        prompt += """

💡 Nyx Risk Analysis (4/4)
Please analyze based on the following factors:
1. Fast creation is normal in Solana ecosystem
2. New wallets need extra attention but don't always indicate risk
3. Low holdings is a positive signal (can't dump)
4. Focus on historical token performance and success cases
5. Comprehensive assessment of risks and opportunities

Please provide:
- Risk Level Assessment (High/Medium/Low)
- Key Risk Points Analysis
- Investment Recommendations
- Special Attention Points

Note:
- Each tweet must be within 280 characters
- Use concise professional language
- Provide specific data support
- Highlight important information
- Third tweet should show all historical token information"""

        return prompt

    # ========================================================================
    # RESPONSE
    # ========================================================================

    @staticmethod
    def format_response(content: str) -> str:
        """
        Validate and decorate the model's thread

        Raises:
            LLMResponseError: content shorter than 10 characters or not exactly four tweets
        """
        content = (content or "").strip()
        if len(content) < 10:
            raise LLMResponseError("API response content too short")

        tweets: List[str] = _TWEET_SPLIT_RE.split(content)
        if len(tweets) != THREAD_LENGTH:
            raise LLMResponseError(f"Incomplete response: Expected 4 tweets, received {len(tweets)}")

        processed = []
        for index, tweet in enumerate(tweets, 1):
            tweet = tweet.strip()
            for keyword, emoji in KEYWORD_EMOJIS.items():
                tweet = tweet.replace(keyword, f"{keyword}{emoji}")
            tweet = _TWEET_NUMBER_RE.sub(f"({index}/{THREAD_LENGTH})", tweet)
            processed.append(tweet)

        return "\n\n".join(processed)

    async def analyze(self, prompt: str) -> str:
        content = await self.client.complete([
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ])
        return self.format_response(content)

    async def analyze_token_risk(self, token_info: TimelineTokenInfo) -> str:
        """
        Thread text for a token; never raises

        Returns:
            The formatted thread, or ``"Analysis failed: ..."`` after the last retry
        """
        prompt = self.generate_analysis_prompt(token_info)
        logger.info(f"🤖 Starting AI analysis of {token_info.token_name} ({token_info.token_address[:8]}...)")

        try:
            analysis = await retry_async(
                lambda: self.analyze(prompt),
                self.max_retries,
                self.retry_delay,
                retry_on=(ExternalServiceError, LLMResponseError),
                label="Token Risk Analysis",
            )
        except (ExternalServiceError, LLMResponseError) as e:
            logger.error(f"Token risk analysis failed: {e}")
            return f"Analysis failed: {e}. Please try again later."

        logger.info("✅ AI analysis completed")
        return analysis
