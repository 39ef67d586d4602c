"""
Deepseek chat-completions client

Synchronous ``requests`` calls against the OpenAI-compatible Deepseek API,
exposed to the async services through ``asyncio.to_thread``.
"""

import asyncio
import json
from typing import Dict, List, Optional

import requests
from loguru import logger

from models.llm_models import ChatCompletionConfig
from utils.errors import ConfigurationError, ExternalServiceError, LLMResponseError

# Returned by analyze() when every attempt failed; same schema the analysis prompt asks for
FALLBACK_ANALYSIS = {
    "tokenAnalysis": {
        "riskLevel": "HIGH",
        "riskFactors": [
            "Analysis service call failed, accurate analysis not possible",
            "Re-evaluate once the service recovers",
        ],
        "positiveFactors": [],
        "liquidityAssessment": "Analysis failed, evaluate liquidity with caution",
        "holdingAssessment": "Complete assessment unavailable, further observation recommended",
        "maturityAssessment": "Unable to assess",
        "marketCapTierAssessment": "Unable to assess",
    },
    "creatorAnalysis": {
        "trustLevel": "LOW",
        "successRate": "Temporarily unable to assess",
        "riskPatterns": ["Full analysis could not be completed"],
        "trackRecord": "Re-evaluate after the service recovers",
    },
    "riskLevel": "HIGH",
    "recommendation": (
        "A complete analysis could not be performed. Stay on the sidelines and "
        "re-evaluate once the analysis service recovers."
    ),
}


class DeepseekClient:
    """Minimal Deepseek chat-completions wrapper"""

    def __init__(self, api_key: Optional[str], config: Optional[ChatCompletionConfig] = None):
        if not api_key:
            raise ConfigurationError("DEEPSEEK_API_KEY is required", missing=["DEEPSEEK_API_KEY"])
        self.api_key = api_key
        self.config = config or ChatCompletionConfig()

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def _post(self, messages: List[Dict[str, str]]) -> str:
        """Blocking request; returns the first choice's content"""
        try:
            response = requests.post(
                self.config.endpoint,
                headers=self._headers(),
                json=self.config.payload(messages),
                timeout=self.config.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            status = getattr(getattr(e, "response", None), "status_code", None)
            raise ExternalServiceError("deepseek", str(e), status) from e
        except ValueError as e:
            raise LLMResponseError(f"Deepseek returned invalid JSON: {e}") from e

        try:
            return data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise LLMResponseError("Invalid API response format") from e

    async def complete(self, messages: List[Dict[str, str]]) -> str:
        """Single chat completion, no retries"""
        return await asyncio.to_thread(self._post, messages)

    async def analyze(self, prompt: str) -> str:
        """
        Send ``prompt`` as a user message with retries

        Waits 1s, 2s, ... between attempts. When every attempt fails a
        conservative HIGH-risk JSON document is returned instead of raising.
        """
        max_retries = self.config.max_retries
        for attempt in range(1, max_retries + 1):
            try:
                logger.debug(f"🤖 Calling Deepseek API (attempt {attempt}/{max_retries})")
                return await self.complete([{"role": "user", "content": prompt}])
            except (ExternalServiceError, LLMResponseError) as e:
                logger.warning(f"Deepseek call failed (attempt {attempt}/{max_retries}): {e}")
                if attempt < max_retries:
                    delay = self.config.retry_delay * (2 ** (attempt - 1))
                    await asyncio.sleep(delay)

        logger.error("❌ All Deepseek attempts failed, returning conservative default analysis")
        return json.dumps(FALLBACK_ANALYSIS)
