"""
Data models for the chat-completion layer
"""
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List

from models.token_models import (
    CleanedCreatorData,
    CleanedHoldingData,
    RiskLevel,
    TokenCreator,
    TrustLevel,
    _Serializable,
)


@dataclass
class ChatCompletionConfig:
    """Request settings for an OpenAI-compatible chat-completions endpoint"""
    endpoint: str = "https://api.deepseek.com/v1/chat/completions"
    model: str = "deepseek-chat"
    temperature: float = 0.7
    max_tokens: Optional[int] = None
    frequency_penalty: Optional[float] = None
    timeout: float = 30.0
    max_retries: int = 3
    retry_delay: float = 1.0

    def payload(self, messages: List[Dict[str, str]]) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": self.temperature,
        }
        if self.max_tokens is not None:
            body["max_tokens"] = self.max_tokens
        if self.frequency_penalty is not None:
            body["frequency_penalty"] = self.frequency_penalty
        return body


@dataclass
class TokenAssessment(_Serializable):
    """LLM verdict on the token itself"""
    risk_level: RiskLevel = RiskLevel.HIGH
    risk_factors: List[str] = field(default_factory=list)
    positive_factors: List[str] = field(default_factory=list)
    liquidity_assessment: str = ""
    holding_assessment: str = ""
    maturity_assessment: str = ""
    market_cap_tier_assessment: str = ""


@dataclass
class CreatorAssessment(_Serializable):
    """LLM verdict on the creator wallet"""
    trust_level: TrustLevel = TrustLevel.LOW
    success_rate: str = ""
    risk_patterns: List[str] = field(default_factory=list)
    track_record: str = ""
    moon_projects_assessment: Optional[str] = None


@dataclass
class LLMRiskAnalysis(_Serializable):
    """Structured result of a token risk analysis"""
    risk_level: RiskLevel
    risk_factors: List[str]
    recommendation: str
    token_analysis: TokenAssessment
    creator_analysis: CreatorAssessment
    matched_patterns: List[str] = field(default_factory=list)

    @classmethod
    def default_error(cls) -> "LLMRiskAnalysis":
        """Conservative result used when the model output cannot be parsed"""
        unable = "Unable to assess"
        return cls(
            risk_level=RiskLevel.HIGH,
            risk_factors=["Error parsing response"],
            recommendation="Due to analysis error, please proceed with caution",
            token_analysis=TokenAssessment(
                risk_level=RiskLevel.HIGH,
                risk_factors=["Parse error"],
                positive_factors=[],
                liquidity_assessment=unable,
                holding_assessment=unable,
                maturity_assessment=unable,
                market_cap_tier_assessment=unable,
            ),
            creator_analysis=CreatorAssessment(
                trust_level=TrustLevel.LOW,
                success_rate=unable,
                risk_patterns=["Data parsing failed"],
                track_record=unable,
                moon_projects_assessment=unable,
            ),
        )


@dataclass
class CreatorQualityMetrics(_Serializable):
    """Creator project counts per market-cap tier, as shown to the model"""
    failed_projects: int = 0
    low_quality_projects: int = 0
    medium_quality_projects: int = 0
    high_quality_projects: int = 0
    moon_projects: int = 0
    moon_rate: float = 0.0
    success_rate: float = 0.0

    @classmethod
    def from_cleaned(cls, cleaned: CleanedCreatorData) -> "CreatorQualityMetrics":
        counts = cleaned.projects_by_quality
        return cls(
            failed_projects=counts.get("micro", 0),
            low_quality_projects=counts.get("small", 0),
            medium_quality_projects=counts.get("medium", 0),
            high_quality_projects=counts.get("large", 0),
            moon_projects=len(cleaned.moon_projects),
            moon_rate=cleaned.moon_rate,
            success_rate=cleaned.success_rate,
        )


@dataclass
class AnalysisInput:
    """Everything the risk prompt embeds for one token"""
    token_address: str
    creator: TokenCreator
    creator_data: CleanedCreatorData
    holding_data: CleanedHoldingData
    price: float = 0.0
    market_cap: Optional[float] = None
    price_history: List[float] = field(default_factory=list)
    # {"price", "initial_price"} per creator token, when launch prices are known
    creator_history: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def quality_metrics(self) -> CreatorQualityMetrics:
        return CreatorQualityMetrics.from_cleaned(self.creator_data)
