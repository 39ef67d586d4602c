"""Data models and configuration for the token risk pipeline."""

from .token_models import (
    RiskLevel,
    TrustLevel,
    ProjectQuality,
    MaturityStage,
    TokenHolding,
    TokenHoldingInfo,
    TokenCreator,
    CreatorToken,
    CleanedHoldingData,
    CleanedCreatorData,
    RiskAssessment,
    NewTokenEvent,
    TokenLaunchEvent,
    classify_market_cap,
)
from .llm_models import LLMRiskAnalysis, ChatCompletionConfig, AnalysisInput
from .config import MonitorConfig, SecurityConfig, TwitterCredentials

__all__ = [
    'RiskLevel',
    'TrustLevel',
    'ProjectQuality',
    'MaturityStage',
    'TokenHolding',
    'TokenHoldingInfo',
    'TokenCreator',
    'CreatorToken',
    'CleanedHoldingData',
    'CleanedCreatorData',
    'RiskAssessment',
    'NewTokenEvent',
    'TokenLaunchEvent',
    'classify_market_cap',
    'LLMRiskAnalysis',
    'ChatCompletionConfig',
    'AnalysisInput',
    'MonitorConfig',
    'SecurityConfig',
    'TwitterCredentials',
]
