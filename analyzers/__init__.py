"""Analyzers: holder distribution, creator timelines, data cleaning and risk scoring."""

from .token_analyzer import TokenAnalyzer
from .timeline_analyzer import TimelineAnalyzer
from .price_liquidity import PriceLiquidityService
from .data_cleaning import DataCleaningService
from .risk_assessment import RiskAssessmentService

__all__ = [
    'TokenAnalyzer',
    'TimelineAnalyzer',
    'PriceLiquidityService',
    'DataCleaningService',
    'RiskAssessmentService'
]
