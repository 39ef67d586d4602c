"""
LLM Analysis Service

Builds the token / creator risk prompt, sends it to Deepseek and parses the
JSON verdict into an LLMRiskAnalysis.
"""

import json
import re
from typing import Any, Dict, List, Optional

from loguru import logger

from clients.deepseek_client import DeepseekClient
from models.llm_models import AnalysisInput, CreatorAssessment, LLMRiskAnalysis, TokenAssessment
from models.token_models import RiskLevel, TrustLevel
from services.knowledge_base import RiskPattern, match_risk_patterns

_FENCE_RE = re.compile(r"```(?:json)?\s*|\s*```")

_LEVEL_ALIASES = {
    "HIGH": "HIGH", "MEDIUM": "MEDIUM", "LOW": "LOW",
    "高": "HIGH", "中": "MEDIUM", "低": "LOW",
}


def map_risk_level(value: Any) -> RiskLevel:
    """HIGH / MEDIUM / LOW (or 高 / 中 / 低); anything else is HIGH"""
    key = _LEVEL_ALIASES.get(str(value or "").strip().upper())
    return RiskLevel(key) if key else RiskLevel.HIGH


def map_trust_level(value: Any) -> TrustLevel:
    """Same aliases as map_risk_level; anything else is LOW"""
    key = _LEVEL_ALIASES.get(str(value or "").strip().upper())
    return TrustLevel(key) if key else TrustLevel.LOW


def build_analysis_prompt(data: AnalysisInput, matched_patterns: List[RiskPattern]) -> str:
    metrics = data.quality_metrics
    creator_data = data.creator_data
    holding = data.holding_data

    pattern_lines = "\n".join(
        f"- {p.pattern}: {p.description}\n  Risk Indicators: {', '.join(p.indicators)}"
        for p in matched_patterns
    ) or "- None identified"

    top_holder_lines = "\n".join(
        f"- Top {d.rank} Holder: {d.percentage:.2f}%" for d in holding.non_dex_distribution.details
    )

    if creator_data.moon_projects:
        moon_section = "Moon Projects List:\n" + "\n".join(
            f"- {p.name}: Market Cap {p.market_cap_sol:.2f} SOL (${p.market_cap_usd:.2f})"
            for p in creator_data.moon_projects
        )
    else:
        moon_section = "No moon projects yet"

    market_cap = f"{data.market_cap}" if data.market_cap else "Unknown"

    return f"""Please perform a comprehensive risk analysis for the following token, evaluating both the token itself and its creator:

1. Current Token Basic Information:
- Contract Address: {data.token_address}
- Current Price: ${data.price}
- Market Cap: ${market_cap}
- Market Cap Tier: {creator_data.market_cap_tier.value} (MICRO: <100 SOL, SMALL: 100-500 SOL, MEDIUM: 500-2500 SOL, LARGE: >2500 SOL)
- Token Age: {creator_data.age_in_hours:.2f} hours
- Maturity Stage: {creator_data.maturity_stage.value} (LAUNCH: ≤24h, STABILITY: 24-72h, MATURITY: >72h)

2. Current Token Holding Distribution:
- Total Holders: {holding.total_holders}
- Non-DEX Holders: {holding.non_dex_holders}
- Top 5 Holdings Percentage: {holding.non_dex_distribution.top5_percentage:.2f}%
{top_holder_lines}

3. Creator History Analysis:
- Creator Wallet Address: {data.creator.address}
- Total Historical Tokens: {len(data.creator.other_tokens)}
- Project Quality Distribution:
  - Failed Projects: {metrics.failed_projects}
  - Low Quality Projects: {metrics.low_quality_projects}
  - Medium Quality Projects: {metrics.medium_quality_projects}
  - High Quality Projects: {metrics.high_quality_projects}
  - Moon Projects: {metrics.moon_projects}
- Success Rate: {metrics.success_rate * 100:.2f}%
- Moon Rate: {metrics.moon_rate * 100:.2f}%

{moon_section}

4. Identified Risk Patterns:
{pattern_lines}

Please analyze in detail from the following dimensions:

1. Token Security Analysis:
- Token Age and Maturity Assessment
  * New tokens (<24h) require special attention to initial price volatility and holding distribution changes
  * Stability period (24-72h) focus on market acceptance and holding distribution
  * Maturity period (>72h) evaluate long-term potential and market recognition
- Market Cap Tier Assessment
  * MICRO (<100 SOL): Extremely high risk, focus on liquidity and price manipulation risks
  * SMALL (100-500 SOL): High risk, monitor holding concentration and market depth
  * MEDIUM (500-2500 SOL): Medium risk, evaluate growth potential and market stability
  * LARGE (>2500 SOL): Relatively low risk, focus on long-term value and market impact
- Holding Distribution Concentration Analysis
- Liquidity Risk Assessment
- Potential Market Manipulation Risk Analysis
- Contract Security Assessment (if relevant risk patterns exist)

2. Creator Reputation Analysis:
- Historical Project Success Rate Assessment
- Token Issuance Frequency Analysis
- Historical Token Market Cap Performance Analysis
- Moon Project Ratio and Performance
- Overall Creator Credibility Assessment

Please return the analysis result in JSON format with the following fields:
{{
    "tokenAnalysis": {{
        "riskLevel": "HIGH/MEDIUM/LOW",
        "riskFactors": ["risk1", "risk2"],
        "positiveFactors": ["advantage1", "advantage2"],
        "liquidityAssessment": "liquidity status description",
        "holdingAssessment": "holding distribution status description",
        "maturityAssessment": "assessment based on token age",
        "marketCapTierAssessment": "assessment based on market cap tier"
    }},
    "creatorAnalysis": {{
        "trustLevel": "HIGH/MEDIUM/LOW",
        "successRate": "success rate assessment description",
        "riskPatterns": ["risk behavior1", "risk behavior2"],
        "trackRecord": "historical record assessment description",
        "moonProjectsAssessment": "moon projects performance description"
    }},
    "riskLevel": "HIGH/MEDIUM/LOW",
    "recommendation": "specific investment recommendation"
}}"""


def parse_analysis_response(text: str, matched_patterns: Optional[List[RiskPattern]] = None) -> LLMRiskAnalysis:
    """
    Parse the model's JSON verdict

    Risk factors are the token risk factors, then the creator risk patterns,
    then the descriptions of matched knowledge-base patterns, deduplicated.
    Unparsable output yields ``LLMRiskAnalysis.default_error()``.
    """
    matched_patterns = matched_patterns or []
    matched_ids = [p.id for p in matched_patterns]

    try:
        result: Dict[str, Any] = json.loads(_FENCE_RE.sub("", text or "").strip())
        if not isinstance(result, dict):
            raise ValueError("analysis is not a JSON object")

        token = result.get("tokenAnalysis") or {}
        creator = result.get("creatorAnalysis") or {}

        token_risks = list(token.get("riskFactors") or [])
        creator_risks = list(creator.get("riskPatterns") or [])
        risk_factors = list(dict.fromkeys(
            token_risks + creator_risks + [p.description for p in matched_patterns]
        ))

        return LLMRiskAnalysis(
            risk_level=map_risk_level(result.get("riskLevel")),
            risk_factors=risk_factors,
            recommendation=result.get("recommendation") or "",
            token_analysis=TokenAssessment(
                risk_level=map_risk_level(token.get("riskLevel")),
                risk_factors=token_risks,
                positive_factors=list(token.get("positiveFactors") or []),
                liquidity_assessment=token.get("liquidityAssessment") or "",
                holding_assessment=token.get("holdingAssessment") or "",
                maturity_assessment=token.get("maturityAssessment") or "",
                market_cap_tier_assessment=token.get("marketCapTierAssessment") or "",
            ),
            creator_analysis=CreatorAssessment(
                trust_level=map_trust_level(creator.get("trustLevel")),
                success_rate=str(creator.get("successRate") or ""),
                risk_patterns=creator_risks,
                track_record=creator.get("trackRecord") or "",
                moon_projects_assessment=creator.get("moonProjectsAssessment"),
            ),
            matched_patterns=matched_ids,
        )

    except (ValueError, TypeError, AttributeError) as e:
        logger.error(f"Error parsing LLM response: {e}")
        logger.debug(f"Original response: {text}")
        analysis = LLMRiskAnalysis.default_error()
        analysis.matched_patterns = matched_ids
        return analysis


class LLMAnalysisService:
    """Knowledge-base matching + Deepseek risk verdict"""

    def __init__(self, llm: DeepseekClient):
        self.llm = llm

    def match_patterns(self, data: AnalysisInput) -> List[RiskPattern]:
        return match_risk_patterns({
            "creator_history": data.creator_history,
            "top5_percentage": data.holding_data.non_dex_distribution.top5_percentage,
            "price_history": data.price_history,
        })

    async def analyze_token_risk(self, data: AnalysisInput) -> LLMRiskAnalysis:
        matched = self.match_patterns(data)
        prompt = build_analysis_prompt(data, matched)
        logger.info(f"🤖 Requesting risk analysis for {data.token_address} ({len(matched)} patterns matched)")

        response = await self.llm.analyze(prompt)
        analysis = parse_analysis_response(response, matched)
        logger.info(f"🤖 LLM verdict for {data.token_address}: {analysis.risk_level.value}")
        return analysis
