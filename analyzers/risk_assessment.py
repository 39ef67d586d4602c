"""
Risk Assessment Service

Heuristic risk score for a token. Points are added per red flag:

    non-DEX top-20 concentration   > 50%: +5     > 30%: +3
    mint authority still set             +4
    freeze authority still set           +3
    DEX/CEX share of supply        < 5%:  +3     < 10%: +2
    creator's other launches       > 10:  +3     > 5:   +2
    market cap below $10,000             +2

A score of 7 or more is HIGH risk, 4 or more MEDIUM, anything lower LOW.
"""

from typing import List, Optional

from loguru import logger

from models.token_models import RiskAssessment, RiskLevel, TokenContract, TokenCreator, TokenHolding

HIGH_RISK_SCORE = 7
MEDIUM_RISK_SCORE = 4
MICRO_MARKET_CAP_USD = 10_000


def top_non_dex_holding_percentage(holdings: List[TokenHolding], count: int = 20) -> float:
    non_dex = sorted((h for h in holdings if not h.is_dex), key=lambda h: h.percentage, reverse=True)
    return sum(h.percentage for h in non_dex[:count])


def risk_level_for_score(score: int) -> RiskLevel:
    if score >= HIGH_RISK_SCORE:
        return RiskLevel.HIGH
    if score >= MEDIUM_RISK_SCORE:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


class RiskAssessmentService:
    """Weighted-threshold risk scoring"""

    def assess_risk(
        self,
        holdings: List[TokenHolding],
        contract: TokenContract,
        creator: TokenCreator,
        market_cap: Optional[float] = None,
    ) -> RiskAssessment:
        score = 0
        findings: List[str] = []

        top20 = top_non_dex_holding_percentage(holdings, 20)
        if top20 > 50:
            score += 5
            findings.append(f"Highly concentrated: top 20 holders own {top20:.2f}% (over 50%)")
        elif top20 > 30:
            score += 3
            findings.append(f"Moderately concentrated: top 20 holders own {top20:.2f}% (over 30%)")

        if contract.mint_authority:
            score += 4
            findings.append("Mint authority is still enabled")
        if contract.freeze_authority:
            score += 3
            findings.append("Freeze authority is still enabled")

        dex_liquidity = sum(h.percentage for h in holdings if h.is_dex)
        if dex_liquidity < 5:
            score += 3
            findings.append(f"Very low liquidity: DEX holds {dex_liquidity:.2f}% of supply (under 5%)")
        elif dex_liquidity < 10:
            score += 2
            findings.append(f"Low liquidity: DEX holds {dex_liquidity:.2f}% of supply (under 10%)")

        launches = len(creator.other_tokens)
        if launches > 10:
            score += 3
            findings.append(f"High-risk creator: launched {launches} other tokens (over 10)")
        elif launches > 5:
            score += 2
            findings.append(f"Suspicious creator: launched {launches} other tokens (over 5)")

        if market_cap and market_cap < MICRO_MARKET_CAP_USD:
            score += 2
            findings.append(f"Tiny market cap: ${market_cap:,.0f} (under $10,000)")

        level = risk_level_for_score(score)
        logger.info(f"⚖️ Risk score {score} -> {level.value} ({len(findings)} findings)")

        return RiskAssessment(risk_level=level, risk_score=score, detailed_analysis=findings)
