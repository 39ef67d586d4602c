"""
Token risk pattern knowledge base

A static catalog of known rug / scam patterns plus a few heuristics that match
collected token data against it. Matched patterns are fed to the LLM prompt so
the model reasons against named, repeatable failure modes.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from loguru import logger

from models.token_models import RiskLevel

CATEGORIES = ("CREATOR", "PRICE", "HOLDING", "CONTRACT", "MARKET", "LIQUIDITY", "SOCIAL", "TECHNICAL")

PRICE_COLLAPSE_RATIO = 0.1   # creator token trading below 10% of its launch price
HOLDING_TOP5_LIMIT = 50.0    # percent of supply
PRICE_SPIKE_CHANGE = 0.3     # relative step change between price samples


@dataclass(frozen=True)
class RiskPattern:
    id: str
    category: str
    pattern: str
    description: str
    risk_level: RiskLevel
    indicators: List[str] = field(default_factory=list)
    mitigations: List[str] = field(default_factory=list)


# ============================================================================
# PATTERN CATALOG
# ============================================================================

TOKEN_RISK_PATTERNS: List[RiskPattern] = [
    # Creator
    RiskPattern(
        id="CREATOR-001",
        category="CREATOR",
        pattern="Multiple failed projects",
        description="Creator has a history of token projects that lost most of their value or were abandoned",
        risk_level=RiskLevel.HIGH,
        indicators=[
            "Several tokens dropped more than 90% in price",
            "Short token lifetimes (under 3 months)",
            "Abandoned social media accounts",
            "Frequent changes in the project team",
        ],
        mitigations=[
            "Verify the creator's public identity",
            "Research previous projects in detail",
            "Check community feedback",
            "Review the team's background and track record",
        ],
    ),
    RiskPattern(
        id="CREATOR-002",
        category="CREATOR",
        pattern="Anonymous team",
        description="Project team is fully anonymous or identity information is opaque",
        risk_level=RiskLevel.HIGH,
        indicators=[
            "No verifiable team information",
            "Pseudonyms or aliases only",
            "Identities cannot be verified on major platforms",
            "Newly created social accounts for team members",
        ],
        mitigations=[
            "Ask the team to complete identity verification",
            "Check the team's historical contributions",
            "Look for endorsement from trusted organizations",
            "Verify the team's professional background",
        ],
    ),

    # Contract
    RiskPattern(
        id="CONTRACT-001",
        category="CONTRACT",
        pattern="Contract security weaknesses",
        description="Smart contract code has potential security vulnerabilities",
        risk_level=RiskLevel.HIGH,
        indicators=[
            "Unaudited contract code",
            "Critical functions lack access control",
            "Known dangerous functions in use",
            "Upgradeable contract without a timelock",
        ],
        mitigations=[
            "Commission a professional security audit",
            "Check contract permission settings",
            "Review the upgrade mechanism",
            "Verify timelock and multisig setup",
        ],
    ),
    RiskPattern(
        id="CONTRACT-002",
        category="CONTRACT",
        pattern="Suspicious permissions",
        description="Contract owner holds excessive privileges or suspicious functionality",
        risk_level=RiskLevel.HIGH,
        indicators=[
            "Owner can modify key parameters directly",
            "No multisig control",
            "Transfers can be paused",
            "Tokens can be minted or burned at will",
        ],
        mitigations=[
            "Manage the owner key with a multisig wallet",
            "Add a timelock",
            "Restrict owner privileges",
            "Set up community governance",
        ],
    ),

    # Market
    RiskPattern(
        id="MARKET-001",
        category="MARKET",
        pattern="Market manipulation signs",
        description="Clear signs of market manipulation or price control",
        risk_level=RiskLevel.HIGH,
        indicators=[
            "Heavy bot trading",
            "Concentrated counterparties",
            "Unusual order book distribution",
            "Price moves highly correlated with other tokens",
        ],
        mitigations=[
            "Analyze trading bot activity",
            "Monitor large transaction flows",
            "Track related wallet behavior",
            "Assess changes in market depth",
        ],
    ),
    RiskPattern(
        id="MARKET-002",
        category="MARKET",
        pattern="Liquidity risk",
        description="Token liquidity is insufficient or highly concentrated",
        risk_level=RiskLevel.HIGH,
        indicators=[
            "Small DEX liquidity pools",
            "Single trading pair dominates",
            "Few liquidity providers",
            "Short liquidity lock period",
        ],
        mitigations=[
            "Diversify liquidity sources",
            "Extend the liquidity lock",
            "Bring in more market makers",
            "Introduce liquidity incentives",
        ],
    ),

    # Holding
    RiskPattern(
        id="HOLDING-001",
        category="HOLDING",
        pattern="Highly concentrated holdings",
        description="Token supply is concentrated in a small number of wallets",
        risk_level=RiskLevel.HIGH,
        indicators=[
            "Top 5 holders own more than 50%",
            "Few independent holders",
            "Non-DEX wallets hold large amounts",
            "Large holder addresses are linked",
        ],
        mitigations=[
            "Monitor large holder wallets",
            "Check the token unlock schedule",
            "Analyze holding distribution trends",
            "Trace transfers between linked addresses",
        ],
    ),
    RiskPattern(
        id="HOLDING-002",
        category="HOLDING",
        pattern="Unfair token allocation",
        description="Token allocation is clearly skewed or unreasonable",
        risk_level=RiskLevel.MEDIUM,
        indicators=[
            "Team allocation too high",
            "Short vesting periods",
            "Early investors paid very little",
            "Small public sale allocation",
        ],
        mitigations=[
            "Review the tokenomics",
            "Evaluate the unlock schedule",
            "Analyze allocation fairness",
            "Check investor cost structure",
        ],
    ),

    # Price
    RiskPattern(
        id="PRICE-001",
        category="PRICE",
        pattern="Abnormal price action",
        description="Token price shows suspicious patterns or signs of manipulation",
        risk_level=RiskLevel.HIGH,
        indicators=[
            "Sudden price spikes without significant news",
            "Price rising on low volume",
            "Coordinated buying and selling",
            "Price diverging sharply from the market trend",
        ],
        mitigations=[
            "Compare with the overall market trend",
            "Analyze volume changes",
            "Check correlation with major tokens",
            "Monitor abnormal trading patterns",
        ],
    ),
    RiskPattern(
        id="PRICE-002",
        category="PRICE",
        pattern="Price manipulation vulnerability",
        description="Contract or trading mechanism can be used to manipulate the price",
        risk_level=RiskLevel.HIGH,
        indicators=[
            "Insecure oracle implementation",
            "No price manipulation protection",
            "Flash loan attack exposure",
            "MEV arbitrage exposure",
        ],
        mitigations=[
            "Use decentralized oracles",
            "Add price manipulation protection",
            "Limit trade slippage",
            "Guard against flash loan attacks",
        ],
    ),

    # Technical
    RiskPattern(
        id="TECHNICAL-001",
        category="TECHNICAL",
        pattern="Implementation flaws",
        description="Token implementation has major defects or security issues",
        risk_level=RiskLevel.HIGH,
        indicators=[
            "Outdated contract standard",
            "Key functions implemented incorrectly",
            "Missing safety checks",
            "Unoptimized contract code",
        ],
        mitigations=[
            "Upgrade to the current contract standard",
            "Add proper safety checks",
            "Optimize the contract code",
            "Run a full technical audit",
        ],
    ),
    RiskPattern(
        id="TECHNICAL-002",
        category="TECHNICAL",
        pattern="Infrastructure risk",
        description="Project infrastructure or dependencies carry risk",
        risk_level=RiskLevel.MEDIUM,
        indicators=[
            "Relies on centralized services",
            "Uses insecure RPC nodes",
            "Too many external contract calls",
            "No failure recovery plan",
        ],
        mitigations=[
            "Use decentralized infrastructure",
            "Run private RPC nodes",
            "Reduce external dependencies",
            "Set up incident response",
        ],
    ),

    # Social
    RiskPattern(
        id="SOCIAL-001",
        category="SOCIAL",
        pattern="Community anomalies",
        description="Project community shows abnormal or unhealthy characteristics",
        risk_level=RiskLevel.MEDIUM,
        indicators=[
            "Fake or bot community members",
            "Excessive marketing and hype",
            "No substantive discussion",
            "Sudden drop in engagement",
        ],
        mitigations=[
            "Check community member authenticity",
            "Assess discussion quality",
            "Monitor community activity",
            "Foster a healthy community culture",
        ],
    ),
    RiskPattern(
        id="SOCIAL-002",
        category="SOCIAL",
        pattern="Governance risk",
        description="Project governance has significant weaknesses",
        risk_level=RiskLevel.MEDIUM,
        indicators=[
            "Centralized decision making",
            "Unusual proposal pass rates",
            "Low voter participation",
            "Key decisions lack transparency",
        ],
        mitigations=[
            "Improve governance mechanisms",
            "Increase decision transparency",
            "Encourage community participation",
            "Establish an effective proposal process",
        ],
    ),
]

_PATTERNS_BY_ID: Dict[str, RiskPattern] = {p.id: p for p in TOKEN_RISK_PATTERNS}


# ============================================================================
# LOOKUPS
# ============================================================================

def get_pattern(pattern_id: str) -> Optional[RiskPattern]:
    return _PATTERNS_BY_ID.get(pattern_id)


def get_patterns_by_category(category: str) -> List[RiskPattern]:
    category = category.upper()
    return [p for p in TOKEN_RISK_PATTERNS if p.category == category]


def get_patterns_by_risk_level(risk_level) -> List[RiskPattern]:
    """Accepts a RiskLevel or its name ("HIGH", "medium", ...)"""
    if not isinstance(risk_level, RiskLevel):
        risk_level = RiskLevel(str(risk_level).upper())
    return [p for p in TOKEN_RISK_PATTERNS if p.risk_level == risk_level]


# ============================================================================
# MATCHING
# ============================================================================

def match_risk_patterns(data: Dict[str, Any]) -> List[RiskPattern]:
    """
    Match collected token data against the catalog

    Args:
        data: dict with any of
            ``creator_history``: list of {"price", "initial_price"} dicts
            ``top5_percentage``: top-5 holder share in percent
            ``price_history``: chronological list of prices

    Returns:
        Matched patterns, creator checks first
    """
    matched: List[RiskPattern] = []
    matched.extend(_match_creator_patterns(data.get("creator_history") or []))
    matched.extend(_match_holding_patterns(data.get("top5_percentage")))
    matched.extend(_match_price_patterns(data.get("price_history") or []))

    if matched:
        logger.info(f"🧠 Matched risk patterns: {', '.join(p.id for p in matched)}")
    return matched


def _match_creator_patterns(history: List[Dict[str, Any]]) -> List[RiskPattern]:
    for token in history:
        price = token.get("price")
        initial_price = token.get("initial_price")
        if price is None or not initial_price:
            continue
        if price < initial_price * PRICE_COLLAPSE_RATIO:
            return [_PATTERNS_BY_ID["CREATOR-001"]]
    return []


def _match_holding_patterns(top5_percentage: Optional[float]) -> List[RiskPattern]:
    if top5_percentage is not None and top5_percentage > HOLDING_TOP5_LIMIT:
        return [_PATTERNS_BY_ID["HOLDING-001"]]
    return []


def _match_price_patterns(price_history: List[float]) -> List[RiskPattern]:
    for previous, current in zip(price_history, price_history[1:]):
        if previous and (current - previous) / previous > PRICE_SPIKE_CHANGE:
            return [_PATTERNS_BY_ID["PRICE-001"]]
    return []
