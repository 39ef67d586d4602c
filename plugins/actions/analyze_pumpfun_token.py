"""
ANALYZE_PUMPFUN_TOKEN action

Quick credibility score for a pump.fun token from on-chain activity alone:
signature count of the mint (liquidity proxy) and of its mint authority
(creator track record).
"""

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

from loguru import logger

from clients.pumpfun_client import PumpfunClient
from clients.solana_rpc_client import SolanaRPCClient
from models.config import SecurityConfig
from models.token_models import _Serializable
from plugins.base import Action, ActionResult, Message
from utils.errors import TokenSentinelError

ACTION_NAME = "ANALYZE_PUMPFUN_TOKEN"
MIN_TRANSACTIONS = 50
NEW_TOKEN_TRANSACTIONS = 10

# (more than N signatures, score), checked in order
ACTIVITY_SCORES = [(1000, 100), (500, 80), (100, 60)]
LOW_ACTIVITY_SCORE = 20

SCORE_WEIGHTS = {
    "liquidity": 0.4,
    "creator": 0.3,
    "transactions": 0.3,
}

RISK_FEW_TRANSACTIONS = "Few transactions so far, liquidity may be thin"
RISK_LOW_LIQUIDITY = "Low liquidity score, trading may not be active"
RISK_LOW_CREDIBILITY = "Low creator credibility, investigate the creator further"
RISK_JUST_CREATED = "Token was just created and lacks market validation"

RECOMMENDATIONS = {
    RISK_FEW_TRANSACTIONS: "Wait for more trading history before deciding",
    RISK_LOW_LIQUIDITY: "Watch how market activity develops",
    RISK_LOW_CREDIBILITY: "Research the creator's other projects",
    RISK_JUST_CREATED: "Wait until the market has validated the token",
}


@dataclass
class PumpfunTokenAnalysis(_Serializable):
    token_address: str
    transaction_count: int
    liquidity_score: int
    creator_credibility: int
    overall_score: int
    creator_address: Optional[str] = None
    creation_date: Optional[str] = None
    risk_factors: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)


def _activity_score(count: int, floor_threshold: int) -> int:
    for threshold, score in ACTIVITY_SCORES:
        if count > threshold:
            return score
    return 40 if count > floor_threshold else LOW_ACTIVITY_SCORE


def calculate_liquidity_score(signature_count: int, min_transactions: int = MIN_TRANSACTIONS) -> int:
    return _activity_score(signature_count, min_transactions)


def creator_credibility_score(creator_tx_count: Optional[int]) -> int:
    """0 without a known creator, otherwise scored like liquidity with a fixed 50 floor"""
    if creator_tx_count is None:
        return 0
    return _activity_score(creator_tx_count, 50)


def calculate_overall_score(liquidity_score: int, creator_credibility: int, transaction_count: int) -> int:
    transaction_score = min(transaction_count, 100)
    weighted = (
        liquidity_score * SCORE_WEIGHTS["liquidity"]
        + creator_credibility * SCORE_WEIGHTS["creator"]
        + transaction_score * SCORE_WEIGHTS["transactions"]
    )
    # halves round up
    return math.floor(weighted + 0.5)


def identify_risk_factors(
    transaction_count: int,
    liquidity_score: int,
    creator_credibility: int,
    min_transactions: int = MIN_TRANSACTIONS,
) -> List[str]:
    risks = []
    if transaction_count < min_transactions:
        risks.append(RISK_FEW_TRANSACTIONS)
    if liquidity_score < 40:
        risks.append(RISK_LOW_LIQUIDITY)
    if creator_credibility < 40:
        risks.append(RISK_LOW_CREDIBILITY)
    if transaction_count < NEW_TOKEN_TRANSACTIONS:
        risks.append(RISK_JUST_CREATED)
    return risks


def generate_recommendations(risks: List[str]) -> List[str]:
    return [RECOMMENDATIONS[risk] for risk in risks if risk in RECOMMENDATIONS]


class PumpfunTokenAnalyzer:
    """Signature-count based credibility scoring"""

    def __init__(self, rpc: SolanaRPCClient, min_transactions: int = MIN_TRANSACTIONS):
        self.rpc = rpc
        self.min_transactions = min_transactions

    async def creator_transaction_count(self, creator: Optional[str]) -> Optional[int]:
        if not creator:
            return None
        try:
            return len(await self.rpc.get_signatures_for_address(creator))
        except TokenSentinelError as e:
            logger.warning(f"Could not load creator history of {creator}: {e}")
            return None

    async def analyze(self, token_address: str) -> PumpfunTokenAnalysis:
        """
        Raises:
            TokenSentinelError: the mint or its signatures could not be loaded
        """
        mint_info = await self.rpc.get_mint_info(token_address)
        creator = mint_info.get("mint_authority")

        signatures = await self.rpc.get_signatures_for_address(token_address)
        creation_date = None
        if signatures and signatures[-1].get("blockTime"):
            creation_date = datetime.fromtimestamp(signatures[-1]["blockTime"], tz=timezone.utc).isoformat()

        tx_count = len(signatures)
        liquidity = calculate_liquidity_score(tx_count, self.min_transactions)
        credibility = creator_credibility_score(await self.creator_transaction_count(creator))
        risks = identify_risk_factors(tx_count, liquidity, credibility, self.min_transactions)

        analysis = PumpfunTokenAnalysis(
            token_address=token_address,
            transaction_count=tx_count,
            liquidity_score=liquidity,
            creator_credibility=credibility,
            overall_score=calculate_overall_score(liquidity, credibility, tx_count),
            creator_address=creator,
            creation_date=creation_date,
            risk_factors=risks,
            recommendations=generate_recommendations(risks),
        )
        logger.info(f"📊 {token_address[:8]}... credibility {analysis.overall_score}/100 ({tx_count} transactions)")
        return analysis


def format_analysis_text(analysis: PumpfunTokenAnalysis) -> str:
    risks = "\n".join(analysis.risk_factors) or "None identified"
    recommendations = "\n".join(analysis.recommendations) or "No specific recommendations"
    return (
        "Token analysis complete\n\n"
        f"Overall credibility score: {analysis.overall_score}/100\n\n"
        f"Risk factors:\n{risks}\n\n"
        f"Recommendations:\n{recommendations}"
    )


async def validate(message: Message, pumpfun: Optional[PumpfunClient] = None) -> bool:
    address = (message or {}).get("token_address")
    if not isinstance(address, str) or not address:
        return False
    pumpfun = pumpfun or PumpfunClient()
    return await pumpfun.is_pump_token(address)


async def handler(
    message: Message,
    config: Optional[SecurityConfig] = None,
    analyzer: Optional[PumpfunTokenAnalyzer] = None,
) -> ActionResult:
    address = (message or {}).get("token_address")
    if not isinstance(address, str) or not address:
        return ActionResult(success=False, text="Invalid content for token analysis")

    if analyzer is None:
        config = config or SecurityConfig.from_env()
        analyzer = PumpfunTokenAnalyzer(SolanaRPCClient(config.solana_rpc_url), config.min_transactions)

    try:
        analysis = await analyzer.analyze(address)
    except TokenSentinelError as e:
        logger.error(f"Token analysis failed for {address}: {e}")
        return ActionResult(success=False, text=f"Token analysis failed: {e}", data={"token_address": address})
    except Exception as e:
        logger.exception(f"Unexpected error analyzing {address}")
        return ActionResult(success=False, text=f"Token analysis failed: {e}", data={"token_address": address})

    return ActionResult(success=True, text=format_analysis_text(analysis), data=analysis.to_dict())


analyze_pumpfun_token_action = Action(
    name=ACTION_NAME,
    description="Score the credibility of a token launched on pump.fun",
    similes=["ANALYZE_TOKEN", "CHECK_TOKEN_CREDIBILITY", "VERIFY_TOKEN", "TOKEN_ANALYSIS"],
    validate=validate,
    handler=handler,
    examples=[
        [
            {
                "user": "{{user1}}",
                "text": "How credible is this token? 7EYnhQoR9YM3N7UoaKRoA44Uy8JeaZV3qyouov87awMs",
                "token_address": "7EYnhQoR9YM3N7UoaKRoA44Uy8JeaZV3qyouov87awMs",
            },
            {
                "user": "{{user2}}",
                "text": (
                    "Analysis complete, overall credibility score 75/100. Main risk: "
                    "relatively low liquidity. Recommendation: watch trading activity."
                ),
                "action": ACTION_NAME,
            },
        ],
    ],
)
