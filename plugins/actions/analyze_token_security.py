"""
ANALYZE_TOKEN_SECURITY action

On-demand security report for a pump.fun token:

    token info -> price -> holder distribution -> creator history
    -> data cleaning -> heuristic risk score -> LLM verdict
    -> six-part tweet thread

Handler failures are reported to the user as an error result instead of
being raised to the agent loop.
"""

import re
from typing import Any, Dict, Optional

from loguru import logger

from analyzers.data_cleaning import DataCleaningService
from analyzers.price_liquidity import PriceLiquidityService
from analyzers.risk_assessment import RiskAssessmentService
from clients.deepseek_client import DeepseekClient
from clients.pumpfun_client import PumpfunClient
from clients.solana_rpc_client import SolanaRPCClient
from models.config import SecurityConfig, api_key_from_url
from models.llm_models import AnalysisInput
from plugins.base import Action, ActionResult, Message
from services.creator_info_service import CreatorInfoService
from services.llm_analysis_service import LLMAnalysisService
from services.token_info_service import TokenInfoService
from services.tweet_formatter import build_security_sections, format_security_thread
from utils.errors import TokenSentinelError

ACTION_NAME = "ANALYZE_TOKEN_SECURITY"

TOKEN_ADDRESS_RE = re.compile(r"[A-Za-z0-9]{32,44}")

NOT_PUMP_TOKEN_REPLY = "Sorry, I can only analyze pump.fun tokens on Solana"
ERROR_REPLY = "I encountered an issue while analyzing this token. Please try again later. 🔧"


def extract_token_address(message: Optional[Message]) -> Optional[str]:
    """``token_address`` of the message, else the first address-looking word of its text"""
    if not message:
        return None
    address = message.get("token_address")
    if isinstance(address, str) and address:
        return address
    text = message.get("text")
    if isinstance(text, str):
        match = TOKEN_ADDRESS_RE.search(text)
        if match:
            return match.group(0)
    return None


def is_token_security_content(message: Optional[Message]) -> bool:
    """True when the message carries a token address; the address is stored on the message"""
    address = extract_token_address(message)
    if not address:
        return False
    message["token_address"] = address
    return True


class TokenSecurityPipeline:
    """Builds the security report for one token address"""

    def __init__(
        self,
        config: SecurityConfig,
        rpc: Optional[SolanaRPCClient] = None,
        token_info: Optional[TokenInfoService] = None,
        price_liquidity: Optional[PriceLiquidityService] = None,
        creator_info: Optional[CreatorInfoService] = None,
        cleaning: Optional[DataCleaningService] = None,
        risk: Optional[RiskAssessmentService] = None,
        llm_analysis: Optional[LLMAnalysisService] = None,
    ):
        """
        Raises:
            ConfigurationError: a required key is missing for a component that
                has to be built from config
        """
        self.config = config
        self.rpc = rpc or SolanaRPCClient(config.solana_rpc_url)
        self.token_info = token_info or TokenInfoService(self.rpc)
        self.price_liquidity = price_liquidity or PriceLiquidityService(
            self.rpc,
            helius_api_key=config.helius_api_key or api_key_from_url(config.solana_rpc_url),
        )
        self.creator_info = creator_info or CreatorInfoService(self.rpc, self.price_liquidity)
        self.cleaning = cleaning or DataCleaningService()
        self.risk = risk or RiskAssessmentService()
        self.llm_analysis = llm_analysis or LLMAnalysisService(DeepseekClient(config.deepseek_api_key))

    async def run(self, token_address: str, requested_by: Optional[str] = None) -> ActionResult:
        """
        Raises:
            TokenSentinelError: any stage failed in a way that leaves no report
        """
        logger.info(f"========== Token security analysis: {token_address} ==========")

        token = await self.token_info.get_token_info(token_address)
        price_info = await self.price_liquidity.get_detailed_price_info(token_address)
        holding_info = await self.price_liquidity.get_holding_info(token_address)
        creator = await self.creator_info.get_creator_info(token_address)

        cleaned_holding = self.cleaning.clean_holding_data(holding_info)
        cleaned_creator = await self.cleaning.clean_creator_data(creator, token_address, price_info)

        market_cap = price_info.market_cap if price_info else None
        risk = self.risk.assess_risk(holding_info.holdings, token.contract, creator, market_cap)

        analysis = await self.llm_analysis.analyze_token_risk(AnalysisInput(
            token_address=token_address,
            creator=creator,
            creator_data=cleaned_creator,
            holding_data=cleaned_holding,
            price=(price_info.price if price_info else None) or 0.0,
            market_cap=market_cap,
        ))

        sections = build_security_sections(token, cleaned_holding, creator, analysis, risk, requested_by)
        tweets = format_security_thread(token, cleaned_holding, creator, analysis, risk, requested_by)

        data: Dict[str, Any] = {
            "token_address": token_address,
            "token": token.to_dict(),
            "price": price_info.to_dict() if price_info else None,
            "holding": cleaned_holding.to_dict(),
            "creator": cleaned_creator.to_dict(),
            "risk": risk.to_dict(),
            "analysis": analysis.to_dict(),
            "should_thread": True,
        }
        if requested_by:
            data["in_reply_to"] = requested_by

        logger.info(
            f"========== Analysis complete: {token.name} risk {analysis.risk_level.value}, "
            f"heuristic score {risk.risk_score} =========="
        )
        return ActionResult(
            success=True,
            text="🔍 I've analyzed this token. Here's my detailed analysis:\n\n" + "\n\n".join(sections),
            tweets=tweets,
            data=data,
        )


async def validate(
    message: Message,
    config: Optional[SecurityConfig] = None,
    pumpfun: Optional[PumpfunClient] = None,
) -> bool:
    """Message has a token address, the token is a pump.fun token and the keys are configured"""
    if not message:
        logger.debug("Invalid message format")
        return False

    if not is_token_security_content(message):
        logger.debug("No valid token address found")
        return False

    pumpfun = pumpfun or PumpfunClient()
    if not await pumpfun.is_pump_token(message["token_address"]):
        logger.info(f"{message['token_address']} is not a pump.fun token: {NOT_PUMP_TOKEN_REPLY}")
        return False

    config = config or SecurityConfig.from_env()
    if not config.is_valid:
        logger.warning("Security analysis not configured, SOLANA_RPC_URL and DEEPSEEK_API_KEY are required")
        return False

    return True


async def handler(
    message: Message,
    config: Optional[SecurityConfig] = None,
    pipeline: Optional[TokenSecurityPipeline] = None,
) -> ActionResult:
    token_address = extract_token_address(message)
    if not token_address:
        return ActionResult(success=False, text=ERROR_REPLY, data={"error": "NO_TOKEN_ADDRESS"})

    try:
        if pipeline is None:
            config = config or SecurityConfig.from_env()
            config.validate()
            pipeline = TokenSecurityPipeline(config)
        return await pipeline.run(token_address, requested_by=message.get("user"))
    except TokenSentinelError as e:
        logger.error(f"Error while analyzing {token_address}: {e}")
        return ActionResult(success=False, text=ERROR_REPLY, data={"error": str(e), "token_address": token_address})
    except Exception as e:
        logger.exception(f"Unexpected error while analyzing {token_address}")
        return ActionResult(success=False, text=ERROR_REPLY, data={"error": str(e), "token_address": token_address})


analyze_token_security_action = Action(
    name=ACTION_NAME,
    description=(
        "Full security analysis of a token address: basic token info, price and "
        "liquidity, holder distribution and creator history"
    ),
    similes=["ANALYZE_TOKEN", "CHECK_TOKEN_SECURITY", "TOKEN_SECURITY_CHECK"],
    validate=validate,
    handler=handler,
    examples=[
        [
            {
                "user": "{{user1}}",
                "text": "Please analyze the security of this token: 7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU",
                "token_address": "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU",
            },
            {
                "user": "CryptoSecurityExpert",
                "text": "Analyzing token security...",
                "action": ACTION_NAME,
                "token_address": "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU",
            },
        ],
        [
            {
                "user": "{{user1}}",
                "text": "Is this token safe: 7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU",
            },
            {
                "user": "CryptoSecurityExpert",
                "text": "Running a security analysis...",
                "action": ACTION_NAME,
                "token_address": "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU",
            },
        ],
    ],
)
