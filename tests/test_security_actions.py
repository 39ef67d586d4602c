from unittest.mock import AsyncMock, MagicMock

import pytest

from models.config import SecurityConfig
from models.llm_models import CreatorAssessment, LLMRiskAnalysis, TokenAssessment
from models.token_models import (
    CleanedCreatorData,
    CleanedHoldingData,
    PriceInfo,
    RiskLevel,
    TokenContract,
    TokenCreator,
    TokenHolding,
    TokenHoldingInfo,
    TokenInfo,
)
from plugins import security_plugin
from plugins.actions import analyze_pumpfun_token as pumpfun_action
from plugins.actions import analyze_token_security as security_action
from plugins.actions.analyze_pumpfun_token import (
    RISK_FEW_TRANSACTIONS,
    RISK_JUST_CREATED,
    RISK_LOW_CREDIBILITY,
    RISK_LOW_LIQUIDITY,
    PumpfunTokenAnalyzer,
    calculate_liquidity_score,
    calculate_overall_score,
    creator_credibility_score,
    generate_recommendations,
    identify_risk_factors,
)
from plugins.actions.analyze_token_security import (
    ERROR_REPLY,
    TokenSecurityPipeline,
    extract_token_address,
    is_token_security_content,
)
from plugins.base import ActionResult
from utils.errors import ExternalServiceError, RPCError

ADDRESS = "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU"


# ===== FIXTURES =====

@pytest.fixture
def pumpfun():
    client = MagicMock()
    client.is_pump_token = AsyncMock(return_value=True)
    return client


@pytest.fixture
def config():
    return SecurityConfig(solana_rpc_url="https://rpc.example/?api-key=abc", deepseek_api_key="sk-test")


@pytest.fixture
def pipeline():
    token = TokenInfo(address=ADDRESS, name="Test Token", symbol="TEST", contract=TokenContract(supply=1_000_000))
    holding_info = TokenHoldingInfo(holdings=[
        TokenHolding(address="whale", amount=350_000, percentage=35.0),
        TokenHolding(address="pool", amount=80_000, percentage=8.0, is_dex=True),
    ])

    token_info = MagicMock()
    token_info.get_token_info = AsyncMock(return_value=token)
    price_liquidity = MagicMock()
    price_liquidity.get_detailed_price_info = AsyncMock(
        return_value=PriceInfo(price=0.02, market_cap=20_000, supply=1_000_000)
    )
    price_liquidity.get_holding_info = AsyncMock(return_value=holding_info)
    creator_info = MagicMock()
    creator_info.get_creator_info = AsyncMock(return_value=TokenCreator(address="Creator1"))
    cleaning = MagicMock()
    cleaning.clean_holding_data = MagicMock(return_value=CleanedHoldingData(total_holders=2, non_dex_holders=1))
    cleaning.clean_creator_data = AsyncMock(return_value=CleanedCreatorData(address="Creator1"))
    llm_analysis = MagicMock()
    llm_analysis.analyze_token_risk = AsyncMock(return_value=LLMRiskAnalysis(
        risk_level=RiskLevel.MEDIUM,
        risk_factors=["Concentrated supply"],
        recommendation="Trade small",
        token_analysis=TokenAssessment(),
        creator_analysis=CreatorAssessment(),
    ))

    return TokenSecurityPipeline(
        SecurityConfig(),
        rpc=MagicMock(),
        token_info=token_info,
        price_liquidity=price_liquidity,
        creator_info=creator_info,
        cleaning=cleaning,
        llm_analysis=llm_analysis,
    )


# ===== MESSAGE PARSING =====

def test_extract_token_address():
    assert extract_token_address({"text": f"Please analyze {ADDRESS} now"}) == ADDRESS
    assert extract_token_address({"text": "x", "token_address": "Explicit"}) == "Explicit"
    assert extract_token_address({"text": "is this safe?"}) is None
    assert extract_token_address(None) is None


def test_security_content_stores_address():
    message = {"text": f"check {ADDRESS}"}
    assert is_token_security_content(message)
    assert message["token_address"] == ADDRESS
    assert not is_token_security_content({"text": "gm"})


# ===== SECURITY ACTION =====

@pytest.mark.asyncio
async def test_validate_accepts_pump_token(pumpfun, config):
    message = {"text": f"Is this safe: {ADDRESS}"}
    assert await security_action.validate(message, config=config, pumpfun=pumpfun)
    pumpfun.is_pump_token.assert_awaited_once_with(ADDRESS)


@pytest.mark.asyncio
async def test_validate_rejects(pumpfun, config):
    assert not await security_action.validate({"text": "no address here"}, config=config, pumpfun=pumpfun)
    pumpfun.is_pump_token.assert_not_called()

    assert not await security_action.validate({"text": ADDRESS}, config=SecurityConfig(), pumpfun=pumpfun)

    pumpfun.is_pump_token.return_value = False
    assert not await security_action.validate({"text": ADDRESS}, config=config, pumpfun=pumpfun)


@pytest.mark.asyncio
async def test_pipeline_builds_report(pipeline):
    result = await pipeline.run(ADDRESS, requested_by="alice")

    assert result.success
    assert result.text.startswith("🔍 I've analyzed this token. Here's my detailed analysis:\n\n")
    assert "Requested by @alice" in result.text
    assert result.tweets and all(len(t) <= 280 for t in result.tweets)
    assert result.data["should_thread"] is True
    assert result.data["in_reply_to"] == "alice"
    assert result.data["analysis"]["risk_level"] == "MEDIUM"
    # 3 for a 35% top holder + 2 for 8% DEX liquidity
    assert result.data["risk"]["risk_score"] == 5

    analysis_input = pipeline.llm_analysis.analyze_token_risk.await_args.args[0]
    assert analysis_input.price == 0.02
    assert analysis_input.market_cap == 20_000


@pytest.mark.asyncio
async def test_pipeline_without_price(pipeline):
    pipeline.price_liquidity.get_detailed_price_info.return_value = None
    result = await pipeline.run(ADDRESS)

    assert result.data["price"] is None
    assert "in_reply_to" not in result.data
    assert pipeline.llm_analysis.analyze_token_risk.await_args.args[0].price == 0.0


@pytest.mark.asyncio
async def test_handler_runs_pipeline():
    pipeline = MagicMock()
    pipeline.run = AsyncMock(return_value=ActionResult(success=True, text="report"))

    result = await security_action.handler({"text": ADDRESS, "user": "alice"}, pipeline=pipeline)

    assert result.text == "report"
    pipeline.run.assert_awaited_once_with(ADDRESS, requested_by="alice")


@pytest.mark.asyncio
async def test_handler_reports_errors():
    pipeline = MagicMock()
    pipeline.run = AsyncMock(side_effect=ExternalServiceError("helius", "down"))

    result = await security_action.handler({"text": ADDRESS}, pipeline=pipeline)

    assert not result.success
    assert result.text == ERROR_REPLY
    assert result.data == {"error": "helius: down", "token_address": ADDRESS}


@pytest.mark.asyncio
async def test_handler_reports_unexpected_errors():
    pipeline = MagicMock()
    pipeline.run = AsyncMock(side_effect=ValueError("Expecting value: line 1 column 1"))

    result = await security_action.handler({"text": ADDRESS}, pipeline=pipeline)

    assert not result.success
    assert result.text == ERROR_REPLY
    assert result.data["token_address"] == ADDRESS


@pytest.mark.asyncio
async def test_handler_without_address_or_config():
    result = await security_action.handler({"text": "hello"})
    assert result.data["error"] == "NO_TOKEN_ADDRESS"

    result = await security_action.handler({"text": ADDRESS}, config=SecurityConfig())
    assert not result.success
    assert "SOLANA_RPC_URL" in result.data["error"]


# ===== PUMP.FUN CREDIBILITY =====

@pytest.mark.parametrize("count,score", [
    (1001, 100), (1000, 80), (501, 80), (500, 60), (101, 60), (100, 40), (51, 40), (50, 20), (0, 20),
])
def test_liquidity_score(count, score):
    assert calculate_liquidity_score(count) == score


def test_creator_credibility_score():
    assert creator_credibility_score(None) == 0
    assert creator_credibility_score(0) == 20
    assert creator_credibility_score(60) == 40
    assert creator_credibility_score(2000) == 100


def test_overall_score():
    assert calculate_overall_score(100, 100, 250) == 100
    assert calculate_overall_score(20, 0, 4) == 9
    assert calculate_overall_score(20, 20, 15) == 19


def test_risk_factors_and_recommendations():
    risks = identify_risk_factors(5, 20, 0)
    assert risks == [RISK_FEW_TRANSACTIONS, RISK_LOW_LIQUIDITY, RISK_LOW_CREDIBILITY, RISK_JUST_CREATED]
    assert len(generate_recommendations(risks)) == 4
    assert identify_risk_factors(600, 80, 40) == []


@pytest.mark.asyncio
async def test_analyzer_new_token_without_creator():
    rpc = MagicMock()
    rpc.get_mint_info = AsyncMock(return_value={"mint_authority": None})
    rpc.get_signatures_for_address = AsyncMock(return_value=[
        {"signature": "c", "blockTime": 1_700_000_300},
        {"signature": "b", "blockTime": 1_700_000_100},
        {"signature": "a", "blockTime": 1_700_000_000},
    ])

    analysis = await PumpfunTokenAnalyzer(rpc).analyze(ADDRESS)

    assert analysis.transaction_count == 3
    assert analysis.creator_credibility == 0
    assert analysis.overall_score == 9
    assert analysis.creation_date == "2023-11-14T22:13:20+00:00"
    assert RISK_JUST_CREATED in analysis.risk_factors
    rpc.get_signatures_for_address.assert_awaited_once_with(ADDRESS)


@pytest.mark.asyncio
async def test_analyzer_active_token():
    rpc = MagicMock()
    rpc.get_mint_info = AsyncMock(return_value={"mint_authority": "Creator1"})
    rpc.get_signatures_for_address = AsyncMock(side_effect=[
        [{"signature": f"s{i}"} for i in range(600)],
        [{"signature": f"c{i}"} for i in range(60)],
    ])

    analysis = await PumpfunTokenAnalyzer(rpc).analyze(ADDRESS)

    assert analysis.liquidity_score == 80
    assert analysis.creator_credibility == 40
    assert analysis.overall_score == 74
    assert analysis.risk_factors == []
    assert analysis.creation_date is None


@pytest.mark.asyncio
async def test_pumpfun_handler(pumpfun):
    analyzer = MagicMock()
    analyzer.analyze = AsyncMock(side_effect=RPCError("node unavailable"))

    assert not (await pumpfun_action.handler({"text": "x"}, analyzer=analyzer)).success

    result = await pumpfun_action.handler({"token_address": ADDRESS}, analyzer=analyzer)
    assert not result.success
    assert result.data == {"token_address": ADDRESS}

    analyzer.analyze.side_effect = KeyError("signature")
    result = await pumpfun_action.handler({"token_address": ADDRESS}, analyzer=analyzer)
    assert not result.success
    assert result.data == {"token_address": ADDRESS}

    assert await pumpfun_action.validate({"token_address": ADDRESS}, pumpfun=pumpfun)
    assert not await pumpfun_action.validate({"text": ADDRESS}, pumpfun=pumpfun)


# ===== PLUGIN =====

def test_plugin_action_lookup():
    assert security_plugin.get_action("analyze_token_security").name == "ANALYZE_TOKEN_SECURITY"
    assert security_plugin.get_action("VERIFY_TOKEN").name == "ANALYZE_PUMPFUN_TOKEN"
    assert security_plugin.get_action("ANALYZE_TOKEN").name == "ANALYZE_TOKEN_SECURITY"
    assert security_plugin.get_action("UNKNOWN") is None
