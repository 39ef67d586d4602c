from unittest.mock import AsyncMock, MagicMock

import pytest

from models.token_models import CreatorHolding, CreatorToken, TimelineTokenInfo, WalletAge
from services.llm_service import LLMService, SYSTEM_PROMPT
from utils.errors import ExternalServiceError, LLMResponseError

THREAD = (
    "🚨 Token Monitor Alert (1/5)\nToken Name: $PEPE2\n"
    "👨‍💻 Creator Information (2/5)\nAddress: Creator111\n"
    "📜 Creator History Record (3/5)\nNo historical token records\n"
    "💡 Nyx Risk Analysis (4/5)\nOverall rating: medium"
)


def _token_info(**overrides) -> TimelineTokenInfo:
    values = dict(
        token_name="PEPE2",
        token_address="Mint111111111111111111111111111111111111111",
        created_at=1_700_000_000_000,
        launched_at=1_700_003_600_000,
        creator="Creator11111111111111111111111111111111111",
    )
    values.update(overrides)
    return TimelineTokenInfo(**values)


@pytest.fixture
def client():
    mock = MagicMock()
    mock.complete = AsyncMock(return_value=THREAD)
    return mock


@pytest.fixture
def service(client):
    return LLMService(client=client, retry_delay=0)


def test_format_response_renumbers_and_joins():
    formatted = LLMService.format_response(THREAD)
    tweets = formatted.split("\n\n")

    assert len(tweets) == 4
    assert tweets[0].startswith("🚨 Token Monitor Alert (1/4)")
    assert "(4/4)" in tweets[3]
    assert "(4/5)" not in formatted


def test_format_response_adds_keyword_emojis():
    formatted = LLMService.format_response(THREAD)
    assert "rating📊" in formatted


def test_format_response_rejects_short_content():
    with pytest.raises(LLMResponseError):
        LLMService.format_response("  too short ")


def test_format_response_requires_four_tweets():
    three = THREAD.split("\n💡")[0]
    with pytest.raises(LLMResponseError):
        LLMService.format_response(three)


def test_prompt_lists_history_newest_first():
    info = _token_info(
        creator_wallet_age=WalletAge(created_at=1, is_new_wallet=False, age_in_hours=48.0),
        creator_holding=CreatorHolding(balance=1000.0, balance_usd=12.5),
        creator_tokens=[
            CreatorToken(address="OldMint", name="Old", market_cap=500_000, timestamp=1_600_000_000),
            CreatorToken(address="NewMint", name="New", market_cap=1_000, timestamp=1_690_000_000),
        ],
    )

    prompt = LLMService(client=MagicMock()).generate_analysis_prompt(info)

    assert "Time Difference: 1.00 hours" in prompt
    assert "Mature Wallet (48.0 hours)" in prompt
    assert "Current Holdings: 1000.0 tokens" in prompt
    assert "Historical Tokens: 2" in prompt
    assert "Success Cases: 1 (Market Cap >$100k)" in prompt
    assert prompt.index("NewMint") < prompt.index("OldMint")


def test_prompt_without_history_or_wallet():
    prompt = LLMService(client=MagicMock()).generate_analysis_prompt(_token_info())
    assert "New Wallet (<24h)" in prompt
    assert "No historical token records" in prompt


@pytest.mark.asyncio
async def test_analyze_sends_system_prompt(service, client):
    result = await service.analyze("prompt text")

    messages = client.complete.await_args.args[0]
    assert messages[0] == {"role": "system", "content": SYSTEM_PROMPT}
    assert messages[1] == {"role": "user", "content": "prompt text"}
    assert result.startswith("🚨")


@pytest.mark.asyncio
async def test_analyze_token_risk_retries_bad_format(service, client):
    client.complete.side_effect = ["not a thread at all", THREAD]

    result = await service.analyze_token_risk(_token_info())

    assert client.complete.await_count == 2
    assert "(1/4)" in result


@pytest.mark.asyncio
async def test_analyze_token_risk_failure_message(service, client):
    client.complete.side_effect = ExternalServiceError("deepseek", "down")

    result = await service.analyze_token_risk(_token_info())

    assert client.complete.await_count == 3
    assert result == "Analysis failed: deepseek: down. Please try again later."
