import time
from unittest.mock import AsyncMock, MagicMock

import pytest

from analyzers.timeline_analyzer import TimelineAnalyzer
from utils.errors import ExternalServiceError

MINT = "Mint1111111111111111111111111111111111111111"


# ===== FIXTURES =====

@pytest.fixture
def coins():
    return {
        MINT: {"creator": "Creator1", "name": "Coin", "created_timestamp": 1_700_000_000_000},
        "Older": {"usd_market_cap": 150_000},
    }


@pytest.fixture
def pumpfun(coins):
    client = MagicMock()
    client.get_coin = AsyncMock(side_effect=lambda mint, force_refresh=False: coins.get(mint))
    client.get_token_price = AsyncMock(return_value=None)
    client.price_from_coin = MagicMock(return_value=0.00003)
    return client


@pytest.fixture
def helius():
    client = MagicMock()
    client.get_transactions = AsyncMock(return_value=[
        {"tokenTransfers": [{"mint": "Older"}], "timestamp": 100},
        {"tokenTransfers": [{"mint": "Newer"}], "timestamp": 200},
        {"tokenTransfers": [{"mint": "Older"}], "timestamp": 100},
    ])
    client.get_all_transactions = AsyncMock(return_value=[
        {"timestamp": time.time() - 48 * 3600},
        {"timestamp": time.time() - 3600},
    ])
    return client


@pytest.fixture
def rpc():
    client = MagicMock()
    client.get_token_metadata = AsyncMock(return_value={"name": "Meta Name"})
    client.get_mint_info = AsyncMock(return_value={"ui_supply": 1_000_000_000.0})
    return client


@pytest.fixture
def analyzer(rpc, helius, pumpfun):
    jupiter = MagicMock()
    jupiter.get_price = AsyncMock(return_value=0.0002)
    return TimelineAnalyzer(
        rpc, helius, pumpfun=pumpfun, jupiter=jupiter,
        token_delay=0, refetch_delay=0, retry_base_delay=0,
    )


# ===== TESTS =====

@pytest.mark.asyncio
async def test_collect_data(analyzer):
    info = await analyzer.collect_data(MINT, launch_timestamp=1_700_000_600_000)

    assert info.token_name == "Meta Name"
    assert info.creator == "Creator1"
    assert info.created_at == 1_700_000_000_000
    assert info.launched_at == 1_700_000_600_000
    assert info.price == 0.00003
    assert [t.address for t in info.creator_tokens] == ["Newer", "Older"]
    assert info.creator_tokens[1].market_cap == 150_000
    assert info.creator_tokens[0].market_cap == pytest.approx(200_000)
    assert info.successful_tokens == 2
    assert info.creator_wallet_age.is_new_wallet is False
    assert info.creator_wallet_age.age_in_hours == pytest.approx(48, abs=0.1)


@pytest.mark.asyncio
async def test_unknown_token_raises(analyzer):
    with pytest.raises(ExternalServiceError):
        await analyzer.collect_data("Unknown")


@pytest.mark.asyncio
async def test_wallet_without_history(analyzer, helius):
    helius.get_all_transactions.return_value = []
    age = await analyzer.get_wallet_age("Fresh")

    assert age.is_new_wallet is True
    assert age.created_at == 0


@pytest.mark.asyncio
async def test_price_prefers_pumpfun(analyzer, pumpfun):
    pumpfun.get_token_price.return_value = 0.001
    assert await analyzer.get_token_price("Older") == 0.001
    analyzer.jupiter.get_price.assert_not_called()
