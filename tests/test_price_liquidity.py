from unittest.mock import AsyncMock, MagicMock

import pytest

from analyzers.price_liquidity import PriceLiquidityService, top_non_dex_percentage
from models.token_models import SOLANA_DEX_ADDRESSES, TokenHolding
from utils.errors import ConfigurationError, RPCError

RAYDIUM = SOLANA_DEX_ADDRESSES["Raydium Pool"]


def _parsed_account(owner):
    return {"data": {"parsed": {"info": {"owner": owner}}}}


# ===== FIXTURES =====

@pytest.fixture
def rpc():
    client = MagicMock()
    client.get_token_supply = AsyncMock(return_value={"uiAmount": 1000.0})
    client.get_token_largest_accounts = AsyncMock(return_value=[
        {"address": "ta1", "uiAmount": 500},
        {"address": "ta2", "uiAmount": 300},
        {"address": "ta3", "uiAmount": None},
        {"address": "ta4", "uiAmount": 100},
    ])
    client.get_multiple_accounts = AsyncMock(return_value=[
        _parsed_account(RAYDIUM),
        _parsed_account("Wallet2"),
        _parsed_account("Wallet3"),
        None,
    ])
    return client


@pytest.fixture
def helius():
    client = MagicMock()
    client.count_token_holders = AsyncMock(return_value=42)
    return client


@pytest.fixture
def jupiter():
    client = MagicMock()
    client.get_price = AsyncMock(return_value=0.5)
    return client


@pytest.fixture
def service(rpc, helius, jupiter):
    return PriceLiquidityService(rpc, helius=helius, jupiter=jupiter)


# ===== TESTS =====

def test_requires_helius_key(rpc, jupiter):
    with pytest.raises(ConfigurationError):
        PriceLiquidityService(rpc, helius_api_key=None, jupiter=jupiter)


def test_top_non_dex_percentage():
    holdings = [
        TokenHolding(address="pool", amount=1, percentage=40.0, is_dex=True),
        TokenHolding(address="a", amount=1, percentage=10.0),
        TokenHolding(address="b", amount=1, percentage=5.0),
    ]
    assert top_non_dex_percentage(holdings, 1) == 10.0
    assert top_non_dex_percentage(holdings, 5) == 15.0


@pytest.mark.asyncio
async def test_holding_info_maps_owners(service):
    info = await service.get_holding_info("Mint1")

    assert [h.address for h in info.holdings] == [RAYDIUM, "Wallet2"]
    pool, wallet = info.holdings
    assert pool.is_dex and pool.percentage == 50.0
    assert not wallet.is_dex and wallet.percentage == pytest.approx(30.0)
    assert wallet.total_holders == 42
    assert info.top5_non_dex_percentage == pytest.approx(30.0)


@pytest.mark.asyncio
async def test_holding_info_without_supply(service, rpc):
    rpc.get_token_supply.return_value = {"uiAmount": 0}
    info = await service.get_holding_info("Mint1")

    assert info.holdings == []
    rpc.get_token_largest_accounts.assert_not_called()


@pytest.mark.asyncio
async def test_holding_info_rpc_failure_is_empty(service, rpc):
    rpc.get_token_largest_accounts.side_effect = RPCError("node unavailable")
    info = await service.get_holding_info("Mint1")
    assert info.holdings == []


@pytest.mark.asyncio
async def test_detailed_price_info(service):
    info = await service.get_detailed_price_info("Mint1")

    assert info.price == 0.5
    assert info.supply == 1000.0
    assert info.market_cap == 500.0


@pytest.mark.asyncio
async def test_detailed_price_info_without_price(service, jupiter):
    jupiter.get_price.return_value = None
    assert await service.get_detailed_price_info("Mint1") is None


@pytest.mark.asyncio
async def test_detailed_price_info_without_supply(service, rpc):
    rpc.get_token_supply.side_effect = RPCError("node unavailable")
    info = await service.get_detailed_price_info("Mint1")

    assert info.price == 0.5
    assert info.market_cap is None
