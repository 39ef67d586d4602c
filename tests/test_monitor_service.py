import time
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from models.config import MonitorConfig
from models.token_models import CreatorHolding, NewTokenEvent, TimelineTokenInfo
from services.monitor_service import HOUR_SECONDS, TOKEN_LAUNCHED, MonitorService
from utils.errors import ConfigurationError, ExternalServiceError

ANALYSIS = "🚨 Token Monitor Alert (1/2)\nToken Name: $TEST\n\n💡 Risk Analysis (2/2)\nOverall rating: low"


# ===== FIXTURES =====

def _config(**overrides) -> MonitorConfig:
    values = dict(
        helius_rpc_url="https://mainnet.helius-rpc.com/?api-key=abc",
        helius_ws_url="wss://mainnet.helius-rpc.com/?api-key=abc",
        deepseek_api_key="sk-test",
        retry_delay=1.0,
    )
    values.update(overrides)
    return MonitorConfig(**values)


def _event(address: str = "Mint1") -> NewTokenEvent:
    return NewTokenEvent(token_address=address, signature="Sig1111111111111111", timestamp=1_700_000_000_000)


@pytest.fixture
def twitter():
    client = MagicMock()
    client.send_thread = AsyncMock(return_value=["1", "2"])
    return client


@pytest.fixture
def service(twitter):
    svc = MonitorService(_config(), twitter_client=twitter)

    svc.timeline_analyzer = MagicMock()
    svc.timeline_analyzer.collect_data = AsyncMock(return_value=TimelineTokenInfo(
        token_name="TEST",
        token_address="Mint1",
        created_at=1_699_999_000_000,
        creator="Creator1",
    ))
    svc.token_analyzer = MagicMock()
    svc.token_analyzer.analyze_token = AsyncMock(return_value={"creator_holding": CreatorHolding(balance=10.0)})
    svc.token_analyzer.get_token_price = AsyncMock(return_value=0.01)
    svc.llm_service = MagicMock()
    svc.llm_service.analyze_token_risk = AsyncMock(return_value=ANALYSIS)
    return svc


# ===== LIFECYCLE =====

def test_validate_config_lists_missing_settings():
    svc = MonitorService(_config(helius_rpc_url="", helius_ws_url=""))
    with pytest.raises(ConfigurationError) as exc:
        svc._validate_config()
    assert exc.value.missing == ["HELIUS_RPC_URL", "HELIUS_WS_URL"]


@pytest.mark.asyncio
async def test_initialize_gives_up_after_max_retries():
    svc = MonitorService(_config(max_retries=2))
    connect = AsyncMock(side_effect=ExternalServiceError("solana-rpc", "connection timed out"))
    sleep = AsyncMock()

    with patch.object(svc, "_connect", connect), patch("services.monitor_service.asyncio.sleep", new=sleep):
        with pytest.raises(ExternalServiceError):
            await svc.initialize()

    assert connect.await_count == 3
    assert [c.args[0] for c in sleep.await_args_list] == [1.0, 2.0]
    assert svc.is_initialized is False


@pytest.mark.asyncio
async def test_initialize_starts_monitor():
    svc = MonitorService(_config())
    monitor = MagicMock()
    monitor.start = AsyncMock()
    monitor.destroy = AsyncMock()

    def build():
        svc.monitor = monitor

    with patch.object(svc, "_connect", AsyncMock()), patch.object(svc, "_build_components", build):
        await svc.initialize()
        await svc.run_forever()

    assert svc.is_initialized
    monitor.on_new_token.assert_called_once_with(svc.handle_new_token)
    monitor.start.assert_awaited_once()

    await svc.destroy()
    monitor.destroy.assert_awaited_once()
    assert svc.get_status()["has_monitor"] is False


# ===== PIPELINE =====

@pytest.mark.asyncio
async def test_process_token_tweets_and_emits(service, twitter):
    received = []
    service.on(TOKEN_LAUNCHED, received.append)

    launch = await service.process_token(_event())

    twitter.send_thread.assert_awaited_once_with([
        "🚨 Token Monitor Alert (1/2)\nToken Name: $TEST",
        "💡 Risk Analysis (2/2)\nOverall rating: low",
    ])
    service.token_analyzer.analyze_token.assert_awaited_once_with("Mint1", "Creator1")
    timeline = service.llm_service.analyze_token_risk.await_args.args[0]
    assert timeline.creator_holding.balance == 10.0
    assert received == [launch]
    assert launch.token_name == "TEST"
    assert launch.created_at == 1_699_999_000_000
    assert launch.transaction == "Sig1111111111111111"


@pytest.mark.asyncio
async def test_failed_analysis_is_not_tweeted(service, twitter):
    service.llm_service.analyze_token_risk.return_value = "Analysis failed: deepseek: down. Please try again later."
    launch = await service.process_token(_event())

    twitter.send_thread.assert_not_called()
    assert launch.analysis.startswith("Analysis failed")


def test_build_tweets_fits_every_part(service):
    service.config.max_tweet_length = 40
    tweets = service.build_tweets("short\n\n" + "A fairly long sentence here. " * 4)

    assert tweets[0] == "short"
    assert len(tweets) > 2
    assert all(len(t) <= 40 for t in tweets)


@pytest.mark.asyncio
async def test_emit_supports_sync_and_async_listeners(service):
    sync_listener = MagicMock()
    async_listener = AsyncMock()
    failing = MagicMock(side_effect=RuntimeError("boom"))
    for listener in (failing, sync_listener, async_listener):
        service.on(TOKEN_LAUNCHED, listener)
    service.off(TOKEN_LAUNCHED, failing)

    await service._emit(TOKEN_LAUNCHED, "payload")

    sync_listener.assert_called_once_with("payload")
    async_listener.assert_awaited_once_with("payload")
    failing.assert_not_called()


# ===== QUEUE =====

@pytest.mark.asyncio
async def test_first_token_is_processed_immediately(service):
    await service.handle_new_token(_event())

    service.llm_service.analyze_token_risk.assert_awaited_once()
    service.token_analyzer.get_token_price.assert_not_called()
    assert service.is_first_run is False
    assert service.tokens_this_hour == 1
    assert service.tweets_this_hour == 4
    assert not service.token_queue


@pytest.mark.asyncio
async def test_first_token_failure_emits_blank_event(service):
    service.timeline_analyzer.collect_data.side_effect = ExternalServiceError("helius", "down")
    received = []
    service.on(TOKEN_LAUNCHED, received.append)

    await service.handle_new_token(_event())

    assert len(received) == 1
    assert received[0].token_address == "Mint1"
    assert received[0].analysis == ""
    assert service.tokens_this_hour == 0


@pytest.mark.asyncio
async def test_queue_deduplicates_by_address(service):
    service.is_first_run = False
    service.is_processing = True

    await service.handle_new_token(_event("Mint1"))
    await service.handle_new_token(_event("Mint1"))
    await service.handle_new_token(_event("Mint2"))

    assert [e.token_address for e in service.token_queue] == ["Mint1", "Mint2"]
    assert service.get_status()["queue_size"] == 2


@pytest.mark.asyncio
async def test_queue_skips_cheap_and_unpriced_tokens(service):
    service.token_analyzer.get_token_price.side_effect = [None, 0.00001, 0.01]
    service.process_token = AsyncMock()
    service.token_queue.extend([_event("NoPrice"), _event("Cheap"), _event("Good")])

    await service.process_queue()

    service.process_token.assert_awaited_once()
    assert service.process_token.await_args.args[0].token_address == "Good"
    assert service.tokens_this_hour == 1
    assert service.is_processing is False


@pytest.mark.asyncio
async def test_queue_continues_after_failure(service):
    service.process_token = AsyncMock(side_effect=[ExternalServiceError("helius", "down"), None])
    service.token_queue.extend([_event("Bad"), _event("Good")])

    await service.process_queue()

    assert service.process_token.await_count == 2
    assert service.tokens_this_hour == 1


@pytest.mark.asyncio
async def test_queue_continues_after_unexpected_error(service):
    service.process_token = AsyncMock(side_effect=[ValueError("helius returned html"), None])
    service.token_queue.extend([_event("Bad"), _event("Good")])

    await service.process_queue()

    assert service.process_token.await_count == 2
    assert service.process_token.await_args.args[0].token_address == "Good"
    assert service.tokens_this_hour == 1
    assert service.is_processing is False


@pytest.mark.asyncio
async def test_queue_waits_when_hourly_limit_reached(service):
    service.tokens_this_hour = service.config.hourly_token_limit
    service.process_token = AsyncMock()
    service.token_queue.append(_event())
    sleep = AsyncMock()

    with patch("services.monitor_service.asyncio.sleep", new=sleep):
        await service.process_queue()

    sleep.assert_awaited_once()
    assert 0 < sleep.await_args.args[0] <= HOUR_SECONDS
    assert service.tokens_this_hour == 1
    assert service.tweets_this_hour == service.config.tweets_per_token


def test_tweet_budget_also_limits(service):
    service.tweets_this_hour = service.config.hourly_tweet_limit
    assert service._limit_reached()


def test_counters_reset_after_an_hour(service):
    service.tokens_this_hour = 5
    service.tweets_this_hour = 20
    service.last_reset_time = time.time() - HOUR_SECONDS - 1

    service._reset_window_if_elapsed()

    assert service.tokens_this_hour == 0
    assert service.tweets_this_hour == 0
