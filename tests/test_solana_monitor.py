import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from models.token_models import NewTokenEvent
from services.solana_monitor import (
    POOL_INIT_LOG,
    SolanaMonitor,
    extract_account_keys,
    is_pool_initialization,
)
from utils.errors import ExternalServiceError, RPCError


# ===== FIXTURES =====

@pytest.fixture
def rpc():
    client = MagicMock()
    client.get_transaction = AsyncMock()
    return client


@pytest.fixture
def monitor(rpc):
    return SolanaMonitor("wss://example.invalid", rpc, max_reconnects=2, reconnect_delay=1.0, tx_retry_delay=0)


def _notification(signature: str, logs):
    return {
        "jsonrpc": "2.0",
        "method": "logsNotification",
        "params": {"result": {"value": {"signature": signature, "logs": logs}}},
    }


def _transaction(static_count: int, writable=(), readonly=()):
    return {
        "transaction": {"message": {"accountKeys": [f"key{i}" for i in range(static_count)]}},
        "meta": {"loadedAddresses": {"writable": list(writable), "readonly": list(readonly)}},
    }


# ===== HELPERS =====

def test_is_pool_initialization():
    assert is_pool_initialization(["Program log: ray_log", f"Program log: {POOL_INIT_LOG}"])
    assert not is_pool_initialization(["Program log: swap"])
    assert not is_pool_initialization(None)


def test_extract_account_keys_appends_lookup_tables():
    tx = _transaction(2, writable=["w0"], readonly=["r0", "r1"])
    assert extract_account_keys(tx) == ["key0", "key1", "w0", "r0", "r1"]


def test_extract_account_keys_json_parsed_format():
    tx = {"transaction": {"message": {"accountKeys": [{"pubkey": "a", "signer": True}, {"pubkey": "b"}]}}}
    assert extract_account_keys(tx) == ["a", "b"]


# ===== MESSAGES =====

@pytest.mark.asyncio
async def test_subscription_confirmation_resets_retries(monitor):
    monitor.retry_count = 3
    await monitor.handle_message({"jsonrpc": "2.0", "result": 42, "id": 1})

    assert monitor.subscription_id == 42
    assert monitor.retry_count == 0


@pytest.mark.asyncio
async def test_non_pool_logs_are_ignored(monitor):
    monitor.process_transaction = AsyncMock()
    await monitor.handle_message(_notification("sig1", ["Program log: swap"]))

    assert monitor.messages_received == 1
    assert monitor.pools_detected == 0
    monitor.process_transaction.assert_not_called()


@pytest.mark.asyncio
async def test_pool_signature_processed_once(monitor):
    monitor.process_transaction = AsyncMock()
    message = _notification("sig1", [POOL_INIT_LOG])

    await monitor.handle_message(message)
    await monitor.handle_message(message)
    await asyncio.sleep(0)

    assert monitor.pools_detected == 1
    monitor.process_transaction.assert_awaited_once_with("sig1")


# ===== TRANSACTIONS =====

@pytest.mark.asyncio
async def test_parse_transaction_reads_index_18_across_lookup_tables(monitor, rpc):
    rpc.get_transaction.return_value = _transaction(16, writable=["w0", "w1"], readonly=["TokenMint"])
    assert await monitor.parse_transaction("sig") == "TokenMint"


@pytest.mark.asyncio
async def test_parse_transaction_with_too_few_keys(monitor, rpc):
    rpc.get_transaction.return_value = _transaction(18)
    assert await monitor.parse_transaction("sig") is None


@pytest.mark.asyncio
async def test_parse_transaction_missing(monitor, rpc):
    rpc.get_transaction.return_value = None
    assert await monitor.parse_transaction("sig") is None


@pytest.mark.asyncio
async def test_process_transaction_emits_event(monitor, rpc):
    rpc.get_transaction.return_value = _transaction(19)
    received = []

    async def callback(event):
        received.append(event)

    monitor.on_new_token(callback)
    await monitor.process_transaction("sig")

    assert len(received) == 1
    assert received[0].token_address == "key18"
    assert received[0].signature == "sig"


@pytest.mark.asyncio
async def test_process_transaction_gives_up_after_retries(monitor, rpc):
    rpc.get_transaction.side_effect = RPCError("node behind", method="getTransaction")
    callback = AsyncMock()
    monitor.on_new_token(callback)

    with patch("utils.retry.asyncio.sleep", new=AsyncMock()):
        await monitor.process_transaction("sig")

    assert rpc.get_transaction.await_count == 3
    callback.assert_not_called()


@pytest.mark.asyncio
async def test_emit_survives_failing_callback(monitor):
    failing = AsyncMock(side_effect=RuntimeError("boom"))
    working = AsyncMock()
    monitor.on_new_token(failing)
    monitor.on_new_token(working)

    await monitor.emit(NewTokenEvent(token_address="mint", signature="sig"))

    working.assert_awaited_once()
    assert monitor.tokens_emitted == 1


# ===== RECONNECTS =====

@pytest.mark.asyncio
async def test_connection_error_backs_off_then_gives_up(monitor):
    sleep = AsyncMock()
    with patch("services.solana_monitor.asyncio.sleep", new=sleep):
        await monitor._handle_connection_error(OSError("reset"))
        await monitor._handle_connection_error(OSError("reset"))
        with pytest.raises(ExternalServiceError):
            await monitor._handle_connection_error(OSError("reset"))

    assert [c.args[0] for c in sleep.await_args_list] == [1.0, 2.0]
    assert monitor.is_running is False


@pytest.mark.asyncio
async def test_rate_limited_handshake_waits_extra(monitor):
    error = OSError("429")
    error.status_code = 429
    sleep = AsyncMock()
    with patch("services.solana_monitor.asyncio.sleep", new=sleep):
        await monitor._handle_connection_error(error)

    assert [c.args[0] for c in sleep.await_args_list] == [2.0, 1.0]
