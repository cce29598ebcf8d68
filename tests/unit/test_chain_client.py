"""
Unit tests for clients/chain_client.py.

All tests inject a mocked AsyncWeb3 to avoid real WebSocket sessions.
Tests verify RPC -> LogRecord / Transaction conversion, the newHeads block
stream, and that transport and fetch failures surface as the client's own
error types.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from hexbytes import HexBytes
from web3.datastructures import AttributeDict

from clients.chain_client import (
    FetchError,
    StreamConnectionError,
    log_record_from_rpc,
    transaction_from_rpc,
)

EXCHANGE = "0x4bFb41d5B3570DeFd03C39a9A4D8dE6Bd8B8982E"
SENDER = "0x" + "a1" * 20
TX_HASH = HexBytes("0x" + "cd" * 32)

SAMPLE_RAW_LOG = AttributeDict(
    {
        "address": EXCHANGE,
        "topics": [HexBytes("0x" + "11" * 32), HexBytes("0x" + "22" * 32)],
        "data": HexBytes("0x" + "00" * 31 + "05"),
        "blockNumber": 1000,
        "transactionHash": TX_HASH,
        "logIndex": 4,
    }
)

SAMPLE_RAW_TX = AttributeDict(
    {
        "hash": TX_HASH,
        "from": SENDER,
        "to": EXCHANGE,
        "input": HexBytes("0xdeadbeef"),
        "blockNumber": 2000,
        "transactionIndex": 9,
    }
)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_w3():
    w3 = MagicMock()
    w3.eth = MagicMock()
    w3.eth.get_logs = AsyncMock(return_value=[SAMPLE_RAW_LOG])
    w3.eth.get_block = AsyncMock(return_value=AttributeDict({"transactions": [SAMPLE_RAW_TX]}))
    w3.eth.subscribe = AsyncMock(return_value="0xsub")
    w3.eth.unsubscribe = AsyncMock(return_value=True)
    w3.provider.disconnect = AsyncMock()
    return w3


@pytest.fixture
def client(mock_w3):
    with patch("clients.chain_client.setup_module_logger") as mock_setup:
        mock_setup.return_value = MagicMock()
        from clients.chain_client import ChainStreamClient

        yield ChainStreamClient("wss://polygon.example/ws", w3=mock_w3)


def _subscription(*messages, error: Exception | None = None):
    async def _gen():
        for message in messages:
            yield message
        if error is not None:
            raise error

    return _gen


# ---------------------------------------------------------------------------
# Conversion
# ---------------------------------------------------------------------------


class TestConversion:
    def test_log_record_from_rpc(self):
        record = log_record_from_rpc(SAMPLE_RAW_LOG)

        assert record.block_number == 1000
        assert record.address == EXCHANGE.lower()
        assert record.topics == (b"\x11" * 32, b"\x22" * 32)
        assert record.data[-1] == 5
        assert record.transaction_hash == "0x" + "cd" * 32
        assert record.log_index == 4

    def test_log_record_from_raw_json(self):
        """Un-formatted hex strings convert the same way."""
        raw = {
            "address": EXCHANGE,
            "topics": ["0x" + "11" * 32],
            "data": "0x",
            "blockNumber": "0x3e8",
            "transactionHash": "0x" + "cd" * 32,
            "logIndex": "0x0",
        }
        record = log_record_from_rpc(raw)

        assert record.block_number == 1000
        assert record.data == b""
        assert record.log_index == 0

    def test_transaction_from_rpc(self):
        tx = transaction_from_rpc(SAMPLE_RAW_TX, 2000)

        assert tx.hash == "0x" + "cd" * 32
        assert tx.from_address == SENDER
        assert tx.to_address == EXCHANGE.lower()
        assert tx.input == bytes.fromhex("deadbeef")
        assert tx.transaction_index == 9

    def test_contract_creation_has_no_recipient(self):
        raw = AttributeDict({**SAMPLE_RAW_TX, "to": None})
        assert transaction_from_rpc(raw, 2000).to_address is None

    def test_block_number_falls_back_to_argument(self):
        raw = AttributeDict({k: v for k, v in SAMPLE_RAW_TX.items() if k != "blockNumber"})
        assert transaction_from_rpc(raw, 2001).block_number == 2001


# ---------------------------------------------------------------------------
# Session and stream
# ---------------------------------------------------------------------------


class TestSession:
    async def test_connect_returns_chain_id(self, client, mock_w3):
        async def _chain_id():
            return 137

        type(mock_w3.eth).chain_id = property(lambda self: _chain_id())

        assert await client.connect() == 137

    async def test_connect_failure_is_stream_error(self, client, mock_w3):
        async def _boom():
            raise ConnectionRefusedError("refused")

        type(mock_w3.eth).chain_id = property(lambda self: _boom())

        with pytest.raises(StreamConnectionError):
            await client.connect()

    async def test_iter_blocks_yields_header_numbers(self, client, mock_w3):
        mock_w3.socket.process_subscriptions = _subscription(
            {"subscription": "0xsub", "result": AttributeDict({"number": 1000})},
            {"subscription": "0xsub", "result": {"number": "0x3e9"}},
        )

        blocks = [n async for n in client.iter_blocks()]

        assert blocks == [1000, 1001]
        mock_w3.eth.subscribe.assert_awaited_once_with("newHeads")

    async def test_iter_blocks_skips_messages_without_number(self, client, mock_w3):
        mock_w3.socket.process_subscriptions = _subscription(
            {"subscription": "0xsub", "result": {}},
            {"subscription": "0xsub", "result": {"number": 7}},
        )
        assert [n async for n in client.iter_blocks()] == [7]

    async def test_socket_failure_is_stream_error(self, client, mock_w3):
        mock_w3.socket.process_subscriptions = _subscription(
            {"result": {"number": 1}}, error=ConnectionResetError("closed")
        )

        seen = []
        with pytest.raises(StreamConnectionError):
            async for n in client.iter_blocks():
                seen.append(n)
        assert seen == [1]

    async def test_iter_blocks_before_connect(self):
        with patch("clients.chain_client.setup_module_logger"):
            from clients.chain_client import ChainStreamClient

            unconnected = ChainStreamClient("wss://x")
        with pytest.raises(StreamConnectionError):
            async for _ in unconnected.iter_blocks():
                pass

    async def test_disconnect_unsubscribes(self, client, mock_w3):
        mock_w3.socket.process_subscriptions = _subscription()
        _ = [n async for n in client.iter_blocks()]

        await client.disconnect()

        mock_w3.eth.unsubscribe.assert_awaited_once_with("0xsub")
        mock_w3.provider.disconnect.assert_awaited_once()


# ---------------------------------------------------------------------------
# Per-block reads
# ---------------------------------------------------------------------------


class TestReads:
    async def test_get_logs_filters_single_block_and_address(self, client, mock_w3):
        logs = await client.get_logs(1000, EXCHANGE.lower())

        params = mock_w3.eth.get_logs.await_args.args[0]
        assert params["fromBlock"] == params["toBlock"] == 1000
        assert params["address"].lower() == EXCHANGE.lower()
        assert logs[0].log_index == 4

    async def test_get_logs_failure_is_fetch_error(self, client, mock_w3):
        mock_w3.eth.get_logs.side_effect = ValueError("limit exceeded")
        with pytest.raises(FetchError, match="block 1000"):
            await client.get_logs(1000, EXCHANGE)

    async def test_get_block_transactions(self, client, mock_w3):
        txs = await client.get_block_transactions(2000)

        mock_w3.eth.get_block.assert_awaited_once_with(2000, full_transactions=True)
        assert len(txs) == 1
        assert txs[0].from_address == SENDER

    async def test_get_block_failure_is_fetch_error(self, client, mock_w3):
        mock_w3.eth.get_block.side_effect = TimeoutError("slow node")
        with pytest.raises(FetchError):
            await client.get_block_transactions(2000)
