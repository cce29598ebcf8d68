"""
Polygon chain stream client: thin web3.py WebSocket wrapper.

Supplies the live sequence of new block numbers (eth_subscribe newHeads)
and, on demand, the exchange logs or the full transaction list of a block.
Raw RPC results are converted into the watcher's LogRecord / Transaction
types here so nothing downstream touches web3 AttributeDicts.

No automatic reconnection: a dropped connection ends ``iter_blocks`` with
StreamConnectionError and an external supervisor restarts the process.

Usage:
    client = ChainStreamClient(ws_url)
    await client.connect()
    async for block_number in client.iter_blocks():
        logs = await client.get_logs(block_number, exchange_address)
"""

from __future__ import annotations

import asyncio
from typing import Any, AsyncIterator

from hexbytes import HexBytes
from web3 import AsyncWeb3, Web3, WebSocketProvider

from bot_logging.logger_manager import setup_module_logger
from shared.types import LogRecord, Transaction


class ChainClientError(Exception):
    """Base error for chain stream client failures."""


class StreamConnectionError(ChainClientError):
    """Raised on transport-level failure of the WebSocket session."""


class FetchError(ChainClientError):
    """Raised when per-block data (logs / block body) cannot be retrieved."""


# ============================================================================
# RPC -> watcher type conversion
# ============================================================================


def _to_int(value: Any) -> int | None:
    if value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        return int(value, 16) if value.startswith("0x") else int(value)
    return None


def _to_hex(value: Any) -> str:
    if isinstance(value, (bytes, bytearray, HexBytes)):
        return "0x" + bytes(value).hex()
    text = str(value)
    return text if text.startswith("0x") else "0x" + text


def _to_address(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, (bytes, bytearray, HexBytes)):
        return "0x" + bytes(value).hex()
    return str(value).lower()


def log_record_from_rpc(raw: Any) -> LogRecord:
    """Convert an eth_getLogs entry into a LogRecord."""
    return LogRecord(
        block_number=_to_int(raw.get("blockNumber")) or 0,
        address=_to_address(raw.get("address")) or "",
        topics=tuple(bytes(HexBytes(t)) for t in raw.get("topics", [])),
        data=bytes(HexBytes(raw.get("data", b""))),
        transaction_hash=_to_hex(raw.get("transactionHash", b"")),
        log_index=_to_int(raw.get("logIndex")) or 0,
    )


def transaction_from_rpc(raw: Any, block_number: int) -> Transaction:
    """Convert a full transaction object from eth_getBlockByNumber."""
    return Transaction(
        hash=_to_hex(raw.get("hash", b"")),
        from_address=_to_address(raw.get("from")) or "",
        to_address=_to_address(raw.get("to")),
        input=bytes(HexBytes(raw.get("input", b""))),
        block_number=_to_int(raw.get("blockNumber")) or block_number,
        transaction_index=_to_int(raw.get("transactionIndex")) or 0,
    )


# ============================================================================
# CLIENT
# ============================================================================


class ChainStreamClient:
    """
    Long-lived WebSocket session against a Polygon node.

    Accepts a pre-built AsyncWeb3 instance via dependency injection (tests);
    otherwise builds one over WebSocketProvider on ``connect``.
    """

    def __init__(self, ws_url: str, w3: AsyncWeb3 | None = None) -> None:
        self._ws_url = ws_url
        self._w3 = w3
        self._subscription_id: str | None = None
        self._logger = setup_module_logger(
            "chain_client", "chain_client.log", module_folder="Chain_Client_Logs"
        )

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> int:
        """Open the WebSocket session and return the current chain id."""
        try:
            if self._w3 is None:
                self._w3 = AsyncWeb3(WebSocketProvider(self._ws_url))
                await self._w3.provider.connect()
            chain_id = await self._w3.eth.chain_id
            self._logger.info("Connected to chain %d via %s...", chain_id, self._ws_url[:32])
            return chain_id
        except ChainClientError:
            raise
        except Exception as e:
            self._logger.error("WebSocket connect failed: %s", e)
            raise StreamConnectionError(f"connect failed: {e}") from e

    async def disconnect(self) -> None:
        if self._w3 is None:
            return
        try:
            if self._subscription_id is not None:
                await self._w3.eth.unsubscribe(self._subscription_id)
            await self._w3.provider.disconnect()
        except Exception as e:
            self._logger.warning("Error while closing WebSocket session: %s", e)
        finally:
            self._subscription_id = None

    # ------------------------------------------------------------------
    # Block stream
    # ------------------------------------------------------------------

    async def iter_blocks(self) -> AsyncIterator[int]:
        """
        Yield new block numbers as the node announces them.

        Raises StreamConnectionError when the subscription or the socket fails.
        """
        if self._w3 is None:
            raise StreamConnectionError("iter_blocks called before connect()")
        try:
            self._subscription_id = await self._w3.eth.subscribe("newHeads")
            self._logger.info("Subscribed to newHeads (id=%s)", self._subscription_id)

            async for message in self._w3.socket.process_subscriptions():
                header = message["result"] if hasattr(message, "get") and "result" in message else message
                number = _to_int(header.get("number")) if hasattr(header, "get") else None
                if number is None:
                    self._logger.debug("Ignoring subscription message without number: %s", message)
                    continue
                yield number
        except asyncio.CancelledError:
            raise
        except ChainClientError:
            raise
        except Exception as e:
            self._logger.error("Block subscription failed: %s", e)
            raise StreamConnectionError(f"newHeads subscription failed: {e}") from e

    # ------------------------------------------------------------------
    # Per-block reads
    # ------------------------------------------------------------------

    async def get_logs(self, block_number: int, address: str) -> list[LogRecord]:
        """All logs emitted by ``address`` within ``block_number``."""
        if self._w3 is None:
            raise FetchError("get_logs called before connect()")
        try:
            raw_logs = await self._w3.eth.get_logs(
                {
                    "fromBlock": block_number,
                    "toBlock": block_number,
                    "address": Web3.to_checksum_address(address),
                }
            )
            return [log_record_from_rpc(raw) for raw in raw_logs]
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise FetchError(f"eth_getLogs failed for block {block_number}: {e}") from e

    async def get_block_transactions(self, block_number: int) -> list[Transaction]:
        """Full transaction objects of ``block_number``."""
        if self._w3 is None:
            raise FetchError("get_block_transactions called before connect()")
        try:
            block = await self._w3.eth.get_block(block_number, full_transactions=True)
            return [
                transaction_from_rpc(raw, block_number)
                for raw in block.get("transactions", [])
                if hasattr(raw, "get")
            ]
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise FetchError(f"eth_getBlockByNumber failed for block {block_number}: {e}") from e
