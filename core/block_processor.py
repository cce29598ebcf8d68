"""
Block processor for the Polymarket Wallet Watcher.

Per-block pipeline, one asyncio task per announced block:

    FETCHING  strategy pulls the block's exchange logs or transactions
    SCANNING  cheap address pre-filter, then decode + correlate, then dispatch
    DONE / FAILED

ProcessState.last_block_processed is advanced for every block, including
failed ones. Failed blocks are logged and never retried.

Two interchangeable strategies share the decoder, correlation engine and
dispatcher:

    LogScanStrategy          eth_getLogs on the exchange; any number of targets
    TransactionScanStrategy  full block body; single primary target, proxy-aware

Usage:
    strategy = build_strategy(WatchMode.LOGS, client, registry, decoder, engine)
    processor = BlockProcessor(strategy, dispatcher, state)
    await processor.run(client.iter_blocks())
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from itertools import chain
from typing import TYPE_CHECKING, Any, AsyncIterator, Sequence

from bot_logging.logger_manager import setup_module_logger
from clients.chain_client import FetchError, StreamConnectionError
from config.loader import get_config
from core.address_registry import iter_words
from shared.constants import DEFAULT_BLOCK_LOG_INTERVAL
from shared.serialization_utils import to_json
from shared.types import AlertRecord, BlockOutcome, BlockPhase, LogRecord, Transaction, WatchMode

if TYPE_CHECKING:
    from clients.chain_client import ChainStreamClient
    from core.address_registry import AddressRegistry
    from core.alert_dispatcher import AlertDispatcher
    from core.contract_decoder import ContractDecoder
    from core.correlation import CorrelationEngine
    from core.process_state import ProcessState


# ============================================================================
# SCAN STRATEGIES
# ============================================================================


class ScanStrategy(ABC):
    """Fetch + filter + evaluate for one watch mode."""

    mode: WatchMode
    mode_label: str

    def __init__(
        self,
        client: ChainStreamClient,
        registry: AddressRegistry,
        decoder: ContractDecoder,
        engine: CorrelationEngine,
    ) -> None:
        self._client = client
        self._registry = registry
        self._decoder = decoder
        self._engine = engine
        self._logger = setup_module_logger(
            "block_processor", "block_processor.log", module_folder="Block_Processor_Logs"
        )

    @abstractmethod
    async def fetch(self, block_number: int) -> Sequence[Any]:
        """Retrieve the block's raw items. Raises FetchError."""

    @abstractmethod
    def prefilter(self, item: Any) -> bool:
        """Address-only check run before any decoding."""

    @abstractmethod
    def evaluate(self, item: Any) -> AlertRecord | None:
        """Decode and correlate one item that passed the pre-filter."""


class LogScanStrategy(ScanStrategy):
    """
    All exchange logs of the block, filtered in memory.

    One eth_getLogs per block on the exchange address is cheaper than one
    filter per target. Decoding is mandatory: maker / taker only exist
    after the event is decoded.
    """

    mode = WatchMode.LOGS
    mode_label = "Event Logs (Relayer-Proof)"

    async def fetch(self, block_number: int) -> Sequence[LogRecord]:
        return await self._client.get_logs(block_number, self._registry.exchange_address)

    def prefilter(self, item: LogRecord) -> bool:
        return self._registry.mentions_target(chain(item.topics[1:], iter_words(item.data)))

    def evaluate(self, item: LogRecord) -> AlertRecord | None:
        decoded = self._decoder.decode_log(item.topics, item.data)
        if not decoded.ok:
            self._logger.debug(
                "Log %s#%d not decodable (%s): %s",
                item.transaction_hash,
                item.log_index,
                decoded.status.value,
                decoded.reason,
            )
            return None
        return self._engine.alert_for_log(item, decoded)


class TransactionScanStrategy(ScanStrategy):
    """
    Full block body; transactions sent from or to the primary target.

    Calls to the exchange are decoded against the exchange interface, calls
    to anything else against the proxy interface (one level of embedded
    call, unwrapped only when the wrapper forwards to the exchange). A failed decode never suppresses the alert.
    """

    mode = WatchMode.TRANSACTIONS
    mode_label = "Transactions (Direct + Proxy)"

    async def fetch(self, block_number: int) -> Sequence[Transaction]:
        return await self._client.get_block_transactions(block_number)

    def prefilter(self, item: Transaction) -> bool:
        return self._engine.transaction_touches_target(item)

    def evaluate(self, item: Transaction) -> AlertRecord | None:
        if self._registry.is_exchange(item.to_address):
            decoded = self._decoder.decode_exchange_call(item.input)
        else:
            decoded = self._decoder.decode_proxy_call(
                item.input, self._registry.exchange_address
            )

        if decoded.ok and decoded.call is not None:
            if self._logger.isEnabledFor(logging.DEBUG):
                self._logger.debug(
                    "Tx %s decoded %s: %s", item.hash, decoded.call.name, to_json(decoded.call.args)
                )
        else:
            self._logger.debug(
                "Tx %s not decodable (%s): %s", item.hash, decoded.status.value, decoded.reason
            )
        return self._engine.alert_for_transaction(item, decoded)


def build_strategy(
    mode: WatchMode,
    client: ChainStreamClient,
    registry: AddressRegistry,
    decoder: ContractDecoder,
    engine: CorrelationEngine,
) -> ScanStrategy:
    strategies: dict[WatchMode, type[ScanStrategy]] = {
        WatchMode.LOGS: LogScanStrategy,
        WatchMode.TRANSACTIONS: TransactionScanStrategy,
    }
    return strategies[mode](client, registry, decoder, engine)


# ============================================================================
# BLOCK PROCESSOR
# ============================================================================


class BlockProcessor:
    """
    Spawns one independent task per block number from the stream.

    Tasks may overlap and complete out of order; ProcessState only moves
    forward, and no block depends on another block's alerts.
    """

    def __init__(
        self,
        strategy: ScanStrategy,
        dispatcher: AlertDispatcher,
        state: ProcessState,
        block_log_interval: int | None = None,
    ) -> None:
        self._strategy = strategy
        self._dispatcher = dispatcher
        self._state = state

        if block_log_interval is None:
            timing_cfg = get_config().get_timing_config().get("block_stream", {})
            block_log_interval = timing_cfg.get("block_log_interval", DEFAULT_BLOCK_LOG_INTERVAL)
        self._block_log_interval = max(1, int(block_log_interval))

        self._in_flight: set[asyncio.Task[BlockOutcome]] = set()
        self._running = False
        self._logger = setup_module_logger(
            "block_processor", "block_processor.log", module_folder="Block_Processor_Logs"
        )

    @property
    def strategy(self) -> ScanStrategy:
        return self._strategy

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    # ------------------------------------------------------------------
    # Single block
    # ------------------------------------------------------------------

    async def process_block(self, block_number: int) -> BlockOutcome:
        """Fetch -> scan -> dispatch for one block. Never raises (except cancellation)."""
        phase = BlockPhase.FETCHING
        fetched = matched = dispatched = 0
        error: str | None = None

        try:
            items = await self._strategy.fetch(block_number)
            fetched = len(items)
            phase = BlockPhase.SCANNING

            for item in items:
                if not self._strategy.prefilter(item):
                    continue
                try:
                    alert = self._strategy.evaluate(item)
                except Exception as e:
                    self._logger.error("Block %d: item evaluation failed: %s", block_number, e)
                    continue
                if alert is None:
                    continue

                matched += 1
                self._logger.info(
                    "Block %d: %s for %s (%s)",
                    block_number,
                    alert.action_type.value,
                    alert.display_address,
                    alert.role.value,
                )
                if await self._dispatcher.dispatch(alert):
                    self._state.record_alert()
                    dispatched += 1

            phase = BlockPhase.DONE
        except asyncio.CancelledError:
            raise
        except FetchError as e:
            phase = BlockPhase.FAILED
            error = str(e)
            self._logger.error("Block %d: fetch failed: %s", block_number, e)
        except Exception as e:
            phase = BlockPhase.FAILED
            error = str(e)
            self._logger.error("Block %d: processing failed: %s", block_number, e)
        finally:
            self._state.advance(block_number)
            if block_number % self._block_log_interval == 0:
                self._logger.info("Block mined: %d", block_number)

        return BlockOutcome(
            block_number=block_number,
            phase=phase,
            items_fetched=fetched,
            items_matched=matched,
            alerts_dispatched=dispatched,
            error=error,
        )

    # ------------------------------------------------------------------
    # Stream loop
    # ------------------------------------------------------------------

    async def run(self, blocks: AsyncIterator[int]) -> None:
        """
        Consume block numbers until the stream ends, fails or ``stop`` is called.

        A StreamConnectionError is logged and ends the loop; there is no
        reconnection.
        """
        self._running = True
        self._logger.info("Block processor started (%s)", self._strategy.mode_label)
        try:
            async for block_number in blocks:
                if not self._running:
                    break
                task = asyncio.create_task(
                    self.process_block(block_number), name=f"block-{block_number}"
                )
                self._in_flight.add(task)
                task.add_done_callback(self._in_flight.discard)
        except asyncio.CancelledError:
            self._logger.info("Block processor cancelled")
            raise
        except StreamConnectionError as e:
            self._logger.error("Block stream lost, not reconnecting: %s", e)
        finally:
            self._running = False

    def stop(self) -> None:
        """Signal the run loop to stop after the current block number."""
        self._running = False

    async def drain(self) -> list[BlockOutcome]:
        """Wait for all in-flight block tasks."""
        if not self._in_flight:
            return []
        results = await asyncio.gather(*list(self._in_flight), return_exceptions=True)
        return [r for r in results if isinstance(r, BlockOutcome)]
