"""
Polymarket Wallet Watcher: Main Entrypoint.

Single-process asyncio runner that watches the Polymarket CTF Exchange on
Polygon for trades involving a set of target wallets:
    1. Block stream      newHeads subscription, one task per block
    2. Command listener  /status, /ping, /targets over Telegram (optional)

Two watch modes share one pipeline (decode -> correlate -> dispatch):
    logs          exchange OrderFilled / OrdersMatched events; any number of
                  targets; sees trades submitted by relayers
    transactions  block bodies; the first target only; direct exchange calls
                  and one level of proxy / Safe wrapping

There is no reconnection logic. When the block stream is lost the error is
logged; the process exits unless the command listener keeps it alive, and
an external supervisor is expected to restart it.

Usage:
    python main.py          # reads .env for ALCHEMY_WSS_URL, TARGET_WALLETS, ...
"""

from __future__ import annotations

import asyncio
import signal
import sys

from dotenv import load_dotenv

from bot_logging.logger_manager import create_module_log_directories, setup_module_logger
from config.loader import get_config
from config.validate import ConfigValidationError, validate_all_configs
from shared.constants import DEFAULT_ALERT_DEDUP_CACHE_SIZE
from shared.types import WatcherSettings, WatchMode

# ---------------------------------------------------------------------------
# Module logger
# ---------------------------------------------------------------------------
_logger = setup_module_logger("main", "main.log", module_folder="Main_Logs")


# ---------------------------------------------------------------------------
# Startup banner
# ---------------------------------------------------------------------------


def _redact_url(url: str) -> str:
    return f"{url[:25]}...{url[-6:]}" if len(url) > 31 else url


def _log_banner(settings: WatcherSettings, mode_label: str) -> None:
    """Log a concise startup summary."""
    _logger.info("=" * 60)
    _logger.info("%s starting", settings.bot_name)
    _logger.info("=" * 60)
    _logger.info("  stream          : %s", _redact_url(settings.stream_url))
    _logger.info("  exchange        : %s", settings.exchange_address)
    _logger.info("  mode            : %s", mode_label)
    _logger.info("  targets         : %d", len(settings.target_wallets))
    for wallet in settings.target_wallets:
        _logger.info("    - %s", wallet)
    _logger.info("  telegram        : %s", "enabled" if settings.notifications_enabled else "disabled")
    _logger.info("  explorer        : %s", settings.explorer_host)
    _logger.info("=" * 60)


# ---------------------------------------------------------------------------
# Task done callback: detect unhandled exceptions
# ---------------------------------------------------------------------------


def _task_done_callback(
    task: asyncio.Task[None],
    shutdown_event: asyncio.Event,
    keep_alive: bool,
) -> None:
    """Called when the block stream task finishes (normally or with error)."""
    try:
        exc = task.exception()
    except asyncio.CancelledError:
        _logger.info("Task %s cancelled", task.get_name())
        return

    if exc is not None:
        _logger.critical(
            "Task %s failed with unhandled exception: %s",
            task.get_name(),
            exc,
            exc_info=exc,
        )
        shutdown_event.set()
        return

    if keep_alive:
        _logger.warning("Task %s ended; command listener still running", task.get_name())
    else:
        _logger.warning("Task %s ended; shutting down", task.get_name())
        shutdown_event.set()


# ---------------------------------------------------------------------------
# Main async entry
# ---------------------------------------------------------------------------


async def _run() -> None:
    """Wire all components and launch the block stream."""
    # ------------------------------------------------------------------
    # 1. Load environment and validate configuration
    # ------------------------------------------------------------------
    load_dotenv()
    create_module_log_directories()

    try:
        settings = validate_all_configs()
    except ConfigValidationError as exc:
        _logger.critical("Config validation failed:\n%s", exc)
        sys.exit(1)

    watch_mode = settings.watch_mode or WatchMode.LOGS
    if watch_mode is WatchMode.TRANSACTIONS and len(settings.target_wallets) > 1:
        _logger.warning(
            "Transaction mode watches one wallet; using %s and ignoring %d other(s)",
            settings.target_wallets[0],
            len(settings.target_wallets) - 1,
        )

    # ------------------------------------------------------------------
    # 2. Initialize shared instances (dependency order)
    # ------------------------------------------------------------------
    from clients.chain_client import ChainStreamClient, StreamConnectionError
    from clients.telegram_commands import CommandListener
    from clients.telegram_notifier import TelegramNotifier
    from core.address_registry import AddressRegistry
    from core.alert_dispatcher import AlertDispatcher
    from core.block_processor import BlockProcessor, build_strategy
    from core.contract_decoder import ContractDecoder
    from core.correlation import CorrelationEngine
    from core.process_state import ProcessState
    from core.status_reporter import StatusReporter

    alerts_cfg = get_config().get_timing_config().get("alerts", {})

    registry = AddressRegistry(settings.target_wallets, settings.exchange_address)
    state = ProcessState()
    chain_client = ChainStreamClient(settings.stream_url)
    notifier = TelegramNotifier(settings.telegram_token, settings.telegram_chat_id)
    dispatcher = AlertDispatcher(
        notifier,
        bot_name=settings.bot_name,
        explorer_host=settings.explorer_host,
        dedup_cache_size=alerts_cfg.get("dedup_cache_size", DEFAULT_ALERT_DEDUP_CACHE_SIZE),
    )
    strategy = build_strategy(
        watch_mode, chain_client, registry, ContractDecoder(), CorrelationEngine(registry)
    )
    processor = BlockProcessor(strategy, dispatcher, state)
    reporter = StatusReporter(state, registry, settings.bot_name, settings.telegram_chat_id)
    listener = CommandListener(settings.telegram_token, reporter, notifier)

    _log_banner(settings, strategy.mode_label)

    # ------------------------------------------------------------------
    # 3. Connect chain stream and notification sink
    # ------------------------------------------------------------------
    try:
        await chain_client.connect()
    except StreamConnectionError as exc:
        _logger.critical("Cannot connect to stream endpoint: %s", exc)
        sys.exit(1)

    await notifier.start()
    await listener.start()
    await dispatcher.announce_startup(strategy.mode_label, len(registry))

    # ------------------------------------------------------------------
    # 4. Signal handling for graceful shutdown
    # ------------------------------------------------------------------
    shutdown_event = asyncio.Event()
    loop = asyncio.get_running_loop()

    def _handle_signal(sig: signal.Signals) -> None:
        _logger.info("Received %s, initiating graceful shutdown", sig.name)
        shutdown_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _handle_signal, sig)

    # ------------------------------------------------------------------
    # 5. Launch block stream
    # ------------------------------------------------------------------
    task_stream = asyncio.create_task(processor.run(chain_client.iter_blocks()), name="block_stream")
    task_stream.add_done_callback(
        lambda done_task: _task_done_callback(done_task, shutdown_event, listener.running)
    )
    _logger.info("Watching %d wallet(s) on %s", len(registry), registry.exchange_address)

    # ------------------------------------------------------------------
    # 6. Wait for shutdown signal, then cancel tasks
    # ------------------------------------------------------------------
    try:
        await shutdown_event.wait()
    finally:
        _logger.info("Shutting down, cancelling tasks")

        processor.stop()
        if not task_stream.done():
            task_stream.cancel()
        result = (await asyncio.gather(task_stream, return_exceptions=True))[0]
        if isinstance(result, Exception) and not isinstance(result, asyncio.CancelledError):
            _logger.error("Task %s exited with error: %s", task_stream.get_name(), result)

        outcomes = await processor.drain()
        if outcomes:
            _logger.info("Drained %d in-flight block(s)", len(outcomes))

        await listener.stop()
        await notifier.stop()
        await chain_client.disconnect()
        _logger.info(
            "Shutdown complete (last block %d, %d alert(s))",
            state.last_block_processed,
            state.alerts_dispatched,
        )


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


def main() -> None:
    """Synchronous entry point."""
    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        _logger.info("Interrupted by user")


if __name__ == "__main__":
    main()
