"""
Alert dispatcher for the Polymarket Wallet Watcher.

Formats AlertRecords as Telegram HTML, suppresses repeats of an alert that
was already dispatched, and forwards to the notification sink.

Delivery is at-most-once and fire-and-forget: a failed send is logged and
the alert dropped. Nothing here raises into the block pipeline.

Usage:
    dispatcher = AlertDispatcher(notifier, bot_name="Polymarket Watcher")
    await dispatcher.dispatch(alert)
"""

from __future__ import annotations

import asyncio
import html
from collections import OrderedDict
from typing import TYPE_CHECKING

from bot_logging.logger_manager import setup_alert_logger, setup_module_logger
from clients.telegram_notifier import NotifierError
from shared.constants import (
    DEFAULT_ALERT_DEDUP_CACHE_SIZE,
    DEFAULT_EXPLORER_HOST,
    ROLE_LABEL_MAKER,
    ROLE_LABEL_TAKER,
    ROLE_LABEL_UNKNOWN,
)
from shared.types import AlertRecord, Role

if TYPE_CHECKING:
    from clients.telegram_notifier import TelegramNotifier

_ROLE_LABELS = {
    Role.MAKER: ROLE_LABEL_MAKER,
    Role.TAKER: ROLE_LABEL_TAKER,
    Role.UNKNOWN: ROLE_LABEL_UNKNOWN,
}


def explorer_tx_url(explorer_host: str, tx_hash: str) -> str:
    """``https://<explorer-host>/tx/<transactionHash>``"""
    return f"https://{explorer_host}/tx/{tx_hash}"


def format_alert(alert: AlertRecord, bot_name: str, explorer_host: str = DEFAULT_EXPLORER_HOST) -> str:
    """Render an AlertRecord as Telegram HTML."""
    return (
        f"🚨 <b>{html.escape(alert.title)}</b> 🚨\n"
        f"Source: <b>{html.escape(bot_name)}</b>\n\n"
        f"Action: <b>{html.escape(alert.action_type.value)}</b>\n"
        f"Role: {_ROLE_LABELS[alert.role]}\n"
        f"Wallet: <code>{alert.display_address}</code>\n"
        f"Block: {alert.block_number}\n"
        f'Tx: <a href="{explorer_tx_url(explorer_host, alert.tx_hash)}">View on PolygonScan</a>'
    )


class AlertDispatcher:
    """
    Suppression + formatting + best-effort delivery.

    Suppression keeps the last ``dedup_cache_size`` (tx hash, item index)
    keys; a key seen before is never sent again.
    """

    def __init__(
        self,
        notifier: TelegramNotifier,
        bot_name: str,
        explorer_host: str = DEFAULT_EXPLORER_HOST,
        dedup_cache_size: int = DEFAULT_ALERT_DEDUP_CACHE_SIZE,
    ) -> None:
        self._notifier = notifier
        self._bot_name = bot_name
        self._explorer_host = explorer_host
        self._dedup_cache_size = max(1, dedup_cache_size)
        self._seen: OrderedDict[tuple[str, int], None] = OrderedDict()

        self._logger = setup_module_logger(
            "alert_dispatcher", "alert_dispatcher.log", module_folder="Alert_Logs"
        )
        self._trail = setup_alert_logger()

    # ------------------------------------------------------------------
    # Suppression
    # ------------------------------------------------------------------

    def _claim(self, alert: AlertRecord) -> bool:
        """Reserve the alert's key. False if it was already dispatched."""
        key = alert.dedup_key
        if key in self._seen:
            self._seen.move_to_end(key)
            return False
        self._seen[key] = None
        if len(self._seen) > self._dedup_cache_size:
            self._seen.popitem(last=False)
        return True

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def format(self, alert: AlertRecord) -> str:
        return format_alert(alert, self._bot_name, self._explorer_host)

    async def dispatch(self, alert: AlertRecord) -> bool:
        """Send ``alert`` once. Returns True only if the sink accepted it."""
        trail_extra = {
            "block_number": alert.block_number,
            "tx_hash": alert.tx_hash,
            "item_index": alert.item_index,
            "action_type": alert.action_type.value,
            "role": alert.role.value,
            "matched_address": alert.matched_address,
            "call_name": alert.call_name,
        }

        if not self._claim(alert):
            self._logger.debug(
                "Suppressed duplicate alert %s#%d", alert.tx_hash, alert.item_index
            )
            self._trail.info("alert suppressed", extra={**trail_extra, "suppressed": True})
            return False

        self._logger.info(
            "%s | %s | %s %s | block %d | tx %s",
            alert.title,
            alert.action_type.value,
            _ROLE_LABELS[alert.role],
            alert.display_address,
            alert.block_number,
            alert.tx_hash,
        )

        delivered = False
        try:
            delivered = await self._notifier.send(self.format(alert))
        except asyncio.CancelledError:
            raise
        except NotifierError as e:
            self._logger.error("Alert for %s dropped: %s", alert.tx_hash, e)
            trail_extra["error"] = str(e)
        except Exception as e:
            self._logger.error("Unexpected error dispatching alert for %s: %s", alert.tx_hash, e)
            trail_extra["error"] = str(e)

        self._trail.info("alert dispatched", extra={**trail_extra, "delivered": delivered})
        return delivered

    async def announce_startup(self, mode_label: str, target_count: int) -> bool:
        """Operator notice that the watcher is up. Failures are logged only."""
        text = (
            f"🚀 <b>{html.escape(self._bot_name)} Started!</b>\n"
            f"Mode: {html.escape(mode_label)}\n"
            f"Watching {target_count} wallet{'s' if target_count != 1 else ''}."
        )
        try:
            return await self._notifier.send(text)
        except NotifierError as e:
            self._logger.error("Startup notice not delivered: %s", e)
            return False
