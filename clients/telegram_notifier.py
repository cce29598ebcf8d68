"""
Telegram notification sink for the Polymarket Wallet Watcher.

Sends HTML-formatted messages to the single configured chat. Missing
credentials disable the notifier silently; ``send`` then returns False.

Usage:
    notifier = TelegramNotifier(token, chat_id)
    await notifier.start()
    await notifier.send("<b>hello</b>")
"""

from __future__ import annotations

from telegram import Bot, LinkPreviewOptions
from telegram.constants import ParseMode
from telegram.error import TelegramError

from bot_logging.logger_manager import setup_module_logger


class NotifierError(Exception):
    """Raised when a Telegram message cannot be delivered."""


class TelegramNotifier:
    """Push-message sink bound to one destination chat."""

    def __init__(self, token: str, chat_id: str, bot: Bot | None = None) -> None:
        self._chat_id = str(chat_id) if chat_id else ""
        if bot is None and token and self._chat_id:
            bot = Bot(token=token)
        self._bot = bot if self._chat_id else None
        self._logger = setup_module_logger(
            "notifier", "notifier.log", module_folder="Notifier_Logs"
        )

    @property
    def enabled(self) -> bool:
        return self._bot is not None

    @property
    def chat_id(self) -> str:
        return self._chat_id

    async def start(self) -> None:
        if self._bot is None:
            self._logger.info("Telegram credentials not set, notifications disabled")
            return
        try:
            await self._bot.initialize()
        except TelegramError as e:
            # Non-fatal: each send reports its own failure.
            self._logger.error("Telegram bot initialization failed: %s", e)

    async def stop(self) -> None:
        if self._bot is None:
            return
        try:
            await self._bot.shutdown()
        except TelegramError as e:
            self._logger.warning("Telegram bot shutdown error: %s", e)

    async def send(self, text: str, parse_mode: str | None = ParseMode.HTML) -> bool:
        """
        Deliver ``text`` to the configured chat.

        Returns False when disabled. Raises NotifierError on delivery failure.
        """
        if self._bot is None:
            return False
        try:
            await self._bot.send_message(
                chat_id=self._chat_id,
                text=text,
                parse_mode=parse_mode,
                link_preview_options=LinkPreviewOptions(is_disabled=True),
            )
        except TelegramError as e:
            self._logger.error("Failed to send Telegram message: %s", e)
            raise NotifierError(f"send_message failed: {e}") from e
        return True
