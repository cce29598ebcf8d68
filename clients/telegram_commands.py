"""
Telegram command listener for the Polymarket Wallet Watcher.

Long-polls the bot for /status, /ping and /targets and answers through the
TelegramNotifier, so replies always land in the configured chat. Messages
from other chats are ignored.

Usage:
    listener = CommandListener(token, reporter, notifier)
    await listener.start()
    ...
    await listener.stop()
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from telegram import Update
from telegram.error import TelegramError
from telegram.ext import Application, CommandHandler, ContextTypes

from bot_logging.logger_manager import setup_module_logger
from clients.telegram_notifier import NotifierError
from core.status_reporter import COMMANDS

if TYPE_CHECKING:
    from clients.telegram_notifier import TelegramNotifier
    from core.status_reporter import StatusReporter


class CommandListener:
    """PTB Application wrapper; one CommandHandler per status command."""

    def __init__(
        self,
        token: str,
        reporter: StatusReporter,
        notifier: TelegramNotifier,
        application: Application | None = None,
    ) -> None:
        self._token = token
        self._reporter = reporter
        self._notifier = notifier
        self.application = application
        self._running = False
        self._logger = setup_module_logger("status", "status.log", module_folder="Status_Logs")

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> bool:
        """Start polling. Returns False (and logs) if the bot cannot start."""
        if not self._token or not self._notifier.enabled:
            self._logger.info("Telegram not configured, command listener disabled")
            return False

        if self.application is None:
            self.application = Application.builder().token(self._token).build()
        for command in COMMANDS:
            self.application.add_handler(CommandHandler(command, self.on_command))

        try:
            await self.application.initialize()
            await self.application.start()
            await self.application.updater.start_polling(drop_pending_updates=True)
        except TelegramError as e:
            self._logger.error("Command listener failed to start: %s", e)
            return False

        self._running = True
        self._logger.info("Command listener started (%s)", ", ".join(f"/{c}" for c in COMMANDS))
        return True

    async def stop(self) -> None:
        if self.application is None or not self._running:
            return
        self._running = False
        try:
            await self.application.updater.stop()
            await self.application.stop()
            await self.application.shutdown()
        except TelegramError as e:
            self._logger.warning("Command listener shutdown error: %s", e)

    async def on_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        message = update.effective_message
        chat = update.effective_chat
        if message is None or not message.text:
            return

        origin = chat.id if chat is not None else None
        command = message.text.split()[0]
        reply = self._reporter.handle(command, origin)
        if reply is None:
            self._logger.debug("Ignored %s from chat %s", command, origin)
            return

        self._logger.info("Answering %s", command)
        try:
            await self._notifier.send(reply)
        except NotifierError as e:
            self._logger.error("Reply to %s not delivered: %s", command, e)
