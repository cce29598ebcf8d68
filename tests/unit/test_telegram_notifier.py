"""
Unit tests for clients/telegram_notifier.py.

The python-telegram-bot Bot is mocked; no network access.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from telegram.constants import ParseMode
from telegram.error import NetworkError, TelegramError

from clients.telegram_notifier import NotifierError


@pytest.fixture
def mock_bot():
    bot = MagicMock()
    bot.initialize = AsyncMock()
    bot.shutdown = AsyncMock()
    bot.send_message = AsyncMock()
    return bot


@pytest.fixture
def make_notifier():
    with patch("clients.telegram_notifier.setup_module_logger") as mock_setup:
        mock_setup.return_value = MagicMock()
        from clients.telegram_notifier import TelegramNotifier

        yield TelegramNotifier


class TestTelegramNotifier:
    def test_disabled_without_chat_id(self, make_notifier, mock_bot):
        notifier = make_notifier("token", "", bot=mock_bot)
        assert not notifier.enabled

    def test_disabled_without_token(self, make_notifier):
        notifier = make_notifier("", "123")
        assert not notifier.enabled

    def test_enabled_with_credentials(self, make_notifier, mock_bot):
        notifier = make_notifier("token", 123, bot=mock_bot)
        assert notifier.enabled
        assert notifier.chat_id == "123"

    async def test_send_when_disabled_returns_false(self, make_notifier):
        notifier = make_notifier("", "")
        assert await notifier.send("hello") is False

    async def test_send_html(self, make_notifier, mock_bot):
        notifier = make_notifier("token", "123", bot=mock_bot)

        assert await notifier.send("<b>hi</b>") is True

        kwargs = mock_bot.send_message.await_args.kwargs
        assert kwargs["chat_id"] == "123"
        assert kwargs["text"] == "<b>hi</b>"
        assert kwargs["parse_mode"] == ParseMode.HTML
        assert kwargs["link_preview_options"].is_disabled is True

    async def test_send_failure_raises_notifier_error(self, make_notifier, mock_bot):
        mock_bot.send_message.side_effect = NetworkError("timed out")
        notifier = make_notifier("token", "123", bot=mock_bot)

        with pytest.raises(NotifierError) as exc_info:
            await notifier.send("hi")
        assert isinstance(exc_info.value.__cause__, TelegramError)

    async def test_start_failure_is_not_fatal(self, make_notifier, mock_bot):
        mock_bot.initialize.side_effect = TelegramError("bad token")
        notifier = make_notifier("token", "123", bot=mock_bot)

        await notifier.start()
        assert notifier.enabled

    async def test_stop(self, make_notifier, mock_bot):
        notifier = make_notifier("token", "123", bot=mock_bot)
        await notifier.stop()
        mock_bot.shutdown.assert_awaited_once()
