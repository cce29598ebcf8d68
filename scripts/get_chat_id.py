#!/usr/bin/env python3
"""
Discover the Telegram chat id for TELEGRAM_CHAT_ID

Starts the bot configured by TELEGRAM_BOT_TOKEN, waits for the first
message sent to it, prints that chat's id and exits.

Usage:
    python scripts/get_chat_id.py
"""

import os
import sys

from dotenv import load_dotenv
from telegram import Update
from telegram.ext import Application, ContextTypes, MessageHandler, filters

load_dotenv()

TELEGRAM_BOT_TOKEN = os.getenv("TELEGRAM_BOT_TOKEN", "")


async def on_first_message(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Print the chat id of the first message and stop polling."""
    chat = update.effective_chat
    if chat is None:
        return
    print(f"\n✅ SUCCESS! Your Chat ID is: {chat.id}")
    print(f"Update your .env file with: TELEGRAM_CHAT_ID={chat.id}")
    context.application.stop_running()


def main() -> int:
    if not TELEGRAM_BOT_TOKEN:
        print("❌ ERROR: TELEGRAM_BOT_TOKEN is not set (add it to .env)")
        return 1

    application = Application.builder().token(TELEGRAM_BOT_TOKEN).build()
    application.add_handler(MessageHandler(filters.ALL, on_first_message))

    print("🤖 Waiting for a message... Please send 'Hello' or 'Start' to your bot on Telegram now!")
    application.run_polling(drop_pending_updates=True)
    return 0


if __name__ == "__main__":
    sys.exit(main())
