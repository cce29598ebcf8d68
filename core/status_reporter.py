"""
Operator status replies for the Polymarket Wallet Watcher.

Answers the /status, /ping and /targets chat commands from the shared
ProcessState and AddressRegistry. Commands from any chat other than the
configured one get no reply at all.
"""

from __future__ import annotations

import html
from typing import Callable

from core.address_registry import AddressRegistry
from core.process_state import ProcessState

COMMANDS = ("status", "ping", "targets")


class StatusReporter:
    """Builds reply texts; knows nothing about the chat transport."""

    def __init__(
        self,
        state: ProcessState,
        registry: AddressRegistry,
        bot_name: str,
        authorized_chat_id: str,
    ) -> None:
        self._state = state
        self._registry = registry
        self._bot_name = html.escape(bot_name)
        self._authorized_chat_id = str(authorized_chat_id) if authorized_chat_id else ""
        self._handlers: dict[str, Callable[[], str]] = {
            "status": self.status,
            "ping": self.ping,
            "targets": self.targets,
        }

    def is_authorized(self, origin: str | int | None) -> bool:
        if origin is None or not self._authorized_chat_id:
            return False
        return str(origin) == self._authorized_chat_id

    def status(self) -> str:
        uptime_min = int(self._state.uptime_seconds() // 60)
        return (
            f"🤖 <b>{self._bot_name} Status</b>\n\n"
            f"✅ Running: Yes\n"
            f"⏱ Uptime: {uptime_min} min\n"
            f"📦 Last Block: {self._state.last_block_processed}\n"
            f"🎯 Targets: {len(self._registry)}"
        )

    def ping(self) -> str:
        return f"🏓 Pong! ({self._bot_name})"

    def targets(self) -> str:
        return "🎯 <b>Monitored Wallets:</b>\n\n" + "\n".join(self._registry.targets)

    def handle(self, command: str, origin: str | int | None) -> str | None:
        """Reply text for ``command``, or None if unknown or not authorized."""
        if not self.is_authorized(origin):
            return None
        handler = self._handlers.get(command.lstrip("/").split("@", 1)[0].lower())
        return handler() if handler else None
