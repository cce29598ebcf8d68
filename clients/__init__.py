from clients.chain_client import ChainClientError, ChainStreamClient, FetchError, StreamConnectionError
from clients.telegram_commands import CommandListener
from clients.telegram_notifier import NotifierError, TelegramNotifier

__all__ = [
    "ChainClientError",
    "ChainStreamClient",
    "CommandListener",
    "FetchError",
    "NotifierError",
    "StreamConnectionError",
    "TelegramNotifier",
]
