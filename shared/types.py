"""
Shared data types for the Polymarket Wallet Watcher.

Centralized dataclasses and enums used across all modules.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class WatchMode(Enum):
    LOGS = "logs"  # eth_getLogs on the exchange contract, any number of targets
    TRANSACTIONS = "transactions"  # full block bodies, single primary target


class SignatureKind(Enum):
    FUNCTION = "function"  # matched on the 4-byte call selector
    EVENT = "event"  # matched on topic0


class DecodeStatus(Enum):
    DECODED = "decoded"
    UNMATCHED = "unmatched"  # selector/topic not in the signature set
    MALFORMED = "malformed"  # selector matched but body is truncated or invalid


class Role(Enum):
    MAKER = "maker"  # resting order / `from` side
    TAKER = "taker"  # counterparty / `to` side
    UNKNOWN = "unknown"


class ActionType(Enum):
    ORDER_FILLED = "Order Filled"
    ORDERS_MATCHED = "Orders Matched"
    FILL_ORDER = "Buy/Sell Order"
    BATCH_FILL = "Batch Buy/Sell"
    MATCH_ORDERS = "Match Orders"
    PROXY_TRADE = "Proxy Trade"
    UNKNOWN = "Unknown Interaction"


class BlockPhase(Enum):
    FETCHING = "fetching"
    SCANNING = "scanning"
    DONE = "done"
    FAILED = "failed"  # non-terminal for the stream; next block proceeds


# ---------------------------------------------------------------------------
# Contract Interface Types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SignatureParam:
    name: str
    abi_type: str  # eth_abi type string, tuples as "(t1,t2,...)"
    indexed: bool = False  # events only


@dataclass(frozen=True)
class ContractSignature:
    name: str
    params: tuple[SignatureParam, ...]
    kind: SignatureKind

    @property
    def canonical(self) -> str:
        """Canonical ABI signature, e.g. ``fillOrder((uint256,...),uint256)``."""
        return f"{self.name}({','.join(p.abi_type for p in self.params)})"


@dataclass(frozen=True)
class DecodedCall:
    name: str
    kind: SignatureKind
    args: dict[str, Any]  # parameter name -> decoded value, in signature order
    inner: DecodedCall | None = None  # embedded exchange call of a proxy wrapper


@dataclass(frozen=True)
class DecodeResult:
    status: DecodeStatus
    call: DecodedCall | None = None
    reason: str = ""

    @property
    def ok(self) -> bool:
        return self.status is DecodeStatus.DECODED


# ---------------------------------------------------------------------------
# Raw Chain Items
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LogRecord:
    block_number: int
    address: str  # lower-case emitting contract
    topics: tuple[bytes, ...]
    data: bytes
    transaction_hash: str  # 0x-prefixed
    log_index: int = 0


@dataclass(frozen=True)
class Transaction:
    hash: str  # 0x-prefixed
    from_address: str  # lower-case
    to_address: str | None  # lower-case, None for contract creation
    input: bytes
    block_number: int
    transaction_index: int = 0


# ---------------------------------------------------------------------------
# Correlation / Alert Types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MatchResult:
    matched: bool
    matched_address: str | None = None
    role: Role = Role.UNKNOWN
    action_type: ActionType = ActionType.UNKNOWN
    call_name: str | None = None  # decoded event/function name, if any

    @classmethod
    def no_match(cls) -> MatchResult:
        return cls(matched=False)


@dataclass(frozen=True)
class AlertRecord:
    title: str
    action_type: ActionType
    role: Role
    matched_address: str  # full lower-case address, redact via display_address
    display_address: str  # 0xabcd...1234
    block_number: int
    tx_hash: str
    timestamp: datetime
    item_index: int = 0  # log index or transaction index within the block
    call_name: str | None = None

    @property
    def dedup_key(self) -> tuple[str, int]:
        return (self.tx_hash.lower(), self.item_index)


@dataclass(frozen=True)
class BlockOutcome:
    block_number: int
    phase: BlockPhase
    items_fetched: int = 0
    items_matched: int = 0
    alerts_dispatched: int = 0
    error: str | None = None


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WatcherSettings:
    stream_url: str
    exchange_address: str
    target_wallets: tuple[str, ...]
    watch_mode: WatchMode | None  # None when WATCH_MODE holds an unknown value
    bot_name: str
    explorer_host: str
    telegram_token: str = ""
    telegram_chat_id: str = ""
    raw_watch_mode: str = ""

    @property
    def notifications_enabled(self) -> bool:
        return bool(self.telegram_token and self.telegram_chat_id)
