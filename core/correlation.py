"""
Correlation & classification engine for the Polymarket Wallet Watcher.

Matches decoded chain items against the AddressRegistry, assigns the
target's role (Maker / Taker) and the action type, and builds AlertRecords.

Mode asymmetry:
    Log mode     maker/taker are only known after decoding, so an undecodable
                 log can never match.
    Tx mode      the address match on from/to is enough; decoding only
                 enriches the action label ("Unknown Interaction" otherwise).

Self-trades (target is both maker and taker) resolve to Maker.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable

from core.address_registry import AddressRegistry, redact_address
from shared.constants import ALERT_TITLE_EVENT, ALERT_TITLE_TRANSACTION
from shared.types import (
    ActionType,
    AlertRecord,
    DecodedCall,
    DecodeResult,
    LogRecord,
    MatchResult,
    Role,
    Transaction,
)

# Decoded event / function name -> action label
ACTION_LABELS: dict[str, ActionType] = {
    "OrderFilled": ActionType.ORDER_FILLED,
    "OrdersMatched": ActionType.ORDERS_MATCHED,
    "fillOrder": ActionType.FILL_ORDER,
    "fillOrders": ActionType.BATCH_FILL,
    "matchOrders": ActionType.MATCH_ORDERS,
}


def classify_action(call: DecodedCall | None) -> ActionType:
    """Static name -> label mapping; a proxy with a decoded exchange call is a Proxy Trade."""
    if call is None:
        return ActionType.UNKNOWN
    if call.inner is not None:
        return ActionType.PROXY_TRADE
    return ACTION_LABELS.get(call.name, ActionType.UNKNOWN)


def _call_name(call: DecodedCall | None) -> str | None:
    if call is None:
        return None
    if call.inner is not None:
        return f"{call.name}->{call.inner.name}"
    return call.name


class CorrelationEngine:
    """Stateless apart from the injected registry and clock."""

    def __init__(
        self,
        registry: AddressRegistry,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._registry = registry
        self._clock = clock

    # ------------------------------------------------------------------
    # Matching
    # ------------------------------------------------------------------

    def match_log(self, decoded: DecodeResult) -> MatchResult:
        """Match a decoded exchange event on its maker / taker fields."""
        if not decoded.ok or decoded.call is None:
            return MatchResult.no_match()

        args = decoded.call.args
        maker = args.get("maker")
        taker = args.get("taker")

        if self._registry.contains(maker):
            role, matched = Role.MAKER, maker
        elif self._registry.contains(taker):
            role, matched = Role.TAKER, taker
        else:
            return MatchResult.no_match()

        return MatchResult(
            matched=True,
            matched_address=matched.lower(),
            role=role,
            action_type=classify_action(decoded.call),
            call_name=decoded.call.name,
        )

    def transaction_touches_target(self, tx: Transaction) -> bool:
        """Address-only predicate against the primary target (no decoding)."""
        target = self._registry.primary_target
        return tx.from_address.lower() == target or (tx.to_address or "").lower() == target

    def match_transaction(self, tx: Transaction, decoded: DecodeResult | None) -> MatchResult:
        """
        Match a transaction on from / to against the primary target.

        ``decoded`` only affects the action label; None or a failed decode
        still matches when the addresses do.
        """
        target = self._registry.primary_target
        if tx.from_address.lower() == target:
            role = Role.MAKER
        elif (tx.to_address or "").lower() == target:
            role = Role.TAKER
        else:
            return MatchResult.no_match()

        call = decoded.call if decoded is not None and decoded.ok else None
        return MatchResult(
            matched=True,
            matched_address=target,
            role=role,
            action_type=classify_action(call),
            call_name=_call_name(call),
        )

    # ------------------------------------------------------------------
    # Alert construction
    # ------------------------------------------------------------------

    def build_alert(
        self,
        match: MatchResult,
        block_number: int,
        tx_hash: str,
        item_index: int,
        title: str,
    ) -> AlertRecord:
        if not match.matched or match.matched_address is None:
            raise ValueError("Cannot build an alert from an unmatched item")
        return AlertRecord(
            title=title,
            action_type=match.action_type,
            role=match.role,
            matched_address=match.matched_address,
            display_address=redact_address(match.matched_address),
            block_number=block_number,
            tx_hash=tx_hash,
            timestamp=self._clock(),
            item_index=item_index,
            call_name=match.call_name,
        )

    def alert_for_log(self, log: LogRecord, decoded: DecodeResult) -> AlertRecord | None:
        match = self.match_log(decoded)
        if not match.matched:
            return None
        return self.build_alert(
            match, log.block_number, log.transaction_hash, log.log_index, ALERT_TITLE_EVENT
        )

    def alert_for_transaction(
        self, tx: Transaction, decoded: DecodeResult | None
    ) -> AlertRecord | None:
        match = self.match_transaction(tx, decoded)
        if not match.matched:
            return None
        return self.build_alert(
            match, tx.block_number, tx.hash, tx.transaction_index, ALERT_TITLE_TRANSACTION
        )
