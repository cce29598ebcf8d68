"""
Contract interface decoder for the Polymarket Wallet Watcher.

Matches raw call payloads (4-byte selector) and log records (topic0) against
known signature sets and decodes the remaining bytes with eth_abi. Decoding
is a pure function returning a tagged DecodeResult:

    DECODED    signature matched and body decoded
    UNMATCHED  selector/topic not in the set (routine for foreign payloads)
    MALFORMED  selector matched but the body is truncated or invalid

Nothing here raises for bad input: arbitrary payloads from other contracts
must never interrupt block processing.

Proxy wrappers ("execute with embedded call data") are decoded against the
proxy set, then their embedded ``data`` argument is decoded once against the
exchange set. Exactly one level of indirection.

Usage:
    decoder = ContractDecoder()
    result = decoder.decode_log(log.topics, log.data)
    if result.ok:
        maker = result.call.args["maker"]
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Iterable

from eth_abi.abi import decode as abi_decode
from hexbytes import HexBytes
from web3 import Web3

from shared.constants import FUNCTION_SELECTOR_SIZE, ORDER_TUPLE
from shared.types import (
    ContractSignature,
    DecodeResult,
    DecodeStatus,
    DecodedCall,
    SignatureKind,
    SignatureParam,
)

# Argument of a proxy wrapper that carries the real call
EMBEDDED_PAYLOAD_ARG = "data"

# Indexed params of these kinds are stored as keccak hashes in the topic
_DYNAMIC_TYPES = ("bytes", "string")


# ============================================================================
# SIGNATURE DEFINITIONS
# ============================================================================


def _event(name: str, *params: tuple) -> ContractSignature:
    return ContractSignature(
        name=name,
        params=tuple(SignatureParam(*p) for p in params),
        kind=SignatureKind.EVENT,
    )


def _function(name: str, *params: tuple) -> ContractSignature:
    return ContractSignature(
        name=name,
        params=tuple(SignatureParam(*p) for p in params),
        kind=SignatureKind.FUNCTION,
    )


# --- CTF Exchange events ---
# OrderFilled(bytes32,address,address,uint256,uint256,uint256,uint256)
ORDER_FILLED = _event(
    "OrderFilled",
    ("orderHash", "bytes32", True),
    ("maker", "address", True),
    ("taker", "address", True),
    ("makerAssetId", "uint256"),
    ("takerAssetId", "uint256"),
    ("makerAmount", "uint256"),
    ("takerAmount", "uint256"),
)
# OrderFilled(bytes32,address,address,uint256,uint256,uint256,uint256,uint256)
ORDER_FILLED_WITH_FEE = _event(
    "OrderFilled",
    ("orderHash", "bytes32", True),
    ("maker", "address", True),
    ("taker", "address", True),
    ("makerAssetId", "uint256"),
    ("takerAssetId", "uint256"),
    ("makerAmount", "uint256"),
    ("takerAmount", "uint256"),
    ("fee", "uint256"),
)
# OrdersMatched(bytes32,address,address,uint256,uint256,uint256,uint256)
ORDERS_MATCHED = _event(
    "OrdersMatched",
    ("orderHash", "bytes32", True),
    ("maker", "address", True),
    ("taker", "address", True),
    ("makerAssetId", "uint256"),
    ("takerAssetId", "uint256"),
    ("makerAmount", "uint256"),
    ("takerAmount", "uint256"),
)

# --- CTF Exchange functions ---
FILL_ORDER = _function(
    "fillOrder",
    ("order", ORDER_TUPLE),
    ("fillAmount", "uint256"),
)
FILL_ORDERS = _function(
    "fillOrders",
    ("orders", ORDER_TUPLE + "[]"),
    ("fillAmounts", "uint256[]"),
)
MATCH_ORDERS = _function(
    "matchOrders",
    ("takerOrder", ORDER_TUPLE),
    ("makerOrders", ORDER_TUPLE + "[]"),
    ("takerFillAmount", "uint256"),
    ("makerFillAmounts", "uint256[]"),
)

# --- Proxy wrappers ---
PROXY_EXECUTE = _function(
    "execute",
    ("to", "address"),
    ("value", "uint256"),
    (EMBEDDED_PAYLOAD_ARG, "bytes"),
)
SAFE_EXEC_TRANSACTION = _function(
    "execTransaction",
    ("to", "address"),
    ("value", "uint256"),
    (EMBEDDED_PAYLOAD_ARG, "bytes"),
    ("operation", "uint8"),
    ("safeTxGas", "uint256"),
    ("baseGas", "uint256"),
    ("gasPrice", "uint256"),
    ("gasToken", "address"),
    ("refundReceiver", "address"),
    ("signatures", "bytes"),
)


def selector_of(signature: ContractSignature) -> bytes:
    """4-byte selector for functions, full 32-byte topic0 for events."""
    digest = bytes(Web3.keccak(text=signature.canonical))
    if signature.kind is SignatureKind.FUNCTION:
        return digest[:FUNCTION_SELECTOR_SIZE]
    return digest


class SignatureSet:
    """Immutable selector -> signature lookup for one contract interface."""

    def __init__(self, name: str, signatures: Iterable[ContractSignature]) -> None:
        self.name = name
        self._by_selector: dict[bytes, ContractSignature] = {}
        for signature in signatures:
            selector = selector_of(signature)
            if selector in self._by_selector:
                raise ValueError(
                    f"Selector collision in {name}: {signature.canonical} vs "
                    f"{self._by_selector[selector].canonical}"
                )
            self._by_selector[selector] = signature

    def lookup(self, selector: bytes) -> ContractSignature | None:
        return self._by_selector.get(bytes(selector))

    def __len__(self) -> int:
        return len(self._by_selector)


EXCHANGE_EVENTS = SignatureSet("exchange_events", [ORDER_FILLED, ORDER_FILLED_WITH_FEE, ORDERS_MATCHED])
EXCHANGE_FUNCTIONS = SignatureSet("exchange_functions", [FILL_ORDER, FILL_ORDERS, MATCH_ORDERS])
PROXY_FUNCTIONS = SignatureSet("proxy_functions", [PROXY_EXECUTE, SAFE_EXEC_TRANSACTION])


# ============================================================================
# DECODING
# ============================================================================


def _as_bytes(value: Any) -> bytes | None:
    """Normalize hex strings / HexBytes / bytes to bytes. None if not byte-like."""
    if value is None:
        return None
    try:
        return bytes(HexBytes(value))
    except (ValueError, TypeError):
        return None


def _normalize(value: Any) -> Any:
    """Lower-case decoded addresses, recursing into tuples and arrays."""
    if isinstance(value, str) and value.startswith("0x") and len(value) == 42:
        return value.lower()
    if isinstance(value, (tuple, list)):
        return tuple(_normalize(v) for v in value)
    return value


def decode_call(payload: Any, signatures: SignatureSet) -> DecodeResult:
    """Decode a transaction input / embedded call payload against ``signatures``."""
    raw = _as_bytes(payload)
    if raw is None:
        return DecodeResult(DecodeStatus.MALFORMED, reason="payload is not byte-like")
    if len(raw) < FUNCTION_SELECTOR_SIZE:
        return DecodeResult(DecodeStatus.UNMATCHED, reason="payload shorter than a selector")

    signature = signatures.lookup(raw[:FUNCTION_SELECTOR_SIZE])
    if signature is None:
        return DecodeResult(
            DecodeStatus.UNMATCHED,
            reason=f"selector 0x{raw[:FUNCTION_SELECTOR_SIZE].hex()} not in {signatures.name}",
        )

    try:
        values = abi_decode([p.abi_type for p in signature.params], raw[FUNCTION_SELECTOR_SIZE:])
    except Exception as e:
        return DecodeResult(DecodeStatus.MALFORMED, reason=f"{signature.name}: {e}")

    return DecodeResult(
        DecodeStatus.DECODED,
        call=DecodedCall(
            name=signature.name,
            kind=signature.kind,
            args={p.name: _normalize(v) for p, v in zip(signature.params, values)},
        ),
    )


def decode_log(topics: Iterable[Any], data: Any, signatures: SignatureSet) -> DecodeResult:
    """Decode a log record (topics + data) against an event signature set."""
    raw_topics = [_as_bytes(t) for t in topics]
    if not raw_topics or raw_topics[0] is None:
        return DecodeResult(DecodeStatus.UNMATCHED, reason="log has no topic0")

    signature = signatures.lookup(raw_topics[0])
    if signature is None:
        return DecodeResult(DecodeStatus.UNMATCHED, reason=f"topic0 not in {signatures.name}")

    indexed = [p for p in signature.params if p.indexed]
    if len(raw_topics) - 1 != len(indexed) or any(t is None for t in raw_topics[1:]):
        return DecodeResult(
            DecodeStatus.MALFORMED,
            reason=f"{signature.name}: expected {len(indexed)} indexed topics, got {len(raw_topics) - 1}",
        )

    raw_data = _as_bytes(data)
    if raw_data is None:
        return DecodeResult(DecodeStatus.MALFORMED, reason=f"{signature.name}: data is not byte-like")

    non_indexed = [p for p in signature.params if not p.indexed]
    try:
        indexed_values: dict[str, Any] = {}
        for param, topic in zip(indexed, raw_topics[1:]):
            if param.abi_type in _DYNAMIC_TYPES or param.abi_type.endswith("]") or param.abi_type.startswith("("):
                indexed_values[param.name] = topic
            else:
                indexed_values[param.name] = abi_decode([param.abi_type], topic)[0]
        data_values = abi_decode([p.abi_type for p in non_indexed], raw_data) if non_indexed else ()
    except Exception as e:
        return DecodeResult(DecodeStatus.MALFORMED, reason=f"{signature.name}: {e}")

    by_name = dict(indexed_values)
    by_name.update({p.name: v for p, v in zip(non_indexed, data_values)})
    return DecodeResult(
        DecodeStatus.DECODED,
        call=DecodedCall(
            name=signature.name,
            kind=signature.kind,
            args={p.name: _normalize(by_name[p.name]) for p in signature.params},
        ),
    )


def decode_proxy_call(
    payload: Any,
    proxy_signatures: SignatureSet,
    exchange_signatures: SignatureSet,
    exchange_address: str | None = None,
) -> DecodeResult:
    """
    Decode a proxy wrapper and, once, its embedded exchange call.

    The outer result status reflects the wrapper only. ``call.inner`` holds
    the embedded exchange call when it decodes, otherwise None with the
    inner failure in ``reason``. When ``exchange_address`` is given, the
    embedded call is only unwrapped if the wrapper forwards to it.
    """
    outer = decode_call(payload, proxy_signatures)
    if not outer.ok or outer.call is None:
        return outer

    forwarded_to = outer.call.args.get("to")
    if exchange_address is not None and forwarded_to != exchange_address.lower():
        return DecodeResult(
            DecodeStatus.DECODED,
            call=outer.call,
            reason=f"wrapper forwards to {forwarded_to}, not the exchange",
        )

    embedded = outer.call.args.get(EMBEDDED_PAYLOAD_ARG)
    inner = decode_call(embedded, exchange_signatures)
    if inner.ok:
        return DecodeResult(DecodeStatus.DECODED, call=replace(outer.call, inner=inner.call))
    return DecodeResult(
        DecodeStatus.DECODED,
        call=outer.call,
        reason=f"embedded call {inner.status.value}: {inner.reason}",
    )


class ContractDecoder:
    """
    Bundles the exchange event, exchange function and proxy signature sets.

    Injected into the scan strategies so tests can substitute sets.
    """

    def __init__(
        self,
        event_signatures: SignatureSet = EXCHANGE_EVENTS,
        exchange_signatures: SignatureSet = EXCHANGE_FUNCTIONS,
        proxy_signatures: SignatureSet = PROXY_FUNCTIONS,
    ) -> None:
        self.event_signatures = event_signatures
        self.exchange_signatures = exchange_signatures
        self.proxy_signatures = proxy_signatures

    def decode_log(self, topics: Iterable[Any], data: Any) -> DecodeResult:
        return decode_log(topics, data, self.event_signatures)

    def decode_exchange_call(self, payload: Any) -> DecodeResult:
        return decode_call(payload, self.exchange_signatures)

    def decode_proxy_call(self, payload: Any, exchange_address: str | None = None) -> DecodeResult:
        return decode_proxy_call(
            payload, self.proxy_signatures, self.exchange_signatures, exchange_address
        )
