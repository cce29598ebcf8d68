"""
Target wallet registry for the Polymarket Wallet Watcher.

Holds the normalized set of target wallets and the exchange contract
address, and answers the cheap membership questions the scan strategies
ask before any ABI decoding happens.

Usage:
    registry = AddressRegistry(["0xAbC..."], CTF_EXCHANGE_ADDRESS)
    registry.contains(maker)   # case-insensitive target check
"""

from __future__ import annotations

from typing import Iterable

from web3 import Web3

from shared.constants import ADDRESS_SIZE, WORD_SIZE


class AddressRegistryError(ValueError):
    """Raised when a target or exchange address is empty or malformed."""


def is_valid_address(candidate: str) -> bool:
    """
    Hex shape check plus EIP-55 checksum for mixed-case input.

    All-lower and all-upper forms carry no checksum and are accepted as is.
    """
    if not isinstance(candidate, str) or not Web3.is_address(candidate):
        return False
    body = candidate[2:] if candidate[:2].lower() == "0x" else candidate
    if body != body.lower() and body != body.upper():
        return Web3.is_checksum_address(candidate)
    return True


def normalize_address(address: str) -> str:
    """Lower-case a chain address after validating it. Raises AddressRegistryError."""
    if not address or not isinstance(address, str):
        raise AddressRegistryError("Address must be a non-empty string")
    candidate = address.strip()
    if not is_valid_address(candidate):
        raise AddressRegistryError(f"Invalid chain address: {address!r}")
    return candidate.lower()


def redact_address(address: str) -> str:
    """Display form ``0xabcd...1234`` (first 6, last 4 characters)."""
    if len(address) <= 10:
        return address
    return f"{address[:6]}...{address[-4:]}"


class AddressRegistry:
    """
    Immutable registry of target wallets plus the exchange contract.

    Targets are de-duplicated but keep their input order for display; the
    first target is the primary target used by transaction-mode scanning.
    """

    def __init__(self, targets: Iterable[str], exchange_address: str) -> None:
        ordered: list[str] = []
        for target in targets:
            normalized = normalize_address(target)
            if normalized not in ordered:
                ordered.append(normalized)
        if not ordered:
            raise AddressRegistryError("At least one target wallet is required")

        self._targets: tuple[str, ...] = tuple(ordered)
        self._target_set: frozenset[str] = frozenset(ordered)
        self._exchange_address = normalize_address(exchange_address)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def targets(self) -> tuple[str, ...]:
        return self._targets

    @property
    def primary_target(self) -> str:
        return self._targets[0]

    @property
    def exchange_address(self) -> str:
        return self._exchange_address

    def __len__(self) -> int:
        return len(self._targets)

    # ------------------------------------------------------------------
    # Membership
    # ------------------------------------------------------------------

    def contains(self, address: str | None) -> bool:
        """Case-insensitive target membership."""
        if not address:
            return False
        return address.lower() in self._target_set

    def is_exchange(self, address: str | None) -> bool:
        return bool(address) and address.lower() == self._exchange_address

    def mentions_target(self, words: Iterable[bytes]) -> bool:
        """
        Cheap pre-decode check over raw 32-byte ABI words (log topics or data).

        An address occupies the low 20 bytes of a word. False positives are
        harmless (the full decode decides); false negatives are not possible
        for static address fields.
        """
        for word in words:
            if len(word) != WORD_SIZE:
                continue
            if ("0x" + word[-ADDRESS_SIZE:].hex()) in self._target_set:
                return True
        return False


def iter_words(data: bytes) -> Iterable[bytes]:
    """Split ABI-encoded data into 32-byte words (trailing partial word dropped)."""
    for offset in range(0, len(data) - WORD_SIZE + 1, WORD_SIZE):
        yield data[offset : offset + WORD_SIZE]
