"""
Unit tests for core/address_registry.py.

Tests cover address normalization, display redaction, registry
construction (de-duplication, ordering, rejection of bad input) and the
raw-word pre-filter used before decoding.
"""

from __future__ import annotations

import pytest
from chain_samples import EXCHANGE, OTHER_WALLET, TARGET_A, TARGET_B, address_topic

from core.address_registry import (
    AddressRegistry,
    AddressRegistryError,
    is_valid_address,
    iter_words,
    normalize_address,
    redact_address,
)

CHECKSUMMED = "0xd8dA6BF26964aF9D7eEd9e03E53415D37aA96045"


class TestNormalizeAddress:
    def test_lower_cases_checksummed(self):
        assert normalize_address(CHECKSUMMED) == CHECKSUMMED.lower()

    def test_strips_whitespace(self):
        assert normalize_address(f"  {TARGET_A} ") == TARGET_A

    @pytest.mark.parametrize("bad", ["", "0x1234", "not-an-address", "0x" + "zz" * 20])
    def test_rejects_malformed(self, bad):
        with pytest.raises(AddressRegistryError):
            normalize_address(bad)

    def test_rejects_bad_checksum(self):
        # mixed case with the first letter's case flipped
        with pytest.raises(AddressRegistryError):
            normalize_address("0xD8dA" + CHECKSUMMED[6:])


class TestIsValidAddress:
    def test_lower_and_upper_forms_have_no_checksum(self):
        assert is_valid_address(CHECKSUMMED.lower())
        assert is_valid_address("0x" + CHECKSUMMED[2:].upper())

    def test_mixed_case_must_match_checksum(self):
        assert is_valid_address(CHECKSUMMED)
        assert not is_valid_address("0xD8dA" + CHECKSUMMED[6:])

    def test_rejects_non_string(self):
        assert not is_valid_address(None)
        assert not is_valid_address(b"\xd8" * 20)


class TestRedactAddress:
    def test_first_six_last_four(self):
        assert redact_address(TARGET_A) == "0xa1a1...a1a1"

    def test_short_value_unchanged(self):
        assert redact_address("0x1234") == "0x1234"


class TestAddressRegistry:
    def test_targets_are_normalized_and_deduplicated(self):
        registry = AddressRegistry([CHECKSUMMED, CHECKSUMMED.lower(), TARGET_A], EXCHANGE)

        assert registry.targets == (CHECKSUMMED.lower(), TARGET_A)
        assert len(registry) == 2

    def test_primary_target_is_first(self):
        registry = AddressRegistry([TARGET_B, TARGET_A], EXCHANGE)
        assert registry.primary_target == TARGET_B

    def test_empty_targets_rejected(self):
        with pytest.raises(AddressRegistryError):
            AddressRegistry([], EXCHANGE)

    def test_invalid_exchange_rejected(self):
        with pytest.raises(AddressRegistryError):
            AddressRegistry([TARGET_A], "0xnope")

    def test_contains_is_case_insensitive(self):
        registry = AddressRegistry([CHECKSUMMED], EXCHANGE)
        assert registry.contains(CHECKSUMMED)
        assert registry.contains(CHECKSUMMED.lower())
        assert not registry.contains(OTHER_WALLET)
        assert not registry.contains(None)

    def test_is_exchange(self):
        registry = AddressRegistry([TARGET_A], EXCHANGE)
        assert registry.is_exchange(EXCHANGE.upper().replace("0X", "0x"))
        assert not registry.is_exchange(TARGET_A)
        assert not registry.is_exchange(None)


class TestMentionsTarget:
    def test_detects_target_in_topic_word(self):
        registry = AddressRegistry([TARGET_A], EXCHANGE)
        assert registry.mentions_target([b"\x00" * 32, address_topic(TARGET_A)])

    def test_ignores_other_addresses(self):
        registry = AddressRegistry([TARGET_A], EXCHANGE)
        assert not registry.mentions_target([address_topic(OTHER_WALLET)])

    def test_skips_partial_words(self):
        registry = AddressRegistry([TARGET_A], EXCHANGE)
        assert not registry.mentions_target([bytes.fromhex(TARGET_A[2:])])

    def test_iter_words_drops_trailing_partial(self):
        data = b"\x01" * 32 + b"\x02" * 32 + b"\x03" * 5
        words = list(iter_words(data))
        assert words == [b"\x01" * 32, b"\x02" * 32]
