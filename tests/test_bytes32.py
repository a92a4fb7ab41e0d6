"""
Tests for bytes32 helpers.

Test plan:
- hex_to_bytes: valid, odd length, missing prefix
- ensure_bytes32: passthrough, wrong size, ascii rejected, ascii hashed
- ascii_to_bytes32 / fiat currency: padding, upper-casing, too long
- payment method catalog: name lookup (case-insensitive), hex passthrough,
  unknown lists available names, reverse lookup
"""

import pytest

from peerproof.codec.bytes32 import (
    ascii_to_bytes32,
    ensure_bytes32,
    hex_to_bytes,
    resolve_fiat_currency_bytes32,
    resolve_payment_method_hash,
    resolve_payment_method_name,
)
from peerproof.errors import ValidationError
from peerproof.integrity import keccak256_text

WISE_HASH = "0x" + "0a" * 32
VENMO_HASH = "0x" + "0b" * 32
CATALOG = {"wise": WISE_HASH, "venmo": VENMO_HASH}


class TestHexToBytes:
    def test_valid(self) -> None:
        assert hex_to_bytes("0x00ff") == b"\x00\xff"

    def test_empty(self) -> None:
        assert hex_to_bytes("0x") == b""

    @pytest.mark.parametrize("bad", ["0xabc", "00ff", "0xgg"])
    def test_rejected(self, bad: str) -> None:
        with pytest.raises(ValidationError):
            hex_to_bytes(bad)


class TestEnsureBytes32:
    def test_passthrough(self) -> None:
        assert ensure_bytes32(WISE_HASH) == WISE_HASH

    def test_wrong_size_rejected(self) -> None:
        with pytest.raises(ValidationError, match="32-byte"):
            ensure_bytes32("0x1234")

    def test_ascii_rejected_by_default(self) -> None:
        with pytest.raises(ValidationError, match="hash_if_ascii"):
            ensure_bytes32("wise")

    def test_ascii_hashed_when_asked(self) -> None:
        assert ensure_bytes32("wise", hash_if_ascii=True) == keccak256_text("wise")


class TestCurrency:
    def test_ascii_padded(self) -> None:
        assert ascii_to_bytes32("USD") == "0x555344" + "00" * 29

    def test_code_upper_cased(self) -> None:
        assert resolve_fiat_currency_bytes32("usd") == ascii_to_bytes32("USD")

    def test_hex_passthrough(self) -> None:
        code = ascii_to_bytes32("EUR")
        assert resolve_fiat_currency_bytes32(code) == code

    def test_too_long_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ascii_to_bytes32("X" * 33)


class TestPaymentMethodCatalog:
    def test_name_lookup_case_insensitive(self) -> None:
        assert resolve_payment_method_hash("Wise", CATALOG) == WISE_HASH

    def test_hex_passthrough(self) -> None:
        assert resolve_payment_method_hash(VENMO_HASH, {}) == VENMO_HASH

    def test_unknown_lists_available(self) -> None:
        with pytest.raises(ValidationError, match="Available: venmo, wise"):
            resolve_payment_method_hash("zelle", CATALOG)

    def test_unknown_with_empty_catalog(self) -> None:
        with pytest.raises(ValidationError, match="catalog is empty"):
            resolve_payment_method_hash("zelle", {})

    def test_empty_name_rejected(self) -> None:
        with pytest.raises(ValidationError):
            resolve_payment_method_hash("", CATALOG)

    def test_reverse_lookup(self) -> None:
        assert resolve_payment_method_name(VENMO_HASH.upper().replace("0X", "0x"), CATALOG) == "venmo"
        assert resolve_payment_method_name("0x" + "ff" * 32, CATALOG) is None
        assert resolve_payment_method_name("", CATALOG) is None
