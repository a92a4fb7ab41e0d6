"""
bytes32 helpers for values that end up in contract calls.

Currency codes are ASCII left-aligned and zero-padded; payment method
names resolve through an explicit catalog (``{name: hash}``) because a
bare keccak of the name is not guaranteed to match what was registered
on-chain.
"""

from __future__ import annotations

import re
from typing import Mapping

from peerproof.errors import ValidationError
from peerproof.integrity import keccak256_text

_HEX_RE = re.compile(r"^0x[0-9a-fA-F]*$")


def hex_to_bytes(value: str, *, field: str = "value") -> bytes:
    """Decode a 0x-prefixed hex string, rejecting anything else."""
    if not isinstance(value, str) or not _HEX_RE.match(value) or len(value) % 2:
        raise ValidationError(f"{field} must be 0x-prefixed even-length hex, got: {value!r}", field=field)
    return bytes.fromhex(value[2:])


def ensure_bytes32(value: str, *, hash_if_ascii: bool = False) -> str:
    """Return ``value`` as a 32-byte hex string.

    Hex input must already be exactly 32 bytes. Non-hex input is hashed
    with keccak256 when ``hash_if_ascii`` is set, rejected otherwise.
    """
    if value.startswith("0x"):
        if len(hex_to_bytes(value)) != 32:
            raise ValidationError(f"expected 32-byte hex value, got: {value!r}")
        return value
    if not hash_if_ascii:
        raise ValidationError(
            "expected 32-byte hex; received ascii string. Pass hash_if_ascii=True to hash."
        )
    return keccak256_text(value)


def ascii_to_bytes32(value: str) -> str:
    """Left-align ASCII (<= 32 bytes) and right-pad with zeros."""
    raw = value.encode("utf-8")
    if len(raw) > 32:
        raise ValidationError(f"ascii input exceeds 32 bytes: {value!r}")
    return "0x" + raw.ljust(32, b"\x00").hex()


def resolve_fiat_currency_bytes32(code_or_hex: str) -> str:
    """'usd' -> bytes32('USD'); 0x input passes through after a size check."""
    if code_or_hex.startswith("0x"):
        return ensure_bytes32(code_or_hex)
    return ascii_to_bytes32(code_or_hex.upper())


def resolve_payment_method_hash(name_or_hex: str, catalog: Mapping[str, str]) -> str:
    """Resolve a processor name ('wise') to its registered method hash."""
    if not name_or_hex:
        raise ValidationError("payment method name is required", field="payment_method")
    if name_or_hex.startswith("0x"):
        return ensure_bytes32(name_or_hex)
    entry = catalog.get(name_or_hex.lower())
    if entry:
        return entry
    available = ", ".join(sorted(catalog))
    if available:
        raise ValidationError(f"unknown payment method: {name_or_hex}. Available: {available}")
    raise ValidationError(f"unknown payment method: {name_or_hex}. The catalog is empty.")


def resolve_payment_method_name(method_hash: str, catalog: Mapping[str, str]) -> str | None:
    """Reverse lookup of ``resolve_payment_method_hash``."""
    if not method_hash:
        return None
    target = ensure_bytes32(method_hash).lower()
    for name, registered in catalog.items():
        if registered.lower() == target:
            return name
    return None
