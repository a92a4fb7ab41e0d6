"""
Hash primitives shared by the codec and the resolver helpers.

On-chain identifiers use Keccak-256 (the pre-standard SHA-3 variant),
which is NOT the same function as ``hashlib.sha3_256``. Everything that
must match a contract goes through ``keccak256`` here.

All public helpers return ``0x`` + 64 lowercase hex chars.
"""

import hashlib

from eth_utils import keccak


def keccak256(data: bytes) -> str:
    """Keccak-256 of raw bytes, 0x-prefixed."""
    return "0x" + keccak(primitive=data).hex()


def keccak256_text(text: str) -> str:
    """Keccak-256 of the UTF-8 bytes of ``text``."""
    return keccak256(text.encode("utf-8"))


def keccak256_packed_string(text: str) -> str:
    """Solidity ``keccak256(abi.encodePacked(string))``.

    Packed encoding of a lone string is just its UTF-8 bytes, so this is
    the same value as ``keccak256_text``; kept separate so call sites
    read like the contract code they mirror.
    """
    return keccak256_text(text)


def sha256_packed_string(text: str) -> str:
    """Solidity ``sha256(abi.encodePacked(string))``."""
    return "0x" + hashlib.sha256(text.encode("utf-8")).hexdigest()
