"""
Payment proof model and its on-chain binary encoding.

A Proof is the value a verifying contract consumes. The contract decodes
it with a fixed ABI tuple schema, so the encoding here must be
byte-for-byte what a Solidity ``abi.encode`` of the struct produces:

    (
      (string provider, string parameters, string context) claimInfo,
      (
        (bytes32 identifier, address owner, uint32 timestampS, uint32 epoch) claim,
        bytes[] signatures
      ) signedClaim,
      bool isAppclipProof
    )

Encodings:
    - ``encode_single(p)``       abi.encode(p)
    - ``encode_many([p1..pn])``  abi.encode(p1, ..., pn)  (n top-level args)
    - ``encode_with_method_tag`` abi.encodePacked(uint8 tag, bytes proof)

The packed variant is NOT word-aligned: one tag byte followed by the
raw proof bytes.

All encoders return ``0x``-prefixed lowercase hex.

Invariants:
    - timestampS and epoch are uint32; anything outside [0, 2**32 - 1]
      raises ValidationError before any byte is produced.
    - identical Proof values encode to identical bytes.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Sequence

import rfc8785
from eth_abi import encode

from peerproof.codec.bytes32 import hex_to_bytes
from peerproof.errors import ValidationError
from peerproof.integrity import keccak256_text

UINT32_MAX = 2**32 - 1
UINT8_MAX = 2**8 - 1

CLAIM_INFO_ABI_TYPE = "(string,string,string)"
CLAIM_DATA_ABI_TYPE = "(bytes32,address,uint32,uint32)"
SIGNED_CLAIM_ABI_TYPE = f"({CLAIM_DATA_ABI_TYPE},bytes[])"
PROOF_ABI_TYPE = f"({CLAIM_INFO_ABI_TYPE},{SIGNED_CLAIM_ABI_TYPE},bool)"


# =========================================================================
# Model
# =========================================================================


@dataclass(frozen=True)
class ClaimInfo:
    """Provider-specific assertion. ``context`` is usually JSON or empty."""

    provider: str
    parameters: str
    context: str = ""


@dataclass(frozen=True)
class SignedClaimData:
    """Attested claim header.

    Attributes:
        identifier: 32-byte claim identifier, 0x hex.
        owner: 20-byte owner address, 0x hex.
        timestamp_s: Issuance time in seconds (uint32).
        epoch: Attestor epoch (uint32).
    """

    identifier: str
    owner: str
    timestamp_s: int
    epoch: int


@dataclass(frozen=True)
class SignedClaim:
    """Claim plus its ordered attestor signatures (0x hex each)."""

    claim: SignedClaimData
    signatures: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if not isinstance(self.signatures, tuple):
            object.__setattr__(self, "signatures", tuple(self.signatures))


@dataclass(frozen=True)
class Proof:
    """A complete payment proof as the verifier expects it."""

    claim_info: ClaimInfo
    signed_claim: SignedClaim
    is_appclip_proof: bool = False


# =========================================================================
# Validation helpers
# =========================================================================


def _validate_uint32(value: int, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{name} must be an integer, got: {value!r}", field=name)
    if value < 0 or value > UINT32_MAX:
        raise ValidationError(f"{name} {value} exceeds uint32 bounds", field=name)
    return value


def _fixed_bytes(value: str, size: int, name: str) -> bytes:
    raw = hex_to_bytes(value, field=name)
    if len(raw) != size:
        raise ValidationError(f"{name} must be {size} bytes, got {len(raw)}", field=name)
    return raw


def _to_abi_value(proof: Proof) -> tuple[object, ...]:
    """Flatten a Proof into the nested tuple eth_abi expects.

    Range checks run first so a bad proof never reaches the encoder.
    """
    claim = proof.signed_claim.claim
    timestamp_s = _validate_uint32(claim.timestamp_s, "timestamp_s")
    epoch = _validate_uint32(claim.epoch, "epoch")
    info = proof.claim_info
    return (
        (info.provider, info.parameters, info.context),
        (
            (
                _fixed_bytes(claim.identifier, 32, "identifier"),
                _fixed_bytes(claim.owner, 20, "owner"),
                timestamp_s,
                epoch,
            ),
            [hex_to_bytes(sig, field="signatures") for sig in proof.signed_claim.signatures],
        ),
        bool(proof.is_appclip_proof),
    )


# =========================================================================
# Encoders
# =========================================================================


def encode_single(proof: Proof) -> str:
    """ABI-encode one proof as a single tuple argument."""
    return "0x" + encode([PROOF_ABI_TYPE], [_to_abi_value(proof)]).hex()


def encode_many(proofs: Sequence[Proof]) -> str:
    """ABI-encode proofs as N top-level tuple arguments.

    ``encode_many([p])`` equals ``encode_single(p)``.
    """
    if not proofs:
        raise ValidationError("encode_many requires at least one proof", field="proofs")
    values = [_to_abi_value(p) for p in proofs]
    return "0x" + encode([PROOF_ABI_TYPE] * len(values), values).hex()


def encode_with_method_tag(proof_bytes: str | bytes, method_tag: int) -> str:
    """Tightly pack ``uint8 method_tag`` in front of the proof bytes."""
    if isinstance(method_tag, bool) or not isinstance(method_tag, int):
        raise ValidationError(f"method_tag must be an integer, got: {method_tag!r}", field="method_tag")
    if method_tag < 0 or method_tag > UINT8_MAX:
        raise ValidationError(f"method_tag {method_tag} exceeds uint8 bounds", field="method_tag")
    raw = proof_bytes if isinstance(proof_bytes, bytes) else hex_to_bytes(proof_bytes, field="proof_bytes")
    return "0x" + (bytes([method_tag]) + raw).hex()


def assemble_proof_bytes(proofs: Sequence[Proof], method_tag: int | None = None) -> str:
    """Encode one or more proofs and optionally prefix the method tag."""
    if not proofs:
        raise ValidationError("no proofs provided", field="proofs")
    proof_bytes = encode_many(proofs)
    if method_tag is not None:
        proof_bytes = encode_with_method_tag(proof_bytes, method_tag)
    return proof_bytes


# =========================================================================
# Identifiers
# =========================================================================


def canonical_context(context: str | None) -> str:
    """RFC 8785 (JCS) form of a non-empty JSON context; empty stays empty.

    JCS sorts keys by UTF-16 code unit and renders numbers the ECMAScript
    way (``1.0`` becomes ``1``), so equal JSON values hash equally.
    """
    if not context:
        return ""
    try:
        parsed = json.loads(context)
    except json.JSONDecodeError as e:
        raise ValidationError(
            "unable to parse non-empty context. Must be JSON", field="context"
        ) from e
    try:
        return rfc8785.dumps(parsed).decode("utf-8")
    except rfc8785.CanonicalizationError as e:
        raise ValidationError(f"context cannot be canonicalized: {e}", field="context") from e


def derive_claim_identifier(claim_info: ClaimInfo) -> str:
    """keccak256("{provider}\\n{parameters}\\n{canonical context}"), lowercase hex."""
    context = canonical_context(claim_info.context)
    return keccak256_text(f"{claim_info.provider}\n{claim_info.parameters}\n{context}")


def create_sign_data(claim: SignedClaimData) -> str:
    """The newline-joined string attestors sign for a claim."""
    return "\n".join(
        [
            claim.identifier,
            claim.owner.lower(),
            str(claim.timestamp_s),
            str(claim.epoch),
        ]
    )


def intent_hash_to_decimal(intent_hash: str) -> str:
    """0x intent hash -> base-10 string, the form the agent expects."""
    if not isinstance(intent_hash, str) or not intent_hash.startswith("0x"):
        raise ValidationError("intent hash must be a 0x-prefixed hex string", field="intent_hash")
    try:
        return str(int(intent_hash, 16))
    except ValueError as e:
        raise ValidationError(f"intent hash is not valid hex: {intent_hash!r}", field="intent_hash") from e
