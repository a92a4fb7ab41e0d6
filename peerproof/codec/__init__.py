"""
Proof codec: ABI encoding of payment proofs and parsing of agent payloads.

    - ``encode_single`` / ``encode_many`` / ``encode_with_method_tag``
    - ``assemble_proof_bytes`` — the on-chain submission bytes
    - ``parse_agent_proof`` / ``parse_proxy_proof`` — payload -> Proof
    - bytes32 helpers for currencies and payment-method hashes
"""

from peerproof.codec.agent_payload import parse_agent_proof, parse_proxy_proof, to_hex_signature
from peerproof.codec.bytes32 import (
    ascii_to_bytes32,
    ensure_bytes32,
    resolve_fiat_currency_bytes32,
    resolve_payment_method_hash,
    resolve_payment_method_name,
)
from peerproof.codec.proof import (
    PROOF_ABI_TYPE,
    ClaimInfo,
    Proof,
    SignedClaim,
    SignedClaimData,
    assemble_proof_bytes,
    canonical_context,
    create_sign_data,
    derive_claim_identifier,
    encode_many,
    encode_single,
    encode_with_method_tag,
    intent_hash_to_decimal,
)

__all__ = [
    "PROOF_ABI_TYPE",
    "ClaimInfo",
    "Proof",
    "SignedClaim",
    "SignedClaimData",
    "ascii_to_bytes32",
    "assemble_proof_bytes",
    "canonical_context",
    "create_sign_data",
    "derive_claim_identifier",
    "encode_many",
    "encode_single",
    "encode_with_method_tag",
    "ensure_bytes32",
    "intent_hash_to_decimal",
    "parse_agent_proof",
    "parse_proxy_proof",
    "resolve_fiat_currency_bytes32",
    "resolve_payment_method_hash",
    "resolve_payment_method_name",
    "to_hex_signature",
]
