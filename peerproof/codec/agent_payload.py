"""
Normalization of loosely-typed proof payloads into ``Proof`` values.

Two producers are supported:

    Agent payload (browser helper):
        {
          "claim": {provider, parameters, context, identifier, owner,
                    timestampS, epoch},          # or signedClaim.claim
          "signatures": {"claimSignature": <sig>} | [<sig>, ...]
        }
        provider/parameters/context may also sit at the top level. They
        are read from whichever claim object was found (``claim`` or
        ``signedClaim.claim``) first, then from the top level, so a nested
        signedClaim.claim takes precedence over top-level fields.

    Proxy payload (hosted proof proxy):
        {
          "claimData": {provider, parameters, context, identifier, owner,
                        timestampS, epoch},
          "signatures": [<sig>, ...]
        }

A signature ``<sig>`` arrives as one of a closed set of shapes:
    - "0x..." hex string
    - bytes / bytearray
    - list of ints (0..255)
    - index-keyed map {"0": 12, "1": 255, ...}

Everything is normalized to 0x hex. Any other shape is a ValidationError.
"""

from __future__ import annotations

from typing import Any, Mapping

from peerproof.codec.bytes32 import hex_to_bytes
from peerproof.codec.proof import ClaimInfo, Proof, SignedClaim, SignedClaimData
from peerproof.errors import ValidationError


def _bytes_from_ints(values: list[Any]) -> bytes:
    out = bytearray()
    for v in values:
        if isinstance(v, bool) or not isinstance(v, int) or not 0 <= v <= 255:
            raise ValidationError(f"signature byte out of range: {v!r}", field="signatures")
        out.append(v)
    return bytes(out)


def to_hex_signature(sig: Any) -> str:
    """Normalize one signature to 0x hex."""
    if isinstance(sig, str):
        hex_to_bytes(sig, field="signatures")
        return sig.lower()
    if isinstance(sig, (bytes, bytearray)):
        return "0x" + bytes(sig).hex()
    if isinstance(sig, (list, tuple)):
        return "0x" + _bytes_from_ints(list(sig)).hex()
    if isinstance(sig, Mapping):
        try:
            ordered = sorted(sig.items(), key=lambda kv: int(kv[0]))
        except (TypeError, ValueError) as e:
            raise ValidationError("signature map keys must be byte indices", field="signatures") from e
        indices = [int(k) for k, _ in ordered]
        if indices != list(range(len(indices))):
            raise ValidationError("signature map indices must be contiguous from 0", field="signatures")
        return "0x" + _bytes_from_ints([v for _, v in ordered]).hex()
    raise ValidationError(
        f"unsupported signature shape: {type(sig).__name__}", field="signatures"
    )


def _as_uint(value: Any, name: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be numeric, got: {value!r}", field=name)
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value, 0) if value.startswith("0x") else int(value)
        except ValueError as e:
            raise ValidationError(f"{name} must be numeric, got: {value!r}", field=name) from e
    raise ValidationError(f"{name} must be numeric, got: {value!r}", field=name)


def _require_str(container: Mapping[str, Any], key: str) -> str:
    value = container.get(key)
    if not isinstance(value, str) or not value:
        raise ValidationError(f"proof payload missing {key}", field=key)
    return value


def _claim_data(claim: Mapping[str, Any]) -> SignedClaimData:
    return SignedClaimData(
        identifier=_require_str(claim, "identifier").lower(),
        owner=_require_str(claim, "owner").lower(),
        timestamp_s=_as_uint(claim.get("timestampS", 0), "timestampS"),
        epoch=_as_uint(claim.get("epoch", 0), "epoch"),
    )


def _signature_list(raw: Any) -> tuple[str, ...]:
    if isinstance(raw, Mapping) and "claimSignature" in raw:
        raw = [raw["claimSignature"]]
    if not isinstance(raw, (list, tuple)) or not raw:
        raise ValidationError("proof payload has no signatures", field="signatures")
    return tuple(to_hex_signature(s) for s in raw)


def parse_agent_proof(payload: Any) -> Proof:
    """Convert an agent proof payload into a canonical Proof."""
    if not isinstance(payload, Mapping):
        raise ValidationError("proof payload must be an object", field="proof")

    claim = payload.get("claim")
    if not isinstance(claim, Mapping):
        signed = payload.get("signedClaim")
        claim = signed.get("claim") if isinstance(signed, Mapping) else None
    if not isinstance(claim, Mapping):
        raise ValidationError("proof payload has no claim", field="claim")

    def _text(key: str) -> str:
        value = claim.get(key, payload.get(key, ""))
        return value if isinstance(value, str) else ""

    raw_signatures = payload.get("signatures")
    if raw_signatures is None and isinstance(payload.get("signedClaim"), Mapping):
        raw_signatures = payload["signedClaim"].get("signatures")

    return Proof(
        claim_info=ClaimInfo(
            provider=_text("provider"),
            parameters=_text("parameters"),
            context=_text("context"),
        ),
        signed_claim=SignedClaim(claim=_claim_data(claim), signatures=_signature_list(raw_signatures)),
        is_appclip_proof=False,
    )


def parse_proxy_proof(payload: Any) -> Proof:
    """Convert a proxy ``claimData`` payload into a canonical Proof."""
    if not isinstance(payload, Mapping) or not isinstance(payload.get("claimData"), Mapping):
        raise ValidationError("proxy proof payload must carry claimData", field="claimData")
    claim_data = payload["claimData"]
    return Proof(
        claim_info=ClaimInfo(
            provider=str(claim_data.get("provider", "")),
            parameters=str(claim_data.get("parameters", "")),
            context=str(claim_data.get("context", "") or ""),
        ),
        signed_claim=SignedClaim(
            claim=_claim_data(claim_data),
            signatures=_signature_list(payload.get("signatures")),
        ),
        is_appclip_proof=False,
    )
