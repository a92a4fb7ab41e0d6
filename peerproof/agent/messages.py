"""
Message protocol spoken with the proof agent.

Every message is a flat JSON object with a ``type`` discriminator.

Outbound (SDK -> agent):
    {"type": "fetch_extension_version"}
    {"type": "open_new_tab", "actionType", "platform"}
    {"type": "generate_proof", "platform", "intentHash", "originalIndex", "proofIndex"?}
    {"type": "fetch_proof_by_id", "proofId"}

Inbound (agent -> SDK):
    extension_version_response       data.version
    metadata_messages_response       data.platform, data.metadata[], data.expiresAt
    fetch_proof_request_id_response  data.proofId
    fetch_proof_by_id_response       data.requestHistory.{notaryRequest | notaryRequests[]}

Inbound messages are checked against a JSON Schema for their kind and
then turned into one of the frozen dataclasses below, so handlers never
touch raw dicts. Unknown kinds parse to None and are ignored.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Union

import jsonschema  # type: ignore[import-untyped]

from peerproof.errors import ValidationError


class OutboundKind(StrEnum):
    FETCH_VERSION = "fetch_extension_version"
    OPEN_NEW_TAB = "open_new_tab"
    GENERATE_PROOF = "generate_proof"
    FETCH_PROOF_BY_ID = "fetch_proof_by_id"


class InboundKind(StrEnum):
    VERSION_RESPONSE = "extension_version_response"
    METADATA_RESPONSE = "metadata_messages_response"
    PROOF_ID_RESPONSE = "fetch_proof_request_id_response"
    PROOF_STATUS_RESPONSE = "fetch_proof_by_id_response"


class ProofStatus(StrEnum):
    PENDING = "pending"
    SUCCESS = "success"
    ERROR = "error"


# =========================================================================
# Outbound builders
# =========================================================================


def fetch_version_message() -> dict[str, Any]:
    return {"type": OutboundKind.FETCH_VERSION.value}


def open_new_tab_message(action_type: str, platform: str) -> dict[str, Any]:
    return {"type": OutboundKind.OPEN_NEW_TAB.value, "actionType": action_type, "platform": platform}


def generate_proof_message(
    platform: str,
    intent_hash: str,
    original_index: int,
    proof_index: int | None = None,
) -> dict[str, Any]:
    message: dict[str, Any] = {
        "type": OutboundKind.GENERATE_PROOF.value,
        "platform": platform,
        "intentHash": intent_hash,
        "originalIndex": original_index,
    }
    if proof_index is not None:
        message["proofIndex"] = proof_index
    return message


def fetch_proof_message(proof_id: str) -> dict[str, Any]:
    return {"type": OutboundKind.FETCH_PROOF_BY_ID.value, "proofId": proof_id}


# =========================================================================
# Inbound schemas
# =========================================================================

_NOTARY_REQUEST_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "id": {"type": ["string", "null"]},
        "status": {"type": ["string", "null"]},
    },
}

_INBOUND_SCHEMAS: dict[InboundKind, dict[str, Any]] = {
    InboundKind.VERSION_RESPONSE: {
        "type": "object",
        "properties": {
            "data": {
                "type": ["object", "null"],
                "properties": {"version": {"type": ["string", "null"]}},
            },
        },
    },
    InboundKind.METADATA_RESPONSE: {
        "type": "object",
        "required": ["data"],
        "properties": {
            "data": {
                "type": "object",
                "required": ["platform"],
                "properties": {
                    "platform": {"type": "string", "minLength": 1},
                    "expiresAt": {"type": ["number", "null"]},
                    "metadata": {
                        "type": ["array", "null"],
                        "items": {
                            "type": "object",
                            "required": ["originalIndex"],
                            "properties": {
                                "originalIndex": {"type": "integer"},
                                "hidden": {"type": ["boolean", "null"]},
                                "date": {"type": ["string", "number", "null"]},
                                "amount": {"type": ["string", "number", "null"]},
                            },
                        },
                    },
                },
            },
        },
    },
    InboundKind.PROOF_ID_RESPONSE: {
        "type": "object",
        "properties": {
            "data": {
                "type": ["object", "null"],
                "properties": {"proofId": {"type": ["string", "null"]}},
            },
        },
    },
    InboundKind.PROOF_STATUS_RESPONSE: {
        "type": "object",
        "required": ["data"],
        "properties": {
            "data": {
                "type": "object",
                "properties": {
                    "requestHistory": {
                        "type": ["object", "null"],
                        "properties": {
                            "notaryRequest": _NOTARY_REQUEST_SCHEMA,
                            "notaryRequests": {"type": "array", "items": _NOTARY_REQUEST_SCHEMA},
                        },
                    },
                },
            },
        },
    },
}


# =========================================================================
# Inbound message types
# =========================================================================


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


@dataclass(frozen=True)
class PaymentMetadata:
    """One payment the agent found in the user's account history."""

    original_index: int
    hidden: bool = False
    amount: str | None = None
    date: str | None = None
    currency: str | None = None
    recipient: str | None = None
    recipient_name: str | None = None
    payment_id: str | None = None
    type: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PaymentMetadata:
        return cls(
            original_index=int(data["originalIndex"]),
            hidden=bool(data.get("hidden") or False),
            amount=_optional_str(data.get("amount")),
            date=_optional_str(data.get("date")),
            currency=_optional_str(data.get("currency")),
            recipient=_optional_str(data.get("recipient")),
            recipient_name=_optional_str(data.get("recipientName")),
            payment_id=_optional_str(data.get("paymentId")),
            type=_optional_str(data.get("type")),
        )


@dataclass(frozen=True)
class NotaryRequest:
    """The agent's view of one proof request."""

    status: str | None = None
    proof: Any = None
    id: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in (ProofStatus.SUCCESS, ProofStatus.ERROR)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> NotaryRequest:
        return cls(status=data.get("status"), proof=data.get("proof"), id=data.get("id"))


@dataclass(frozen=True)
class VersionResponse:
    version: str | None


@dataclass(frozen=True)
class MetadataPush:
    platform: str
    entries: tuple[PaymentMetadata, ...] = field(default_factory=tuple)
    expires_at: int = 0


@dataclass(frozen=True)
class ProofIdResponse:
    proof_id: str | None


@dataclass(frozen=True)
class ProofStatusResponse:
    request: NotaryRequest | None


InboundMessage = Union[VersionResponse, MetadataPush, ProofIdResponse, ProofStatusResponse]


def _data(message: dict[str, Any]) -> dict[str, Any]:
    data = message.get("data")
    return data if isinstance(data, dict) else {}


def _build(kind: InboundKind, message: dict[str, Any]) -> InboundMessage:
    data = _data(message)
    if kind is InboundKind.VERSION_RESPONSE:
        return VersionResponse(version=data.get("version"))
    if kind is InboundKind.METADATA_RESPONSE:
        return MetadataPush(
            platform=data["platform"],
            entries=tuple(PaymentMetadata.from_dict(m) for m in data.get("metadata") or []),
            expires_at=int(data.get("expiresAt") or 0),
        )
    if kind is InboundKind.PROOF_ID_RESPONSE:
        return ProofIdResponse(proof_id=data.get("proofId") or None)
    if kind is InboundKind.PROOF_STATUS_RESPONSE:
        history = data.get("requestHistory") or {}
        raw = history.get("notaryRequest")
        if raw is None and history.get("notaryRequests"):
            raw = history["notaryRequests"][0]
        return ProofStatusResponse(request=NotaryRequest.from_dict(raw) if raw else None)
    raise AssertionError(f"unhandled inbound kind: {kind}")


def parse_inbound(message: Any) -> InboundMessage | None:
    """Validate and type an inbound message.

    Returns:
        The typed message, or None when ``message`` is not an object with
        a known ``type``.

    Raises:
        ValidationError: Known kind whose body does not match its schema.
    """
    if not isinstance(message, dict) or not isinstance(message.get("type"), str):
        return None
    try:
        kind = InboundKind(message["type"])
    except ValueError:
        return None
    try:
        jsonschema.validate(instance=message, schema=_INBOUND_SCHEMAS[kind])
    except jsonschema.ValidationError as e:
        raise ValidationError(
            f"malformed {kind.value} message: {e.message}",
            field="data",
            details={"type": kind.value},
        ) from e
    return _build(kind, message)
