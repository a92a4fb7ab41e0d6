"""
Error taxonomy for the proof SDK.

Every failure raised by this package is a ``PeerproofError`` carrying a
machine-readable ``error_code`` (``ErrorCode``) and a ``details`` dict.
Subclasses exist so callers can ``except`` on the category they care
about without string matching.

Retry semantics (see ``peerproof.retry``):
    - NETWORK: retryable.
    - API with status 429: retryable with exponential backoff.
    - Everything else: surfaced on first occurrence.
"""

from __future__ import annotations

import json
from enum import StrEnum
from typing import Any

import httpx

RATE_LIMIT_STATUS = 429


class ErrorCode(StrEnum):
    """Machine-readable error categories."""

    VALIDATION = "VALIDATION"
    TRANSPORT_UNAVAILABLE = "TRANSPORT_UNAVAILABLE"
    TIMEOUT = "TIMEOUT"
    PROOF_GENERATION = "PROOF_GENERATION"
    BUSY = "BUSY"
    DISPOSED = "DISPOSED"
    NETWORK = "NETWORK"
    API = "API"
    NOT_FOUND = "NOT_FOUND"
    UNKNOWN = "UNKNOWN"


class PeerproofError(Exception):
    """Base class for all SDK errors."""

    def __init__(
        self,
        message: str,
        *,
        error_code: ErrorCode = ErrorCode.UNKNOWN,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}


class ValidationError(PeerproofError):
    """Malformed caller input. Never retried."""

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, error_code=ErrorCode.VALIDATION, details=details)
        self.field = field


class TransportUnavailableError(PeerproofError):
    """The proof agent cannot be reached from this host."""

    def __init__(self, message: str = "proof agent is not available", **kwargs: Any) -> None:
        super().__init__(message, error_code=ErrorCode.TRANSPORT_UNAVAILABLE, **kwargs)


class WaitTimeoutError(PeerproofError):
    """A bounded wait (proof id, proof status, metadata) ran out."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        super().__init__(message, error_code=ErrorCode.TIMEOUT, **kwargs)


class ProofGenerationError(PeerproofError):
    """The agent reported an error, or its payload could not be parsed."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        super().__init__(message, error_code=ErrorCode.PROOF_GENERATION, **kwargs)


class FlowBusyError(PeerproofError):
    """A proof flow was asked to start while another run is in flight."""

    def __init__(self, message: str = "a proof request is already in flight", **kwargs: Any) -> None:
        super().__init__(message, error_code=ErrorCode.BUSY, **kwargs)


class FlowDisposedError(PeerproofError):
    """A pending wait was interrupted because its owner was disposed."""

    def __init__(self, message: str = "disposed while waiting", **kwargs: Any) -> None:
        super().__init__(message, error_code=ErrorCode.DISPOSED, **kwargs)


class NetworkError(PeerproofError):
    """A remote endpoint could not be reached. Retryable."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        super().__init__(message, error_code=ErrorCode.NETWORK, **kwargs)


class APIError(PeerproofError):
    """A remote endpoint answered with a non-success response."""

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, error_code=ErrorCode.API, details=details)
        self.status = status

    @property
    def is_rate_limited(self) -> bool:
        return self.status == RATE_LIMIT_STATUS


class NotFoundError(PeerproofError):
    """Every available source was consulted and none had the record."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        super().__init__(message, error_code=ErrorCode.NOT_FOUND, **kwargs)


# =========================================================================
# Classification
# =========================================================================


def is_rate_limited(exc: BaseException) -> bool:
    """True for a rate-limit response, whether ours or a raw httpx one."""
    if isinstance(exc, APIError):
        return exc.is_rate_limited
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code == RATE_LIMIT_STATUS
    return False


def classify_error(exc: BaseException) -> bool:
    """Return True if ``exc`` is worth another attempt.

    Transport-level failures (our ``NetworkError`` or a raw
    ``httpx.TransportError``) and rate-limit responses are retryable.
    Any other response or error is not.
    """
    if isinstance(exc, (NetworkError, httpx.TransportError)):
        return True
    return is_rate_limited(exc)


def parse_api_error(status: int, body: str | None = None, *, url: str | None = None) -> APIError:
    """Build an APIError from a failed response.

    Prefers the ``error`` or ``message`` key of a JSON body, then a short
    raw body, then a generic message. Rate-limit responses always get a
    fixed message.
    """
    message = f"Request failed with status {status}"
    if body:
        try:
            parsed = json.loads(body)
        except json.JSONDecodeError:
            if len(body) < 200:
                message = body
        else:
            if isinstance(parsed, dict) and (parsed.get("error") or parsed.get("message")):
                message = str(parsed.get("error") or parsed.get("message"))
    if status == RATE_LIMIT_STATUS:
        message = "Too many requests. Please try again later."
    details: dict[str, Any] = {}
    if url is not None:
        details["url"] = url
    return APIError(message, status=status, details=details)
