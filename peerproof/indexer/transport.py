"""
Transport protocol for GraphQL-over-HTTP calls to the indexer.

The indexer client depends on this protocol, not on httpx directly, so
tests (and hosts with their own HTTP stack) can swap the transport
without touching query or response handling.

Concrete implementations:
    - HttpxTransport (default, uses httpx.AsyncClient)
    - fakes in tests, returning canned bodies

Failure contract:
    Transports raise ``NetworkError`` when the endpoint cannot be
    reached and ``APIError`` for an HTTP status >= 400. A 2xx body is
    returned parsed, unchecked; GraphQL-level errors are the client's
    concern.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

import httpx

from peerproof.errors import APIError, NetworkError, parse_api_error


@runtime_checkable
class GraphQLTransport(Protocol):
    """Async transport for GraphQL POST requests."""

    async def post_json(self, url: str, payload: dict[str, Any]) -> dict[str, Any]:
        """Send one request and return the parsed JSON body.

        Args:
            url: The GraphQL endpoint URL.
            payload: ``{"query": ..., "variables": ...}``.

        Raises:
            NetworkError: Connection refused, timeout, TLS failure.
            APIError: The endpoint answered with status >= 400.
        """
        ...


class HttpxTransport:
    """Default transport using httpx.AsyncClient.

    Args:
        timeout: Request timeout in seconds.
        headers: Extra headers sent with every request.
    """

    def __init__(self, timeout: float = 30.0, headers: dict[str, str] | None = None) -> None:
        self._timeout = timeout
        self._headers = {"Content-Type": "application/json", **(headers or {})}

    async def post_json(self, url: str, payload: dict[str, Any]) -> dict[str, Any]:
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(url, json=payload, headers=self._headers)
        except httpx.TransportError as e:
            raise NetworkError(
                f"Indexer unreachable: {e}",
                details={"url": url, "exception": type(e).__name__},
            ) from e

        if response.status_code >= 400:
            raise parse_api_error(response.status_code, response.text, url=url)
        try:
            result: dict[str, Any] = response.json()
        except ValueError as e:
            raise APIError(
                "Indexer returned a non-JSON body",
                status=response.status_code,
                details={"url": url},
            ) from e
        if not isinstance(result, dict):
            raise APIError(
                "Indexer returned a non-object body",
                status=response.status_code,
                details={"url": url},
            )
        return result
