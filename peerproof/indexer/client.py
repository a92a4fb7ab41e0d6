"""
Indexer client — GraphQL queries against the hosted indexer.

Each ``query`` runs under ``with_retry``: unreachable endpoints and
rate limits are retried, any other failure is raised on first sight.

Response handling:
    - ``errors`` present and non-empty -> APIError listing the messages
    - ``data`` missing                 -> APIError
    - otherwise                        -> ``data`` returned as-is
"""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import Any

from peerproof.errors import APIError
from peerproof.indexer.transport import GraphQLTransport, HttpxTransport
from peerproof.retry import RetryPolicy, with_retry

logger = logging.getLogger(__name__)


class DeploymentEnv(StrEnum):
    PRODUCTION = "PRODUCTION"
    PREPRODUCTION = "PREPRODUCTION"
    STAGING = "STAGING"
    DEV = "DEV"
    LOCAL = "LOCAL"
    STAGING_TESTNET = "STAGING_TESTNET"


_PRODUCTION_ENDPOINT = "https://indexer.hyperindex.xyz/8fd74dc/v1/graphql"
_PREPRODUCTION_ENDPOINT = "https://indexer.hyperindex.xyz/186c193/v1/graphql"
_STAGING_ENDPOINT = "https://indexer.dev.hyperindex.xyz/3b6e163/v1/graphql"

_ENDPOINTS: dict[DeploymentEnv, str] = {
    DeploymentEnv.PRODUCTION: _PRODUCTION_ENDPOINT,
    DeploymentEnv.PREPRODUCTION: _PREPRODUCTION_ENDPOINT,
    DeploymentEnv.STAGING: _STAGING_ENDPOINT,
    # No dedicated deployments; these share staging.
    DeploymentEnv.DEV: _STAGING_ENDPOINT,
    DeploymentEnv.LOCAL: _STAGING_ENDPOINT,
    DeploymentEnv.STAGING_TESTNET: _STAGING_ENDPOINT,
}


def default_indexer_endpoint(env: DeploymentEnv | str = DeploymentEnv.PRODUCTION) -> str:
    """Indexer URL for a deployment. Unknown names map to production."""
    try:
        return _ENDPOINTS[DeploymentEnv(str(env).upper())]
    except ValueError:
        return _PRODUCTION_ENDPOINT


class IndexerClient:
    """GraphQL client for the indexer.

    Args:
        endpoint: GraphQL URL. Defaults to the production indexer.
        transport: Injectable HTTP transport. Defaults to HttpxTransport.
        retry: Retry budget applied to every query.
    """

    def __init__(
        self,
        endpoint: str | None = None,
        transport: GraphQLTransport | None = None,
        retry: RetryPolicy | None = None,
    ) -> None:
        self._endpoint = endpoint or default_indexer_endpoint()
        self._transport = transport or HttpxTransport()
        self._retry = retry or RetryPolicy(max_attempts=2, base_delay_s=0.2)

    @property
    def endpoint(self) -> str:
        return self._endpoint

    async def query(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        """Run one GraphQL query and return its ``data`` object."""
        payload: dict[str, Any] = {"query": query}
        if variables is not None:
            payload["variables"] = variables
        logger.debug("indexer query -> %s", self._endpoint)

        async def attempt() -> dict[str, Any]:
            body = await self._transport.post_json(self._endpoint, payload)
            return _extract_data(body)

        return await with_retry(attempt, policy=self._retry)


def _extract_data(body: dict[str, Any]) -> dict[str, Any]:
    errors = body.get("errors") or []
    if errors:
        messages = ", ".join(str(e.get("message", e)) if isinstance(e, dict) else str(e) for e in errors)
        raise APIError(f"GraphQL errors: {messages}", details={"errors": errors})
    data = body.get("data")
    if not isinstance(data, dict):
        raise APIError("No data returned from indexer")
    return data
