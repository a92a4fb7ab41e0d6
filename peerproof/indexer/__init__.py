"""GraphQL indexer access, used as the intent resolver's fallback source."""

from peerproof.indexer.client import DeploymentEnv, IndexerClient, default_indexer_endpoint
from peerproof.indexer.service import IndexerService
from peerproof.indexer.transport import GraphQLTransport, HttpxTransport

__all__ = [
    "DeploymentEnv",
    "GraphQLTransport",
    "HttpxTransport",
    "IndexerClient",
    "IndexerService",
    "default_indexer_endpoint",
]
