"""
peerproof — payment proof SDK for peer-to-peer fiat on-ramps.

Generate payment proofs through an out-of-process agent, encode them for
on-chain submission, and resolve the inputs needed to fulfill an intent.

Entry points:
    - ``Orchestrator`` — list payments, generate proofs, assemble bytes.
    - ``encode_single`` / ``encode_many`` / ``assemble_proof_bytes``
    - ``with_retry`` — retry wrapper for network-bound coroutines.
    - ``IntentResolver`` — fulfillment inputs with indexer fallback.
"""

from peerproof.agent import (
    AgentChannel,
    AgentTransport,
    AuthenticateOptions,
    AuthenticateResult,
    LoopbackChannel,
    MetadataCache,
    Orchestrator,
    OrchestratorOptions,
    ProofFlow,
    ProofFlowOptions,
)
from peerproof.codec import (
    ClaimInfo,
    Proof,
    SignedClaim,
    SignedClaimData,
    assemble_proof_bytes,
    encode_many,
    encode_single,
    encode_with_method_tag,
    parse_agent_proof,
)
from peerproof.errors import (
    APIError,
    ErrorCode,
    FlowBusyError,
    FlowDisposedError,
    NetworkError,
    NotFoundError,
    PeerproofError,
    ProofGenerationError,
    TransportUnavailableError,
    ValidationError,
    WaitTimeoutError,
)
from peerproof.intent import FulfillmentInputs, IntentResolver
from peerproof.platforms import PlatformMethod
from peerproof.platforms import resolve as resolve_platform
from peerproof.retry import RetryPolicy, with_retry

__version__ = "0.1.0"

__all__ = [
    "APIError",
    "AgentChannel",
    "AgentTransport",
    "AuthenticateOptions",
    "AuthenticateResult",
    "ClaimInfo",
    "ErrorCode",
    "FlowBusyError",
    "FlowDisposedError",
    "FulfillmentInputs",
    "IntentResolver",
    "LoopbackChannel",
    "MetadataCache",
    "NetworkError",
    "NotFoundError",
    "Orchestrator",
    "OrchestratorOptions",
    "PeerproofError",
    "PlatformMethod",
    "Proof",
    "ProofFlow",
    "ProofFlowOptions",
    "ProofGenerationError",
    "RetryPolicy",
    "SignedClaim",
    "SignedClaimData",
    "TransportUnavailableError",
    "ValidationError",
    "WaitTimeoutError",
    "__version__",
    "assemble_proof_bytes",
    "encode_many",
    "encode_single",
    "encode_with_method_tag",
    "parse_agent_proof",
    "resolve_platform",
    "with_retry",
]
