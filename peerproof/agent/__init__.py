"""
Proof agent integration.

    Channel:
        - ``AgentChannel`` — injectable pipe to the out-of-process agent.
        - ``LoopbackChannel`` — in-process implementation.

    Transport:
        - ``AgentTransport`` — typed sends, dispatch by message kind.

    Flows:
        - ``ProofFlow`` — request and poll one or more sub-proofs.
        - ``MetadataCache`` — latest payment metadata per platform.
        - ``Orchestrator`` — list payments, prove, assemble.
"""

from peerproof.agent.channel import AgentChannel, LoopbackChannel
from peerproof.agent.flow import (
    FlowState,
    ProofFlow,
    ProofFlowOptions,
    ProofProgress,
    ProofStage,
)
from peerproof.agent.messages import NotaryRequest, PaymentMetadata, ProofStatus
from peerproof.agent.metadata import (
    MetadataCache,
    MetadataRecord,
    filter_visible,
    select_by_original_index,
    sort_by_date_desc,
)
from peerproof.agent.orchestrator import (
    AuthenticateOptions,
    AuthenticateResult,
    Orchestrator,
    OrchestratorOptions,
)
from peerproof.agent.transport import AgentCallbacks, AgentTransport

__all__ = [
    "AgentCallbacks",
    "AgentChannel",
    "AgentTransport",
    "AuthenticateOptions",
    "AuthenticateResult",
    "FlowState",
    "LoopbackChannel",
    "MetadataCache",
    "MetadataRecord",
    "NotaryRequest",
    "Orchestrator",
    "OrchestratorOptions",
    "PaymentMetadata",
    "ProofFlow",
    "ProofFlowOptions",
    "ProofProgress",
    "ProofStage",
    "ProofStatus",
    "filter_visible",
    "select_by_original_index",
    "sort_by_date_desc",
]
