"""
ProofFlow — request, await and collect proofs from the agent.

One ``generate_proofs`` call walks this state machine once per sub-proof:

    IDLE -> REQUEST_SENT -> AWAITING_ID -> POLLING -> SUCCESS | ERROR

Per sub-proof ``i``:
    1. Forget the tracked proof id and last status.
    2. Send ``generate_proof`` (``proofIndex=i`` for i > 0).
    3. Wait for the agent to hand back a proof id (``timeout_s``).
    4. Poll ``fetch_proof_by_id`` every ``poll_interval_s`` until the
       request is terminal (``timeout_s`` from the start of polling).
    5. success -> parse and append; error or bad payload -> abort.

A status reply naming a proof id other than the tracked one is a late
answer to an earlier poll and is ignored.

Sub-proofs run strictly one after another: the transport tracks a single
proof id. A second call while one is running raises FlowBusyError.

Every stage change is reported to ``on_progress``; failures emit a
``proof_error`` progress event before the call raises. The raised error
is what counts.

``dispose()`` detaches from the channel and wakes any pending wait,
which then raises FlowDisposedError.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import StrEnum
from typing import Callable

from peerproof.agent.channel import AgentChannel
from peerproof.agent.messages import NotaryRequest, ProofStatus
from peerproof.agent.transport import AgentCallbacks, AgentTransport
from peerproof.codec.agent_payload import parse_agent_proof
from peerproof.codec.proof import Proof
from peerproof.errors import (
    FlowBusyError,
    FlowDisposedError,
    PeerproofError,
    ProofGenerationError,
    TransportUnavailableError,
    ValidationError,
    WaitTimeoutError,
)

logger = logging.getLogger(__name__)


class FlowState(StrEnum):
    IDLE = "idle"
    REQUEST_SENT = "request_sent"
    AWAITING_ID = "awaiting_id"
    POLLING = "polling"
    SUCCESS = "success"
    ERROR = "error"


class ProofStage(StrEnum):
    WAITING_PROOF_ID = "waiting_proof_id"
    POLLING_PROOF = "polling_proof"
    PROOF_SUCCESS = "proof_success"
    PROOF_ERROR = "proof_error"


@dataclass(frozen=True)
class ProofProgress:
    """One progress notification, tagged with the sub-proof index."""

    stage: ProofStage
    proof_index: int
    message: str | None = None


ProgressCallback = Callable[[ProofProgress], None]


@dataclass(frozen=True)
class ProofFlowOptions:
    """Timing knobs for one flow.

    Attributes:
        poll_interval_s: Delay between status polls.
        timeout_s: Budget for the proof-id wait, and separately for polling.
        id_poll_interval_s: How often the proof-id wait re-checks.
    """

    poll_interval_s: float = 3.0
    timeout_s: float = 60.0
    id_poll_interval_s: float = 0.05


class ProofFlow:
    """Drives proof generation over one agent channel.

    Args:
        channel: Pipe to the agent.
        options: Timing knobs.
        debug: Log agent traffic at DEBUG.
        clock: Monotonic clock in seconds. Inject for tests.
    """

    def __init__(
        self,
        channel: AgentChannel,
        options: ProofFlowOptions | None = None,
        *,
        debug: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._options = options or ProofFlowOptions()
        self._clock = clock
        self._proof_id: str | None = None
        self._last_request: NotaryRequest | None = None
        self._state = FlowState.IDLE
        self._running = False
        self._disposed = asyncio.Event()
        self._transport = AgentTransport(
            channel,
            AgentCallbacks(on_proof_id=self._on_proof_id, on_proof=self._on_proof),
            debug=debug,
        )

    @property
    def state(self) -> FlowState:
        return self._state

    @property
    def transport(self) -> AgentTransport:
        return self._transport

    def dispose(self) -> None:
        if self._disposed.is_set():
            return
        self._transport.dispose()
        self._disposed.set()

    # -----------------------------------------------------------------
    # Inbound hooks (single writer for proof id / last request)
    # -----------------------------------------------------------------

    def _on_proof_id(self, proof_id: str | None) -> None:
        self._proof_id = proof_id

    def _on_proof(self, request: NotaryRequest | None) -> None:
        if request is not None and request.id and request.id != self._proof_id:
            logger.debug("ignoring status for proof %s while tracking %s", request.id, self._proof_id)
            return
        self._last_request = request

    # -----------------------------------------------------------------
    # Waiting primitives
    # -----------------------------------------------------------------

    async def _sleep(self, seconds: float) -> None:
        """Sleep, but wake early and raise if the flow is disposed."""
        if self._disposed.is_set():
            raise FlowDisposedError()
        try:
            await asyncio.wait_for(self._disposed.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return
        raise FlowDisposedError()

    async def _wait_for(self, condition: Callable[[], bool], timeout_s: float, message: str) -> None:
        start = self._clock()
        while not condition():
            if self._clock() - start > timeout_s:
                raise WaitTimeoutError(message, details={"timeout_s": timeout_s})
            await self._sleep(self._options.id_poll_interval_s)

    # -----------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------

    async def generate_proofs(
        self,
        platform: str,
        intent_ref: str,
        item_index: int,
        required_count: int = 1,
        on_progress: ProgressCallback | None = None,
    ) -> list[Proof]:
        """Generate ``required_count`` proofs for one payment, in order.

        Args:
            platform: Agent platform identifier (e.g. "wise", "chase").
            intent_ref: Intent reference in the form the agent expects.
            item_index: ``original_index`` of the payment to prove.
            required_count: Number of sub-proofs (>= 1).
            on_progress: Optional observer for stage changes.

        Returns:
            Proofs in request order.

        Raises:
            FlowBusyError: Another call is already running on this flow.
            TransportUnavailableError: The agent cannot be reached.
            WaitTimeoutError: No proof id, or no terminal status, in time.
            ProofGenerationError: Agent error or unparseable payload.
            FlowDisposedError: The flow was disposed mid-wait.
        """
        if self._disposed.is_set():
            raise FlowDisposedError("proof flow is disposed")
        if self._running:
            raise FlowBusyError()
        if required_count < 1:
            raise ValidationError(f"required_count must be >= 1, got {required_count}", field="required_count")
        if not self._transport.is_available():
            raise TransportUnavailableError()

        self._running = True
        try:
            proofs: list[Proof] = []
            for index in range(required_count):
                try:
                    proofs.append(await self._generate_one(platform, intent_ref, item_index, index, on_progress))
                except PeerproofError as e:
                    self._state = FlowState.ERROR
                    logger.debug("sub-proof %d failed: %s", index, e)
                    _emit(on_progress, ProofStage.PROOF_ERROR, index, e.message)
                    raise
            return proofs
        finally:
            self._running = False

    async def _generate_one(
        self,
        platform: str,
        intent_ref: str,
        item_index: int,
        index: int,
        on_progress: ProgressCallback | None,
    ) -> Proof:
        options = self._options
        self._proof_id = None
        self._last_request = None

        self._state = FlowState.REQUEST_SENT
        self._transport.request_proof(platform, intent_ref, item_index, index if index > 0 else None)

        self._state = FlowState.AWAITING_ID
        _emit(on_progress, ProofStage.WAITING_PROOF_ID, index)
        await self._wait_for(lambda: bool(self._proof_id), options.timeout_s, "Timed out waiting for proof id")

        self._state = FlowState.POLLING
        _emit(on_progress, ProofStage.POLLING_PROOF, index)
        start = self._clock()
        self._transport.poll_proof(self._proof_id)
        while True:
            if self._clock() - start > options.timeout_s:
                raise WaitTimeoutError("Timed out waiting for proof", details={"timeout_s": options.timeout_s})
            request = self._last_request
            status = request.status if request is not None else None
            if request is not None and status == ProofStatus.SUCCESS:
                try:
                    proof = parse_agent_proof(request.proof)
                except ValidationError as e:
                    raise ProofGenerationError(
                        f"Unable to parse agent proof: {e.message}",
                        details={"proof_index": index},
                    ) from e
                self._state = FlowState.SUCCESS
                _emit(on_progress, ProofStage.PROOF_SUCCESS, index)
                return proof
            if status == ProofStatus.ERROR:
                raise ProofGenerationError(
                    "Agent returned error generating proof",
                    details={"proof_index": index, "proof_id": self._proof_id},
                )
            await self._sleep(options.poll_interval_s)
            self._transport.poll_proof(self._proof_id)


def _emit(
    on_progress: ProgressCallback | None,
    stage: ProofStage,
    index: int,
    message: str | None = None,
) -> None:
    if on_progress is not None:
        on_progress(ProofProgress(stage=stage, proof_index=index, message=message))
