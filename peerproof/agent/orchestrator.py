"""
Orchestrator — list payments, prove one, assemble submittable bytes.

Composes MetadataCache, ProofFlow and the platform catalog:

    request_and_list_payments(platform, variant)
        open the agent's collection surface, wait for the platform's
        metadata push, return visible payments newest first.

    generate_proofs(platform, intent_hash, item_index, variant)
        run a fresh ProofFlow for the variant's required sub-proof count.

    assemble(proofs, method_tag)
        multi-proof ABI encoding, optionally method-tag packed.

    authenticate_and_prove(platform, options)
        all of the above, with a callback per phase. A proof-phase
        failure goes to ``on_proof_error`` and into the result; the
        payments already delivered stay valid.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Sequence

from peerproof import platforms
from peerproof.agent.channel import AgentChannel
from peerproof.agent.flow import ProgressCallback, ProofFlow, ProofFlowOptions, ProofProgress
from peerproof.agent.messages import PaymentMetadata
from peerproof.agent.metadata import (
    MetadataCache,
    MetadataRecord,
    filter_visible,
    sort_by_date_desc,
)
from peerproof.codec.proof import Proof, assemble_proof_bytes, intent_hash_to_decimal
from peerproof.errors import (
    FlowBusyError,
    FlowDisposedError,
    PeerproofError,
    TransportUnavailableError,
    WaitTimeoutError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrchestratorOptions:
    """Knobs for one orchestrator instance.

    Attributes:
        debug: Log agent traffic and progress at DEBUG.
        version_poll_s: Agent version ping interval; 0 disables.
        metadata_timeout_s: How long to wait for a metadata push.
        metadata_poll_interval_s: Cache re-check interval while waiting.
        proof: Timing knobs handed to every ProofFlow.
    """

    debug: bool = False
    version_poll_s: float = 5.0
    metadata_timeout_s: float = 15.0
    metadata_poll_interval_s: float = 0.25
    proof: ProofFlowOptions = field(default_factory=ProofFlowOptions)


@dataclass(frozen=True)
class AuthenticateOptions:
    """Inputs and callbacks for ``authenticate_and_prove``.

    Proof generation runs only when ``auto_generate_proof`` is set and
    ``intent_hash`` and ``item_index`` are known. ``item_index`` may be
    left out when ``select_payment`` picks one from the listed payments.
    """

    variant_index: int | None = None
    intent_hash: str | None = None
    item_index: int | None = None
    method_tag: int | None = None
    auto_generate_proof: bool = False
    select_payment: Callable[[list[PaymentMetadata]], PaymentMetadata | None] | None = None
    on_payments_received: Callable[[list[PaymentMetadata]], None] | None = None
    on_proof_progress: ProgressCallback | None = None
    on_proof_success: Callable[[list[Proof], str], None] | None = None
    on_proof_error: Callable[[PeerproofError], None] | None = None


@dataclass(frozen=True)
class AuthenticateResult:
    payments: list[PaymentMetadata]
    proofs: list[Proof] = field(default_factory=list)
    proof_bytes: str | None = None
    error: PeerproofError | None = None


class Orchestrator:
    """End-to-end agent workflow for one host.

    Args:
        channel: Pipe to the agent.
        options: Orchestrator knobs.
        now_ms: Wall clock in epoch ms, for metadata expiry.
        clock: Monotonic clock in seconds, for wait loops.
    """

    def __init__(
        self,
        channel: AgentChannel,
        options: OrchestratorOptions | None = None,
        *,
        now_ms: Callable[[], int] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._channel = channel
        self._options = options or OrchestratorOptions()
        self._clock = clock
        cache_kwargs = {"now_ms": now_ms} if now_ms is not None else {}
        self._metadata = MetadataCache(
            channel,
            version_poll_s=self._options.version_poll_s,
            debug=self._options.debug,
            **cache_kwargs,
        )
        self._disposed = asyncio.Event()
        self._proving = False

    @property
    def metadata(self) -> MetadataCache:
        return self._metadata

    def dispose(self) -> None:
        if self._disposed.is_set():
            return
        self._disposed.set()
        self._metadata.dispose()

    # -----------------------------------------------------------------
    # Payments
    # -----------------------------------------------------------------

    async def request_and_list_payments(
        self,
        platform: str,
        variant_index: int | None = None,
    ) -> list[PaymentMetadata]:
        """Ask the agent for a platform's payments and return them.

        Returns:
            Visible payments, newest first.

        Raises:
            ValidationError: Unknown platform or variant.
            TransportUnavailableError: The agent cannot be reached.
            WaitTimeoutError: No metadata arrived within the timeout.
            FlowDisposedError: The orchestrator was disposed mid-wait.
        """
        method = platforms.resolve(platform, variant_index)
        if not self._metadata.transport.is_available():
            raise TransportUnavailableError()
        self._metadata.ensure_version_poll()
        self._warn_if_outdated(method)
        self._metadata.request_metadata(method.action_identifier, method.variant_identifier)

        keys = (platform,) if method.variant_identifier == platform else (platform, method.variant_identifier)
        record = await self._wait_for_metadata(keys, self._options.metadata_timeout_s)
        payments = sort_by_date_desc(filter_visible(record.entries))
        if self._options.debug:
            logger.debug("received payments for %s: count=%d", platform, len(payments))
        return payments

    async def _wait_for_metadata(self, keys: tuple[str, ...], timeout_s: float) -> MetadataRecord:
        """Resolve on the first push under any of ``keys``.

        The agent may key a push by the platform or by the variant it
        opened (e.g. "zelle" or "chase"); either satisfies the wait.

        Subscribes for pushes and also re-checks the cache every
        ``metadata_poll_interval_s``, whichever sees the record first.
        A cached record that has not expired satisfies the wait at once.
        """
        loop = asyncio.get_running_loop()
        arrived: asyncio.Future[MetadataRecord] = loop.create_future()

        def on_push(pushed_platform: str, record: MetadataRecord) -> None:
            if pushed_platform in keys and not arrived.done():
                arrived.set_result(record)

        unsubscribe = self._metadata.subscribe(on_push)
        disposed = asyncio.ensure_future(self._disposed.wait())
        try:
            start = self._clock()
            while True:
                if arrived.done():
                    return arrived.result()
                for key in keys:
                    cached = self._metadata.get(key)
                    if cached is not None and not self._metadata.is_expired(key):
                        return cached
                if self._clock() - start > timeout_s:
                    raise WaitTimeoutError(
                        "Timed out waiting for metadata",
                        details={"platform": keys[0], "timeout_s": timeout_s},
                    )
                await asyncio.wait(
                    {arrived, disposed},
                    timeout=self._options.metadata_poll_interval_s,
                    return_when=asyncio.FIRST_COMPLETED,
                )
                if disposed.done():
                    raise FlowDisposedError("orchestrator disposed while waiting for metadata")
        finally:
            unsubscribe()
            disposed.cancel()

    def _warn_if_outdated(self, method: platforms.PlatformMethod) -> None:
        version = self._metadata.transport.version
        if version and not platforms.is_version_at_least(version, method.min_agent_version):
            logger.warning(
                "agent version %s is older than %s required for %s",
                version,
                method.min_agent_version,
                method.variant_identifier,
            )

    # -----------------------------------------------------------------
    # Proofs
    # -----------------------------------------------------------------

    async def generate_proofs(
        self,
        platform: str,
        intent_hash: str,
        item_index: int,
        variant_index: int | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> list[Proof]:
        """Generate every sub-proof the platform variant needs.

        ``intent_hash`` is the 0x intent hash; it is converted to the
        decimal form the agent expects. One call at a time per
        orchestrator: an overlapping call raises FlowBusyError.
        """
        method = platforms.resolve(platform, variant_index)
        intent_ref = intent_hash_to_decimal(intent_hash)
        if self._disposed.is_set():
            raise FlowDisposedError("orchestrator is disposed")
        # Flows share the channel and agent replies carry no request token.
        if self._proving:
            raise FlowBusyError()

        def progress(event: ProofProgress) -> None:
            if self._options.debug:
                logger.debug("proof progress: %s", event)
            if on_progress is not None:
                on_progress(event)

        flow = ProofFlow(self._channel, self._options.proof, debug=self._options.debug, clock=self._clock)
        waiter = asyncio.ensure_future(self._disposed.wait())
        waiter.add_done_callback(lambda _: flow.dispose())
        self._proving = True
        try:
            return await flow.generate_proofs(
                platform,
                intent_ref,
                item_index,
                method.required_proof_count,
                progress,
            )
        finally:
            self._proving = False
            waiter.cancel()
            flow.dispose()

    def assemble(self, proofs: Sequence[Proof], method_tag: int | None = None) -> str:
        return assemble_proof_bytes(proofs, method_tag)

    # -----------------------------------------------------------------
    # Combined
    # -----------------------------------------------------------------

    async def authenticate_and_prove(
        self,
        platform: str,
        options: AuthenticateOptions | None = None,
    ) -> AuthenticateResult:
        """List payments, then optionally prove one and assemble bytes.

        Payment-phase errors raise. Proof-phase errors are reported via
        ``on_proof_error`` and ``AuthenticateResult.error``.
        """
        options = options or AuthenticateOptions()
        payments = await self.request_and_list_payments(platform, options.variant_index)
        if options.on_payments_received is not None:
            options.on_payments_received(payments)

        if not options.auto_generate_proof or options.intent_hash is None:
            return AuthenticateResult(payments=payments)

        item_index = options.item_index
        if item_index is None and options.select_payment is not None:
            chosen = options.select_payment(payments)
            item_index = chosen.original_index if chosen is not None else None
        if item_index is None:
            return AuthenticateResult(payments=payments)

        try:
            proofs = await self.generate_proofs(
                platform,
                options.intent_hash,
                item_index,
                options.variant_index,
                options.on_proof_progress,
            )
            proof_bytes = self.assemble(proofs, options.method_tag)
        except PeerproofError as e:
            logger.warning("proof phase failed for %s: %s", platform, e)
            if options.on_proof_error is not None:
                options.on_proof_error(e)
            return AuthenticateResult(payments=payments, error=e)

        if options.on_proof_success is not None:
            options.on_proof_success(proofs, proof_bytes)
        return AuthenticateResult(payments=payments, proofs=proofs, proof_bytes=proof_bytes)
