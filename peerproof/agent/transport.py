"""
AgentTransport — the low-level conversation with the proof agent.

Sends are fire-and-forget. Replies are matched by message kind, not by a
request token, so one transport tracks at most one proof request at a
time: ``request_proof`` forgets the previous proof id, and the next
``fetch_proof_request_id_response`` fills it in.

Inbound dispatch is one handler per ``InboundKind``; messages are typed
by ``peerproof.agent.messages.parse_inbound`` before any handler sees
them. A malformed message of a known kind goes to ``on_error`` and is
otherwise dropped.

With ``debug=True`` every outbound and inbound message is logged at
DEBUG on this module's logger.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable

from peerproof.agent.channel import AgentChannel
from peerproof.agent.messages import (
    InboundMessage,
    MetadataPush,
    NotaryRequest,
    ProofIdResponse,
    ProofStatusResponse,
    VersionResponse,
    fetch_proof_message,
    fetch_version_message,
    generate_proof_message,
    open_new_tab_message,
    parse_inbound,
)
from peerproof.errors import PeerproofError, TransportUnavailableError

logger = logging.getLogger(__name__)


@dataclass
class AgentCallbacks:
    """Optional hooks, one per inbound kind plus errors."""

    on_version: Callable[[str | None], None] | None = None
    on_metadata: Callable[[MetadataPush], None] | None = None
    on_proof_id: Callable[[str | None], None] | None = None
    on_proof: Callable[[NotaryRequest | None], None] | None = None
    on_error: Callable[[PeerproofError], None] | None = None


class AgentTransport:
    """Message-level client for one agent channel.

    Args:
        channel: The pipe to the agent.
        callbacks: Hooks fired on inbound messages.
        debug: Log every message at DEBUG.
    """

    def __init__(
        self,
        channel: AgentChannel,
        callbacks: AgentCallbacks | None = None,
        *,
        debug: bool = False,
    ) -> None:
        self._channel = channel
        self._callbacks = callbacks or AgentCallbacks()
        self._debug = debug
        self._version: str | None = None
        self._proof_id: str | None = None
        self._disposed = False
        self._handlers: dict[type, Callable[[Any], None]] = {
            VersionResponse: self._on_version,
            MetadataPush: self._on_metadata,
            ProofIdResponse: self._on_proof_id,
            ProofStatusResponse: self._on_proof_status,
        }
        self._channel.add_listener(self._handle_message)

    # -----------------------------------------------------------------
    # State
    # -----------------------------------------------------------------

    def is_available(self) -> bool:
        return not self._disposed and self._channel.is_open()

    def is_installed(self) -> bool:
        """True once the agent has answered a version request."""
        return bool(self._version)

    @property
    def version(self) -> str | None:
        return self._version

    @property
    def proof_id(self) -> str | None:
        return self._proof_id

    def dispose(self) -> None:
        """Detach from the channel. No callback fires afterwards."""
        if self._disposed:
            return
        self._disposed = True
        self._channel.remove_listener(self._handle_message)

    # -----------------------------------------------------------------
    # Outbound
    # -----------------------------------------------------------------

    def _post(self, message: dict[str, Any]) -> None:
        if not self.is_available():
            raise TransportUnavailableError(details={"type": message.get("type")})
        if self._debug:
            logger.debug("agent <- %s", message)
        self._channel.post(message)

    def request_version(self) -> None:
        self._post(fetch_version_message())

    def open_collection_surface(self, action_identifier: str, platform: str) -> None:
        self._post(open_new_tab_message(action_identifier, platform))

    def request_proof(
        self,
        platform: str,
        intent_ref: str,
        item_index: int,
        sub_proof_index: int | None = None,
    ) -> None:
        """Ask for one proof. Forgets any previously tracked proof id."""
        self._proof_id = None
        self._post(generate_proof_message(platform, intent_ref, item_index, sub_proof_index))

    def poll_proof(self, last_known_id: str | None = None) -> bool:
        """Ask for the status of a proof request.

        Uses the tracked proof id unless one is given. Returns False
        (and sends nothing) when there is no id to ask about yet.
        """
        proof_id = last_known_id or self._proof_id
        if not proof_id:
            return False
        self._post(fetch_proof_message(proof_id))
        return True

    # -----------------------------------------------------------------
    # Inbound
    # -----------------------------------------------------------------

    def _handle_message(self, raw: dict[str, Any]) -> None:
        if self._disposed:
            return
        try:
            message = parse_inbound(raw)
        except PeerproofError as e:
            logger.debug("dropping malformed agent message: %s", e)
            if self._callbacks.on_error is not None:
                self._callbacks.on_error(e)
            return
        if message is None:
            return
        if self._debug:
            logger.debug("agent -> %s", raw)
        self._dispatch(message)

    def _dispatch(self, message: InboundMessage) -> None:
        self._handlers[type(message)](message)

    def _on_version(self, message: VersionResponse) -> None:
        self._version = message.version
        if self._callbacks.on_version is not None:
            self._callbacks.on_version(message.version)

    def _on_metadata(self, message: MetadataPush) -> None:
        if self._callbacks.on_metadata is not None:
            self._callbacks.on_metadata(message)

    def _on_proof_id(self, message: ProofIdResponse) -> None:
        self._proof_id = message.proof_id
        if self._callbacks.on_proof_id is not None:
            self._callbacks.on_proof_id(message.proof_id)

    def _on_proof_status(self, message: ProofStatusResponse) -> None:
        if self._callbacks.on_proof is not None:
            self._callbacks.on_proof(message.request)
