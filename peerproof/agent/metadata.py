"""
MetadataCache — latest payment metadata pushed by the agent, per platform.

The agent pushes ``metadata_messages_response`` whenever the user opens
a platform's collection surface. The cache keeps the most recent push
per platform as a MetadataRecord and notifies subscribers, in
subscription order, on every push.

Expiry:
    ``expires_at`` is epoch milliseconds; 0 means never. A record is
    expired once ``now_ms >= expires_at``. A missing record counts as
    expired.

Version poll:
    Optionally pings the agent for its version every ``version_poll_s``
    seconds. Advisory only, used to detect that an agent is installed;
    metadata delivery does not depend on it. The poll needs a running
    event loop, so it starts on construction when one exists and
    otherwise on the first ``ensure_version_poll()``.
"""

from __future__ import annotations

import asyncio
import logging
import math
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Iterable, Sequence

from peerproof.agent.channel import AgentChannel
from peerproof.agent.messages import MetadataPush, PaymentMetadata
from peerproof.agent.transport import AgentCallbacks, AgentTransport
from peerproof.errors import TransportUnavailableError

logger = logging.getLogger(__name__)


def _default_now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class MetadataRecord:
    """One push worth of payments for a platform.

    Attributes:
        entries: Payments in the order the agent sent them.
        expires_at: Epoch ms after which the list is stale (0 = never).
        received_at: Epoch ms when the cache stored it.
    """

    entries: tuple[PaymentMetadata, ...] = field(default_factory=tuple)
    expires_at: int = 0
    received_at: int = 0

    def is_expired(self, now_ms: int) -> bool:
        return self.expires_at > 0 and now_ms >= self.expires_at


Subscriber = Callable[[str, MetadataRecord], None]


class MetadataCache:
    """Per-platform cache of agent metadata pushes.

    Args:
        channel: Pipe to the agent.
        version_poll_s: Version ping interval in seconds; 0 disables.
        debug: Log agent traffic at DEBUG.
        now_ms: Wall clock in epoch ms. Inject for tests.
    """

    def __init__(
        self,
        channel: AgentChannel,
        *,
        version_poll_s: float = 5.0,
        debug: bool = False,
        now_ms: Callable[[], int] = _default_now_ms,
    ) -> None:
        self._now_ms = now_ms
        self._records: dict[str, MetadataRecord] = {}
        self._subscribers: list[Subscriber] = []
        self._version_poll_s = max(0.0, version_poll_s)
        self._version_task: asyncio.Task[None] | None = None
        self._disposed = False
        self._transport = AgentTransport(
            channel,
            AgentCallbacks(on_metadata=self._on_metadata),
            debug=debug,
        )
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("no running event loop; version poll deferred")
        else:
            self.ensure_version_poll()

    @property
    def transport(self) -> AgentTransport:
        return self._transport

    # -----------------------------------------------------------------
    # Subscription
    # -----------------------------------------------------------------

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register ``callback``; returns a function that unregisters it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _publish(self, platform: str, record: MetadataRecord) -> None:
        for callback in list(self._subscribers):
            callback(platform, record)

    # -----------------------------------------------------------------
    # Records
    # -----------------------------------------------------------------

    def _on_metadata(self, push: MetadataPush) -> None:
        self.ingest(push.platform, push.entries, push.expires_at)

    def ingest(self, platform: str, entries: Iterable[PaymentMetadata], expires_at: int) -> MetadataRecord:
        """Store a push for ``platform`` and notify subscribers.

        Also the entry point for hosts without a live agent (and tests).
        """
        record = MetadataRecord(
            entries=tuple(entries),
            expires_at=int(expires_at or 0),
            received_at=self._now_ms(),
        )
        self._records[platform] = record
        logger.debug("metadata for %s: %d entries", platform, len(record.entries))
        self._publish(platform, record)
        return record

    def get(self, platform: str) -> MetadataRecord | None:
        return self._records.get(platform)

    def is_expired(self, platform: str) -> bool:
        record = self._records.get(platform)
        if record is None:
            return True
        return record.is_expired(self._now_ms())

    def clear(self, platform: str) -> None:
        self._records.pop(platform, None)

    def request_metadata(self, action_identifier: str, platform: str) -> None:
        """Open the agent's collection surface for ``platform``."""
        self._transport.open_collection_surface(action_identifier, platform)

    # -----------------------------------------------------------------
    # Version poll
    # -----------------------------------------------------------------

    def ensure_version_poll(self) -> None:
        """Start the version poll if enabled and not already running."""
        if self._disposed or self._version_poll_s <= 0 or self._version_task is not None:
            return
        if not self._transport.is_available():
            return
        self._transport.request_version()
        self._version_task = asyncio.get_running_loop().create_task(self._version_poll())

    async def _version_poll(self) -> None:
        while not self._disposed:
            await asyncio.sleep(self._version_poll_s)
            try:
                self._transport.request_version()
            except TransportUnavailableError:
                logger.debug("agent unavailable during version poll")

    def dispose(self) -> None:
        """Stop the poll, detach from the channel, drop subscribers and records."""
        if self._disposed:
            return
        self._disposed = True
        if self._version_task is not None:
            self._version_task.cancel()
            self._version_task = None
        self._transport.dispose()
        self._subscribers.clear()
        self._records.clear()


# =========================================================================
# Pure helpers over metadata lists
# =========================================================================


# Numeric dates above this are epoch milliseconds rather than seconds.
_EPOCH_MS_THRESHOLD = 1e11


def _date_key(entry: PaymentMetadata) -> float:
    """Sort key for ``entry.date`` in epoch seconds.

    Numeric strings are epoch seconds, or milliseconds when larger than
    ``_EPOCH_MS_THRESHOLD``. Unparseable dates sort as earliest.
    """
    raw = (entry.date or "").strip()
    if not raw:
        return -math.inf
    try:
        value = float(raw)
    except ValueError:
        pass
    else:
        return value / 1000 if abs(value) > _EPOCH_MS_THRESHOLD else value
    try:
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return -math.inf
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.timestamp()


def filter_visible(entries: Sequence[PaymentMetadata]) -> list[PaymentMetadata]:
    return [e for e in entries if not e.hidden]


def sort_by_date_desc(entries: Sequence[PaymentMetadata]) -> list[PaymentMetadata]:
    """Newest first. Stable for equal dates."""
    return sorted(entries, key=_date_key, reverse=True)


def select_by_original_index(entries: Sequence[PaymentMetadata], original_index: int) -> PaymentMetadata | None:
    for entry in entries:
        if entry.original_index == original_index:
            return entry
    return None
