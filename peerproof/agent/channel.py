"""
Channel protocol — the seam between the SDK and the proof agent.

The agent lives out of process (a browser extension, a desktop helper,
a test double). The SDK only needs a fire-and-forget ``post`` and a way
to hear back, so that is all the protocol asks for. Transports depend
on this protocol, not on any concrete bridge.

Concrete implementations:
    - LoopbackChannel (in-process; an embedded agent or tests push
      inbound messages with ``deliver``)
"""

from __future__ import annotations

from typing import Any, Callable, Protocol, runtime_checkable

Listener = Callable[[dict[str, Any]], None]


@runtime_checkable
class AgentChannel(Protocol):
    """Bidirectional message pipe to the agent."""

    def is_open(self) -> bool:
        """Whether messages can currently reach the agent."""
        ...

    def post(self, message: dict[str, Any]) -> None:
        """Send one message. Never waits for a reply."""
        ...

    def add_listener(self, listener: Listener) -> None:
        """Register a callback for every inbound message."""
        ...

    def remove_listener(self, listener: Listener) -> None:
        """Unregister a callback. Unknown listeners are ignored."""
        ...


class LoopbackChannel:
    """In-process channel.

    Outbound messages are appended to ``sent`` and handed to the optional
    ``responder`` (the embedded agent). Inbound messages enter through
    ``deliver`` and fan out to listeners in registration order.

    Args:
        responder: Called with each outbound message. May call
            ``deliver`` (directly or via the event loop) to answer.
        open: Initial availability.
    """

    def __init__(self, responder: Callable[[dict[str, Any]], None] | None = None, *, open: bool = True) -> None:
        self._responder = responder
        self._open = open
        self._listeners: list[Listener] = []
        self.sent: list[dict[str, Any]] = []

    def is_open(self) -> bool:
        return self._open

    def close(self) -> None:
        self._open = False

    def post(self, message: dict[str, Any]) -> None:
        self.sent.append(dict(message))
        if self._responder is not None:
            self._responder(dict(message))

    def add_listener(self, listener: Listener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def deliver(self, message: dict[str, Any]) -> None:
        """Push one inbound message to every current listener."""
        for listener in list(self._listeners):
            listener(message)
