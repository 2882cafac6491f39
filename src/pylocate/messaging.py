"""Cross-node messaging: topics, the transport protocol and an in-process loopback."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable
from enum import StrEnum
from typing import Any, Protocol

from pylocate.exceptions import LocatorTransportError

_logger = logging.getLogger(__name__)

MessageHandler = Callable[[Any], None]


class Topic(StrEnum):
    REQUEST_SCAN = "request-scan"
    SCAN_RESULT = "scan-result"
    LOCATE_RESULT = "locate-result"
    LOCATE_FAILED = "locate-failed"
    REQUEST_TIMEZONE = "request-timezone"
    TIMEZONE_RESULT = "timezone-result"


class MessageTransport(Protocol):
    """Duck-typed channel between the agent and the device.

    Implementations must deliver messages in send order per topic, invoke
    handlers on the receiving node's event loop, and treat ``send`` as
    fire-and-forget. Payloads are JSON-compatible values.
    """

    def on_message(self, topic: str, handler: MessageHandler) -> None:
        ...

    def send(self, topic: str, payload: Any) -> None:
        ...


class LoopbackTransport:
    """One end of an in-process transport pair.

    Payloads are JSON round-tripped on send, so the receiver never shares
    objects with the sender. Delivery is scheduled with ``call_soon`` on
    the event loop, which keeps sends asynchronous and ordered.

    Usage::

        agent_side, device_side = LoopbackTransport.pair()
    """

    def __init__(self, *, name: str = "loopback", loop: asyncio.AbstractEventLoop | None = None) -> None:
        self.name = name
        self._loop = loop
        self._peer: LoopbackTransport | None = None
        self._handlers: dict[str, MessageHandler] = {}

    @classmethod
    def pair(cls, loop: asyncio.AbstractEventLoop | None = None) -> tuple[LoopbackTransport, LoopbackTransport]:
        """Two linked ends: ``(agent_side, device_side)``."""
        agent_side = cls(name="agent", loop=loop)
        device_side = cls(name="device", loop=loop)
        agent_side._peer = device_side
        device_side._peer = agent_side
        return agent_side, device_side

    def on_message(self, topic: str, handler: MessageHandler) -> None:
        self._handlers[str(topic)] = handler

    def send(self, topic: str, payload: Any) -> None:
        peer = self._peer
        if peer is None:
            raise LocatorTransportError(f"{self.name} transport has no peer")
        try:
            data = json.loads(json.dumps(payload))
        except (TypeError, ValueError) as exc:
            raise LocatorTransportError(f"payload for {topic} is not JSON-serializable") from exc
        loop = self._loop or asyncio.get_running_loop()
        loop.call_soon(peer._dispatch, str(topic), data)

    def _dispatch(self, topic: str, payload: Any) -> None:
        handler = self._handlers.get(topic)
        if handler is None:
            _logger.debug("%s: no handler for topic=%s, dropping", self.name, topic)
            return
        try:
            handler(payload)
        except Exception:
            _logger.warning("%s: handler for topic=%s failed", self.name, topic, exc_info=True)
