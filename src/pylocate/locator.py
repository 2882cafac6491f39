"""Host-facing façade over the agent and device nodes."""

from __future__ import annotations

import asyncio
from enum import StrEnum
from typing import Any

import aiohttp

from pylocate._http import HttpTransport
from pylocate._node import Clock, LocatorNode, Sleep, _localnow
from pylocate.agent import EdgeAgent
from pylocate.config import ApiKeySet, LocatorConfig
from pylocate.device import EdgeDevice
from pylocate.exceptions import LocatorConfigError
from pylocate.messaging import MessageTransport
from pylocate.scanner import WifiScanner
from pylocate.state.machine import CompletionCallback, LocateState


class LocatorRole(StrEnum):
    AGENT = "agent"
    DEVICE = "device"


class Locator:
    """Locate a device from its WiFi surroundings.

    One ``Locator`` runs on each node; the role picks the behaviour.

    Usage::

        async with Locator.agent(transport, api_keys="KEY") as locator:
            locator.locate(on_complete=lambda: print(locator.get_location()))

    Parameters
    ----------
    role : LocatorRole or str
        ``"agent"`` (relay node, talks to the provider) or ``"device"``
        (edge node, scans WiFi).
    transport : MessageTransport
        Channel to the peer node.
    config : LocatorConfig or None
        Node configuration. The agent needs ``api_keys``.
    scanner : WifiScanner or None
        Required on the device.
    http_transport, http_session
        Agent only: override the provider HTTP transport or share an
        ``aiohttp`` session.
    """

    def __init__(
        self,
        role: LocatorRole | str,
        transport: MessageTransport,
        *,
        config: LocatorConfig | None = None,
        scanner: WifiScanner | None = None,
        http_transport: HttpTransport | None = None,
        http_session: aiohttp.ClientSession | None = None,
        sleep: Sleep = asyncio.sleep,
        clock: Clock = _localnow,
    ) -> None:
        try:
            self._role = LocatorRole(role)
        except ValueError as exc:
            raise LocatorConfigError(f"unknown role {role!r}; expected 'agent' or 'device'") from exc
        config = config or LocatorConfig()

        self._node: LocatorNode
        if self._role == LocatorRole.AGENT:
            self._node = EdgeAgent(
                transport,
                config,
                http_transport=http_transport,
                http_session=http_session,
                sleep=sleep,
                clock=clock,
            )
        else:
            if scanner is None:
                raise LocatorConfigError("the device role needs a WiFi scanner")
            self._node = EdgeDevice(transport, scanner, config, sleep=sleep, clock=clock)

    @classmethod
    def agent(
        cls,
        transport: MessageTransport,
        *,
        api_keys: str | dict[str, str] | ApiKeySet,
        debug: bool = False,
        **kwargs: Any,
    ) -> Locator:
        """Agent-side locator from a single key or a three-key table."""
        config = LocatorConfig(api_keys=ApiKeySet.from_value(api_keys), debug=debug)
        return cls(LocatorRole.AGENT, transport, config=config, **kwargs)

    @classmethod
    def device(cls, transport: MessageTransport, scanner: WifiScanner, **kwargs: Any) -> Locator:
        """Device-side locator."""
        return cls(LocatorRole.DEVICE, transport, scanner=scanner, **kwargs)

    async def __aenter__(self) -> Locator:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def close(self) -> None:
        await self._node.close()

    @property
    def role(self) -> LocatorRole:
        return self._role

    @property
    def node(self) -> LocatorNode:
        return self._node

    @property
    def state(self) -> LocateState:
        return self._node.state

    def locate(self, use_previous: bool = True, on_complete: CompletionCallback | None = None) -> None:
        """Start a locate cycle; a no-op while one is in flight."""
        self._node.locate(use_previous, on_complete)

    async def async_locate(self, use_previous: bool = True) -> dict[str, Any]:
        """Locate and return :meth:`get_location` once the cycle ends."""
        return await self._node.async_locate(use_previous)

    def refresh_timezone(self, on_complete: CompletionCallback | None = None) -> None:
        """Re-resolve only the timezone for the current location."""
        self._node.refresh_timezone(on_complete)

    def get_location(self) -> dict[str, Any]:
        return self._node.get_location()

    def get_timezone(self) -> dict[str, Any]:
        return self._node.get_timezone()
