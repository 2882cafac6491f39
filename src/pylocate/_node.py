"""Behaviour shared by the agent and the device node."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Coroutine
from datetime import datetime
from typing import Any

from pylocate.config import LocatorConfig
from pylocate.exceptions import LocatorTransportError
from pylocate.messaging import MessageTransport
from pylocate.models.location import LocationResult
from pylocate.models.network import NetworkObservation
from pylocate.models.timezone import TimezoneResult
from pylocate.state.machine import CompletionCallback, CycleState, LocateState, fire_callbacks

_logger = logging.getLogger(__name__)

NEVER_LOCATED = "Location not yet determined; call locate() first"
LOCATING = "Location lookup in progress"
NO_NETWORKS = "No WiFi networks available"
TIMEZONE_NEVER = "Timezone not yet determined"
TIMEZONE_PENDING = "Timezone lookup in progress"
TIMEZONE_NO_LOCATION = "Timezone needs a location; call locate() first"

Sleep = Callable[[float], Awaitable[None]]
Clock = Callable[[], datetime]


def _localnow() -> datetime:
    return datetime.now().astimezone()


class LocatorNode(ABC):
    """State and accessors common to both roles.

    Subclasses drive the transitions; this class owns the cycle state,
    the result slots, background tasks and callback dispatch.
    """

    role: str = ""

    def __init__(
        self,
        transport: MessageTransport,
        config: LocatorConfig,
        *,
        sleep: Sleep = asyncio.sleep,
        clock: Clock = _localnow,
    ) -> None:
        self._transport = transport
        self._config = config
        self._sleep = sleep
        self._clock = clock
        self._cycle = CycleState()
        self._networks: list[NetworkObservation] = []
        self._location: LocationResult | None = None
        self._timezone: TimezoneResult | None = None
        self._timezone_error: str | None = None
        self._timezone_pending = False
        self._timezone_callback: CompletionCallback | None = None
        self._tasks: set[asyncio.Task[Any]] = set()

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> LocatorNode:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Cancel outstanding work. A cycle cut short here fires no callback."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()

    # ------------------------------------------------------------------
    # Public state
    # ------------------------------------------------------------------

    @property
    def state(self) -> LocateState:
        return self._cycle.state

    @property
    def last_error(self) -> str | None:
        """Terminal error of the last cycle, ``None`` after a success."""
        return self._cycle.last_error

    @property
    def cached_networks(self) -> list[NetworkObservation]:
        return list(self._networks)

    @abstractmethod
    def locate(self, use_previous: bool = True, on_complete: CompletionCallback | None = None) -> None:
        """Start a locate cycle unless one is already in flight."""

    @abstractmethod
    def refresh_timezone(self, on_complete: CompletionCallback | None = None) -> None:
        """Re-resolve only the timezone for the current location."""

    async def async_locate(self, use_previous: bool = True) -> dict[str, Any]:
        """Run (or join) a locate cycle and return :meth:`get_location` when it ends."""
        loop = asyncio.get_running_loop()
        done: asyncio.Future[None] = loop.create_future()

        def _resolve() -> None:
            if not done.done():
                done.set_result(None)

        if self._cycle.is_idle:
            self.locate(use_previous, _resolve)
        else:
            self._cycle.add_waiter(_resolve)
        await done
        return self.get_location()

    def get_location(self) -> dict[str, Any]:
        """Last location as ``{latitude, longitude, place_data}`` or ``{error}``."""
        if not self._cycle.is_idle:
            return {"error": LOCATING}
        if self._cycle.last_error is not None:
            return {"error": self._cycle.last_error}
        if self._location is None:
            return {"error": NEVER_LOCATED}
        return self._location.as_public_dict()

    def get_timezone(self) -> dict[str, Any]:
        """Last timezone as :class:`TimezoneResult` fields or ``{error}``."""
        if self._timezone_pending:
            return {"error": TIMEZONE_PENDING}
        if self._timezone is not None:
            return self._timezone.as_public_dict()
        return {"error": self._timezone_error or TIMEZONE_NEVER}

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _spawn(self, coro: Coroutine[Any, Any, None], *, name: str) -> asyncio.Task[None]:
        task = asyncio.get_running_loop().create_task(coro, name=f"pylocate-{self.role}-{name}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _finish_cycle(self, error: str | None = None) -> None:
        callbacks = self._cycle.finish(error)
        fire_callbacks(callbacks, what=f"{self.role} locate")

    def _set_timezone(self, timezone: TimezoneResult | None, error: str | None) -> None:
        self._timezone = timezone
        self._timezone_error = error if timezone is None else None

    def _settle_timezone_request(self) -> None:
        self._timezone_pending = False
        callback = self._timezone_callback
        self._timezone_callback = None
        if callback is not None:
            fire_callbacks([callback], what=f"{self.role} timezone")

    def _send(self, topic: str, payload: Any) -> None:
        _logger.debug("%s -> %s", self.role, topic)
        try:
            self._transport.send(topic, payload)
        except LocatorTransportError:
            _logger.error("%s: sending %s failed", self.role, topic, exc_info=True)
