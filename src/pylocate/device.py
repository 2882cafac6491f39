"""Edge-node side: scans WiFi and keeps a replica of the agent's results."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from pydantic import ValidationError

from pylocate._node import Clock, LocatorNode, Sleep, _localnow
from pylocate.config import LocatorConfig
from pylocate.messaging import MessageTransport, Topic
from pylocate.models.messages import LocateFailedMessage, LocateResultMessage, TimezoneResultMessage
from pylocate.models.network import NetworkObservation
from pylocate.scanner import WifiScanner
from pylocate.state.machine import CompletionCallback, LocateState

_logger = logging.getLogger(__name__)

_REPLICA_TIMEZONE_MISSING = "Timezone unavailable for the current location"


class EdgeDevice(LocatorNode):
    """Device node: owns the scanner, relays observations, mirrors results.

    The device never talks to the provider. A locate cycle here ends when
    the agent pushes ``locate-result`` or ``locate-failed``; the values
    read through :meth:`get_location` are a replica of the agent's.
    """

    role = "device"

    def __init__(
        self,
        transport: MessageTransport,
        scanner: WifiScanner,
        config: LocatorConfig | None = None,
        *,
        sleep: Sleep = asyncio.sleep,
        clock: Clock = _localnow,
    ) -> None:
        super().__init__(transport, config or LocatorConfig(), sleep=sleep, clock=clock)
        self._scanner = scanner
        self._scan_task: asyncio.Task[None] | None = None

        transport.on_message(Topic.REQUEST_SCAN, self._on_request_scan)
        transport.on_message(Topic.LOCATE_RESULT, self._on_locate_result)
        transport.on_message(Topic.LOCATE_FAILED, self._on_locate_failed)
        transport.on_message(Topic.TIMEZONE_RESULT, self._on_timezone_result)

    # ------------------------------------------------------------------
    # Locate cycle
    # ------------------------------------------------------------------

    def locate(self, use_previous: bool = True, on_complete: CompletionCallback | None = None) -> None:
        """Scan (or reuse the cached scan) and ask the agent to resolve it."""
        if not self._cycle.begin(LocateState.AWAITING_SCAN, on_complete):
            _logger.debug("locate() ignored: cycle in flight (state=%s)", self._cycle.state)
            return
        self._start_scan(use_cache=use_previous)

    def _on_request_scan(self, _payload: Any) -> None:
        if self._scan_task is not None:
            _logger.debug("Scan already running; %s ignored", Topic.REQUEST_SCAN)
            return
        # Agent-initiated: same as a local locate(), minus the callback.
        self._cycle.begin(LocateState.AWAITING_SCAN, None)
        self._start_scan(use_cache=False)

    def _start_scan(self, *, use_cache: bool) -> None:
        self._scan_task = self._spawn(self._scan_and_forward(use_cache=use_cache), name="scan")

    async def _scan_and_forward(self, *, use_cache: bool) -> None:
        try:
            observations = await self._observations(use_cache=use_cache)
        finally:
            self._scan_task = None

        self._send(Topic.SCAN_RESULT, [obs.to_wire() for obs in observations])
        if self._cycle.state == LocateState.AWAITING_SCAN:
            self._cycle.advance(LocateState.AWAITING_GEOLOCATION)

    async def _observations(self, *, use_cache: bool) -> list[NetworkObservation]:
        if use_cache and self._networks:
            _logger.debug("Reusing %d cached observations", len(self._networks))
            return list(self._networks)

        try:
            scanned = await self._scanner.scan()
        except Exception:
            _logger.warning("WiFi scan failed", exc_info=True)
            scanned = []

        if scanned:
            self._networks = list(scanned)
            return list(scanned)
        if self._networks:
            _logger.debug("Scan returned nothing; falling back to %d cached observations", len(self._networks))
        return list(self._networks)

    # ------------------------------------------------------------------
    # Results pushed by the agent
    # ------------------------------------------------------------------

    def _on_locate_result(self, payload: Any) -> None:
        try:
            message = LocateResultMessage.model_validate(payload)
        except ValidationError:
            _logger.warning("Discarding malformed %s payload", Topic.LOCATE_RESULT, exc_info=True)
            return

        self._location = message.to_location()
        self._set_timezone(message.timezone_data, _REPLICA_TIMEZONE_MISSING)
        if self._cycle.is_idle:
            # Result of a cycle the device did not start; it still supersedes an old failure.
            self._cycle.clear_error()
        else:
            self._finish_cycle()
        self._settle_timezone_request()

    def _on_locate_failed(self, payload: Any) -> None:
        try:
            message = LocateFailedMessage.model_validate(payload)
        except ValidationError:
            _logger.warning("Discarding malformed %s payload", Topic.LOCATE_FAILED, exc_info=True)
            return

        if self._cycle.is_idle:
            _logger.debug("Agent cycle failed without a device cycle in flight: %s", message.error)
        else:
            self._finish_cycle(message.error)
        self._settle_timezone_request()

    # ------------------------------------------------------------------
    # Timezone-only side channel
    # ------------------------------------------------------------------

    def refresh_timezone(self, on_complete: CompletionCallback | None = None) -> None:
        """Ask the agent to re-run only the timezone lookup.

        Ignored while a previous request is pending.
        """
        if self._timezone_pending:
            _logger.debug("refresh_timezone() ignored: request pending")
            return
        self._timezone_pending = True
        self._timezone_callback = on_complete
        self._send(Topic.REQUEST_TIMEZONE, True)

    def _on_timezone_result(self, payload: Any) -> None:
        try:
            message = TimezoneResultMessage.model_validate(payload)
        except ValidationError:
            _logger.warning("Discarding malformed %s payload", Topic.TIMEZONE_RESULT, exc_info=True)
            return

        self._set_timezone(message.timezone_data, message.error or _REPLICA_TIMEZONE_MISSING)
        self._settle_timezone_request()
