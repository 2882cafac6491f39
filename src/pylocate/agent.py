"""Relay-node side: owns the API keys and drives the provider pipeline."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import aiohttp
from pydantic import ValidationError

from pylocate._http import AiohttpTransport, HttpTransport
from pylocate._node import (
    NO_NETWORKS,
    TIMEZONE_NO_LOCATION,
    Clock,
    LocatorNode,
    Sleep,
    _localnow,
)
from pylocate.config import LocatorConfig
from pylocate.exceptions import (
    CredentialError,
    LocatorError,
    NoNetworksAvailableError,
    ProviderError,
    TimezoneUnavailableError,
)
from pylocate.geo_client import GeoServiceClient
from pylocate.messaging import MessageTransport, Topic
from pylocate.models.location import LocationResult
from pylocate.models.messages import LocateFailedMessage, LocateResultMessage, TimezoneResultMessage
from pylocate.models.network import NetworkObservation, parse_observations
from pylocate.models.timezone import TimezoneResult
from pylocate.state.machine import CompletionCallback, LocateState
from pylocate.state.policy import retry_delay

_logger = logging.getLogger(__name__)

T = TypeVar("T")


class EdgeAgent(LocatorNode):
    """Agent node: resolves WiFi observations into a location and timezone.

    The agent asks the device for a scan (or reuses its cache), then runs
    geolocation -> reverse geocoding -> timezone strictly in order, each
    stage retried according to :mod:`pylocate.state.policy`. The finished
    result is pushed to the device and the completion callback fires once.

    Usage::

        agent_side, device_side = LoopbackTransport.pair()
        async with EdgeAgent(agent_side, LocatorConfig(api_keys=ApiKeySet.from_value(KEY))) as agent:
            await agent.async_locate(use_previous=False)
            print(agent.get_location(), agent.get_timezone())
    """

    role = "agent"

    def __init__(
        self,
        transport: MessageTransport,
        config: LocatorConfig,
        *,
        http_transport: HttpTransport | None = None,
        http_session: aiohttp.ClientSession | None = None,
        sleep: Sleep = asyncio.sleep,
        clock: Clock = _localnow,
    ) -> None:
        super().__init__(transport, config, sleep=sleep, clock=clock)
        # Fails fast on missing keys: no provider call could ever succeed.
        config.require_api_keys()
        self._http_session = http_session
        self._owns_http_session = False
        self._client: GeoServiceClient | None = (
            GeoServiceClient(config, http_transport) if http_transport is not None else None
        )
        self._timezone_task: asyncio.Task[None] | None = None

        transport.on_message(Topic.SCAN_RESULT, self._on_scan_result)
        transport.on_message(Topic.REQUEST_TIMEZONE, self._on_request_timezone)

    async def close(self) -> None:
        await super().close()
        if self._owns_http_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
            self._owns_http_session = False
            self._client = None

    def _ensure_client(self) -> GeoServiceClient:
        if self._client is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
                self._owns_http_session = True
            transport = AiohttpTransport(self._http_session, timeout=self._config.request_timeout)
            self._client = GeoServiceClient(self._config, transport)
        return self._client

    # ------------------------------------------------------------------
    # Locate cycle
    # ------------------------------------------------------------------

    def locate(self, use_previous: bool = True, on_complete: CompletionCallback | None = None) -> None:
        """Start a locate cycle unless one is already in flight.

        With *use_previous* and cached observations the pipeline starts
        immediately; otherwise the device is asked for a fresh scan.
        ``on_complete`` fires once, without arguments, when the cycle ends.
        """
        if self._networks and use_previous:
            if not self._cycle.begin(LocateState.AWAITING_GEOLOCATION, on_complete):
                _logger.debug("locate() ignored: cycle in flight (state=%s)", self._cycle.state)
                return
            self._spawn(self._run_cycle(list(self._networks)), name="cycle")
            return

        if not self._cycle.begin(LocateState.AWAITING_SCAN, on_complete):
            _logger.debug("locate() ignored: cycle in flight (state=%s)", self._cycle.state)
            return
        self._send(Topic.REQUEST_SCAN, True)

    def _on_scan_result(self, payload: Any) -> None:
        try:
            observations = parse_observations(payload)
        except ValidationError:
            _logger.warning("Discarding malformed %s payload", Topic.SCAN_RESULT, exc_info=True)
            observations = []
        if observations:
            self._networks = observations
        _logger.debug("Received %d observations (state=%s)", len(observations), self._cycle.state)

        state = self._cycle.state
        if state == LocateState.IDLE:
            # Device-initiated cycle; the device holds the callback.
            self._cycle.begin(LocateState.AWAITING_SCAN, None)
        elif state != LocateState.AWAITING_SCAN:
            return

        if not self._networks:
            self._fail(NoNetworksAvailableError(NO_NETWORKS))
            return
        self._cycle.advance(LocateState.AWAITING_GEOLOCATION)
        self._spawn(self._run_cycle(list(self._networks)), name="cycle")

    async def _run_cycle(self, observations: list[NetworkObservation]) -> None:
        try:
            client = self._ensure_client()
            location = await self._with_retry(lambda: client.geolocate(observations))
            _logger.debug("Geolocated lat=%s lng=%s", location.latitude, location.longitude)

            self._cycle.advance(LocateState.AWAITING_PLACE)
            place_data = await self._with_retry(
                lambda: client.reverse_geocode(location.latitude, location.longitude)
            )
            location = location.with_place_data(place_data or None)

            self._cycle.advance(LocateState.AWAITING_TIMEZONE)
            self._timezone_pending = True
            timezone, timezone_error = await self._resolve_timezone(client, location)
        except LocatorError as exc:
            self._timezone_pending = False
            self._fail(exc)
            return
        except Exception as exc:
            _logger.exception("Locate cycle crashed")
            self._timezone_pending = False
            self._fail(LocatorError(f"Internal error: {exc!r}"))
            return

        self._location = location
        self._set_timezone(timezone, timezone_error)
        self._send(Topic.LOCATE_RESULT, LocateResultMessage.from_results(location, timezone).to_wire())
        self._finish_cycle()
        self._settle_timezone_request()

    async def _resolve_timezone(
        self,
        client: GeoServiceClient,
        location: LocationResult,
    ) -> tuple[TimezoneResult | None, str | None]:
        """Run the timezone stage; a non-``OK`` status is not a failure.

        Each attempt is stamped with the clock at the moment it is sent, so a
        retry after a long rate-limit wait resolves the time of that attempt.
        """

        async def attempt() -> TimezoneResult:
            timestamp = int(self._clock().timestamp())
            return await client.lookup_timezone(location.latitude, location.longitude, timestamp=timestamp)

        try:
            timezone = await self._with_retry(attempt)
        except TimezoneUnavailableError as exc:
            _logger.warning("Timezone unavailable: %s", exc)
            return None, f"Timezone unavailable (status={exc.status or 'unknown'})"
        return timezone, None

    async def _with_retry(self, call: Callable[[], Awaitable[T]]) -> T:
        """Issue *call* until it succeeds or fails terminally; state is untouched while waiting."""
        while True:
            try:
                return await call()
            except ProviderError as exc:
                delay = retry_delay(
                    exc,
                    now=self._clock(),
                    transient_delay=self._config.transient_retry_delay,
                    rate_limit_delay=self._config.rate_limit_retry_delay,
                )
                if delay is None:
                    raise
                _logger.warning("%s stage failed (%s); retrying in %.0fs", exc.stage, exc, delay)
                await self._sleep(delay)

    def _fail(self, error: LocatorError) -> None:
        if isinstance(error, CredentialError):
            _logger.error("API key rejected by the %s endpoint; fix the configuration: %s", error.stage, error)
        else:
            _logger.error("Locate cycle failed: %s", error)
        message = str(error)
        self._send(Topic.LOCATE_FAILED, LocateFailedMessage(error=message).to_wire())
        self._finish_cycle(message)
        self._settle_timezone_request()

    # ------------------------------------------------------------------
    # Timezone-only side channel
    # ------------------------------------------------------------------

    def refresh_timezone(self, on_complete: CompletionCallback | None = None) -> None:
        """Re-run only the timezone stage for the current location.

        Coalesced with an in-flight locate cycle, ignored while another
        refresh runs. Never touches the locate state or the location.
        """
        if not self._cycle.is_idle or self._timezone_task is not None:
            if self._timezone_callback is None and on_complete is not None:
                self._timezone_callback = on_complete
            _logger.debug("refresh_timezone() coalesced with work in flight")
            return

        location = self._location
        if location is None:
            self._set_timezone(None, TIMEZONE_NO_LOCATION)
            self._send(Topic.TIMEZONE_RESULT, TimezoneResultMessage(error=TIMEZONE_NO_LOCATION).to_wire())
            if on_complete is not None:
                self._timezone_callback = on_complete
            self._settle_timezone_request()
            return

        self._timezone_callback = on_complete
        self._timezone_pending = True
        self._timezone_task = self._spawn(self._run_timezone_refresh(location), name="timezone")

    async def _run_timezone_refresh(self, location: LocationResult) -> None:
        try:
            client = self._ensure_client()
            timezone, timezone_error = await self._resolve_timezone(client, location)
        except LocatorError as exc:
            _logger.error("Timezone refresh failed: %s", exc)
            message = TimezoneResultMessage(timezone_data=self._timezone, error=str(exc))
        except Exception as exc:
            _logger.exception("Timezone refresh crashed")
            message = TimezoneResultMessage(timezone_data=self._timezone, error=f"Internal error: {exc!r}")
        else:
            if self._location is location:
                self._set_timezone(timezone, timezone_error)
            else:
                # A locate cycle replaced the location meanwhile; its own timezone wins.
                _logger.debug("Discarding timezone refresh for a superseded location")
            message = TimezoneResultMessage(timezone_data=self._timezone, error=self._timezone_error)
        finally:
            self._timezone_task = None

        self._send(Topic.TIMEZONE_RESULT, message.to_wire())
        self._settle_timezone_request()

    def _on_request_timezone(self, _payload: Any) -> None:
        self.refresh_timezone()
