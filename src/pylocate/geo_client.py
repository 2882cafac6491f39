"""Provider client wrapping the geolocation, geocoding and timezone endpoints."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from pylocate._api import geocoding as _geocoding_api
from pylocate._api import geolocation as _geolocation_api
from pylocate._api import timezone as _timezone_api
from pylocate._http import HttpTransport
from pylocate._redact import mask_key
from pylocate.config import ApiKeySet, LocatorConfig
from pylocate.models.location import LocationResult
from pylocate.models.network import NetworkObservation
from pylocate.models.timezone import TimezoneResult

_logger = logging.getLogger(__name__)


class GeoServiceClient:
    """Async client for the three provider endpoints.

    Each method performs exactly one request and either returns a parsed
    result or raises a :class:`~pylocate.exceptions.ProviderError`
    subclass describing how the call failed. Retrying is the caller's
    business.
    """

    def __init__(self, config: LocatorConfig, transport: HttpTransport) -> None:
        self._config = config
        self._keys: ApiKeySet = config.require_api_keys()
        self._transport = transport
        _logger.debug(
            "Provider client ready (keys geolocation=%s geocoding=%s timezone=%s)",
            mask_key(self._keys.geolocation_key),
            mask_key(self._keys.geocoding_key),
            mask_key(self._keys.timezone_key),
        )

    async def geolocate(self, observations: Sequence[NetworkObservation]) -> LocationResult:
        """Resolve coordinates from WiFi observations."""
        return await _geolocation_api.geolocate(
            self._transport,
            url=self._config.geolocation_url,
            key=self._keys.geolocation_key,
            observations=observations,
            trace=self._config.debug,
        )

    async def reverse_geocode(self, latitude: float, longitude: float) -> list[Any]:
        """Return raw place results for the coordinates (possibly empty)."""
        return await _geocoding_api.reverse_geocode(
            self._transport,
            url=self._config.geocoding_url,
            key=self._keys.geocoding_key,
            latitude=latitude,
            longitude=longitude,
            trace=self._config.debug,
        )

    async def lookup_timezone(self, latitude: float, longitude: float, *, timestamp: int) -> TimezoneResult:
        """Resolve local offsets for the coordinates at *timestamp*."""
        return await _timezone_api.lookup_timezone(
            self._transport,
            url=self._config.timezone_url,
            key=self._keys.timezone_key,
            latitude=latitude,
            longitude=longitude,
            timestamp=timestamp,
            trace=self._config.debug,
        )
