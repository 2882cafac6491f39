"""Geolocation endpoint: WiFi access points -> coordinates."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from pylocate._api._common import check_response
from pylocate._constants import STAGE_GEOLOCATION
from pylocate._http import HttpTransport
from pylocate._normalize import safe_float
from pylocate._redact import redact_for_log
from pylocate.exceptions import UnclassifiedProviderError
from pylocate.models.location import LocationResult
from pylocate.models.network import NetworkObservation

_logger = logging.getLogger(__name__)


def build_geolocation_body(observations: Sequence[NetworkObservation]) -> dict[str, Any]:
    """Request body listing every observed access point.

    ``considerIp`` is disabled: the request is issued by the agent, whose
    public address says nothing about where the device is.
    """
    return {
        "considerIp": False,
        "wifiAccessPoints": [obs.to_access_point() for obs in observations],
    }


def parse_geolocation(body: dict[str, Any]) -> LocationResult:
    """Parse ``{"location": {"lat": .., "lng": ..}, "accuracy": ..}``."""
    location = body.get("location")
    lat = safe_float(location.get("lat")) if isinstance(location, dict) else None
    lng = safe_float(location.get("lng")) if isinstance(location, dict) else None
    if lat is None or lng is None:
        raise UnclassifiedProviderError(
            f"{STAGE_GEOLOCATION} response has no usable location: {str(body)[:128]}",
            stage=STAGE_GEOLOCATION,
            http_status=200,
        )
    return LocationResult(latitude=lat, longitude=lng, accuracy=body.get("accuracy"))


async def geolocate(
    transport: HttpTransport,
    *,
    url: str,
    key: str,
    observations: Sequence[NetworkObservation],
    trace: bool = False,
) -> LocationResult:
    """POST the observations and return the resolved coordinates."""
    body = build_geolocation_body(observations)
    if trace:
        _logger.debug("Geolocation request: %s", redact_for_log(body))

    response = await transport.request(
        "POST",
        url,
        stage=STAGE_GEOLOCATION,
        params={"key": key},
        json_body=body,
    )
    if trace:
        _logger.debug("Geolocation response: HTTP %s %s", response.status, redact_for_log(response.text))

    return parse_geolocation(check_response(STAGE_GEOLOCATION, response))
