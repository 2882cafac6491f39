"""Reverse geocoding endpoint: coordinates -> place data."""

from __future__ import annotations

import logging
from typing import Any

from pylocate._api._common import check_response
from pylocate._constants import STAGE_GEOCODING
from pylocate._http import HttpTransport
from pylocate._redact import redact_for_log

_logger = logging.getLogger(__name__)

_QUIET_STATUSES = frozenset({"OK", "ZERO_RESULTS"})


async def reverse_geocode(
    transport: HttpTransport,
    *,
    url: str,
    key: str,
    latitude: float,
    longitude: float,
    trace: bool = False,
) -> list[Any]:
    """Return the raw ``results`` list for the coordinates.

    Place semantics are not interpreted. An empty or missing ``results``
    list is a valid answer and yields ``[]``.
    """
    params = {"latlng": f"{latitude},{longitude}", "key": key}
    if trace:
        _logger.debug("Geocoding request: %s", redact_for_log(params))

    response = await transport.request("GET", url, stage=STAGE_GEOCODING, params=params)
    if trace:
        _logger.debug("Geocoding response: HTTP %s %s", response.status, redact_for_log(response.text))

    body = check_response(STAGE_GEOCODING, response)
    status = body.get("status")
    if status is not None and status not in _QUIET_STATUSES:
        _logger.warning(
            "Geocoding returned status=%s message=%s; continuing without place data",
            status,
            body.get("error_message", ""),
        )

    results = body.get("results")
    return results if isinstance(results, list) else []
