"""Timezone endpoint: coordinates + timestamp -> local offsets."""

from __future__ import annotations

import logging

from pylocate._api._common import check_response
from pylocate._constants import STAGE_TIMEZONE, TIMEZONE_STATUS_OK
from pylocate._http import HttpTransport
from pylocate._normalize import safe_int, safe_str
from pylocate._redact import redact_for_log
from pylocate.exceptions import TimezoneUnavailableError
from pylocate.models.timezone import TimezoneResult

_logger = logging.getLogger(__name__)


async def lookup_timezone(
    transport: HttpTransport,
    *,
    url: str,
    key: str,
    latitude: float,
    longitude: float,
    timestamp: int,
    trace: bool = False,
) -> TimezoneResult:
    """Resolve the local offsets at *timestamp* for the coordinates.

    Raises
    ------
    TimezoneUnavailableError
        The provider answered with a status other than ``OK``.
    """
    params = {
        "location": f"{latitude},{longitude}",
        "timestamp": str(timestamp),
        "key": key,
    }
    if trace:
        _logger.debug("Timezone request: %s", redact_for_log(params))

    response = await transport.request("GET", url, stage=STAGE_TIMEZONE, params=params)
    if trace:
        _logger.debug("Timezone response: HTTP %s %s", response.status, redact_for_log(response.text))

    body = check_response(STAGE_TIMEZONE, response)
    status = safe_str(body.get("status")) or ""
    raw_offset = safe_int(body.get("rawOffset"))
    dst_offset = safe_int(body.get("dstOffset"))
    if status != TIMEZONE_STATUS_OK or raw_offset is None or dst_offset is None:
        raise TimezoneUnavailableError(
            f"{STAGE_TIMEZONE} lookup returned status={status or '<missing>'}",
            status=status,
            stage=STAGE_TIMEZONE,
            http_status=response.status,
        )

    return TimezoneResult.from_offsets(
        timestamp=timestamp,
        raw_offset=raw_offset,
        dst_offset=dst_offset,
        time_zone_id=safe_str(body.get("timeZoneId")),
        time_zone_name=safe_str(body.get("timeZoneName")),
    )
