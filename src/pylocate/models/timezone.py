"""Timezone result model."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pylocate.models._base import LocatorBaseModel

_LOCAL_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def format_offset_label(offset_seconds: int) -> str:
    """UTC-relative label with truncated whole hours (``-25200`` -> ``"GMT-7"``)."""
    sign = "-" if offset_seconds < 0 else "+"
    return f"GMT{sign}{abs(offset_seconds) // 3600}"


def format_local_date(epoch_time: int) -> str:
    """``YYYY-MM-DD HH:MM:SS`` for an epoch already shifted to local time."""
    return datetime.fromtimestamp(epoch_time, tz=UTC).strftime(_LOCAL_DATE_FORMAT)


class TimezoneResult(LocatorBaseModel):
    """Local time information for the last known coordinates.

    ``epoch_time`` is the request timestamp shifted by the zone's raw and
    DST offsets, so formatting it as UTC yields local wall-clock time.
    """

    epoch_time: int
    gmt_offset_seconds: int
    offset_label: str
    local_date_label: str
    time_zone_id: str | None = None
    time_zone_name: str | None = None

    @classmethod
    def from_offsets(
        cls,
        *,
        timestamp: int,
        raw_offset: int,
        dst_offset: int,
        time_zone_id: str | None = None,
        time_zone_name: str | None = None,
    ) -> TimezoneResult:
        """Derive the result from a provider response's offsets."""
        offset = int(raw_offset) + int(dst_offset)
        epoch_time = int(timestamp) + offset
        return cls(
            epoch_time=epoch_time,
            gmt_offset_seconds=offset,
            offset_label=format_offset_label(offset),
            local_date_label=format_local_date(epoch_time),
            time_zone_id=time_zone_id,
            time_zone_name=time_zone_name,
        )

    def as_public_dict(self) -> dict[str, Any]:
        """The dict returned by ``get_timezone()``."""
        return self.model_dump()
