"""Cross-node message payloads.

The agent and the device never share objects; everything crosses the
transport as JSON built from these models.
"""

from __future__ import annotations

from typing import Any

from pylocate.models._base import LocatorBaseModel
from pylocate.models.location import LocationResult
from pylocate.models.timezone import TimezoneResult


class LocateResultMessage(LocatorBaseModel):
    """``locate-result`` payload (agent -> device)."""

    latitude: float
    longitude: float
    place_data: list[Any] | None = None
    timezone_data: TimezoneResult | None = None

    @classmethod
    def from_results(cls, location: LocationResult, timezone: TimezoneResult | None) -> LocateResultMessage:
        return cls(
            latitude=location.latitude,
            longitude=location.longitude,
            place_data=location.place_data,
            timezone_data=timezone,
        )

    def to_location(self) -> LocationResult:
        return LocationResult(
            latitude=self.latitude,
            longitude=self.longitude,
            place_data=self.place_data,
        )


class LocateFailedMessage(LocatorBaseModel):
    """``locate-failed`` payload (agent -> device)."""

    error: str


class TimezoneResultMessage(LocatorBaseModel):
    """``timezone-result`` payload (agent -> device).

    ``timezone_data`` is ``None`` when the lookup produced no timezone;
    ``error`` then says why.
    """

    timezone_data: TimezoneResult | None = None
    error: str | None = None
