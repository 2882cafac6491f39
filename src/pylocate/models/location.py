"""Location result model."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import Field, field_validator

from pylocate._normalize import safe_float
from pylocate.models._base import LocatorBaseModel


class LocationResult(LocatorBaseModel):
    """Coordinates resolved by the geolocation provider.

    Parameters
    ----------
    latitude : float
        Latitude in degrees.
    longitude : float
        Longitude in degrees.
    place_data : list or None
        Raw reverse-geocoding ``results`` list. Opaque to pylocate.
    accuracy : float or None
        Provider accuracy radius in metres.
    located_at : datetime
        When the coordinates were acquired (UTC).
    """

    latitude: float
    longitude: float
    place_data: list[Any] | None = None
    accuracy: float | None = None
    located_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @field_validator("accuracy", mode="before")
    @classmethod
    def _coerce_accuracy(cls, value: Any) -> float | None:
        return safe_float(value)

    def with_place_data(self, place_data: list[Any] | None) -> LocationResult:
        """Copy of this result carrying *place_data*."""
        return self.model_copy(update={"place_data": place_data})

    def as_public_dict(self) -> dict[str, Any]:
        """The dict returned by ``get_location()``."""
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "place_data": self.place_data,
        }
