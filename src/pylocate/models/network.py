"""WiFi access point observation model."""

from __future__ import annotations

import string
from typing import Any

from pydantic import AliasChoices, Field, TypeAdapter, field_validator

from pylocate._normalize import safe_int
from pylocate.models._base import LocatorBaseModel

_HEX_DIGITS = frozenset(string.hexdigits)


def normalize_bssid(value: Any) -> str:
    """Normalize a MAC address to 12 lowercase hex characters.

    Accepts 6 raw bytes, or a string with or without ``:``, ``-`` or
    ``.`` separators.

    Raises :class:`ValueError` for anything that is not a 6-byte address.
    """
    if isinstance(value, (bytes, bytearray)):
        if len(value) != 6:
            raise ValueError(f"bssid must be 6 bytes, got {len(value)}")
        return bytes(value).hex()
    if not isinstance(value, str):
        raise ValueError(f"bssid must be a string or bytes, got {type(value).__name__}")
    compact = value.strip().replace(":", "").replace("-", "").replace(".", "")
    if len(compact) != 12 or not set(compact) <= _HEX_DIGITS:
        raise ValueError(f"invalid bssid: {value!r}")
    return compact.lower()


class NetworkObservation(LocatorBaseModel):
    """A single access point seen by a WiFi scan.

    Parameters
    ----------
    bssid : str
        Access point MAC address as 12 lowercase hex characters.
    rssi : int
        Signal strength in dBm.
    ssid : str or None
        Network name, if the scanner reports it. Never sent to the provider.
    channel : int or None
        WiFi channel, if the scanner reports it.
    """

    bssid: str
    rssi: int = Field(validation_alias=AliasChoices("rssi", "signalStrength", "signal_strength"))
    ssid: str | None = None
    channel: int | None = None

    @field_validator("bssid", mode="before")
    @classmethod
    def _coerce_bssid(cls, value: Any) -> str:
        return normalize_bssid(value)

    @field_validator("channel", mode="before")
    @classmethod
    def _coerce_channel(cls, value: Any) -> int | None:
        return safe_int(value)

    @property
    def mac_address(self) -> str:
        """Colon-delimited uppercase form, e.g. ``AA:BB:CC:DD:EE:FF``."""
        upper = self.bssid.upper()
        return ":".join(upper[i : i + 2] for i in range(0, 12, 2))

    def to_access_point(self) -> dict[str, str]:
        """Entry for the provider's ``wifiAccessPoints`` list."""
        return {"macAddress": self.mac_address, "signalStrength": str(self.rssi)}


_OBSERVATIONS = TypeAdapter(list[NetworkObservation])


def parse_observations(payload: Any) -> list[NetworkObservation]:
    """Validate a ``scan-result`` payload into observations.

    ``None`` and non-list payloads yield an empty list.
    """
    if not isinstance(payload, list):
        return []
    return _OBSERVATIONS.validate_python(payload)
