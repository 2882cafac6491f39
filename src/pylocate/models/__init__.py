"""Data models for pylocate results and cross-node messages."""

from pylocate.models._base import LocatorBaseModel
from pylocate.models.location import LocationResult
from pylocate.models.messages import LocateFailedMessage, LocateResultMessage, TimezoneResultMessage
from pylocate.models.network import NetworkObservation, normalize_bssid, parse_observations
from pylocate.models.timezone import TimezoneResult, format_local_date, format_offset_label

__all__ = [
    "LocateFailedMessage",
    "LocateResultMessage",
    "LocationResult",
    "LocatorBaseModel",
    "NetworkObservation",
    "TimezoneResult",
    "TimezoneResultMessage",
    "format_local_date",
    "format_offset_label",
    "normalize_bssid",
    "parse_observations",
]
