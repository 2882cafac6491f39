from __future__ import annotations

import pytest
from pydantic import ValidationError

from pylocate.models.location import LocationResult
from pylocate.models.messages import LocateResultMessage, TimezoneResultMessage
from pylocate.models.network import NetworkObservation, normalize_bssid, parse_observations
from pylocate.models.timezone import TimezoneResult, format_offset_label


@pytest.mark.parametrize(
    "value",
    ["AA:BB:CC:DD:EE:FF", "aa-bb-cc-dd-ee-ff", "aabb.ccdd.eeff", "aabbccddeeff", b"\xaa\xbb\xcc\xdd\xee\xff"],
)
def test_normalize_bssid_accepts_common_spellings(value: str | bytes) -> None:
    assert normalize_bssid(value) == "aabbccddeeff"


@pytest.mark.parametrize("value", ["aa:bb:cc", "zz:bb:cc:dd:ee:ff", b"\x00\x01", 42])
def test_normalize_bssid_rejects_garbage(value: object) -> None:
    with pytest.raises(ValueError):
        normalize_bssid(value)


def test_access_point_entry_is_uppercase_colon_form_with_string_signal() -> None:
    obs = NetworkObservation(bssid="0a1b2c3d4e5f", rssi=-61, ssid="cafe")

    assert obs.mac_address == "0A:1B:2C:3D:4E:5F"
    assert obs.to_access_point() == {"macAddress": "0A:1B:2C:3D:4E:5F", "signalStrength": "-61"}


def test_parse_observations_accepts_signal_strength_alias() -> None:
    observations = parse_observations(
        [
            {"bssid": "AA:BB:CC:DD:EE:FF", "rssi": -40},
            {"bssid": "001122334455", "signalStrength": -75, "channel": "11"},
        ]
    )

    assert [obs.rssi for obs in observations] == [-40, -75]
    assert observations[1].channel == 11


def test_parse_observations_non_list_is_empty() -> None:
    assert parse_observations(None) == []
    assert parse_observations({"bssid": "aabbccddeeff"}) == []


def test_parse_observations_rejects_bad_bssid() -> None:
    with pytest.raises(ValidationError):
        parse_observations([{"bssid": "nope", "rssi": -40}])


@pytest.mark.parametrize(
    ("offset", "label"),
    [(-25200, "GMT-7"), (0, "GMT+0"), (19800, "GMT+5"), (-12600, "GMT-3"), (46800, "GMT+13")],
)
def test_offset_label_truncates_to_whole_hours(offset: int, label: str) -> None:
    assert format_offset_label(offset) == label


def test_timezone_from_offsets() -> None:
    # 2026-10-18 22:00:00 UTC
    result = TimezoneResult.from_offsets(
        timestamp=1792360800,
        raw_offset=-28800,
        dst_offset=3600,
        time_zone_id="America/Los_Angeles",
    )

    assert result.gmt_offset_seconds == -25200
    assert result.epoch_time == 1792360800 - 25200
    assert result.offset_label == "GMT-7"
    assert result.local_date_label == "2026-10-18 15:00:00"
    assert result.time_zone_name is None


def test_local_date_label_is_zero_padded() -> None:
    # 2026-01-02 03:04:05 UTC
    result = TimezoneResult.from_offsets(timestamp=1767323045, raw_offset=0, dst_offset=0)
    assert result.local_date_label == "2026-01-02 03:04:05"


def test_locate_result_message_uses_camel_case_on_the_wire() -> None:
    location = LocationResult(latitude=37.1, longitude=-122.1, place_data=[{"formatted_address": "x"}])
    timezone = TimezoneResult.from_offsets(timestamp=0, raw_offset=3600, dst_offset=0)

    wire = LocateResultMessage.from_results(location, timezone).to_wire()

    assert wire["placeData"] == [{"formatted_address": "x"}]
    assert wire["timezoneData"]["offsetLabel"] == "GMT+1"
    assert wire["timezoneData"]["gmtOffsetSeconds"] == 3600
    assert LocateResultMessage.model_validate(wire).to_location().as_public_dict() == location.as_public_dict()


def test_location_accuracy_is_normalized() -> None:
    assert LocationResult(latitude=1, longitude=2, accuracy="").accuracy is None
    assert LocationResult(latitude=1, longitude=2, accuracy="12.5").accuracy == 12.5


def test_timezone_result_message_allows_missing_data() -> None:
    message = TimezoneResultMessage.model_validate({"error": "Timezone lookup failed"})
    assert message.timezone_data is None
    assert message.to_wire() == {"timezoneData": None, "error": "Timezone lookup failed"}
