from __future__ import annotations

import asyncio
from typing import Any

import pytest
from fakes import FakeScanner, drain

from pylocate._node import NEVER_LOCATED
from pylocate.device import EdgeDevice
from pylocate.messaging import LoopbackTransport, Topic
from pylocate.models.network import NetworkObservation
from pylocate.state.machine import LocateState

_TIMEZONE_WIRE = {
    "epochTime": 1792335600,
    "gmtOffsetSeconds": -25200,
    "offsetLabel": "GMT-7",
    "localDateLabel": "2026-10-18 15:00:00",
    "timeZoneId": "America/Los_Angeles",
    "timeZoneName": "Pacific Daylight Time",
}


class _FailingScanner:
    async def scan(self) -> list[NetworkObservation]:
        raise OSError("wlan0 is down")


def _remote() -> tuple[LoopbackTransport, EdgeDevice, FakeScanner, dict[str, list[Any]]]:
    """A device wired to a bare transport end that records what it receives."""
    remote, device_side = LoopbackTransport.pair()
    scanner = FakeScanner()
    device = EdgeDevice(device_side, scanner)
    received: dict[str, list[Any]] = {}
    for topic in Topic:
        remote.on_message(topic, lambda payload, t=topic: received.setdefault(t, []).append(payload))
    return remote, device, scanner, received


@pytest.mark.asyncio
async def test_pushed_locate_result_is_readable_on_the_device() -> None:
    remote, device, _scanner, _received = _remote()

    remote.send(
        Topic.LOCATE_RESULT,
        {
            "latitude": 37.1,
            "longitude": -122.1,
            "placeData": [{"formatted_address": "1 Main St"}],
            "timezoneData": _TIMEZONE_WIRE,
        },
    )
    await drain()

    assert device.get_location() == {
        "latitude": 37.1,
        "longitude": -122.1,
        "place_data": [{"formatted_address": "1 Main St"}],
    }
    timezone = device.get_timezone()
    assert timezone["offset_label"] == "GMT-7"
    assert timezone["local_date_label"] == "2026-10-18 15:00:00"
    assert device.state == LocateState.IDLE


@pytest.mark.asyncio
async def test_device_locate_forwards_scan_and_waits_for_agent() -> None:
    remote, device, scanner, received = _remote()
    completed: list[int] = []

    device.locate(use_previous=False, on_complete=lambda: completed.append(1))
    assert device.state == LocateState.AWAITING_SCAN
    await drain()

    (payload,) = received[Topic.SCAN_RESULT]
    assert [entry["bssid"] for entry in payload] == ["aabbccddeeff", "001122334455"]
    assert device.state == LocateState.AWAITING_GEOLOCATION
    assert scanner.calls == 1
    assert completed == []

    remote.send(Topic.LOCATE_RESULT, {"latitude": 1.0, "longitude": 2.0})
    await drain()

    assert completed == [1]
    assert device.get_location() == {"latitude": 1.0, "longitude": 2.0, "place_data": None}
    assert "error" in device.get_timezone()


@pytest.mark.asyncio
async def test_device_reuses_cached_scan_when_asked() -> None:
    remote, device, scanner, received = _remote()

    device.locate(use_previous=False)
    await drain()
    remote.send(Topic.LOCATE_RESULT, {"latitude": 1.0, "longitude": 2.0})
    await drain()
    device.locate(use_previous=True)
    await drain()

    assert scanner.calls == 1
    assert len(received[Topic.SCAN_RESULT]) == 2


@pytest.mark.asyncio
async def test_request_scan_from_agent_starts_a_cycle_without_callback() -> None:
    remote, device, scanner, received = _remote()

    remote.send(Topic.REQUEST_SCAN, True)
    await drain()

    assert scanner.calls == 1
    assert len(received[Topic.SCAN_RESULT]) == 1
    assert device.state == LocateState.AWAITING_GEOLOCATION

    remote.send(Topic.LOCATE_FAILED, {"error": "geolocation failed: HTTP 404"})
    await drain()

    assert device.state == LocateState.IDLE
    assert device.get_location() == {"error": "geolocation failed: HTTP 404"}


@pytest.mark.asyncio
async def test_second_device_locate_is_ignored_while_in_flight() -> None:
    _remote_side, device, scanner, received = _remote()

    device.locate(use_previous=False)
    device.locate(use_previous=False)
    await drain()

    assert scanner.calls == 1
    assert len(received[Topic.SCAN_RESULT]) == 1


@pytest.mark.asyncio
async def test_locate_failed_without_device_cycle_is_not_recorded() -> None:
    remote, device, _scanner, _received = _remote()

    remote.send(Topic.LOCATE_FAILED, {"error": "boom"})
    await drain()

    assert device.get_location() == {"error": NEVER_LOCATED}


@pytest.mark.asyncio
async def test_malformed_locate_result_is_discarded() -> None:
    remote, device, _scanner, _received = _remote()
    device.locate(use_previous=False)
    await drain()

    remote.send(Topic.LOCATE_RESULT, {"latitude": "north"})
    await drain()

    assert device.state == LocateState.AWAITING_GEOLOCATION


@pytest.mark.asyncio
async def test_scanner_failure_forwards_an_empty_scan() -> None:
    remote, device_side = LoopbackTransport.pair()
    device = EdgeDevice(device_side, _FailingScanner())
    scans: list[Any] = []
    remote.on_message(Topic.SCAN_RESULT, scans.append)

    device.locate(use_previous=False)
    await drain()

    assert scans == [[]]


@pytest.mark.asyncio
async def test_async_locate_joins_an_in_flight_cycle() -> None:
    remote, device, scanner, _received = _remote()

    first = asyncio.create_task(device.async_locate(use_previous=False))
    second = asyncio.create_task(device.async_locate(use_previous=False))
    await drain()
    remote.send(Topic.LOCATE_RESULT, {"latitude": 1.0, "longitude": 2.0})

    results = await asyncio.wait_for(asyncio.gather(first, second), 1.0)

    assert results[0] == results[1] == {"latitude": 1.0, "longitude": 2.0, "place_data": None}
    assert scanner.calls == 1


@pytest.mark.asyncio
async def test_pushed_result_after_failed_cycle_replaces_the_error() -> None:
    remote, device, _scanner, _received = _remote()
    device.locate(use_previous=False)
    await drain()
    remote.send(Topic.LOCATE_FAILED, {"error": "No WiFi networks available"})
    await drain()
    assert device.get_location() == {"error": "No WiFi networks available"}

    # Agent-initiated cycle from its cache: the device is idle when the result lands.
    remote.send(Topic.LOCATE_RESULT, {"latitude": 37.1, "longitude": -122.1})
    await drain()

    assert device.state == LocateState.IDLE
    assert device.get_location() == {"latitude": 37.1, "longitude": -122.1, "place_data": None}
    assert device.last_error is None
