from __future__ import annotations

import asyncio

import pytest
from fakes import FakeProvider, drain, provider_error, reply

from pylocate._node import TIMEZONE_NO_LOCATION, TIMEZONE_PENDING
from pylocate.agent import EdgeAgent
from pylocate.device import EdgeDevice
from pylocate.state.machine import LocateState

Nodes = tuple[EdgeAgent, EdgeDevice]

_BERLIN = {
    "status": "OK",
    "rawOffset": 3600,
    "dstOffset": 0,
    "timeZoneId": "Europe/Berlin",
    "timeZoneName": "Central European Standard Time",
}


@pytest.mark.asyncio
async def test_refresh_updates_timezone_without_touching_location(nodes: Nodes, provider: FakeProvider) -> None:
    agent, device = nodes
    await device.async_locate(use_previous=False)
    location_before = agent.get_location()
    provider.queue("timezone", reply(200, _BERLIN))
    done = asyncio.Event()

    agent.refresh_timezone(done.set)

    assert agent.state == LocateState.IDLE
    assert agent.get_timezone() == {"error": TIMEZONE_PENDING}
    await asyncio.wait_for(done.wait(), 1.0)
    await drain()

    assert agent.get_timezone()["offset_label"] == "GMT+1"
    assert agent.get_location() == location_before
    assert agent.state == LocateState.IDLE
    assert len(provider.stage_calls("geolocation")) == 1
    assert len(provider.stage_calls("timezone")) == 2
    assert device.get_timezone()["time_zone_id"] == "Europe/Berlin"


@pytest.mark.asyncio
async def test_refresh_without_location_reports_error(nodes: Nodes, provider: FakeProvider) -> None:
    agent, _device = nodes
    calls: list[int] = []

    agent.refresh_timezone(lambda: calls.append(1))

    assert calls == [1]
    assert agent.get_timezone() == {"error": TIMEZONE_NO_LOCATION}
    assert provider.calls == []


@pytest.mark.asyncio
async def test_refresh_during_locate_is_coalesced(nodes: Nodes, provider: FakeProvider) -> None:
    agent, _device = nodes
    calls: list[int] = []

    agent.locate(use_previous=False)
    agent.refresh_timezone(lambda: calls.append(1))
    await agent.async_locate()
    await drain()

    assert calls == [1]
    assert len(provider.stage_calls("timezone")) == 1
    assert agent.get_timezone()["offset_label"] == "GMT-7"


@pytest.mark.asyncio
async def test_terminal_refresh_failure_keeps_previous_timezone(nodes: Nodes, provider: FakeProvider) -> None:
    agent, device = nodes
    await device.async_locate(use_previous=False)
    provider.queue("timezone", provider_error(400, "keyInvalid"))
    done = asyncio.Event()

    agent.refresh_timezone(done.set)
    await asyncio.wait_for(done.wait(), 1.0)
    await drain()

    assert agent.get_timezone()["offset_label"] == "GMT-7"
    assert "error" not in agent.get_location()
    assert device.get_timezone()["offset_label"] == "GMT-7"


@pytest.mark.asyncio
async def test_device_refresh_round_trip(nodes: Nodes, provider: FakeProvider) -> None:
    agent, device = nodes
    await device.async_locate(use_previous=False)
    provider.queue("timezone", reply(200, _BERLIN))
    done = asyncio.Event()

    device.refresh_timezone(done.set)
    assert device.get_timezone() == {"error": TIMEZONE_PENDING}
    await asyncio.wait_for(done.wait(), 1.0)

    assert device.get_timezone()["offset_label"] == "GMT+1"
    assert device.state == LocateState.IDLE
    assert agent.state == LocateState.IDLE


@pytest.mark.asyncio
async def test_device_refresh_before_any_location(nodes: Nodes) -> None:
    _agent, device = nodes
    done = asyncio.Event()

    device.refresh_timezone(done.set)
    await asyncio.wait_for(done.wait(), 1.0)

    assert device.get_timezone() == {"error": TIMEZONE_NO_LOCATION}


@pytest.mark.asyncio
async def test_refresh_status_not_ok_clears_timezone(nodes: Nodes, provider: FakeProvider) -> None:
    agent, device = nodes
    await device.async_locate(use_previous=False)
    provider.queue("timezone", reply(200, {"status": "OVER_QUERY_LIMIT"}))
    done = asyncio.Event()

    agent.refresh_timezone(done.set)
    await asyncio.wait_for(done.wait(), 1.0)

    assert "OVER_QUERY_LIMIT" in agent.get_timezone()["error"]
    assert agent.get_location()["latitude"] == 37.1


@pytest.mark.asyncio
async def test_refresh_while_refresh_runs_is_ignored(nodes: Nodes, provider: FakeProvider) -> None:
    agent, device = nodes
    await device.async_locate(use_previous=False)
    provider.queue("timezone", reply(200, _BERLIN))
    first = asyncio.Event()
    second: list[int] = []

    agent.refresh_timezone(first.set)
    agent.refresh_timezone(lambda: second.append(1))
    await asyncio.wait_for(first.wait(), 1.0)
    await drain()

    assert len(provider.stage_calls("timezone")) == 2
    assert second == []
    assert agent.get_timezone()["time_zone_id"] == "Europe/Berlin"
