from __future__ import annotations

import pytest
from fakes import FIXED_NOW, FakeProvider, FakeScanner, RecordingSleep

from pylocate.agent import EdgeAgent
from pylocate.config import ApiKeySet, LocatorConfig
from pylocate.device import EdgeDevice
from pylocate.messaging import LoopbackTransport


@pytest.fixture
def config() -> LocatorConfig:
    return LocatorConfig(api_keys=ApiKeySet.from_value("test-key-1234"))


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def scanner() -> FakeScanner:
    return FakeScanner()


@pytest.fixture
def sleeper() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def nodes(
    config: LocatorConfig,
    provider: FakeProvider,
    scanner: FakeScanner,
    sleeper: RecordingSleep,
) -> tuple[EdgeAgent, EdgeDevice]:
    agent_side, device_side = LoopbackTransport.pair()
    agent = EdgeAgent(
        agent_side,
        config,
        http_transport=provider,
        sleep=sleeper,
        clock=lambda: FIXED_NOW,
    )
    device = EdgeDevice(device_side, scanner, config)
    return agent, device
