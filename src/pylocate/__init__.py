"""pylocate - Locate a device from nearby WiFi networks via an internet-connected agent."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pylocate")
except PackageNotFoundError:
    __version__ = "0+local"
from pylocate._mqtt import MqttTransport
from pylocate.agent import EdgeAgent
from pylocate.config import ApiKeySet, LocatorConfig, MqttSettings
from pylocate.device import EdgeDevice
from pylocate.exceptions import (
    CredentialError,
    LocatorConfigError,
    LocatorError,
    LocatorTransportError,
    NoNetworksAvailableError,
    ProviderError,
    ProviderRejectedError,
    RateLimitedError,
    TimezoneUnavailableError,
    TransientNetworkError,
    UnclassifiedProviderError,
)
from pylocate.geo_client import GeoServiceClient
from pylocate.locator import Locator, LocatorRole
from pylocate.messaging import LoopbackTransport, MessageTransport, Topic
from pylocate.models import LocationResult, NetworkObservation, TimezoneResult
from pylocate.scanner import NmcliScanner, WifiScanner
from pylocate.state.machine import LocateState

__all__ = [
    "__version__",
    "ApiKeySet",
    "CredentialError",
    "EdgeAgent",
    "EdgeDevice",
    "GeoServiceClient",
    "LocateState",
    "LocationResult",
    "Locator",
    "LocatorConfig",
    "LocatorConfigError",
    "LocatorError",
    "LocatorRole",
    "LocatorTransportError",
    "LoopbackTransport",
    "MessageTransport",
    "MqttSettings",
    "MqttTransport",
    "NetworkObservation",
    "NmcliScanner",
    "NoNetworksAvailableError",
    "ProviderError",
    "ProviderRejectedError",
    "RateLimitedError",
    "TimezoneResult",
    "TimezoneUnavailableError",
    "Topic",
    "TransientNetworkError",
    "UnclassifiedProviderError",
    "WifiScanner",
]
