"""Node configuration for pylocate."""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Mapping
from typing import Any

from pylocate._constants import (
    DEFAULT_TOPIC_PREFIX,
    GEOCODING_URL,
    GEOLOCATION_URL,
    RATE_LIMIT_RETRY_DELAY,
    TIMEZONE_URL,
    TRANSIENT_RETRY_DELAY,
)
from pylocate.exceptions import LocatorConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _require_key(slot: str, value: Any) -> str:
    if not isinstance(value, str):
        raise LocatorConfigError(f"{slot} API key must be a string, got {type(value).__name__}")
    stripped = value.strip()
    if not stripped:
        raise LocatorConfigError(f"{slot} API key must be non-empty")
    return stripped


# Accepted spellings for each slot of a three-key table.
_KEY_SLOTS: dict[str, tuple[str, ...]] = {
    "geolocation_key": ("geolocation_key", "geolocation", "geolocationKey"),
    "geocoding_key": ("geocoding_key", "geocoding", "geocodingKey"),
    "timezone_key": ("timezone_key", "timezone", "timezoneKey"),
}


@dataclasses.dataclass(frozen=True)
class ApiKeySet:
    """API keys for the three provider endpoints.

    A single key may be reused for all three slots; see :meth:`from_value`.
    """

    geolocation_key: str
    geocoding_key: str
    timezone_key: str

    def __post_init__(self) -> None:
        for field in dataclasses.fields(self):
            value = _require_key(field.name.removesuffix("_key"), getattr(self, field.name))
            object.__setattr__(self, field.name, value)

    @classmethod
    def from_value(cls, value: str | Mapping[str, str] | ApiKeySet) -> ApiKeySet:
        """Build a key set from a single key or a three-key table.

        Parameters
        ----------
        value : str or Mapping or ApiKeySet
            One key shared by all endpoints, or a mapping with
            ``geolocation``, ``geocoding`` and ``timezone`` entries
            (``*_key`` and camelCase spellings are accepted too).

        Raises
        ------
        LocatorConfigError
            If a key is missing, empty or not a string.
        """
        if isinstance(value, ApiKeySet):
            return value
        if isinstance(value, str):
            key = _require_key("shared", value)
            return cls(geolocation_key=key, geocoding_key=key, timezone_key=key)
        if isinstance(value, Mapping):
            kwargs: dict[str, str] = {}
            for slot, spellings in _KEY_SLOTS.items():
                found = next((value[name] for name in spellings if name in value), None)
                if found is None:
                    raise LocatorConfigError(f"API key table is missing the {slot.removesuffix('_key')} key")
                kwargs[slot] = found
            return cls(**kwargs)
        raise LocatorConfigError(f"API keys must be a string or a mapping, got {type(value).__name__}")


@dataclasses.dataclass(frozen=True)
class MqttSettings:
    """Broker details for :class:`pylocate.MqttTransport`.

    Parameters
    ----------
    host : str
        Broker hostname.
    port : int
        Broker port.
    username, password : str or None
        Optional broker credentials.
    tls : bool
        Wrap the connection in TLS using system CA certificates.
    client_id : str
        MQTT client id; empty lets paho generate one.
    topic_prefix : str
        Prefix under which every protocol topic is published.
    keepalive : int
        MQTT keepalive in seconds.
    """

    host: str
    port: int = 1883
    username: str | None = None
    password: str | None = None
    tls: bool = False
    client_id: str = ""
    topic_prefix: str = DEFAULT_TOPIC_PREFIX
    keepalive: int = 60

    @classmethod
    def from_env(cls, **overrides: Any) -> MqttSettings:
        """Create settings from ``LOCATOR_MQTT_*`` environment variables."""
        env = os.environ
        kwargs: dict[str, Any] = {}
        _ENV_MAP = {
            "LOCATOR_MQTT_HOST": "host",
            "LOCATOR_MQTT_USERNAME": "username",
            "LOCATOR_MQTT_PASSWORD": "password",
            "LOCATOR_MQTT_CLIENT_ID": "client_id",
            "LOCATOR_MQTT_TOPIC_PREFIX": "topic_prefix",
        }
        for env_key, field_name in _ENV_MAP.items():
            val = env.get(env_key)
            if val is not None:
                kwargs[field_name] = val

        port_env = env.get("LOCATOR_MQTT_PORT")
        if port_env is not None and "port" not in overrides:
            kwargs["port"] = int(port_env)

        keepalive_env = env.get("LOCATOR_MQTT_KEEPALIVE")
        if keepalive_env is not None and "keepalive" not in overrides:
            kwargs["keepalive"] = int(keepalive_env)

        if "tls" not in overrides:
            kwargs["tls"] = _env_bool(env.get("LOCATOR_MQTT_TLS"), False)

        kwargs.update(overrides)
        if not kwargs.get("host"):
            raise LocatorConfigError("MQTT host is required (set LOCATOR_MQTT_HOST)")
        return cls(**kwargs)


@dataclasses.dataclass(frozen=True)
class LocatorConfig:
    """Node configuration.

    Parameters
    ----------
    api_keys : ApiKeySet or None
        Provider API keys. Required on the agent; the device never talks
        to the provider and may leave this unset.
    debug : bool
        Trace provider requests and responses (redacted) at DEBUG level.
    geolocation_url, geocoding_url, timezone_url : str
        Provider endpoints.
    transient_retry_delay : float
        Seconds to wait before retrying after a malformed body, an HTTP 5xx
        or a connection failure.
    rate_limit_retry_delay : float
        Seconds to wait after ``userRateLimitExceeded``.
    request_timeout : float
        Total timeout for a single provider request, in seconds.
    topic_prefix : str
        Prefix shared by both nodes for cross-node topics.
    """

    api_keys: ApiKeySet | None = None
    debug: bool = False
    geolocation_url: str = GEOLOCATION_URL
    geocoding_url: str = GEOCODING_URL
    timezone_url: str = TIMEZONE_URL
    transient_retry_delay: float = TRANSIENT_RETRY_DELAY
    rate_limit_retry_delay: float = RATE_LIMIT_RETRY_DELAY
    request_timeout: float = 30.0
    topic_prefix: str = DEFAULT_TOPIC_PREFIX

    def __post_init__(self) -> None:
        if self.api_keys is not None and not isinstance(self.api_keys, ApiKeySet):
            object.__setattr__(self, "api_keys", ApiKeySet.from_value(self.api_keys))
        if self.transient_retry_delay < 0 or self.rate_limit_retry_delay < 0:
            raise LocatorConfigError("retry delays must be non-negative")
        if self.request_timeout <= 0:
            raise LocatorConfigError("request_timeout must be positive")

    def require_api_keys(self) -> ApiKeySet:
        """Return the key set, raising if the node was configured without one."""
        if self.api_keys is None:
            raise LocatorConfigError("API keys are required on the agent")
        return self.api_keys

    @classmethod
    def from_env(cls, **overrides: Any) -> LocatorConfig:
        """Create configuration from environment variables.

        Reads ``LOCATOR_API_KEY`` (shared key) or the per-endpoint
        ``LOCATOR_GEOLOCATION_KEY``, ``LOCATOR_GEOCODING_KEY`` and
        ``LOCATOR_TIMEZONE_KEY``, plus optional ``LOCATOR_*`` settings.
        Explicit keyword arguments override environment values.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        if "api_keys" not in overrides:
            per_endpoint = {
                "geolocation": env.get("LOCATOR_GEOLOCATION_KEY"),
                "geocoding": env.get("LOCATOR_GEOCODING_KEY"),
                "timezone": env.get("LOCATOR_TIMEZONE_KEY"),
            }
            shared = env.get("LOCATOR_API_KEY")
            if any(v is not None for v in per_endpoint.values()):
                # Per-endpoint keys fall back to the shared key when only some are set.
                table = {slot: v if v is not None else shared for slot, v in per_endpoint.items()}
                config_kwargs["api_keys"] = ApiKeySet.from_value(table)  # type: ignore[arg-type]
            elif shared is not None:
                config_kwargs["api_keys"] = ApiKeySet.from_value(shared)

        _ENV_URL_MAP = {
            "LOCATOR_GEOLOCATION_URL": "geolocation_url",
            "LOCATOR_GEOCODING_URL": "geocoding_url",
            "LOCATOR_TIMEZONE_URL": "timezone_url",
            "LOCATOR_TOPIC_PREFIX": "topic_prefix",
        }
        for env_key, field_name in _ENV_URL_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        _ENV_FLOAT_MAP = {
            "LOCATOR_TRANSIENT_RETRY_DELAY": "transient_retry_delay",
            "LOCATOR_RATE_LIMIT_RETRY_DELAY": "rate_limit_retry_delay",
            "LOCATOR_REQUEST_TIMEOUT": "request_timeout",
        }
        for env_key, field_name in _ENV_FLOAT_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = float(val)

        if "debug" not in overrides:
            config_kwargs["debug"] = _env_bool(env.get("LOCATOR_DEBUG"), False)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
