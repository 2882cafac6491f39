"""Helpers for safe debug logging.

Request traces carry API keys in query strings and the MAC addresses of
access points near the device. Keys are reduced to their last four
characters, MAC addresses to their vendor prefix, before anything is
emitted to DEBUG logs.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import Any

_KEY_FIELDS: frozenset[str] = frozenset(
    {
        "key",
        "apikey",
        "api_key",
        "geolocation_key",
        "geocoding_key",
        "timezone_key",
    }
)
_SECRET_FIELDS: frozenset[str] = frozenset({"password", "authorization"})
_MAC_FIELDS: frozenset[str] = frozenset({"macaddress", "bssid"})

# ``key=...`` inside a URL or query string, as echoed by provider errors.
_QUERY_KEY = re.compile(r"(?P<name>[?&]?(?:api_?)?key=)(?P<value>[^&\s\"']+)", re.IGNORECASE)
_MAC = re.compile(r"^[0-9A-Fa-f]{2}([:-]?)[0-9A-Fa-f]{2}(?:\1[0-9A-Fa-f]{2}){4}$")

_MAX_DEPTH = 20


def mask_key(key: str) -> str:
    """Show only the last four characters of an API key."""
    if len(key) <= 4:
        return "****"
    return f"****{key[-4:]}"


def mask_mac(value: str) -> str:
    """Keep the vendor prefix of a MAC address: ``AA:BB:CC:**:**:**``."""
    if not _MAC.match(value):
        return "<redacted>"
    digits = re.sub(r"[:-]", "", value)
    return ":".join([digits[0:2], digits[2:4], digits[4:6], "**", "**", "**"])


def _redact_text(value: str, max_string: int) -> str:
    text = _QUERY_KEY.sub(lambda m: m.group("name") + mask_key(m.group("value")), value)
    if len(text) > max_string:
        return f"{text[:max_string]}…<truncated>"
    return text


def _redact_field(name: str, value: Any, max_string: int, depth: int) -> Any:
    lowered = name.lower()
    if lowered in _KEY_FIELDS:
        return mask_key(value) if isinstance(value, str) else "<redacted>"
    if lowered in _SECRET_FIELDS:
        return "<redacted>"
    if lowered in _MAC_FIELDS and isinstance(value, str):
        return mask_mac(value)
    return redact_for_log(value, max_string=max_string, _depth=depth + 1)


def redact_for_log(value: Any, *, max_string: int = 512, _depth: int = 0) -> Any:
    """Return a copy of *value* that is safe to put in debug logs.

    Mappings are walked recursively: API key fields are masked with
    :func:`mask_key`, MAC address fields with :func:`mask_mac`, secrets are
    replaced outright. Strings have any ``key=`` query parameter masked and
    are truncated to *max_string* characters.
    """
    if _depth > _MAX_DEPTH:
        return "<max-depth>"
    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, str):
        return _redact_text(value, max_string)
    if isinstance(value, (bytes, bytearray)):
        return f"<bytes:{len(value)}b>"
    if isinstance(value, Mapping):
        return {str(k): _redact_field(str(k), v, max_string, _depth) for k, v in value.items()}
    if isinstance(value, Sequence):
        return [redact_for_log(v, max_string=max_string, _depth=_depth + 1) for v in value]
    return repr(value)
