"""Shared response classification for the provider endpoint modules.

Every stage of the pipeline runs its reply through :func:`check_response`
before looking at the payload, so malformed bodies, server errors and the
provider's JSON error envelope are mapped to the same typed exceptions
regardless of which endpoint produced them.

The provider error envelope looks like::

    {"error": {"code": 403, "message": "...",
               "errors": [{"domain": "usageLimits", "reason": "dailyLimitExceeded"}]}}
"""

from __future__ import annotations

from typing import Any

from pylocate._constants import (
    REASON_DAILY_LIMIT,
    REASON_KEY_INVALID,
    REASON_USER_RATE_LIMIT,
)
from pylocate._http import ProviderResponse
from pylocate._normalize import safe_int, safe_str
from pylocate.exceptions import (
    CredentialError,
    ProviderRejectedError,
    RateLimitedError,
    TransientNetworkError,
    UnclassifiedProviderError,
)


def _error_envelope(body: Any) -> tuple[int | None, str | None, str]:
    """Extract ``(code, reason, message)`` from a provider error body."""
    if not isinstance(body, dict):
        return None, None, ""
    error = body.get("error")
    if not isinstance(error, dict):
        return None, None, str(body.get("error_message") or "")
    code = safe_int(error.get("code"))
    message = str(error.get("message") or "")
    reason: str | None = None
    errors = error.get("errors")
    if isinstance(errors, list) and errors and isinstance(errors[0], dict):
        reason = safe_str(errors[0].get("reason"))
    return code, reason, message


def check_response(stage: str, response: ProviderResponse) -> dict[str, Any]:
    """Return the JSON object of a successful reply or raise a typed error.

    Raises
    ------
    TransientNetworkError
        Body is not JSON, or HTTP 5xx.
    CredentialError
        ``400 keyInvalid``.
    ProviderRejectedError
        Any other ``400`` reason (e.g. ``parseError``).
    RateLimitedError
        ``403 userRateLimitExceeded`` or ``403 dailyLimitExceeded``.
    UnclassifiedProviderError
        Any other error shape.
    """
    status = response.status
    if response.malformed:
        raise TransientNetworkError(
            f"{stage} response is not JSON (HTTP {status}): {response.text[:128]}",
            stage=stage,
            http_status=status,
        )
    if status >= 500:
        raise TransientNetworkError(
            f"{stage} server error: HTTP {status}",
            stage=stage,
            http_status=status,
        )

    body = response.body
    if 200 <= status < 300 and isinstance(body, dict) and "error" not in body:
        return body

    code, reason, message = _error_envelope(body)
    if code is None and status >= 400:
        code = status
    details = {
        "stage": stage,
        "http_status": status,
        "provider_code": code,
        "provider_reason": reason,
    }
    summary = f"{stage} failed: HTTP {status} code={code} reason={reason} message={message}"

    if code == 400:
        if reason == REASON_KEY_INVALID:
            raise CredentialError(summary, **details)  # type: ignore[arg-type]
        raise ProviderRejectedError(summary, **details)  # type: ignore[arg-type]
    if code == 403:
        if reason == REASON_USER_RATE_LIMIT:
            raise RateLimitedError(summary, daily=False, **details)
        if reason == REASON_DAILY_LIMIT:
            raise RateLimitedError(summary, daily=True, **details)
    raise UnclassifiedProviderError(summary, **details)  # type: ignore[arg-type]
