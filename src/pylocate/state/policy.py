"""Retry policy for provider failures.

This module maps a classified provider error to a retry delay. It does not
inspect payloads; classification happens in the endpoint layer.
"""

from __future__ import annotations

from datetime import datetime

from pylocate.exceptions import LocatorError, RateLimitedError, TransientNetworkError


def seconds_until_midnight(now: datetime) -> float:
    """Whole hours left in the local day, in seconds (hour 22 -> 7200)."""
    return float((24 - now.hour) * 3600)


def retry_delay(
    error: LocatorError,
    *,
    now: datetime,
    transient_delay: float,
    rate_limit_delay: float,
) -> float | None:
    """Seconds to wait before re-issuing the failed stage, or ``None`` if terminal.

    Policy:
    - malformed body, HTTP 5xx, connection failure: fixed *transient_delay*,
      retried without limit;
    - ``userRateLimitExceeded``: *rate_limit_delay*;
    - ``dailyLimitExceeded``: until local midnight;
    - everything else is terminal.
    """
    if isinstance(error, TransientNetworkError):
        return transient_delay
    if isinstance(error, RateLimitedError):
        if error.daily:
            return seconds_until_midnight(now)
        return rate_limit_delay
    return None
