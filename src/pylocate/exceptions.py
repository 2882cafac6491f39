"""Custom exception hierarchy for pylocate."""

from __future__ import annotations


class LocatorError(Exception):
    """Base exception for all pylocate errors."""


class LocatorConfigError(LocatorError):
    """Invalid or missing configuration (e.g. an empty API key)."""


class LocatorTransportError(LocatorError):
    """Cross-node message transport failure (publish or decode)."""


class NoNetworksAvailableError(LocatorError):
    """No WiFi observations were available to geolocate from.

    Raised when a scan returned an empty list and no cached scan exists.
    This is terminal for the locate cycle; retrying will not help until
    the device sees at least one access point.
    """


class ProviderError(LocatorError):
    """The geolocation provider returned an error response.

    Parameters
    ----------
    message : str
        Human readable description.
    stage : str
        Pipeline stage that issued the request
        (``"geolocation"``, ``"geocoding"`` or ``"timezone"``).
    http_status : int or None
        HTTP status code, ``None`` if the request never got a response.
    provider_code : int or None
        Error code embedded in the provider's JSON error envelope.
    provider_reason : str or None
        ``errors[0].reason`` from the provider's JSON error envelope.
    """

    def __init__(
        self,
        message: str,
        *,
        stage: str = "",
        http_status: int | None = None,
        provider_code: int | None = None,
        provider_reason: str | None = None,
    ) -> None:
        self.stage = stage
        self.http_status = http_status
        self.provider_code = provider_code
        self.provider_reason = provider_reason
        super().__init__(message)


class TransientNetworkError(ProviderError):
    """Malformed body, HTTP 5xx or connection failure; safe to retry."""


class RateLimitedError(ProviderError):
    """Provider quota exhausted (HTTP 403).

    ``daily`` distinguishes the per-day quota (``dailyLimitExceeded``),
    which only resets at midnight, from the short per-user rate limit
    (``userRateLimitExceeded``).
    """

    def __init__(self, message: str, *, daily: bool = False, **kwargs: object) -> None:
        self.daily = daily
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class ProviderRejectedError(ProviderError):
    """Provider rejected the request (HTTP 400); the request will never succeed as-is."""


class CredentialError(ProviderRejectedError):
    """API key rejected by the provider (``keyInvalid``)."""


class UnclassifiedProviderError(ProviderError):
    """Error response whose shape does not match any known provider error."""


class TimezoneUnavailableError(ProviderError):
    """Timezone endpoint answered with a non-``OK`` status.

    Not a cycle failure: the location is still valid, only the timezone
    is left unset.
    """

    def __init__(self, message: str, *, status: str = "", **kwargs: object) -> None:
        self.status = status
        super().__init__(message, **kwargs)  # type: ignore[arg-type]
