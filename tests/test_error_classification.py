from __future__ import annotations

import pytest
from fakes import provider_error, reply

from pylocate._api._common import check_response
from pylocate._http import ProviderResponse
from pylocate.exceptions import (
    CredentialError,
    ProviderRejectedError,
    RateLimitedError,
    TransientNetworkError,
    UnclassifiedProviderError,
)


def test_success_body_is_returned() -> None:
    body = check_response("geolocation", reply(200, {"location": {"lat": 1, "lng": 2}}))
    assert body["location"] == {"lat": 1, "lng": 2}


def test_malformed_body_is_transient_even_with_ok_status() -> None:
    with pytest.raises(TransientNetworkError) as exc_info:
        check_response("geolocation", ProviderResponse.from_text(200, "<html>502 Bad Gateway</html>"))
    assert exc_info.value.stage == "geolocation"
    assert exc_info.value.http_status == 200


@pytest.mark.parametrize("status", [500, 502, 503])
def test_server_errors_are_transient(status: int) -> None:
    with pytest.raises(TransientNetworkError):
        check_response("geocoding", reply(status, {"error": {"code": status, "message": "Backend Error"}}))


def test_key_invalid_is_a_credential_error() -> None:
    with pytest.raises(CredentialError) as exc_info:
        check_response("geolocation", provider_error(400, "keyInvalid", "API key not valid."))
    err = exc_info.value
    assert err.provider_code == 400
    assert err.provider_reason == "keyInvalid"
    assert "API key not valid." in str(err)


def test_parse_error_is_rejected_but_not_credential() -> None:
    with pytest.raises(ProviderRejectedError) as exc_info:
        check_response("geolocation", provider_error(400, "parseError"))
    assert not isinstance(exc_info.value, CredentialError)


def test_user_rate_limit() -> None:
    with pytest.raises(RateLimitedError) as exc_info:
        check_response("timezone", provider_error(403, "userRateLimitExceeded"))
    assert exc_info.value.daily is False


def test_daily_limit() -> None:
    with pytest.raises(RateLimitedError) as exc_info:
        check_response("geolocation", provider_error(403, "dailyLimitExceeded"))
    assert exc_info.value.daily is True


@pytest.mark.parametrize(
    "response",
    [
        provider_error(404, "notFound"),
        provider_error(403, "accessNotConfigured"),
        reply(200, {"error": {"code": 418}}),
        reply(200, ["not", "an", "object"]),
    ],
)
def test_anything_else_is_unclassified(response: ProviderResponse) -> None:
    with pytest.raises(UnclassifiedProviderError):
        check_response("geolocation", response)
