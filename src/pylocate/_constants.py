"""Internal constants shared across the library."""

GEOLOCATION_URL = "https://www.googleapis.com/geolocation/v1/geolocate"
GEOCODING_URL = "https://maps.googleapis.com/maps/api/geocode/json"
TIMEZONE_URL = "https://maps.googleapis.com/maps/api/timezone/json"

USER_AGENT = "pylocate"

STAGE_GEOLOCATION = "geolocation"
STAGE_GEOCODING = "geocoding"
STAGE_TIMEZONE = "timezone"

# Retry delays (seconds)
TRANSIENT_RETRY_DELAY = 60.0
RATE_LIMIT_RETRY_DELAY = 10.0

# Provider error reasons (``error.errors[0].reason``)
REASON_KEY_INVALID = "keyInvalid"
REASON_USER_RATE_LIMIT = "userRateLimitExceeded"
REASON_DAILY_LIMIT = "dailyLimitExceeded"

TIMEZONE_STATUS_OK = "OK"

DEFAULT_TOPIC_PREFIX = "pylocate"
