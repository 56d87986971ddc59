"""Internal constants shared across the library."""

API_BASE_URL = "http://localhost:5000/api"
IDENTITY_URL = "https://identitytoolkit.googleapis.com"
USER_AGENT = "pyfleetalerts"

ALERTS_ENDPOINT = "/alerts"
CHECK_REGISTRATION_ENDPOINT = "/vehicles/check-registration"

DEFAULT_DEBOUNCE_SECONDS = 0.5
DEFAULT_POLL_INTERVAL = 10.0
DEFAULT_REQUEST_TIMEOUT = 10.0
DEFAULT_FEED_RECONNECT_DELAY = 5.0

# Text the alert service puts in a 500 body when the unique index on
# (tenant, device, type, active) rejects an insert.
DUPLICATE_KEY_MARKER = "duplicate key"
# Message of the 200 reply sent when the service itself finds the active alert.
DUPLICATE_IGNORED_MARKER = "duplicate active alert"

ACCIDENT_FLAG = "accident_detected"
TAMPERING_FLAG = "tampering_detected"
