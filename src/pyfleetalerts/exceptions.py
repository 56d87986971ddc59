"""Custom exception hierarchy for pyfleetalerts."""

from __future__ import annotations


class FleetAlertsError(Exception):
    """Base exception for all pyfleetalerts errors."""


class FleetConfigError(FleetAlertsError):
    """Invalid or missing configuration."""


class FleetTransportError(FleetAlertsError):
    """HTTP-level failure (network, non-2xx, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class FleetApiError(FleetAlertsError):
    """The service answered with ``success: false`` or an unusable body."""

    def __init__(self, message: str, *, endpoint: str = "") -> None:
        self.endpoint = endpoint
        super().__init__(message)


class DuplicateAlertError(FleetApiError):
    """An active alert of the same (device, type) already exists.

    The alert history service enforces one non-resolved alert per
    device and alert type. Callers treat this as success-equivalent.
    """


class FeedError(FleetAlertsError):
    """Realtime telemetry store failure (stream, write)."""


class FeedAuthenticationError(FeedError):
    """Anonymous identity handshake with the telemetry store failed."""
