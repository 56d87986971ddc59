"""Shared helpers for service endpoint modules.

This module centralizes the most repeated patterns:
- unwrapping the ``{success, message, data}`` envelope
- recognising the one-active-alert-per-(device, type) conflict

It is internal to pyfleetalerts and may change at any time.
"""

from __future__ import annotations

from typing import Any

from pyfleetalerts._constants import DUPLICATE_IGNORED_MARKER, DUPLICATE_KEY_MARKER
from pyfleetalerts.exceptions import FleetApiError, FleetTransportError


def is_duplicate_key_error(exc: FleetTransportError) -> bool:
    """Whether a transport error is the service's unique-index rejection."""
    return exc.status_code == 500 and DUPLICATE_KEY_MARKER in str(exc).lower()


def unwrap_envelope(*, endpoint: str, response: Any) -> Any:
    """Return ``data`` from a service reply, raising on ``success: false``.

    Bare (non-envelope) JSON is passed through unchanged.
    """
    if not isinstance(response, dict) or "success" not in response:
        return response
    if response.get("success") is not True:
        raise FleetApiError(
            f"{endpoint} failed: message={response.get('message', '')}",
            endpoint=endpoint,
        )
    return response.get("data")


def is_duplicate_ignored(response: Any) -> bool:
    """Whether a 2xx reply reports that an existing active alert was kept."""
    if not isinstance(response, dict):
        return False
    message = str(response.get("message", "")).lower()
    return DUPLICATE_IGNORED_MARKER in message
