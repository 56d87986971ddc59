"""Alert history endpoints.

Endpoints:
  - POST /alerts               (persist a candidate alert)
  - GET  /alerts               (list alerts of the caller's tenant)
  - PUT  /alerts/{id}/status   (acknowledge / resolve)
"""

from __future__ import annotations

import logging

from pydantic import ValidationError

from pyfleetalerts._api._common import is_duplicate_ignored, is_duplicate_key_error, unwrap_envelope
from pyfleetalerts._constants import ALERTS_ENDPOINT
from pyfleetalerts._transport import Transport
from pyfleetalerts.exceptions import DuplicateAlertError, FleetApiError, FleetTransportError
from pyfleetalerts.models.alert import AlertQuery, AlertStatus, CandidateAlert, PersistedAlert

_logger = logging.getLogger(__name__)


def _parse_alert(endpoint: str, data: object) -> PersistedAlert:
    try:
        return PersistedAlert.model_validate(data)
    except ValidationError as exc:
        raise FleetApiError(f"{endpoint} returned an invalid alert: {exc}", endpoint=endpoint) from exc


async def create_alert(transport: Transport, candidate: CandidateAlert) -> PersistedAlert:
    """Persist *candidate*.

    Raises
    ------
    DuplicateAlertError
        An active alert of the same (device, type) already exists.
    """
    try:
        response = await transport.request("POST", ALERTS_ENDPOINT, json_body=candidate.to_payload())
    except FleetTransportError as exc:
        if is_duplicate_key_error(exc):
            raise DuplicateAlertError(
                f"Active {candidate.type} alert already exists for device {candidate.device_id}",
                endpoint=ALERTS_ENDPOINT,
            ) from exc
        raise

    if is_duplicate_ignored(response):
        raise DuplicateAlertError(
            f"Active {candidate.type} alert already exists for device {candidate.device_id}",
            endpoint=ALERTS_ENDPOINT,
        )
    data = unwrap_envelope(endpoint=ALERTS_ENDPOINT, response=response)
    return _parse_alert(ALERTS_ENDPOINT, data)


async def list_alerts(transport: Transport, query: AlertQuery | None = None) -> list[PersistedAlert]:
    """Fetch the alert list of the caller's tenant, newest first."""
    response = await transport.request(
        "GET",
        ALERTS_ENDPOINT,
        params=query.to_params() if query is not None else None,
    )
    data = unwrap_envelope(endpoint=ALERTS_ENDPOINT, response=response)
    items = data if isinstance(data, list) else []

    alerts: list[PersistedAlert] = []
    for item in items:
        try:
            alerts.append(PersistedAlert.model_validate(item))
        except ValidationError:
            _logger.warning("Skipping malformed alert record from %s", ALERTS_ENDPOINT, exc_info=True)
    return alerts


async def update_alert_status(transport: Transport, alert_id: str, status: AlertStatus) -> PersistedAlert:
    """Move an alert to ``acknowledged`` or ``resolved``."""
    endpoint = f"{ALERTS_ENDPOINT}/{alert_id}/status"
    response = await transport.request("PUT", endpoint, json_body={"status": str(status)})
    data = unwrap_envelope(endpoint=endpoint, response=response)
    _logger.debug("Alert status updated id=%s status=%s", alert_id, status)
    return _parse_alert(endpoint, data)
