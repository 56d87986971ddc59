"""Submit accepted candidates to the alert history service."""

from __future__ import annotations

import logging

from pyfleetalerts._api.alerts import create_alert
from pyfleetalerts._transport import Transport
from pyfleetalerts.exceptions import DuplicateAlertError, FleetAlertsError
from pyfleetalerts.models.alert import CandidateAlert, PersistedAlert

_logger = logging.getLogger(__name__)


class AlertPersistenceClient:
    def __init__(self, transport: Transport) -> None:
        self._transport = transport

    async def persist(self, candidate: CandidateAlert) -> PersistedAlert | None:
        """Persist *candidate*, returning ``None`` when nothing was created.

        A duplicate-key conflict means the active alert already exists and
        is logged at INFO. Every other service failure is logged at
        WARNING. Neither is raised.
        """
        try:
            alert = await create_alert(self._transport, candidate)
        except DuplicateAlertError:
            _logger.info(
                "Active %s alert already exists for device %s; not creating another",
                candidate.type,
                candidate.device_id,
            )
            return None
        except FleetAlertsError as exc:
            _logger.warning(
                "Failed to persist %s alert for device %s: %s",
                candidate.type,
                candidate.device_id,
                exc,
            )
            return None

        _logger.info("Persisted %s alert id=%s device=%s", alert.type, alert.id, alert.device_id)
        return alert
