"""Advisory duplicate guard over the last known alert list.

The alert service's unique index is authoritative; this only saves
round-trips. A stale view may let a duplicate through (the server rejects
it), but an alert type with no active entry is never suppressed.
"""

from __future__ import annotations

from collections.abc import Iterable

from pyfleetalerts.models.alert import AlertType, CandidateAlert, PersistedAlert


def active_alert_keys(alerts: Iterable[PersistedAlert]) -> frozenset[tuple[str, AlertType]]:
    """(device id, type) of every alert that is not resolved."""
    return frozenset(alert.dedup_key for alert in alerts if alert.is_active)


def should_emit(candidate: CandidateAlert, active_alerts: Iterable[PersistedAlert]) -> bool:
    return candidate.dedup_key not in active_alert_keys(active_alerts)
