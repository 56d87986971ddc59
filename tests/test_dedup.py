from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pyfleetalerts.engine.dedup import active_alert_keys, should_emit
from pyfleetalerts.models.alert import AlertType, CandidateAlert, PersistedAlert

_NOW = datetime(2026, 1, 1, tzinfo=UTC)


def _candidate(device_id: str, alert_type: str) -> CandidateAlert:
    return CandidateAlert.model_validate(
        {
            "type": alert_type,
            "severity": "medium",
            "message": "m",
            "vehicle": {"id": device_id},
            "timestamp": _NOW.isoformat(),
        }
    )


def _persisted(device_id: str, alert_type: str, status: str, **extra: Any) -> PersistedAlert:
    return PersistedAlert.model_validate(
        {
            "_id": f"{device_id}-{alert_type}-{status}",
            "type": alert_type,
            "severity": "medium",
            "message": "m",
            "vehicle": {"id": device_id},
            "timestamp": _NOW.isoformat(),
            "status": status,
            **extra,
        }
    )


def test_rejects_when_same_device_and_type_is_active() -> None:
    active = [_persisted("D1", "temperature", "active")]
    assert should_emit(_candidate("D1", "temperature"), active) is False


def test_acknowledged_alert_still_counts_as_active() -> None:
    active = [_persisted("D1", "temperature", "acknowledged")]
    assert should_emit(_candidate("D1", "temperature"), active) is False


def test_resolved_alert_does_not_block() -> None:
    active = [_persisted("D1", "temperature", "resolved")]
    assert should_emit(_candidate("D1", "temperature"), active) is True


def test_other_type_or_other_device_is_not_suppressed() -> None:
    active = [_persisted("D1", "temperature", "active")]
    assert should_emit(_candidate("D1", "humidity"), active) is True
    assert should_emit(_candidate("D2", "temperature"), active) is True


def test_empty_active_set_accepts_everything() -> None:
    assert should_emit(_candidate("D1", "accident"), []) is True


def test_active_alert_keys() -> None:
    alerts = [
        _persisted("D1", "temperature", "active"),
        _persisted("D1", "speed", "resolved"),
        _persisted("D2", "accident", "acknowledged"),
    ]
    assert active_alert_keys(alerts) == frozenset({("D1", AlertType.TEMPERATURE), ("D2", AlertType.ACCIDENT)})
