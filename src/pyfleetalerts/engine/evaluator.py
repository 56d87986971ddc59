"""Threshold rules: device snapshot + vehicle config -> candidate alerts."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime

from pyfleetalerts.ingestion.normalize import is_enabled_limit
from pyfleetalerts.models.alert import (
    SEVERITY_BY_TYPE,
    AlertLocation,
    AlertType,
    CandidateAlert,
    TriggerCondition,
    VehicleRef,
)
from pyfleetalerts.models.telemetry import DeviceSnapshot
from pyfleetalerts.models.vehicle import VehicleConfig


def _format_number(value: float) -> str:
    if value.is_integer():
        return str(int(value))
    return f"{round(value, 2)}"


@dataclass(frozen=True)
class _MetricRule:
    type: AlertType
    unit: str
    message: str
    details: str
    reading: Callable[[DeviceSnapshot], float | None]
    limit: Callable[[VehicleConfig], float | None]


_METRIC_RULES: tuple[_MetricRule, ...] = (
    _MetricRule(
        type=AlertType.TEMPERATURE,
        unit="°C",
        message="High temperature detected",
        details="Temperature exceeded threshold of {limit}°C. Current temperature: {value}°C",
        reading=lambda snapshot: snapshot.sensor.temperature,
        limit=lambda vehicle: vehicle.temperature_limit,
    ),
    _MetricRule(
        type=AlertType.HUMIDITY,
        unit="%",
        message="High humidity detected",
        details="Humidity exceeded threshold of {limit}%. Current humidity: {value}%",
        reading=lambda snapshot: snapshot.sensor.humidity,
        limit=lambda vehicle: vehicle.humidity_limit,
    ),
    _MetricRule(
        type=AlertType.SPEED,
        unit="km/h",
        message="Speed limit exceeded",
        details="Speed exceeded limit of {limit} km/h. Current speed: {value} km/h",
        reading=lambda snapshot: snapshot.gps.speed,
        limit=lambda vehicle: vehicle.speed_limit,
    ),
)


def evaluate_thresholds(
    snapshot: DeviceSnapshot,
    vehicle: VehicleConfig,
    *,
    now: datetime | None = None,
) -> list[CandidateAlert]:
    """Return the candidate alerts raised by *snapshot*.

    At most one candidate per rule. A metric rule fires only when its
    reading is a finite number strictly above a positive limit; the
    snapshot model already turned NaN and non-numeric readings into
    ``None``. Accident and tampering fire on their one-shot flags.
    """
    timestamp = now or datetime.now(UTC)
    vehicle_ref = VehicleRef(
        id=snapshot.device_id,
        name=vehicle.vehicle_name,
        license_plate=vehicle.license_plate,
    )
    location = (
        AlertLocation(lat=snapshot.gps.latitude, lng=snapshot.gps.longitude) if snapshot.has_location else None
    )

    def _candidate(
        alert_type: AlertType,
        message: str,
        details: str,
        trigger: TriggerCondition,
    ) -> CandidateAlert:
        return CandidateAlert(
            type=alert_type,
            severity=SEVERITY_BY_TYPE[alert_type],
            message=message,
            vehicle=vehicle_ref,
            location=location,
            timestamp=timestamp,
            details=details,
            trigger_condition=trigger,
        )

    candidates: list[CandidateAlert] = []
    for rule in _METRIC_RULES:
        observed = rule.reading(snapshot)
        limit = rule.limit(vehicle)
        if observed is None or limit is None or not is_enabled_limit(limit):
            continue
        if observed <= limit:
            continue
        candidates.append(
            _candidate(
                rule.type,
                rule.message,
                rule.details.format(limit=_format_number(limit), value=_format_number(observed)),
                TriggerCondition(threshold=limit, current_value=observed, unit=rule.unit),
            )
        )

    if snapshot.accident_detected:
        candidates.append(
            _candidate(
                AlertType.ACCIDENT,
                "Accident detected!",
                "Sudden impact detected. Possible accident. Immediate attention required.",
                TriggerCondition(gps_signal="active" if snapshot.has_location else "unavailable"),
            )
        )

    if snapshot.tampering_detected:
        candidates.append(
            _candidate(
                AlertType.TAMPERING,
                "Vehicle tampering detected",
                "Tampering sensor triggered. Security breach possible.",
                TriggerCondition(security_system="breached"),
            )
        )

    return candidates
