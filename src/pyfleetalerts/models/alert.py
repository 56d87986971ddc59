"""Alert models shared by the engine and the alert history service."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import AliasChoices, Field

from pyfleetalerts.models._base import FleetBaseModel


class AlertType(StrEnum):
    TEMPERATURE = "temperature"
    HUMIDITY = "humidity"
    SPEED = "speed"
    ACCIDENT = "accident"
    TAMPERING = "tampering"


class AlertSeverity(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class AlertStatus(StrEnum):
    ACTIVE = "active"
    ACKNOWLEDGED = "acknowledged"
    RESOLVED = "resolved"


#: Severity is fixed per alert type.
SEVERITY_BY_TYPE: dict[AlertType, AlertSeverity] = {
    AlertType.TEMPERATURE: AlertSeverity.MEDIUM,
    AlertType.HUMIDITY: AlertSeverity.MEDIUM,
    AlertType.SPEED: AlertSeverity.LOW,
    AlertType.ACCIDENT: AlertSeverity.CRITICAL,
    AlertType.TAMPERING: AlertSeverity.HIGH,
}


class VehicleRef(FleetBaseModel):
    """Vehicle reference embedded in an alert. ``id`` is the device identifier."""

    id: str
    name: str = ""
    license_plate: str = ""


class AlertLocation(FleetBaseModel):
    lat: float | None = None
    lng: float | None = None
    address: str | None = None


class TriggerCondition(FleetBaseModel):
    """What made the rule fire.

    Metric rules fill ``threshold``/``current_value``/``unit``; event rules
    fill the event-specific fields.
    """

    threshold: float | None = None
    current_value: float | None = None
    unit: str | None = None
    impact_force: str | None = None
    airbag_deployed: bool | None = None
    gps_signal: str | None = None
    door_opened: bool | None = None
    ignition_off: bool | None = None
    security_system: str | None = None


class CandidateAlert(FleetBaseModel):
    """A not-yet-persisted alert proposal from one evaluation pass."""

    type: AlertType
    severity: AlertSeverity
    message: str
    vehicle: VehicleRef
    location: AlertLocation | None = None
    timestamp: datetime
    status: AlertStatus = AlertStatus.ACTIVE
    details: str = ""
    trigger_condition: TriggerCondition = Field(default_factory=TriggerCondition)

    @property
    def device_id(self) -> str:
        return self.vehicle.id

    @property
    def dedup_key(self) -> tuple[str, AlertType]:
        return (self.vehicle.id, self.type)


class PersistedAlert(CandidateAlert):
    """Durable alert record returned by the alert history service.

    Status changes happen only through the service
    (``PUT /alerts/{id}/status``), never locally.
    """

    id: str = Field(validation_alias=AliasChoices("_id", "id"))
    tenant_id: str | None = Field(default=None, validation_alias=AliasChoices("companyId", "tenantId"))
    acknowledged_at: datetime | None = None
    resolved_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        return self.status != AlertStatus.RESOLVED


class AlertQuery(FleetBaseModel):
    """Filters accepted by ``GET /alerts``."""

    type: AlertType | None = None
    status: AlertStatus | None = None
    vehicle_id: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None

    def to_params(self) -> dict[str, str]:
        params: dict[str, Any] = self.to_payload()
        return {key: str(value) for key, value in params.items()}
