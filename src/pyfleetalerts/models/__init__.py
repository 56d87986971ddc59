"""Data models for telemetry, vehicles and alerts."""

from pyfleetalerts.models._base import FleetBaseModel
from pyfleetalerts.models.alert import (
    SEVERITY_BY_TYPE,
    AlertLocation,
    AlertQuery,
    AlertSeverity,
    AlertStatus,
    AlertType,
    CandidateAlert,
    PersistedAlert,
    TriggerCondition,
    VehicleRef,
)
from pyfleetalerts.models.telemetry import DeviceSnapshot, GpsReading, SensorReading
from pyfleetalerts.models.vehicle import RegistrationResult, VehicleConfig

__all__ = [
    "SEVERITY_BY_TYPE",
    "AlertLocation",
    "AlertQuery",
    "AlertSeverity",
    "AlertStatus",
    "AlertType",
    "CandidateAlert",
    "DeviceSnapshot",
    "FleetBaseModel",
    "GpsReading",
    "PersistedAlert",
    "RegistrationResult",
    "SensorReading",
    "TriggerCondition",
    "VehicleConfig",
    "VehicleRef",
]
