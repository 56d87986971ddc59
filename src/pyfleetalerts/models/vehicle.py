"""Vehicle registry models."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, Field, field_validator

from pyfleetalerts.ingestion.normalize import safe_float
from pyfleetalerts.models._base import FleetBaseModel


class VehicleConfig(FleetBaseModel):
    """A vehicle as returned by ``/vehicles/check-registration``.

    Read-only to the engine. Limits of zero or ``None`` disable the
    matching threshold rule.
    """

    id: str | None = Field(default=None, validation_alias=AliasChoices("_id", "id"))
    device_id: str = ""
    vehicle_name: str = ""
    license_plate: str = ""
    temperature_limit: float | None = None
    humidity_limit: float | None = None
    speed_limit: float | None = None
    status: str = "active"
    tracking_enabled: bool = True

    @field_validator("temperature_limit", "humidity_limit", "speed_limit", mode="before")
    @classmethod
    def _coerce_limits(cls, value: Any) -> float | None:
        return safe_float(value)

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, value: Any) -> str:
        return str(value).strip().lower()

    @property
    def is_monitored(self) -> bool:
        """Whether alerts should be evaluated for this vehicle at all."""
        return self.status == "active" and self.tracking_enabled


class RegistrationResult(FleetBaseModel):
    """Outcome of a registration lookup for one device."""

    is_registered: bool = False
    vehicle: VehicleConfig | None = None
