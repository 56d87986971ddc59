"""Typed view of a device entry in the realtime telemetry store.

The store returns untyped JSON: numbers may arrive as strings, ``NaN``,
booleans or be missing. All of that is resolved here, once, so the
evaluator only deals with ``float | None`` and plain booleans.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from pyfleetalerts._constants import ACCIDENT_FLAG, TAMPERING_FLAG
from pyfleetalerts.ingestion.normalize import safe_bool, safe_float


class GpsReading(BaseModel):
    """GPS block of a device.

    Parameters
    ----------
    latitude : float or None
        Latitude in degrees.
    longitude : float or None
        Longitude in degrees.
    speed : float or None
        Ground speed in km/h.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    latitude: float | None = Field(default=None, validation_alias=AliasChoices("latitude", "lat"))
    longitude: float | None = Field(default=None, validation_alias=AliasChoices("longitude", "lng", "lon"))
    speed: float | None = Field(default=None, validation_alias=AliasChoices("speed_kmh", "speed", "speedKmh"))

    @field_validator("latitude", "longitude", "speed", mode="before")
    @classmethod
    def _coerce_floats(cls, value: Any) -> float | None:
        return safe_float(value)


class SensorReading(BaseModel):
    """Environmental sensor block of a device (cargo temperature and humidity)."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    temperature: float | None = Field(
        default=None,
        validation_alias=AliasChoices("temperature_C", "temperature", "temperatureC"),
    )
    humidity: float | None = Field(default=None, validation_alias=AliasChoices("humidity", "humidity_pct"))

    @field_validator("temperature", "humidity", mode="before")
    @classmethod
    def _coerce_floats(cls, value: Any) -> float | None:
        return safe_float(value)


class DeviceSnapshot(BaseModel):
    """State of one device at the moment of an evaluation pass.

    ``raised_flags`` holds the device-relative path of every one-shot flag
    that was observed ``true``, e.g. ``"flags/accident_detected"``. Resets
    are written back to exactly those paths.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    device_id: str
    gps: GpsReading = Field(default_factory=GpsReading)
    sensor: SensorReading = Field(default_factory=SensorReading)
    accident_detected: bool = False
    tampering_detected: bool = False
    raised_flags: tuple[str, ...] = ()

    @property
    def has_location(self) -> bool:
        return self.gps.latitude is not None and self.gps.longitude is not None

    @classmethod
    def from_feed(
        cls,
        device_id: str,
        data: Any,
        *,
        flag_group: str = "flags",
    ) -> DeviceSnapshot | None:
        """Build a snapshot from a raw device entry.

        Returns ``None`` when the entry carries no data at all. Flags are
        looked up in *flag_group* first and fall back to top-level keys,
        which is where older firmware writes them.
        """
        if not isinstance(data, Mapping) or not data:
            return None

        group = data.get(flag_group)
        flag_source: Mapping[str, Any] = group if isinstance(group, Mapping) else {}

        flags: dict[str, bool] = {}
        raised: list[str] = []
        for name in (ACCIDENT_FLAG, TAMPERING_FLAG):
            if name in flag_source:
                value = safe_bool(flag_source[name])
                path = f"{flag_group}/{name}"
            else:
                value = safe_bool(data.get(name))
                path = name
            flags[name] = value
            if value:
                raised.append(path)

        gps = data.get("gps")
        sensor = data.get("sensor")
        return cls(
            device_id=device_id,
            gps=GpsReading.model_validate(gps) if isinstance(gps, Mapping) else GpsReading(),
            sensor=SensorReading.model_validate(sensor) if isinstance(sensor, Mapping) else SensorReading(),
            accident_detected=flags[ACCIDENT_FLAG],
            tampering_detected=flags[TAMPERING_FLAG],
            raised_flags=tuple(raised),
        )
