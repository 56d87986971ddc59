from __future__ import annotations

import asyncio
import itertools
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import pytest

from pyfleetalerts._feed import FeedSubscription, SnapshotCallback
from pyfleetalerts.config import FleetAlertsConfig
from pyfleetalerts.exceptions import FeedAuthenticationError, FeedError, FleetTransportError

TENANT = "TANGALLEB001"


def make_config(**overrides: Any) -> FleetAlertsConfig:
    values: dict[str, Any] = {
        "tenant_id": TENANT,
        "api_token": "test-token",
        "database_url": "https://fleet-test.firebaseio.com",
        "debounce_seconds": 0.05,
        "poll_interval": 60.0,
    }
    values.update(overrides)
    return FleetAlertsConfig(**values)


def vehicle_payload(device_id: str, **overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "_id": f"veh-{device_id}",
        "deviceId": device_id,
        "vehicleName": f"Truck {device_id}",
        "licensePlate": f"CAT-{device_id}",
        "temperatureLimit": 35,
        "humidityLimit": 60,
        "speedLimit": 80,
        "status": "active",
        "trackingEnabled": True,
    }
    payload.update(overrides)
    return payload


@dataclass
class FakeAlertBackend:
    """In-memory alert service + vehicle registry implementing ``Transport``."""

    vehicles: dict[str, dict[str, Any]] = field(default_factory=dict)
    alerts: list[dict[str, Any]] = field(default_factory=list)
    calls: list[tuple[str, str, Any]] = field(default_factory=list)
    registry_errors: set[str] = field(default_factory=set)
    create_error: FleetTransportError | None = None
    list_error: FleetTransportError | None = None
    _ids: Any = field(default_factory=lambda: itertools.count(1))

    def count(self, method: str, endpoint: str) -> int:
        return sum(1 for m, e, _ in self.calls if m == method and e == endpoint)

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        json_body: Any = None,
        params: Mapping[str, str] | None = None,
    ) -> Any:
        self.calls.append((method, endpoint, json_body))

        if (method, endpoint) == ("POST", "/vehicles/check-registration"):
            device_id = json_body["deviceId"]
            if device_id in self.registry_errors:
                raise FleetTransportError("HTTP 503 from registry", status_code=503, endpoint=endpoint)
            vehicle = self.vehicles.get(device_id)
            return {"isRegistered": vehicle is not None, "vehicle": vehicle}

        if (method, endpoint) == ("GET", "/alerts"):
            if self.list_error is not None:
                raise self.list_error
            return {"success": True, "data": [dict(a) for a in reversed(self.alerts)]}

        if (method, endpoint) == ("POST", "/alerts"):
            if self.create_error is not None:
                raise self.create_error
            for existing in self.alerts:
                if (
                    existing["vehicle"]["id"] == json_body["vehicle"]["id"]
                    and existing["type"] == json_body["type"]
                    and existing["status"] == "active"
                ):
                    raise FleetTransportError(
                        "HTTP 500 from /alerts: E11000 duplicate key error collection: alerthistories",
                        status_code=500,
                        endpoint=endpoint,
                    )
            record = {**json_body, "_id": f"alert-{next(self._ids)}", "companyId": TENANT}
            self.alerts.append(record)
            return {"success": True, "message": "Alert stored successfully", "data": record}

        raise AssertionError(f"unexpected request {method} {endpoint}")


class FakeTelemetryStore:
    """Telemetry store double: records subscriptions and writes, emits on demand."""

    def __init__(self) -> None:
        self.fail_auth = False
        self.fail_writes = False
        self.auth_calls = 0
        self.subscriptions: list[FeedSubscription] = []
        self.writes: list[tuple[str, Any]] = []
        self._callback: SnapshotCallback | None = None

    @property
    def active_subscriptions(self) -> list[FeedSubscription]:
        return [s for s in self.subscriptions if s.active]

    async def authenticate(self) -> None:
        self.auth_calls += 1
        if self.fail_auth:
            raise FeedAuthenticationError("anonymous sign-up rejected")

    async def subscribe(self, path: str, on_snapshot: SnapshotCallback) -> FeedSubscription:
        self._callback = on_snapshot
        task = asyncio.get_running_loop().create_task(asyncio.Event().wait())
        subscription = FeedSubscription(path, task)
        self.subscriptions.append(subscription)
        return subscription

    async def write(self, path: str, value: Any) -> None:
        self.writes.append((path, value))
        if self.fail_writes:
            raise FeedError(f"write to {path} failed")

    def emit(self, snapshot: dict[str, Any]) -> None:
        assert self._callback is not None
        self._callback(snapshot)


async def settle(seconds: float = 0.2) -> None:
    """Let debounce timers fire and background tasks finish."""
    await asyncio.sleep(seconds)


@pytest.fixture
def backend() -> FakeAlertBackend:
    return FakeAlertBackend(vehicles={"D1": vehicle_payload("D1"), "D2": vehicle_payload("D2")})


@pytest.fixture
def store() -> FakeTelemetryStore:
    return FakeTelemetryStore()
