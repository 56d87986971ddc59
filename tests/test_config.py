from __future__ import annotations

import pytest

from pyfleetalerts.config import FleetAlertsConfig
from pyfleetalerts.exceptions import FleetConfigError

_ENV_KEYS = (
    "FLEET_TENANT_ID",
    "FLEET_API_BASE_URL",
    "FLEET_API_TOKEN",
    "FLEET_DATABASE_URL",
    "FLEET_FIREBASE_API_KEY",
    "FLEET_DEBOUNCE_SECONDS",
    "FLEET_POLL_INTERVAL",
    "FLEET_API_TRACE_ENABLED",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_from_env_reads_fleet_variables(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FLEET_TENANT_ID", "TANGALLEB001")
    monkeypatch.setenv("FLEET_DATABASE_URL", "https://fleet.firebaseio.com")
    monkeypatch.setenv("FLEET_DEBOUNCE_SECONDS", "0.25")
    monkeypatch.setenv("FLEET_API_TRACE_ENABLED", "yes")

    config = FleetAlertsConfig.from_env(poll_interval=30)

    assert config.tenant_id == "TANGALLEB001"
    assert config.database_url == "https://fleet.firebaseio.com"
    assert config.debounce_seconds == 0.25
    assert config.poll_interval == 30
    assert config.api_trace_enabled is True
    assert config.devices_path() == "tenants/TANGALLEB001/devices"
    assert config.devices_path("OTHER") == "tenants/OTHER/devices"


def test_from_env_defaults() -> None:
    config = FleetAlertsConfig.from_env(tenant_id="T1")

    assert config.debounce_seconds == 0.5
    assert config.poll_interval == 10.0
    assert config.firebase_api_key is None
    assert config.api_trace_enabled is False


def test_from_env_requires_tenant() -> None:
    with pytest.raises(FleetConfigError, match="FLEET_TENANT_ID"):
        FleetAlertsConfig.from_env()


def test_from_env_rejects_non_numeric_interval(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FLEET_POLL_INTERVAL", "often")

    with pytest.raises(FleetConfigError, match="FLEET_POLL_INTERVAL"):
        FleetAlertsConfig.from_env(tenant_id="T1")


@pytest.mark.parametrize(
    "overrides",
    [{"tenant_id": " "}, {"tenant_id": "T1", "debounce_seconds": -1}, {"tenant_id": "T1", "poll_interval": 0}],
)
def test_invalid_values_are_rejected(overrides: dict[str, object]) -> None:
    with pytest.raises(FleetConfigError):
        FleetAlertsConfig(**overrides)
