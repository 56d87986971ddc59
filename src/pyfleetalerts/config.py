"""Client configuration for pyfleetalerts."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pyfleetalerts._constants import (
    API_BASE_URL,
    DEFAULT_DEBOUNCE_SECONDS,
    DEFAULT_FEED_RECONNECT_DELAY,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_REQUEST_TIMEOUT,
    IDENTITY_URL,
)
from pyfleetalerts.exceptions import FleetConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_float(env_key: str, value: str) -> float:
    try:
        return float(value)
    except ValueError as exc:
        raise FleetConfigError(f"{env_key} must be a number, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class FleetAlertsConfig:
    """Engine configuration.

    Parameters
    ----------
    tenant_id : str
        Company/organization scope for devices, vehicles and alerts.
    api_base_url : str
        Base URL of the alert history / vehicle registry HTTP service.
    api_token : str or None
        Bearer token for the HTTP service. The service derives the
        tenant of persisted alerts from it.
    request_timeout : float
        Total timeout for a single HTTP call in seconds.
    database_url : str
        Root URL of the realtime telemetry store
        (e.g. ``https://<project>.firebaseio.com``).
    firebase_api_key : str or None
        Web API key used for the anonymous identity handshake. When
        ``None`` the handshake is skipped (local emulator, open rules).
    identity_url : str
        Identity toolkit base URL for the anonymous sign-up.
    feed_root : str
        Top-level key under which tenants are stored in the telemetry tree.
    flag_group : str
        Child key of a device holding the one-shot trigger flags.
    debounce_seconds : float
        Quiet period after the last feed event before an evaluation pass.
    poll_interval : float
        Cadence of the fallback alert-list refresh in seconds.
    feed_reconnect_delay : float
        Delay before re-opening a dropped change-feed stream.
    api_trace_enabled : bool
        Log redacted request/response bodies at DEBUG level.
    """

    tenant_id: str
    api_base_url: str = API_BASE_URL
    api_token: str | None = None
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    database_url: str = ""
    firebase_api_key: str | None = None
    identity_url: str = IDENTITY_URL
    feed_root: str = "tenants"
    flag_group: str = "flags"
    debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS
    poll_interval: float = DEFAULT_POLL_INTERVAL
    feed_reconnect_delay: float = DEFAULT_FEED_RECONNECT_DELAY
    api_trace_enabled: bool = False

    def __post_init__(self) -> None:
        if not self.tenant_id or not self.tenant_id.strip():
            raise FleetConfigError("tenant_id must be non-empty")
        if self.debounce_seconds < 0:
            raise FleetConfigError("debounce_seconds must not be negative")
        if self.poll_interval <= 0:
            raise FleetConfigError("poll_interval must be positive")

    def devices_path(self, tenant_id: str | None = None) -> str:
        """Telemetry-store path holding every device of a tenant."""
        return f"{self.feed_root}/{tenant_id or self.tenant_id}/devices"

    @classmethod
    def from_env(cls, **overrides: Any) -> FleetAlertsConfig:
        """Create configuration from environment variables.

        Reads ``FLEET_TENANT_ID`` and optional ``FLEET_*`` variables.
        Explicit keyword arguments override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        FleetAlertsConfig
            Populated configuration.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "FLEET_TENANT_ID": "tenant_id",
            "FLEET_API_BASE_URL": "api_base_url",
            "FLEET_API_TOKEN": "api_token",
            "FLEET_DATABASE_URL": "database_url",
            "FLEET_FIREBASE_API_KEY": "firebase_api_key",
            "FLEET_IDENTITY_URL": "identity_url",
            "FLEET_FEED_ROOT": "feed_root",
            "FLEET_FLAG_GROUP": "flag_group",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        _ENV_FLOAT_MAP = {
            "FLEET_REQUEST_TIMEOUT": "request_timeout",
            "FLEET_DEBOUNCE_SECONDS": "debounce_seconds",
            "FLEET_POLL_INTERVAL": "poll_interval",
            "FLEET_FEED_RECONNECT_DELAY": "feed_reconnect_delay",
        }
        for env_key, field_name in _ENV_FLOAT_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = _env_float(env_key, val)

        if "api_trace_enabled" not in overrides:
            config_kwargs["api_trace_enabled"] = _env_bool(
                env.get("FLEET_API_TRACE_ENABLED"),
                False,
            )

        config_kwargs.update(overrides)
        if "tenant_id" not in config_kwargs:
            raise FleetConfigError("FLEET_TENANT_ID is not set")

        return cls(**config_kwargs)
