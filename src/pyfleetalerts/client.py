"""High-level async client for the fleet alert engine."""

from __future__ import annotations

import logging
from typing import Any

import aiohttp

from pyfleetalerts._api import alerts as _alerts_api
from pyfleetalerts._api import vehicles as _vehicles_api
from pyfleetalerts._feed import FirebaseTelemetryStore
from pyfleetalerts._transport import HttpTransport
from pyfleetalerts.config import FleetAlertsConfig
from pyfleetalerts.exceptions import FleetAlertsError
from pyfleetalerts.models.alert import AlertQuery, AlertStatus, PersistedAlert
from pyfleetalerts.models.vehicle import RegistrationResult
from pyfleetalerts.registry import SubscriptionRegistry

_logger = logging.getLogger(__name__)


class FleetAlertsClient:
    """Async client owning the HTTP session and the telemetry store.

    Usage::

        async with FleetAlertsClient(config) as client:
            registry = client.alert_registry()
            unsubscribe = await registry.subscribe(on_alerts)
    """

    def __init__(
        self,
        config: FleetAlertsConfig,
        *,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._transport: HttpTransport | None = None
        self._store: FirebaseTelemetryStore | None = None
        self._registries: dict[str, SubscriptionRegistry] = {}

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> FleetAlertsClient:
        if self._http_session is None:
            self._http_session = aiohttp.ClientSession()
        self._transport = HttpTransport(self._config, self._http_session)
        self._store = FirebaseTelemetryStore(self._config, self._http_session)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        for registry in self._registries.values():
            registry.close()
        self._registries.clear()
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        self._transport = None
        self._store = None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_transport(self) -> HttpTransport:
        if self._transport is None:
            raise FleetAlertsError("Client not initialized. Use 'async with FleetAlertsClient(...) as client:'")
        return self._transport

    def _require_store(self) -> FirebaseTelemetryStore:
        if self._store is None:
            raise FleetAlertsError("Client not initialized. Use 'async with FleetAlertsClient(...) as client:'")
        return self._store

    # ------------------------------------------------------------------
    # Alert engine
    # ------------------------------------------------------------------

    def alert_registry(self, tenant_id: str | None = None) -> SubscriptionRegistry:
        """Return the subscription registry of *tenant_id* (default: configured tenant).

        One registry exists per tenant so each tenant has exactly one
        change-feed subscription and poll loop.
        """
        key = tenant_id or self._config.tenant_id
        registry = self._registries.get(key)
        if registry is None:
            registry = SubscriptionRegistry(
                self._config,
                transport=self._require_transport(),
                store=self._require_store(),
                tenant_id=key,
            )
            self._registries[key] = registry
        return registry

    # ------------------------------------------------------------------
    # Alert history / registry passthroughs
    # ------------------------------------------------------------------

    async def list_alerts(self, query: AlertQuery | None = None) -> list[PersistedAlert]:
        return await _alerts_api.list_alerts(self._require_transport(), query)

    async def update_alert_status(self, alert_id: str, status: AlertStatus) -> PersistedAlert:
        """Acknowledge or resolve an alert. The engine itself never calls this."""
        return await _alerts_api.update_alert_status(self._require_transport(), alert_id, status)

    async def check_registration(self, device_id: str, tenant_id: str | None = None) -> RegistrationResult:
        return await _vehicles_api.check_registration(
            self._require_transport(),
            tenant_id or self._config.tenant_id,
            device_id,
        )
