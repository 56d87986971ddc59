"""Reference-counted entry point for alert observers."""

from __future__ import annotations

import asyncio
import functools
import itertools
import logging
from collections.abc import Callable

from pyfleetalerts._api.alerts import list_alerts
from pyfleetalerts._feed import TelemetryStore
from pyfleetalerts._transport import Transport
from pyfleetalerts.config import FleetAlertsConfig
from pyfleetalerts.engine.flags import FlagResetWriter
from pyfleetalerts.engine.listener import ChangeFeedListener
from pyfleetalerts.engine.persistence import AlertPersistenceClient
from pyfleetalerts.engine.poller import PollFallbackFetcher
from pyfleetalerts.exceptions import FeedError
from pyfleetalerts.models.alert import PersistedAlert

_logger = logging.getLogger(__name__)

AlertObserver = Callable[[list[PersistedAlert]], None]
Unsubscribe = Callable[[], None]


class SubscriptionRegistry:
    """Shares one change-feed listener and one poll loop among observers.

    The first ``subscribe`` authenticates against the telemetry store,
    attaches the change feed, starts polling and fetches the alert list
    once. Later subscribers get the last known list straight away. When
    the last observer leaves, everything is torn down and the cached list
    is cleared.

    Observers are plain callables invoked synchronously with the full
    alert list whenever it is refreshed, whether or not it changed.

    Usage::

        registry = SubscriptionRegistry(config, transport=transport, store=store)
        unsubscribe = await registry.subscribe(render_alerts)
        ...
        unsubscribe()
    """

    def __init__(
        self,
        config: FleetAlertsConfig,
        *,
        transport: Transport,
        store: TelemetryStore,
        tenant_id: str | None = None,
    ) -> None:
        self._tenant_id = tenant_id or config.tenant_id
        self._store = store
        self._observers: dict[int, AlertObserver] = {}
        self._tokens = itertools.count(1)
        self._startup_lock = asyncio.Lock()
        self._running = False
        self._last_alerts: list[PersistedAlert] | None = None

        devices_path = config.devices_path(self._tenant_id)
        self._poller = PollFallbackFetcher(
            functools.partial(list_alerts, transport),
            self._publish,
            interval=config.poll_interval,
        )
        self._listener = ChangeFeedListener(
            tenant_id=self._tenant_id,
            devices_path=devices_path,
            store=store,
            transport=transport,
            persistence=AlertPersistenceClient(transport),
            flag_writer=FlagResetWriter(store, devices_path),
            active_alerts=self._active_alerts,
            on_persisted=self._poller.refresh,
            debounce_seconds=config.debounce_seconds,
            flag_group=config.flag_group,
        )

    @property
    def tenant_id(self) -> str:
        return self._tenant_id

    @property
    def running(self) -> bool:
        return self._running

    @property
    def observer_count(self) -> int:
        return len(self._observers)

    @property
    def last_alerts(self) -> list[PersistedAlert] | None:
        """Most recently fetched alert list, ``None`` before the first fetch."""
        return list(self._last_alerts) if self._last_alerts is not None else None

    async def subscribe(self, observer: AlertObserver) -> Unsubscribe:
        """Register *observer* and return its unsubscribe function.

        Raises
        ------
        FeedError
            Startup failed (e.g. the identity handshake was rejected). The
            observer is not registered; a later ``subscribe`` retries.
        """
        async with self._startup_lock:
            token = next(self._tokens)
            self._observers[token] = observer
            if not self._running:
                try:
                    await self._start()
                except FeedError:
                    self._observers.pop(token, None)
                    self._teardown()
                    _logger.error("Alert engine startup failed for tenant %s", self._tenant_id, exc_info=True)
                    raise
            elif self._last_alerts is not None:
                self._notify(observer, self._last_alerts)

        return functools.partial(self._unsubscribe, token)

    def close(self) -> None:
        """Drop every observer and stop all background work."""
        self._observers.clear()
        if self._running:
            self._teardown()

    async def _start(self) -> None:
        await self._store.authenticate()
        self._running = True
        await self._listener.start()
        self._poller.start()
        _logger.info("Alert engine started for tenant %s", self._tenant_id)
        await self._poller.refresh()
        # Every observer may have left while startup was awaiting.
        if not self._observers:
            self._teardown()

    def _teardown(self) -> None:
        self._running = False
        self._listener.stop()
        self._poller.stop()
        self._last_alerts = None
        _logger.info("Alert engine stopped for tenant %s", self._tenant_id)

    def _unsubscribe(self, token: int) -> None:
        if self._observers.pop(token, None) is None:
            return
        if not self._observers and self._running:
            self._teardown()

    def _active_alerts(self) -> list[PersistedAlert]:
        return self._last_alerts or []

    def _publish(self, alerts: list[PersistedAlert]) -> None:
        if not self._running or not self._observers:
            return
        self._last_alerts = list(alerts)
        for observer in list(self._observers.values()):
            self._notify(observer, self._last_alerts)

    def _notify(self, observer: AlertObserver, alerts: list[PersistedAlert]) -> None:
        try:
            observer(list(alerts))
        except Exception:
            _logger.warning("Alert observer %r failed", observer, exc_info=True)
