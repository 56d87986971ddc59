"""Change-feed subscription and debounced evaluation passes."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Any

from pyfleetalerts._api.vehicles import check_registration
from pyfleetalerts._feed import FeedSubscription, TelemetryStore
from pyfleetalerts._transport import Transport
from pyfleetalerts.engine.dedup import should_emit
from pyfleetalerts.engine.evaluator import evaluate_thresholds
from pyfleetalerts.engine.flags import FlagResetWriter
from pyfleetalerts.engine.persistence import AlertPersistenceClient
from pyfleetalerts.models.alert import PersistedAlert
from pyfleetalerts.models.telemetry import DeviceSnapshot

_logger = logging.getLogger(__name__)


class ChangeFeedListener:
    """Owns the single ``devices`` subscription of one tenant.

    Each feed event restarts the debounce timer; only when the timer runs
    out does an evaluation pass run over the latest full snapshot. The
    feed emits one event per changed leaf, so a single GPS+sensor upload
    would otherwise cause several identical passes.
    """

    def __init__(
        self,
        *,
        tenant_id: str,
        devices_path: str,
        store: TelemetryStore,
        transport: Transport,
        persistence: AlertPersistenceClient,
        flag_writer: FlagResetWriter,
        active_alerts: Callable[[], Sequence[PersistedAlert]],
        on_persisted: Callable[[], Awaitable[object]] | None = None,
        debounce_seconds: float = 0.5,
        flag_group: str = "flags",
    ) -> None:
        self._tenant_id = tenant_id
        self._devices_path = devices_path
        self._store = store
        self._transport = transport
        self._persistence = persistence
        self._flag_writer = flag_writer
        self._active_alerts = active_alerts
        self._on_persisted = on_persisted
        self._debounce_seconds = debounce_seconds
        self._flag_group = flag_group

        self._subscription: FeedSubscription | None = None
        self._debounce: asyncio.TimerHandle | None = None
        self._latest: dict[str, Any] = {}
        self._passes: set[asyncio.Task[int]] = set()

    @property
    def active(self) -> bool:
        return self._subscription is not None

    @property
    def debounce_pending(self) -> bool:
        return self._debounce is not None

    async def start(self) -> None:
        """Attach to the feed, detaching any previous subscription first."""
        self._detach()
        self._subscription = await self._store.subscribe(self._devices_path, self._on_snapshot)
        _logger.debug("Subscribed to %s", self._devices_path)

    def stop(self) -> None:
        """Detach, drop the pending debounce timer and cancel in-flight passes."""
        self._detach()
        if self._debounce is not None:
            self._debounce.cancel()
            self._debounce = None
        for task in list(self._passes):
            task.cancel()
        self._passes.clear()
        self._latest = {}

    def _detach(self) -> None:
        subscription = self._subscription
        self._subscription = None
        if subscription is not None:
            subscription.cancel()
            _logger.debug("Unsubscribed from %s", subscription.path)

    def _on_snapshot(self, snapshot: dict[str, Any]) -> None:
        self._latest = snapshot
        if self._debounce is not None:
            self._debounce.cancel()
        self._debounce = asyncio.get_running_loop().call_later(self._debounce_seconds, self._fire)

    def _fire(self) -> None:
        self._debounce = None
        task = asyncio.get_running_loop().create_task(self.evaluate(self._latest), name="alert-evaluation-pass")
        self._passes.add(task)
        task.add_done_callback(self._pass_done)

    def _pass_done(self, task: asyncio.Task[int]) -> None:
        self._passes.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            _logger.warning("Evaluation pass failed", exc_info=exc)

    async def evaluate(self, devices: Mapping[str, Any]) -> int:
        """Run one evaluation pass over every device in *devices*.

        Returns the number of alerts persisted. When at least one was,
        ``on_persisted`` is awaited so observers see it without waiting
        for the next poll tick.
        """
        persisted = 0
        for device_id, data in devices.items():
            try:
                persisted += await self._evaluate_device(str(device_id), data)
            except asyncio.CancelledError:
                raise
            except Exception:
                _logger.warning("Evaluation failed for device %s; skipping", device_id, exc_info=True)

        if persisted and self._on_persisted is not None:
            await self._on_persisted()
        return persisted

    async def _evaluate_device(self, device_id: str, data: Any) -> int:
        snapshot = DeviceSnapshot.from_feed(device_id, data, flag_group=self._flag_group)
        if snapshot is None:
            return 0

        registration = await check_registration(self._transport, self._tenant_id, device_id)
        vehicle = registration.vehicle
        if not registration.is_registered or vehicle is None:
            _logger.debug("Device %s is not registered; skipping", device_id)
            return 0
        if not vehicle.is_monitored:
            _logger.debug(
                "Vehicle of device %s not monitored (status=%s tracking=%s)",
                device_id,
                vehicle.status,
                vehicle.tracking_enabled,
            )
            return 0

        candidates = evaluate_thresholds(snapshot, vehicle)

        # Flags are cleared as soon as they are seen, before persistence
        # completes. A failed persist therefore loses the event.
        for flag_path in snapshot.raised_flags:
            self._flag_writer.reset_flag(device_id, flag_path)

        persisted = 0
        for candidate in candidates:
            if not should_emit(candidate, self._active_alerts()):
                _logger.debug("Active %s alert already known for device %s", candidate.type, device_id)
                continue
            if await self._persistence.persist(candidate) is not None:
                persisted += 1
        return persisted
