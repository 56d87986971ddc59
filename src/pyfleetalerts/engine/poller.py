"""Fixed-cadence refresh of the authoritative alert list."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from pyfleetalerts.exceptions import FleetAlertsError
from pyfleetalerts.models.alert import PersistedAlert

_logger = logging.getLogger(__name__)


class PollFallbackFetcher:
    """Fetches the alert list every *interval* seconds and on demand.

    Every successful fetch is published, even when the list did not change.
    """

    def __init__(
        self,
        fetch: Callable[[], Awaitable[list[PersistedAlert]]],
        publish: Callable[[list[PersistedAlert]], None],
        *,
        interval: float,
    ) -> None:
        self._fetch = fetch
        self._publish = publish
        self._interval = interval
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the timer. The first tick fires one interval from now."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._poll_forever(), name="alert-poll")

    def stop(self) -> None:
        task = self._task
        self._task = None
        if task is not None and not task.done():
            task.cancel()

    async def refresh(self) -> bool:
        """Fetch and publish once. Returns ``False`` when the fetch failed."""
        try:
            alerts = await self._fetch()
        except FleetAlertsError as exc:
            _logger.warning("Alert list refresh failed: %s", exc)
            return False
        self._publish(alerts)
        return True

    async def _poll_forever(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self.refresh()
            except Exception:
                _logger.warning("Alert poll tick failed", exc_info=True)
