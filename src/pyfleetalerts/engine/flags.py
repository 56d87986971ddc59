"""Fire-and-forget reset of one-shot trigger flags in the telemetry store."""

from __future__ import annotations

import asyncio
import logging

from pyfleetalerts._feed import TelemetryStore

_logger = logging.getLogger(__name__)


class FlagResetWriter:
    """Clears accident/tampering flags once they have been observed.

    Writes are scheduled as background tasks; failures are logged and
    never retried or reported to the evaluation pass.
    """

    def __init__(self, store: TelemetryStore, devices_path: str) -> None:
        self._store = store
        self._devices_path = devices_path.rstrip("/")
        self._pending: set[asyncio.Task[None]] = set()

    def reset_flag(self, device_id: str, flag_path: str) -> asyncio.Task[None]:
        """Schedule ``<devices>/<device_id>/<flag_path> = false``."""
        path = f"{self._devices_path}/{device_id}/{flag_path.strip('/')}"
        task = asyncio.get_running_loop().create_task(self._write(path), name=f"flag-reset:{path}")
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _write(self, path: str) -> None:
        try:
            await self._store.write(path, False)
        except Exception:
            _logger.warning("Flag reset failed for %s", path, exc_info=True)
            return
        _logger.debug("Flag reset %s", path)
