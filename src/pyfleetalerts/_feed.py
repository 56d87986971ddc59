"""Internal realtime telemetry store adapter.

The telemetry store is a key-path addressable JSON tree (Firebase Realtime
Database REST API). Subscriptions use its Server-Sent-Events stream: the
first ``put`` carries the whole subtree, later ``put``/``patch`` events carry
changed leaves. A local mirror of the subtree is maintained so subscribers
always receive the full current snapshot.
"""

from __future__ import annotations

import asyncio
import copy
import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

import aiohttp

from pyfleetalerts._constants import USER_AGENT
from pyfleetalerts._redact import redact_for_log
from pyfleetalerts.config import FleetAlertsConfig
from pyfleetalerts.exceptions import FeedAuthenticationError, FeedError

_logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[dict[str, Any]], None]

_STREAM_TIMEOUT = aiohttp.ClientTimeout(total=None, sock_connect=30, sock_read=90)


class FeedSubscription:
    """Handle for one live change-feed subscription."""

    def __init__(self, path: str, task: asyncio.Task[None] | None = None) -> None:
        self.path = path
        self._task = task

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    def cancel(self) -> None:
        """Detach from the feed. Safe to call more than once."""
        task = self._task
        self._task = None
        if task is not None and not task.done():
            task.cancel()


class TelemetryStore(Protocol):
    """Structural interface of the realtime telemetry store."""

    async def authenticate(self) -> None:
        ...

    async def subscribe(self, path: str, on_snapshot: SnapshotCallback) -> FeedSubscription:
        ...

    async def write(self, path: str, value: Any) -> None:
        ...


@dataclass(frozen=True)
class StreamEvent:
    """One dispatched Server-Sent-Event."""

    event: str
    data: str


def _split_path(path: str) -> list[str]:
    return [part for part in path.split("/") if part]


def apply_put(tree: Any, path: str, data: Any) -> Any:
    """Set *data* at *path* inside *tree* and return the new root.

    ``None`` deletes the node, matching the store's semantics.
    """
    parts = _split_path(path)
    if not parts:
        return copy.deepcopy(data)

    root: dict[str, Any] = tree if isinstance(tree, dict) else {}
    node = root
    for key in parts[:-1]:
        child = node.get(key)
        if not isinstance(child, dict):
            if data is None:
                return root
            child = {}
            node[key] = child
        node = child

    if data is None:
        node.pop(parts[-1], None)
    else:
        node[parts[-1]] = copy.deepcopy(data)
    return root


def apply_patch(tree: Any, path: str, data: Any) -> Any:
    """Merge the children of *data* into the node at *path*."""
    if not isinstance(data, dict):
        return apply_put(tree, path, data)
    prefix = path.rstrip("/")
    for key, value in data.items():
        tree = apply_put(tree, f"{prefix}/{key}", value)
    return tree


class SseParser:
    """Incremental ``text/event-stream`` parser."""

    def __init__(self) -> None:
        self._event = ""
        self._data: list[str] = []

    def feed_line(self, line: str) -> StreamEvent | None:
        line = line.rstrip("\r\n")
        if not line:
            if not self._event and not self._data:
                return None
            event = StreamEvent(event=self._event or "message", data="\n".join(self._data))
            self._event = ""
            self._data = []
            return event
        if line.startswith(":"):
            return None
        field, _, value = line.partition(":")
        value = value.removeprefix(" ")
        if field == "event":
            self._event = value
        elif field == "data":
            self._data.append(value)
        return None


class FirebaseTelemetryStore:
    """Telemetry store backed by the Realtime Database REST API."""

    def __init__(
        self,
        config: FleetAlertsConfig,
        http_session: aiohttp.ClientSession,
    ) -> None:
        self._config = config
        self._http = http_session
        self._id_token: str | None = None
        self._authenticated = False

    @property
    def is_authenticated(self) -> bool:
        return self._authenticated

    # ------------------------------------------------------------------
    # Identity handshake
    # ------------------------------------------------------------------

    async def authenticate(self) -> None:
        """Obtain an anonymous identity token.

        Without a configured API key the store is assumed to allow
        unauthenticated access (emulator, open rules) and this is a no-op.
        """
        api_key = self._config.firebase_api_key
        if not api_key:
            _logger.debug("No telemetry store API key configured; skipping anonymous sign-up")
            self._authenticated = True
            return

        url = f"{self._config.identity_url.rstrip('/')}/v1/accounts:signUp"
        try:
            async with self._http.post(
                url,
                params={"key": api_key},
                json={"returnSecureToken": True},
                headers={"user-agent": USER_AGENT},
                timeout=aiohttp.ClientTimeout(total=self._config.request_timeout),
            ) as resp:
                text = await resp.text(errors="replace")
                if resp.status != 200:
                    raise FeedAuthenticationError(f"Anonymous sign-up failed: HTTP {resp.status}: {text[:200]}")
        except FeedAuthenticationError:
            self._authenticated = False
            raise
        except (aiohttp.ClientError, TimeoutError) as exc:
            self._authenticated = False
            raise FeedAuthenticationError(f"Anonymous sign-up request failed: {exc}") from exc

        try:
            body = json.loads(text)
        except json.JSONDecodeError as exc:
            self._authenticated = False
            raise FeedAuthenticationError(f"Anonymous sign-up returned invalid JSON: {text[:200]}") from exc

        token = body.get("idToken") if isinstance(body, dict) else None
        if not isinstance(token, str) or not token:
            self._authenticated = False
            raise FeedAuthenticationError("Anonymous sign-up response missing idToken")

        self._id_token = token
        self._authenticated = True
        _logger.debug("Telemetry store sign-up ok %s", redact_for_log(body))

    # ------------------------------------------------------------------
    # REST helpers
    # ------------------------------------------------------------------

    def _url(self, path: str) -> str:
        if not self._config.database_url:
            raise FeedError("database_url is not configured")
        return f"{self._config.database_url.rstrip('/')}/{'/'.join(_split_path(path))}.json"

    def _params(self) -> dict[str, str]:
        return {"auth": self._id_token} if self._id_token else {}

    async def write(self, path: str, value: Any) -> None:
        """Point-write *value* at *path*."""
        url = self._url(path)
        _logger.debug("PUT %s", url)
        try:
            async with self._http.put(
                url,
                params=self._params(),
                json=value,
                headers={"user-agent": USER_AGENT},
                timeout=aiohttp.ClientTimeout(total=self._config.request_timeout),
            ) as resp:
                if resp.status != 200:
                    text = await resp.text(errors="replace")
                    raise FeedError(f"Write to {path} failed: HTTP {resp.status}: {text[:200]}")
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise FeedError(f"Write to {path} failed: {exc}") from exc

    # ------------------------------------------------------------------
    # Streaming
    # ------------------------------------------------------------------

    async def subscribe(self, path: str, on_snapshot: SnapshotCallback) -> FeedSubscription:
        """Start streaming *path*; *on_snapshot* receives the full subtree after every change."""
        if not self._authenticated:
            raise FeedAuthenticationError("authenticate() must succeed before subscribing")
        self._url(path)
        task = asyncio.get_running_loop().create_task(
            self._run_stream(path, on_snapshot),
            name=f"telemetry-feed:{path}",
        )
        return FeedSubscription(path, task)

    async def _run_stream(self, path: str, on_snapshot: SnapshotCallback) -> None:
        while True:
            try:
                reason = await self._consume_stream(path, on_snapshot)
            except (aiohttp.ClientError, TimeoutError, FeedError) as exc:
                _logger.warning("Change feed %s dropped: %s", path, exc)
                reason = None
            except Exception:
                _logger.warning("Change feed %s failed; reconnecting", path, exc_info=True)
                reason = None

            if reason == "cancel":
                _logger.error("Change feed %s cancelled by the server (permission denied)", path)
                return
            if reason == "auth_revoked":
                _logger.info("Change feed %s credential revoked; signing in again", path)
                try:
                    await self.authenticate()
                except FeedAuthenticationError:
                    _logger.error("Change feed %s stopped: re-authentication failed", path, exc_info=True)
                    return
                continue

            await asyncio.sleep(self._config.feed_reconnect_delay)

    async def _consume_stream(self, path: str, on_snapshot: SnapshotCallback) -> str | None:
        """Read one stream connection until it ends.

        Returns the terminal event name (``cancel``/``auth_revoked``) or
        ``None`` when the connection simply closed.
        """
        mirror: Any = None
        parser = SseParser()
        async with self._http.get(
            self._url(path),
            params=self._params(),
            headers={"accept": "text/event-stream", "user-agent": USER_AGENT},
            timeout=_STREAM_TIMEOUT,
        ) as resp:
            if resp.status != 200:
                text = await resp.text(errors="replace")
                if resp.status in (401, 403):
                    return "cancel"
                raise FeedError(f"Stream {path} rejected: HTTP {resp.status}: {text[:200]}")

            _logger.debug("Change feed %s connected", path)
            async for raw_line in resp.content:
                event = parser.feed_line(raw_line.decode("utf-8", errors="replace"))
                if event is None:
                    continue
                if event.event in ("cancel", "auth_revoked"):
                    return event.event
                if event.event not in ("put", "patch"):
                    continue

                try:
                    message = json.loads(event.data)
                except json.JSONDecodeError:
                    _logger.debug("Unparseable %s event on %s", event.event, path, exc_info=True)
                    continue
                if not isinstance(message, dict):
                    continue

                event_path = str(message.get("path") or "/")
                if event.event == "put":
                    mirror = apply_put(mirror, event_path, message.get("data"))
                else:
                    mirror = apply_patch(mirror, event_path, message.get("data"))

                snapshot = copy.deepcopy(mirror) if isinstance(mirror, dict) else {}
                try:
                    on_snapshot(snapshot)
                except Exception:
                    _logger.warning("Change feed callback failed for %s", path, exc_info=True)
        return None
