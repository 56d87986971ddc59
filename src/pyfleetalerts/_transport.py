"""HTTP transport for the alert history and vehicle registry service."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from pyfleetalerts._constants import USER_AGENT
from pyfleetalerts._redact import redact_for_log
from pyfleetalerts.config import FleetAlertsConfig
from pyfleetalerts.exceptions import FleetTransportError

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural transport interface used by endpoint modules.

    Having a protocol here makes it easy to pass test doubles/mocks while
    keeping the production implementation (`HttpTransport`) concrete.
    """

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        json_body: Any = None,
        params: Mapping[str, str] | None = None,
    ) -> Any:
        ...


class HttpTransport:
    """Bearer-authenticated JSON transport over a shared aiohttp session."""

    def __init__(
        self,
        config: FleetAlertsConfig,
        http_session: aiohttp.ClientSession,
    ) -> None:
        self._config = config
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=config.request_timeout)

    def _headers(self) -> dict[str, str]:
        headers: dict[str, str] = {
            "accept": "application/json",
            "content-type": "application/json; charset=UTF-8",
            "user-agent": USER_AGENT,
        }
        if self._config.api_token:
            headers["authorization"] = f"Bearer {self._config.api_token}"
        return headers

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        json_body: Any = None,
        params: Mapping[str, str] | None = None,
    ) -> Any:
        """Send a JSON request and return the decoded JSON reply.

        Raises :class:`FleetTransportError` for network failures, non-2xx
        status codes and bodies that are not JSON. The error message keeps
        the beginning of the response body so callers can inspect
        server-side error text (e.g. unique-index violations).
        """
        url = f"{self._config.api_base_url.rstrip('/')}{endpoint}"
        body = None if json_body is None else json.dumps(json_body, separators=(",", ":"))

        _logger.debug("%s %s", method, url)
        if self._config.api_trace_enabled:
            _logger.debug("Request body %s: %s", endpoint, redact_for_log(json_body))

        try:
            async with self._http.request(
                method,
                url,
                data=body,
                params=dict(params) if params else None,
                headers=self._headers(),
                timeout=self._timeout,
            ) as resp:
                text = await resp.text(errors="replace")
                if not 200 <= resp.status < 300:
                    raise FleetTransportError(
                        f"HTTP {resp.status} from {endpoint}: {text[:200]}",
                        status_code=resp.status,
                        endpoint=endpoint,
                    )
        except FleetTransportError:
            raise
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise FleetTransportError(
                f"Request to {endpoint} failed: {exc}",
                endpoint=endpoint,
            ) from exc

        if not text.strip():
            return None

        try:
            decoded = json.loads(text)
        except json.JSONDecodeError as exc:
            raise FleetTransportError(
                f"Invalid JSON from {endpoint}: {text[:200]}",
                status_code=resp.status,
                endpoint=endpoint,
            ) from exc

        if self._config.api_trace_enabled:
            _logger.debug("Response body %s: %s", endpoint, redact_for_log(decoded))
        return decoded
