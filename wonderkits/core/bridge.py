"""HTTP transport for remote-bridge mode."""

from __future__ import annotations

from typing import Any

import httpx
from loguru import logger

from wonderkits.core.paths import ApiPathManager, api_path, health_path
from wonderkits.core.types import ApiResponse
from wonderkits.utils.exceptions import OperationError

DEFAULT_REQUEST_TIMEOUT = 20.0
DEFAULT_HEALTH_TIMEOUT = 3.0


def envelope_error_message(envelope: ApiResponse | None, status_code: int, reason: str) -> str:
    """Server-supplied message, else ``HTTP <status>: <statusText>``."""
    if envelope is not None and envelope.message:
        return envelope.message
    return f"HTTP {status_code}: {reason}"


class RemoteBridge:
    """JSON-over-HTTP client for one remote-bridge service.

    Every response is the envelope ``{success, data?, message?, error?}``; a
    non-2xx status or ``success: false`` raises ``OperationError``.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        health_timeout: float = DEFAULT_HEALTH_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.paths = ApiPathManager(self.base_url)
        self.timeout = timeout
        self.health_timeout = health_timeout
        self._transport = transport

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=timeout, transport=self._transport)

    async def _send(
        self,
        method: str,
        path: str,
        *,
        json_body: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> httpx.Response:
        url = self.paths.absolute(path)
        query = {k: v for k, v in (params or {}).items() if v is not None} or None
        try:
            async with self._client(timeout or self.timeout) as client:
                return await client.request(method, url, json=json_body, params=query)
        except httpx.TimeoutException as exc:
            raise OperationError(
                f"remote bridge timeout: {method} {path}",
                operation=path,
                code="REMOTE_TIMEOUT",
                retryable=True,
            ) from exc
        except httpx.RequestError as exc:
            raise OperationError(
                f"remote bridge network error: {method} {path}: {exc}",
                operation=path,
                code="REMOTE_NETWORK_ERROR",
                retryable=True,
            ) from exc

    async def request(
        self,
        method: str,
        path: str,
        body: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Send one request and return the envelope's ``data``."""
        resp = await self._send(method, path, json_body=body, params=params)
        status_code = int(resp.status_code)
        reason = resp.reason_phrase or ""
        try:
            payload: Any = resp.json()
        except ValueError:
            payload = None
        envelope = ApiResponse.from_payload(payload) if isinstance(payload, dict) else None

        if not resp.is_success or envelope is None or not envelope.success:
            message = envelope_error_message(envelope, status_code, reason)
            logger.debug("remote bridge rejected {} {}: {}", method, path, message)
            raise OperationError(
                message,
                operation=path,
                status_code=status_code,
                envelope=payload if isinstance(payload, dict) else None,
                code="REMOTE_HTTP_ERROR" if not resp.is_success else "REMOTE_REJECTED",
                retryable=status_code >= 500 or status_code in {408, 429},
            )
        return envelope.data

    async def call(
        self,
        capability: str,
        operation: str,
        body: dict[str, Any] | None = None,
        *,
        method: str = "POST",
        params: dict[str, Any] | None = None,
    ) -> Any:
        return await self.request(method, api_path(capability, operation), body, params)

    async def fetch_health(self) -> dict[str, Any]:
        """GET the health path; returns the raw JSON body (not an envelope)."""
        path = health_path()
        resp = await self._send("GET", path, timeout=self.health_timeout)
        if not resp.is_success:
            raise OperationError(
                f"HTTP {resp.status_code}: {resp.reason_phrase or ''}",
                operation=path,
                status_code=resp.status_code,
                code="REMOTE_HTTP_ERROR",
            )
        try:
            body = resp.json()
        except ValueError:
            body = None
        return body if isinstance(body, dict) else {}

    async def check_health(self) -> bool:
        """One-shot liveness probe; never raises."""
        try:
            await self.fetch_health()
            return True
        except OperationError as exc:
            logger.debug("remote bridge health check failed for {}: {}", self.base_url, exc.message)
            return False
