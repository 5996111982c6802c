"""Application-registry capability.

All registry operations are commands with keyword arguments. The native host
receives them through ``invoke(command, args)``, the container proxy through a
method of the same name, and the remote bridge through the REST path mapped in
``_REMOTE_ROUTES``.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Any

from loguru import logger

from wonderkits.capabilities.base import (
    CapabilityClient,
    ClientOptions,
    NativeBackend,
    ProxyBackend,
    RemoteBackend,
    pick,
)
from wonderkits.core.bridge import RemoteBridge
from wonderkits.core.native import import_native_module, require_attr, resolve
from wonderkits.core.types import ProbeStatus
from wonderkits.utils.exceptions import OperationError

DEFAULT_POLL_INTERVAL = 1.0

# command -> (HTTP method, path operation); GET sends args as query params.
_REMOTE_ROUTES: dict[str, tuple[str, str]] = {
    "get_apps": ("GET", "apps"),
    "get_app": ("GET", "app"),
    "register_app": ("POST", "register"),
    "dev_register_app": ("POST", "dev_register"),
    "uninstall_app": ("POST", "uninstall"),
    "activate_app": ("POST", "activate"),
    "deactivate_app": ("POST", "deactivate"),
    "get_active_apps": ("GET", "active"),
    "bulk_action_apps": ("POST", "bulk_action"),
    "get_app_health": ("GET", "app_health"),
    "get_system_status": ("GET", "system_status"),
    "get_app_stats": ("GET", "stats"),
    "get_app_events": ("GET", "events"),
    "search_apps": ("POST", "search"),
    "validate_app_config": ("POST", "validate"),
    "cleanup_app_cache": ("POST", "cleanup_cache"),
}

NATIVE_HEALTH_COMMAND = "app_registry_health_check"


@dataclass(slots=True)
class HealthCheckResult:
    healthy: bool
    message: str
    timestamp: float

    @classmethod
    def from_raw(cls, raw: Any) -> "HealthCheckResult":
        return cls(
            healthy=bool(pick(raw, "healthy", default=False)),
            message=str(pick(raw, "message", default="") or ""),
            timestamp=float(pick(raw, "timestamp", default=0) or time.time()),
        )


class NativeAppRegistryBackend(NativeBackend):
    """``handle`` is the native host's ``invoke(command, args)`` callable."""

    async def invoke(self, command: str, args: dict[str, Any]) -> Any:
        return await resolve(self.handle(command, args))

    async def health_check(self) -> HealthCheckResult:
        return HealthCheckResult.from_raw(await resolve(self.handle(NATIVE_HEALTH_COMMAND, {})))


class ProxyAppRegistryBackend(ProxyBackend):
    async def invoke(self, command: str, args: dict[str, Any]) -> Any:
        method = getattr(self.proxy, command, None)
        if not callable(method):
            raise OperationError(f"proxy does not support command: {command}", operation=command, code="UNSUPPORTED")
        return await resolve(method(**args))

    async def health_check(self) -> HealthCheckResult:
        return HealthCheckResult.from_raw(await resolve(self.proxy.health_check()))


class RemoteAppRegistryBackend(RemoteBackend):
    async def invoke(self, command: str, args: dict[str, Any]) -> Any:
        http_method, operation = _REMOTE_ROUTES[command]
        if http_method == "GET":
            return await self.bridge.call("app_registry", operation, method="GET", params=args)
        return await self.bridge.call("app_registry", operation, args)

    async def health_check(self) -> HealthCheckResult:
        try:
            data = await self.bridge.fetch_health()
        except OperationError as exc:
            return HealthCheckResult(healthy=False, message=f"Health check failed: {exc.message}", timestamp=time.time())
        return HealthCheckResult(
            healthy=data.get("status") == "ok",
            message=str(data.get("message") or "Health check completed"),
            timestamp=time.time(),
        )


class AppRegistryClient(CapabilityClient):
    """Registry of installable applications on the host."""

    capability = "app_registry"
    display_name = "App Registry"
    proxy_methods = ("get_apps", "get_app", "health_check")

    @classmethod
    async def create(cls, options: ClientOptions | None = None) -> "AppRegistryClient":
        return cls(await cls._build_backend(options or ClientOptions()))

    @classmethod
    async def _open_native(cls, options: ClientOptions) -> NativeAppRegistryBackend:
        module = import_native_module(cls.capability, options.native_module)
        return NativeAppRegistryBackend(require_attr(module, "invoke", cls.display_name))

    @classmethod
    async def _open_proxy(cls, proxy: Any, options: ClientOptions) -> ProxyAppRegistryBackend:
        return ProxyAppRegistryBackend(proxy)

    @classmethod
    async def _open_remote(
        cls, bridge: RemoteBridge, status: ProbeStatus, options: ClientOptions
    ) -> RemoteAppRegistryBackend:
        return RemoteAppRegistryBackend(bridge, status)

    async def _invoke(self, command: str, **args: Any) -> Any:
        return await self._backend.invoke(command, args)

    # -- basic management -------------------------------------------------

    async def get_apps(
        self,
        *,
        status: str | None = None,
        category: str | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[dict[str, Any]]:
        apps = await self._invoke("get_apps", status=status, category=category, limit=limit, offset=offset)
        return list(apps or [])

    async def get_app(self, app_id: str) -> dict[str, Any] | None:
        try:
            return await self._invoke("get_app", app_id=app_id)
        except OperationError as exc:
            if exc.status_code == 404:
                return None
            raise

    async def health_check(self) -> HealthCheckResult:
        return await self._backend.health_check()

    async def register_app(self, config: dict[str, Any]) -> str:
        return await self._invoke("register_app", config=config)

    async def dev_register_app(self, config: dict[str, Any], dev_url: str) -> dict[str, Any]:
        return await self._invoke("dev_register_app", config=config, dev_url=dev_url)

    async def uninstall_app(self, app_id: str) -> str:
        return await self._invoke("uninstall_app", app_id=app_id)

    async def activate_app(self, app_id: str) -> str:
        return await self._invoke("activate_app", app_id=app_id)

    async def deactivate_app(self, app_id: str) -> str:
        return await self._invoke("deactivate_app", app_id=app_id)

    async def get_active_apps(self) -> list[dict[str, Any]]:
        return list(await self._invoke("get_active_apps") or [])

    async def bulk_action_apps(self, action: str, app_ids: list[str]) -> dict[str, Any]:
        return await self._invoke("bulk_action_apps", action=action, app_ids=list(app_ids))

    async def get_app_health(self, app_id: str) -> dict[str, Any]:
        return await self._invoke("get_app_health", app_id=app_id)

    async def get_system_status(self) -> dict[str, Any]:
        return await self._invoke("get_system_status")

    async def get_app_stats(self) -> dict[str, Any]:
        return await self._invoke("get_app_stats")

    async def get_app_events(self, app_id: str, limit: int | None = None) -> list[dict[str, Any]]:
        return list(await self._invoke("get_app_events", app_id=app_id, limit=limit) or [])

    async def search_apps(self, query: str, filters: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        return list(await self._invoke("search_apps", query=query, filters=filters or {}) or [])

    async def validate_app_config(self, config: dict[str, Any]) -> dict[str, Any]:
        return await self._invoke("validate_app_config", config=config)

    async def cleanup_app_cache(self, app_id: str | None = None) -> str:
        return await self._invoke("cleanup_app_cache", app_id=app_id)

    # -- convenience helpers -----------------------------------------------

    async def bulk_activate_apps(self, app_ids: list[str]) -> dict[str, Any]:
        return await self.bulk_action_apps("activate", app_ids)

    async def bulk_deactivate_apps(self, app_ids: list[str]) -> dict[str, Any]:
        return await self.bulk_action_apps("deactivate", app_ids)

    async def bulk_uninstall_apps(self, app_ids: list[str]) -> dict[str, Any]:
        return await self.bulk_action_apps("uninstall", app_ids)

    async def get_apps_by_status(self, status: str) -> list[dict[str, Any]]:
        return await self.get_apps(status=status)

    async def get_apps_by_category(self, category: str) -> list[dict[str, Any]]:
        return await self.get_apps(category=category)

    async def app_exists(self, app_id: str) -> bool:
        try:
            return await self.get_app(app_id) is not None
        except Exception as exc:
            logger.debug("app_exists({}) failed: {}", app_id, exc)
            return False

    async def is_app_active(self, app_id: str) -> bool:
        try:
            app = await self.get_app(app_id)
        except Exception as exc:
            logger.debug("is_app_active({}) failed: {}", app_id, exc)
            return False
        return pick(app, "status") == "active"

    async def wait_for_app_status(
        self,
        app_id: str,
        target_status: str,
        timeout: float = 30.0,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ) -> bool:
        """Poll until the app reports ``target_status``; False once ``timeout`` elapses."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while True:
            try:
                app = await self.get_app(app_id)
                if pick(app, "status") == target_status:
                    return True
            except Exception as exc:
                logger.debug("polling {} failed: {}", app_id, exc)
            remaining = deadline - loop.time()
            if remaining <= 0:
                return False
            await asyncio.sleep(min(poll_interval, remaining))
