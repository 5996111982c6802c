"""Unified orchestrator: one configuration, one pre-check, several capabilities."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterable
from typing import Any

import httpx
from loguru import logger

from wonderkits.capabilities.app_registry import AppRegistryClient
from wonderkits.capabilities.base import CapabilityClient, ClientOptions
from wonderkits.capabilities.fs import FsClient
from wonderkits.capabilities.sql import Database
from wonderkits.capabilities.store import Store
from wonderkits.config.schema import ClientConfig, ServicesConfig
from wonderkits.core.bridge import RemoteBridge
from wonderkits.core.detection import EnvironmentDetector
from wonderkits.core.host import HostContext
from wonderkits.core.retry import retry_with_fallback
from wonderkits.core.types import ExecutionMode
from wonderkits.utils.exceptions import ConnectivityError, NotInitializedError

SERVICE_NAMES = ("sql", "store", "fs", "app_registry")


class WonderKitsClient:
    """Aggregate of capability clients sharing one mode and one remote target.

    The execution mode is resolved once at construction. ``init_services``
    runs a single connectivity pre-check for that mode, then brings every
    requested capability up concurrently; one capability failing does not
    stop the others.
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        context: HostContext | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config or ClientConfig()
        self._context = context or HostContext.ambient()
        self._transport = transport
        self._detector = EnvironmentDetector(self._context)
        self._mode = self._detector.detect_mode(self.config.force_mode)
        self._services: dict[str, CapabilityClient] = {}
        self._failures: dict[str, BaseException] = {}
        self._log("wonderkits client created in {} mode", self._mode.value)

    def _log(self, message: str, *args: Any) -> None:
        logger.log("INFO" if self.config.verbose else "DEBUG", message, *args)

    @property
    def mode(self) -> ExecutionMode:
        return self._mode

    def _options(self, name: str) -> ClientOptions:
        return ClientOptions(
            force_mode=self.config.force_mode,
            context=self._context,
            native_module=self.config.native_modules.get(name),
            default_remote_target=self.config.base_url,
            timeout=self.config.request_timeout,
            health_timeout=self.config.health_timeout,
            transport=self._transport,
        )

    # -- connectivity ---------------------------------------------------------

    async def probe_connection(self) -> tuple[bool, str]:
        """Run the liveness check for the resolved mode; returns (ok, detail)."""
        if self._mode is ExecutionMode.NATIVE:
            if self._context.has_native_host():
                return True, "native host marker present"
            return False, "native host marker missing"
        if self._mode is ExecutionMode.PROXY:
            if self._context.is_in_container() and self._context.container_props is not None:
                return True, "container marker present with exposed props"
            return False, "container marker or its exposed props missing"
        bridge = RemoteBridge(
            self.config.base_url,
            timeout=self.config.request_timeout,
            health_timeout=self.config.health_timeout,
            transport=self._transport,
        )
        if await bridge.check_health():
            return True, f"remote bridge at {self.config.target} is reachable"
        return False, f"remote bridge at {self.config.target} is unreachable"

    async def check_connection(self) -> bool:
        ok, _ = await self.probe_connection()
        return ok

    async def get_connection_diagnostics(self) -> str:
        ok, detail = await self.probe_connection()
        state = "ok" if ok else "failed"
        return f"mode={self._mode.value} status={state}: {detail}"

    # -- lifecycle ------------------------------------------------------------

    def _factory(
        self, name: str, services: ServicesConfig
    ) -> Callable[[ClientOptions], Awaitable[CapabilityClient]]:
        if name == "sql":
            return lambda opts: Database.load(services.sql.connection_string, opts)
        if name == "store":
            return lambda opts: Store.load(services.store.filename, opts)
        if name == "fs":
            return FsClient.init
        return AppRegistryClient.create

    async def _init_service(self, name: str, services: ServicesConfig) -> CapabilityClient:
        factory = self._factory(name, services)
        options = self._options(name)
        remote = options.with_remote(self.config.base_url)
        if self._mode is ExecutionMode.REMOTE:
            return await factory(remote)
        return await retry_with_fallback(
            lambda: factory(options),
            lambda: factory(remote),
            f"{name} failed to initialize in {self._mode.value} mode, retrying via remote bridge",
        )

    async def init_services(self, services: Iterable[str] | ServicesConfig | None = None) -> "WonderKitsClient":
        """Initialize the requested capabilities (defaults to the configured ones).

        A ``ServicesConfig`` argument supplies both the capability set and
        its parameters (connection string, store filename); a plain list of
        names takes the parameters from ``self.config.services``.

        Raises ConnectivityError, before touching any capability, when the
        pre-check for the resolved mode fails. Per-capability failures are
        recorded and surface through the accessors.
        """
        if isinstance(services, ServicesConfig):
            settings = services
            names = services.requested()
        else:
            settings = self.config.services
            names = settings.requested() if services is None else list(dict.fromkeys(services))
        unknown = [n for n in names if n not in SERVICE_NAMES]
        if unknown:
            raise ValueError(f"unknown services: {', '.join(unknown)}")

        ok, detail = await self.probe_connection()
        if not ok:
            target = self.config.target if self._mode is ExecutionMode.REMOTE else None
            raise ConnectivityError(self._mode.value, detail, target=target)

        self._log("initializing services: {}", ", ".join(names) or "(none)")
        results = await asyncio.gather(*(self._init_service(n, settings) for n in names), return_exceptions=True)
        for name, result in zip(names, results):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, BaseException):
                self._services.pop(name, None)
                self._failures[name] = result
                logger.error("{} service failed to initialize: {}", name, result)
                continue
            self._services[name] = result
            self._failures.pop(name, None)
            self._log("{} service ready ({})", name, result.mode.value)
            if not result.is_ready():
                logger.warning("{} remote bridge unreachable; its session opens on first use", name)
        return self

    async def destroy(self) -> None:
        """Forget every capability; handles stay open for the host to manage."""
        self._services.clear()
        self._failures.clear()
        self._log("wonderkits client destroyed")

    async def __aenter__(self) -> "WonderKitsClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.destroy()

    # -- accessors ------------------------------------------------------------

    def _get(self, name: str) -> Any:
        client = self._services.get(name)
        if client is None:
            raise NotInitializedError(name, self._failures.get(name))
        return client

    def sql(self) -> Database:
        return self._get("sql")

    def store(self) -> Store:
        return self._get("store")

    def fs(self) -> FsClient:
        return self._get("fs")

    def app_registry(self) -> AppRegistryClient:
        return self._get("app_registry")

    def is_service_initialized(self, name: str) -> bool:
        return name in self._services

    def initialized_services(self) -> list[str]:
        return [n for n in SERVICE_NAMES if n in self._services]

    def failed_services(self) -> dict[str, BaseException]:
        return dict(self._failures)

    def describe(self) -> dict[str, Any]:
        return {
            "mode": self._mode.value,
            "forced": self.config.force_mode is not None,
            "target": self.config.target,
            "markers": self._context.snapshot(),
            "services": self.initialized_services(),
        }


async def create_client(
    config: ClientConfig | None = None,
    *,
    services: Iterable[str] | None = None,
    context: HostContext | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> WonderKitsClient:
    """Build an orchestrator and initialize its services in one step."""
    client = WonderKitsClient(config, context=context, transport=transport)
    return await client.init_services(services)


async def init_for_development(
    services: Iterable[str] = SERVICE_NAMES,
    config: ClientConfig | None = None,
    *,
    context: HostContext | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> WonderKitsClient:
    """Like ``create_client`` with every capability and verbose logging unless the config says otherwise."""
    config = config or ClientConfig(verbose=True)
    if "verbose" not in config.model_fields_set:
        config = config.model_copy(update={"verbose": True})
    return await create_client(config, services=services, context=context, transport=transport)
