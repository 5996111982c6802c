"""Shared construction and dispatch scaffolding for capability clients.

Each capability defines one backend interface with three implementations
(native, proxy, remote). A client picks one backend at construction and keeps
it for its whole lifetime; the public ``is_native`` / ``is_proxy`` /
``is_remote`` flags are derived from that single binding.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, ClassVar

import httpx
from loguru import logger

from wonderkits.core.bridge import DEFAULT_HEALTH_TIMEOUT, DEFAULT_REQUEST_TIMEOUT, RemoteBridge
from wonderkits.core.detection import EnvironmentDetector, proxy_is_complete
from wonderkits.core.host import HostContext
from wonderkits.core.types import ExecutionMode, ProbeStatus
from wonderkits.utils.exceptions import BackendUnavailableError

DEFAULT_REMOTE_TARGET = "http://localhost:1420"


def pick(raw: Any, *names: str, default: Any = None) -> Any:
    """First present field among ``names`` on a dict or object result."""
    for name in names:
        if isinstance(raw, Mapping):
            if name in raw:
                return raw[name]
        elif hasattr(raw, name):
            return getattr(raw, name)
    return default


@dataclass(slots=True)
class ClientOptions:
    """Construction options shared by every capability client.

    ``remote_target`` forces remote-bridge mode against that base URL and
    skips detection entirely.

    An unrecognized ``force_mode`` name raises ValueError here, so detection
    itself never sees one.
    """

    remote_target: str | None = None
    force_mode: ExecutionMode | str | None = None
    context: HostContext | None = None
    native_module: str | None = None
    default_remote_target: str = DEFAULT_REMOTE_TARGET
    timeout: float = DEFAULT_REQUEST_TIMEOUT
    health_timeout: float = DEFAULT_HEALTH_TIMEOUT
    transport: httpx.AsyncBaseTransport | None = None

    def __post_init__(self) -> None:
        self.force_mode = ExecutionMode.parse(self.force_mode) if self.force_mode else None

    def with_remote(self, target: str) -> "ClientOptions":
        return dataclasses.replace(self, remote_target=target)

    def host_context(self) -> HostContext:
        return self.context or HostContext.ambient()

    def bridge(self, base_url: str) -> RemoteBridge:
        return RemoteBridge(
            base_url,
            timeout=self.timeout,
            health_timeout=self.health_timeout,
            transport=self.transport,
        )


class Backend:
    mode: ClassVar[ExecutionMode]

    @property
    def probe_status(self) -> ProbeStatus:
        return ProbeStatus.SKIPPED

    def is_ready(self) -> bool:
        return True


class NativeBackend(Backend):
    mode = ExecutionMode.NATIVE

    def __init__(self, handle: Any):
        self.handle = handle


class ProxyBackend(Backend):
    mode = ExecutionMode.PROXY

    def __init__(self, proxy: Any, session_id: Any = None):
        self.proxy = proxy
        self.session_id = session_id


class RemoteBackend(Backend):
    mode = ExecutionMode.REMOTE

    def __init__(self, bridge: RemoteBridge, probe_status: ProbeStatus, session_id: Any = None):
        self.bridge = bridge
        self.session_id = session_id
        self._probe_status = probe_status

    @property
    def probe_status(self) -> ProbeStatus:
        return self._probe_status

    def is_ready(self) -> bool:
        return self._probe_status is not ProbeStatus.UNREACHABLE or self.session_id is not None


class CapabilityClient:
    """Base for the four capability clients."""

    capability: ClassVar[str]
    display_name: ClassVar[str]
    proxy_methods: ClassVar[tuple[str, ...]] = ()

    def __init__(self, backend: Backend):
        self._backend = backend

    def __repr__(self) -> str:
        return f"<{type(self).__name__} mode={self.mode.value}>"

    @property
    def mode(self) -> ExecutionMode:
        return self._backend.mode

    @property
    def is_native(self) -> bool:
        return self.mode is ExecutionMode.NATIVE

    @property
    def is_proxy(self) -> bool:
        return self.mode is ExecutionMode.PROXY

    @property
    def is_remote(self) -> bool:
        return self.mode is ExecutionMode.REMOTE

    @property
    def probe_status(self) -> ProbeStatus:
        """HEALTHY / UNREACHABLE for remote clients, SKIPPED otherwise."""
        return self._backend.probe_status

    def is_ready(self) -> bool:
        """False for a remote client whose bridge was unreachable and that holds no session yet."""
        return self._backend.is_ready()

    @classmethod
    def resolve_mode(cls, options: ClientOptions) -> ExecutionMode:
        if options.remote_target:
            return ExecutionMode.REMOTE
        detector = EnvironmentDetector(options.host_context())
        return detector.detect_capability_mode(cls.capability, cls.proxy_methods, options.force_mode)

    @classmethod
    async def _build_backend(cls, options: ClientOptions, *args: Any) -> Backend:
        mode = cls.resolve_mode(options)
        context = options.host_context()
        if options.remote_target:
            logger.info("{} explicitly using remote bridge at {}", cls.display_name, options.remote_target)

        if mode is ExecutionMode.NATIVE:
            if not context.has_native_host():
                raise BackendUnavailableError(cls.display_name, mode.value, "native host marker is absent")
            logger.info("{} using native host backend", cls.display_name)
            return await cls._open_native(options, *args)

        if mode is ExecutionMode.PROXY:
            proxy = context.proxy_for(cls.capability)
            if not proxy_is_complete(proxy, cls.proxy_methods):
                raise BackendUnavailableError(
                    cls.display_name, mode.value, f"container does not expose a usable '{cls.capability}' proxy"
                )
            logger.info("{} using container proxy backend", cls.display_name)
            return await cls._open_proxy(proxy, options, *args)

        target = options.remote_target or options.default_remote_target
        bridge = options.bridge(target)
        if await bridge.check_health():
            status = ProbeStatus.HEALTHY
        else:
            status = ProbeStatus.UNREACHABLE
            logger.warning(
                "{} remote bridge at {} did not answer the health check; deferring failure to first use",
                cls.display_name,
                target,
            )
        logger.info("{} using remote bridge at {}", cls.display_name, target)
        return await cls._open_remote(bridge, status, options, *args)

    @classmethod
    async def _open_native(cls, options: ClientOptions, *args: Any) -> Backend:
        raise NotImplementedError

    @classmethod
    async def _open_proxy(cls, proxy: Any, options: ClientOptions, *args: Any) -> Backend:
        raise NotImplementedError

    @classmethod
    async def _open_remote(
        cls, bridge: RemoteBridge, status: ProbeStatus, options: ClientOptions, *args: Any
    ) -> Backend:
        raise NotImplementedError
