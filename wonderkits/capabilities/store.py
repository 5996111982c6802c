"""Key-value store capability."""

from __future__ import annotations

from typing import Any

import httpx
from loguru import logger

from wonderkits.capabilities.base import (
    DEFAULT_REMOTE_TARGET,
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


def _entries(raw: Any) -> list[tuple[str, Any]]:
    return [(str(item[0]), item[1]) for item in raw or []]


class NativeStoreBackend(NativeBackend):
    async def set(self, key: str, value: Any) -> None:
        await resolve(self.handle.set(key, value))

    async def get(self, key: str) -> Any:
        return await resolve(self.handle.get(key))

    async def delete(self, key: str) -> bool:
        return bool(await resolve(self.handle.delete(key)))

    async def clear(self) -> None:
        await resolve(self.handle.clear())

    async def keys(self) -> list[str]:
        return list(await resolve(self.handle.keys()) or [])

    async def values(self) -> list[Any]:
        return list(await resolve(self.handle.values()) or [])

    async def entries(self) -> list[tuple[str, Any]]:
        return _entries(await resolve(self.handle.entries()))

    async def length(self) -> int:
        return int(await resolve(self.handle.length()) or 0)

    async def save(self) -> None:
        await resolve(self.handle.save())

    async def reload(self) -> None:
        await resolve(self.handle.reload())


class ProxyStoreBackend(ProxyBackend):
    async def set(self, key: str, value: Any) -> None:
        await resolve(self.proxy.set_value(self.session_id, key, value))

    async def get(self, key: str) -> Any:
        raw = await resolve(self.proxy.get_value(self.session_id, key))
        return pick(raw, "value")

    async def delete(self, key: str) -> bool:
        raw = await resolve(self.proxy.delete_key(self.session_id, key))
        return bool(pick(raw, "success", default=False))

    async def clear(self) -> None:
        await resolve(self.proxy.clear_store(self.session_id))

    async def keys(self) -> list[str]:
        raw = await resolve(self.proxy.get_keys(self.session_id))
        return list(pick(raw, "keys", default=None) or [])

    async def values(self) -> list[Any]:
        raw = await resolve(self.proxy.get_values(self.session_id))
        return list(pick(raw, "values", default=None) or [])

    async def entries(self) -> list[tuple[str, Any]]:
        raw = await resolve(self.proxy.get_entries(self.session_id))
        return _entries(pick(raw, "entries"))

    async def length(self) -> int:
        raw = await resolve(self.proxy.get_length(self.session_id))
        return int(pick(raw, "length", default=0) or 0)

    async def save(self) -> None:
        await resolve(self.proxy.save_store(self.session_id))

    async def reload(self) -> None:
        await resolve(self.proxy.reload_store(self.session_id))


class RemoteStoreBackend(RemoteBackend):
    def __init__(self, bridge: RemoteBridge, probe_status: ProbeStatus, filename: str):
        super().__init__(bridge, probe_status)
        self.filename = filename

    async def connect(self) -> str:
        data = await self.bridge.call("store", "load", {"filename": self.filename})
        self.session_id = pick(data, "store_id")
        logger.info("remote store loaded: {}", self.session_id)
        return self.session_id

    async def _call(self, operation: str, **fields: Any) -> Any:
        if self.session_id is None:
            await self.connect()
        return await self.bridge.call("store", operation, {"store_id": self.session_id, **fields})

    async def set(self, key: str, value: Any) -> None:
        await self._call("set", key=key, value=value)

    async def get(self, key: str) -> Any:
        return pick(await self._call("get", key=key), "value")

    async def delete(self, key: str) -> bool:
        return bool(pick(await self._call("delete", key=key), "success", default=False))

    async def clear(self) -> None:
        await self._call("clear")

    async def keys(self) -> list[str]:
        return list(pick(await self._call("keys"), "keys", default=None) or [])

    async def values(self) -> list[Any]:
        return list(pick(await self._call("values"), "values", default=None) or [])

    async def entries(self) -> list[tuple[str, Any]]:
        return _entries(pick(await self._call("entries"), "entries"))

    async def length(self) -> int:
        return int(pick(await self._call("length"), "length", default=0) or 0)

    async def save(self) -> None:
        await self._call("save")

    async def reload(self) -> None:
        await self._call("reload")


class Store(CapabilityClient):
    """Persistent key-value store bound to one file on the host."""

    capability = "store"
    display_name = "Store"
    proxy_methods = (
        "load_store",
        "set_value",
        "get_value",
        "delete_key",
        "clear_store",
        "get_keys",
        "get_values",
        "get_entries",
        "get_length",
        "save_store",
        "reload_store",
    )

    def __init__(self, backend: NativeStoreBackend | ProxyStoreBackend | RemoteStoreBackend, filename: str):
        super().__init__(backend)
        self.filename = filename

    @classmethod
    async def load(cls, filename: str, options: ClientOptions | None = None) -> "Store":
        backend = await cls._build_backend(options or ClientOptions(), filename)
        return cls(backend, filename)

    @classmethod
    async def _open_native(cls, options: ClientOptions, filename: str) -> NativeStoreBackend:
        module = import_native_module(cls.capability, options.native_module)
        native_cls = require_attr(module, "Store", cls.display_name)
        handle = await resolve(native_cls.load(filename))
        logger.info("native store loaded: {}", filename)
        return NativeStoreBackend(handle)

    @classmethod
    async def _open_proxy(cls, proxy: Any, options: ClientOptions, filename: str) -> ProxyStoreBackend:
        store_id = await resolve(proxy.load_store(filename))
        logger.info("proxy store loaded: {}", store_id)
        return ProxyStoreBackend(proxy, store_id)

    @classmethod
    async def _open_remote(
        cls, bridge: RemoteBridge, status: ProbeStatus, options: ClientOptions, filename: str
    ) -> RemoteStoreBackend:
        backend = RemoteStoreBackend(bridge, status, filename)
        if status is ProbeStatus.HEALTHY:
            await backend.connect()
        return backend

    async def set(self, key: str, value: Any) -> None:
        await self._backend.set(key, value)

    async def get(self, key: str) -> Any:
        """Value stored under ``key``, or None when the key is missing."""
        return await self._backend.get(key)

    async def delete(self, key: str) -> bool:
        return await self._backend.delete(key)

    async def clear(self) -> None:
        await self._backend.clear()

    async def keys(self) -> list[str]:
        return await self._backend.keys()

    async def values(self) -> list[Any]:
        return await self._backend.values()

    async def entries(self) -> list[tuple[str, Any]]:
        return await self._backend.entries()

    async def length(self) -> int:
        return await self._backend.length()

    async def save(self) -> None:
        await self._backend.save()

    async def reload(self) -> None:
        await self._backend.reload()

    @staticmethod
    async def get_stores(
        base_url: str = DEFAULT_REMOTE_TARGET,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> list[str]:
        """List stores currently loaded on a remote bridge."""
        data = await RemoteBridge(base_url, transport=transport).call("store", "list", method="GET")
        return [str(x) for x in pick(data, "stores", default=None) or []]
