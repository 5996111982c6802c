"""Relational-data capability: one API over native, proxy and remote SQL."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
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


@dataclass(slots=True)
class SqlExecuteResult:
    """Outcome of a write statement."""

    rows_affected: int
    last_insert_id: int | None = None

    @classmethod
    def from_raw(cls, raw: Any) -> "SqlExecuteResult":
        rows = pick(raw, "rows_affected", "rowsAffected", default=0)
        last_id = pick(raw, "last_insert_id", "lastInsertId")
        return cls(rows_affected=int(rows or 0), last_insert_id=int(last_id) if last_id else None)


class NativeSqlBackend(NativeBackend):
    async def execute(self, sql: str, params: list[Any]) -> SqlExecuteResult:
        return SqlExecuteResult.from_raw(await resolve(self.handle.execute(sql, params)))

    async def select(self, sql: str, params: list[Any]) -> list[dict[str, Any]]:
        return list(await resolve(self.handle.select(sql, params)) or [])

    async def close(self) -> bool:
        return bool(await resolve(self.handle.close()))


class ProxySqlBackend(ProxyBackend):
    async def execute(self, sql: str, params: list[Any]) -> SqlExecuteResult:
        raw = await resolve(self.proxy.execute(self.session_id, sql, params))
        return SqlExecuteResult.from_raw(raw)

    async def select(self, sql: str, params: list[Any]) -> list[dict[str, Any]]:
        raw = await resolve(self.proxy.select(self.session_id, sql, params))
        return list(pick(raw, "data", default=None) or [])

    async def close(self) -> bool:
        closed = bool(await resolve(self.proxy.close_connection(self.session_id)))
        if closed:
            logger.info("proxy database connection {} closed", self.session_id)
            self.session_id = None
        return closed


class RemoteSqlBackend(RemoteBackend):
    def __init__(self, bridge: RemoteBridge, probe_status: ProbeStatus, connection_string: str):
        super().__init__(bridge, probe_status)
        self.connection_string = connection_string
        self._closed = False

    async def connect(self) -> str:
        data = await self.bridge.call("sql", "load", {"connection_string": self.connection_string})
        self.session_id = pick(data, "connection_id")
        logger.info("remote database connection created: {}", self.session_id)
        return self.session_id

    async def _connection_id(self) -> str:
        if self.session_id is None:
            await self.connect()
        return self.session_id

    async def execute(self, sql: str, params: list[Any]) -> SqlExecuteResult:
        body = {"connection_id": await self._connection_id(), "sql": sql, "params": params}
        return SqlExecuteResult.from_raw(await self.bridge.call("sql", "execute", body))

    async def select(self, sql: str, params: list[Any]) -> list[dict[str, Any]]:
        body = {"connection_id": await self._connection_id(), "sql": sql, "params": params}
        data = await self.bridge.call("sql", "select", body)
        return list(pick(data, "data", default=None) or [])

    async def close(self) -> bool:
        if self.session_id is None:
            logger.warning("database not connected")
            return False
        data = await self.bridge.call("sql", "close", {"connection_id": self.session_id})
        if pick(data, "success", default=False):
            logger.info("remote database connection {} closed", self.session_id)
            self.session_id = None
            return True
        return False


class Database(CapabilityClient):
    """SQL database handle.

    Usage:
        db = await Database.load("sqlite:app.db")
        await db.execute("INSERT INTO notes (body) VALUES (?)", ["hi"])
        rows = await db.select("SELECT * FROM notes")
    """

    capability = "sql"
    display_name = "SQL"
    proxy_methods = ("load_connection", "execute", "select", "close_connection")

    def __init__(self, backend: NativeSqlBackend | ProxySqlBackend | RemoteSqlBackend, connection_string: str = ""):
        super().__init__(backend)
        self.connection_string = connection_string

    @classmethod
    async def load(cls, connection_string: str, options: ClientOptions | None = None) -> "Database":
        backend = await cls._build_backend(options or ClientOptions(), connection_string)
        return cls(backend, connection_string)

    @classmethod
    async def _open_native(cls, options: ClientOptions, connection_string: str) -> NativeSqlBackend:
        module = import_native_module(cls.capability, options.native_module)
        native_cls = require_attr(module, "Database", cls.display_name)
        handle = await resolve(native_cls.load(connection_string))
        logger.info("native database connection created")
        return NativeSqlBackend(handle)

    @classmethod
    async def _open_proxy(cls, proxy: Any, options: ClientOptions, connection_string: str) -> ProxySqlBackend:
        connection_id = await resolve(proxy.load_connection(connection_string))
        logger.info("proxy database connection created: {}", connection_id)
        return ProxySqlBackend(proxy, connection_id)

    @classmethod
    async def _open_remote(
        cls, bridge: RemoteBridge, status: ProbeStatus, options: ClientOptions, connection_string: str
    ) -> RemoteSqlBackend:
        backend = RemoteSqlBackend(bridge, status, connection_string)
        if status is ProbeStatus.HEALTHY:
            await backend.connect()
        return backend

    async def execute(self, sql: str, params: Sequence[Any] | None = None) -> SqlExecuteResult:
        return await self._backend.execute(sql, list(params or []))

    async def select(self, sql: str, params: Sequence[Any] | None = None) -> list[dict[str, Any]]:
        return await self._backend.select(sql, list(params or []))

    async def close(self) -> bool:
        return await self._backend.close()

    @staticmethod
    async def get_connections(
        base_url: str = DEFAULT_REMOTE_TARGET,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> list[str]:
        """List active connections on a remote bridge."""
        data = await RemoteBridge(base_url, transport=transport).call("sql", "connections", method="GET")
        return [str(x) for x in pick(data, "connections", default=None) or []]
