"""Filesystem capability."""

from __future__ import annotations

from collections.abc import Iterable
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
from wonderkits.core.native import import_native_module, resolve
from wonderkits.core.types import ProbeStatus


def _optional_int(value: Any) -> int | None:
    return int(value) if value is not None else None


@dataclass(slots=True)
class FileInfo:
    """Metadata for one filesystem entry."""

    is_file: bool
    is_dir: bool
    is_symlink: bool = False
    size: int = 0
    modified: int | None = None
    accessed: int | None = None
    created: int | None = None
    readonly: bool = False

    @classmethod
    def from_raw(cls, raw: Any) -> "FileInfo":
        return cls(
            is_file=bool(pick(raw, "is_file", "isFile", default=False)),
            is_dir=bool(pick(raw, "is_dir", "isDir", "isDirectory", default=False)),
            is_symlink=bool(pick(raw, "is_symlink", "isSymlink", default=False)),
            size=int(pick(raw, "size", default=0) or 0),
            modified=_optional_int(pick(raw, "modified", "mtime")),
            accessed=_optional_int(pick(raw, "accessed", "atime")),
            created=_optional_int(pick(raw, "created", "birthtime")),
            readonly=bool(pick(raw, "readonly", default=False)),
        )


@dataclass(slots=True)
class DirEntry:
    name: str
    path: str
    is_file: bool
    is_dir: bool
    size: int = 0

    @classmethod
    def from_raw(cls, raw: Any) -> "DirEntry":
        return cls(
            name=str(pick(raw, "name", default="")),
            path=str(pick(raw, "path", default="")),
            is_file=bool(pick(raw, "is_file", "isFile", default=False)),
            is_dir=bool(pick(raw, "is_dir", "isDir", "isDirectory", default=False)),
            size=int(pick(raw, "size", default=0) or 0),
        )


def _dir_entries(raw: Iterable[Any] | None) -> list[DirEntry]:
    return [DirEntry.from_raw(item) for item in raw or []]


class NativeFsBackend(NativeBackend):
    """``handle`` is the native fs module itself."""

    async def read_text_file(self, path: str) -> str:
        return str(await resolve(self.handle.read_text_file(path)))

    async def write_text_file(self, path: str, content: str) -> None:
        await resolve(self.handle.write_text_file(path, content))

    async def read_binary_file(self, path: str) -> bytes:
        return bytes(await resolve(self.handle.read_file(path)))

    async def write_binary_file(self, path: str, content: bytes) -> None:
        await resolve(self.handle.write_file(path, content))

    async def exists(self, path: str) -> bool:
        return bool(await resolve(self.handle.exists(path)))

    async def stat(self, path: str) -> FileInfo:
        return FileInfo.from_raw(await resolve(self.handle.stat(path)))

    async def mkdir(self, path: str, recursive: bool) -> None:
        await resolve(self.handle.mkdir(path, recursive=recursive))

    async def remove(self, path: str) -> None:
        await resolve(self.handle.remove(path))

    async def remove_dir(self, path: str, recursive: bool) -> None:
        await resolve(self.handle.remove(path, recursive=recursive))

    async def read_dir(self, path: str) -> list[DirEntry]:
        return _dir_entries(await resolve(self.handle.read_dir(path)))

    async def copy_file(self, source: str, destination: str) -> None:
        await resolve(self.handle.copy_file(source, destination))

    async def rename(self, old_path: str, new_path: str) -> None:
        await resolve(self.handle.rename(old_path, new_path))


class ProxyFsBackend(ProxyBackend):
    async def read_text_file(self, path: str) -> str:
        return str(pick(await resolve(self.proxy.read_text_file(path)), "content", default=""))

    async def write_text_file(self, path: str, content: str) -> None:
        await resolve(self.proxy.write_text_file(path, content))

    async def read_binary_file(self, path: str) -> bytes:
        return bytes(pick(await resolve(self.proxy.read_binary_file(path)), "content", default=b"") or b"")

    async def write_binary_file(self, path: str, content: bytes) -> None:
        await resolve(self.proxy.write_binary_file(path, list(content)))

    async def exists(self, path: str) -> bool:
        return bool(pick(await resolve(self.proxy.exists(path)), "exists", default=False))

    async def stat(self, path: str) -> FileInfo:
        return FileInfo.from_raw(pick(await resolve(self.proxy.stat(path)), "metadata", default={}))

    async def mkdir(self, path: str, recursive: bool) -> None:
        await resolve(self.proxy.mkdir(path, recursive))

    async def remove(self, path: str) -> None:
        await resolve(self.proxy.remove(path))

    async def remove_dir(self, path: str, recursive: bool) -> None:
        await resolve(self.proxy.remove_dir(path, recursive))

    async def read_dir(self, path: str) -> list[DirEntry]:
        return _dir_entries(pick(await resolve(self.proxy.read_dir(path)), "entries"))

    async def copy_file(self, source: str, destination: str) -> None:
        await resolve(self.proxy.copy_file(source, destination))

    async def rename(self, old_path: str, new_path: str) -> None:
        await resolve(self.proxy.rename(old_path, new_path))


class RemoteFsBackend(RemoteBackend):
    async def _call(self, operation: str, body: dict[str, Any]) -> Any:
        return await self.bridge.call("fs", operation, body)

    async def read_text_file(self, path: str) -> str:
        return str(pick(await self._call("read_text", {"path": path}), "content", default=""))

    async def write_text_file(self, path: str, content: str) -> None:
        await self._call("write_text", {"path": path, "content": content})

    async def read_binary_file(self, path: str) -> bytes:
        return bytes(pick(await self._call("read_binary", {"path": path}), "content", default=None) or b"")

    async def write_binary_file(self, path: str, content: bytes) -> None:
        await self._call("write_binary", {"path": path, "content": list(content)})

    async def exists(self, path: str) -> bool:
        return bool(pick(await self._call("exists", {"path": path}), "exists", default=False))

    async def stat(self, path: str) -> FileInfo:
        return FileInfo.from_raw(pick(await self._call("metadata", {"path": path}), "metadata", default={}))

    async def mkdir(self, path: str, recursive: bool) -> None:
        await self._call("create_dir", {"path": path, "recursive": recursive})

    async def remove(self, path: str) -> None:
        await self._call("remove_file", {"path": path})

    async def remove_dir(self, path: str, recursive: bool) -> None:
        await self._call("remove_dir", {"path": path, "recursive": recursive})

    async def read_dir(self, path: str) -> list[DirEntry]:
        return _dir_entries(pick(await self._call("read_dir", {"path": path}), "entries"))

    async def copy_file(self, source: str, destination: str) -> None:
        await self._call("copy_file", {"fromPath": source, "toPath": destination})

    async def rename(self, old_path: str, new_path: str) -> None:
        await self._call("rename_file", {"fromPath": old_path, "toPath": new_path})


class FsClient(CapabilityClient):
    """Filesystem access on the host."""

    capability = "fs"
    display_name = "FS"
    proxy_methods = (
        "read_text_file",
        "write_text_file",
        "read_binary_file",
        "write_binary_file",
        "exists",
        "stat",
        "mkdir",
        "remove",
        "remove_dir",
        "read_dir",
        "copy_file",
        "rename",
    )

    @classmethod
    async def init(cls, options: ClientOptions | None = None) -> "FsClient":
        return cls(await cls._build_backend(options or ClientOptions()))

    @classmethod
    async def _open_native(cls, options: ClientOptions) -> NativeFsBackend:
        module = import_native_module(cls.capability, options.native_module)
        logger.info("native fs module ready: {}", module.__name__)
        return NativeFsBackend(module)

    @classmethod
    async def _open_proxy(cls, proxy: Any, options: ClientOptions) -> ProxyFsBackend:
        return ProxyFsBackend(proxy)

    @classmethod
    async def _open_remote(cls, bridge: RemoteBridge, status: ProbeStatus, options: ClientOptions) -> RemoteFsBackend:
        return RemoteFsBackend(bridge, status)

    async def read_text_file(self, path: str) -> str:
        return await self._backend.read_text_file(path)

    async def write_text_file(self, path: str, content: str) -> None:
        await self._backend.write_text_file(path, content)

    async def read_binary_file(self, path: str) -> bytes:
        return await self._backend.read_binary_file(path)

    async def write_binary_file(self, path: str, content: bytes | bytearray | Iterable[int]) -> None:
        await self._backend.write_binary_file(path, bytes(content))

    async def exists(self, path: str) -> bool:
        return await self._backend.exists(path)

    async def stat(self, path: str) -> FileInfo:
        return await self._backend.stat(path)

    async def mkdir(self, path: str, *, recursive: bool = False) -> None:
        await self._backend.mkdir(path, recursive)

    async def remove(self, path: str) -> None:
        await self._backend.remove(path)

    async def remove_dir(self, path: str, *, recursive: bool = False) -> None:
        await self._backend.remove_dir(path, recursive)

    async def read_dir(self, path: str) -> list[DirEntry]:
        return await self._backend.read_dir(path)

    async def copy_file(self, source: str, destination: str) -> None:
        await self._backend.copy_file(source, destination)

    async def rename(self, old_path: str, new_path: str) -> None:
        await self._backend.rename(old_path, new_path)
