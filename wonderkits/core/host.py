"""Host context: the markers an embedding host exposes to capability clients.

Hosts announce themselves by installing markers into the ambient namespace
(``install_native_host`` / ``install_container``). Detection code never reads
process state directly; it receives a ``HostContext`` so tests can substitute
their own namespace.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from loguru import logger

NATIVE_HOST_MARKER = "__NATIVE_HOST__"
CONTAINER_FLAG_MARKER = "__HOSTED_BY_CONTAINER__"
CONTAINER_OBJECT_MARKER = "__container__"

_AMBIENT: dict[str, Any] = {}


def _lookup(source: Any, name: str) -> Any:
    if source is None:
        return None
    if isinstance(source, Mapping):
        return source.get(name)
    return getattr(source, name, None)


class HostContext:
    """Read-only view over a namespace holding host markers."""

    def __init__(self, namespace: Any = None):
        self._namespace = _AMBIENT if namespace is None else namespace

    @classmethod
    def ambient(cls) -> "HostContext":
        return cls(_AMBIENT)

    def probe(self, name: str) -> Any:
        """Return marker ``name`` or None; a failing lookup counts as absent."""
        try:
            return _lookup(self._namespace, name)
        except Exception as exc:
            logger.debug("host marker probe failed for {}: {}", name, exc)
            return None

    @property
    def native_host(self) -> Any:
        return self.probe(NATIVE_HOST_MARKER)

    def has_native_host(self) -> bool:
        try:
            return bool(self.native_host)
        except Exception:
            return False

    def is_in_container(self) -> bool:
        try:
            return bool(self.probe(CONTAINER_FLAG_MARKER))
        except Exception:
            return False

    @property
    def container_props(self) -> Any:
        container = self.probe(CONTAINER_OBJECT_MARKER)
        try:
            return _lookup(container, "props")
        except Exception as exc:
            logger.debug("container props lookup failed: {}", exc)
            return None

    def proxy_for(self, key: str) -> Any:
        """Return the container's sub-object for one capability, if exposed."""
        try:
            return _lookup(self.container_props, key)
        except Exception as exc:
            logger.debug("container proxy lookup failed for {}: {}", key, exc)
            return None

    def snapshot(self) -> dict[str, bool]:
        return {
            "native": self.has_native_host(),
            "container": self.is_in_container(),
            "container_props": self.container_props is not None,
        }


def install_native_host(host: Any = True) -> None:
    """Mark the process as running inside a native host."""
    _AMBIENT[NATIVE_HOST_MARKER] = host


def install_container(props: Any) -> None:
    """Mark the process as hosted by a container that exposes ``props``."""
    _AMBIENT[CONTAINER_FLAG_MARKER] = True
    _AMBIENT[CONTAINER_OBJECT_MARKER] = {"props": props}


def clear_host_markers() -> None:
    _AMBIENT.clear()
