"""Execution mode detection.

Priority (first match wins): explicit force, native host marker, container
marker, remote bridge. Detection never raises; any probing failure degrades
towards the remote bridge.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from loguru import logger

from wonderkits.core.host import HostContext
from wonderkits.core.types import ExecutionMode


def proxy_is_complete(proxy: Any, required_methods: Iterable[str]) -> bool:
    """True when ``proxy`` exposes every callable the capability needs."""
    if proxy is None:
        return False
    try:
        return all(callable(getattr(proxy, name, None)) for name in required_methods)
    except Exception:
        return False


class EnvironmentDetector:
    """Resolve the execution mode from a host context."""

    def __init__(self, context: HostContext | None = None):
        self.context = context or HostContext.ambient()

    def detect_mode(self, force_mode: ExecutionMode | str | None = None) -> ExecutionMode:
        """Resolve the execution mode from host markers; only an unknown forced name raises (ValueError)."""
        if force_mode:
            return ExecutionMode.parse(force_mode)
        if self.context.has_native_host():
            logger.debug("native host marker detected")
            return ExecutionMode.NATIVE
        if self.context.is_in_container():
            logger.debug("container marker detected, proxy availability checked per capability")
            return ExecutionMode.PROXY
        logger.debug("no host markers, using remote bridge")
        return ExecutionMode.REMOTE

    def detect_capability_mode(
        self,
        proxy_key: str,
        required_methods: Iterable[str],
        force_mode: ExecutionMode | str | None = None,
    ) -> ExecutionMode:
        """Detect the mode for one capability, refining an unforced proxy verdict."""
        mode = self.detect_mode(force_mode)
        if force_mode or mode is not ExecutionMode.PROXY:
            return mode
        proxy = self.context.proxy_for(proxy_key)
        if proxy_is_complete(proxy, required_methods):
            logger.debug("container exposes {} proxy", proxy_key)
            return ExecutionMode.PROXY
        logger.debug("container lacks a usable {} proxy, using remote bridge", proxy_key)
        return ExecutionMode.REMOTE

    def describe(self) -> dict[str, Any]:
        return {"mode": self.detect_mode().value, "markers": self.context.snapshot()}


def detect_mode(
    force_mode: ExecutionMode | str | None = None,
    context: HostContext | None = None,
) -> ExecutionMode:
    return EnvironmentDetector(context).detect_mode(force_mode)
