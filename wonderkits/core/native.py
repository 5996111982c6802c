"""Access to the modules a native host makes importable."""

from __future__ import annotations

import importlib
import inspect
from types import ModuleType
from typing import Any

from loguru import logger

from wonderkits.utils.exceptions import BackendUnavailableError

DEFAULT_NATIVE_MODULES: dict[str, str] = {
    "sql": "wonderkits_native.sql",
    "store": "wonderkits_native.store",
    "fs": "wonderkits_native.fs",
    "app_registry": "wonderkits_native.core",
}


def import_native_module(capability: str, module_name: str | None = None) -> ModuleType:
    """Import the native host module serving ``capability``."""
    name = module_name or DEFAULT_NATIVE_MODULES[capability]
    try:
        module = importlib.import_module(name)
    except ImportError as exc:
        raise BackendUnavailableError(capability, "native-embedded", f"cannot import {name}: {exc}") from exc
    logger.debug("imported native module {} for {}", name, capability)
    return module


def require_attr(module: ModuleType, attr: str, capability: str) -> Any:
    value = getattr(module, attr, None)
    if value is None:
        raise BackendUnavailableError(
            capability,
            "native-embedded",
            f"native module {module.__name__} does not provide {attr}",
        )
    return value


async def resolve(value: Any) -> Any:
    """Await host results that are awaitable; pass plain values through."""
    if inspect.isawaitable(value):
        return await value
    return value
