"""Capability clients: relational data, key-value store, filesystem and app registry."""

from .app_registry import AppRegistryClient, HealthCheckResult
from .base import DEFAULT_REMOTE_TARGET, CapabilityClient, ClientOptions
from .fs import DirEntry, FileInfo, FsClient
from .sql import Database, SqlExecuteResult
from .store import Store

__all__ = [
    "AppRegistryClient",
    "CapabilityClient",
    "ClientOptions",
    "DEFAULT_REMOTE_TARGET",
    "Database",
    "DirEntry",
    "FileInfo",
    "FsClient",
    "HealthCheckResult",
    "SqlExecuteResult",
    "Store",
]
