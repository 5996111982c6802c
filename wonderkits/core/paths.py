"""Remote-bridge REST paths.

Every capability owns one sub-namespace under ``/api``. Paths are constants:
adding an operation adds a path and never changes an existing one.
"""

from __future__ import annotations

API_PREFIX = "/api"

HEALTH_PATH = "/health"

SQL_PATHS: dict[str, str] = {
    "load": "/sql/load",
    "execute": "/sql/execute",
    "select": "/sql/select",
    "close": "/sql/close",
    "connections": "/sql/connections",
}

STORE_PATHS: dict[str, str] = {
    "load": "/store/load",
    "set": "/store/set",
    "get": "/store/get",
    "delete": "/store/delete",
    "clear": "/store/clear",
    "keys": "/store/keys",
    "values": "/store/values",
    "entries": "/store/entries",
    "length": "/store/length",
    "save": "/store/save",
    "reload": "/store/reload",
    "list": "/store/list",
}

FS_PATHS: dict[str, str] = {
    "read_text": "/fs/read-text",
    "write_text": "/fs/write-text",
    "read_binary": "/fs/read-binary",
    "write_binary": "/fs/write-binary",
    "remove_file": "/fs/remove-file",
    "create_dir": "/fs/create-dir",
    "remove_dir": "/fs/remove-dir",
    "read_dir": "/fs/read-dir",
    "metadata": "/fs/metadata",
    "exists": "/fs/exists",
    "copy_file": "/fs/copy-file",
    "rename_file": "/fs/rename-file",
}

APP_REGISTRY_PATHS: dict[str, str] = {
    "apps": "/app-registry/apps",
    "app": "/app-registry/app",
    "register": "/app-registry/register",
    "dev_register": "/app-registry/dev-register",
    "uninstall": "/app-registry/uninstall",
    "activate": "/app-registry/activate",
    "deactivate": "/app-registry/deactivate",
    "active": "/app-registry/active",
    "bulk_action": "/app-registry/bulk-action",
    "app_health": "/app-registry/app-health",
    "system_status": "/app-registry/system-status",
    "stats": "/app-registry/stats",
    "events": "/app-registry/events",
    "search": "/app-registry/search",
    "validate": "/app-registry/validate",
    "cleanup_cache": "/app-registry/cleanup-cache",
}

CAPABILITY_PATHS: dict[str, dict[str, str]] = {
    "sql": SQL_PATHS,
    "store": STORE_PATHS,
    "fs": FS_PATHS,
    "app_registry": APP_REGISTRY_PATHS,
}


def api_path(capability: str, operation: str) -> str:
    """Map (capability, operation) to its path below the host, e.g. ``/api/sql/load``."""
    try:
        suffix = CAPABILITY_PATHS[capability][operation]
    except KeyError as exc:
        raise KeyError(f"unknown remote-bridge operation: {capability}.{operation}") from exc
    return f"{API_PREFIX}{suffix}"


def health_path() -> str:
    return f"{API_PREFIX}{HEALTH_PATH}"


class ApiPathManager:
    """Builds absolute remote-bridge URLs for one base address."""

    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip("/")

    def absolute(self, path: str) -> str:
        """``path`` already carries the ``/api`` prefix."""
        return f"{self.base_url}{path}"

    def url(self, path: str) -> str:
        clean = path if path.startswith("/") else f"/{path}"
        return self.absolute(f"{API_PREFIX}{clean}")

    def health(self) -> str:
        return self.absolute(health_path())

    def sql(self, operation: str) -> str:
        return self.absolute(api_path("sql", operation))

    def store(self, operation: str) -> str:
        return self.absolute(api_path("store", operation))

    def fs(self, operation: str) -> str:
        return self.absolute(api_path("fs", operation))

    def app_registry(self, operation: str) -> str:
        return self.absolute(api_path("app_registry", operation))
