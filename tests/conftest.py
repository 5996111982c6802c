"""Pytest hooks and fixtures.

``HostEngine`` is an in-memory host. The fake native modules, the fake
container proxies and the fake remote bridge all sit on top of the same
engine so the three modes can be compared result for result.
"""

import json
import posixpath
import sys
import types

import httpx
import pytest

from wonderkits.capabilities.base import ClientOptions
from wonderkits.core.host import (
    CONTAINER_FLAG_MARKER,
    CONTAINER_OBJECT_MARKER,
    NATIVE_HOST_MARKER,
    HostContext,
    clear_host_markers,
)
from wonderkits.core.paths import API_PREFIX, CAPABILITY_PATHS

REMOTE_URL = "http://localhost:1420"


def pytest_configure(config):
    """Register custom markers (also in pyproject.toml)."""
    config.addinivalue_line(
        "markers",
        "remote: exercises the remote bridge through an in-memory transport",
    )


class HostEngine:
    """Backing state for every fake backend."""

    def __init__(self):
        self.rows: list[dict] = []
        self.connections: list[str] = []
        self.stores: dict[str, dict] = {}
        self.saved: dict[str, dict] = {}
        self.files: dict[str, bytes] = {}
        self.dirs: set[str] = {"/"}
        self.apps: dict[str, dict] = {}
        self.events: list[dict] = []

    # -- sql ------------------------------------------------------------------

    def open_connection(self, connection_string: str) -> str:
        connection_id = f"conn-{len(self.connections) + 1}"
        self.connections.append(connection_id)
        return connection_id

    def close_connection(self, connection_id: str) -> bool:
        if connection_id in self.connections:
            self.connections.remove(connection_id)
            return True
        return False

    def execute(self, sql: str, params: list) -> dict:
        statement = sql.strip().upper()
        if statement.startswith("INSERT"):
            row_id = len(self.rows) + 1
            self.rows.append({"id": row_id, "body": params[0] if params else None})
            return {"rows_affected": 1, "last_insert_id": row_id}
        if statement.startswith("DELETE"):
            count = len(self.rows)
            self.rows.clear()
            return {"rows_affected": count, "last_insert_id": 0}
        return {"rows_affected": 0, "last_insert_id": 0}

    def select(self, sql: str, params: list) -> list[dict]:
        return [dict(row) for row in self.rows]

    # -- store ----------------------------------------------------------------

    def store(self, filename: str) -> dict:
        return self.stores.setdefault(filename, {})

    def save_store(self, filename: str) -> None:
        self.saved[filename] = dict(self.store(filename))

    def reload_store(self, filename: str) -> None:
        self.stores[filename] = dict(self.saved.get(filename, {}))

    # -- fs -------------------------------------------------------------------

    def read(self, path: str) -> bytes:
        if path not in self.files:
            raise FileNotFoundError(path)
        return self.files[path]

    def write(self, path: str, data) -> None:
        self.files[path] = bytes(data)

    def exists(self, path: str) -> bool:
        return path in self.files or path in self.dirs

    def stat(self, path: str) -> dict:
        if not self.exists(path):
            raise FileNotFoundError(path)
        is_file = path in self.files
        return {
            "is_file": is_file,
            "is_dir": not is_file,
            "is_symlink": False,
            "size": len(self.files[path]) if is_file else 0,
            "modified": 1700000000,
            "readonly": False,
        }

    def mkdir(self, path: str, recursive: bool = False) -> None:
        parent = posixpath.dirname(path)
        if parent not in self.dirs:
            if not recursive:
                raise FileNotFoundError(parent)
            self.mkdir(parent, recursive=True)
        self.dirs.add(path)

    def remove(self, path: str) -> None:
        if path not in self.files:
            raise FileNotFoundError(path)
        del self.files[path]

    def remove_dir(self, path: str, recursive: bool = False) -> None:
        prefix = path.rstrip("/") + "/"
        nested = [p for p in (*self.files, *self.dirs) if p.startswith(prefix)]
        if nested and not recursive:
            raise OSError(f"directory not empty: {path}")
        for p in nested:
            self.files.pop(p, None)
            self.dirs.discard(p)
        self.dirs.discard(path)

    def read_dir(self, path: str) -> list[dict]:
        entries = []
        for p in sorted({*self.files, *self.dirs} - {path}):
            if posixpath.dirname(p) == path:
                entries.append(
                    {
                        "name": posixpath.basename(p),
                        "path": p,
                        "is_file": p in self.files,
                        "is_dir": p in self.dirs,
                        "size": len(self.files.get(p, b"")),
                    }
                )
        return entries

    def copy(self, source: str, destination: str) -> None:
        self.files[destination] = self.read(source)

    def rename(self, old_path: str, new_path: str) -> None:
        self.files[new_path] = self.read(old_path)
        del self.files[old_path]

    # -- app registry ---------------------------------------------------------

    def invoke(self, command: str, args: dict):
        handler = getattr(self, f"_cmd_{command}")
        return handler(**args)

    def _event(self, app_id: str, kind: str) -> None:
        self.events.append({"app_id": app_id, "event": kind})

    def _cmd_get_apps(self, status=None, category=None, limit=None, offset=None):
        apps = [dict(a) for a in self.apps.values()]
        if status:
            apps = [a for a in apps if a.get("status") == status]
        if category:
            apps = [a for a in apps if a.get("category") == category]
        start = int(offset or 0)
        end = start + int(limit) if limit is not None else None
        return apps[start:end]

    def _cmd_get_app(self, app_id):
        app = self.apps.get(app_id)
        return dict(app) if app else None

    def _cmd_register_app(self, config):
        app_id = config["id"]
        self.apps[app_id] = {**config, "status": "installed"}
        self._event(app_id, "registered")
        return app_id

    def _cmd_dev_register_app(self, config, dev_url):
        app_id = self._cmd_register_app({**config, "dev_url": dev_url})
        return {"app_id": app_id, "dev_url": dev_url}

    def _cmd_uninstall_app(self, app_id):
        self.apps.pop(app_id)
        self._event(app_id, "uninstalled")
        return f"uninstalled {app_id}"

    def _set_status(self, app_id, status):
        self.apps[app_id]["status"] = status
        self._event(app_id, status)
        return f"{app_id} {status}"

    def _cmd_activate_app(self, app_id):
        return self._set_status(app_id, "active")

    def _cmd_deactivate_app(self, app_id):
        return self._set_status(app_id, "inactive")

    def _cmd_get_active_apps(self):
        return self._cmd_get_apps(status="active")

    def _cmd_bulk_action_apps(self, action, app_ids):
        handler = getattr(self, f"_cmd_{action}_app")
        succeeded, failed = [], []
        for app_id in app_ids:
            try:
                handler(app_id=app_id)
                succeeded.append(app_id)
            except KeyError:
                failed.append(app_id)
        return {"succeeded": succeeded, "failed": failed}

    def _cmd_get_app_health(self, app_id):
        return {"app_id": app_id, "healthy": app_id in self.apps}

    def _cmd_get_system_status(self):
        return {
            "total_apps": len(self.apps),
            "active_apps": len(self._cmd_get_active_apps()),
        }

    def _cmd_get_app_stats(self):
        return {"total": len(self.apps), "events": len(self.events)}

    def _cmd_get_app_events(self, app_id, limit=None):
        events = [e for e in self.events if e["app_id"] == app_id]
        return events[: int(limit)] if limit is not None else events

    def _cmd_search_apps(self, query, filters=None):
        return [dict(a) for a in self.apps.values() if query.lower() in str(a.get("name", "")).lower()]

    def _cmd_validate_app_config(self, config):
        errors = [f"missing {key}" for key in ("id", "name") if key not in config]
        return {"valid": not errors, "errors": errors}

    def _cmd_cleanup_app_cache(self, app_id=None):
        return f"cache cleared for {app_id or 'all apps'}"

    def _cmd_app_registry_health_check(self):
        return {"healthy": True, "message": "registry ok", "timestamp": 1700000000.0}


# -- native host modules -------------------------------------------------------


def build_native_modules(engine: HostEngine) -> dict[str, types.ModuleType]:
    """Fake ``wonderkits_native.*`` modules bound to ``engine``."""

    class NativeDatabase:
        def __init__(self, connection_id):
            self.connection_id = connection_id

        @classmethod
        async def load(cls, connection_string):
            return cls(engine.open_connection(connection_string))

        async def execute(self, sql, params):
            return engine.execute(sql, params)

        async def select(self, sql, params):
            return engine.select(sql, params)

        async def close(self):
            return engine.close_connection(self.connection_id)

    class NativeStore:
        def __init__(self, filename):
            self.filename = filename
            self.data = engine.store(filename)

        @classmethod
        async def load(cls, filename):
            return cls(filename)

        async def set(self, key, value):
            engine.store(self.filename)[key] = value

        async def get(self, key):
            return engine.store(self.filename).get(key)

        async def delete(self, key):
            return engine.store(self.filename).pop(key, None) is not None

        async def clear(self):
            engine.store(self.filename).clear()

        async def keys(self):
            return list(engine.store(self.filename))

        async def values(self):
            return list(engine.store(self.filename).values())

        async def entries(self):
            return [[k, v] for k, v in engine.store(self.filename).items()]

        async def length(self):
            return len(engine.store(self.filename))

        async def save(self):
            engine.save_store(self.filename)

        async def reload(self):
            engine.reload_store(self.filename)

    fs = types.ModuleType("wonderkits_native.fs")

    async def read_text_file(path):
        return engine.read(path).decode()

    async def write_text_file(path, content):
        engine.write(path, content.encode())

    async def read_file(path):
        return engine.read(path)

    async def write_file(path, content):
        engine.write(path, content)

    async def exists(path):
        return engine.exists(path)

    async def stat(path):
        return engine.stat(path)

    async def mkdir(path, recursive=False):
        engine.mkdir(path, recursive)

    async def remove(path, recursive=None):
        if recursive is None:
            engine.remove(path)
        else:
            engine.remove_dir(path, recursive)

    async def read_dir(path):
        return engine.read_dir(path)

    async def copy_file(source, destination):
        engine.copy(source, destination)

    async def rename(old_path, new_path):
        engine.rename(old_path, new_path)

    for fn in (read_text_file, write_text_file, read_file, write_file, exists, stat, mkdir, remove, read_dir,
               copy_file, rename):
        setattr(fs, fn.__name__, fn)

    sql = types.ModuleType("wonderkits_native.sql")
    sql.Database = NativeDatabase
    store = types.ModuleType("wonderkits_native.store")
    store.Store = NativeStore
    core = types.ModuleType("wonderkits_native.core")

    async def invoke(command, args):
        return engine.invoke(command, args)

    core.invoke = invoke
    package = types.ModuleType("wonderkits_native")
    package.__path__ = []
    return {
        "wonderkits_native": package,
        "wonderkits_native.sql": sql,
        "wonderkits_native.store": store,
        "wonderkits_native.fs": fs,
        "wonderkits_native.core": core,
    }


# -- container proxies ----------------------------------------------------------


class SqlProxy:
    def __init__(self, engine: HostEngine):
        self.engine = engine

    async def load_connection(self, connection_string):
        return self.engine.open_connection(connection_string)

    async def execute(self, connection_id, sql, params):
        return self.engine.execute(sql, params)

    async def select(self, connection_id, sql, params):
        return {"data": self.engine.select(sql, params)}

    async def close_connection(self, connection_id):
        return self.engine.close_connection(connection_id)


class StoreProxy:
    def __init__(self, engine: HostEngine):
        self.engine = engine

    async def load_store(self, filename):
        self.engine.store(filename)
        return filename

    async def set_value(self, store_id, key, value):
        self.engine.store(store_id)[key] = value

    async def get_value(self, store_id, key):
        return {"value": self.engine.store(store_id).get(key)}

    async def delete_key(self, store_id, key):
        return {"success": self.engine.store(store_id).pop(key, None) is not None}

    async def clear_store(self, store_id):
        self.engine.store(store_id).clear()

    async def get_keys(self, store_id):
        return {"keys": list(self.engine.store(store_id))}

    async def get_values(self, store_id):
        return {"values": list(self.engine.store(store_id).values())}

    async def get_entries(self, store_id):
        return {"entries": [[k, v] for k, v in self.engine.store(store_id).items()]}

    async def get_length(self, store_id):
        return {"length": len(self.engine.store(store_id))}

    async def save_store(self, store_id):
        self.engine.save_store(store_id)

    async def reload_store(self, store_id):
        self.engine.reload_store(store_id)


class FsProxy:
    def __init__(self, engine: HostEngine):
        self.engine = engine

    async def read_text_file(self, path):
        return {"content": self.engine.read(path).decode()}

    async def write_text_file(self, path, content):
        self.engine.write(path, content.encode())

    async def read_binary_file(self, path):
        return {"content": list(self.engine.read(path))}

    async def write_binary_file(self, path, content):
        self.engine.write(path, content)

    async def exists(self, path):
        return {"exists": self.engine.exists(path)}

    async def stat(self, path):
        return {"metadata": self.engine.stat(path)}

    async def mkdir(self, path, recursive):
        self.engine.mkdir(path, recursive)

    async def remove(self, path):
        self.engine.remove(path)

    async def remove_dir(self, path, recursive):
        self.engine.remove_dir(path, recursive)

    async def read_dir(self, path):
        return {"entries": self.engine.read_dir(path)}

    async def copy_file(self, source, destination):
        self.engine.copy(source, destination)

    async def rename(self, old_path, new_path):
        self.engine.rename(old_path, new_path)


class AppRegistryProxy:
    def __init__(self, engine: HostEngine):
        self.engine = engine

    def __getattr__(self, name):
        if not hasattr(HostEngine, f"_cmd_{name}"):
            raise AttributeError(name)

        async def command(**args):
            return self.engine.invoke(name, args)

        return command

    async def health_check(self):
        return self.engine.invoke("app_registry_health_check", {})


def build_proxies(engine: HostEngine) -> dict:
    return {
        "sql": SqlProxy(engine),
        "store": StoreProxy(engine),
        "fs": FsProxy(engine),
        "app_registry": AppRegistryProxy(engine),
    }


# -- remote bridge ----------------------------------------------------------------


_ROUTES = {
    f"{API_PREFIX}{suffix}": (capability, operation)
    for capability, table in CAPABILITY_PATHS.items()
    for operation, suffix in table.items()
}

_REGISTRY_COMMANDS = {
    "apps": "get_apps",
    "app": "get_app",
    "register": "register_app",
    "dev_register": "dev_register_app",
    "uninstall": "uninstall_app",
    "activate": "activate_app",
    "deactivate": "deactivate_app",
    "active": "get_active_apps",
    "bulk_action": "bulk_action_apps",
    "app_health": "get_app_health",
    "system_status": "get_system_status",
    "stats": "get_app_stats",
    "events": "get_app_events",
    "search": "search_apps",
    "validate": "validate_app_config",
    "cleanup_cache": "cleanup_app_cache",
}


class FakeBridgeServer:
    """In-memory remote bridge served through ``httpx.MockTransport``."""

    def __init__(self, engine: HostEngine):
        self.engine = engine
        self.healthy = True
        self.requests: list[tuple[str, str]] = []
        self.overrides: dict[str, tuple[int, dict]] = {}

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def paths_requested(self) -> list[str]:
        return [path for _, path in self.requests]

    def handle(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.requests.append((request.method, path))
        if path in self.overrides:
            status, payload = self.overrides[path]
            return httpx.Response(status, json=payload)
        if path == f"{API_PREFIX}/health":
            if not self.healthy:
                return httpx.Response(503, json={"status": "down"})
            return httpx.Response(200, json={"status": "ok"})
        if not self.healthy:
            raise httpx.ConnectError("connection refused", request=request)
        if path not in _ROUTES:
            return httpx.Response(404, json={"success": False, "message": f"no route for {path}"})

        capability, operation = _ROUTES[path]
        body = json.loads(request.content) if request.content else {}
        params = dict(request.url.params)
        try:
            data = getattr(self, f"_{capability}")(operation, body, params)
        except FileNotFoundError as exc:
            return httpx.Response(404, json={"success": False, "message": f"not found: {exc}"})
        except LookupError as exc:
            return httpx.Response(404, json={"success": False, "message": f"not found: {exc}"})
        return httpx.Response(200, json={"success": True, "data": data})

    def _sql(self, operation, body, params):
        e = self.engine
        if operation == "load":
            return {"connection_id": e.open_connection(body["connection_string"])}
        if operation == "execute":
            return e.execute(body["sql"], body["params"])
        if operation == "select":
            return {"data": e.select(body["sql"], body["params"])}
        if operation == "close":
            return {"success": e.close_connection(body["connection_id"])}
        return {"connections": list(e.connections)}

    def _store(self, operation, body, params):
        e = self.engine
        if operation == "list":
            return {"stores": sorted(e.stores)}
        if operation == "load":
            e.store(body["filename"])
            return {"store_id": body["filename"]}
        data = e.store(body["store_id"])
        if operation == "set":
            data[body["key"]] = body["value"]
            return None
        if operation == "get":
            return {"value": data.get(body["key"])}
        if operation == "delete":
            return {"success": data.pop(body["key"], None) is not None}
        if operation == "clear":
            data.clear()
            return None
        if operation == "keys":
            return {"keys": list(data)}
        if operation == "values":
            return {"values": list(data.values())}
        if operation == "entries":
            return {"entries": [[k, v] for k, v in data.items()]}
        if operation == "length":
            return {"length": len(data)}
        if operation == "save":
            e.save_store(body["store_id"])
        else:
            e.reload_store(body["store_id"])
        return None

    def _fs(self, operation, body, params):
        e = self.engine
        path = body.get("path")
        if operation == "read_text":
            return {"content": e.read(path).decode()}
        if operation == "write_text":
            e.write(path, body["content"].encode())
        elif operation == "read_binary":
            return {"content": list(e.read(path))}
        elif operation == "write_binary":
            e.write(path, body["content"])
        elif operation == "exists":
            return {"exists": e.exists(path)}
        elif operation == "metadata":
            return {"metadata": e.stat(path)}
        elif operation == "create_dir":
            e.mkdir(path, body.get("recursive", False))
        elif operation == "remove_file":
            e.remove(path)
        elif operation == "remove_dir":
            e.remove_dir(path, body.get("recursive", False))
        elif operation == "read_dir":
            return {"entries": e.read_dir(path)}
        elif operation == "copy_file":
            e.copy(body["fromPath"], body["toPath"])
        elif operation == "rename_file":
            e.rename(body["fromPath"], body["toPath"])
        return None

    def _app_registry(self, operation, body, params):
        command = _REGISTRY_COMMANDS[operation]
        args = params if operation in {"apps", "app", "active", "app_health", "system_status", "stats", "events"} else body
        result = self.engine.invoke(command, args)
        if command == "get_app" and result is None:
            raise LookupError(args.get("app_id"))
        return result


# -- fixtures ----------------------------------------------------------------------


@pytest.fixture(autouse=True)
def clean_host_markers():
    clear_host_markers()
    yield
    clear_host_markers()


@pytest.fixture
def engine() -> HostEngine:
    return HostEngine()


@pytest.fixture
def native_modules(engine, monkeypatch) -> dict[str, types.ModuleType]:
    modules = build_native_modules(engine)
    for name, module in modules.items():
        monkeypatch.setitem(sys.modules, name, module)
    return modules


@pytest.fixture
def native_context(native_modules) -> HostContext:
    return HostContext({NATIVE_HOST_MARKER: {"name": "test-host"}})


@pytest.fixture
def proxies(engine) -> dict:
    return build_proxies(engine)


@pytest.fixture
def proxy_context(proxies) -> HostContext:
    return HostContext({CONTAINER_FLAG_MARKER: True, CONTAINER_OBJECT_MARKER: {"props": proxies}})


@pytest.fixture
def bridge_server(engine) -> FakeBridgeServer:
    return FakeBridgeServer(engine)


@pytest.fixture
def remote_options(bridge_server) -> ClientOptions:
    return ClientOptions(remote_target=REMOTE_URL, transport=bridge_server.transport)


@pytest.fixture(params=["native", "proxy", "remote"])
def mode_options(request, bridge_server) -> ClientOptions:
    """Options that make detection resolve to each mode in turn."""
    if request.param == "native":
        context = request.getfixturevalue("native_context")
    elif request.param == "proxy":
        context = request.getfixturevalue("proxy_context")
    else:
        context = HostContext({})
    return ClientOptions(context=context, transport=bridge_server.transport)
