"""wonderkits - one capability API for native hosts, container proxies and remote bridges."""

__version__ = "0.1.0"

from wonderkits.capabilities import (
    AppRegistryClient,
    ClientOptions,
    Database,
    FsClient,
    Store,
)
from wonderkits.client import WonderKitsClient, create_client, init_for_development
from wonderkits.config import ClientConfig, load_config
from wonderkits.core import ExecutionMode, HostContext, detect_mode, install_container, install_native_host

__all__ = [
    "__version__",
    "AppRegistryClient",
    "ClientConfig",
    "ClientOptions",
    "Database",
    "ExecutionMode",
    "FsClient",
    "HostContext",
    "Store",
    "WonderKitsClient",
    "create_client",
    "detect_mode",
    "init_for_development",
    "install_container",
    "install_native_host",
    "load_config",
]
