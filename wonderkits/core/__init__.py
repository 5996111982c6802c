"""Environment detection, remote-bridge transport and shared helpers."""

from .bridge import RemoteBridge
from .detection import EnvironmentDetector, detect_mode, proxy_is_complete
from .host import HostContext, clear_host_markers, install_container, install_native_host
from .paths import API_PREFIX, ApiPathManager, api_path
from .retry import retry_with_fallback
from .types import ApiResponse, ExecutionMode, ProbeStatus

__all__ = [
    "API_PREFIX",
    "ApiPathManager",
    "ApiResponse",
    "EnvironmentDetector",
    "ExecutionMode",
    "HostContext",
    "ProbeStatus",
    "RemoteBridge",
    "api_path",
    "clear_host_markers",
    "detect_mode",
    "install_container",
    "install_native_host",
    "proxy_is_complete",
    "retry_with_fallback",
]
