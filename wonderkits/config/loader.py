"""Configuration loading utilities."""

import json
import re
from pathlib import Path
from typing import Any

from wonderkits.config.schema import ClientConfig

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def get_config_path() -> Path:
    """Get the default configuration file path."""
    return Path.home() / ".wonderkits" / "config.json"


def _read_object(path: Path) -> dict[str, Any]:
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"top-level value must be an object, not {type(data).__name__}")
    return data


def load_config(config_path: Path | None = None) -> ClientConfig:
    """
    Build the client configuration.

    Values come from the JSON file at ``config_path`` (or ``get_config_path()``)
    when it exists; ``WONDERKITS_`` environment variables fill whatever the
    file leaves unset. A missing file yields the defaults.

    Raises:
        ValueError: the file is not a valid JSON object or fails validation.
    """
    path = Path(config_path) if config_path else get_config_path()
    if not path.exists():
        return ClientConfig()
    try:
        return ClientConfig(**convert_keys(_read_object(path)))
    except ValueError as e:
        raise ValueError(f"Failed to load config from {path}: {e}") from e


def convert_keys(data: Any) -> Any:
    """Recursively rename camelCase dict keys to snake_case."""
    if isinstance(data, dict):
        return {camel_to_snake(k): convert_keys(v) for k, v in data.items()}
    if isinstance(data, list):
        return [convert_keys(item) for item in data]
    return data


def camel_to_snake(name: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", name).lower()
