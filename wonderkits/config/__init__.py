"""Configuration module for wonderkits."""

from wonderkits.config.loader import get_config_path, load_config
from wonderkits.config.schema import ClientConfig, ServicesConfig, SqlServiceConfig, StoreServiceConfig

__all__ = [
    "ClientConfig",
    "ServicesConfig",
    "SqlServiceConfig",
    "StoreServiceConfig",
    "get_config_path",
    "load_config",
]
