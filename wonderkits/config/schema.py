"""Configuration schema using Pydantic.

One ``ClientConfig`` drives an orchestrator: where the remote bridge lives,
whether a mode is forced, and which capabilities ``init_services`` brings up.
"""

from typing import Any

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from wonderkits.core.types import ExecutionMode


class ServiceSection(BaseModel):
    """A capability section; present in a config file means enabled."""
    enabled: bool = False

    @classmethod
    def _coerce(cls, value: Any) -> Any:
        # "fs": true / "fs": {...} shorthand
        if isinstance(value, bool):
            return {"enabled": value}
        if isinstance(value, dict) and "enabled" not in value:
            return {**value, "enabled": True}
        return value


class SqlServiceConfig(ServiceSection):
    connection_string: str = "sqlite:app.db"


class StoreServiceConfig(ServiceSection):
    filename: str = "app.json"


class ServicesConfig(BaseModel):
    """Capabilities to initialize together."""
    sql: SqlServiceConfig = Field(default_factory=SqlServiceConfig)
    store: StoreServiceConfig = Field(default_factory=StoreServiceConfig)
    fs: ServiceSection = Field(default_factory=ServiceSection)
    app_registry: ServiceSection = Field(default_factory=ServiceSection)

    @field_validator("sql", "store", "fs", "app_registry", mode="before")
    @classmethod
    def _section(cls, value: Any) -> Any:
        return ServiceSection._coerce(value)

    def requested(self) -> list[str]:
        return [name for name in ("sql", "store", "fs", "app_registry") if getattr(self, name).enabled]


class ClientConfig(BaseSettings):
    """Root configuration for a wonderkits client."""
    http_host: str = "localhost"
    http_port: int = 1420
    force_mode: ExecutionMode | None = None
    verbose: bool = False
    request_timeout: float = Field(default=20.0, gt=0)
    health_timeout: float = Field(default=3.0, gt=0)
    native_modules: dict[str, str] = Field(default_factory=dict)  # capability -> importable module
    services: ServicesConfig = Field(default_factory=ServicesConfig)

    model_config = SettingsConfigDict(
        env_prefix="WONDERKITS_",
        env_nested_delimiter="__",
    )

    @field_validator("force_mode", mode="before")
    @classmethod
    def _parse_mode(cls, value: Any) -> Any:
        if value in (None, ""):
            return None
        return ExecutionMode.parse(value)

    @property
    def target(self) -> str:
        return f"{self.http_host}:{self.http_port}"

    @property
    def base_url(self) -> str:
        return f"http://{self.target}"
