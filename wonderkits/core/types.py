"""Shared types for capability clients."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class ExecutionMode(str, Enum):
    """Where the calling code runs, and therefore which backend serves it."""

    NATIVE = "native-embedded"
    PROXY = "hosted-proxy"
    REMOTE = "remote-bridge"

    @classmethod
    def parse(cls, value: "ExecutionMode | str") -> "ExecutionMode":
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        aliases = {
            "native": cls.NATIVE,
            "proxy": cls.PROXY,
            "remote": cls.REMOTE,
            "http": cls.REMOTE,
        }
        if text in aliases:
            return aliases[text]
        try:
            return cls(text)
        except ValueError:
            raise ValueError(f"unknown execution mode: {value!r}") from None


class ProbeStatus(str, Enum):
    """Result of the liveness probe a remote-bridge client runs at construction."""

    HEALTHY = "healthy"
    UNREACHABLE = "unreachable"
    SKIPPED = "skipped"


@dataclass(slots=True)
class ApiResponse:
    """Decoded remote-bridge envelope: {success, data?, message?, error?}."""

    success: bool
    data: Any = None
    message: str | None = None
    error: str | None = None

    @classmethod
    def from_payload(cls, payload: Any) -> "ApiResponse":
        row = payload if isinstance(payload, dict) else {}
        message = row.get("message")
        error = row.get("error")
        return cls(
            success=row.get("success") is True,
            data=row.get("data"),
            message=message if isinstance(message, str) and message else None,
            error=error if isinstance(error, str) and error else None,
        )
