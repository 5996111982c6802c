"""Utility helpers for wonderkits."""

from wonderkits.utils.exceptions import (
    BackendUnavailableError,
    ConnectivityError,
    ErrorCategory,
    NotInitializedError,
    OperationError,
    WonderKitsError,
    classify_exception,
    format_error,
    sanitize_error_message,
)

__all__ = [
    "BackendUnavailableError",
    "ConnectivityError",
    "ErrorCategory",
    "NotInitializedError",
    "OperationError",
    "WonderKitsError",
    "classify_exception",
    "format_error",
    "sanitize_error_message",
]
