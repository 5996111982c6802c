"""Single-level fallback for capability construction."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TypeVar

from loguru import logger

T = TypeVar("T")


async def retry_with_fallback(
    primary: Callable[[], Awaitable[T]],
    fallback: Callable[[], Awaitable[T]],
    log_message: str = "primary attempt failed, trying fallback",
) -> T:
    """Await ``primary``; if it raises, log and return ``await fallback()``.

    There is no second fallback and no backoff: whatever the fallback raises
    propagates unchanged.
    """
    try:
        return await primary()
    except Exception as exc:
        logger.warning("{}: {}", log_message, exc)
    return await fallback()
