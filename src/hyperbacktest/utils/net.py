"""Network helpers such as retry wrappers."""

from __future__ import annotations

import time
from typing import Any, Callable, TypeVar

from .logging import get_logger

T = TypeVar("T")

logger = get_logger("hyperbacktest.net")


def fetch_with_retry(
    func: Callable[..., T],
    *args: Any,
    retries: int = 3,
    delay: float = 1.0,
    **kwargs: Any,
) -> T:
    """Execute ``func`` with retry logic, re-raising the last failure."""

    for attempt in range(1, retries + 1):
        try:
            return func(*args, **kwargs)
        except Exception as exc:
            if attempt == retries:
                raise
            logger.warning("retrying %s after attempt %d failed: %s", getattr(func, "__name__", func), attempt, exc)
            time.sleep(delay)
    raise ValueError("retries must be at least 1")


__all__ = ["fetch_with_retry"]
