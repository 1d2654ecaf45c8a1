"""
Race a callable against a deadline on a helper thread.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


class _GaveUp:
    _instance: _GaveUp | None = None

    def __new__(cls) -> _GaveUp:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "GAVE_UP"

    def __bool__(self) -> bool:
        return False


GAVE_UP = _GaveUp()


def run_with_timeout(
    func: Callable[..., T],
    *args: Any,
    timeout_seconds: float,
    thread_name_prefix: str = "deadline",
    **kwargs: Any,
) -> T | _GaveUp:
    """
    Run `func` and return its result, or `GAVE_UP` once `timeout_seconds` pass.

    The call keeps running in the background after a timeout; its eventual
    result or exception is discarded. Exceptions raised before the deadline
    propagate to the caller.
    """

    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=thread_name_prefix)
    future = executor.submit(func, *args, **kwargs)
    try:
        return future.result(timeout=timeout_seconds)
    except FutureTimeoutError:
        logger.debug("Gave up on %s after %.1fs", getattr(func, "__name__", func), timeout_seconds)
        return GAVE_UP
    finally:
        executor.shutdown(wait=False)
