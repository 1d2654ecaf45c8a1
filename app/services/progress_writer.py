"""
Coalescing writer for high-frequency progress updates.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Any

from app.logging_utils import log_event

logger = logging.getLogger(__name__)


class CoalescingProgressWriter:
    """
    Hand progress updates to one background thread, latest wins.

    `submit` never blocks on I/O: it replaces the pending update and wakes
    the flusher. Updates that arrive while a write is in flight collapse
    into one. Failed writes are logged and dropped.
    """

    def __init__(self, write: Callable[..., Any], *, name: str = "progress-writer") -> None:
        self._write = write
        self._name = name
        self._condition = threading.Condition()
        self._pending: dict[str, Any] | None = None
        self._closed = False
        self._thread: threading.Thread | None = None

    def __enter__(self) -> CoalescingProgressWriter:
        self.start()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self._run, name=self._name, daemon=True)
        self._thread.start()

    def submit(self, **update: Any) -> None:
        with self._condition:
            if self._closed:
                return
            self._pending = update
            self._condition.notify()

    def close(self, timeout: float | None = 5.0) -> None:
        """
        Flush the last pending update and stop the thread.
        """

        with self._condition:
            self._closed = True
            self._condition.notify()
        if self._thread is not None:
            self._thread.join(timeout)

    def _run(self) -> None:
        while True:
            with self._condition:
                while self._pending is None and not self._closed:
                    self._condition.wait()
                update = self._pending
                self._pending = None
                if update is None and self._closed:
                    return
            if update is None:
                continue
            try:
                self._write(**update)
            except Exception as exc:
                log_event(logger, logging.WARNING, "progress_write_failed", writer=self._name, error=str(exc))
