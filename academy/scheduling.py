"""Cancellable delayed work for the labs (challenge auto-advance, crack ticks)."""
from __future__ import annotations

import logging
import threading
from typing import Callable

logger = logging.getLogger(__name__)


class TaskHandle:
    def __init__(self, timer: threading.Timer | None = None, on_cancel: Callable | None = None):
        self._timer = timer
        self._on_cancel = on_cancel
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True
        if self._timer is not None:
            self._timer.cancel()
        if self._on_cancel is not None:
            self._on_cancel(self)


class Scheduler:
    """Runs callbacks after a delay on daemon timer threads.

    Every call returns a :class:`TaskHandle`; :meth:`shutdown` cancels whatever
    is still pending so nothing keeps running after teardown.
    """

    def __init__(self):
        self._pending: set[TaskHandle] = set()
        self._lock = threading.Lock()

    def call_later(self, delay: float, fn: Callable, *args) -> TaskHandle:
        handle = TaskHandle(on_cancel=self._forget)

        def run():
            with self._lock:
                self._pending.discard(handle)
            if handle.cancelled:
                return
            try:
                fn(*args)
            except Exception:
                logger.exception("Scheduled task %r failed", fn)

        timer = threading.Timer(delay, run)
        timer.daemon = True
        handle._timer = timer
        with self._lock:
            self._pending.add(handle)
        timer.start()
        return handle

    def _forget(self, handle: TaskHandle) -> None:
        with self._lock:
            self._pending.discard(handle)

    def pending(self) -> int:
        with self._lock:
            return len(self._pending)

    def shutdown(self) -> None:
        with self._lock:
            handles = list(self._pending)
            self._pending.clear()
        for handle in handles:
            handle.cancel()
