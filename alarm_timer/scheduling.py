"""Callback schedulers with the ``after``/``after_cancel`` interface of a Tk root.

Anything that offers ``after(ms, callback) -> id`` and ``after_cancel(id)``
can drive the countdown. In the GUI that is the ``tkinter.Tk`` root itself.
"""

from __future__ import annotations

import itertools
import threading
from typing import Callable, Dict


class ThreadingScheduler:
    """Headless scheduler that fires callbacks on ``threading.Timer`` threads."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._timers: Dict[str, threading.Timer] = {}
        self._ids = itertools.count(1)

    def after(self, ms: int, func: Callable[[], None]) -> str:
        after_id = f"after#{next(self._ids)}"

        def fire() -> None:
            with self._lock:
                if self._timers.pop(after_id, None) is None:
                    return
            func()

        timer = threading.Timer(max(ms, 0) / 1000.0, fire)
        timer.daemon = True
        with self._lock:
            self._timers[after_id] = timer
        timer.start()
        return after_id

    def after_cancel(self, after_id: str) -> None:
        with self._lock:
            timer = self._timers.pop(after_id, None)
        if timer is not None:
            timer.cancel()

    def cancel_all(self) -> None:
        with self._lock:
            timers = list(self._timers.values())
            self._timers.clear()
        for timer in timers:
            timer.cancel()

    def pending(self) -> int:
        with self._lock:
            return len(self._timers)
