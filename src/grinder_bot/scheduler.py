from __future__ import annotations

import logging
import threading
import time
from typing import Callable

LOGGER = logging.getLogger("grinder_bot")


class PeriodicTask:
    """
    Runs ``fn`` every ``interval_seconds`` on a daemon thread.

    The first run happens immediately. An exception raised by ``fn`` is logged and
    the schedule keeps firing. Runs of the same task never overlap; a run that
    outlasts the interval delays the next one instead.
    """

    def __init__(self, name: str, interval_seconds: float, fn: Callable[[], object]) -> None:
        if interval_seconds <= 0:
            raise ValueError(f"{name}: interval_seconds must be > 0")
        self.name = name
        self.interval_seconds = float(interval_seconds)
        self.fn = fn
        self.run_count = 0
        self.error_count = 0
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run_loop, name=f"task-{self.name}", daemon=True)
        self._thread.start()

    def stop(self, timeout_seconds: float = 5.0) -> None:
        self._stop_event.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=timeout_seconds)
        self._thread = None

    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run_once(self) -> None:
        self.run_count += 1
        try:
            self.fn()
        except Exception:
            self.error_count += 1
            LOGGER.exception("task=%s run=%s failed", self.name, self.run_count)

    def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            started = time.time()
            self.run_once()
            elapsed = time.time() - started
            self._stop_event.wait(max(0.0, self.interval_seconds - elapsed))
