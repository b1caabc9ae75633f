from __future__ import annotations

import logging
import threading
from typing import Any, Callable

from .errors import ContractViolation

logger = logging.getLogger(__name__)


class RenderScheduler:
    """Runs the render tick on a fixed period, independent of update traffic."""

    def __init__(self, tick: Callable[[], Any], period_sec: float):
        if period_sec <= 0:
            raise ValueError("period_sec must be positive")
        self._tick = tick
        self._period_sec = period_sec
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()
        self._tick_count = 0

    @property
    def running(self) -> bool:
        with self._lock:
            return self._thread is not None and self._thread.is_alive()

    @property
    def tick_count(self) -> int:
        with self._lock:
            return self._tick_count

    def start(self) -> None:
        with self._lock:
            if self._thread is not None and self._thread.is_alive():
                return
            self._stop_event.clear()
            self._thread = threading.Thread(target=self._run, name="oge-render", daemon=True)
            self._thread.start()
        logger.info("Render scheduler started, period %.3fs", self._period_sec)

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop_event.set()
        with self._lock:
            thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        logger.info("Render scheduler stopped")

    def _run(self) -> None:
        while not self._stop_event.wait(self._period_sec):
            try:
                self._tick()
            except ContractViolation:
                logger.critical("Render tick hit a contract violation, stopping scheduler")
                self._stop_event.set()
                return
            except Exception:
                logger.exception("Render tick failed")
            with self._lock:
                self._tick_count += 1
