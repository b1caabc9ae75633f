from __future__ import annotations

import hashlib
import threading
from contextlib import contextmanager
from typing import Iterator

from .models import OccupancyGrid


def grid_digest(grid: OccupancyGrid) -> str:
    # Model field order is fixed.
    return hashlib.sha256(grid.model_dump_json().encode("utf-8")).hexdigest()


class GridPublisher:
    def __init__(self) -> None:
        self._condition = threading.Condition()
        self._latest: OccupancyGrid | None = None
        self._digest: str | None = None
        self._sequence = 0
        self._subscribers = 0

    def publish(self, grid: OccupancyGrid) -> int:
        digest = grid_digest(grid)
        with self._condition:
            self._latest = grid
            self._digest = digest
            self._sequence += 1
            self._condition.notify_all()
            return self._sequence

    def latest(self) -> tuple[int, OccupancyGrid | None]:
        with self._condition:
            return self._sequence, self._latest

    @property
    def sequence(self) -> int:
        with self._condition:
            return self._sequence

    @property
    def digest(self) -> str | None:
        with self._condition:
            return self._digest

    def wait_for(self, after_sequence: int, timeout: float) -> tuple[int, OccupancyGrid | None]:
        with self._condition:
            self._condition.wait_for(lambda: self._sequence > after_sequence, timeout=timeout)
            return self._sequence, self._latest

    def subscriber_count(self) -> int:
        with self._condition:
            return self._subscribers

    @contextmanager
    def subscribe(self) -> Iterator["GridPublisher"]:
        with self._condition:
            self._subscribers += 1
        try:
            yield self
        finally:
            with self._condition:
                self._subscribers -= 1
