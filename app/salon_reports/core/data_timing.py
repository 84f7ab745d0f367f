from __future__ import annotations

import threading
import time
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator


class _DataTimer:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.total_ms = 0.0
        self.calls = 0

    def add(self, delta_ms: float) -> None:
        # fetch branches run in worker threads that share this accumulator
        with self._lock:
            self.total_ms += delta_ms
            self.calls += 1


_data_timer: ContextVar[_DataTimer | None] = ContextVar("data_timer", default=None)


def start_data_timer() -> object:
    return _data_timer.set(_DataTimer())


def stop_data_timer(token: object) -> None:
    _data_timer.reset(token)


def get_data_time_ms() -> float | None:
    timer = _data_timer.get()
    if timer is None:
        return None
    return timer.total_ms


def get_data_calls() -> int:
    timer = _data_timer.get()
    return timer.calls if timer is not None else 0


@contextmanager
def timed_data_access() -> Iterator[None]:
    timer = _data_timer.get()
    start = time.perf_counter()
    try:
        yield
    finally:
        if timer is not None:
            timer.add((time.perf_counter() - start) * 1000)
