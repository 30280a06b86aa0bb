from __future__ import annotations

import logging
import threading
from functools import partial
from typing import Callable, Optional, Protocol


logger = logging.getLogger(__name__)


class TickHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_every(self, interval: float, callback: Callable[[], None]) -> TickHandle: ...


class _RepeatingTimer(threading.Thread):
    def __init__(self, interval: float, callback: Callable[[], None]) -> None:
        super().__init__(name="officetrack-tick", daemon=True)
        self.interval = interval
        self.callback = callback
        self._stopped = threading.Event()

    def run(self) -> None:
        while not self._stopped.wait(self.interval):
            try:
                self.callback()
            except Exception:  # pragma: no cover - keep ticking after a bad callback
                logger.exception("Tick callback failed")

    def cancel(self) -> None:
        self._stopped.set()

    @property
    def cancelled(self) -> bool:
        return self._stopped.is_set()


class ThreadScheduler:
    """Runs each repeating callback on its own daemon thread."""

    def call_every(self, interval: float, callback: Callable[[], None]) -> TickHandle:
        timer = _RepeatingTimer(interval, callback)
        timer.start()
        return timer


class SegmentTicker:
    """Display counter for the running segment.

    At most one tick task is live; ``start`` cancels any previous task first
    and ``stop`` cancels exactly once.
    """

    def __init__(self, scheduler: Scheduler, interval_seconds: float = 1.0) -> None:
        self._scheduler = scheduler
        self._interval = interval_seconds
        self._lock = threading.RLock()
        self._handle: Optional[TickHandle] = None
        self._elapsed_ms = 0
        self._generation = 0

    @property
    def elapsed_ms(self) -> int:
        with self._lock:
            return self._elapsed_ms

    @property
    def running(self) -> bool:
        with self._lock:
            return self._handle is not None

    def start(self) -> None:
        with self._lock:
            self._cancel()
            self._elapsed_ms = 0
            self._handle = self._scheduler.call_every(self._interval, partial(self._tick, self._generation))

    def stop(self) -> None:
        with self._lock:
            self._cancel()
            self._elapsed_ms = 0

    def _cancel(self) -> None:
        self._generation += 1
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _tick(self, generation: int) -> None:
        with self._lock:
            # ticks from a cancelled task may still arrive after a restart
            if self._handle is None or generation != self._generation:
                return
            self._elapsed_ms += int(self._interval * 1000)
