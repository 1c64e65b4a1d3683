"""Cooperative timer scheduling.

All timer-driven parts of the engine (sweep, cancellation removal,
wavefront recompute) take a scheduler by injection. A scheduler needs
two things:

- ``now()``: wall-clock time in epoch seconds
- ``call_later(delay, callback)``: run ``callback()`` once after
  ``delay`` seconds, returning a handle with ``cancel()``

``AsyncioScheduler`` provides them on an asyncio event loop. Callbacks
run to completion one at a time on the loop thread, so engine state
needs no locking.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Protocol

logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def now(self) -> float: ...

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class AsyncioScheduler:
    """Scheduler backed by an asyncio event loop.

    Args:
        loop: Event loop to schedule on. Defaults to the running loop
            at the time of the first ``call_later``.
        clock: Wall-clock source, ``time.time`` by default.
    """

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self._loop = loop
        self._clock = clock

    def now(self) -> float:
        return self._clock()

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        if self._loop is None:
            try:
                self._loop = asyncio.get_running_loop()
            except RuntimeError as exc:
                raise RuntimeError(
                    "AsyncioScheduler without an explicit loop must be used from a running event loop"
                ) from exc
        return self._loop.call_later(max(0.0, delay), callback)


class PeriodicTask:
    """A self-rescheduling timer task with a busy guard.

    ``interval`` is a callable so the period can change between runs.
    ``start()`` is idempotent: while a continuation is pending a second
    start is skipped rather than stacking another chain of timers. A run
    that raises is logged and the next run is still scheduled.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        interval: Callable[[], float],
        func: Callable[[], object],
        name: str = "task",
    ):
        self.scheduler = scheduler
        self.interval = interval
        self.func = func
        self.name = name
        self._handle = None
        self._busy = False
        self._stopped = True
        self.runs = 0
        self.skipped = 0
        self.errors = 0

    @property
    def running(self) -> bool:
        return not self._stopped

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def start(self) -> None:
        self._stopped = False
        self._schedule()

    def stop(self) -> None:
        self._stopped = True
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _schedule(self) -> None:
        if self._stopped:
            return
        if self._handle is not None:
            self.skipped += 1
            return
        self._handle = self.scheduler.call_later(self.interval(), self._fire)

    def _fire(self) -> None:
        self._handle = None
        if self._stopped:
            return
        try:
            self.run_once()
        except Exception:
            self.errors += 1
            logger.exception(f"Periodic task {self.name} failed")
        self._schedule()

    def run_once(self):
        """Run ``func`` now unless a run is already in progress."""
        if self._busy:
            self.skipped += 1
            return None
        self._busy = True
        try:
            self.runs += 1
            return self.func()
        finally:
            self._busy = False
