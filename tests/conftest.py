"""Shared pytest configuration and fixtures for eew tests."""

import heapq
import itertools
import sys
from pathlib import Path

import pytest

# Ensure the eew package is importable when running tests from the repo root
sys.path.insert(0, str(Path(__file__).parent.parent))


class ManualHandle:
    def __init__(self, when, callback):
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ManualScheduler:
    """Virtual-time scheduler: timers fire only inside ``advance()``."""

    def __init__(self, start=1_000_000.0):
        self.time = start
        self._queue = []
        self._seq = itertools.count()

    def now(self):
        return self.time

    def call_later(self, delay, callback):
        handle = ManualHandle(self.time + max(0.0, delay), callback)
        heapq.heappush(self._queue, (handle.when, next(self._seq), handle))
        return handle

    @property
    def pending(self):
        return [h for _, _, h in self._queue if not h.cancelled]

    def advance(self, seconds):
        """Move time forward, firing due timers in order."""
        target = self.time + seconds
        while self._queue and self._queue[0][0] <= target:
            when, _, handle = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self.time = when
            handle.callback()
        self.time = target


@pytest.fixture
def scheduler():
    return ManualScheduler()
