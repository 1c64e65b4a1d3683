"""Lifecycle Sweeper: expiry and delayed removal of canceled events.

Two removal paths:

- expiry: a periodic sweep removes every event first observed at least
  ``event_retention_seconds`` ago, whether or not new reports arrived
- cancellation: when an event's current report is canceled, removal is
  scheduled ``cancel_removal_delay_seconds`` later so the canceled state
  is visible first; at most one such timer exists per event

Timer callbacks re-check the store before acting. A cancellation timer
that fires after the event already expired (or was un-canceled) does
nothing.
"""

from __future__ import annotations

import logging
from functools import partial
from typing import Callable

from eew.config import EngineConfig
from eew.models import Event
from eew.scheduler import PeriodicTask, Scheduler
from eew.store import EventStore

logger = logging.getLogger(__name__)

RemovalListener = Callable[[str, str], None]

REASON_EXPIRED = "expired"
REASON_CANCELED = "canceled"
REASON_DISMISSED = "dismissed"


class LifecycleSweeper:
    """Removes stale and canceled events from an ``EventStore``.

    Args:
        scheduler: Cooperative scheduler providing time and timers.
        store: The event store to prune.
        on_removed: Called as ``on_removed(event_id, reason)`` after an
            event has been removed, so derived views can be recomputed.
        config: Engine config (retention, cancellation delay, cadence).
    """

    def __init__(
        self,
        scheduler: Scheduler,
        store: EventStore,
        on_removed: RemovalListener | None = None,
        config: EngineConfig | None = None,
    ):
        self.scheduler = scheduler
        self.store = store
        self.on_removed = on_removed
        self.config = config or EngineConfig()
        self.auto_follow = False
        self._cancel_timers: dict = {}
        self._task = PeriodicTask(scheduler, self.interval, self.sweep, name="sweep")

    @property
    def pending_cancellations(self) -> list[str]:
        return list(self._cancel_timers)

    @property
    def running(self) -> bool:
        return self._task.running

    def interval(self) -> float:
        return self.config.sweep_interval(self.auto_follow)

    def set_auto_follow(self, auto_follow: bool) -> None:
        """Camera auto-follow shortens the sweep cadence from the next sweep on."""
        self.auto_follow = bool(auto_follow)

    def start(self) -> None:
        self._task.start()

    def close(self) -> None:
        """Stop sweeping and cancel all pending cancellation timers."""
        self._task.stop()
        for handle in self._cancel_timers.values():
            handle.cancel()
        self._cancel_timers.clear()

    # ── Expiry ────────────────────────────────────────────────────────────

    def sweep(self) -> list[str]:
        """Remove every event past the retention window. Returns removed ids."""
        now = self.scheduler.now()
        retention = self.config.event_retention_seconds
        expired = [
            e.event_id for e in self.store.snapshot() if now - e.start_time >= retention
        ]
        for event_id in expired:
            self.remove(event_id, REASON_EXPIRED)
        return expired

    # ── Cancellation ──────────────────────────────────────────────────────

    def track(self, event: Event) -> None:
        """React to an upserted event's cancellation state."""
        event_id = event.event_id
        if event.is_canceled:
            if event_id in self._cancel_timers:
                return
            delay = self.config.cancel_removal_delay_seconds
            self._cancel_timers[event_id] = self.scheduler.call_later(
                delay, partial(self._remove_canceled, event_id)
            )
            self.store.mark_removal_scheduled(event_id)
            logger.info(f"Event {event_id} canceled; removal in {delay:g}s")
            return

        handle = self._cancel_timers.pop(event_id, None)
        if handle is not None:
            handle.cancel()
            self.store.mark_removal_scheduled(event_id, False)
            logger.info(f"Event {event_id} no longer canceled; removal withdrawn")

    def _remove_canceled(self, event_id: str) -> None:
        self._cancel_timers.pop(event_id, None)
        event = self.store.get(event_id)
        if event is None or not event.is_canceled:
            return
        self.remove(event_id, REASON_CANCELED)

    def remove(self, event_id: str, reason: str = REASON_DISMISSED) -> bool:
        """Remove an event now, cancelling its pending timer if any."""
        handle = self._cancel_timers.pop(event_id, None)
        if handle is not None:
            handle.cancel()
        if not self.store.remove(event_id):
            return False
        logger.info(f"Removed event {event_id} ({reason})")
        if self.on_removed is not None:
            self.on_removed(event_id, reason)
        return True
