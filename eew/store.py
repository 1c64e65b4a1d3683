"""Event Store: the single owner of per-event aggregate state.

All mutation goes through ``upsert``, ``remove`` and
``mark_removal_scheduled``. Readers get copies from ``snapshot()`` and
``get()``, so derived views are always recomputed from a consistent
picture and never edited in place.
"""

from __future__ import annotations

import logging
import time
from dataclasses import replace
from typing import Callable

from eew.models import Epicenter, Event, Report

logger = logging.getLogger(__name__)

# Higher wins when two providers report the same event
SOURCE_PRIORITY = {"dmdata": 2, "axis": 1}


class EventStore:
    """Keyed collection of ``Event`` records, in first-observed order.

    Args:
        clock: Wall-clock source for ``start_time``.
        ignore_stale_serials: If True, a report whose serial is lower
            than the current one is dropped (cancellations excepted).
            If False (default) the last received report always wins.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.time,
        ignore_stale_serials: bool = False,
    ):
        self._clock = clock
        self.ignore_stale_serials = ignore_stale_serials
        self._events: dict[str, Event] = {}

    def __len__(self) -> int:
        return len(self._events)

    def __contains__(self, event_id: str) -> bool:
        return event_id in self._events

    def upsert(self, report: Report) -> Event | None:
        """Insert or update the event for ``report.event_id``.

        Returns:
            A copy of the updated event, or None if the report was
            rejected (lower-priority provider, or stale serial when
            ``ignore_stale_serials`` is set).
        """
        event = self._events.get(report.event_id)
        if event is None:
            event = Event(
                event_id=report.event_id,
                current=report,
                start_time=self._clock(),
                epicenter=Epicenter.from_report(report),
            )
            self._events[report.event_id] = event
            logger.info(
                f"New event {report.event_id} ({report.source} #{report.serial_no}, "
                f"{report.method.value})"
            )
            return replace(event)

        if not self._accepts(event.current, report):
            return None

        event.current = report
        epicenter = Epicenter.from_report(report)
        if epicenter is not None:
            event.epicenter = epicenter
        else:
            logger.debug(f"Event {report.event_id} #{report.serial_no}: keeping previous epicenter")
        if not report.is_canceled:
            event.cancel_removal_scheduled = False
        logger.debug(
            f"Updated event {report.event_id} to #{report.serial_no}"
            f"{' (canceled)' if report.is_canceled else ''}"
        )
        return replace(event)

    def _accepts(self, current: Report, report: Report) -> bool:
        old_rank = SOURCE_PRIORITY.get(current.source, 0)
        new_rank = SOURCE_PRIORITY.get(report.source, 0)
        if new_rank < old_rank:
            logger.debug(
                f"Ignoring {report.source} report for {report.event_id}: "
                f"event is fed by {current.source}"
            )
            return False
        if (
            self.ignore_stale_serials
            and new_rank == old_rank
            and not report.is_canceled
            and report.serial < current.serial
        ):
            logger.debug(
                f"Ignoring stale serial #{report.serial_no} for {report.event_id} "
                f"(current #{current.serial_no})"
            )
            return False
        return True

    def remove(self, event_id: str) -> bool:
        """Remove an event. Returns False if it was not present."""
        return self._events.pop(event_id, None) is not None

    def mark_removal_scheduled(self, event_id: str, scheduled: bool = True) -> bool:
        event = self._events.get(event_id)
        if event is None:
            return False
        event.cancel_removal_scheduled = scheduled
        return True

    def get(self, event_id: str) -> Event | None:
        event = self._events.get(event_id)
        return replace(event) if event is not None else None

    def snapshot(self) -> tuple[Event, ...]:
        """Copies of all events in first-observed order."""
        return tuple(replace(e) for e in self._events.values())

    def clear(self) -> None:
        self._events.clear()
