"""Wavefront Engine: live P/S wave radii for active events.

On every tick the engine reads the tracked epicenters, computes the
current P and S distances from the travel-time table, and publishes one
immutable ``WavefrontSnapshot`` covering all of them. Ticks run on a
self-rescheduling timer whose period is stretched while the user is
manipulating the map.

Without a table the engine is inert: ticks publish nothing. If the
table is reported unavailable the timer stops for the session.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Callable, Iterable

from eew.config import EngineConfig
from eew.scheduler import PeriodicTask, Scheduler
from eew.traveltime import TravelTimeTable, interpolate

logger = logging.getLogger(__name__)

SnapshotListener = Callable[["WavefrontSnapshot"], None]


@dataclass(frozen=True)
class WaveSource:
    """A tracked hypocenter: active, non-canceled, with valid coordinates."""

    event_id: str
    latitude: float
    longitude: float
    depth_km: float
    origin_time: float


@dataclass(frozen=True)
class Wavefront:
    event_id: str
    latitude: float
    longitude: float
    p_distance_km: float
    s_distance_km: float

    @property
    def has_p(self) -> bool:
        return not math.isnan(self.p_distance_km)

    @property
    def has_s(self) -> bool:
        return not math.isnan(self.s_distance_km)


@dataclass(frozen=True)
class WavefrontSnapshot:
    computed_at: float
    fronts: tuple[Wavefront, ...] = ()

    def get(self, event_id: str) -> Wavefront | None:
        for front in self.fronts:
            if front.event_id == event_id:
                return front
        return None


EMPTY_SNAPSHOT = WavefrontSnapshot(computed_at=0.0)


def compute_wavefronts(
    table: TravelTimeTable, sources: Iterable[WaveSource], now: float
) -> WavefrontSnapshot:
    """Compute distances for every source at wall-clock time ``now``."""
    fronts = []
    for src in sources:
        elapsed = now - src.origin_time
        p_distance, s_distance = interpolate(table, src.depth_km, elapsed)
        fronts.append(Wavefront(
            event_id=src.event_id,
            latitude=src.latitude,
            longitude=src.longitude,
            p_distance_km=p_distance,
            s_distance_km=s_distance,
        ))
    return WavefrontSnapshot(computed_at=now, fronts=tuple(fronts))


class WavefrontEngine:
    """Timer-driven wavefront recomputation.

    Args:
        scheduler: Cooperative scheduler providing time and timers.
        sources: Callable returning the current wave sources; read once
            per tick.
        config: Engine config (recompute period and interaction stretch).
    """

    def __init__(
        self,
        scheduler: Scheduler,
        sources: Callable[[], Iterable[WaveSource]],
        config: EngineConfig | None = None,
    ):
        self.scheduler = scheduler
        self.sources = sources
        self.config = config or EngineConfig()
        self.table: TravelTimeTable | None = None
        self.table_unavailable = False
        self.interacting = False
        self.snapshot = EMPTY_SNAPSHOT
        self._listeners: list[SnapshotListener] = []
        self._task = PeriodicTask(scheduler, self.interval, self.tick, name="wavefront")

    def on_snapshot(self, listener: SnapshotListener) -> None:
        self._listeners.append(listener)

    @property
    def inert(self) -> bool:
        return self.table is None

    @property
    def running(self) -> bool:
        return self._task.running

    def interval(self) -> float:
        return self.config.wavefront_interval(self.interacting)

    def set_table(self, table: TravelTimeTable) -> None:
        self.table = table
        self.table_unavailable = False

    def mark_table_unavailable(self) -> None:
        """Disable the engine for the rest of the session."""
        self.table = None
        self.table_unavailable = True
        self.snapshot = EMPTY_SNAPSHOT
        self._task.stop()

    def set_interacting(self, interacting: bool) -> None:
        """Map pan/zoom in progress; stretches the next periods."""
        self.interacting = bool(interacting)

    def start(self) -> None:
        if self.table_unavailable:
            logger.debug("Wavefront engine not started: travel-time table unavailable")
            return
        self._task.start()

    def stop(self) -> None:
        self._task.stop()

    def refresh(self) -> WavefrontSnapshot | None:
        """Run one pass now, unless a pass is already in progress."""
        return self._task.run_once()

    def tick(self) -> WavefrontSnapshot | None:
        """Recompute all wavefronts now and publish the snapshot.

        Returns None (and publishes nothing) while the engine is inert.
        """
        if self.table is None:
            return None
        snapshot = compute_wavefronts(self.table, self.sources(), self.scheduler.now())
        self.snapshot = snapshot
        logger.debug(f"Wavefront tick: {len(snapshot.fronts)} fronts")
        for listener in self._listeners:
            listener(snapshot)
        return snapshot
