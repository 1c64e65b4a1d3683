"""EEW engine facade.

Wires the Event Store, Lifecycle Sweeper, Region Merge Engine and
Wavefront Engine together behind one object fed with decoded reports::

    engine = EEWEngine(EngineConfig(show_low_accuracy=True))
    engine.on_intensity_change(lambda m: print(m))
    engine.start()
    await engine.load_travel_table("https://example.com/tjma2001.txt")
    engine.ingest(telegram, "dmdata")

Every store mutation is followed by a merge ``sync`` over a fresh
store snapshot, so the merged views are always a function of the
currently active events.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable

from eew.api_client import AsyncAPIClient
from eew.config import EngineConfig
from eew.display import DisplayModel, build_display_model
from eew.errors import MalformedReport, TableUnavailable
from eew.intensity import ForecastIntensity, Intensity, meets_threshold
from eew.merge import RegionMergeEngine
from eew.models import Event, Report, WarningRegion
from eew.normalize import normalize
from eew.scheduler import AsyncioScheduler, Scheduler
from eew.store import EventStore
from eew.sweeper import LifecycleSweeper
from eew.traveltime import TravelTimeTable, obtain_table
from eew.wavefront import WavefrontEngine, WavefrontSnapshot, WaveSource

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EpicenterMarker:
    event_id: str
    latitude: float
    longitude: float
    icon_kind: str
    is_canceled: bool = False


class EEWEngine:
    """Aggregates EEW reports into events, merged maps and wavefronts.

    Args:
        config: Engine config; defaults to ``EngineConfig()``.
        scheduler: Timer source. Defaults to an ``AsyncioScheduler`` on
            ``loop``.
        loop: Event loop for the default scheduler. Without one,
            ``start()`` and ingesting a canceled report must be called
            from code running on an event loop.
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        scheduler: Scheduler | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
    ):
        self.config = config or EngineConfig()
        self.scheduler = scheduler or AsyncioScheduler(loop)
        self.store = EventStore(
            clock=self.scheduler.now,
            ignore_stale_serials=self.config.ignore_stale_serials,
        )
        self.merge = RegionMergeEngine()
        self.sweeper = LifecycleSweeper(
            self.scheduler, self.store, on_removed=self._on_removed, config=self.config
        )
        self.wavefront = WavefrontEngine(self.scheduler, self.wave_sources, config=self.config)
        self.table_error: TableUnavailable | None = None
        self._passed_threshold: set[str] = set()
        self._table_listeners: list[Callable[[TableUnavailable], None]] = []
        self._removal_listeners: list[Callable[[str, str], None]] = []

    # ── Listeners ─────────────────────────────────────────────────────────

    def on_intensity_change(self, listener: Callable[[dict], None]) -> None:
        self.merge.on_intensity_change(listener)

    def on_warning_change(self, listener: Callable[[list], None]) -> None:
        self.merge.on_warning_change(listener)

    def on_wavefronts(self, listener: Callable[[WavefrontSnapshot], None]) -> None:
        self.wavefront.on_snapshot(listener)

    def on_table_unavailable(self, listener: Callable[[TableUnavailable], None]) -> None:
        self._table_listeners.append(listener)

    def on_event_removed(self, listener: Callable[[str, str], None]) -> None:
        self._removal_listeners.append(listener)

    # ── Ingestion ─────────────────────────────────────────────────────────

    def ingest(self, raw: dict, provider: str, received_at: float | None = None) -> Event | None:
        """Normalize and apply one decoded report.

        Malformed reports are logged and dropped; this never raises for
        bad input. Returns the updated event, or None if nothing changed.
        """
        if received_at is None:
            received_at = self.scheduler.now()
        try:
            report = normalize(raw, provider, received_at=received_at)
        except MalformedReport as e:
            logger.warning(f"Dropping malformed report: {e}")
            return None
        return self.ingest_report(report)

    def ingest_report(self, report: Report) -> Event | None:
        event = self.store.upsert(report)
        if event is None:
            return None
        self.sweeper.track(event)
        self.merge.sync(self.store.snapshot())
        return event

    def remove_event(self, event_id: str) -> bool:
        """Drop an event immediately (e.g. on user dismissal)."""
        return self.sweeper.remove(event_id)

    def _on_removed(self, event_id: str, reason: str) -> None:
        self._passed_threshold.discard(event_id)
        self.merge.sync(self.store.snapshot())
        for listener in self._removal_listeners:
            listener(event_id, reason)

    # ── Views ─────────────────────────────────────────────────────────────

    @property
    def events(self) -> tuple[Event, ...]:
        return self.store.snapshot()

    @property
    def merged_intensity(self) -> dict[str, ForecastIntensity]:
        return dict(self.merge.intensity_map)

    @property
    def merged_warning_regions(self) -> list[WarningRegion]:
        return list(self.merge.warning_regions)

    def filtered_intensity_map(self) -> dict[str, ForecastIntensity]:
        return self.merge.filtered_intensity_map()

    def displayed_intensities(self) -> list[Intensity]:
        return self.merge.displayed_intensities()

    @property
    def wavefronts(self) -> WavefrontSnapshot:
        return self.wavefront.snapshot

    def is_visible(self, event: Event) -> bool:
        """Low-accuracy events are hidden unless the user opted in."""
        return self.config.show_low_accuracy or not event.method.is_low_accuracy

    def wave_sources(self) -> list[WaveSource]:
        """Visible, non-canceled events with a plotted epicenter."""
        sources = []
        for event in self.store.snapshot():
            if event.is_canceled or event.epicenter is None or not self.is_visible(event):
                continue
            epi = event.epicenter
            sources.append(WaveSource(
                event_id=event.event_id,
                latitude=epi.latitude,
                longitude=epi.longitude,
                depth_km=epi.depth_km,
                origin_time=epi.origin_time,
            ))
        return sources

    def epicenter_markers(self) -> list[EpicenterMarker]:
        return [
            EpicenterMarker(
                event_id=e.event_id,
                latitude=e.epicenter.latitude,
                longitude=e.epicenter.longitude,
                icon_kind=e.epicenter.icon_kind,
                is_canceled=e.is_canceled,
            )
            for e in self.store.snapshot()
            if e.epicenter is not None and self.is_visible(e)
        ]

    def _passes_threshold(self, event: Event) -> bool:
        threshold = self.config.intensity_threshold
        if threshold is None or event.event_id in self._passed_threshold:
            return True
        forecast = event.current.forecast_max
        if event.is_canceled or not forecast.intensity.is_known:
            return True
        if meets_threshold(forecast, threshold):
            self._passed_threshold.add(event.event_id)
            return True
        return False

    def display_models(self) -> list[DisplayModel]:
        """Display models for visible events, in first-observed order."""
        return [
            build_display_model(e.current, self.config.deep_focus_depth_km)
            for e in self.store.snapshot()
            if self.is_visible(e) and self._passes_threshold(e)
        ]

    # ── Travel-time table ─────────────────────────────────────────────────

    @property
    def table_available(self) -> bool:
        return self.wavefront.table is not None

    def set_travel_table(self, table: TravelTimeTable) -> None:
        self.wavefront.set_table(table)
        self.table_error = None

    async def load_travel_table(
        self, source: str | None = None, client: AsyncAPIClient | None = None
    ) -> bool:
        """Load the table from a path or URL (default: config source).

        On failure the wavefront engine stays inert for the session and
        ``on_table_unavailable`` listeners are told once. Returns True if
        a table was loaded.
        """
        source = source or self.config.travel_table_source
        if not source:
            self._table_failed(TableUnavailable("<unset>", "no travel-time table source configured"))
            return False
        try:
            table = await obtain_table(source, client=client)
        except TableUnavailable as e:
            self._table_failed(e)
            return False
        self.set_travel_table(table)
        return True

    def _table_failed(self, error: TableUnavailable) -> None:
        if self.table_error is not None:
            return
        self.table_error = error
        logger.error(f"Wavefronts disabled: {error}")
        self.wavefront.mark_table_unavailable()
        for listener in self._table_listeners:
            listener(error)

    # ── Control ───────────────────────────────────────────────────────────

    def set_interacting(self, interacting: bool) -> None:
        self.wavefront.set_interacting(interacting)

    def set_auto_follow(self, auto_follow: bool) -> None:
        self.sweeper.set_auto_follow(auto_follow)

    def start(self) -> None:
        """Start the sweep and wavefront timers."""
        self.sweeper.start()
        self.wavefront.start()

    def close(self) -> None:
        """Cancel every pending timer. The store keeps its contents."""
        self.sweeper.close()
        self.wavefront.stop()
