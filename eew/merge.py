"""Region Merge Engine: cross-event intensity and warning-area views.

Each active event contributes its per-region forecast and its warning
regions. The merged views are pure functions of the current set of
contributions:

- intensity: per region code, the forecast with the highest rank
  (on a tie the exact value beats a lower-bound-only one; unknown never
  beats a known class)
- warnings: union by region code in first-seen order, with the last
  contributed name winning

Listeners are notified only when a merged view actually changes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Mapping, Sequence

from eew.intensity import ForecastIntensity, Intensity, INTENSITY_ORDER, max_forecast
from eew.models import Event, WarningRegion

logger = logging.getLogger(__name__)

IntensityListener = Callable[[dict[str, ForecastIntensity]], None]
WarningListener = Callable[[list[WarningRegion]], None]


@dataclass(frozen=True)
class Contribution:
    forecast: Mapping[str, ForecastIntensity]
    warnings: tuple[WarningRegion, ...] = ()


def merge_intensity(contributions: Iterable[Contribution]) -> dict[str, ForecastIntensity]:
    """Per-region maximum forecast across contributions."""
    collected: dict[str, list[ForecastIntensity]] = {}
    for contribution in contributions:
        for code, value in contribution.forecast.items():
            collected.setdefault(code, []).append(value)
    return {code: max_forecast(values) for code, values in collected.items()}


def merge_warnings(contributions: Iterable[Contribution]) -> list[WarningRegion]:
    """Union of warning regions by code; later names overwrite earlier ones."""
    merged: dict[str, str] = {}
    for contribution in contributions:
        for region in contribution.warnings:
            merged[region.code] = region.name
    return [WarningRegion(code=code, name=name) for code, name in merged.items()]


def contribution_for(event: Event) -> Contribution | None:
    """An event's contribution, or None if it contributes nothing.

    Canceled events and events with an empty regional forecast drop out
    entirely, warning regions included.
    """
    report = event.current
    if report.is_canceled or not report.regional_forecast:
        return None
    return Contribution(
        forecast=report.resolved_forecast(),
        warnings=tuple(report.warning_regions),
    )


class RegionMergeEngine:
    """Keeps per-event contributions and the merged views derived from them."""

    def __init__(self):
        self._contributions: dict[str, Contribution] = {}
        self.intensity_map: dict[str, ForecastIntensity] = {}
        self.warning_regions: list[WarningRegion] = []
        self._intensity_listeners: list[IntensityListener] = []
        self._warning_listeners: list[WarningListener] = []

    def on_intensity_change(self, listener: IntensityListener) -> None:
        self._intensity_listeners.append(listener)

    def on_warning_change(self, listener: WarningListener) -> None:
        self._warning_listeners.append(listener)

    @property
    def event_ids(self) -> list[str]:
        return list(self._contributions)

    def upsert_event(
        self,
        event_id: str,
        regional_forecast: Mapping[str, ForecastIntensity],
        warning_regions: Sequence[WarningRegion] = (),
    ) -> bool:
        """Replace one event's contribution and recompute.

        An empty ``regional_forecast`` removes the event's contribution
        entirely. Returns True if a merged view changed.
        """
        if not regional_forecast:
            self._contributions.pop(event_id, None)
        else:
            self._contributions[event_id] = Contribution(
                forecast=dict(regional_forecast),
                warnings=tuple(warning_regions),
            )
        return self.recompute()

    def remove_event(self, event_id: str) -> bool:
        return self.upsert_event(event_id, {}, ())

    def sync(self, events: Iterable[Event]) -> bool:
        """Rebuild all contributions from a store snapshot and recompute."""
        contributions = {}
        for event in events:
            contribution = contribution_for(event)
            if contribution is not None:
                contributions[event.event_id] = contribution
        self._contributions = contributions
        return self.recompute()

    def recompute(self) -> bool:
        """Recompute both merged views, emitting only what changed."""
        intensity = merge_intensity(self._contributions.values())
        warnings = merge_warnings(self._contributions.values())
        changed = False

        if intensity != self.intensity_map:
            self.intensity_map = intensity
            changed = True
            logger.debug(f"Merged intensity map now covers {len(intensity)} regions")
            for listener in self._intensity_listeners:
                listener(dict(intensity))

        if warnings != self.warning_regions:
            self.warning_regions = warnings
            changed = True
            logger.debug(f"Merged warning set now has {len(warnings)} regions")
            for listener in self._warning_listeners:
                listener(list(warnings))

        return changed

    def filtered_intensity_map(self) -> dict[str, ForecastIntensity]:
        """Merged intensity map without the regions under warning."""
        warned = {r.code for r in self.warning_regions}
        return {code: v for code, v in self.intensity_map.items() if code not in warned}

    def displayed_intensities(self) -> list[Intensity]:
        """Classes present in the filtered map, weakest first (legend order)."""
        present = {v.intensity.value for v in self.filtered_intensity_map().values()}
        return [Intensity(code) for code in INTENSITY_ORDER if code in present]

    def clear(self) -> None:
        self._contributions.clear()
        self.recompute()
