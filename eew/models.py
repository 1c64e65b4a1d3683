"""Canonical data models for EEW reports and events.

Provider-specific telegrams are converted into these shapes by
``eew.normalize``; nothing downstream sees provider field names.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Mapping

from eew.classifier import Method, classify
from eew.intensity import ForecastIntensity, ForecastRange, UNKNOWN_FORECAST

_EMPTY_FORECAST: Mapping[str, ForecastRange] = MappingProxyType({})


@dataclass(frozen=True)
class Hypocenter:
    """Estimated source location of one report.

    Args:
        name: Epicenter region name, or "" when not given.
        latitude: Degrees, or None if missing/invalid.
        longitude: Degrees, or None if missing/invalid.
        depth_km: Depth in km, or None if missing/invalid.
        condition: Provider hypocenter condition (e.g. the
            hypothetical-hypocenter marker), or None.
        accuracy_codes: Epicenter accuracy codes, first one drives
            method classification.
        depth_accuracy: Depth accuracy code, or None.
        magnitude_calculation: Magnitude calculation code, or None.
        magnitude_stations: Number-of-stations code for magnitude, or None.
    """

    name: str = ""
    latitude: float | None = None
    longitude: float | None = None
    depth_km: float | None = None
    condition: str | None = None
    accuracy_codes: tuple[str, ...] = ()
    depth_accuracy: str | None = None
    magnitude_calculation: str | None = None
    magnitude_stations: str | None = None

    @property
    def has_coordinates(self) -> bool:
        values = (self.latitude, self.longitude, self.depth_km)
        return all(v is not None and math.isfinite(v) for v in values)


@dataclass(frozen=True)
class Magnitude:
    """Magnitude value, or a textual condition when no value is given."""

    value: float | None = None
    condition: str = ""

    @property
    def label(self) -> str:
        if self.value is not None:
            return f"M{self.value:.1f}"
        return self.condition or "unknown"


@dataclass(frozen=True)
class WarningRegion:
    code: str
    name: str = ""


@dataclass(frozen=True)
class Report:
    """One received EEW bulletin in canonical form.

    ``regional_forecast`` maps region code to the published range and
    ``warning_regions`` is ordered as published. ``received_at`` is the
    wall-clock time (epoch seconds) at which the report was normalized;
    it is the last fallback for the effective origin time.
    """

    event_id: str
    serial_no: str
    source: str = ""
    is_canceled: bool = False
    is_last_info: bool = False
    is_warning: bool = False
    is_training: bool = False
    origin_time: datetime | None = None
    arrival_time: datetime | None = None
    report_time: datetime | None = None
    received_at: float = 0.0
    hypocenter: Hypocenter = field(default_factory=Hypocenter)
    magnitude: Magnitude = field(default_factory=Magnitude)
    max_intensity: ForecastRange | None = None
    max_long_period: ForecastRange | None = None
    regional_forecast: Mapping[str, ForecastRange] = field(default_factory=lambda: _EMPTY_FORECAST)
    warning_regions: tuple[WarningRegion, ...] = ()
    prefectures: tuple[str, ...] = ()
    zones: tuple[str, ...] = ()

    @property
    def serial(self) -> int:
        """Serial number as an integer (0 if it does not parse)."""
        try:
            return int(str(self.serial_no).strip())
        except ValueError:
            return 0

    @property
    def method(self) -> Method:
        return classify(
            self.hypocenter.condition,
            self.hypocenter.accuracy_codes,
            self.origin_time is not None,
        )

    @property
    def effective_origin(self) -> float:
        """Origin time in epoch seconds: origin, else arrival, else receipt."""
        for ts in (self.origin_time, self.arrival_time):
            if ts is not None:
                return ts.timestamp()
        return self.received_at

    @property
    def forecast_max(self) -> ForecastIntensity:
        """Headline forecast maximum intensity (unknown if not published)."""
        if self.max_intensity is None:
            return UNKNOWN_FORECAST
        return self.max_intensity.resolve()

    def resolved_forecast(self) -> dict[str, ForecastIntensity]:
        """Per-region single-valued forecast, in published order."""
        return {code: rng.resolve() for code, rng in self.regional_forecast.items()}


@dataclass(frozen=True)
class Epicenter:
    """Last-known plotted epicenter of an event."""

    latitude: float
    longitude: float
    depth_km: float
    origin_time: float
    icon_kind: str

    @classmethod
    def from_report(cls, report: Report) -> "Epicenter | None":
        hypo = report.hypocenter
        if not hypo.has_coordinates:
            return None
        return cls(
            latitude=hypo.latitude,
            longitude=hypo.longitude,
            depth_km=hypo.depth_km,
            origin_time=report.effective_origin,
            icon_kind=report.method.icon_kind,
        )


@dataclass
class Event:
    """Aggregate state for one ``event_id``; owned by ``EventStore``.

    ``start_time`` is when the event was first observed locally, not the
    origin time.
    """

    event_id: str
    current: Report
    start_time: float
    epicenter: Epicenter | None = None
    cancel_removal_scheduled: bool = False

    @property
    def source(self) -> str:
        return self.current.source

    @property
    def is_canceled(self) -> bool:
        return self.current.is_canceled

    @property
    def method(self) -> Method:
        return self.current.method
