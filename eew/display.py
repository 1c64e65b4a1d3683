"""Per-event display model, shared by all providers.

``build_display_model`` turns a canonical report into the strings and
flags a renderer needs. Intensity copy follows the estimation method:

- IPF with a single-station accuracy code, PLUM without a lower bound,
  and anything with no intensity at all read "no reliable intensity
  (single-station processing)"
- depth beyond the deep-focus limit always reads "no reliable intensity
  (deep focus)", whatever the method
- otherwise "Max intensity <label>", annotated "or above" when only a
  lower bound was published
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from eew.classifier import Method, describe_accuracy
from eew.intensity import ForecastIntensity, Intensity, to_display
from eew.models import Report

JST = timezone(timedelta(hours=9), "JST")

NO_ESTIMATE_SINGLE_STATION = "No reliable intensity (single-station processing)"
NO_ESTIMATE_DEEP_FOCUS = "No reliable intensity (deep focus)"

MSG_SPECIAL_WARNING = "EEW special warning. Protect yourself now."
MSG_DEEP_FOCUS = "Deep hypocenter: shaking may be strong far from the epicenter."
MSG_PLUM = "Intensity is estimated directly from real-time observed intensity."
MSG_FEW_STATIONS = "Few stations were used; hypocenter accuracy may be low."
MSG_WARNING = "EEW (Warning) issued. Be alert for strong shaking."
MSG_FORECAST = "EEW (Forecast) issued. Watch for shaking."

SPECIAL_WARNING_CLASSES = (Intensity.I6_LOWER, Intensity.I6_UPPER, Intensity.I7)

# More prefectures than this and the zone list is shown instead
MAX_PREFECTURES_LISTED = 8


@dataclass(frozen=True)
class DisplayModel:
    event_id: str
    serial_no: str
    source: str
    method: Method
    headline: str
    serial_label: str
    title: str
    time_text: str
    time_verb: str
    intensity: ForecastIntensity
    display_intensity: str
    intensity_color: tuple[str, str]
    magnitude: str
    depth: str
    message: str
    long_period: str | None = None
    areas: tuple[str, ...] = ()
    accuracy: dict = field(default_factory=dict)
    is_canceled: bool = False
    is_warning: bool = False
    is_training: bool = False
    is_last_info: bool = False

    @property
    def is_low_accuracy(self) -> bool:
        return self.method.is_low_accuracy


def is_deep_focus(report: Report, limit_km: float = 150.0) -> bool:
    depth = report.hypocenter.depth_km
    return depth is not None and depth > limit_km


def display_intensity(report: Report, deep_focus_km: float = 150.0) -> str:
    """Canonical display intensity string for a report."""
    if is_deep_focus(report, deep_focus_km):
        return NO_ESTIMATE_DEEP_FOCUS

    method = report.method
    forecast = report.forecast_max
    known = forecast.intensity.is_known

    if method is Method.IPF_1:
        return NO_ESTIMATE_SINGLE_STATION
    if method is Method.PLUM:
        lower = report.max_intensity.lower if report.max_intensity else Intensity.UNKNOWN
        if not known or not lower.is_known:
            return NO_ESTIMATE_SINGLE_STATION
        return f"Max intensity {to_display(lower, lower_bound_only=True)}"
    if method is Method.LEVEL and not known:
        return NO_ESTIMATE_SINGLE_STATION

    return f"Max intensity {forecast.label}"


def _message(report: Report, shown: str) -> str:
    method = report.method
    forecast = report.forecast_max
    if report.is_warning and forecast.intensity in SPECIAL_WARNING_CLASSES:
        return MSG_SPECIAL_WARNING
    if shown == NO_ESTIMATE_DEEP_FOCUS:
        return MSG_DEEP_FOCUS
    if method is Method.LEVEL:
        return (f"Large acceleration was detected; the report assumes "
                f"intensity {to_display(forecast.intensity)}.")
    if method is Method.PLUM:
        return MSG_PLUM if forecast.intensity.is_known else MSG_FEW_STATIONS
    if method.is_ipf and not forecast.intensity.is_known:
        return MSG_FEW_STATIONS
    return MSG_WARNING if report.is_warning else MSG_FORECAST


def _headline(report: Report) -> str:
    if report.is_canceled:
        return "EEW (Canceled)"
    return "EEW (Warning)" if report.is_warning else "EEW (Forecast)"


def _long_period(report: Report) -> str | None:
    rng = report.max_long_period
    if rng is None:
        return None
    if rng.lower_bound_only:
        if not rng.lower.is_known:
            return None
        return f"{rng.lower.value} or above"
    if not rng.upper.is_known or rng.upper is Intensity.I0:
        return None
    return rng.upper.value


def format_time(ts: datetime | None) -> str:
    """Format a timestamp in JST, e.g. '10/19 14:03:21'."""
    if ts is None:
        return "unknown"
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=JST)
    local = ts.astimezone(JST)
    return f"{local.month}/{local.day} {local:%H:%M:%S}"


def _display_time(report: Report) -> datetime:
    for ts in (report.origin_time, report.arrival_time):
        if ts is not None:
            return ts
    return datetime.fromtimestamp(report.received_at, tz=JST)


def _areas(report: Report) -> tuple[str, ...]:
    names = report.zones if len(report.prefectures) > MAX_PREFECTURES_LISTED else report.prefectures
    return tuple(n or "unknown" for n in names)


def _accuracy(report: Report) -> dict:
    hypo = report.hypocenter
    codes = hypo.accuracy_codes
    return {
        "epicenter": describe_accuracy("epicenters", codes[0] if codes else None),
        "hypocenter": describe_accuracy("epicenters", codes[1] if len(codes) > 1 else None),
        "depth": describe_accuracy("depth", hypo.depth_accuracy),
        "magnitude": describe_accuracy("magnitude_calculation", hypo.magnitude_calculation),
        "magnitude_stations": describe_accuracy("magnitude_stations", hypo.magnitude_stations),
        "method": report.method.description,
    }


def build_display_model(report: Report, deep_focus_km: float = 150.0) -> DisplayModel:
    """Build the renderer-facing model for one report."""
    method = report.method
    shown = display_intensity(report, deep_focus_km)
    place = report.hypocenter.name or "unknown"
    depth = report.hypocenter.depth_km

    return DisplayModel(
        event_id=report.event_id,
        serial_no=report.serial_no,
        source=report.source,
        method=method,
        headline=_headline(report),
        serial_label=f"#{report.serial_no}" + (" (final)" if report.is_last_info else ""),
        title=f"{'Shaking' if method.is_assumed_hypocenter else 'Earthquake'} near {place}",
        time_text=format_time(_display_time(report)),
        time_verb="detected" if method.is_assumed_hypocenter else "occurred",
        intensity=report.forecast_max,
        display_intensity=shown,
        intensity_color=report.forecast_max.color,
        magnitude=report.magnitude.label,
        depth=f"{depth:g} km" if depth is not None else "unknown",
        message=_message(report, shown),
        long_period=_long_period(report),
        areas=_areas(report),
        accuracy=_accuracy(report),
        is_canceled=report.is_canceled,
        is_warning=report.is_warning,
        is_training=report.is_training,
        is_last_info=report.is_last_info,
    )
