"""Provider-specific report normalizers.

Converts decoded telegrams from the two supported providers into the
canonical ``eew.models.Report``:

- ``dmdata``: JSON EEW telegram (``eventId``/``serialNo``/``body``...)
- ``axis``: AXIS EEW message (``EventID``/``Serial``/``Flag``...)

Only the identity of a report (event id and serial) is required. Any
other missing or invalid field is recovered locally as None/empty so
that one bad field never drops a whole report.
"""

from __future__ import annotations

import logging
import math
import re
import time
from datetime import datetime
from types import MappingProxyType

from eew.errors import MalformedReport
from eew.intensity import ForecastRange
from eew.models import Hypocenter, Magnitude, Report, WarningRegion

logger = logging.getLogger(__name__)

TRAINING_STATUSES = frozenset({"訓練", "試験", "training", "test"})
WARNING_TITLE_MARKER = "警報"


# ── Field helpers ─────────────────────────────────────────────────────────


def _float(v) -> float | None:
    """Parse a finite float, returning None if missing/invalid."""
    if v is None or v == "":
        return None
    try:
        f = float(v)
    except (ValueError, TypeError):
        return None
    return f if math.isfinite(f) else None


def _depth(v) -> float | None:
    """Parse a depth such as ``"10"``, ``"10km"`` or ``40``."""
    if v is None:
        return None
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        return _float(v)
    digits = re.sub(r"[^0-9.]", "", str(v))
    return _float(digits)


def _time(v) -> datetime | None:
    """Parse an ISO-8601 timestamp; a trailing 'Z' is accepted."""
    if not v:
        return None
    try:
        return datetime.fromisoformat(str(v).strip().replace("Z", "+00:00"))
    except ValueError:
        logger.warning(f"Unparsable timestamp {v!r}, ignoring")
        return None


def _str(v) -> str:
    if v is None:
        return ""
    return str(v).strip()


def _opt_str(v) -> str | None:
    text = _str(v)
    return text or None


def _dict(v) -> dict:
    return v if isinstance(v, dict) else {}


def _list(v) -> list:
    return v if isinstance(v, list) else []


def _value(node) -> object:
    """Unwrap dmdata ``{"value": ...}`` nodes."""
    if isinstance(node, dict):
        return node.get("value")
    return node


def _range(node) -> ForecastRange | None:
    node = _dict(node)
    if not node:
        return None
    return ForecastRange.parse(node.get("from"), node.get("to"))


def _require_identity(event_id, serial, provider: str) -> tuple[str, str]:
    event_id = _str(event_id)
    serial = _str(serial)
    if not event_id:
        raise MalformedReport("report has no event id", provider)
    if not serial:
        raise MalformedReport(f"report for {event_id} has no serial number", provider)
    return event_id, serial


# ── dmdata ────────────────────────────────────────────────────────────────


def normalize_dmdata(raw: dict, received_at: float | None = None) -> Report:
    """Normalize a dmdata JSON EEW telegram."""
    if not isinstance(raw, dict):
        raise MalformedReport("report is not an object", "dmdata")
    event_id, serial = _require_identity(raw.get("eventId"), raw.get("serialNo"), "dmdata")
    body = raw.get("body")
    if not isinstance(body, dict):
        raise MalformedReport(f"report {event_id}#{serial} has no body", "dmdata")

    earthquake = _dict(body.get("earthquake"))
    hypo = _dict(earthquake.get("hypocenter"))
    coordinate = _dict(hypo.get("coordinate"))
    accuracy = _dict(hypo.get("accuracy"))
    magnitude = _dict(earthquake.get("magnitude"))
    intensity = _dict(body.get("intensity"))

    hypocenter = Hypocenter(
        name=_str(hypo.get("name")),
        latitude=_float(_value(coordinate.get("latitude"))),
        longitude=_float(_value(coordinate.get("longitude"))),
        depth_km=_depth(_value(hypo.get("depth"))),
        condition=_opt_str(earthquake.get("condition")),
        accuracy_codes=tuple(_str(c) for c in _list(accuracy.get("epicenters"))),
        depth_accuracy=_opt_str(accuracy.get("depth")),
        magnitude_calculation=_opt_str(accuracy.get("magnitudeCalculation")),
        magnitude_stations=_opt_str(accuracy.get("numberOfMagnitudeCalculation")),
    )
    if not body.get("isCanceled") and not hypocenter.has_coordinates:
        logger.warning(f"[dmdata] {event_id}#{serial}: hypocenter coordinates missing or invalid")

    regional = {}
    for region in _list(intensity.get("regions")):
        region = _dict(region)
        code = _str(region.get("code"))
        forecast = _range(region.get("forecastMaxInt"))
        if code and forecast is not None:
            regional[code] = forecast

    warnings = tuple(
        WarningRegion(code=_str(r.get("code")), name=_str(r.get("name")))
        for r in map(_dict, _list(body.get("regions")))
        if _str(r.get("code"))
    )

    return Report(
        event_id=event_id,
        serial_no=serial,
        source="dmdata",
        is_canceled=bool(body.get("isCanceled", False)),
        is_last_info=bool(body.get("isLastInfo", False)),
        is_warning=bool(body.get("isWarning", False)),
        is_training=_str(raw.get("status")).lower() in TRAINING_STATUSES,
        origin_time=_time(earthquake.get("originTime")),
        arrival_time=_time(earthquake.get("arrivalTime")),
        report_time=_time(body.get("reportTime") or raw.get("reportDateTime")),
        received_at=time.time() if received_at is None else received_at,
        hypocenter=hypocenter,
        magnitude=Magnitude(
            value=_float(magnitude.get("value")),
            condition=_str(magnitude.get("condition")),
        ),
        max_intensity=_range(intensity.get("forecastMaxInt")),
        max_long_period=_range(intensity.get("forecastMaxLgInt")),
        regional_forecast=MappingProxyType(regional),
        warning_regions=warnings,
        prefectures=tuple(_str(p.get("name")) for p in map(_dict, _list(body.get("prefectures")))),
        zones=tuple(_str(z.get("name")) for z in map(_dict, _list(body.get("zones")))),
    )


# ── AXIS ──────────────────────────────────────────────────────────────────


def normalize_axis(raw: dict, received_at: float | None = None) -> Report:
    """Normalize an AXIS EEW message.

    AXIS carries no accuracy codes and no warning regions. Coordinates
    are published as ``[longitude, latitude]``.
    """
    if not isinstance(raw, dict):
        raise MalformedReport("report is not an object", "axis")
    event_id, serial = _require_identity(raw.get("EventID"), raw.get("Serial"), "axis")

    flag = _dict(raw.get("Flag"))
    hypo = _dict(raw.get("Hypocenter"))
    coordinate = _list(hypo.get("Coordinate"))
    lng = _float(coordinate[0]) if len(coordinate) > 0 else None
    lat = _float(coordinate[1]) if len(coordinate) > 1 else None

    hypocenter = Hypocenter(
        name=_str(hypo.get("Name")),
        latitude=lat,
        longitude=lng,
        depth_km=_depth(hypo.get("Depth")),
    )
    if not flag.get("is_cancel") and not hypocenter.has_coordinates:
        logger.warning(f"[axis] {event_id}#{serial}: hypocenter coordinates missing or invalid")

    regional = {}
    for region in map(_dict, _list(raw.get("Forecast"))):
        code = _str(region.get("Code"))
        levels = _dict(region.get("Intensity"))
        if code:
            regional[code] = ForecastRange.parse(levels.get("From"), levels.get("To"))

    max_class = raw.get("Intensity")
    return Report(
        event_id=event_id,
        serial_no=serial,
        source="axis",
        is_canceled=bool(flag.get("is_cancel", False)),
        is_last_info=bool(flag.get("is_final", False)),
        is_warning=WARNING_TITLE_MARKER in _str(raw.get("Title")),
        is_training=bool(flag.get("is_training", False)),
        origin_time=_time(raw.get("OriginDateTime")),
        report_time=_time(raw.get("ReportDateTime")),
        received_at=time.time() if received_at is None else received_at,
        hypocenter=hypocenter,
        magnitude=Magnitude(value=_float(raw.get("Magnitude"))),
        max_intensity=ForecastRange.parse(max_class, max_class) if max_class else None,
        regional_forecast=MappingProxyType(regional),
    )


NORMALIZERS = {
    "dmdata": normalize_dmdata,
    "axis": normalize_axis,
}


def normalize(raw: dict, provider: str, received_at: float | None = None) -> Report:
    """Normalize a decoded report from ``provider``.

    Raises:
        MalformedReport: If the provider is unknown or the report cannot
            be identified.
    """
    try:
        normalizer = NORMALIZERS[provider.lower()]
    except (KeyError, AttributeError):
        raise MalformedReport(f"unknown provider {provider!r}") from None
    return normalizer(raw, received_at=received_at)
