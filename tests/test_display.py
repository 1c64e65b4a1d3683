"""Tests for eew.display: the unified per-event display model."""

from datetime import datetime, timezone
from types import MappingProxyType

import pytest

from eew.classifier import Method
from eew.display import (
    MSG_DEEP_FOCUS,
    MSG_FEW_STATIONS,
    MSG_FORECAST,
    MSG_PLUM,
    MSG_SPECIAL_WARNING,
    MSG_WARNING,
    NO_ESTIMATE_DEEP_FOCUS,
    NO_ESTIMATE_SINGLE_STATION,
    build_display_model,
    display_intensity,
    format_time,
)
from eew.intensity import ForecastRange
from eew.models import Hypocenter, Magnitude, Report

ORIGIN = datetime(2024, 1, 1, 7, 10, 0, tzinfo=timezone.utc)


def make_report(codes=("4",), condition=None, origin=ORIGIN, depth=10.0,
                max_from="5-", max_to="5-", warning=False, **kwargs):
    return Report(
        event_id="E1",
        serial_no="3",
        source="dmdata",
        is_warning=warning,
        origin_time=origin,
        hypocenter=Hypocenter(name="Noto Peninsula", latitude=37.5, longitude=137.2,
                              depth_km=depth, condition=condition, accuracy_codes=codes),
        magnitude=Magnitude(value=6.2),
        max_intensity=ForecastRange.parse(max_from, max_to) if max_from or max_to else None,
        **kwargs,
    )


class TestDisplayIntensity:
    """Method-specific intensity copy and overrides."""

    def test_plain_ipf(self):
        assert display_intensity(make_report()) == "Max intensity 5 Lower"

    def test_lower_bound_annotation(self):
        report = make_report(max_from="5+", max_to="over")
        assert display_intensity(report) == "Max intensity 5 Upper or above"

    def test_single_station_ipf(self):
        report = make_report(codes=("1",))
        assert report.method is Method.IPF_1
        assert display_intensity(report) == NO_ESTIMATE_SINGLE_STATION

    @pytest.mark.parametrize("codes, method", [
        (("1a",), Method.IPF_1),
        (("2",), Method.IPF_2),
        (("3", "1"), Method.IPF_3PLUS),
    ])
    def test_only_single_station_ipf_suppressed(self, codes, method):
        report = make_report(codes=codes)
        assert report.method is method
        expected = NO_ESTIMATE_SINGLE_STATION if method is Method.IPF_1 else "Max intensity 5 Lower"
        assert display_intensity(report) == expected

    def test_deep_focus_overrides_any_method(self):
        for codes, condition in [(("4",), None), (("1",), None), ((), "hypothetical-hypocenter")]:
            report = make_report(codes=codes, condition=condition, depth=400.0)
            assert display_intensity(report) == NO_ESTIMATE_DEEP_FOCUS

    def test_depth_at_limit_is_not_deep(self):
        assert display_intensity(make_report(depth=150.0)) != NO_ESTIMATE_DEEP_FOCUS

    def test_custom_deep_limit(self):
        assert display_intensity(make_report(depth=120.0), deep_focus_km=100) == NO_ESTIMATE_DEEP_FOCUS

    def test_plum_uses_lower_bound(self):
        report = make_report(codes=(), condition="仮定震源要素", max_from="4", max_to="5-")
        assert display_intensity(report) == "Max intensity 4 or above"

    def test_plum_without_lower_bound(self):
        report = make_report(codes=(), condition="仮定震源要素", max_from=None, max_to=None)
        assert display_intensity(report) == NO_ESTIMATE_SINGLE_STATION

    def test_level_without_intensity(self):
        report = make_report(codes=(), origin=None, max_from=None, max_to=None)
        assert report.method is Method.LEVEL
        assert display_intensity(report) == NO_ESTIMATE_SINGLE_STATION

    def test_unknown_method(self):
        report = make_report(codes=(), max_from="3", max_to="3")
        assert report.method is Method.UNKNOWN
        assert display_intensity(report) == "Max intensity 3"


class TestMessages:
    def test_special_warning(self):
        model = build_display_model(make_report(max_from="6-", max_to="6+", warning=True))
        assert model.message == MSG_SPECIAL_WARNING

    def test_special_warning_with_lower_bound(self):
        model = build_display_model(make_report(max_from="6-", max_to="over", warning=True))
        assert model.message == MSG_SPECIAL_WARNING

    def test_deep_focus(self):
        assert build_display_model(make_report(depth=300.0)).message == MSG_DEEP_FOCUS

    def test_level(self):
        report = make_report(codes=(), origin=None, max_from="5+", max_to="5+")
        assert "5 Upper" in build_display_model(report).message

    def test_plum(self):
        report = make_report(codes=(), condition="仮定震源要素")
        assert build_display_model(report).message == MSG_PLUM

    def test_ipf_without_intensity(self):
        report = make_report(codes=("2",), max_from=None, max_to=None)
        assert build_display_model(report).message == MSG_FEW_STATIONS

    def test_generic(self):
        assert build_display_model(make_report(warning=True)).message == MSG_WARNING
        assert build_display_model(make_report()).message == MSG_FORECAST


class TestModel:
    def test_headline_and_serial(self):
        model = build_display_model(make_report(warning=True, is_last_info=True))
        assert model.headline == "EEW (Warning)"
        assert model.serial_label == "#3 (final)"

    def test_canceled_headline(self):
        model = build_display_model(make_report(is_canceled=True))
        assert model.headline == "EEW (Canceled)"
        assert model.is_canceled

    def test_title_and_verb(self):
        confirmed = build_display_model(make_report())
        assumed = build_display_model(make_report(codes=(), condition="仮定震源要素"))
        assert confirmed.title == "Earthquake near Noto Peninsula"
        assert confirmed.time_verb == "occurred"
        assert assumed.title == "Shaking near Noto Peninsula"
        assert assumed.time_verb == "detected"

    def test_time_in_jst(self):
        assert build_display_model(make_report()).time_text == "1/1 16:10:00"

    def test_time_falls_back_to_arrival(self):
        arrival = datetime(2024, 1, 1, 7, 10, 5, tzinfo=timezone.utc)
        model = build_display_model(make_report(origin=None, arrival_time=arrival))
        assert model.time_text == "1/1 16:10:05"

    def test_magnitude_and_depth(self):
        model = build_display_model(make_report())
        assert model.magnitude == "M6.2"
        assert model.depth == "10 km"

    def test_long_period(self):
        model = build_display_model(make_report(max_long_period=ForecastRange.parse("2", "over")))
        assert model.long_period == "2 or above"
        model = build_display_model(make_report(max_long_period=ForecastRange.parse("0", "0")))
        assert model.long_period is None

    def test_areas_switch_to_zones(self):
        prefectures = tuple(f"P{i}" for i in range(9))
        model = build_display_model(make_report(prefectures=prefectures, zones=("Kanto", "Tohoku")))
        assert model.areas == ("Kanto", "Tohoku")
        model = build_display_model(make_report(prefectures=("Ishikawa",), zones=("Hokuriku",)))
        assert model.areas == ("Ishikawa",)

    def test_accuracy_descriptions(self):
        model = build_display_model(make_report(codes=("4", "9")))
        assert model.accuracy["epicenter"] == "IPF (5+ stations)"
        assert model.accuracy["hypocenter"].startswith("Final accuracy")
        assert model.accuracy["depth"] == "Unknown"
        assert model.accuracy["method"] == "IPF method (3+ stations)"

    def test_low_accuracy_flag(self):
        assert build_display_model(make_report(codes=("1",))).is_low_accuracy
        assert not build_display_model(make_report()).is_low_accuracy

    def test_color(self):
        assert build_display_model(make_report()).intensity_color == ("#E52A18", "white")


class TestFormatTime:
    def test_none(self):
        assert format_time(None) == "unknown"

    @pytest.mark.parametrize("ts, expected", [
        (datetime(2024, 3, 9, 23, 59, 59, tzinfo=timezone.utc), "3/10 08:59:59"),
        (datetime(2024, 3, 9, 8, 0, 0), "3/9 08:00:00"),
    ])
    def test_formats(self, ts, expected):
        assert format_time(ts) == expected


def test_regional_forecast_does_not_affect_model():
    regional = MappingProxyType({"390": ForecastRange.parse("7", "7")})
    model = build_display_model(make_report(regional_forecast=regional))
    assert model.display_intensity == "Max intensity 5 Lower"
