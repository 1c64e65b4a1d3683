"""Tests for eew.intensity: intensity scale ordering, parsing and labels."""

import pytest

from eew.intensity import (
    INTENSITY_ORDER,
    ForecastIntensity,
    ForecastRange,
    Intensity,
    max_forecast,
    meets_threshold,
    to_display,
)


class TestParse:
    """Provider codes map onto the enum; junk becomes UNKNOWN."""

    @pytest.mark.parametrize("code", INTENSITY_ORDER)
    def test_known_codes(self, code):
        assert Intensity.parse(code).value == code

    @pytest.mark.parametrize("raw", [None, "", "不明", "unknown", "9", "5弱"])
    def test_unknown_aliases(self, raw):
        assert Intensity.parse(raw) is Intensity.UNKNOWN

    def test_over_sentinel(self):
        assert Intensity.parse("over") is Intensity.OVER

    def test_whitespace_stripped(self):
        assert Intensity.parse(" 5+ ") is Intensity.I5_UPPER

    def test_integer_input(self):
        assert Intensity.parse(3) is Intensity.I3


class TestRank:
    def test_ranks_follow_scale(self):
        ranks = [Intensity.parse(c).rank for c in INTENSITY_ORDER]
        assert ranks == list(range(10))

    def test_sentinels_rank_below_zero(self):
        assert Intensity.UNKNOWN.rank == -1
        assert Intensity.OVER.rank == -1
        assert Intensity.UNKNOWN.rank < Intensity.I0.rank

    def test_is_known(self):
        assert Intensity.I0.is_known
        assert not Intensity.UNKNOWN.is_known


class TestToDisplay:
    def test_plain_labels(self):
        assert to_display("5-") == "5 Lower"
        assert to_display("6+") == "6 Upper"
        assert to_display("7") == "7"

    def test_lower_bound_annotated(self):
        assert to_display("5-", lower_bound_only=True) == "5 Lower or above"

    def test_unknown_never_zero(self):
        """Missing intensity renders as 'unknown', not '0'."""
        assert to_display(None) == "unknown"
        assert to_display("不明", lower_bound_only=True) == "unknown"

    def test_over_label(self):
        assert to_display("over") == "over"


class TestForecastRange:
    def test_resolve_uses_upper(self):
        rng = ForecastRange.parse("4", "5-")
        assert rng.resolve() == ForecastIntensity(Intensity.I5_LOWER, False)

    def test_resolve_over_uses_lower(self):
        rng = ForecastRange.parse("5-", "over")
        resolved = rng.resolve()
        assert resolved.intensity is Intensity.I5_LOWER
        assert resolved.lower_bound_only
        assert resolved.label == "5 Lower or above"

    def test_resolve_unknown(self):
        assert not ForecastRange.parse(None, None).resolve().intensity.is_known

    def test_color_lookup(self):
        assert ForecastIntensity(Intensity.I3).color == ("#F6CB51", "black")


class TestMaxForecast:
    """Merges compare by class; the annotation only breaks ties."""

    def test_highest_rank_wins(self):
        values = [ForecastIntensity(Intensity.I3), ForecastIntensity(Intensity.I5_UPPER)]
        assert max_forecast(values).intensity is Intensity.I5_UPPER

    def test_unknown_never_beats_known(self):
        values = [ForecastIntensity(Intensity.UNKNOWN), ForecastIntensity(Intensity.I0)]
        assert max_forecast(values).intensity is Intensity.I0

    def test_tie_prefers_exact_value(self):
        annotated = ForecastIntensity(Intensity.I4, lower_bound_only=True)
        exact = ForecastIntensity(Intensity.I4)
        assert max_forecast([annotated, exact]) is exact
        assert max_forecast([exact, annotated]) is exact

    def test_sentinel_tie_is_order_free(self):
        over = ForecastIntensity(Intensity.OVER)
        unknown = ForecastIntensity(Intensity.UNKNOWN)
        assert max_forecast([unknown, over]) is over
        assert max_forecast([over, unknown]) is over

    def test_annotated_value_compares_by_class(self):
        annotated = ForecastIntensity(Intensity.I5_LOWER, lower_bound_only=True)
        plain = ForecastIntensity(Intensity.I4)
        assert max_forecast([plain, annotated]) is annotated

    def test_all_unknown_stays_unknown(self):
        values = [ForecastIntensity(Intensity.UNKNOWN), ForecastIntensity(Intensity.UNKNOWN)]
        assert max_forecast(values).intensity is Intensity.UNKNOWN

    def test_empty(self):
        assert max_forecast([]) is None


class TestMeetsThreshold:
    def test_reaches(self):
        assert meets_threshold(ForecastIntensity(Intensity.I3), Intensity.I3)
        assert meets_threshold(ForecastIntensity(Intensity.I5_LOWER), Intensity.I3)

    def test_below(self):
        assert not meets_threshold(ForecastIntensity(Intensity.I2), Intensity.I3)

    def test_unknown_never_meets(self):
        assert not meets_threshold(ForecastIntensity(Intensity.UNKNOWN), Intensity.I0)
