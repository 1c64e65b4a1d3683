"""JMA seismic intensity scale: ordering, parsing and display labels.

Forecast intensities arrive as categorical codes ("0" .. "7", with "5-",
"5+", "6-", "6+" in between). A region forecast is a range whose upper
end may be the sentinel "over", meaning only the lower end is known.
Such values keep a ``lower_bound_only`` flag so they render as
"5 Lower or above" while still comparing by their class.

Usage::

    from eew.intensity import Intensity, ForecastRange, to_display

    rng = ForecastRange(lower=Intensity.I5_LOWER, upper=Intensity.OVER)
    rng.resolve().label        # '5 Lower or above'
    Intensity.parse("6+").rank  # 8
    to_display("unknown")      # 'unknown'
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable

# Ordinal rank is the index into this tuple.
INTENSITY_ORDER = ("0", "1", "2", "3", "4", "5-", "5+", "6-", "6+", "7")

# Provider spellings of "unknown"
_UNKNOWN_ALIASES = frozenset({"unknown", "不明", ""})

_LABELS = {
    "0": "0",
    "1": "1",
    "2": "2",
    "3": "3",
    "4": "4",
    "5-": "5 Lower",
    "5+": "5 Upper",
    "6-": "6 Lower",
    "6+": "6 Upper",
    "7": "7",
}

# (background, text) per class, JMA-style palette
INTENSITY_COLORS = {
    "0": ("#62626B", "white"),
    "1": ("#2B8EB2", "white"),
    "2": ("#4CD0A7", "black"),
    "3": ("#F6CB51", "black"),
    "4": ("#FF9939", "black"),
    "5-": ("#E52A18", "white"),
    "5+": ("#C31B1B", "white"),
    "6-": ("#A50C6B", "white"),
    "6+": ("#930A7A", "white"),
    "7": ("#5F0CA2", "white"),
    "unknown": ("#62626B", "white"),
}
DEFAULT_COLOR = ("#CCCCCC", "black")


class Intensity(Enum):
    """Forecast intensity class plus the "unknown" and "over" sentinels."""

    UNKNOWN = "unknown"
    OVER = "over"
    I0 = "0"
    I1 = "1"
    I2 = "2"
    I3 = "3"
    I4 = "4"
    I5_LOWER = "5-"
    I5_UPPER = "5+"
    I6_LOWER = "6-"
    I6_UPPER = "6+"
    I7 = "7"

    @classmethod
    def parse(cls, value) -> "Intensity":
        """Parse a provider code. Unrecognised or missing values become UNKNOWN."""
        if isinstance(value, Intensity):
            return value
        if value is None:
            return cls.UNKNOWN
        text = str(value).strip()
        if text in _UNKNOWN_ALIASES:
            return cls.UNKNOWN
        try:
            return cls(text)
        except ValueError:
            return cls.UNKNOWN

    @property
    def rank(self) -> int:
        """Ordinal rank 0-9; sentinels rank -1, below every real class."""
        try:
            return INTENSITY_ORDER.index(self.value)
        except ValueError:
            return -1

    @property
    def is_known(self) -> bool:
        return self.rank >= 0

    @property
    def label(self) -> str:
        return to_display(self)


def to_display(value, lower_bound_only: bool = False) -> str:
    """Convert a raw class to its display label.

    Args:
        value: An ``Intensity`` or a provider code string.
        lower_bound_only: True when only a lower bound is known
            (forecast upper end was "over"). Known classes are then
            annotated as "<label> or above".

    Returns:
        Display label. Unknown values render as "unknown", never "0".

    Examples:
        >>> to_display("5-")
        '5 Lower'
        >>> to_display("5-", lower_bound_only=True)
        '5 Lower or above'
        >>> to_display(None)
        'unknown'
    """
    intensity = Intensity.parse(value)
    if intensity is Intensity.UNKNOWN:
        return "unknown"
    if intensity is Intensity.OVER:
        return "over"
    label = _LABELS[intensity.value]
    if lower_bound_only:
        label += " or above"
    return label


@dataclass(frozen=True)
class ForecastIntensity:
    """A resolved single-valued forecast with its lower-bound annotation."""

    intensity: Intensity = Intensity.UNKNOWN
    lower_bound_only: bool = False

    @property
    def rank(self) -> int:
        return self.intensity.rank

    @property
    def label(self) -> str:
        return to_display(self.intensity, self.lower_bound_only)

    @property
    def color(self) -> tuple[str, str]:
        return INTENSITY_COLORS.get(self.intensity.value, DEFAULT_COLOR)


UNKNOWN_FORECAST = ForecastIntensity()


@dataclass(frozen=True)
class ForecastRange:
    """A forecast ``from``/``to`` pair as published by the provider."""

    lower: Intensity = Intensity.UNKNOWN
    upper: Intensity = Intensity.UNKNOWN

    @classmethod
    def parse(cls, lower=None, upper=None) -> "ForecastRange":
        return cls(lower=Intensity.parse(lower), upper=Intensity.parse(upper))

    @property
    def lower_bound_only(self) -> bool:
        return self.upper is Intensity.OVER

    def resolve(self) -> ForecastIntensity:
        """Collapse the range to one value: ``to``, or ``from`` when ``to`` is "over"."""
        if self.lower_bound_only:
            return ForecastIntensity(self.lower, lower_bound_only=True)
        return ForecastIntensity(self.upper, lower_bound_only=False)


def _merge_key(value: ForecastIntensity) -> tuple[int, bool, bool]:
    # Distinct values never share a key.
    return (value.rank, not value.lower_bound_only, value.intensity is not Intensity.UNKNOWN)


def max_forecast(values: Iterable[ForecastIntensity]) -> ForecastIntensity | None:
    """Return the value with the highest rank.

    On equal rank an exact value beats a lower-bound-only one, and an
    unknown value never wins over a known one. The result is the same
    for any ordering of ``values``. Returns None for an empty iterable.
    """
    return max(values, key=_merge_key, default=None)


def meets_threshold(value: ForecastIntensity, threshold: Intensity) -> bool:
    """Whether a forecast reaches ``threshold`` (unknown never does)."""
    return value.rank >= 0 and value.rank >= threshold.rank
