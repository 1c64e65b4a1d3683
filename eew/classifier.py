"""Estimation-method classification for EEW reports.

The method tag says how a report's hypocenter was obtained. It drives
low-accuracy filtering, the epicenter icon, and display copy.

Rules, in order:

1. condition is the hypothetical-hypocenter marker -> PLUM
2. first epicenter accuracy code, parsed as an integer:
   1 -> IPF_1 when an origin time is present, else LEVEL;
   2 -> IPF_2; 3 or 4 -> IPF_3PLUS;
   anything else -> UNKNOWN with origin time, else LEVEL
3. no accuracy codes -> UNKNOWN with origin time, else LEVEL
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Sequence

HYPOTHETICAL_HYPOCENTER = "hypothetical-hypocenter"
# Provider literal for the same condition
HYPOTHETICAL_HYPOCENTER_JA = "仮定震源要素"

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


class Method(Enum):
    PLUM = "PLUM"
    LEVEL = "LEVEL"
    IPF_1 = "IPF_1"
    IPF_2 = "IPF_2"
    IPF_3PLUS = "IPF_3PLUS"
    UNKNOWN = "UNKNOWN"

    @property
    def is_low_accuracy(self) -> bool:
        return self in LOW_ACCURACY_METHODS

    @property
    def is_assumed_hypocenter(self) -> bool:
        return self in (Method.PLUM, Method.LEVEL)

    @property
    def is_ipf(self) -> bool:
        return self in (Method.IPF_1, Method.IPF_2, Method.IPF_3PLUS)

    @property
    def icon_kind(self) -> str:
        return "assumed" if self.is_assumed_hypocenter else "confirmed"

    @property
    def description(self) -> str:
        return METHOD_DESCRIPTIONS[self]


LOW_ACCURACY_METHODS = frozenset({Method.PLUM, Method.LEVEL, Method.IPF_1})

METHOD_DESCRIPTIONS = {
    Method.PLUM: "PLUM method",
    Method.LEVEL: "Level method",
    Method.IPF_1: "IPF method (1 station)",
    Method.IPF_2: "IPF method (2 stations)",
    Method.IPF_3PLUS: "IPF method (3+ stations)",
    Method.UNKNOWN: "Unknown",
}


def parse_code(value) -> int | None:
    """Parse the leading integer of an accuracy code ("4" and "4a" both give 4)."""
    if value is None:
        return None
    match = _LEADING_INT.match(str(value))
    return int(match.group(1)) if match else None


def is_hypothetical(condition: str | None) -> bool:
    return condition in (HYPOTHETICAL_HYPOCENTER, HYPOTHETICAL_HYPOCENTER_JA)


def classify(
    condition: str | None,
    accuracy_codes: Sequence[str],
    has_origin_time: bool,
) -> Method:
    """Map a report's condition and accuracy fields to a ``Method``."""
    fallback = Method.UNKNOWN if has_origin_time else Method.LEVEL

    if is_hypothetical(condition):
        return Method.PLUM
    if not accuracy_codes:
        return fallback

    code = parse_code(accuracy_codes[0])
    if code == 1:
        return Method.IPF_1 if has_origin_time else Method.LEVEL
    if code == 2:
        return Method.IPF_2
    if code in (3, 4):
        return Method.IPF_3PLUS
    return fallback


# Provider accuracy code descriptions, by field
ACCURACY_DESCRIPTIONS = {
    "epicenters": {
        "0": "Unknown",
        "1": "P/S level exceedance, IPF (1 station) or assumed hypocenter",
        "2": "IPF (2 stations)",
        "3": "IPF (3-4 stations)",
        "4": "IPF (5+ stations)",
        "5": "NIED system (4 or fewer stations, or no accuracy info)",
        "6": "NIED system (5+ stations)",
        "7": "EPOS (offshore)",
        "8": "EPOS (inland)",
        "9": "Final accuracy from hypocenter and magnitude (JMA)",
    },
    "depth": {
        "0": "Unknown",
        "1": "P/S level exceedance, IPF (1 station) or assumed hypocenter",
        "2": "IPF (2 stations)",
        "3": "IPF (3-4 stations)",
        "4": "IPF (5+ stations)",
        "5": "NIED system (4 or fewer stations, or no accuracy info)",
        "6": "NIED system (5+ stations)",
        "7": "EPOS (offshore)",
        "8": "EPOS (inland)",
    },
    "magnitude_calculation": {
        "0": "Unknown",
        "2": "Velocity magnitude",
        "3": "All phases, P phase",
        "4": "P phase / all phases mixed",
        "5": "All stations, all phases",
        "6": "EPOS",
        "8": "P/S level exceedance or assumed hypocenter",
    },
    "magnitude_stations": {
        "0": "Unknown",
        "1": "1 station",
        "2": "2 stations",
        "3": "3 stations",
        "4": "4 stations",
        "5": "5+ stations",
    },
}


def describe_accuracy(category: str, code) -> str:
    """Describe a provider accuracy code.

    Missing codes describe as "Unknown"; codes outside the table as
    "Unrecognised value".
    """
    if code is None or code == "":
        return "Unknown"
    table = ACCURACY_DESCRIPTIONS.get(category, {})
    return table.get(str(code), "Unrecognised value")
