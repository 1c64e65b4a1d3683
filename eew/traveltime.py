"""Travel-time table and P/S wavefront distance interpolation.

The table (JMA2001 format) has one row per (depth, distance) sample::

    P  1.234 S  2.103   10   5

i.e. ``P <p seconds> S <s seconds> <depth km> <distance km>``. It is
loaded once and never modified.

``interpolate`` finds, at the exact depth of the hypocenter, the rows
bracketing the elapsed time and interpolates distance linearly. Depths
are not interpolated: a depth missing from the table yields NaN, as do
depths over 700 km and times over 2000 s. NaN means "nothing to draw".
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

import httpx
import numpy as np

from eew.api_client import AsyncAPIClient
from eew.errors import TableUnavailable

logger = logging.getLogger(__name__)

MAX_DEPTH_KM = 700
MAX_ELAPSED_SECONDS = 2000

NAN_PAIR = (math.nan, math.nan)


@dataclass(frozen=True)
class TravelTimeRow:
    p_time: float
    s_time: float
    depth_km: int
    distance_km: int


class TravelTimeTable:
    """Immutable column store of travel-time rows."""

    def __init__(self, p_time, s_time, depth_km, distance_km):
        self.p_time = _frozen(np.asarray(p_time, dtype=float))
        self.s_time = _frozen(np.asarray(s_time, dtype=float))
        self.depth_km = _frozen(np.asarray(depth_km, dtype=int))
        self.distance_km = _frozen(np.asarray(distance_km, dtype=float))
        sizes = {len(self.p_time), len(self.s_time), len(self.depth_km), len(self.distance_km)}
        if len(sizes) != 1:
            raise ValueError("Travel-time columns must have equal length")

    @classmethod
    def from_rows(cls, rows: Iterable[TravelTimeRow]) -> "TravelTimeTable":
        rows = list(rows)
        return cls(
            [r.p_time for r in rows],
            [r.s_time for r in rows],
            [r.depth_km for r in rows],
            [r.distance_km for r in rows],
        )

    def __len__(self) -> int:
        return len(self.p_time)

    @property
    def depths(self) -> list[int]:
        return [int(d) for d in np.unique(self.depth_km)]

    def interpolate(self, depth_km: float, elapsed_seconds: float) -> tuple[float, float]:
        return interpolate(self, depth_km, elapsed_seconds)


def _frozen(arr: np.ndarray) -> np.ndarray:
    arr.flags.writeable = False
    return arr


def _bracket(times: np.ndarray, distances: np.ndarray, t: float) -> float:
    """Distance at time ``t`` from the rows bracketing it, or NaN."""
    before = np.flatnonzero(times <= t)
    after = np.flatnonzero(times >= t)
    if before.size == 0 or after.size == 0:
        return math.nan
    i1 = before[np.argmax(times[before])]
    i2 = after[np.argmin(times[after])]
    t1, t2 = times[i1], times[i2]
    d1, d2 = distances[i1], distances[i2]
    if t2 == t1:
        return float(d1)
    return float(d1 + (t - t1) / (t2 - t1) * (d2 - d1))


def interpolate(
    table: TravelTimeTable, depth_km: float, elapsed_seconds: float
) -> tuple[float, float]:
    """P and S wavefront distances (km) after ``elapsed_seconds``.

    Args:
        table: Loaded travel-time table.
        depth_km: Hypocenter depth; must match a table depth exactly.
        elapsed_seconds: Time since origin.

    Returns:
        ``(p_distance_km, s_distance_km)``. Either may be NaN when the
        elapsed time cannot be bracketed for that phase.

    Examples:
        >>> t = TravelTimeTable([10, 20], [18, 30], [30, 30], [80, 100])
        >>> interpolate(t, 30, 15)[0]
        90.0
    """
    if depth_km is None or elapsed_seconds is None:
        return NAN_PAIR
    if math.isnan(depth_km) or math.isnan(elapsed_seconds):
        return NAN_PAIR
    if depth_km > MAX_DEPTH_KM or elapsed_seconds > MAX_ELAPSED_SECONDS:
        return NAN_PAIR

    mask = table.depth_km == depth_km
    if not mask.any():
        return NAN_PAIR

    distances = table.distance_km[mask]
    p_distance = _bracket(table.p_time[mask], distances, elapsed_seconds)
    s_distance = _bracket(table.s_time[mask], distances, elapsed_seconds)
    return p_distance, s_distance


# ── Loading ───────────────────────────────────────────────────────────────


def parse_table(text: str, source: str = "<text>") -> TravelTimeTable:
    """Parse JMA2001-format text.

    Raises:
        TableUnavailable: If the text is empty or any row is malformed.
    """
    p_time, s_time, depth, distance = [], [], [], []
    for lineno, line in enumerate(text.strip().splitlines(), start=1):
        parts = line.split()
        if not parts:
            continue
        try:
            p_time.append(float(parts[1]))
            s_time.append(float(parts[3]))
            depth.append(int(parts[4]))
            distance.append(int(parts[5]))
        except (IndexError, ValueError) as e:
            raise TableUnavailable(source, f"malformed row {lineno}: {line.strip()!r} ({e})") from e
    if not p_time:
        raise TableUnavailable(source, "table is empty")
    table = TravelTimeTable(p_time, s_time, depth, distance)
    logger.info(f"Loaded travel-time table from {source}: {len(table)} rows, "
                f"{len(table.depths)} depths")
    return table


def load_table(path: str | Path) -> TravelTimeTable:
    """Read and parse a table file from disk."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise TableUnavailable(str(path), str(e)) from e
    return parse_table(text, source=str(path))


async def fetch_table(url: str, client: AsyncAPIClient | None = None) -> TravelTimeTable:
    """Fetch and parse a table over HTTP.

    Args:
        url: Absolute URL of the table.
        client: Optional client to reuse; a temporary one is created
            and closed otherwise.
    """
    owned = client is None
    if owned:
        client = AsyncAPIClient()
    try:
        text = await client.get_text(url)
    except httpx.HTTPError as e:
        raise TableUnavailable(url, f"{type(e).__name__}: {e}") from e
    finally:
        if owned:
            await client.aclose()
    return parse_table(text, source=url)


async def obtain_table(source: str, client: AsyncAPIClient | None = None) -> TravelTimeTable:
    """Load a table from a URL or a local path."""
    if source.startswith("http://") or source.startswith("https://"):
        return await fetch_table(source, client=client)
    return load_table(source)
