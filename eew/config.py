"""Engine configuration.

Every timing constant and user preference the engine depends on lives
in ``EngineConfig``. Values can come from keyword arguments, a dict, or
a JSON file::

    {
      "event_retention_seconds": 180,
      "cancel_removal_delay_seconds": 10,
      "show_low_accuracy": true,
      "intensity_threshold": "3"
    }
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, fields
from pathlib import Path

from eew.intensity import Intensity

logger = logging.getLogger(__name__)


@dataclass
class EngineConfig:
    """Tunables for the EEW engine.

    Args:
        event_retention_seconds: Events are removed once this long has
            passed since they were first observed.
        cancel_removal_delay_seconds: Delay between a cancellation and
            removal, so the canceled state is visible first.
        sweep_interval_seconds: Expiry sweep cadence.
        sweep_interval_follow_seconds: Sweep cadence while the camera
            auto-follows active events.
        wavefront_interval_seconds: Base wavefront recompute period.
        wavefront_interaction_factor: Period multiplier while the map
            is being panned/zoomed.
        wavefront_min_interval_seconds: Floor for the stretched period.
        show_low_accuracy: Show PLUM / LEVEL / IPF_1 events.
        ignore_stale_serials: Drop reports whose serial is lower than
            the event's current one (cancellations are always applied).
            Off by default: the last received report wins.
        intensity_threshold: Minimum forecast intensity for an event to
            get a display model, or None to show all.
        travel_table_source: Path or URL of the travel-time table.
        deep_focus_depth_km: Depth beyond which no reliable intensity
            estimate is shown.
    """

    event_retention_seconds: float = 180.0
    cancel_removal_delay_seconds: float = 10.0
    sweep_interval_seconds: float = 10.0
    sweep_interval_follow_seconds: float = 2.0
    wavefront_interval_seconds: float = 0.01
    wavefront_interaction_factor: float = 1.5
    wavefront_min_interval_seconds: float = 0.05
    show_low_accuracy: bool = False
    ignore_stale_serials: bool = False
    intensity_threshold: Intensity | None = None
    travel_table_source: str | None = None
    deep_focus_depth_km: float = 150.0

    def __post_init__(self):
        if self.intensity_threshold is not None:
            threshold = Intensity.parse(self.intensity_threshold)
            if not threshold.is_known:
                raise ValueError(f"Invalid intensity threshold: {self.intensity_threshold!r}")
            self.intensity_threshold = threshold
        for name in (
            "event_retention_seconds",
            "cancel_removal_delay_seconds",
            "sweep_interval_seconds",
            "sweep_interval_follow_seconds",
            "wavefront_interval_seconds",
        ):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")

    @classmethod
    def from_dict(cls, data: dict) -> "EngineConfig":
        """Build a config, ignoring (and logging) unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning(f"Ignoring unknown config keys: {', '.join(unknown)}")
        return cls(**{k: v for k, v in data.items() if k in known})

    @classmethod
    def from_file(cls, path: str | Path) -> "EngineConfig":
        """Load config from a JSON file, falling back to defaults."""
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (FileNotFoundError, json.JSONDecodeError) as e:
            logger.warning("Could not load config %s: %s. Using defaults.", path, e)
            return cls()
        if not isinstance(data, dict):
            logger.warning("Config %s is not a JSON object. Using defaults.", path)
            return cls()
        return cls.from_dict(data)

    def sweep_interval(self, auto_follow: bool) -> float:
        return self.sweep_interval_follow_seconds if auto_follow else self.sweep_interval_seconds

    def wavefront_interval(self, interacting: bool) -> float:
        base = self.wavefront_interval_seconds
        if not interacting:
            return base
        return max(base * self.wavefront_interaction_factor, self.wavefront_min_interval_seconds)
