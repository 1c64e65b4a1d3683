#!/usr/bin/env python3
"""EEW replay CLI: feed a recorded report stream through the engine.

Usage:
    eew-replay feed.jsonl
    eew-replay feed.jsonl --table tjma2001.txt --speed 4
    eew-replay feed.jsonl --config eew.json --show-low-accuracy --linger 12

Each feed line is a JSON object::

    {"provider": "dmdata", "at": 0.0, "data": {...telegram...}}

``at`` is seconds from the start of the replay. Merged intensity and
warning-area changes are printed as they happen; a JSON summary of the
final state is printed at the end.

Options:
    --table SOURCE      Travel-time table path or URL (enables wavefronts)
    --config FILE       Engine config JSON (default: built-in defaults)
    --speed X           Replay speed multiplier; 0 replays without waiting
    --linger SECS       Keep the engine running after the last report
    --show-low-accuracy Include PLUM / LEVEL / IPF (1 station) events
    --verbose           Show detailed logging
    --quiet             Only print the final summary
"""

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import dataclass
from pathlib import Path

from eew.config import EngineConfig
from eew.engine import EEWEngine

logger = logging.getLogger(__name__)


@dataclass
class FeedEntry:
    provider: str
    at: float
    data: dict


def read_feed(path: str | Path) -> list[FeedEntry]:
    """Read a JSON-lines feed. Unusable lines are logged and skipped."""
    entries = []
    with open(path, encoding="utf-8") as f:
        for lineno, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                obj = json.loads(line)
            except json.JSONDecodeError as e:
                logger.warning(f"{path}:{lineno}: invalid JSON ({e}), skipping")
                continue
            if not isinstance(obj, dict) or not isinstance(obj.get("data"), dict):
                logger.warning(f"{path}:{lineno}: expected an object with 'data', skipping")
                continue
            try:
                at = float(obj.get("at", 0.0))
            except (TypeError, ValueError):
                logger.warning(f"{path}:{lineno}: bad 'at' value {obj.get('at')!r}, using 0")
                at = 0.0
            entries.append(FeedEntry(provider=str(obj.get("provider", "dmdata")), at=at, data=obj["data"]))
    entries.sort(key=lambda e: e.at)
    return entries


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="eew-replay",
        description="Replay a recorded EEW report feed through the aggregation engine.",
    )
    parser.add_argument("feed", help="JSON-lines feed file")
    parser.add_argument(
        "--table",
        default=None,
        help="Travel-time table path or URL (overrides config)",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Engine config JSON file",
    )
    parser.add_argument(
        "--speed",
        type=float,
        default=1.0,
        help="Replay speed multiplier; 0 replays without waiting (default: 1)",
    )
    parser.add_argument(
        "--linger",
        type=float,
        default=0.0,
        help="Seconds to keep running after the last report (default: 0)",
    )
    parser.add_argument(
        "--show-low-accuracy",
        action="store_true",
        help="Include low-accuracy (PLUM / LEVEL / single-station IPF) events",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Show detailed debug logging",
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Suppress progress output; only print the final summary",
    )
    return parser.parse_args(argv)


def setup_logging(verbose: bool, quiet: bool):
    """Configure logging based on verbosity flags."""
    if quiet:
        level = logging.WARNING
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    if not verbose:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)


def progress(msg: str, quiet: bool):
    """Print a progress message unless quiet mode."""
    if not quiet:
        print(msg, flush=True)


def build_config(args: argparse.Namespace) -> EngineConfig:
    config = EngineConfig.from_file(args.config) if args.config else EngineConfig()
    if args.table:
        config.travel_table_source = args.table
    if args.show_low_accuracy:
        config.show_low_accuracy = True
    return config


def summarize(engine: EEWEngine) -> dict:
    """JSON-serialisable summary of the engine's current state."""
    return {
        "events": [
            {
                "event_id": m.event_id,
                "serial": m.serial_label,
                "headline": m.headline,
                "title": m.title,
                "intensity": m.display_intensity,
                "magnitude": m.magnitude,
                "depth": m.depth,
                "method": m.method.value,
            }
            for m in engine.display_models()
        ],
        "merged_intensity": {code: v.label for code, v in engine.merged_intensity.items()},
        "warning_regions": [{"code": r.code, "name": r.name} for r in engine.merged_warning_regions],
        "wavefronts": [
            {"event_id": f.event_id, "p_km": f.p_distance_km if f.has_p else None,
             "s_km": f.s_distance_km if f.has_s else None}
            for f in engine.wavefronts.fronts
        ],
        "table_available": engine.table_available,
    }


async def replay(entries: list[FeedEntry], config: EngineConfig, speed: float = 1.0,
                 linger: float = 0.0, quiet: bool = False) -> dict:
    """Run the engine over ``entries`` on the current event loop."""
    engine = EEWEngine(config)
    engine.on_intensity_change(lambda m: progress(
        "intensity: " + (", ".join(f"{c}={v.label}" for c, v in m.items()) or "(none)"), quiet))
    engine.on_warning_change(lambda w: progress(
        "warnings: " + (", ".join(r.name or r.code for r in w) or "(none)"), quiet))
    engine.on_event_removed(lambda eid, reason: progress(f"removed {eid} ({reason})", quiet))

    engine.start()
    try:
        if config.travel_table_source:
            await engine.load_travel_table()

        loop = asyncio.get_running_loop()
        started = loop.time()
        for entry in entries:
            if speed > 0:
                delay = started + entry.at / speed - loop.time()
                if delay > 0:
                    await asyncio.sleep(delay)
            event = engine.ingest(entry.data, entry.provider)
            if event is not None:
                progress(f"{entry.provider} {event.event_id} #{event.current.serial_no}"
                         f"{' canceled' if event.is_canceled else ''}", quiet)

        if linger > 0:
            await asyncio.sleep(linger)
        engine.wavefront.refresh()
        return summarize(engine)
    finally:
        engine.close()


def main(argv=None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    setup_logging(args.verbose, args.quiet)

    try:
        entries = read_feed(args.feed)
    except OSError as e:
        print(f"ERROR: Cannot read feed: {e}", file=sys.stderr)
        return 1
    try:
        config = build_config(args)
    except ValueError as e:
        print(f"ERROR: Invalid config: {e}", file=sys.stderr)
        return 1

    try:
        summary = asyncio.run(replay(entries, config, args.speed, args.linger, args.quiet))
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return 130

    print(json.dumps(summary, ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
