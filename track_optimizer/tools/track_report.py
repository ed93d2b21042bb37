"""Summarise a recorded track: simplification savings and trip analytics."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from statistics import median
from typing import List, Optional, Sequence, Union

import pandas as pd

from ..analytics import analyze
from ..config import INVALID_ALTITUDE_M
from ..levels import AutomaticMode, OptimizationLevel, select_level
from ..models import RoutePoint
from ..simplifier import douglas_peucker, optimization_stats, simplify

PathLike = Union[str, Path]

_REQUIRED_COLUMNS = {"latitude", "longitude", "timestamp"}


def load_track(path: PathLike) -> List[RoutePoint]:
    """Read fixes from a CSV file into time-ordered ``RoutePoint`` objects.

    ``latitude``, ``longitude`` and ``timestamp`` are required. Missing
    ``altitude`` values are treated as invalid fixes and missing ``speed``
    values as unknown (-1). Rows whose coordinates or timestamp cannot be
    parsed are dropped.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        ValueError: If a required column is absent.
    """

    csv_path = Path(path)
    if not csv_path.is_file():
        raise FileNotFoundError(f"Track file not found: {csv_path}")
    df = pd.read_csv(csv_path)
    df.columns = [str(col).strip().lower() for col in df.columns]
    missing = _REQUIRED_COLUMNS - set(df.columns)
    if missing:
        raise ValueError(
            f"Missing columns in '{csv_path.name}': {', '.join(sorted(missing))}"
        )

    df["timestamp"] = pd.to_datetime(df["timestamp"], utc=True, errors="coerce")
    for column in ("latitude", "longitude"):
        df[column] = pd.to_numeric(df[column], errors="coerce")
    df["altitude"] = pd.to_numeric(
        df.get("altitude", pd.Series(index=df.index, dtype=float)), errors="coerce"
    ).fillna(INVALID_ALTITUDE_M - 1.0)
    df["speed"] = pd.to_numeric(
        df.get("speed", pd.Series(index=df.index, dtype=float)), errors="coerce"
    ).fillna(-1.0)
    df = df.dropna(subset=["latitude", "longitude", "timestamp"])
    df = df.sort_values("timestamp", kind="stable")

    return [
        RoutePoint(
            latitude=float(row.latitude),
            longitude=float(row.longitude),
            altitude=float(row.altitude),
            speed=float(row.speed),
            timestamp=row.timestamp.to_pydatetime(),
        )
        for row in df.itertuples(index=False)
    ]


def build_report(
    points: Sequence[RoutePoint],
    *,
    level: Optional[int] = None,
    batch: bool = False,
) -> dict[str, object]:
    """Simplify ``points`` and collect before/after statistics.

    Without an explicit ``level`` the automatic selector is fed the median
    known speed of the track.
    """

    if level is None:
        speeds = [pt.speed for pt in points if pt.speed >= 0]
        chosen = select_level(AutomaticMode(), median(speeds) if speeds else None)
    else:
        chosen = OptimizationLevel(level)
    settings = chosen.settings
    if batch:
        optimized = douglas_peucker(points, settings.max_deviation)
    else:
        optimized = simplify(points, settings)
    stats = optimization_stats(points, optimized)
    snapshot = analyze(points)
    return {
        "level": int(chosen),
        "level_name": chosen.name.lower(),
        "method": "douglas-peucker" if batch else "streaming",
        "original_points": stats.original_points,
        "optimized_points": stats.optimized_points,
        "reduction_pct": round(stats.reduction_percentage, 1),
        "original_distance_m": round(stats.original_distance_m, 1),
        "optimized_distance_m": round(stats.optimized_distance_m, 1),
        "duration_s": round(snapshot.duration_s, 1),
        "moving_time_s": round(snapshot.moving_time_s, 1),
        "average_moving_speed_kmh": round(snapshot.average_moving_speed_mps * 3.6, 2),
        "max_speed_kmh": round(snapshot.max_speed_mps * 3.6, 2),
        "elevation_gain_m": round(snapshot.elevation_gain_m, 1),
        "elevation_loss_m": round(snapshot.elevation_loss_m, 1),
    }


def _build_parser() -> argparse.ArgumentParser:
    """Return the CLI argument parser for the track report tool."""

    parser = argparse.ArgumentParser(
        description=(
            "Simplify a recorded GPS track and print point savings alongside"
            " distance, moving time and elevation analytics."
        )
    )
    parser.add_argument("csv", type=Path, help="CSV file with one fix per row")
    parser.add_argument(
        "--level",
        type=int,
        choices=[int(level) for level in OptimizationLevel],
        help="Fixed optimization level; defaults to speed-based selection",
    )
    parser.add_argument(
        "--batch",
        action="store_true",
        help="Use Douglas-Peucker instead of the streaming simplifier",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """CLI entry point used via ``python -m track_optimizer.tools.track_report``."""

    parser = _build_parser()
    args = parser.parse_args(argv)

    if not logging.getLogger().hasHandlers():
        logging.basicConfig(
            level=logging.INFO,
            format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
        )

    try:
        points = load_track(args.csv)
    except (FileNotFoundError, ValueError) as exc:
        logging.error("Failed to load track '%s': %s", args.csv, exc)
        return 1
    if not points:
        logging.error("Track '%s' contains no usable fixes", args.csv)
        return 1

    report = build_report(points, level=args.level, batch=args.batch)
    width = max(len(key) for key in report)
    for key, value in report.items():
        print(f"{key.ljust(width)}  {value}")
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
