"""CLI tool that summarises a recorded track from CSV."""

from __future__ import annotations

from pathlib import Path

import pandas as pd
import pytest

from conftest import make_straight_track
from track_optimizer.tools.track_report import build_report, load_track, main


def _write_track(path: Path, points) -> Path:
    frame = pd.DataFrame(
        {
            "Latitude": [pt.latitude for pt in points],
            "Longitude": [pt.longitude for pt in points],
            "Altitude": [pt.altitude for pt in points],
            "Speed": [pt.speed for pt in points],
            "Timestamp": [pt.timestamp.isoformat() for pt in points],
        }
    )
    frame.to_csv(path, index=False)
    return path


def test_load_track_parses_and_sorts(tmp_path):
    points = make_straight_track(10)
    csv_path = _write_track(tmp_path / "track.csv", list(reversed(points)))
    loaded = load_track(csv_path)
    assert len(loaded) == 10
    assert [pt.timestamp for pt in loaded] == [pt.timestamp for pt in points]
    assert loaded[0].latitude == pytest.approx(points[0].latitude)
    assert loaded[0].speed == pytest.approx(5.0)


def test_load_track_defaults_optional_columns(tmp_path):
    csv_path = tmp_path / "bare.csv"
    csv_path.write_text(
        "latitude,longitude,timestamp\n"
        "52.0,13.0,2025-06-01T08:00:00Z\n"
        "bad,13.0,2025-06-01T08:00:05Z\n"
        "52.001,13.0,2025-06-01T08:00:10Z\n"
    )
    loaded = load_track(csv_path)
    assert len(loaded) == 2
    assert all(pt.speed == -1.0 for pt in loaded)
    assert all(pt.altitude < -100.0 for pt in loaded)


def test_load_track_missing_column(tmp_path):
    csv_path = tmp_path / "broken.csv"
    csv_path.write_text("latitude,timestamp\n52.0,2025-06-01T08:00:00Z\n")
    with pytest.raises(ValueError):
        load_track(csv_path)
    with pytest.raises(FileNotFoundError):
        load_track(tmp_path / "missing.csv")


def test_build_report_selects_level_from_speed():
    report = build_report(make_straight_track(50))
    # 5 m/s = 18 km/h falls in the walking band.
    assert report["level"] == 1
    assert report["original_points"] == 50
    assert report["optimized_points"] == 6
    assert report["moving_time_s"] == pytest.approx(98.0)


def test_build_report_fixed_level_and_batch():
    report = build_report(make_straight_track(50), level=5, batch=True)
    assert report["level"] == 5
    assert report["method"] == "douglas-peucker"
    assert report["optimized_points"] == 2


def test_main_prints_summary(tmp_path, capsys):
    csv_path = _write_track(tmp_path / "track.csv", make_straight_track(20))
    assert main([str(csv_path), "--level", "2"]) == 0
    out = capsys.readouterr().out
    assert "optimized_points" in out
    assert "elevation_gain_m" in out


def test_main_reports_load_failure(tmp_path):
    assert main([str(tmp_path / "nope.csv")]) == 1
