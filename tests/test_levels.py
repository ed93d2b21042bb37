"""Level selection: fixed, speed-based and custom threshold tables."""

from __future__ import annotations

import logging

import pytest

from track_optimizer import config
from track_optimizer.errors import MalformedThresholdsError
from track_optimizer.levels import (
    DEFAULT_THRESHOLDS,
    LEVEL_SETTINGS,
    AutomaticMode,
    CustomMode,
    FixedMode,
    OptimizationLevel,
    SpeedThresholds,
    level_for_speed,
    select_level,
    select_settings,
    settings_for_transportation,
)
from track_optimizer.simplifier import LEVEL_2, LEVEL_4, PRESETS


def kmh(value: float) -> float:
    return value / 3.6


@pytest.mark.parametrize(
    "speed_kmh, expected",
    [
        (0.0, OptimizationLevel.WALKING),
        (5.0, OptimizationLevel.WALKING),
        (19.9, OptimizationLevel.WALKING),
        (25.0, OptimizationLevel.CYCLING),
        (50.0, OptimizationLevel.URBAN),
        (80.0, OptimizationLevel.RURAL),
        (120.0, OptimizationLevel.HIGHWAY),
        (900.0, OptimizationLevel.HIGHWAY),
    ],
)
def test_automatic_selection_uses_default_bands(speed_kmh, expected):
    assert select_level(AutomaticMode(), kmh(speed_kmh)) is expected


def test_unknown_or_negative_speed_counts_as_walking():
    assert level_for_speed(None) is OptimizationLevel.WALKING
    assert level_for_speed(-3.0) is OptimizationLevel.WALKING


def test_fixed_mode_ignores_speed():
    mode = FixedMode(OptimizationLevel.RURAL)
    assert select_level(mode, kmh(3.0)) is OptimizationLevel.RURAL
    assert select_settings(mode, kmh(200.0)) == LEVEL_4


def test_custom_mode_uses_supplied_table():
    table = SpeedThresholds.validated(5.0, 10.0, 15.0, 20.0)
    mode = CustomMode(table)
    assert select_level(mode, kmh(12.0)) is OptimizationLevel.URBAN
    assert select_level(mode, kmh(30.0)) is OptimizationLevel.HIGHWAY


def test_malformed_custom_table_falls_back_to_level_two(caplog):
    mode = CustomMode(SpeedThresholds(30.0, 20.0, 60.0, 87.0))
    with caplog.at_level(logging.WARNING):
        assert select_level(mode, kmh(100.0)) is OptimizationLevel.CYCLING
    assert select_settings(mode, kmh(100.0)) == LEVEL_2
    assert "strictly increasing" in caplog.text


def test_validated_rejects_non_increasing_tables():
    with pytest.raises(MalformedThresholdsError):
        SpeedThresholds.validated(20.0, 20.0, 60.0, 87.0)
    with pytest.raises(ValueError):
        SpeedThresholds.validated(float("nan"), 35.0, 60.0, 87.0)


def test_default_table():
    assert DEFAULT_THRESHOLDS.as_tuple() == (20.0, 35.0, 60.0, 87.0)
    assert DEFAULT_THRESHOLDS.is_well_formed()


def test_level_settings_cover_every_level():
    for level in OptimizationLevel:
        assert level.settings is PRESETS[int(level)]
        assert LEVEL_SETTINGS[level] is level.settings


def test_unsupported_mode_raises():
    with pytest.raises(TypeError):
        select_level("automatic", 3.0)  # type: ignore[arg-type]


@pytest.mark.parametrize(
    "name, level",
    [
        ("walking", 1),
        ("Hiking", 1),
        ("cycling", 2),
        ("car", 3),
        ("highway", 4),
        (" train ", 5),
        ("hovercraft", 2),
        (None, 2),
    ],
)
def test_settings_for_transportation(name, level):
    assert settings_for_transportation(name) is PRESETS[level]


def test_automatic_mode_rejects_malformed_table():
    with pytest.raises(MalformedThresholdsError):
        AutomaticMode(SpeedThresholds(90.0, 10.0, 20.0, 30.0))
    with pytest.raises(MalformedThresholdsError):
        AutomaticMode(SpeedThresholds(20.0, 35.0, float("nan"), 87.0))


def test_level_for_speed_rejects_malformed_table():
    with pytest.raises(MalformedThresholdsError):
        level_for_speed(kmh(50.0), SpeedThresholds(90.0, 10.0, 20.0, 30.0))


def test_custom_mode_keeps_level_two_fallback():
    mode = CustomMode(SpeedThresholds(90.0, 10.0, 20.0, 30.0))
    assert select_level(mode, kmh(50.0)) is OptimizationLevel.CYCLING


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("10,25,50,100", (10.0, 25.0, 50.0, 100.0)),
        ("90,10,20,30", (20.0, 35.0, 60.0, 87.0)),
        ("20,20,60,87", (20.0, 35.0, 60.0, 87.0)),
        ("20,35,nan,87", (20.0, 35.0, 60.0, 87.0)),
        ("20,35,60", (20.0, 35.0, 60.0, 87.0)),
        ("fast,35,60,87", (20.0, 35.0, 60.0, 87.0)),
    ],
)
def test_env_speed_table_must_be_strictly_increasing(monkeypatch, raw, expected):
    monkeypatch.setenv("TEST_SPEED_TABLE", raw)
    parsed = config._env_float_tuple(
        "TEST_SPEED_TABLE", (20.0, 35.0, 60.0, 87.0), increasing=True
    )
    assert parsed == expected
