"""Optimization level selection.

Maps a fixed level, the current speed (automatic) or a user-customised
speed table to the ``OptimizationSettings`` the simplifier should use.

| Level | Typical use          | Default km/h range |
|-------|----------------------|--------------------|
| 1     | Walking              | 0 - 20             |
| 2     | Cycling              | 20 - 35            |
| 3     | Moped / urban car    | 35 - 60            |
| 4     | Rural driving        | 60 - 87            |
| 5     | Highway, train, air  | above 87           |
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
import logging
from typing import Dict, Optional, Tuple, Union

from .config import (
    CUSTOM_FALLBACK_LEVEL,
    DEFAULT_SPEED_THRESHOLDS_KMH,
    DEFAULT_TRANSPORTATION_LEVEL,
)
from .errors import MalformedThresholdsError
from .simplifier import PRESETS, OptimizationSettings

_LOG = logging.getLogger(__name__)


class OptimizationLevel(IntEnum):
    WALKING = 1
    CYCLING = 2
    URBAN = 3
    RURAL = 4
    HIGHWAY = 5

    @property
    def settings(self) -> OptimizationSettings:
        return LEVEL_SETTINGS[self]


LEVEL_SETTINGS: Dict[OptimizationLevel, OptimizationSettings] = {
    level: PRESETS[int(level)] for level in OptimizationLevel
}


@dataclass(frozen=True, slots=True)
class SpeedThresholds:
    """Upper speed bounds (km/h) for the first four levels."""

    walking_max: float = DEFAULT_SPEED_THRESHOLDS_KMH[0]
    cycling_max: float = DEFAULT_SPEED_THRESHOLDS_KMH[1]
    moped_max: float = DEFAULT_SPEED_THRESHOLDS_KMH[2]
    driving_max: float = DEFAULT_SPEED_THRESHOLDS_KMH[3]

    @classmethod
    def validated(
        cls,
        walking_max: float,
        cycling_max: float,
        moped_max: float,
        driving_max: float,
    ) -> "SpeedThresholds":
        """Build a table, raising ``MalformedThresholdsError`` unless strictly increasing."""

        table = cls(walking_max, cycling_max, moped_max, driving_max)
        _require_well_formed(table)
        return table

    def as_tuple(self) -> Tuple[float, float, float, float]:
        return (self.walking_max, self.cycling_max, self.moped_max, self.driving_max)

    def is_well_formed(self) -> bool:
        bounds = self.as_tuple()
        if any(bound != bound for bound in bounds):  # NaN
            return False
        return all(lower < upper for lower, upper in zip(bounds, bounds[1:]))


def _require_well_formed(thresholds: SpeedThresholds) -> None:
    if not thresholds.is_well_formed():
        raise MalformedThresholdsError(
            "Speed thresholds must be strictly increasing, got "
            f"{thresholds.as_tuple()}"
        )


DEFAULT_THRESHOLDS = SpeedThresholds()


@dataclass(frozen=True, slots=True)
class FixedMode:
    level: OptimizationLevel


@dataclass(frozen=True, slots=True)
class AutomaticMode:
    """Speed-based selection; the table must be strictly increasing."""

    thresholds: SpeedThresholds = field(default_factory=SpeedThresholds)

    def __post_init__(self) -> None:
        _require_well_formed(self.thresholds)


@dataclass(frozen=True, slots=True)
class CustomMode:
    thresholds: SpeedThresholds


SelectionMode = Union[FixedMode, AutomaticMode, CustomMode]


def level_for_speed(
    speed_mps: Optional[float], thresholds: SpeedThresholds = DEFAULT_THRESHOLDS
) -> OptimizationLevel:
    """Map a speed sample (m/s) onto a level using ``thresholds``.

    Unknown or negative speeds count as standing still. A malformed table
    raises ``MalformedThresholdsError``.
    """

    _require_well_formed(thresholds)
    speed_kmh = max(speed_mps or 0.0, 0.0) * 3.6
    if speed_kmh <= thresholds.walking_max:
        return OptimizationLevel.WALKING
    if speed_kmh <= thresholds.cycling_max:
        return OptimizationLevel.CYCLING
    if speed_kmh <= thresholds.moped_max:
        return OptimizationLevel.URBAN
    if speed_kmh <= thresholds.driving_max:
        return OptimizationLevel.RURAL
    return OptimizationLevel.HIGHWAY


def select_level(
    mode: SelectionMode, speed_mps: Optional[float] = None
) -> OptimizationLevel:
    if isinstance(mode, FixedMode):
        return OptimizationLevel(mode.level)
    if isinstance(mode, CustomMode):
        if not mode.thresholds.is_well_formed():
            _LOG.warning(
                "Custom speed thresholds %s are not strictly increasing; "
                "falling back to level %d",
                mode.thresholds.as_tuple(),
                CUSTOM_FALLBACK_LEVEL,
            )
            return OptimizationLevel(CUSTOM_FALLBACK_LEVEL)
        return level_for_speed(speed_mps, mode.thresholds)
    if isinstance(mode, AutomaticMode):
        return level_for_speed(speed_mps, mode.thresholds)
    raise TypeError(f"Unsupported selection mode: {mode!r}")


def select_settings(
    mode: SelectionMode, speed_mps: Optional[float] = None
) -> OptimizationSettings:
    """Return the settings to apply for ``mode`` and the current speed sample."""

    return LEVEL_SETTINGS[select_level(mode, speed_mps)]


_TRANSPORTATION_LEVELS: Dict[str, OptimizationLevel] = {
    "walking": OptimizationLevel.WALKING,
    "hiking": OptimizationLevel.WALKING,
    "running": OptimizationLevel.WALKING,
    "cycling": OptimizationLevel.CYCLING,
    "bicycle": OptimizationLevel.CYCLING,
    "bike": OptimizationLevel.CYCLING,
    "car": OptimizationLevel.URBAN,
    "driving": OptimizationLevel.URBAN,
    "highway": OptimizationLevel.RURAL,
    "train": OptimizationLevel.HIGHWAY,
    "bus": OptimizationLevel.HIGHWAY,
    "airplane": OptimizationLevel.HIGHWAY,
}


def settings_for_transportation(mode_name: Optional[str]) -> OptimizationSettings:
    """Return preset settings for a named means of transport."""

    default = OptimizationLevel(DEFAULT_TRANSPORTATION_LEVEL)
    if not mode_name:
        return LEVEL_SETTINGS[default]
    level = _TRANSPORTATION_LEVELS.get(mode_name.strip().lower(), default)
    return LEVEL_SETTINGS[level]


__all__ = [
    "OptimizationLevel",
    "LEVEL_SETTINGS",
    "SpeedThresholds",
    "DEFAULT_THRESHOLDS",
    "FixedMode",
    "AutomaticMode",
    "CustomMode",
    "SelectionMode",
    "level_for_speed",
    "select_level",
    "select_settings",
    "settings_for_transportation",
]
