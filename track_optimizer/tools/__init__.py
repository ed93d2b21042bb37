"""Developer entry points for inspecting recorded tracks."""

from .track_report import build_report, load_track

__all__ = ["build_report", "load_track"]
