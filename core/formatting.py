from __future__ import annotations

"""Formatting helpers shared across the API and summaries.

Unknown values render as placeholders ("--", "--:--"), never as errors.
"""

import math
from typing import Any

import pandas as pd

from core.utils import seconds_to_mmss


def _missing(value: Any) -> bool:
    if value is None:
        return True
    return isinstance(value, float) and math.isnan(value)


def format_duration_clock(seconds: float | None) -> str:
    """Format duration like the live display (e.g. 1:02:03 / 5:02 / '-')."""

    if _missing(seconds):
        return "-"
    total_seconds = int(round(seconds))
    hours = total_seconds // 3600
    minutes = (total_seconds % 3600) // 60
    secs = total_seconds % 60
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def format_split(seconds: float | None) -> str:
    """Split per 500 m as M:SS, '--:--' when unknown."""

    if _missing(seconds) or seconds <= 0:
        return "--:--"
    return seconds_to_mmss(seconds)


def format_rate(rate: int | None) -> str:
    """Stroke rate in SPM; 0 means no detection yet."""

    if _missing(rate) or rate <= 0:
        return "--"
    return str(int(rate))


def format_rate_pair(motion_rate: int | None, gps_rate: int | None) -> str:
    return f"GPS: {format_rate(gps_rate)} / MOT: {format_rate(motion_rate)}"


def format_distance(distance_m: float | None) -> str:
    if _missing(distance_m):
        return "-"
    return f"{int(round(distance_m))}m"


def format_time_of_day(value: Any) -> str:
    """Format a timestamp-like value as HH:MM:SS."""

    if _missing(value):
        return "-"
    try:
        ts = pd.to_datetime(value)
        if pd.isna(ts):
            return "-"
        return ts.strftime("%H:%M:%S")
    except (TypeError, ValueError):
        return "-"


def format_date(value: Any) -> str:
    if _missing(value):
        return "-"
    try:
        ts = pd.to_datetime(value)
        if pd.isna(ts):
            return "-"
        return ts.strftime("%Y-%m-%d")
    except (TypeError, ValueError):
        return "-"
