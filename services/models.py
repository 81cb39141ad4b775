from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields, replace
from typing import Any, Literal

import pandas as pd

from core import constants
from core.rates import StrokeMethod, is_known_method


Units = Literal["metric", "imperial"]


@dataclass(frozen=True)
class GpsFix:
    lat: float
    lng: float
    timestamp: int


@dataclass(frozen=True)
class Settings:
    stroke_rate_method: StrokeMethod = constants.DEFAULT_STROKE_METHOD
    stroke_rate_interval_s: int = 60
    split_interval_s: int = 60
    voice_speed: float = 1.0
    enable_motion_sensors: bool = False
    units: Units = "metric"

    def __post_init__(self) -> None:
        if not is_known_method(self.stroke_rate_method):
            raise ValueError(f"Unknown stroke rate method: {self.stroke_rate_method!r}")
        for name in ("stroke_rate_interval_s", "split_interval_s"):
            if getattr(self, name) not in constants.ANNOUNCE_INTERVALS_S:
                raise ValueError(f"{name} must be one of {constants.ANNOUNCE_INTERVALS_S}")
        if not 0.5 <= self.voice_speed <= 2.0:
            raise ValueError("voice_speed must be between 0.5 and 2.0")
        if self.units not in ("metric", "imperial"):
            raise ValueError(f"Unknown units: {self.units!r}")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "Settings":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in payload.items() if k in known})

    def updated(self, **changes: Any) -> "Settings":
        known = {f.name for f in fields(self)}
        unknown = sorted(set(changes) - known)
        if unknown:
            raise ValueError(f"Unknown setting(s): {', '.join(unknown)}")
        return replace(self, **changes)


@dataclass(frozen=True)
class WorkoutSummary:
    distance_m: int
    elapsed_s: float
    avg_speed_m_s: float | None
    avg_split_s: float | None
    avg_stroke_rate: int
    stroke_count: int
    method: StrokeMethod


@dataclass(frozen=True)
class WorkoutRecord:
    id: int
    date: str
    duration_s: float
    distance_m: int
    avg_stroke_rate: int
    avg_split_s: float | None
    stroke_count: int
    method: StrokeMethod

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "WorkoutRecord":
        return cls(
            id=int(payload["id"]),
            date=str(payload["date"]),
            duration_s=float(payload.get("duration_s") or 0.0),
            distance_m=int(payload.get("distance_m") or 0),
            avg_stroke_rate=int(payload.get("avg_stroke_rate") or 0),
            avg_split_s=payload.get("avg_split_s"),
            stroke_count=int(payload.get("stroke_count") or 0),
            method=payload.get("method") or constants.DEFAULT_STROKE_METHOD,
        )


@dataclass(frozen=True)
class WorkoutStatistics:
    total_workouts: int
    total_distance_m: int
    total_time_s: int
    avg_distance_m: int
    avg_duration_s: int
    avg_stroke_rate: int


@dataclass(frozen=True)
class ReplayResult:
    events: pd.DataFrame
    summary: WorkoutSummary
    intervals: dict[str, dict[str, float | int | None]] = field(default_factory=dict)
