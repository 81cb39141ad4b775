from pydantic import BaseModel, Field
from typing import Optional, List, Literal, Union, Dict


StrokeMethodName = Literal["gps", "motion", "both"]


# 1. POST /session/motion - Request
class MotionSampleIn(BaseModel):
    timestamp_ms: int
    magnitude: Optional[float] = None
    x: Optional[float] = None
    y: Optional[float] = None
    z: Optional[float] = None


class MotionBatch(BaseModel):
    samples: List[MotionSampleIn] = Field(default_factory=list)


# 2. POST /session/position - Request
class PositionIn(BaseModel):
    lat: float
    lng: float
    timestamp_ms: int


class PositionBatch(BaseModel):
    fixes: List[PositionIn] = Field(default_factory=list)


class DetectionEventOut(BaseModel):
    source: Literal["motion", "gps"]
    timestamp_ms: int
    rate_spm: int
    source_avg: float
    value: float


class ObserveResponse(BaseModel):
    received: int
    accepted: int
    events: List[DetectionEventOut]


# 3. Session lifecycle
class SessionStateResponse(BaseModel):
    running: bool
    changed: bool
    method: StrokeMethodName


class WorkoutOut(BaseModel):
    id: int
    date: str
    duration_s: float
    distance_m: int
    avg_stroke_rate: int
    avg_split_s: Optional[float] = None
    stroke_count: int
    method: StrokeMethodName
    date_display: str
    duration_display: str
    avg_split_display: str
    distance_display: str


class StopResponse(SessionStateResponse):
    workout: Optional[WorkoutOut] = None


# 4. GET /session/rate - Response
class RateResponse(BaseModel):
    method: StrokeMethodName
    motion: int
    gps: int
    selected: Union[int, Dict[str, int]]
    display: str
    split_s: Optional[float] = None
    split_display: str


# 5. GET /session/summary - Response
class SummaryResponse(BaseModel):
    running: bool
    distance_m: int
    elapsed_s: float
    avg_speed_m_s: Optional[float] = None
    avg_split_s: Optional[float] = None
    avg_stroke_rate: int
    stroke_count: int
    method: StrokeMethodName
    elapsed_display: str
    avg_split_display: str
    avg_stroke_rate_display: str


# 6. Workouts
class WorkoutStatsResponse(BaseModel):
    total_workouts: int
    total_distance_m: int
    total_time_s: int
    avg_distance_m: int
    avg_duration_s: int
    avg_stroke_rate: int


class ReplayResponse(BaseModel):
    filename: str
    summary: SummaryResponse
    events: List[DetectionEventOut]
    intervals: Dict[str, Dict[str, Optional[float]]]


# 7. Settings
class SettingsModel(BaseModel):
    stroke_rate_method: StrokeMethodName
    stroke_rate_interval_s: int
    split_interval_s: int
    voice_speed: float
    enable_motion_sensors: bool
    units: Literal["metric", "imperial"]


class SettingsUpdate(BaseModel):
    stroke_rate_method: Optional[StrokeMethodName] = None
    stroke_rate_interval_s: Optional[int] = None
    split_interval_s: Optional[int] = None
    voice_speed: Optional[float] = None
    enable_motion_sensors: Optional[bool] = None
    units: Optional[Literal["metric", "imperial"]] = None


class DataExport(BaseModel):
    workouts: List[dict]
    settings: dict
    export_date: Optional[str] = None
