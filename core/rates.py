"""Agregation des cadences et choix de la methode affichee.

Le mode "both" est purement informatif: les deux cadences sont renvoyees
telles quelles, sans moyenne ni preference.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, TypedDict, Union

from core import constants
from core.detection import DetectionEvent
from core.utils import round_half_up
from core.windows import Sample, SlidingWindow


StrokeMethod = Literal["gps", "motion", "both"]


class RatePair(TypedDict):
    motion: int
    gps: int


SelectedRate = Union[int, RatePair]


@dataclass(frozen=True)
class RateRecord:
    rate: int
    timestamp: int


def is_known_method(method: object) -> bool:
    return isinstance(method, str) and method in constants.STROKE_RATE_METHODS


def uses_motion(method: str) -> bool:
    return method in (constants.METHOD_MOTION, constants.METHOD_BOTH)


def uses_gps(method: str) -> bool:
    return method in (constants.METHOD_GPS, constants.METHOD_BOTH)


def select_rate(method: str, motion_rate: int, gps_rate: int) -> SelectedRate:
    """Retourne la cadence de la methode active.

    Une methode inconnue renvoie 0 (valeur par defaut, pas une erreur).
    """
    if method == constants.METHOD_MOTION:
        return motion_rate
    if method == constants.METHOD_GPS:
        return gps_rate
    if method == constants.METHOD_BOTH:
        return {"motion": motion_rate, "gps": gps_rate}
    return 0


class RateAggregator:
    """Keeps the recent rate observations (2 min by default) for the session average."""

    def __init__(self, retention_ms: int = constants.RATE_HISTORY_WINDOW_MS) -> None:
        self._records = SlidingWindow(retention_ms)

    def __len__(self) -> int:
        return len(self._records)

    def record(self, rate: int, timestamp: int) -> RateRecord:
        record = RateRecord(rate=int(rate), timestamp=int(timestamp))
        self._records.append(Sample(float(record.rate), record.timestamp))
        return record

    def record_event(self, event: DetectionEvent) -> RateRecord:
        return self.record(event.rate, event.timestamp)

    def records(self) -> list[RateRecord]:
        return [RateRecord(rate=int(s.value), timestamp=s.timestamp) for s in self._records]

    def average_rate(self) -> int:
        if self._records.is_empty():
            return 0
        return round_half_up(self._records.mean())

    def reset(self) -> None:
        self._records.clear()
