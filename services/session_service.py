from __future__ import annotations

"""Workout session: lifecycle, GPS noise filtering and rate read-out.

One session per workout. It owns its detectors, aggregators and windows, so
nothing leaks between workouts. Not thread-safe: observe_* calls must be
serialized by the caller.
"""

import logging
import math
import time

from core import constants, geo
from core.detection import DetectionEvent, GpsPeakDetector, MotionStrokeDetector
from core.rates import RateAggregator, SelectedRate, is_known_method, select_rate, uses_gps, uses_motion
from core.utils import split_seconds
from core.windows import Sample, SlidingWindow
from services.models import GpsFix, Settings, WorkoutSummary


logger = logging.getLogger("strokescope.session")


def _now_ms() -> int:
    return int(time.time() * 1000)


def _finite(*values: object) -> bool:
    try:
        return all(v is not None and math.isfinite(float(v)) for v in values)
    except (TypeError, ValueError):
        return False


class WorkoutSession:
    def __init__(
        self,
        settings: Settings | None = None,
        *,
        motion_detector: MotionStrokeDetector | None = None,
        gps_detector: GpsPeakDetector | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self.motion = motion_detector or MotionStrokeDetector()
        self.gps = gps_detector or GpsPeakDetector()
        self.motion_rates = RateAggregator()
        self.gps_rates = RateAggregator()
        self._speeds = SlidingWindow(constants.SPEED_WINDOW_MS)
        self._clear_counters()

    def _clear_counters(self) -> None:
        self.is_running = False
        self.start_time_ms: int | None = None
        self.stop_time_ms: int | None = None
        self.total_distance_m = 0.0
        self.last_position: GpsFix | None = None
        self.fixes_accepted = 0

    # -- configuration -------------------------------------------------

    @property
    def method(self) -> str:
        return self.settings.stroke_rate_method

    def set_method(self, method: str) -> None:
        if not is_known_method(method):
            raise ValueError(f"Unknown stroke rate method: {method!r}")
        self.settings = self.settings.updated(stroke_rate_method=method)

    # -- lifecycle -----------------------------------------------------

    def start(self, now_ms: int | None = None) -> bool:
        if self.is_running:
            return False
        self.is_running = True
        self.start_time_ms = int(now_ms if now_ms is not None else _now_ms())
        self.stop_time_ms = None
        logger.info("workout_started", extra={"method": self.method, "start_ms": self.start_time_ms})
        return True

    def stop(self, now_ms: int | None = None) -> bool:
        if not self.is_running:
            return False
        self.is_running = False
        self.stop_time_ms = int(now_ms if now_ms is not None else _now_ms())
        logger.info(
            "workout_stopped",
            extra={"elapsed_s": round(self.elapsed_s(), 1), "distance_m": round(self.total_distance_m, 1)},
        )
        return True

    def reset(self) -> None:
        """Efface toutes les fenetres et compteurs (idempotent)."""
        self.motion.reset()
        self.gps.reset()
        self.motion_rates.reset()
        self.gps_rates.reset()
        self._speeds.clear()
        self._clear_counters()

    # -- inputs --------------------------------------------------------

    def observe_motion(self, magnitude: float, timestamp_ms: int) -> DetectionEvent | None:
        if not self.is_running or not uses_motion(self.method):
            return None
        event = self.motion.observe(magnitude, timestamp_ms)
        if event is not None and event.rate > 0:
            self.motion_rates.record_event(event)
        return event

    def observe_acceleration(
        self, x: float | None, y: float | None, z: float | None, timestamp_ms: int
    ) -> DetectionEvent | None:
        return self.observe_motion(geo.acceleration_magnitude(x, y, z), timestamp_ms)

    def observe_position(self, lat: float, lng: float, timestamp_ms: int) -> DetectionEvent | None:
        """Accumule la distance et alimente le detecteur GPS avec la vitesse.

        Seul un deplacement > 3 m a >= 0.5 m/s compte; le reste est de la derive.
        """
        if not self.is_running:
            return None
        if not _finite(lat, lng, timestamp_ms):
            logger.debug("gps_fix_ignored", extra={"reason": "non_finite"})
            return None

        fix = GpsFix(lat=float(lat), lng=float(lng), timestamp=int(timestamp_ms))
        previous = self.last_position
        if previous is None:
            self.last_position = fix
            self.fixes_accepted += 1
            logger.debug("gps_first_fix", extra={"timestamp": fix.timestamp})
            return None
        if fix.timestamp < previous.timestamp:
            logger.warning(
                "gps_fix_out_of_order",
                extra={"timestamp": fix.timestamp, "last_timestamp": previous.timestamp},
            )
            return None

        distance_m = geo.distance(previous, fix)
        elapsed_s = (fix.timestamp - previous.timestamp) / 1000.0
        speed = geo.speed_between(distance_m, elapsed_s)

        event = None
        if speed is not None and distance_m > constants.MIN_DISTANCE_M:
            if geo.is_real_movement(distance_m, speed):
                self.total_distance_m += distance_m
                self._speeds.append(Sample(speed, fix.timestamp))
                if uses_gps(self.method):
                    event = self.gps.observe(speed, fix.timestamp)
                    if event is not None and event.rate > 0:
                        self.gps_rates.record_event(event)
            else:
                logger.debug("gps_slow_movement_ignored", extra={"speed_m_s": round(speed, 2)})
        elif distance_m > 0:
            logger.debug("gps_small_movement_ignored", extra={"distance_m": round(distance_m, 2)})

        self.last_position = fix
        self.fixes_accepted += 1
        return event

    # -- read-out ------------------------------------------------------

    @property
    def motion_samples_accepted(self) -> int:
        return self.motion.state.samples_accepted

    @property
    def motion_rate(self) -> int:
        return self.motion.current_rate

    @property
    def gps_rate(self) -> int:
        return self.gps.current_rate

    @property
    def stroke_count(self) -> int:
        if uses_motion(self.method):
            return self.motion.detections
        return self.gps.detections

    def current_rate(self) -> SelectedRate:
        return select_rate(self.method, self.motion_rate, self.gps_rate)

    def average_rate(self) -> int:
        if uses_motion(self.method):
            motion_avg = self.motion_rates.average_rate()
            if motion_avg > 0:
                return motion_avg
        if uses_gps(self.method):
            return self.gps_rates.average_rate()
        return 0

    def elapsed_s(self, now_ms: int | None = None) -> float:
        if self.start_time_ms is None:
            return 0.0
        if self.is_running:
            end = now_ms if now_ms is not None else _now_ms()
        else:
            end = self.stop_time_ms if self.stop_time_ms is not None else self.start_time_ms
        return max(0.0, (end - self.start_time_ms) / 1000.0)

    def current_split_s(self) -> float | None:
        if self._speeds.is_empty():
            return None
        return split_seconds(self._speeds.mean())

    def summary(self, now_ms: int | None = None) -> WorkoutSummary:
        elapsed = self.elapsed_s(now_ms)
        avg_speed = self.total_distance_m / elapsed if elapsed > 0 else None
        return WorkoutSummary(
            distance_m=int(round(self.total_distance_m)),
            elapsed_s=elapsed,
            avg_speed_m_s=avg_speed,
            avg_split_s=split_seconds(avg_speed),
            avg_stroke_rate=self.average_rate(),
            stroke_count=self.stroke_count,
            method=self.method,
        )
