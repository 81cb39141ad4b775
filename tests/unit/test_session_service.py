from __future__ import annotations

import math
import unittest

from tests.unit._bootstrap import ensure_project_on_path


ensure_project_on_path()


M_PER_DEG_AT_EQUATOR = 6_371_000.0 * math.pi / 180.0


def _equator_track(speeds: list[float], start_ms: int = 0) -> list[tuple[float, float, int]]:
    """Fixes 1 s apart along the equator, moving at the given speeds (m/s)."""
    fixes = [(0.0, 0.0, start_ms)]
    lng = 0.0
    for i, speed in enumerate(speeds, start=1):
        lng += speed / M_PER_DEG_AT_EQUATOR
        fixes.append((0.0, lng, start_ms + i * 1000))
    return fixes


def _sawtooth(n: int) -> list[tuple[float, int]]:
    return [(16.0 if k % 10 == 0 else 10.0, k * 100) for k in range(n)]


class TestWorkoutSession(unittest.TestCase):
    def _session(self, method: str = "gps"):
        from services.models import Settings
        from services.session_service import WorkoutSession

        return WorkoutSession(Settings(stroke_rate_method=method))

    def test_lifecycle(self) -> None:
        session = self._session()
        self.assertFalse(session.stop(0))
        self.assertTrue(session.start(1000))
        self.assertFalse(session.start(2000))
        self.assertEqual(session.elapsed_s(31_000), 30.0)
        self.assertTrue(session.stop(61_000))
        self.assertEqual(session.elapsed_s(), 60.0)

    def test_observations_ignored_when_not_running(self) -> None:
        session = self._session("both")
        self.assertIsNone(session.observe_motion(50.0, 0))
        self.assertIsNone(session.observe_position(0.0, 0.0, 0))
        self.assertEqual(session.motion.samples(), [])
        self.assertIsNone(session.last_position)

    def test_motion_only_feeds_motion_detector_when_enabled(self) -> None:
        session = self._session("gps")
        session.start(0)
        for value, ts in _sawtooth(120):
            session.observe_motion(value, ts)
        self.assertEqual(session.motion.samples(), [])

        session = self._session("motion")
        session.start(0)
        events = [session.observe_motion(v, ts) for v, ts in _sawtooth(201)]
        events = [e for e in events if e is not None]
        self.assertEqual(len(events), 19)
        self.assertEqual(session.stroke_count, 19)
        self.assertEqual(session.motion_rate, 40)
        self.assertEqual(session.current_rate(), 40)
        self.assertTrue(0 < session.average_rate() <= 40)

    def test_accepted_counters(self) -> None:
        session = self._session("motion")
        session.observe_motion(10.0, 0)
        self.assertEqual(session.motion_samples_accepted, 0)

        session.start(0)
        session.observe_motion(10.0, 100)
        session.observe_motion(float("nan"), 200)
        session.observe_motion(10.0, 50)
        self.assertEqual(session.motion_samples_accepted, 1)

        session.observe_position(0.0, 0.0, 1000)
        session.observe_position(0.0, 0.0, 500)
        self.assertEqual(session.fixes_accepted, 1)
        session.reset()
        self.assertEqual((session.motion_samples_accepted, session.fixes_accepted), (0, 0))

    def test_observe_acceleration_uses_magnitude(self) -> None:
        session = self._session("motion")
        session.start(0)
        for k in range(20):
            session.observe_acceleration(6.0, 8.0, 0.0, k * 100)
        self.assertEqual(session.motion.samples()[-1].value, 10.0)

    def test_gps_track_accumulates_distance_and_rate(self) -> None:
        speeds = [4.0, 4.0, 4.0, 4.0, 4.0, 5.0, 4.0, 5.0, 4.0, 5.0, 4.0, 5.0]
        session = self._session("gps")
        session.start(0)
        events = [session.observe_position(lat, lng, ts) for lat, lng, ts in _equator_track(speeds)]
        events = [e for e in events if e is not None]

        self.assertEqual([e.timestamp for e in events], [6000, 8000, 10000, 12000])
        self.assertEqual(session.gps_rate, 30)
        self.assertEqual(session.stroke_count, 4)
        # first peak (rate 0) is not averaged
        self.assertEqual(len(session.gps_rates), 3)
        self.assertEqual(session.average_rate(), 30)
        self.assertAlmostEqual(session.total_distance_m, 52.0, places=3)

        summary = session.summary(12_000)
        self.assertEqual(summary.distance_m, 52)
        self.assertEqual(summary.avg_stroke_rate, 30)
        self.assertEqual(summary.method, "gps")
        self.assertAlmostEqual(summary.avg_split_s, 500.0 / (52.0 / 12.0), places=2)
        self.assertIsNotNone(session.current_split_s())

    def test_isolated_gps_peak_is_not_averaged(self) -> None:
        speeds = [4.0, 4.0, 4.0, 4.0, 4.0, 5.0, 4.0, 5.0] + [4.0] * 40 + [5.0]
        session = self._session("gps")
        session.start(0)
        events = [session.observe_position(lat, lng, ts) for lat, lng, ts in _equator_track(speeds)]
        events = [e for e in events if e is not None]

        self.assertEqual([e.rate for e in events], [0, 30, 0])
        self.assertEqual(session.gps_rate, 0)
        self.assertEqual([r.rate for r in session.gps_rates.records()], [30])
        self.assertEqual(session.average_rate(), 30)

    def test_gps_drift_is_filtered(self) -> None:
        session = self._session("gps")
        session.start(0)
        # 1 m/s steps of 1 m: below the 3 m displacement floor
        for lat, lng, ts in _equator_track([1.0] * 20):
            self.assertIsNone(session.observe_position(lat, lng, ts))
        self.assertEqual(session.total_distance_m, 0.0)
        self.assertIsNone(session.current_split_s())
        self.assertEqual(session.gps.samples(), [])

        # 4 m in 10 s = 0.4 m/s: slow drift
        session.observe_position(0.0, 0.0, 100_000)
        session.observe_position(0.0, 4.0 / M_PER_DEG_AT_EQUATOR, 110_000)
        self.assertEqual(session.total_distance_m, 0.0)

    def test_bad_fixes_are_ignored(self) -> None:
        session = self._session("gps")
        session.start(0)
        session.observe_position(0.0, 0.0, 5000)
        self.assertIsNone(session.observe_position(0.0, 0.001, 4000))
        self.assertIsNone(session.observe_position(float("nan"), 0.001, 6000))
        self.assertEqual(session.last_position.timestamp, 5000)
        # same instant: no speed, no crash
        self.assertIsNone(session.observe_position(0.0, 0.001, 5000))

    def test_both_method_reports_both_rates(self) -> None:
        session = self._session("both")
        self.assertEqual(session.current_rate(), {"motion": 0, "gps": 0})
        session.set_method("motion")
        self.assertEqual(session.method, "motion")
        with self.assertRaises(ValueError):
            session.set_method("sonar")

    def test_average_rate_falls_back_to_gps_in_both_mode(self) -> None:
        session = self._session("both")
        session.gps_rates.record(24, 1000)
        self.assertEqual(session.average_rate(), 24)
        session.motion_rates.record(30, 1000)
        self.assertEqual(session.average_rate(), 30)

    def test_reset_is_idempotent(self) -> None:
        session = self._session("both")
        session.start(0)
        for value, ts in _sawtooth(120):
            session.observe_motion(value, ts)
        session.reset()
        session.reset()

        self.assertFalse(session.is_running)
        self.assertIsNone(session.start_time_ms)
        self.assertEqual(session.total_distance_m, 0.0)
        self.assertEqual(session.motion.samples(), [])
        self.assertEqual(session.motion.current_rate, 0)
        self.assertEqual(len(session.motion_rates), 0)
        self.assertEqual(session.summary().stroke_count, 0)


if __name__ == "__main__":
    unittest.main()
