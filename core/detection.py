"""Detection de coups d'aviron par seuil adaptatif.

Les deux sources (amplitude d'acceleration, vitesse GPS) suivent le meme
schema: ligne de base glissante, marge (additive ou multiplicative), anti-rebond
entre deux declenchements, puis estimation d'une cadence sur une fenetre.
``AdaptiveThresholdDetector`` porte ce schema; les deux sous-classes ne
definissent que leur facon d'estimer la cadence.

Les detecteurs ne font aucune I/O et ne sont pas thread-safe: un seul
appelant a la fois par instance, horodatages non decroissants.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from typing import Any, Literal, Sequence

from core import constants
from core.utils import round_half_up
from core.windows import Sample, SlidingWindow, mean_of


logger = logging.getLogger("strokescope.detection")

MarginMode = Literal["additive", "multiplicative"]
DetectorPhase = Literal["accumulating", "armed"]


@dataclass(frozen=True)
class DetectorParams:
    name: str
    window_ms: int
    min_samples: int
    baseline_size: int
    margin: float
    margin_mode: MarginMode
    debounce_ms: int
    rate_window_ms: int
    max_rate: int


def motion_params(**overrides: Any) -> DetectorParams:
    params = DetectorParams(
        name="motion",
        window_ms=constants.ACCEL_WINDOW_MS,
        min_samples=constants.BASELINE_SAMPLE_SIZE,
        baseline_size=constants.BASELINE_SAMPLE_SIZE,
        margin=constants.ACCEL_MARGIN,
        margin_mode="additive",
        debounce_ms=constants.MIN_STROKE_INTERVAL_MS,
        rate_window_ms=constants.STROKE_RATE_WINDOW_MS,
        max_rate=constants.MAX_STROKE_RATE,
    )
    return replace(params, **overrides) if overrides else params


def gps_params(**overrides: Any) -> DetectorParams:
    params = DetectorParams(
        name="gps",
        window_ms=constants.SPEED_WINDOW_MS,
        min_samples=constants.MIN_SAMPLES_FOR_DETECTION,
        baseline_size=constants.SPEED_AVERAGE_SAMPLES,
        margin=constants.PEAK_MULTIPLIER,
        margin_mode="multiplicative",
        debounce_ms=constants.MIN_TIME_BETWEEN_PEAKS_MS,
        rate_window_ms=constants.PEAK_WINDOW_MS,
        max_rate=constants.MAX_GPS_STROKE_RATE,
    )
    return replace(params, **overrides) if overrides else params


@dataclass(frozen=True)
class DetectionEvent:
    source: str
    timestamp: int
    rate: int
    source_avg: float
    triggering_value: float


@dataclass
class DetectorState:
    last_trigger_timestamp: int | None = None
    last_observed_timestamp: int | None = None
    current_rate: int = 0
    detections: int = 0
    samples_accepted: int = 0


def stroke_rate(count: int, span_s: float, max_rate: int = constants.MAX_STROKE_RATE) -> int:
    """Extrapole ``count`` coups sur ``span_s`` secondes en coups/minute, plafonne."""
    if not (span_s > 0) or not math.isfinite(span_s):
        return 0
    rate = round_half_up(count / span_s * 60.0)
    return max(0, min(rate, max_rate))


def rate_from_peaks(peaks: Sequence[Sample], max_rate: int = constants.MAX_GPS_STROKE_RATE) -> int:
    """Cadence a partir de l'intervalle entre pics: N pics couvrent N-1 coups."""
    if len(peaks) < 2:
        return 0
    span_s = (peaks[-1].timestamp - peaks[0].timestamp) / 1000.0
    return stroke_rate(len(peaks) - 1, span_s, max_rate)


def _usable(value: Any) -> bool:
    if value is None or isinstance(value, bool):
        return False
    try:
        number = float(value)
    except (TypeError, ValueError):
        return False
    return math.isfinite(number) and number >= 0


class AdaptiveThresholdDetector:
    """Rolling baseline + margin + debounce + windowed rate."""

    def __init__(self, params: DetectorParams) -> None:
        if params.min_samples < 1 or params.baseline_size < 1:
            raise ValueError("detector needs at least one sample for its baseline")
        self.params = params
        self._window = SlidingWindow(params.window_ms)
        self.state = DetectorState()

    @property
    def name(self) -> str:
        return self.params.name

    @property
    def current_rate(self) -> int:
        return self.state.current_rate

    @property
    def detections(self) -> int:
        return self.state.detections

    @property
    def phase(self) -> DetectorPhase:
        return "armed" if len(self._window) >= self.params.min_samples else "accumulating"

    def samples(self) -> list[Sample]:
        return list(self._window)

    def baseline(self) -> float:
        return mean_of(self._window.recent(self.params.baseline_size))

    def threshold(self, baseline: float) -> float:
        if self.params.margin_mode == "multiplicative":
            return baseline * self.params.margin
        return baseline + self.params.margin

    def reset(self) -> None:
        self._window.clear()
        self.state = DetectorState()

    def observe(self, value: float, timestamp: int) -> DetectionEvent | None:
        """Evalue un echantillon; retourne un evenement si un coup est detecte.

        Les echantillons inutilisables (NaN, negatifs, horodatage en arriere)
        sont ignores et journalises, jamais propages.
        """
        if not _usable(value) or not _usable(timestamp):
            logger.debug(
                "sample_ignored",
                extra={"detector": self.name, "reason": "unusable", "value": value, "timestamp": timestamp},
            )
            return None

        value = float(value)
        timestamp = int(timestamp)
        last_seen = self.state.last_observed_timestamp
        if last_seen is not None and timestamp < last_seen:
            logger.warning(
                "sample_out_of_order",
                extra={"detector": self.name, "timestamp": timestamp, "last_timestamp": last_seen},
            )
            return None

        self._window.append(Sample(value, timestamp))
        self.state.last_observed_timestamp = timestamp
        self.state.samples_accepted += 1

        if self.phase == "accumulating":
            return None

        baseline = self.baseline()
        # strict: une valeur egale au seuil ne declenche pas
        if not value > self.threshold(baseline):
            return None
        if not self._debounce_elapsed(timestamp):
            return None

        rate = self._on_trigger(value, baseline, timestamp)
        self.state.last_trigger_timestamp = timestamp
        self.state.detections += 1
        if rate is not None:
            self.state.current_rate = rate

        event = DetectionEvent(
            source=self.name,
            timestamp=timestamp,
            rate=self.state.current_rate,
            source_avg=baseline,
            triggering_value=value,
        )
        logger.debug(
            "stroke_detected",
            extra={
                "detector": self.name,
                "timestamp": timestamp,
                "rate_spm": event.rate,
                "baseline": round(baseline, 3),
                "value": round(value, 3),
            },
        )
        return event

    def _debounce_elapsed(self, timestamp: int) -> bool:
        last = self.state.last_trigger_timestamp
        # strict: deux echantillons au meme instant ne declenchent qu'une fois
        return last is None or timestamp - last > self.params.debounce_ms

    def _on_trigger(self, value: float, baseline: float, timestamp: int) -> int | None:
        raise NotImplementedError


class MotionStrokeDetector(AdaptiveThresholdDetector):
    """Pics d'amplitude d'acceleration au-dessus de la ligne de base.

    La cadence compte les echantillons de la fenetre au-dessus d'un seuil plus
    lache (marge - 1) que le seuil de declenchement.
    """

    RATE_MARGIN_SLACK = 1.0

    def __init__(self, params: DetectorParams | None = None) -> None:
        super().__init__(params or motion_params())

    def _on_trigger(self, value: float, baseline: float, timestamp: int) -> int | None:
        secondary = self.threshold(baseline) - self.RATE_MARGIN_SLACK
        cutoff = timestamp - self.params.rate_window_ms
        count = sum(1 for sample in self._window.since(cutoff) if sample.value > secondary)
        return stroke_rate(count, self.params.rate_window_ms / 1000.0, self.params.max_rate)


class GpsPeakDetector(AdaptiveThresholdDetector):
    """Pics de vitesse (phase propulsive) par rapport a la moyenne glissante.

    Test causal et unilateral: l'echantillon courant depasse-t-il la moyenne
    recente, sans comparaison avec l'echantillon suivant (indisponible en direct).
    """

    def __init__(self, params: DetectorParams | None = None, *, min_peaks: int = constants.MIN_PEAKS_FOR_RATE) -> None:
        super().__init__(params or gps_params())
        self.min_peaks = max(2, int(min_peaks))
        self._peaks = SlidingWindow(self.params.rate_window_ms)

    def peaks(self) -> list[Sample]:
        return list(self._peaks)

    def reset(self) -> None:
        super().reset()
        self._peaks.clear()

    def _on_trigger(self, value: float, baseline: float, timestamp: int) -> int | None:
        self._peaks.append(Sample(value, timestamp))
        # un pic isole (premier pic ou apres eviction) ne donne pas de cadence
        if len(self._peaks) < self.min_peaks:
            return 0
        return rate_from_peaks(self.peaks(), self.params.max_rate)

