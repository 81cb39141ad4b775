"""Fenetres glissantes d'echantillons horodates.

La retention est relative au dernier echantillon ajoute (et non a l'horloge
murale), ce qui rend l'evaluation deterministe et testable sans horloge.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from itertools import islice
from typing import Iterator


class OutOfOrderSampleError(ValueError):
    """Raised when a sample is older than the newest retained one."""


@dataclass(frozen=True)
class Sample:
    value: float
    timestamp: int


class SlidingWindow:
    """Deque of samples bounded by a retention duration in milliseconds.

    Invariant: every retained sample satisfies
    ``timestamp > newest.timestamp - retention_ms``.
    """

    def __init__(self, retention_ms: int) -> None:
        if retention_ms <= 0:
            raise ValueError("SlidingWindow requires a positive retention")
        self._retention_ms = int(retention_ms)
        self._samples: deque[Sample] = deque()

    def __len__(self) -> int:
        return len(self._samples)

    def __iter__(self) -> Iterator[Sample]:
        return iter(self._samples)

    @property
    def retention_ms(self) -> int:
        return self._retention_ms

    def size(self) -> int:
        return len(self._samples)

    def is_empty(self) -> bool:
        return not self._samples

    def clear(self) -> None:
        self._samples.clear()

    def newest(self) -> Sample | None:
        return self._samples[-1] if self._samples else None

    def oldest(self) -> Sample | None:
        return self._samples[0] if self._samples else None

    def append(self, sample: Sample) -> None:
        """Ajoute un echantillon puis evince ceux hors de la retention.

        Les horodatages egaux sont acceptes; un horodatage plus ancien que le
        dernier echantillon leve ``OutOfOrderSampleError``.
        """
        newest = self.newest()
        if newest is not None and sample.timestamp < newest.timestamp:
            raise OutOfOrderSampleError(
                f"sample at {sample.timestamp} is older than newest sample at {newest.timestamp}"
            )
        self._samples.append(sample)
        cutoff = sample.timestamp - self._retention_ms
        # amorti O(1): chaque echantillon est evince au plus une fois
        while self._samples and self._samples[0].timestamp <= cutoff:
            self._samples.popleft()

    def recent(self, n: int) -> list[Sample]:
        """Return the last ``n`` samples in chronological order."""
        if n <= 0:
            return []
        tail = list(islice(reversed(self._samples), n))
        tail.reverse()
        return tail

    def since(self, timestamp: int) -> Iterator[Sample]:
        """Yield samples strictly newer than ``timestamp``."""
        for sample in self._samples:
            if sample.timestamp > timestamp:
                yield sample

    def values(self) -> list[float]:
        return [sample.value for sample in self._samples]

    def mean(self, default: float = 0.0) -> float:
        return mean_of(self._samples, default=default)


def mean_of(samples, default: float = 0.0) -> float:
    total = 0.0
    count = 0
    for sample in samples:
        total += sample.value
        count += 1
    if count == 0:
        return default
    return total / count
