"""Rolling per-name execution time statistics used for progress estimates."""

from collections import defaultdict, deque
from statistics import fmean
from typing import Deque, Dict, Optional

DEFAULT_WINDOW = 5


class DurationEstimator:
    """Mean of the last ``window`` durations recorded for each job name."""

    def __init__(self, window: int = DEFAULT_WINDOW) -> None:
        if window < 1:
            raise ValueError("window must be >= 1")
        self.window = window
        self._samples: Dict[str, Deque[float]] = defaultdict(
            lambda: deque(maxlen=self.window)
        )

    def record(self, job_name: str, duration_ms: float) -> None:
        self._samples[job_name].append(float(duration_ms))

    def estimate(self, job_name: str) -> Optional[float]:
        samples = self._samples.get(job_name)
        if not samples:
            return None
        return fmean(samples)

    def samples(self, job_name: str) -> list:
        return list(self._samples.get(job_name, ()))

    def forget(self, job_name: str) -> None:
        self._samples.pop(job_name, None)

    def clear(self) -> None:
        self._samples.clear()
