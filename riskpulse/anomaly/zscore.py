"""
Z-score anomaly detection over indicator histories.
"""

import math
from dataclasses import dataclass
from typing import Optional, Sequence

import pandas as pd

from riskpulse.errors import InsufficientHistory

EXTREME_THRESHOLD = 2.0
ABOVE_AVERAGE_THRESHOLD = 1.0


@dataclass(frozen=True)
class SDBands:
    """Standard deviation bands around a mean."""

    mean: float
    plus1: float
    plus2: float
    plus3: float
    minus1: float
    minus2: float
    minus3: float


@dataclass(frozen=True)
class ZScoreRecord:
    """Anomaly detection result for one indicator."""

    indicator_id: str
    current_value: float
    mean: float
    std_dev: float
    z_score: float
    is_extreme: bool
    sample_size: int = 0

    @property
    def is_significant(self) -> bool:
        """Outside the normal +/-1 SD range."""
        return self.is_extreme or abs(self.z_score) >= ABOVE_AVERAGE_THRESHOLD

    @property
    def description(self) -> str:
        if self.is_extreme:
            return "Extremely High" if self.z_score > 0 else "Extremely Low"
        if self.is_significant:
            return "Above Average" if self.z_score > 0 else "Below Average"
        return "Normal Range"

    @property
    def percentile(self) -> float:
        """Percentile of the current value assuming a normal distribution."""
        if math.isinf(self.z_score):
            return 100.0 if self.z_score > 0 else 0.0
        return 50.0 * (1.0 + math.erf(self.z_score / math.sqrt(2.0)))

    def sd_bands(self) -> SDBands:
        sd = self.std_dev
        return SDBands(
            mean=self.mean,
            plus1=self.mean + sd,
            plus2=self.mean + 2 * sd,
            plus3=self.mean + 3 * sd,
            minus1=self.mean - sd,
            minus2=self.mean - 2 * sd,
            minus3=self.mean - 3 * sd,
        )

    def to_dict(self) -> dict:
        return {
            "indicator_id": self.indicator_id,
            "current_value": self.current_value,
            "mean": self.mean,
            "std_dev": self.std_dev,
            "z_score": self.z_score,
            "is_extreme": self.is_extreme,
            "sample_size": self.sample_size,
            "description": self.description,
        }


class ZScoreDetector:
    """Computes z-scores of current observations against their history."""

    def __init__(
        self,
        extreme_threshold: float = EXTREME_THRESHOLD,
        window: Optional[int] = None,
        min_history: int = 1,
    ):
        """
        Initialize detector.

        Args:
            extreme_threshold: |z| at or above which a value is extreme
            window: Use only the most recent N observations (None = all)
            min_history: Minimum observations required for a baseline
        """
        if extreme_threshold <= 0:
            raise ValueError("extreme_threshold must be positive")
        if window is not None and window < 1:
            raise ValueError("window must be at least 1")
        if min_history < 1:
            raise ValueError("min_history must be at least 1")
        self.extreme_threshold = extreme_threshold
        self.window = window
        self.min_history = min_history

    def compute(
        self,
        indicator_id: str,
        history: Sequence[float],
        current: float,
    ) -> ZScoreRecord:
        """
        Compute the z-score of ``current`` against ``history``.

        ``history`` is the baseline only; ``current`` is not part of it.

        Raises:
            InsufficientHistory: If history has fewer than min_history values
        """
        series = pd.Series(history, dtype="float64").dropna()
        if self.window is not None:
            series = series.tail(self.window)

        if len(series) < self.min_history or series.empty:
            raise InsufficientHistory(
                indicator_id, required=self.min_history, available=len(series)
            )

        if series.max() == series.min():
            # Constant baseline; mean() can be off by an ulp here
            mean = float(series.iloc[0])
            std_dev = 0.0
        else:
            mean = float(series.mean())
            # Population standard deviation
            std_dev = float(series.std(ddof=0))

        if std_dev == 0:
            # Any deviation from a constant series is anomalous
            if current == mean:
                z_score = 0.0
                is_extreme = False
            else:
                z_score = math.copysign(math.inf, current - mean)
                is_extreme = True
        else:
            z_score = (current - mean) / std_dev
            is_extreme = abs(z_score) >= self.extreme_threshold

        return ZScoreRecord(
            indicator_id=indicator_id,
            current_value=float(current),
            mean=mean,
            std_dev=std_dev,
            z_score=z_score,
            is_extreme=is_extreme,
            sample_size=len(series),
        )


def compute_z_score(
    indicator_id: str,
    history: Sequence[float],
    current: float,
) -> ZScoreRecord:
    """Compute a z-score with the default detector settings."""
    return ZScoreDetector().compute(indicator_id, history, current)
