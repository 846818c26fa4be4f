"""
Types for composite sentiment scoring.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class Signal(Enum):
    """Display classification of an indicator reading."""

    BULLISH = "bullish"
    BEARISH = "bearish"
    NEUTRAL = "neutral"


class SentimentTier(Enum):
    """Discrete sentiment bucket for a 0-100 composite score."""

    EXTREME_FEAR = "Extreme Fear"
    FEAR = "Fear"
    NEUTRAL = "Neutral"
    GREED = "Greed"
    EXTREME_GREED = "Extreme Greed"


# Inclusive upper bound of each tier, checked in order.
TIER_BANDS: list[tuple[int, SentimentTier]] = [
    (20, SentimentTier.EXTREME_FEAR),
    (40, SentimentTier.FEAR),
    (60, SentimentTier.NEUTRAL),
    (80, SentimentTier.GREED),
    (100, SentimentTier.EXTREME_GREED),
]

RECOMMENDATIONS: dict[SentimentTier, str] = {
    SentimentTier.EXTREME_FEAR: (
        "Extreme fear - historically a strong accumulation zone. "
        "Consider scaling into positions gradually."
    ),
    SentimentTier.FEAR: (
        "Fear dominates - favorable for steady DCA. "
        "Keep position sizes disciplined."
    ),
    SentimentTier.NEUTRAL: (
        "Balanced conditions - maintain your current allocation and plan."
    ),
    SentimentTier.GREED: (
        "Greed is building - be cautious with new entries "
        "and review your exposure."
    ),
    SentimentTier.EXTREME_GREED: (
        "Extreme greed - elevated risk of a correction. "
        "Consider taking profits and reducing exposure."
    ),
}

# Nominal weights of the full indicator catalog (sum to 1.0).
INDICATOR_CATALOG: dict[str, float] = {
    "fear_greed": 0.20,
    "app_store": 0.15,
    "funding": 0.15,
    "etf": 0.15,
    "liquidation": 0.10,
    "dominance": 0.10,
    "trends": 0.15,
}


@dataclass(frozen=True)
class IndicatorReading:
    """One normalized market signal contributing to the composite score."""

    name: str
    value: float  # 0 = maximally fearful, 1 = maximally greedy
    weight: float
    signal: Signal = Signal.NEUTRAL

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "value": self.value,
            "weight": self.weight,
            "signal": self.signal.value,
        }


@dataclass(frozen=True)
class CompositeScore:
    """Result of one scoring pass."""

    score: int
    tier: SentimentTier
    components: tuple[IndicatorReading, ...]
    recommendation: str
    timestamp: datetime
    weight_coverage: float = field(default=1.0, compare=False)

    @property
    def component_names(self) -> list[str]:
        return [c.name for c in self.components]

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "score": self.score,
            "tier": self.tier.value,
            "recommendation": self.recommendation,
            "timestamp": self.timestamp.isoformat(),
            "weight_coverage": round(self.weight_coverage, 4),
            "components": [c.to_dict() for c in self.components],
        }
