"""
Composite score aggregation.

Combines whatever indicator readings are currently available into a single
0-100 score. Missing indicators are handled by normalizing the weighted sum
by the total weight of the readings that are present, so the weight of an
absent indicator is spread proportionally across the others instead of
deflating the score.
"""

import math
from datetime import datetime
from typing import Iterable, Optional

from riskpulse.errors import InsufficientData
from .types import (
    CompositeScore,
    IndicatorReading,
    INDICATOR_CATALOG,
    RECOMMENDATIONS,
    SentimentTier,
    TIER_BANDS,
)

__all__ = [
    "ScoreAggregator",
    "compute_score",
    "tier_for_score",
    "recommendation_for",
]


def tier_for_score(score: int) -> SentimentTier:
    """
    Map an integer score to its sentiment tier.

    Bands are inclusive: 0-20, 21-40, 41-60, 61-80, 81-100.

    Raises:
        ValueError: If score is outside [0, 100]
    """
    if score < 0 or score > 100:
        raise ValueError(f"Score out of range: {score}")
    for upper, tier in TIER_BANDS:
        if score <= upper:
            return tier
    return SentimentTier.EXTREME_GREED


def recommendation_for(tier: SentimentTier) -> str:
    """Get the recommendation text for a tier."""
    return RECOMMENDATIONS[tier]


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class ScoreAggregator:
    """Computes composite scores from indicator readings."""

    def __init__(self, catalog: Optional[dict[str, float]] = None):
        """
        Initialize aggregator.

        Args:
            catalog: Nominal indicator weights, used only to report how much
                of the catalog a pass covered
        """
        self.catalog = dict(catalog) if catalog is not None else dict(INDICATOR_CATALOG)

    def compute_score(
        self,
        readings: Iterable[IndicatorReading],
        now: Optional[datetime] = None,
    ) -> CompositeScore:
        """
        Compute the composite score for a set of readings.

        Args:
            readings: Readings from the indicators that returned data.
                Values are expected to be pre-clamped to [0, 1].
            now: Timestamp for the result (defaults to current time)

        Returns:
            CompositeScore with score, tier and recommendation

        Raises:
            InsufficientData: If there are no readings or their weights sum to 0
            ValueError: If a reading has a negative weight or a duplicate name
        """
        components = tuple(readings)
        if not components:
            raise InsufficientData("No indicator readings supplied")

        seen: set[str] = set()
        for reading in components:
            if reading.name in seen:
                raise ValueError(f"Duplicate indicator: {reading.name}")
            if reading.weight < 0:
                raise ValueError(f"Negative weight for indicator: {reading.name}")
            seen.add(reading.name)

        total_weight = sum(r.weight for r in components)
        if total_weight == 0:
            raise InsufficientData("Indicator weights sum to zero")

        weighted_sum = sum(r.value * r.weight for r in components)
        normalized = weighted_sum / total_weight

        score = max(0, min(100, _round_half_up(normalized * 100)))
        tier = tier_for_score(score)

        return CompositeScore(
            score=score,
            tier=tier,
            components=components,
            recommendation=recommendation_for(tier),
            timestamp=now or datetime.now(),
            weight_coverage=self._coverage(components),
        )

    def _coverage(self, components: tuple[IndicatorReading, ...]) -> float:
        """Share of the catalog's nominal weight present in this pass."""
        catalog_total = sum(self.catalog.values())
        if catalog_total == 0:
            return 0.0
        present = sum(self.catalog.get(r.name, 0.0) for r in components)
        return min(1.0, present / catalog_total)


def compute_score(
    readings: Iterable[IndicatorReading],
    now: Optional[datetime] = None,
) -> CompositeScore:
    """Compute a composite score using the default indicator catalog."""
    return ScoreAggregator().compute_score(readings, now=now)
