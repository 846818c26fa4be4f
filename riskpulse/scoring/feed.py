"""
Assembly of indicator readings from upstream sources.
"""

import logging
import math
from typing import Awaitable, Callable, Mapping, Optional

from riskpulse.data.concurrency import parallel_map
from .types import IndicatorReading, INDICATOR_CATALOG, Signal

logger = logging.getLogger(__name__)

# A source returns the raw indicator value already mapped to [0, 1]
IndicatorSource = Callable[[], Awaitable[float]]

BULLISH_CUTOFF = 0.6
BEARISH_CUTOFF = 0.4


def clamp_unit(value: float) -> float:
    """Clamp a value to [0, 1]. NaN is rejected."""
    if math.isnan(value):
        raise ValueError("Indicator value is NaN")
    return max(0.0, min(1.0, value))


def normalize_fear_greed(index_value: float) -> float:
    """Normalize a 0-100 fear & greed index reading."""
    return clamp_unit(index_value / 100.0)


def normalize_app_store_rank(rank: int, max_rank: int = 500) -> float:
    """
    Normalize an app store ranking.

    A lower rank means more retail interest, so rank 1 maps close to 1.0
    and anything at or beyond ``max_rank`` maps to 0.0.
    """
    if max_rank <= 0:
        raise ValueError("max_rank must be positive")
    return clamp_unit((max_rank - rank) / max_rank)


def normalize_percent(value: float, low: float, high: float) -> float:
    """Linearly rescale ``value`` from [low, high] to [0, 1]."""
    if high == low:
        raise ValueError("high and low must differ")
    return clamp_unit((value - low) / (high - low))


def classify_signal(value: float) -> Signal:
    """Classify a normalized value for display."""
    if value >= BULLISH_CUTOFF:
        return Signal.BULLISH
    if value <= BEARISH_CUTOFF:
        return Signal.BEARISH
    return Signal.NEUTRAL


def make_reading(
    name: str,
    value: float,
    catalog: Optional[Mapping[str, float]] = None,
) -> IndicatorReading:
    """
    Build a clamped reading using the catalog weight for ``name``.

    Raises:
        KeyError: If the indicator is not in the catalog
    """
    weights = catalog if catalog is not None else INDICATOR_CATALOG
    clamped = clamp_unit(value)
    return IndicatorReading(
        name=name,
        value=clamped,
        weight=weights[name],
        signal=classify_signal(clamped),
    )


async def assemble_readings(
    sources: Mapping[str, IndicatorSource],
    catalog: Optional[Mapping[str, float]] = None,
    timeout: Optional[float] = 10.0,
) -> list[IndicatorReading]:
    """
    Fetch every indicator source concurrently and build readings.

    Sources that fail, time out or are not in the catalog are left out;
    the aggregator redistributes their weight.

    Args:
        sources: Mapping of indicator name to async source
        catalog: Indicator weights (defaults to INDICATOR_CATALOG)
        timeout: Per-source timeout in seconds

    Returns:
        Readings in catalog order
    """
    weights = catalog if catalog is not None else INDICATOR_CATALOG

    unknown = [name for name in sources if name not in weights]
    for name in unknown:
        logger.warning(f"Ignoring indicator not in catalog: {name}")

    async def _fetch(name: str) -> float:
        return await sources[name]()

    known = [name for name in sources if name in weights]
    result = await parallel_map(_fetch, known, timeout=timeout)

    readings = []
    for name in weights:
        if name not in result.values:
            continue
        try:
            readings.append(make_reading(name, result.values[name], weights))
        except (TypeError, ValueError) as e:
            logger.warning(f"Discarding invalid value for {name}: {e}")

    if result.failed:
        logger.info(
            f"Assembled {len(readings)}/{len(known)} indicators, "
            f"missing: {', '.join(map(str, result.failed))}"
        )
    return readings
