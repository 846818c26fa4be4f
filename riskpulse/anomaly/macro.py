"""
Macro indicator catalog and aggregate z-score evaluation.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping, Optional, Sequence

from riskpulse.errors import InsufficientHistory
from .zscore import ZScoreDetector, ZScoreRecord

logger = logging.getLogger(__name__)


class Correlation(Enum):
    """How an indicator tends to move relative to crypto prices."""

    POSITIVE = "positive"
    INVERSE = "inverse"


class MarketImplication(Enum):
    BULLISH = "Bullish for crypto"
    FAVORABLE = "Favorable conditions"
    NEUTRAL = "Neutral conditions"
    CAUTIOUS = "Exercise caution"
    BEARISH = "Bearish for crypto"


@dataclass(frozen=True)
class MacroIndicator:
    """A tracked macro series."""

    id: str
    display_name: str
    full_name: str
    correlation: Correlation
    high_interpretation: str
    low_interpretation: str


MACRO_INDICATORS: dict[str, MacroIndicator] = {
    "VIX": MacroIndicator(
        id="VIX",
        display_name="VIX",
        full_name="CBOE Volatility Index",
        correlation=Correlation.INVERSE,
        high_interpretation=(
            "Elevated fear in equity markets - bearish for crypto in the short "
            "term but can signal capitulation bottoms"
        ),
        low_interpretation=(
            "Complacency in equity markets - favorable for risk assets but "
            "watch for volatility expansion"
        ),
    ),
    "DXY": MacroIndicator(
        id="DXY",
        display_name="US Dollar",
        full_name="US Dollar Index",
        correlation=Correlation.INVERSE,
        high_interpretation=(
            "Unusually strong dollar - headwind for risk assets including crypto"
        ),
        low_interpretation="Unusually weak dollar - tailwind for crypto and risk assets",
    ),
    "M2": MacroIndicator(
        id="M2",
        display_name="M2 Supply",
        full_name="M2 Money Supply",
        correlation=Correlation.POSITIVE,
        high_interpretation=(
            "Rapid liquidity expansion - bullish for crypto with a 2-3 month lag"
        ),
        low_interpretation="Liquidity contraction - headwind for crypto",
    ),
}


def market_implication(indicator: MacroIndicator, record: ZScoreRecord) -> MarketImplication:
    """Translate a z-score into its meaning for crypto given the correlation."""
    if not record.is_significant or record.z_score == 0:
        return MarketImplication.NEUTRAL

    high_is_bearish = indicator.correlation is Correlation.INVERSE
    bearish = (record.z_score > 0) == high_is_bearish

    if record.is_extreme:
        return MarketImplication.BEARISH if bearish else MarketImplication.BULLISH
    return MarketImplication.CAUTIOUS if bearish else MarketImplication.FAVORABLE


def interpretation(indicator: MacroIndicator, record: ZScoreRecord) -> str:
    if record.is_extreme and record.z_score > 0:
        return indicator.high_interpretation
    if record.is_extreme and record.z_score < 0:
        return indicator.low_interpretation
    return f"{indicator.display_name} is within its normal historical range"


@dataclass
class MacroZScoreReport:
    """Z-scores for every macro indicator that had enough history."""

    records: dict[str, ZScoreRecord] = field(default_factory=dict)
    unavailable: list[str] = field(default_factory=list)

    @property
    def has_extreme_move(self) -> bool:
        return any(r.is_extreme for r in self.records.values())

    @property
    def extreme_indicators(self) -> list[str]:
        return [k for k, r in self.records.items() if r.is_extreme]

    def to_dict(self) -> dict:
        return {
            "has_extreme_move": self.has_extreme_move,
            "records": {k: r.to_dict() for k, r in self.records.items()},
            "unavailable": list(self.unavailable),
        }


def evaluate_macro(
    series: Mapping[str, tuple[Sequence[float], float]],
    detector: Optional[ZScoreDetector] = None,
) -> MacroZScoreReport:
    """
    Compute z-scores for each macro indicator independently.

    Args:
        series: Mapping of indicator id to (history, current value).
            Catalog indicators missing from the mapping are reported
            as unavailable.
        detector: Detector to use (defaults to ZScoreDetector())

    Returns:
        MacroZScoreReport
    """
    detector = detector or ZScoreDetector()
    report = MacroZScoreReport()

    indicator_ids = list(MACRO_INDICATORS)
    indicator_ids += [k for k in series if k not in MACRO_INDICATORS]

    for indicator_id in indicator_ids:
        if indicator_id not in series:
            report.unavailable.append(indicator_id)
            continue

        history, current = series[indicator_id]
        try:
            report.records[indicator_id] = detector.compute(indicator_id, history, current)
        except InsufficientHistory as e:
            logger.warning(str(e))
            report.unavailable.append(indicator_id)

    return report
