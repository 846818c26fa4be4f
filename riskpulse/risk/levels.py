"""
Per-asset risk levels and the provider interface.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

LOW_UPPER = 40.0
HIGH_LOWER = 70.0


class RiskCategory(Enum):
    """Risk bucket derived from a 0-100 score."""

    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"

    @classmethod
    def from_score(
        cls,
        score: float,
        low_upper: float = LOW_UPPER,
        high_lower: float = HIGH_LOWER,
    ) -> "RiskCategory":
        """
        Categorize a score.

        Low is ``score < low_upper``, High is ``score >= high_lower``,
        everything in between is Moderate.
        """
        if score < low_upper:
            return cls.LOW
        if score >= high_lower:
            return cls.HIGH
        return cls.MODERATE

    @property
    def display_name(self) -> str:
        return self.value.title()


@dataclass(frozen=True)
class RiskLevel:
    """Point-in-time risk reading for one asset."""

    asset_id: str
    symbol: str
    score: float
    category: RiskCategory
    timestamp: datetime

    def __post_init__(self):
        if not 0 <= self.score <= 100:
            raise ValueError(f"Risk score out of range for {self.symbol}: {self.score}")

    @classmethod
    def from_score(
        cls,
        symbol: str,
        score: float,
        asset_id: str = "",
        timestamp: datetime = None,
        low_upper: float = LOW_UPPER,
        high_lower: float = HIGH_LOWER,
    ) -> "RiskLevel":
        """Build a reading, deriving the category from the score."""
        return cls(
            asset_id=asset_id or symbol.lower(),
            symbol=symbol.upper(),
            score=float(score),
            category=RiskCategory.from_score(score, low_upper, high_lower),
            timestamp=timestamp or datetime.now(),
        )


class RiskLevelProvider(ABC):
    """Source of current per-asset risk levels."""

    @abstractmethod
    async def fetch_risk_level(self, symbol: str) -> RiskLevel:
        """
        Fetch the current risk level for a symbol.

        Args:
            symbol: Asset symbol (e.g., "BTC")

        Returns:
            Current RiskLevel

        Raises:
            ProviderUnavailable: If no reading can be produced. Providers
                never fall back to a default score.
        """
        pass
