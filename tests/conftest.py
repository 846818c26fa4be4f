"""
Pytest configuration and shared fixtures.
"""

import pytest

from riskpulse.database.connection import Database
from riskpulse.database.models import RiskBasedReminder, RiskCondition
from riskpulse.errors import ProviderUnavailable
from riskpulse.risk.levels import RiskLevel, RiskLevelProvider
from riskpulse.scoring.types import IndicatorReading, Signal


class FakeRiskProvider(RiskLevelProvider):
    """In-memory provider that records calls and can fail per symbol."""

    def __init__(self, scores=None, failing=None):
        self.scores = dict(scores or {})
        self.failing = set(failing or [])
        self.calls: list[str] = []

    async def fetch_risk_level(self, symbol: str) -> RiskLevel:
        self.calls.append(symbol)
        if symbol in self.failing or symbol not in self.scores:
            raise ProviderUnavailable(symbol, "test failure")
        return RiskLevel.from_score(symbol, self.scores[symbol])


@pytest.fixture
def db():
    """In-memory database with schema."""
    database = Database(":memory:")
    database.initialize()
    yield database
    database.close()


@pytest.fixture
def make_reminder():
    """Factory for armed reminders."""

    def _make(symbol="BTC", threshold=30.0, condition=RiskCondition.BELOW, **kwargs):
        params = {
            "user_id": "user-1",
            "symbol": symbol,
            "name": f"{symbol} dip buyer",
            "amount": 100.0,
            "risk_threshold": threshold,
            "risk_condition": condition,
        }
        params.update(kwargs)
        return RiskBasedReminder(**params)

    return _make


@pytest.fixture
def scenario_readings():
    """Full indicator catalog with every source present."""
    return [
        IndicatorReading("fear_greed", 0.49, 0.20, Signal.NEUTRAL),
        IndicatorReading("app_store", 0.35, 0.15, Signal.BEARISH),
        IndicatorReading("funding", 0.62, 0.15, Signal.BULLISH),
        IndicatorReading("etf", 0.71, 0.15, Signal.BULLISH),
        IndicatorReading("liquidation", 0.55, 0.10, Signal.NEUTRAL),
        IndicatorReading("dominance", 0.62, 0.10, Signal.BULLISH),
        IndicatorReading("trends", 0.66, 0.15, Signal.BULLISH),
    ]
