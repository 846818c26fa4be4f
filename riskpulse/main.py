"""
Main application entry point.
"""

import asyncio
import logging
from typing import Mapping, Optional

from dotenv import load_dotenv

load_dotenv()

from riskpulse.automation.engine import TriggerEngine
from riskpulse.config import AppConfig, ProviderConfig, ScoringConfig
from riskpulse.data.fetcher import MarketDataFetcher
from riskpulse.database.connection import Database
from riskpulse.database.models import RiskBasedReminder, RiskDCAInvestment
from riskpulse.database.repository import InvestmentRepository, ReminderRepository
from riskpulse.risk.levels import RiskLevelProvider
from riskpulse.risk.providers import HttpRiskLevelProvider, StaticRiskLevelProvider
from riskpulse.scoring.aggregator import ScoreAggregator
from riskpulse.scoring.feed import IndicatorSource, assemble_readings
from riskpulse.scoring.types import CompositeScore

logger = logging.getLogger(__name__)


class ReminderNotFound(LookupError):
    """Raised when a reminder id does not exist."""

    pass


def build_provider(
    config: ProviderConfig,
    low_upper: float = 40.0,
    high_lower: float = 70.0,
) -> RiskLevelProvider:
    """Create the configured risk level provider."""
    if config.type == "http":
        return HttpRiskLevelProvider(
            base_url=config.base_url,
            timeout=config.timeout_seconds,
            api_key=config.api_key or None,
            low_upper=low_upper,
            high_lower=high_lower,
        )
    return StaticRiskLevelProvider(
        config.static_scores,
        low_upper=low_upper,
        high_lower=high_lower,
    )


class RiskPulseApp:
    """Runs reminder evaluation and user actions against persisted state."""

    def __init__(
        self,
        db: Database,
        provider: RiskLevelProvider,
        fetcher: Optional[MarketDataFetcher] = None,
        engine: Optional[TriggerEngine] = None,
        scoring: Optional[ScoringConfig] = None,
    ):
        """
        Initialize app.

        Args:
            db: Database instance
            provider: Source of current risk levels
            fetcher: Market price source used when investing
            engine: Trigger engine (defaults to TriggerEngine())
            scoring: Indicator weights and source timeout
        """
        self.db = db
        self.provider = provider
        self.fetcher = fetcher or MarketDataFetcher()
        self.engine = engine or TriggerEngine()
        self.scoring = scoring or ScoringConfig()

        self.reminder_repo = ReminderRepository(db)
        self.investment_repo = InvestmentRepository(db)

    @classmethod
    def from_config(cls, config: AppConfig, db: Database) -> "RiskPulseApp":
        return cls(
            db=db,
            provider=build_provider(
                config.provider,
                low_upper=config.risk.low_upper,
                high_lower=config.risk.high_lower,
            ),
            fetcher=MarketDataFetcher(quote_currency=config.advanced.quote_currency),
            engine=TriggerEngine(
                fetch_timeout=config.automation.fetch_timeout_seconds,
                max_concurrency=config.automation.max_concurrency,
            ),
            scoring=config.scoring,
        )

    async def score_indicators(
        self, sources: Mapping[str, IndicatorSource]
    ) -> CompositeScore:
        """
        Fetch indicator sources concurrently and compute the composite score.

        Sources that fail or exceed ``scoring.source_timeout_seconds`` are
        left out and their weight is redistributed.

        Raises:
            InsufficientData: If no source produced a usable reading
        """
        readings = await assemble_readings(
            sources,
            catalog=self.scoring.weights,
            timeout=self.scoring.source_timeout_seconds,
        )
        return ScoreAggregator(catalog=self.scoring.weights).compute_score(readings)

    async def check(self, user_id: Optional[str] = None) -> list[RiskBasedReminder]:
        """
        Evaluate active reminders and persist the ones that triggered.

        Args:
            user_id: Restrict to one user's reminders

        Returns:
            Newly triggered reminders
        """
        reminders = self.reminder_repo.list_active(user_id)
        if not reminders:
            logger.debug("No active reminders to evaluate")
            return []

        fired = await self.engine.evaluate(reminders, self.provider)
        # Rows already fired by an overlapping pass are not reported again
        triggered = self.reminder_repo.save_triggered(fired) if fired else []

        logger.info(
            f"Evaluated {len(reminders)} reminder(s), {len(triggered)} newly triggered"
        )
        return triggered

    def run_check(self, user_id: Optional[str] = None) -> list[RiskBasedReminder]:
        """Synchronous wrapper around check()."""
        return asyncio.run(self.check(user_id))

    def invest(self, reminder_id: str) -> RiskDCAInvestment:
        """
        Invest through a triggered reminder at the current market price.

        Raises:
            ReminderNotFound: If the reminder does not exist
            InvalidTransition: If the reminder is not triggered
            PriceUnavailable: If no valid price can be fetched
        """
        reminder = self._get(reminder_id)
        price = self.fetcher.get_current_price(reminder.symbol)

        investment = self.engine.invest(reminder, price)
        return self.investment_repo.record(investment, reminder)

    def reset(self, reminder_id: str) -> RiskBasedReminder:
        reminder = self.engine.reset(self._get(reminder_id))
        self.reminder_repo.update(reminder)
        return reminder

    def toggle(self, reminder_id: str) -> RiskBasedReminder:
        reminder = self.engine.toggle(self._get(reminder_id))
        self.reminder_repo.update(reminder)
        return reminder

    def delete(self, reminder_id: str) -> None:
        """Delete a reminder together with its investment history."""
        self._get(reminder_id)
        self.reminder_repo.delete(reminder_id)

    def _get(self, reminder_id: str) -> RiskBasedReminder:
        reminder = self.reminder_repo.get_by_id(reminder_id)
        if reminder is None:
            raise ReminderNotFound(f"Reminder not found: {reminder_id}")
        return reminder


def main():
    """Scheduled check entry point."""
    import argparse

    parser = argparse.ArgumentParser(description="RiskPulse reminder check")
    parser.add_argument(
        "--config", default="config.yaml", help="Path to config file"
    )
    parser.add_argument("--user", help="Only evaluate this user's reminders")
    parser.add_argument("--debug", action="store_true", help="Enable debug mode")

    args = parser.parse_args()

    from riskpulse.config import load_config

    config = load_config(args.config)

    # Setup logging
    log_level = logging.DEBUG if args.debug else config.advanced.log_level.upper()
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    db = Database(config.database.path)
    db.initialize()

    app = RiskPulseApp.from_config(config, db)
    try:
        app.run_check(args.user)
    finally:
        db.close()


if __name__ == "__main__":
    main()
