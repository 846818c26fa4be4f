"""
Threshold trigger engine for risk-based DCA reminders.

Evaluation is pull based: the caller decides when to run a pass. Each pass
fetches one risk level per distinct symbol concurrently, waits for every
fetch to finish, then applies state transitions one reminder at a time under
a lock. A triggered reminder stays triggered until the user invests or
resets it, so a score hovering around the threshold fires only once.
"""

import logging
import math
import threading
from datetime import datetime
from typing import Iterable, Optional

from riskpulse.data.concurrency import parallel_map
from riskpulse.database.models import ReminderState, RiskBasedReminder, RiskDCAInvestment
from riskpulse.errors import InvalidTransition, PriceUnavailable
from riskpulse.risk.levels import RiskLevel, RiskLevelProvider

logger = logging.getLogger(__name__)

__all__ = ["TriggerEngine", "EvaluationReport"]


class EvaluationReport:
    """Outcome of one evaluation pass."""

    def __init__(self):
        self.triggered: list[RiskBasedReminder] = []
        self.skipped: dict[str, str] = {}  # reminder id -> reason
        self.risk_levels: dict[str, RiskLevel] = {}

    @property
    def evaluated_symbols(self) -> list[str]:
        return sorted(self.risk_levels)


class TriggerEngine:
    """Evaluates reminders against current risk levels and drives their state."""

    def __init__(
        self,
        fetch_timeout: Optional[float] = 10.0,
        max_concurrency: Optional[int] = 8,
    ):
        """
        Initialize engine.

        Args:
            fetch_timeout: Per-symbol risk fetch timeout in seconds
            max_concurrency: Maximum risk fetches in flight
        """
        self.fetch_timeout = fetch_timeout
        self.max_concurrency = max_concurrency
        # Guards check-then-set on reminder state; never held across an await
        self._lock = threading.Lock()

    async def evaluate(
        self,
        reminders: Iterable[RiskBasedReminder],
        provider: RiskLevelProvider,
    ) -> list[RiskBasedReminder]:
        """
        Run one evaluation pass.

        Args:
            reminders: Caller-owned reminders; triggered ones are mutated in place
            provider: Source of current risk levels

        Returns:
            Reminders that moved from Armed to Triggered in this pass
        """
        report = await self.evaluate_with_report(reminders, provider)
        return report.triggered

    async def evaluate_with_report(
        self,
        reminders: Iterable[RiskBasedReminder],
        provider: RiskLevelProvider,
    ) -> EvaluationReport:
        """Run one evaluation pass and report skipped reminders as well."""
        report = EvaluationReport()
        armed = [r for r in reminders if r.state is ReminderState.ARMED]
        if not armed:
            return report

        symbols = sorted({r.symbol.upper() for r in armed})
        fetched = await parallel_map(
            provider.fetch_risk_level,
            symbols,
            timeout=self.fetch_timeout,
            max_concurrency=self.max_concurrency,
        )
        report.risk_levels = dict(fetched.values)

        with self._lock:
            for reminder in armed:
                symbol = reminder.symbol.upper()
                level = fetched.values.get(symbol)
                if level is None:
                    error = fetched.errors.get(symbol)
                    report.skipped[reminder.id] = f"risk level unavailable: {error}"
                    continue

                # Another pass may have fired this reminder while we were fetching
                if not reminder.should_trigger(level.score):
                    continue

                reminder.mark_triggered(level.score)
                report.triggered.append(reminder)
                logger.info(
                    f"Reminder {reminder.id} ({reminder.symbol}) triggered at risk "
                    f"{level.score:.1f} ({reminder.trigger_description})"
                )

        if report.skipped:
            logger.warning(
                f"Skipped {len(report.skipped)} reminder(s) with no risk level: "
                f"{', '.join(fetched.failed)}"
            )
        return report

    def invest(
        self,
        reminder: RiskBasedReminder,
        current_price: Optional[float],
        now: Optional[datetime] = None,
    ) -> RiskDCAInvestment:
        """
        Record an investment for a triggered reminder and re-arm it.

        Args:
            reminder: Reminder in the Triggered state
            current_price: Market price at the time of investing
            now: Purchase timestamp (defaults to current time)

        Returns:
            The new RiskDCAInvestment

        Raises:
            InvalidTransition: If the reminder is not triggered
            PriceUnavailable: If the price is missing, zero or not finite.
                The reminder is left triggered.
        """
        with self._lock:
            if reminder.state is not ReminderState.TRIGGERED:
                raise InvalidTransition(
                    f"Cannot invest reminder {reminder.id} in state {reminder.state.value}"
                )
            if (
                current_price is None
                or not math.isfinite(current_price)
                or current_price <= 0
            ):
                raise PriceUnavailable(reminder.symbol, current_price)

            investment = RiskDCAInvestment.create(
                reminder_id=reminder.id,
                amount=reminder.amount,
                price_at_purchase=current_price,
                risk_level_at_purchase=reminder.last_triggered_risk_level,
                purchase_date=now,
            )
            reminder.clear_trigger()

        logger.info(
            f"Invested {reminder.amount:.2f} in {reminder.symbol} at {current_price:.2f} "
            f"(quantity {investment.quantity:.8f})"
        )
        return investment

    def reset(self, reminder: RiskBasedReminder) -> RiskBasedReminder:
        """
        Re-arm a triggered reminder without investing.

        Raises:
            InvalidTransition: If the reminder is not triggered
        """
        with self._lock:
            if reminder.state is not ReminderState.TRIGGERED:
                raise InvalidTransition(
                    f"Cannot reset reminder {reminder.id} in state {reminder.state.value}"
                )
            reminder.clear_trigger()
        return reminder

    def toggle(self, reminder: RiskBasedReminder) -> RiskBasedReminder:
        """Pause or resume a reminder. Trigger state is preserved."""
        with self._lock:
            reminder.set_active(not reminder.is_active)
        return reminder
