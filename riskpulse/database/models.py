"""
Data models for risk-based DCA automation.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from riskpulse.errors import InvalidTransition


class RiskCondition(Enum):
    """Direction in which the risk score must cross the threshold."""

    BELOW = "below"
    ABOVE = "above"

    @property
    def display_name(self) -> str:
        return self.value.title()


class ReminderState(Enum):
    """Steady states of a risk-based reminder."""

    ARMED = "armed"
    TRIGGERED = "triggered"
    INACTIVE = "inactive"


def _new_id() -> str:
    return str(uuid.uuid4())


@dataclass
class RiskBasedReminder:
    """User-defined rule: invest ``amount`` when risk crosses a threshold."""

    user_id: str
    symbol: str
    name: str
    amount: float
    risk_threshold: float  # 0-100
    risk_condition: RiskCondition
    is_triggered: bool = False
    last_triggered_risk_level: Optional[float] = None
    is_active: bool = True
    id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self):
        if not 0 <= self.risk_threshold <= 100:
            raise ValueError(f"Risk threshold out of range: {self.risk_threshold}")
        if self.amount <= 0:
            raise ValueError(f"Amount must be positive: {self.amount}")
        if self.is_triggered != (self.last_triggered_risk_level is not None):
            raise ValueError(
                "last_triggered_risk_level must be set exactly when triggered"
            )
        self.symbol = self.symbol.upper()

    @property
    def state(self) -> ReminderState:
        if not self.is_active:
            return ReminderState.INACTIVE
        if self.is_triggered:
            return ReminderState.TRIGGERED
        return ReminderState.ARMED

    @property
    def trigger_description(self) -> str:
        return (
            f"When risk {self.risk_condition.display_name.lower()} "
            f"{int(self.risk_threshold)}%"
        )

    def condition_met(self, current_risk: float) -> bool:
        """Whether ``current_risk`` satisfies the threshold condition."""
        if self.risk_condition is RiskCondition.BELOW:
            return current_risk <= self.risk_threshold
        return current_risk >= self.risk_threshold

    def should_trigger(self, current_risk: float) -> bool:
        """Only armed reminders can fire."""
        return self.state is ReminderState.ARMED and self.condition_met(current_risk)

    def mark_triggered(self, risk_level: float) -> None:
        """Armed -> Triggered."""
        if self.state is not ReminderState.ARMED:
            raise InvalidTransition(
                f"Reminder {self.id} cannot trigger from state {self.state.value}"
            )
        self.is_triggered = True
        self.last_triggered_risk_level = risk_level

    def clear_trigger(self) -> None:
        """Triggered -> Armed, used by invest and reset."""
        if not self.is_triggered:
            raise InvalidTransition(f"Reminder {self.id} is not triggered")
        self.is_triggered = False
        self.last_triggered_risk_level = None

    def set_active(self, active: bool) -> None:
        self.is_active = active


@dataclass(frozen=True)
class RiskDCAInvestment:
    """Record of an investment made from a triggered reminder."""

    reminder_id: str
    amount: float
    price_at_purchase: float
    quantity: float
    risk_level_at_purchase: float
    purchase_date: datetime
    id: str = field(default_factory=_new_id)

    @classmethod
    def create(
        cls,
        reminder_id: str,
        amount: float,
        price_at_purchase: float,
        risk_level_at_purchase: float,
        purchase_date: Optional[datetime] = None,
    ) -> "RiskDCAInvestment":
        """Create a record, deriving quantity from amount and price."""
        if price_at_purchase <= 0:
            raise ValueError(f"Price must be positive: {price_at_purchase}")
        return cls(
            reminder_id=reminder_id,
            amount=amount,
            price_at_purchase=price_at_purchase,
            quantity=amount / price_at_purchase,
            risk_level_at_purchase=risk_level_at_purchase,
            purchase_date=purchase_date or datetime.now(),
        )
