"""
Repository classes for CRUD operations.
"""

from datetime import datetime
from typing import Optional

from riskpulse.errors import InvalidTransition
from .connection import Database
from .models import RiskBasedReminder, RiskCondition, RiskDCAInvestment


class ReminderRepository:
    """CRUD operations for risk-based reminders."""

    def __init__(self, db: Database):
        self.db = db

    def create(self, reminder: RiskBasedReminder) -> RiskBasedReminder:
        """Create a new reminder."""
        cursor = self.db.connection.cursor()
        cursor.execute(
            """
            INSERT INTO risk_reminders
            (id, user_id, symbol, name, amount, risk_threshold, risk_condition,
             is_triggered, last_triggered_risk_level, is_active, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                reminder.id,
                reminder.user_id,
                reminder.symbol,
                reminder.name,
                reminder.amount,
                reminder.risk_threshold,
                reminder.risk_condition.value,
                1 if reminder.is_triggered else 0,
                reminder.last_triggered_risk_level,
                1 if reminder.is_active else 0,
                reminder.created_at.isoformat(),
            ),
        )
        self.db.connection.commit()
        return reminder

    def get_by_id(self, reminder_id: str) -> Optional[RiskBasedReminder]:
        """Get reminder by ID."""
        cursor = self.db.connection.cursor()
        cursor.execute("SELECT * FROM risk_reminders WHERE id = ?", (reminder_id,))
        row = cursor.fetchone()
        if row is None:
            return None
        return self._row_to_reminder(row)

    def list_all(self) -> list[RiskBasedReminder]:
        """List all reminders."""
        cursor = self.db.connection.cursor()
        cursor.execute("SELECT * FROM risk_reminders ORDER BY created_at, id")
        return [self._row_to_reminder(row) for row in cursor.fetchall()]

    def list_for_user(self, user_id: str) -> list[RiskBasedReminder]:
        """Get all reminders for a user."""
        cursor = self.db.connection.cursor()
        cursor.execute(
            "SELECT * FROM risk_reminders WHERE user_id = ? ORDER BY created_at, id",
            (user_id,),
        )
        return [self._row_to_reminder(row) for row in cursor.fetchall()]

    def list_active(self, user_id: Optional[str] = None) -> list[RiskBasedReminder]:
        """Get active reminders, optionally for a single user."""
        cursor = self.db.connection.cursor()
        if user_id is None:
            cursor.execute(
                """
                SELECT * FROM risk_reminders
                WHERE is_active = 1
                ORDER BY created_at, id
                """
            )
        else:
            cursor.execute(
                """
                SELECT * FROM risk_reminders
                WHERE is_active = 1 AND user_id = ?
                ORDER BY created_at, id
                """,
                (user_id,),
            )
        return [self._row_to_reminder(row) for row in cursor.fetchall()]

    def list_triggered(self, user_id: str) -> list[RiskBasedReminder]:
        """Get active reminders that are waiting for user action."""
        cursor = self.db.connection.cursor()
        cursor.execute(
            """
            SELECT * FROM risk_reminders
            WHERE user_id = ? AND is_active = 1 AND is_triggered = 1
            ORDER BY created_at, id
            """,
            (user_id,),
        )
        return [self._row_to_reminder(row) for row in cursor.fetchall()]

    def update(self, reminder: RiskBasedReminder) -> None:
        """Persist a reminder's mutable fields."""
        cursor = self.db.connection.cursor()
        cursor.execute(
            """
            UPDATE risk_reminders
            SET symbol = ?, name = ?, amount = ?, risk_threshold = ?,
                risk_condition = ?, is_triggered = ?,
                last_triggered_risk_level = ?, is_active = ?
            WHERE id = ?
            """,
            (
                reminder.symbol,
                reminder.name,
                reminder.amount,
                reminder.risk_threshold,
                reminder.risk_condition.value,
                1 if reminder.is_triggered else 0,
                reminder.last_triggered_risk_level,
                1 if reminder.is_active else 0,
                reminder.id,
            ),
        )
        self.db.connection.commit()

    def save_triggered(
        self, reminders: list[RiskBasedReminder]
    ) -> list[RiskBasedReminder]:
        """
        Persist Armed -> Triggered transitions in one transaction.

        A row is only updated while it is still armed and active, so a
        reminder fired by a concurrent pass is not fired again.

        Args:
            reminders: Reminders marked triggered in memory

        Returns:
            Reminders whose stored row actually changed
        """
        saved = []
        with self.db.connection:
            for reminder in reminders:
                cursor = self.db.connection.execute(
                    """
                    UPDATE risk_reminders
                    SET is_triggered = 1, last_triggered_risk_level = ?
                    WHERE id = ? AND is_triggered = 0 AND is_active = 1
                    """,
                    (reminder.last_triggered_risk_level, reminder.id),
                )
                if cursor.rowcount == 1:
                    saved.append(reminder)
        return saved

    def delete(self, reminder_id: str) -> None:
        """Delete a reminder and its investment history."""
        cursor = self.db.connection.cursor()
        cursor.execute("DELETE FROM risk_reminders WHERE id = ?", (reminder_id,))
        self.db.connection.commit()

    def _row_to_reminder(self, row) -> RiskBasedReminder:
        """Convert database row to RiskBasedReminder."""
        return RiskBasedReminder(
            id=row["id"],
            user_id=row["user_id"],
            symbol=row["symbol"],
            name=row["name"],
            amount=row["amount"],
            risk_threshold=row["risk_threshold"],
            risk_condition=RiskCondition(row["risk_condition"]),
            is_triggered=bool(row["is_triggered"]),
            last_triggered_risk_level=row["last_triggered_risk_level"],
            is_active=bool(row["is_active"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )


class InvestmentRepository:
    """Append-only storage for risk-based DCA investments."""

    def __init__(self, db: Database):
        self.db = db

    def create(self, investment: RiskDCAInvestment) -> RiskDCAInvestment:
        """Record an investment."""
        cursor = self.db.connection.cursor()
        cursor.execute(
            """
            INSERT INTO risk_investments
            (id, reminder_id, amount, price_at_purchase, quantity,
             risk_level_at_purchase, purchase_date)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                investment.id,
                investment.reminder_id,
                investment.amount,
                investment.price_at_purchase,
                investment.quantity,
                investment.risk_level_at_purchase,
                investment.purchase_date.isoformat(),
            ),
        )
        self.db.connection.commit()
        return investment

    def record(
        self, investment: RiskDCAInvestment, reminder: RiskBasedReminder
    ) -> RiskDCAInvestment:
        """
        Store an investment and re-arm its reminder atomically.

        Both writes commit together or not at all. The reminder row must
        still be triggered, so two concurrent invests cannot both record.

        Raises:
            InvalidTransition: If the stored reminder is no longer triggered
        """
        with self.db.connection:
            self.db.connection.execute(
                """
                INSERT INTO risk_investments
                (id, reminder_id, amount, price_at_purchase, quantity,
                 risk_level_at_purchase, purchase_date)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    investment.id,
                    investment.reminder_id,
                    investment.amount,
                    investment.price_at_purchase,
                    investment.quantity,
                    investment.risk_level_at_purchase,
                    investment.purchase_date.isoformat(),
                ),
            )
            cursor = self.db.connection.execute(
                """
                UPDATE risk_reminders
                SET is_triggered = 0, last_triggered_risk_level = NULL
                WHERE id = ? AND is_triggered = 1
                """,
                (reminder.id,),
            )
            if cursor.rowcount != 1:
                raise InvalidTransition(f"Reminder {reminder.id} is not triggered")
        return investment

    def list_for_reminder(self, reminder_id: str) -> list[RiskDCAInvestment]:
        """Get investment history for a reminder, newest first."""
        cursor = self.db.connection.cursor()
        cursor.execute(
            """
            SELECT * FROM risk_investments
            WHERE reminder_id = ?
            ORDER BY purchase_date DESC
            """,
            (reminder_id,),
        )
        return [self._row_to_investment(row) for row in cursor.fetchall()]

    def total_invested(self, reminder_id: str) -> float:
        """Sum of amounts invested through a reminder."""
        cursor = self.db.connection.cursor()
        cursor.execute(
            "SELECT COALESCE(SUM(amount), 0) FROM risk_investments WHERE reminder_id = ?",
            (reminder_id,),
        )
        return float(cursor.fetchone()[0])

    def _row_to_investment(self, row) -> RiskDCAInvestment:
        """Convert database row to RiskDCAInvestment."""
        return RiskDCAInvestment(
            id=row["id"],
            reminder_id=row["reminder_id"],
            amount=row["amount"],
            price_at_purchase=row["price_at_purchase"],
            quantity=row["quantity"],
            risk_level_at_purchase=row["risk_level_at_purchase"],
            purchase_date=datetime.fromisoformat(row["purchase_date"]),
        )
