"""
Database tests.
Tests for schema constraints and repository CRUD operations.
"""

import sqlite3
import pytest
from datetime import datetime, timedelta

from riskpulse.database.models import RiskCondition, RiskDCAInvestment
from riskpulse.database.repository import InvestmentRepository, ReminderRepository
from riskpulse.errors import InvalidTransition


class TestDatabase:
    """Test Database class."""

    def test_initialize_creates_tables(self, db):
        """Should create every table."""
        cursor = db.connection.cursor()
        cursor.execute("SELECT name FROM sqlite_master WHERE type='table'")
        tables = {row[0] for row in cursor.fetchall()}

        assert "risk_reminders" in tables
        assert "risk_investments" in tables

    def test_initialize_is_idempotent(self, db):
        """Should be safe to initialize twice."""
        db.initialize()

    def test_triggered_invariant_enforced_by_schema(self, db):
        """Should reject rows that break the triggered invariant."""
        with pytest.raises(sqlite3.IntegrityError):
            db.connection.execute(
                """
                INSERT INTO risk_reminders
                (id, user_id, symbol, name, amount, risk_threshold, risk_condition,
                 is_triggered, last_triggered_risk_level, is_active, created_at)
                VALUES ('x', 'u', 'BTC', 'n', 1, 30, 'below', 1, NULL, 1, '2026-01-01')
                """
            )

    def test_closed_connection(self, db):
        """Should raise once closed."""
        db.close()
        with pytest.raises(sqlite3.ProgrammingError):
            db.connection


class TestReminderRepository:
    """Test ReminderRepository."""

    @pytest.fixture
    def repo(self, db):
        return ReminderRepository(db)

    def test_create_and_get(self, repo, make_reminder):
        """Should round-trip every field."""
        reminder = repo.create(
            make_reminder(symbol="ETH", threshold=72.5, condition=RiskCondition.ABOVE)
        )

        loaded = repo.get_by_id(reminder.id)

        assert loaded == reminder

    def test_get_missing(self, repo):
        """Should return None for unknown ids."""
        assert repo.get_by_id("missing") is None

    def test_list_for_user(self, repo, make_reminder):
        """Should filter by user."""
        repo.create(make_reminder())
        repo.create(make_reminder(user_id="user-2"))

        assert len(repo.list_for_user("user-1")) == 1
        assert len(repo.list_all()) == 2

    def test_list_active(self, repo, make_reminder):
        """Should exclude paused reminders."""
        active = repo.create(make_reminder())
        repo.create(make_reminder(is_active=False))
        other_user = repo.create(make_reminder(user_id="user-2"))

        assert {r.id for r in repo.list_active()} == {active.id, other_user.id}
        assert [r.id for r in repo.list_active("user-1")] == [active.id]

    def test_list_triggered(self, repo, make_reminder):
        """Should return active triggered reminders."""
        armed = repo.create(make_reminder())
        fired = repo.create(make_reminder(is_triggered=True, last_triggered_risk_level=22.0))

        result = repo.list_triggered("user-1")

        assert [r.id for r in result] == [fired.id]
        assert armed.id not in {r.id for r in result}

    def test_update(self, repo, make_reminder):
        """Should persist state changes."""
        reminder = repo.create(make_reminder())
        reminder.mark_triggered(18.0)
        reminder.set_active(False)
        repo.update(reminder)

        loaded = repo.get_by_id(reminder.id)
        assert loaded.is_triggered is True
        assert loaded.last_triggered_risk_level == 18.0
        assert loaded.is_active is False

    def test_save_triggered(self, repo, make_reminder):
        """Should persist several triggers at once."""
        first = repo.create(make_reminder(symbol="BTC"))
        second = repo.create(make_reminder(symbol="ETH"))
        first.mark_triggered(10.0)
        second.mark_triggered(20.0)

        saved = repo.save_triggered([first, second])

        assert saved == [first, second]
        assert repo.get_by_id(first.id).last_triggered_risk_level == 10.0
        assert repo.get_by_id(second.id).last_triggered_risk_level == 20.0

    def test_save_triggered_skips_already_triggered_rows(self, repo, make_reminder):
        """Should not overwrite a row another pass already triggered."""
        stored = repo.create(make_reminder())
        first_copy = repo.get_by_id(stored.id)
        second_copy = repo.get_by_id(stored.id)
        first_copy.mark_triggered(10.0)
        second_copy.mark_triggered(12.0)

        assert repo.save_triggered([first_copy]) == [first_copy]
        assert repo.save_triggered([second_copy]) == []
        assert repo.get_by_id(stored.id).last_triggered_risk_level == 10.0

    def test_save_triggered_skips_paused_rows(self, repo, make_reminder):
        """Should not trigger a reminder paused since it was loaded."""
        stored = repo.create(make_reminder())
        loaded = repo.get_by_id(stored.id)
        stored.set_active(False)
        repo.update(stored)
        loaded.mark_triggered(10.0)

        assert repo.save_triggered([loaded]) == []
        assert repo.get_by_id(stored.id).is_triggered is False

    def test_delete(self, repo, make_reminder):
        """Should delete a reminder."""
        reminder = repo.create(make_reminder())
        repo.delete(reminder.id)
        assert repo.get_by_id(reminder.id) is None


class TestInvestmentRepository:
    """Test InvestmentRepository."""

    @pytest.fixture
    def reminder(self, db, make_reminder):
        return ReminderRepository(db).create(make_reminder(amount=100.0))

    @pytest.fixture
    def repo(self, db):
        return InvestmentRepository(db)

    def _investment(self, reminder, price, when):
        return RiskDCAInvestment.create(
            reminder_id=reminder.id,
            amount=reminder.amount,
            price_at_purchase=price,
            risk_level_at_purchase=25.0,
            purchase_date=when,
        )

    def test_history_newest_first(self, repo, reminder):
        """Should list investments newest first."""
        start = datetime(2026, 1, 1)
        older = repo.create(self._investment(reminder, 40_000.0, start))
        newer = repo.create(self._investment(reminder, 35_000.0, start + timedelta(days=7)))

        history = repo.list_for_reminder(reminder.id)

        assert [i.id for i in history] == [newer.id, older.id]
        assert history[0] == newer

    def test_total_invested(self, repo, reminder):
        """Should sum invested amounts."""
        assert repo.total_invested(reminder.id) == 0.0

        repo.create(self._investment(reminder, 40_000.0, datetime(2026, 1, 1)))
        repo.create(self._investment(reminder, 30_000.0, datetime(2026, 2, 1)))

        assert repo.total_invested(reminder.id) == pytest.approx(200.0)

    def test_requires_existing_reminder(self, repo):
        """Should reject investments for unknown reminders."""
        orphan = RiskDCAInvestment.create("missing", 100.0, 10.0, 25.0)
        with pytest.raises(sqlite3.IntegrityError):
            repo.create(orphan)

    def test_cascade_delete(self, db, repo, reminder):
        """Should delete investment history with the reminder."""
        repo.create(self._investment(reminder, 40_000.0, datetime(2026, 1, 1)))

        ReminderRepository(db).delete(reminder.id)

        assert repo.list_for_reminder(reminder.id) == []

    def test_record_rearms_reminder(self, db, repo, reminder):
        """Should store the investment and clear the trigger together."""
        reminders = ReminderRepository(db)
        reminder.mark_triggered(25.0)
        reminders.update(reminder)

        investment = self._investment(reminder, 40_000.0, datetime(2026, 1, 1))
        repo.record(investment, reminder)

        stored = reminders.get_by_id(reminder.id)
        assert stored.is_triggered is False
        assert stored.last_triggered_risk_level is None
        assert [i.id for i in repo.list_for_reminder(reminder.id)] == [investment.id]

    def test_record_rolls_back_when_reminder_update_fails(self, db, repo, reminder):
        """Should leave no investment behind if re-arming fails."""
        reminders = ReminderRepository(db)
        reminder.mark_triggered(25.0)
        reminders.update(reminder)
        db.connection.execute(
            """
            CREATE TRIGGER block_reminder_update BEFORE UPDATE ON risk_reminders
            BEGIN SELECT RAISE(ABORT, 'database locked'); END
            """
        )

        with pytest.raises(sqlite3.DatabaseError):
            repo.record(self._investment(reminder, 40_000.0, datetime(2026, 1, 1)), reminder)

        assert repo.list_for_reminder(reminder.id) == []
        assert reminders.get_by_id(reminder.id).is_triggered is True

    def test_record_requires_stored_trigger(self, repo, reminder):
        """Should refuse to record against a reminder that is not triggered."""
        with pytest.raises(InvalidTransition):
            repo.record(self._investment(reminder, 40_000.0, datetime(2026, 1, 1)), reminder)

        assert repo.list_for_reminder(reminder.id) == []
