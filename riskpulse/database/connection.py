"""
SQLite database connection and schema management.
"""

import sqlite3
from pathlib import Path
from typing import Optional


class Database:
    """SQLite database connection manager."""

    def __init__(self, db_path: str):
        """
        Initialize database connection.

        Args:
            db_path: Path to SQLite database file, or ":memory:" for in-memory DB.
        """
        self.db_path = db_path
        self._connection: Optional[sqlite3.Connection] = None
        self._connect()

    def _connect(self) -> None:
        """Establish database connection."""
        if self.db_path != ":memory:":
            path = Path(self.db_path)
            path.parent.mkdir(parents=True, exist_ok=True)

        self._connection = sqlite3.connect(self.db_path)
        self._connection.row_factory = sqlite3.Row
        # Investments are deleted together with their reminder
        self._connection.execute("PRAGMA foreign_keys = ON")

    @property
    def connection(self) -> sqlite3.Connection:
        """Get the database connection."""
        if self._connection is None:
            raise sqlite3.ProgrammingError("Database connection is closed")
        return self._connection

    def initialize(self) -> None:
        """Create database schema if it doesn't exist."""
        cursor = self.connection.cursor()

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS risk_reminders (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                symbol TEXT NOT NULL,
                name TEXT NOT NULL,
                amount REAL NOT NULL,
                risk_threshold REAL NOT NULL,
                risk_condition TEXT NOT NULL,
                is_triggered INTEGER NOT NULL DEFAULT 0,
                last_triggered_risk_level REAL,
                is_active INTEGER NOT NULL DEFAULT 1,
                created_at TIMESTAMP NOT NULL,
                CHECK (risk_condition IN ('below', 'above')),
                CHECK ((is_triggered = 1) = (last_triggered_risk_level IS NOT NULL))
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS risk_investments (
                id TEXT PRIMARY KEY,
                reminder_id TEXT NOT NULL,
                amount REAL NOT NULL,
                price_at_purchase REAL NOT NULL,
                quantity REAL NOT NULL,
                risk_level_at_purchase REAL NOT NULL,
                purchase_date TIMESTAMP NOT NULL,
                FOREIGN KEY (reminder_id) REFERENCES risk_reminders(id) ON DELETE CASCADE
            )
        """)

        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_reminders_user ON risk_reminders(user_id)
        """)
        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_investments_reminder
            ON risk_investments(reminder_id)
        """)

        self.connection.commit()

    def close(self) -> None:
        """Close the database connection."""
        if self._connection:
            self._connection.close()
            self._connection = None
