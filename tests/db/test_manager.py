import sqlite3

import pytest

from db.manager import DatabaseManager


@pytest.fixture
def db_manager(test_config):
    return DatabaseManager(test_config)


class TestDatabaseManager:
    """Tests for connections and migrations on a database file."""

    def test_fresh_database_has_everything_pending(self, db_manager):
        available, applied = db_manager.migration_status()

        assert available == ["001_initial_schema.sql", "002_ledger.sql"]
        assert applied == []
        assert db_manager.get_db_path().exists()

    def test_apply_pending_runs_each_migration_once(self, db_manager):
        assert db_manager.apply_pending() == ["001_initial_schema.sql", "002_ledger.sql"]
        assert db_manager.apply_pending() == []

    def test_foreign_keys_are_enforced(self, db_manager):
        """Test a category cannot point at a company that does not exist."""
        db_manager.apply_pending()

        with db_manager.connect() as conn:
            with pytest.raises(sqlite3.IntegrityError):
                conn.execute(
                    "INSERT INTO categories (company_id, name, type) VALUES (?, ?, ?)",
                    (999, "Rent", "Expense"),
                )
