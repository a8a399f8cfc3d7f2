"""SQLite connections and schema migrations for the Chartwell database."""

import sqlite3
from contextlib import contextmanager
from typing import List, Tuple
from config import Config, get_migrations_dir
from logger import get_logger

logger = get_logger("db")

_MIGRATIONS_TABLE = """
    CREATE TABLE IF NOT EXISTS schema_migrations (
        migration_file TEXT PRIMARY KEY,
        applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
"""


class DatabaseManager:
    """Opens connections to the configured database file.

    The file plays the part of the remote store: every service call opens its
    own connection and commits on its own, so no two calls share a
    transaction. Foreign keys are enforced on every connection.

    Args:
        config: Application configuration object.
    """

    def __init__(self, config: Config):
        self.config = config

    @contextmanager
    def connect(self):
        """Yield a connection that is closed on exit."""
        db_path = self.config.db_path
        db_path.parent.mkdir(parents=True, exist_ok=True)

        conn = sqlite3.connect(db_path)
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
        finally:
            conn.close()

    def get_db_path(self):
        return self.config.db_path

    def get_migrations_dir(self):
        return get_migrations_dir()

    def migration_status(self) -> Tuple[List[str], List[str]]:
        """Return (available, applied) migration file names, both sorted."""
        with self.connect() as conn:
            return self._available(), self._applied(conn)

    def apply_pending(self) -> List[str]:
        """Apply every migration not yet recorded, in file name order.

        Returns:
            The migrations applied by this call.

        Raises:
            sqlite3.Error: If a migration fails. It is rolled back and the
                ones after it are not attempted.
        """
        with self.connect() as conn:
            applied = set(self._applied(conn))
            pending = [name for name in self._available() if name not in applied]
            for name in pending:
                self._apply(conn, name)
        return pending

    def _available(self) -> List[str]:
        migrations_dir = self.get_migrations_dir()
        if not migrations_dir.exists():
            return []
        return sorted(path.name for path in migrations_dir.glob("*.sql"))

    def _applied(self, conn) -> List[str]:
        conn.execute(_MIGRATIONS_TABLE)
        conn.commit()
        return sorted(
            row[0] for row in conn.execute("SELECT migration_file FROM schema_migrations")
        )

    def _apply(self, conn, name: str) -> None:
        sql = (self.get_migrations_dir() / name).read_text()
        try:
            conn.executescript(sql)
            conn.execute("INSERT INTO schema_migrations (migration_file) VALUES (?)", (name,))
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            logger.error(f"Error applying migration {name}: {e}")
            raise
        logger.info(f"Applied migration: {name}")
