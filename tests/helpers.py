"""Helper utilities for tests."""

from datetime import date
from decimal import Decimal
from pathlib import Path
import sqlite3

from errors import RemoteFailureError
from llm.providers.base import CommandGenerator


def run_migrations(conn: sqlite3.Connection, migrations_dir: Path) -> None:
    """Run all SQL migrations in order.

    Args:
        conn: SQLite connection to run migrations against.
        migrations_dir: Path to directory containing .sql migration files.
    """
    for migration_file in sorted(migrations_dir.glob("*.sql")):
        conn.executescript(migration_file.read_text())

    conn.commit()


class FakeClock:
    """Callable clock for highlight expiry tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FlakyService:
    """Wraps a service so chosen methods raise RemoteFailureError.

    Example:
        flaky = FlakyService(services.categories)
        flaky.fail("insert")
        tenant.categories.remote = flaky
    """

    def __init__(self, service):
        self._service = service
        self._failures = {}
        self.calls = []

    def fail(self, method: str, times: int = 1, after: int = 0):
        """Make the next `times` calls of method fail, after `after` successes."""
        self._failures[method] = {"times": times, "after": after}
        return self

    def __getattr__(self, name):
        attr = getattr(self._service, name)
        if not callable(attr):
            return attr

        def call(*args, **kwargs):
            self.calls.append(name)
            plan = self._failures.get(name)
            if plan is not None:
                if plan["after"] > 0:
                    plan["after"] -= 1
                elif plan["times"] > 0:
                    plan["times"] -= 1
                    raise RemoteFailureError(f"{name} failed: connection reset")
            return attr(*args, **kwargs)

        return call


class ScriptedGenerator(CommandGenerator):
    """Command generator that returns prepared answers in order."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def propose(self, categories, payees, conversation):
        self.calls.append(
            {
                "categories": [c.name for c in categories],
                "payees": [p.name for p in payees],
                "conversation": list(conversation),
            }
        )
        return self.responses.pop(0) if self.responses else []


def add_transaction(services, company_id, category_id=None, corresponding_id=None, payee_id=None):
    """Create a ledger transaction referencing the given category."""
    return services.transactions.create(
        company_id,
        date(2025, 1, 15),
        "Test transaction",
        Decimal("42.00"),
        payee_id=payee_id,
        selected_category_id=category_id,
        corresponding_category_id=corresponding_id,
    )
