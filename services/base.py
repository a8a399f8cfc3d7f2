"""Base services container for dependency injection."""

import sqlite3
from contextlib import contextmanager

from config import Config
from db.manager import DatabaseManager
from errors import RemoteFailureError
from services.notifications import ChangeFeed


@contextmanager
def remote_call(db_manager, action: str):
    """Open a connection for one store call, translating driver errors.

    Args:
        db_manager: Database manager to connect through.
        action: Short description used in the error message.

    Yields:
        sqlite3.Connection: Database connection.

    Raises:
        RemoteFailureError: If the database raises any sqlite3 error.
    """
    try:
        with db_manager.connect() as conn:
            yield conn
    except sqlite3.Error as e:
        raise RemoteFailureError(f"{action} failed: {e}") from e


class Services:
    """Container for all application services.

    This class provides a centralized way to access all services and makes
    it easy to inject mock services for testing.

    Args:
        config: Application configuration object.
        db_manager: Optional database manager for testing. If provided, config is ignored.
        changes: Optional change feed shared by all services.
    """

    def __init__(self, config: Config, db_manager=None, changes=None):
        self.config = config
        self.db_manager = db_manager or DatabaseManager(config)
        self.changes = changes or ChangeFeed()

        # Lazy import to avoid circular dependencies
        from services.companies import CompanyService
        from services.categories import CategoryService
        from services.payees import PayeeService
        from services.transactions import TransactionService
        from services.automations import AutomationService
        from services.external_accounts import ExternalAccountService

        self.companies = CompanyService(self.db_manager)
        self.categories = CategoryService(self.db_manager, self.changes)
        self.payees = PayeeService(self.db_manager, self.changes)
        self.transactions = TransactionService(self.db_manager, self.changes)
        self.automations = AutomationService(self.db_manager, self.changes)
        self.external_accounts = ExternalAccountService(self.db_manager, self.changes)

    def open_tenant(self, company, generator=None):
        """Build the tenant-scoped state object for one company.

        Args:
            company: Company ID or name.
            generator: Optional command generator for the assistant.

        Returns:
            A Tenant with loaded stores.

        Raises:
            NotFoundError: If the company does not exist.
        """
        from tenant import Tenant

        return Tenant.open(self, company, generator=generator)
