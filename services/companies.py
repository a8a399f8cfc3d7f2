"""Company service for database operations."""

from typing import List, Optional
from models.company import Company
from services.base import remote_call


class CompanyService:
    """Service for managing companies (tenants)."""

    def __init__(self, db_manager):
        """Initialize the company service.

        Args:
            db_manager: Database manager instance for database operations.
        """
        self.db_manager = db_manager

    def find_all(self) -> List[Company]:
        """Get all companies, ordered by id."""
        with remote_call(self.db_manager, "List companies") as conn:
            cursor = conn.execute("SELECT id, name FROM companies ORDER BY id")
            return [Company(id=row[0], name=row[1]) for row in cursor.fetchall()]

    def find(self, company_id: int) -> Optional[Company]:
        """Get a single company by ID.

        Args:
            company_id: The company ID to find.

        Returns:
            Company object if found, None otherwise.
        """
        with remote_call(self.db_manager, "Find company") as conn:
            cursor = conn.execute(
                "SELECT id, name FROM companies WHERE id = ?", (company_id,)
            )
            row = cursor.fetchone()
            return Company(id=row[0], name=row[1]) if row else None

    def find_by_name(self, name: str) -> Optional[Company]:
        """Get a single company by name (exact match)."""
        with remote_call(self.db_manager, "Find company") as conn:
            cursor = conn.execute(
                "SELECT id, name FROM companies WHERE name = ?", (name,)
            )
            row = cursor.fetchone()
            return Company(id=row[0], name=row[1]) if row else None

    def create(self, name: str) -> Company:
        """Create a new company.

        Args:
            name: Company name (unique).

        Returns:
            The created Company object with id populated.

        Raises:
            RemoteFailureError: If the name is taken or the insert fails.
        """
        with remote_call(self.db_manager, f"Create company '{name}'") as conn:
            cursor = conn.execute("INSERT INTO companies (name) VALUES (?)", (name,))
            conn.commit()
            return Company(id=cursor.lastrowid, name=name)
