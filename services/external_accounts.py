"""Service for accounts linked from an external financial data provider."""

from typing import Optional
from models.external_account import ExternalAccount
from services.base import remote_call
from services.notifications import ChangeEvent


class ExternalAccountService:
    """Protected-link lookups and mirroring for linked accounts."""

    def __init__(self, db_manager, changes=None):
        self.db_manager = db_manager
        self.changes = changes

    def create(
        self, company_id: int, link_id: str, name: str, type: str
    ) -> ExternalAccount:
        """Record a linked account."""
        with remote_call(self.db_manager, f"Create linked account '{name}'") as conn:
            cursor = conn.execute(
                "INSERT INTO external_accounts (company_id, link_id, name, type) "
                "VALUES (?, ?, ?, ?)",
                (company_id, link_id, name, type),
            )
            conn.commit()

        return ExternalAccount(
            id=cursor.lastrowid,
            company_id=company_id,
            link_id=link_id,
            name=name,
            type=type,
        )

    def find_link(self, company_id: int, link_id: str) -> Optional[ExternalAccount]:
        """Get the linked account for a link ID, or None if it is not linked.

        Args:
            company_id: Owning company.
            link_id: Value of a category's external_link_id.
        """
        with remote_call(self.db_manager, "Find linked account") as conn:
            cursor = conn.execute(
                "SELECT id, company_id, link_id, name, type FROM external_accounts "
                "WHERE company_id = ? AND link_id = ?",
                (company_id, link_id),
            )
            row = cursor.fetchone()

        if not row:
            return None
        return ExternalAccount(
            id=row[0], company_id=row[1], link_id=row[2], name=row[3], type=row[4]
        )

    def mirror(self, company_id: int, link_id: str, name: str, type: str) -> bool:
        """Copy a protected category's name and type onto its linked account.

        Returns:
            True if a linked account was updated.
        """
        with remote_call(self.db_manager, "Mirror linked account") as conn:
            cursor = conn.execute(
                "UPDATE external_accounts SET name = ?, type = ? "
                "WHERE company_id = ? AND link_id = ?",
                (name, type, company_id, link_id),
            )
            conn.commit()
            updated = cursor.rowcount > 0

        if updated and self.changes is not None:
            self.changes.publish(ChangeEvent("external_accounts", "update", company_id))
        return updated
