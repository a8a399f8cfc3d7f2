"""Payee service for database operations."""

from typing import Dict, List, Sequence
from errors import RemoteFailureError
from models.payee import Payee
from services.base import remote_call
from services.notifications import ChangeEvent


class PayeeService:
    """Service for payee rows, scoped by company."""

    def __init__(self, db_manager, changes=None):
        self.db_manager = db_manager
        self.changes = changes

    def list(self, company_id: int) -> List[Payee]:
        """Get all payees of a company, ordered by name."""
        with remote_call(self.db_manager, "List payees") as conn:
            cursor = conn.execute(
                "SELECT id, name, company_id FROM payees WHERE company_id = ? ORDER BY name",
                (company_id,),
            )
            return [
                Payee(id=row[0], name=row[1], company_id=row[2])
                for row in cursor.fetchall()
            ]

    def insert(self, company_id: int, rows: Sequence[Dict]) -> List[Payee]:
        """Insert one or more payees in a single call.

        Raises:
            RemoteFailureError: If any row is rejected; none are kept.
        """
        if not rows:
            return []

        created = []
        with remote_call(self.db_manager, "Insert payees") as conn:
            try:
                for row in rows:
                    cursor = conn.execute(
                        "INSERT INTO payees (company_id, name) VALUES (?, ?)",
                        (company_id, row["name"]),
                    )
                    created.append(
                        Payee(id=cursor.lastrowid, name=row["name"], company_id=company_id)
                    )
                conn.commit()
            except Exception:
                conn.rollback()
                raise

        self._publish("insert", company_id, created[0].id if len(created) == 1 else None)
        return created

    def update(self, company_id: int, payee_id: int, patch: Dict) -> Payee:
        """Rename a payee.

        Raises:
            RemoteFailureError: If the payee does not exist or the name is taken.
        """
        if set(patch) - {"name"}:
            raise RemoteFailureError("Only a payee's name can be updated")

        with remote_call(self.db_manager, f"Update payee {payee_id}") as conn:
            cursor = conn.execute(
                "UPDATE payees SET name = ? WHERE company_id = ? AND id = ?",
                (patch["name"], company_id, payee_id),
            )
            conn.commit()
            if cursor.rowcount == 0:
                raise RemoteFailureError(f"Payee with ID {payee_id} not found")

        self._publish("update", company_id, payee_id)
        return Payee(id=payee_id, name=patch["name"], company_id=company_id)

    def delete(self, company_id: int, payee_id: int) -> None:
        """Delete a payee.

        Raises:
            RemoteFailureError: If the payee does not exist.
        """
        with remote_call(self.db_manager, f"Delete payee {payee_id}") as conn:
            cursor = conn.execute(
                "DELETE FROM payees WHERE company_id = ? AND id = ?",
                (company_id, payee_id),
            )
            conn.commit()
            if cursor.rowcount == 0:
                raise RemoteFailureError(f"Payee with ID {payee_id} not found")

        self._publish("delete", company_id, payee_id)

    def _publish(self, kind, company_id, record_id) -> None:
        if self.changes is not None:
            self.changes.publish(ChangeEvent("payees", kind, company_id, record_id))
