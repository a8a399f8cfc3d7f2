"""Category service: the remote store for the chart of accounts.

Each method is one independent call with its own connection and commit.
There is deliberately no way to group calls into a transaction; callers that
need several writes (merge, import) sequence them and report partial failure.
"""

from typing import Dict, List, Optional, Sequence
from errors import RemoteFailureError
from models.category import Category
from services.base import remote_call
from services.notifications import ChangeEvent

_CATEGORY_FIELDS = "id, name, type, company_id, parent_id, subtype, external_link_id"

# Fields a patch may touch
_UPDATABLE_FIELDS = ("name", "type", "parent_id", "subtype", "external_link_id")


class CategoryService:
    """Service for category rows, scoped by company."""

    def __init__(self, db_manager, changes=None):
        """Initialize the category service.

        Args:
            db_manager: Database manager instance for database operations.
            changes: Optional ChangeFeed to publish committed writes to.
        """
        self.db_manager = db_manager
        self.changes = changes

    def list(self, company_id: int) -> List[Category]:
        """Get all categories of a company.

        Returns:
            Categories ordered roots first, then by type, then by name.
        """
        with remote_call(self.db_manager, "List categories") as conn:
            cursor = conn.execute(
                f"""
                SELECT {_CATEGORY_FIELDS} FROM categories
                WHERE company_id = ?
                ORDER BY parent_id IS NOT NULL, type, name
                """,
                (company_id,),
            )
            return [self._row_to_category(row) for row in cursor.fetchall()]

    def find(self, company_id: int, category_id: int) -> Optional[Category]:
        """Get a single category by ID, or None."""
        with remote_call(self.db_manager, "Find category") as conn:
            cursor = conn.execute(
                f"SELECT {_CATEGORY_FIELDS} FROM categories WHERE company_id = ? AND id = ?",
                (company_id, category_id),
            )
            row = cursor.fetchone()
            return self._row_to_category(row) if row else None

    def insert(self, company_id: int, rows: Sequence[Dict]) -> List[Category]:
        """Insert one or more categories.

        Args:
            company_id: Owning company.
            rows: Dicts with "name" and "type", and optionally "parent_id",
                "subtype" and "external_link_id".

        Returns:
            The created categories, in input order, with IDs assigned.

        Raises:
            RemoteFailureError: If any row is rejected (e.g. duplicate name).
                No row of the call is kept in that case.
        """
        if not rows:
            return []

        created = []
        with remote_call(self.db_manager, "Insert categories") as conn:
            try:
                for row in rows:
                    cursor = conn.execute(
                        """
                        INSERT INTO categories
                            (company_id, name, type, parent_id, subtype, external_link_id)
                        VALUES (?, ?, ?, ?, ?, ?)
                        """,
                        (
                            company_id,
                            row["name"],
                            row["type"],
                            row.get("parent_id"),
                            row.get("subtype"),
                            row.get("external_link_id"),
                        ),
                    )
                    created.append(
                        Category(
                            id=cursor.lastrowid,
                            name=row["name"],
                            type=row["type"],
                            company_id=company_id,
                            parent_id=row.get("parent_id"),
                            subtype=row.get("subtype"),
                            external_link_id=row.get("external_link_id"),
                        )
                    )
                conn.commit()
            except Exception:
                conn.rollback()
                raise

        self._publish("insert", company_id, created[0].id if len(created) == 1 else None)
        return created

    def update(self, company_id: int, category_id: int, patch: Dict) -> Category:
        """Apply a partial update to one category.

        Args:
            company_id: Owning company.
            category_id: Category to update.
            patch: Mapping of field name to new value.

        Returns:
            The updated Category as stored.

        Raises:
            RemoteFailureError: If the category does not exist or the update
                is rejected.
        """
        fields = [field for field in patch if field in _UPDATABLE_FIELDS]
        unknown = set(patch) - set(_UPDATABLE_FIELDS)
        if unknown:
            raise RemoteFailureError(
                f"Cannot update unknown category fields: {', '.join(sorted(unknown))}"
            )

        with remote_call(self.db_manager, f"Update category {category_id}") as conn:
            if fields:
                assignments = ", ".join(f"{field} = ?" for field in fields)
                cursor = conn.execute(
                    f"UPDATE categories SET {assignments} WHERE company_id = ? AND id = ?",
                    (*[patch[field] for field in fields], company_id, category_id),
                )
                conn.commit()
                if cursor.rowcount == 0:
                    raise RemoteFailureError(f"Category with ID {category_id} not found")

            cursor = conn.execute(
                f"SELECT {_CATEGORY_FIELDS} FROM categories WHERE company_id = ? AND id = ?",
                (company_id, category_id),
            )
            row = cursor.fetchone()
            if not row:
                raise RemoteFailureError(f"Category with ID {category_id} not found")

        self._publish("update", company_id, category_id)
        return self._row_to_category(row)

    def delete(self, company_id: int, category_id: int) -> None:
        """Delete a category, re-rooting any subcategories it still has.

        Raises:
            RemoteFailureError: If the category does not exist or is still
                referenced by ledger rows.
        """
        with remote_call(self.db_manager, f"Delete category {category_id}") as conn:
            try:
                conn.execute(
                    "UPDATE categories SET parent_id = NULL WHERE company_id = ? AND parent_id = ?",
                    (company_id, category_id),
                )
                cursor = conn.execute(
                    "DELETE FROM categories WHERE company_id = ? AND id = ?",
                    (company_id, category_id),
                )
                if cursor.rowcount == 0:
                    raise RemoteFailureError(f"Category with ID {category_id} not found")
                conn.commit()
            except Exception:
                conn.rollback()
                raise

        self._publish("delete", company_id, category_id)

    def _publish(self, kind: str, company_id: int, record_id: Optional[int]) -> None:
        if self.changes is not None:
            self.changes.publish(ChangeEvent("categories", kind, company_id, record_id))

    def _row_to_category(self, row: tuple) -> Category:
        """Convert a database row to a Category object."""
        return Category(
            id=row[0],
            name=row[1],
            type=row[2],
            company_id=row[3],
            parent_id=row[4],
            subtype=row[5],
            external_link_id=row[6],
        )
