"""Automation rule service for database operations."""

from typing import Iterable, List, Optional
from models.automation import Automation
from services.base import remote_call
from services.notifications import ChangeEvent

_AUTOMATION_FIELDS = """id, company_id, name, automation_type, condition_type,
       condition_value, action_value, enabled"""


class AutomationService:
    """Service for automation rules.

    Category rules store the category *name* in action_value, so this service
    is the one place that rewrites those names after a rename or merge.
    """

    def __init__(self, db_manager, changes=None):
        self.db_manager = db_manager
        self.changes = changes

    def create(
        self,
        company_id: int,
        name: str,
        automation_type: str,
        condition_type: str,
        condition_value: str,
        action_value: str,
        enabled: bool = True,
    ) -> Automation:
        """Create an automation rule.

        Returns:
            The created Automation with id populated.
        """
        with remote_call(self.db_manager, f"Create automation '{name}'") as conn:
            cursor = conn.execute(
                """
                INSERT INTO automations (company_id, name, automation_type, condition_type,
                    condition_value, action_value, enabled)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    company_id,
                    name,
                    automation_type,
                    condition_type,
                    condition_value,
                    action_value,
                    1 if enabled else 0,
                ),
            )
            conn.commit()

        return Automation(
            id=cursor.lastrowid,
            company_id=company_id,
            name=name,
            automation_type=automation_type,
            condition_type=condition_type,
            condition_value=condition_value,
            action_value=action_value,
            enabled=enabled,
        )

    def find_all(
        self, company_id: int, automation_type: Optional[str] = None
    ) -> List[Automation]:
        """Get a company's rules, optionally of one type, ordered by id."""
        query = f"SELECT {_AUTOMATION_FIELDS} FROM automations WHERE company_id = ?"
        params = [company_id]
        if automation_type:
            query += " AND automation_type = ?"
            params.append(automation_type)
        query += " ORDER BY id"

        with remote_call(self.db_manager, "List automations") as conn:
            rows = conn.execute(query, params).fetchall()

        return [
            Automation(
                id=row[0],
                company_id=row[1],
                name=row[2],
                automation_type=row[3],
                condition_type=row[4],
                condition_value=row[5],
                action_value=row[6],
                enabled=bool(row[7]),
            )
            for row in rows
        ]

    def count_category_rules(self, company_id: int, category_name: str) -> int:
        """Count category rules naming a category (case-insensitive)."""
        with remote_call(self.db_manager, "Count automations") as conn:
            cursor = conn.execute(
                """
                SELECT COUNT(*) FROM automations
                WHERE company_id = ? AND automation_type = 'category'
                  AND action_value = ? COLLATE NOCASE
                """,
                (company_id, category_name),
            )
            return cursor.fetchone()[0]

    def rename_category_references(
        self, company_id: int, old_names: Iterable[str], new_name: str
    ) -> int:
        """Point category rules that name any of old_names at new_name.

        Returns:
            Number of rules changed.
        """
        names = [name.lower() for name in old_names]
        if not names:
            return 0

        marks = ", ".join(["?"] * len(names))
        with remote_call(self.db_manager, "Rewrite automation rules") as conn:
            cursor = conn.execute(
                f"""
                UPDATE automations SET action_value = ?
                WHERE company_id = ? AND automation_type = 'category'
                  AND lower(action_value) IN ({marks})
                """,
                (new_name, company_id, *names),
            )
            conn.commit()
            changed = cursor.rowcount

        if changed and self.changes is not None:
            self.changes.publish(ChangeEvent("automations", "update", company_id))
        return changed
