"""Transaction service: ledger rows that reference categories and payees."""

from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional
from models.transaction import ImportedTransaction, JournalEntry, Transaction
from services.base import remote_call
from services.notifications import ChangeEvent

# SQL Query Constants
_TRANSACTION_SELECT_FIELDS = """id, company_id, transaction_date, description, amount,
       payee_id, selected_category_id, corresponding_category_id"""

# (table, column) pairs holding a category ID
_CATEGORY_REFERENCES = {
    "transactions": (
        ("transactions", "selected_category_id"),
        ("transactions", "corresponding_category_id"),
    ),
    "imported_transactions": (("imported_transactions", "selected_category_id"),),
    "journal_entries": (("journal", "chart_account_id"),),
}


def _placeholders(values: List) -> str:
    return ", ".join(["?"] * len(values))


class TransactionService:
    """Service for transactions, imported transactions and journal entries."""

    def __init__(self, db_manager, changes=None):
        """Initialize the transaction service.

        Args:
            db_manager: Database manager instance for database operations.
            changes: Optional ChangeFeed to publish committed writes to.
        """
        self.db_manager = db_manager
        self.changes = changes

    def create(
        self,
        company_id: int,
        transaction_date: date,
        description: str,
        amount: Decimal,
        payee_id: Optional[int] = None,
        selected_category_id: Optional[int] = None,
        corresponding_category_id: Optional[int] = None,
    ) -> Transaction:
        """Create a ledger transaction.

        Returns:
            The created Transaction with id populated.
        """
        with remote_call(self.db_manager, "Create transaction") as conn:
            cursor = conn.execute(
                """
                INSERT INTO transactions (company_id, transaction_date, description, amount,
                    payee_id, selected_category_id, corresponding_category_id)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    company_id,
                    transaction_date.isoformat(),
                    description,
                    float(amount),
                    payee_id,
                    selected_category_id,
                    corresponding_category_id,
                ),
            )
            conn.commit()

        return Transaction(
            id=cursor.lastrowid,
            company_id=company_id,
            transaction_date=transaction_date,
            description=description,
            amount=amount,
            payee_id=payee_id,
            selected_category_id=selected_category_id,
            corresponding_category_id=corresponding_category_id,
        )

    def create_imported(
        self,
        company_id: int,
        transaction_date: date,
        description: str,
        amount: Decimal,
        selected_category_id: Optional[int] = None,
    ) -> ImportedTransaction:
        """Create a bank feed row that has not been moved into the ledger."""
        with remote_call(self.db_manager, "Create imported transaction") as conn:
            cursor = conn.execute(
                """
                INSERT INTO imported_transactions
                    (company_id, transaction_date, description, amount, selected_category_id)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    company_id,
                    transaction_date.isoformat(),
                    description,
                    float(amount),
                    selected_category_id,
                ),
            )
            conn.commit()

        return ImportedTransaction(
            id=cursor.lastrowid,
            company_id=company_id,
            transaction_date=transaction_date,
            description=description,
            amount=amount,
            selected_category_id=selected_category_id,
        )

    def create_journal_entry(
        self,
        company_id: int,
        entry_date: date,
        description: str,
        chart_account_id: int,
        debit: Decimal = Decimal("0"),
        credit: Decimal = Decimal("0"),
        transaction_id: Optional[int] = None,
    ) -> JournalEntry:
        """Create one line of the general ledger."""
        with remote_call(self.db_manager, "Create journal entry") as conn:
            cursor = conn.execute(
                """
                INSERT INTO journal (company_id, transaction_id, entry_date, description,
                    debit, credit, chart_account_id)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    company_id,
                    transaction_id,
                    entry_date.isoformat(),
                    description,
                    float(debit),
                    float(credit),
                    chart_account_id,
                ),
            )
            conn.commit()

        return JournalEntry(
            id=cursor.lastrowid,
            company_id=company_id,
            transaction_id=transaction_id,
            entry_date=entry_date,
            description=description,
            debit=debit,
            credit=credit,
            chart_account_id=chart_account_id,
        )

    def find(self, company_id: int, transaction_id: int) -> Optional[Transaction]:
        """Get a single transaction by ID, or None."""
        with remote_call(self.db_manager, "Find transaction") as conn:
            cursor = conn.execute(
                f"SELECT {_TRANSACTION_SELECT_FIELDS} FROM transactions "
                "WHERE company_id = ? AND id = ?",
                (company_id, transaction_id),
            )
            row = cursor.fetchone()

        if not row:
            return None
        return Transaction(
            id=row[0],
            company_id=row[1],
            transaction_date=date.fromisoformat(row[2]),
            description=row[3],
            amount=Decimal(str(row[4])),
            payee_id=row[5],
            selected_category_id=row[6],
            corresponding_category_id=row[7],
        )

    def find_imported_category_ids(self, company_id: int) -> List[Optional[int]]:
        """Get the selected category of every imported transaction, by ID order."""
        with remote_call(self.db_manager, "List imported transactions") as conn:
            cursor = conn.execute(
                "SELECT selected_category_id FROM imported_transactions "
                "WHERE company_id = ? ORDER BY id",
                (company_id,),
            )
            return [row[0] for row in cursor.fetchall()]

    def find_journal_account_ids(self, company_id: int) -> List[int]:
        """Get the account of every journal line, by ID order."""
        with remote_call(self.db_manager, "List journal entries") as conn:
            cursor = conn.execute(
                "SELECT chart_account_id FROM journal WHERE company_id = ? ORDER BY id",
                (company_id,),
            )
            return [row[0] for row in cursor.fetchall()]

    def count_category_references(
        self, company_id: int, category_ids: Iterable[int]
    ) -> Dict[str, int]:
        """Count ledger rows that reference any of the given categories.

        Returns:
            Mapping with keys "transactions", "imported_transactions" and
            "journal_entries". A transaction referencing a category through
            both of its fields is counted once.
        """
        ids = list(category_ids)
        counts = {key: 0 for key in _CATEGORY_REFERENCES}
        if not ids:
            return counts

        marks = _placeholders(ids)
        with remote_call(self.db_manager, "Count category references") as conn:
            for key, references in _CATEGORY_REFERENCES.items():
                table = references[0][0]
                condition = " OR ".join(
                    f"{column} IN ({marks})" for _, column in references
                )
                cursor = conn.execute(
                    f"SELECT COUNT(*) FROM {table} WHERE company_id = ? AND ({condition})",
                    (company_id, *(ids * len(references))),
                )
                counts[key] = cursor.fetchone()[0]

        return counts

    def count_payee_references(self, company_id: int, payee_id: int) -> int:
        """Count transactions that use a payee."""
        with remote_call(self.db_manager, "Count payee references") as conn:
            cursor = conn.execute(
                "SELECT COUNT(*) FROM transactions WHERE company_id = ? AND payee_id = ?",
                (company_id, payee_id),
            )
            return cursor.fetchone()[0]

    def reassign_selected_category(
        self, company_id: int, from_ids: Iterable[int], to_id: int
    ) -> int:
        """Point transactions' selected category at to_id. Returns rows changed."""
        return self._reassign("transactions", "selected_category_id", company_id, from_ids, to_id)

    def reassign_corresponding_category(
        self, company_id: int, from_ids: Iterable[int], to_id: int
    ) -> int:
        """Point transactions' offsetting category at to_id. Returns rows changed."""
        return self._reassign(
            "transactions", "corresponding_category_id", company_id, from_ids, to_id
        )

    def reassign_imported_category(
        self, company_id: int, from_ids: Iterable[int], to_id: int
    ) -> int:
        return self._reassign(
            "imported_transactions", "selected_category_id", company_id, from_ids, to_id
        )

    def reassign_journal_account(
        self, company_id: int, from_ids: Iterable[int], to_id: int
    ) -> int:
        return self._reassign("journal", "chart_account_id", company_id, from_ids, to_id)

    def _reassign(
        self,
        table: str,
        column: str,
        company_id: int,
        from_ids: Iterable[int],
        to_id: int,
    ) -> int:
        ids = list(from_ids)
        if not ids:
            return 0

        with remote_call(self.db_manager, f"Reassign {table}.{column}") as conn:
            cursor = conn.execute(
                f"UPDATE {table} SET {column} = ? "
                f"WHERE company_id = ? AND {column} IN ({_placeholders(ids)})",
                (to_id, company_id, *ids),
            )
            conn.commit()
            changed = cursor.rowcount

        if changed and self.changes is not None:
            self.changes.publish(ChangeEvent(table, "update", company_id))
        return changed
