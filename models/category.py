"""Category model for the chart of accounts."""

from dataclasses import dataclass
from typing import Optional, Tuple

# Closed set of account types. A child category always has its parent's type.
ACCOUNT_TYPES: Tuple[str, ...] = (
    "Asset",
    "Liability",
    "Equity",
    "Revenue",
    "COGS",
    "Expense",
)


@dataclass(frozen=True)
class Category:
    """Represents one account in a company's chart of accounts.

    Records are immutable; the store replaces them rather than editing them,
    so a cached tuple of categories can be kept as a rollback snapshot.

    Attributes:
        id: Unique identifier assigned by the backing store.
        name: Category name (unique per company, case-insensitive).
        type: One of ACCOUNT_TYPES.
        company_id: Owning company (tenant).
        parent_id: Parent category ID, or None for a root category.
        subtype: Optional free-form refinement of the type.
        external_link_id: Link to an external financial account. A linked
            category is protected from deletion.
    """

    id: int
    name: str
    type: str
    company_id: int
    parent_id: Optional[int] = None
    subtype: Optional[str] = None
    external_link_id: Optional[str] = None

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    @property
    def is_protected(self) -> bool:
        return self.external_link_id is not None

    def sort_key(self) -> tuple:
        """Roots before children, then by type, then by name."""
        return (0 if self.parent_id is None else 1, self.type, self.name)


@dataclass(frozen=True)
class CategoryUsage:
    """Counts of records that reference a category."""

    transactions: int = 0
    imported_transactions: int = 0
    journal_entries: int = 0
    automations: int = 0
    subcategories: int = 0

    @property
    def ledger_references(self) -> int:
        """References that block deletion (automations do not)."""
        return self.transactions + self.imported_transactions + self.journal_entries
