from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional


@dataclass
class Transaction:
    id: int
    company_id: int
    transaction_date: date
    description: str
    amount: Decimal  # always positive
    payee_id: Optional[int] = None
    selected_category_id: Optional[int] = None  # category the user picked
    corresponding_category_id: Optional[int] = None  # offsetting account


@dataclass
class ImportedTransaction:
    """A transaction pulled from a bank feed that is not yet in the ledger."""

    id: int
    company_id: int
    transaction_date: date
    description: str
    amount: Decimal
    selected_category_id: Optional[int] = None


@dataclass
class JournalEntry:
    """One debit or credit line of the general ledger."""

    id: int
    company_id: int
    transaction_id: Optional[int]
    entry_date: date
    description: str
    debit: Decimal
    credit: Decimal
    chart_account_id: int
