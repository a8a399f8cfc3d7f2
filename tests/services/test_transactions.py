from datetime import date
from decimal import Decimal

import pytest

from services.notifications import ChangeEvent
from tests.helpers import add_transaction


@pytest.fixture
def categories(services, company):
    """Three expense categories: Fees, Bank Fees and Travel."""
    return services.categories.insert(
        company.id,
        [
            {"name": "Fees", "type": "Expense"},
            {"name": "Bank Fees", "type": "Expense"},
            {"name": "Travel", "type": "Expense"},
        ],
    )


class TestTransactionService:
    """Tests for TransactionService."""

    def test_create_and_find(self, services, company, categories):
        """Test creating a transaction and reading it back."""
        fees = categories[0]
        created = services.transactions.create(
            company.id,
            date(2025, 3, 1),
            "Monthly fee",
            Decimal("12.50"),
            selected_category_id=fees.id,
        )

        found = services.transactions.find(company.id, created.id)

        assert found.description == "Monthly fee"
        assert found.transaction_date == date(2025, 3, 1)
        assert found.amount == Decimal("12.50")
        assert found.selected_category_id == fees.id
        assert found.corresponding_category_id is None

    def test_find_not_found(self, services, company):
        """Test finding a missing transaction."""
        assert services.transactions.find(company.id, 9999) is None

    def test_count_category_references(self, services, company, categories):
        """Test counting references across all ledger tables."""
        fees, bank_fees, travel = categories
        add_transaction(services, company.id, category_id=fees.id)
        add_transaction(services, company.id, category_id=fees.id, corresponding_id=fees.id)
        add_transaction(services, company.id, corresponding_id=bank_fees.id)
        services.transactions.create_imported(
            company.id, date(2025, 1, 2), "Feed row", Decimal("5"), selected_category_id=fees.id
        )
        services.transactions.create_journal_entry(
            company.id, date(2025, 1, 3), "Entry", fees.id, debit=Decimal("5")
        )

        counts = services.transactions.count_category_references(company.id, [fees.id])

        assert counts == {"transactions": 2, "imported_transactions": 1, "journal_entries": 1}

    def test_count_several_categories(self, services, company, categories):
        """Test counting references to any of several categories."""
        fees, bank_fees, travel = categories
        add_transaction(services, company.id, category_id=fees.id)
        add_transaction(services, company.id, category_id=bank_fees.id)
        add_transaction(services, company.id, category_id=travel.id)

        counts = services.transactions.count_category_references(
            company.id, [fees.id, bank_fees.id]
        )

        assert counts["transactions"] == 2

    def test_count_no_ids(self, services, company):
        """Test counting with no categories returns zeros."""
        counts = services.transactions.count_category_references(company.id, [])

        assert counts == {"transactions": 0, "imported_transactions": 0, "journal_entries": 0}

    def test_count_payee_references(self, services, company):
        """Test counting transactions that use a payee."""
        payee = services.payees.insert(company.id, [{"name": "Acme"}])[0]
        add_transaction(services, company.id, payee_id=payee.id)
        add_transaction(services, company.id, payee_id=payee.id)
        add_transaction(services, company.id)

        assert services.transactions.count_payee_references(company.id, payee.id) == 2

    def test_reassign_selected_category(self, services, company, categories):
        """Test moving the selected category of matching transactions."""
        fees, bank_fees, travel = categories
        first = add_transaction(services, company.id, category_id=fees.id)
        second = add_transaction(services, company.id, category_id=bank_fees.id)
        untouched = add_transaction(services, company.id, category_id=travel.id)

        changed = services.transactions.reassign_selected_category(
            company.id, [fees.id, bank_fees.id], travel.id
        )

        assert changed == 2
        for transaction in (first, second, untouched):
            assert services.transactions.find(company.id, transaction.id).selected_category_id == travel.id

    def test_reassign_corresponding_category(self, services, company, categories):
        """Test moving the offsetting category of matching transactions."""
        fees, bank_fees, travel = categories
        transaction = add_transaction(
            services, company.id, category_id=travel.id, corresponding_id=fees.id
        )

        changed = services.transactions.reassign_corresponding_category(
            company.id, [fees.id], bank_fees.id
        )

        found = services.transactions.find(company.id, transaction.id)
        assert changed == 1
        assert found.corresponding_category_id == bank_fees.id
        assert found.selected_category_id == travel.id

    def test_reassign_imported_and_journal(self, services, company, categories):
        """Test reassigning imported rows and journal lines."""
        fees, bank_fees, _ = categories
        services.transactions.create_imported(
            company.id, date(2025, 1, 2), "Feed row", Decimal("5"), selected_category_id=fees.id
        )
        services.transactions.create_journal_entry(
            company.id, date(2025, 1, 3), "Entry", fees.id, credit=Decimal("5")
        )

        services.transactions.reassign_imported_category(company.id, [fees.id], bank_fees.id)
        services.transactions.reassign_journal_account(company.id, [fees.id], bank_fees.id)

        assert services.transactions.find_imported_category_ids(company.id) == [bank_fees.id]
        assert services.transactions.find_journal_account_ids(company.id) == [bank_fees.id]

    def test_reassign_nothing(self, services, company, categories):
        """Test reassigning with no source IDs changes nothing."""
        assert services.transactions.reassign_selected_category(company.id, [], categories[0].id) == 0

    def test_reassign_publishes_only_when_rows_change(self, services, company, categories):
        """Test that a reassign publishes a change only if rows moved."""
        fees, bank_fees, _ = categories
        events = []
        services.changes.subscribe(company.id, events.append)

        services.transactions.reassign_selected_category(company.id, [fees.id], bank_fees.id)
        assert events == []

        add_transaction(services, company.id, category_id=fees.id)
        services.transactions.reassign_selected_category(company.id, [fees.id], bank_fees.id)

        assert events == [ChangeEvent("transactions", "update", company.id)]

    def test_reassign_is_scoped_by_company(self, services, company, other_company, categories):
        """Test that reassigning leaves other companies' rows alone."""
        fees, bank_fees, _ = categories
        theirs = services.categories.insert(other_company.id, [{"name": "Fees", "type": "Expense"}])[0]
        other_transaction = add_transaction(services, other_company.id, category_id=theirs.id)

        services.transactions.reassign_selected_category(company.id, [theirs.id], bank_fees.id)

        found = services.transactions.find(other_company.id, other_transaction.id)
        assert found.selected_category_id == theirs.id
