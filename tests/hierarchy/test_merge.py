from datetime import date
from decimal import Decimal

import pytest

from errors import (
    CategoryNotFoundError,
    CycleDetectedError,
    InvalidInputError,
    PartialFailureError,
    ProtectedLinkageError,
    TypeMismatchError,
)
from tests.helpers import FlakyService, add_transaction


@pytest.fixture
def chart(tenant):
    """Fees, Bank Fees > Wire Fees, and Charges, all Expense."""
    store = tenant.categories
    fees = store.create("Fees", "Expense")
    bank_fees = store.create("Bank Fees", "Expense")
    wire_fees = store.create("Wire Fees", "Expense", parent=bank_fees.id)
    charges = store.create("Charges", "Expense")
    return fees, bank_fees, wire_fees, charges


class TestMerge:
    """Tests for merging categories."""

    def test_merge_moves_every_reference(self, services, tenant, chart):
        """Test no ledger row, rule or child still points at a merged category."""
        fees, bank_fees, wire_fees, charges = chart
        company_id = tenant.company.id
        add_transaction(services, company_id, category_id=bank_fees.id)
        add_transaction(services, company_id, category_id=fees.id, corresponding_id=charges.id)
        services.transactions.create_imported(
            company_id, date(2025, 2, 1), "Feed row", Decimal("3"), selected_category_id=charges.id
        )
        services.transactions.create_journal_entry(
            company_id, date(2025, 2, 2), "Entry", bank_fees.id, debit=Decimal("3")
        )
        services.automations.create(company_id, "Fee rule", "category", "contains", "FEE", "Bank Fees")

        merged = tenant.merge([bank_fees.id, charges.id, fees.id], fees.id)

        source_ids = [bank_fees.id, charges.id]
        counts = services.transactions.count_category_references(company_id, source_ids)
        assert counts == {"transactions": 0, "imported_transactions": 0, "journal_entries": 0}
        target_counts = services.transactions.count_category_references(company_id, [fees.id])
        assert target_counts == {"transactions": 2, "imported_transactions": 1, "journal_entries": 1}

        assert merged.id == fees.id
        assert tenant.categories.find(bank_fees.id) is None
        assert tenant.categories.find(charges.id) is None
        assert services.categories.find(company_id, charges.id) is None
        assert tenant.categories.get(wire_fees.id).parent_id == fees.id
        assert services.automations.find_all(company_id)[0].action_value == "Fees"
        assert tenant.categories.is_highlighted(fees.id)

    def test_target_promoted_when_a_source_is_root(self, tenant, chart):
        """Test a child target becomes a root when merged with a root source."""
        fees, bank_fees, wire_fees, charges = chart

        merged = tenant.merge([wire_fees.id, charges.id], wire_fees.id)

        assert merged.parent_id is None
        assert tenant.categories.find(charges.id) is None

    def test_target_keeps_parent_when_sources_are_children(self, tenant, chart):
        """Test a child target stays put when no source is a root."""
        fees, bank_fees, wire_fees, charges = chart
        ach = tenant.categories.create("ACH Fees", "Expense", parent=fees.id)

        merged = tenant.merge([wire_fees.id, ach.id], wire_fees.id)

        assert merged.parent_id == bank_fees.id

    def test_merging_a_child_into_its_parent(self, tenant, chart):
        """Test a parent can absorb its own subcategory."""
        fees, bank_fees, wire_fees, charges = chart

        merged = tenant.merge([bank_fees.id, wire_fees.id], bank_fees.id)

        assert merged.parent_id is None
        assert tenant.categories.children(bank_fees.id) == []
        assert tenant.categories.find(wire_fees.id) is None

    def test_protected_target_is_allowed(self, services, tenant, chart):
        """Test a linked category can absorb others."""
        fees, *_ = chart
        services.external_accounts.create(tenant.company.id, "plaid-1", "Checking", "Asset")
        checking = tenant.categories.create("Checking", "Asset", external_link_id="plaid-1")
        cash = tenant.categories.create("Cash", "Asset")

        merged = tenant.merge([cash.id, checking.id], checking.id)

        assert merged.external_link_id == "plaid-1"
        assert tenant.categories.find(cash.id) is None


class TestMergePreconditions:
    """Tests for merges rejected before anything changes."""

    def test_needs_two_categories(self, tenant, chart):
        fees, *_ = chart

        with pytest.raises(InvalidInputError):
            tenant.merge([fees.id], fees.id)

    def test_target_must_be_selected(self, tenant, chart):
        fees, bank_fees, _, charges = chart

        with pytest.raises(InvalidInputError):
            tenant.merge([bank_fees.id, charges.id], fees.id)

    def test_unknown_category(self, tenant, chart):
        fees, *_ = chart

        with pytest.raises(CategoryNotFoundError):
            tenant.merge([fees.id, 9999], fees.id)

    def test_types_must_match(self, tenant, chart):
        fees, *_ = chart
        cash = tenant.categories.create("Cash", "Asset")

        with pytest.raises(TypeMismatchError):
            tenant.merge([fees.id, cash.id], fees.id)

    def test_source_cannot_be_ancestor_of_target(self, tenant, chart):
        """Test merging a parent into its own subcategory is refused."""
        _, bank_fees, wire_fees, _ = chart

        with pytest.raises(CycleDetectedError):
            tenant.merge([bank_fees.id, wire_fees.id], wire_fees.id)

        assert tenant.categories.get(bank_fees.id) == bank_fees

    def test_protected_source(self, services, tenant):
        services.external_accounts.create(tenant.company.id, "plaid-1", "Checking", "Asset")
        checking = tenant.categories.create("Checking", "Asset", external_link_id="plaid-1")
        cash = tenant.categories.create("Cash", "Asset")

        with pytest.raises(ProtectedLinkageError):
            tenant.merge([cash.id, checking.id], cash.id)

    def test_check_returns_sources(self, tenant, chart):
        fees, bank_fees, _, charges = chart

        sources = tenant.merge_engine.check([fees.id, bank_fees.id, charges.id, fees.id], fees.id)

        assert sources == [bank_fees, charges]


class TestMergePartialFailure:
    """Tests for merges that stop part way."""

    def test_failure_reports_completed_steps(self, services, tenant, chart):
        """Test a failing step stops the merge and leaves earlier steps applied."""
        fees, bank_fees, wire_fees, charges = chart
        company_id = tenant.company.id
        add_transaction(services, company_id, category_id=bank_fees.id, corresponding_id=charges.id)
        tenant.merge_engine.transactions = FlakyService(services.transactions).fail(
            "reassign_corresponding_category"
        )

        with pytest.raises(PartialFailureError) as exc_info:
            tenant.merge([bank_fees.id, charges.id, fees.id], fees.id)

        error = exc_info.value
        assert error.completed == [
            'Move "Wire Fees" under "Fees"',
            "Reassign transaction categories",
        ]
        assert error.failed_index == 2
        assert error.failed_step == "Reassign transaction offsetting categories"
        assert "Not attempted" in str(error)

        # Applied steps stay applied, later ones never ran
        assert tenant.categories.get(wire_fees.id).parent_id == fees.id
        assert tenant.categories.find(bank_fees.id) is not None
        assert tenant.categories.find(charges.id) is not None
        counts = services.transactions.count_category_references(company_id, [fees.id])
        assert counts["transactions"] == 1

    def test_failure_on_first_step(self, services, tenant, chart):
        """Test a failure before anything completed says so."""
        fees, _, _, charges = chart
        tenant.merge_engine.transactions = FlakyService(services.transactions).fail(
            "reassign_selected_category"
        )

        with pytest.raises(PartialFailureError) as exc_info:
            tenant.merge([charges.id, fees.id], fees.id)

        assert exc_info.value.completed == []
        assert "No steps were completed" in str(exc_info.value)
