import io

from tenant import Tenant


class TestExport:
    """Tests for CSV export."""

    def test_export_categories(self, tenant):
        office = tenant.categories.create("Office", "Expense")
        tenant.categories.create("Paper", "Expense", parent=office.id)
        tenant.categories.create("Cash", "Asset")
        out = io.StringIO()

        count = tenant.export_categories(out)

        assert count == 3
        assert out.getvalue().splitlines() == [
            "Name,Type,Parent",
            "Cash,Asset,",
            "Office,Expense,",
            "Paper,Expense,Office",
        ]

    def test_export_payees(self, tenant):
        tenant.payees.create_many(["Globex", "Acme, Inc."])
        out = io.StringIO()

        count = tenant.export_payees(out)

        assert count == 2
        assert out.getvalue().splitlines() == ["Name", '"Acme, Inc."', "Globex"]

    def test_exported_chart_imports_into_another_company(self, services, tenant, other_company, clock):
        """Test an exported file rebuilds the same hierarchy elsewhere."""
        office = tenant.categories.create("Office", "Expense")
        tenant.categories.create("Paper", "Expense", parent=office.id)
        out = io.StringIO()
        tenant.export_categories(out)

        other = Tenant.open(services, other_company.id, clock=clock)
        try:
            result = other.import_categories(io.StringIO(out.getvalue()))

            assert len(result.created) == 2
            assert other.categories.get("Paper").parent_id == other.categories.get("Office").id
        finally:
            other.close()
