"""CSV import and export of categories and payees."""

from ingestion.categories import ImportResult, import_categories
from ingestion.export import export_categories, export_payees
from ingestion.payees import import_payees

__all__ = [
    "ImportResult",
    "import_categories",
    "import_payees",
    "export_categories",
    "export_payees",
]
