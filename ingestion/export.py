"""CSV export, the inverse of the importers."""

import csv
from typing import TextIO
from logger import get_logger

logger = get_logger("ingestion.export")

CATEGORY_HEADERS = ["Name", "Type", "Parent"]
PAYEE_HEADERS = ["Name"]


def export_categories(store, destination: TextIO) -> int:
    """Write categories as Name,Type,Parent in store order.

    Parent IDs are written as the parent's name, so the file can be imported
    into another company.

    Returns:
        Number of categories written.
    """
    categories = store.all()
    names = {category.id: category.name for category in categories}

    writer = csv.writer(destination)
    writer.writerow(CATEGORY_HEADERS)
    for category in categories:
        parent = names.get(category.parent_id, "") if category.parent_id else ""
        writer.writerow([category.name, category.type, parent])

    logger.info(f"Exported {len(categories)} categories")
    return len(categories)


def export_payees(store, destination: TextIO) -> int:
    """Write payees as a single Name column."""
    payees = store.all()
    writer = csv.writer(destination)
    writer.writerow(PAYEE_HEADERS)
    for payee in payees:
        writer.writerow([payee.name])

    logger.info(f"Exported {len(payees)} payees")
    return len(payees)
