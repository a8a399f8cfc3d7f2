"""Payee CSV import.

Expected format: a header row with a Name column, then one payee per row.
Names already used in the company, or repeated in the file, are skipped.
"""

from typing import List, TextIO
from errors import CSVValidationError
from hierarchy.validator import fold_name
from ingestion.categories import NAME_COLUMN, ImportResult, RawRow, SkippedRow, read_rows
from logger import get_logger

logger = get_logger("ingestion.payees")


def validate_file(rows: List[RawRow]) -> List[RawRow]:
    """File-level validation; returns the rows that have a name.

    Raises:
        CSVValidationError: On the first file-level problem found.
    """
    if not rows:
        raise CSVValidationError("CSV file is empty")
    if NAME_COLUMN not in rows[0].values:
        raise CSVValidationError("Missing required columns: Name. Expected: Name")

    named = [row for row in rows if row.values.get(NAME_COLUMN)]
    if not named:
        raise CSVValidationError(
            "No valid payee data found. Please ensure you have at least one row with Name."
        )
    return named


def import_payees(store, source: TextIO) -> ImportResult:
    """Import payees from a CSV file into a PayeeStore with one insert.

    Raises:
        CSVValidationError: If the file fails file-level validation.
        RemoteFailureError: If the insert fails; nothing was created.
    """
    rows = validate_file(read_rows(source))
    logger.info(f"Validated payee CSV with {len(rows)} rows")

    result = ImportResult()
    seen = {}
    names = []
    for row in rows:
        name = row.values[NAME_COLUMN]
        folded = fold_name(name)
        existing = store.find_by_name(name)
        if existing is not None:
            reason = f'Payee "{existing.name}" already exists'
        elif folded in seen:
            reason = f"Duplicate of line {seen[folded]} in this file"
        else:
            seen[folded] = row.line
            names.append(name)
            continue
        result.skipped.append(SkippedRow(row.line, name, reason))
        logger.warning(f'Skipping line {row.line} "{name}": {reason}')

    if names:
        result.created = store.create_many(names)
    logger.info(f"Payee import finished: {result.summary()}")
    return result
