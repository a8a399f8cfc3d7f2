"""Category CSV import.

Expected format:
- Header row: Name,Type[,Parent]. "Parent Category" is accepted for Parent.
- One category per row. Parent names a category already in the company or
  another row of the same file.

Rows are inserted in two phases. Parentless rows (and, optionally, missing
parents synthesized from their children) go in first with a single insert.
Child rows follow in dependency waves, each wave resolving parent names
against the refetched category list so children see their parents' IDs.
"""

import csv
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, TextIO
from errors import ChartwellError, CSVValidationError, PartialFailureError
from hierarchy.validator import fold_name
from logger import get_logger
from models.category import ACCOUNT_TYPES, Category
from store.categories import CategorySpec

logger = get_logger("ingestion.categories")

NAME_COLUMN = "Name"
TYPE_COLUMN = "Type"
PARENT_COLUMNS = ("Parent", "Parent Category")


@dataclass
class CategoryRow:
    """One data row of a category import file."""

    line: int
    name: str
    type: str
    parent: Optional[str] = None


@dataclass
class RowPreview:
    """Cross-row validation result for one row.

    Attributes:
        row: The row.
        reason: Why the row will be skipped, or None if it is valid.
        parent_location: "tenant", "file" or None.
        needs_parent_creation: The parent exists nowhere yet.
    """

    row: CategoryRow
    reason: Optional[str] = None
    parent_location: Optional[str] = None
    needs_parent_creation: bool = False

    @property
    def valid(self) -> bool:
        return self.reason is None


@dataclass
class SkippedRow:
    line: int
    name: str
    reason: str


@dataclass
class ImportResult:
    """What an import did."""

    created: List = field(default_factory=list)
    auto_created: List = field(default_factory=list)
    skipped: List[SkippedRow] = field(default_factory=list)

    def summary(self) -> str:
        parts = [f"Imported {len(self.created)}"]
        if self.auto_created:
            parts.append(f"auto-created {len(self.auto_created)} parent(s)")
        parts.append(f"skipped {len(self.skipped)}")
        return ", ".join(parts)


@dataclass
class RawRow:
    """A non-blank CSV line, keyed by stripped header."""

    line: int
    values: Dict[str, str]


def read_rows(source: TextIO) -> List[RawRow]:
    """Parse CSV text into rows keyed by header, dropping blank lines.

    Every row carries every header; a short line gets "" for its missing
    trailing cells. Cells beyond the header are ignored.
    """
    reader = csv.DictReader(source)
    rows = []
    for raw in reader:
        values = {
            key.strip(): (value or "").strip()
            for key, value in raw.items()
            if key is not None
        }
        if any(values.values()):
            rows.append(RawRow(line=reader.line_num, values=values))
    return rows


def _parent_column(headers) -> Optional[str]:
    return next((column for column in PARENT_COLUMNS if column in headers), None)


def validate_file(rows: List[RawRow]) -> List[CategoryRow]:
    """File-level validation.

    Returns:
        The rows that have both a name and a type.

    Raises:
        CSVValidationError: On the first file-level problem found.
    """
    if not rows:
        raise CSVValidationError("CSV file is empty")

    headers = list(rows[0].values)
    missing = [column for column in (NAME_COLUMN, TYPE_COLUMN) if column not in headers]
    if missing:
        raise CSVValidationError(
            f"Missing required columns: {', '.join(missing)}. "
            "Expected: Name, Type, Parent (optional)"
        )

    parent_column = _parent_column(headers)
    filled = [row for row in rows if row.values.get(NAME_COLUMN) and row.values.get(TYPE_COLUMN)]
    if not filled:
        raise CSVValidationError(
            "No valid category data found. Please ensure you have at least one "
            "row with Name and Type."
        )

    result = []
    for row in filled:
        name = row.values[NAME_COLUMN]
        account_type = _canonical_type(row.values[TYPE_COLUMN])
        if account_type is None:
            raise CSVValidationError(
                f'Invalid type "{row.values[TYPE_COLUMN]}" in line {row.line}. '
                f"Valid types are: {', '.join(ACCOUNT_TYPES)}"
            )
        parent = row.values.get(parent_column, "") if parent_column else ""
        result.append(
            CategoryRow(line=row.line, name=name, type=account_type, parent=parent or None)
        )
    return result


def _canonical_type(value: str) -> Optional[str]:
    cleaned = value.strip().lower()
    return next((t for t in ACCOUNT_TYPES if t.lower() == cleaned), None)


def preview(
    rows: Sequence[CategoryRow],
    existing: Sequence[Category],
    auto_create_parents: bool = False,
) -> List[RowPreview]:
    """Cross-row validation against the company's categories and the file.

    The first row using a name wins; later rows with the same name are
    skipped as duplicates.
    """
    tenant = {fold_name(c.name): c for c in existing}
    in_file: Dict[str, CategoryRow] = {}
    previews = []
    for row in rows:
        folded = fold_name(row.name)
        if folded in tenant:
            previews.append(RowPreview(row, reason=f'Category "{tenant[folded].name}" already exists'))
            continue
        if folded in in_file:
            previews.append(
                RowPreview(row, reason=f'Duplicate of line {in_file[folded].line} in this file')
            )
            continue
        in_file[folded] = row
        previews.append(RowPreview(row))

    # Type of a synthesized parent comes from the first child naming it
    synthesized: Dict[str, CategoryRow] = {}
    for item in previews:
        row = item.row
        if not item.valid or row.parent is None:
            continue
        parent_key = fold_name(row.parent)
        if parent_key == fold_name(row.name):
            item.reason = "A category cannot be its own parent"
        elif parent_key in tenant:
            item.parent_location = "tenant"
            parent = tenant[parent_key]
            if parent.type != row.type:
                item.reason = (
                    f'Parent "{parent.name}" is {parent.type}, but this row is {row.type}'
                )
        elif parent_key in in_file:
            item.parent_location = "file"
            parent_row = in_file[parent_key]
            if parent_row.type != row.type:
                item.reason = (
                    f'Parent "{parent_row.name}" (line {parent_row.line}) is '
                    f"{parent_row.type}, but this row is {row.type}"
                )
        else:
            item.needs_parent_creation = True
            if not auto_create_parents:
                item.reason = f'Parent category "{row.parent}" not found'
                continue
            first = synthesized.setdefault(parent_key, row)
            if first.type != row.type:
                item.reason = (
                    f'Parent "{row.parent}" will be created as {first.type} '
                    f"(line {first.line}), but this row is {row.type}"
                )
    return previews


def order_rows(rows: Sequence[CategoryRow]) -> List[CategoryRow]:
    """Sort rows so every parent row comes before the rows naming it.

    Depth-first; a row already being visited is not entered again, so a
    cycle in the file ends the walk instead of recursing forever.
    """
    by_name = {fold_name(row.name): row for row in rows}
    ordered: List[CategoryRow] = []
    done = set()
    in_progress = set()

    def visit(row: CategoryRow) -> None:
        key = fold_name(row.name)
        if key in done or key in in_progress:
            return
        in_progress.add(key)
        if row.parent is not None:
            parent_row = by_name.get(fold_name(row.parent))
            if parent_row is not None:
                visit(parent_row)
        in_progress.discard(key)
        done.add(key)
        ordered.append(row)

    for row in rows:
        visit(row)
    return ordered


def import_categories(
    store, source: TextIO, auto_create_parents: bool = False
) -> ImportResult:
    """Import categories from a CSV file into a CategoryStore.

    Args:
        store: The company's CategoryStore.
        source: Open text file with the CSV data.
        auto_create_parents: Create parents that exist neither in the
            company nor in the file, typed like their first child.

    Returns:
        ImportResult listing created and skipped rows.

    Raises:
        CSVValidationError: If the file fails file-level validation.
        RemoteFailureError: If the first insert fails; nothing was created.
        PartialFailureError: If a later insert fails; earlier ones stay.
    """
    rows = validate_file(read_rows(source))
    logger.info(f"Validated category CSV with {len(rows)} rows")

    result = ImportResult()
    previews = preview(rows, store.all(), auto_create_parents)
    for item in previews:
        if not item.valid:
            result.skipped.append(SkippedRow(item.row.line, item.row.name, item.reason))
            logger.warning(f'Skipping line {item.row.line} "{item.row.name}": {item.reason}')

    valid = order_rows([item.row for item in previews if item.valid])
    creating = {
        fold_name(item.row.parent)
        for item in previews
        if item.valid and item.needs_parent_creation
    }

    # Phase 1: synthesized parents and parentless rows
    parent_specs: Dict[str, CategorySpec] = {}
    for row in valid:
        if row.parent is not None and fold_name(row.parent) in creating:
            parent_specs.setdefault(
                fold_name(row.parent), CategorySpec(name=row.parent, type=row.type)
            )
    roots = [row for row in valid if row.parent is None]
    specs = list(parent_specs.values()) + [CategorySpec(name=r.name, type=r.type) for r in roots]
    if specs:
        created = store.create_many(specs)
        result.auto_created = created[: len(parent_specs)]
        result.created = created[len(parent_specs):]
        logger.info(
            f"Phase 1 created {len(result.created)} categories and "
            f"{len(result.auto_created)} parents"
        )

    # Phase 2: children, in waves whose parents now exist
    pending = [row for row in valid if row.parent is not None]
    waves = 0
    while pending:
        try:
            store.refresh()
            ready = [row for row in pending if store.find_by_name(row.parent) is not None]
            if not ready:
                break
            created = store.create_many(
                [
                    CategorySpec(
                        name=row.name,
                        type=row.type,
                        parent_id=store.find_by_name(row.parent).id,
                    )
                    for row in ready
                ]
            )
        except ChartwellError as e:
            completed = [f"Phase 1: {len(result.created) + len(result.auto_created)} categories"]
            completed += [f"Phase 2 wave {n + 1}" for n in range(waves)]
            raise PartialFailureError(
                f"Category import stopped after creating "
                f"{len(result.created) + len(result.auto_created)} categories: {e}",
                completed=completed,
                failed_index=len(completed),
                failed_step=f"Phase 2 wave {waves + 1}",
                cause=e,
            ) from e
        waves += 1
        result.created.extend(created)
        ready_lines = {row.line for row in ready}
        pending = [row for row in pending if row.line not in ready_lines]

    for row in pending:
        result.skipped.append(
            SkippedRow(row.line, row.name, f'Parent "{row.parent}" could not be resolved')
        )
        logger.warning(f'Skipping line {row.line} "{row.name}": parent "{row.parent}" unresolved')

    logger.info(f"Category import finished: {result.summary()}")
    return result
