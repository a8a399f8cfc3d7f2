"""Resolve human-written references to records.

Exact (case-insensitive) name match first, then substring containment. An
ambiguous or unknown name is an error carrying candidates or suggestions;
the resolver never guesses an ID.
"""

import difflib
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Sequence, Type
from errors import (
    AmbiguousReferenceError,
    CategoryNotFoundError,
    NotFoundError,
    PayeeNotFoundError,
)
from hierarchy.validator import fold_name
from logger import get_logger
from models.reference import ById, to_reference

logger = get_logger("commands.resolver")


@dataclass(frozen=True)
class Resolution:
    """Outcome of resolving one reference.

    Attributes:
        record: The matched record, or None when the name is pending.
        pending: Name that an earlier command of the same batch will create.
        matched_by: "id", "exact", "substring" or "pending".
    """

    record: Any = None
    pending: Optional[str] = None
    matched_by: str = "exact"

    @property
    def name(self) -> str:
        return self.record.name if self.record is not None else self.pending

    @property
    def id(self) -> Optional[int]:
        return self.record.id if self.record is not None else None


def search(records: Sequence, query: str) -> List:
    """Records whose name contains query, case-insensitively."""
    folded = fold_name(query)
    return [record for record in records if folded in fold_name(record.name)]


def suggest(records: Sequence, query: str, limit: int = 3) -> List[str]:
    """Names that look like query, for "did you mean" messages."""
    names = [record.name for record in records]
    by_folded = {fold_name(name): name for name in names}
    matches = difflib.get_close_matches(fold_name(query), list(by_folded), n=limit, cutoff=0.6)
    return [by_folded[match] for match in matches]


def resolve(
    records: Sequence,
    value,
    kind: str = "Category",
    not_found: Type[NotFoundError] = NotFoundError,
    pending: Iterable[str] = (),
) -> Resolution:
    """Resolve an ID, a name or a Reference against records.

    Args:
        records: Candidate records (with ``id`` and ``name``).
        value: ID, name or Reference.
        kind: Record kind used in messages.
        not_found: Error class raised when nothing matches.
        pending: Names that do not exist yet but will be created earlier in
            the same batch. They only match exactly.

    Raises:
        AmbiguousReferenceError: Several records contain the name.
        NotFoundError (not_found): Nothing matches; suggestions attached.
    """
    reference = to_reference(value)
    if isinstance(reference, ById):
        record = next((r for r in records if r.id == reference.id), None)
        if record is None:
            raise not_found(f"{kind} {reference.describe()} not found")
        return Resolution(record=record, matched_by="id")

    name = reference.name
    folded = fold_name(name)
    exact = next((r for r in records if fold_name(r.name) == folded), None)
    if exact is not None:
        return Resolution(record=exact, matched_by="exact")

    pending_names = {fold_name(n): n for n in pending}
    if folded in pending_names:
        return Resolution(pending=pending_names[folded], matched_by="pending")

    candidates = search(records, name) if folded else []
    if len(candidates) == 1:
        logger.info(f'{kind} "{name}" matched "{candidates[0].name}" by substring')
        return Resolution(record=candidates[0], matched_by="substring")
    if len(candidates) > 1:
        names = sorted(record.name for record in candidates)
        raise AmbiguousReferenceError(
            f'{kind} "{name}" is ambiguous; did you mean one of: {", ".join(names)}?',
            candidates=names,
        )

    suggestions = suggest(records, name)
    message = f'{kind} "{name}" not found'
    if suggestions:
        message += f"; did you mean: {', '.join(suggestions)}?"
    raise not_found(message, suggestions=suggestions)


def resolve_category(store, value, pending: Iterable[str] = ()) -> Resolution:
    return resolve(store.all(), value, "Category", CategoryNotFoundError, pending)


def resolve_payee(store, value, pending: Iterable[str] = ()) -> Resolution:
    return resolve(store.all(), value, "Payee", PayeeNotFoundError, pending)
