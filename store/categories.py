"""Category store: the authoritative in-memory chart of accounts for one company.

Every change to categories, whether it comes from the CLI, a CSV import, the
merge engine or an assistant command, goes through this class so the
hierarchy checks cannot be skipped.
"""

from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Sequence
from errors import (
    CategoryNotFoundError,
    InUseError,
    InvalidInputError,
    NameConflictError,
    ParentNotFoundError,
    ProtectedLinkageError,
    RemoteFailureError,
    TypeMismatchError,
)
from hierarchy import validator
from logger import get_logger
from models.category import ACCOUNT_TYPES, Category, CategoryUsage
from models.reference import ById, ByName, Reference, to_reference
from store.base import OptimisticCache, provisional_id

logger = get_logger("store.categories")

# Marks "parent not given" as distinct from "move to root" (None)
UNSET = object()


@dataclass(frozen=True)
class NeedsMerge:
    """Returned by update when a new name belongs to another category.

    The rename is not applied. Callers may offer to merge ``category`` into
    ``existing`` instead.
    """

    category: Category
    existing: Category

    @property
    def message(self) -> str:
        return (
            f'A category named "{self.existing.name}" already exists. '
            f'Merge "{self.category.name}" into it instead of renaming?'
        )


@dataclass
class CategorySpec:
    """A category to be created by create_many."""

    name: str
    type: str
    parent_id: Optional[int] = None
    subtype: Optional[str] = None
    external_link_id: Optional[str] = None


def validate_type(type: str) -> str:
    """Return the canonical account type, or raise InvalidInputError."""
    cleaned = (type or "").strip()
    for account_type in ACCOUNT_TYPES:
        if cleaned.lower() == account_type.lower():
            return account_type
    raise InvalidInputError(
        f'Invalid category type "{cleaned}". Valid types are: {", ".join(ACCOUNT_TYPES)}'
    )


def validate_name(name: str) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise InvalidInputError("Category name cannot be empty")
    if len(cleaned) > 255:
        raise InvalidInputError("Category name is too long (maximum 255 characters)")
    return cleaned


class CategoryStore(OptimisticCache[Category]):
    """Optimistic, validated cache of one company's categories.

    Args:
        company_id: Company the store belongs to.
        remote: CategoryService (list/insert/update/delete).
        transactions: TransactionService, for reference counts.
        automations: AutomationService, for rules that name categories.
        external_accounts: ExternalAccountService, for protected links.
        changes: Optional ChangeFeed.
        highlight_seconds: Lifetime of the "recently changed" marker.
        clock: Monotonic clock.
    """

    table = "categories"

    def __init__(
        self,
        company_id: int,
        remote,
        transactions,
        automations,
        external_accounts,
        changes=None,
        **kwargs,
    ):
        super().__init__(company_id, changes=changes, **kwargs)
        self.remote = remote
        self.transactions = transactions
        self.automations = automations
        self.external_accounts = external_accounts

    def _fetch(self) -> List[Category]:
        return self.remote.list(self.company_id)

    def _sort_key(self, category: Category):
        return category.sort_key()

    # -- lookups -----------------------------------------------------------

    def find(self, ref) -> Optional[Category]:
        """Find a category by ID or exact (case-insensitive) name."""
        reference = to_reference(ref)
        if isinstance(reference, ById):
            return next((c for c in self._records if c.id == reference.id), None)
        return self.find_by_name(reference.name)

    def find_by_name(self, name: str) -> Optional[Category]:
        folded = validator.fold_name(name)
        return next(
            (c for c in self._records if validator.fold_name(c.name) == folded), None
        )

    def get(self, ref) -> Category:
        """Like find, but raise CategoryNotFoundError when absent."""
        category = self.find(ref)
        if category is None:
            raise CategoryNotFoundError(f"Category {to_reference(ref).describe()} not found")
        return category

    def children(self, category_id: int) -> List[Category]:
        return [c for c in self._records if c.parent_id == category_id]

    def roots(self) -> List[Category]:
        return [c for c in self._records if c.parent_id is None]

    def usage(self, ref) -> CategoryUsage:
        """Count everything that references a category."""
        category = self.get(ref)
        counts = self.transactions.count_category_references(
            self.company_id, [category.id]
        )
        return CategoryUsage(
            transactions=counts["transactions"],
            imported_transactions=counts["imported_transactions"],
            journal_entries=counts["journal_entries"],
            automations=self.automations.count_category_rules(
                self.company_id, category.name
            ),
            subcategories=len(self.children(category.id)),
        )

    def _resolve_parent(self, parent) -> Optional[int]:
        if parent is None:
            return None
        if isinstance(parent, str) and not parent.strip():
            return None
        reference: Reference = to_reference(parent)
        found = self.find(reference)
        if found is None:
            raise ParentNotFoundError(
                f"Parent category {reference.describe()} not found"
            )
        return found.id

    # -- mutations ---------------------------------------------------------

    def create(
        self,
        name: str,
        type: str,
        parent=None,
        subtype: Optional[str] = None,
        external_link_id: Optional[str] = None,
    ) -> Category:
        """Create a category.

        Args:
            name: New category name.
            type: One of ACCOUNT_TYPES.
            parent: Optional parent, given as an ID, a name or a Reference.
            subtype: Optional subtype.
            external_link_id: Optional link to an external account.

        Returns:
            The stored Category.

        Raises:
            InvalidInputError, NameConflictError, ParentNotFoundError,
            TypeMismatchError: Before anything is sent.
            RemoteFailureError: If the backing store fails; cache rolled back.
        """
        spec = CategorySpec(
            name=name,
            type=type,
            parent_id=self._resolve_parent(parent),
            subtype=subtype,
            external_link_id=external_link_id,
        )
        return self.create_many([spec])[0]

    def create_many(self, specs: Sequence[CategorySpec]) -> List[Category]:
        """Validate and insert several categories with one remote call.

        Parents must already exist in the store; a spec cannot name another
        spec of the same call as its parent.

        Returns:
            The stored categories, in spec order.
        """
        if not specs:
            return []

        categories = self._records
        rows = []
        seen: Dict[str, str] = {}
        for spec in specs:
            name = validate_name(spec.name)
            account_type = validate_type(spec.type)
            folded = validator.fold_name(name)
            # Hierarchy problems are reported before name conflicts
            validator.check_parent(categories, None, account_type, spec.parent_id)
            if not validator.name_is_unique(categories, name):
                existing = self.find_by_name(name)
                raise NameConflictError(
                    f'Category "{existing.name}" already exists', existing=existing
                )
            if folded in seen:
                raise NameConflictError(f'Category "{name}" appears more than once')
            seen[folded] = name
            rows.append(
                {
                    "name": name,
                    "type": account_type,
                    "parent_id": spec.parent_id,
                    "subtype": spec.subtype,
                    "external_link_id": spec.external_link_id,
                }
            )

        provisional = [
            Category(id=provisional_id(), company_id=self.company_id, **row)
            for row in rows
        ]
        created = self._apply(
            list(categories) + provisional,
            lambda: self.remote.insert(self.company_id, rows),
        )
        self._replace([p.id for p in provisional], created)
        for category in created:
            self.highlight(category.id)
            self._warn_if_deep(category)
            logger.info(f'Created category "{category.name}" ({category.type}, ID {category.id})')
        return created

    def update(self, ref, name: Optional[str] = None, type: Optional[str] = None, parent=UNSET):
        """Rename, retype and/or re-parent a category.

        Args:
            ref: Category ID, name or Reference.
            name: New name, or None to keep it.
            type: New type, or None to keep it.
            parent: New parent (ID, name or Reference), None for root, or
                UNSET to keep the current parent.

        Returns:
            The updated Category, or NeedsMerge when the new name belongs to
            another category (nothing is changed in that case).

        Raises:
            CategoryNotFoundError, InvalidInputError, ParentNotFoundError,
            CycleDetectedError, TypeMismatchError: Before anything is sent.
            RemoteFailureError: If the backing store fails; cache rolled back.
        """
        category = self.get(ref)
        categories = self._records
        patch = {}

        if name is not None:
            new_name = validate_name(name)
            if new_name != category.name:
                if not validator.name_is_unique(categories, new_name, excluding_id=category.id):
                    existing = self.find_by_name(new_name)
                    logger.info(
                        f'Rename of "{category.name}" to "{new_name}" collides with '
                        f"category ID {existing.id}; offering merge"
                    )
                    return NeedsMerge(category=category, existing=existing)
                patch["name"] = new_name

        new_type = category.type
        if type is not None:
            new_type = validate_type(type)
            if new_type != category.type:
                patch["type"] = new_type

        new_parent_id = category.parent_id
        if parent is not UNSET:
            new_parent_id = self._resolve_parent(parent)
            if new_parent_id != category.parent_id:
                patch["parent_id"] = new_parent_id

        if not patch:
            return category

        validator.check_parent(categories, category.id, new_type, new_parent_id)
        if "type" in patch:
            mismatched = [c.name for c in self.children(category.id) if c.type != new_type]
            if mismatched:
                raise TypeMismatchError(
                    f'Cannot change "{category.name}" to {new_type} while its '
                    f"subcategories ({', '.join(mismatched)}) are {category.type}; "
                    "move or retype them first"
                )

        optimistic = replace(category, **patch)
        others = [c for c in categories if c.id != category.id]
        updated = self._apply(
            others + [optimistic],
            lambda: self.remote.update(self.company_id, category.id, patch),
            highlight_id=category.id,
        )
        self._replace([], [updated])
        logger.info(f'Updated category "{category.name}" (ID {category.id}): {patch}')
        self._warn_if_deep(updated)

        if "name" in patch:
            self._rename_rules(category.name, updated.name)
        if category.is_protected and ("name" in patch or "type" in patch):
            self._mirror(updated)
        return updated

    def move(self, ref, new_parent) -> Category:
        """Move a category under new_parent, or to the root when it is None."""
        return self.update(ref, parent=new_parent)

    def delete(self, ref) -> None:
        """Delete a category.

        Checks, in order: external link, referenced subcategories, own
        references. Unreferenced subcategories become roots.

        Raises:
            CategoryNotFoundError: If the category does not exist.
            ProtectedLinkageError: If it is linked to an external account.
            InUseError: If it or one of its subcategories is referenced by
                a transaction, imported transaction or journal entry.
            RemoteFailureError: If the backing store fails; cache rolled back.
        """
        category = self.get(ref)

        if category.is_protected:
            link = self.external_accounts.find_link(
                self.company_id, category.external_link_id
            )
            account_name = link.name if link else category.external_link_id
            raise ProtectedLinkageError(
                f'Category "{category.name}" cannot be deleted because it is '
                f'linked to the bank account "{account_name}"'
            )

        children = self.children(category.id)
        if children:
            counts = self.transactions.count_category_references(
                self.company_id, [child.id for child in children]
            )
            if sum(counts.values()) > 0:
                raise InUseError(
                    f'Category "{category.name}" cannot be deleted because it contains '
                    "subcategories that are used in existing transactions. "
                    "Reassign or delete those transactions first.",
                    reason="subcategories",
                )

        counts = self.transactions.count_category_references(self.company_id, [category.id])
        if sum(counts.values()) > 0:
            raise InUseError(
                f'Category "{category.name}" cannot be deleted because it is used in '
                "existing transactions. Reassign or delete those transactions first.",
                reason="transactions",
            )

        child_ids = {child.id for child in children}
        remaining = [
            replace(c, parent_id=None) if c.id in child_ids else c
            for c in self._records
            if c.id != category.id
        ]
        self._apply(remaining, lambda: self.remote.delete(self.company_id, category.id))
        self._highlights.pop(category.id, None)
        logger.info(f'Deleted category "{category.name}" (ID {category.id})')

    # -- helpers -----------------------------------------------------------

    def _warn_if_deep(self, category: Category) -> None:
        if validator.depth_of(self._records, category.id) > 1:
            logger.warning(
                f'Category "{category.name}" is nested more than one level deep'
            )

    def _rename_rules(self, old_name: str, new_name: str) -> None:
        try:
            changed = self.automations.rename_category_references(
                self.company_id, [old_name], new_name
            )
        except RemoteFailureError as e:
            logger.error(f'Could not update automation rules naming "{old_name}": {e}')
            return
        if changed:
            logger.info(f'Pointed {changed} automation rule(s) at "{new_name}"')

    def _mirror(self, category: Category) -> None:
        # The category change already succeeded; a mirror failure is reported, not raised
        try:
            self.external_accounts.mirror(
                self.company_id, category.external_link_id, category.name, category.type
            )
        except RemoteFailureError as e:
            logger.error(
                f'Could not update linked account for "{category.name}": {e}'
            )
