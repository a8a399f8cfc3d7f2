"""Merge several categories into one.

The backing store has no multi-statement transaction, so a merge is a saga:
each step is its own remote call and a failure leaves earlier steps applied.
The order keeps the window of inconsistent data small: nothing is deleted
until every reference has been moved to the target.
"""

from typing import Iterable, List
from errors import (
    CycleDetectedError,
    InvalidInputError,
    ProtectedLinkageError,
    TypeMismatchError,
)
from hierarchy import validator
from logger import get_logger
from models.category import Category
from saga import Saga

logger = get_logger("merge")


class MergeEngine:
    """Merges categories of one company through its CategoryStore.

    Args:
        store: The company's CategoryStore.
        transactions: TransactionService used to move ledger references.
        automations: AutomationService used to rewrite rules by name.
    """

    def __init__(self, store, transactions, automations):
        self.store = store
        self.transactions = transactions
        self.automations = automations

    def check(self, selected_ids: Iterable[int], target_id: int) -> List[Category]:
        """Validate a merge without changing anything.

        Returns:
            The source categories (selected minus the target).

        Raises:
            InvalidInputError: Fewer than two categories, or target not selected.
            CategoryNotFoundError: A selected category does not exist.
            TypeMismatchError: The selected categories differ in type.
            CycleDetectedError: A source is an ancestor of the target.
            ProtectedLinkageError: A source is linked to an external account.
        """
        ids = list(dict.fromkeys(selected_ids))
        if len(ids) < 2:
            raise InvalidInputError("Select at least two categories to merge")
        if target_id not in ids:
            raise InvalidInputError("The merge target must be one of the selected categories")

        selected = [self.store.get(category_id) for category_id in ids]
        target = next(c for c in selected if c.id == target_id)
        sources = [c for c in selected if c.id != target_id]

        types = {c.type for c in selected}
        if len(types) > 1:
            raise TypeMismatchError(
                "Only categories of the same type can be merged; selected types are "
                + ", ".join(sorted(types))
            )

        categories = self.store.all()
        for source in sources:
            if validator.is_ancestor(categories, source.id, target.id):
                raise CycleDetectedError(
                    f'Cannot merge "{source.name}" into its own subcategory "{target.name}"'
                )

        for source in sources:
            if source.is_protected:
                raise ProtectedLinkageError(
                    f'Category "{source.name}" is linked to a bank account and cannot '
                    "be merged away; make it the merge target instead"
                )
        return sources

    def merge(self, selected_ids: Iterable[int], target_id: int) -> Category:
        """Merge the selected categories into target_id.

        Args:
            selected_ids: IDs of every selected category, including the target.
            target_id: The category that survives.

        Returns:
            The target as stored after the merge.

        Raises:
            Any error of check(), before anything is changed.
            PartialFailureError: If a step fails. Completed steps stay applied.
        """
        sources = self.check(selected_ids, target_id)
        target = self.store.get(target_id)
        source_ids = [source.id for source in sources]
        company_id = self.store.company_id

        saga = Saga(f'Merge into "{target.name}"')

        children = [
            child
            for source in sources
            for child in self.store.children(source.id)
            if child.id != target.id
        ]
        for child in children:
            saga.add(
                f'Move "{child.name}" under "{target.name}"',
                lambda child=child: self.store.move(child.id, target.id),
            )

        saga.add(
            "Reassign transaction categories",
            lambda: self.transactions.reassign_selected_category(company_id, source_ids, target.id),
        )
        saga.add(
            "Reassign transaction offsetting categories",
            lambda: self.transactions.reassign_corresponding_category(
                company_id, source_ids, target.id
            ),
        )
        saga.add(
            "Reassign imported transactions",
            lambda: self.transactions.reassign_imported_category(company_id, source_ids, target.id),
        )
        saga.add(
            "Reassign journal entries",
            lambda: self.transactions.reassign_journal_account(company_id, source_ids, target.id),
        )
        saga.add(
            "Rewrite automation rules",
            lambda: self.automations.rename_category_references(
                company_id, [source.name for source in sources], target.name
            ),
        )

        if not target.is_root and any(source.is_root for source in sources):
            saga.add(
                f'Promote "{target.name}" to a top-level category',
                lambda: self.store.move(target.id, None),
            )

        for source in sources:
            saga.add(
                f'Delete "{source.name}"',
                lambda source=source: self.store.delete(source.id),
            )

        saga.add("Reload categories", self.store.refresh)

        logger.info(
            f'Merging {", ".join(s.name for s in sources)} into "{target.name}" '
            f"({len(saga.steps)} steps)"
        )
        saga.run()

        self.store.highlight(target.id)
        merged = self.store.get(target.id)
        logger.info(f'Merged {len(sources)} categories into "{merged.name}"')
        return merged
