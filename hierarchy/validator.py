"""Hierarchy validation predicates.

Pure functions over a snapshot of one company's categories. They never touch
the store; the store calls them before it sends anything to the backing
service.
"""

from typing import Dict, Optional, Sequence
from errors import CycleDetectedError, ParentNotFoundError, TypeMismatchError
from models.category import Category


def _by_id(categories: Sequence[Category]) -> Dict[int, Category]:
    return {category.id: category for category in categories}


def fold_name(name: str) -> str:
    """Normalize a name for case-insensitive comparison."""
    return name.strip().casefold()


def name_is_unique(
    categories: Sequence[Category], name: str, excluding_id: Optional[int] = None
) -> bool:
    """Check that no other category already uses this name (case-insensitive)."""
    folded = fold_name(name)
    return not any(
        fold_name(category.name) == folded and category.id != excluding_id
        for category in categories
    )


def types_compatible(
    categories: Sequence[Category], child_type: str, parent_id: Optional[int]
) -> bool:
    """True if there is no parent, or the parent has the child's type.

    A parent ID that is not among the categories is not compatible.
    """
    if parent_id is None:
        return True
    parent = _by_id(categories).get(parent_id)
    return parent is not None and parent.type == child_type


def is_assignable(category_id: int, proposed_parent_id: Optional[int]) -> bool:
    """A category cannot be its own parent."""
    return proposed_parent_id is None or category_id != proposed_parent_id


def no_cycle(
    categories: Sequence[Category],
    category_id: int,
    proposed_parent_id: Optional[int],
) -> bool:
    """Check that re-parenting would not make a category its own ancestor.

    Walks up from the proposed parent. The walk is bounded by the number of
    categories, so malformed data that already contains a loop is reported
    as a cycle instead of hanging.
    """
    if not is_assignable(category_id, proposed_parent_id):
        return False

    by_id = _by_id(categories)
    current = proposed_parent_id
    steps = 0
    while current is not None:
        if current == category_id:
            return False
        steps += 1
        if steps > len(by_id):
            return False
        parent = by_id.get(current)
        current = parent.parent_id if parent else None
    return True


def depth_of(categories: Sequence[Category], category_id: int) -> int:
    """Number of ancestors a category has (0 for a root)."""
    by_id = _by_id(categories)
    depth = 0
    current = by_id.get(category_id)
    while current is not None and current.parent_id is not None:
        depth += 1
        if depth > len(by_id):
            break
        current = by_id.get(current.parent_id)
    return depth


def is_ancestor(
    categories: Sequence[Category], ancestor_id: int, category_id: int
) -> bool:
    """True if ancestor_id appears above category_id in the hierarchy."""
    by_id = _by_id(categories)
    current = by_id.get(category_id)
    steps = 0
    while current is not None and current.parent_id is not None:
        if current.parent_id == ancestor_id:
            return True
        steps += 1
        if steps > len(by_id):
            return False
        current = by_id.get(current.parent_id)
    return False


def check_parent(
    categories: Sequence[Category],
    category_id: Optional[int],
    child_type: str,
    parent_id: Optional[int],
) -> None:
    """Validate a proposed parent for a new or existing category.

    Args:
        categories: Current categories of the company.
        category_id: The category being placed, or None when creating.
        child_type: Type the category will have.
        parent_id: Proposed parent, or None for a root.

    Raises:
        ParentNotFoundError: If the parent is not a known category.
        CycleDetectedError: If the category would become its own ancestor.
        TypeMismatchError: If the parent's type differs from child_type.
    """
    if parent_id is None:
        return

    parent = _by_id(categories).get(parent_id)
    if parent is None:
        raise ParentNotFoundError(f"Parent category with ID {parent_id} not found")

    if category_id is not None:
        if not is_assignable(category_id, parent_id):
            raise CycleDetectedError(f'Category "{parent.name}" cannot be its own parent')
        if not no_cycle(categories, category_id, parent_id):
            raise CycleDetectedError(
                f'Moving under "{parent.name}" would make the category its own ancestor'
            )

    if not types_compatible(categories, child_type, parent_id):
        raise TypeMismatchError(
            f'Parent category "{parent.name}" is {parent.type}, '
            f"but the category is {child_type}; parent and child must have the same type"
        )
