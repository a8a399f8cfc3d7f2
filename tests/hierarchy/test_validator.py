import pytest

from errors import CycleDetectedError, ParentNotFoundError, TypeMismatchError
from hierarchy import validator
from models.category import Category


def category(id, name, type="Expense", parent_id=None):
    return Category(id=id, name=name, type=type, company_id=1, parent_id=parent_id)


@pytest.fixture
def categories():
    """Office > Supplies > Paper, plus a root Cash asset."""
    return [
        category(1, "Office"),
        category(2, "Supplies", parent_id=1),
        category(3, "Paper", parent_id=2),
        category(4, "Cash", "Asset"),
    ]


class TestNames:
    def test_fold_name(self):
        assert validator.fold_name("  Bank FEES ") == "bank fees"

    def test_name_is_unique(self, categories):
        """Test uniqueness ignores case and can exclude the category itself."""
        assert validator.name_is_unique(categories, "Rent")
        assert not validator.name_is_unique(categories, "office")
        assert validator.name_is_unique(categories, "OFFICE", excluding_id=1)


class TestHierarchy:
    def test_types_compatible(self, categories):
        assert validator.types_compatible(categories, "Expense", None)
        assert validator.types_compatible(categories, "Expense", 1)
        assert not validator.types_compatible(categories, "Asset", 1)
        assert not validator.types_compatible(categories, "Expense", 99)

    def test_is_assignable(self):
        assert validator.is_assignable(1, None)
        assert validator.is_assignable(1, 2)
        assert not validator.is_assignable(1, 1)

    def test_no_cycle(self, categories):
        """Test walking up from the proposed parent."""
        assert validator.no_cycle(categories, 4, 3)
        assert validator.no_cycle(categories, 3, 1)
        assert validator.no_cycle(categories, 1, None)
        assert not validator.no_cycle(categories, 1, 3)
        assert not validator.no_cycle(categories, 2, 2)

    def test_no_cycle_with_looping_data(self):
        """Test data that already loops is reported as a cycle instead of hanging."""
        looping = [category(1, "A", parent_id=2), category(2, "B", parent_id=1), category(3, "C")]

        assert not validator.no_cycle(looping, 3, 1)

    def test_depth_of(self, categories):
        assert validator.depth_of(categories, 1) == 0
        assert validator.depth_of(categories, 2) == 1
        assert validator.depth_of(categories, 3) == 2
        assert validator.depth_of(categories, 99) == 0

    def test_is_ancestor(self, categories):
        assert validator.is_ancestor(categories, 1, 3)
        assert validator.is_ancestor(categories, 2, 3)
        assert not validator.is_ancestor(categories, 3, 1)
        assert not validator.is_ancestor(categories, 4, 3)
        assert not validator.is_ancestor(categories, 1, 1)


class TestCheckParent:
    """Tests for check_parent, which raises the first problem found."""

    def test_root_always_passes(self, categories):
        validator.check_parent(categories, 3, "Asset", None)

    def test_valid_parent(self, categories):
        validator.check_parent(categories, None, "Expense", 3)
        validator.check_parent(categories, 3, "Expense", 1)

    def test_unknown_parent(self, categories):
        with pytest.raises(ParentNotFoundError):
            validator.check_parent(categories, None, "Expense", 99)

    def test_own_parent(self, categories):
        with pytest.raises(CycleDetectedError):
            validator.check_parent(categories, 1, "Expense", 1)

    def test_descendant_parent(self, categories):
        with pytest.raises(CycleDetectedError):
            validator.check_parent(categories, 1, "Expense", 3)

    def test_type_mismatch(self, categories):
        with pytest.raises(TypeMismatchError, match="Cash"):
            validator.check_parent(categories, None, "Expense", 4)

    def test_cycle_reported_before_type(self, categories):
        """Test a move that is both cyclic and mistyped reports the cycle."""
        with pytest.raises(CycleDetectedError):
            validator.check_parent(categories, 1, "Asset", 3)
