"""Error kinds raised by the chart of accounts engine.

Validation errors are raised before any remote call is made, so they never
leave partial state behind. ``RemoteFailureError`` wraps whatever the backing
store raised. ``PartialFailureError`` is raised by multi-step operations
(merge, confirmed command batches) and records how far they got.
"""

from typing import List, Optional, Sequence


class ChartwellError(Exception):
    """Base class for all Chartwell errors."""


class InvalidInputError(ChartwellError):
    """A required value is missing or malformed (empty name, unknown type)."""


class NameConflictError(ChartwellError):
    """A name is already used by another record in the same company."""

    def __init__(self, message: str, existing=None):
        super().__init__(message)
        self.existing = existing


class TypeMismatchError(ChartwellError):
    """A child category's type differs from its parent's type."""


class CycleDetectedError(ChartwellError):
    """A re-parent would make a category its own ancestor."""


class NotFoundError(ChartwellError):
    """A referenced record does not exist.

    Attributes:
        suggestions: Names of close matches that the caller may offer instead.
    """

    def __init__(self, message: str, suggestions: Optional[Sequence[str]] = None):
        super().__init__(message)
        self.suggestions: List[str] = list(suggestions or [])


class CategoryNotFoundError(NotFoundError):
    """A referenced category does not exist."""


class ParentNotFoundError(CategoryNotFoundError):
    """A referenced parent category does not exist."""


class PayeeNotFoundError(NotFoundError):
    """A referenced payee does not exist."""


class AmbiguousReferenceError(ChartwellError):
    """A fuzzy reference matched more than one record."""

    def __init__(self, message: str, candidates: Sequence[str]):
        super().__init__(message)
        self.candidates: List[str] = list(candidates)


class ProtectedLinkageError(ChartwellError):
    """A category linked to an external financial account cannot be removed."""


class InUseError(ChartwellError):
    """A record is still referenced and cannot be removed.

    Attributes:
        reason: "subcategories" when a child category is referenced,
            "transactions" when the record itself is referenced.
    """

    def __init__(self, message: str, reason: str):
        super().__init__(message)
        self.reason = reason


class RemoteFailureError(ChartwellError):
    """The backing store rejected or failed a call."""


class PartialFailureError(ChartwellError):
    """A multi-step operation stopped part way through.

    Steps that completed before the failure are not undone.

    Attributes:
        completed: Descriptions of the steps that completed.
        failed_index: Zero-based index of the step that failed.
        failed_step: Description of the step that failed.
        cause: The exception raised by the failed step.
    """

    def __init__(
        self,
        message: str,
        completed: Sequence[str],
        failed_index: int,
        failed_step: str,
        cause: Exception,
    ):
        super().__init__(message)
        self.completed: List[str] = list(completed)
        self.failed_index = failed_index
        self.failed_step = failed_step
        self.cause = cause


class CSVValidationError(ChartwellError):
    """An import file failed file-level validation."""


class InvalidCommandError(ChartwellError):
    """A command envelope failed schema validation.

    Attributes:
        problems: One human-readable problem per invalid command.
    """

    def __init__(self, message: str, problems: Optional[Sequence[str]] = None):
        super().__init__(message)
        self.problems: List[str] = list(problems or [])


class InvalidStateError(ChartwellError):
    """An operation was requested in a pipeline state that does not allow it."""
