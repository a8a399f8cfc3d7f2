"""Tagged references to records, resolved once at the command boundary."""

from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True)
class ById:
    id: int

    def describe(self) -> str:
        return f"#{self.id}"


@dataclass(frozen=True)
class ByName:
    name: str

    def describe(self) -> str:
        return f'"{self.name}"'


Reference = Union[ById, ByName]


def to_reference(value) -> Reference:
    """Turn an int (ID), a name or an existing Reference into a Reference."""
    if isinstance(value, (ById, ByName)):
        return value
    if isinstance(value, bool):
        raise TypeError("A reference cannot be a boolean")
    if isinstance(value, int):
        return ById(value)
    return ByName(str(value).strip())


def optional_reference(value) -> Optional[Reference]:
    """Like to_reference, but None and empty strings mean "no reference"."""
    if value is None:
        return None
    if isinstance(value, str) and not value.strip():
        return None
    return to_reference(value)
