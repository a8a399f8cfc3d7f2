"""Externally linked financial account model."""

from dataclasses import dataclass


@dataclass(frozen=True)
class ExternalAccount:
    """A bank or card account linked from an external provider.

    Attributes:
        id: Unique identifier.
        company_id: Owning company.
        link_id: Provider identifier; categories reference it through
            Category.external_link_id.
        name: Display name, kept in sync with the linked category's name.
        type: Account type, kept in sync with the linked category's type.
    """

    id: int
    company_id: int
    link_id: str
    name: str
    type: str
