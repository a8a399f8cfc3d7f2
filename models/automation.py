"""Automation rule model."""

from dataclasses import dataclass


@dataclass
class Automation:
    """A rule that assigns a payee or category to matching transactions.

    Category rules name their category by ``action_value`` (the category
    name, not its ID), so renames and merges must rewrite them.

    Attributes:
        id: Unique identifier.
        company_id: Owning company.
        name: Human readable rule name.
        automation_type: "payee" or "category".
        condition_type: How to match, e.g. "contains" or "equals".
        condition_value: Text matched against the transaction description.
        action_value: Name of the payee or category to assign.
        enabled: Whether the rule runs.
    """

    id: int
    company_id: int
    name: str
    automation_type: str
    condition_type: str
    condition_value: str
    action_value: str
    enabled: bool = True
