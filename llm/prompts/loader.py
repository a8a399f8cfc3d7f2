"""The assistant's command prompt, kept in commands.yaml."""

import yaml
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional
from logger import get_logger
from models.category import Category
from models.payee import Payee

logger = get_logger("llm")

PROMPT_FILE = Path(__file__).parent / "commands.yaml"


def format_categories(categories: List[Category]) -> str:
    """One line per category: name, type and parent name."""
    if not categories:
        return "No categories yet."

    names = {cat.id: cat.name for cat in categories}
    lines = []
    for cat in categories:
        parent = f", under {names[cat.parent_id]}" if cat.parent_id in names else ""
        lines.append(f"- {cat.name} ({cat.type}{parent})")
    return "\n".join(lines)


def format_payees(payees: List[Payee]) -> str:
    if not payees:
        return "No payees yet."
    return "\n".join(f"- {payee.name}" for payee in payees)


@dataclass
class CommandPrompt:
    """System instructions plus a template listing the company's records.

    Attributes:
        version: Prompt version, logged with every call.
        system_prompt: Fixed instructions.
        template: Takes {categories} and {payees}.
        parameters: Model defaults (model, temperature, max_tokens).
    """

    version: str
    system_prompt: str
    template: str
    parameters: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "CommandPrompt":
        """Read the prompt from YAML.

        Raises:
            FileNotFoundError: If the file doesn't exist.
            yaml.YAMLError: If YAML is invalid.
        """
        path = path or PROMPT_FILE
        logger.debug(f"Loading prompt from {path}")
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}

        return cls(
            version=str(data.get("version", "unknown")),
            system_prompt=data.get("system_prompt", ""),
            template=data.get("user_prompt_template", ""),
            parameters=data.get("parameters", {}),
        )

    def messages(self, categories: List[Category], payees: List[Payee]) -> List[Dict[str, str]]:
        """The system messages that open every request."""
        listing = self.template.format(
            categories=format_categories(categories),
            payees=format_payees(payees),
        )
        return [
            {"role": "system", "content": self.system_prompt},
            {"role": "system", "content": listing},
        ]
