"""Base interface for command generators."""

from abc import ABC, abstractmethod
from typing import Dict, List
from models.category import Category
from models.payee import Payee


class CommandGenerator(ABC):
    """Turns a conversation into structured commands.

    The output is untrusted: the command pipeline validates and resolves
    every command before anything changes.
    """

    @abstractmethod
    def propose(
        self,
        categories: List[Category],
        payees: List[Payee],
        conversation: List[Dict[str, str]],
    ) -> List[Dict]:
        """Propose commands for the latest message of a conversation.

        Args:
            categories: The company's current categories.
            payees: The company's current payees.
            conversation: Messages so far, each {"role": ..., "content": ...},
                oldest first; the last one is the user's request.

        Returns:
            Zero or more command dicts, each with an "action" key.

        Raises:
            Exception: If the provider call fails.
        """
        pass
