"""OpenAI command generator using strict function tools."""

from typing import Dict, List, Literal, Optional
from openai import OpenAI, pydantic_function_tool
from pydantic import BaseModel, Field
from llm.providers.base import CommandGenerator
from llm.prompts.loader import CommandPrompt
from models.category import Category
from models.payee import Payee
from logger import get_logger

logger = get_logger("llm")

AccountType = Literal["Asset", "Liability", "Equity", "Revenue", "COGS", "Expense"]


# Tool argument models; field names are accepted by commands.schema
class CreateCategoryArgs(BaseModel):
    name: str = Field(description="Name of the new category")
    type: AccountType
    parent_name: Optional[str] = Field(description="Parent category, or null for top level")


class RenameCategoryArgs(BaseModel):
    old_name: str
    new_name: str


class ChangeCategoryTypeArgs(BaseModel):
    category: str
    new_type: AccountType


class MoveCategoryArgs(BaseModel):
    category: str
    parent_name: Optional[str] = Field(description="New parent, or null to move to top level")


class DeleteCategoryArgs(BaseModel):
    category: str


class MergeCategoriesArgs(BaseModel):
    sources: List[str] = Field(description="Categories merged away")
    target: str = Field(description="Category that survives the merge")


class QueryArgs(BaseModel):
    query: str


class CategoryArgs(BaseModel):
    category: str


class PayeeNameArgs(BaseModel):
    name: str


class RenamePayeeArgs(BaseModel):
    old_name: str
    new_name: str


class PayeeArgs(BaseModel):
    payee: str


TOOLS = [
    ("create_category", CreateCategoryArgs, "Create a chart of accounts category"),
    ("rename_category", RenameCategoryArgs, "Rename an existing category"),
    ("change_category_type", ChangeCategoryTypeArgs, "Change the account type of a category"),
    ("move_category", MoveCategoryArgs, "Put a category under another one, or at the top level"),
    ("delete_category", DeleteCategoryArgs, "Delete a category"),
    ("merge_categories", MergeCategoriesArgs, "Merge categories into one target category"),
    ("find_category", QueryArgs, "Look up categories by part of their name"),
    ("check_category_usage", CategoryArgs, "Report what uses a category"),
    ("create_payee", PayeeNameArgs, "Create a payee"),
    ("rename_payee", RenamePayeeArgs, "Rename a payee"),
    ("delete_payee", PayeeArgs, "Delete a payee"),
    ("find_payee", QueryArgs, "Look up payees by part of their name"),
]


class OpenAIProvider(CommandGenerator):
    """OpenAI implementation; every tool call becomes one command."""

    def __init__(self, api_key: str, model: Optional[str] = None):
        """Initialize OpenAI provider.

        Args:
            api_key: OpenAI API key.
            model: Model to use (e.g., "gpt-4o-mini"). If None, uses prompt default.
        """
        self.client = OpenAI(api_key=api_key)
        self.model = model
        self.prompt = CommandPrompt.load()
        self.tools = [
            pydantic_function_tool(args, name=name, description=description)
            for name, args, description in TOOLS
        ]

    def propose(
        self,
        categories: List[Category],
        payees: List[Payee],
        conversation: List[Dict[str, str]],
    ) -> List[Dict]:
        parameters = self.prompt.parameters
        model = self.model or parameters.get("model", "gpt-4o-mini")
        temperature = parameters.get("temperature", 0.0)
        max_tokens = parameters.get("max_tokens", 2000)

        logger.info(
            f"Calling OpenAI ({model}, prompt version {self.prompt.version}) "
            f"with {len(conversation)} message(s)"
        )

        messages = self.prompt.messages(categories, payees)
        messages.extend(conversation)

        try:
            response = self.client.chat.completions.parse(
                model=model,
                messages=messages,
                tools=self.tools,
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except Exception as e:
            logger.error(f"OpenAI API error: {e}")
            raise

        message = response.choices[0].message
        commands = []
        for tool_call in message.tool_calls or []:
            arguments = tool_call.function.parsed_arguments
            if arguments is None:
                logger.warning(f"Ignoring tool call {tool_call.function.name} without arguments")
                continue
            commands.append(
                {"action": tool_call.function.name, **arguments.model_dump(exclude_none=True)}
            )

        logger.info(f"OpenAI proposed {len(commands)} command(s)")
        return commands
