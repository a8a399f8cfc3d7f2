"""Command envelopes accepted by the command pipeline.

Commands arrive from a person or from the assistant as plain dicts and are
untrusted. Each one is validated into one of a closed set of pydantic models,
selected by its ``action`` field, before anything else looks at it.
"""

from typing import Annotated, Any, ClassVar, List, Literal, Optional, Union
from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    StrictInt,
    StringConstraints,
    TypeAdapter,
    ValidationError,
    field_validator,
)
from errors import InvalidCommandError
from models.category import ACCOUNT_TYPES

Name = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=255)]

# A reference as written by the generator: an ID or a name
RawReference = Union[StrictInt, Name]


def _aliases(*names: str):
    return Field(validation_alias=AliasChoices(*names))


def _canonical_type(value: str) -> str:
    cleaned = value.strip().lower()
    for account_type in ACCOUNT_TYPES:
        if account_type.lower() == cleaned:
            return account_type
    raise ValueError(f"must be one of {', '.join(ACCOUNT_TYPES)}")


class Command(BaseModel):
    """Common base of every command."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    read_only: ClassVar[bool] = False


class CreateCategory(Command):
    action: Literal["create_category"]
    name: Name
    type: str
    parent: Optional[RawReference] = Field(
        default=None,
        validation_alias=AliasChoices("parent", "parentName", "parent_name", "parent_id"),
    )

    @field_validator("type")
    @classmethod
    def check_type(cls, value: str) -> str:
        return _canonical_type(value)


class RenameCategory(Command):
    action: Literal["rename_category"]
    category: RawReference = _aliases("category", "oldName", "old_name", "category_id")
    new_name: Name = _aliases("new_name", "newName")


class ChangeCategoryType(Command):
    action: Literal["change_category_type"]
    category: RawReference = _aliases("category", "name", "categoryName", "category_id")
    new_type: str = _aliases("new_type", "newType", "type")

    @field_validator("new_type")
    @classmethod
    def check_type(cls, value: str) -> str:
        return _canonical_type(value)


class MoveCategory(Command):
    """Re-parent a category; a missing parent moves it to the top level."""

    action: Literal["move_category", "assign_parent_category"]
    category: RawReference = _aliases("category", "childName", "child_name", "category_id")
    parent: Optional[RawReference] = Field(
        default=None,
        validation_alias=AliasChoices("parent", "parentName", "parent_name", "parent_id"),
    )


class DeleteCategory(Command):
    action: Literal["delete_category"]
    category: RawReference = _aliases("category", "name", "category_id")


class MergeCategories(Command):
    action: Literal["merge_categories"]
    sources: List[RawReference] = Field(
        min_length=1,
        validation_alias=AliasChoices("sources", "sourceNames", "source_names", "categories"),
    )
    target: RawReference = _aliases("target", "targetName", "target_name")


class FindCategory(Command):
    action: Literal["find_category"]
    query: Name = _aliases("query", "name")

    read_only: ClassVar[bool] = True


class CheckCategoryUsage(Command):
    action: Literal["check_category_usage"]
    category: RawReference = _aliases("category", "name", "category_id")

    read_only: ClassVar[bool] = True


class CreatePayee(Command):
    action: Literal["create_payee"]
    name: Name


class RenamePayee(Command):
    action: Literal["rename_payee"]
    payee: RawReference = _aliases("payee", "oldName", "old_name", "payee_id")
    new_name: Name = _aliases("new_name", "newName")


class DeletePayee(Command):
    action: Literal["delete_payee"]
    payee: RawReference = _aliases("payee", "name", "payee_id")


class FindPayee(Command):
    action: Literal["find_payee"]
    query: Name = _aliases("query", "name")

    read_only: ClassVar[bool] = True


AnyCommand = Annotated[
    Union[
        CreateCategory,
        RenameCategory,
        ChangeCategoryType,
        MoveCategory,
        DeleteCategory,
        MergeCategories,
        FindCategory,
        CheckCategoryUsage,
        CreatePayee,
        RenamePayee,
        DeletePayee,
        FindPayee,
    ],
    Field(discriminator="action"),
]

_adapter = TypeAdapter(AnyCommand)

BATCH_ACTION = "batch_execute"

ACTIONS = (
    "create_category",
    "rename_category",
    "change_category_type",
    "move_category",
    "assign_parent_category",
    "delete_category",
    "merge_categories",
    "find_category",
    "check_category_usage",
    "create_payee",
    "rename_payee",
    "delete_payee",
    "find_payee",
    BATCH_ACTION,
)


def _format_error(index: int, error: ValidationError) -> str:
    details = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"] if part not in ACTIONS)
        details.append(f"{location}: {item['msg']}" if location else item["msg"])
    return f"Command {index + 1}: " + "; ".join(details)


def _flatten(raw: Any) -> List[Any]:
    if isinstance(raw, dict) and raw.get("action") == BATCH_ACTION:
        commands = raw.get("commands")
        if not isinstance(commands, list):
            return [raw]
        return [item for command in commands for item in _flatten(command)]
    if isinstance(raw, list):
        return [item for command in raw for item in _flatten(command)]
    return [raw]


def parse_commands(raw: Any) -> List[Command]:
    """Validate one command, a list of commands or a batch_execute envelope.

    Nested batches are flattened into one list in program order.

    Raises:
        InvalidCommandError: If any command is invalid. ``problems`` has one
            entry per invalid command, naming its position.
    """
    items = _flatten(raw)
    commands = []
    problems = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            problems.append(f"Command {index + 1}: expected an object, got {type(item).__name__}")
            continue
        if item.get("action") == BATCH_ACTION:
            problems.append(f"Command {index + 1}: batch_execute needs a list of commands")
            continue
        try:
            commands.append(_adapter.validate_python(item))
        except ValidationError as e:
            problems.append(_format_error(index, e))

    if problems:
        raise InvalidCommandError(
            "Invalid command" + ("s" if len(problems) > 1 else "") + ":\n" + "\n".join(problems),
            problems=problems,
        )
    return commands
