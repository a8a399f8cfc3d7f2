"""Command execution pipeline.

A small state machine between a command generator (a person or the
assistant) and the stores::

    IDLE -> AWAITING_CONFIRMATION -> EXECUTING -> IDLE | PARTIALLY_FAILED

Submitting commands resolves every reference and builds one confirmation
summary; nothing changes until confirm() is called. Confirmed commands run
strictly one after another. Before each one the stores are refetched. A
reference that resolved to a record when the batch was summarized is pinned
to that record's ID; only names that an earlier command of the same batch
creates are looked up again by name.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Set, Tuple
from commands import resolver
from commands.schema import (
    ChangeCategoryType,
    CheckCategoryUsage,
    Command,
    CreateCategory,
    CreatePayee,
    DeleteCategory,
    DeletePayee,
    FindCategory,
    FindPayee,
    MergeCategories,
    MoveCategory,
    RenameCategory,
    RenamePayee,
    parse_commands,
)
from errors import (
    CategoryNotFoundError,
    ChartwellError,
    InvalidCommandError,
    InvalidStateError,
    NameConflictError,
    PartialFailureError,
    PayeeNotFoundError,
    TypeMismatchError,
)
from hierarchy.validator import fold_name
from logger import get_logger
from saga import Saga
from store.categories import NeedsMerge

logger = get_logger("commands")


class PipelineState(Enum):
    IDLE = "idle"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    EXECUTING = "executing"
    PARTIALLY_FAILED = "partially_failed"


# (kind, value as written) -> how it resolved when the batch was summarized
Bindings = Dict[Tuple[str, Any], resolver.Resolution]


@dataclass
class PlannedStep:
    command: Command
    summary: str
    bindings: Bindings = field(default_factory=dict)


@dataclass
class PipelineReply:
    """What the pipeline tells the user after each call.

    Attributes:
        message: Text to show.
        state: Pipeline state after the call.
        results: One line per executed command.
        error: The error that stopped the call, if any.
    """

    message: str
    state: PipelineState
    results: List[str] = field(default_factory=list)
    error: Optional[ChartwellError] = None

    @property
    def awaiting_confirmation(self) -> bool:
        return self.state == PipelineState.AWAITING_CONFIRMATION


class _Plan:
    """Names a batch will create, tracked while summarizing it."""

    def __init__(self):
        self.categories: Set[str] = set()
        self.payees: Set[str] = set()
        self.bindings: Bindings = {}

    def step(self, command: Command, summarize) -> PlannedStep:
        self.bindings = {}
        summary = summarize(command, self)
        return PlannedStep(command, summary, self.bindings)


class CommandPipeline:
    """Sequences commands for one company.

    Args:
        categories: The company's CategoryStore.
        payees: The company's PayeeStore.
        merge_engine: MergeEngine over the same CategoryStore.
        generator: Optional CommandGenerator used by handle_message.
        max_batch_size: Most commands accepted in one submission.
    """

    def __init__(self, categories, payees, merge_engine, generator=None, max_batch_size: int = 10):
        self.categories = categories
        self.payees = payees
        self.merge_engine = merge_engine
        self.generator = generator
        self.max_batch_size = max_batch_size
        self.state = PipelineState.IDLE
        self.queue: List[PlannedStep] = []
        self.conversation: List[Dict[str, str]] = []

    # -- public API --------------------------------------------------------

    def submit(self, raw: Any) -> PipelineReply:
        """Validate, resolve and summarize commands.

        Read-only batches are answered at once. Anything else is queued
        until confirm() or cancel().

        Raises:
            InvalidStateError: If a batch is already waiting or running.
            InvalidCommandError: If the envelope is malformed or too long.
            NotFoundError, AmbiguousReferenceError, NameConflictError,
            TypeMismatchError: If a reference or value is unusable.
        """
        if self.state in (PipelineState.AWAITING_CONFIRMATION, PipelineState.EXECUTING):
            raise InvalidStateError(
                "Confirm or cancel the pending commands before sending new ones"
            )
        self.state = PipelineState.IDLE

        commands = parse_commands(raw)
        if not commands:
            return PipelineReply("There is nothing to do.", self.state)
        if len(commands) > self.max_batch_size:
            raise InvalidCommandError(
                f"Too many commands ({len(commands)}); at most {self.max_batch_size} "
                "can be run at once",
                problems=[f"batch has {len(commands)} commands"],
            )

        plan = _Plan()
        steps = [plan.step(command, self._summarize) for command in commands]

        if all(command.read_only for command in commands):
            results = [self._execute(step) for step in steps]
            return PipelineReply("\n".join(results), self.state, results=results)

        self.queue = steps
        self.state = PipelineState.AWAITING_CONFIRMATION
        lines = ["I'm about to:"]
        lines.extend(f"{n + 1}. {step.summary}" for n, step in enumerate(steps))
        lines.append("Confirm to proceed or cancel to discard.")
        logger.info(f"Queued {len(steps)} command(s) awaiting confirmation")
        return PipelineReply("\n".join(lines), self.state)

    def confirm(self) -> PipelineReply:
        """Run the queued commands in order, stopping at the first failure.

        Returns:
            A reply listing each result, or, on failure, the PartialFailureError
            message with completed and unattempted steps. Completed steps are
            not undone.

        Raises:
            InvalidStateError: If nothing is waiting for confirmation.
        """
        if self.state != PipelineState.AWAITING_CONFIRMATION:
            raise InvalidStateError("There are no commands waiting for confirmation")

        steps, self.queue = self.queue, []
        self.state = PipelineState.EXECUTING
        saga = Saga(f"Running {len(steps)} command(s)")
        for step in steps:
            saga.add(step.summary, lambda step=step: self._execute(step))

        try:
            results = saga.run()
        except PartialFailureError as e:
            self.state = PipelineState.PARTIALLY_FAILED
            return PipelineReply(str(e), self.state, results=list(saga.results), error=e)
        except Exception:
            self.state = PipelineState.PARTIALLY_FAILED
            logger.error(f"Stopped after {saga.cursor} of {len(steps)} command(s)")
            raise

        self.state = PipelineState.IDLE
        logger.info(f"Ran {len(results)} command(s)")
        return PipelineReply("\n".join(results), self.state, results=results)

    def cancel(self) -> PipelineReply:
        """Discard queued commands. Nothing has been sent, so nothing is undone."""
        if self.state != PipelineState.AWAITING_CONFIRMATION:
            raise InvalidStateError("There are no commands waiting for confirmation")
        count = len(self.queue)
        self.queue = []
        self.state = PipelineState.IDLE
        logger.info(f"Cancelled {count} queued command(s)")
        return PipelineReply(f"Cancelled {count} command(s); nothing was changed.", self.state)

    def handle_message(self, text: str) -> PipelineReply:
        """Ask the command generator what to do about a message, then submit it.

        Problems with the generated commands are reported in the reply and
        kept in the conversation so the generator can correct itself.

        Raises:
            InvalidStateError: If there is no generator, or a batch is pending.
        """
        if self.generator is None:
            raise InvalidStateError("No assistant is configured")
        if self.state in (PipelineState.AWAITING_CONFIRMATION, PipelineState.EXECUTING):
            raise InvalidStateError(
                "Confirm or cancel the pending commands before sending new ones"
            )

        self.conversation.append({"role": "user", "content": text})
        proposed = self.generator.propose(
            self.categories.all(), self.payees.all(), list(self.conversation)
        )
        logger.debug(f"Generator proposed {len(proposed)} command(s)")

        if not proposed:
            reply = PipelineReply(
                "I couldn't turn that into any category or payee changes.", self.state
            )
        else:
            try:
                reply = self.submit(proposed)
            except ChartwellError as e:
                logger.warning(f"Generated commands rejected: {e}")
                reply = PipelineReply(str(e), self.state, error=e)

        self.conversation.append({"role": "assistant", "content": reply.message})
        return reply

    # -- planning ----------------------------------------------------------

    def _category(self, value, plan: _Plan) -> resolver.Resolution:
        resolution = resolver.resolve_category(self.categories, value, plan.categories)
        plan.bindings[("category", value)] = resolution
        return resolution

    def _payee(self, value, plan: _Plan) -> resolver.Resolution:
        resolution = resolver.resolve_payee(self.payees, value, plan.payees)
        plan.bindings[("payee", value)] = resolution
        return resolution

    @staticmethod
    def _label(value, resolution: resolver.Resolution) -> str:
        label = f'"{resolution.name}"'
        if resolution.matched_by == "substring":
            label += f' (matched from "{value}")'
        elif resolution.matched_by == "pending":
            label += " (created above)"
        return label

    def _summarize(self, command: Command, plan: _Plan) -> str:
        """Resolve a command's references and describe it."""
        if isinstance(command, CreateCategory):
            summary = f'Create {command.type} category "{command.name}"'
            if command.parent is not None:
                parent = self._category(command.parent, plan)
                self._check_parent_type(parent, command.type, command.name)
                summary += f" under {self._label(command.parent, parent)}"
            if self.categories.find_by_name(command.name) or fold_name(command.name) in {
                fold_name(n) for n in plan.categories
            }:
                raise NameConflictError(f'Category "{command.name}" already exists')
            plan.categories.add(command.name)
            return summary

        if isinstance(command, RenameCategory):
            category = self._category(command.category, plan)
            existing = self.categories.find_by_name(command.new_name)
            if existing is not None and existing.id != category.id:
                raise NameConflictError(
                    f'A category named "{existing.name}" already exists; merge '
                    f"{self._label(command.category, category)} into it instead",
                    existing=existing,
                )
            plan.categories.add(command.new_name)
            return f'Rename category {self._label(command.category, category)} to "{command.new_name}"'

        if isinstance(command, ChangeCategoryType):
            category = self._category(command.category, plan)
            current = f" from {category.record.type}" if category.record is not None else ""
            return (
                f"Change the type of {self._label(command.category, category)}"
                f"{current} to {command.new_type}"
            )

        if isinstance(command, MoveCategory):
            category = self._category(command.category, plan)
            if command.parent is None:
                return f"Move {self._label(command.category, category)} to the top level"
            parent = self._category(command.parent, plan)
            if category.record is not None:
                self._check_parent_type(parent, category.record.type, category.name)
            return (
                f"Move {self._label(command.category, category)} under "
                f"{self._label(command.parent, parent)}"
            )

        if isinstance(command, DeleteCategory):
            category = self._category(command.category, plan)
            return f"Delete category {self._label(command.category, category)}"

        if isinstance(command, MergeCategories):
            sources = [(value, self._category(value, plan)) for value in command.sources]
            target = self._category(command.target, plan)
            names = ", ".join(self._label(value, r) for value, r in sources)
            return f"Merge {names} into {self._label(command.target, target)}"

        if isinstance(command, FindCategory):
            return f'Find categories matching "{command.query}"'

        if isinstance(command, CheckCategoryUsage):
            category = self._category(command.category, plan)
            return f"Check where {self._label(command.category, category)} is used"

        if isinstance(command, CreatePayee):
            if self.payees.find_by_name(command.name) or fold_name(command.name) in {
                fold_name(n) for n in plan.payees
            }:
                raise NameConflictError(f'Payee "{command.name}" already exists')
            plan.payees.add(command.name)
            return f'Create payee "{command.name}"'

        if isinstance(command, RenamePayee):
            payee = self._payee(command.payee, plan)
            plan.payees.add(command.new_name)
            return f'Rename payee {self._label(command.payee, payee)} to "{command.new_name}"'

        if isinstance(command, DeletePayee):
            payee = self._payee(command.payee, plan)
            return f"Delete payee {self._label(command.payee, payee)}"

        if isinstance(command, FindPayee):
            return f'Find payees matching "{command.query}"'

        raise InvalidCommandError(f"Unsupported command {command.action}")

    @staticmethod
    def _check_parent_type(parent: resolver.Resolution, child_type: str, child_name: str) -> None:
        if parent.record is not None and parent.record.type != child_type:
            raise TypeMismatchError(
                f'Cannot put {child_type} category "{child_name}" under '
                f'{parent.record.type} category "{parent.record.name}"'
            )

    # -- execution ---------------------------------------------------------

    def _bound_category(self, step: PlannedStep, value):
        """The category the summary named for value.

        Names pending at planning time are looked up now; anything else must
        still be the record that was confirmed.
        """
        planned = step.bindings.get(("category", value))
        if planned is None or planned.record is None:
            return resolver.resolve_category(self.categories, value).record
        category = self.categories.find(planned.record.id)
        if category is None:
            raise CategoryNotFoundError(
                f'Category "{planned.record.name}" (ID {planned.record.id}) no longer exists'
            )
        return category

    def _bound_payee(self, step: PlannedStep, value):
        planned = step.bindings.get(("payee", value))
        if planned is None or planned.record is None:
            return resolver.resolve_payee(self.payees, value).record
        payee = self.payees.find(planned.record.id)
        if payee is None:
            raise PayeeNotFoundError(
                f'Payee "{planned.record.name}" (ID {planned.record.id}) no longer exists'
            )
        return payee

    def _execute(self, step: PlannedStep) -> str:
        """Run one command against freshly fetched stores."""
        command = step.command
        self.categories.refresh()
        self.payees.refresh()

        if isinstance(command, CreateCategory):
            parent = None
            if command.parent is not None:
                parent = self._bound_category(step, command.parent).id
            created = self.categories.create(command.name, command.type, parent=parent)
            return f'Created {created.type} category "{created.name}"'

        if isinstance(command, RenameCategory):
            category = self._bound_category(step, command.category)
            result = self.categories.update(category.id, name=command.new_name)
            if isinstance(result, NeedsMerge):
                raise NameConflictError(result.message, existing=result.existing)
            return f'Renamed "{category.name}" to "{result.name}"'

        if isinstance(command, ChangeCategoryType):
            category = self._bound_category(step, command.category)
            updated = self.categories.update(category.id, type=command.new_type)
            return f'Changed "{updated.name}" from {category.type} to {updated.type}'

        if isinstance(command, MoveCategory):
            category = self._bound_category(step, command.category)
            if command.parent is None:
                self.categories.move(category.id, None)
                return f'Moved "{category.name}" to the top level'
            parent = self._bound_category(step, command.parent)
            self.categories.move(category.id, parent.id)
            return f'Moved "{category.name}" under "{parent.name}"'

        if isinstance(command, DeleteCategory):
            category = self._bound_category(step, command.category)
            self.categories.delete(category.id)
            return f'Deleted category "{category.name}"'

        if isinstance(command, MergeCategories):
            target = self._bound_category(step, command.target)
            selected = [self._bound_category(step, value).id for value in command.sources]
            selected.append(target.id)
            merged = self.merge_engine.merge(selected, target.id)
            return f'Merged {len(set(selected)) - 1} category(ies) into "{merged.name}"'

        if isinstance(command, FindCategory):
            return self._find_categories(command.query)

        if isinstance(command, CheckCategoryUsage):
            category = self._bound_category(step, command.category)
            usage = self.categories.usage(category.id)
            return (
                f'"{category.name}" is used by {usage.transactions} transaction(s), '
                f"{usage.imported_transactions} imported transaction(s), "
                f"{usage.journal_entries} journal entr(ies) and "
                f"{usage.automations} automation rule(s); it has "
                f"{usage.subcategories} subcategory(ies)"
            )

        if isinstance(command, CreatePayee):
            created = self.payees.create(command.name)
            return f'Created payee "{created.name}"'

        if isinstance(command, RenamePayee):
            payee = self._bound_payee(step, command.payee)
            renamed = self.payees.rename(payee.id, command.new_name)
            return f'Renamed payee "{payee.name}" to "{renamed.name}"'

        if isinstance(command, DeletePayee):
            payee = self._bound_payee(step, command.payee)
            self.payees.delete(payee.id)
            return f'Deleted payee "{payee.name}"'

        if isinstance(command, FindPayee):
            matches = resolver.search(self.payees.all(), command.query)
            if not matches:
                return self._no_matches("payees", self.payees.all(), command.query)
            return f'Payees matching "{command.query}": ' + ", ".join(p.name for p in matches)

        raise InvalidCommandError(f"Unsupported command {command.action}")

    def _find_categories(self, query: str) -> str:
        categories = self.categories.all()
        matches = resolver.search(categories, query)
        if not matches:
            return self._no_matches("categories", categories, query)
        names = {category.id: category.name for category in categories}
        lines = [f'Categories matching "{query}":']
        for category in matches:
            line = f"- {category.name} ({category.type})"
            if category.parent_id is not None:
                line += f", under {names.get(category.parent_id, category.parent_id)}"
            lines.append(line)
        return "\n".join(lines)

    @staticmethod
    def _no_matches(kind: str, records, query: str) -> str:
        message = f'No {kind} match "{query}"'
        suggestions = resolver.suggest(records, query)
        if suggestions:
            message += f"; did you mean: {', '.join(suggestions)}?"
        return message

