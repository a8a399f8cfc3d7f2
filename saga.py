"""Run an ordered list of non-atomic steps with a completion cursor.

There is no transaction around the steps. When one fails, the ones before it
stay applied and PartialFailureError reports exactly which step stopped the
run.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, List
from errors import ChartwellError, PartialFailureError
from logger import get_logger

logger = get_logger("saga")


@dataclass
class SagaStep:
    """One step of a saga.

    Attributes:
        description: Human readable description used in reports.
        action: Zero-argument callable performing the step.
    """

    description: str
    action: Callable[[], Any]


@dataclass
class Saga:
    """An ordered list of steps run strictly one after another.

    Attributes:
        name: What the saga does, e.g. "Merge into Bank Fees".
        steps: Steps in execution order.
        completed: Descriptions of the steps that have finished.
        results: Return value of each finished step.
    """

    name: str
    steps: List[SagaStep] = field(default_factory=list)
    completed: List[str] = field(default_factory=list)
    results: List[Any] = field(default_factory=list)

    def add(self, description: str, action: Callable[[], Any]) -> "Saga":
        self.steps.append(SagaStep(description, action))
        return self

    @property
    def cursor(self) -> int:
        """Index of the next step to run."""
        return len(self.completed)

    def run(self) -> List[Any]:
        """Run every remaining step.

        Returns:
            The result of each step, in order.

        Raises:
            PartialFailureError: If a step raises a ChartwellError. The
                original error is attached as ``cause`` and chained.
        """
        while self.cursor < len(self.steps):
            index = self.cursor
            step = self.steps[index]
            logger.debug(f"{self.name}: step {index + 1}/{len(self.steps)} {step.description}")
            try:
                result = step.action()
            except ChartwellError as e:
                logger.error(
                    f"{self.name} stopped at step {index + 1} ({step.description}): {e}"
                )
                raise PartialFailureError(
                    self.failure_message(index, e),
                    completed=self.completed,
                    failed_index=index,
                    failed_step=step.description,
                    cause=e,
                ) from e
            self.completed.append(step.description)
            self.results.append(result)
        return self.results

    def failure_message(self, index: int, error: Exception) -> str:
        lines = [
            f"{self.name} failed at step {index + 1} of {len(self.steps)} "
            f"({self.steps[index].description}): {error}"
        ]
        if self.completed:
            lines.append("Completed steps (not undone):")
            lines.extend(f"  {n + 1}. {desc}" for n, desc in enumerate(self.completed))
        else:
            lines.append("No steps were completed.")
        remaining = [step.description for step in self.steps[index + 1:]]
        if remaining:
            lines.append("Not attempted:")
            lines.extend(
                f"  {index + 2 + n}. {desc}" for n, desc in enumerate(remaining)
            )
        return "\n".join(lines)
