"""Ordered write steps with compensating actions.

The store offers no multi-statement transaction across header, items and
balance writes, so mutating operations run as a saga: each step pairs an
action with the action that undoes it. When a step fails, the
compensations of every completed step run in reverse order and the
original error propagates.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from balancebook.domain.errors import RollbackFailedError

logger = logging.getLogger(__name__)


@dataclass
class SagaStep:
    """One write and the write that undoes it."""

    name: str
    action: Callable[[], Any]
    compensation: Optional[Callable[[], Any]] = None


class Saga:
    """Run steps in order, compensating completed steps on failure."""

    def __init__(self, name: str):
        self.name = name
        self.steps: list[SagaStep] = []
        self.results: dict[str, Any] = {}

    def step(
        self, name: str, action: Callable[[], Any], compensation: Optional[Callable[[], Any]] = None
    ) -> "Saga":
        """Append a step. Returns the saga for chaining."""
        self.steps.append(SagaStep(name, action, compensation))
        return self

    def run(self) -> dict[str, Any]:
        """Execute all steps.

        Returns:
            Mapping of step name to the value its action returned

        Raises:
            RollbackFailedError: If a compensation fails; chained from the
                compensation's own error
            Exception: The error of the failing step, after compensation
        """
        completed: list[SagaStep] = []
        for step in self.steps:
            try:
                self.results[step.name] = step.action()
            except Exception as error:
                logger.warning(
                    "saga_step_failed",
                    extra={"saga": self.name, "step": step.name, "error": str(error)},
                )
                self._compensate(completed, error)
                raise
            completed.append(step)
        return self.results

    def _compensate(self, completed: list[SagaStep], cause: Exception) -> None:
        for step in reversed(completed):
            if step.compensation is None:
                continue
            try:
                step.compensation()
            except Exception as error:
                logger.error(
                    "saga_compensation_failed",
                    extra={"saga": self.name, "step": step.name, "error": str(error)},
                )
                raise RollbackFailedError(
                    f"{self.name}: rollback of '{step.name}' failed after '{cause}': {error}; "
                    "manual reconciliation required"
                ) from error
            logger.warning("saga_step_compensated", extra={"saga": self.name, "step": step.name})
