"""
Multi-step writes with compensations

Each step commits on its own. When a later step fails, the compensations of the
steps that already completed run in reverse order, and the original error is
re-raised as SagaError.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class SagaError(Exception):
    """A saga step failed; completed steps have been compensated"""

    def __init__(self, step: str, original: Exception, compensation_failures: Optional[list[str]] = None):
        super().__init__(f"Step '{step}' failed: {original}")
        self.step = step
        self.original = original
        self.compensation_failures = compensation_failures or []


@dataclass
class SagaStep:
    name: str
    action: Callable[[dict], Any]
    compensate: Optional[Callable[[dict, Any], None]] = None


class Saga:
    """
    Ordered steps sharing a context dict.

    ``action(context)`` returns a result stored under ``context[name]``;
    ``compensate(context, result)`` undoes it.
    """

    def __init__(self, name: str):
        self.name = name
        self.steps: list[SagaStep] = []

    def step(self, name: str, action: Callable[[dict], Any], compensate: Optional[Callable[[dict, Any], None]] = None):
        self.steps.append(SagaStep(name, action, compensate))
        return self

    def run(self, context: Optional[dict] = None) -> dict:
        context = {} if context is None else context
        completed: list[tuple[SagaStep, Any]] = []

        for saga_step in self.steps:
            try:
                result = saga_step.action(context)
            except Exception as e:
                logger.error(f"❌ Saga '{self.name}' failed at step '{saga_step.name}': {e}")
                failures = self._compensate(context, completed)
                raise SagaError(saga_step.name, e, failures) from e
            context[saga_step.name] = result
            completed.append((saga_step, result))
            logger.debug(f"✅ Saga '{self.name}' step '{saga_step.name}' done")

        logger.info(f"✅ Saga '{self.name}' completed ({len(completed)} steps)")
        return context

    def _compensate(self, context: dict, completed: list[tuple[SagaStep, Any]]) -> list[str]:
        failures = []
        for saga_step, result in reversed(completed):
            if saga_step.compensate is None:
                continue
            try:
                saga_step.compensate(context, result)
                logger.info(f"↩️ Saga '{self.name}' compensated step '{saga_step.name}'")
            except Exception as e:
                # Keep unwinding; the original error is what the caller sees
                logger.error(f"❌ Saga '{self.name}' compensation for '{saga_step.name}' failed: {e}")
                failures.append(saga_step.name)
        return failures
