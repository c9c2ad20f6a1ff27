"""
Block dispatch tables.

Each stack or hat kind has exactly one executor returning an Outcome; each
reporter kind has exactly one evaluator returning a Value. Category modules
register their handlers with the @executes / @reports decorators when the
blocks package is imported.
"""

import logging
from typing import TYPE_CHECKING, Callable, Dict, List

from ..state.base import SchedulingError
from ..state.value import Value
from .base import BlockKind, Outcome

if TYPE_CHECKING:
    from ..core.context import ExecutionContext


logger = logging.getLogger(__name__)


Executor = Callable[["ExecutionContext"], Outcome]
Evaluator = Callable[["ExecutionContext"], Value]

EXECUTORS: Dict[BlockKind, Executor] = {}
EVALUATORS: Dict[BlockKind, Evaluator] = {}


def executes(*kinds: BlockKind) -> Callable[[Executor], Executor]:
    """Register a function as the executor of one or more stack/hat kinds."""

    def decorator(func: Executor) -> Executor:
        for kind in kinds:
            if kind.is_reporter():
                raise ValueError(f"{kind.value} is a reporter; use @reports")
            if kind in EXECUTORS:
                raise ValueError(f"Executor for {kind.value} already registered")
            EXECUTORS[kind] = func
        return func

    return decorator


def reports(*kinds: BlockKind) -> Callable[[Evaluator], Evaluator]:
    """Register a function as the evaluator of one or more reporter kinds."""

    def decorator(func: Evaluator) -> Evaluator:
        for kind in kinds:
            if not kind.is_reporter():
                raise ValueError(f"{kind.value} is not a reporter; use @executes")
            if kind in EVALUATORS:
                raise ValueError(f"Evaluator for {kind.value} already registered")
            EVALUATORS[kind] = func
        return func

    return decorator


def execute(ctx: "ExecutionContext") -> Outcome:
    """Run the executor for the context's block."""
    handler = EXECUTORS.get(ctx.block.kind)
    if handler is None:
        raise SchedulingError(
            ctx.thread.thread_id,
            f"Block '{ctx.block.id}' of kind {ctx.block.kind.value} cannot be executed",
        )
    return handler(ctx)


def evaluate(ctx: "ExecutionContext") -> Value:
    """Run the evaluator for the context's block."""
    handler = EVALUATORS.get(ctx.block.kind)
    if handler is None:
        raise SchedulingError(
            ctx.thread.thread_id,
            f"Block '{ctx.block.id}' of kind {ctx.block.kind.value} cannot be evaluated",
        )
    return handler(ctx)


def missing_handlers() -> List[BlockKind]:
    """Kinds with no registered handler (should always be empty)."""
    return [
        kind for kind in BlockKind
        if kind not in EXECUTORS and kind not in EVALUATORS
    ]


__all__ = [
    "Executor",
    "Evaluator",
    "EXECUTORS",
    "EVALUATORS",
    "executes",
    "reports",
    "execute",
    "evaluate",
    "missing_handlers",
]
