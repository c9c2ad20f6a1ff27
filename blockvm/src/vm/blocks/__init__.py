"""
Block Kinds and Handlers

Importing this package registers an executor or evaluator for every
BlockKind. Category modules:
- control: branches, loops, waits, stop and clones
- event: hats and broadcasts
- data: variables and lists
- operator: arithmetic, comparison, logic and strings
- looks, motion, sensing, pen: sprite-facing blocks
"""

from . import registry

# Category modules register their handlers on import
from . import control, data, event, looks, motion, operator, pen, sensing  # noqa: F401

from .base import (
    HAT_KINDS,
    REPORTER_KINDS,
    Block,
    BlockKind,
    BlockRef,
    Input,
    ListRef,
    Literal,
    Outcome,
    OutcomeKind,
    VariableRef,
    as_input,
)
from .registry import EVALUATORS, EXECUTORS, evaluate, execute, missing_handlers

__all__ = [
    # base.py
    "BlockKind",
    "HAT_KINDS",
    "REPORTER_KINDS",
    "Block",
    "BlockRef",
    "Input",
    "ListRef",
    "Literal",
    "VariableRef",
    "as_input",
    "Outcome",
    "OutcomeKind",
    # registry.py
    "registry",
    "EXECUTORS",
    "EVALUATORS",
    "execute",
    "evaluate",
    "missing_handlers",
]
