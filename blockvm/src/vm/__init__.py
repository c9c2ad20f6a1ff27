"""
Block VM

A cooperative, tick-driven interpreter for Scratch-style block programs.

Subpackages:
- vm.state: Enums, errors, the value model and variable stores
- vm.blocks: Block kinds and their executors/evaluators
- vm.core: Graph, threads, sprites, clones, scheduler and the VM
- vm.loader: Scratch 3 project loading
"""

from .core import (
    VM,
    BlockGraph,
    CloneManager,
    ExecutionContext,
    InputState,
    Sprite,
    SpriteDefinition,
    Thread,
    TickResult,
    TickScheduler,
)
from .blocks import Block, BlockKind, BlockRef, ListRef, Literal, Outcome, VariableRef
from .loader import load_definitions, load_vm
from .state import (
    GraphConstructionError,
    ProjectLoadError,
    SchedulingError,
    ThreadStatus,
    Value,
    VMError,
)

__all__ = [
    # core
    "VM",
    "BlockGraph",
    "CloneManager",
    "ExecutionContext",
    "InputState",
    "Sprite",
    "SpriteDefinition",
    "Thread",
    "TickResult",
    "TickScheduler",
    # blocks
    "Block",
    "BlockKind",
    "BlockRef",
    "ListRef",
    "Literal",
    "Outcome",
    "VariableRef",
    # loader
    "load_definitions",
    "load_vm",
    # state
    "GraphConstructionError",
    "ProjectLoadError",
    "SchedulingError",
    "ThreadStatus",
    "Value",
    "VMError",
]
