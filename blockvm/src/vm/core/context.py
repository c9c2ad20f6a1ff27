"""
ExecutionContext - what a block handler sees while it runs.

The VM, the running sprite and thread are reached through the context; block
handlers never touch module-level state, so independent VMs can coexist.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, replace
from typing import Any, List, Optional, TYPE_CHECKING

from ..blocks import registry
from ..blocks.base import Block, BlockRef, ListRef, Literal, VariableRef
from ..state.value import Value, copy_value, to_boolean, to_number, to_string

if TYPE_CHECKING:
    from ..state.variables import VariableStore
    from .graph import BlockGraph
    from .machine import VM
    from .sprite import Sprite
    from .thread import Thread


logger = logging.getLogger(__name__)

# Runtime value errors raised inside reporters; resolved to a default value.
VALUE_ERRORS = (ArithmeticError, LookupError, TypeError, ValueError)

_MISSING = object()


@dataclass
class ExecutionContext:
    """Execution context for one block.

    Attributes:
        vm: The owning VM (bus, clock, input state, clone requests).
        sprite: Sprite instance running the thread.
        thread: Thread whose cursor is at this block.
        block: The block being executed or evaluated.
        reentered: True when control returned to this block after its branch.
        frame_state: State stored in the popped frame on re-entry.
    """

    vm: "VM"
    sprite: "Sprite"
    thread: "Thread"
    block: Block
    reentered: bool = False
    frame_state: Any = None

    @property
    def graph(self) -> "BlockGraph":
        return self.thread.graph

    @property
    def variables(self) -> "VariableStore":
        return self.sprite.variables

    @property
    def rng(self) -> random.Random:
        return self.vm.rng

    def now(self) -> float:
        """Current VM clock time in seconds."""
        return self.vm.clock()

    def for_block(self, block: Block) -> "ExecutionContext":
        """Create a context for a nested reporter block."""
        return replace(self, block=block, reentered=False, frame_state=None)

    # =========================================================================
    # Inputs, Fields and Branches
    # =========================================================================

    def input(self, name: str, default: Value = "") -> Value:
        """Resolve an input slot to a Value.

        Missing slots and failing reporters resolve to the default.
        """
        slot = self.block.inputs.get(name)
        if slot is None:
            return default
        if isinstance(slot, Literal):
            return copy_value(slot.value)
        if isinstance(slot, VariableRef):
            return self.variables.get(slot.var_id)
        if isinstance(slot, ListRef):
            cell = self.variables.lookup_list(slot.list_id)
            return to_string(list(cell.items))
        if isinstance(slot, BlockRef):
            return self.evaluate(slot.block_id, default)
        return default

    def input_number(self, name: str) -> float:
        return to_number(self.input(name, 0.0))

    def input_string(self, name: str) -> str:
        return to_string(self.input(name, ""))

    def input_bool(self, name: str) -> bool:
        return to_boolean(self.input(name, False))

    def field(self, name: str, default: str = "") -> str:
        return self.block.get_field(name, default)

    def branch(self, name: str = "SUBSTACK") -> Optional[str]:
        return self.block.branches.get(name)

    def evaluate(self, block_id: str, default: Value = "") -> Value:
        """Evaluate a nested reporter block.

        Runtime value errors are logged and replaced by the default; anything
        else propagates to the thread, which halts.
        """
        block = self.graph.get(block_id)
        try:
            return registry.evaluate(self.for_block(block))
        except VALUE_ERRORS as e:
            logger.debug(f"Reporter {block.kind.value} ({block_id}) failed, using default: {e}")
            return default

    # =========================================================================
    # Per-block scratch state (multi-tick blocks)
    # =========================================================================

    def get_state(self, default: Any = None) -> Any:
        return self.thread.block_state.get(self.block.id, default)

    def set_state(self, value: Any) -> None:
        self.thread.block_state[self.block.id] = value

    def clear_state(self) -> None:
        self.thread.block_state.pop(self.block.id, None)

    def has_state(self) -> bool:
        return self.thread.block_state.get(self.block.id, _MISSING) is not _MISSING

    # =========================================================================
    # Signalling
    # =========================================================================

    def publish(self, name: str, payload: Optional[Any] = None) -> List[Any]:
        """Publish a message on the VM's broadcast bus."""
        return self.vm.bus.publish(name, payload)


__all__ = ["ExecutionContext", "VALUE_ERRORS"]
