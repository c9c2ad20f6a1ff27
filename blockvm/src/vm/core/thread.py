"""
Thread - a control-flow cursor over one script's BlockGraph.

Resumption is explicit saved state (cursor, frame stack, per-block scratch
state) rather than a coroutine, so a thread can be single-stepped and its
state inspected between quanta.
"""

import logging
from collections import deque
from dataclasses import dataclass
from typing import Any, Deque, Dict, List, Optional, TYPE_CHECKING

from ..blocks import registry
from ..blocks.base import Outcome, OutcomeKind
from ..state.base import SchedulingError, ThreadStatus
from .context import ExecutionContext
from .graph import BlockGraph

if TYPE_CHECKING:
    from ...services.broadcast.message import BroadcastMessage
    from .machine import VM
    from .sprite import Sprite


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoopFrame:
    """
    One entry of a thread's frame stack.

    Attributes:
        block_id: Block that opened the branch; control returns here.
        state: State handed back to that block on return (e.g. remaining count).
        loop: True for loop bodies; returning to a loop block ends the quantum.
    """

    block_id: str
    state: Any = None
    loop: bool = False


@dataclass(frozen=True)
class HistoryEntry:
    """One executed block, kept for diagnostics."""

    tick: int
    block_id: str
    outcome: OutcomeKind

    def to_dict(self) -> Dict[str, Any]:
        return {"tick": self.tick, "block_id": self.block_id, "outcome": self.outcome.value}


class Thread:
    """
    Independently scheduled execution of one script.

    State machine: IDLE -> RUNNING -> {SUSPENDED, FINISHED};
    SUSPENDED -> RUNNING on the next quantum; FINISHED is terminal.

    A quantum executes blocks from the cursor until a block suspends,
    the thread terminates, a loop iteration completes, or the step budget
    runs out. The hat is the trigger: the first executed block is the
    hat's next block.

    Invariants:
    - frames is empty whenever the cursor is outside every branch
    - a SUSPEND outcome leaves cursor, frames and block_state untouched
    - failures halt only this thread
    """

    def __init__(
        self,
        thread_id: str,
        serial: int,
        graph: BlockGraph,
        hat_id: str,
        sprite: "Sprite",
        trigger: Optional["BroadcastMessage"] = None,
        history_size: int = 64,
    ) -> None:
        """
        Create a thread positioned after its hat.

        Args:
            thread_id: Unique identifier for logging and diagnostics.
            serial: Creation order; the scheduler steps threads by serial.
            graph: The script's graph (shared, immutable).
            hat_id: Hat block that started the thread.
            sprite: Sprite instance the thread runs for.
            trigger: Message that started the thread, if any.
            history_size: Executed-block entries to keep.
        """
        self.thread_id = thread_id
        self.serial = serial
        self.graph = graph
        self.hat_id = hat_id
        self.sprite = sprite
        self.trigger = trigger

        self.status = ThreadStatus.IDLE
        self.cursor: Optional[str] = graph.get(hat_id).next
        self.frames: List[LoopFrame] = []
        self.block_state: Dict[str, Any] = {}
        self.history: Deque[HistoryEntry] = deque(maxlen=history_size)
        self.steps = 0
        self.quanta = 0

        # Frame popped on return to its block; passed to that block once
        self._resume: Optional[LoopFrame] = None

    # =========================================================================
    # Execution
    # =========================================================================

    def step(self, vm: "VM", max_steps: int = 10000) -> ThreadStatus:
        """
        Run one scheduling quantum.

        Args:
            vm: Owning VM, reached by blocks through the execution context.
            max_steps: Block executions allowed before the thread must yield.

        Returns:
            Status after the quantum.
        """
        if self.status.is_terminal():
            return self.status

        self.status = ThreadStatus.RUNNING
        self.quanta += 1
        try:
            self._run_quantum(vm, max_steps)
        except Exception as e:
            logger.error(
                f"Thread {self.thread_id} halted at block {self.cursor}: {e}",
                exc_info=True,
            )
            self._finish()
        return self.status

    def _run_quantum(self, vm: "VM", max_steps: int) -> None:
        executed = 0
        while True:
            if self.cursor is None:
                if not self.frames:
                    self._finish()
                    return
                frame = self.frames.pop()
                self.cursor = frame.block_id
                self._resume = frame
                if frame.loop:
                    self.status = ThreadStatus.SUSPENDED
                    return

            if executed >= max_steps:
                logger.debug(f"Thread {self.thread_id} yielding after {executed} steps")
                self.status = ThreadStatus.SUSPENDED
                return

            block = self.graph.find(self.cursor)
            if block is None:
                raise SchedulingError(
                    self.thread_id, f"Cursor '{self.cursor}' is outside the thread's graph"
                )

            resume = self._resume
            ctx = ExecutionContext(
                vm=vm,
                sprite=self.sprite,
                thread=self,
                block=block,
                reentered=resume is not None,
                frame_state=resume.state if resume is not None else None,
            )
            outcome = registry.execute(ctx)
            executed += 1
            self.steps += 1
            self.history.append(HistoryEntry(vm.tick_count, block.id, outcome.kind))

            if self.status.is_terminal():
                # Cancelled from inside its own block (e.g. stop all)
                return
            if outcome.kind is OutcomeKind.SUSPEND:
                self.status = ThreadStatus.SUSPENDED
                return

            self._resume = None
            if not self._apply(block.id, block.next, outcome):
                return

    def _apply(self, block_id: str, next_id: Optional[str], outcome: Outcome) -> bool:
        """Move the cursor for a non-suspending outcome.

        Returns:
            False if the thread finished.
        """
        if outcome.kind is OutcomeKind.ADVANCE:
            self.cursor = next_id
        elif outcome.kind is OutcomeKind.BRANCH:
            self.frames.append(LoopFrame(block_id, outcome.state, outcome.loop))
            self.cursor = outcome.target
        elif outcome.kind is OutcomeKind.TERMINATE:
            self._finish()
            return False
        else:
            raise SchedulingError(self.thread_id, f"Unhandled outcome {outcome.kind}")
        return True

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def _finish(self) -> None:
        self.status = ThreadStatus.FINISHED
        self.cursor = None
        self.frames.clear()
        self.block_state.clear()
        self._resume = None

    def cancel(self) -> None:
        """Finish immediately without running any further blocks."""
        if not self.status.is_terminal():
            logger.debug(f"Cancelling thread {self.thread_id}")
        self._finish()

    @property
    def is_finished(self) -> bool:
        return self.status.is_terminal()

    def executed_blocks(self) -> List[str]:
        """BlockIDs in execution order, oldest first (bounded by history size)."""
        return [entry.block_id for entry in self.history]

    def debug_info(self) -> Dict[str, Any]:
        return {
            "thread_id": self.thread_id,
            "serial": self.serial,
            "sprite": self.sprite.instance_id,
            "hat_id": self.hat_id,
            "status": self.status.value,
            "cursor": self.cursor,
            "frames": [
                {"block_id": f.block_id, "state": f.state, "loop": f.loop}
                for f in self.frames
            ],
            "steps": self.steps,
            "quanta": self.quanta,
            "history": [entry.to_dict() for entry in self.history],
        }

    def __repr__(self) -> str:
        return f"Thread({self.thread_id!r}, status={self.status.value}, cursor={self.cursor!r})"


__all__ = ["LoopFrame", "HistoryEntry", "Thread"]
