"""
TickScheduler - runs one VM tick with deferred structural changes.

One tick:
1. Activate threads queued since the previous tick
2. Enter tick scope; step every runnable thread once, in creation order
3. Exit tick scope; flush deferred actions (stop-all, clone requests) in FIFO order
4. Apply clone creations/deletions

The VM hands the snapshot to the renderer once run_tick returns.
"""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Generator, List, TYPE_CHECKING

if TYPE_CHECKING:
    from .machine import VM


logger = logging.getLogger(__name__)


DeferredAction = Callable[[], None]


@dataclass
class TickResult:
    """
    Result of a tick execution.

    Attributes:
        tick: Tick number (1-based).
        duration_ms: Wall-clock duration of the tick in milliseconds.
        threads_activated: Queued threads that became runnable this tick.
        threads_stepped: Threads given a quantum.
        threads_finished: Threads that finished during the tick.
        deferred_actions: Deferred actions flushed after thread execution.
        clones_created: Clones created between this tick and the next.
        clones_deleted: Clones removed between this tick and the next.
    """

    tick: int
    duration_ms: float
    threads_activated: int = 0
    threads_stepped: int = 0
    threads_finished: int = 0
    deferred_actions: int = 0
    clones_created: int = 0
    clones_deleted: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "tick": self.tick,
            "duration_ms": self.duration_ms,
            "threads_activated": self.threads_activated,
            "threads_stepped": self.threads_stepped,
            "threads_finished": self.threads_finished,
            "deferred_actions": self.deferred_actions,
            "clones_created": self.clones_created,
            "clones_deleted": self.clones_deleted,
        }


@dataclass
class TickScheduler:
    """
    Steps threads and buffers structural changes during a tick.

    Actions deferred while a tick is in progress run after every thread has
    had its quantum, so the sprite set is never mutated while iterated.
    Outside a tick, deferred actions run immediately.

    Attributes:
        max_steps_per_quantum: Block executions per thread per tick.

    Example:
        >>> scheduler = TickScheduler(max_steps_per_quantum=10000)
        >>> result = scheduler.run_tick(vm)
        >>> print(result.threads_stepped)
    """

    max_steps_per_quantum: int = 10000

    # Internal state
    _deferred: List[DeferredAction] = field(default_factory=list, repr=False)
    _tick_in_progress: bool = field(default=False, repr=False)

    @property
    def in_tick(self) -> bool:
        return self._tick_in_progress

    def run_tick(self, vm: "VM") -> TickResult:
        """
        Execute one tick across every sprite instance.

        Args:
            vm: The VM whose threads are stepped.

        Returns:
            TickResult with counts and duration.
        """
        tick_start = time.perf_counter()
        result = TickResult(tick=vm.tick_count, duration_ms=0.0)

        result.threads_activated = vm.activate_pending()

        with self.tick_scope() as flushed:
            threads = sorted(
                (thread for sprite in vm.instances() for thread in sprite.threads),
                key=lambda thread: thread.serial,
            )
            for thread in threads:
                # Threads cancelled earlier in this tick are skipped
                if not thread.status.is_runnable():
                    continue
                thread.step(vm, self.max_steps_per_quantum)
                result.threads_stepped += 1
                if thread.is_finished:
                    result.threads_finished += 1
        result.deferred_actions = flushed[0]

        created, deleted = vm.clones.apply(vm)
        result.clones_created = len(created)
        result.clones_deleted = len(deleted)
        vm.prune_finished()

        result.duration_ms = (time.perf_counter() - tick_start) * 1000
        return result

    @contextmanager
    def tick_scope(self) -> Generator[List[int], None, None]:
        """
        Context manager for thread execution. Buffers deferred actions.

        Yields a one-element list that holds the number of flushed actions
        once the scope exits.

        Example:
            >>> with scheduler.tick_scope():
            ...     thread.step(vm)
            ...     # deferred actions buffered here
            >>> # deferred actions run here
        """
        flushed = [0]
        self._tick_in_progress = True
        try:
            yield flushed
        finally:
            self._tick_in_progress = False
            flushed[0] = self._flush()

    def defer(self, action: DeferredAction) -> None:
        """Run an action after the current tick's thread execution (or now)."""
        if self._tick_in_progress:
            self._deferred.append(action)
        else:
            self._run(action)

    def _flush(self) -> int:
        """Run buffered actions in FIFO order."""
        actions, self._deferred = self._deferred, []
        for action in actions:
            self._run(action)
        if actions:
            logger.debug(f"Flushed {len(actions)} deferred actions")
        return len(actions)

    def _run(self, action: DeferredAction) -> None:
        try:
            action()
        except Exception as e:
            logger.error(f"Deferred action failed: {e}", exc_info=True)


__all__ = ["DeferredAction", "TickResult", "TickScheduler"]
