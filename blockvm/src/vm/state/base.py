"""
Core enums and error types for the block VM.

Error codes by category:
- CONSTRUCTION (E1xxx): Graph and project loading faults, fatal before any thread runs
- VALUE (E2xxx): Coercion and lookup problems, always resolved to default values
- RESOURCE (E3xxx): Limits such as the clone ceiling, silently ignored
- SCHEDULING (E4xxx): Invariant violations inside one thread, halt that thread only
"""

from enum import Enum
from typing import Any, Dict, Optional


class ThreadStatus(str, Enum):
    """
    Lifecycle of a thread.

    - IDLE: Created but not yet stepped
    - RUNNING: Inside a scheduling quantum
    - SUSPENDED: Yielded, resumes at the same block next tick
    - FINISHED: Terminal; the thread is dropped by its sprite
    """

    IDLE = "idle"
    RUNNING = "running"
    SUSPENDED = "suspended"
    FINISHED = "finished"

    def is_terminal(self) -> bool:
        """Check if the thread can never run again."""
        return self is ThreadStatus.FINISHED

    def is_runnable(self) -> bool:
        """Check if the thread should be stepped this tick."""
        return self in (ThreadStatus.IDLE, ThreadStatus.SUSPENDED)


class ErrorCategory(str, Enum):
    """Error categories with code ranges."""

    CONSTRUCTION = "construction"
    VALUE = "value"
    RESOURCE = "resource"
    SCHEDULING = "scheduling"


# =============================================================================
# Exceptions
# =============================================================================


class VMError(Exception):
    """Base class for errors raised by the VM.

    Attributes:
        error_code: Code like "E1001".
        category: ErrorCategory of the failure.
        context: Extra key/value details for diagnostics.
    """

    category: ErrorCategory = ErrorCategory.SCHEDULING

    def __init__(
        self,
        error_code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.error_code = error_code
        self.context = context or {}
        super().__init__(f"[{error_code}] {message}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            "code": self.error_code,
            "category": self.category.value,
            "message": str(self),
            "context": self.context,
        }


class GraphConstructionError(VMError):
    """Structural fault in a block graph.

    Error codes:
    - E1001: Link references a block id missing from the graph
    - E1002: Stored links form a cycle
    - E1003: Block kind is not part of the supported set
    - E1004: Link points at the wrong kind of block
    """

    category = ErrorCategory.CONSTRUCTION

    def __init__(
        self, error_code: str, message: str, block_id: Optional[str] = None
    ) -> None:
        self.block_id = block_id
        super().__init__(error_code, message, {"block_id": block_id})


def make_dangling_reference_error(
    block_id: str, slot: str, target: str
) -> GraphConstructionError:
    return GraphConstructionError(
        "E1001",
        f"Block '{block_id}' {slot} references missing block '{target}'",
        block_id,
    )


def make_cycle_error(block_id: str) -> GraphConstructionError:
    return GraphConstructionError(
        "E1002", f"Cycle detected in stored links at block '{block_id}'", block_id
    )


def make_unknown_kind_error(block_id: str, kind: Any) -> GraphConstructionError:
    return GraphConstructionError(
        "E1003", f"Block '{block_id}' has unknown kind '{kind}'", block_id
    )


def make_link_kind_error(block_id: str, detail: str) -> GraphConstructionError:
    return GraphConstructionError("E1004", f"Block '{block_id}' {detail}", block_id)


class ProjectLoadError(VMError):
    """Project file could not be turned into sprite definitions.

    Error codes:
    - E1101: Malformed or unreadable project file
    - E1102: Opcode not supported by this runtime
    """

    category = ErrorCategory.CONSTRUCTION

    def __init__(self, error_code: str, message: str, source: str = "") -> None:
        self.source = source
        super().__init__(error_code, message, {"source": source})


class SchedulingError(VMError):
    """A thread's cursor or frame stack violated an engine invariant.

    Error code: E4001. Caught by the thread, which finishes; never escapes a tick.
    """

    category = ErrorCategory.SCHEDULING

    def __init__(self, thread_id: str, message: str) -> None:
        self.thread_id = thread_id
        super().__init__("E4001", message, {"thread_id": thread_id})


__all__ = [
    "ThreadStatus",
    "ErrorCategory",
    "VMError",
    "GraphConstructionError",
    "ProjectLoadError",
    "SchedulingError",
    "make_dangling_reference_error",
    "make_cycle_error",
    "make_unknown_kind_error",
    "make_link_kind_error",
]
