"""
VM Core

- graph.py: BlockGraph, validated at construction
- thread.py: Thread, one script's cursor and loop frames
- sprite.py: SpriteDefinition and live Sprite instances
- clones.py: CloneManager with a clone ceiling
- scheduler.py: TickScheduler and TickResult
- machine.py: VM, the host-facing coordinator
"""

from .clones import CloneManager
from .context import ExecutionContext
from .graph import BlockGraph
from .machine import STAGE_NAME, VM, InputState
from .scheduler import TickResult, TickScheduler
from .sprite import SpriteDefinition, Sprite, VisualState
from .thread import HistoryEntry, LoopFrame, Thread

__all__ = [
    "BlockGraph",
    "CloneManager",
    "ExecutionContext",
    "HistoryEntry",
    "InputState",
    "LoopFrame",
    "STAGE_NAME",
    "Sprite",
    "SpriteDefinition",
    "Thread",
    "TickResult",
    "TickScheduler",
    "VM",
    "VisualState",
]
