"""
Sprite - owner of threads, local variables and a visual record.

A SpriteDefinition is what the loader produces: a validated graph plus the
initial state. A Sprite is one live instance of a definition; clones are
further instances of the same definition with copied state.
"""

import copy
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Set, Tuple, TYPE_CHECKING

from ..blocks.base import BlockKind
from ..blocks.event import CLONE_START, hat_topic
from ..state.value import Value, is_numeric, to_number, to_string
from ..state.variables import VariableStore
from .graph import BlockGraph
from .thread import Thread

if TYPE_CHECKING:
    from ...services.broadcast.message import BroadcastMessage
    from .machine import VM


logger = logging.getLogger(__name__)

EFFECT_NAMES = ("color", "fisheye", "whirl", "pixelate", "mosaic", "brightness", "ghost")


# =============================================================================
# Definition
# =============================================================================


@dataclass
class SpriteDefinition:
    """
    Loader output for one sprite or the stage.

    Attributes:
        name: Sprite name, unique within a project.
        graph: Validated BlockGraph of all the sprite's scripts.
        is_stage: True for the stage target.
        variables: Variable id -> (name, initial value).
        lists: List id -> (name, initial items).
        monitored: Ids of variables/lists shown by monitors.
        costumes: Costume names in order.
        current_costume: Index into costumes.
        x, y, direction, size, visible: Initial visual state.
        layer_order: Initial draw position (higher draws on top).
    """

    name: str
    graph: BlockGraph
    is_stage: bool = False
    variables: Dict[str, Tuple[str, Value]] = field(default_factory=dict)
    lists: Dict[str, Tuple[str, List[Value]]] = field(default_factory=dict)
    monitored: Set[str] = field(default_factory=set)
    costumes: List[str] = field(default_factory=list)
    current_costume: int = 0
    x: float = 0.0
    y: float = 0.0
    direction: float = 90.0
    size: float = 100.0
    visible: bool = True
    layer_order: int = 0

    _scripts: Optional[Dict[str, BlockGraph]] = field(default=None, repr=False, compare=False)

    @property
    def scripts(self) -> Dict[str, BlockGraph]:
        """Per-hat subgraphs, built once and shared by every instance."""
        if self._scripts is None:
            self._scripts = {hat_id: self.graph.subgraph(hat_id) for hat_id in self.graph.hats}
        return self._scripts

    def build_store(self, parent: Optional[VariableStore], scope_name: str) -> VariableStore:
        store = VariableStore(parent=parent, scope_name=scope_name)
        for var_id, (name, value) in self.variables.items():
            store.declare_variable(var_id, name, value, var_id in self.monitored)
        for list_id, (name, items) in self.lists.items():
            store.declare_list(list_id, name, list(items), list_id in self.monitored)
        return store


# =============================================================================
# Visual state
# =============================================================================


@dataclass(eq=False)
class SpeechBubble:
    """A say/think bubble; compared by identity so timed bubbles clear only themselves."""

    kind: str
    text: str


@dataclass
class PenState:
    down: bool = False
    color: str = "#0000ff"
    size: float = 1.0


@dataclass
class VisualState:
    """Position, orientation and looks consumed by the renderer."""

    x: float = 0.0
    y: float = 0.0
    direction: float = 90.0
    size: float = 100.0
    visible: bool = True
    costume_index: int = 0
    effects: Dict[str, float] = field(default_factory=dict)
    bubble: Optional[SpeechBubble] = None
    pen: PenState = field(default_factory=PenState)

    def copy(self) -> "VisualState":
        clone = copy.deepcopy(self)
        clone.bubble = None
        return clone


# =============================================================================
# Sprite
# =============================================================================


class Sprite:
    """
    One live sprite instance (original, clone or the stage).

    Owns the threads started from its hats. New threads wait in a pending
    list until the next tick activates them, so a thread never runs in the
    tick it was triggered.
    """

    def __init__(
        self,
        vm: "VM",
        definition: SpriteDefinition,
        instance_id: str,
        variables: VariableStore,
        visual: VisualState,
        template: Optional["Sprite"] = None,
    ) -> None:
        self.vm = vm
        self.definition = definition
        self.instance_id = instance_id
        self.variables = variables
        self.visual = visual
        self.template = template

        self.threads: List[Thread] = []
        self.pending: List[Thread] = []
        self._handlers: Dict[str, Callable[["BroadcastMessage"], Optional[List[Thread]]]] = {}
        self._topics: Dict[str, List[str]] = {}
        self._thread_counter = 0

    @classmethod
    def from_definition(
        cls,
        vm: "VM",
        definition: SpriteDefinition,
        variables: VariableStore,
    ) -> "Sprite":
        visual = VisualState(
            x=definition.x,
            y=definition.y,
            direction=definition.direction,
            size=definition.size,
            visible=definition.visible,
            costume_index=definition.current_costume,
        )
        return cls(vm, definition, definition.name, variables, visual)

    @property
    def name(self) -> str:
        return self.definition.name

    @property
    def is_clone(self) -> bool:
        return self.template is not None

    @property
    def is_stage(self) -> bool:
        return self.definition.is_stage

    @property
    def original(self) -> "Sprite":
        sprite = self
        while sprite.template is not None:
            sprite = sprite.template
        return sprite

    # =========================================================================
    # Subscriptions
    # =========================================================================

    def attach(self) -> None:
        """Subscribe to every topic the sprite's hats listen for."""
        for hat in self.definition.graph.hat_blocks():
            topic = hat_topic(hat, self.instance_id, self.is_stage)
            if topic is None:
                continue
            if self.is_clone and hat.kind is BlockKind.EVENT_WHENFLAGCLICKED:
                continue
            self._topics.setdefault(topic, []).append(hat.id)

        for topic in self._topics:
            handler = self._make_handler(topic)
            self._handlers[topic] = handler
            self.vm.bus.subscribe(topic, handler)

    def detach(self) -> None:
        """Unsubscribe from the bus (clone deletion, shutdown)."""
        for topic, handler in self._handlers.items():
            self.vm.bus.unsubscribe(topic, handler)
        self._handlers.clear()
        self._topics.clear()

    def _make_handler(self, topic: str) -> Callable[["BroadcastMessage"], Optional[List[Thread]]]:
        def handler(message: "BroadcastMessage") -> Optional[List[Thread]]:
            return self.trigger(topic, message) or None

        return handler

    @property
    def topics(self) -> List[str]:
        return list(self._topics)

    # =========================================================================
    # Threads
    # =========================================================================

    def trigger(self, topic: str, message: Optional["BroadcastMessage"] = None) -> List[Thread]:
        """Queue a new thread for every hat listening on a topic."""
        return [self.spawn(hat_id, message) for hat_id in self._topics.get(topic, [])]

    def start_clone_hats(self) -> List[Thread]:
        """Queue the start-as-clone scripts."""
        return [
            self.spawn(hat.id)
            for hat in self.definition.graph.hat_blocks()
            if hat.kind is BlockKind.CONTROL_START_AS_CLONE
        ]

    def spawn(self, hat_id: str, message: Optional["BroadcastMessage"] = None) -> Thread:
        """Create a thread for a hat; it becomes runnable next tick."""
        if self.vm.config.restart_on_retrigger:
            for existing in self.threads + self.pending:
                if existing.hat_id == hat_id and not existing.is_finished:
                    existing.cancel()

        self._thread_counter += 1
        thread = Thread(
            thread_id=f"{self.instance_id}/{hat_id}#{self._thread_counter}",
            serial=self.vm.next_serial(),
            graph=self.definition.scripts[hat_id],
            hat_id=hat_id,
            sprite=self,
            trigger=message,
            history_size=self.vm.config.history_size,
        )
        self.pending.append(thread)
        logger.debug(
            f"Queued thread {thread.thread_id} "
            f"({message.name if message else CLONE_START})"
        )
        return thread

    def activate_pending(self) -> int:
        """Move queued threads into the active set.

        Returns:
            Number of threads activated.
        """
        activated = [thread for thread in self.pending if not thread.is_finished]
        self.threads.extend(activated)
        self.pending.clear()
        return len(activated)

    def runnable_threads(self) -> List[Thread]:
        return [thread for thread in self.threads if thread.status.is_runnable()]

    def prune_finished(self) -> int:
        before = len(self.threads)
        self.threads = [thread for thread in self.threads if not thread.is_finished]
        return before - len(self.threads)

    def stop_all_threads(self) -> None:
        for thread in self.threads + self.pending:
            thread.cancel()
        self.threads.clear()
        self.pending.clear()

    def stop_other_threads(self, current: Thread) -> None:
        for thread in self.threads + self.pending:
            if thread is not current:
                thread.cancel()

    @property
    def has_live_threads(self) -> bool:
        return bool(self.pending) or any(not t.is_finished for t in self.threads)

    # =========================================================================
    # Clones
    # =========================================================================

    def make_clone(self, instance_id: str) -> "Sprite":
        """Duplicate local variables, visual state and hats into a new instance."""
        return Sprite(
            vm=self.vm,
            definition=self.definition,
            instance_id=instance_id,
            variables=self.variables.copy_for_clone(instance_id),
            visual=self.visual.copy(),
            template=self,
        )

    # =========================================================================
    # Looks helpers
    # =========================================================================

    @property
    def costumes(self) -> List[str]:
        return self.definition.costumes

    @property
    def costume_name(self) -> str:
        if not self.costumes:
            return ""
        return self.costumes[self.visual.costume_index]

    def _set_costume_index(self, index: float) -> None:
        if not self.costumes or not math.isfinite(index):
            return
        self.visual.costume_index = int(index) % len(self.costumes)

    def switch_costume(self, requested: Value) -> None:
        """Switch by name, by the words next/previous costume, or by 1-based number."""
        if not self.costumes:
            return
        if isinstance(requested, (int, float)) and not isinstance(requested, bool):
            self._set_costume_index(to_number(requested) - 1)
            return

        name = to_string(requested)
        if name in self.costumes:
            self.visual.costume_index = self.costumes.index(name)
        elif name == "next costume":
            self.next_costume()
        elif name == "previous costume":
            self._set_costume_index(self.visual.costume_index - 1)
        elif is_numeric(name):
            self._set_costume_index(to_number(name) - 1)

    def next_costume(self) -> None:
        self._set_costume_index(self.visual.costume_index + 1)

    def set_bubble(self, kind: str, text: Any) -> Optional[SpeechBubble]:
        """Show a say/think bubble; an empty message clears it."""
        message = to_string(text)
        if message == "":
            self.visual.bubble = None
            return None
        bubble = SpeechBubble(kind, message)
        self.visual.bubble = bubble
        return bubble

    def clear_bubble(self, bubble: Optional[SpeechBubble] = None) -> None:
        """Clear the bubble; with an argument, only if it is still showing."""
        if bubble is None or self.visual.bubble is bubble:
            self.visual.bubble = None

    def set_effect(self, name: str, value: float) -> None:
        name = name.lower()
        if name == "ghost":
            value = min(max(value, 0.0), 100.0)
        elif name == "brightness":
            value = min(max(value, -100.0), 100.0)
        self.visual.effects[name] = value

    def debug_info(self) -> Dict[str, Any]:
        return {
            "instance_id": self.instance_id,
            "name": self.name,
            "is_clone": self.is_clone,
            "is_stage": self.is_stage,
            "threads": [thread.debug_info() for thread in self.threads],
            "pending": len(self.pending),
            "topics": self.topics,
            "variables": self.variables.debug_info(),
        }

    def __repr__(self) -> str:
        return f"Sprite({self.instance_id!r}, threads={len(self.threads)})"


__all__ = [
    "EFFECT_NAMES",
    "SpriteDefinition",
    "SpeechBubble",
    "PenState",
    "VisualState",
    "Sprite",
]
