"""
VM - top-level coordinator of sprites, the broadcast bus and the tick loop.

The VM owns every piece of shared runtime state (globals, bus, clones,
clock, random number generator, input state) and hands it to blocks through
ExecutionContext. Nothing is global to the process, so independent VMs can
run side by side.
"""

import logging
import random
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Set

from ...models.snapshot import (
    BubbleSnapshot,
    MonitorReading,
    PenLine,
    PenSnapshot,
    RenderSnapshot,
    SpriteSnapshot,
)
from ...services.broadcast.bus import BroadcastBus
from ...services.broadcast.message import (
    CLONE,
    DELETE_CLONE,
    GREEN_FLAG,
    STOP_ALL,
    BroadcastMessage,
    click_topic,
    is_reserved,
    key_topic,
    normalize_key,
    user_topic,
)
from ...services.config import EngineConfig, get_config
from ..blocks.control import MYSELF
from ..state.value import Value
from ..state.variables import VariableStore
from .clones import CloneManager
from .graph import BlockGraph
from .scheduler import TickResult, TickScheduler
from .sprite import Sprite, SpriteDefinition
from .thread import Thread


logger = logging.getLogger(__name__)


Clock = Callable[[], float]
Renderer = Callable[[RenderSnapshot], None]

STAGE_NAME = "Stage"


@dataclass
class InputState:
    """Keyboard and mouse state injected by the host."""

    keys_down: Set[str] = field(default_factory=set)
    mouse_x: float = 0.0
    mouse_y: float = 0.0
    mouse_down: bool = False

    def is_key_down(self, key: str) -> bool:
        if key.strip().lower() == "any":
            return bool(self.keys_down)
        return normalize_key(key) in self.keys_down


class VM:
    """
    Block-language virtual machine.

    Host API:
        start(): Press the green flag (stops everything first).
        stop(): Stop all threads and remove all clones.
        tick(): Run one tick and hand the snapshot to the renderer.
        run(max_ticks): Tick until idle or the limit.
        shutdown(): Stop, detach every sprite, disable the bus.

    Monitor API:
        read_variable(), read_list(), monitored_values()

    Input bridge:
        press_key(), release_key(), move_mouse(), set_mouse_down(), click()

    Example:
        >>> vm = VM(config=EngineConfig(random_seed=1))
        >>> vm.add_sprite(definition)
        >>> vm.start()
        >>> vm.run(max_ticks=100)
        >>> vm.read_variable("x", sprite="Sprite1")
        3.0
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        clock: Optional[Clock] = None,
        renderer: Optional[Renderer] = None,
    ) -> None:
        """
        Create an empty VM with a blank stage.

        Args:
            config: Engine configuration (defaults to get_config()).
            clock: Monotonic time source in seconds (defaults to time.monotonic).
            renderer: Callback receiving a RenderSnapshot after every tick.
        """
        self.config = config or get_config()
        self.clock: Clock = clock or time.monotonic
        self.renderer = renderer

        self.bus = BroadcastBus()
        self.globals = VariableStore(scope_name=STAGE_NAME)
        self.clones = CloneManager(max_clones=self.config.max_clones)
        self.scheduler = TickScheduler(max_steps_per_quantum=self.config.max_steps_per_quantum)
        self.rng = random.Random(self.config.random_seed)
        self.input = InputState()

        self.tick_count = 0
        self.last_snapshot: Optional[RenderSnapshot] = None

        self._stage: Optional[Sprite] = None
        self._originals: Dict[str, Sprite] = {}
        self._layers: List[Sprite] = []
        self._serial = 0
        self._timer_start = self.clock()
        self._pen_lines: List[PenLine] = []
        self._pen_cleared = False
        self._shutdown = False

        self.bus.subscribe(STOP_ALL, self._on_stop_all)
        self.bus.subscribe(CLONE, self._on_clone)
        self.bus.subscribe(DELETE_CLONE, self._on_delete_clone)

        self.set_stage(SpriteDefinition(name=STAGE_NAME, graph=BlockGraph([]), is_stage=True))

    # =========================================================================
    # Loading
    # =========================================================================

    @classmethod
    def from_definitions(
        cls,
        definitions: Iterable[SpriteDefinition],
        config: Optional[EngineConfig] = None,
        clock: Optional[Clock] = None,
        renderer: Optional[Renderer] = None,
    ) -> "VM":
        """Create a VM and add every definition (the stage first)."""
        vm = cls(config=config, clock=clock, renderer=renderer)
        ordered = sorted(definitions, key=lambda d: not d.is_stage)
        for definition in ordered:
            vm.add_sprite(definition)
        return vm

    def set_stage(self, definition: SpriteDefinition) -> Sprite:
        """Install the stage; its variables become the global store."""
        if self._stage is not None:
            self._stage.stop_all_threads()
            self._stage.detach()

        for var_id, (name, value) in definition.variables.items():
            self.globals.declare_variable(var_id, name, value, var_id in definition.monitored)
        for list_id, (name, items) in definition.lists.items():
            self.globals.declare_list(list_id, name, list(items), list_id in definition.monitored)

        stage = Sprite.from_definition(self, definition, self.globals)
        stage.attach()
        self._stage = stage
        return stage

    def add_sprite(self, definition: SpriteDefinition) -> Sprite:
        """
        Add an original sprite (or the stage) from a loader definition.

        Raises:
            ValueError: If a sprite with the same name already exists.
        """
        if definition.is_stage:
            return self.set_stage(definition)
        if definition.name in self._originals:
            raise ValueError(f"Sprite '{definition.name}' already exists")

        store = definition.build_store(parent=self.globals, scope_name=definition.name)
        sprite = Sprite.from_definition(self, definition, store)
        self._originals[definition.name] = sprite

        position = len(self._layers)
        for index, existing in enumerate(self._layers):
            if existing.definition.layer_order > definition.layer_order:
                position = index
                break
        self._layers.insert(position, sprite)
        sprite.attach()
        logger.debug(f"Added sprite {definition.name} ({len(definition.graph)} blocks)")
        return sprite

    # =========================================================================
    # Instances and layers
    # =========================================================================

    @property
    def stage(self) -> Sprite:
        assert self._stage is not None
        return self._stage

    def instances(self) -> List[Sprite]:
        """Stage first, then sprite instances back to front."""
        return [self.stage] + list(self._layers)

    def sprite(self, name: str) -> Optional[Sprite]:
        """The original (non-clone) sprite with a name."""
        if name == STAGE_NAME:
            return self.stage
        return self._originals.get(name)

    def find_instance(self, instance_id: str) -> Optional[Sprite]:
        if instance_id == self.stage.instance_id:
            return self.stage
        original = self._originals.get(instance_id)
        if original is not None:
            return original
        return self.clones.get(instance_id)

    def layer_of(self, sprite: Sprite) -> int:
        return self._layers.index(sprite)

    def add_instance(self, sprite: Sprite, below: Optional[Sprite] = None) -> None:
        """Insert a clone into draw order (directly below its template) and subscribe it."""
        if below is not None and below in self._layers:
            self._layers.insert(self._layers.index(below), sprite)
        else:
            self._layers.append(sprite)
        sprite.attach()

    def remove_instance(self, sprite: Sprite) -> None:
        if sprite in self._layers:
            self._layers.remove(sprite)
        sprite.detach()

    def move_to_front(self, sprite: Sprite) -> None:
        if sprite in self._layers:
            self._layers.remove(sprite)
            self._layers.append(sprite)

    def move_to_back(self, sprite: Sprite) -> None:
        if sprite in self._layers:
            self._layers.remove(sprite)
            self._layers.insert(0, sprite)

    def move_layers(self, sprite: Sprite, delta: int) -> None:
        """Move a sprite delta layers toward the front (negative: toward the back)."""
        if sprite not in self._layers:
            return
        index = self._layers.index(sprite)
        target = min(max(index + delta, 0), len(self._layers) - 1)
        self._layers.pop(index)
        self._layers.insert(target, sprite)

    # =========================================================================
    # Threads
    # =========================================================================

    def next_serial(self) -> int:
        self._serial += 1
        return self._serial

    def activate_pending(self) -> int:
        return sum(sprite.activate_pending() for sprite in self.instances())

    def prune_finished(self) -> int:
        return sum(sprite.prune_finished() for sprite in self.instances())

    def threads(self) -> List[Thread]:
        """Every active thread in creation order."""
        return sorted(
            (thread for sprite in self.instances() for thread in sprite.threads),
            key=lambda thread: thread.serial,
        )

    @property
    def is_idle(self) -> bool:
        """True when no thread is live or queued and no clone is pending."""
        if self.clones.pending_creations or self.clones.pending_deletions:
            return False
        return not any(sprite.has_live_threads for sprite in self.instances())

    # =========================================================================
    # Host API
    # =========================================================================

    def start(self) -> List[Thread]:
        """Press the green flag: stop everything, then trigger flag hats.

        Returns:
            Threads queued to run from the next tick.
        """
        self._ensure_running()
        self.stop()
        self.reset_timer()
        logger.info("Green flag")
        return self._flatten(self.bus.publish(GREEN_FLAG))

    def stop(self) -> None:
        """Stop all threads and remove all clones."""
        self._ensure_running()
        self.bus.publish(STOP_ALL)
        if not self.scheduler.in_tick:
            self.clones.apply(self)
            self.prune_finished()

    def tick(self) -> TickResult:
        """Run one tick and hand the resulting snapshot to the renderer."""
        self._ensure_running()
        self.tick_count += 1
        result = self.scheduler.run_tick(self)

        snapshot = self.snapshot()
        self.last_snapshot = snapshot
        self._pen_lines = []
        self._pen_cleared = False
        if self.renderer is not None:
            try:
                self.renderer(snapshot)
            except Exception as e:
                logger.error(f"Renderer failed on tick {self.tick_count}: {e}", exc_info=True)
        return result

    def run(
        self,
        max_ticks: Optional[int] = None,
        until_idle: bool = True,
        realtime: bool = False,
    ) -> int:
        """
        Tick repeatedly.

        Args:
            max_ticks: Upper bound on ticks (None for unbounded).
            until_idle: Stop once no thread is live.
            realtime: Pace ticks at config.tick_rate_hz.

        Returns:
            Number of ticks run.
        """
        ticks = 0
        while max_ticks is None or ticks < max_ticks:
            started = time.perf_counter()
            self.tick()
            ticks += 1
            if until_idle and self.is_idle:
                break
            if realtime:
                remaining = self.config.tick_interval - (time.perf_counter() - started)
                if remaining > 0:
                    time.sleep(remaining)
        return ticks

    def shutdown(self) -> None:
        """Stop everything, remove clones, detach sprites and disable the bus."""
        if self._shutdown:
            return
        self.stop()
        for sprite in self.instances():
            sprite.detach()
        self.bus.disable()
        self._shutdown = True
        logger.info(f"VM shut down after {self.tick_count} ticks")

    @property
    def is_shut_down(self) -> bool:
        return self._shutdown

    def _ensure_running(self) -> None:
        if self._shutdown:
            raise RuntimeError("VM has been shut down")

    # =========================================================================
    # Broadcasts
    # =========================================================================

    def broadcast(self, name: str, payload: Optional[Any] = None) -> List[Thread]:
        """Publish a user broadcast.

        Returns:
            Threads queued by receiving hats (empty when nobody listens).
        """
        topic = user_topic(name)
        if is_reserved(topic):
            logger.warning(f"Refusing to broadcast reserved name '{name}'")
            return []
        return self._flatten(self.bus.publish(topic, payload))

    @staticmethod
    def _flatten(results: List[Any]) -> List[Thread]:
        threads: List[Thread] = []
        for result in results:
            if isinstance(result, list):
                threads.extend(t for t in result if isinstance(t, Thread))
        return threads

    def _on_stop_all(self, message: BroadcastMessage) -> None:
        logger.info("Stop all")
        for sprite in self.instances():
            sprite.stop_all_threads()
        self.scheduler.defer(self.clones.request_delete_all)

    def _on_clone(self, message: BroadcastMessage) -> None:
        payload = message.payload or {}
        requester = payload.get("requester", "")
        target = payload.get("target", MYSELF)

        if target == MYSELF:
            template = self.find_instance(requester)
        else:
            template = self._originals.get(target)
        if template is None or template.is_stage:
            logger.debug(f"Ignoring clone request for '{target}' from {requester}")
            return

        template_id = template.instance_id
        self.scheduler.defer(lambda: self.clones.request_clone(template_id))

    def _on_delete_clone(self, message: BroadcastMessage) -> None:
        instance_id = message.payload
        self.scheduler.defer(lambda: self.clones.request_delete(instance_id))

    # =========================================================================
    # Input bridge
    # =========================================================================

    def press_key(self, key: str) -> List[Thread]:
        key = normalize_key(key)
        self.input.keys_down.add(key)
        return self._flatten(self.bus.publish(key_topic(key)))

    def release_key(self, key: str) -> None:
        self.input.keys_down.discard(normalize_key(key))

    def move_mouse(self, x: float, y: float) -> None:
        self.input.mouse_x = x
        self.input.mouse_y = y

    def set_mouse_down(self, down: bool) -> None:
        self.input.mouse_down = down

    def click(self, instance_id: Optional[str] = None) -> List[Thread]:
        """Click a sprite instance (the stage when no id is given)."""
        target = instance_id or self.stage.instance_id
        return self._flatten(self.bus.publish(click_topic(target)))

    # =========================================================================
    # Timer and pen
    # =========================================================================

    def timer_value(self) -> float:
        return self.clock() - self._timer_start

    def reset_timer(self) -> None:
        self._timer_start = self.clock()

    def draw_line(self, sprite: Sprite, x0: float, y0: float, x1: float, y1: float) -> None:
        pen = sprite.visual.pen
        self._pen_lines.append(
            PenLine(
                instance_id=sprite.instance_id,
                x0=x0, y0=y0, x1=x1, y1=y1,
                color=pen.color,
                size=pen.size,
            )
        )

    def clear_pen(self) -> None:
        self._pen_lines = []
        self._pen_cleared = True

    # =========================================================================
    # Monitor API
    # =========================================================================

    def _store_for(self, sprite: Optional[str]) -> VariableStore:
        if sprite is None:
            return self.globals
        instance = self.find_instance(sprite)
        if instance is None:
            raise KeyError(f"No sprite instance '{sprite}'")
        return instance.variables

    def read_variable(self, name: str, sprite: Optional[str] = None) -> Value:
        """Current value of a variable (by id or name); sprite scope falls back to globals."""
        return self._store_for(sprite).get(name)

    def read_list(self, name: str, sprite: Optional[str] = None) -> List[Value]:
        cell = self._store_for(sprite).lookup_list(name, create=False)
        return list(cell.items) if cell is not None else []

    def monitored_values(self) -> List[MonitorReading]:
        """Every monitored variable and list, globals first."""
        readings: List[MonitorReading] = []
        for sprite in self.instances():
            for name, value in sprite.variables.monitored_values().items():
                readings.append(
                    MonitorReading(owner=sprite.instance_id, name=name, value=value)
                )
        return readings

    # =========================================================================
    # Snapshot
    # =========================================================================

    def _sprite_snapshot(self, sprite: Sprite, layer: int) -> SpriteSnapshot:
        visual = sprite.visual
        bubble = visual.bubble
        return SpriteSnapshot(
            instance_id=sprite.instance_id,
            name=sprite.name,
            is_clone=sprite.is_clone,
            is_stage=sprite.is_stage,
            x=visual.x,
            y=visual.y,
            direction=visual.direction,
            size=visual.size,
            visible=visual.visible,
            costume_index=visual.costume_index,
            costume_name=sprite.costume_name,
            effects=dict(visual.effects),
            bubble=BubbleSnapshot(kind=bubble.kind, text=bubble.text) if bubble else None,
            pen=PenSnapshot(down=visual.pen.down, color=visual.pen.color, size=visual.pen.size),
            layer=layer,
            variables=sprite.variables.variables(),
            lists=sprite.variables.lists(),
            thread_count=sum(1 for t in sprite.threads if not t.is_finished) + len(sprite.pending),
        )

    def snapshot(self) -> RenderSnapshot:
        """Read-only view of the current state, taken between ticks."""
        return RenderSnapshot(
            tick=self.tick_count,
            timer=self.timer_value(),
            stage=self._sprite_snapshot(self.stage, -1),
            sprites=[
                self._sprite_snapshot(sprite, layer)
                for layer, sprite in enumerate(self._layers)
            ],
            pen_lines=list(self._pen_lines),
            pen_cleared=self._pen_cleared,
        )

    def debug_info(self) -> Dict[str, Any]:
        return {
            "tick_count": self.tick_count,
            "stage": self.stage.debug_info(),
            "sprites": [sprite.debug_info() for sprite in self._layers],
            "clones": self.clones.debug_info(),
            "bus_handlers": self.bus.handler_count(),
        }


__all__ = ["VM", "InputState", "Clock", "Renderer", "STAGE_NAME"]
