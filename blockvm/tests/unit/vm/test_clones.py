"""Unit tests for clone creation, deletion and the clone ceiling."""

from dataclasses import replace
from typing import List

import pytest

from blockvm.src.services.broadcast.message import GREEN_FLAG
from blockvm.src.services.config import EngineConfig
from blockvm.src.vm.blocks.base import Block, BlockKind, Literal
from blockvm.src.vm.blocks.control import MYSELF
from blockvm.src.vm.core.clones import CloneManager
from blockvm.src.vm.core.graph import BlockGraph
from blockvm.src.vm.core.machine import VM
from blockvm.src.vm.core.sprite import SpriteDefinition


# =============================================================================
# Helpers
# =============================================================================


def script(hat: Block, *stack: Block) -> List[Block]:
    """Link a hat and stack blocks into one script."""
    blocks = [hat] + list(stack)
    return [
        replace(item, next=blocks[index + 1].id) if index + 1 < len(blocks) else item
        for index, item in enumerate(blocks)
    ]


def on_flag(block_id: str = "flag") -> Block:
    return Block(block_id, BlockKind.EVENT_WHENFLAGCLICKED)


def on_clone(block_id: str = "clone_hat") -> Block:
    return Block(block_id, BlockKind.CONTROL_START_AS_CLONE)


def create_clone(block_id: str, target: str = MYSELF) -> Block:
    return Block(
        block_id, BlockKind.CONTROL_CREATE_CLONE_OF,
        inputs={"CLONE_OPTION": Literal(target)},
    )


def change(block_id: str, var: str, by: float = 1) -> Block:
    return Block(
        block_id, BlockKind.DATA_CHANGEVARIABLEBY,
        inputs={"VALUE": Literal(by)}, fields={"VARIABLE": var},
    )


def sprite(name: str, *scripts: List[Block], **kwargs) -> SpriteDefinition:
    blocks = [block for item in scripts for block in item]
    kwargs.setdefault("variables", {"x": ("x", 0.0)})
    return SpriteDefinition(name=name, graph=BlockGraph(blocks), **kwargs)


def stage(**variables) -> SpriteDefinition:
    return SpriteDefinition(
        name="Stage",
        graph=BlockGraph([]),
        is_stage=True,
        variables={name: (name, value) for name, value in variables.items()},
    )


@pytest.fixture
def make_vm():
    def factory(*definitions: SpriteDefinition, **config) -> VM:
        config.setdefault("random_seed", 1)
        return VM.from_definitions(definitions, config=EngineConfig(**config), clock=lambda: 0.0)

    return factory


# =============================================================================
# Creation
# =============================================================================


class TestCloneCreation:
    """Tests for create clone and start-as-clone."""

    def test_clone_created_after_thread_execution(self, make_vm) -> None:
        vm = make_vm(sprite("Sprite1", script(on_flag(), create_clone("c1"))))
        vm.start()

        result = vm.tick()

        assert result.clones_created == 1
        assert vm.clones.clone_count == 1
        (clone,) = vm.clones.clones
        assert clone.instance_id == "Sprite1#clone-1"
        assert clone.is_clone and clone.original is vm.sprite("Sprite1")

    def test_clone_copies_state(self, make_vm) -> None:
        setup = [
            Block(
                "set", BlockKind.DATA_SETVARIABLETO,
                inputs={"VALUE": Literal(5)}, fields={"VARIABLE": "x"},
            ),
            Block("go", BlockKind.MOTION_GOTOXY, inputs={"X": Literal(10), "Y": Literal(-10)}),
            create_clone("c1"),
        ]
        vm = make_vm(sprite("Sprite1", script(on_flag(), *setup)))
        vm.start()
        vm.tick()

        (clone,) = vm.clones.clones
        original = vm.sprite("Sprite1")
        assert clone.variables.get("x") == 5
        assert (clone.visual.x, clone.visual.y) == (10.0, -10.0)

        clone.variables.set("x", 99)
        clone.visual.x = 0.0
        assert original.variables.get("x") == 5
        assert original.visual.x == 10.0

    def test_clones_share_globals(self, make_vm) -> None:
        vm = make_vm(
            stage(count=0.0),
            sprite(
                "Sprite1",
                script(on_flag(), create_clone("c1")),
                script(on_clone(), change("inc", "count")),
            ),
        )
        vm.start()
        vm.tick()
        vm.tick()

        assert vm.read_variable("count") == 1.0

    def test_start_as_clone_runs_next_tick(self, make_vm) -> None:
        vm = make_vm(
            sprite(
                "Sprite1",
                script(on_flag(), create_clone("c1")),
                script(on_clone(), change("inc", "x")),
            )
        )
        vm.start()
        vm.tick()

        (clone,) = vm.clones.clones
        assert len(clone.pending) == 1
        assert clone.variables.get("x") == 0.0

        vm.tick()
        assert clone.variables.get("x") == 1.0
        assert vm.sprite("Sprite1").variables.get("x") == 0.0

    def test_clone_placed_below_template(self, make_vm) -> None:
        vm = make_vm(
            sprite("A", script(on_flag(), create_clone("c1")), layer_order=1),
            sprite("B", layer_order=2),
        )
        vm.start()
        vm.tick()

        order = [snap.instance_id for snap in vm.snapshot().sprites]
        assert order == ["A#clone-1", "A", "B"]

    def test_clone_of_other_sprite(self, make_vm) -> None:
        vm = make_vm(
            sprite("A", script(on_flag(), create_clone("c1", target="B"))),
            sprite("B"),
        )
        vm.start()
        vm.tick()

        (clone,) = vm.clones.clones
        assert clone.name == "B"

    def test_clone_of_unknown_or_stage_is_ignored(self, make_vm) -> None:
        vm = make_vm(
            sprite(
                "A",
                script(on_flag(), create_clone("c1", target="Nope"), create_clone("c2", target="Stage")),
            )
        )
        vm.start()
        vm.tick()

        assert vm.clones.clone_count == 0

    def test_clones_do_not_listen_for_green_flag(self, make_vm) -> None:
        vm = make_vm(sprite("Sprite1", script(on_flag(), create_clone("c1"))))
        vm.start()
        vm.tick()

        (clone,) = vm.clones.clones
        assert GREEN_FLAG not in clone.topics
        assert GREEN_FLAG in vm.sprite("Sprite1").topics

    def test_instance_ids_are_not_reused(self, make_vm) -> None:
        vm = make_vm(
            sprite(
                "Sprite1",
                script(on_flag(), create_clone("c1")),
                script(on_clone(), Block("del", BlockKind.CONTROL_DELETE_THIS_CLONE)),
            )
        )
        vm.start()
        vm.run(max_ticks=5)
        vm.start()
        vm.tick()

        (clone,) = vm.clones.clones
        assert clone.instance_id == "Sprite1#clone-2"


# =============================================================================
# Ceiling
# =============================================================================


class TestCloneCeiling:
    """Tests for the global clone limit."""

    def test_requests_beyond_ceiling_are_ignored(self, make_vm) -> None:
        stack = [create_clone(f"c{i}") for i in range(5)]
        vm = make_vm(sprite("Sprite1", script(on_flag(), *stack)), max_clones=2)
        vm.start()

        vm.tick()

        assert vm.clones.clone_count == 2

    def test_ceiling_counts_live_clones(self, make_vm) -> None:
        loop = Block(
            "loop", BlockKind.CONTROL_REPEAT,
            inputs={"TIMES": Literal(10)}, branches={"SUBSTACK": "c1"},
        )
        blocks = script(on_flag(), loop) + [create_clone("c1")]
        vm = make_vm(sprite("Sprite1", blocks), max_clones=3)
        vm.start()

        vm.run(max_ticks=20)

        assert vm.clones.clone_count == 3

    def test_zero_ceiling(self, make_vm) -> None:
        vm = make_vm(sprite("Sprite1", script(on_flag(), create_clone("c1"))), max_clones=0)
        vm.start()
        vm.tick()
        assert vm.clones.clone_count == 0


# =============================================================================
# Deletion
# =============================================================================


class TestCloneDeletion:
    """Tests for delete this clone and the stop-all purge."""

    def test_delete_this_clone(self, make_vm) -> None:
        vm = make_vm(
            sprite(
                "Sprite1",
                script(on_flag(), create_clone("c1")),
                script(
                    on_clone(),
                    Block("del", BlockKind.CONTROL_DELETE_THIS_CLONE),
                    change("after", "x"),
                ),
            )
        )
        vm.start()
        vm.tick()
        (clone,) = vm.clones.clones
        (thread,) = clone.pending

        result = vm.tick()

        assert result.clones_deleted == 1
        assert vm.clones.clone_count == 0
        assert thread.is_finished
        assert thread.executed_blocks() == ["del"]
        assert clone.topics == []

    def test_delete_this_clone_on_original_continues(self, make_vm) -> None:
        vm = make_vm(
            sprite(
                "Sprite1",
                script(on_flag(), Block("del", BlockKind.CONTROL_DELETE_THIS_CLONE), change("after", "x")),
            )
        )
        vm.start()
        vm.tick()

        assert vm.sprite("Sprite1").variables.get("x") == 1.0
        assert vm.sprite("Sprite1") in vm.instances()

    def test_stop_removes_all_clones(self, make_vm) -> None:
        stack = [create_clone(f"c{i}") for i in range(3)]
        vm = make_vm(sprite("Sprite1", script(on_flag(), *stack)))
        vm.start()
        vm.tick()
        assert vm.clones.clone_count == 3

        vm.stop()

        assert vm.clones.clone_count == 0
        assert [s.instance_id for s in vm.instances()] == ["Stage", "Sprite1"]

    def test_stop_all_block_purges_after_thread_execution(self, make_vm) -> None:
        stop = Block("stop", BlockKind.CONTROL_STOP, fields={"STOP_OPTION": "all"})
        vm = make_vm(
            sprite(
                "Sprite1",
                script(on_flag(), create_clone("c1"), create_clone("c2")),
                script(Block("key", BlockKind.EVENT_WHENKEYPRESSED, fields={"KEY_OPTION": "s"}), stop),
            )
        )
        vm.start()
        vm.tick()
        assert vm.clones.clone_count == 2

        vm.press_key("s")
        result = vm.tick()

        assert result.clones_deleted == 2
        assert vm.clones.clone_count == 0
        assert vm.is_idle


class TestCloneManager:
    """Direct CloneManager request bookkeeping."""

    def test_delete_of_non_clone_is_rejected(self) -> None:
        manager = CloneManager(max_clones=5)
        assert manager.request_delete("Sprite1") is False
        assert manager.pending_deletions == 0

    def test_delete_all_drops_queued_creations(self) -> None:
        manager = CloneManager(max_clones=5)
        manager.request_clone("Sprite1")
        manager.request_clone("Sprite1")

        manager.request_delete_all()

        assert manager.pending_creations == 0

    def test_ceiling_includes_queued_creations(self) -> None:
        manager = CloneManager(max_clones=1)
        assert manager.request_clone("Sprite1") is True
        assert manager.request_clone("Sprite1") is False

    def test_debug_info(self) -> None:
        manager = CloneManager(max_clones=2)
        manager.request_clone("A")
        assert manager.debug_info()["pending_creations"] == ["A"]
