"""Unit tests for BlockGraph construction and validation."""

import pytest

from blockvm.src.vm.blocks.base import Block, BlockKind, BlockRef, Literal
from blockvm.src.vm.core.graph import BlockGraph
from blockvm.src.vm.state.base import ErrorCategory, GraphConstructionError


def flag(block_id: str = "hat", next: str = None) -> Block:
    return Block(block_id, BlockKind.EVENT_WHENFLAGCLICKED, next=next)


def say(block_id: str, text="hi", next: str = None) -> Block:
    return Block(block_id, BlockKind.LOOKS_SAY, next=next, inputs={"MESSAGE": Literal(text)})


# =============================================================================
# Valid graphs
# =============================================================================


class TestValidGraph:
    """Tests for graphs that construct."""

    def test_hats_default_to_hat_kind_blocks(self) -> None:
        graph = BlockGraph([flag(next="a"), say("a")])

        assert graph.hats == ("hat",)
        assert [block.id for block in graph.hat_blocks()] == ["hat"]

    def test_accepts_mapping(self) -> None:
        blocks = {"hat": flag(next="a"), "a": say("a")}
        graph = BlockGraph(blocks)

        assert len(graph) == 2
        assert "a" in graph
        assert graph.get("a").kind is BlockKind.LOOKS_SAY

    def test_find_returns_none_for_missing(self) -> None:
        graph = BlockGraph([flag()])

        assert graph.find("nope") is None
        assert graph.find(None) is None
        with pytest.raises(KeyError):
            graph.get("nope")

    def test_empty_graph(self) -> None:
        graph = BlockGraph([])
        assert len(graph) == 0
        assert graph.hats == ()

    def test_shared_reporter_is_not_a_cycle(self) -> None:
        """Two inputs pointing at one reporter form a diamond, not a cycle."""
        add = Block("add", BlockKind.OPERATOR_ADD, inputs={"NUM1": Literal(1), "NUM2": Literal(2)})
        a = Block("a", BlockKind.LOOKS_SAY, next="b", inputs={"MESSAGE": BlockRef("add")})
        b = Block("b", BlockKind.LOOKS_SAY, inputs={"MESSAGE": BlockRef("add")})

        graph = BlockGraph([flag(next="a"), a, b, add])

        assert len(graph) == 4


class TestSubgraph:
    """Tests for per-hat script extraction."""

    def test_subgraph_contains_only_reachable_blocks(self) -> None:
        inner = say("inner")
        loop = Block("loop", BlockKind.CONTROL_FOREVER, branches={"SUBSTACK": "inner"})
        other_hat = Block(
            "other", BlockKind.EVENT_WHENBROADCASTRECEIVED,
            next="x", fields={"BROADCAST_OPTION": "go"},
        )
        graph = BlockGraph([flag(next="loop"), loop, inner, other_hat, say("x")])

        script = graph.subgraph("hat")

        assert set(block.id for block in script) == {"hat", "loop", "inner"}
        assert script.hats == ("hat",)

    def test_subgraph_of_non_hat_raises(self) -> None:
        graph = BlockGraph([flag(next="a"), say("a")])
        with pytest.raises(KeyError):
            graph.subgraph("a")

    def test_reachable_includes_reporters(self) -> None:
        add = Block("add", BlockKind.OPERATOR_ADD)
        a = Block("a", BlockKind.LOOKS_SAY, inputs={"MESSAGE": BlockRef("add")})
        graph = BlockGraph([flag(next="a"), a, add])

        assert graph.reachable("hat") == {"hat", "a", "add"}


# =============================================================================
# Construction errors
# =============================================================================


class TestConstructionErrors:
    """Tests for structural faults surfacing at construction."""

    def test_dangling_next(self) -> None:
        with pytest.raises(GraphConstructionError) as exc_info:
            BlockGraph([flag(next="missing")])

        assert exc_info.value.error_code == "E1001"
        assert exc_info.value.block_id == "hat"
        assert exc_info.value.category is ErrorCategory.CONSTRUCTION

    def test_dangling_input(self) -> None:
        a = Block("a", BlockKind.LOOKS_SAY, inputs={"MESSAGE": BlockRef("ghost")})
        with pytest.raises(GraphConstructionError) as exc_info:
            BlockGraph([flag(next="a"), a])
        assert exc_info.value.error_code == "E1001"

    def test_dangling_branch(self) -> None:
        loop = Block("loop", BlockKind.CONTROL_FOREVER, branches={"SUBSTACK": "ghost"})
        with pytest.raises(GraphConstructionError) as exc_info:
            BlockGraph([flag(next="loop"), loop])
        assert exc_info.value.error_code == "E1001"

    def test_dangling_hat_id(self) -> None:
        with pytest.raises(GraphConstructionError) as exc_info:
            BlockGraph([flag()], hats=["hat", "ghost"])
        assert exc_info.value.error_code == "E1001"

    def test_cycle_in_next_links(self) -> None:
        a = say("a", next="b")
        b = say("b", next="a")
        with pytest.raises(GraphConstructionError) as exc_info:
            BlockGraph([flag(next="a"), a, b])
        assert exc_info.value.error_code == "E1002"

    def test_self_loop(self) -> None:
        with pytest.raises(GraphConstructionError) as exc_info:
            BlockGraph([say("a", next="a")])
        assert exc_info.value.error_code == "E1002"

    def test_cycle_through_branch(self) -> None:
        loop = Block("loop", BlockKind.CONTROL_FOREVER, branches={"SUBSTACK": "body"})
        body = say("body", next="loop")
        with pytest.raises(GraphConstructionError) as exc_info:
            BlockGraph([flag(next="loop"), loop, body])
        assert exc_info.value.error_code == "E1002"

    def test_unknown_kind(self) -> None:
        with pytest.raises(GraphConstructionError) as exc_info:
            BlockGraph([Block("a", "motion_flyaway")])
        assert exc_info.value.error_code == "E1003"
        assert "[E1003]" in str(exc_info.value)

    def test_input_referencing_stack_block(self) -> None:
        a = Block("a", BlockKind.LOOKS_SAY, inputs={"MESSAGE": BlockRef("b")})
        with pytest.raises(GraphConstructionError) as exc_info:
            BlockGraph([a, say("b")])
        assert exc_info.value.error_code == "E1004"

    def test_next_referencing_reporter(self) -> None:
        add = Block("add", BlockKind.OPERATOR_ADD)
        with pytest.raises(GraphConstructionError) as exc_info:
            BlockGraph([flag(next="add"), add])
        assert exc_info.value.error_code == "E1004"

    def test_next_referencing_hat(self) -> None:
        with pytest.raises(GraphConstructionError) as exc_info:
            BlockGraph([flag("h1", next="h2"), flag("h2")])
        assert exc_info.value.error_code == "E1004"

    def test_non_hat_listed_as_hat(self) -> None:
        with pytest.raises(GraphConstructionError) as exc_info:
            BlockGraph([say("a")], hats=["a"])
        assert exc_info.value.error_code == "E1004"

    def test_error_to_dict(self) -> None:
        with pytest.raises(GraphConstructionError) as exc_info:
            BlockGraph([flag(next="missing")])

        data = exc_info.value.to_dict()
        assert data["code"] == "E1001"
        assert data["category"] == "construction"
        assert data["context"] == {"block_id": "hat"}
