"""Unit tests for project.json / .sb3 loading."""

import copy
import json
import zipfile
from pathlib import Path
from typing import Any, Dict

import pytest

from blockvm.src.vm.blocks.base import BlockKind, BlockRef, ListRef, Literal, VariableRef
from blockvm.src.vm.loader import (
    convert_input,
    load_definitions,
    load_vm,
    read_project_file,
)
from blockvm.src.vm.state.base import GraphConstructionError, ProjectLoadError


# =============================================================================
# Fixtures
# =============================================================================


def record(opcode: str, next: str = None, top_level: bool = False, **kwargs) -> Dict[str, Any]:
    return {
        "opcode": opcode,
        "next": next,
        "parent": None,
        "inputs": kwargs.get("inputs", {}),
        "fields": kwargs.get("fields", {}),
        "shadow": kwargs.get("shadow", False),
        "topLevel": top_level,
    }


@pytest.fixture
def project() -> Dict[str, Any]:
    """A stage with a global score and one sprite counting to three."""
    return {
        "targets": [
            {
                "isStage": True,
                "name": "Stage",
                "variables": {"v-score": ["score", 0]},
                "lists": {"l-log": ["log", ["start"]]},
                "broadcasts": {"b-go": "go"},
                "blocks": {},
                "costumes": [{"name": "backdrop1"}],
                "currentCostume": 0,
                "layerOrder": 0,
            },
            {
                "isStage": False,
                "name": "Cat",
                "variables": {"v-x": ["x", 0]},
                "lists": {},
                "blocks": {
                    "flag": record("event_whenflagclicked", next="repeat", top_level=True),
                    "repeat": record(
                        "control_repeat",
                        next="say",
                        inputs={"TIMES": [1, [6, "3"]], "SUBSTACK": [2, "change"]},
                    ),
                    "change": record(
                        "data_changevariableby",
                        inputs={"VALUE": [1, [4, "1"]]},
                        fields={"VARIABLE": ["score", "v-score"]},
                    ),
                    "say": record(
                        "looks_say",
                        next="add",
                        inputs={"MESSAGE": [3, [12, "score", "v-score"], [10, "hi"]]},
                    ),
                    "add": record(
                        "data_addtolist",
                        inputs={"ITEM": [3, "join", [10, ""]]},
                        fields={"LIST": ["log", "l-log"]},
                    ),
                    "join": record(
                        "operator_join",
                        inputs={"STRING1": [1, [10, "n="]], "STRING2": [3, [13, "log", "l-log"], [10, ""]]},
                    ),
                    "loose": [12, "score", "v-score", 100, 200],
                },
                "costumes": [{"name": "cat-a"}, {"name": "cat-b"}],
                "currentCostume": 1,
                "x": 10,
                "y": -20,
                "direction": 45,
                "size": 50,
                "visible": True,
                "layerOrder": 1,
            },
        ],
        "monitors": [
            {"id": "v-score", "opcode": "data_variable", "visible": True},
            {"id": "v-x", "opcode": "data_variable", "spriteName": "Cat", "visible": False},
        ],
        "extensions": [],
        "meta": {"semver": "3.0.0"},
    }


def by_name(definitions):
    return {definition.name: definition for definition in definitions}


# =============================================================================
# Conversion
# =============================================================================


class TestLoadDefinitions:
    """Tests for target conversion."""

    def test_targets_loaded(self, project) -> None:
        definitions = by_name(load_definitions(project))

        assert set(definitions) == {"Stage", "Cat"}
        assert definitions["Stage"].is_stage is True
        assert definitions["Cat"].is_stage is False

    def test_sprite_state(self, project) -> None:
        cat = by_name(load_definitions(project))["Cat"]

        assert cat.variables == {"v-x": ("x", 0)}
        assert cat.costumes == ["cat-a", "cat-b"]
        assert cat.current_costume == 1
        assert (cat.x, cat.y, cat.direction, cat.size) == (10.0, -20.0, 45.0, 50.0)
        assert cat.layer_order == 1

    def test_blocks_converted(self, project) -> None:
        graph = by_name(load_definitions(project))["Cat"].graph

        repeat = graph.get("repeat")
        assert repeat.kind is BlockKind.CONTROL_REPEAT
        assert repeat.branches == {"SUBSTACK": "change"}
        assert repeat.inputs == {"TIMES": Literal("3")}
        assert graph.get("change").fields == {"VARIABLE": "v-score"}
        assert graph.get("say").inputs["MESSAGE"] == VariableRef(var_id="v-score", name="score")
        assert graph.get("add").inputs["ITEM"] == BlockRef("join")
        assert graph.get("join").inputs["STRING2"] == ListRef(list_id="l-log", name="log")
        assert graph.hats == ("flag",)

    def test_top_level_primitives_ignored(self, project) -> None:
        graph = by_name(load_definitions(project))["Cat"].graph
        assert "loose" not in graph

    def test_monitors_limited_to_visible_and_declared(self, project) -> None:
        definitions = by_name(load_definitions(project))

        assert definitions["Stage"].monitored == {"v-score"}
        assert definitions["Cat"].monitored == set()

    def test_out_of_range_costume_resets(self, project) -> None:
        project["targets"][1]["currentCostume"] = 9
        cat = by_name(load_definitions(project))["Cat"]
        assert cat.current_costume == 0

    def test_empty_boolean_input_is_omitted(self, project) -> None:
        project["targets"][1]["blocks"]["if"] = record(
            "control_if", inputs={"CONDITION": [2, None], "SUBSTACK": [2, None]}
        )
        block = by_name(load_definitions(project))["Cat"].graph.get("if")

        assert block.inputs == {}
        assert block.branches == {"SUBSTACK": None}


class TestConvertInput:
    """Direct input-array conversion."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ([1, [10, "hello"]], Literal("hello")),
            ([1, [4, "7"]], Literal("7")),
            ([1, [9, "#ff0000"]], Literal("#ff0000")),
            ([1, [11, "go", "b-go"]], Literal("go")),
            ([3, "reporter", [10, ""]], BlockRef("reporter")),
            ([2, None], None),
            ([1], None),
        ],
    )
    def test_shapes(self, raw, expected) -> None:
        assert convert_input("b", "IN", raw) == expected

    @pytest.mark.parametrize("raw", [[1, [99, "x"]], [1, 5], [1, []]])
    def test_malformed(self, raw) -> None:
        with pytest.raises(ProjectLoadError) as exc_info:
            convert_input("b", "IN", raw)
        assert exc_info.value.error_code == "E1101"


# =============================================================================
# Failures
# =============================================================================


class TestLoadFailures:
    """Tests for invalid projects."""

    def test_unsupported_opcode(self, project) -> None:
        project["targets"][1]["blocks"]["sound"] = record("sound_play")

        with pytest.raises(ProjectLoadError) as exc_info:
            load_definitions(project)

        assert exc_info.value.error_code == "E1102"
        assert "sound_play" in str(exc_info.value)

    def test_no_targets(self) -> None:
        with pytest.raises(ProjectLoadError) as exc_info:
            load_definitions({"targets": []})
        assert exc_info.value.error_code == "E1101"

    def test_missing_required_fields(self) -> None:
        with pytest.raises(ProjectLoadError):
            load_definitions({"targets": [{"isStage": True}]})

    def test_duplicate_target_names(self, project) -> None:
        duplicate = copy.deepcopy(project["targets"][1])
        project["targets"].append(duplicate)

        with pytest.raises(ProjectLoadError) as exc_info:
            load_definitions(project)
        assert "Duplicate" in str(exc_info.value)

    def test_dangling_link_surfaces_graph_error(self, project) -> None:
        project["targets"][1]["blocks"]["say"]["next"] = "ghost"

        with pytest.raises(GraphConstructionError) as exc_info:
            load_definitions(project)
        assert exc_info.value.error_code == "E1001"

    def test_malformed_variable_entry(self, project) -> None:
        project["targets"][0]["variables"]["bad"] = [1]
        with pytest.raises(ProjectLoadError):
            load_definitions(project)


# =============================================================================
# Files
# =============================================================================


class TestReadProjectFile:
    """Tests for reading project.json and .sb3 archives."""

    def test_reads_json(self, tmp_path: Path, project) -> None:
        path = tmp_path / "project.json"
        path.write_text(json.dumps(project))

        assert read_project_file(path)["meta"] == {"semver": "3.0.0"}
        assert len(load_definitions(str(path))) == 2

    def test_reads_sb3_archive(self, tmp_path: Path, project) -> None:
        path = tmp_path / "game.sb3"
        with zipfile.ZipFile(path, "w") as archive:
            archive.writestr("project.json", json.dumps(project))
            archive.writestr("cat.svg", "<svg/>")

        assert len(load_definitions(path)) == 2

    def test_archive_without_project_json(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.sb3"
        with zipfile.ZipFile(path, "w") as archive:
            archive.writestr("readme.txt", "nothing here")

        with pytest.raises(ProjectLoadError) as exc_info:
            read_project_file(path)
        assert exc_info.value.source == str(path)

    @pytest.mark.parametrize("content", ["not json", "[1, 2]"])
    def test_bad_content(self, tmp_path: Path, content: str) -> None:
        path = tmp_path / "project.json"
        path.write_text(content)

        with pytest.raises(ProjectLoadError):
            read_project_file(path)

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ProjectLoadError) as exc_info:
            read_project_file(tmp_path / "missing.json")
        assert exc_info.value.to_dict()["code"] == "E1101"


# =============================================================================
# Running a loaded project
# =============================================================================


class TestLoadVm:
    def test_loaded_project_runs(self, project) -> None:
        vm = load_vm(project, clock=lambda: 0.0)
        vm.start()

        vm.run(max_ticks=20)

        assert vm.read_variable("score") == 3.0
        assert vm.read_list("log") == ["start", "n=start"]
        assert vm.sprite("Cat").visual.bubble.text == "3"
        assert [(r.owner, r.name, r.value) for r in vm.monitored_values()] == [
            ("Stage", "score", 3.0)
        ]
