"""End-to-end tests for the blockvm command line host."""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from blockvm.src.cli.main import app


runner = CliRunner()


@pytest.fixture
def project_file(tmp_path: Path) -> Path:
    """A project whose cat counts a global score to three and says it."""
    project = {
        "targets": [
            {
                "isStage": True,
                "name": "Stage",
                "variables": {"v-score": ["score", 0]},
                "blocks": {},
            },
            {
                "name": "Cat",
                "blocks": {
                    "flag": {"opcode": "event_whenflagclicked", "next": "loop", "topLevel": True},
                    "loop": {
                        "opcode": "control_repeat",
                        "next": "say",
                        "inputs": {"TIMES": [1, [6, "3"]], "SUBSTACK": [2, "inc"]},
                    },
                    "inc": {
                        "opcode": "data_changevariableby",
                        "inputs": {"VALUE": [1, [4, "1"]]},
                        "fields": {"VARIABLE": ["score", "v-score"]},
                    },
                    "say": {
                        "opcode": "looks_say",
                        "inputs": {"MESSAGE": [3, [12, "score", "v-score"], [10, ""]]},
                    },
                },
                "costumes": [{"name": "cat"}],
            },
        ],
        "monitors": [{"id": "v-score", "visible": True}],
    }
    path = tmp_path / "project.json"
    path.write_text(json.dumps(project))
    return path


class TestRunCommand:
    """Tests for `blockvm run`."""

    def test_run_prints_final_state(self, project_file: Path) -> None:
        result = runner.invoke(app, ["run", str(project_file), "--seed", "1"])

        assert result.exit_code == 0, result.output
        assert "Ran 4 ticks" in result.output
        assert "idle" in result.output
        assert "score" in result.output
        assert "Cat" in result.output

    def test_run_json_output(self, project_file: Path) -> None:
        result = runner.invoke(app, ["run", str(project_file), "--json"])

        assert result.exit_code == 0, result.output
        assert '"tick": 4' in result.output
        assert '"text": "3"' in result.output

    def test_tick_limit(self, project_file: Path) -> None:
        result = runner.invoke(app, ["run", str(project_file), "--ticks", "2"])

        assert result.exit_code == 0, result.output
        assert "Ran 2 ticks" in result.output
        assert "still running" in result.output

    def test_invalid_project_exits_with_error(self, tmp_path: Path) -> None:
        path = tmp_path / "broken.json"
        path.write_text("{not json")

        result = runner.invoke(app, ["run", str(path)])

        assert result.exit_code == 1
        assert "Cannot load" in result.output


class TestInspectCommand:
    def test_inspect_lists_targets(self, project_file: Path) -> None:
        result = runner.invoke(app, ["inspect", str(project_file)])

        assert result.exit_code == 0, result.output
        assert "Stage" in result.output
        assert "Cat" in result.output
        assert "event_whenflagclicked" in result.output
