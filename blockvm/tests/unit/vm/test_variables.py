"""Unit tests for scoped variable stores."""

import pytest

from blockvm.src.vm.state.variables import VariableStore


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def stage() -> VariableStore:
    store = VariableStore(scope_name="Stage")
    store.declare_variable("score-id", "score", 0.0)
    store.declare_list("names-id", "names", ["a", "b"])
    return store


@pytest.fixture
def sprite(stage: VariableStore) -> VariableStore:
    store = VariableStore(parent=stage, scope_name="Sprite1")
    store.declare_variable("speed-id", "speed", 5.0)
    return store


# =============================================================================
# Lookup and scoping
# =============================================================================


class TestVariableScoping:
    """Tests for the sprite -> stage scope chain."""

    def test_reads_local_then_global(self, sprite: VariableStore) -> None:
        assert sprite.get("speed-id") == 5.0
        assert sprite.get("score-id") == 0.0

    def test_lookup_by_name_falls_back(self, sprite: VariableStore) -> None:
        assert sprite.get("speed") == 5.0
        assert sprite.get("score") == 0.0

    def test_write_goes_to_owning_scope(self, stage: VariableStore, sprite: VariableStore) -> None:
        sprite.set("score-id", 10.0)

        assert stage.get("score-id") == 10.0
        assert sprite.has_local("score-id") is False

    def test_unknown_variable_reads_zero(self, sprite: VariableStore) -> None:
        assert sprite.get("missing") == 0.0
        assert sprite.has("missing") is False

    def test_unknown_variable_is_created_locally_on_write(
        self, stage: VariableStore, sprite: VariableStore
    ) -> None:
        sprite.set("fresh", "value")

        assert sprite.has_local("fresh") is True
        assert stage.has("fresh") is False

    def test_lookup_variable_reports_owner(self, stage: VariableStore, sprite: VariableStore) -> None:
        owner, cell = sprite.lookup_variable("score-id")

        assert owner is stage
        assert cell is not None and cell.name == "score"

    def test_empty_scope_name_rejected(self) -> None:
        with pytest.raises(ValueError):
            VariableStore(scope_name="")


# =============================================================================
# Lists
# =============================================================================


class TestLists:
    """Tests for list cells."""

    def test_lookup_list_walks_scopes(self, sprite: VariableStore) -> None:
        cell = sprite.lookup_list("names-id")
        assert cell.items == ["a", "b"]

    def test_missing_list_created_locally(self, sprite: VariableStore) -> None:
        cell = sprite.lookup_list("new-list")

        assert cell.items == []
        assert sprite.lists() == {"new-list": []}

    def test_missing_list_not_created_when_disabled(self, sprite: VariableStore) -> None:
        assert sprite.lookup_list("nope", create=False) is None

    def test_lists_view_is_a_copy(self, stage: VariableStore) -> None:
        stage.lists()["names"].append("c")
        assert stage.lookup_list("names-id").items == ["a", "b"]

    def test_values_handed_out_are_copies(self, stage: VariableStore) -> None:
        stage.set("score-id", ["x", "y"])
        value = stage.get("score-id")
        value.append("z")
        assert stage.get("score-id") == ["x", "y"]


# =============================================================================
# Clones and monitors
# =============================================================================


class TestCopyForClone:
    """Tests for clone variable copies."""

    def test_local_cells_are_independent(self, stage: VariableStore, sprite: VariableStore) -> None:
        clone = sprite.copy_for_clone("Sprite1#clone-1")
        clone.set("speed-id", 9.0)

        assert sprite.get("speed-id") == 5.0
        assert clone.get("speed-id") == 9.0

    def test_globals_remain_shared(self, stage: VariableStore, sprite: VariableStore) -> None:
        clone = sprite.copy_for_clone("Sprite1#clone-1")
        clone.set("score-id", 3.0)

        assert clone.parent is stage
        assert sprite.get("score-id") == 3.0


class TestMonitoring:
    """Tests for monitored cells."""

    def test_set_monitored_on_variable_and_list(self, stage: VariableStore) -> None:
        assert stage.set_monitored("score-id") is True
        assert stage.set_monitored("names-id") is True

        assert stage.monitored_values() == {"score": 0.0, "names": ["a", "b"]}

    def test_set_monitored_unknown(self, stage: VariableStore) -> None:
        assert stage.set_monitored("ghost") is False

    def test_unmonitor(self, stage: VariableStore) -> None:
        stage.set_monitored("score-id")
        stage.set_monitored("score-id", False)
        assert stage.monitored_values() == {}
