"""
VariableStore - scoped variable and list cells for sprites and the stage.

The stage owns the global store; every sprite store has it as parent, so a
lookup walks sprite -> stage. Cells are addressed by id, with the display
name accepted as a fallback for hand-built graphs.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .value import Value, copy_value


logger = logging.getLogger(__name__)


@dataclass
class VariableCell:
    """A named mutable slot holding one Value."""

    id: str
    name: str
    value: Value = 0.0
    monitored: bool = False


@dataclass
class ListCell:
    """A named mutable list of Values."""

    id: str
    name: str
    items: List[Value] = field(default_factory=list)
    monitored: bool = False


class VariableStore:
    """
    Scoped store of variables and lists.

    Invariants:
    - Writes go to the scope that owns the cell; unknown ids are created locally
    - Reads never fail; a missing variable reads as 0
    - Values handed out are copies, so reporters cannot alias a list cell
    """

    def __init__(
        self,
        parent: Optional["VariableStore"] = None,
        scope_name: str = "stage",
    ) -> None:
        if not scope_name:
            raise ValueError("scope_name cannot be empty")
        self._parent = parent
        self._scope_name = scope_name
        self._variables: Dict[str, VariableCell] = {}
        self._lists: Dict[str, ListCell] = {}

    @property
    def parent(self) -> Optional["VariableStore"]:
        return self._parent

    @property
    def scope_name(self) -> str:
        return self._scope_name

    # =========================================================================
    # Declaration
    # =========================================================================

    def declare_variable(
        self, var_id: str, name: str, value: Value = 0.0, monitored: bool = False
    ) -> VariableCell:
        cell = VariableCell(var_id, name, copy_value(value), monitored)
        self._variables[var_id] = cell
        return cell

    def declare_list(
        self,
        list_id: str,
        name: str,
        items: Optional[List[Value]] = None,
        monitored: bool = False,
    ) -> ListCell:
        cell = ListCell(list_id, name, list(items or []), monitored)
        self._lists[list_id] = cell
        return cell

    # =========================================================================
    # Lookup
    # =========================================================================

    def _find_variable(self, var_id: str) -> Optional[VariableCell]:
        cell = self._variables.get(var_id)
        if cell is not None:
            return cell
        for candidate in self._variables.values():
            if candidate.name == var_id:
                return candidate
        return None

    def _find_list(self, list_id: str) -> Optional[ListCell]:
        cell = self._lists.get(list_id)
        if cell is not None:
            return cell
        for candidate in self._lists.values():
            if candidate.name == list_id:
                return candidate
        return None

    def lookup_variable(self, var_id: str) -> Tuple[Optional["VariableStore"], Optional[VariableCell]]:
        """Walk the scope chain for a variable.

        Returns:
            (owning store, cell), or (None, None) if no scope has it.
        """
        store: Optional[VariableStore] = self
        while store is not None:
            cell = store._find_variable(var_id)
            if cell is not None:
                return store, cell
            store = store._parent
        return None, None

    def lookup_list(self, list_id: str, create: bool = True) -> Optional[ListCell]:
        """Walk the scope chain for a list, creating it locally if missing."""
        store: Optional[VariableStore] = self
        while store is not None:
            cell = store._find_list(list_id)
            if cell is not None:
                return cell
            store = store._parent
        if not create:
            return None
        logger.debug(f"Creating undeclared list '{list_id}' in scope {self._scope_name}")
        return self.declare_list(list_id, list_id)

    # =========================================================================
    # Read / Write
    # =========================================================================

    def get(self, var_id: str) -> Value:
        """Read a variable; undefined variables read as 0."""
        _, cell = self.lookup_variable(var_id)
        if cell is None:
            return 0.0
        return copy_value(cell.value)

    def set(self, var_id: str, value: Value) -> None:
        """Write a variable in its owning scope, creating it locally if unknown."""
        _, cell = self.lookup_variable(var_id)
        if cell is None:
            logger.debug(f"Creating undeclared variable '{var_id}' in scope {self._scope_name}")
            cell = self.declare_variable(var_id, var_id)
        cell.value = copy_value(value)

    def has(self, var_id: str) -> bool:
        return self.lookup_variable(var_id)[1] is not None

    def has_local(self, var_id: str) -> bool:
        return self._find_variable(var_id) is not None

    def set_monitored(self, var_id: str, monitored: bool = True) -> bool:
        """Flag a variable or list for the monitor API.

        Returns:
            True if a cell was found anywhere in the scope chain.
        """
        _, cell = self.lookup_variable(var_id)
        if cell is None:
            cell = self.lookup_list(var_id, create=False)
        if cell is None:
            return False
        cell.monitored = monitored
        return True

    # =========================================================================
    # Views
    # =========================================================================

    def variables(self) -> Dict[str, Value]:
        """Local variables by display name."""
        return {cell.name: copy_value(cell.value) for cell in self._variables.values()}

    def lists(self) -> Dict[str, List[Value]]:
        """Local lists by display name."""
        return {cell.name: list(cell.items) for cell in self._lists.values()}

    def monitored_values(self) -> Dict[str, Value]:
        """Local monitored variables and lists by display name."""
        values: Dict[str, Value] = {
            cell.name: copy_value(cell.value)
            for cell in self._variables.values()
            if cell.monitored
        }
        for cell in self._lists.values():
            if cell.monitored:
                values[cell.name] = list(cell.items)
        return values

    def copy_for_clone(self, scope_name: str) -> "VariableStore":
        """Copy the local cells into a new store sharing this store's parent."""
        clone = VariableStore(parent=self._parent, scope_name=scope_name)
        for cell in self._variables.values():
            clone.declare_variable(cell.id, cell.name, cell.value, cell.monitored)
        for cell in self._lists.values():
            clone.declare_list(cell.id, cell.name, cell.items, cell.monitored)
        return clone

    def debug_info(self) -> Dict[str, object]:
        return {
            "scope": self._scope_name,
            "parent": self._parent.scope_name if self._parent else None,
            "variables": self.variables(),
            "lists": self.lists(),
        }


__all__ = [
    "VariableCell",
    "ListCell",
    "VariableStore",
]
