"""
VM State

Core Enums and Errors (base.py):
- ThreadStatus: Thread lifecycle (IDLE, RUNNING, SUSPENDED, FINISHED)
- ErrorCategory: CONSTRUCTION, VALUE, RESOURCE, SCHEDULING
- VMError and its subclasses

Value Model (value.py):
- Coercions to number, string and boolean, comparison, list indexing

Variables (variables.py):
- VariableStore: Scoped variable/list cells, sprite -> stage
"""

from .base import (
    ErrorCategory,
    GraphConstructionError,
    ProjectLoadError,
    SchedulingError,
    ThreadStatus,
    VMError,
)
from .value import (
    LIST_ALL,
    LIST_INVALID,
    Value,
    compare,
    copy_value,
    equals,
    is_numeric,
    is_whole_number,
    to_boolean,
    to_list_index,
    to_number,
    to_string,
)
from .variables import ListCell, VariableCell, VariableStore

__all__ = [
    # base.py
    "ErrorCategory",
    "GraphConstructionError",
    "ProjectLoadError",
    "SchedulingError",
    "ThreadStatus",
    "VMError",
    # value.py
    "LIST_ALL",
    "LIST_INVALID",
    "Value",
    "compare",
    "copy_value",
    "equals",
    "is_numeric",
    "is_whole_number",
    "to_boolean",
    "to_list_index",
    "to_number",
    "to_string",
    # variables.py
    "ListCell",
    "VariableCell",
    "VariableStore",
]
