"""Data blocks: variables and lists."""

import logging
from typing import TYPE_CHECKING, List

from ..state.value import (
    LIST_ALL,
    LIST_INVALID,
    Value,
    copy_value,
    equals,
    to_list_index,
    to_number,
    to_string,
)
from .base import BlockKind, Outcome
from .registry import executes, reports

if TYPE_CHECKING:
    from ..core.context import ExecutionContext
    from ..state.variables import ListCell


logger = logging.getLogger(__name__)

LIST_ITEM_LIMIT = 200000


def _scalar(value: Value) -> Value:
    """Variables hold scalars; list values are stored as their display string."""
    if isinstance(value, list):
        return to_string(value)
    return value


def _list(ctx: "ExecutionContext") -> "ListCell":
    return ctx.variables.lookup_list(ctx.field("LIST"))


# =============================================================================
# Variables
# =============================================================================


@reports(BlockKind.DATA_VARIABLE)
def _variable(ctx: "ExecutionContext") -> Value:
    return ctx.variables.get(ctx.field("VARIABLE"))


@executes(BlockKind.DATA_SETVARIABLETO)
def _set_variable(ctx: "ExecutionContext") -> Outcome:
    ctx.variables.set(ctx.field("VARIABLE"), _scalar(ctx.input("VALUE")))
    return Outcome.advance()


@executes(BlockKind.DATA_CHANGEVARIABLEBY)
def _change_variable(ctx: "ExecutionContext") -> Outcome:
    var_id = ctx.field("VARIABLE")
    current = to_number(ctx.variables.get(var_id))
    ctx.variables.set(var_id, current + ctx.input_number("VALUE"))
    return Outcome.advance()


@executes(BlockKind.DATA_SHOWVARIABLE)
def _show_variable(ctx: "ExecutionContext") -> Outcome:
    ctx.variables.set_monitored(ctx.field("VARIABLE"), True)
    return Outcome.advance()


@executes(BlockKind.DATA_HIDEVARIABLE)
def _hide_variable(ctx: "ExecutionContext") -> Outcome:
    ctx.variables.set_monitored(ctx.field("VARIABLE"), False)
    return Outcome.advance()


# =============================================================================
# Lists
# =============================================================================


@reports(BlockKind.DATA_LISTCONTENTS)
def _list_contents(ctx: "ExecutionContext") -> str:
    return to_string(list(_list(ctx).items))


@executes(BlockKind.DATA_ADDTOLIST)
def _add_to_list(ctx: "ExecutionContext") -> Outcome:
    items = _list(ctx).items
    if len(items) < LIST_ITEM_LIMIT:
        items.append(_scalar(ctx.input("ITEM")))
    return Outcome.advance()


@executes(BlockKind.DATA_DELETEOFLIST)
def _delete_of_list(ctx: "ExecutionContext") -> Outcome:
    items = _list(ctx).items
    index = to_list_index(ctx.input("INDEX"), len(items), accept_all=True, rng=ctx.rng)
    if index == LIST_ALL:
        items.clear()
    elif index != LIST_INVALID:
        del items[index - 1]
    return Outcome.advance()


@executes(BlockKind.DATA_DELETEALLOFLIST)
def _delete_all_of_list(ctx: "ExecutionContext") -> Outcome:
    _list(ctx).items.clear()
    return Outcome.advance()


@executes(BlockKind.DATA_INSERTATLIST)
def _insert_at_list(ctx: "ExecutionContext") -> Outcome:
    items = _list(ctx).items
    index = to_list_index(ctx.input("INDEX"), len(items) + 1, rng=ctx.rng)
    if index != LIST_INVALID and len(items) < LIST_ITEM_LIMIT:
        items.insert(index - 1, _scalar(ctx.input("ITEM")))
    return Outcome.advance()


@executes(BlockKind.DATA_REPLACEITEMOFLIST)
def _replace_item_of_list(ctx: "ExecutionContext") -> Outcome:
    items = _list(ctx).items
    index = to_list_index(ctx.input("INDEX"), len(items), rng=ctx.rng)
    if index != LIST_INVALID:
        items[index - 1] = _scalar(ctx.input("ITEM"))
    return Outcome.advance()


@reports(BlockKind.DATA_ITEMOFLIST)
def _item_of_list(ctx: "ExecutionContext") -> Value:
    items = _list(ctx).items
    index = to_list_index(ctx.input("INDEX"), len(items), rng=ctx.rng)
    if index == LIST_INVALID:
        return ""
    return copy_value(items[index - 1])


@reports(BlockKind.DATA_ITEMNUMOFLIST)
def _item_num_of_list(ctx: "ExecutionContext") -> float:
    item = ctx.input("ITEM")
    for position, candidate in enumerate(_list(ctx).items, start=1):
        if equals(candidate, item):
            return float(position)
    return 0.0


@reports(BlockKind.DATA_LENGTHOFLIST)
def _length_of_list(ctx: "ExecutionContext") -> float:
    return float(len(_list(ctx).items))


@reports(BlockKind.DATA_LISTCONTAINSITEM)
def _list_contains_item(ctx: "ExecutionContext") -> bool:
    item = ctx.input("ITEM")
    items: List[Value] = _list(ctx).items
    return any(equals(candidate, item) for candidate in items)


@executes(BlockKind.DATA_SHOWLIST)
def _show_list(ctx: "ExecutionContext") -> Outcome:
    ctx.variables.set_monitored(ctx.field("LIST"), True)
    return Outcome.advance()


@executes(BlockKind.DATA_HIDELIST)
def _hide_list(ctx: "ExecutionContext") -> Outcome:
    ctx.variables.set_monitored(ctx.field("LIST"), False)
    return Outcome.advance()


__all__ = ["LIST_ITEM_LIMIT"]
