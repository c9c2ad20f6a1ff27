"""
Control blocks: branches, loops, waits, stop and clone requests.

Loops return a loop-flagged branch; the thread re-executes the loop block
with the saved frame state once the body is exhausted, on the next tick.
"""

import logging
import math
from typing import TYPE_CHECKING

from ...services.broadcast.message import CLONE, DELETE_CLONE, STOP_ALL
from .base import BlockKind, Outcome
from .registry import executes, reports

if TYPE_CHECKING:
    from ..core.context import ExecutionContext


logger = logging.getLogger(__name__)

MYSELF = "_myself_"


def js_round(number: float) -> float:
    """Round half up, keeping infinities."""
    if not math.isfinite(number):
        return number
    return float(math.floor(number + 0.5))


# =============================================================================
# Branching
# =============================================================================


@executes(BlockKind.CONTROL_IF)
def _if(ctx: "ExecutionContext") -> Outcome:
    if ctx.reentered:
        return Outcome.advance()
    if ctx.input_bool("CONDITION"):
        return Outcome.branch(ctx.branch("SUBSTACK"))
    return Outcome.advance()


@executes(BlockKind.CONTROL_IF_ELSE)
def _if_else(ctx: "ExecutionContext") -> Outcome:
    if ctx.reentered:
        return Outcome.advance()
    if ctx.input_bool("CONDITION"):
        return Outcome.branch(ctx.branch("SUBSTACK"))
    return Outcome.branch(ctx.branch("SUBSTACK2"))


# =============================================================================
# Loops
# =============================================================================


@executes(BlockKind.CONTROL_REPEAT)
def _repeat(ctx: "ExecutionContext") -> Outcome:
    if ctx.reentered:
        remaining = ctx.frame_state
    else:
        remaining = js_round(ctx.input_number("TIMES"))

    if remaining <= 0:
        return Outcome.advance()
    return Outcome.branch(ctx.branch("SUBSTACK"), loop=True, state=remaining - 1)


@executes(BlockKind.CONTROL_REPEAT_UNTIL)
def _repeat_until(ctx: "ExecutionContext") -> Outcome:
    if ctx.input_bool("CONDITION"):
        return Outcome.advance()
    return Outcome.branch(ctx.branch("SUBSTACK"), loop=True)


@executes(BlockKind.CONTROL_WHILE)
def _while(ctx: "ExecutionContext") -> Outcome:
    if not ctx.input_bool("CONDITION"):
        return Outcome.advance()
    return Outcome.branch(ctx.branch("SUBSTACK"), loop=True)


@executes(BlockKind.CONTROL_FOREVER)
def _forever(ctx: "ExecutionContext") -> Outcome:
    return Outcome.branch(ctx.branch("SUBSTACK"), loop=True)


# =============================================================================
# Waiting
# =============================================================================


@executes(BlockKind.CONTROL_WAIT)
def _wait(ctx: "ExecutionContext") -> Outcome:
    """Suspend until the deadline passes; always yields at least once."""
    deadline = ctx.get_state()
    if deadline is None:
        duration = max(0.0, ctx.input_number("DURATION"))
        ctx.set_state(ctx.now() + duration)
        return Outcome.suspend()

    if ctx.now() >= deadline:
        ctx.clear_state()
        return Outcome.advance()
    return Outcome.suspend()


@executes(BlockKind.CONTROL_WAIT_UNTIL)
def _wait_until(ctx: "ExecutionContext") -> Outcome:
    if ctx.input_bool("CONDITION"):
        return Outcome.advance()
    return Outcome.suspend()


# =============================================================================
# Stop
# =============================================================================


@executes(BlockKind.CONTROL_STOP)
def _stop(ctx: "ExecutionContext") -> Outcome:
    option = ctx.field("STOP_OPTION", "all")
    if option == "all":
        ctx.publish(STOP_ALL)
        return Outcome.terminate()
    if option == "this script":
        return Outcome.terminate()
    if option in ("other scripts in sprite", "other scripts in stage"):
        ctx.sprite.stop_other_threads(ctx.thread)
        return Outcome.advance()

    logger.warning(f"Unknown stop option '{option}' in block {ctx.block.id}")
    return Outcome.advance()


# =============================================================================
# Clones
# =============================================================================


@executes(BlockKind.CONTROL_START_AS_CLONE)
def _start_as_clone(ctx: "ExecutionContext") -> Outcome:
    return Outcome.advance()


@executes(BlockKind.CONTROL_CREATE_CLONE_OF)
def _create_clone_of(ctx: "ExecutionContext") -> Outcome:
    option = ctx.input_string("CLONE_OPTION")
    ctx.publish(
        CLONE,
        {"requester": ctx.sprite.instance_id, "target": option},
    )
    return Outcome.advance()


@reports(BlockKind.CONTROL_CREATE_CLONE_OF_MENU)
def _create_clone_of_menu(ctx: "ExecutionContext") -> str:
    return ctx.field("CLONE_OPTION", MYSELF)


@executes(BlockKind.CONTROL_DELETE_THIS_CLONE)
def _delete_this_clone(ctx: "ExecutionContext") -> Outcome:
    if not ctx.sprite.is_clone:
        return Outcome.advance()
    ctx.publish(DELETE_CLONE, ctx.sprite.instance_id)
    return Outcome.terminate()


__all__ = ["MYSELF", "js_round"]
