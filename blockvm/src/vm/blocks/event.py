"""
Event blocks: hats and broadcasts.

Hats are triggers, not steps. hat_topic() maps a hat to the bus topic its
sprite subscribes to.
"""

import logging
from typing import TYPE_CHECKING, Optional

from ...services.broadcast.message import (
    ANY_KEY,
    GREEN_FLAG,
    click_topic,
    is_reserved,
    key_topic,
    user_topic,
)
from .base import Block, BlockKind, Outcome
from .registry import executes, reports

if TYPE_CHECKING:
    from ..core.context import ExecutionContext


logger = logging.getLogger(__name__)

# Topic a clone's start-as-clone hats are started with; never published on the bus.
CLONE_START = "vm.clone_start"


def hat_topic(block: Block, instance_id: str, is_stage: bool = False) -> Optional[str]:
    """Bus topic a hat block listens for.

    Args:
        block: The hat block.
        instance_id: Instance id of the sprite that owns the hat.
        is_stage: True when the owner is the stage.

    Returns:
        The topic, or None for hats that are started directly (start-as-clone)
        or that cannot fire for this owner.
    """
    kind = block.kind
    if kind is BlockKind.EVENT_WHENFLAGCLICKED:
        return GREEN_FLAG
    if kind is BlockKind.EVENT_WHENBROADCASTRECEIVED:
        return user_topic(block.get_field("BROADCAST_OPTION"))
    if kind is BlockKind.EVENT_WHENKEYPRESSED:
        key = block.get_field("KEY_OPTION", "space")
        return ANY_KEY if key == "any" else key_topic(key)
    if kind is BlockKind.EVENT_WHENTHISSPRITECLICKED:
        return None if is_stage else click_topic(instance_id)
    if kind is BlockKind.EVENT_WHENSTAGECLICKED:
        return click_topic(instance_id) if is_stage else None
    return None


@executes(
    BlockKind.EVENT_WHENFLAGCLICKED,
    BlockKind.EVENT_WHENBROADCASTRECEIVED,
    BlockKind.EVENT_WHENKEYPRESSED,
    BlockKind.EVENT_WHENTHISSPRITECLICKED,
    BlockKind.EVENT_WHENSTAGECLICKED,
)
def _hat(ctx: "ExecutionContext") -> Outcome:
    return Outcome.advance()


# =============================================================================
# Broadcasts
# =============================================================================


def _broadcast_name(ctx: "ExecutionContext") -> Optional[str]:
    name = ctx.input_string("BROADCAST_INPUT")
    if is_reserved(user_topic(name)):
        logger.warning(f"Refusing to broadcast reserved name '{name}' from block {ctx.block.id}")
        return None
    return name


@executes(BlockKind.EVENT_BROADCAST)
def _broadcast(ctx: "ExecutionContext") -> Outcome:
    name = _broadcast_name(ctx)
    if name is not None:
        ctx.vm.broadcast(name)
    return Outcome.advance()


@executes(BlockKind.EVENT_BROADCASTANDWAIT)
def _broadcast_and_wait(ctx: "ExecutionContext") -> Outcome:
    """Broadcast, then suspend until every thread it started has finished."""
    started = ctx.get_state()
    if started is None:
        name = _broadcast_name(ctx)
        started = ctx.vm.broadcast(name) if name is not None else []
        if not started:
            return Outcome.advance()
        ctx.set_state(started)
        return Outcome.suspend()

    if all(thread.status.is_terminal() for thread in started):
        ctx.clear_state()
        return Outcome.advance()
    return Outcome.suspend()


@reports(BlockKind.EVENT_BROADCAST_MENU)
def _broadcast_menu(ctx: "ExecutionContext") -> str:
    return ctx.field("BROADCAST_OPTION")


__all__ = ["CLONE_START", "hat_topic"]
