"""Looks blocks: speech bubbles, visibility, costumes, size, effects and layers."""

import logging
from typing import TYPE_CHECKING, Optional, Tuple

from ..state.value import Value
from .base import BlockKind, Outcome
from .control import js_round
from .registry import executes, reports

if TYPE_CHECKING:
    from ..core.context import ExecutionContext
    from ..core.sprite import SpeechBubble


logger = logging.getLogger(__name__)

MIN_SIZE = 0.0
MAX_SIZE = 54000.0


# =============================================================================
# Speech
# =============================================================================


def _bubble(ctx: "ExecutionContext", kind: str) -> Outcome:
    ctx.sprite.set_bubble(kind, ctx.input("MESSAGE"))
    return Outcome.advance()


def _bubble_for_secs(ctx: "ExecutionContext", kind: str) -> Outcome:
    """Show a bubble, wait SECS, then clear it if nothing replaced it."""
    state: Optional[Tuple[float, Optional["SpeechBubble"]]] = ctx.get_state()
    if state is None:
        bubble = ctx.sprite.set_bubble(kind, ctx.input("MESSAGE"))
        deadline = ctx.now() + max(0.0, ctx.input_number("SECS"))
        ctx.set_state((deadline, bubble))
        return Outcome.suspend()

    deadline, bubble = state
    if ctx.now() < deadline:
        return Outcome.suspend()
    if bubble is not None:
        ctx.sprite.clear_bubble(bubble)
    ctx.clear_state()
    return Outcome.advance()


@executes(BlockKind.LOOKS_SAY)
def _say(ctx: "ExecutionContext") -> Outcome:
    return _bubble(ctx, "say")


@executes(BlockKind.LOOKS_THINK)
def _think(ctx: "ExecutionContext") -> Outcome:
    return _bubble(ctx, "think")


@executes(BlockKind.LOOKS_SAYFORSECS)
def _say_for_secs(ctx: "ExecutionContext") -> Outcome:
    return _bubble_for_secs(ctx, "say")


@executes(BlockKind.LOOKS_THINKFORSECS)
def _think_for_secs(ctx: "ExecutionContext") -> Outcome:
    return _bubble_for_secs(ctx, "think")


# =============================================================================
# Visibility and costumes
# =============================================================================


@executes(BlockKind.LOOKS_SHOW)
def _show(ctx: "ExecutionContext") -> Outcome:
    ctx.sprite.visual.visible = True
    return Outcome.advance()


@executes(BlockKind.LOOKS_HIDE)
def _hide(ctx: "ExecutionContext") -> Outcome:
    ctx.sprite.visual.visible = False
    return Outcome.advance()


@executes(BlockKind.LOOKS_SWITCHCOSTUMETO)
def _switch_costume_to(ctx: "ExecutionContext") -> Outcome:
    ctx.sprite.switch_costume(ctx.input("COSTUME"))
    return Outcome.advance()


@reports(BlockKind.LOOKS_COSTUME)
def _costume_menu(ctx: "ExecutionContext") -> str:
    return ctx.field("COSTUME")


@executes(BlockKind.LOOKS_NEXTCOSTUME)
def _next_costume(ctx: "ExecutionContext") -> Outcome:
    ctx.sprite.next_costume()
    return Outcome.advance()


@reports(BlockKind.LOOKS_COSTUMENUMBERNAME)
def _costume_number_name(ctx: "ExecutionContext") -> Value:
    if ctx.field("NUMBER_NAME", "number") == "name":
        return ctx.sprite.costume_name
    return float(ctx.sprite.visual.costume_index + 1)


# =============================================================================
# Size and effects
# =============================================================================


def _set_size(ctx: "ExecutionContext", size: float) -> None:
    ctx.sprite.visual.size = min(max(size, MIN_SIZE), MAX_SIZE)


@executes(BlockKind.LOOKS_CHANGESIZEBY)
def _change_size_by(ctx: "ExecutionContext") -> Outcome:
    _set_size(ctx, ctx.sprite.visual.size + ctx.input_number("CHANGE"))
    return Outcome.advance()


@executes(BlockKind.LOOKS_SETSIZETO)
def _set_size_to(ctx: "ExecutionContext") -> Outcome:
    _set_size(ctx, ctx.input_number("SIZE"))
    return Outcome.advance()


@reports(BlockKind.LOOKS_SIZE)
def _size(ctx: "ExecutionContext") -> float:
    return js_round(ctx.sprite.visual.size)


@executes(BlockKind.LOOKS_SETEFFECTTO)
def _set_effect_to(ctx: "ExecutionContext") -> Outcome:
    ctx.sprite.set_effect(ctx.field("EFFECT", "color"), ctx.input_number("VALUE"))
    return Outcome.advance()


@executes(BlockKind.LOOKS_CHANGEEFFECTBY)
def _change_effect_by(ctx: "ExecutionContext") -> Outcome:
    effect = ctx.field("EFFECT", "color").lower()
    current = ctx.sprite.visual.effects.get(effect, 0.0)
    ctx.sprite.set_effect(effect, current + ctx.input_number("CHANGE"))
    return Outcome.advance()


@executes(BlockKind.LOOKS_CLEARGRAPHICEFFECTS)
def _clear_graphic_effects(ctx: "ExecutionContext") -> Outcome:
    ctx.sprite.visual.effects.clear()
    return Outcome.advance()


# =============================================================================
# Layers
# =============================================================================


@executes(BlockKind.LOOKS_GOTOFRONTBACK)
def _go_to_front_back(ctx: "ExecutionContext") -> Outcome:
    if ctx.field("FRONT_BACK", "front") == "back":
        ctx.vm.move_to_back(ctx.sprite)
    else:
        ctx.vm.move_to_front(ctx.sprite)
    return Outcome.advance()


@executes(BlockKind.LOOKS_GOFORWARDBACKWARDLAYERS)
def _go_forward_backward_layers(ctx: "ExecutionContext") -> Outcome:
    # Clamped so an infinite count means "all the way".
    limit = len(ctx.vm.instances())
    delta = int(min(max(ctx.input_number("NUM"), -limit), limit))
    if ctx.field("FORWARD_BACKWARD", "forward") == "backward":
        delta = -delta
    ctx.vm.move_layers(ctx.sprite, delta)
    return Outcome.advance()


__all__ = ["MIN_SIZE", "MAX_SIZE"]
