"""Motion blocks: position, direction and timed glides."""

import math
from typing import TYPE_CHECKING, Tuple

from .base import BlockKind, Outcome
from .registry import executes, reports

if TYPE_CHECKING:
    from ..core.context import ExecutionContext
    from ..core.sprite import Sprite


def limit_precision(coordinate: float) -> float:
    """Snap values within 1e-9 of a whole number, so 90 degree turns stay exact."""
    rounded = round(coordinate)
    if abs(coordinate - rounded) < 1e-9:
        return float(rounded)
    return coordinate


def move_to(sprite: "Sprite", x: float, y: float) -> None:
    """Move a sprite, drawing a pen line when its pen is down."""
    visual = sprite.visual
    if visual.pen.down:
        sprite.vm.draw_line(sprite, visual.x, visual.y, x, y)
    visual.x = x
    visual.y = y


def wrap_direction(direction: float) -> float:
    """Wrap a direction into (-180, 180]."""
    return (direction + 179) % 360 - 179


def _point(ctx: "ExecutionContext", direction: float) -> Outcome:
    if math.isfinite(direction):
        ctx.sprite.visual.direction = wrap_direction(direction)
    return Outcome.advance()


# =============================================================================
# Movement
# =============================================================================


@executes(BlockKind.MOTION_MOVESTEPS)
def _move_steps(ctx: "ExecutionContext") -> Outcome:
    steps = ctx.input_number("STEPS")
    visual = ctx.sprite.visual
    radians = math.radians(90 - visual.direction)
    move_to(
        ctx.sprite,
        visual.x + steps * math.cos(radians),
        visual.y + steps * math.sin(radians),
    )
    return Outcome.advance()


@executes(BlockKind.MOTION_GOTOXY)
def _go_to_xy(ctx: "ExecutionContext") -> Outcome:
    move_to(ctx.sprite, ctx.input_number("X"), ctx.input_number("Y"))
    return Outcome.advance()


@executes(BlockKind.MOTION_CHANGEXBY)
def _change_x_by(ctx: "ExecutionContext") -> Outcome:
    visual = ctx.sprite.visual
    move_to(ctx.sprite, visual.x + ctx.input_number("DX"), visual.y)
    return Outcome.advance()


@executes(BlockKind.MOTION_CHANGEYBY)
def _change_y_by(ctx: "ExecutionContext") -> Outcome:
    visual = ctx.sprite.visual
    move_to(ctx.sprite, visual.x, visual.y + ctx.input_number("DY"))
    return Outcome.advance()


@executes(BlockKind.MOTION_SETX)
def _set_x(ctx: "ExecutionContext") -> Outcome:
    move_to(ctx.sprite, ctx.input_number("X"), ctx.sprite.visual.y)
    return Outcome.advance()


@executes(BlockKind.MOTION_SETY)
def _set_y(ctx: "ExecutionContext") -> Outcome:
    move_to(ctx.sprite, ctx.sprite.visual.x, ctx.input_number("Y"))
    return Outcome.advance()


@executes(BlockKind.MOTION_GLIDESECSTOXY)
def _glide_secs_to_xy(ctx: "ExecutionContext") -> Outcome:
    """
    Glide in a straight line over SECS seconds.

    The start point, target and timing are captured on the first run and
    kept in block state, so the glide is not affected by input changes
    while it is underway. A non-positive duration jumps immediately.
    """
    state = ctx.get_state()
    if state is None:
        duration = ctx.input_number("SECS")
        target = (ctx.input_number("X"), ctx.input_number("Y"))
        if duration <= 0:
            move_to(ctx.sprite, *target)
            return Outcome.advance()
        start = (ctx.sprite.visual.x, ctx.sprite.visual.y)
        ctx.set_state((ctx.now(), duration, start, target))
        return Outcome.suspend()

    started, duration, start, target = state
    fraction = (ctx.now() - started) / duration
    if fraction >= 1:
        move_to(ctx.sprite, *target)
        ctx.clear_state()
        return Outcome.advance()

    move_to(ctx.sprite, *_lerp(start, target, fraction))
    return Outcome.suspend()


def _lerp(
    start: Tuple[float, float], target: Tuple[float, float], fraction: float
) -> Tuple[float, float]:
    return (
        start[0] + (target[0] - start[0]) * fraction,
        start[1] + (target[1] - start[1]) * fraction,
    )


# =============================================================================
# Direction
# =============================================================================


@executes(BlockKind.MOTION_TURNRIGHT)
def _turn_right(ctx: "ExecutionContext") -> Outcome:
    return _point(ctx, ctx.sprite.visual.direction + ctx.input_number("DEGREES"))


@executes(BlockKind.MOTION_TURNLEFT)
def _turn_left(ctx: "ExecutionContext") -> Outcome:
    return _point(ctx, ctx.sprite.visual.direction - ctx.input_number("DEGREES"))


@executes(BlockKind.MOTION_POINTINDIRECTION)
def _point_in_direction(ctx: "ExecutionContext") -> Outcome:
    return _point(ctx, ctx.input_number("DIRECTION"))


# =============================================================================
# Reporters
# =============================================================================


@reports(BlockKind.MOTION_XPOSITION)
def _x_position(ctx: "ExecutionContext") -> float:
    return limit_precision(ctx.sprite.visual.x)


@reports(BlockKind.MOTION_YPOSITION)
def _y_position(ctx: "ExecutionContext") -> float:
    return limit_precision(ctx.sprite.visual.y)


@reports(BlockKind.MOTION_DIRECTION)
def _direction(ctx: "ExecutionContext") -> float:
    return ctx.sprite.visual.direction


__all__ = ["limit_precision", "move_to", "wrap_direction"]
