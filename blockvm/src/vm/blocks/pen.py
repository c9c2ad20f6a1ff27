"""Pen extension blocks. Lines are collected per tick and exposed in the snapshot."""

import colorsys
import logging
import math
import re
from typing import TYPE_CHECKING, Tuple

from ..state.value import is_numeric, to_number, to_string
from .base import BlockKind, Outcome
from .registry import executes

if TYPE_CHECKING:
    from ..core.context import ExecutionContext


logger = logging.getLogger(__name__)

MIN_PEN_SIZE = 1.0
MAX_PEN_SIZE = 1200.0

_HEX_COLOR = re.compile(r"^#([0-9a-fA-F]{6}|[0-9a-fA-F]{3})$")


def parse_color(value) -> str:
    """
    Normalise a colour input to '#rrggbb'.

    Accepts '#rrggbb', '#rgb' and packed RGB numbers (as produced by colour
    pickers serialised to numbers). Anything else yields black.
    """
    text = to_string(value).strip()
    match = _HEX_COLOR.match(text)
    if match:
        digits = match.group(1)
        if len(digits) == 3:
            digits = "".join(c * 2 for c in digits)
        return f"#{digits.lower()}"
    if is_numeric(text) and math.isfinite(to_number(text)):
        packed = int(to_number(text)) & 0xFFFFFF
        return f"#{packed:06x}"
    logger.debug(f"Unrecognised pen colour {text!r}, using black")
    return "#000000"


def _to_hsv(color: str) -> Tuple[float, float, float]:
    red, green, blue = (int(color[i:i + 2], 16) / 255.0 for i in (1, 3, 5))
    return colorsys.rgb_to_hsv(red, green, blue)


def _from_hsv(hue: float, saturation: float, value: float) -> str:
    red, green, blue = colorsys.hsv_to_rgb(hue, saturation, value)
    return "#" + "".join(f"{round(channel * 255):02x}" for channel in (red, green, blue))


def with_shade(color: str, shade: float) -> str:
    """Replace the HSV value of a colour; shade runs 0..100."""
    hue, saturation, _ = _to_hsv(color)
    return _from_hsv(hue, saturation, min(max(shade / 100.0, 0.0), 1.0))


def with_hue(color: str, hue: float) -> str:
    """Replace the HSV hue of a colour; 0..100 maps to -180..180 degrees."""
    degrees = hue / 100.0 * 360.0 - 180.0
    _, saturation, value = _to_hsv(color)
    return _from_hsv((degrees % 360.0) / 360.0, saturation, value)


def _set_size(ctx: "ExecutionContext", size: float) -> None:
    ctx.sprite.visual.pen.size = min(max(size, MIN_PEN_SIZE), MAX_PEN_SIZE)


@executes(BlockKind.PEN_PENDOWN)
def _pen_down(ctx: "ExecutionContext") -> Outcome:
    visual = ctx.sprite.visual
    visual.pen.down = True
    # Putting the pen down draws a dot at the current position
    ctx.vm.draw_line(ctx.sprite, visual.x, visual.y, visual.x, visual.y)
    return Outcome.advance()


@executes(BlockKind.PEN_PENUP)
def _pen_up(ctx: "ExecutionContext") -> Outcome:
    ctx.sprite.visual.pen.down = False
    return Outcome.advance()


@executes(BlockKind.PEN_CLEAR)
def _clear(ctx: "ExecutionContext") -> Outcome:
    ctx.vm.clear_pen()
    return Outcome.advance()


@executes(BlockKind.PEN_SETPENSIZETO)
def _set_pen_size_to(ctx: "ExecutionContext") -> Outcome:
    _set_size(ctx, ctx.input_number("SIZE"))
    return Outcome.advance()


@executes(BlockKind.PEN_CHANGEPENSIZEBY)
def _change_pen_size_by(ctx: "ExecutionContext") -> Outcome:
    _set_size(ctx, ctx.sprite.visual.pen.size + ctx.input_number("SIZE"))
    return Outcome.advance()


@executes(BlockKind.PEN_SETPENCOLORTOCOLOR)
def _set_pen_color_to_color(ctx: "ExecutionContext") -> Outcome:
    ctx.sprite.visual.pen.color = parse_color(ctx.input("COLOR"))
    return Outcome.advance()


@executes(BlockKind.PEN_SETPENSHADETONUMBER)
def _set_pen_shade_to_number(ctx: "ExecutionContext") -> Outcome:
    shade = ctx.input_number("SHADE")
    if math.isfinite(shade):
        ctx.sprite.visual.pen.color = with_shade(ctx.sprite.visual.pen.color, shade)
    return Outcome.advance()


@executes(BlockKind.PEN_SETPENHUETONUMBER)
def _set_pen_hue_to_number(ctx: "ExecutionContext") -> Outcome:
    hue = ctx.input_number("HUE")
    if math.isfinite(hue):
        ctx.sprite.visual.pen.color = with_hue(ctx.sprite.visual.pen.color, hue)
    return Outcome.advance()


__all__ = ["MIN_PEN_SIZE", "MAX_PEN_SIZE", "parse_color", "with_shade", "with_hue"]
