"""Sensing blocks backed by the host-injected input state and the VM timer."""

from typing import TYPE_CHECKING

from ..state.value import to_string
from .base import BlockKind, Outcome
from .registry import executes, reports

if TYPE_CHECKING:
    from ..core.context import ExecutionContext


@reports(BlockKind.SENSING_KEYPRESSED)
def _key_pressed(ctx: "ExecutionContext") -> bool:
    return ctx.vm.input.is_key_down(to_string(ctx.input("KEY_OPTION")))


@reports(BlockKind.SENSING_KEYOPTIONS)
def _key_options(ctx: "ExecutionContext") -> str:
    return ctx.field("KEY_OPTION", "space")


@reports(BlockKind.SENSING_MOUSEDOWN)
def _mouse_down(ctx: "ExecutionContext") -> bool:
    return ctx.vm.input.mouse_down


@reports(BlockKind.SENSING_MOUSEX)
def _mouse_x(ctx: "ExecutionContext") -> float:
    return ctx.vm.input.mouse_x


@reports(BlockKind.SENSING_MOUSEY)
def _mouse_y(ctx: "ExecutionContext") -> float:
    return ctx.vm.input.mouse_y


@reports(BlockKind.SENSING_TIMER)
def _timer(ctx: "ExecutionContext") -> float:
    return ctx.vm.timer_value()


@executes(BlockKind.SENSING_RESETTIMER)
def _reset_timer(ctx: "ExecutionContext") -> Outcome:
    ctx.vm.reset_timer()
    return Outcome.advance()
