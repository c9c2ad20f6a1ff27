"""Operator reporters: arithmetic, comparison, logic, strings and math."""

import math
from typing import TYPE_CHECKING, Callable, Dict

from ..state.value import compare, is_whole_number, to_number
from .base import BlockKind
from .control import js_round
from .registry import reports

if TYPE_CHECKING:
    from ..core.context import ExecutionContext


# =============================================================================
# Arithmetic
# =============================================================================


@reports(BlockKind.OPERATOR_ADD)
def _add(ctx: "ExecutionContext") -> float:
    return ctx.input_number("NUM1") + ctx.input_number("NUM2")


@reports(BlockKind.OPERATOR_SUBTRACT)
def _subtract(ctx: "ExecutionContext") -> float:
    return ctx.input_number("NUM1") - ctx.input_number("NUM2")


@reports(BlockKind.OPERATOR_MULTIPLY)
def _multiply(ctx: "ExecutionContext") -> float:
    a = ctx.input_number("NUM1")
    b = ctx.input_number("NUM2")
    if (math.isinf(a) and b == 0) or (math.isinf(b) and a == 0):
        return math.nan
    return a * b


def divide(a: float, b: float) -> float:
    """IEEE division: x/0 is +-Infinity, 0/0 is NaN."""
    if b == 0:
        if a == 0 or math.isnan(a):
            return math.nan
        return math.copysign(math.inf, a) * math.copysign(1.0, b)
    return a / b


@reports(BlockKind.OPERATOR_DIVIDE)
def _divide(ctx: "ExecutionContext") -> float:
    return divide(ctx.input_number("NUM1"), ctx.input_number("NUM2"))


def modulo(n: float, m: float) -> float:
    """Modulo with the sign of the divisor."""
    if m == 0 or math.isinf(n) or math.isnan(n):
        return math.nan
    if math.isinf(m):
        return n if (n >= 0) == (m > 0) else m
    result = math.fmod(n, m)
    if result != 0 and (result < 0) != (m < 0):
        result += m
    return result


@reports(BlockKind.OPERATOR_MOD)
def _mod(ctx: "ExecutionContext") -> float:
    return modulo(ctx.input_number("NUM1"), ctx.input_number("NUM2"))


@reports(BlockKind.OPERATOR_ROUND)
def _round(ctx: "ExecutionContext") -> float:
    return js_round(ctx.input_number("NUM"))


@reports(BlockKind.OPERATOR_RANDOM)
def _random(ctx: "ExecutionContext") -> float:
    """Pick from FROM..TO: integers when both ends are whole, floats otherwise."""
    raw_from = ctx.input("FROM", 0.0)
    raw_to = ctx.input("TO", 0.0)
    low, high = sorted((to_number(raw_from), to_number(raw_to)))
    if low == high:
        return low
    if is_whole_number(raw_from) and is_whole_number(raw_to):
        return float(ctx.rng.randint(math.floor(low), math.floor(high)))
    return ctx.rng.uniform(low, high)


# =============================================================================
# Comparison and Logic
# =============================================================================


@reports(BlockKind.OPERATOR_LT)
def _lt(ctx: "ExecutionContext") -> bool:
    return compare(ctx.input("OPERAND1"), ctx.input("OPERAND2")) < 0


@reports(BlockKind.OPERATOR_GT)
def _gt(ctx: "ExecutionContext") -> bool:
    return compare(ctx.input("OPERAND1"), ctx.input("OPERAND2")) > 0


@reports(BlockKind.OPERATOR_EQUALS)
def _equals(ctx: "ExecutionContext") -> bool:
    return compare(ctx.input("OPERAND1"), ctx.input("OPERAND2")) == 0


@reports(BlockKind.OPERATOR_AND)
def _and(ctx: "ExecutionContext") -> bool:
    return ctx.input_bool("OPERAND1") and ctx.input_bool("OPERAND2")


@reports(BlockKind.OPERATOR_OR)
def _or(ctx: "ExecutionContext") -> bool:
    return ctx.input_bool("OPERAND1") or ctx.input_bool("OPERAND2")


@reports(BlockKind.OPERATOR_NOT)
def _not(ctx: "ExecutionContext") -> bool:
    return not ctx.input_bool("OPERAND")


# =============================================================================
# Strings
# =============================================================================


@reports(BlockKind.OPERATOR_JOIN)
def _join(ctx: "ExecutionContext") -> str:
    return ctx.input_string("STRING1") + ctx.input_string("STRING2")


@reports(BlockKind.OPERATOR_LETTER_OF)
def _letter_of(ctx: "ExecutionContext") -> str:
    index = ctx.input_number("LETTER") - 1
    text = ctx.input_string("STRING")
    if index < 0 or index >= len(text):
        return ""
    return text[int(index)]


@reports(BlockKind.OPERATOR_LENGTH)
def _length(ctx: "ExecutionContext") -> float:
    return float(len(ctx.input_string("STRING")))


@reports(BlockKind.OPERATOR_CONTAINS)
def _contains(ctx: "ExecutionContext") -> bool:
    haystack = ctx.input_string("STRING1").casefold()
    needle = ctx.input_string("STRING2").casefold()
    return needle in haystack


# =============================================================================
# Math functions
# =============================================================================


def _sin(n: float) -> float:
    if math.isinf(n):
        return math.nan
    return round(math.sin(math.radians(n)), 10)


def _cos(n: float) -> float:
    if math.isinf(n):
        return math.nan
    return round(math.cos(math.radians(n)), 10)


def _tan(n: float) -> float:
    if math.isinf(n):
        return math.nan
    angle = n % 360
    if angle == 90:
        return math.inf
    if angle == 270:
        return -math.inf
    return round(math.tan(math.radians(n)), 10)


def _arc(func: Callable[[float], float]) -> Callable[[float], float]:
    def wrapped(n: float) -> float:
        if n < -1 or n > 1:
            return math.nan
        return math.degrees(func(n))

    return wrapped


def _sqrt(n: float) -> float:
    return math.nan if n < 0 else math.sqrt(n)


def _log(func: Callable[[float], float]) -> Callable[[float], float]:
    def wrapped(n: float) -> float:
        if n < 0:
            return math.nan
        if n == 0:
            return -math.inf
        return func(n)

    return wrapped


def _power(base: float) -> Callable[[float], float]:
    def wrapped(n: float) -> float:
        try:
            return math.pow(base, n)
        except OverflowError:
            return math.inf

    return wrapped


MATH_FUNCTIONS: Dict[str, Callable[[float], float]] = {
    "abs": abs,
    "floor": lambda n: n if math.isinf(n) else float(math.floor(n)),
    "ceiling": lambda n: n if math.isinf(n) else float(math.ceil(n)),
    "sqrt": _sqrt,
    "sin": _sin,
    "cos": _cos,
    "tan": _tan,
    "asin": _arc(math.asin),
    "acos": _arc(math.acos),
    "atan": lambda n: math.degrees(math.atan(n)),
    "ln": _log(math.log),
    "log": _log(math.log10),
    "e ^": _power(math.e),
    "10 ^": _power(10.0),
}


@reports(BlockKind.OPERATOR_MATHOP)
def _mathop(ctx: "ExecutionContext") -> float:
    operator = ctx.field("OPERATOR").lower()
    func = MATH_FUNCTIONS.get(operator)
    if func is None:
        return 0.0
    return func(ctx.input_number("NUM"))


__all__ = ["MATH_FUNCTIONS", "divide", "modulo"]
