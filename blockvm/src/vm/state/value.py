"""
Value model - permissive coercions over the block language's dynamic values.

A Value is a float, str, bool, or a list of Values. Coercions never raise:
anything that does not parse becomes the language default (0, "" or False).
"""

import math
import random
import re
from typing import List, Optional, Union

Value = Union[float, str, bool, List["Value"]]

# Sentinels returned by to_list_index
LIST_INVALID = 0
LIST_ALL = -1

_DECIMAL_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")
_HEX_RE = re.compile(r"^0[xX][0-9a-fA-F]+$")
_OCT_RE = re.compile(r"^0[oO][0-7]+$")
_BIN_RE = re.compile(r"^0[bB][01]+$")
_INFINITY_RE = re.compile(r"^[+-]?Infinity$")


def _parse_number(value: Value) -> Optional[float]:
    """Parse a value as a number, or None when it is not numeric."""
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        number = float(value)
        return None if math.isnan(number) else number
    if isinstance(value, list):
        return _parse_number(to_string(value))

    text = str(value).strip()
    if text == "":
        return 0.0
    if _DECIMAL_RE.match(text):
        return float(text)
    if _HEX_RE.match(text):
        return _parse_int(text[2:], 16)
    if _OCT_RE.match(text):
        return _parse_int(text[2:], 8)
    if _BIN_RE.match(text):
        return _parse_int(text[2:], 2)
    if _INFINITY_RE.match(text):
        return -math.inf if text.startswith("-") else math.inf
    return None


def _parse_int(digits: str, base: int) -> float:
    try:
        return float(int(digits, base))
    except OverflowError:
        return math.inf


def _is_whitespace(value: Value) -> bool:
    return isinstance(value, str) and value.strip() == ""


def to_number(value: Value) -> float:
    """Coerce to a float. Non-numeric input becomes 0."""
    number = _parse_number(value)
    return 0.0 if number is None else number


def is_numeric(value: Value) -> bool:
    """Check if a value parses as a number (whitespace does not count)."""
    if _is_whitespace(value):
        return False
    return _parse_number(value) is not None


def _format_float(number: float) -> str:
    if math.isnan(number):
        return "NaN"
    if math.isinf(number):
        return "Infinity" if number > 0 else "-Infinity"
    if number.is_integer() and abs(number) < 1e21:
        return str(int(number))

    text = repr(number)
    if "e" in text:
        mantissa, exponent = text.split("e")
        sign = "-" if exponent.startswith("-") else "+"
        text = f"{mantissa}e{sign}{exponent.lstrip('+-').lstrip('0') or '0'}"
    return text


def to_string(value: Value) -> str:
    """Coerce to the string the language would display."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return _format_float(float(value))
    if isinstance(value, list):
        items = [to_string(item) for item in value]
        if all(len(item) == 1 for item in items):
            return "".join(items)
        return " ".join(items)
    return str(value)


def to_boolean(value: Value) -> bool:
    """Coerce to a boolean: "", "0", "false" and 0 are False."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return not (value == 0 or math.isnan(value))
    if isinstance(value, list):
        return True
    text = str(value)
    return not (text == "" or text == "0" or text.lower() == "false")


def compare(a: Value, b: Value) -> int:
    """Compare two values the way comparison operators do.

    Numeric when both sides parse as numbers, otherwise a case-insensitive
    string comparison.

    Returns:
        Negative, zero or positive like a classic cmp().
    """
    n1 = None if _is_whitespace(a) else _parse_number(a)
    n2 = None if _is_whitespace(b) else _parse_number(b)

    if n1 is None or n2 is None:
        s1 = to_string(a).casefold()
        s2 = to_string(b).casefold()
        if s1 < s2:
            return -1
        if s1 > s2:
            return 1
        return 0

    if n1 == n2:
        return 0
    return -1 if n1 < n2 else 1


def equals(a: Value, b: Value) -> bool:
    return compare(a, b) == 0


def is_whole_number(value: Value) -> bool:
    """Check if a value is an integer, or a string without a decimal point."""
    if isinstance(value, bool):
        return True
    if isinstance(value, (int, float)):
        return float(value).is_integer()
    if isinstance(value, str):
        return "." not in value
    return False


def to_list_index(
    index: Value,
    length: int,
    accept_all: bool = False,
    rng: Optional[random.Random] = None,
) -> int:
    """Resolve a list index argument to a 1-based position.

    Accepts numbers plus the words "last", "random"/"any" and, when
    accept_all is set, "all".

    Returns:
        A position in 1..length, LIST_ALL, or LIST_INVALID.
    """
    if isinstance(index, str):
        word = index.strip().lower()
        if word == "all":
            return LIST_ALL if accept_all else LIST_INVALID
        if word == "last":
            return length if length > 0 else LIST_INVALID
        if word in ("random", "any"):
            if length == 0:
                return LIST_INVALID
            return (rng or random).randint(1, length)

    number = to_number(index)
    if math.isinf(number):
        return LIST_INVALID
    position = math.floor(number)
    if position < 1 or position > length:
        return LIST_INVALID
    return position


def copy_value(value: Value) -> Value:
    """Return a value safe to hand out; lists are copied."""
    if isinstance(value, list):
        return list(value)
    return value


__all__ = [
    "Value",
    "LIST_INVALID",
    "LIST_ALL",
    "to_number",
    "to_string",
    "to_boolean",
    "compare",
    "equals",
    "is_numeric",
    "is_whole_number",
    "to_list_index",
    "copy_value",
]
