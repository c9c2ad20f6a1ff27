"""Unit tests for the value model coercions."""

import math
import random

import pytest

from blockvm.src.vm.state.value import (
    LIST_ALL,
    LIST_INVALID,
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


# =============================================================================
# to_number
# =============================================================================


class TestToNumber:
    """Tests for numeric coercion."""

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("12", 12.0),
            (" 3.5 ", 3.5),
            ("1e3", 1000.0),
            (".5", 0.5),
            ("-7", -7.0),
            ("0x1F", 31.0),
            ("0b101", 5.0),
            ("0o17", 15.0),
            (True, 1.0),
            (False, 0.0),
            (4, 4.0),
        ],
    )
    def test_parses_numeric_values(self, value, expected) -> None:
        assert to_number(value) == expected

    @pytest.mark.parametrize("value", ["", "abc", "12abc", "nan", float("nan")])
    def test_non_numeric_becomes_zero(self, value) -> None:
        assert to_number(value) == 0.0

    def test_infinity_words(self) -> None:
        assert to_number("Infinity") == math.inf
        assert to_number("-Infinity") == -math.inf

    @pytest.mark.parametrize("prefix, digit", [("0x", "f"), ("0o", "7"), ("0b", "1")])
    def test_oversized_integer_literals_become_infinity(self, prefix, digit) -> None:
        """Literals beyond the float range saturate instead of raising."""
        text = prefix + digit * 4000

        assert to_number(text) == math.inf
        assert is_numeric(text) is True

    def test_whitespace_is_not_numeric(self) -> None:
        """Whitespace coerces to 0 but does not count as a number."""
        assert to_number("   ") == 0.0
        assert is_numeric("   ") is False
        assert is_numeric("42") is True


# =============================================================================
# to_string
# =============================================================================


class TestToString:
    """Tests for display-string coercion."""

    @pytest.mark.parametrize(
        "value, expected",
        [
            (3.0, "3"),
            (0.5, "0.5"),
            (-0.0, "0"),
            (True, "true"),
            (False, "false"),
            (math.inf, "Infinity"),
            (-math.inf, "-Infinity"),
            (math.nan, "NaN"),
            (1e21, "1e+21"),
            (1e-7, "1e-7"),
            ("text", "text"),
        ],
    )
    def test_scalars(self, value, expected) -> None:
        assert to_string(value) == expected

    def test_list_of_single_characters_joins_without_spaces(self) -> None:
        assert to_string(["a", "b", "c"]) == "abc"
        assert to_string([1.0, 2.0]) == "12"

    def test_list_with_longer_items_joins_with_spaces(self) -> None:
        assert to_string(["ab", "c"]) == "ab c"


# =============================================================================
# to_boolean
# =============================================================================


class TestToBoolean:
    """Tests for boolean coercion."""

    @pytest.mark.parametrize("value", ["", "0", "false", "FALSE", 0.0, math.nan, False])
    def test_falsy_values(self, value) -> None:
        assert to_boolean(value) is False

    @pytest.mark.parametrize("value", ["hello", "0.0", "true", 1.0, -2.0, True, []])
    def test_truthy_values(self, value) -> None:
        assert to_boolean(value) is True


# =============================================================================
# Comparison
# =============================================================================


class TestCompare:
    """Tests for comparison and equality."""

    def test_numeric_strings_compare_as_numbers(self) -> None:
        assert compare("10", "9") > 0
        assert compare(2.0, "10") < 0

    def test_strings_compare_case_insensitively(self) -> None:
        assert compare("apple", "Banana") < 0
        assert compare("abc", "ABC") == 0

    def test_equality_across_types(self) -> None:
        assert equals(1.0, "1.0") is True
        assert equals("1", True) is True
        assert equals("hello", "HELLO") is True
        assert equals("hello", "world") is False

    def test_whitespace_does_not_equal_zero(self) -> None:
        assert equals("", 0.0) is False
        assert equals(" ", 0.0) is False


class TestIsWholeNumber:
    """Tests for the integer check used by pick random."""

    def test_whole_values(self) -> None:
        assert is_whole_number("5") is True
        assert is_whole_number(5.0) is True

    def test_fractional_values(self) -> None:
        assert is_whole_number("5.0") is False
        assert is_whole_number(2.5) is False


# =============================================================================
# List indices
# =============================================================================


class TestToListIndex:
    """Tests for list index resolution."""

    def test_numeric_positions(self) -> None:
        assert to_list_index(2, 3) == 2
        assert to_list_index(2.7, 3) == 2
        assert to_list_index("3", 3) == 3

    def test_out_of_range_is_invalid(self) -> None:
        assert to_list_index(0, 3) == LIST_INVALID
        assert to_list_index(4, 3) == LIST_INVALID
        assert to_list_index("nonsense", 3) == LIST_INVALID
        assert to_list_index(math.inf, 3) == LIST_INVALID

    def test_last(self) -> None:
        assert to_list_index("last", 3) == 3
        assert to_list_index("last", 0) == LIST_INVALID

    def test_all_only_when_accepted(self) -> None:
        assert to_list_index("all", 3, accept_all=True) == LIST_ALL
        assert to_list_index("all", 3) == LIST_INVALID

    def test_random_uses_supplied_generator(self) -> None:
        rng = random.Random(7)
        picks = {to_list_index("random", 5, rng=rng) for _ in range(50)}
        assert picks <= {1, 2, 3, 4, 5}
        assert to_list_index("any", 0, rng=rng) == LIST_INVALID


class TestCopyValue:
    def test_lists_are_copied(self) -> None:
        original = ["a", "b"]
        copied = copy_value(original)
        copied.append("c")
        assert original == ["a", "b"]

    def test_scalars_pass_through(self) -> None:
        assert copy_value("x") == "x"
