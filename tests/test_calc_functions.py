"""Tests for gridcalc.calc function registry and builtins."""

from __future__ import annotations

import math

import pytest

from gridcalc.calc._functions import (
    _BUILTINS,
    FUNCTION_WHITELIST,
    CellError,
    FunctionRegistry,
    as_number,
    is_error,
    is_supported,
)


class TestWhitelist:
    def test_whitelist_has_14_functions(self) -> None:
        assert len(FUNCTION_WHITELIST) == 14

    def test_whitelist_matches_builtins(self) -> None:
        assert set(FUNCTION_WHITELIST) == set(_BUILTINS)

    def test_all_categories_represented(self) -> None:
        assert set(FUNCTION_WHITELIST.values()) == {"aggregate", "logic", "text", "math"}

    def test_is_supported_case_insensitive(self) -> None:
        assert is_supported("sum")
        assert is_supported("SUM")
        assert not is_supported("VLOOKUP")


class TestFunctionRegistry:
    def test_builtins_registered(self) -> None:
        reg = FunctionRegistry()
        assert reg.has("SUM")
        assert reg.has("IF")
        assert reg.has("CONCAT")

    def test_custom_registration(self) -> None:
        reg = FunctionRegistry()
        reg.register("answer", lambda args: 42)
        assert reg.has("ANSWER")
        assert reg.get("ANSWER")([]) == 42

    def test_registries_are_independent(self) -> None:
        reg = FunctionRegistry()
        reg.register("MYFUNC", lambda args: 1)
        assert not FunctionRegistry().has("MYFUNC")

    def test_unknown_is_none(self) -> None:
        assert FunctionRegistry().get("NOPE") is None

    def test_supported_functions_property(self) -> None:
        funcs = FunctionRegistry().supported_functions
        assert isinstance(funcs, frozenset)
        assert "POWER" in funcs


class TestCellError:
    def test_equals_code(self) -> None:
        assert CellError.NAME == "#NAME?"
        assert CellError.ERROR == "#ERROR!"
        assert CellError.CYCLE == "#CYCLE!"

    def test_cached_instances(self) -> None:
        assert CellError.of("#name?") is CellError.NAME

    def test_is_str(self) -> None:
        assert isinstance(CellError.ERROR, str)
        assert f"{CellError.ERROR}" == "#ERROR!"

    def test_is_error(self) -> None:
        assert is_error(CellError.NAME)
        assert is_error(CellError.of("#error!"))
        assert not is_error("#hashtag")
        assert not is_error(3)

    def test_text_spelling_a_code_is_not_an_error(self) -> None:
        assert not is_error("#ERROR!")


class TestCoercion:
    @pytest.mark.parametrize("value, expected", [
        (3, 3.0),
        (2.5, 2.5),
        ("4", 4.0),
        (" -1.5 ", -1.5),
        (".5", 0.5),
        ("1e3", None),
        ("1,000", None),
        ("1.", None),
        ("abc", None),
        ("", None),
        (None, None),
        (CellError.ERROR, None),
    ])
    def test_as_number(self, value: object, expected: float | None) -> None:
        assert as_number(value) == expected


class TestBuiltinSUM:
    def test_basic(self) -> None:
        assert _BUILTINS["SUM"]([1, 2, 3]) == 6.0

    def test_numeric_strings(self) -> None:
        assert _BUILTINS["SUM"](["1", "2.5"]) == 3.5

    def test_non_numeric_counts_as_zero(self) -> None:
        assert _BUILTINS["SUM"]([1, "", "text", "12abc", 3]) == 4.0

    def test_empty(self) -> None:
        assert _BUILTINS["SUM"]([]) == 0.0


class TestBuiltinAVERAGE:
    def test_basic(self) -> None:
        assert _BUILTINS["AVERAGE"]([2, 4, 6]) == 4.0

    def test_non_numeric_excluded(self) -> None:
        assert _BUILTINS["AVERAGE"](["x", 4]) == 4.0

    def test_empty_string_excluded(self) -> None:
        assert _BUILTINS["AVERAGE"](["", 1, 3]) == 2.0

    def test_nothing_numeric(self) -> None:
        assert _BUILTINS["AVERAGE"](["a", "b"]) == 0.0
        assert _BUILTINS["AVERAGE"]([]) == 0.0


class TestBuiltinMINMAX:
    def test_min(self) -> None:
        assert _BUILTINS["MIN"]([3, "1", -2, "x"]) == -2.0

    def test_max(self) -> None:
        assert _BUILTINS["MAX"]([3, "10", -2, "x"]) == 10.0

    def test_no_numeric_is_zero(self) -> None:
        assert _BUILTINS["MIN"](["x"]) == 0.0
        assert _BUILTINS["MAX"]([]) == 0.0

    def test_non_numeric_not_treated_as_zero(self) -> None:
        assert _BUILTINS["MIN"]([5, "x"]) == 5.0


class TestBuiltinCOUNT:
    def test_count_numbers_only(self) -> None:
        assert _BUILTINS["COUNT"]([1, "2", "x", "", 3.5]) == 3

    def test_counta_non_empty(self) -> None:
        assert _BUILTINS["COUNTA"]([1, "2", "x", "", None, 0]) == 4


class TestBuiltinIF:
    def test_true_branch(self) -> None:
        assert _BUILTINS["IF"]([1, "yes", "no"]) == "yes"

    def test_false_branch(self) -> None:
        assert _BUILTINS["IF"]([0, "yes", "no"]) == "no"

    def test_string_conditions(self) -> None:
        assert _BUILTINS["IF"](["x", "yes", "no"]) == "yes"
        assert _BUILTINS["IF"](["", "yes", "no"]) == "no"
        # Only the empty string is falsy among strings
        assert _BUILTINS["IF"](["0", "yes", "no"]) == "yes"

    def test_missing_branch_is_empty(self) -> None:
        assert _BUILTINS["IF"]([0, "yes"]) == ""
        assert _BUILTINS["IF"]([1]) == ""

    def test_numeric_branch_kept(self) -> None:
        assert _BUILTINS["IF"]([2, 10, 20]) == 10


class TestBuiltinText:
    def test_concat(self) -> None:
        assert _BUILTINS["CONCAT"](["a", 1, 2.5, "b"]) == "a12.5b"

    def test_concat_integral_float(self) -> None:
        assert _BUILTINS["CONCAT"]([3.0, "x"]) == "3x"

    def test_upper(self) -> None:
        assert _BUILTINS["UPPER"](["hello"]) == "HELLO"

    def test_lower(self) -> None:
        assert _BUILTINS["LOWER"](["HeLLo"]) == "hello"

    def test_first_argument_only(self) -> None:
        assert _BUILTINS["UPPER"](["a", "b"]) == "A"

    def test_missing_argument(self) -> None:
        assert _BUILTINS["UPPER"]([]) == ""
        assert _BUILTINS["LOWER"]([]) == ""

    def test_number_argument(self) -> None:
        assert _BUILTINS["UPPER"]([0]) == "0"


class TestBuiltinROUND:
    def test_default_digits(self) -> None:
        assert _BUILTINS["ROUND"]([3.14159]) == 3.0

    def test_two_digits(self) -> None:
        assert _BUILTINS["ROUND"]([3.14159, 2]) == 3.14

    def test_half_away_from_zero(self) -> None:
        assert _BUILTINS["ROUND"]([2.345, 2]) == 2.35
        assert _BUILTINS["ROUND"]([-2.345, 2]) == -2.35
        assert _BUILTINS["ROUND"]([2.5]) == 3.0
        assert _BUILTINS["ROUND"]([-2.5]) == -3.0
        assert _BUILTINS["ROUND"]([1.005, 2]) == 1.01

    def test_negative_digits(self) -> None:
        assert _BUILTINS["ROUND"]([1250, -2]) == 1300.0

    def test_string_arguments(self) -> None:
        assert _BUILTINS["ROUND"](["2.5", "0"]) == 3.0

    def test_non_numeric_is_zero(self) -> None:
        assert _BUILTINS["ROUND"](["x", 2]) == 0.0

    def test_large_magnitudes(self) -> None:
        assert _BUILTINS["ROUND"]([1e26, 2]) == 1e26
        assert _BUILTINS["ROUND"]([1e20, 10]) == 1e20
        assert _BUILTINS["ROUND"]([123456789012345.67, 1]) == 123456789012345.7
        assert _BUILTINS["ROUND"]([-1.5e300, -2]) == -1.5e300

    def test_more_digits_than_the_value_has(self) -> None:
        assert _BUILTINS["ROUND"]([1.5, 400]) == 1.5

    def test_below_rounding_place(self) -> None:
        assert _BUILTINS["ROUND"]([0.0004, 2]) == 0.0
        assert _BUILTINS["ROUND"]([0.005, 2]) == 0.01
        assert _BUILTINS["ROUND"]([7, -400]) == 0.0


class TestBuiltinMath:
    def test_abs(self) -> None:
        assert _BUILTINS["ABS"]([-5]) == 5.0
        assert _BUILTINS["ABS"](["x"]) == 0.0

    def test_sqrt(self) -> None:
        assert _BUILTINS["SQRT"]([16]) == 4.0
        assert _BUILTINS["SQRT"]([]) == 0.0

    def test_sqrt_negative_raises(self) -> None:
        with pytest.raises(ValueError, match="negative"):
            _BUILTINS["SQRT"]([-4])

    def test_power(self) -> None:
        assert _BUILTINS["POWER"]([2, 10]) == 1024.0

    def test_power_zero_exponent(self) -> None:
        assert _BUILTINS["POWER"]([5, 0]) == 1.0

    def test_power_defaults(self) -> None:
        assert _BUILTINS["POWER"]([7]) == 7.0
        assert _BUILTINS["POWER"](["x", "y"]) == 0.0

    def test_power_fractional(self) -> None:
        assert math.isclose(_BUILTINS["POWER"]([27, 1 / 3]), 3.0)

    def test_power_negative_base_fractional_raises(self) -> None:
        with pytest.raises(ValueError):
            _BUILTINS["POWER"]([-8, 0.5])
