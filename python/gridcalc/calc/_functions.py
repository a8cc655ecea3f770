"""Function whitelist and builtin implementations for formula evaluation."""

from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import Any, Callable, ClassVar

from gridcalc._cell import NUMERIC_LITERAL_RE, Scalar, to_text
from gridcalc._utils import CellRange

# ---------------------------------------------------------------------------
# CellError: in-band error values
# ---------------------------------------------------------------------------


class CellError(str):
    """Error value displayed in a cell in place of a result.

    A ``str`` subclass so it renders and serializes like any other text and
    compares equal to its code (``CellError.NAME == "#NAME?"``). Use
    ``CellError.of(code)`` to get the cached instance for a code.
    """

    __slots__ = ()
    _cache: ClassVar[dict[str, CellError]] = {}

    NAME: ClassVar[CellError]
    ERROR: ClassVar[CellError]
    CYCLE: ClassVar[CellError]

    @classmethod
    def of(cls, code: str) -> CellError:
        canon = code.upper()
        if canon not in cls._cache:
            cls._cache[canon] = cls(canon)
        return cls._cache[canon]

    @property
    def code(self) -> str:
        return str.__str__(self)

    def __repr__(self) -> str:
        return f"CellError({self.code!r})"


CellError.NAME = CellError.of("#NAME?")
CellError.ERROR = CellError.of("#ERROR!")
CellError.CYCLE = CellError.of("#CYCLE!")


def is_error(val: Any) -> bool:
    """True for error values produced by evaluation.

    Plain text that happens to spell a code (a literal cell holding
    ``"#ERROR!"``) is not an error.
    """
    return isinstance(val, CellError)


# ---------------------------------------------------------------------------
# RangeToken: an unresolved range argument
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RangeToken:
    """A range reference as written (``"A1:B3"``), not yet expanded.

    Function arguments holding a token are replaced by the values of the
    cells the range covers before the function runs. Outside a function
    call the token stands for its own text.
    """

    text: str
    cells: CellRange

    def __str__(self) -> str:
        return self.text


# ---------------------------------------------------------------------------
# Whitelist: the builtin functions, by category
# ---------------------------------------------------------------------------

FUNCTION_WHITELIST: dict[str, str] = {
    # Aggregate (6)
    "SUM": "aggregate",
    "AVERAGE": "aggregate",
    "MIN": "aggregate",
    "MAX": "aggregate",
    "COUNT": "aggregate",
    "COUNTA": "aggregate",
    # Logic (1)
    "IF": "logic",
    # Text (3)
    "CONCAT": "text",
    "UPPER": "text",
    "LOWER": "text",
    # Math (4)
    "ROUND": "math",
    "ABS": "math",
    "SQRT": "math",
    "POWER": "math",
}


def is_supported(func_name: str) -> bool:
    """Check if a function name is a builtin."""
    return func_name.upper() in FUNCTION_WHITELIST


# ---------------------------------------------------------------------------
# Coercion
# ---------------------------------------------------------------------------


def as_number(value: Any) -> float | None:
    """Numeric reading of *value*, or None when it isn't numeric.

    Numbers pass through; strings count only when they are numeric
    literals (no exponent, no thousands separators).
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str) and not isinstance(value, CellError):
        stripped = value.strip()
        if NUMERIC_LITERAL_RE.match(stripped):
            return float(stripped)
    return None


def _coerce_numeric(values: list[Any]) -> list[float]:
    """Numeric values of *values*, dropping everything non-numeric."""
    result: list[float] = []
    for v in values:
        num = as_number(v)
        if num is not None and not math.isnan(num):
            result.append(num)
    return result


def _number_or(value: Any, default: float) -> float:
    num = as_number(value)
    return default if num is None else num


def _arg(args: list[Any], index: int) -> Any:
    return args[index] if index < len(args) else None


# ---------------------------------------------------------------------------
# Builtin implementations - pure Python, no external deps.
# Each takes the list of resolved, range-expanded argument values.
# ---------------------------------------------------------------------------


def _builtin_sum(args: list[Any]) -> float:
    return sum(_number_or(v, 0.0) for v in args)


def _builtin_average(args: list[Any]) -> float:
    nums = _coerce_numeric(args)
    if not nums:
        return 0.0
    return sum(nums) / len(nums)


def _builtin_min(args: list[Any]) -> float:
    nums = _coerce_numeric(args)
    return min(nums) if nums else 0.0


def _builtin_max(args: list[Any]) -> float:
    nums = _coerce_numeric(args)
    return max(nums) if nums else 0.0


def _builtin_count(args: list[Any]) -> int:
    """COUNT - counts arguments that read as finite numbers."""
    return sum(1 for n in _coerce_numeric(args) if math.isfinite(n))


def _builtin_counta(args: list[Any]) -> int:
    """COUNTA - counts non-empty arguments."""
    return sum(1 for v in args if v is not None and v != "")


def _truthy(value: Any) -> bool:
    if isinstance(value, (int, float)):
        return value != 0 and not math.isnan(value)
    return bool(value)


def _builtin_if(args: list[Any]) -> Any:
    condition = _arg(args, 0)
    branch = _arg(args, 1) if _truthy(condition) else _arg(args, 2)
    return "" if branch is None else branch


def _builtin_concat(args: list[Any]) -> str:
    return "".join(to_text(v) for v in args)


def _builtin_upper(args: list[Any]) -> str:
    return to_text(_arg(args, 0)).upper()


def _builtin_lower(args: list[Any]) -> str:
    return to_text(_arg(args, 0)).lower()


def _builtin_round(args: list[Any]) -> float:
    """ROUND(value, [decimals]) - half away from zero.

    Scales, rounds and unscales on the decimal form of the value so
    ``ROUND(2.345, 2)`` is 2.35 even though 2.345 is stored as 2.34499...
    """
    value = _number_or(_arg(args, 0), 0.0)
    digits = int(_number_or(_arg(args, 1), 0.0))
    if not math.isfinite(value):
        return value
    exact = Decimal(repr(value))
    # Already no finer than the rounding place (also covers huge magnitudes)
    if exact.as_tuple().exponent >= -digits:
        return value
    # Below half a unit of the rounding place
    if exact.adjusted() < -digits - 1:
        return 0.0
    with localcontext() as ctx:
        ctx.prec = len(exact.as_tuple().digits) + abs(digits) + 2
        scaled = exact.scaleb(digits).quantize(Decimal(1), rounding=ROUND_HALF_UP)
        return float(scaled.scaleb(-digits))


def _builtin_abs(args: list[Any]) -> float:
    return abs(_number_or(_arg(args, 0), 0.0))


def _builtin_sqrt(args: list[Any]) -> float:
    value = _number_or(_arg(args, 0), 0.0)
    if value < 0:
        raise ValueError("SQRT: negative argument")
    return math.sqrt(value)


def _builtin_power(args: list[Any]) -> float:
    base = _number_or(_arg(args, 0), 0.0)
    exponent = _number_or(_arg(args, 1), 1.0)
    result = base ** exponent
    if isinstance(result, complex):
        raise ValueError("POWER: negative base with fractional exponent")
    return result


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

_BUILTINS: dict[str, Callable[[list[Scalar]], Any]] = {
    "SUM": _builtin_sum,
    "AVERAGE": _builtin_average,
    "MIN": _builtin_min,
    "MAX": _builtin_max,
    "COUNT": _builtin_count,
    "COUNTA": _builtin_counta,
    "IF": _builtin_if,
    "CONCAT": _builtin_concat,
    "UPPER": _builtin_upper,
    "LOWER": _builtin_lower,
    "ROUND": _builtin_round,
    "ABS": _builtin_abs,
    "SQRT": _builtin_sqrt,
    "POWER": _builtin_power,
}


class FunctionRegistry:
    """Registry of callable function implementations.

    Starts with builtins and can be extended with custom functions. Each
    function receives the list of range-expanded argument values.
    """

    def __init__(self) -> None:
        self._functions: dict[str, Callable[[list[Scalar]], Any]] = dict(_BUILTINS)

    def register(self, name: str, func: Callable[[list[Scalar]], Any]) -> None:
        self._functions[name.upper()] = func

    def get(self, name: str) -> Callable[[list[Scalar]], Any] | None:
        return self._functions.get(name.upper())

    def has(self, name: str) -> bool:
        return name.upper() in self._functions

    @property
    def supported_functions(self) -> frozenset[str]:
        return frozenset(self._functions.keys())
