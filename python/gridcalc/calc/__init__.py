"""gridcalc.calc - Formula evaluation engine for gridcalc sheets."""

from gridcalc.calc._evaluator import SheetEvaluator, evaluate_formula, recompute_sheet
from gridcalc.calc._functions import (
    FUNCTION_WHITELIST,
    CellError,
    FunctionRegistry,
    RangeToken,
    is_error,
    is_supported,
)
from gridcalc.calc._graph import DependencyGraph
from gridcalc.calc._parser import expand_range, parse_range
from gridcalc.calc._protocol import CalcEngine, CellDelta, RecalcResult

__all__ = [
    "CalcEngine",
    "CellDelta",
    "CellError",
    "DependencyGraph",
    "FUNCTION_WHITELIST",
    "FunctionRegistry",
    "RangeToken",
    "RecalcResult",
    "SheetEvaluator",
    "evaluate_formula",
    "expand_range",
    "is_error",
    "is_supported",
    "parse_range",
    "recompute_sheet",
]
