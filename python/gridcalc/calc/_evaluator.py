"""SheetEvaluator: recursive evaluator for cell formulas.

Parsing and evaluation are interleaved: an expression is matched against a
fixed list of forms (string, number, cell reference, range, function call)
and evaluated on the spot, recursing into function arguments. Anything else
goes through the arithmetic fallback, which substitutes references and
embedded calls with their values and hands the remaining digits and
operators to a small recursive-descent parser.

Errors are values: evaluation never raises, it returns a :class:`CellError`.
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from gridcalc._cell import NUMERIC_LITERAL_RE, Cell, Scalar, format_number, literal_value, normalize_number
from gridcalc._sheet import put_text
from gridcalc._utils import CellAddress, decode_address, rowcol_to_a1
from gridcalc.calc._arith import evaluate_arithmetic
from gridcalc.calc._functions import CellError, FunctionRegistry, RangeToken, is_error
from gridcalc.calc._graph import DependencyGraph
from gridcalc.calc._parser import (
    CELL_REF_RE,
    FUNCTION_CALL_RE,
    RANGE_REF_RE,
    STRING_LITERAL_RE,
    expand_range,
    parse_range,
)
from gridcalc.calc._protocol import CellDelta, RecalcResult

if TYPE_CHECKING:
    from gridcalc._sheet import Sheet

logger = logging.getLogger(__name__)

# Everything the arithmetic fallback keeps after substitution
_NON_ARITHMETIC_RE = re.compile(r"[^0-9+\-*/().]")

# Embedded function call start, or a cell reference
_EMBEDDED_RE = re.compile(r"([A-Z]+)\(|[A-Z]+\d+")


# ---------------------------------------------------------------------------
# Expression parsing helpers
# ---------------------------------------------------------------------------


def _is_quote(expr: str, i: int) -> bool:
    """``True`` for a ``"`` at *i* that isn't escaped with a backslash."""
    return expr[i] == '"' and (i == 0 or expr[i - 1] != "\\")


def _find_matching_paren(expr: str, start: int) -> int:
    """Index of the ``')'`` matching the ``'('`` at *expr[start]*, or -1."""
    depth = 1
    i = start + 1
    in_string = False
    while i < len(expr):
        ch = expr[i]
        if _is_quote(expr, i):
            in_string = not in_string
        elif not in_string:
            if ch == "(":
                depth += 1
            elif ch == ")":
                depth -= 1
                if depth == 0:
                    return i
        i += 1
    return -1


def _match_function_call(expr: str) -> tuple[str, str] | None:
    """If *expr* is exactly ``NAME(balanced_args)``, return ``(name, args_str)``.

    Uses balanced parenthesis matching so ``SUM(A1:A5)*2`` is NOT matched
    (there's trailing content after the close-paren).
    """
    m = FUNCTION_CALL_RE.match(expr)
    if not m:
        return None
    open_idx = m.end() - 1
    close_idx = _find_matching_paren(expr, open_idx)
    if close_idx >= 0 and close_idx == len(expr) - 1:
        return (m.group(1), expr[open_idx + 1 : close_idx])
    return None


def _split_top_level_args(args_str: str) -> list[str]:
    """Split on commas at depth 0, outside string literals.

    Pieces are trimmed. An empty piece before a comma is kept; a trailing
    empty piece is dropped (``"1,,2,"`` -> ``["1", "", "2"]``).
    """
    args: list[str] = []
    depth = 0
    in_string = False
    current = ""
    for i, ch in enumerate(args_str):
        if _is_quote(args_str, i):
            in_string = not in_string
            current += ch
        elif not in_string and ch == "(":
            depth += 1
            current += ch
        elif not in_string and ch == ")":
            depth -= 1
            current += ch
        elif not in_string and ch == "," and depth == 0:
            args.append(current.strip())
            current = ""
        else:
            current += ch
    if current.strip():
        args.append(current.strip())
    return args


def _inline(value: Any) -> str:
    """Text to splice into an arithmetic expression for *value*."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return format_number(value)
    return f'"{value}"'


def _finalize(result: Any) -> Scalar:
    """Normalize a function result into a displayable scalar."""
    if result is None:
        return ""
    if isinstance(result, bool):
        return int(result)
    if isinstance(result, float):
        if not math.isfinite(result):
            return CellError.ERROR
        return normalize_number(result)
    if isinstance(result, (int, str)):
        return result
    return str(result)


def _values_differ(a: Any, b: Any, tolerance: float) -> bool:
    """Check if two values differ beyond tolerance."""
    if a is None and b is None:
        return False
    if a is None or b is None:
        return True
    a_num = isinstance(a, (int, float)) and not isinstance(a, bool)
    b_num = isinstance(b, (int, float)) and not isinstance(b, bool)
    if a_num and b_num:
        return abs(float(a) - float(b)) > tolerance
    return a_num != b_num or a != b


# ---------------------------------------------------------------------------
# Evaluator
# ---------------------------------------------------------------------------


class SheetEvaluator:
    """Evaluates the formulas of a :class:`~gridcalc.Sheet`.

    Usage::

        evaluator = SheetEvaluator()
        evaluator.load(sheet)
        results = evaluator.calculate()
        resolved = evaluator.snapshot()
        recalc = evaluator.recalculate({"A1": "42"})
    """

    def __init__(self, registry: FunctionRegistry | None = None) -> None:
        self._functions = registry if registry is not None else FunctionRegistry()
        self._sheet: Sheet | None = None
        self._cells: dict[str, Cell] = {}
        self._addresses: dict[str, CellAddress] = {}
        self._graph = DependencyGraph()
        self._circular: set[str] = set()
        self._loaded = False

    # ------------------------------------------------------------------
    # Loading and whole-sheet passes
    # ------------------------------------------------------------------

    def load(self, sheet: Sheet) -> None:
        """Copy the sheet's cells, type every literal, build the dependency graph."""
        self._bind(sheet)
        self._resolve_literals()
        self._graph = DependencyGraph.from_sheet(sheet)
        self._loaded = True

    def calculate(self) -> dict[str, Scalar]:
        """Evaluate every formula cell in dependency order.

        Cells on (or downstream of) a circular reference are not evaluated;
        they get :attr:`CellError.CYCLE`. Returns cell_id -> computed value
        for all formula cells.
        """
        if not self._loaded:
            raise RuntimeError("Call load() before calculate()")

        order, blocked = self._graph.evaluation_order()
        self._circular = blocked
        results: dict[str, Scalar] = {}

        for cell_id in order:
            formula = self._graph.formulas[cell_id]
            value = self.evaluate(formula)
            self._cells[cell_id] = self._cells[cell_id].with_computed(value)
            results[cell_id] = value

        if blocked:
            logger.debug("Circular reference involving %s", sorted(blocked))
        for cell_id in blocked:
            self._cells[cell_id] = self._cells[cell_id].with_computed(CellError.CYCLE)
            results[cell_id] = CellError.CYCLE

        return results

    def recalculate(
        self,
        edits: Mapping[str, str],
        tolerance: float = 1e-10,
    ) -> RecalcResult:
        """Commit raw text edits (``{"A1": "=B1*2"}``) and recompute the sheet.

        The whole sheet is recomputed; the result reports every cell whose
        value changed.
        """
        if not self._loaded or self._sheet is None:
            raise RuntimeError("Call load() before recalculate()")

        old_values = {cid: cell.computed_value for cid, cell in self._cells.items()}

        cells = dict(self._cells)
        for cell_id, text in edits.items():
            if decode_address(cell_id) is None:
                raise ValueError(f"Invalid cell id: {cell_id!r}")
            put_text(cells, cell_id, text)

        self.load(self._sheet.with_cells(cells))
        self.calculate()

        deltas: list[CellDelta] = []
        propagated = 0
        for cell_id in sorted(set(old_values) | set(self._cells), key=self._sort_key):
            cell = self._cells.get(cell_id)
            old_val = old_values.get(cell_id)
            new_val = cell.computed_value if cell is not None else None
            if not _values_differ(old_val, new_val, tolerance):
                continue
            formula = cell.formula if cell is not None else None
            if formula and cell_id not in edits:
                propagated += 1
            deltas.append(CellDelta(
                cell_id=cell_id,
                old_value=old_val,
                new_value=new_val,
                formula=formula,
            ))

        return RecalcResult(
            edits=dict(edits),
            deltas=tuple(deltas),
            total_formula_cells=len(self._graph.formulas),
            propagated_cells=propagated,
            max_chain_depth=self._graph.max_depth(set(edits)),
            circular_cells=frozenset(self._circular),
        )

    def snapshot(self) -> Sheet:
        """The loaded sheet with every cell's current computed value."""
        if self._sheet is None:
            raise RuntimeError("Call load() before snapshot()")
        return self._sheet.with_cells(dict(self._cells))

    def _bind(self, sheet: Sheet) -> None:
        self._sheet = sheet
        self._cells = dict(sheet.cells)
        self._addresses = {}
        for cell_id, addr in sheet.addresses():
            # Only canonical ids are reachable from references
            if rowcol_to_a1(addr.row, addr.col) == cell_id:
                self._addresses[cell_id] = addr
        self._circular = set()

    def _resolve_literals(self) -> None:
        for cell_id, cell in self._cells.items():
            if not cell.is_formula:
                self._cells[cell_id] = cell.with_computed(literal_value(cell.value))

    def _sort_key(self, cell_id: str) -> tuple[int, int, str]:
        addr = decode_address(cell_id)
        if addr is None:
            return (-1, -1, cell_id)
        return (addr.row, addr.col, cell_id)

    # ------------------------------------------------------------------
    # Formula evaluation (recursive descent)
    # ------------------------------------------------------------------

    def evaluate(self, text: str) -> Scalar:
        """Evaluate cell text against the current cell values.

        Text that doesn't start with ``=`` is returned unchanged.
        """
        if not text.startswith("="):
            return text
        try:
            result = self._eval_expr(text[1:])
        except Exception as e:
            logger.debug("Error evaluating %r: %s", text, e)
            return CellError.ERROR
        if isinstance(result, RangeToken):
            # A bare range has no single value; it shows as written
            return str(result)
        return result

    def _eval_expr(self, expr: str) -> Scalar | RangeToken:
        """Evaluate an expression (no leading ``=``).

        Dispatch order (first match wins):

        1. Empty expression
        2. String literal
        3. Numeric literal
        4. Cell reference
        5. Range reference (as an unexpanded token)
        6. Function call ``NAME(balanced_args)``
        7. Arithmetic fallback
        """
        expr = expr.strip()
        if not expr:
            return expr

        # 2. String literal, content kept verbatim
        if expr.startswith('"') and expr.endswith('"'):
            return expr[1:-1]

        # 3. Numeric literal
        if NUMERIC_LITERAL_RE.match(expr):
            return normalize_number(float(expr))

        # 4. Cell reference
        if CELL_REF_RE.match(expr):
            return self._resolve_cell_ref(expr)

        # 5. Range reference
        if RANGE_REF_RE.match(expr):
            try:
                return RangeToken(expr, parse_range(expr))
            except ValueError:
                return expr

        # 6. Function call
        func = _match_function_call(expr)
        if func:
            return self._eval_function(func[0], func[1])

        # 7. Arithmetic over substituted references
        return self._eval_arithmetic(expr)

    # ------------------------------------------------------------------
    # Atom / argument resolution
    # ------------------------------------------------------------------

    def _resolve_cell_ref(self, ref: str) -> Scalar:
        """Current value of a referenced cell, ``""`` when it is absent."""
        cell = self._cells.get(ref)
        if cell is None:
            return ""
        return cell.current_value()

    def _expand_range(self, token: RangeToken) -> list[Scalar]:
        """Values of the present cells in a range, row-major.

        Absent cells contribute nothing.
        """
        rng = token.cells
        n_rows, n_cols = rng.shape
        if n_rows * n_cols <= len(self._addresses):
            return [
                self._cells[cell_id].current_value()
                for cell_id in expand_range(token.text)
                if cell_id in self._cells
            ]
        # Range larger than the sheet: walk the present cells instead
        hits = sorted(
            (addr.row, addr.col, cell_id)
            for cell_id, addr in self._addresses.items()
            if addr in rng
        )
        return [self._cells[cell_id].current_value() for _r, _c, cell_id in hits]

    # ------------------------------------------------------------------
    # Function dispatch
    # ------------------------------------------------------------------

    def _eval_function(self, func_name: str, args_str: str) -> Scalar:
        """Evaluate a function call; range arguments are expanded in place."""
        func = self._functions.get(func_name)
        if func is None:
            logger.debug("Unknown function: %s", func_name)
            return CellError.NAME

        args: list[Scalar] = []
        for raw in _split_top_level_args(args_str):
            value = self._eval_expr(raw)
            if isinstance(value, RangeToken):
                args.extend(self._expand_range(value))
            else:
                args.append(value)

        try:
            result = func(args)
        except Exception as e:
            logger.debug("Error evaluating %s: %s", func_name, e)
            return CellError.ERROR
        return _finalize(result)

    # ------------------------------------------------------------------
    # Arithmetic fallback
    # ------------------------------------------------------------------

    def _eval_arithmetic(self, expr: str) -> Scalar:
        """Substitute references and embedded calls, then evaluate the arithmetic.

        Non-numeric values are spliced in quoted and then stripped along with
        every other character outside ``0-9 + - * / ( ) .``. When nothing
        survives the stripping, the expression is returned as plain text.
        Quoted text is literal: references inside it are not substituted.
        """
        quoted = [(q.start(), q.end()) for q in STRING_LITERAL_RE.finditer(expr)]
        parts: list[str] = []
        pos = 0
        while True:
            m = _EMBEDDED_RE.search(expr, pos)
            if m is None:
                parts.append(expr[pos:])
                break
            span_end = next((e for s, e in quoted if s <= m.start() < e), None)
            if span_end is not None:
                parts.append(expr[pos:span_end])
                pos = span_end
                continue
            parts.append(expr[pos : m.start()])
            if m.group(1) is not None:
                close = _find_matching_paren(expr, m.end() - 1)
                if close < 0:
                    parts.append(expr[m.start() :])
                    break
                value: Any = self._eval_expr(expr[m.start() : close + 1])
                pos = close + 1
            else:
                value = self._resolve_cell_ref(m.group(0))
                pos = m.end()
            if is_error(value):
                return value
            parts.append(_inline(value))

        sanitized = _NON_ARITHMETIC_RE.sub("", "".join(parts))
        if not sanitized:
            return expr

        try:
            result = evaluate_arithmetic(sanitized)
        except (ArithmeticError, ValueError, RecursionError) as e:
            logger.debug("Cannot evaluate arithmetic %r (from %r): %s", sanitized, expr, e)
            return CellError.ERROR
        if not math.isfinite(result):
            return CellError.ERROR
        return normalize_number(result)


# ---------------------------------------------------------------------------
# Module-level entry points
# ---------------------------------------------------------------------------


def evaluate_formula(text: str, sheet: Sheet, registry: FunctionRegistry | None = None) -> Scalar:
    """Evaluate *text* against *sheet*'s current values without recomputing it."""
    evaluator = SheetEvaluator(registry)
    evaluator._bind(sheet)  # noqa: SLF001
    return evaluator.evaluate(text)


def recompute_sheet(sheet: Sheet, registry: FunctionRegistry | None = None) -> Sheet:
    """Return a new, fully resolved copy of *sheet*. The input is not modified."""
    evaluator = SheetEvaluator(registry)
    evaluator.load(sheet)
    evaluator.calculate()
    return evaluator.snapshot()
