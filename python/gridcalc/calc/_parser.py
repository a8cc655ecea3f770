"""Formula text scanning: reference extraction and range expansion."""

from __future__ import annotations

import re

from gridcalc._utils import CellAddress, CellRange, a1_to_rowcol, rowcol_to_a1

# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------

_CELL_REF = r"[A-Z]+\d+"

# Whole-expression matches used by the evaluator's dispatch
CELL_REF_RE = re.compile(rf"^{_CELL_REF}$")
RANGE_REF_RE = re.compile(rf"^{_CELL_REF}:{_CELL_REF}$")
FUNCTION_CALL_RE = re.compile(r"^([A-Z]+)\(")

# Embedded matches used for scanning
_SINGLE_REF_RE = re.compile(_CELL_REF)
_RANGE_REF_RE = re.compile(rf"({_CELL_REF}):({_CELL_REF})")

# String literals, honouring backslash-escaped quotes
STRING_LITERAL_RE = re.compile(r'"(?:[^"\\]|\\.)*"')


def strip_strings(formula: str) -> str:
    """Remove string literals so refs inside quotes aren't matched."""
    return STRING_LITERAL_RE.sub("", formula)


# ---------------------------------------------------------------------------
# Reference extraction
# ---------------------------------------------------------------------------


def parse_references(formula: str) -> list[str]:
    """Extract single cell references, in order of first appearance.

    Endpoints of range references are not included - use
    :func:`parse_range_references` for those.
    """
    clean = strip_strings(formula)
    range_spans = [(m.start(), m.end()) for m in _RANGE_REF_RE.finditer(clean)]

    singles = (
        m.group(0)
        for m in _SINGLE_REF_RE.finditer(clean)
        if not any(s <= m.start() < e for s, e in range_spans)
    )
    return list(dict.fromkeys(singles))


def parse_range_references(formula: str) -> list[str]:
    """Extract range references like ``"A1:B5"``."""
    clean = strip_strings(formula)
    return list(dict.fromkeys(m.group(0) for m in _RANGE_REF_RE.finditer(clean)))


# ---------------------------------------------------------------------------
# Range expansion
# ---------------------------------------------------------------------------


def parse_range(range_ref: str) -> CellRange:
    """``"B3:A1"`` -> normalized :class:`CellRange` covering A1:B3."""
    parts = range_ref.split(":")
    if len(parts) != 2:
        raise ValueError(f"Invalid range: {range_ref!r}")
    start = CellAddress(*a1_to_rowcol(parts[0].strip()))
    end = CellAddress(*a1_to_rowcol(parts[1].strip()))
    return CellRange.between(start, end)


def expand_range(range_ref: str) -> list[str]:
    """Expand ``"A1:B2"`` into ``["A1", "B1", "A2", "B2"]`` (row-major)."""
    rng = parse_range(range_ref)
    return [rowcol_to_a1(a.row, a.col) for a in rng.addresses()]


def parse_ranges(formula: str) -> list[CellRange]:
    """Range references of a formula as :class:`CellRange` blocks, unexpanded.

    Ranges with an endpoint that is not a cell id (row 0, as in ``A0:A3``)
    are skipped; the evaluator treats those as plain text.
    """
    ranges: list[CellRange] = []
    for text in parse_range_references(formula):
        try:
            ranges.append(parse_range(text))
        except ValueError:
            continue
    return ranges
