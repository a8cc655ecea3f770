"""gridcalc - cell formula engine for a lightweight spreadsheet editor.

Usage::

    from gridcalc import commit_edit, create_empty_sheet

    sheet = create_empty_sheet()
    sheet = commit_edit(sheet, 0, 0, "10")
    sheet = commit_edit(sheet, 1, 0, "32")
    sheet = commit_edit(sheet, 2, 0, "=SUM(A1:A2)")
    print(sheet["A3"].computed_value)  # 42

Every operation returns a new :class:`Sheet`; snapshots already handed out
are never modified.
"""

from gridcalc._cell import Cell, CellStyle, Scalar
from gridcalc._editing import apply_style, commit_edit, resize_column
from gridcalc._json import SheetFormatError, dumps, export_json, import_json, loads
from gridcalc._sheet import (
    DEFAULT_COLUMN_COUNT,
    DEFAULT_COLUMN_WIDTH,
    DEFAULT_ROW_COUNT,
    DEFAULT_ROW_HEIGHT,
    Sheet,
    create_empty_sheet,
)
from gridcalc._utils import CellAddress, CellRange, column_index, column_letter, decode_address, encode_address
from gridcalc.calc import CellError, SheetEvaluator, evaluate_formula, recompute_sheet

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "Cell",
    "CellAddress",
    "CellError",
    "CellRange",
    "CellStyle",
    "DEFAULT_COLUMN_COUNT",
    "DEFAULT_COLUMN_WIDTH",
    "DEFAULT_ROW_COUNT",
    "DEFAULT_ROW_HEIGHT",
    "Scalar",
    "Sheet",
    "SheetEvaluator",
    "SheetFormatError",
    "apply_style",
    "column_index",
    "column_letter",
    "commit_edit",
    "create_empty_sheet",
    "decode_address",
    "dumps",
    "encode_address",
    "evaluate_formula",
    "export_json",
    "import_json",
    "loads",
    "recompute_sheet",
    "resize_column",
]
