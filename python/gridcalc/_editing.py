"""Edit operations the editor UI calls; each returns a new, recomputed sheet."""

from __future__ import annotations

import dataclasses

from gridcalc._cell import Cell, CellStyle
from gridcalc._sheet import Sheet, put_text
from gridcalc._utils import encode_address
from gridcalc.calc import recompute_sheet


def commit_edit(sheet: Sheet, row: int, col: int, text: str) -> Sheet:
    """Commit editor input for one cell and recompute the sheet.

    A leading ``=`` makes *text* the cell's formula and clears its value;
    anything else is a literal and clears the formula. The cell's style is
    kept. Clearing an unstyled cell removes it from the mapping.
    """
    cells = dict(sheet.cells)
    put_text(cells, encode_address(row, col), text)
    return recompute_sheet(sheet.with_cells(cells))


def apply_style(sheet: Sheet, row: int, col: int, **changes: object) -> Sheet:
    """Merge style attributes (``bold=True``, ``text_align="center"``...) into a cell."""
    cell_id = encode_address(row, col)
    cells = dict(sheet.cells)
    cell = cells.get(cell_id, Cell())
    style = (cell.style or CellStyle()).merged(**changes)
    cell = dataclasses.replace(cell, style=style)
    if cell.is_empty():
        cells.pop(cell_id, None)
    else:
        cells[cell_id] = cell
    return recompute_sheet(sheet.with_cells(cells))


def resize_column(sheet: Sheet, col: int, width: int) -> Sheet:
    if width <= 0:
        raise ValueError(f"Column width must be positive: {width}")
    new = sheet.with_cells(dict(sheet.cells))
    new.column_widths[col] = width
    return new
