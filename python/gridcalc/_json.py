"""JSON import/export of sheets.

Document layout::

    {
      "rows": [
        {"A": {"value": "10"}, "B": {"value": "", "formula": "=A1*2"}},
        {},
        {"A": {"value": "total", "style": {"bold": true}}}
      ],
      "metadata": {"rowCount": 100, "columnCount": 26, "exportedAt": "..."}
    }

``rows[n]`` holds row ``n + 1`` keyed by column label. Style keys use the
editor's camelCase names.
"""

from __future__ import annotations

import dataclasses
import datetime
import json
import logging
from typing import Any

from gridcalc._cell import Cell, CellStyle, to_text
from gridcalc._sheet import DEFAULT_COLUMN_COUNT, DEFAULT_ROW_COUNT, Sheet
from gridcalc._utils import column_index, column_letter
from gridcalc.calc import recompute_sheet

logger = logging.getLogger(__name__)

_STYLE_KEYS: dict[str, str] = {
    "bold": "bold",
    "italic": "italic",
    "underline": "underline",
    "strikethrough": "strikethrough",
    "text_align": "textAlign",
    "background_color": "backgroundColor",
    "text_color": "textColor",
}
_STYLE_FIELDS = {v: k for k, v in _STYLE_KEYS.items()}


class SheetFormatError(ValueError):
    """A JSON document that doesn't describe a sheet."""


def _style_to_json(style: CellStyle) -> dict[str, Any]:
    return {
        _STYLE_KEYS[f.name]: getattr(style, f.name)
        for f in dataclasses.fields(style)
        if getattr(style, f.name) is not None
    }


def _style_from_json(data: Any, where: str) -> CellStyle | None:
    if data is None:
        return None
    if not isinstance(data, dict):
        raise SheetFormatError(f"{where}: style must be an object")
    known = {_STYLE_FIELDS[k]: v for k, v in data.items() if k in _STYLE_FIELDS}
    if len(known) != len(data):
        logger.debug("%s: ignoring style keys %s", where, sorted(set(data) - set(_STYLE_FIELDS)))
    style = CellStyle(**known)
    return None if style.is_empty() else style


def export_json(sheet: Sheet, now: datetime.datetime | None = None) -> dict[str, Any]:
    """Row-grouped export of every cell with a value or formula.

    Rows are listed from row 1 through the last row with content; rows
    without content are empty objects so positions survive a round trip.
    """
    by_row: dict[int, dict[str, dict[str, Any]]] = {}
    for cell_id, addr in sorted(sheet.addresses(), key=lambda item: (item[1].row, item[1].col)):
        cell = sheet.cells[cell_id]
        if not cell.value and not cell.formula:
            continue
        entry: dict[str, Any] = {"value": cell.value}
        if cell.formula:
            entry["formula"] = cell.formula
        if cell.has_style:
            entry["style"] = _style_to_json(cell.style)  # type: ignore[arg-type]
        by_row.setdefault(addr.row, {})[column_letter(addr.col)] = entry

    last_row = max(by_row) if by_row else -1
    exported_at = (now or datetime.datetime.now(datetime.timezone.utc)).isoformat(
        timespec="milliseconds"
    )
    return {
        "rows": [by_row.get(r, {}) for r in range(last_row + 1)],
        "metadata": {
            "rowCount": sheet.row_count,
            "columnCount": sheet.column_count,
            "exportedAt": exported_at.replace("+00:00", "Z"),
        },
    }


def import_json(document: Any) -> Sheet:
    """Build a recomputed :class:`Sheet` from an exported document.

    Raises SheetFormatError for documents that don't have the export layout.
    """
    if not isinstance(document, dict):
        raise SheetFormatError("Document must be an object")
    rows = document.get("rows")
    if not isinstance(rows, list):
        raise SheetFormatError("Document has no 'rows' list")
    metadata = document.get("metadata") or {}
    if not isinstance(metadata, dict):
        raise SheetFormatError("'metadata' must be an object")

    cells: dict[str, Cell] = {}
    for row_index, row in enumerate(rows):
        if not isinstance(row, dict):
            raise SheetFormatError(f"rows[{row_index}] must be an object")
        for label, data in row.items():
            where = f"{label}{row_index + 1}"
            try:
                column_index(label)
            except ValueError:
                raise SheetFormatError(f"Invalid column label {label!r} in row {row_index + 1}") from None
            if not isinstance(data, dict):
                raise SheetFormatError(f"{where}: cell must be an object")
            formula = data.get("formula") or None
            if formula is not None and not isinstance(formula, str):
                raise SheetFormatError(f"{where}: formula must be a string")
            cell = Cell(
                value=to_text(data.get("value")),
                formula=formula,
                style=_style_from_json(data.get("style"), where),
            )
            if not cell.is_empty():
                cells[where] = cell

    sheet = Sheet(
        cells=cells,
        row_count=_bound(metadata.get("rowCount"), DEFAULT_ROW_COUNT),
        column_count=_bound(metadata.get("columnCount"), DEFAULT_COLUMN_COUNT),
    )
    return recompute_sheet(sheet)


def _bound(value: Any, default: int) -> int:
    if isinstance(value, int) and not isinstance(value, bool) and value > 0:
        return value
    return default


def dumps(sheet: Sheet, indent: int | None = 2) -> str:
    return json.dumps(export_json(sheet), indent=indent)


def loads(text: str) -> Sheet:
    try:
        document = json.loads(text)
    except json.JSONDecodeError as e:
        raise SheetFormatError(f"Invalid JSON: {e}") from e
    return import_json(document)
