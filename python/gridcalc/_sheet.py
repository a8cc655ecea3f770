"""Sheet snapshot: a sparse mapping of cell ids to cells plus grid bounds."""

from __future__ import annotations

import dataclasses
from collections.abc import Iterator
from dataclasses import dataclass, field

from gridcalc._cell import Cell, Scalar
from gridcalc._utils import CellAddress, decode_address, encode_address

DEFAULT_ROW_COUNT = 100
DEFAULT_COLUMN_COUNT = 26
DEFAULT_COLUMN_WIDTH = 100
DEFAULT_ROW_HEIGHT = 28


@dataclass
class Sheet:
    """A sheet snapshot.

    ``cells`` is sparse: an absent id is an empty cell. ``row_count`` and
    ``column_count`` bound navigation only; any valid id is addressable.
    Snapshots are treated as values: operations that change a sheet return
    a new one.
    """

    cells: dict[str, Cell] = field(default_factory=dict)
    column_widths: dict[int, int] = field(default_factory=dict)
    row_heights: dict[int, int] = field(default_factory=dict)
    row_count: int = DEFAULT_ROW_COUNT
    column_count: int = DEFAULT_COLUMN_COUNT

    def __getitem__(self, cell_id: str) -> Cell | None:
        return self.cells.get(cell_id)

    def __contains__(self, cell_id: object) -> bool:
        return cell_id in self.cells

    def __iter__(self) -> Iterator[str]:
        return iter(self.cells)

    def __len__(self) -> int:
        return len(self.cells)

    def cell(self, row: int, col: int) -> Cell | None:
        return self.cells.get(encode_address(row, col))

    def computed_values(self) -> dict[str, Scalar | None]:
        return {cid: cell.computed_value for cid, cell in self.cells.items()}

    def column_width(self, col: int) -> int:
        return self.column_widths.get(col, DEFAULT_COLUMN_WIDTH)

    def row_height(self, row: int) -> int:
        return self.row_heights.get(row, DEFAULT_ROW_HEIGHT)

    def addresses(self) -> Iterator[tuple[str, CellAddress]]:
        """Yield ``(cell_id, address)`` for every valid id in the mapping."""
        for cell_id in self.cells:
            addr = decode_address(cell_id)
            if addr is not None:
                yield cell_id, addr

    def with_cells(self, cells: dict[str, Cell]) -> Sheet:
        """New snapshot sharing everything but the cell mapping."""
        return dataclasses.replace(
            self,
            cells=cells,
            column_widths=dict(self.column_widths),
            row_heights=dict(self.row_heights),
        )


def create_empty_sheet() -> Sheet:
    return Sheet()


def put_text(cells: dict[str, Cell], cell_id: str, text: str) -> None:
    """Write editor input for *cell_id* into *cells*, keeping its style.

    A cell left with no value, formula or style is removed from the mapping.
    """
    existing = cells.get(cell_id)
    cell = Cell.from_text(text, style=existing.style if existing is not None else None)
    if cell.is_empty():
        cells.pop(cell_id, None)
    else:
        cells[cell_id] = cell
