"""Engine protocol plus the change report produced by a recalculation."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, Union, runtime_checkable

if TYPE_CHECKING:
    from gridcalc._sheet import Sheet

# Computed value as reported in a delta; None means "no cell"
ReportedValue = Union[float, int, str, None]


@dataclass(frozen=True)
class CellDelta:
    """One cell whose computed value differs after an edit."""

    cell_id: str
    old_value: ReportedValue
    new_value: ReportedValue
    formula: str | None = None


@dataclass(frozen=True)
class RecalcResult:
    edits: dict[str, str]
    deltas: tuple[CellDelta, ...]  # row-major
    total_formula_cells: int = 0
    # Formula cells that changed without being edited themselves
    propagated_cells: int = 0
    max_chain_depth: int = 0
    circular_cells: frozenset[str] = frozenset()

    @property
    def changed(self) -> dict[str, ReportedValue]:
        return {d.cell_id: d.new_value for d in self.deltas}

    @property
    def propagation_ratio(self) -> float:
        """Share of formula cells an edit reached, 0.0 with no formulas."""
        total = self.total_formula_cells
        return self.propagated_cells / total if total else 0.0


@runtime_checkable
class CalcEngine(Protocol):
    """Anything that can load a sheet, compute it, and apply edits."""

    def load(self, sheet: Sheet) -> None:
        ...

    def calculate(self) -> dict[str, float | int | str]:
        """Compute every formula cell; returns cell_id -> value."""
        ...

    def recalculate(
        self,
        edits: Mapping[str, str],
        tolerance: float = 1e-10,
    ) -> RecalcResult:
        """Apply ``cell_id -> text`` edits and report what changed."""
        ...
