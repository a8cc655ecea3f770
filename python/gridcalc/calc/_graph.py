"""Formula-cell dependency graph: evaluation order and chain depth."""

from __future__ import annotations

from collections import defaultdict, deque
from typing import TYPE_CHECKING

from gridcalc._utils import decode_address
from gridcalc.calc._parser import parse_ranges, parse_references

if TYPE_CHECKING:
    from gridcalc._sheet import Sheet
    from gridcalc._utils import CellRange


class DependencyGraph:
    """Edges between formula cells and the cells they read.

    ``dependencies[c]`` holds the single cells ``c`` reads and ``ranges[c]``
    the blocks it reads, kept as :class:`CellRange` so a large range over a
    sparse sheet costs no more than a small one. ``dependents`` is the
    reverse index for single references only; range readers are found by
    address containment. Referenced cells need not exist.
    """

    __slots__ = ("dependencies", "dependents", "ranges", "formulas")

    def __init__(self) -> None:
        self.dependencies: dict[str, set[str]] = {}
        self.dependents: defaultdict[str, set[str]] = defaultdict(set)
        # Only formula cells with at least one valid range
        self.ranges: dict[str, list[CellRange]] = {}
        # Insertion order is the sheet's mapping order
        self.formulas: dict[str, str] = {}

    def add_formula(self, cell_id: str, formula: str) -> None:
        self.formulas[cell_id] = formula
        reads = set(parse_references(formula))
        self.dependencies[cell_id] = reads
        for ref in reads:
            self.dependents[ref].add(cell_id)
        ranges = parse_ranges(formula)
        if ranges:
            self.ranges[cell_id] = ranges

    def readers_of(self, cell_id: str) -> set[str]:
        """Formula cells that read *cell_id*, directly or through a range."""
        found = set(self.dependents.get(cell_id, ()))
        if self.ranges:
            addr = decode_address(cell_id)
            if addr is not None:
                found.update(
                    reader
                    for reader, ranges in self.ranges.items()
                    if any(addr in rng for rng in ranges)
                )
        return found

    def evaluation_order(self) -> tuple[list[str], set[str]]:
        """Split formula cells into an evaluation order and the cells it can't reach.

        Kahn's algorithm restricted to formula cells. A cell on a cycle, or
        downstream of one, never runs out of pending inputs and ends up in
        the second element. Independent cells keep insertion order.
        """
        rank = {cell: i for i, cell in enumerate(self.formulas)}
        readers = {
            cell: sorted(self.readers_of(cell), key=rank.__getitem__)
            for cell in self.formulas
        }
        pending = dict.fromkeys(self.formulas, 0)
        for cell_readers in readers.values():
            for reader in cell_readers:
                pending[reader] += 1

        ready: deque[str] = deque(c for c in self.formulas if pending[c] == 0)
        order: list[str] = []
        while ready:
            cell = ready.popleft()
            order.append(cell)
            for reader in readers[cell]:
                pending[reader] -= 1
                if pending[reader] == 0:
                    ready.append(reader)

        blocked = set(self.formulas).difference(order)
        return order, blocked

    def max_depth(self, roots: set[str]) -> int:
        """Length of the longest chain of formula cells reading from *roots*."""
        deepest = 0
        frontier = set(roots)
        # Level k holds cells k edges away; a cycle stops at the formula count
        for level in range(1, len(self.formulas) + 1):
            frontier = {reader for cell in frontier for reader in self.readers_of(cell)}
            if not frontier:
                break
            deepest = level
        return deepest

    @classmethod
    def from_sheet(cls, sheet: Sheet) -> DependencyGraph:
        graph = cls()
        for cell_id, cell in sheet.cells.items():
            if cell.is_formula:
                graph.add_formula(cell_id, cell.formula)  # type: ignore[arg-type]
        return graph
