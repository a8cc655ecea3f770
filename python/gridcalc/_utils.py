"""Cell addressing: zero-based (row, col) pairs and their "A1" identifiers."""

from __future__ import annotations

import re
from dataclasses import dataclass

_CELL_ID_RE = re.compile(r"^([A-Z]+)([0-9]+)$")


@dataclass(frozen=True)
class CellAddress:
    """Zero-based cell position."""

    row: int
    col: int


@dataclass(frozen=True)
class CellRange:
    """Rectangular block of cells, normalized so ``start`` is top-left."""

    start: CellAddress
    end: CellAddress

    @classmethod
    def between(cls, a: CellAddress, b: CellAddress) -> CellRange:
        return cls(
            CellAddress(min(a.row, b.row), min(a.col, b.col)),
            CellAddress(max(a.row, b.row), max(a.col, b.col)),
        )

    @property
    def shape(self) -> tuple[int, int]:
        return (self.end.row - self.start.row + 1, self.end.col - self.start.col + 1)

    def __contains__(self, addr: object) -> bool:
        if not isinstance(addr, CellAddress):
            return False
        return (
            self.start.row <= addr.row <= self.end.row
            and self.start.col <= addr.col <= self.end.col
        )

    def addresses(self) -> list[CellAddress]:
        """Row-major list of every address in the block."""
        return [
            CellAddress(r, c)
            for r in range(self.start.row, self.end.row + 1)
            for c in range(self.start.col, self.end.col + 1)
        ]


def column_letter(col: int) -> str:
    """Zero-based column index -> letter block (0 -> "A", 26 -> "AA")."""
    if col < 0:
        raise ValueError(f"Column index must be non-negative: {col}")
    letters = ""
    n = col
    while n >= 0:
        letters = chr(ord("A") + n % 26) + letters
        n = n // 26 - 1
    return letters


def column_index(letters: str) -> int:
    """Letter block -> zero-based column index (bijective base 26)."""
    if not letters or not letters.isascii() or not letters.isalpha() or not letters.isupper():
        raise ValueError(f"Invalid column label: {letters!r}")
    n = 0
    for ch in letters:
        n = n * 26 + (ord(ch) - ord("A") + 1)
    return n - 1


def encode_address(row: int, col: int) -> str:
    """``encode_address(0, 0)`` -> ``"A1"``."""
    if row < 0:
        raise ValueError(f"Row index must be non-negative: {row}")
    return f"{column_letter(col)}{row + 1}"


def decode_address(cell_id: str) -> CellAddress | None:
    """``"A1"`` -> ``CellAddress(0, 0)``; None for anything that isn't a cell id."""
    m = _CELL_ID_RE.match(cell_id)
    if not m:
        return None
    row = int(m.group(2)) - 1
    if row < 0:
        return None
    return CellAddress(row, column_index(m.group(1)))


def a1_to_rowcol(ref: str) -> tuple[int, int]:
    """Strict variant of :func:`decode_address` returning ``(row, col)``."""
    addr = decode_address(ref)
    if addr is None:
        raise ValueError(f"Invalid cell reference: {ref!r}")
    return addr.row, addr.col


def rowcol_to_a1(row: int, col: int) -> str:
    return encode_address(row, col)
