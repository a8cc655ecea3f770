"""Cell records, styles, and literal value typing."""

from __future__ import annotations

import dataclasses
import math
import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Literal, Union

Scalar = Union[str, int, float]

# Optional sign, digits, at most one decimal point, at least one trailing digit.
NUMERIC_LITERAL_RE = re.compile(r"^-?\d*\.?\d+$")


def normalize_number(num: float) -> int | float:
    """Integral floats become ints so ``3.0`` displays as ``3``."""
    if isinstance(num, float) and math.isfinite(num) and num.is_integer():
        return int(num)
    return num


def to_number(text: str) -> int | float | None:
    """Parse *text* as a numeric literal, or None if it is not one."""
    stripped = text.strip()
    if not NUMERIC_LITERAL_RE.match(stripped):
        return None
    return normalize_number(float(stripped))


def literal_value(text: str) -> Scalar:
    """Type a literal cell entry: numeric literals become numbers."""
    num = to_number(text)
    return text if num is None else num


def format_number(num: int | float) -> str:
    """Plain decimal text for a number (never scientific notation)."""
    num = normalize_number(num)
    if isinstance(num, int):
        return str(num)
    if not math.isfinite(num):
        return repr(num)
    text = format(Decimal(repr(num)), "f")
    return text.rstrip("0").rstrip(".") if "." in text else text


def to_text(value: Scalar | None) -> str:
    if value is None:
        return ""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return format_number(value)
    return str(value)


@dataclass(frozen=True)
class CellStyle:
    """Presentation attributes carried with a cell. Unset fields are None."""

    bold: bool | None = None
    italic: bool | None = None
    underline: bool | None = None
    strikethrough: bool | None = None
    text_align: Literal["left", "center", "right"] | None = None
    background_color: str | None = None
    text_color: str | None = None

    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in dataclasses.fields(self))

    def merged(self, **changes: object) -> CellStyle:
        unknown = set(changes) - {f.name for f in dataclasses.fields(self)}
        if unknown:
            raise ValueError(f"Unknown style attributes: {sorted(unknown)}")
        return dataclasses.replace(self, **changes)  # type: ignore[arg-type]


@dataclass(frozen=True)
class Cell:
    """One cell: the raw entry plus its resolved display value.

    When ``formula`` is set, ``value`` is ignored for computation.
    ``computed_value`` is None until a recomputation pass resolves it.
    """

    value: str = ""
    formula: str | None = None
    computed_value: Scalar | None = None
    style: CellStyle | None = None

    @property
    def is_formula(self) -> bool:
        return bool(self.formula)

    @property
    def has_style(self) -> bool:
        return self.style is not None and not self.style.is_empty()

    def is_empty(self) -> bool:
        return not self.value and not self.formula and not self.has_style

    def current_value(self) -> Scalar:
        """Value other cells see when they reference this one."""
        if self.computed_value is not None:
            return self.computed_value
        if self.is_formula:
            return ""
        return literal_value(self.value)

    def with_computed(self, value: Scalar) -> Cell:
        return dataclasses.replace(self, computed_value=value)

    @classmethod
    def from_text(cls, text: str, style: CellStyle | None = None) -> Cell:
        """Build a raw cell from editor input; a leading ``=`` marks a formula."""
        if text.startswith("="):
            return cls(value="", formula=text, style=style)
        return cls(value=text, style=style)
