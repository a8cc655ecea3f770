"""Tests for gridcalc edit operations and the Sheet snapshot."""

from __future__ import annotations

import pytest

from gridcalc import (
    DEFAULT_COLUMN_COUNT,
    DEFAULT_COLUMN_WIDTH,
    DEFAULT_ROW_COUNT,
    DEFAULT_ROW_HEIGHT,
    Cell,
    CellStyle,
    Sheet,
    apply_style,
    commit_edit,
    create_empty_sheet,
    resize_column,
)


class TestEmptySheet:
    def test_defaults(self) -> None:
        sheet = create_empty_sheet()
        assert len(sheet) == 0
        assert sheet.row_count == DEFAULT_ROW_COUNT == 100
        assert sheet.column_count == DEFAULT_COLUMN_COUNT == 26
        assert sheet.column_width(3) == DEFAULT_COLUMN_WIDTH == 100
        assert sheet.row_height(7) == DEFAULT_ROW_HEIGHT == 28

    def test_cell_by_position(self) -> None:
        sheet = commit_edit(create_empty_sheet(), 2, 1, "x")
        assert sheet.cell(2, 1) is sheet["B3"]
        assert sheet.cell(0, 0) is None


class TestCommitEdit:
    def test_literal(self) -> None:
        sheet = commit_edit(create_empty_sheet(), 0, 0, "42")
        cell = sheet["A1"]
        assert cell.value == "42"
        assert cell.formula is None
        assert cell.computed_value == 42

    def test_formula_clears_value(self) -> None:
        sheet = commit_edit(create_empty_sheet(), 0, 0, "42")
        sheet = commit_edit(sheet, 0, 0, "=1+1")
        cell = sheet["A1"]
        assert cell.value == ""
        assert cell.formula == "=1+1"
        assert cell.computed_value == 2

    def test_literal_clears_formula(self) -> None:
        sheet = commit_edit(create_empty_sheet(), 0, 0, "=1+1")
        sheet = commit_edit(sheet, 0, 0, "hello")
        assert sheet["A1"].formula is None
        assert sheet["A1"].computed_value == "hello"

    def test_cleared_unstyled_cell_removed(self) -> None:
        sheet = commit_edit(create_empty_sheet(), 1, 1, "x")
        sheet = commit_edit(sheet, 1, 1, "")
        assert "B2" not in sheet
        assert len(sheet) == 0

    def test_cleared_styled_cell_kept(self) -> None:
        sheet = commit_edit(create_empty_sheet(), 0, 0, "x")
        sheet = apply_style(sheet, 0, 0, bold=True)
        sheet = commit_edit(sheet, 0, 0, "")
        assert "A1" in sheet
        assert sheet["A1"].value == ""
        assert sheet["A1"].style == CellStyle(bold=True)

    def test_style_kept_across_edits(self) -> None:
        sheet = apply_style(create_empty_sheet(), 0, 0, italic=True)
        sheet = commit_edit(sheet, 0, 0, "=2*3")
        assert sheet["A1"].style == CellStyle(italic=True)
        assert sheet["A1"].computed_value == 6

    def test_whitespace_is_a_literal(self) -> None:
        sheet = commit_edit(create_empty_sheet(), 0, 0, " ")
        assert sheet["A1"].computed_value == " "

    def test_input_sheet_unchanged(self) -> None:
        before = create_empty_sheet()
        after = commit_edit(before, 0, 0, "1")
        assert "A1" not in before
        assert "A1" in after

    def test_negative_row_rejected(self) -> None:
        with pytest.raises(ValueError):
            commit_edit(create_empty_sheet(), -1, 0, "1")


class TestApplyStyle:
    def test_creates_styled_cell(self) -> None:
        sheet = apply_style(create_empty_sheet(), 0, 2, background_color="#ffeeee")
        cell = sheet["C1"]
        assert cell.value == ""
        assert cell.style.background_color == "#ffeeee"
        assert cell.computed_value == ""

    def test_merges_with_existing(self) -> None:
        sheet = apply_style(create_empty_sheet(), 0, 0, bold=True)
        sheet = apply_style(sheet, 0, 0, text_align="center")
        assert sheet["A1"].style == CellStyle(bold=True, text_align="center")

    def test_unsetting_last_attribute_removes_empty_cell(self) -> None:
        sheet = apply_style(create_empty_sheet(), 0, 0, underline=True)
        sheet = apply_style(sheet, 0, 0, underline=None)
        assert "A1" not in sheet

    def test_unknown_attribute(self) -> None:
        with pytest.raises(ValueError, match="Unknown style attributes"):
            apply_style(create_empty_sheet(), 0, 0, blink=True)

    def test_values_recomputed(self) -> None:
        sheet = commit_edit(create_empty_sheet(), 0, 0, "3")
        sheet = commit_edit(sheet, 0, 1, "=A1*A1")
        sheet = apply_style(sheet, 0, 1, strikethrough=True)
        assert sheet["B1"].computed_value == 9


class TestResizeColumn:
    def test_resize(self) -> None:
        before = create_empty_sheet()
        after = resize_column(before, 2, 180)
        assert after.column_width(2) == 180
        assert before.column_width(2) == DEFAULT_COLUMN_WIDTH

    def test_non_positive_rejected(self) -> None:
        with pytest.raises(ValueError, match="positive"):
            resize_column(create_empty_sheet(), 0, 0)


class TestCell:
    def test_from_text(self) -> None:
        assert Cell.from_text("=A1") == Cell(value="", formula="=A1")
        assert Cell.from_text("A1") == Cell(value="A1")

    def test_empty_style_is_no_style(self) -> None:
        cell = Cell(style=CellStyle())
        assert not cell.has_style
        assert cell.is_empty()

    def test_current_value(self) -> None:
        assert Cell(value="2.5").current_value() == 2.5
        assert Cell(value="x", computed_value=7).current_value() == 7
        assert Cell(formula="=1").current_value() == ""

    def test_sheet_iteration(self) -> None:
        sheet = Sheet(cells={"A1": Cell(value="1"), "B2": Cell(value="2")})
        assert list(sheet) == ["A1", "B2"]
        assert "B2" in sheet
