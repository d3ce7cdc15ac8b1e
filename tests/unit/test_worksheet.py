from __future__ import annotations

import pytest

from xlsxdoc import Comment, Workbook, Worksheet
from xlsxdoc.exceptions import CoordinateFormatError, NamedRangeError, SheetTitleError
from xlsxdoc.reference import CellReference


def test_repr(worksheet: Worksheet) -> None:
    worksheet.title = "Title"
    assert repr(worksheet) == '<Worksheet "Title">'


@pytest.mark.parametrize("title", ["a[b", "a]b", "a*b", "a:b", "a?b", "a/b", "a\\b", "x" * 32, ""])
def test_invalid_titles(workbook: Workbook, title: str) -> None:
    with pytest.raises(SheetTitleError):
        workbook.create_sheet(title)


def test_title_of_31_characters_is_accepted(workbook: Workbook) -> None:
    assert workbook.create_sheet("x" * 31).title == "x" * 31


def test_cell_lookup_forms(worksheet: Worksheet) -> None:
    cell = worksheet["B2"]
    assert worksheet.cell("b2") is cell
    assert worksheet.cell(CellReference(2, 2)) is cell
    assert worksheet.cell(row=2, column=2) is cell


def test_cell_requires_reference_or_row_and_column(worksheet: Worksheet) -> None:
    with pytest.raises(CoordinateFormatError):
        worksheet.cell(row=2)


def test_range_lookup(worksheet: Worksheet) -> None:
    rows = worksheet["A1:C2"]
    assert len(rows) == 2
    assert [cell.coordinate for cell in rows[1]] == ["A2", "B2", "C2"]
    assert worksheet("A1", "B2")[1][1].coordinate == "B2"


def test_garbage_collection(worksheet: Worksheet) -> None:
    worksheet.cell("A1").value = None
    worksheet.cell("B2").value = "0"
    worksheet.cell("C4").value = 0
    worksheet.cell("D1").comment = Comment("Comment", "Comment")

    worksheet.garbage_collect()

    assert {cell.coordinate for cell in worksheet.get_cell_collection()} == {"B2", "C4", "D1"}


def test_iteration_skips_default_cells(worksheet: Worksheet) -> None:
    worksheet.cell("C3")
    worksheet.cell("A1").value = 1
    assert [cell.coordinate for cell in worksheet.iter_cells()] == ["A1"]


def test_calculate_dimension(worksheet: Worksheet) -> None:
    assert str(worksheet.calculate_dimension()) == "A1:A1"
    worksheet.cell("B12").value = "AAA"
    worksheet.cell("E3").value = "BBB"
    assert str(worksheet.calculate_dimension()) == "B3:E12"


def test_append_list(worksheet: Worksheet) -> None:
    worksheet.append(["value"])
    worksheet.append(["This is A2", "This is B2"])
    assert worksheet.cell("A1").value == "value"
    assert worksheet.cell("B2").value == "This is B2"


def test_append_dict(worksheet: Worksheet) -> None:
    worksheet.append({"A": "This is A1", "C": "This is C1"})
    worksheet.append({1: "This is A2", 3: "This is C2"})
    assert worksheet.cell("C1").value == "This is C1"
    assert worksheet.cell("C2").value == "This is C2"
    assert worksheet.cell("B1").value.is_null


def test_rows_and_columns(worksheet: Worksheet) -> None:
    worksheet.cell("A1").value = "first"
    worksheet.cell("C9").value = "last"
    rows = worksheet.rows
    assert len(rows) == 9
    assert len(rows[0]) == 3
    assert rows[8][2].value == "last"
    columns = worksheet.columns
    assert len(columns) == 3
    assert columns[2][8].value == "last"


def test_merge_and_unmerge(worksheet: Worksheet) -> None:
    worksheet.merge_cells("A1:B1")
    assert [str(ref) for ref in worksheet.merged_ranges] == ["A1:B1"]
    worksheet.unmerge_cells("A1:B1")
    assert worksheet.merged_ranges == []
    with pytest.raises(CoordinateFormatError):
        worksheet.unmerge_cells("A1:B1")


def test_freeze_panes(worksheet: Worksheet) -> None:
    worksheet.freeze_panes = worksheet.cell("b2")
    assert str(worksheet.freeze_panes) == "B2"
    worksheet.unfreeze_panes()
    assert not worksheet.has_frozen_panes
    worksheet.freeze_panes = "c5"
    assert str(worksheet.freeze_panes) == "C5"
    worksheet.freeze_panes = "A1"
    assert not worksheet.has_frozen_panes


def test_auto_filter(worksheet: Worksheet) -> None:
    worksheet.auto_filter = "a1:f1"
    assert str(worksheet.auto_filter) == "A1:F1"
    worksheet.auto_filter = None
    assert not worksheet.has_auto_filter
    worksheet.auto_filter = "c1:g9"
    assert str(worksheet.auto_filter) == "C1:G9"


def test_named_range(workbook: Workbook, worksheet: Worksheet) -> None:
    workbook.create_named_range("test_range", worksheet, "C5")
    cells = worksheet.get_named_range("test_range")
    assert cells[0][0].coordinate == "C5"


def test_named_range_errors(workbook: Workbook, worksheet: Worksheet) -> None:
    other = workbook.create_sheet("Other")
    workbook.create_named_range("other_range", other, "A1:B2")
    with pytest.raises(NamedRangeError):
        worksheet.get_named_range("bad_range")
    with pytest.raises(NamedRangeError):
        worksheet.get_named_range("other_range")
    with pytest.raises(CoordinateFormatError):
        worksheet.cell("other_range")


def test_hyperlink_relationships_are_numbered(worksheet: Worksheet) -> None:
    worksheet.cell("A1").hyperlink = "http://test.com"
    worksheet.cell("A2").hyperlink = "http://test2.com"
    assert [rel.id for rel in worksheet.relationships] == ["rId1", "rId2"]
    worksheet.remove_relationship("rId1")
    worksheet.cell("A3").hyperlink = "http://test3.com"
    assert worksheet.cell("A3").hyperlink.id == "rId3"


def test_formula_attributes_start_empty(worksheet: Worksheet) -> None:
    assert worksheet.formula_attributes == {}
