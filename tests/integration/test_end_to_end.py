from __future__ import annotations

import io
from datetime import date, datetime
from pathlib import Path
from zipfile import ZipFile

import pytest

from tests.helpers import build_workbook_archive, sheet_xml, styles_xml
from xlsxdoc import (
    Calendar,
    ErrorCode,
    InvalidFileError,
    LoadOptions,
    ValueType,
    Workbook,
    load_workbook,
    save_workbook,
)
from xlsxdoc.model import HeaderFooterItem, Orientation, PaperSize


def _round_trip(workbook: Workbook, tmp_path: Path, **options) -> Workbook:
    path = tmp_path / "round_trip.xlsx"
    save_workbook(workbook, path)
    return load_workbook(path, **options)


def test_load_simple_archive(simple_archive: Path) -> None:
    workbook = load_workbook(simple_archive)

    assert workbook.sheetnames == ["Data"]
    sheet = workbook["Data"]
    assert sheet["A1"].value == "hello"
    assert sheet["B1"].value == 42
    assert sheet["A2"].value.as_bool() is True
    assert sheet["B2"].value.as_error() is ErrorCode.NA
    assert str(sheet.calculate_dimension()) == "A1:B2"
    assert not workbook.guess_types


def test_round_trip_values(tmp_path: Path) -> None:
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = "Values"
    sheet.append(["hello", 42, 3.25, True])
    sheet["A2"] = "=SUM(B1:C1)"
    sheet["B2"] = date(2020, 1, 1)
    sheet["C2"] = datetime(2021, 6, 15, 12, 30)
    sheet["D2"].set_error(ErrorCode.DIV0)
    sheet["E2"] = "  spaced  "

    loaded = _round_trip(workbook, tmp_path)
    values = loaded["Values"]

    assert values["A1"].value == "hello"
    assert values["B1"].value == 42
    assert values["C1"].value == pytest.approx(3.25)
    assert values["D1"].value.as_bool() is True
    assert values["A2"].formula == "SUM(B1:C1)"
    assert values["A2"].data_type is ValueType.NULL
    assert values["B2"].is_date
    assert values["B2"].python_value == datetime(2020, 1, 1)
    assert values["C2"].python_value == datetime(2021, 6, 15, 12, 30)
    assert values["D2"].value.as_error() is ErrorCode.DIV0
    assert values["E2"].value == "  spaced  "


def test_round_trip_control_characters(tmp_path: Path) -> None:
    workbook = Workbook()
    sheet = workbook.active
    sheet["A1"] = "a\x01b"
    sheet["A2"] = "bell\x07 and \x1f"
    sheet["A3"] = "_x0041_"

    loaded = _round_trip(workbook, tmp_path)

    assert loaded.active["A1"].value == "a\x01b"
    assert loaded.active["A2"].value == "bell\x07 and \x1f"
    assert loaded.active["A3"].value == "_x0041_"


def test_round_trip_sheets_and_named_ranges(tmp_path: Path) -> None:
    workbook = Workbook()
    first = workbook.active
    second = workbook.create_sheet("My Sheet")
    workbook.create_sheet("Last")
    second["C3"] = 7
    workbook.create_named_range("Totals", second, "C3")
    workbook.create_named_range("Block", first, "A1:B2")
    workbook.active = 1

    loaded = _round_trip(workbook, tmp_path)

    assert loaded.sheetnames == ["Sheet1", "My Sheet", "Last"]
    assert loaded.active.title == "My Sheet"
    assert loaded.get_named_range("Totals").destination == "'My Sheet'!$C$3"
    assert loaded["My Sheet"].get_named_range("Totals")[0][0].value == 7
    assert str(loaded.get_named_range("Block").range) == "A1:B2"


def test_mac_and_windows_dates_agree(tmp_path: Path) -> None:
    moment = datetime(2011, 2, 3, 4, 5, 6)
    windows = Workbook()
    windows.active["A1"] = moment
    mac = Workbook(calendar=Calendar.MAC_1904)
    mac.active["A1"] = moment

    windows_path = tmp_path / "windows.xlsx"
    mac_path = tmp_path / "mac.xlsx"
    save_workbook(windows, windows_path)
    save_workbook(mac, mac_path)
    loaded_windows = load_workbook(windows_path)
    loaded_mac = load_workbook(mac_path)

    assert loaded_mac.calendar is Calendar.MAC_1904
    assert loaded_windows.calendar is Calendar.WINDOWS_1900
    windows_cell = loaded_windows.active["A1"]
    mac_cell = loaded_mac.active["A1"]
    assert windows_cell.value.as_number() - mac_cell.value.as_number() == pytest.approx(1462)
    assert windows_cell.python_value == mac_cell.python_value == moment


def test_round_trip_layout(tmp_path: Path) -> None:
    workbook = Workbook()
    sheet = workbook.active
    sheet["A1"] = "Title"
    sheet["A1"].hyperlink = "http://example.com/report"
    sheet.merge_cells("A1:C1")
    sheet.freeze_panes = "A2"
    sheet.auto_filter = "A2:C10"
    sheet.page_setup.orientation = Orientation.LANDSCAPE
    sheet.page_setup.paper_size = PaperSize.A4
    sheet.page_setup.fit_to_page = True
    sheet.page_setup.fit_to_height = False
    sheet.page_margins.left = 2
    sheet.header_footer.center_header = HeaderFooterItem("Page &[Page] of &[Pages]", font_size=14)

    loaded = _round_trip(workbook, tmp_path).active

    assert loaded["A1"].hyperlink.target == "http://example.com/report"
    assert [str(ref) for ref in loaded.merged_ranges] == ["A1:C1"]
    assert str(loaded.freeze_panes) == "A2"
    assert str(loaded.auto_filter) == "A2:C10"
    assert loaded.page_setup.orientation is Orientation.LANDSCAPE
    assert loaded.page_setup.paper_size is PaperSize.A4
    assert loaded.page_setup.fit_to_page
    assert not loaded.page_setup.fit_to_height
    assert loaded.page_margins.left == 2
    header = loaded.header_footer.center_header
    assert header.text == "Page &[Page] of &[Pages]"
    assert header.font_size == 14
    assert header.font_name == "Calibri,Regular"


def test_save_to_stream_and_repair(tmp_path: Path) -> None:
    workbook = Workbook()
    workbook.active["A1"] = 1
    stream = io.BytesIO()
    workbook.save(stream)

    payload = stream.getvalue() + b"trailing bytes from a broken producer"
    loaded = load_workbook(payload, options=LoadOptions(repair=True))
    assert loaded.active["A1"].value == 1


def test_saved_package_layout(tmp_path: Path) -> None:
    workbook = Workbook()
    workbook.create_sheet("Second")
    path = tmp_path / "layout.xlsx"
    save_workbook(workbook, path)

    with ZipFile(path) as zf:
        names = zf.namelist()
    assert names[:4] == ["[Content_Types].xml", "_rels/.rels", "xl/workbook.xml", "xl/_rels/workbook.xml.rels"]
    assert "xl/worksheets/sheet1.xml" in names
    assert "xl/worksheets/sheet2.xml" in names
    assert "xl/styles.xml" in names
    assert "xl/sharedStrings.xml" in names


def test_load_shared_formulas_and_data_only(tmp_path: Path) -> None:
    rows = (
        '<row r="1"><c r="A1"><v>1</v></c><c r="B1"><v>2</v></c></row>'
        '<row r="2"><c r="A2"><f t="shared" ref="A2:B2" si="0">A1*2</f><v>2</v></c>'
        '<c r="B2"><f t="shared" si="0"/><v>4</v></c></row>'
    )
    path = build_workbook_archive(tmp_path / "shared.xlsx", [("Calc", sheet_xml(rows))])

    with_formulas = load_workbook(path)
    assert with_formulas["Calc"]["B2"].formula == "B1*2"
    assert with_formulas["Calc"].formula_attributes["A2"]["ref"] == "A2:B2"

    cached = load_workbook(path, data_only=True)
    assert cached["Calc"]["B2"].formula is None
    assert cached["Calc"]["B2"].value == 4


def test_load_styles_and_date1904(tmp_path: Path) -> None:
    rows = '<row r="1"><c r="A1" s="1"><v>0</v></c><c r="B1" s="2"><v>0.5</v></c></row>'
    path = build_workbook_archive(
        tmp_path / "styled.xlsx",
        [("Dates", sheet_xml(rows))],
        styles=styles_xml([0, 14, 164], custom={164: "hh:mm"}),
        date1904=True,
    )
    sheet = load_workbook(path).active

    assert sheet.parent.calendar is Calendar.MAC_1904
    assert sheet["A1"].is_date
    assert sheet["A1"].python_value == datetime(1904, 1, 1)
    assert sheet["B1"].number_format == "hh:mm"
    assert sheet["B1"].python_value.hour == 12


def test_load_defined_names_skips_builtin(tmp_path: Path) -> None:
    path = build_workbook_archive(
        tmp_path / "names.xlsx",
        [("Data", sheet_xml())],
        defined_names={"Area": "Data!$A$1:$B$4", "_xlnm.Print_Area": "Data!$A$1:$C$9", "Const": "42"},
    )
    workbook = load_workbook(path)
    assert [named.name for named in workbook.named_ranges] == ["Area"]


def test_load_rejects_non_workbooks(tmp_path: Path) -> None:
    path = tmp_path / "notes.txt"
    path.write_text("plain text")
    with pytest.raises(InvalidFileError):
        load_workbook(path)
