from __future__ import annotations

import logging
import re
from itertools import groupby
from typing import Iterable
from xml.etree import ElementTree as ET

from ..cell import Cell
from ..model import HeaderFooterItem, Orientation, SharedStringTable
from ..parser.namespaces import DOCUMENT_REL_NS, SPREADSHEET_NS
from ..parser.utils import encode_xml_escapes
from ..styles import FORMAT_GENERAL, StyleTable
from ..values import ValueType, format_number
from ..worksheet import Worksheet

logger = logging.getLogger(__name__)

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'
DEFAULT_HEADER_FONT = "Calibri,Regular"
DEFAULT_HEADER_COLOR = "000000"

_FIELD_ESCAPES = {
    "Date": "&D",
    "Time": "&T",
    "Path": "&Z",
    "File": "&F",
    "Tab": "&A",
    "Page": "&P",
    "Pages": "&N",
    "Picture": "&G",
}
_FIELD_RE = re.compile(r"&\[(\w+)\]|&")


def _escape_fields(text: str) -> str:
    def replace(match: re.Match[str]) -> str:
        field = match.group(1)
        if field is None:
            return "&&"
        return _FIELD_ESCAPES.get(field, match.group(0).replace("&", "&&"))

    return _FIELD_RE.sub(replace, text).replace("\r\n", "\n").replace("\n", "_x000D_")


def encode_header_footer(items: Iterable[HeaderFooterItem]) -> str:
    runs: list[str] = []
    for marker, item in zip("LCR", items):
        if item.is_empty:
            continue
        run = f'&{marker}&"{item.font_name or DEFAULT_HEADER_FONT}"'
        if item.font_size is not None:
            run += f"&{item.font_size}"
        run += f"&K{item.font_color or DEFAULT_HEADER_COLOR}"
        runs.append(run + _escape_fields(item.text))
    return "".join(runs)


def _flag(value: bool) -> str:
    return "1" if value else "0"


def _copy_strings(shared_strings: SharedStringTable | Iterable[str] | None) -> SharedStringTable:
    if isinstance(shared_strings, SharedStringTable):
        return shared_strings.copy()
    return SharedStringTable(shared_strings or ())


def _write_sheet_views(root: ET.Element, worksheet: Worksheet) -> None:
    view = ET.SubElement(ET.SubElement(root, "sheetViews"), "sheetView", {"workbookViewId": "0"})
    frozen = worksheet.freeze_panes
    if frozen is None:
        ET.SubElement(view, "selection", {"sqref": "A1", "activeCell": "A1"})
        return

    pane: dict[str, str] = {}
    if frozen.column > 1:
        pane["xSplit"] = str(frozen.column - 1)
    if frozen.row > 1:
        pane["ySplit"] = str(frozen.row - 1)
    if frozen.column > 1 and frozen.row > 1:
        active = "bottomRight"
    elif frozen.column > 1:
        active = "topRight"
    else:
        active = "bottomLeft"
    pane.update({"topLeftCell": str(frozen), "activePane": active, "state": "frozen"})
    ET.SubElement(view, "pane", pane)
    ET.SubElement(view, "selection", {"pane": active, "activeCell": str(frozen), "sqref": str(frozen)})


def _write_cell(row: ET.Element, cell: Cell, strings: SharedStringTable, styles: StyleTable) -> None:
    attrs = {"r": cell.coordinate}
    if cell.number_format != FORMAT_GENERAL:
        attrs["s"] = str(styles.add(cell.number_format))
    elem = ET.SubElement(row, "c", attrs)
    value = cell.value

    if value.type is ValueType.FORMULA:
        ET.SubElement(elem, "f").text = value.as_formula()
        return

    formula = cell.formula
    if formula is not None:
        ET.SubElement(elem, "f").text = formula

    if value.type is ValueType.NULL:
        return
    if value.type is ValueType.NUMERIC:
        elem.set("t", "n")
        text = format_number(value.as_number())
    elif value.type is ValueType.BOOLEAN:
        elem.set("t", "b")
        text = _flag(value.as_bool())
    elif value.type is ValueType.ERROR:
        elem.set("t", "e")
        text = value.as_error().value
    elif formula is not None:
        elem.set("t", "str")
        text = encode_xml_escapes(value.as_string())
    else:
        elem.set("t", "s")
        text = str(strings.add(value.as_string()))
    ET.SubElement(elem, "v").text = text


def _write_sheet_data(root: ET.Element, worksheet: Worksheet, strings: SharedStringTable, styles: StyleTable) -> None:
    sheet_data = ET.SubElement(root, "sheetData")
    for row_number, cells in groupby(worksheet.iter_cells(), key=lambda cell: cell.row):
        cells = list(cells)
        spans = f"{cells[0].column}:{cells[-1].column}"
        row = ET.SubElement(sheet_data, "row", {"r": str(row_number), "spans": spans})
        for cell in cells:
            _write_cell(row, cell, strings, styles)


def _write_page_setup(root: ET.Element, worksheet: Worksheet) -> None:
    setup = worksheet.page_setup
    if setup.has_print_options:
        options: dict[str, str] = {}
        if setup.horizontal_centered:
            options["horizontalCentered"] = "1"
        if setup.vertical_centered:
            options["verticalCentered"] = "1"
        ET.SubElement(root, "printOptions", options)

    margins = worksheet.page_margins
    ET.SubElement(
        root,
        "pageMargins",
        {
            "left": format_number(margins.left),
            "right": format_number(margins.right),
            "top": format_number(margins.top),
            "bottom": format_number(margins.bottom),
            "header": format_number(margins.header),
            "footer": format_number(margins.footer),
        },
    )

    if setup.is_default:
        return
    attrs: dict[str, str] = {}
    if setup.orientation is not Orientation.DEFAULT:
        attrs["orientation"] = setup.orientation.value
    if setup.paper_size is not None:
        attrs["paperSize"] = str(int(setup.paper_size))
    if setup.scale != 100:
        attrs["scale"] = str(setup.scale)
    if setup.fit_to_page:
        attrs["fitToHeight"] = _flag(setup.fit_to_height)
        attrs["fitToWidth"] = _flag(setup.fit_to_width)
    ET.SubElement(root, "pageSetup", attrs)


def serialize_worksheet(
    worksheet: Worksheet,
    shared_strings: SharedStringTable | Iterable[str] | None = None,
    styles: StyleTable | None = None,
) -> tuple[str, SharedStringTable, StyleTable]:
    strings = _copy_strings(shared_strings)
    styles = styles.copy() if styles is not None else StyleTable()

    root = ET.Element("worksheet", {"xmlns": SPREADSHEET_NS, "xmlns:r": DOCUMENT_REL_NS})
    sheet_pr = ET.SubElement(root, "sheetPr")
    ET.SubElement(sheet_pr, "outlinePr", {"summaryBelow": "1", "summaryRight": "1"})
    if worksheet.page_setup.fit_to_page:
        ET.SubElement(sheet_pr, "pageSetUpPr", {"fitToPage": "1"})

    ET.SubElement(root, "dimension", {"ref": str(worksheet.calculate_dimension())})
    _write_sheet_views(root, worksheet)
    ET.SubElement(root, "sheetFormatPr", {"baseColWidth": "10", "defaultRowHeight": "15"})
    _write_sheet_data(root, worksheet, strings, styles)

    if worksheet.auto_filter is not None:
        ET.SubElement(root, "autoFilter", {"ref": str(worksheet.auto_filter)})

    merged = worksheet.merged_ranges
    if merged:
        merge_cells = ET.SubElement(root, "mergeCells", {"count": str(len(merged))})
        for ref in merged:
            ET.SubElement(merge_cells, "mergeCell", {"ref": str(ref)})

    linked = [cell for cell in worksheet.iter_cells() if cell.hyperlink is not None]
    if linked:
        hyperlinks = ET.SubElement(root, "hyperlinks")
        for cell in linked:
            ET.SubElement(hyperlinks, "hyperlink", {"ref": cell.coordinate, "r:id": cell.hyperlink.id})

    _write_page_setup(root, worksheet)

    header_footer = worksheet.header_footer
    if not header_footer.is_default:
        elem = ET.SubElement(root, "headerFooter")
        if any(not item.is_empty for item in header_footer.headers):
            ET.SubElement(elem, "oddHeader").text = encode_header_footer(header_footer.headers)
        if any(not item.is_empty for item in header_footer.footers):
            ET.SubElement(elem, "oddFooter").text = encode_header_footer(header_footer.footers)

    logger.debug(f"Serialized {worksheet!r}")
    return XML_DECLARATION + ET.tostring(root, encoding="unicode"), strings, styles


def write_worksheet(
    worksheet: Worksheet,
    shared_strings: SharedStringTable | Iterable[str] | None = None,
    styles: StyleTable | None = None,
) -> str:
    xml, _, _ = serialize_worksheet(worksheet, shared_strings, styles)
    return xml
