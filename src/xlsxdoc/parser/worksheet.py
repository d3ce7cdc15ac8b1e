from __future__ import annotations

import io
import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import IO, TYPE_CHECKING, Iterable
from xml.etree import ElementTree as ET

from ..cell import Cell
from ..dates import to_serial
from ..exceptions import CoordinateFormatError, DataTypeError, PartParseError
from ..formula import translate_formula
from ..model import HeaderFooter, HeaderFooterItem, Orientation, PaperSize, Relationship, RelationshipType, SharedStringTable
from ..reference import CellReference, RangeReference
from ..styles import FORMAT_DATETIME, FORMAT_GENERAL, StyleTable
from ..values import Value, guess_type
from .namespaces import REL_ID
from .utils import decode_xml_escapes, local_name, xml_bool

if TYPE_CHECKING:
    from ..workbook import Workbook
    from ..worksheet import Worksheet

logger = logging.getLogger(__name__)

_FIELD_CODES = {
    "D": "&[Date]",
    "T": "&[Time]",
    "Z": "&[Path]",
    "F": "&[File]",
    "A": "&[Tab]",
    "P": "&[Page]",
    "N": "&[Pages]",
    "G": "&[Picture]",
}
_HF_TOKEN_RE = re.compile(r'&"([^"]*)"|&K([0-9A-Fa-f]{6})|&(\d+)|&([LCR])|&(.)|([^&]+)', re.DOTALL)
_NEWLINE_PLACEHOLDER = "_x000D_"


def decode_header_footer(text: str) -> tuple[HeaderFooterItem, HeaderFooterItem, HeaderFooterItem]:
    items = {"L": HeaderFooterItem(), "C": HeaderFooterItem(), "R": HeaderFooterItem()}
    current = items["C"]
    chunks: dict[str, list[str]] = {"L": [], "C": [], "R": []}
    position = "C"
    for match in _HF_TOKEN_RE.finditer(text):
        font, color, size, marker, code, literal = match.groups()
        if marker is not None:
            position = marker
            current = items[marker]
        elif font is not None:
            current.font_name = font
        elif color is not None:
            current.font_color = color.upper()
        elif size is not None:
            current.font_size = int(size)
        elif code is not None:
            if code == "&":
                chunks[position].append("&")
            elif code in _FIELD_CODES:
                chunks[position].append(_FIELD_CODES[code])
        elif literal is not None:
            chunks[position].append(literal.replace(_NEWLINE_PLACEHOLDER, "\n"))
    for key, item in items.items():
        item.text = "".join(chunks[key])
    return items["L"], items["C"], items["R"]


@dataclass(slots=True)
class _SharedFormula:
    anchor: CellReference
    formula: str
    range: RangeReference | None = None


class _WorksheetReader:
    def __init__(
        self,
        worksheet: Worksheet,
        shared_strings: SharedStringTable | list[str],
        styles: StyleTable,
        base_style_index: int,
        part: str,
    ) -> None:
        self.worksheet = worksheet
        self.workbook = worksheet.parent
        self.shared_strings = shared_strings
        self.styles = styles
        self.base_style_index = base_style_index
        self.part = part
        self.cell_count = 0
        self._row = 0
        self._column = 0
        self._shared: dict[str, _SharedFormula] = {}
        self._dependents: list[tuple[Cell, str]] = []
        self._read_cells: dict[tuple[int, int], Cell] = {}
        self._hyperlinks: list[tuple[str, str]] = []

    def start(self, elem: ET.Element) -> None:
        if local_name(elem.tag) == "row":
            raw = elem.attrib.get("r")
            self._row = self._int(raw, "row number") if raw else self._row + 1
            self._column = 0

    def end(self, elem: ET.Element) -> None:
        tag = local_name(elem.tag)
        if tag == "c":
            self._read_cell(elem)
            elem.clear()
        elif tag == "row":
            elem.clear()
        elif tag == "mergeCell":
            ref = elem.attrib.get("ref")
            if ref:
                self.worksheet.merge_cells(self._range(ref))
        elif tag == "pane":
            self._read_pane(elem)
        elif tag == "autoFilter":
            ref = elem.attrib.get("ref")
            if ref:
                self.worksheet.auto_filter = self._range(ref)
        elif tag == "pageSetUpPr":
            self.worksheet.page_setup.fit_to_page = xml_bool(elem.attrib.get("fitToPage"))
        elif tag == "printOptions":
            self.worksheet.page_setup.horizontal_centered = xml_bool(elem.attrib.get("horizontalCentered"))
            self.worksheet.page_setup.vertical_centered = xml_bool(elem.attrib.get("verticalCentered"))
        elif tag == "pageMargins":
            self._read_margins(elem)
        elif tag == "pageSetup":
            self._read_page_setup(elem)
        elif tag == "headerFooter":
            self._read_header_footer(elem)
        elif tag == "hyperlink":
            rel_id = elem.attrib.get(REL_ID)
            ref = elem.attrib.get("ref")
            if rel_id and ref:
                self._hyperlinks.append((ref, rel_id))

    def finish(self, relationships: Iterable[Relationship]) -> None:
        for cell, group in self._dependents:
            shared = self._shared.get(group)
            if shared is None:
                raise PartParseError(f"cell {cell.coordinate} refers to unknown shared formula {group}", part=self.part)
            if cell.formula is None:
                self._apply_shared(cell, shared)

        # cells inside a master's range that carry no formula of their own
        for shared in self._shared.values():
            if shared.range is None:
                continue
            for ref in shared.range.cells():
                cell = self._read_cells.get((ref.row, ref.column))
                if cell is not None and cell.formula is None:
                    self._apply_shared(cell, shared)

        by_id = {rel.id: rel for rel in relationships if rel.type is RelationshipType.HYPERLINK}
        for ref, rel_id in self._hyperlinks:
            relationship = by_id.get(rel_id)
            if relationship is None:
                logger.warning(f"{self.part}: hyperlink on {ref} points at unknown relationship {rel_id}")
                continue
            self.worksheet.add_relationship(relationship)
            self.worksheet.cell(self._range(ref).top_left).bind_hyperlink(rel_id)

    def _apply_shared(self, cell: Cell, shared: _SharedFormula) -> None:
        cell.formula = translate_formula(
            shared.formula,
            cell.row - shared.anchor.row,
            cell.column - shared.anchor.column,
        )

    def _read_cell(self, elem: ET.Element) -> None:
        coordinate = elem.attrib.get("r")
        if coordinate:
            ref = self._reference(coordinate)
        else:
            ref = CellReference(self._column + 1, max(self._row, 1))
        self._column = ref.column
        cell = self.worksheet.cell(ref)
        self._read_cells[(ref.row, ref.column)] = cell
        self.cell_count += 1

        cell_type = elem.attrib.get("t", "n")
        raw_value = None
        formula_elem = None
        inline_elem = None
        for child in elem:
            name = local_name(child.tag)
            if name == "v":
                raw_value = child.text
            elif name == "f":
                formula_elem = child
            elif name == "is":
                inline_elem = child

        value, number_format = self._decode_value(cell, cell_type, raw_value, inline_elem)
        cell.set_value(value)

        style = elem.attrib.get("s")
        if style is not None:
            cell.number_format = self.styles.format_code(self.base_style_index + self._int(style, "style index"))
        if number_format is not None and cell.number_format == FORMAT_GENERAL:
            cell.number_format = number_format

        if formula_elem is not None and not self.workbook.data_only:
            self._read_formula(cell, formula_elem)

    def _decode_value(
        self,
        cell: Cell,
        cell_type: str,
        raw_value: str | None,
        inline_elem: ET.Element | None,
    ) -> tuple[Value, str | None]:
        if cell_type == "inlineStr":
            text = "" if inline_elem is None else "".join(node.text or "" for node in inline_elem.iter() if local_name(node.tag) == "t")
            return self._text_value(decode_xml_escapes(text))
        if raw_value is None:
            return Value.null(), None
        if cell_type == "s":
            index = self._int(raw_value, f"shared string index in {cell.coordinate}")
            if not 0 <= index < len(self.shared_strings):
                raise PartParseError(f"cell {cell.coordinate} refers to missing shared string {index}", part=self.part)
            return self._text_value(self.shared_strings[index])
        if cell_type == "b":
            return Value.boolean(xml_bool(raw_value.strip())), None
        if cell_type == "e":
            try:
                return Value.error(raw_value.strip()), None
            except DataTypeError:
                logger.warning(f"{self.part}: unknown error code {raw_value!r} in {cell.coordinate}, kept as text")
                return Value.string(raw_value), None
        if cell_type == "str":
            return Value.string(decode_xml_escapes(raw_value)), None
        if cell_type == "d":
            try:
                moment = datetime.fromisoformat(raw_value.strip())
            except ValueError as exc:
                raise PartParseError(f"cell {cell.coordinate} has invalid date {raw_value!r}", part=self.part) from exc
            return Value.numeric(to_serial(moment, self.workbook.calendar)), FORMAT_DATETIME
        if cell_type == "n":
            try:
                return Value.numeric(float(raw_value)), None
            except ValueError as exc:
                raise PartParseError(f"cell {cell.coordinate} has invalid number {raw_value!r}", part=self.part) from exc
        logger.warning(f"{self.part}: unknown cell type {cell_type!r} in {cell.coordinate}, read as text")
        return Value.string(raw_value), None

    def _text_value(self, text: str) -> tuple[Value, str | None]:
        if self.workbook.guess_types:
            return guess_type(text)
        return Value.string(text), None

    def _read_formula(self, cell: Cell, elem: ET.Element) -> None:
        formula_type = elem.attrib.get("t")
        text = (elem.text or "").strip()
        if formula_type in {"shared", "array"}:
            self.worksheet.formula_attributes[cell.coordinate] = dict(elem.attrib)
        if formula_type == "shared":
            group = elem.attrib.get("si")
            if group is None:
                raise PartParseError(f"shared formula in {cell.coordinate} has no group index", part=self.part)
            if text:
                ref = elem.attrib.get("ref")
                self._shared[group] = _SharedFormula(cell.reference, text, self._range(ref) if ref else None)
            else:
                self._dependents.append((cell, group))
        if text:
            cell.formula = text

    def _read_pane(self, elem: ET.Element) -> None:
        if elem.attrib.get("state") not in {"frozen", "frozenSplit"}:
            return
        top_left = elem.attrib.get("topLeftCell")
        if top_left:
            self.worksheet.freeze_panes = self._reference(top_left)
            return
        column = int(float(elem.attrib.get("xSplit", "0"))) + 1
        row = int(float(elem.attrib.get("ySplit", "0"))) + 1
        self.worksheet.freeze_panes = CellReference(column, row)

    def _read_margins(self, elem: ET.Element) -> None:
        margins = self.worksheet.page_margins
        for name in ("left", "right", "top", "bottom", "header", "footer"):
            raw = elem.attrib.get(name)
            if raw is None:
                continue
            try:
                setattr(margins, name, float(raw))
            except ValueError as exc:
                raise PartParseError(f"invalid {name} margin {raw!r}", part=self.part) from exc

    def _read_page_setup(self, elem: ET.Element) -> None:
        setup = self.worksheet.page_setup
        orientation = elem.attrib.get("orientation")
        if orientation in {item.value for item in Orientation}:
            setup.orientation = Orientation(orientation)
        paper_size = elem.attrib.get("paperSize")
        if paper_size is not None:
            code = self._int(paper_size, "paper size")
            setup.paper_size = PaperSize(code) if code in {item.value for item in PaperSize} else None
        if "fitToHeight" in elem.attrib:
            setup.fit_to_height = elem.attrib["fitToHeight"] != "0"
        if "fitToWidth" in elem.attrib:
            setup.fit_to_width = elem.attrib["fitToWidth"] != "0"
        if "scale" in elem.attrib:
            setup.scale = self._int(elem.attrib["scale"], "scale")

    def _read_header_footer(self, elem: ET.Element) -> None:
        header_footer = HeaderFooter()
        for child in elem:
            name = local_name(child.tag)
            if name == "oddHeader":
                header_footer.left_header, header_footer.center_header, header_footer.right_header = decode_header_footer(child.text or "")
            elif name == "oddFooter":
                header_footer.left_footer, header_footer.center_footer, header_footer.right_footer = decode_header_footer(child.text or "")
        self.worksheet.header_footer = header_footer

    def _reference(self, text: str) -> CellReference:
        try:
            return CellReference.parse(text)
        except CoordinateFormatError as exc:
            raise PartParseError(str(exc), part=self.part) from exc

    def _range(self, text: str) -> RangeReference:
        try:
            return RangeReference.parse(text.split()[0])
        except (CoordinateFormatError, IndexError) as exc:
            raise PartParseError(f"invalid range {text!r}", part=self.part) from exc

    def _int(self, raw: str, what: str) -> int:
        try:
            return int(raw)
        except ValueError as exc:
            raise PartParseError(f"invalid {what} {raw!r}", part=self.part) from exc


def fast_parse(
    worksheet: Worksheet,
    xml_stream: bytes | IO[bytes],
    shared_strings: SharedStringTable | list[str],
    styles: StyleTable | None = None,
    base_style_index: int = 0,
    *,
    relationships: Iterable[Relationship] = (),
    part: str = "worksheet",
) -> int:
    source = io.BytesIO(xml_stream) if isinstance(xml_stream, (bytes, bytearray)) else xml_stream
    reader = _WorksheetReader(worksheet, shared_strings, styles or StyleTable(), base_style_index, part)
    seen_sheet_data = False
    try:
        for event, elem in ET.iterparse(source, events=("start", "end")):
            if event == "start":
                reader.start(elem)
            else:
                seen_sheet_data = seen_sheet_data or local_name(elem.tag) == "sheetData"
                reader.end(elem)
    except ET.ParseError as exc:
        raise PartParseError(f"malformed XML: {exc}", part=part) from exc
    if not seen_sheet_data:
        raise PartParseError("worksheet has no sheetData element", part=part)
    reader.finish(relationships)
    logger.debug(f"Parsed {part} into {worksheet!r} with {reader.cell_count} cells")
    return reader.cell_count


def read_worksheet(
    xml_stream: bytes | IO[bytes],
    workbook: Workbook,
    sheet_name: str,
    shared_strings: SharedStringTable | list[str],
    styles: StyleTable | None = None,
    *,
    relationships: Iterable[Relationship] = (),
    part: str = "worksheet",
) -> Worksheet:
    worksheet = workbook.create_sheet(sheet_name)
    try:
        fast_parse(worksheet, xml_stream, shared_strings, styles, relationships=relationships, part=part)
    except PartParseError:
        workbook.remove_sheet(worksheet)
        raise
    return worksheet
