from __future__ import annotations

import logging
from typing import Iterable
from xml.etree import ElementTree as ET

from ..archive import write_archive
from ..dates import Calendar
from ..model import Relationship, RelationshipType, SharedStringTable, TargetMode
from ..parser.namespaces import (
    CONTENT_TYPES_NS,
    CONTENT_TYPES_PART,
    DEFAULT_WORKBOOK_PART,
    DOCUMENT_REL_NS,
    PACKAGE_REL_NS,
    PACKAGE_RELS_PART,
    RELATIONSHIPS_TYPE,
    SHARED_STRINGS_TYPE,
    SPREADSHEET_NS,
    STYLES_TYPE,
    WORKBOOK_MAIN_TYPE,
    WORKSHEET_TYPE,
    XML_TYPE,
)
from ..parser.utils import encode_xml_escapes, relationships_path
from ..styles import StyleTable
from ..workbook import Workbook
from .worksheet import XML_DECLARATION, serialize_worksheet

logger = logging.getLogger(__name__)

SHARED_STRINGS_PART = "xl/sharedStrings.xml"
STYLES_PART = "xl/styles.xml"


def _to_xml(root: ET.Element) -> str:
    return XML_DECLARATION + ET.tostring(root, encoding="unicode")


def _relative_target(owner_part: str, target: str) -> str:
    folder = owner_part.rsplit("/", 1)[0] + "/" if "/" in owner_part else ""
    if folder and target.startswith(folder):
        return target[len(folder) :]
    return "/" + target


def write_relationships(relationships: Iterable[Relationship], owner_part: str = "") -> str:
    root = ET.Element("Relationships", {"xmlns": PACKAGE_REL_NS})
    for rel in relationships:
        attrs = {"Id": rel.id, "Type": rel.uri}
        if rel.mode is TargetMode.EXTERNAL:
            attrs["Target"] = rel.target
            attrs["TargetMode"] = TargetMode.EXTERNAL.value
        else:
            attrs["Target"] = _relative_target(owner_part, rel.target)
        ET.SubElement(root, "Relationship", attrs)
    return _to_xml(root)


def write_content_types(overrides: Iterable[tuple[str, str]]) -> str:
    root = ET.Element("Types", {"xmlns": CONTENT_TYPES_NS})
    ET.SubElement(root, "Default", {"Extension": "rels", "ContentType": RELATIONSHIPS_TYPE})
    ET.SubElement(root, "Default", {"Extension": "xml", "ContentType": XML_TYPE})
    for part, media_type in overrides:
        ET.SubElement(root, "Override", {"PartName": "/" + part, "ContentType": media_type})
    return _to_xml(root)


def write_shared_strings(strings: SharedStringTable) -> str:
    root = ET.Element("sst", {"xmlns": SPREADSHEET_NS, "count": str(len(strings)), "uniqueCount": str(len(strings))})
    for text in strings:
        attrs = {"xml:space": "preserve"} if text != text.strip() else {}
        ET.SubElement(ET.SubElement(root, "si"), "t", attrs).text = encode_xml_escapes(text)
    return _to_xml(root)


def write_styles(styles: StyleTable) -> str:
    custom, format_ids = styles.number_format_ids()
    root = ET.Element("styleSheet", {"xmlns": SPREADSHEET_NS})
    if custom:
        num_fmts = ET.SubElement(root, "numFmts", {"count": str(len(custom))})
        for code, fmt_id in custom.items():
            ET.SubElement(num_fmts, "numFmt", {"numFmtId": str(fmt_id), "formatCode": code})

    fonts = ET.SubElement(root, "fonts", {"count": "1"})
    font = ET.SubElement(fonts, "font")
    ET.SubElement(font, "sz", {"val": "11"})
    ET.SubElement(font, "name", {"val": "Calibri"})
    fills = ET.SubElement(root, "fills", {"count": "2"})
    ET.SubElement(ET.SubElement(fills, "fill"), "patternFill", {"patternType": "none"})
    ET.SubElement(ET.SubElement(fills, "fill"), "patternFill", {"patternType": "gray125"})
    borders = ET.SubElement(root, "borders", {"count": "1"})
    border = ET.SubElement(borders, "border")
    for side in ("left", "right", "top", "bottom", "diagonal"):
        ET.SubElement(border, side)
    style_xfs = ET.SubElement(root, "cellStyleXfs", {"count": "1"})
    ET.SubElement(style_xfs, "xf", {"numFmtId": "0", "fontId": "0", "fillId": "0", "borderId": "0"})

    cell_xfs = ET.SubElement(root, "cellXfs", {"count": str(len(format_ids))})
    for fmt_id in format_ids:
        attrs = {"numFmtId": str(fmt_id), "fontId": "0", "fillId": "0", "borderId": "0", "xfId": "0"}
        if fmt_id:
            attrs["applyNumberFormat"] = "1"
        ET.SubElement(cell_xfs, "xf", attrs)

    cell_styles = ET.SubElement(root, "cellStyles", {"count": "1"})
    ET.SubElement(cell_styles, "cellStyle", {"name": "Normal", "xfId": "0", "builtinId": "0"})
    return _to_xml(root)


def write_workbook_part(workbook: Workbook, sheet_ids: list[str]) -> str:
    root = ET.Element("workbook", {"xmlns": SPREADSHEET_NS, "xmlns:r": DOCUMENT_REL_NS})
    workbook_pr = ET.SubElement(root, "workbookPr")
    if workbook.calendar is Calendar.MAC_1904:
        workbook_pr.set("date1904", "1")
    views = ET.SubElement(root, "bookViews")
    active = workbook.get_index(workbook.active) if len(workbook) else 0
    ET.SubElement(views, "workbookView", {"activeTab": str(active)})

    sheets = ET.SubElement(root, "sheets")
    for index, (sheet, rel_id) in enumerate(zip(workbook.worksheets, sheet_ids), start=1):
        ET.SubElement(sheets, "sheet", {"name": sheet.title, "sheetId": str(index), "r:id": rel_id})

    if workbook.named_ranges:
        names = ET.SubElement(root, "definedNames")
        for named in workbook.named_ranges:
            ET.SubElement(names, "definedName", {"name": named.name}).text = named.destination
    return _to_xml(root)


def write_workbook(workbook: Workbook) -> bytes:
    strings = SharedStringTable()
    styles = StyleTable()
    parts: list[tuple[str, str]] = []
    overrides: list[tuple[str, str]] = [(DEFAULT_WORKBOOK_PART, WORKBOOK_MAIN_TYPE)]
    workbook_rels: list[Relationship] = []

    for index, sheet in enumerate(workbook.worksheets, start=1):
        part = f"xl/worksheets/sheet{index}.xml"
        xml, strings, styles = serialize_worksheet(sheet, strings, styles)
        parts.append((part, xml))
        overrides.append((part, WORKSHEET_TYPE))
        if sheet.relationships:
            parts.append((relationships_path(part), write_relationships(sheet.relationships, part)))
        workbook_rels.append(Relationship(f"rId{index}", RelationshipType.WORKSHEET, part))

    count = len(workbook_rels)
    workbook_rels.append(Relationship(f"rId{count + 1}", RelationshipType.STYLES, STYLES_PART))
    workbook_rels.append(Relationship(f"rId{count + 2}", RelationshipType.SHARED_STRINGS, SHARED_STRINGS_PART))
    overrides.append((STYLES_PART, STYLES_TYPE))
    overrides.append((SHARED_STRINGS_PART, SHARED_STRINGS_TYPE))

    package_rels = [Relationship("rId1", RelationshipType.OFFICE_DOCUMENT, DEFAULT_WORKBOOK_PART)]
    sheet_ids = [rel.id for rel in workbook_rels[:count]]
    payload = write_archive(
        [
            (CONTENT_TYPES_PART, write_content_types(overrides)),
            (PACKAGE_RELS_PART, write_relationships(package_rels)),
            (DEFAULT_WORKBOOK_PART, write_workbook_part(workbook, sheet_ids)),
            (relationships_path(DEFAULT_WORKBOOK_PART), write_relationships(workbook_rels, DEFAULT_WORKBOOK_PART)),
            *parts,
            (STYLES_PART, write_styles(styles)),
            (SHARED_STRINGS_PART, write_shared_strings(strings)),
        ]
    )
    logger.debug(f"Packaged {len(workbook)} sheets with {len(strings)} shared strings and {len(styles)} cell formats")
    return payload
