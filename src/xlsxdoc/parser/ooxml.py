from __future__ import annotations

import logging
from pathlib import Path
from typing import IO
from xml.etree import ElementTree as ET

from ..archive import Archive, open_archive
from ..dates import Calendar
from ..exceptions import CoordinateFormatError, NamedRangeError
from ..model import LoadOptions, Relationship, RelationshipType, SharedStringTable
from ..styles import BUILTIN_FORMATS, FORMAT_GENERAL, StyleTable
from ..workbook import Workbook
from .namespaces import NS, SPREADSHEET_NS
from .parts import detect_worksheets, find_workbook_part, read_relationships
from .utils import decode_xml_escapes, parse_xml, split_sheet_reference, xml_bool
from .worksheet import read_worksheet

logger = logging.getLogger(__name__)

_DEFAULT_PARTS = {
    RelationshipType.SHARED_STRINGS: "xl/sharedStrings.xml",
    RelationshipType.STYLES: "xl/styles.xml",
}


class OOXMLWorkbookParser:
    def __init__(self, source: str | Path | bytes | IO[bytes], options: LoadOptions | None = None) -> None:
        self.source = source
        self.options = options or LoadOptions()

    def parse(self) -> Workbook:
        with open_archive(self.source, repair=self.options.repair) as archive:
            workbook_part = find_workbook_part(archive)
            wb_root = parse_xml(archive.read_part(workbook_part), workbook_part)
            wb_rels = read_relationships(archive, workbook_part)

            workbook = Workbook(
                guess_types=self.options.guess_types,
                data_only=self.options.data_only,
                calendar=self._parse_calendar(wb_root),
                empty=True,
            )
            workbook.shared_strings = self._parse_shared_strings(archive, wb_rels)
            workbook.styles = self._parse_styles(archive, wb_rels)

            for part, name in detect_worksheets(archive, workbook_part):
                read_worksheet(
                    archive.read_part(part),
                    workbook,
                    name,
                    workbook.shared_strings,
                    workbook.styles,
                    relationships=read_relationships(archive, part),
                    part=part,
                )

            self._parse_defined_names(wb_root, workbook)
            self._parse_active_sheet(wb_root, workbook)
            logger.info(f"Loaded {len(workbook)} worksheets from {archive.name}")
            return workbook

    def _parse_calendar(self, wb_root: ET.Element) -> Calendar:
        workbook_pr = wb_root.find("a:workbookPr", NS)
        if workbook_pr is not None and xml_bool(workbook_pr.attrib.get("date1904")):
            return Calendar.MAC_1904
        return Calendar.WINDOWS_1900

    def _related_part(self, archive: Archive, wb_rels: list[Relationship], rel_type: RelationshipType) -> str | None:
        for rel in wb_rels:
            if rel.type is rel_type:
                if archive.has_part(rel.target):
                    return rel.target
                logger.warning(f"Relationship {rel.id} points at missing part {rel.target}")
                return None
        fallback = _DEFAULT_PARTS[rel_type]
        return fallback if archive.has_part(fallback) else None

    def _parse_shared_strings(self, archive: Archive, wb_rels: list[Relationship]) -> SharedStringTable:
        part = self._related_part(archive, wb_rels, RelationshipType.SHARED_STRINGS)
        if part is None:
            return SharedStringTable()

        root = parse_xml(archive.read_part(part), part)
        values: list[str] = []
        for si in root.findall(f"{{{SPREADSHEET_NS}}}si"):
            direct = si.find(f"{{{SPREADSHEET_NS}}}t")
            if direct is not None:
                values.append(decode_xml_escapes(direct.text or ""))
                continue
            texts: list[str] = []
            for txt in si.findall(f"{{{SPREADSHEET_NS}}}r/{{{SPREADSHEET_NS}}}t"):
                texts.append(txt.text or "")
            values.append(decode_xml_escapes("".join(texts)))
        logger.debug(f"Read {len(values)} shared strings from {part}")
        return SharedStringTable(values)

    def _parse_styles(self, archive: Archive, wb_rels: list[Relationship]) -> StyleTable:
        part = self._related_part(archive, wb_rels, RelationshipType.STYLES)
        if part is None:
            return StyleTable()

        root = parse_xml(archive.read_part(part), part)
        custom_numfmts = self._parse_custom_numfmts(root)
        codes: list[str] = []
        for xf in root.findall("a:cellXfs/a:xf", NS):
            try:
                num_fmt_id = int(xf.attrib.get("numFmtId", "0"))
            except ValueError:
                num_fmt_id = 0
            codes.append(custom_numfmts.get(num_fmt_id) or BUILTIN_FORMATS.get(num_fmt_id, FORMAT_GENERAL))
        return StyleTable(codes)

    def _parse_custom_numfmts(self, styles_root: ET.Element) -> dict[int, str]:
        result: dict[int, str] = {}
        for num_fmt in styles_root.findall("a:numFmts/a:numFmt", NS):
            raw_id = num_fmt.attrib.get("numFmtId")
            code = num_fmt.attrib.get("formatCode")
            if raw_id is None or code is None:
                continue
            try:
                fmt_id = int(raw_id)
            except ValueError:
                continue
            result[fmt_id] = code
        return result

    def _parse_defined_names(self, wb_root: ET.Element, workbook: Workbook) -> None:
        for dn in wb_root.findall("a:definedNames/a:definedName", NS):
            name = dn.attrib.get("name", "")
            value = (dn.text or "").strip()
            if name.startswith("_xlnm."):
                continue
            scoped = split_sheet_reference(value)
            sheet = workbook.get_sheet_by_name(scoped[0]) if scoped else None
            if scoped is None or sheet is None:
                logger.warning(f"Skipping defined name {name!r}: {value!r} is not a range on a known sheet")
                continue
            try:
                workbook.create_named_range(name, sheet, scoped[1])
            except (CoordinateFormatError, NamedRangeError) as exc:
                logger.warning(f"Skipping defined name {name!r}: {exc}")

    def _parse_active_sheet(self, wb_root: ET.Element, workbook: Workbook) -> None:
        view = wb_root.find("a:bookViews/a:workbookView", NS)
        if view is None or not len(workbook):
            return
        try:
            active = int(view.attrib.get("activeTab", "0"))
        except ValueError:
            return
        if 0 <= active < len(workbook):
            workbook.active = active
