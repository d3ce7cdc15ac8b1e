from __future__ import annotations

from pathlib import Path
from xml.etree import ElementTree as ET
from zipfile import ZipFile

SPREADSHEET_NS = "http://schemas.openxmlformats.org/spreadsheetml/2006/main"
DOCUMENT_REL_NS = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"
PACKAGE_REL_NS = "http://schemas.openxmlformats.org/package/2006/relationships"
CONTENT_TYPES_NS = "http://schemas.openxmlformats.org/package/2006/content-types"

REL_TYPE = "http://schemas.openxmlformats.org/officeDocument/2006/relationships/"
WORKSHEET_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.worksheet+xml"


def sheet_xml(rows: str = "", *, before: str = "", after: str = "") -> str:
    return (
        f'<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'
        f'<worksheet xmlns="{SPREADSHEET_NS}" xmlns:r="{DOCUMENT_REL_NS}">'
        f"{before}<sheetData>{rows}</sheetData>{after}</worksheet>"
    )


def shared_strings_xml(values: list[str]) -> str:
    items = "".join(f"<si><t>{value}</t></si>" for value in values)
    return f'<sst xmlns="{SPREADSHEET_NS}" count="{len(values)}" uniqueCount="{len(values)}">{items}</sst>'


def styles_xml(num_fmt_ids: list[int], custom: dict[int, str] | None = None) -> str:
    num_fmts = ""
    if custom:
        entries = "".join(f'<numFmt numFmtId="{fmt_id}" formatCode="{code}"/>' for fmt_id, code in custom.items())
        num_fmts = f'<numFmts count="{len(custom)}">{entries}</numFmts>'
    xfs = "".join(f'<xf numFmtId="{fmt_id}" fontId="0" fillId="0" borderId="0" xfId="0"/>' for fmt_id in num_fmt_ids)
    return f'<styleSheet xmlns="{SPREADSHEET_NS}">{num_fmts}<cellXfs count="{len(num_fmt_ids)}">{xfs}</cellXfs></styleSheet>'


def relationships_xml(entries: list[tuple[str, str, str]], external: set[str] | None = None) -> str:
    external = external or set()
    items = []
    for rel_id, rel_type, target in entries:
        mode = ' TargetMode="External"' if rel_id in external else ""
        items.append(f'<Relationship Id="{rel_id}" Type="{REL_TYPE}{rel_type}" Target="{target}"{mode}/>')
    return f'<Relationships xmlns="{PACKAGE_REL_NS}">{"".join(items)}</Relationships>'


def build_workbook_archive(
    path: Path,
    sheets: list[tuple[str, str]],
    *,
    part_names: list[str] | None = None,
    shared_strings: list[str] | None = None,
    styles: str | None = None,
    date1904: bool = False,
    defined_names: dict[str, str] | None = None,
    sheet_rels: dict[int, str] | None = None,
    chartsheets: list[str] | None = None,
) -> Path:
    """Write a minimal workbook package; sheets are (title, worksheet xml) in workbook order."""
    part_names = part_names or [f"sheet{idx}.xml" for idx in range(1, len(sheets) + 1)]
    chartsheets = chartsheets or []

    overrides = [("/xl/workbook.xml", "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet.main+xml")]
    workbook_rels: list[tuple[str, str, str]] = []
    sheet_entries: list[str] = []
    for idx, ((title, _), part_name) in enumerate(zip(sheets, part_names), start=1):
        workbook_rels.append((f"rId{idx}", "worksheet", f"worksheets/{part_name}"))
        overrides.append((f"/xl/worksheets/{part_name}", WORKSHEET_TYPE))
        sheet_entries.append(f'<sheet name="{title}" sheetId="{idx}" r:id="rId{idx}"/>')
    for offset, title in enumerate(chartsheets, start=len(sheets) + 1):
        workbook_rels.append((f"rId{offset}", "chartsheet", f"chartsheets/sheet{offset}.xml"))
        sheet_entries.append(f'<sheet name="{title}" sheetId="{offset}" r:id="rId{offset}"/>')

    next_id = len(workbook_rels) + 1
    if shared_strings is not None:
        workbook_rels.append((f"rId{next_id}", "sharedStrings", "sharedStrings.xml"))
        next_id += 1
    if styles is not None:
        workbook_rels.append((f"rId{next_id}", "styles", "styles.xml"))

    names = ""
    if defined_names:
        names = "<definedNames>" + "".join(
            f'<definedName name="{name}">{value}</definedName>' for name, value in defined_names.items()
        ) + "</definedNames>"
    workbook_pr = '<workbookPr date1904="1"/>' if date1904 else "<workbookPr/>"
    workbook = (
        f'<workbook xmlns="{SPREADSHEET_NS}" xmlns:r="{DOCUMENT_REL_NS}">'
        f'{workbook_pr}<sheets>{"".join(sheet_entries)}</sheets>{names}</workbook>'
    )
    content_types = (
        f'<Types xmlns="{CONTENT_TYPES_NS}">'
        '<Default Extension="rels" ContentType="application/vnd.openxmlformats-package.relationships+xml"/>'
        '<Default Extension="xml" ContentType="application/xml"/>'
        + "".join(f'<Override PartName="{name}" ContentType="{ctype}"/>' for name, ctype in overrides)
        + "</Types>"
    )

    with ZipFile(path, "w") as zf:
        zf.writestr("[Content_Types].xml", content_types)
        zf.writestr("_rels/.rels", relationships_xml([("rId1", "officeDocument", "xl/workbook.xml")]))
        zf.writestr("xl/workbook.xml", workbook)
        zf.writestr("xl/_rels/workbook.xml.rels", relationships_xml(workbook_rels))
        for idx, ((_, xml), part_name) in enumerate(zip(sheets, part_names), start=1):
            zf.writestr(f"xl/worksheets/{part_name}", xml)
            if sheet_rels and idx in sheet_rels:
                zf.writestr(f"xl/worksheets/_rels/{part_name}.rels", sheet_rels[idx])
        for offset in range(len(sheets) + 1, len(sheets) + 1 + len(chartsheets)):
            zf.writestr(f"xl/chartsheets/sheet{offset}.xml", f'<chartsheet xmlns="{SPREADSHEET_NS}"/>')
        if shared_strings is not None:
            zf.writestr("xl/sharedStrings.xml", shared_strings_xml(shared_strings))
        if styles is not None:
            zf.writestr("xl/styles.xml", styles)
    return path


def xml_to_dict(element: ET.Element) -> dict:
    children = [xml_to_dict(child) for child in list(element)]
    text = (element.text or "").strip()
    payload: dict[str, object] = {
        "tag": element.tag,
        "attrs": dict(sorted(element.attrib.items())),
    }
    if text:
        payload["text"] = text
    if children:
        payload["children"] = children
    return payload


def same_xml(observed: str, expected: str) -> bool:
    return xml_to_dict(ET.fromstring(observed)) == xml_to_dict(ET.fromstring(expected))
