from __future__ import annotations

import logging
import posixpath

from ..archive import Archive
from ..exceptions import InvalidFileError, PartParseError
from ..model import ContentTypeEntry, Relationship, RelationshipType, TargetMode
from .namespaces import (
    CONTENT_TYPES_PART,
    DEFAULT_WORKBOOK_PART,
    NS,
    PACKAGE_REL_NS,
    REL_ID,
    WORKBOOK_BINARY_TYPE,
)
from .utils import local_name, parse_xml, relationships_path, resolve_target

logger = logging.getLogger(__name__)


def read_content_types(archive: Archive) -> list[ContentTypeEntry]:
    if not archive.has_part(CONTENT_TYPES_PART):
        logger.warning(f"{archive.name} has no {CONTENT_TYPES_PART} part")
        return []

    root = parse_xml(archive.read_part(CONTENT_TYPES_PART), CONTENT_TYPES_PART)
    defaults: dict[str, str] = {}
    entries: list[ContentTypeEntry] = []
    overridden: set[str] = set()

    for child in list(root):
        tag = local_name(child.tag)
        if tag == "Default":
            ext = child.attrib.get("Extension", "").lower()
            ctype = child.attrib.get("ContentType", "")
            if ext and ctype:
                defaults[ext] = ctype
        elif tag == "Override":
            part_name = child.attrib.get("PartName", "").lstrip("/")
            ctype = child.attrib.get("ContentType", "")
            if part_name and ctype and part_name not in overridden:
                overridden.add(part_name)
                entries.append(ContentTypeEntry(part_name, ctype))

    for path in archive.list_parts():
        if path in overridden or path == CONTENT_TYPES_PART:
            continue
        _, dot, ext = posixpath.basename(path).rpartition(".")
        ext = ext.lower() if dot else ""
        if ext in defaults:
            entries.append(ContentTypeEntry(path, defaults[ext]))

    return entries


def content_type_of(entries: list[ContentTypeEntry], part: str) -> str | None:
    for entry in entries:
        if entry.part_path == part:
            return entry.media_type
    return None


def read_relationships(archive: Archive, owner_part: str = "") -> list[Relationship]:
    path = relationships_path(owner_part)
    if not archive.has_part(path):
        return []

    root = parse_xml(archive.read_part(path), path)
    relationships: list[Relationship] = []
    for rel in root.findall(f"{{{PACKAGE_REL_NS}}}Relationship"):
        rel_id = rel.attrib.get("Id")
        target = rel.attrib.get("Target")
        if not rel_id or target is None:
            raise PartParseError("relationship without Id or Target", part=path)
        type_uri = rel.attrib.get("Type", "")
        mode = TargetMode.EXTERNAL if rel.attrib.get("TargetMode") == "External" else TargetMode.INTERNAL
        if mode is TargetMode.INTERNAL:
            target = resolve_target(owner_part, target)
        relationships.append(
            Relationship(
                id=rel_id,
                type=RelationshipType.from_uri(type_uri),
                target=target,
                mode=mode,
                type_uri=type_uri,
            )
        )
    return relationships


def find_workbook_part(archive: Archive) -> str:
    for rel in read_relationships(archive):
        if rel.type is RelationshipType.OFFICE_DOCUMENT:
            part = rel.target
            break
    else:
        part = DEFAULT_WORKBOOK_PART

    if part.lower().endswith(".bin") or content_type_of(read_content_types(archive), part) == WORKBOOK_BINARY_TYPE:
        raise InvalidFileError(f"{archive.name} is a binary workbook, which is not supported")
    if not archive.has_part(part):
        raise InvalidFileError(f"{archive.name} has no workbook part")
    return part


def read_sheets(archive: Archive, workbook_part: str | None = None) -> list[tuple[str, str]]:
    workbook_part = workbook_part or find_workbook_part(archive)
    root = parse_xml(archive.read_part(workbook_part), workbook_part)
    sheets: list[tuple[str, str]] = []
    for idx, sheet in enumerate(root.findall("a:sheets/a:sheet", NS)):
        rel_id = sheet.attrib.get(REL_ID)
        if not rel_id:
            raise PartParseError(f"sheet #{idx + 1} has no relationship id", part=workbook_part)
        sheets.append((rel_id, sheet.attrib.get("name", f"Sheet{idx + 1}")))
    return sheets


def detect_worksheets(archive: Archive, workbook_part: str | None = None) -> list[tuple[str, str]]:
    workbook_part = workbook_part or find_workbook_part(archive)
    targets = {
        rel.id: rel.target
        for rel in read_relationships(archive, workbook_part)
        if rel.type is RelationshipType.WORKSHEET
    }
    worksheets: list[tuple[str, str]] = []
    for rel_id, name in read_sheets(archive, workbook_part):
        part = targets.get(rel_id)
        if part is None:
            # chartsheets and dialog sheets
            continue
        if not archive.has_part(part):
            logger.warning(f"Sheet {name!r} points at missing part {part}")
            continue
        worksheets.append((part, name))
    return worksheets
