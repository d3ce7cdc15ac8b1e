from __future__ import annotations

import posixpath
import re
from xml.etree import ElementTree as ET

from ..exceptions import PartParseError

SHEET_RANGE_RE = re.compile(r"^(?:'((?:[^']|'')+)'|([^!]+))!(.+)$")


def local_name(tag: str) -> str:
    if "}" in tag:
        return tag.rsplit("}", 1)[1]
    return tag


def parse_xml(payload: bytes, part: str) -> ET.Element:
    try:
        return ET.fromstring(payload)
    except ET.ParseError as exc:
        raise PartParseError(f"malformed XML: {exc}", part=part) from exc


def resolve_target(base_path: str, target: str) -> str:
    if target.startswith("/"):
        return posixpath.normpath(target)[1:]
    joined = posixpath.normpath(posixpath.join(posixpath.dirname(base_path), target))
    if joined.startswith("/"):
        joined = joined[1:]
    return joined


def relationships_path(part: str) -> str:
    if "/" not in part:
        return f"_rels/{part}.rels"
    parent, file_name = part.rsplit("/", 1)
    return f"{parent}/_rels/{file_name}.rels"


def split_sheet_reference(value: str) -> tuple[str, str] | None:
    match = SHEET_RANGE_RE.match(value.strip())
    if not match:
        return None
    quoted, plain, ref = match.groups()
    title = quoted.replace("''", "'") if quoted is not None else plain
    return title, ref


def xml_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.lower() in {"1", "true"}


_XML_ESCAPE_RE = re.compile(r"_x([0-9A-Fa-f]{4})_")
_ILLEGAL_XML_CHARS_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\ufffe\uffff]|_(?=x[0-9A-Fa-f]{4}_)")


def encode_xml_escapes(text: str) -> str:
    """Replace characters XML 1.0 cannot carry with ``_xHHHH_`` tokens.

    A literal ``_xHHHH_`` in the text gets its underscore escaped as ``_x005F_``
    so it decodes back to itself.
    """
    return _ILLEGAL_XML_CHARS_RE.sub(lambda match: f"_x{ord(match.group(0)):04X}_", text)


def decode_xml_escapes(text: str) -> str:
    if "_x" not in text:
        return text
    return _XML_ESCAPE_RE.sub(lambda match: chr(int(match.group(1), 16)), text)
