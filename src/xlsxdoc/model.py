from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Iterable, Iterator


@dataclass(slots=True)
class LoadOptions:
    guess_types: bool = False
    data_only: bool = False
    repair: bool = True


class RelationshipType(str, Enum):
    OFFICE_DOCUMENT = "http://schemas.openxmlformats.org/officeDocument/2006/relationships/officeDocument"
    CORE_PROPERTIES = "http://schemas.openxmlformats.org/package/2006/relationships/metadata/core-properties"
    EXTENDED_PROPERTIES = "http://schemas.openxmlformats.org/officeDocument/2006/relationships/extended-properties"
    WORKSHEET = "http://schemas.openxmlformats.org/officeDocument/2006/relationships/worksheet"
    CHARTSHEET = "http://schemas.openxmlformats.org/officeDocument/2006/relationships/chartsheet"
    STYLES = "http://schemas.openxmlformats.org/officeDocument/2006/relationships/styles"
    THEME = "http://schemas.openxmlformats.org/officeDocument/2006/relationships/theme"
    SHARED_STRINGS = "http://schemas.openxmlformats.org/officeDocument/2006/relationships/sharedStrings"
    CALC_CHAIN = "http://schemas.openxmlformats.org/officeDocument/2006/relationships/calcChain"
    CUSTOM_XML = "http://schemas.openxmlformats.org/officeDocument/2006/relationships/customXml"
    HYPERLINK = "http://schemas.openxmlformats.org/officeDocument/2006/relationships/hyperlink"
    DRAWING = "http://schemas.openxmlformats.org/officeDocument/2006/relationships/drawing"
    COMMENTS = "http://schemas.openxmlformats.org/officeDocument/2006/relationships/comments"
    VML_DRAWING = "http://schemas.openxmlformats.org/officeDocument/2006/relationships/vmlDrawing"
    PRINTER_SETTINGS = "http://schemas.openxmlformats.org/officeDocument/2006/relationships/printerSettings"
    UNKNOWN = "unknown"

    @classmethod
    def from_uri(cls, uri: str) -> RelationshipType:
        try:
            return cls(uri)
        except ValueError:
            pass
        # strict conformance documents use a different base URI
        suffix = uri.rsplit("/", 1)[-1]
        for member in cls:
            if member is not cls.UNKNOWN and member.value.rsplit("/", 1)[-1] == suffix:
                return member
        return cls.UNKNOWN


class TargetMode(str, Enum):
    INTERNAL = "Internal"
    EXTERNAL = "External"


@dataclass(frozen=True, slots=True)
class Relationship:
    id: str
    type: RelationshipType
    target: str
    mode: TargetMode = TargetMode.INTERNAL
    type_uri: str = ""

    @property
    def uri(self) -> str:
        return self.type_uri or self.type.value


@dataclass(frozen=True, slots=True)
class ContentTypeEntry:
    part_path: str
    media_type: str


@dataclass(frozen=True, slots=True)
class Comment:
    text: str
    author: str = ""


class Orientation(str, Enum):
    DEFAULT = "default"
    PORTRAIT = "portrait"
    LANDSCAPE = "landscape"


class PaperSize(IntEnum):
    LETTER = 1
    LETTER_SMALL = 2
    TABLOID = 3
    LEDGER = 4
    LEGAL = 5
    STATEMENT = 6
    EXECUTIVE = 7
    A3 = 8
    A4 = 9
    A4_SMALL = 10
    A5 = 11


@dataclass(slots=True)
class PageMargins:
    left: float = 0.75
    right: float = 0.75
    top: float = 1.0
    bottom: float = 1.0
    header: float = 0.5
    footer: float = 0.5


@dataclass(slots=True)
class PageSetup:
    orientation: Orientation = Orientation.DEFAULT
    paper_size: PaperSize | None = None
    fit_to_page: bool = False
    fit_to_height: bool = True
    fit_to_width: bool = True
    scale: int = 100
    horizontal_centered: bool = False
    vertical_centered: bool = False

    @property
    def has_print_options(self) -> bool:
        return self.horizontal_centered or self.vertical_centered

    @property
    def is_default(self) -> bool:
        return (
            self.orientation is Orientation.DEFAULT
            and self.paper_size is None
            and not self.fit_to_page
            and self.scale == 100
        )


@dataclass(slots=True)
class HeaderFooterItem:
    text: str = ""
    font_name: str | None = None
    font_size: int | None = None
    font_color: str | None = None

    @property
    def is_empty(self) -> bool:
        return not self.text


@dataclass(slots=True)
class HeaderFooter:
    left_header: HeaderFooterItem = field(default_factory=HeaderFooterItem)
    center_header: HeaderFooterItem = field(default_factory=HeaderFooterItem)
    right_header: HeaderFooterItem = field(default_factory=HeaderFooterItem)
    left_footer: HeaderFooterItem = field(default_factory=HeaderFooterItem)
    center_footer: HeaderFooterItem = field(default_factory=HeaderFooterItem)
    right_footer: HeaderFooterItem = field(default_factory=HeaderFooterItem)

    @property
    def headers(self) -> tuple[HeaderFooterItem, HeaderFooterItem, HeaderFooterItem]:
        return self.left_header, self.center_header, self.right_header

    @property
    def footers(self) -> tuple[HeaderFooterItem, HeaderFooterItem, HeaderFooterItem]:
        return self.left_footer, self.center_footer, self.right_footer

    @property
    def is_default(self) -> bool:
        return all(item.is_empty for item in (*self.headers, *self.footers))


class SharedStringTable:
    def __init__(self, values: Iterable[str] = ()) -> None:
        self._values: list[str] = []
        self._index: dict[str, int] = {}
        for value in values:
            self._values.append(value)
            self._index.setdefault(value, len(self._values) - 1)

    def add(self, value: str) -> int:
        if value not in self._index:
            self._values.append(value)
            self._index[value] = len(self._values) - 1
        return self._index[value]

    def index_of(self, value: str) -> int | None:
        return self._index.get(value)

    def copy(self) -> SharedStringTable:
        return SharedStringTable(self._values)

    def __getitem__(self, index: int) -> str:
        return self._values[index]

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, SharedStringTable):
            return self._values == other._values
        if isinstance(other, (list, tuple)):
            return self._values == list(other)
        return NotImplemented
