from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterable, Iterator, Mapping

from .cell import Cell
from .exceptions import CoordinateFormatError, NamedRangeError, SheetTitleError
from .model import HeaderFooter, PageMargins, PageSetup, Relationship, RelationshipType, TargetMode
from .reference import CellReference, RangeReference, column_index_from_string

if TYPE_CHECKING:
    from .workbook import Workbook

MAX_TITLE_LENGTH = 31
INVALID_TITLE_CHARS = frozenset("[]*:?/\\")

CellRange = tuple[tuple[Cell, ...], ...]


def validate_title(title: str) -> str:
    if not isinstance(title, str) or not title:
        raise SheetTitleError("Sheet title must be a non-empty string")
    if len(title) > MAX_TITLE_LENGTH:
        raise SheetTitleError(f"Sheet title longer than {MAX_TITLE_LENGTH} characters: {title!r}")
    bad = sorted(INVALID_TITLE_CHARS.intersection(title))
    if bad:
        raise SheetTitleError(f"Sheet title contains invalid characters {''.join(bad)!r}: {title!r}")
    return title


class Worksheet:
    def __init__(self, workbook: Workbook, title: str) -> None:
        self._workbook = workbook
        self._title = validate_title(title)
        self._cells: dict[tuple[int, int], Cell] = {}
        self._merged: list[RangeReference] = []
        self._relationships: list[Relationship] = []
        self._frozen: CellReference | None = None
        self._auto_filter: RangeReference | None = None
        self.formula_attributes: dict[str, dict[str, str]] = {}
        self.page_setup = PageSetup()
        self.page_margins = PageMargins()
        self.header_footer = HeaderFooter()

    @property
    def parent(self) -> Workbook:
        return self._workbook

    @property
    def title(self) -> str:
        return self._title

    @title.setter
    def title(self, title: str) -> None:
        validate_title(title)
        if title == self._title:
            return
        self._title = validate_title(self._workbook.unique_sheet_name(title))

    def __repr__(self) -> str:
        return f'<Worksheet "{self._title}">'

    def cell(self, ref: str | CellReference | None = None, *, row: int | None = None, column: int | None = None) -> Cell:
        if ref is None:
            if row is None or column is None:
                raise CoordinateFormatError("Either a reference or both row and column are required")
            ref = CellReference(column, row)
        elif isinstance(ref, str):
            ref = CellReference.parse(ref)
        key = (ref.row, ref.column)
        cell = self._cells.get(key)
        if cell is None:
            cell = Cell(self, ref)
            self._cells[key] = cell
        return cell

    def get_range(self, ref: str | RangeReference) -> CellRange:
        if isinstance(ref, str):
            ref = RangeReference.parse(ref)
        return tuple(tuple(self.cell(cell_ref) for cell_ref in row) for row in ref.rows())

    def __getitem__(self, key: str | CellReference | RangeReference) -> Cell | CellRange:
        if isinstance(key, RangeReference):
            return self.get_range(key)
        if isinstance(key, str) and ":" in key:
            return self.get_range(key)
        return self.cell(key)

    def __setitem__(self, key: str | CellReference, value: Any) -> None:
        self.cell(key).value = value

    def __call__(self, top_left: str, bottom_right: str) -> CellRange:
        return self.get_range(RangeReference(CellReference.parse(top_left), CellReference.parse(bottom_right)))

    def get_named_range(self, name: str) -> CellRange:
        named = self._workbook.get_named_range(name)
        if named.worksheet is not self:
            raise NamedRangeError(f"Named range {name!r} belongs to another worksheet")
        return self.get_range(named.range)

    def iter_cells(self) -> Iterator[Cell]:
        for key in sorted(self._cells):
            cell = self._cells[key]
            if not cell.is_garbage:
                yield cell

    def get_cell_collection(self) -> list[Cell]:
        return list(self.iter_cells())

    def garbage_collect(self) -> None:
        for key in [key for key, cell in self._cells.items() if cell.is_garbage]:
            del self._cells[key]

    def calculate_dimension(self) -> RangeReference:
        cells = self.get_cell_collection()
        if not cells:
            return RangeReference.parse("A1:A1")
        return RangeReference.from_bounds(
            min(cell.column for cell in cells),
            min(cell.row for cell in cells),
            max(cell.column for cell in cells),
            max(cell.row for cell in cells),
        )

    @property
    def max_row(self) -> int:
        cells = self.get_cell_collection()
        return max((cell.row for cell in cells), default=0)

    @property
    def rows(self) -> CellRange:
        dimension = self.calculate_dimension()
        return self.get_range(RangeReference.from_bounds(1, 1, dimension.bottom_right.column, dimension.bottom_right.row))

    @property
    def columns(self) -> CellRange:
        return tuple(zip(*self.rows))

    def append(self, values: Iterable[Any] | Mapping[str | int, Any]) -> None:
        row = self.max_row + 1
        if isinstance(values, Mapping):
            for key, value in values.items():
                column = column_index_from_string(key) if isinstance(key, str) else key
                self.cell(row=row, column=column).value = value
            return
        for column, value in enumerate(values, start=1):
            self.cell(row=row, column=column).value = value

    @property
    def comment_count(self) -> int:
        return sum(1 for cell in self._cells.values() if cell.comment is not None)

    @property
    def merged_ranges(self) -> list[RangeReference]:
        return list(self._merged)

    def merge_cells(self, ref: str | RangeReference) -> None:
        if isinstance(ref, str):
            ref = RangeReference.parse(ref)
        ref = ref.make_relative()
        if ref not in self._merged:
            self._merged.append(ref)

    def unmerge_cells(self, ref: str | RangeReference) -> None:
        if isinstance(ref, str):
            ref = RangeReference.parse(ref)
        ref = ref.make_relative()
        if ref not in self._merged:
            raise CoordinateFormatError(f"Range {ref} is not merged")
        self._merged.remove(ref)

    @property
    def freeze_panes(self) -> CellReference | None:
        return self._frozen

    @freeze_panes.setter
    def freeze_panes(self, top_left: str | Cell | CellReference | None) -> None:
        if isinstance(top_left, Cell):
            top_left = top_left.reference
        elif isinstance(top_left, str):
            top_left = CellReference.parse(top_left)
        if top_left is not None and top_left.column == 1 and top_left.row == 1:
            top_left = None
        self._frozen = top_left.make_relative() if top_left is not None else None

    @property
    def has_frozen_panes(self) -> bool:
        return self._frozen is not None

    def unfreeze_panes(self) -> None:
        self._frozen = None

    @property
    def auto_filter(self) -> RangeReference | None:
        return self._auto_filter

    @auto_filter.setter
    def auto_filter(self, ref: str | RangeReference | None) -> None:
        if isinstance(ref, str):
            ref = RangeReference.parse(ref)
        self._auto_filter = ref.make_relative() if ref is not None else None

    @property
    def has_auto_filter(self) -> bool:
        return self._auto_filter is not None

    @property
    def relationships(self) -> list[Relationship]:
        return list(self._relationships)

    def get_relationship(self, relationship_id: str) -> Relationship | None:
        for relationship in self._relationships:
            if relationship.id == relationship_id:
                return relationship
        return None

    def add_relationship(self, relationship: Relationship) -> Relationship:
        if self.get_relationship(relationship.id) is not None:
            self.remove_relationship(relationship.id)
        self._relationships.append(relationship)
        return relationship

    def add_hyperlink_relationship(self, target: str, relationship_id: str | None = None) -> Relationship:
        relationship = Relationship(
            id=relationship_id or self._next_relationship_id(),
            type=RelationshipType.HYPERLINK,
            target=target,
            mode=TargetMode.EXTERNAL,
        )
        existing = self.get_relationship(relationship.id)
        if existing is not None:
            self._relationships[self._relationships.index(existing)] = relationship
            return relationship
        self._relationships.append(relationship)
        return relationship

    def remove_relationship(self, relationship_id: str) -> None:
        self._relationships = [rel for rel in self._relationships if rel.id != relationship_id]

    def _next_relationship_id(self) -> str:
        numbers = [int(rel.id[3:]) for rel in self._relationships if rel.id.startswith("rId") and rel.id[3:].isdigit()]
        return f"rId{max(numbers, default=0) + 1}"
