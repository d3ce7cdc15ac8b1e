from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import Iterator

from .exceptions import ColumnIndexError, CoordinateFormatError

COLUMN_MAX = 18278

CELL_RE = re.compile(r"^(\$?)([A-Za-z]+)(\$?)(\d+)$")


def column_index_from_string(column: str) -> int:
    if not column or not column.isascii() or not column.isalpha():
        raise ColumnIndexError(f"Invalid column string: {column!r}")
    value = 0
    for char in column.upper():
        value = value * 26 + (ord(char) - 64)
        if value > COLUMN_MAX:
            raise ColumnIndexError(f"Column string out of range: {column!r}")
    return value


def column_string_from_index(index: int) -> str:
    if index < 1 or index > COLUMN_MAX:
        raise ColumnIndexError(f"Column index out of range: {index}")
    result: list[str] = []
    value = index
    while value > 0:
        value, rem = divmod(value - 1, 26)
        result.append(chr(65 + rem))
    return "".join(reversed(result))


@dataclass(frozen=True, slots=True)
class CellReference:
    column: int
    row: int
    column_absolute: bool = False
    row_absolute: bool = False

    def __post_init__(self) -> None:
        if not 1 <= self.column <= COLUMN_MAX:
            raise CoordinateFormatError(f"Column out of range: {self.column}")
        if self.row < 1:
            raise CoordinateFormatError(f"Row out of range: {self.row}")

    @classmethod
    def parse(cls, text: str) -> CellReference:
        match = CELL_RE.match(text.strip())
        if not match:
            raise CoordinateFormatError(f"Invalid coordinate: {text!r}")
        col_abs, letters, row_abs, digits = match.groups()
        try:
            column = column_index_from_string(letters)
        except ColumnIndexError as exc:
            raise CoordinateFormatError(f"Invalid coordinate: {text!r}") from exc
        row = int(digits)
        if row == 0:
            raise CoordinateFormatError(f"Invalid coordinate: {text!r}")
        return cls(column, row, bool(col_abs), bool(row_abs))

    @property
    def column_letter(self) -> str:
        return column_string_from_index(self.column)

    @property
    def is_absolute(self) -> bool:
        return self.column_absolute and self.row_absolute

    def make_absolute(self, column: bool = True, row: bool = True) -> CellReference:
        return replace(self, column_absolute=column, row_absolute=row)

    def make_relative(self) -> CellReference:
        return replace(self, column_absolute=False, row_absolute=False)

    def make_offset(self, column_offset: int, row_offset: int) -> CellReference:
        return replace(self, column=self.column + column_offset, row=self.row + row_offset)

    def __str__(self) -> str:
        col_mark = "$" if self.column_absolute else ""
        row_mark = "$" if self.row_absolute else ""
        return f"{col_mark}{self.column_letter}{row_mark}{self.row}"


@dataclass(frozen=True, slots=True)
class RangeReference:
    top_left: CellReference
    bottom_right: CellReference

    def __post_init__(self) -> None:
        tl, br = self.top_left, self.bottom_right
        if tl.column <= br.column and tl.row <= br.row:
            return
        # each axis keeps its own absolute marker while the corners are sorted
        (first_col, first_col_abs), (last_col, last_col_abs) = sorted(
            ((tl.column, tl.column_absolute), (br.column, br.column_absolute)), key=lambda item: item[0]
        )
        (first_row, first_row_abs), (last_row, last_row_abs) = sorted(
            ((tl.row, tl.row_absolute), (br.row, br.row_absolute)), key=lambda item: item[0]
        )
        object.__setattr__(self, "top_left", CellReference(first_col, first_row, first_col_abs, first_row_abs))
        object.__setattr__(self, "bottom_right", CellReference(last_col, last_row, last_col_abs, last_row_abs))

    @classmethod
    def parse(cls, text: str) -> RangeReference:
        parts = text.strip().split(":")
        if len(parts) == 1:
            ref = CellReference.parse(parts[0])
            return cls(ref, ref)
        if len(parts) != 2:
            raise CoordinateFormatError(f"Invalid range reference: {text!r}")
        return cls(CellReference.parse(parts[0]), CellReference.parse(parts[1]))

    @classmethod
    def from_bounds(cls, min_col: int, min_row: int, max_col: int, max_row: int) -> RangeReference:
        return cls(CellReference(min_col, min_row), CellReference(max_col, max_row))

    @property
    def width(self) -> int:
        return self.bottom_right.column - self.top_left.column + 1

    @property
    def height(self) -> int:
        return self.bottom_right.row - self.top_left.row + 1

    @property
    def is_single_cell(self) -> bool:
        return self.width == 1 and self.height == 1

    def make_absolute(self) -> RangeReference:
        return RangeReference(self.top_left.make_absolute(), self.bottom_right.make_absolute())

    def make_relative(self) -> RangeReference:
        return RangeReference(self.top_left.make_relative(), self.bottom_right.make_relative())

    def make_offset(self, column_offset: int, row_offset: int) -> RangeReference:
        return RangeReference(
            self.top_left.make_offset(column_offset, row_offset),
            self.bottom_right.make_offset(column_offset, row_offset),
        )

    def contains(self, ref: CellReference | str) -> bool:
        if isinstance(ref, str):
            ref = CellReference.parse(ref)
        return (
            self.top_left.column <= ref.column <= self.bottom_right.column
            and self.top_left.row <= ref.row <= self.bottom_right.row
        )

    def intersects(self, other: RangeReference) -> bool:
        return not (
            other.top_left.column > self.bottom_right.column
            or other.bottom_right.column < self.top_left.column
            or other.top_left.row > self.bottom_right.row
            or other.bottom_right.row < self.top_left.row
        )

    def rows(self) -> list[list[CellReference]]:
        return [
            [CellReference(col, row) for col in range(self.top_left.column, self.bottom_right.column + 1)]
            for row in range(self.top_left.row, self.bottom_right.row + 1)
        ]

    def cells(self) -> Iterator[CellReference]:
        for row in self.rows():
            yield from row

    def __str__(self) -> str:
        return f"{self.top_left}:{self.bottom_right}"


def parse(text: str) -> CellReference:
    return CellReference.parse(text)


def parse_range(text: str) -> RangeReference:
    return RangeReference.parse(text)
