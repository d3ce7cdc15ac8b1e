from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import IO, Iterator

from .dates import Calendar
from .exceptions import NamedRangeError, SheetTitleError
from .model import SharedStringTable
from .reference import RangeReference
from .styles import StyleTable
from .worksheet import Worksheet, validate_title


@dataclass(frozen=True, slots=True)
class NamedRange:
    name: str
    worksheet: Worksheet
    range: RangeReference

    @property
    def destination(self) -> str:
        title = self.worksheet.title
        if not title.replace("_", "").isalnum():
            title = "'" + title.replace("'", "''") + "'"
        ref = self.range.make_absolute()
        return f"{title}!{ref.top_left if ref.is_single_cell else ref}"


class Workbook:
    def __init__(
        self,
        guess_types: bool = True,
        data_only: bool = False,
        calendar: Calendar = Calendar.WINDOWS_1900,
        *,
        empty: bool = False,
    ) -> None:
        self.guess_types = guess_types
        self.data_only = data_only
        self.calendar = calendar
        self.shared_strings = SharedStringTable()
        self.styles = StyleTable()
        self._sheets: list[Worksheet] = []
        self._named_ranges: dict[str, NamedRange] = {}
        self._active_index = 0
        if not empty:
            self.create_sheet("Sheet1")

    @property
    def worksheets(self) -> list[Worksheet]:
        return list(self._sheets)

    @property
    def sheetnames(self) -> list[str]:
        return [sheet.title for sheet in self._sheets]

    def __iter__(self) -> Iterator[Worksheet]:
        return iter(list(self._sheets))

    def __len__(self) -> int:
        return len(self._sheets)

    def __contains__(self, title: object) -> bool:
        return any(sheet.title == title for sheet in self._sheets)

    def __getitem__(self, key: str | int) -> Worksheet:
        if isinstance(key, int):
            return self._sheets[key]
        sheet = self.get_sheet_by_name(key)
        if sheet is None:
            raise KeyError(f"Worksheet {key!r} does not exist")
        return sheet

    @property
    def active(self) -> Worksheet:
        if not self._sheets:
            raise IndexError("Workbook has no worksheets")
        return self._sheets[min(self._active_index, len(self._sheets) - 1)]

    @active.setter
    def active(self, sheet: Worksheet | int) -> None:
        index = sheet if isinstance(sheet, int) else self.get_index(sheet)
        if not 0 <= index < len(self._sheets):
            raise IndexError(f"Worksheet index out of range: {index}")
        self._active_index = index

    def get_index(self, sheet: Worksheet) -> int:
        for index, candidate in enumerate(self._sheets):
            if candidate is sheet:
                return index
        raise ValueError(f"{sheet!r} does not belong to this workbook")

    def get_sheet_by_name(self, title: str) -> Worksheet | None:
        for sheet in self._sheets:
            if sheet.title == title:
                return sheet
        return None

    def unique_sheet_name(self, title: str) -> str:
        taken = set(self.sheetnames)
        if title not in taken:
            return title
        suffix = 1
        while f"{title}{suffix}" in taken:
            suffix += 1
        return f"{title}{suffix}"

    def _default_title(self) -> str:
        taken = set(self.sheetnames)
        number = len(self._sheets) + 1
        while f"Sheet{number}" in taken:
            number += 1
        return f"Sheet{number}"

    def create_sheet(self, title: str | None = None, index: int | None = None) -> Worksheet:
        if title is None:
            title = self._default_title()
        else:
            validate_title(title)
            title = self.unique_sheet_name(title)
            if len(title) > 31:
                raise SheetTitleError(f"No unique title of at most 31 characters for {title!r}")
        sheet = Worksheet(self, title)
        if index is None:
            self._sheets.append(sheet)
        else:
            self._sheets.insert(index, sheet)
        return sheet

    def remove_sheet(self, sheet: Worksheet | str) -> None:
        if isinstance(sheet, str):
            found = self.get_sheet_by_name(sheet)
            if found is None:
                raise KeyError(f"Worksheet {sheet!r} does not exist")
            sheet = found
        self._sheets.pop(self.get_index(sheet))
        for name in [name for name, named in self._named_ranges.items() if named.worksheet is sheet]:
            del self._named_ranges[name]

    @property
    def named_ranges(self) -> list[NamedRange]:
        return list(self._named_ranges.values())

    def create_named_range(self, name: str, worksheet: Worksheet, ref: str | RangeReference) -> NamedRange:
        if not name or name[0].isdigit() or any(char.isspace() for char in name):
            raise NamedRangeError(f"Invalid range name: {name!r}")
        if isinstance(ref, str):
            ref = RangeReference.parse(ref)
        self.get_index(worksheet)
        named = NamedRange(name, worksheet, ref.make_relative())
        self._named_ranges[name] = named
        return named

    def has_named_range(self, name: str) -> bool:
        return name in self._named_ranges

    def get_named_range(self, name: str) -> NamedRange:
        try:
            return self._named_ranges[name]
        except KeyError:
            raise NamedRangeError(f"Named range {name!r} does not exist") from None

    def remove_named_range(self, name: str) -> None:
        if name not in self._named_ranges:
            raise NamedRangeError(f"Named range {name!r} does not exist")
        del self._named_ranges[name]

    def save(self, destination: str | Path | IO[bytes]) -> None:
        from .api import save_workbook

        save_workbook(self, destination)

    def __repr__(self) -> str:
        return f"<Workbook sheets={self.sheetnames!r}>"
