from __future__ import annotations

import math
from datetime import date, datetime, time, timedelta
from typing import TYPE_CHECKING, Any

from .dates import Calendar, fraction_to_time, from_serial, to_serial
from .exceptions import DataTypeError
from .model import Comment, Relationship
from .reference import CellReference
from .styles import (
    FORMAT_DATE_YYYYMMDD,
    FORMAT_DATETIME,
    FORMAT_ELAPSED,
    FORMAT_GENERAL,
    FORMAT_TIME,
    NumberFormatKind,
    classify_format,
    is_date_format,
)
from .values import ErrorCode, Value, ValueType, guess_type

if TYPE_CHECKING:
    from .worksheet import Worksheet


class Cell:
    __slots__ = ("_worksheet", "_reference", "_value", "_formula", "_number_format", "_comment", "_hyperlink_id")

    def __init__(self, worksheet: Worksheet, reference: CellReference) -> None:
        self._worksheet = worksheet
        self._reference = reference.make_relative()
        self._value: Value = Value.null()
        self._formula: str | None = None
        self._number_format = FORMAT_GENERAL
        self._comment: Comment | None = None
        self._hyperlink_id: str | None = None

    @property
    def worksheet(self) -> Worksheet:
        return self._worksheet

    @property
    def reference(self) -> CellReference:
        return self._reference

    @property
    def coordinate(self) -> str:
        return str(self._reference)

    @property
    def row(self) -> int:
        return self._reference.row

    @property
    def column(self) -> int:
        return self._reference.column

    @property
    def column_letter(self) -> str:
        return self._reference.column_letter

    @property
    def calendar(self) -> Calendar:
        return self._worksheet.parent.calendar

    @property
    def value(self) -> Value:
        return self._value

    @value.setter
    def value(self, value: Any) -> None:
        self.set_value(value)

    def set_value(self, value: Any) -> None:
        if isinstance(value, Value):
            self._assign(value)
        elif value is None:
            self._assign(Value.null())
        elif isinstance(value, bool):
            self._assign(Value.boolean(value))
        elif isinstance(value, ErrorCode):
            self._assign(Value.error(value))
        elif isinstance(value, (int, float)):
            if isinstance(value, float) and not math.isfinite(value):
                raise DataTypeError(f"Cannot store non-finite number {value!r}")
            self._assign(Value.numeric(value))
        elif isinstance(value, datetime):
            self._assign(Value.numeric(to_serial(value, self.calendar)), FORMAT_DATETIME)
        elif isinstance(value, date):
            self._assign(Value.numeric(to_serial(value, self.calendar)), FORMAT_DATE_YYYYMMDD)
        elif isinstance(value, time):
            self._assign(Value.numeric(to_serial(value)), FORMAT_TIME)
        elif isinstance(value, timedelta):
            self._assign(Value.numeric(to_serial(value)), FORMAT_ELAPSED)
        elif isinstance(value, str):
            self._assign_text(value)
        else:
            raise DataTypeError(f"Cannot store {type(value).__name__} in a cell")

    def _assign_text(self, text: str) -> None:
        if text.startswith("=") and len(text) > 1:
            self._assign(Value.formula(text[1:]))
            return
        if self._worksheet.parent.guess_types:
            value, number_format = guess_type(text)
            self._assign(value, number_format)
            return
        self._assign(Value.string(text))

    def _assign(self, value: Value, number_format: str | None = None) -> None:
        self._value = value
        if number_format is not None:
            self._number_format = number_format
        elif is_date_format(self._number_format):
            self._number_format = FORMAT_GENERAL

    def set_error(self, code: ErrorCode | str) -> None:
        self._assign(Value.error(code))

    @property
    def data_type(self) -> ValueType:
        return self._value.type

    @property
    def formula(self) -> str | None:
        if self._formula is not None:
            return self._formula
        if self._value.type is ValueType.FORMULA:
            return self._value.data
        return None

    @formula.setter
    def formula(self, formula: str | None) -> None:
        if formula is None:
            self.clear_formula()
            return
        formula = formula[1:] if formula.startswith("=") else formula
        if not formula:
            raise DataTypeError("Formula text must not be empty")
        self._formula = formula

    @property
    def has_formula(self) -> bool:
        return self.formula is not None

    def clear_formula(self) -> None:
        self._formula = None
        if self._value.type is ValueType.FORMULA:
            self._value = Value.null()

    @property
    def number_format(self) -> str:
        return self._number_format

    @number_format.setter
    def number_format(self, code: str) -> None:
        self._number_format = code or FORMAT_GENERAL

    @property
    def is_date(self) -> bool:
        return self._value.type is ValueType.NUMERIC and is_date_format(self._number_format)

    @property
    def python_value(self) -> Any:
        if not self.is_date:
            return self._value.to_python()
        serial = self._value.as_number()
        if classify_format(self._number_format) is NumberFormatKind.TIME:
            return fraction_to_time(serial)
        return from_serial(serial, self.calendar)

    def value_equals(self, other: Any) -> bool:
        if isinstance(other, (datetime, date, time, timedelta)):
            if self._value.type is not ValueType.NUMERIC:
                return False
            calendar = Calendar.WINDOWS_1900 if isinstance(other, (time, timedelta)) else self.calendar
            return math.isclose(self._value.as_number(), to_serial(other, calendar), rel_tol=0, abs_tol=1e-8)
        return self._value == other

    @property
    def comment(self) -> Comment | None:
        return self._comment

    @comment.setter
    def comment(self, comment: Comment | None) -> None:
        if comment is not None and not isinstance(comment, Comment):
            raise DataTypeError("Comments must be Comment instances")
        self._comment = comment

    def clear_comment(self) -> None:
        self._comment = None

    @property
    def hyperlink(self) -> Relationship | None:
        if self._hyperlink_id is None:
            return None
        return self._worksheet.get_relationship(self._hyperlink_id)

    @hyperlink.setter
    def hyperlink(self, target: str | None) -> None:
        if target is None:
            self.clear_hyperlink()
            return
        if not isinstance(target, str) or ":" not in target:
            raise DataTypeError(f"Invalid hyperlink target: {target!r}")
        relationship = self._worksheet.add_hyperlink_relationship(target, self._hyperlink_id)
        self._hyperlink_id = relationship.id

    def bind_hyperlink(self, relationship_id: str) -> None:
        self._hyperlink_id = relationship_id

    def clear_hyperlink(self) -> None:
        if self._hyperlink_id is not None:
            self._worksheet.remove_relationship(self._hyperlink_id)
            self._hyperlink_id = None

    @property
    def is_garbage(self) -> bool:
        return (
            self._value.is_null
            and self._formula is None
            and self._comment is None
            and self._hyperlink_id is None
            and self._number_format == FORMAT_GENERAL
        )

    def offset(self, column: int = 0, row: int = 0) -> Cell:
        return self._worksheet.cell(self._reference.make_offset(column, row))

    def __repr__(self) -> str:
        return f"<Cell {self._worksheet.title}.{self.coordinate}>"
