from __future__ import annotations

import math
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .exceptions import DataTypeError
from .styles import FORMAT_PERCENTAGE, FORMAT_TIME, FORMAT_TIME_SHORT

NUMERIC_RE = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?$")
LEADING_ZERO_RE = re.compile(r"^[+-]?0\d")
TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")


class ValueType(str, Enum):
    NULL = "null"
    BOOLEAN = "boolean"
    NUMERIC = "numeric"
    STRING = "string"
    ERROR = "error"
    FORMULA = "formula"


class ErrorCode(str, Enum):
    NULL = "#NULL!"
    DIV0 = "#DIV/0!"
    VALUE = "#VALUE!"
    REF = "#REF!"
    NAME = "#NAME?"
    NUM = "#NUM!"
    NA = "#N/A"

    @classmethod
    def from_text(cls, text: str) -> ErrorCode:
        try:
            return cls(text)
        except ValueError:
            raise DataTypeError(f"Not a spreadsheet error code: {text!r}") from None


@dataclass(frozen=True, slots=True, eq=False)
class Value:
    type: ValueType
    data: Any = None

    @classmethod
    def null(cls) -> Value:
        return _NULL

    @classmethod
    def boolean(cls, flag: bool) -> Value:
        if not isinstance(flag, bool):
            raise DataTypeError(f"Boolean value expected, got {type(flag).__name__}")
        return cls(ValueType.BOOLEAN, flag)

    @classmethod
    def numeric(cls, number: float) -> Value:
        if isinstance(number, bool) or not isinstance(number, (int, float)):
            raise DataTypeError(f"Numeric value expected, got {type(number).__name__}")
        return cls(ValueType.NUMERIC, float(number))

    @classmethod
    def string(cls, text: str) -> Value:
        if not isinstance(text, str):
            raise DataTypeError(f"String value expected, got {type(text).__name__}")
        return cls(ValueType.STRING, text)

    @classmethod
    def error(cls, code: ErrorCode | str) -> Value:
        if not isinstance(code, ErrorCode):
            code = ErrorCode.from_text(code)
        return cls(ValueType.ERROR, code)

    @classmethod
    def formula(cls, text: str) -> Value:
        if not isinstance(text, str) or not text:
            raise DataTypeError("Formula text must be a non-empty string")
        return cls(ValueType.FORMULA, text)

    def is_(self, value_type: ValueType) -> bool:
        return self.type is value_type

    @property
    def is_null(self) -> bool:
        return self.type is ValueType.NULL

    def _expect(self, value_type: ValueType) -> Any:
        if self.type is not value_type:
            raise DataTypeError(f"Value is {self.type.value}, not {value_type.value}")
        return self.data

    def as_bool(self) -> bool:
        return self._expect(ValueType.BOOLEAN)

    def as_number(self) -> float:
        return self._expect(ValueType.NUMERIC)

    def as_int(self) -> int:
        return int(self._expect(ValueType.NUMERIC))

    def as_string(self) -> str:
        return self._expect(ValueType.STRING)

    def as_error(self) -> ErrorCode:
        return self._expect(ValueType.ERROR)

    def as_formula(self) -> str:
        return self._expect(ValueType.FORMULA)

    def to_python(self) -> Any:
        return self.data

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Value):
            if self.type is not other.type:
                return False
            if self.type is ValueType.NUMERIC:
                return math.isclose(self.data, other.data, rel_tol=1e-12, abs_tol=1e-12)
            return self.data == other.data
        if other is None:
            return self.type is ValueType.NULL
        if isinstance(other, bool):
            return self.type is ValueType.BOOLEAN and self.data is other
        if isinstance(other, (int, float)):
            return self.type is ValueType.NUMERIC and math.isclose(self.data, other, rel_tol=1e-12, abs_tol=1e-12)
        if isinstance(other, ErrorCode):
            return self.type is ValueType.ERROR and self.data is other
        if isinstance(other, str):
            return self.type in {ValueType.STRING, ValueType.FORMULA} and self.data == other
        return NotImplemented

    # equality is tolerant and crosses into plain Python values, so no hash is consistent with it
    __hash__ = None  # type: ignore[assignment]

    def __str__(self) -> str:
        if self.type is ValueType.NULL:
            return ""
        if self.type is ValueType.BOOLEAN:
            return "TRUE" if self.data else "FALSE"
        if self.type is ValueType.NUMERIC:
            return format_number(self.data)
        if self.type is ValueType.ERROR:
            return self.data.value
        if self.type is ValueType.FORMULA:
            return f"={self.data}"
        return self.data


_NULL = Value(ValueType.NULL)


def format_number(number: float) -> str:
    if math.isfinite(number) and number == int(number) and abs(number) < 1e16:
        return str(int(number))
    return repr(number)


def is_numeric_text(text: str) -> bool:
    if not NUMERIC_RE.match(text):
        return False
    return not (LEADING_ZERO_RE.match(text) and "." not in text)


def guess_type(text: str) -> tuple[Value, str | None]:
    if text.endswith("%") and is_numeric_text(text[:-1]):
        return Value.numeric(float(text[:-1]) / 100), FORMAT_PERCENTAGE

    match = TIME_RE.match(text)
    if match:
        hours, minutes = int(match.group(1)), int(match.group(2))
        seconds = int(match.group(3)) if match.group(3) is not None else 0
        if minutes < 60 and seconds < 60:
            serial = hours / 24 + minutes / 1440 + seconds / 86400
            return Value.numeric(serial), FORMAT_TIME if match.group(3) is not None else FORMAT_TIME_SHORT

    if is_numeric_text(text):
        return Value.numeric(float(text)), None

    return Value.string(text), None
