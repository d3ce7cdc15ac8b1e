from .api import load_workbook, save_workbook
from .cell import Cell
from .dates import Calendar
from .exceptions import (
    ColumnIndexError,
    CoordinateFormatError,
    DataTypeError,
    InvalidFileError,
    NamedRangeError,
    PartParseError,
    SheetTitleError,
    XlsxDocError,
)
from .model import Comment, LoadOptions
from .reference import CellReference, RangeReference
from .values import ErrorCode, Value, ValueType
from .workbook import NamedRange, Workbook
from .worksheet import Worksheet

__all__ = [
    "Calendar",
    "Cell",
    "CellReference",
    "ColumnIndexError",
    "Comment",
    "CoordinateFormatError",
    "DataTypeError",
    "ErrorCode",
    "InvalidFileError",
    "LoadOptions",
    "NamedRange",
    "NamedRangeError",
    "PartParseError",
    "RangeReference",
    "SheetTitleError",
    "Value",
    "ValueType",
    "Workbook",
    "Worksheet",
    "XlsxDocError",
    "load_workbook",
    "save_workbook",
]
