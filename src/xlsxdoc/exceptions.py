from __future__ import annotations


class XlsxDocError(Exception):
    pass


class CoordinateFormatError(XlsxDocError, ValueError):
    pass


class ColumnIndexError(CoordinateFormatError):
    pass


class DataTypeError(XlsxDocError, TypeError):
    pass


class SheetTitleError(XlsxDocError, ValueError):
    pass


class NamedRangeError(XlsxDocError, KeyError):
    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class InvalidFileError(XlsxDocError, ValueError):
    pass


class PartParseError(XlsxDocError, ValueError):
    def __init__(self, message: str, part: str | None = None) -> None:
        super().__init__(f"{part}: {message}" if part else message)
        self.part = part
