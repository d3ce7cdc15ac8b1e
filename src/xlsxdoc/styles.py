from __future__ import annotations

import re
from enum import Enum
from typing import Iterable, Iterator

FORMAT_GENERAL = "General"
FORMAT_TEXT = "@"
FORMAT_NUMBER_00 = "0.00"
FORMAT_PERCENTAGE = "0%"
FORMAT_PERCENTAGE_00 = "0.00%"
FORMAT_DATE_XLSX14 = "mm-dd-yy"
FORMAT_DATE_YYYYMMDD = "yyyy-mm-dd"
FORMAT_DATETIME = "yyyy-mm-dd h:mm:ss"
FORMAT_TIME = "h:mm:ss"
FORMAT_TIME_SHORT = "h:mm"
FORMAT_ELAPSED = "[h]:mm:ss"

BUILTIN_FORMATS: dict[int, str] = {
    0: FORMAT_GENERAL,
    1: "0",
    2: "0.00",
    3: "#,##0",
    4: "#,##0.00",
    9: "0%",
    10: "0.00%",
    11: "0.00E+00",
    12: "# ?/?",
    13: "# ??/??",
    14: FORMAT_DATE_XLSX14,
    15: "d-mmm-yy",
    16: "d-mmm",
    17: "mmm-yy",
    18: "h:mm AM/PM",
    19: "h:mm:ss AM/PM",
    20: "h:mm",
    21: "h:mm:ss",
    22: "m/d/yy h:mm",
    37: "#,##0 ;(#,##0)",
    38: "#,##0 ;[Red](#,##0)",
    39: "#,##0.00;(#,##0.00)",
    40: "#,##0.00;[Red](#,##0.00)",
    45: "mm:ss",
    46: "[h]:mm:ss",
    47: "mmss.0",
    48: "##0.0E+0",
    49: "@",
}
BUILTIN_FORMAT_IDS: dict[str, int] = {code: idx for idx, code in BUILTIN_FORMATS.items()}
FIRST_CUSTOM_FORMAT_ID = 164

_LITERAL_RE = re.compile(r'"[^"]*"|\\.|_.|\*.')
_BRACKET_RE = re.compile(r"\[([^\]]*)\]")
_ELAPSED_RE = re.compile(r"^(h+|m+|s+)$", re.IGNORECASE)
_DATE_TOKEN_RE = re.compile(r"[ydm]", re.IGNORECASE)
_TIME_TOKEN_RE = re.compile(r"[hs]|am/pm|a/p", re.IGNORECASE)


class NumberFormatKind(str, Enum):
    GENERAL = "general"
    NUMERIC = "numeric"
    PERCENTAGE = "percentage"
    DATE = "date"
    TIME = "time"
    DATETIME = "datetime"


def _strip_literals(code: str) -> str:
    cleaned = _LITERAL_RE.sub("", code)

    def keep_elapsed(match: re.Match[str]) -> str:
        inner = match.group(1)
        return inner if _ELAPSED_RE.match(inner) else ""

    return _BRACKET_RE.sub(keep_elapsed, cleaned)


def classify_format(code: str | None) -> NumberFormatKind:
    if not code or code.lower() == "general":
        return NumberFormatKind.GENERAL
    primary = _strip_literals(code.split(";", 1)[0])
    if primary.strip() == FORMAT_TEXT:
        return NumberFormatKind.GENERAL
    has_time = bool(_TIME_TOKEN_RE.search(primary))
    # "m" next to hours or seconds is minutes, otherwise month
    date_part = re.sub(r"h+:?m+|m+:?s+|am/pm|a/p", "", primary, flags=re.IGNORECASE)
    has_date = bool(_DATE_TOKEN_RE.search(date_part))
    if has_date and has_time:
        return NumberFormatKind.DATETIME
    if has_date:
        return NumberFormatKind.DATE
    if has_time:
        return NumberFormatKind.TIME
    if "%" in primary:
        return NumberFormatKind.PERCENTAGE
    return NumberFormatKind.NUMERIC


def is_date_format(code: str | None) -> bool:
    return classify_format(code) in {NumberFormatKind.DATE, NumberFormatKind.TIME, NumberFormatKind.DATETIME}


class StyleTable:
    """Cell formats (``cellXfs``) keyed by index; index 0 is always General."""

    def __init__(self, format_codes: Iterable[str] = ()) -> None:
        self._codes: list[str] = [FORMAT_GENERAL]
        self._index: dict[str, int] = {FORMAT_GENERAL: 0}
        for pos, code in enumerate(format_codes):
            if pos == 0:
                self._codes[0] = code
                self._index = {code: 0}
                continue
            self._codes.append(code)
            self._index.setdefault(code, len(self._codes) - 1)

    def format_code(self, index: int) -> str:
        if 0 <= index < len(self._codes):
            return self._codes[index]
        return FORMAT_GENERAL

    def add(self, code: str) -> int:
        if code not in self._index:
            self._codes.append(code)
            self._index[code] = len(self._codes) - 1
        return self._index[code]

    def index_of(self, code: str) -> int | None:
        return self._index.get(code)

    def copy(self) -> StyleTable:
        return StyleTable(self._codes)

    def number_format_ids(self) -> tuple[dict[str, int], list[int]]:
        custom: dict[str, int] = {}
        ids: list[int] = []
        for code in self._codes:
            if code in BUILTIN_FORMAT_IDS:
                ids.append(BUILTIN_FORMAT_IDS[code])
                continue
            if code not in custom:
                custom[code] = FIRST_CUSTOM_FORMAT_ID + len(custom)
            ids.append(custom[code])
        return custom, ids

    def __len__(self) -> int:
        return len(self._codes)

    def __iter__(self) -> Iterator[str]:
        return iter(self._codes)
