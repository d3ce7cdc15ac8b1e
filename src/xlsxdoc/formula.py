from __future__ import annotations

import re

from .reference import COLUMN_MAX, column_index_from_string, column_string_from_index

_LITERAL_RE = re.compile(r"(\"(?:[^\"]|\"\")*\"|'(?:[^']|'')*')")
_REF_RE = re.compile(r"(?<![A-Za-z0-9_.$])(\$?)([A-Za-z]{1,3})(\$?)([0-9]+)(?![A-Za-z0-9_(])")


def translate_formula(formula: str, row_delta: int, column_delta: int) -> str:
    if not row_delta and not column_delta:
        return formula

    def shift(match: re.Match[str]) -> str:
        col_abs, letters, row_abs, digits = match.groups()
        column = column_index_from_string(letters)
        row = int(digits)
        if not col_abs:
            column += column_delta
        if not row_abs:
            row += row_delta
        if not 1 <= column <= COLUMN_MAX or row < 1:
            return "#REF!"
        return f"{col_abs}{column_string_from_index(column)}{row_abs}{row}"

    pieces = _LITERAL_RE.split(formula)
    for idx in range(0, len(pieces), 2):
        pieces[idx] = _REF_RE.sub(shift, pieces[idx])
    return "".join(pieces)
