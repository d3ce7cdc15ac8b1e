from __future__ import annotations

from pathlib import Path

import pytest

from tests.helpers import build_workbook_archive, sheet_xml
from xlsxdoc import Workbook, Worksheet


@pytest.fixture
def workbook() -> Workbook:
    return Workbook()


@pytest.fixture
def worksheet(workbook: Workbook) -> Worksheet:
    return workbook.active


@pytest.fixture
def simple_archive(tmp_path: Path) -> Path:
    rows = (
        '<row r="1"><c r="A1" t="s"><v>0</v></c><c r="B1"><v>42</v></c></row>'
        '<row r="2"><c r="A2" t="b"><v>1</v></c><c r="B2" t="e"><v>#N/A</v></c></row>'
    )
    return build_workbook_archive(
        tmp_path / "simple.xlsx",
        [("Data", sheet_xml(rows))],
        shared_strings=["hello"],
    )
