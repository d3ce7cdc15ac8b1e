from __future__ import annotations

import logging
from pathlib import Path
from typing import IO

from .model import LoadOptions
from .parser.ooxml import OOXMLWorkbookParser
from .workbook import Workbook
from .writer.workbook import write_workbook

logger = logging.getLogger(__name__)


def load_workbook(
    source: str | Path | bytes | IO[bytes],
    *,
    options: LoadOptions | None = None,
    guess_types: bool = False,
    data_only: bool = False,
) -> Workbook:
    opts = options or LoadOptions(guess_types=guess_types, data_only=data_only)
    parser = OOXMLWorkbookParser(source, opts)
    return parser.parse()


def save_workbook(workbook: Workbook, destination: str | Path | IO[bytes]) -> None:
    payload = write_workbook(workbook)
    if isinstance(destination, (str, Path)):
        Path(destination).write_bytes(payload)
        name = str(destination)
    else:
        destination.write(payload)
        name = getattr(destination, "name", "<stream>")
    logger.info(f"Saved {len(workbook)} worksheets to {name}")
