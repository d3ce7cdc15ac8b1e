from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import IO, Iterable
from zipfile import ZIP_DEFLATED, BadZipFile, ZipFile

from .exceptions import InvalidFileError, PartParseError

logger = logging.getLogger(__name__)

EOCD_SIGNATURE = b"PK\x05\x06"
# disk numbers, entry counts, directory size and offset, comment length
EOCD_REMAINDER = 18
ZIP_SIGNATURE = b"PK"
OLE_SIGNATURE = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"

Source = str | Path | bytes | bytearray | IO[bytes]


def repair_central_directory(data: bytes) -> bytes:
    position = data.rfind(EOCD_SIGNATURE)
    if position == -1:
        return data
    end = position + len(EOCD_SIGNATURE) + EOCD_REMAINDER
    if end < len(data):
        logger.debug(f"Dropping {len(data) - end} trailing bytes after end of central directory")
    return data[:end]


class Archive:
    def __init__(self, zip_file: ZipFile, name: str = "<bytes>") -> None:
        self._zip = zip_file
        self.name = name

    def list_parts(self) -> list[str]:
        return [info.filename for info in self._zip.infolist() if not info.is_dir()]

    def has_part(self, name: str) -> bool:
        try:
            self._zip.getinfo(name)
        except KeyError:
            return False
        return True

    def read_part(self, name: str) -> bytes:
        try:
            return self._zip.read(name)
        except KeyError:
            raise PartParseError("part does not exist in the archive", part=name) from None
        except BadZipFile as exc:
            raise InvalidFileError(f"Cannot read part {name!r} from {self.name}: {exc}") from exc

    def close(self) -> None:
        self._zip.close()

    def __enter__(self) -> Archive:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def _read_source(source: Source) -> tuple[bytes, str]:
    if isinstance(source, (bytes, bytearray)):
        return bytes(source), "<bytes>"
    if isinstance(source, (str, Path)):
        path = Path(source)
        return path.read_bytes(), str(path)
    return source.read(), getattr(source, "name", "<stream>")


def open_archive(source: Source, repair: bool = True) -> Archive:
    data, name = _read_source(source)
    if not data:
        raise InvalidFileError(f"{name} is empty")
    if data.startswith(OLE_SIGNATURE):
        raise InvalidFileError(f"{name} is a legacy binary workbook, which is not supported")
    if not data.startswith(ZIP_SIGNATURE):
        raise InvalidFileError(f"{name} is not a zip archive")
    if repair:
        data = repair_central_directory(data)
    try:
        zip_file = ZipFile(io.BytesIO(data))
    except BadZipFile as exc:
        raise InvalidFileError(f"Cannot open {name} as an archive: {exc}") from exc
    logger.debug(f"Opened archive {name} with {len(zip_file.namelist())} entries")
    return Archive(zip_file, name)


def list_parts(archive: Archive) -> list[str]:
    return archive.list_parts()


def read_part(archive: Archive, name: str) -> bytes:
    return archive.read_part(name)


def write_archive(parts: Iterable[tuple[str, bytes | str]]) -> bytes:
    buffer = io.BytesIO()
    with ZipFile(buffer, "w", ZIP_DEFLATED) as zip_file:
        for name, payload in parts:
            zip_file.writestr(name, payload)
            logger.debug(f"Wrote part {name}")
    return buffer.getvalue()
