"""Streaming reader that turns a delimited file into raw field tuples."""

from __future__ import annotations

import csv
from pathlib import Path
from typing import BinaryIO, Iterator, NamedTuple, Optional

from models.errors import SourceError

_TIME_HEADERS = {"time", "timestamp"}


class RawRow(NamedTuple):
    position: int  # 1-based line number in the source file
    fields: tuple[str, ...]


def is_header(fields: tuple[str, ...]) -> bool:
    return bool(fields) and fields[0].strip().lower() in _TIME_HEADERS


def read_rows(
    path: Path | str,
    delimiter: str = ",",
    has_header: Optional[bool] = None,
    encoding: str = "utf-8",
) -> Iterator[RawRow]:
    """Yield non-blank rows one at a time.

    With ``has_header=None`` the first row is skipped only when it looks like
    a column header (its first cell names the time column). Undecodable bytes
    and malformed CSV raise ``SourceError`` naming the offending line.
    """
    with Path(path).open("rb") as handle:
        reader = csv.reader(_decoded_lines(handle, str(path), encoding), delimiter=delimiter)
        first = True
        line_number = 1
        while True:
            try:
                row = next(reader)
            except StopIteration:
                return
            except csv.Error as exc:
                raise SourceError(str(exc), path=str(path), line=reader.line_num) from exc
            position = line_number
            line_number = reader.line_num + 1
            fields = tuple(row)
            if not any(cell.strip() for cell in fields):
                continue
            if first:
                first = False
                skip = is_header(fields) if has_header is None else has_header
                if skip:
                    continue
            yield RawRow(position=position, fields=fields)


def _decoded_lines(handle: BinaryIO, path: str, encoding: str) -> Iterator[str]:
    for line_number, raw in enumerate(handle, start=1):
        try:
            yield raw.decode(encoding)
        except UnicodeDecodeError as exc:
            raise SourceError(
                f"not valid {encoding} text ({exc.reason} at byte {exc.start})",
                path=path,
                line=line_number,
            ) from exc
