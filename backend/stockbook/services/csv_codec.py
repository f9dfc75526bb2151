# Overview: CSV encode/decode for the dialect spreadsheet tools produce, plus export file building.

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from typing import Any, Iterable, Sequence

from stockbook.time_utils import date_stamp
r"""
CSV dialect (authoritative)

Encode:
- A cell containing a comma, a double quote or a newline is wrapped in double
  quotes with inner quotes doubled. Everything else is written as-is.
- Cells are joined with ",", rows with "\n".
- Downloads are prefixed with a UTF-8 BOM so spreadsheet tools pick the
  right encoding.

Decode:
- A leading BOM is dropped; "\r\n" and bare "\r" become "\n".
- Inside quotes: "" is a literal quote, a lone quote closes the span, and
  "," / "\n" are cell content (a logical row may span several lines).
- Outside quotes: "," ends a cell and "\n" ends a row.
- Unquoted text is trimmed; quoted text is kept verbatim.
- The last row does not need a trailing newline, and a single final
  newline adds no row. Each further newline is an empty row ([""]), so a
  trailing empty row only survives encoding if another row follows it.
"""

BOM = "\ufeff"
CSV_CONTENT_TYPE = "text/csv;charset=utf-8"

_NUM_NOISE = re.compile(r"[¥￥$,、\s]")
_LEADING_INT = re.compile(r"[+-]?\d+")


@dataclass(frozen=True)
class CsvDownload:
    filename: str
    content: str
    content_type: str = CSV_CONTENT_TYPE

    def as_bytes(self) -> bytes:
        return self.content.encode("utf-8")


def escape_cell(value: Any) -> str:
    text = "" if value is None else str(value)
    if any(ch in text for ch in (",", '"', "\n", "\r")):
        return '"' + text.replace('"', '""') + '"'
    return text


def encode_rows(rows: Iterable[Sequence[Any]]) -> str:
    return "\n".join(",".join(escape_cell(cell) for cell in row) for row in rows)


def build_download(prefix: str, rows: Iterable[Sequence[Any]], *, today: date | None = None) -> CsvDownload:
    return CsvDownload(
        filename=f"{prefix}_{date_stamp(today)}.csv",
        content=BOM + encode_rows(rows),
    )


class _CellBuffer:
    """Accumulates one cell and remembers where its quoted span sits."""

    __slots__ = ("chars", "quoted_start", "quoted_end")

    def __init__(self) -> None:
        self.chars: list[str] = []
        self.quoted_start: int | None = None
        self.quoted_end: int | None = None

    def open_quote(self) -> None:
        if self.quoted_start is None:
            self.quoted_start = len(self.chars)

    def close_quote(self) -> None:
        self.quoted_end = len(self.chars)

    def is_empty(self) -> bool:
        return not self.chars and self.quoted_start is None

    def value(self) -> str:
        text = "".join(self.chars)
        if self.quoted_start is None:
            return text.strip()
        end = self.quoted_end if self.quoted_end is not None else len(text)
        return text[:self.quoted_start].lstrip() + text[self.quoted_start:end] + text[end:].rstrip()


def decode_rows(text: str | None) -> list[list[str]]:
    """Parse CSV text into a fully materialized list of rows."""
    if not text:
        return []
    if text.startswith(BOM):
        text = text[1:]
    text = text.replace("\r\n", "\n").replace("\r", "\n")

    rows: list[list[str]] = []
    row: list[str] = []
    cell = _CellBuffer()
    in_quotes = False
    i = 0
    n = len(text)

    while i < n:
        ch = text[i]
        if in_quotes:
            if ch == '"':
                if i + 1 < n and text[i + 1] == '"':
                    cell.chars.append('"')
                    i += 2
                    continue
                in_quotes = False
                cell.close_quote()
            else:
                cell.chars.append(ch)
        elif ch == '"':
            in_quotes = True
            cell.open_quote()
        elif ch == ",":
            row.append(cell.value())
            cell = _CellBuffer()
        elif ch == "\n":
            row.append(cell.value())
            rows.append(row)
            row = []
            cell = _CellBuffer()
        else:
            cell.chars.append(ch)
        i += 1

    if row or not cell.is_empty():
        row.append(cell.value())
        rows.append(row)
    return rows


def parse_num(value: Any) -> int:
    """
    Parse a quantity / price cell.

    Currency marks (¥, ￥, $), thousands separators (",", "、") and whitespace
    are removed, then a leading integer is read ("12.5" -> 12).
    Empty or unparseable input yields 0.
    """
    if value is None:
        return 0
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    cleaned = _NUM_NOISE.sub("", str(value))
    match = _LEADING_INT.match(cleaned)
    if not match:
        return 0
    return int(match.group(0))
