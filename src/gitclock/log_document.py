"""The remote activity log document.

Layout: a fixed preamble, then a markdown table with one header row, one
separator row and one data row per recorded change, oldest first.

Rows are only ever appended, so parsing stops at locating the table: the
header is matched by its exact cells, the separator must follow it, and the
data rows are the contiguous `|` lines after that. Row contents are never
re-parsed.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime

from .models import ChangeBatch, ChangeRecord

PREAMBLE = (
    "# GitClock Activity Log\n"
    "\n"
    "This file is updated automatically by GitClock. Each row is a file with\n"
    "uncommitted changes seen in the working tree at the given time.\n"
    "\n"
)

HEADER_CELLS: tuple[str, ...] = ("Time (UTC)", "Files Modified", "Changes (Addition/Deletion)")
HEADER_LINE = "| " + " | ".join(HEADER_CELLS) + " |"
SEPARATOR_LINE = "|" + "|".join("---" for _ in HEADER_CELLS) + "|"

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
UNKNOWN_MARKER = "unknown"

_SEPARATOR_CELL = re.compile(r"^:?-{3,}:?$")


@dataclass(frozen=True)
class TableLocation:
    """Line indices of a recognised table (rows_end is exclusive)."""

    header_index: int
    rows_start: int
    rows_end: int

    @property
    def row_count(self) -> int:
        return self.rows_end - self.rows_start


def _split_cells(line: str) -> list[str] | None:
    stripped = line.strip()
    if not stripped.startswith("|"):
        return None
    inner = stripped[1:-1] if stripped.endswith("|") and len(stripped) > 1 else stripped[1:]
    return [cell.strip() for cell in inner.split("|")]


def _is_header(line: str) -> bool:
    return _split_cells(line) == list(HEADER_CELLS)


def _is_separator(line: str) -> bool:
    cells = _split_cells(line)
    return (
        cells is not None
        and len(cells) == len(HEADER_CELLS)
        and all(_SEPARATOR_CELL.match(cell) for cell in cells)
    )


def locate_table(body: str) -> TableLocation | None:
    """Find the activity table in a document, or None if there is none."""
    lines = body.split("\n")
    for index, line in enumerate(lines[:-1]):
        if not (_is_header(line) and _is_separator(lines[index + 1])):
            continue
        rows_start = index + 2
        rows_end = rows_start
        while rows_end < len(lines) and lines[rows_end].lstrip().startswith("|"):
            rows_end += 1
        return TableLocation(header_index=index, rows_start=rows_start, rows_end=rows_end)
    return None


def format_changes(record: ChangeRecord) -> str:
    if not record.measured:
        return UNKNOWN_MARKER
    return f"+{record.additions}/-{record.deletions}"


def render_row(record: ChangeRecord, captured_at: datetime) -> str:
    path = record.path.replace("|", "\\|")
    return f"| {captured_at.strftime(TIMESTAMP_FORMAT)} | {path} | {format_changes(record)} |"


def render_rows(batch: ChangeBatch) -> list[str]:
    """All rows of a batch share the batch's capture time."""
    return [render_row(record, batch.captured_at) for record in batch.records]


def render_table(rows: list[str]) -> str:
    return "\n".join([HEADER_LINE, SEPARATOR_LINE, *rows]) + "\n"


def new_document(rows: list[str]) -> str:
    return PREAMBLE + render_table(rows)


def append_rows(body: str, rows: list[str]) -> tuple[str, bool]:
    """Return `body` with `rows` appended to its table.

    The second element is True when an existing table was found. In both
    cases every character of `body` is kept; the rows are inserted right
    after the last table line using that line's own line ending. Otherwise a
    fresh table is added after the existing content.
    """
    location = locate_table(body)
    if location is None:
        if not body.strip():
            return new_document(rows), False
        prefix = body if body.endswith("\n") else body + "\n"
        if not prefix.endswith("\n\n"):
            prefix += "\n"
        return prefix + render_table(rows), False

    lines = body.split("\n")
    offset = sum(len(line) + 1 for line in lines[: location.rows_end])
    if offset > len(body):
        # The table ends the document without a final line break.
        newline = "\r\n" if "\r\n" in body else "\n"
        return body + newline + "".join(row + newline for row in rows), True

    newline = "\r\n" if lines[location.rows_end - 1].endswith("\r") else "\n"
    inserted = "".join(row + newline for row in rows)
    return body[:offset] + inserted + body[offset:], True


def count_rows(body: str) -> int:
    location = locate_table(body)
    return location.row_count if location else 0
