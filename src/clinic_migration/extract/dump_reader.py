"""
Stream raw VALUES rows for one table out of a legacy SQL dump.

The dump is scanned line by line, never parsed as a whole:
- a line carrying `INSERT INTO <table>` opens capture,
- a comment/DDL line or an INSERT for another table closes it,
- inside capture, a trimmed line starting with "(" is a candidate row.
A row whose quoted literal runs past the end of the line is joined with the
following lines until the literal closes. If a complete row shows up first, the
lines run out, or the joined text has the wrong value count, only the opening
line is yielded (to be rejected) and the buffered lines are scanned again.
"""

from __future__ import annotations
import logging
import re
from collections import deque
from pathlib import Path
from typing import Iterator
from clinic_migration.core.errors import DumpNotFoundError
from clinic_migration.extract.row_parser import ends_inside_string, parse_row_values

log = logging.getLogger(__name__)

BLOCK_END_PREFIXES = ("--", "/*", "CREATE", "ALTER", "DROP", "LOCK", "UNLOCK")
INSERT_RX = re.compile(r"INSERT\s+INTO\s+[`\"]?(\w+)[`\"]?", re.IGNORECASE)
VALUES_RX = re.compile(r"\bVALUES\b", re.IGNORECASE)

MAX_CONTINUATION_LINES = 100


def strip_row(text: str) -> str:
    """Drop the leading "(" and whichever of ");", ")," or ")" ends the row."""
    body = text.strip()
    if body.startswith("("):
        body = body[1:]
    for suffix in (");", "),", ")"):
        if body.endswith(suffix):
            return body[: -len(suffix)]
    return body


def _inline_values(line: str) -> str | None:
    m = VALUES_RX.search(line)
    if not m:
        return None
    rest = line[m.end():].strip()
    return rest if rest.startswith("(") else None


def check_dump(path: str | Path) -> Path:
    path = Path(path)
    if not path.is_file():
        raise DumpNotFoundError(f"Legacy dump not found: {path}")
    return path


def iter_table_rows(path: str | Path, table: str, expected: int | None = None) -> Iterator[str]:
    """Yield the body of every candidate row for `table`, lazily.

    `expected` is the table's column count; when given, a multi-line join is
    only kept if it parses to that many values.
    """
    return _scan(check_dump(path), table, expected)


def _is_complete_row(line: str, expected: int | None) -> bool:
    trimmed = line.strip()
    if not trimmed.startswith("(") or ends_inside_string(trimmed):
        return False
    return expected is None or len(parse_row_values(strip_row(trimmed))) == expected


def _scan(path: Path, table: str, expected: int | None = None) -> Iterator[str]:
    insert_blocks = 0
    candidates = 0
    abandoned = 0
    capturing = False
    pending: list[str] = []
    replay: deque[str] = deque()

    with open(path, "r", encoding="utf-8", errors="replace") as f:
        source = (raw.rstrip("\r\n") for raw in f)
        while True:
            line = replay.popleft() if replay else next(source, None)

            if pending:
                joined = None
                if line is not None and not _is_complete_row(line, expected):
                    pending.append(line)
                    joined = "\n".join(pending)
                    if ends_inside_string(joined) and len(pending) <= MAX_CONTINUATION_LINES:
                        continue
                    if not ends_inside_string(joined) and (
                            expected is None or len(parse_row_values(strip_row(joined))) == expected):
                        pending = []
                        candidates += 1
                        yield strip_row(joined)
                        continue
                # the literal never closed properly: only the opening line is bad
                candidates += 1
                abandoned += 1
                yield strip_row(pending[0])
                rest = pending[1:]
                if joined is None and line is not None:
                    rest.append(line)
                pending = []
                replay.extendleft(reversed(rest))
                continue

            if line is None:
                break

            m = INSERT_RX.match(line.lstrip())
            if m:
                capturing = m.group(1) == table
                if capturing:
                    insert_blocks += 1
                    inline = _inline_values(line)
                    if inline is not None:
                        candidates += 1
                        yield strip_row(inline)
                continue

            if capturing and line.startswith(BLOCK_END_PREFIXES):
                capturing = False
                continue

            if capturing:
                trimmed = line.strip()
                if not trimmed.startswith("("):
                    continue
                if ends_inside_string(trimmed):
                    pending = [trimmed]
                    continue
                candidates += 1
                yield strip_row(trimmed)

    if abandoned:
        log.warning("%s: %d rows with an unterminated literal", table, abandoned)
    log.info("%s: %d INSERT blocks, %d candidate rows", table, insert_blocks, candidates)
