"""Splice ERD Concepts `COMMENT ON ...` pseudo-statements into MySQL DDL.

ERD Concepts writes table, column and index descriptions as separate
`COMMENT ON <kind> `name`` lines followed by the comment text on the next
line. MySQL has no such statement, so each pass below moves the text into the
definition itself as a `COMMENT '...'` clause. The marker lines stay in place.
"""

from __future__ import annotations

import re
from typing import Iterable

MAX_COMMENT_LENGTH = 1024

PASS_ORDER = ("columns", "indexes", "tables")

_MYSQL_ESCAPES = {
    "\\": "\\\\",
    "'": "\\'",
    '"': '\\"',
    "\0": "\\0",
    "\n": "\\n",
    "\r": "\\r",
    "\x1a": "\\Z",
}


class StructuralError(ValueError):
    """A comment refers to an object the DDL never defines."""


class UndefinedTableError(StructuralError):
    message = "Table '{}' is not defined."

    def __init__(self, table: str) -> None:
        super().__init__(self.message.format(table))
        self.table = table


class UndefinedColumnError(StructuralError):
    def __init__(self, table: str, column: str) -> None:
        super().__init__(f"Column '{column}' is not defined in '{table}' table statements.")
        self.table = table
        self.column = column


class UndefinedIndexError(UndefinedTableError):
    message = "Index '{}' is not defined."

    @property
    def index(self) -> str:
        return self.table


def truncate_comment(comment: str, max_length: int = MAX_COMMENT_LENGTH) -> str:
    if len(comment) <= max_length:
        return comment
    return comment[: max_length - 3].rstrip() + "..."


def escape_mysql_string(text: str) -> str:
    """Escape text for a single-quoted MySQL string literal.

    The input is generator output, not user input, so no connection-aware
    escaping is needed.
    """
    return "".join(_MYSQL_ESCAPES.get(ch, ch) for ch in text)


def comment_line(lines: list[str], idx: int) -> str:
    """Return the trimmed comment text that follows the marker on line `idx`."""
    if idx + 1 >= len(lines):
        return ""
    return lines[idx + 1].strip()


def splice_comment(line: str, comment: str, terminator: str, max_length: int = MAX_COMMENT_LENGTH) -> str:
    comment = escape_mysql_string(truncate_comment(comment, max_length))
    return f"{line.rstrip()[:-1]} COMMENT '{comment}'{terminator}"


def scan_column_definitions(lines: list[str]) -> dict[str, dict[str, int]]:
    definitions: dict[str, dict[str, int]] = {}
    table_name: str | None = None
    for idx, line in enumerate(lines):
        if table_name is not None:
            m = re.match(r"^  `(\w+)`", line)
            if m:
                definitions.setdefault(table_name, {})[m.group(1)] = idx
            else:
                table_name = None

        if table_name is None:
            m = re.match(r"^CREATE TABLE `(\w+)`", line)
            if m:
                table_name = m.group(1)
    return definitions


def scan_column_comments(lines: list[str]) -> dict[str, dict[str, str]]:
    comments: dict[str, dict[str, str]] = {}
    for idx, line in enumerate(lines):
        m = re.match(r"^COMMENT ON COLUMN `(\w+)`\.`(\w+)`", line)
        if m:
            comments.setdefault(m.group(1), {})[m.group(2)] = comment_line(lines, idx)
    return comments


def fix_column_comments(source: str, max_length: int = MAX_COMMENT_LENGTH) -> str:
    lines = source.split("\n")
    definitions = scan_column_definitions(lines)

    for table_name, columns in scan_column_comments(lines).items():
        if table_name not in definitions:
            raise UndefinedTableError(table_name)
        for column_name, comment in columns.items():
            if column_name not in definitions[table_name]:
                raise UndefinedColumnError(table_name, column_name)
            idx = definitions[table_name][column_name]
            # Columns keep their trailing comma; more definitions follow.
            lines[idx] = splice_comment(lines[idx], comment, ",", max_length)

    return "\n".join(lines)


def scan_index_definitions(lines: list[str]) -> dict[str, int]:
    definitions: dict[str, int] = {}
    for idx, line in enumerate(lines):
        m = re.match(r"^CREATE INDEX `(\w+)`(\s*\()?", line)
        if m:
            definitions[m.group(1)] = idx
    return definitions


def scan_comments(lines: list[str], kind: str) -> dict[str, str]:
    """Map object name to comment text for `COMMENT ON <kind>` markers."""
    pattern = re.compile(rf"^COMMENT ON {kind} `(\w+)`")
    comments: dict[str, str] = {}
    for idx, line in enumerate(lines):
        m = pattern.match(line)
        if m:
            comments[m.group(1)] = comment_line(lines, idx)
    return comments


def fix_index_comments(source: str, max_length: int = MAX_COMMENT_LENGTH) -> str:
    lines = source.split("\n")
    definitions = scan_index_definitions(lines)

    for index_name, comment in scan_comments(lines, "INDEX").items():
        if index_name not in definitions:
            raise UndefinedIndexError(index_name)
        idx = definitions[index_name]
        lines[idx] = splice_comment(lines[idx], comment, ";", max_length)

    return "\n".join(lines)


def scan_table_definitions(lines: list[str]) -> dict[str, int]:
    """Map table name to the line that closes its column block.

    `level` is assigned, not counted, and survives from one table to the
    next. This only finds the right line for generator output where the body
    never has a line whose first parenthesis is a nested `)`.
    """
    definitions: dict[str, int] = {}
    table_name: str | None = None
    level = 0
    for idx, line in enumerate(lines):
        if table_name is not None:
            m = re.search(r"\)|\(", line)
            if m:
                level = 1 if m.group(0) == "(" else -1
                if level < 0:
                    definitions[table_name] = idx
                    table_name = None

        if table_name is None:
            m = re.match(r"^CREATE TABLE `(\w+)`(\s*\()?", line)
            if m:
                table_name = m.group(1)
                if m.group(2):
                    level = 1
    return definitions


def fix_table_comments(source: str, max_length: int = MAX_COMMENT_LENGTH) -> str:
    lines = source.split("\n")
    definitions = scan_table_definitions(lines)

    for table_name, comment in scan_comments(lines, "TABLE").items():
        if table_name not in definitions:
            raise UndefinedTableError(table_name)
        idx = definitions[table_name]
        lines[idx] = splice_comment(lines[idx], comment, ";", max_length)

    return "\n".join(lines)


PASSES = {
    "columns": fix_column_comments,
    "indexes": fix_index_comments,
    "tables": fix_table_comments,
}


def fix_comments(source: str, passes: Iterable[str] = PASS_ORDER, max_length: int = MAX_COMMENT_LENGTH) -> str:
    """Run the selected passes over `source` in column, index, table order."""
    selected = set(passes)
    unknown = sorted(selected - set(PASS_ORDER))
    if unknown:
        raise ValueError(f"Unknown comment passes: {unknown}")

    for name in PASS_ORDER:
        if name in selected:
            source = PASSES[name](source, max_length)
    return source
