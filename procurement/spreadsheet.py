"""
Spreadsheet row reading via openpyxl.

Row 1 of the first worksheet is the header.  Column lookups are
case-insensitive: header names are trimmed and lower-cased into
`header_map`.  Data rows are yielded lazily and blank rows are skipped.
Checking for required columns is left to the callers, which know what they
need.
"""
from __future__ import annotations

import logging
from datetime import date, datetime
from pathlib import Path
from typing import Any, Iterator, Optional

from .exceptions import MissingColumnsError, MissingSheetError, SpreadsheetError

logger = logging.getLogger(__name__)


def cell_text(value: Any) -> str:
    """Display text for a cell value, trimmed.  Empty cells give ''."""
    if value is None:
        return ""
    if isinstance(value, datetime):
        if value.time() == datetime.min.time():
            return value.date().isoformat()
        return value.isoformat(sep=" ")
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


class SheetRow:
    """One data row.  Column indices are 0-based, matching header_map."""

    def __init__(self, number: int, values: tuple):
        self.number = number          # 1-based row number in the sheet
        self._values = values

    def value(self, index: Optional[int]) -> Any:
        if index is None or index < 0 or index >= len(self._values):
            return None
        return self._values[index]

    def text(self, index: Optional[int]) -> str:
        return cell_text(self.value(index))

    def __len__(self) -> int:
        return len(self._values)


class SpreadsheetReader:
    """
    Reads the first worksheet of an .xlsx workbook.

    Use as a context manager so the read-only workbook handle is released:

        with SpreadsheetReader(path) as sheet:
            idx = sheet.column("po number")
            for row in sheet.rows():
                ...
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._workbook = None
        self._worksheet = None
        self.headers: list[str] = []          # original header text, by column
        self.header_map: dict[str, int] = {}  # lower-cased header -> column index

    def __enter__(self) -> "SpreadsheetReader":
        self.open()
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def open(self) -> None:
        from openpyxl import load_workbook

        if not self.path.exists():
            raise SpreadsheetError("Spreadsheet not found", self.path)
        try:
            self._workbook = load_workbook(str(self.path), read_only=True, data_only=True)
        except Exception as exc:
            raise SpreadsheetError(f"Could not open spreadsheet: {exc}", self.path) from exc

        if not self._workbook.worksheets:
            self.close()
            raise MissingSheetError("Excel file is empty or has no sheets.", self.path)

        self._worksheet = self._workbook.worksheets[0]
        header_row = next(self._worksheet.iter_rows(min_row=1, max_row=1, values_only=True), ())
        self.headers = [cell_text(v) for v in header_row]
        self.header_map = {}
        for idx, name in enumerate(self.headers):
            key = name.lower()
            if key and key not in self.header_map:
                self.header_map[key] = idx
        logger.info(
            "Opened %s: sheet %r, %d header column(s)",
            self.path.name, self._worksheet.title, len(self.header_map),
        )

    def close(self) -> None:
        if self._workbook is not None:
            self._workbook.close()
        self._workbook = None
        self._worksheet = None

    def column(self, name: str) -> Optional[int]:
        """Index of a column by case-insensitive header name, or None."""
        return self.header_map.get(name.strip().lower())

    def require_columns(self, *names: str) -> None:
        missing = [name for name in names if self.column(name) is None]
        if missing:
            raise MissingColumnsError(missing, str(self.path))

    def rows(self) -> Iterator[SheetRow]:
        """Yield every non-empty data row after the header."""
        if self._worksheet is None:
            raise SpreadsheetError("Spreadsheet is not open", self.path)
        for number, values in enumerate(
            self._worksheet.iter_rows(min_row=2, values_only=True), start=2
        ):
            if not any(cell_text(v) for v in values):
                continue
            yield SheetRow(number, tuple(values))
