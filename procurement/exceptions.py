"""
Exceptions raised by the procurement ingestion and receiving engine.

Structural problems with an input file (MissingSheetError,
MissingColumnsError) and invalid receiving requests (ValidationError) abort
the whole call.  RowLevelError is only ever collected into an ImportReport.
"""

from typing import Any, Dict, List, Optional


class ProcurementError(Exception):
    """Base exception for everything raised by this package."""

    def __init__(self, message: str, path: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.path = str(path) if path is not None else None
        self.details = details or {}

    def __str__(self) -> str:
        base_msg = super().__str__()
        if self.path:
            base_msg = f"{base_msg} (file: {self.path})"
        return base_msg


class ExtractionError(ProcurementError):
    """The PDF could not be opened or yielded no text."""


class NoTextError(ExtractionError):
    """The PDF opened but has no text layer (e.g. an image-only scan)."""


class ScanError(ProcurementError):
    """Scanning a PDF into a purchase-order draft failed."""


class SpreadsheetError(ProcurementError):
    """The spreadsheet file could not be opened."""


class MissingSheetError(SpreadsheetError):
    """The workbook contains no worksheets."""


class MissingColumnsError(SpreadsheetError):
    """One or more required header columns are absent."""

    def __init__(self, missing: List[str], path: Optional[str] = None):
        quoted = ", ".join(f"'{name}'" for name in missing)
        super().__init__(f"Missing required column(s): {quoted}", path,
                         details={"missing": list(missing)})
        self.missing = list(missing)


class RowLevelError(ProcurementError):
    """One data row is invalid.  Collected into a report; the batch continues."""

    def __init__(self, row_number: int, message: str):
        super().__init__(message, details={"row_number": row_number})
        self.row_number = row_number

    def __str__(self) -> str:
        return f"Row {self.row_number}: {self.message}"


class ValidationError(ProcurementError):
    """A receiving or creation request is structurally invalid; nothing was written."""

    def __init__(self, message: str, line_item_id: Optional[str] = None):
        details = {"line_item_id": line_item_id} if line_item_id else {}
        super().__init__(message, details=details)
        self.line_item_id = line_item_id


class PersistenceError(ProcurementError):
    """The store rejected a read or write."""


class ReceivingError(PersistenceError):
    """A receiving unit of work failed and was rolled back in full."""

    def __init__(self, reason: str, po_id: Optional[str] = None):
        super().__init__(f"Failed to receive items: {reason}",
                         details={"po_id": po_id} if po_id else {})
        self.po_id = po_id
