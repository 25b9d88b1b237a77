from typing import List

from pydantic import BaseModel, Field


class ImportReport(BaseModel):
    """
    Row-level outcome of a spreadsheet asset import.

    Invariant: success + len(errors) == total, where total counts every
    non-empty data row.
    """
    total: int = 0
    success: int = 0
    errors: List[str] = Field(default_factory=list)


class POImportResult(BaseModel):
    """Outcome of a spreadsheet purchase-order import."""
    total_groups: int = 0
    created: int = 0
    skipped: List[str] = Field(default_factory=list)    # PO numbers already in the store
    created_po_numbers: List[str] = Field(default_factory=list)
