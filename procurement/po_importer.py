"""
Purchase-order spreadsheet import with duplicate protection.

Rows are grouped into drafts by PurchaseOrderParser.from_spreadsheet();
each draft whose PO number already exists in the store is skipped whole
(no merge, no update) and reported back in POImportResult.skipped.  New POs
are created one at a time, each in its own transaction, so a failure part
way through keeps the POs created before it.
"""
import logging
from pathlib import Path

from models.result import POImportResult
from .database import Database
from .po_parser import PurchaseOrderParser

logger = logging.getLogger(__name__)


class PurchaseOrderImporter:

    def __init__(self, db: Database, parser: PurchaseOrderParser | None = None):
        self.db = db
        self.parser = parser or PurchaseOrderParser()

    def import_file(self, path: str | Path) -> POImportResult:
        path = Path(path)
        drafts = self.parser.from_spreadsheet(path)
        result = POImportResult(total_groups=len(drafts))

        for po_number, draft in drafts.items():
            if self.db.find_po_by_number(po_number, include_line_items=False) is not None:
                logger.warning("PO %s already exists -- skipped", po_number)
                result.skipped.append(po_number)
                continue
            with self.db.transaction() as tx:
                po = self.db.create_purchase_order(draft, tx=tx)
                self.db.record_audit(
                    "CREATE_PO", "PurchaseOrder", po.id,
                    {"po_number": po.po_number, "source": path.name,
                     "line_items": len(po.line_items), "total_amount": po.total_amount},
                    tx=tx,
                )
            result.created += 1
            result.created_po_numbers.append(po_number)

        logger.info(
            "PO import from %s: %d group(s), %d created, %d skipped as duplicates",
            path.name, result.total_groups, result.created, len(result.skipped),
        )
        return result
