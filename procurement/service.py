"""
Procurement orchestrator.

ProcurementService wires the store and the ingestion / receiving components
together behind the operations the operator surface (CLI) calls:

  - scan_pdf()               PDF -> PurchaseOrderDraft for review
  - create_purchase_order()  reviewed draft -> persisted PO
  - import_purchase_orders() PO spreadsheet -> new POs, duplicates skipped
  - import_assets()          asset spreadsheet -> assets, per-row report
  - receive_items()          receipt instructions -> assets + PO status
  - export_assets()          inventory workbook
"""
import logging
from datetime import date
from pathlib import Path
from typing import Optional, Sequence

from config import Config
from models.purchase_order import PurchaseOrder, PurchaseOrderDraft
from models.receiving import ReceiptInstruction, ReceivingResult
from models.result import ImportReport, POImportResult
from .asset_exporter import AssetExporter
from .asset_importer import AssetImporter
from .database import Database
from .exceptions import ValidationError
from .extractor import PdfTextExtractor
from .field_rules import DEFAULT_RULES, load_property_rules
from .po_importer import PurchaseOrderImporter
from .po_parser import PurchaseOrderParser
from .receiving import ReceivingEngine

logger = logging.getLogger(__name__)


class ProcurementService:

    def __init__(self, config: Optional[Config] = None):
        self.config = config or Config()
        self.config.ensure_output_dir()

        self.db = Database(self.config.db_path)
        if self.config.seed_categories:
            self.db.seed_default_categories()

        extractor = PdfTextExtractor(
            line_tolerance=self.config.line_tolerance,
            column_gap=self.config.column_gap,
        )
        self.parser = PurchaseOrderParser(
            extractor=extractor,
            rules=DEFAULT_RULES + load_property_rules(self.config.config_dir),
            default_gst_percent=self.config.default_gst_percent,
            default_uom=self.config.default_uom,
        )
        self.po_importer = PurchaseOrderImporter(self.db, self.parser)
        self.asset_importer = AssetImporter(self.db, self.config.default_subcategory)
        self.asset_exporter = AssetExporter(self.db)
        self.receiving = ReceivingEngine(self.db, self.config.receive_timeout_seconds)

    # ------------------------------------------------------------------
    # Purchase orders
    # ------------------------------------------------------------------

    def scan_pdf(self, pdf_path: str | Path, default_date: Optional[date] = None) -> PurchaseOrderDraft:
        return self.parser.from_pdf(pdf_path, default_date=default_date)

    def create_purchase_order(self, draft: PurchaseOrderDraft) -> PurchaseOrder:
        """Persist a reviewed draft.  Raises ValidationError for blank/duplicate numbers."""
        po_number = draft.po_number.strip()
        if not po_number:
            raise ValidationError("PO number is required")
        if not draft.line_items:
            raise ValidationError(f"PO {po_number} has no line items")
        if not draft.has_contiguous_serials():
            raise ValidationError(f"PO {po_number}: line item serial numbers must run 1..n")
        if self.db.find_po_by_number(po_number, include_line_items=False) is not None:
            raise ValidationError(f"PO {po_number} already exists")

        with self.db.transaction() as tx:
            po = self.db.create_purchase_order(
                draft.model_copy(update={"po_number": po_number}), tx=tx,
            )
            self.db.record_audit(
                "CREATE_PO", "PurchaseOrder", po.id,
                {"po_number": po.po_number, "line_items": len(po.line_items),
                 "total_amount": po.total_amount},
                tx=tx,
            )
        return po

    def import_purchase_orders(self, path: str | Path) -> POImportResult:
        return self.po_importer.import_file(path)

    def list_purchase_orders(self) -> list[PurchaseOrder]:
        return self.db.list_purchase_orders()

    def get_purchase_order(self, po_id: str) -> Optional[PurchaseOrder]:
        return self.db.find_po_by_id(po_id)

    def delete_purchase_order(self, po_id: str) -> bool:
        deleted = self.db.delete_purchase_order(po_id)
        if deleted:
            self.db.record_audit("DELETE_PO", "PurchaseOrder", po_id)
            logger.info("Deleted PO %s (received assets kept)", po_id)
        else:
            logger.warning("Delete requested for unknown PO %s", po_id)
        return deleted

    # ------------------------------------------------------------------
    # Receiving
    # ------------------------------------------------------------------

    def receive_items(self, po_id: str, instructions: Sequence[ReceiptInstruction]) -> ReceivingResult:
        return self.receiving.receive(po_id, instructions)

    # ------------------------------------------------------------------
    # Assets
    # ------------------------------------------------------------------

    def import_assets(self, path: str | Path) -> ImportReport:
        return self.asset_importer.import_file(path)

    def export_assets(self, path: Optional[str | Path] = None) -> Path:
        if path is None:
            path = Path(self.config.export_dir) / f"assets_{date.today().isoformat()}.xlsx"
        return self.asset_exporter.export(path)
