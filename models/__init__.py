from .purchase_order import (
    PurchaseOrderDraft, LineItemDraft, PurchaseOrder, LineItem,
    STATUS_ISSUED, STATUS_PARTIAL, STATUS_COMPLETED,
)
from .asset import Asset, Category, SubCategory, ASSET_STATUS_ACTIVE
from .receiving import ReceiptInstruction, ReceivingResult
from .result import ImportReport, POImportResult

__all__ = [
    "PurchaseOrderDraft", "LineItemDraft", "PurchaseOrder", "LineItem",
    "STATUS_ISSUED", "STATUS_PARTIAL", "STATUS_COMPLETED",
    "Asset", "Category", "SubCategory", "ASSET_STATUS_ACTIVE",
    "ReceiptInstruction", "ReceivingResult",
    "ImportReport", "POImportResult",
]
