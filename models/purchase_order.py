from datetime import date as date_type
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, model_validator


STATUS_ISSUED    = "ISSUED"
STATUS_PARTIAL   = "PARTIAL"
STATUS_COMPLETED = "COMPLETED"
ALL_PO_STATUSES  = {STATUS_ISSUED, STATUS_PARTIAL, STATUS_COMPLETED}

DEFAULT_UOM = "Nos"
DEFAULT_GST_PERCENT = 18.0


def line_total(quantity: float, unit_price: float, gst_percent: float) -> float:
    """quantity * unit_price grossed up by the GST rate, rounded to cents."""
    return round(quantity * unit_price * (1 + gst_percent / 100), 2)


class LineItemDraft(BaseModel):
    """A single parsed line item, before it is persisted."""
    sr_no: int
    product_name: str
    quantity: float = Field(gt=0)
    uom: str = DEFAULT_UOM
    unit_price: float = Field(default=0.0, ge=0)
    gst_percent: float = DEFAULT_GST_PERCENT
    total_amount: Optional[float] = None     # filled in from qty/price/gst if omitted

    @model_validator(mode="after")
    def _fill_total(self) -> "LineItemDraft":
        if self.total_amount is None:
            self.total_amount = line_total(self.quantity, self.unit_price, self.gst_percent)
        return self


class PurchaseOrderDraft(BaseModel):
    """
    A purchase order as extracted from a PDF or spreadsheet.

    Never persisted as-is: the operator reviews it and the store converts it
    into a PurchaseOrder.  `properties` holds any labelled field the parser
    recognised that has no dedicated attribute (e.g. "Dept Name").
    """
    po_number: str = ""
    date: Optional[date_type] = None
    vendor_name: str = ""
    gstin: str = ""
    line_items: List[LineItemDraft] = Field(default_factory=list)
    properties: Dict[str, str] = Field(default_factory=dict)

    @property
    def total_amount(self) -> float:
        return round(sum(item.total_amount or 0.0 for item in self.line_items), 2)

    def has_contiguous_serials(self) -> bool:
        return [item.sr_no for item in self.line_items] == list(range(1, len(self.line_items) + 1))


class LineItem(BaseModel):
    """A persisted PO line item."""
    id: str
    purchase_order_id: str
    sr_no: int
    product_name: str
    quantity: float
    uom: str = DEFAULT_UOM
    unit_price: float = 0.0
    gst_percent: float = DEFAULT_GST_PERCENT
    total_amount: float = 0.0
    received_qty: float = 0.0

    @property
    def pending_qty(self) -> float:
        return max(self.quantity - self.received_qty, 0.0)

    @property
    def fully_received(self) -> bool:
        return self.received_qty >= self.quantity


class PurchaseOrder(BaseModel):
    """A persisted Purchase Order.  po_number is unique across the store."""
    id: str
    po_number: str
    date: Optional[date_type] = None
    vendor_name: str = ""
    gstin: str = ""
    total_amount: float = 0.0
    status: str = STATUS_ISSUED
    properties: Dict[str, str] = Field(default_factory=dict)
    created_at: Optional[str] = None
    line_items: List[LineItem] = Field(default_factory=list)

    def all_received(self) -> bool:
        return all(item.fully_received for item in self.line_items)
