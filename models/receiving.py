from typing import List

from pydantic import BaseModel, Field


class ReceiptInstruction(BaseModel):
    """Units of one line item to receive now, with optional serial numbers."""
    line_item_id: str
    quantity: float
    target_sub_category_id: str = ""
    serials: List[str] = Field(default_factory=list)


class ReceivingResult(BaseModel):
    """Outcome of one committed receiving run."""
    po_id: str
    status: str
    units_received: float
    asset_ids: List[str] = Field(default_factory=list)
