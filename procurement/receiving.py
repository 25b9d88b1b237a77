"""
Goods receiving (GRN) against open purchase orders.

ReceivingEngine.receive() turns receipt instructions into serialized assets
in one all-or-nothing unit of work:

  1. received_qty += quantity for each instructed line item
  2. product name looked up for asset naming
  3. one ACTIVE asset per unit, serials padded with generated identifiers
  4. PO status recomputed: COMPLETED if every line is fully received,
     otherwise PARTIAL
  5. one RECEIVE_ITEMS audit entry, written in the same transaction

Requests are validated before anything is written.  Any failure during the
unit of work rolls back every step and surfaces as a single ReceivingError.

The engine does not lock a PO across calls and is not idempotent: callers
must not submit two receipts for the same PO concurrently, and after a
timeout should re-read the PO rather than resubmit.
"""
import logging
import math
import time
from typing import Optional, Sequence

from models.asset import ASSET_STATUS_ACTIVE
from models.purchase_order import STATUS_COMPLETED, STATUS_PARTIAL
from models.receiving import ReceiptInstruction, ReceivingResult
from .database import Database
from .exceptions import PersistenceError, ReceivingError, ValidationError

logger = logging.getLogger(__name__)

UNKNOWN_SERIAL = "Unknown"
FALLBACK_PRODUCT_NAME = "Received Asset"
AUDIT_ACTION = "RECEIVE_ITEMS"


class SerialAllocator:
    """Generates serials unique within one receiving run."""

    def __init__(self, prefix: str = "PO-AUTO"):
        self.prefix = prefix
        self.stamp = int(time.time() * 1000)
        self.counter = 0

    def next(self) -> str:
        serial = f"{self.prefix}-{self.stamp}-{self.counter}"
        self.counter += 1
        return serial


def pad_serials(serials: Sequence[str], quantity: int, allocator: SerialAllocator) -> list[str]:
    """
    Exactly `quantity` serials: supplied ones first (blank -> "Unknown"),
    then generated ones for the shortfall.
    """
    padded = [s.strip() or UNKNOWN_SERIAL for s in serials[:quantity]]
    while len(padded) < quantity:
        padded.append(allocator.next())
    return padded


class ReceivingEngine:
    """Reconciles goods-received instructions against a purchase order."""

    def __init__(self, db: Database, timeout_seconds: Optional[float] = 60):
        self.db = db
        self.timeout_seconds = timeout_seconds

    def validate(self, po_id: str, instructions: Sequence[ReceiptInstruction]) -> None:
        """Reject structurally invalid requests.  Reads only."""
        if not instructions:
            raise ValidationError("No items to receive")
        for ins in instructions:
            if not (ins.target_sub_category_id or "").strip():
                raise ValidationError(
                    f"Line item {ins.line_item_id}: target sub-category is required",
                    line_item_id=ins.line_item_id,
                )
            if (not math.isfinite(ins.quantity) or ins.quantity < 0
                    or ins.quantity != int(ins.quantity)):
                raise ValidationError(
                    f"Line item {ins.line_item_id}: quantity must be a whole number >= 0",
                    line_item_id=ins.line_item_id,
                )
            if len(ins.serials) > ins.quantity:
                raise ValidationError(
                    f"Line item {ins.line_item_id}: {len(ins.serials)} serials supplied "
                    f"for {int(ins.quantity)} unit(s)",
                    line_item_id=ins.line_item_id,
                )
        if self.db.find_po_by_id(po_id, include_line_items=False) is None:
            raise ValidationError(f"Purchase order {po_id} not found")

    def receive(self, po_id: str, instructions: Sequence[ReceiptInstruction]) -> ReceivingResult:
        """
        Receive goods against a PO atomically.

        Raises ValidationError (nothing written) for invalid requests and
        ReceivingError (everything rolled back) if the unit of work fails.
        """
        self.validate(po_id, instructions)
        allocator = SerialAllocator()
        asset_ids: list[str] = []
        units = 0

        try:
            with self.db.transaction(timeout=self.timeout_seconds) as tx:
                for ins in instructions:
                    quantity = int(ins.quantity)
                    self.db.increment_received(
                        ins.line_item_id, quantity, purchase_order_id=po_id, tx=tx
                    )
                    line_item = self.db.find_line_item(ins.line_item_id, tx=tx)
                    product_name = line_item.product_name if line_item else FALLBACK_PRODUCT_NAME

                    records = [
                        {
                            "sub_category_id": ins.target_sub_category_id,
                            "purchase_order_id": po_id,
                            "status": ASSET_STATUS_ACTIVE,
                            "properties": {
                                "Name": product_name,
                                "Serial No": serial,
                                "PO Ref": po_id,
                            },
                        }
                        for serial in pad_serials(ins.serials, quantity, allocator)
                    ]
                    if records:
                        asset_ids.extend(self.db.create_assets(records, tx=tx))
                    units += quantity
                    logger.debug("Line %s: +%d received, %d asset(s)",
                                 ins.line_item_id, quantity, len(records))

                po = self.db.find_po_by_id(po_id, tx=tx)
                if po is None:
                    raise PersistenceError(f"Purchase order {po_id} disappeared during receiving")
                status = STATUS_COMPLETED if po.all_received() else STATUS_PARTIAL
                self.db.update_po_status(po_id, status, tx=tx)

                self.db.record_audit(
                    AUDIT_ACTION, "PurchaseOrder", po_id,
                    {"units_received": units, "status": status,
                     "line_items": len(instructions), "assets_created": len(asset_ids)},
                    tx=tx,
                )
        except Exception as exc:
            logger.error("Receiving against PO %s failed and was rolled back: %s", po_id, exc)
            reason = exc.message if isinstance(exc, PersistenceError) else str(exc)
            raise ReceivingError(reason, po_id=po_id) from exc

        logger.info("Received %d unit(s) against PO %s -> %s (%d asset(s))",
                    units, po_id, status, len(asset_ids))
        return ReceivingResult(po_id=po_id, status=status, units_received=units, asset_ids=asset_ids)
