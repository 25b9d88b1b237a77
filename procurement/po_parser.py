"""
Purchase-order field parsing.

PurchaseOrderParser turns either a text-layer PDF or a spreadsheet into
PurchaseOrderDraft objects:

  - from_pdf() / from_lines() -- header fields via the ordered rules in
    field_rules.py, line items from delimited records numbered 1, 2, 3...
  - from_spreadsheet()        -- flat rows grouped into one draft per PO
    number, one line item per row.

A PDF that yields no recognisable fields still produces an (empty) draft so
the operator can fill the form in by hand.  Only an unreadable file raises.
"""
from __future__ import annotations

import csv
import logging
import re
from datetime import date, datetime
from pathlib import Path
from typing import Optional

from models.purchase_order import (
    DEFAULT_GST_PERCENT, DEFAULT_UOM, LineItemDraft, PurchaseOrderDraft,
)
from .exceptions import ExtractionError, NoTextError, ScanError
from .extractor import PdfTextExtractor
from .field_rules import DEFAULT_RULES, ExtractionRule
from .spreadsheet import SheetRow, SpreadsheetReader

logger = logging.getLogger(__name__)

# Lines are joined with a column gap so a labelled value never runs on into
# the next line.
LINE_JOINER = "  "

PO_REQUIRED_COLUMNS = ("po number", "vendor", "product")

_DATE_CELL_FORMATS = ("%Y-%m-%d", "%d-%m-%Y", "%d/%m/%Y", "%d-%b-%Y", "%d %b %Y", "%Y/%m/%d")

_CURRENCY = r"(?:Rs\.?|INR|\u20b9|\$)"

# A table cell that is purely an amount: optional currency marker, digits,
# thousands separators, optional decimals.
_AMOUNT_CELL = re.compile(rf"^{_CURRENCY}?\s*-?[\d,]*\.?\d+$", re.IGNORECASE)


def to_float(value: str) -> Optional[float]:
    """Parse a number that may carry currency symbols or thousands separators."""
    text = re.sub(rf"^\s*{_CURRENCY}", "", str(value), flags=re.IGNORECASE)
    cleaned = re.sub(r"[^\d.\-]", "", text.replace(",", ""))
    try:
        return float(cleaned)
    except ValueError:
        return None


def _amount(value: str) -> Optional[float]:
    return to_float(value) if _AMOUNT_CELL.match(value.strip()) else None


def _parse_date_cell(value, text: str) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = text.strip()
    if not text:
        return None
    for fmt in _DATE_CELL_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


class PurchaseOrderParser:
    """Builds PurchaseOrderDraft objects from PDFs and spreadsheets."""

    def __init__(
        self,
        extractor: Optional[PdfTextExtractor] = None,
        rules: Optional[list[ExtractionRule]] = None,
        default_gst_percent: float = DEFAULT_GST_PERCENT,
        default_uom: str = DEFAULT_UOM,
    ):
        self.extractor = extractor or PdfTextExtractor()
        self.rules = list(rules) if rules is not None else list(DEFAULT_RULES)
        self.default_gst_percent = default_gst_percent
        self.default_uom = default_uom

    # ------------------------------------------------------------------
    # PDF
    # ------------------------------------------------------------------

    def from_pdf(self, pdf_path: str | Path, default_date: Optional[date] = None) -> PurchaseOrderDraft:
        """
        Scan a PDF purchase order into a draft.

        Raises ScanError if the file cannot be read.  A readable PDF with no
        text layer gives an empty draft rather than an error.
        """
        pdf_path = Path(pdf_path)
        logger.info("Scanning purchase order PDF: %s", pdf_path.name)
        try:
            lines = self.extractor.extract_lines(pdf_path)
        except NoTextError:
            logger.warning("No text layer in %s -- returning a blank draft", pdf_path.name)
            lines = []
        except ExtractionError as exc:
            raise ScanError(f"Failed to parse PDF. {exc.message}", pdf_path) from exc
        return self.from_lines(lines, default_date=default_date)

    def from_lines(self, lines: list[str], default_date: Optional[date] = None) -> PurchaseOrderDraft:
        """Apply the header rules and line-item recogniser to extracted text lines."""
        draft = PurchaseOrderDraft(date=default_date or date.today())
        text = LINE_JOINER.join(line.strip() for line in lines if line.strip())

        for rule in self.rules:
            value = rule.apply(text)
            if value is None:
                continue
            if rule.target:
                setattr(draft, rule.target, value)
            elif rule.key and rule.key not in draft.properties:
                draft.properties[rule.key] = str(value)
            logger.debug("Rule %r -> %r", rule.name, value)

        draft.line_items = self._line_items(lines)
        logger.info(
            "Parsed draft: po_number=%r vendor=%r gstin=%r, %d line item(s), %d propert%s",
            draft.po_number, draft.vendor_name, draft.gstin, len(draft.line_items),
            len(draft.properties), "y" if len(draft.properties) == 1 else "ies",
        )
        return draft

    def _line_items(self, lines: list[str]) -> list[LineItemDraft]:
        items: list[LineItemDraft] = []
        expected = 1
        for line in lines:
            item = self._parse_item_record(line.strip(), expected)
            if item is None:
                continue
            items.append(item)
            expected += 1
        return items

    def _parse_item_record(self, line: str, sr_no: int) -> Optional[LineItemDraft]:
        """
        Recognise one line-item record: Sr | Description | Qty | [UOM] | Unit Price | ...

        Quoted comma-separated records ("1","Laptop","2","Nos","50000") and
        column-gap separated records ("1  Laptop  2  Nos  50000") are both
        accepted.  The first field must be exactly the expected serial number.
        """
        if line.startswith('"'):
            fields = next(csv.reader([line]), [])
        else:
            fields = re.split(r"\s{2,}|\t", line)
        fields = [f.strip() for f in fields]
        if len(fields) < 4:
            return None
        if not re.fullmatch(rf"0*{sr_no}\.?", fields[0]):
            return None

        description = re.sub(r"\s+", " ", fields[1])
        quantity = unit_price = None
        uom = self.default_uom
        for value in fields[2:]:
            number = _amount(value)
            if quantity is None:
                if number is None:
                    return None
                quantity = number
            elif number is None:
                if value and uom == self.default_uom:
                    uom = value
            else:
                unit_price = number
                break

        if not description or quantity is None or unit_price is None:
            logger.debug("Sr %d candidate rejected: %r", sr_no, line)
            return None
        if quantity <= 0 or unit_price < 0:
            logger.debug("Sr %d has non-positive quantity or negative price: %r", sr_no, line)
            return None

        return LineItemDraft(
            sr_no=sr_no,
            product_name=description,
            quantity=quantity,
            uom=uom,
            unit_price=unit_price,
            gst_percent=self.default_gst_percent,
        )

    # ------------------------------------------------------------------
    # Spreadsheet
    # ------------------------------------------------------------------

    def from_spreadsheet(self, path: str | Path) -> dict[str, PurchaseOrderDraft]:
        """
        Group the rows of a PO spreadsheet into one draft per PO number.

        Requires "PO Number", "Vendor" and "Product" columns (any case);
        raises MissingColumnsError otherwise.  The first row seen for a PO
        number supplies the header fields; every row adds a line item.
        Returns drafts keyed by PO number in first-seen order.
        """
        with SpreadsheetReader(path) as sheet:
            sheet.require_columns(*PO_REQUIRED_COLUMNS)
            cols = {name: sheet.column(name) for name in (
                "po number", "date", "vendor", "gstin", "product", "qty", "price", "gst", "uom",
            )}
            drafts: dict[str, PurchaseOrderDraft] = {}
            for row in sheet.rows():
                po_number = row.text(cols["po number"])
                if not po_number:
                    logger.debug("Row %d has no PO number -- skipped", row.number)
                    continue
                draft = drafts.get(po_number)
                if draft is None:
                    draft = self._draft_header(row, po_number, cols)
                    drafts[po_number] = draft
                draft.line_items.append(
                    self._sheet_line_item(row, len(draft.line_items) + 1, cols)
                )

        logger.info("Grouped %s into %d purchase order(s)", Path(path).name, len(drafts))
        return drafts

    @staticmethod
    def _draft_header(row: SheetRow, po_number: str, cols: dict) -> PurchaseOrderDraft:
        return PurchaseOrderDraft(
            po_number=po_number,
            date=_parse_date_cell(row.value(cols["date"]), row.text(cols["date"])) or date.today(),
            vendor_name=row.text(cols["vendor"]),
            gstin=row.text(cols["gstin"]),
        )

    def _sheet_line_item(self, row: SheetRow, sr_no: int, cols: dict) -> LineItemDraft:
        quantity = to_float(row.text(cols["qty"]))
        if not quantity or quantity <= 0:
            quantity = 1.0
        price = to_float(row.text(cols["price"]))
        if price is None or price < 0:
            price = 0.0
        gst = self.default_gst_percent
        if cols["gst"] is not None:
            parsed = to_float(row.text(cols["gst"]))
            if parsed is not None and parsed >= 0:
                gst = parsed
        uom = row.text(cols["uom"]) or self.default_uom
        return LineItemDraft(
            sr_no=sr_no,
            product_name=row.text(cols["product"]),
            quantity=quantity,
            uom=uom,
            unit_price=price,
            gst_percent=gst,
        )
