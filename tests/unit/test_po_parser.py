"""
Unit tests for purchase-order parsing from PDF text and spreadsheets.
"""
from datetime import date, datetime

import pytest

from procurement.exceptions import MissingColumnsError, NoTextError, ScanError
from procurement.field_rules import DEFAULT_RULES, labelled_property
from procurement.po_parser import PurchaseOrderParser, to_float

SAMPLE_LINES = [
    "Purchase Order",
    "PO No: PO/2025/0042   Date: 12-Aug-2025",
    "PO For: Acme Traders Pvt Ltd   GSTIN: 22AAAAA0000A1Z5",
    "Request Ref: REQ-77   Dept Name: IT Services",
    "Sr  Description  Qty  UOM  Rate  Amount",
    "1  Dell Latitude 5440  2  Nos  65000  153400",
    "2  Logitech MK270 Combo  10  Set  1,500.00  17700",
    "4  Stray row  1  Nos  10",
    "3  HDMI Cable 2m  5  300",
    "Approved By: R. Sharma",
]


class StubExtractor:
    def __init__(self, lines=None, error=None):
        self.lines = lines or []
        self.error = error

    def extract_lines(self, path):
        if self.error is not None:
            raise self.error
        return self.lines


@pytest.mark.unit
class TestFromLines:
    """Tests for PurchaseOrderParser.from_lines()."""

    @pytest.fixture
    def parser(self):
        return PurchaseOrderParser()

    def test_header_fields(self, parser):
        draft = parser.from_lines(SAMPLE_LINES)

        assert draft.po_number == "PO/2025/0042"
        assert draft.date == date(2025, 8, 12)
        assert draft.vendor_name == "Acme Traders Pvt Ltd"
        assert draft.gstin == "22AAAAA0000A1Z5"

    def test_properties_captured(self, parser):
        draft = parser.from_lines(SAMPLE_LINES)

        assert draft.properties == {
            "Request Ref": "REQ-77",
            "Dept Name": "IT Services",
            "Approved By": "R. Sharma",
        }

    def test_line_items_in_strict_sequence(self, parser):
        draft = parser.from_lines(SAMPLE_LINES)

        assert [i.sr_no for i in draft.line_items] == [1, 2, 3]
        assert [i.product_name for i in draft.line_items] == [
            "Dell Latitude 5440", "Logitech MK270 Combo", "HDMI Cable 2m",
        ]
        assert draft.has_contiguous_serials()

    def test_line_item_values(self, parser):
        laptop, keyboard, cable = parser.from_lines(SAMPLE_LINES).line_items

        assert (laptop.quantity, laptop.uom, laptop.unit_price) == (2, "Nos", 65000)
        assert laptop.gst_percent == 18
        assert laptop.total_amount == pytest.approx(153400.0)
        assert (keyboard.uom, keyboard.unit_price) == ("Set", 1500.0)
        assert (cable.quantity, cable.uom, cable.unit_price) == (5, "Nos", 300)

    def test_draft_total(self, parser):
        draft = parser.from_lines(SAMPLE_LINES)
        assert draft.total_amount == pytest.approx(153400.0 + 17700.0 + 1770.0)

    def test_gstin_scenario(self, parser):
        assert parser.from_lines(["GSTIN: 22AAAAA0000A1Z5"]).gstin == "22AAAAA0000A1Z5"
        assert parser.from_lines(["Vendor GST pending"]).gstin == ""

    def test_invalid_date_keeps_default(self, parser):
        default = date(2024, 1, 1)
        draft = parser.from_lines(["Date: 31-Feb-2025"], default_date=default)
        assert draft.date == default

    def test_date_defaults_to_today(self, parser):
        assert parser.from_lines([]).date == date.today()

    def test_unrecognised_text_gives_blank_draft(self, parser):
        draft = parser.from_lines(["Scanned by office copier", "Page 1 of 1"])

        assert draft.po_number == ""
        assert draft.vendor_name == ""
        assert draft.line_items == []
        assert draft.properties == {}

    def test_quoted_csv_record(self, parser):
        draft = parser.from_lines(['"1","Laptop, 14 inch","2","Nos","50000"'])

        assert len(draft.line_items) == 1
        item = draft.line_items[0]
        assert item.product_name == "Laptop, 14 inch"
        assert (item.quantity, item.unit_price) == (2, 50000)

    def test_zero_padded_serial(self, parser):
        draft = parser.from_lines(["01.  Mouse  4  Nos  250"])
        assert [i.product_name for i in draft.line_items] == ["Mouse"]

    @pytest.mark.parametrize("line", [
        "1  Patch cord  Cat6  Nos  120",   # quantity cell is not a number
        "1  Patch cord  0  Nos  120",      # zero quantity
        "1  Patch cord  3  Nos",           # no unit price
        "1  Patch cord  3",                # too few fields
        "12  Patch cord  3  Nos  120",     # not the expected serial
    ])
    def test_rejected_records(self, parser, line):
        assert parser.from_lines([line]).line_items == []

    def test_first_property_value_wins(self, parser):
        draft = parser.from_lines(["Dept Name: IT", "Dept Name: Finance"])
        assert draft.properties["Dept Name"] == "IT"

    def test_custom_rules_appended(self):
        parser = PurchaseOrderParser(rules=DEFAULT_RULES + [labelled_property("Indent No")])
        draft = parser.from_lines(["Indent No: IND-5", "Dept Name: IT"])
        assert draft.properties == {"Dept Name": "IT", "Indent No": "IND-5"}

    def test_configured_gst_and_uom(self):
        parser = PurchaseOrderParser(default_gst_percent=12, default_uom="Each")
        item = parser.from_lines(["1  Mouse  2  100"]).line_items[0]
        assert (item.gst_percent, item.uom, item.total_amount) == (12, "Each", 224.0)


@pytest.mark.unit
class TestFromPdf:
    """Tests for PurchaseOrderParser.from_pdf() error handling."""

    def test_uses_extracted_lines(self, temp_dir):
        parser = PurchaseOrderParser(extractor=StubExtractor(SAMPLE_LINES))
        draft = parser.from_pdf(temp_dir / "po.pdf")
        assert draft.po_number == "PO/2025/0042"

    def test_no_text_layer_gives_blank_draft(self, temp_dir):
        parser = PurchaseOrderParser(extractor=StubExtractor(error=NoTextError("No text found")))
        draft = parser.from_pdf(temp_dir / "scan.pdf", default_date=date(2025, 1, 2))

        assert draft.po_number == ""
        assert draft.line_items == []
        assert draft.date == date(2025, 1, 2)

    def test_missing_file_raises_scan_error(self, temp_dir):
        with pytest.raises(ScanError) as exc_info:
            PurchaseOrderParser().from_pdf(temp_dir / "missing.pdf")
        assert str(exc_info.value).startswith("Failed to parse PDF.")


@pytest.mark.unit
class TestFromSpreadsheet:
    """Tests for PurchaseOrderParser.from_spreadsheet()."""

    HEADER = ["PO Number", "Date", "Vendor", "GSTIN", "Product", "Qty", "Price", "UOM"]

    @pytest.fixture
    def parser(self):
        return PurchaseOrderParser()

    def test_single_row_scenario(self, parser, make_xlsx):
        path = make_xlsx([
            ["PO Number", "Vendor", "Product", "Qty", "Price"],
            ["PO-9", "Acme", "Cable", 10, 5],
        ])

        drafts = parser.from_spreadsheet(path)

        draft = drafts["PO-9"]
        assert draft.vendor_name == "Acme"
        assert len(draft.line_items) == 1
        item = draft.line_items[0]
        assert item.gst_percent == 18
        assert item.uom == "Nos"
        assert item.total_amount == pytest.approx(59.0)
        assert draft.total_amount == pytest.approx(59.0)

    def test_rows_grouped_by_po_number(self, parser, make_xlsx):
        path = make_xlsx([
            self.HEADER,
            ["PO-1", datetime(2025, 8, 12), "Acme", "22AAAAA0000A1Z5", "Laptop", 2, 50000, "Nos"],
            ["PO-2", "2025-08-20", "Globex", None, "Switch", 1, 90000, None],
            ["PO-1", datetime(2025, 9, 1), "Other Vendor", None, "Dock", 2, 8000, "Set"],
            [None, None, "Nobody", None, "Orphan", 1, 1, None],
        ])

        drafts = parser.from_spreadsheet(path)

        assert list(drafts) == ["PO-1", "PO-2"]
        po1 = drafts["PO-1"]
        assert po1.date == date(2025, 8, 12)
        assert po1.vendor_name == "Acme"
        assert po1.gstin == "22AAAAA0000A1Z5"
        assert [(i.sr_no, i.product_name, i.uom) for i in po1.line_items] == [
            (1, "Laptop", "Nos"), (2, "Dock", "Set"),
        ]
        assert drafts["PO-2"].date == date(2025, 8, 20)
        assert drafts["PO-2"].gstin == ""

    def test_case_insensitive_headers(self, parser, make_xlsx):
        path = make_xlsx([
            [" po number ", "VENDOR", "product"],
            ["PO-3", "Acme", "Mouse"],
        ])
        assert list(parser.from_spreadsheet(path)) == ["PO-3"]

    def test_fallbacks_for_unparseable_cells(self, parser, make_xlsx):
        path = make_xlsx([
            ["PO Number", "Vendor", "Product", "Qty", "Price", "GST"],
            ["PO-4", "Acme", "Mouse", "lots", "n/a", "abc"],
            ["PO-4", "Acme", "Pad", 0, 100, 0],
            ["PO-4", "Acme", "Pen", 3, 10, "12%"],
        ])

        mouse, pad, pen = parser.from_spreadsheet(path)["PO-4"].line_items

        assert (mouse.quantity, mouse.unit_price, mouse.gst_percent) == (1, 0, 18)
        assert (pad.quantity, pad.gst_percent) == (1, 0)
        assert pad.total_amount == pytest.approx(100.0)
        assert pen.gst_percent == 12

    def test_missing_required_columns(self, parser, make_xlsx):
        path = make_xlsx([["PO Number", "Vendor", "Qty"], ["PO-5", "Acme", 1]])

        with pytest.raises(MissingColumnsError) as exc_info:
            parser.from_spreadsheet(path)

        assert exc_info.value.missing == ["product"]
        assert "'product'" in str(exc_info.value)

    def test_missing_date_defaults_to_today(self, parser, make_xlsx):
        path = make_xlsx([["PO Number", "Vendor", "Product"], ["PO-6", "Acme", "Mouse"]])
        assert parser.from_spreadsheet(path)["PO-6"].date == date.today()


@pytest.mark.unit
@pytest.mark.parametrize("value,expected", [
    ("1,500.00", 1500.0),
    ("Rs. 250", 250.0),
    ("12%", 12.0),
    ("", None),
    ("abc", None),
])
def test_to_float(value, expected):
    assert to_float(value) == expected
