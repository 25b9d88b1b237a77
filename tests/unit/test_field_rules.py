"""
Unit tests for header-field extraction rules.
"""
import json
from datetime import date

import pytest

from procurement.field_rules import (
    DEFAULT_RULES,
    ExtractionRule,
    labelled_property,
    load_property_rules,
    parse_day_month_year,
)


def rule(name):
    return next(r for r in DEFAULT_RULES if r.name == name)


@pytest.mark.unit
class TestDefaultRules:

    @pytest.mark.parametrize("text,expected", [
        ("PO No: PO/2025/0042  Date: 12-Aug-2025", "PO/2025/0042"),
        ("PO Number - 4500012345", "4500012345"),
        ("PO#IT-77 issued", "IT-77"),
        ("PO No. 991", "991"),
    ])
    def test_po_number(self, text, expected):
        assert rule("po_number").apply(text) == expected

    def test_po_number_absent(self):
        assert rule("po_number").apply("Purchase Order  Vendor copy") is None

    def test_vendor_stops_at_next_label(self):
        assert rule("vendor").apply("PO For: Acme Traders Pvt Ltd GSTIN: 22AAAAA0000A1Z5") == (
            "Acme Traders Pvt Ltd"
        )

    def test_vendor_stops_at_column_gap(self):
        assert rule("vendor").apply("PO For: Acme Traders   Date: 12-Aug-2025") == "Acme Traders"

    def test_gstin(self):
        assert rule("gstin").apply("GSTIN: 22AAAAA0000A1Z5") == "22AAAAA0000A1Z5"

    def test_gstin_upper_cased(self):
        assert rule("gstin").apply("gstin no. 22aaaaa0000a1z5") == "22AAAAA0000A1Z5"

    def test_gstin_must_be_fifteen_characters(self):
        assert rule("gstin").apply("GSTIN: 22AAAAA0000A1Z") is None
        assert rule("gstin").apply("GSTIN: 22AAAAA0000A1Z5X") is None

    def test_date(self):
        assert rule("date").apply("Date: 12-Aug-2025") == date(2025, 8, 12)

    def test_invalid_date_ignored(self):
        assert rule("date").apply("Date: 31-Feb-2025") is None

    def test_property_rules(self):
        text = "Request Ref: REQ-77  Dept Name: IT Services  Approved By: R. Sharma"
        assert rule("Request Ref").apply(text) == "REQ-77"
        assert rule("Dept Name").apply(text) == "IT Services"
        assert rule("Approved By").apply(text) == "R. Sharma"


@pytest.mark.unit
class TestParseDayMonthYear:

    @pytest.mark.parametrize("value,expected", [
        ("12-Aug-2025", date(2025, 8, 12)),
        ("5 August 2025", date(2025, 8, 5)),
        ("12/Aug/25", date(2025, 8, 12)),
        ("01-sep-2024", date(2024, 9, 1)),
    ])
    def test_valid(self, value, expected):
        assert parse_day_month_year(value) == expected

    @pytest.mark.parametrize("value", ["31-Feb-2025", "2025-08-12", "soon"])
    def test_invalid(self, value):
        assert parse_day_month_year(value) is None


@pytest.mark.unit
class TestExtractionRule:

    def test_invalid_regex_never_matches(self):
        broken = ExtractionRule(name="broken", pattern="(", key="x")
        assert broken.compiled_re() is None
        assert broken.apply("anything") is None

    def test_labelled_property_custom_key(self):
        r = labelled_property("Indent No", key="indent")
        assert r.key == "indent"
        assert r.apply("Indent No: IND-5  Other: x") == "IND-5"

    def test_empty_capture_ignored(self):
        r = ExtractionRule(name="blank", pattern=r"Ref:(\s*)", key="ref")
        assert r.apply("Ref:   ") is None


@pytest.mark.unit
class TestLoadPropertyRules:

    def test_missing_file(self, temp_dir):
        assert load_property_rules(temp_dir) == []

    def test_loads_label_and_regex_entries(self, temp_dir):
        (temp_dir / "po_fields.json").write_text(json.dumps([
            {"label": "Indent No"},
            {"key": "Budget Head", "regex": r"Budget\s*Head\s*:\s*(\S+)"},
            {"key": "Broken", "regex": "("},
            {"note": "no key or label"},
            "not an object",
        ]))

        rules = load_property_rules(temp_dir)

        assert [r.name for r in rules] == ["Indent No", "Budget Head"]
        assert rules[1].apply("Budget Head: CAPEX-IT") == "CAPEX-IT"

    def test_non_array_file(self, temp_dir):
        (temp_dir / "po_fields.json").write_text(json.dumps({"label": "Indent No"}))
        assert load_property_rules(temp_dir) == []

    def test_malformed_json(self, temp_dir):
        (temp_dir / "po_fields.json").write_text("[{")
        assert load_property_rules(temp_dir) == []
