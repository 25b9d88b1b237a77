"""
Header-field extraction rules for scanned purchase orders.

Each rule is independent: a regex with ONE capture group that is searched
in the flattened document text, plus the place the captured value goes --
either a fixed PurchaseOrderDraft attribute (`target`) or a key in the
draft's free-form `properties` map (`key`).  Rules never look at each
other's results, so supporting a new document layout means appending a
rule, not editing the parser.

Operators can add property rules without a code change through
config/po_fields.json:

    [
      {"label": "Indent No", "key": "Indent No"},
      {"key": "Budget Head", "regex": "Budget\\s*Head\\s*:\\s*(\\S+)"}
    ]

Entries with only a label get the standard "Label: value" matcher.
"""
from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Callable, Optional

logger = logging.getLogger(__name__)

# A labelled text value runs until a column gap, a hard separator, the next
# "Word:" token, or the end of the text.
_TEXT_VALUE = r"(.+?)(?=\s{2,}|\s*[|;]|\s+\S+:|$)"

_DATE_FORMATS = ("%d-%b-%Y", "%d-%B-%Y", "%d-%b-%y", "%d-%B-%y")


def parse_day_month_year(value: str) -> Optional[date]:
    """Parse '12-Aug-2025' style dates (also '/', ' ' or ',' separated).  None if invalid."""
    cleaned = re.sub(r"[\s/,.]+", "-", value.strip()).strip("-")
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(cleaned, fmt).date()
        except ValueError:
            continue
    return None


@dataclass
class ExtractionRule:
    name: str
    pattern: str                                   # regex with one capture group
    target: Optional[str] = None                   # PurchaseOrderDraft attribute
    key: Optional[str] = None                      # properties key (when target is None)
    convert: Optional[Callable[[str], object]] = None   # None result = ignore the match

    _re: Optional[re.Pattern] = field(default=None, repr=False, compare=False)

    def compiled_re(self) -> Optional[re.Pattern]:
        if self._re is None:
            try:
                self._re = re.compile(self.pattern, re.IGNORECASE)
            except re.error as exc:
                logger.warning("Rule %r has invalid regex (%s) -- skipping", self.name, exc)
        return self._re

    def apply(self, text: str) -> Optional[object]:
        """Return the converted value of the first match, or None."""
        pattern = self.compiled_re()
        if pattern is None:
            return None
        m = pattern.search(text)
        if not m:
            return None
        raw = m.group(1).strip()
        if not raw:
            return None
        if self.convert is None:
            return raw
        value = self.convert(raw)
        if value is None:
            logger.debug("Rule %r matched %r but the value was rejected", self.name, raw)
        return value


def labelled_property(label: str, key: Optional[str] = None) -> ExtractionRule:
    """A rule capturing 'Label: value' into properties[key or label]."""
    words = r"\s*".join(re.escape(w) for w in label.split())
    return ExtractionRule(
        name=key or label,
        pattern=rf"\b{words}\s*[:#\-]\s*{_TEXT_VALUE}",
        key=key or label,
    )


DEFAULT_RULES: list[ExtractionRule] = [
    ExtractionRule(
        name="po_number",
        pattern=r"\bPO\s*(?:Number|No\b\.?|#)\s*[:#.\-]?\s*([A-Za-z0-9][A-Za-z0-9\-/_]*)",
        target="po_number",
    ),
    ExtractionRule(
        name="vendor",
        pattern=rf"\bPO\s*For\s*[:\-]?\s*{_TEXT_VALUE}",
        target="vendor_name",
    ),
    ExtractionRule(
        name="gstin",
        pattern=r"\bGSTIN\s*(?:No\.?)?\s*[:#.\-]?\s*([0-9A-Za-z]{15})(?![0-9A-Za-z])",
        target="gstin",
        convert=str.upper,
    ),
    ExtractionRule(
        name="date",
        pattern=r"\bDate\s*[:\-]?\s*(\d{1,2}[-/ ][A-Za-z]{3,9}[-/ ,]\s*\d{2,4})",
        target="date",
        convert=parse_day_month_year,
    ),
    labelled_property("Request Ref"),
    labelled_property("Dept Name"),
    labelled_property("Approved By"),
]


def load_property_rules(config_dir: Optional[Path] = None) -> list[ExtractionRule]:
    """
    Load operator-defined property rules from po_fields.json.
    Returns an empty list if the file is absent or contains no valid entries.
    """
    if config_dir is None:
        config_dir = Path(os.environ.get(
            "CONFIG_DIR",
            Path(__file__).parent.parent / "config"
        ))
    config_path = Path(config_dir) / "po_fields.json"

    if not config_path.exists():
        return []

    try:
        with open(config_path, encoding="utf-8") as fh:
            raw = json.load(fh)
    except Exception as exc:
        logger.warning("Could not load po_fields.json (%s) -- no extra fields", exc)
        return []

    if not isinstance(raw, list):
        logger.warning("po_fields.json must be a JSON array -- no extra fields loaded")
        return []

    rules: list[ExtractionRule] = []
    for entry in raw:
        if not isinstance(entry, dict):
            continue
        label = entry.get("label")
        key = entry.get("key") or label
        if not key:
            continue
        if entry.get("regex"):
            rule = ExtractionRule(name=str(key), pattern=str(entry["regex"]), key=str(key))
            if rule.compiled_re() is None:
                continue
            rules.append(rule)
        elif label:
            rules.append(labelled_property(str(label), str(key)))

    if rules:
        logger.info("Loaded %d extra PO field rule(s): %s", len(rules), [r.name for r in rules])
    return rules
