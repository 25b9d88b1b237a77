"""
Inventory export to an .xlsx workbook (openpyxl).

Two sheets:
  Dashboard   -- asset counts by category and by status
  All Assets  -- one row per asset; fixed columns followed by one column per
                 property key found on any asset (Name / Serial / Model first)
"""
import logging
from collections import Counter
from datetime import datetime
from pathlib import Path

from models.asset import Asset
from .database import Database

logger = logging.getLogger(__name__)

FIXED_COLUMNS = [
    ("Asset ID", 25),
    ("Category", 20),
    ("SubCategory", 20),
    ("Status", 15),
    ("Last Updated", 15),
]
PRIORITY_KEYS = ["name", "serial", "serial no", "model"]

_TITLE_FILL  = "FF1E293B"
_HEADER_FILL = "FF475569"


def property_column_order(assets: list[Asset]) -> list[str]:
    """All property keys across assets: priority keys first, the rest alphabetical."""
    keys = {key for asset in assets for key in asset.properties}

    def sort_key(key: str):
        lowered = key.lower()
        if lowered in PRIORITY_KEYS:
            return (0, PRIORITY_KEYS.index(lowered), "")
        return (1, 0, key)

    return sorted(keys, key=sort_key)


class AssetExporter:

    def __init__(self, db: Database):
        self.db = db

    def export(self, path: str | Path) -> Path:
        from openpyxl import Workbook
        from openpyxl.styles import Alignment, Border, Font, PatternFill, Side

        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        assets = self.db.list_assets()

        wb = Workbook()
        wb.properties.creator = "IT Asset Manager"
        wb.properties.created = datetime.now()

        # --- Dashboard ---
        summary = wb.active
        summary.title = "Dashboard"
        summary.sheet_view.showGridLines = False
        summary.merge_cells("A1:E1")
        title = summary["A1"]
        title.value = "IT Asset Inventory Report"
        title.font = Font(name="Arial", size=16, bold=True, color="FFFFFFFF")
        title.fill = PatternFill("solid", fgColor=_TITLE_FILL)
        title.alignment = Alignment(horizontal="center", vertical="center")
        summary.row_dimensions[1].height = 30

        by_category = Counter(a.category_name or "Unknown" for a in assets)
        by_status = Counter(a.status for a in assets)

        summary["A3"] = "Asset Breakdown by Category"
        summary["A3"].font = Font(bold=True, size=12)
        summary["A4"], summary["B4"] = "Category", "Count"
        summary["D3"] = "Asset Status Overview"
        summary["D3"].font = Font(bold=True, size=12)
        summary["D4"], summary["E4"] = "Status", "Count"
        for ref in ("A4", "B4", "D4", "E4"):
            summary[ref].font = Font(bold=True)
            summary[ref].border = Border(bottom=Side(style="thin"))

        for offset, (name, count) in enumerate(by_category.items()):
            summary.cell(row=5 + offset, column=1, value=name)
            summary.cell(row=5 + offset, column=2, value=count)
        for offset, (status, count) in enumerate(by_status.items()):
            summary.cell(row=5 + offset, column=4, value=status)
            summary.cell(row=5 + offset, column=5, value=count)

        # --- All Assets ---
        data = wb.create_sheet("All Assets")
        keys = property_column_order(assets)
        headers = [h for h, _ in FIXED_COLUMNS] + [k.upper() for k in keys]
        data.append(headers)
        for col, (_, width) in enumerate(FIXED_COLUMNS, start=1):
            data.column_dimensions[data.cell(row=1, column=col).column_letter].width = width
        for col in range(len(FIXED_COLUMNS) + 1, len(headers) + 1):
            data.column_dimensions[data.cell(row=1, column=col).column_letter].width = 20
        for cell in data[1]:
            cell.font = Font(bold=True, color="FFFFFFFF")
            cell.fill = PatternFill("solid", fgColor=_HEADER_FILL)

        for asset in assets:
            data.append([
                asset.id,
                asset.category_name,
                asset.sub_category_name,
                asset.status,
                (asset.updated_at or "")[:10],
                *[asset.properties.get(k) for k in keys],
            ])
        data.auto_filter.ref = f"A1:{data.cell(row=1, column=len(headers)).column_letter}1"

        wb.save(str(path))
        logger.info("Exported %d asset(s) to %s", len(assets), path)
        return path
