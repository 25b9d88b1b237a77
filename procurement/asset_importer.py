"""
Spreadsheet asset import.

Every data row becomes one ACTIVE asset.  The "Category" column is required;
"SubCategory" is optional and defaults to "General".  Missing categories and
sub-categories are created on the fly.  Every other non-empty cell is kept as
a free-form asset property under its original header text.

Rows are isolated from each other: a bad row is recorded in the report and
the import carries on with the next one.
"""
import logging
import re
from pathlib import Path

from models.asset import ASSET_STATUS_ACTIVE, Category, SubCategory
from models.result import ImportReport
from .database import Database
from .exceptions import PersistenceError, RowLevelError
from .spreadsheet import SheetRow, SpreadsheetReader

logger = logging.getLogger(__name__)

CATEGORY_COLUMN = "category"
SUBCATEGORY_COLUMN = "subcategory"


def slugify(name: str) -> str:
    """Lower-case and collapse every run of non-alphanumerics into one hyphen."""
    return re.sub(r"[^a-z0-9]+", "-", name.lower())


class AssetImporter:
    """Materialises spreadsheet rows into categories, sub-categories and assets."""

    def __init__(self, db: Database, default_subcategory: str = "General"):
        self.db = db
        self.default_subcategory = default_subcategory

    def import_file(self, path: str | Path) -> ImportReport:
        """
        Import every non-empty data row of the first sheet.

        Raises SpreadsheetError / MissingSheetError if the file cannot be
        read and MissingColumnsError without a Category column; any other
        problem is confined to its row and reported in the ImportReport.
        A failure to write the IMPORT_ASSETS audit entry is logged only.
        """
        path = Path(path)
        report = ImportReport()

        with SpreadsheetReader(path) as sheet:
            sheet.require_columns(CATEGORY_COLUMN)
            property_columns = [
                (idx, header)
                for idx, header in enumerate(sheet.headers)
                if header and header.lower() not in (CATEGORY_COLUMN, SUBCATEGORY_COLUMN)
            ]
            cat_idx = sheet.column(CATEGORY_COLUMN)
            sub_idx = sheet.column(SUBCATEGORY_COLUMN)

            for row in sheet.rows():
                report.total += 1
                try:
                    self._import_row(row, cat_idx, sub_idx, property_columns)
                    report.success += 1
                except RowLevelError as exc:
                    logger.warning("%s", exc)
                    report.errors.append(str(exc))
                except Exception as exc:
                    logger.warning("Row %d failed: %s", row.number, exc)
                    report.errors.append(str(RowLevelError(row.number, str(exc))))

        logger.info(
            "Asset import from %s: %d row(s), %d imported, %d error(s)",
            path.name, report.total, report.success, len(report.errors),
        )
        try:
            self.db.record_audit(
                "IMPORT_ASSETS", "Asset", None,
                {"file": path.name, "total": report.total,
                 "success": report.success, "errors": len(report.errors)},
            )
        except PersistenceError as exc:
            # Imported rows are already committed; the report still stands.
            logger.error("Could not record asset import audit entry: %s", exc)
        return report

    def _import_row(self, row: SheetRow, cat_idx: int, sub_idx, property_columns) -> None:
        category_name = row.text(cat_idx)
        if not category_name:
            raise RowLevelError(row.number, "Missing Category")

        sub_name = (row.text(sub_idx) if sub_idx is not None else "") or self.default_subcategory
        category = self.resolve_category(category_name)
        sub_category = self.resolve_sub_category(category, sub_name)

        properties: dict[str, str] = {}
        for idx, header in property_columns:
            value = row.text(idx)
            if value:
                properties[header] = value

        self.db.create_assets([{
            "sub_category_id": sub_category.id,
            "status": ASSET_STATUS_ACTIVE,
            "properties": properties,
        }])
        logger.debug("Row %d -> %s / %s, %d propert(ies)",
                     row.number, category.name, sub_category.name, len(properties))

    def resolve_category(self, name: str) -> Category:
        """Find a category by exact name or create it."""
        category = self.db.find_category_by_name(name)
        if category is None:
            category = self.db.create_category(name, slugify(name))
        return category

    def resolve_sub_category(self, category: Category, name: str) -> SubCategory:
        """Find a sub-category under `category` by slug or create it."""
        slug = slugify(f"{category.slug}-{name}")
        sub = self.db.find_sub_category(category.id, slug)
        if sub is None:
            sub = self.db.create_sub_category(name, slug, category.id)
        return sub
