"""
Pytest configuration and shared fixtures for the procurement test suite.
"""
import os
import shutil
import tempfile
from datetime import date
from pathlib import Path
from typing import Generator

import pytest

PROJECT_ROOT = Path(__file__).parent.parent
os.chdir(PROJECT_ROOT)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory for test files."""
    tmp_path = tempfile.mkdtemp(prefix="procurement_test_")
    yield Path(tmp_path)
    shutil.rmtree(tmp_path, ignore_errors=True)


@pytest.fixture
def test_config(temp_dir: Path) -> "Config":
    """Provide a test configuration with isolated directories."""
    from config import Config

    config = Config()
    config.db_path = temp_dir / "output" / "assets.db"
    config.export_dir = temp_dir / "output" / "export"
    config.config_dir = temp_dir / "config"
    config.config_dir.mkdir(parents=True, exist_ok=True)
    config.seed_categories = False
    config.ensure_output_dir()
    return config


@pytest.fixture
def test_db(test_config) -> "Database":
    """Provide an empty test database."""
    from procurement.database import Database
    return Database(test_config.db_path)


@pytest.fixture
def make_xlsx(temp_dir: Path):
    """Write rows (first row = header) to a single-sheet .xlsx and return its path."""
    from openpyxl import Workbook

    def _make(rows: list, name: str = "sheet.xlsx") -> Path:
        wb = Workbook()
        ws = wb.active
        ws.title = "Sheet1"
        for row in rows:
            ws.append(list(row))
        path = temp_dir / name
        wb.save(str(path))
        return path

    return _make


@pytest.fixture
def sub_category(test_db):
    """A Laptops / General sub-category to receive goods into."""
    category = test_db.create_category("Laptops", "laptops")
    return test_db.create_sub_category("General", "laptops-general", category.id)


@pytest.fixture
def po_100(test_db):
    """PO-100: one line item, quantity 5, nothing received yet."""
    from models.purchase_order import LineItemDraft, PurchaseOrderDraft

    draft = PurchaseOrderDraft(
        po_number="PO-100",
        date=date(2025, 8, 12),
        vendor_name="Acme Traders",
        line_items=[
            LineItemDraft(sr_no=1, product_name="ThinkPad E14", quantity=5, unit_price=50000),
        ],
    )
    return test_db.create_purchase_order(draft)


@pytest.fixture
def two_line_po(test_db):
    """PO-200: two line items (3 laptops, 2 docks)."""
    from models.purchase_order import LineItemDraft, PurchaseOrderDraft

    draft = PurchaseOrderDraft(
        po_number="PO-200",
        date=date(2025, 9, 1),
        vendor_name="Acme Traders",
        line_items=[
            LineItemDraft(sr_no=1, product_name="ThinkPad E14", quantity=3, unit_price=50000),
            LineItemDraft(sr_no=2, product_name="USB-C Dock", quantity=2, unit_price=8000),
        ],
    )
    return test_db.create_purchase_order(draft)


# Configure pytest markers
def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "slow: Slow tests")
